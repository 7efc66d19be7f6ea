# tests/test_seeds.py - Datos iniciales

from decimal import Decimal

from sqlalchemy import func, select

from ventas import config
from ventas.constants import Rol
from ventas.models import Producto, Usuario
from ventas.seeds import run_seeds, seed_admin


async def _contar(db, model):
    return (await db.execute(select(func.count(model.id)))).scalar_one()


async def test_seed_admin_es_idempotente(db, daos):
    admin = await seed_admin(db, daos, "root@ventas.com", "clave-admin")
    assert admin.rol == Rol.ADMIN

    otra_vez = await seed_admin(db, daos, "root@ventas.com", "otra-clave")
    assert otra_vez.id == admin.id
    assert await _contar(db, Usuario) == 1


async def test_run_seeds_con_datos_de_demostracion(db, daos):
    await run_seeds(db, daos, demo=True)
    await run_seeds(db, daos, demo=True)

    assert await _contar(db, Usuario) == 2
    assert await _contar(db, Producto) == 3
    balon = await daos.productos.find_by_code(db, "PROD-001")
    assert balon.precio == Decimal("89.99")
    assert balon.stock == 50
    vendedor = await daos.usuarios.find_by_email(db, config.VENDEDOR_EMAIL)
    assert vendedor.rol == Rol.VENDEDOR


async def test_run_seeds_sin_demo_solo_crea_admin(db, daos):
    await run_seeds(db, daos)
    assert await _contar(db, Producto) == 0
    admin = await daos.usuarios.find_by_email(db, config.ADMIN_EMAIL)
    assert admin.rol == Rol.ADMIN


async def test_admin_sembrado_puede_administrar_el_catalogo(client, db, daos):
    await run_seeds(db, daos)

    login = await client.post("/auth/login", data={
        "username": config.ADMIN_EMAIL, "password": config.ADMIN_PASSWORD,
    })
    assert login.status_code == 200, login.text
    headers = {"Authorization": f"Bearer {login.json()['access_token']}"}

    producto = await client.post("/productos/", headers=headers, json={
        "codigo": "NEW-001", "nombre": "Nuevo", "precio": "10.00", "stock": 3, "categoria": "Varios",
    })
    assert producto.status_code == 201, producto.text
    assert (await client.get("/usuarios/", headers=headers)).status_code == 200
