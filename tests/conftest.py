# tests/conftest.py - Base de datos en memoria y datos de prueba

from decimal import Decimal
from types import SimpleNamespace

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from ventas.constants import Rol, TipoDocumento
from ventas.dao import build_daos
from ventas.database import create_tables, get_db
from ventas.models import Pedido, Producto
from ventas.security import get_password_hash
from ventas.services import AuthService, PedidoService

PASSWORD = "secret123"


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await create_tables(bind=engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def daos():
    return build_daos()


@pytest.fixture
def service(daos):
    return PedidoService(daos.pedidos, daos.productos, daos.clientes, daos.usuarios)


@pytest.fixture
def auth_service(daos):
    return AuthService(daos.usuarios)


@pytest.fixture
async def datos(db, daos):
    """Un vendedor, un cliente y dos productos; devuelve solo ids"""
    usuario = await daos.usuarios.create(db, {
        "nombre": "Vendedor Uno",
        "email": "vendedor@ventas.com",
        "hashed_password": get_password_hash(PASSWORD),
        "rol": Rol.VENDEDOR,
    })
    cliente = await daos.clientes.create(db, {
        "nombre": "Cliente Uno",
        "email": "cliente@ventas.com",
        "documento": "1001",
        "tipo_documento": TipoDocumento.CEDULA,
    })
    auriculares = await daos.productos.create(db, {
        "codigo": "AUR-001",
        "nombre": "Auriculares",
        "precio": Decimal("89.99"),
        "stock": 50,
        "categoria": "Audio",
    })
    teclado = await daos.productos.create(db, {
        "codigo": "TEC-001",
        "nombre": "Teclado",
        "precio": Decimal("120.00"),
        "stock": 10,
        "categoria": "Perifericos",
    })
    return SimpleNamespace(
        usuario_id=usuario.id,
        cliente_id=cliente.id,
        auriculares_id=auriculares.id,
        teclado_id=teclado.id,
    )


@pytest.fixture
def stock_de(db):
    async def _stock(producto_id):
        result = await db.execute(select(Producto.stock).where(Producto.id == producto_id))
        return result.scalar_one()
    return _stock


@pytest.fixture
def total_pedidos(db):
    async def _total():
        return (await db.execute(select(func.count(Pedido.id)))).scalar_one()
    return _total

# ============================================================================
# CLIENTE HTTP
# ============================================================================


@pytest.fixture
async def client(session_factory):
    from ventas.main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


async def _token(client, email):
    response = await client.post("/auth/login", data={"username": email, "password": PASSWORD})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
async def admin_headers(client, db, auth_service):
    await auth_service.register(db, "Admin", "admin@ventas.com", PASSWORD, rol=Rol.ADMIN)
    return await _token(client, "admin@ventas.com")


@pytest.fixture
async def vendedor_headers(client, datos):
    return await _token(client, "vendedor@ventas.com")
