# ventas/seeds.py - Datos iniciales: administrador, vendedor y catálogo de ejemplo
#
# Para ejecutar a mano: python -m ventas.seeds [--demo]

import asyncio
import logging
import sys
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from . import config
from .constants import Rol
from .dao import DAOs, build_daos
from .database import AsyncSessionLocal, create_tables
from .logger import setup_logging
from .models import Producto, Usuario
from .security import get_password_hash

logger = logging.getLogger(__name__)

PRODUCTOS_DEMO = [
    {
        "codigo": "PROD-001",
        "nombre": "Balón de Fútbol Nike",
        "descripcion": "Balón oficial tamaño 5",
        "precio": Decimal("89.99"),
        "stock": 50,
        "categoria": "Fútbol",
    },
    {
        "codigo": "PROD-002",
        "nombre": "Raqueta de Tenis Wilson",
        "descripcion": "Raqueta Pro Staff 300g",
        "precio": Decimal("120.00"),
        "stock": 25,
        "categoria": "Tenis",
    },
    {
        "codigo": "PROD-003",
        "nombre": "Zapatillas Running Adidas",
        "descripcion": "Zapatillas Ultraboost",
        "precio": Decimal("149.99"),
        "stock": 40,
        "categoria": "Running",
    },
]


async def seed_usuario(db: AsyncSession, daos: DAOs, nombre: str, email: str,
                       password: str, rol: Rol) -> Usuario:
    """Crear el usuario si su email no existe; si existe no se modifica"""
    existente = await daos.usuarios.find_by_email(db, email)
    if existente is not None:
        logger.info("Usuario %s ya existe", email)
        return existente
    usuario = await daos.usuarios.create(db, {
        "nombre": nombre,
        "email": email,
        "hashed_password": get_password_hash(password),
        "rol": rol,
    })
    logger.info("Usuario %s creado con rol %s", email, rol.value)
    return usuario


async def seed_admin(db: AsyncSession, daos: DAOs,
                     email: Optional[str] = None, password: Optional[str] = None) -> Usuario:
    return await seed_usuario(
        db, daos, config.ADMIN_NOMBRE,
        email or config.ADMIN_EMAIL, password or config.ADMIN_PASSWORD, Rol.ADMIN,
    )


async def seed_productos(db: AsyncSession, daos: DAOs) -> List[Producto]:
    productos = []
    for datos in PRODUCTOS_DEMO:
        producto = await daos.productos.find_by_code(db, datos["codigo"])
        if producto is None:
            producto = await daos.productos.create(db, dict(datos))
            logger.info("Producto %s creado", datos["codigo"])
        productos.append(producto)
    return productos


async def run_seeds(db: AsyncSession, daos: DAOs, demo: bool = False) -> None:
    """Idempotente: se puede ejecutar en cada arranque"""
    await seed_admin(db, daos)
    if demo:
        await seed_usuario(db, daos, "Vendedor Principal", config.VENDEDOR_EMAIL,
                           config.VENDEDOR_PASSWORD, Rol.VENDEDOR)
        await seed_productos(db, daos)


async def main(demo: bool) -> None:
    setup_logging()
    await create_tables()
    async with AsyncSessionLocal() as db:
        await run_seeds(db, build_daos(), demo=demo)
    logger.info("Datos iniciales cargados")


if __name__ == "__main__":
    asyncio.run(main(demo="--demo" in sys.argv[1:] or config.SEED_DEMO_DATA))
