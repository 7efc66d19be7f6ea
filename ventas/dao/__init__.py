# ventas/dao/__init__.py - Registro de DAOs y operaciones entre entidades

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, List

from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Producto
from .base import BaseDAO, Page
from .cliente import ClienteDAO
from .pedido import PedidoDAO
from .producto import ProductoDAO, StockMode
from .usuario import UsuarioDAO

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DAOs:
    """Una instancia por tipo de entidad, creada al iniciar la aplicación"""
    usuarios: UsuarioDAO
    clientes: ClienteDAO
    productos: ProductoDAO
    pedidos: PedidoDAO


def build_daos() -> DAOs:
    daos = DAOs(
        usuarios=UsuarioDAO(),
        clientes=ClienteDAO(),
        productos=ProductoDAO(),
        pedidos=PedidoDAO(),
    )
    logger.info("DAOs inicializados")
    return daos


class DAOManager:
    """Consultas que combinan varias entidades (dashboard, búsqueda, reglas)"""

    def __init__(self, daos: DAOs, low_stock_threshold: int = 10):
        self.daos = daos
        self.low_stock_threshold = low_stock_threshold

    async def get_dashboard_statistics(self, db: AsyncSession) -> Dict:
        usuarios = await self.daos.usuarios.get_statistics(db)
        productos = await self.daos.productos.get_statistics(db, self.low_stock_threshold)
        clientes = await self.daos.clientes.get_statistics(db)
        pedidos = await self.daos.pedidos.get_statistics(db)
        bajo_stock = await self.daos.productos.find_low_stock(db, self.low_stock_threshold)
        recientes = await self.daos.clientes.find_recent(db, days=7, limit=5)

        return {
            "usuarios": usuarios,
            "productos": productos,
            "clientes": clientes,
            "pedidos": pedidos,
            "resumen": {
                "total_usuarios": usuarios["total"],
                "total_productos": productos["total"],
                "total_clientes": clientes["total"],
                "total_pedidos": pedidos["total_pedidos"],
                "productos_bajo_stock": len(bajo_stock),
                "clientes_recientes": len(recientes),
            },
        }

    async def global_search(self, db: AsyncSession, term: str, limit: int = 10) -> Dict:
        por_entidad = max(math.ceil(limit / 3), 1)
        resultados: Dict[str, Page] = {}
        for nombre, dao in (
            ("usuarios", self.daos.usuarios),
            ("productos", self.daos.productos),
            ("clientes", self.daos.clientes),
        ):
            resultados[nombre] = await dao.find_all(db, search=term, page=1, limit=por_entidad)

        return {
            "usuarios": resultados["usuarios"].items,
            "productos": resultados["productos"].items,
            "clientes": resultados["clientes"].items,
            "total_resultados": sum(page.total for page in resultados.values()),
        }

    async def get_inventory_overview(self, db: AsyncSession) -> Dict:
        estadisticas = await self.daos.productos.get_statistics(db, self.low_stock_threshold)
        bajo_stock = await self.daos.productos.find_low_stock(db, self.low_stock_threshold)

        top: List[Dict] = []
        for categoria in await self.daos.productos.get_categories(db):
            productos = await self.daos.productos.find_by_category(db, categoria)
            valor = sum((_valor_inventario(p) for p in productos), Decimal("0.00"))
            top.append({"categoria": categoria, "cantidad": len(productos), "valor": valor})
        top.sort(key=lambda item: item["valor"], reverse=True)

        return {
            "total_productos": estadisticas["total"],
            "valor_total": estadisticas["valor_total"],
            "productos_bajo_stock": bajo_stock,
            "categorias": estadisticas["categorias"],
            "top_categorias": top[:5],
        }

    async def get_customer_analytics(self, db: AsyncSession, days: int = 30) -> Dict:
        estadisticas = await self.daos.clientes.get_statistics(db)
        recientes = await self.daos.clientes.find_recent(db, days=days, limit=10)
        por_dia = await self.daos.clientes.count_created_per_day(db, days=days)

        hoy = datetime.now(timezone.utc).date()
        crecimiento = []
        for offset in range(days - 1, -1, -1):
            dia = (hoy - timedelta(days=offset)).isoformat()
            crecimiento.append({"fecha": dia, "cantidad": por_dia.get(dia, 0)})

        return {
            "total_clientes": estadisticas["total"],
            "clientes_activos": estadisticas["activos"],
            "distribucion_tipo_documento": estadisticas["tipos_documento"],
            "clientes_recientes": recientes,
            "crecimiento": crecimiento,
        }

    async def validate_business_rules(self, db: AsyncSession) -> Dict:
        errors: List[str] = []
        warnings: List[str] = []

        negativos = await self.daos.productos.count(db, Producto.stock < 0)
        if negativos:
            errors.append(f"{negativos} productos con stock negativo")

        inconsistentes = await self.daos.pedidos.find_inconsistent_totals(db)
        if inconsistentes:
            errors.append(
                f"{len(inconsistentes)} pedidos con total distinto a la suma de sus detalles: "
                f"{inconsistentes}"
            )

        usuarios = await self.daos.usuarios.get_statistics(db)
        if usuarios["inactivos"]:
            warnings.append(f"{usuarios['inactivos']} usuarios inactivos")

        bajo_stock = await self.daos.productos.find_low_stock(db, self.low_stock_threshold)
        if bajo_stock:
            warnings.append(f"{len(bajo_stock)} productos con stock bajo")

        return {"is_valid": not errors, "errors": errors, "warnings": warnings}


def _valor_inventario(producto) -> Decimal:
    return Decimal(str(producto.precio)) * producto.stock


__all__ = [
    "BaseDAO", "Page", "DAOs", "DAOManager", "build_daos",
    "UsuarioDAO", "ClienteDAO", "ProductoDAO", "PedidoDAO", "StockMode",
]
