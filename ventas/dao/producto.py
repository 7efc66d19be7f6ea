# ventas/dao/producto.py - Acceso a datos de productos e inventario

import logging
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional

from sqlalchemy import case, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import InsufficientStock, NotFound, RecordInUse
from ..models import DetallePedido, Producto
from .base import BaseDAO, Page

logger = logging.getLogger(__name__)

productos_table = Producto.__table__


class StockMode(str, Enum):
    """Semántica de una reducción de stock"""
    STRICT = "strict"  # falla con InsufficientStock si no alcanza
    CLAMP = "clamp"    # nunca baja de cero


class ProductoDAO(BaseDAO):
    model = Producto
    entity_name = "Producto"
    unique_fields = ("codigo",)
    search_fields = ("nombre", "codigo", "descripcion")
    default_order = ("nombre",)

    async def find_by_code(self, db: AsyncSession, codigo: str):
        return await self.find_one_by(db, codigo=codigo)

    async def code_exists(self, db: AsyncSession, codigo: str, exclude_id=None) -> bool:
        return await self.exists(db, "codigo", codigo, exclude_id)

    async def find_all_productos(
        self,
        db: AsyncSession,
        categoria: Optional[str] = None,
        activo: Optional[bool] = None,
        search: Optional[str] = None,
        min_precio: Optional[Decimal] = None,
        max_precio: Optional[Decimal] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Page:
        stmt = select(Producto)
        if categoria:
            stmt = stmt.where(Producto.categoria == categoria)
        if activo is not None:
            stmt = stmt.where(Producto.activo.is_(activo))
        if search:
            stmt = stmt.where(self.search_clause(search))
        if min_precio is not None:
            stmt = stmt.where(Producto.precio >= min_precio)
        if max_precio is not None:
            stmt = stmt.where(Producto.precio <= max_precio)
        stmt = stmt.order_by(*self.order_clause())
        return await self.paginate(db, stmt, page, limit)

    async def find_low_stock(self, db: AsyncSession, threshold: int = 10) -> List[Producto]:
        result = await db.execute(
            select(Producto)
            .where(Producto.stock <= threshold, Producto.activo.is_(True))
            .order_by(Producto.stock.asc(), Producto.id)
        )
        return list(result.scalars().all())

    async def find_by_category(self, db: AsyncSession, categoria: str, activo: bool = True) -> List[Producto]:
        result = await db.execute(
            select(Producto)
            .where(Producto.categoria == categoria, Producto.activo.is_(activo))
            .order_by(Producto.nombre)
        )
        return list(result.scalars().all())

    async def get_categories(self, db: AsyncSession) -> List[str]:
        result = await db.execute(
            select(Producto.categoria)
            .where(Producto.activo.is_(True))
            .group_by(Producto.categoria)
            .order_by(Producto.categoria)
        )
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Inventario
    #
    # Cada operación es un UPDATE de una sola fila ejecutado en la
    # transacción de la sesión; el commit queda a cargo del llamador
    # salvo que se pida lo contrario.
    # ------------------------------------------------------------------

    async def reduce_stock(self, db: AsyncSession, id: int, cantidad: int,
                           mode: StockMode = StockMode.STRICT, commit: bool = False) -> int:
        """Descontar stock; devuelve el stock resultante"""
        _validar_cantidad(cantidad)
        stock = productos_table.c.stock
        stmt = update(productos_table).where(productos_table.c.id == id)
        if mode == StockMode.STRICT:
            stmt = stmt.where(stock >= cantidad).values(stock=stock - cantidad)
        else:
            stmt = stmt.values(stock=case((stock >= cantidad, stock - cantidad), else_=0))

        nuevo_stock = (await db.execute(stmt.returning(stock))).scalar_one_or_none()
        if nuevo_stock is None:
            actual = await self._stock_actual(db, id)
            if actual is None:
                raise NotFound("Producto not found")
            nombre, disponible = actual
            logger.warning("Stock insuficiente para producto %s: disponible %s, requerido %s",
                           id, disponible, cantidad)
            raise InsufficientStock(nombre, disponible, cantidad)

        if commit:
            await self.commit(db)
        logger.info("Stock reducido para producto %s: -%s (%s) -> %s", id, cantidad, mode.value, nuevo_stock)
        return nuevo_stock

    async def increase_stock(self, db: AsyncSession, id: int, cantidad: int, commit: bool = False) -> int:
        _validar_cantidad(cantidad)
        stock = productos_table.c.stock
        stmt = (
            update(productos_table)
            .where(productos_table.c.id == id)
            .values(stock=stock + cantidad)
            .returning(stock)
        )
        nuevo_stock = (await db.execute(stmt)).scalar_one_or_none()
        if nuevo_stock is None:
            raise NotFound("Producto not found")
        if commit:
            await self.commit(db)
        logger.info("Stock incrementado para producto %s: +%s -> %s", id, cantidad, nuevo_stock)
        return nuevo_stock

    async def set_stock(self, db: AsyncSession, id: int, cantidad: int, commit: bool = False) -> int:
        if cantidad < 0:
            raise ValueError("El stock no puede ser negativo")
        stmt = (
            update(productos_table)
            .where(productos_table.c.id == id)
            .values(stock=cantidad)
            .returning(productos_table.c.stock)
        )
        nuevo_stock = (await db.execute(stmt)).scalar_one_or_none()
        if nuevo_stock is None:
            raise NotFound("Producto not found")
        if commit:
            await self.commit(db)
        logger.info("Stock fijado para producto %s: %s", id, nuevo_stock)
        return nuevo_stock

    async def _stock_actual(self, db: AsyncSession, id: int):
        result = await db.execute(
            select(productos_table.c.nombre, productos_table.c.stock).where(productos_table.c.id == id)
        )
        return result.first()

    # ------------------------------------------------------------------

    async def hard_delete(self, db: AsyncSession, id: int) -> None:
        result = await db.execute(
            select(DetallePedido.id).where(DetallePedido.producto_id == id).limit(1)
        )
        if result.first() is not None:
            raise RecordInUse("Producto is referenced by pedidos and cannot be deleted")
        await super().hard_delete(db, id)

    async def get_statistics(self, db: AsyncSession, low_stock_threshold: int = 10) -> Dict:
        total = await self.count(db)
        activos = await self.count(db, Producto.activo.is_(True))
        bajo_stock = await self.count(
            db, Producto.stock <= low_stock_threshold, Producto.activo.is_(True)
        )

        result = await db.execute(
            select(Producto.categoria, func.count(Producto.id))
            .where(Producto.activo.is_(True))
            .group_by(Producto.categoria)
        )
        categorias = {categoria: cantidad for categoria, cantidad in result.all()}

        valor = await db.execute(
            select(func.sum(Producto.precio * Producto.stock)).where(Producto.activo.is_(True))
        )
        valor_total = _to_decimal(valor.scalar())

        return {
            "total": total,
            "activos": activos,
            "inactivos": total - activos,
            "bajo_stock": bajo_stock,
            "categorias": categorias,
            "valor_total": valor_total,
        }


def _validar_cantidad(cantidad: int) -> None:
    if cantidad <= 0:
        raise ValueError("La cantidad debe ser mayor que cero")


def _to_decimal(value) -> Decimal:
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(Decimal("0.01"))
