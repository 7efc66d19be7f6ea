# ventas/dao/pedido.py - Acceso a datos de pedidos y sus detalles

import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..constants import EstadoPedido
from ..models import DetallePedido, Pedido
from .base import BaseDAO, Page

logger = logging.getLogger(__name__)

CENTAVOS = Decimal("0.01")


class PedidoDAO(BaseDAO):
    model = Pedido
    entity_name = "Pedido"
    default_order = ("-fecha", "-id")

    async def create_with_detalles(
        self,
        db: AsyncSession,
        cliente_id: int,
        usuario_id: int,
        total: Decimal,
        detalles: Iterable[Dict],
        observaciones: Optional[str] = None,
        estado: EstadoPedido = EstadoPedido.PENDIENTE,
    ) -> Pedido:
        """
        Agregar el pedido y sus detalles a la transacción en curso.

        No hace commit: el llamador decide cuándo confirmar, de modo que
        pedido, detalles y ajustes de stock queden en la misma unidad.
        """
        pedido = Pedido(
            cliente_id=cliente_id,
            usuario_id=usuario_id,
            total=total,
            estado=estado,
            observaciones=observaciones,
            fecha=datetime.now(timezone.utc),
        )
        for detalle in detalles:
            pedido.detalles.append(DetallePedido(**detalle))
        db.add(pedido)
        await db.flush()
        logger.info("Pedido %s agregado con %s detalles", pedido.id, len(pedido.detalles))
        return pedido

    async def find_all_with_filters(
        self,
        db: AsyncSession,
        cliente_id: Optional[int] = None,
        usuario_id: Optional[int] = None,
        estado: Optional[EstadoPedido] = None,
        fecha_inicio: Optional[datetime] = None,
        fecha_fin: Optional[datetime] = None,
        producto_id: Optional[int] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Page:
        stmt = select(Pedido)
        if cliente_id:
            stmt = stmt.where(Pedido.cliente_id == cliente_id)
        if usuario_id:
            stmt = stmt.where(Pedido.usuario_id == usuario_id)
        if estado:
            stmt = stmt.where(Pedido.estado == estado)
        if fecha_inicio:
            stmt = stmt.where(Pedido.fecha >= fecha_inicio)
        if fecha_fin:
            stmt = stmt.where(Pedido.fecha <= fecha_fin)
        if producto_id:
            stmt = stmt.where(Pedido.id.in_(self._ids_con_producto(producto_id)))
        stmt = stmt.order_by(*self.order_clause())
        return await self.paginate(db, stmt, page, limit)

    def _ids_con_producto(self, producto_id: int):
        return select(DetallePedido.pedido_id).where(DetallePedido.producto_id == producto_id)

    async def _listar(self, db: AsyncSession, *criteria, limit: Optional[int] = None) -> List[Pedido]:
        stmt = select(Pedido).where(*criteria).order_by(*self.order_clause())
        if limit:
            stmt = stmt.limit(limit)
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def find_by_cliente(self, db: AsyncSession, cliente_id: int) -> List[Pedido]:
        return await self._listar(db, Pedido.cliente_id == cliente_id)

    async def find_by_producto(self, db: AsyncSession, producto_id: int) -> List[Pedido]:
        return await self._listar(db, Pedido.id.in_(self._ids_con_producto(producto_id)))

    async def find_by_date_range(self, db: AsyncSession, fecha_inicio: datetime, fecha_fin: datetime) -> List[Pedido]:
        return await self._listar(db, Pedido.fecha.between(fecha_inicio, fecha_fin))

    async def find_by_estado(self, db: AsyncSession, estado: EstadoPedido, page: int = 1, limit: int = 10) -> Page:
        return await self.find_all_with_filters(db, estado=estado, page=page, limit=limit)

    async def find_recent(self, db: AsyncSession, days: int = 30, limit: int = 10) -> List[Pedido]:
        desde = datetime.now(timezone.utc) - timedelta(days=days)
        return await self._listar(db, Pedido.fecha >= desde, limit=limit)

    async def set_estado(self, db: AsyncSession, pedido: Pedido, estado: EstadoPedido) -> Pedido:
        """Cambiar el estado dentro de la transacción en curso (sin commit)"""
        pedido.estado = estado
        await db.flush()
        logger.info("Pedido %s -> %s", pedido.id, EstadoPedido(estado).value)
        return pedido

    # ------------------------------------------------------------------
    # Estadísticas
    # ------------------------------------------------------------------

    async def sum_total(self, db: AsyncSession, *criteria) -> Decimal:
        stmt = select(func.sum(Pedido.total))
        if criteria:
            stmt = stmt.where(*criteria)
        return _to_decimal((await db.execute(stmt)).scalar())

    async def get_statistics(self, db: AsyncSession, recent_days: int = 30) -> Dict:
        total = await self.count(db)
        result = await db.execute(select(Pedido.estado, func.count(Pedido.id)).group_by(Pedido.estado))
        por_estado = {estado.value: 0 for estado in EstadoPedido}
        for estado, cantidad in result.all():
            por_estado[EstadoPedido(estado).value] = cantidad

        ventas_totales = await self.sum_total(db)
        promedio = (ventas_totales / total).quantize(CENTAVOS) if total else Decimal("0.00")
        desde = datetime.now(timezone.utc) - timedelta(days=recent_days)
        recientes = await self.count(db, Pedido.fecha >= desde)

        return {
            "total_pedidos": total,
            "pedidos_por_estado": por_estado,
            "ventas_totales": ventas_totales,
            "promedio_pedido": promedio,
            "pedidos_ultimo_mes": recientes,
        }

    async def get_summary(self, db: AsyncSession, now: Optional[datetime] = None) -> Dict:
        now = now or datetime.now(timezone.utc)
        hoy = now.replace(hour=0, minute=0, second=0, microsecond=0)
        inicio_semana = hoy - timedelta(days=hoy.weekday())
        inicio_mes = hoy.replace(day=1)

        return {
            "total_pedidos": await self.count(db),
            "pedidos_hoy": await self.count(db, Pedido.fecha >= hoy),
            "pedidos_esta_semana": await self.count(db, Pedido.fecha >= inicio_semana),
            "pedidos_este_mes": await self.count(db, Pedido.fecha >= inicio_mes),
            "ventas_totales": await self.sum_total(db),
            "ventas_hoy": await self.sum_total(db, Pedido.fecha >= hoy),
            "ventas_esta_semana": await self.sum_total(db, Pedido.fecha >= inicio_semana),
            "ventas_este_mes": await self.sum_total(db, Pedido.fecha >= inicio_mes),
        }

    async def find_inconsistent_totals(self, db: AsyncSession) -> List[int]:
        """Ids de pedidos cuyo total no coincide con la suma de sus detalles"""
        suma = (
            select(DetallePedido.pedido_id, func.sum(DetallePedido.subtotal).label("suma"))
            .group_by(DetallePedido.pedido_id)
            .subquery()
        )
        result = await db.execute(
            select(Pedido.id, Pedido.total, suma.c.suma)
            .join(suma, suma.c.pedido_id == Pedido.id, isouter=True)
        )
        return [
            pedido_id for pedido_id, total, suma_detalles in result.all()
            if _to_decimal(total) != _to_decimal(suma_detalles)
        ]


def _to_decimal(value) -> Decimal:
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(CENTAVOS)
