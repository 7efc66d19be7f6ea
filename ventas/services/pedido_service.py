# ventas/services/pedido_service.py - Flujo de pedidos: creación, estados, cancelación

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from ..constants import EstadoPedido, es_transicion_valida
from ..dao import ClienteDAO, Page, PedidoDAO, ProductoDAO, StockMode, UsuarioDAO
from ..exceptions import (
    AlreadyCancelled, CannotCancelDelivered, InsufficientStock, InvalidTransition, NotFound,
    VentasError
)
from ..models import Pedido, Producto

logger = logging.getLogger(__name__)

CENTAVOS = Decimal("0.01")


class PedidoService:
    """
    Reglas de negocio de los pedidos.

    Cada operación que escribe corre en una sola transacción de la sesión
    recibida: el pedido, sus detalles y los movimientos de stock se
    confirman juntos o se descartan juntos.
    """

    def __init__(
        self,
        pedido_dao: PedidoDAO,
        producto_dao: ProductoDAO,
        cliente_dao: ClienteDAO,
        usuario_dao: UsuarioDAO,
        cancel_validates_transitions: bool = True,
        recent_days: int = 30,
    ):
        self.pedido_dao = pedido_dao
        self.producto_dao = producto_dao
        self.cliente_dao = cliente_dao
        self.usuario_dao = usuario_dao
        self.cancel_validates_transitions = cancel_validates_transitions
        self.recent_days = recent_days

    # ------------------------------------------------------------------
    # Creación
    # ------------------------------------------------------------------

    async def create_pedido(
        self,
        db: AsyncSession,
        cliente_id: int,
        productos: Iterable[Any],
        usuario_id: int,
        observaciones: Optional[str] = None,
    ) -> Pedido:
        """
        Crear un pedido validando cliente, usuario y stock.

        `productos` es una secuencia de pares (producto_id, cantidad), o de
        objetos/dicts con esas claves. El precio unitario siempre se toma
        del producto al momento de crear el pedido.
        """
        items = _normalizar_items(productos)
        logger.info("Creando pedido: cliente=%s usuario=%s lineas=%s", cliente_id, usuario_id, len(items))

        try:
            cliente = await self.cliente_dao.find_active_by_id(db, cliente_id)
            if cliente is None:
                raise NotFound("Cliente not found")

            usuario = await self.usuario_dao.find_by_id(db, usuario_id)
            if usuario is None:
                raise NotFound("Usuario not found")

            catalogo = await self._validar_productos_y_stock(db, items)
            detalles, total = _calcular_detalles(items, catalogo)

            pedido = await self.pedido_dao.create_with_detalles(
                db,
                cliente_id=cliente_id,
                usuario_id=usuario_id,
                total=total,
                detalles=detalles,
                observaciones=observaciones,
            )

            # Descuento condicional (stock >= cantidad) en la misma transacción:
            # si otra petición consumió el stock entre la validación y este
            # punto, falla la línea y se revierte todo el pedido.
            for producto_id, cantidad in items:
                await self.producto_dao.reduce_stock(db, producto_id, cantidad, StockMode.STRICT)

            await self.pedido_dao.commit(db)
        except VentasError as exc:
            await db.rollback()
            logger.warning("Pedido rechazado (cliente=%s): %s", cliente_id, exc.message)
            raise
        except Exception:
            await db.rollback()
            logger.exception("Error creando pedido (cliente=%s)", cliente_id)
            raise

        logger.info("Pedido creado: %s total=%s", pedido.id, pedido.total)
        return pedido

    async def _validar_productos_y_stock(self, db: AsyncSession,
                                         items: List[Tuple[int, int]]) -> Dict[int, Producto]:
        ids = {producto_id for producto_id, _ in items}
        productos = await self.producto_dao.find_by_ids(db, ids)
        if len(productos) < len(ids):
            faltantes = sorted(ids - {p.id for p in productos})
            logger.warning("Productos no encontrados: %s", faltantes)
            raise NotFound("Some productos not found")

        catalogo = {producto.id: producto for producto in productos}
        requerido: Dict[int, int] = {}
        for producto_id, cantidad in items:
            requerido[producto_id] = requerido.get(producto_id, 0) + cantidad
            producto = catalogo[producto_id]
            if producto.stock < requerido[producto_id]:
                raise InsufficientStock(producto.nombre, producto.stock, requerido[producto_id])
        return catalogo

    # ------------------------------------------------------------------
    # Estados
    # ------------------------------------------------------------------

    @staticmethod
    def validate_estado_transition(actual, nuevo) -> EstadoPedido:
        try:
            destino = EstadoPedido(nuevo)
        except ValueError:
            raise InvalidTransition(actual, nuevo) from None
        if not es_transicion_valida(actual, destino):
            raise InvalidTransition(actual, destino)
        return destino

    async def update_estado(self, db: AsyncSession, pedido_id: int, estado) -> Pedido:
        logger.info("Actualizando estado del pedido %s -> %s", pedido_id, getattr(estado, "value", estado))
        pedido = await self.pedido_dao.get_or_404(db, pedido_id)
        destino = self.validate_estado_transition(pedido.estado, estado)

        if destino == EstadoPedido.CANCELADO:
            return await self._cancelar(db, pedido)

        try:
            await self.pedido_dao.set_estado(db, pedido, destino)
            await self.pedido_dao.commit(db)
        except Exception:
            await db.rollback()
            logger.exception("Error actualizando estado del pedido %s", pedido_id)
            raise
        return pedido

    async def cancel_pedido(self, db: AsyncSession, pedido_id: int) -> Pedido:
        """Cancelar el pedido y devolver al inventario las cantidades de sus líneas"""
        logger.info("Cancelando pedido %s", pedido_id)
        pedido = await self.pedido_dao.get_or_404(db, pedido_id)

        if pedido.estado == EstadoPedido.ENTREGADO:
            raise CannotCancelDelivered(pedido_id)
        if pedido.estado == EstadoPedido.CANCELADO:
            raise AlreadyCancelled(pedido_id)
        if self.cancel_validates_transitions:
            self.validate_estado_transition(pedido.estado, EstadoPedido.CANCELADO)

        return await self._cancelar(db, pedido)

    async def _cancelar(self, db: AsyncSession, pedido: Pedido) -> Pedido:
        pedido_id = pedido.id
        try:
            await self.pedido_dao.set_estado(db, pedido, EstadoPedido.CANCELADO)
            for detalle in pedido.detalles:
                await self.producto_dao.increase_stock(db, detalle.producto_id, detalle.cantidad)
            await self.pedido_dao.commit(db)
        except Exception:
            await db.rollback()
            logger.exception("Error cancelando pedido %s", pedido_id)
            raise
        logger.info("Pedido %s cancelado y stock restaurado", pedido_id)
        return pedido

    # ------------------------------------------------------------------
    # Consultas
    # ------------------------------------------------------------------

    async def get_pedido(self, db: AsyncSession, pedido_id: int) -> Pedido:
        return await self.pedido_dao.get_or_404(db, pedido_id)

    async def list_pedidos(self, db: AsyncSession, **filters) -> Page:
        page = await self.pedido_dao.find_all_with_filters(db, **filters)
        logger.info("Pedidos listados: %s de %s", len(page.items), page.total)
        return page

    async def get_pedidos_by_cliente(self, db: AsyncSession, cliente_id: int) -> List[Pedido]:
        await self.cliente_dao.get_or_404(db, cliente_id)
        return await self.pedido_dao.find_by_cliente(db, cliente_id)

    async def get_pedidos_by_producto(self, db: AsyncSession, producto_id: int) -> List[Pedido]:
        await self.producto_dao.get_or_404(db, producto_id)
        return await self.pedido_dao.find_by_producto(db, producto_id)

    async def get_pedidos_by_date_range(self, db: AsyncSession, fecha_inicio: datetime,
                                        fecha_fin: datetime) -> List[Pedido]:
        if fecha_inicio > fecha_fin:
            raise VentasError("fecha_inicio must be before fecha_fin")
        return await self.pedido_dao.find_by_date_range(db, fecha_inicio, fecha_fin)

    async def get_pedidos_by_estado(self, db: AsyncSession, estado: EstadoPedido,
                                    page: int = 1, limit: int = 10) -> Page:
        return await self.pedido_dao.find_by_estado(db, EstadoPedido(estado), page, limit)

    async def get_recent_pedidos(self, db: AsyncSession, limit: int = 10) -> List[Pedido]:
        return await self.pedido_dao.find_recent(db, self.recent_days, limit)

    async def get_statistics(self, db: AsyncSession) -> Dict[str, Any]:
        return await self.pedido_dao.get_statistics(db, self.recent_days)

    async def get_summary(self, db: AsyncSession) -> Dict[str, Any]:
        return await self.pedido_dao.get_summary(db)

    async def delete_pedido(self, db: AsyncSession, pedido_id: int) -> None:
        """Borrado físico (limpieza administrativa); no toca el inventario"""
        await self.pedido_dao.hard_delete(db, pedido_id)


def _normalizar_items(productos: Iterable[Any]) -> List[Tuple[int, int]]:
    items = []
    for item in productos:
        if isinstance(item, dict):
            producto_id, cantidad = item["producto_id"], item["cantidad"]
        elif isinstance(item, (tuple, list)):
            producto_id, cantidad = item
        else:
            producto_id, cantidad = item.producto_id, item.cantidad
        if cantidad <= 0:
            raise VentasError("La cantidad debe ser mayor que cero")
        items.append((int(producto_id), int(cantidad)))
    if not items:
        raise VentasError("El pedido debe tener al menos un producto")
    return items


def _calcular_detalles(items: List[Tuple[int, int]],
                       catalogo: Dict[int, Producto]) -> Tuple[List[Dict[str, Any]], Decimal]:
    detalles = []
    total = Decimal("0.00")
    for producto_id, cantidad in items:
        precio = Decimal(str(catalogo[producto_id].precio)).quantize(CENTAVOS)
        subtotal = (precio * cantidad).quantize(CENTAVOS)
        total += subtotal
        detalles.append({
            "producto_id": producto_id,
            "cantidad": cantidad,
            "precio_unitario": precio,
            "subtotal": subtotal,
        })
    return detalles, total
