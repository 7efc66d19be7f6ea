# tests/test_pedido_service.py - Creación, estados y cancelación de pedidos

from decimal import Decimal

import pytest
from sqlalchemy import func, select

from ventas.constants import EstadoPedido
from ventas.exceptions import (
    AlreadyCancelled, CannotCancelDelivered, InsufficientStock, InvalidTransition, NotFound,
    VentasError
)
from ventas.models import DetallePedido
from ventas.services import PedidoService


async def _crear(service, db, datos, lineas=None):
    lineas = lineas or [(datos.auriculares_id, 2), (datos.teclado_id, 1)]
    return await service.create_pedido(db, datos.cliente_id, lineas, datos.usuario_id)


async def _avanzar(service, db, pedido_id, *estados):
    for estado in estados:
        await service.update_estado(db, pedido_id, estado)


# -------------------
# Creación
# -------------------

async def test_create_pedido_total_y_subtotales(db, service, datos):
    pedido = await _crear(service, db, datos)

    assert pedido.total == Decimal("299.98")
    assert pedido.estado == EstadoPedido.PENDIENTE
    assert sorted(d.subtotal for d in pedido.detalles) == [Decimal("120.00"), Decimal("179.98")]
    assert sum(d.subtotal for d in pedido.detalles) == pedido.total
    for detalle in pedido.detalles:
        assert detalle.subtotal == detalle.precio_unitario * detalle.cantidad


async def test_create_pedido_descuenta_stock(db, service, datos, stock_de):
    await _crear(service, db, datos)

    assert await stock_de(datos.auriculares_id) == 48
    assert await stock_de(datos.teclado_id) == 9


async def test_create_pedido_acepta_dicts_y_observaciones(db, service, datos):
    pedido = await service.create_pedido(
        db, datos.cliente_id, [{"producto_id": datos.teclado_id, "cantidad": 3}],
        datos.usuario_id, observaciones="Entregar en la tarde"
    )
    assert pedido.total == Decimal("360.00")
    assert pedido.observaciones == "Entregar en la tarde"


async def test_stock_insuficiente_no_persiste_nada(db, service, datos, stock_de, total_pedidos):
    with pytest.raises(InsufficientStock) as exc_info:
        await _crear(service, db, datos, [(datos.auriculares_id, 100)])

    assert exc_info.value.available == 50
    assert exc_info.value.required == 100
    assert "Available: 50, Required: 100" in exc_info.value.message
    assert await total_pedidos() == 0
    assert (await db.execute(select(func.count(DetallePedido.id)))).scalar_one() == 0
    assert await stock_de(datos.auriculares_id) == 50


async def test_segunda_linea_sin_stock_revierte_la_primera(db, service, datos, stock_de, total_pedidos):
    with pytest.raises(InsufficientStock):
        await _crear(service, db, datos, [(datos.auriculares_id, 5), (datos.teclado_id, 11)])

    assert await total_pedidos() == 0
    assert await stock_de(datos.auriculares_id) == 50
    assert await stock_de(datos.teclado_id) == 10


async def test_lineas_repetidas_se_validan_en_conjunto(db, service, datos, stock_de):
    with pytest.raises(InsufficientStock) as exc_info:
        await _crear(service, db, datos, [(datos.teclado_id, 6), (datos.teclado_id, 6)])

    assert exc_info.value.required == 12
    assert await stock_de(datos.teclado_id) == 10


async def test_stock_consumido_despues_de_validar(db, daos, service, datos, stock_de, total_pedidos, monkeypatch):
    """Si el stock baja entre la validación y el descuento, el pedido se revierte"""
    validar = service._validar_productos_y_stock

    async def validar_y_consumir(db_, items):
        catalogo = await validar(db_, items)
        await daos.productos.set_stock(db_, datos.auriculares_id, 1)
        return catalogo

    monkeypatch.setattr(service, "_validar_productos_y_stock", validar_y_consumir)

    with pytest.raises(InsufficientStock) as exc_info:
        await _crear(service, db, datos, [(datos.auriculares_id, 2)])

    assert exc_info.value.available == 1
    assert await total_pedidos() == 0
    assert await stock_de(datos.auriculares_id) == 50


async def test_reintento_tras_reponer_stock(db, daos, service, datos, stock_de, total_pedidos):
    with pytest.raises(InsufficientStock):
        await _crear(service, db, datos, [(datos.auriculares_id, 100)])

    await daos.productos.set_stock(db, datos.auriculares_id, 100, commit=True)
    await _crear(service, db, datos, [(datos.auriculares_id, 100)])

    assert await total_pedidos() == 1
    assert await stock_de(datos.auriculares_id) == 0


async def test_cliente_inexistente_o_inactivo(db, daos, service, datos):
    with pytest.raises(NotFound, match="Cliente not found"):
        await service.create_pedido(db, 999, [(datos.teclado_id, 1)], datos.usuario_id)

    await daos.clientes.delete(db, datos.cliente_id)
    with pytest.raises(NotFound, match="Cliente not found"):
        await _crear(service, db, datos)


async def test_usuario_inexistente(db, service, datos):
    with pytest.raises(NotFound, match="Usuario not found"):
        await service.create_pedido(db, datos.cliente_id, [(datos.teclado_id, 1)], 999)


async def test_producto_inexistente(db, service, datos, total_pedidos):
    with pytest.raises(NotFound, match="Some productos not found"):
        await _crear(service, db, datos, [(datos.teclado_id, 1), (999, 1)])
    assert await total_pedidos() == 0


async def test_pedido_sin_lineas_o_cantidad_invalida(db, service, datos):
    with pytest.raises(VentasError):
        await _crear(service, db, datos, [(datos.teclado_id, 0)])
    with pytest.raises(VentasError):
        await service.create_pedido(db, datos.cliente_id, [], datos.usuario_id)


# -------------------
# Estados
# -------------------

async def test_flujo_completo_de_estados(db, service, datos):
    pedido = await _crear(service, db, datos)
    await _avanzar(service, db, pedido.id, EstadoPedido.CONFIRMADO, EstadoPedido.ENVIADO, EstadoPedido.ENTREGADO)

    pedido = await service.get_pedido(db, pedido.id)
    assert pedido.estado == EstadoPedido.ENTREGADO


async def test_pendiente_a_entregado_es_invalido(db, service, datos):
    pedido = await _crear(service, db, datos)

    with pytest.raises(InvalidTransition) as exc_info:
        await service.update_estado(db, pedido.id, EstadoPedido.ENTREGADO)

    assert exc_info.value.from_estado == "pendiente"
    assert exc_info.value.to_estado == "entregado"
    assert (await service.get_pedido(db, pedido.id)).estado == EstadoPedido.PENDIENTE


@pytest.mark.parametrize("estado", list(EstadoPedido))
def test_auto_transiciones_fallan(estado):
    with pytest.raises(InvalidTransition):
        PedidoService.validate_estado_transition(estado, estado)


def test_estado_desconocido_es_transicion_invalida():
    with pytest.raises(InvalidTransition):
        PedidoService.validate_estado_transition(EstadoPedido.PENDIENTE, "perdido")


async def test_update_estado_a_cancelado_restaura_stock(db, service, datos, stock_de):
    pedido = await _crear(service, db, datos)
    await service.update_estado(db, pedido.id, "cancelado")

    assert await stock_de(datos.auriculares_id) == 50
    assert await stock_de(datos.teclado_id) == 10


async def test_pedido_inexistente(db, service):
    with pytest.raises(NotFound, match="Pedido not found"):
        await service.update_estado(db, 999, EstadoPedido.CONFIRMADO)
    with pytest.raises(NotFound):
        await service.cancel_pedido(db, 999)


# -------------------
# Cancelación
# -------------------

async def test_cancelar_restaura_stock(db, service, datos, stock_de):
    pedido = await _crear(service, db, datos)
    cancelado = await service.cancel_pedido(db, pedido.id)

    assert cancelado.estado == EstadoPedido.CANCELADO
    assert await stock_de(datos.auriculares_id) == 50
    assert await stock_de(datos.teclado_id) == 10


async def test_cancelar_confirmado(db, service, datos, stock_de):
    pedido = await _crear(service, db, datos)
    await _avanzar(service, db, pedido.id, EstadoPedido.CONFIRMADO)

    await service.cancel_pedido(db, pedido.id)
    assert await stock_de(datos.teclado_id) == 10


async def test_cancelar_dos_veces(db, service, datos, stock_de):
    pedido = await _crear(service, db, datos)
    await service.cancel_pedido(db, pedido.id)

    with pytest.raises(AlreadyCancelled):
        await service.cancel_pedido(db, pedido.id)
    assert await stock_de(datos.auriculares_id) == 50


async def test_cancelar_entregado(db, service, datos, stock_de):
    pedido = await _crear(service, db, datos)
    await _avanzar(service, db, pedido.id, EstadoPedido.CONFIRMADO, EstadoPedido.ENVIADO, EstadoPedido.ENTREGADO)

    with pytest.raises(CannotCancelDelivered):
        await service.cancel_pedido(db, pedido.id)
    assert await stock_de(datos.auriculares_id) == 48


async def test_cancelar_enviado_respeta_transiciones(db, service, datos, stock_de):
    pedido = await _crear(service, db, datos)
    await _avanzar(service, db, pedido.id, EstadoPedido.CONFIRMADO, EstadoPedido.ENVIADO)

    with pytest.raises(InvalidTransition):
        await service.cancel_pedido(db, pedido.id)
    assert await stock_de(datos.auriculares_id) == 48


async def test_cancelar_enviado_sin_validar_transiciones(db, daos, datos, stock_de):
    service = PedidoService(
        daos.pedidos, daos.productos, daos.clientes, daos.usuarios,
        cancel_validates_transitions=False,
    )
    pedido = await _crear(service, db, datos)
    await _avanzar(service, db, pedido.id, EstadoPedido.CONFIRMADO, EstadoPedido.ENVIADO)

    cancelado = await service.cancel_pedido(db, pedido.id)
    assert cancelado.estado == EstadoPedido.CANCELADO
    assert await stock_de(datos.auriculares_id) == 50


# -------------------
# Consultas
# -------------------

async def test_consultas_por_cliente_producto_y_estado(db, service, datos):
    primero = await _crear(service, db, datos, [(datos.auriculares_id, 1)])
    segundo = await _crear(service, db, datos, [(datos.teclado_id, 1)])
    await service.cancel_pedido(db, segundo.id)

    assert {p.id for p in await service.get_pedidos_by_cliente(db, datos.cliente_id)} == {primero.id, segundo.id}
    assert [p.id for p in await service.get_pedidos_by_producto(db, datos.auriculares_id)] == [primero.id]

    cancelados = await service.get_pedidos_by_estado(db, EstadoPedido.CANCELADO)
    assert [p.id for p in cancelados.items] == [segundo.id]

    page = await service.list_pedidos(db, estado=EstadoPedido.PENDIENTE, page=1, limit=10)
    assert page.total == 1
    assert page.pagination()["total_pages"] == 1

    with pytest.raises(NotFound):
        await service.get_pedidos_by_cliente(db, 999)
    with pytest.raises(NotFound):
        await service.get_pedidos_by_producto(db, 999)


async def test_estadisticas_y_resumen(db, service, datos):
    vacio = await service.get_statistics(db)
    assert vacio["total_pedidos"] == 0
    assert vacio["promedio_pedido"] == Decimal("0.00")
    assert set(vacio["pedidos_por_estado"]) == {e.value for e in EstadoPedido}

    await _crear(service, db, datos)
    await _crear(service, db, datos, [(datos.teclado_id, 1)])

    stats = await service.get_statistics(db)
    assert stats["total_pedidos"] == 2
    assert stats["pedidos_por_estado"]["pendiente"] == 2
    assert stats["ventas_totales"] == Decimal("419.98")
    assert stats["promedio_pedido"] == Decimal("209.99")
    assert stats["pedidos_ultimo_mes"] == 2

    resumen = await service.get_summary(db)
    assert resumen["total_pedidos"] == 2
    assert resumen["pedidos_hoy"] == 2
    assert resumen["ventas_este_mes"] == Decimal("419.98")


async def test_delete_pedido(db, service, datos, total_pedidos):
    pedido = await _crear(service, db, datos)
    await service.delete_pedido(db, pedido.id)

    assert await total_pedidos() == 0
    assert (await db.execute(select(func.count(DetallePedido.id)))).scalar_one() == 0
