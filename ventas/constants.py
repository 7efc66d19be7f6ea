# ventas/constants.py - Estados, roles y transiciones válidas

from enum import Enum
from typing import Dict, FrozenSet


class EstadoPedido(str, Enum):
    PENDIENTE = "pendiente"
    CONFIRMADO = "confirmado"
    ENVIADO = "enviado"
    ENTREGADO = "entregado"
    CANCELADO = "cancelado"


class Rol(str, Enum):
    ADMIN = "admin"
    VENDEDOR = "vendedor"


class TipoDocumento(str, Enum):
    CEDULA = "cedula"
    PASAPORTE = "pasaporte"
    NIT = "nit"


class TokenType(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


# Máquina de estados del pedido
TRANSICIONES_VALIDAS: Dict[EstadoPedido, FrozenSet[EstadoPedido]] = {
    EstadoPedido.PENDIENTE: frozenset({EstadoPedido.CONFIRMADO, EstadoPedido.CANCELADO}),
    EstadoPedido.CONFIRMADO: frozenset({EstadoPedido.ENVIADO, EstadoPedido.CANCELADO}),
    EstadoPedido.ENVIADO: frozenset({EstadoPedido.ENTREGADO}),
    EstadoPedido.ENTREGADO: frozenset(),
    EstadoPedido.CANCELADO: frozenset(),
}

ESTADOS_FINALES = frozenset({EstadoPedido.ENTREGADO, EstadoPedido.CANCELADO})


def es_transicion_valida(actual: EstadoPedido, nuevo: EstadoPedido) -> bool:
    return EstadoPedido(nuevo) in TRANSICIONES_VALIDAS.get(EstadoPedido(actual), frozenset())
