# ventas/exceptions.py - Errores de dominio
#
# Los servicios y DAOs lanzan estas excepciones; la capa HTTP (main.py) las
# traduce a respuestas con el status_code de cada clase.

from typing import Optional


class VentasError(Exception):
    """Error base de la aplicación"""
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(VentasError):
    """Cliente, usuario, producto o pedido inexistente"""
    status_code = 404


class InsufficientStock(VentasError):
    """No hay stock suficiente para una línea del pedido"""

    def __init__(self, producto: str, available: int, required: int):
        super().__init__(
            f"Insufficient stock for producto {producto}. "
            f"Available: {available}, Required: {required}"
        )
        self.producto = producto
        self.available = available
        self.required = required


class InvalidTransition(VentasError):
    """Transición de estado no permitida"""

    def __init__(self, from_estado: str, to_estado: str):
        from_value = getattr(from_estado, "value", from_estado)
        to_value = getattr(to_estado, "value", to_estado)
        super().__init__(f"Invalid estado transition from {from_value} to {to_value}")
        self.from_estado = from_value
        self.to_estado = to_value


class AlreadyCancelled(VentasError):
    def __init__(self, pedido_id: Optional[int] = None):
        super().__init__("Pedido is already cancelled")
        self.pedido_id = pedido_id


class CannotCancelDelivered(VentasError):
    def __init__(self, pedido_id: Optional[int] = None):
        super().__init__("Cannot cancel delivered pedido")
        self.pedido_id = pedido_id


class InvalidToken(VentasError):
    status_code = 401

    def __init__(self, message: str = "Invalid token"):
        super().__init__(message)


class InvalidCredentials(VentasError):
    status_code = 401

    def __init__(self, message: str = "Email o password incorrectos"):
        super().__init__(message)


class InactiveAccount(VentasError):
    status_code = 403

    def __init__(self, message: str = "Usuario inactivo"):
        super().__init__(message)


class PermissionDenied(VentasError):
    status_code = 403


class DuplicateKey(VentasError):
    """Violación de unicidad (email, documento, código)"""
    status_code = 409

    def __init__(self, field: str, value=None):
        detail = f"Ya existe un registro con {field}"
        if value is not None:
            detail = f"{detail} '{value}'"
        super().__init__(detail)
        self.field = field
        self.value = value


class EncryptionError(VentasError):
    pass


class RecordInUse(VentasError):
    """El registro está referenciado por pedidos y no se puede eliminar"""
    status_code = 409
