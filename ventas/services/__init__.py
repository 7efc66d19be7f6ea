# ventas/services - Lógica de negocio sobre los DAOs

from .auth_service import AuthService
from .encryption import HybridEncryptionService, PedidoEncryptionService
from .pedido_service import PedidoService

__all__ = ["AuthService", "HybridEncryptionService", "PedidoEncryptionService", "PedidoService"]
