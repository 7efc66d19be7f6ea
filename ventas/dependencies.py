# ventas/dependencies.py - Dependencias compartidas por los endpoints

from fastapi import Request

from .dao import DAOManager, DAOs
from .services.auth_service import AuthService
from .services.encryption import HybridEncryptionService, PedidoEncryptionService
from .services.pedido_service import PedidoService


def get_daos(request: Request) -> DAOs:
    return request.app.state.daos


def get_dao_manager(request: Request) -> DAOManager:
    return request.app.state.dao_manager


def get_pedido_service(request: Request) -> PedidoService:
    return request.app.state.pedido_service


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_encryption_service(request: Request) -> HybridEncryptionService:
    return request.app.state.encryption_service


def get_pedido_encryption_service(request: Request) -> PedidoEncryptionService:
    return request.app.state.pedido_encryption_service
