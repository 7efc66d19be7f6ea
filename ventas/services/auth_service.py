# ventas/services/auth_service.py - Registro, login y gestión de credenciales

import logging
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ..constants import Rol, TokenType
from ..dao import UsuarioDAO
from ..exceptions import InactiveAccount, InvalidCredentials, InvalidToken
from ..models import Usuario
from ..security import (
    create_access_token, create_token_pair, get_password_hash, verify_password, verify_token
)

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, usuario_dao: UsuarioDAO):
        self.usuario_dao = usuario_dao

    async def register(self, db: AsyncSession, nombre: str, email: str, password: str,
                       rol: Rol = Rol.VENDEDOR, activo: bool = True) -> Usuario:
        """Crear usuario con password hasheado (DuplicateKey si el email existe)"""
        user = await self.usuario_dao.create(db, {
            "nombre": nombre,
            "email": email,
            "hashed_password": get_password_hash(password),
            "rol": rol,
            "activo": activo,
        })
        logger.info("Usuario registrado: %s", user.email)
        return user

    async def authenticate(self, db: AsyncSession, email: str, password: str) -> Usuario:
        user = await self.usuario_dao.find_by_email(db, email)
        if user is None:
            logger.warning("Intento de login con email inexistente: %s", email)
            raise InvalidCredentials()
        if not verify_password(password, user.hashed_password):
            logger.warning("Password inválido para usuario: %s", email)
            raise InvalidCredentials()
        if not user.activo:
            logger.warning("Intento de login de usuario inactivo: %s", email)
            raise InactiveAccount()
        return user

    async def login(self, db: AsyncSession, email: str, password: str) -> Dict[str, Any]:
        user = await self.authenticate(db, email, password)
        tokens = create_token_pair(user)
        logger.info("Login exitoso: %s", user.email)
        return {"user": user, **tokens}

    async def refresh_access_token(self, db: AsyncSession, refresh_token: str) -> Dict[str, str]:
        payload = verify_token(refresh_token, TokenType.REFRESH)
        user = await self.usuario_dao.find_by_id(db, payload["id"])
        if user is None:
            raise InvalidToken("User not found")
        if not user.activo:
            raise InactiveAccount()
        logger.info("Access token renovado para: %s", user.email)
        return {"access_token": create_access_token(user), "token_type": "bearer"}

    async def get_user_by_id(self, db: AsyncSession, usuario_id: int) -> Optional[Usuario]:
        return await self.usuario_dao.find_by_id(db, usuario_id)

    async def update_user(self, db: AsyncSession, usuario_id: int, data: Dict[str, Any]) -> Usuario:
        data = dict(data)
        password = data.pop("password", None)
        if password:
            data["hashed_password"] = get_password_hash(password)
        return await self.usuario_dao.update(db, usuario_id, data)

    async def change_password(self, db: AsyncSession, usuario_id: int,
                              current_password: str, new_password: str) -> None:
        user = await self.usuario_dao.get_or_404(db, usuario_id)
        if not verify_password(current_password, user.hashed_password):
            raise InvalidCredentials("Password actual incorrecto")
        await self.usuario_dao.update(db, usuario_id, {"hashed_password": get_password_hash(new_password)})
        logger.info("Password cambiado para: %s", user.email)
