# ventas/auth.py - Dependencias de autenticación y roles

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from .constants import Rol, TokenType
from .dao import DAOs
from .database import get_db
from .dependencies import get_daos
from .exceptions import InactiveAccount, InvalidToken, PermissionDenied
from .models import Usuario as UsuarioModel
from .security import verify_token

# Setup de OAuth2
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login")


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
    daos: DAOs = Depends(get_daos),
) -> UsuarioModel:
    """Obtener usuario actual desde el JWT token"""
    payload = verify_token(token, TokenType.ACCESS)
    user = await daos.usuarios.find_by_id(db, payload["id"])
    if user is None:
        raise InvalidToken("User not found")
    return user


async def get_current_active_user(
    current_user: UsuarioModel = Depends(get_current_user)
) -> UsuarioModel:
    """Obtener usuario actual y verificar que esté activo"""
    if not current_user.activo:
        raise InactiveAccount()
    return current_user


def require_roles(*roles: Rol):
    """Dependency factory: el usuario actual debe tener alguno de los roles"""
    permitidos = {Rol(rol) for rol in roles}

    async def checker(current_user: UsuarioModel = Depends(get_current_active_user)) -> UsuarioModel:
        if Rol(current_user.rol) not in permitidos:
            nombres = " or ".join(rol.value.capitalize() for rol in roles)
            raise PermissionDenied(f"{nombres} access required")
        return current_user

    return checker


require_admin = require_roles(Rol.ADMIN)
require_admin_or_vendedor = require_roles(Rol.ADMIN, Rol.VENDEDOR)
