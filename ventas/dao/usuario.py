# ventas/dao/usuario.py - Acceso a datos de usuarios

from typing import Dict

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..constants import Rol
from ..exceptions import RecordInUse
from ..models import Pedido, Usuario
from .base import BaseDAO


class UsuarioDAO(BaseDAO):
    model = Usuario
    entity_name = "Usuario"
    unique_fields = ("email",)
    search_fields = ("nombre", "email")
    default_order = ("nombre",)

    async def find_by_email(self, db: AsyncSession, email: str):
        return await self.find_one_by(db, email=email)

    async def find_active_by_email(self, db: AsyncSession, email: str):
        return await self.find_one_by(db, email=email, activo=True)

    async def email_exists(self, db: AsyncSession, email: str, exclude_id=None) -> bool:
        return await self.exists(db, "email", email, exclude_id)

    async def hard_delete(self, db: AsyncSession, id: int) -> None:
        if await self._tiene_pedidos(db, id):
            raise RecordInUse("Usuario has pedidos and cannot be deleted")
        await super().hard_delete(db, id)

    async def _tiene_pedidos(self, db: AsyncSession, id: int) -> bool:
        result = await db.execute(select(Pedido.id).where(Pedido.usuario_id == id).limit(1))
        return result.first() is not None

    async def get_statistics(self, db: AsyncSession) -> Dict:
        total = await self.count(db)
        activos = await self.count(db, Usuario.activo.is_(True))
        result = await db.execute(
            select(Usuario.rol, func.count(Usuario.id)).group_by(Usuario.rol)
        )
        por_rol = {rol.value: 0 for rol in Rol}
        for rol, cantidad in result.all():
            por_rol[Rol(rol).value] = cantidad
        return {
            "total": total,
            "activos": activos,
            "inactivos": total - activos,
            "por_rol": por_rol,
        }
