# ventas/dao/cliente.py - Acceso a datos de clientes

from datetime import datetime, timedelta, timezone
from typing import Dict, List

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..constants import TipoDocumento
from ..exceptions import RecordInUse
from ..models import Cliente, Pedido
from .base import BaseDAO


class ClienteDAO(BaseDAO):
    model = Cliente
    entity_name = "Cliente"
    unique_fields = ("documento", "email")
    search_fields = ("nombre", "email", "documento")
    default_order = ("nombre",)

    async def find_by_document(self, db: AsyncSession, documento: str):
        return await self.find_one_by(db, documento=documento)

    async def find_by_email(self, db: AsyncSession, email: str):
        return await self.find_one_by(db, email=email)

    async def find_active_by_id(self, db: AsyncSession, id: int):
        cliente = await self.find_by_id(db, id)
        if cliente is None or not cliente.activo:
            return None
        return cliente

    async def find_by_document_type(self, db: AsyncSession, tipo_documento: TipoDocumento,
                                    activo: bool = True) -> List[Cliente]:
        result = await db.execute(
            select(Cliente)
            .where(Cliente.tipo_documento == tipo_documento, Cliente.activo.is_(activo))
            .order_by(Cliente.nombre)
        )
        return list(result.scalars().all())

    async def find_recent(self, db: AsyncSession, days: int = 30, limit: int = 10) -> List[Cliente]:
        desde = datetime.now(timezone.utc) - timedelta(days=days)
        result = await db.execute(
            select(Cliente)
            .where(Cliente.created_at >= desde)
            .order_by(Cliente.created_at.desc(), Cliente.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def count_created_per_day(self, db: AsyncSession, days: int = 30) -> Dict[str, int]:
        """Clientes nuevos por día (YYYY-MM-DD) en los últimos `days` días"""
        desde = datetime.now(timezone.utc) - timedelta(days=days)
        result = await db.execute(select(Cliente.created_at).where(Cliente.created_at >= desde))
        conteo: Dict[str, int] = {}
        for (creado,) in result.all():
            dia = creado.date().isoformat()
            conteo[dia] = conteo.get(dia, 0) + 1
        return conteo

    async def get_document_types(self, db: AsyncSession) -> List[str]:
        result = await db.execute(
            select(Cliente.tipo_documento).where(Cliente.activo.is_(True)).distinct()
        )
        return sorted(TipoDocumento(tipo).value for tipo in result.scalars().all())

    async def hard_delete(self, db: AsyncSession, id: int) -> None:
        result = await db.execute(select(Pedido.id).where(Pedido.cliente_id == id).limit(1))
        if result.first() is not None:
            raise RecordInUse("Cliente has pedidos and cannot be deleted")
        await super().hard_delete(db, id)

    async def get_statistics(self, db: AsyncSession) -> Dict:
        total = await self.count(db)
        activos = await self.count(db, Cliente.activo.is_(True))
        result = await db.execute(
            select(Cliente.tipo_documento, func.count(Cliente.id)).group_by(Cliente.tipo_documento)
        )
        tipos = {tipo.value: 0 for tipo in TipoDocumento}
        for tipo, cantidad in result.all():
            tipos[TipoDocumento(tipo).value] = cantidad
        return {
            "total": total,
            "activos": activos,
            "inactivos": total - activos,
            "tipos_documento": tipos,
        }
