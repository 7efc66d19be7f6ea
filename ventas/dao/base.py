# ventas/dao/base.py - Funcionalidad común de los DAOs

import logging
import math
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import DuplicateKey, NotFound

logger = logging.getLogger(__name__)


class Page(NamedTuple):
    """Resultado paginado de una consulta"""
    items: List[Any]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    def pagination(self) -> Dict[str, int]:
        return {
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
            "total_pages": self.total_pages,
        }


class BaseDAO:
    """
    DAO genérico sobre un modelo SQLAlchemy.

    Los DAOs no guardan estado: cada operación recibe la sesión de la
    petición. Las subclases definen `model`, `unique_fields` (campos con
    restricción de unicidad, en el orden en que se validan) y
    `search_fields` (columnas usadas por la búsqueda de texto).
    """

    model = None
    entity_name = "Registro"
    unique_fields: Tuple[str, ...] = ()
    search_fields: Tuple[str, ...] = ()
    default_order: Tuple[str, ...] = ("id",)

    # ------------------------------------------------------------------
    # Lectura
    # ------------------------------------------------------------------

    async def find_by_id(self, db: AsyncSession, id: int):
        return await db.get(self.model, id, populate_existing=True)

    async def get_or_404(self, db: AsyncSession, id: int):
        obj = await self.find_by_id(db, id)
        if obj is None:
            logger.warning("%s %s no encontrado", self.entity_name, id)
            raise NotFound(f"{self.entity_name} not found")
        return obj

    async def find_by_ids(self, db: AsyncSession, ids: Iterable[int]) -> List[Any]:
        ids = list(set(ids))
        if not ids:
            return []
        result = await db.execute(
            select(self.model)
            .where(self.model.id.in_(ids))
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def find_one_by(self, db: AsyncSession, **criteria):
        result = await db.execute(select(self.model).filter_by(**criteria))
        return result.scalars().first()

    async def exists(self, db: AsyncSession, field: str, value, exclude_id: Optional[int] = None) -> bool:
        column = getattr(self.model, field)
        stmt = select(self.model.id).where(column == value)
        if exclude_id is not None:
            stmt = stmt.where(self.model.id != exclude_id)
        result = await db.execute(stmt.limit(1))
        return result.first() is not None

    async def count(self, db: AsyncSession, *criteria) -> int:
        stmt = select(func.count(self.model.id))
        if criteria:
            stmt = stmt.where(*criteria)
        return (await db.execute(stmt)).scalar_one()

    def search_clause(self, search: str):
        term = f"%{search}%"
        return or_(*[getattr(self.model, field).ilike(term) for field in self.search_fields])

    def order_clause(self, order_by: Optional[Sequence[str]] = None):
        clauses = []
        for field in order_by or self.default_order:
            descending = field.startswith("-")
            column = getattr(self.model, field.lstrip("-"))
            clauses.append(column.desc() if descending else column.asc())
        return clauses

    async def paginate(self, db: AsyncSession, stmt, page: int = 1, limit: int = 10) -> Page:
        page = max(page, 1)
        limit = max(limit, 1)
        count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
        total = (await db.execute(count_stmt)).scalar_one()
        result = await db.execute(stmt.offset((page - 1) * limit).limit(limit))
        return Page(list(result.scalars().all()), total, page, limit)

    async def find_all(
        self,
        db: AsyncSession,
        filters: Optional[Dict[str, Any]] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
        order_by: Optional[Sequence[str]] = None,
    ) -> Page:
        """Listado con filtros de igualdad, búsqueda de texto y paginación"""
        stmt = select(self.model)
        for field, value in (filters or {}).items():
            if value is not None:
                stmt = stmt.where(getattr(self.model, field) == value)
        if search:
            stmt = stmt.where(self.search_clause(search))
        stmt = stmt.order_by(*self.order_clause(order_by))
        return await self.paginate(db, stmt, page, limit)

    # ------------------------------------------------------------------
    # Escritura
    # ------------------------------------------------------------------

    async def check_unique(self, db: AsyncSession, data: Dict[str, Any], exclude_id: Optional[int] = None) -> None:
        for field in self.unique_fields:
            value = data.get(field)
            if value is not None and await self.exists(db, field, value, exclude_id):
                raise DuplicateKey(field, value)

    async def commit(self, db: AsyncSession) -> None:
        """Confirmar la transacción traduciendo violaciones de unicidad"""
        try:
            await db.commit()
        except IntegrityError as exc:
            await db.rollback()
            logger.warning("Violación de integridad en %s: %s", self.entity_name, exc.orig)
            raise DuplicateKey(self._guess_field(exc)) from exc

    def _guess_field(self, exc: IntegrityError) -> str:
        message = str(exc.orig).lower()
        for field in self.unique_fields:
            if field in message:
                return field
        return "clave única"

    async def create(self, db: AsyncSession, data: Dict[str, Any]):
        await self.check_unique(db, data)
        obj = self.model(**data)
        db.add(obj)
        await self.commit(db)
        await db.refresh(obj)
        logger.info("%s creado: %s", self.entity_name, obj.id)
        return obj

    async def update(self, db: AsyncSession, id: int, data: Dict[str, Any]):
        obj = await self.get_or_404(db, id)
        await self.check_unique(db, data, exclude_id=id)
        for field, value in data.items():
            setattr(obj, field, value)
        await self.commit(db)
        await db.refresh(obj)
        logger.info("%s actualizado: %s", self.entity_name, obj.id)
        return obj

    async def delete(self, db: AsyncSession, id: int):
        """Baja lógica (activo = False)"""
        obj = await self.get_or_404(db, id)
        obj.activo = False
        await self.commit(db)
        await db.refresh(obj)
        logger.info("%s desactivado: %s", self.entity_name, obj.id)
        return obj

    async def hard_delete(self, db: AsyncSession, id: int) -> None:
        obj = await self.get_or_404(db, id)
        await db.delete(obj)
        await self.commit(db)
        logger.info("%s eliminado definitivamente: %s", self.entity_name, id)
