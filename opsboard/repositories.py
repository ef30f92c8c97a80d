"""
Generic async repository - the persistence interface used by every router.

Transactions belong to the session; repositories only flush so generated ids
are available and constraint violations surface inside the request.
"""
import logging
from typing import Any, Generic, List, Optional, Sequence, Type, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from opsboard.database import Base

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=Base)


class NotFoundError(Exception):
    """Raised when an entity is not found"""

    def __init__(self, label: str, entity_id: Any):
        super().__init__(f"{label} not found")
        self.label = label
        self.entity_id = entity_id


class Repository(Generic[T]):
    """CRUD operations for one mapped model"""

    def __init__(self, db: AsyncSession, model: Type[T], label: Optional[str] = None):
        self.db = db
        self.model = model
        self.label = label or model.__name__

    async def find(
        self,
        where=None,
        order_by: Sequence = (),
        skip: Optional[int] = None,
        take: Optional[int] = None,
        options: Sequence = (),
    ) -> List[T]:
        query = select(self.model)
        if where is not None:
            query = query.where(where)
        if options:
            query = query.options(*options)
        if order_by:
            query = query.order_by(*order_by)
        if skip:
            query = query.offset(skip)
        if take is not None:
            query = query.limit(take)

        result = await self.db.execute(query)
        return list(result.scalars().unique().all())

    async def count(self, where=None) -> int:
        query = select(func.count()).select_from(self.model)
        if where is not None:
            query = query.where(where)
        result = await self.db.execute(query)
        return result.scalar_one()

    async def get(self, entity_id: int, options: Sequence = ()) -> Optional[T]:
        query = select(self.model).where(self.model.id == entity_id)
        if options:
            # Reload relationships even if the instance is already in the identity map
            query = query.options(*options).execution_options(populate_existing=True)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_or_404(self, entity_id: int, options: Sequence = ()) -> T:
        entity = await self.get(entity_id, options)
        if entity is None:
            raise NotFoundError(self.label, entity_id)
        return entity

    async def create(self, **data) -> T:
        entity = self.model(**data)
        self.db.add(entity)
        await self.db.flush()
        logger.info(f"Created {self.label} #{entity.id}")
        return entity

    async def update(self, entity: T, data: dict) -> T:
        for key, value in data.items():
            setattr(entity, key, value)
        await self.db.flush()
        return entity

    async def delete(self, entity: T) -> None:
        await self.db.delete(entity)
        await self.db.flush()
        logger.info(f"Deleted {self.label} #{entity.id}")
