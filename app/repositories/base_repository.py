from datetime import datetime, timezone
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.utils.logging import get_logger

ModelType = TypeVar("ModelType")

LOGGER = get_logger(__name__)


class BaseRepository(Generic[ModelType]):
    """Common CRUD for one SQLAlchemy model.

    Every write commits. Database errors are logged and re-raised so the
    service layer decides how a failure surfaces.
    """

    def __init__(self, session: AsyncSession, model: Type[ModelType]):
        self.session = session
        self.model = model
        self.logger = LOGGER

    def _apply_filters(self, query, filters: Optional[Dict[str, Any]]):
        for field, value in (filters or {}).items():
            if hasattr(self.model, field):
                query = query.where(getattr(self.model, field) == value)
        return query

    async def get_by_id(self, id: UUID) -> Optional[ModelType]:
        try:
            result = await self.session.execute(select(self.model).where(self.model.id == id))
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            self.logger.error(f"Error retrieving {self.model.__name__} by ID {id}: {e}", exc_info=True)
            raise

    async def get_all(
        self,
        skip: int = 0,
        limit: int = 200,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Any = None,
    ) -> List[ModelType]:
        """Get records matching ``filters`` (field name to exact value)."""
        try:
            query = self._apply_filters(select(self.model), filters)
            if order_by is not None:
                query = query.order_by(order_by)
            result = await self.session.execute(query.offset(skip).limit(limit))
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error retrieving all {self.model.__name__}: {e}", exc_info=True)
            raise

    async def first(self, filters: Optional[Dict[str, Any]] = None, order_by: Any = None) -> Optional[ModelType]:
        records = await self.get_all(limit=1, filters=filters, order_by=order_by)
        return records[0] if records else None

    async def create(self, **kwargs) -> ModelType:
        try:
            instance = self.model(**kwargs)
            self.session.add(instance)
            await self.session.flush()
            await self.session.commit()
            return instance
        except SQLAlchemyError as e:
            await self.session.rollback()
            self.logger.error(f"Error creating {self.model.__name__}: {e}", exc_info=True)
            raise

    async def update(self, id: UUID, **kwargs) -> Optional[ModelType]:
        """Set the given fields on a record. Returns None when it does not exist."""
        try:
            instance = await self.get_by_id(id)
            if instance is None:
                return None

            for key, value in kwargs.items():
                if hasattr(instance, key):
                    setattr(instance, key, value)
            if hasattr(instance, "updated_at"):
                instance.updated_at = datetime.now(timezone.utc)

            await self.session.flush()
            await self.session.commit()
            return instance
        except SQLAlchemyError as e:
            await self.session.rollback()
            self.logger.error(f"Error updating {self.model.__name__} {id}: {e}", exc_info=True)
            raise

    async def delete(self, id: UUID) -> bool:
        try:
            instance = await self.get_by_id(id)
            if instance is None:
                return False
            await self.session.delete(instance)
            await self.session.flush()
            await self.session.commit()
            return True
        except SQLAlchemyError as e:
            await self.session.rollback()
            self.logger.error(f"Error deleting {self.model.__name__} {id}: {e}", exc_info=True)
            raise

    async def count(self, filters: Optional[Dict[str, Any]] = None) -> int:
        try:
            query = self._apply_filters(select(func.count()).select_from(self.model), filters)
            result = await self.session.execute(query)
            return result.scalar_one()
        except SQLAlchemyError as e:
            self.logger.error(f"Error counting {self.model.__name__}: {e}", exc_info=True)
            raise
