from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.database.models import Device, FulfillmentAssignment, Repairer
from app.repositories.base_repository import BaseRepository
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


class RepairerRepository(BaseRepository[Repairer]):
    def __init__(self, session: AsyncSession):
        super().__init__(session, Repairer)

    async def list_active_with_slas(self) -> List[Repairer]:
        try:
            result = await self.session.execute(
                select(Repairer)
                .options(selectinload(Repairer.slas))
                .where(Repairer.is_active.is_(True))
                .order_by(Repairer.name)
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            LOGGER.error(f"Error loading active repairers: {e}", exc_info=True)
            raise


class FulfillmentAssignmentRepository(BaseRepository[FulfillmentAssignment]):
    def __init__(self, session: AsyncSession):
        super().__init__(session, FulfillmentAssignment)

    async def list_with_repairers(self) -> List[FulfillmentAssignment]:
        result = await self.session.execute(
            select(FulfillmentAssignment)
            .options(selectinload(FulfillmentAssignment.repairer))
            .order_by(FulfillmentAssignment.created_at.desc())
        )
        return list(result.scalars().all())


class DeviceRepository(BaseRepository[Device]):
    def __init__(self, session: AsyncSession):
        super().__init__(session, Device)

    async def find_by_model_name(self, name: str) -> Optional[Device]:
        """First catalogue device whose model name contains ``name``, ignoring case."""
        if not name:
            return None
        result = await self.session.execute(select(Device).where(Device.model_name.ilike(f"%{name}%")).limit(1))
        return result.scalar_one_or_none()

    async def find_by_manufacturer_model(self, manufacturer: str, model_name: str) -> Optional[Device]:
        result = await self.session.execute(
            select(Device)
            .where(Device.manufacturer == manufacturer, Device.model_name == model_name)
            .limit(1)
        )
        return result.scalar_one_or_none()
