from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.database.models import ServiceRequest, ServiceRequestMessage
from app.repositories.base_repository import BaseRepository
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


class ServiceRequestRepository(BaseRepository[ServiceRequest]):
    def __init__(self, session: AsyncSession):
        super().__init__(session, ServiceRequest)

    async def list_with_messages(self) -> List[ServiceRequest]:
        result = await self.session.execute(
            select(ServiceRequest).options(selectinload(ServiceRequest.messages))
        )
        return list(result.scalars().all())

    async def touch(self, request_id: UUID) -> None:
        await self.update(request_id, last_activity_at=datetime.now(timezone.utc))


class ServiceRequestMessageRepository(BaseRepository[ServiceRequestMessage]):
    def __init__(self, session: AsyncSession):
        super().__init__(session, ServiceRequestMessage)

    async def list_since(self, request_id: UUID, since: Optional[datetime] = None) -> List[ServiceRequestMessage]:
        query = select(ServiceRequestMessage).where(ServiceRequestMessage.service_request_id == request_id)
        if since is not None:
            query = query.where(ServiceRequestMessage.created_at > since)
        result = await self.session.execute(query.order_by(ServiceRequestMessage.created_at))
        return list(result.scalars().all())

    async def mark_read(self, request_id: UUID) -> int:
        """Flag every customer message on the request as read by an agent."""
        try:
            result = await self.session.execute(
                update(ServiceRequestMessage)
                .where(
                    ServiceRequestMessage.service_request_id == request_id,
                    ServiceRequestMessage.role != "agent",
                    ServiceRequestMessage.read_by_agent.is_(False),
                )
                .values(read_by_agent=True)
            )
            await self.session.commit()
            return result.rowcount or 0
        except SQLAlchemyError as e:
            await self.session.rollback()
            LOGGER.error(f"Error marking messages read for {request_id}: {e}", exc_info=True)
            raise
