from typing import List
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database.models import Complaint, ComplaintActivityLog
from app.repositories.base_repository import BaseRepository


class ComplaintRepository(BaseRepository[Complaint]):
    def __init__(self, session: AsyncSession):
        super().__init__(session, Complaint)


class ComplaintActivityRepository(BaseRepository[ComplaintActivityLog]):
    def __init__(self, session: AsyncSession):
        super().__init__(session, ComplaintActivityLog)

    async def list_for_complaint(self, complaint_id: UUID) -> List[ComplaintActivityLog]:
        result = await self.session.execute(
            select(ComplaintActivityLog)
            .where(ComplaintActivityLog.complaint_id == complaint_id)
            .order_by(ComplaintActivityLog.created_at)
        )
        return list(result.scalars().all())
