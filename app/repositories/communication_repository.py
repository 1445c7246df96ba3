from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database.models import CommunicationTemplate, PolicyCommunication
from app.repositories.base_repository import BaseRepository


class CommunicationRepository(BaseRepository[PolicyCommunication]):
    def __init__(self, session: AsyncSession):
        super().__init__(session, PolicyCommunication)

    async def latest_for_claim(self, claim_id: UUID, communication_type: str) -> Optional[PolicyCommunication]:
        return await self.first(
            {"claim_id": claim_id, "communication_type": communication_type},
            order_by=PolicyCommunication.sent_at.desc(),
        )

    async def list_all(self) -> List[PolicyCommunication]:
        result = await self.session.execute(select(PolicyCommunication).order_by(PolicyCommunication.sent_at))
        return list(result.scalars().all())


class TemplateRepository(BaseRepository[CommunicationTemplate]):
    def __init__(self, session: AsyncSession):
        super().__init__(session, CommunicationTemplate)

    async def get_active(self, template_id: UUID) -> Optional[CommunicationTemplate]:
        return await self.first({"id": template_id, "is_active": True})
