from typing import List, Optional
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.database.models import Payment, Policy, Product, Program
from app.repositories.base_repository import BaseRepository


class PolicyRepository(BaseRepository[Policy]):
    def __init__(self, session: AsyncSession):
        super().__init__(session, Policy)

    async def get_with_relations(self, policy_id: UUID) -> Optional[Policy]:
        result = await self.session.execute(
            select(Policy)
            .options(
                selectinload(Policy.product),
                selectinload(Policy.program),
                selectinload(Policy.covered_items),
            )
            .where(Policy.id == policy_id)
        )
        return result.scalar_one_or_none()

    async def search(self, term: str, limit: int = 1) -> List[Policy]:
        """Case-insensitive contains match on number, name, email and phone."""
        pattern = f"%{term}%"
        result = await self.session.execute(
            select(Policy)
            .options(selectinload(Policy.product), selectinload(Policy.covered_items))
            .where(
                or_(
                    Policy.policy_number.ilike(pattern),
                    Policy.customer_name.ilike(pattern),
                    Policy.customer_email.ilike(pattern),
                    Policy.customer_phone.ilike(pattern),
                )
            )
            .order_by(Policy.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def append_note(self, policy_id: UUID, note: str) -> Optional[Policy]:
        policy = await self.get_by_id(policy_id)
        if policy is None:
            return None
        return await self.update(policy_id, notes=(policy.notes or "") + note)


class PaymentRepository(BaseRepository[Payment]):
    def __init__(self, session: AsyncSession):
        super().__init__(session, Payment)

    async def has_paid_payment(self, policy_id: UUID) -> bool:
        return await self.count({"policy_id": policy_id, "status": "paid"}) > 0


class ProductRepository(BaseRepository[Product]):
    def __init__(self, session: AsyncSession):
        super().__init__(session, Product)


class ProgramRepository(BaseRepository[Program]):
    def __init__(self, session: AsyncSession):
        super().__init__(session, Program)

    async def get_by_ids(self, program_ids: List[UUID]) -> List[Program]:
        if not program_ids:
            return []
        result = await self.session.execute(select(Program).where(Program.id.in_(program_ids)))
        return list(result.scalars().all())
