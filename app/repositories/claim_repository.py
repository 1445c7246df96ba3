from datetime import datetime, timezone
from typing import Optional, Tuple
from uuid import UUID

from sqlalchemy import or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.database.models import Claim, ClaimFulfillment, ClaimStatusHistory, Policy
from app.repositories.base_repository import BaseRepository
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


class ClaimRepository(BaseRepository[Claim]):
    """Claims plus their status history."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Claim)

    async def get_with_policy(self, claim_id: UUID) -> Optional[Claim]:
        """Load a claim with policy, product, program and covered items."""
        try:
            query = (
                select(Claim)
                .options(
                    selectinload(Claim.policy).selectinload(Policy.product),
                    selectinload(Claim.policy).selectinload(Policy.program),
                    selectinload(Claim.policy).selectinload(Policy.covered_items),
                )
                .where(Claim.id == claim_id)
            )
            result = await self.session.execute(query)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            LOGGER.error(f"Error loading claim {claim_id}: {e}", exc_info=True)
            raise

    async def update_status(self, claim_id: UUID, status: str, **fields) -> Optional[Claim]:
        return await self.update(claim_id, status=status, **fields)

    async def add_history(self, claim_id: UUID, status: str, notes: Optional[str] = None) -> ClaimStatusHistory:
        try:
            entry = ClaimStatusHistory(claim_id=claim_id, status=status, notes=notes)
            self.session.add(entry)
            await self.session.flush()
            await self.session.commit()
            return entry
        except SQLAlchemyError as e:
            await self.session.rollback()
            LOGGER.error(f"Error writing status history for claim {claim_id}: {e}", exc_info=True)
            raise


class ClaimFulfillmentRepository(BaseRepository[ClaimFulfillment]):
    """One fulfillment row per claim."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, ClaimFulfillment)

    async def get_for_claim(self, claim_id: UUID) -> Optional[ClaimFulfillment]:
        """Latest fulfillment row for the claim."""
        return await self.first({"claim_id": claim_id}, order_by=ClaimFulfillment.created_at.desc())

    async def upsert_for_claim(self, claim_id: UUID, **fields) -> ClaimFulfillment:
        """Update the claim's fulfillment row, creating it when missing."""
        existing = await self.get_for_claim(claim_id)
        if existing is None:
            LOGGER.info("Creating fulfillment", extra={"claim_id": str(claim_id)})
            return await self.create(claim_id=claim_id, **fields)

        fields["updated_at"] = datetime.now(timezone.utc)
        return await self.update(existing.id, **fields)

    async def approve_quote(self, fulfillment_id: UUID) -> Tuple[Optional[ClaimFulfillment], bool]:
        """Approve the repair quote in a single conditional UPDATE.

        Returns:
            The current row and whether this call changed it. A row that was
            already approved, possibly by a concurrent request, is left untouched.
        """
        try:
            result = await self.session.execute(
                update(ClaimFulfillment)
                .where(
                    ClaimFulfillment.id == fulfillment_id,
                    or_(
                        ClaimFulfillment.quote_status.is_distinct_from("approved"),
                        ClaimFulfillment.status.is_distinct_from("quote_approved"),
                    ),
                )
                .values(quote_status="approved", status="quote_approved", updated_at=datetime.now(timezone.utc))
                .returning(ClaimFulfillment.id)
            )
            changed = result.scalar_one_or_none() is not None
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            LOGGER.error(f"Error approving quote for fulfillment {fulfillment_id}: {e}", exc_info=True)
            raise

        current = await self.session.scalar(
            select(ClaimFulfillment)
            .where(ClaimFulfillment.id == fulfillment_id)
            .execution_options(populate_existing=True)
        )
        return current, changed
