"""Service requests raised by agents and the staff inbox."""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ValidationError
from app.database.models import ServiceRequest
from app.repositories.claim_repository import ClaimRepository
from app.repositories.policy_repository import PolicyRepository
from app.repositories.service_request_repository import (
    ServiceRequestMessageRepository,
    ServiceRequestRepository,
)
from app.schemas.service_requests import ServiceRequestCreate
from app.services.reference_generator import ReferenceGenerator
from app.utils.logging import get_logger
from app.utils.serialization import row_to_dict

LOGGER = get_logger(__name__)

OVERDUE_AFTER = timedelta(hours=48)

CLOSED_STATUSES = ("resolved", "closed")

_STATUS_PRIORITY = {"open": 1, "pending": 2}

CLAIM_PENDING_INFO_STATUS = "referred_pending_info"


def is_overdue(request: ServiceRequest, now: Optional[datetime] = None) -> bool:
    now = now or datetime.now(timezone.utc)
    return request.status not in CLOSED_STATUSES and now - request.created_at > OVERDUE_AFTER


def unread_count(request: ServiceRequest) -> int:
    return sum(1 for m in request.messages if not m.read_by_agent and m.role != "agent")


def _activity(request: ServiceRequest) -> datetime:
    return request.last_activity_at or request.created_at


def sort_inbox(requests: List[ServiceRequest]) -> Dict[str, List[ServiceRequest]]:
    """Split requests into active and resolved in inbox order.

    Active requests come open first, then pending, then the rest, oldest
    first within each group. Resolved requests come newest activity first.
    """
    active = [r for r in requests if r.status not in CLOSED_STATUSES]
    resolved = [r for r in requests if r.status in CLOSED_STATUSES]
    active.sort(key=lambda r: (_STATUS_PRIORITY.get(r.status, 3), r.created_at))
    resolved.sort(key=_activity, reverse=True)
    return {"active": active, "resolved": resolved}


def _inbox_entry(request: ServiceRequest, now: datetime) -> Dict[str, Any]:
    entry = row_to_dict(request, include=("messages",))
    entry["unread_count"] = unread_count(request)
    entry["isOverdue"] = is_overdue(request, now)
    return entry


class ServiceRequestService:
    def __init__(self, db_session: AsyncSession):
        self.requests = ServiceRequestRepository(db_session)
        self.messages = ServiceRequestMessageRepository(db_session)
        self.policies = PolicyRepository(db_session)
        self.claims = ClaimRepository(db_session)
        self.references = ReferenceGenerator(db_session)

    async def create_service_request(self, data: ServiceRequestCreate, created_by: UUID) -> Dict[str, Any]:
        """Open a service request.

        The agent's notes are appended to the policy notes. A request raised
        against a claim puts the claim on hold for the missing information.
        """
        if not data.reason.strip() or not data.details.strip():
            raise ValidationError("Please fill in all required fields")

        policy = await self.policies.get_by_id(data.policy_id) if data.policy_id else None
        if data.policy_id and policy is None:
            raise NotFoundError("Policy not found")

        reference = await self.references.generate(
            policy.program_id if policy else None,
            "service_request_reference",
        )
        request = await self.requests.create(
            request_reference=reference,
            policy_id=data.policy_id,
            claim_id=data.claim_id,
            customer_name=data.customer_name,
            customer_email=data.customer_email,
            reason=data.reason,
            department=data.department,
            details=data.details,
            status="open",
            created_by=created_by,
        )

        if policy is not None and data.agent_notes:
            note = f"\n[{datetime.now().strftime('%d/%m/%Y')}] Service Request {reference}: {data.agent_notes}"
            await self.policies.append_note(policy.id, note)

        if data.claim_id:
            await self.claims.update_status(data.claim_id, CLAIM_PENDING_INFO_STATUS)
            await self.claims.add_history(
                data.claim_id,
                CLAIM_PENDING_INFO_STATUS,
                f"Service request {reference} raised: {data.reason}",
            )

        LOGGER.info(
            "Service request created",
            extra={"request_reference": reference, "policy_id": str(data.policy_id), "claim_id": str(data.claim_id)},
        )
        return row_to_dict(request)

    async def add_message(self, request_id: UUID, role: str, content: str) -> Dict[str, Any]:
        if not content or not content.strip():
            raise ValidationError("Message content is required")
        if role not in ("user", "agent"):
            raise ValidationError("role must be user or agent")

        request = await self.requests.get_by_id(request_id)
        if request is None:
            raise NotFoundError("Service request not found")

        message = await self.messages.create(
            service_request_id=request_id,
            role=role,
            content=content,
            read_by_agent=role == "agent",
        )
        await self.requests.touch(request_id)
        return row_to_dict(message)

    async def mark_read(self, request_id: UUID) -> Dict[str, Any]:
        marked = await self.messages.mark_read(request_id)
        return {"success": True, "marked": marked}

    async def list_inbox(self) -> Dict[str, Any]:
        """Inbox view with unread counts and overdue flags."""
        now = datetime.now(timezone.utc)
        groups = sort_inbox(await self.requests.list_with_messages())
        active = [_inbox_entry(r, now) for r in groups["active"]]
        resolved = [_inbox_entry(r, now) for r in groups["resolved"]]
        return {
            "active": active,
            "resolved": resolved,
            "unread": sum(1 for r in active + resolved if r["unread_count"] > 0),
        }
