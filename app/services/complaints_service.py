"""Customer complaints and their activity trail."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ValidationError
from app.database.models import Complaint
from app.repositories.complaint_repository import ComplaintActivityRepository, ComplaintRepository
from app.repositories.policy_repository import PolicyRepository
from app.repositories.user_repository import ProfileRepository
from app.schemas.complaints import ComplaintCreate, ComplaintUpdate
from app.services.reference_generator import ReferenceGenerator
from app.utils.logging import get_logger
from app.utils.serialization import row_to_dict, rows_to_dicts

LOGGER = get_logger(__name__)


def _text(value: Any) -> str:
    return "" if value is None else str(value)


class ComplaintsService:
    def __init__(self, db_session: AsyncSession):
        self.complaints = ComplaintRepository(db_session)
        self.activity = ComplaintActivityRepository(db_session)
        self.profiles = ProfileRepository(db_session)
        self.policies = PolicyRepository(db_session)
        self.references = ReferenceGenerator(db_session)

    async def _user_name(self, user_id: UUID) -> str:
        profile = await self.profiles.get_by_id(user_id)
        return profile.full_name if profile and profile.full_name else "Unknown User"

    async def create_complaint(self, data: ComplaintCreate, user_id: UUID) -> Dict[str, Any]:
        """Register a complaint for the signed-in customer.

        Returns:
            The stored complaint, including its generated complaint_reference
        """
        if not data.details or not data.details.strip():
            raise ValidationError("Please provide complaint details")

        profile = await self.profiles.get_by_id(user_id)
        if profile is None:
            raise NotFoundError("Unable to load your profile")

        program_id = None
        if data.policy_id:
            policy = await self.policies.get_by_id(data.policy_id)
            if policy is None:
                raise NotFoundError("Policy not found")
            program_id = policy.program_id

        reference = await self.references.generate(program_id, "complaint_reference")
        complaint = await self.complaints.create(
            user_id=user_id,
            policy_id=data.policy_id,
            complaint_reference=reference,
            reason=data.reason,
            details=data.details,
            complaint_type=data.complaint_type,
            customer_name=profile.full_name,
            customer_email=profile.email,
            status="open",
        )
        LOGGER.info("Complaint submitted", extra={"complaint_reference": reference})
        return row_to_dict(complaint)

    async def update_complaint(self, complaint_id: UUID, data: ComplaintUpdate, user_id: UUID) -> Dict[str, Any]:
        """Apply staff changes and log every field that actually changed."""
        complaint = await self.complaints.get_by_id(complaint_id)
        if complaint is None:
            raise NotFoundError("Complaint not found")

        changes = data.model_dump(exclude_unset=True)
        entries = self._activity_entries(complaint, changes)
        if not entries:
            return row_to_dict(complaint)

        if changes.get("response") and complaint.response_date is None:
            changes["response_date"] = datetime.now(timezone.utc)

        updated = await self.complaints.update(complaint_id, **changes)

        user_name = await self._user_name(user_id)
        for entry in entries:
            await self.activity.create(complaint_id=complaint_id, user_id=user_id, user_name=user_name, **entry)

        LOGGER.info(
            "Complaint updated",
            extra={"complaint_id": str(complaint_id), "changes": [e["action_type"] for e in entries]},
        )
        return row_to_dict(updated)

    @staticmethod
    def _activity_entries(complaint: Complaint, changes: Dict[str, Any]) -> List[Dict[str, Optional[str]]]:
        entries = []

        if "status" in changes and changes["status"] != complaint.status:
            entries.append(
                {
                    "action_type": "status_changed",
                    "action_details": f'Status changed from "{complaint.status}" to "{changes["status"]}"',
                    "field_changed": "status",
                    "old_value": _text(complaint.status),
                    "new_value": _text(changes["status"]),
                }
            )
        if "classification" in changes and changes["classification"] != complaint.classification:
            entries.append(
                {
                    "action_type": "classification_changed",
                    "action_details": f'Classification updated to "{_text(changes["classification"])}"',
                    "field_changed": "classification",
                    "old_value": _text(complaint.classification),
                    "new_value": _text(changes["classification"]),
                }
            )
        if changes.get("response") and changes["response"] != complaint.response:
            entries.append(
                {
                    "action_type": "response_added",
                    "action_details": "Customer response added",
                    "field_changed": "response",
                    "old_value": _text(complaint.response),
                    "new_value": changes["response"],
                }
            )
        if "notes" in changes and changes["notes"] != complaint.notes:
            entries.append(
                {
                    "action_type": "notes_updated",
                    "action_details": "Internal notes updated",
                    "field_changed": "notes",
                    "old_value": _text(complaint.notes),
                    "new_value": _text(changes["notes"]),
                }
            )
        if "assigned_to" in changes and changes["assigned_to"] != complaint.assigned_to:
            entries.append(
                {
                    "action_type": "assigned",
                    "action_details": f"Complaint assigned to {_text(changes['assigned_to']) or 'Unassigned'}",
                    "field_changed": "assigned_to",
                    "old_value": _text(complaint.assigned_to),
                    "new_value": _text(changes["assigned_to"]),
                }
            )
        return entries

    async def list_activity(self, complaint_id: UUID) -> List[Dict[str, Any]]:
        return rows_to_dicts(await self.activity.list_for_complaint(complaint_id))
