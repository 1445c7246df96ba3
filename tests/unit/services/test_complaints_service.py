"""Unit tests for complaints and their activity trail."""

from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from app.core.exceptions import NotFoundError, ValidationError
from app.database.models import Complaint, Profile
from app.schemas.complaints import ComplaintCreate, ComplaintUpdate
from app.services.complaints_service import ComplaintsService
from tests.factories import make_policy


def make_complaint(**overrides) -> Complaint:
    fields = {
        "id": uuid4(),
        "complaint_reference": "CMP-2026-00042",
        "user_id": uuid4(),
        "reason": "claim_processing",
        "details": "My claim is taking too long",
        "status": "open",
    }
    fields.update(overrides)
    return Complaint(**fields)


@pytest.fixture
def service() -> ComplaintsService:
    service = ComplaintsService(MagicMock())
    service.complaints = AsyncMock()
    service.activity = AsyncMock()
    service.profiles = AsyncMock()
    service.policies = AsyncMock()
    service.references = AsyncMock()
    service.references.generate.return_value = "CMP-2026-00042"
    service.complaints.create.side_effect = lambda **fields: Complaint(id=uuid4(), **fields)
    return service


class TestActivityEntries:
    def test_only_changed_fields_are_logged(self):
        complaint = make_complaint(notes="old note")

        entries = ComplaintsService._activity_entries(
            complaint, {"status": "open", "classification": "regulatory", "notes": "new note"}
        )

        assert [e["action_type"] for e in entries] == ["classification_changed", "notes_updated"]
        assert entries[0]["action_details"] == 'Classification updated to "regulatory"'
        assert entries[0]["old_value"] == ""
        assert entries[1]["old_value"] == "old note"
        assert entries[1]["new_value"] == "new note"

    def test_status_and_assignment(self):
        agent_id = uuid4()

        entries = ComplaintsService._activity_entries(
            make_complaint(), {"status": "investigating", "assigned_to": agent_id}
        )

        assert entries[0]["action_details"] == 'Status changed from "open" to "investigating"'
        assert entries[1]["action_details"] == f"Complaint assigned to {agent_id}"
        assert entries[1]["new_value"] == str(agent_id)

    def test_unassigning(self):
        entries = ComplaintsService._activity_entries(make_complaint(assigned_to=uuid4()), {"assigned_to": None})

        assert entries[0]["action_details"] == "Complaint assigned to Unassigned"

    def test_empty_response_is_not_logged(self):
        assert ComplaintsService._activity_entries(make_complaint(), {"response": ""}) == []


class TestCreateComplaint:
    @pytest.mark.asyncio
    async def test_requires_details(self, service):
        with pytest.raises(ValidationError, match="Please provide complaint details"):
            await service.create_complaint(ComplaintCreate(reason="other", details=" "), uuid4())

    @pytest.mark.asyncio
    async def test_uses_policy_program_for_reference(self, service):
        user_id = uuid4()
        policy = make_policy(program_id=uuid4())
        service.profiles.get_by_id.return_value = Profile(id=user_id, email="anna@example.com", full_name="Anna Schmidt")
        service.policies.get_by_id.return_value = policy

        complaint = await service.create_complaint(
            ComplaintCreate(reason="payment_issue", details="Charged twice", policy_id=policy.id), user_id
        )

        service.references.generate.assert_awaited_once_with(policy.program_id, "complaint_reference")
        assert complaint["complaint_reference"] == "CMP-2026-00042"
        assert complaint["customer_name"] == "Anna Schmidt"
        assert complaint["status"] == "open"

    @pytest.mark.asyncio
    async def test_missing_profile(self, service):
        service.profiles.get_by_id.return_value = None

        with pytest.raises(NotFoundError, match="Unable to load your profile"):
            await service.create_complaint(ComplaintCreate(reason="other", details="Rude staff"), uuid4())


class TestUpdateComplaint:
    @pytest.mark.asyncio
    async def test_missing_complaint(self, service):
        service.complaints.get_by_id.return_value = None

        with pytest.raises(NotFoundError):
            await service.update_complaint(uuid4(), ComplaintUpdate(status="closed"), uuid4())

    @pytest.mark.asyncio
    async def test_no_changes_skips_update(self, service):
        complaint = make_complaint()
        service.complaints.get_by_id.return_value = complaint

        result = await service.update_complaint(complaint.id, ComplaintUpdate(status="open"), uuid4())

        assert result["status"] == "open"
        service.complaints.update.assert_not_awaited()
        service.activity.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_first_response_sets_response_date(self, service):
        complaint = make_complaint()
        staff_id = uuid4()
        service.complaints.get_by_id.return_value = complaint
        service.complaints.update.return_value = make_complaint(id=complaint.id, response="We apologise")
        service.profiles.get_by_id.return_value = Profile(id=staff_id, email="staff@example.com", full_name="Max Weber")

        await service.update_complaint(complaint.id, ComplaintUpdate(response="We apologise"), staff_id)

        fields = service.complaints.update.call_args.kwargs
        assert fields["response"] == "We apologise"
        assert fields["response_date"] is not None
        activity = service.activity.create.call_args.kwargs
        assert activity["action_type"] == "response_added"
        assert activity["user_name"] == "Max Weber"
