"""Unit tests for service requests, the staff inbox and the agent chat."""

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from app.core.exceptions import NotFoundError, RateLimitError, ValidationError
from app.database.models import ServiceRequest, ServiceRequestMessage
from app.schemas.service_requests import InboxEvent, InboxEventType, ServiceRequestCreate
from app.services.service_requests.agent_service import AGENT_TOOLS, ServiceAgentService
from app.services.service_requests.inbox_stream import InboxStream
from app.services.service_requests.service_request_service import (
    CLAIM_PENDING_INFO_STATUS,
    ServiceRequestService,
    is_overdue,
    sort_inbox,
    unread_count,
)
from tests.factories import make_policy

NOW = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)


def make_request(status: str = "open", hours_old: int = 1, **overrides) -> ServiceRequest:
    fields = {
        "id": uuid4(),
        "request_reference": f"SR-{uuid4().hex[:6]}",
        "customer_name": "Anna Schmidt",
        "customer_email": "anna@example.com",
        "reason": "Billing Issue",
        "details": "Charged twice",
        "status": status,
        "created_at": NOW - timedelta(hours=hours_old),
        "messages": [],
    }
    fields.update(overrides)
    return ServiceRequest(**fields)


class TestInboxRules:
    def test_overdue_after_48_hours_unless_closed(self):
        assert is_overdue(make_request(hours_old=49), NOW) is True
        assert is_overdue(make_request(hours_old=47), NOW) is False
        assert is_overdue(make_request("resolved", hours_old=100), NOW) is False
        assert is_overdue(make_request("closed", hours_old=100), NOW) is False

    def test_unread_ignores_agent_messages(self):
        request = make_request(
            messages=[
                ServiceRequestMessage(role="user", content="Hi", read_by_agent=False),
                ServiceRequestMessage(role="user", content="Seen", read_by_agent=True),
                ServiceRequestMessage(role="agent", content="Reply", read_by_agent=False),
            ]
        )

        assert unread_count(request) == 1

    def test_sort_order(self):
        old_pending = make_request("pending", hours_old=30)
        new_open = make_request("open", hours_old=2)
        old_open = make_request("open", hours_old=20)
        in_progress = make_request("in_progress", hours_old=50)
        resolved_early = make_request("resolved", hours_old=90, last_activity_at=NOW - timedelta(hours=80))
        resolved_late = make_request("closed", hours_old=60)

        groups = sort_inbox([old_pending, resolved_early, new_open, in_progress, old_open, resolved_late])

        assert groups["active"] == [old_open, new_open, old_pending, in_progress]
        assert groups["resolved"] == [resolved_late, resolved_early]


@pytest.fixture
def service() -> ServiceRequestService:
    service = ServiceRequestService(MagicMock())
    service.requests = AsyncMock()
    service.messages = AsyncMock()
    service.policies = AsyncMock()
    service.claims = AsyncMock()
    service.references = AsyncMock()
    service.references.generate.return_value = "SR-2610-000042"
    service.requests.create.side_effect = lambda **fields: ServiceRequest(id=uuid4(), **fields)
    return service


def request_data(**overrides) -> ServiceRequestCreate:
    fields = {
        "customer_name": "Anna Schmidt",
        "customer_email": "anna@example.com",
        "reason": "Billing Issue",
        "details": "Charged twice for October",
    }
    fields.update(overrides)
    return ServiceRequestCreate(**fields)


class TestCreateServiceRequest:
    @pytest.mark.asyncio
    async def test_requires_reason_and_details(self, service):
        with pytest.raises(ValidationError, match="Please fill in all required fields"):
            await service.create_service_request(request_data(details="  "), uuid4())

    @pytest.mark.asyncio
    async def test_unknown_policy(self, service):
        service.policies.get_by_id.return_value = None

        with pytest.raises(NotFoundError):
            await service.create_service_request(request_data(policy_id=uuid4()), uuid4())

    @pytest.mark.asyncio
    async def test_appends_notes_and_holds_claim(self, service):
        policy = make_policy(program_id=uuid4())
        claim_id = uuid4()
        service.policies.get_by_id.return_value = policy

        created = await service.create_service_request(
            request_data(policy_id=policy.id, claim_id=claim_id, agent_notes="Customer called twice"),
            uuid4(),
        )

        assert created["request_reference"] == "SR-2610-000042"
        assert created["status"] == "open"
        service.references.generate.assert_awaited_once_with(policy.program_id, "service_request_reference")
        note = service.policies.append_note.call_args.args[1]
        assert note.endswith("Service Request SR-2610-000042: Customer called twice")
        service.claims.update_status.assert_awaited_once_with(claim_id, CLAIM_PENDING_INFO_STATUS)
        service.claims.add_history.assert_awaited_once_with(
            claim_id, CLAIM_PENDING_INFO_STATUS, "Service request SR-2610-000042 raised: Billing Issue"
        )

    @pytest.mark.asyncio
    async def test_without_policy_or_claim(self, service):
        await service.create_service_request(request_data(agent_notes="ignored"), uuid4())

        service.references.generate.assert_awaited_once_with(None, "service_request_reference")
        service.policies.append_note.assert_not_awaited()
        service.claims.update_status.assert_not_awaited()


class TestMessages:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "role, content, message",
        [("user", " ", "Message content is required"), ("system", "Hi", "role must be user or agent")],
    )
    async def test_validation(self, service, role, content, message):
        with pytest.raises(ValidationError, match=message):
            await service.add_message(uuid4(), role, content)

    @pytest.mark.asyncio
    async def test_agent_message_is_read(self, service):
        request = make_request()
        service.requests.get_by_id.return_value = request
        service.messages.create.side_effect = lambda **fields: ServiceRequestMessage(id=uuid4(), **fields)

        message = await service.add_message(request.id, "agent", "We have refunded you")

        assert message["read_by_agent"] is True
        service.requests.touch.assert_awaited_once_with(request.id)

    @pytest.mark.asyncio
    async def test_missing_request(self, service):
        service.requests.get_by_id.return_value = None

        with pytest.raises(NotFoundError):
            await service.add_message(uuid4(), "user", "Hello?")

    @pytest.mark.asyncio
    async def test_inbox_counts_unread_requests(self, service):
        unread = make_request(messages=[ServiceRequestMessage(id=uuid4(), role="user", content="Hi", read_by_agent=False)])
        service.requests.list_with_messages.return_value = [unread, make_request("resolved")]

        inbox = await service.list_inbox()

        assert inbox["unread"] == 1
        assert inbox["active"][0]["unread_count"] == 1
        assert inbox["active"][0]["messages"][0]["content"] == "Hi"
        assert len(inbox["resolved"]) == 1


class TestInboxStream:
    def test_format_sse(self):
        request_id = uuid4()
        event = InboxEvent(event_type=InboxEventType.HEARTBEAT, service_request_id=request_id, data={"message": "keep-alive"})

        frame = InboxStream()._format_sse(event)

        assert frame.startswith("event: heartbeat\ndata: ")
        assert frame.endswith("\n\n")
        payload = json.loads(frame.split("data: ", 1)[1])
        assert payload["service_request_id"] == str(request_id)


class TestServiceAgent:
    @pytest.mark.asyncio
    async def test_requires_messages(self):
        with pytest.raises(ValidationError):
            await ServiceAgentService(AsyncMock()).chat([])

    @pytest.mark.asyncio
    async def test_prepends_system_prompt(self):
        client = AsyncMock()

        await ServiceAgentService(client).chat([{"role": "user", "content": "What can I sell?"}])

        messages = client.stream.call_args.args[0]
        assert messages[0]["role"] == "system"
        assert messages[1] == {"role": "user", "content": "What can I sell?"}
        assert client.stream.call_args.kwargs["tools"] is AGENT_TOOLS

    @pytest.mark.asyncio
    async def test_rate_limit_passes_through(self):
        client = AsyncMock()
        client.stream.side_effect = RateLimitError()

        with pytest.raises(RateLimitError):
            await ServiceAgentService(client).chat([{"role": "user", "content": "Hi"}])
