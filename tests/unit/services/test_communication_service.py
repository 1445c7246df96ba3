"""Unit tests for customer emails and the communications history."""

from datetime import date, datetime, timezone
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from app.core.exceptions import NotFoundError, ValidationError
from app.database.models import CommunicationTemplate, PolicyCommunication
from app.services.communications.communication_service import (
    CommunicationService,
    fill_placeholders,
    format_date,
    portal_action_url,
    template_values,
)
from tests.factories import make_claim, make_policy


@pytest.fixture
def email_client() -> AsyncMock:
    client = AsyncMock()
    client.send.return_value = "msg-123"
    return client


@pytest.fixture
def service(email_client) -> CommunicationService:
    service = CommunicationService(MagicMock(), email_client)
    service.communications = AsyncMock()
    service.templates = AsyncMock()
    service.policies = AsyncMock()
    service.claims = AsyncMock()
    return service


class TestHelpers:
    def test_action_url_prefers_claim(self):
        claim_id, policy_id = uuid4(), uuid4()

        assert portal_action_url(policy_id, claim_id) == f"https://portal.example.com/customer/claims/{claim_id}"
        assert portal_action_url(policy_id) == "https://portal.example.com/customer/policies"
        assert portal_action_url() is None

    def test_format_date(self):
        assert format_date(date(2026, 3, 7)) == "07/03/2026"
        assert format_date(None) == ""

    def test_template_values_with_claim(self):
        policy = make_policy()
        claim = make_claim(policy)

        values = template_values(policy, claim, status="accepted")

        assert values["customer_name"] == "Anna Schmidt"
        assert values["start_date"] == "15/01/2026"
        assert values["claim_status"] == "accepted"
        assert values["submitted_date"] == "01/10/2026"

    def test_fill_placeholders_leaves_unknown_keys(self):
        text = fill_placeholders("Hi {customer_name}, ref {unknown}", {"customer_name": "Anna"})

        assert text == "Hi Anna, ref {unknown}"


class TestSendEmail:
    @pytest.mark.asyncio
    async def test_requires_recipient_and_subject(self, service, email_client):
        with pytest.raises(ValidationError):
            await service.send_email(to="", subject="Hello", html="Body")
        email_client.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_sends_branded_email_and_records_it(self, service, email_client):
        policy_id, claim_id = uuid4(), uuid4()

        result = await service.send_email(
            to="anna@example.com",
            subject="Your claim",
            html="Dear Anna,\n\nYour claim is progressing.",
            policy_id=policy_id,
            claim_id=claim_id,
        )

        assert result == {"success": True, "emailId": "msg-123", "message": "Email sent successfully"}
        to, subject, html = email_client.send.call_args.args
        assert html.startswith("<!DOCTYPE html>")
        assert f"/customer/claims/{claim_id}" in html

        record = service.communications.create.call_args.kwargs
        assert record["communication_type"] == "email"
        assert record["status"] == "sent"
        assert record["message_body"] == html

    @pytest.mark.asyncio
    async def test_no_record_without_policy(self, service):
        await service.send_email(to="anna@example.com", subject="Hello", html="Body")

        service.communications.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_record_failure_does_not_fail_send(self, service):
        service.communications.create.side_effect = OperationalError("INSERT", {}, Exception("down"))

        result = await service.send_email(to="anna@example.com", subject="Hello", html="Body", policy_id=uuid4())

        assert result["success"] is True


class TestTemplatedEmail:
    @pytest.mark.asyncio
    async def test_fills_template(self, service, email_client):
        policy = make_policy()
        template = CommunicationTemplate(
            id=uuid4(),
            type="policy",
            status="active",
            subject="Policy {policy_number}",
            message_body="Dear {customer_name}, renewal on {renewal_date}.",
            is_active=True,
        )
        service.templates.get_active.return_value = template
        service.policies.get_with_relations.return_value = policy

        result = await service.send_templated_email(policy.id, template.id)

        assert result["message"] == "Templated email sent successfully"
        to, subject, html = email_client.send.call_args.args
        assert to == "anna@example.com"
        assert subject == "Policy POL-2026-0001"
        assert "Dear Anna Schmidt, renewal on 15/01/2027." in html
        assert service.communications.create.call_args.kwargs["communication_type"] == "policy"
        service.claims.get_by_id.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_inactive_template(self, service):
        service.templates.get_active.return_value = None

        with pytest.raises(NotFoundError, match="Template not found or inactive"):
            await service.send_templated_email(uuid4(), uuid4())


class TestResendAndRegenerate:
    @pytest.mark.asyncio
    async def test_resend_sends_stored_body(self, service, email_client):
        communication = PolicyCommunication(
            id=uuid4(),
            policy=make_policy(),
            subject="Claim Approved",
            message_body="<p>stored</p>",
        )
        service.communications.get_by_id.return_value = communication

        result = await service.resend_communication(communication.id)

        email_client.send.assert_awaited_once_with("anna@example.com", "Claim Approved", "<p>stored</p>")
        assert result["message"] == 'Email "Claim Approved" resent to anna@example.com'

    @pytest.mark.asyncio
    async def test_resend_missing(self, service):
        service.communications.get_by_id.return_value = None

        with pytest.raises(NotFoundError):
            await service.resend_communication(uuid4())

    @pytest.mark.asyncio
    async def test_regenerate_counts_failures(self, service):
        first = PolicyCommunication(id=uuid4(), policy_id=uuid4(), subject="A", message_body="<p>Hello</p>")
        second = PolicyCommunication(id=uuid4(), policy_id=uuid4(), subject="B", message_body="<p>Bye</p>")
        service.communications.list_all.return_value = [first, second]
        service.communications.update.side_effect = [first, OperationalError("UPDATE", {}, Exception("down"))]

        result = await service.regenerate_communications()

        assert result["updated"] == 1
        assert result["errors"] == 1
        assert result["total"] == 2
        body = service.communications.update.call_args_list[0].kwargs["message_body"]
        assert "Hello" in body and "email-container" in body

    @pytest.mark.asyncio
    async def test_regenerate_nothing(self, service):
        service.communications.list_all.return_value = []

        result = await service.regenerate_communications()

        assert result["message"] == "No communications to regenerate"
