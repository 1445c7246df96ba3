"""Unit tests for the automatic claim decision."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from app.core.exceptions import AIGatewayError, EmailDeliveryError, NotFoundError, ValidationError
from app.services.claims.claim_processing_service import (
    FULFILLMENT_NOTE,
    PROCESS_CLAIM_DECISION_TOOL,
    ClaimProcessingService,
    build_decision_prompt,
    decision_email,
    process_claim_in_background,
)
from tests.factories import make_claim, make_document


@pytest.fixture
def ai_client() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def communications() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def service(ai_client, communications) -> ClaimProcessingService:
    service = ClaimProcessingService(MagicMock(), ai_client, communications)
    service.claims = AsyncMock()
    service.fulfillments = AsyncMock()
    service.documents = AsyncMock()
    return service


class TestDecisionPrompt:
    def test_lists_documents_and_analysis(self):
        claim = make_claim()
        documents = [
            make_document(claim.id, "photo", metadata_={"ai_analysis": {"assessment": "✓ Valid device photo"}}),
            make_document(claim.id, "other", "letter.pdf"),
        ]

        prompt = build_decision_prompt(claim, documents)

        assert "- Claim Number: CLM-2026-0042" in prompt
        assert "- Insured Device: Apple iPhone 15" in prompt
        assert "- Photos: Yes" in prompt
        assert "- Receipt: No" in prompt
        assert "- photo: ✓ Valid device photo" in prompt
        assert "Never reject a claim automatically" in prompt

    def test_no_analysis_section_without_metadata(self):
        claim = make_claim()

        assert "Document Analysis:" not in build_decision_prompt(claim, [make_document(claim.id)])


class TestDecisionEmail:
    def test_accepted_with_excess(self):
        email = decision_email(make_claim(), True, "All documents valid", Decimal("50.00"))

        assert email["subject"] == "Claim Approved - CLM-2026-0042"
        assert "Pay the excess amount of €50.00" in email["html"]
        assert "\n" not in email["html"]

    def test_accepted_without_excess(self):
        email = decision_email(make_claim(), True, "All documents valid", Decimal("0"))

        assert "excess" not in email["html"]
        assert "We'll begin the fulfillment process immediately" in email["html"]

    def test_referred(self):
        email = decision_email(make_claim(), False, "Receipt unreadable", Decimal("50.00"))

        assert email["subject"] == "Claim Under Review - CLM-2026-0042"
        assert "Reason: Receipt unreadable" in email["html"]


class TestProcessClaim:
    @pytest.mark.asyncio
    async def test_claim_id_required(self, service):
        with pytest.raises(ValidationError):
            await service.process_claim(None)

    @pytest.mark.asyncio
    async def test_missing_claim(self, service):
        service.claims.get_with_policy.return_value = None

        with pytest.raises(NotFoundError):
            await service.process_claim(make_claim().id)

    @pytest.mark.asyncio
    async def test_accepted_claim_waits_for_excess(self, service, ai_client, communications):
        claim = make_claim()
        service.claims.get_with_policy.return_value = claim
        service.documents.list_for_claim.return_value = []
        ai_client.call_tool.return_value = {"decision": "accepted", "reason": "Clear damage, valid receipt"}

        result = await service.process_claim(claim.id)

        assert result == {
            "success": True,
            "decision": "accepted",
            "reason": "Clear damage, valid receipt",
            "newStatus": "accepted",
        }
        assert ai_client.call_tool.call_args.args[1] is PROCESS_CLAIM_DECISION_TOOL
        service.claims.update_status.assert_awaited_once_with(
            claim.id, "accepted", decision="approved", decision_reason="Clear damage, valid receipt"
        )
        service.claims.add_history.assert_awaited_once_with(
            claim.id, "accepted", "Automatic decision: Clear damage, valid receipt"
        )
        service.fulfillments.create.assert_awaited_once_with(
            claim_id=claim.id, status="pending_excess", excess_amount=Decimal("50.00"), notes=FULFILLMENT_NOTE
        )
        email = communications.send_email.call_args.kwargs
        assert email["to"] == "anna@example.com"
        assert email["subject"] == "Claim Approved - CLM-2026-0042"
        assert email["claim_id"] == claim.id

    @pytest.mark.asyncio
    async def test_unexpected_decision_is_referred(self, service, ai_client):
        claim = make_claim()
        service.claims.get_with_policy.return_value = claim
        service.documents.list_for_claim.return_value = []
        ai_client.call_tool.return_value = {"decision": "rejected", "reason": "x" * 300}

        result = await service.process_claim(claim.id)

        assert result["decision"] == "referred"
        assert result["newStatus"] == "referred"
        assert len(result["reason"]) == 200
        assert service.claims.update_status.call_args.kwargs["decision"] == "pending_review"
        service.fulfillments.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_tool_answer(self, service, ai_client):
        claim = make_claim()
        service.claims.get_with_policy.return_value = claim
        service.documents.list_for_claim.return_value = []
        ai_client.call_tool.return_value = None

        with pytest.raises(AIGatewayError, match="No decision received from AI"):
            await service.process_claim(claim.id)
        service.claims.update_status.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_email_failure_keeps_decision(self, service, ai_client, communications):
        claim = make_claim()
        service.claims.get_with_policy.return_value = claim
        service.documents.list_for_claim.return_value = []
        ai_client.call_tool.return_value = {"decision": "referred", "reason": "Needs review"}
        communications.send_email.side_effect = EmailDeliveryError("Failed to send email: bad request")

        result = await service.process_claim(claim.id)

        assert result["success"] is True
        service.claims.update_status.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unreachable_email_provider_keeps_decision(self, service, ai_client, communications):
        claim = make_claim()
        service.claims.get_with_policy.return_value = claim
        service.documents.list_for_claim.return_value = []
        ai_client.call_tool.return_value = {"decision": "accepted", "reason": "Clear damage"}
        communications.send_email.side_effect = httpx.ConnectError("connection refused")

        result = await service.process_claim(claim.id)

        assert result == {"success": True, "decision": "accepted", "reason": "Clear damage", "newStatus": "accepted"}
        service.claims.update_status.assert_awaited_once()
        service.fulfillments.create.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_no_customer_email_skips_notification(self, service, ai_client, communications):
        claim = make_claim()
        claim.policy.customer_email = None
        service.claims.get_with_policy.return_value = claim
        service.documents.list_for_claim.return_value = []
        ai_client.call_tool.return_value = {"decision": "accepted", "reason": "Fine"}

        await service.process_claim(claim.id)

        communications.send_email.assert_not_awaited()


class TestBackgroundProcessing:
    @pytest.mark.asyncio
    async def test_runs_with_its_own_session(self):
        session_maker = MagicMock()
        process = AsyncMock(return_value={"success": True, "decision": "referred", "newStatus": "referred"})

        with patch("app.core.database.async_session_maker", session_maker), patch.object(
            ClaimProcessingService, "process_claim", process
        ):
            await process_claim_in_background(make_claim().id)

        session_maker.assert_called_once_with()
        process.assert_awaited_once()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            AIGatewayError("No decision received from AI"),
            httpx.ConnectError("connection refused"),
        ],
    )
    async def test_failures_are_logged_not_raised(self, error):
        process = AsyncMock(side_effect=error)

        with patch("app.core.database.async_session_maker", MagicMock()), patch.object(
            ClaimProcessingService, "process_claim", process
        ):
            await process_claim_in_background(make_claim().id)

        process.assert_awaited_once()
