"""Unit tests for claim document uploads and upload-link emails."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError

from app.core.exceptions import NotFoundError, ValidationError
from app.database.models import PolicyCommunication
from app.services.claims.claim_document_service import ClaimDocumentService, upload_link
from tests.factories import make_claim, make_document

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


@pytest.fixture
def storage() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def communications() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def service(storage, communications) -> ClaimDocumentService:
    service = ClaimDocumentService(MagicMock(), storage, AsyncMock(), communications)
    service.analyzer = AsyncMock()
    service.claims = AsyncMock()
    service.documents = AsyncMock()
    service.communication_records = AsyncMock()
    return service


def upload_kwargs(claim, **overrides):
    fields = {
        "content": PNG_BYTES,
        "file_name": "screen.png",
        "content_type": "image/png",
        "claim_id": claim.id,
        "document_type": "photo",
        "claim_number": claim.claim_number,
        "user_id": claim.user_id,
    }
    fields.update(overrides)
    return fields


class TestUpload:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "overrides, message",
        [
            ({"content": b""}, "Missing required fields"),
            ({"user_id": None}, "Missing required fields"),
            ({"content": b"0" * (10 * 1024 * 1024 + 1)}, "File exceeds 10MB limit"),
            ({"content_type": "image/gif"}, "Invalid file format"),
        ],
    )
    async def test_rejects_invalid_upload(self, service, storage, overrides, message):
        with pytest.raises(ValidationError, match=message):
            await service.upload_claim_document(**upload_kwargs(make_claim(), **overrides))
        storage.upload_file.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_photo_is_stored_and_analyzed(self, service, storage):
        claim = make_claim()
        service.claims.get_with_policy.return_value = claim
        service.analyzer.analyze.return_value = {"isValid": True, "assessment": "✓ Valid device photo"}
        service.documents.count_by_type.return_value = {"photos": 1, "receipt": 0, "other": 0}

        result = await service.upload_claim_document(**upload_kwargs(claim))

        assert result["success"] is True
        assert result["processingTriggered"] is False
        assert result["fileName"].startswith("CLM-2026-0042_photo_")
        assert result["fileName"].endswith(".png")
        assert result["filePath"] == f"claim-documents/{claim.id}/{result['fileName']}"

        storage.upload_file.assert_awaited_once()
        data_uri, document_type, device = service.analyzer.analyze.call_args.args
        assert data_uri.startswith("data:image/png;base64,")
        assert document_type == "photo"
        assert device.name == "Apple iPhone 15"

        stored = service.documents.create.call_args.kwargs
        assert stored["document_subtype"] == "other"
        assert stored["metadata_"] == {"ai_analysis": service.analyzer.analyze.return_value}

    @pytest.mark.asyncio
    async def test_pdf_receipt_is_not_analyzed_and_triggers_processing(self, service):
        claim = make_claim()
        service.documents.count_by_type.return_value = {"photos": 2, "receipt": 1, "other": 0}

        result = await service.upload_claim_document(
            **upload_kwargs(claim, file_name="receipt.pdf", content_type="application/pdf", document_type="receipt")
        )

        assert result["processingTriggered"] is True
        service.analyzer.analyze.assert_not_awaited()
        stored = service.documents.create.call_args.kwargs
        assert stored["document_subtype"] == "receipt"
        assert stored["metadata_"] is None

    @pytest.mark.asyncio
    async def test_failed_insert_removes_stored_file(self, service, storage):
        claim = make_claim()
        service.analyzer.analyze.return_value = None
        service.claims.get_with_policy.return_value = claim
        service.documents.create.side_effect = IntegrityError("INSERT", {}, Exception("fk"))

        with pytest.raises(IntegrityError):
            await service.upload_claim_document(**upload_kwargs(claim))

        bucket, paths = storage.remove_files.call_args.args
        assert paths[0].startswith(f"claim-documents/{claim.id}/")


class TestUploadDetails:
    @pytest.mark.asyncio
    async def test_missing_claim(self, service):
        service.claims.get_with_policy.return_value = None

        with pytest.raises(NotFoundError):
            await service.get_upload_details(uuid4())

    @pytest.mark.asyncio
    @pytest.mark.parametrize("hours_ago, expired", [(2, False), (49, True)])
    async def test_link_expiry(self, service, hours_ago, expired):
        claim = make_claim()
        service.claims.get_with_policy.return_value = claim
        service.communication_records.latest_for_claim.return_value = PolicyCommunication(
            sent_at=datetime.now(timezone.utc) - timedelta(hours=hours_ago)
        )
        service.documents.count_by_type.return_value = {"photos": 0, "receipt": 0, "other": 0}

        details = await service.get_upload_details(claim.id)

        assert details["isExpired"] is expired
        assert details["claim"]["policies"]["products"]["name"] == "Extended Warranty"
        assert details["coveredItem"]["product_name"] == "Apple iPhone 15"

    @pytest.mark.asyncio
    async def test_never_requested_is_not_expired(self, service):
        claim = make_claim()
        service.claims.get_with_policy.return_value = claim
        service.communication_records.latest_for_claim.return_value = None
        service.documents.count_by_type.return_value = {"photos": 0, "receipt": 0, "other": 0}

        assert (await service.get_upload_details(claim.id))["isExpired"] is False


class TestDocumentList:
    @pytest.mark.asyncio
    async def test_documents_carry_signed_preview_urls(self, service, storage):
        claim = make_claim()
        photo = make_document(claim.id)
        receipt = make_document(claim.id, document_type="receipt", file_name="receipt.pdf")
        service.documents.list_for_claim.return_value = [photo, receipt]
        storage.get_signed_url.side_effect = lambda bucket, path, expires_in: f"https://signed/{bucket}/{path}"

        documents = await service.list_claim_documents(claim.id)

        assert [d["document_type"] for d in documents] == ["photo", "receipt"]
        assert documents[1]["previewUrl"] == f"https://signed/claim-documents/{claim.id}/receipt.pdf"
        storage.get_signed_url.assert_any_await("claim-documents", photo.file_path, expires_in=3600)


class TestDocumentRequest:
    @pytest.mark.asyncio
    async def test_sends_upload_link(self, service, communications):
        claim = make_claim()
        service.claims.get_with_policy.return_value = claim
        communications.send_email.return_value = {"success": True, "emailId": "msg-1"}

        result = await service.send_document_request(claim.id)

        assert result == {"success": True, "emailId": "msg-1"}
        email = communications.send_email.call_args.kwargs
        assert email["subject"] == "Action Required: Upload Documents for Claim CLM-2026-0042"
        assert email["communication_type"] == "claim"
        assert email["action_url"] == upload_link(claim.id)
        assert "POL-2026-0001" in email["html"]
        assert "48 hours" in email["html"]

    @pytest.mark.asyncio
    async def test_requires_customer_email(self, service, communications):
        claim = make_claim()
        claim.policy.customer_email = None
        service.claims.get_with_policy.return_value = claim

        with pytest.raises(ValidationError):
            await service.send_document_request(claim.id)
        communications.send_email.assert_not_awaited()
