"""Tests for API endpoints."""

from unittest.mock import AsyncMock, patch
from uuid import uuid4

import httpx
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from app.core.ai_gateway import AIGatewayClient
from app.core.dependencies import (
    get_ai_client,
    get_claim_document_service,
    get_claim_processing_service,
    get_complaints_service,
    get_fulfillment_service,
    get_reanalysis_service,
    get_service_agent,
    get_service_request_service,
)
from app.core.exceptions import NotFoundError, RateLimitError, ValidationError
from app.main import app
from tests.conftest import TEST_USER_ID
from tests.factories import make_fulfillment


class TestPublicEndpoints:
    def test_root(self, test_client: TestClient) -> None:
        response = test_client.get("/")

        assert response.status_code == 200
        assert response.json()["health"] == "/health"
        assert "X-Correlation-ID" in response.headers

    def test_health_degraded_without_database(self, test_client: TestClient) -> None:
        health_check = AsyncMock(return_value={"status": "unhealthy", "connected": False})

        with patch("app.api.v1.endpoints.health.db_client.health_check", health_check):
            response = test_client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "degraded"

    def test_correlation_id_is_echoed(self, test_client: TestClient) -> None:
        health_check = AsyncMock(return_value={"status": "healthy"})

        with patch("app.api.v1.endpoints.health.db_client.health_check", health_check):
            response = test_client.get("/health", headers={"X-Correlation-ID": "corr-42"})

        assert response.headers["X-Correlation-ID"] == "corr-42"

    def test_upload_details_need_no_token(self, test_client: TestClient) -> None:
        claim_id = uuid4()
        mock_service = AsyncMock()
        mock_service.get_upload_details.return_value = {"claim": {"id": str(claim_id)}, "isExpired": False}
        app.dependency_overrides[get_claim_document_service] = lambda: mock_service

        response = test_client.get(f"/api/v1/claim-uploads/{claim_id}", headers={"X-Correlation-ID": "corr-1"})

        assert response.status_code == 200
        body = response.json()
        assert body["status"] is True
        assert body["data"]["isExpired"] is False
        assert body["meta"]["request_id"] == "corr-1"
        mock_service.get_upload_details.assert_awaited_once_with(claim_id)


class TestAuthentication:
    def test_missing_token(self, test_client: TestClient) -> None:
        response = test_client.post("/api/v1/claims/process", json={"claimId": str(uuid4())})

        assert response.status_code == 401
        assert response.json() == {"detail": "Authorization header missing"}
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_wrong_scheme(self, test_client: TestClient) -> None:
        response = test_client.get("/api/v1/service-requests/inbox", headers={"Authorization": "Basic abc"})

        assert response.status_code == 401

    def test_wrong_role(self, test_client: TestClient, auth_headers, as_role) -> None:
        as_role("customer")

        response = test_client.post(
            "/api/v1/claims/process", json={"claimId": str(uuid4())}, headers=auth_headers
        )

        assert response.status_code == 403
        assert "Insufficient permissions" in response.json()["detail"]


class TestClaimEndpoints:
    def test_process_claim(self, test_client: TestClient, auth_headers, as_role) -> None:
        as_role("claims_agent")
        claim_id = uuid4()
        mock_service = AsyncMock()
        mock_service.process_claim.return_value = {
            "success": True,
            "decision": "accepted",
            "reason": "Valid",
            "newStatus": "accepted",
        }
        app.dependency_overrides[get_claim_processing_service] = lambda: mock_service

        response = test_client.post("/api/v1/claims/process", json={"claimId": str(claim_id)}, headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["data"]["newStatus"] == "accepted"
        mock_service.process_claim.assert_awaited_once_with(claim_id)

    def test_app_error_shape(self, test_client: TestClient, auth_headers, as_role) -> None:
        as_role("admin")
        mock_service = AsyncMock()
        mock_service.process_claim.side_effect = NotFoundError("Claim not found")
        app.dependency_overrides[get_claim_processing_service] = lambda: mock_service

        response = test_client.post(
            "/api/v1/claims/process",
            json={"claimId": str(uuid4())},
            headers={**auth_headers, "X-Correlation-ID": "corr-404"},
        )

        assert response.status_code == 404
        body = response.json()
        assert body["error"] == "Claim not found"
        assert body["detail"]["title"] == "NotFoundError"
        assert body["detail"]["instance"] == "/api/v1/claims/process"
        assert body["detail"]["request_id"] == "corr-404"

    def test_documents_list(self, test_client: TestClient, auth_headers, as_role) -> None:
        as_role("backoffice_agent")
        claim_id = uuid4()
        mock_service = AsyncMock()
        mock_service.list_claim_documents.return_value = [{"file_name": "photo.jpg", "previewUrl": "https://signed"}]
        app.dependency_overrides[get_claim_document_service] = lambda: mock_service

        response = test_client.get(f"/api/v1/claims/{claim_id}/documents", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["data"]["documents"][0]["previewUrl"] == "https://signed"
        mock_service.list_claim_documents.assert_awaited_once_with(claim_id)

    def test_reanalyze(self, test_client: TestClient, auth_headers, as_role) -> None:
        as_role("claims_agent")
        claim_id = uuid4()
        mock_service = AsyncMock()
        mock_service.reanalyze_claim_documents.return_value = {"success": True, "totalProcessed": 2, "skipped": 1}
        app.dependency_overrides[get_reanalysis_service] = lambda: mock_service

        response = test_client.post("/api/v1/claims/reanalyze", json={"claimId": str(claim_id)}, headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["message"] == "Documents re-analyzed"
        mock_service.reanalyze_claim_documents.assert_awaited_once_with(claim_id)

    def test_reanalyze_without_claim_id(self, test_client: TestClient, auth_headers, as_role) -> None:
        as_role("claims_agent")
        mock_service = AsyncMock()
        mock_service.reanalyze_claim_documents.side_effect = ValidationError("Missing claimId")
        app.dependency_overrides[get_reanalysis_service] = lambda: mock_service

        response = test_client.post("/api/v1/claims/reanalyze", json={}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["error"] == "Missing claimId"
        mock_service.reanalyze_claim_documents.assert_awaited_once_with(None)

    def test_upload_schedules_processing(self, test_client: TestClient) -> None:
        claim_id = uuid4()
        mock_service = AsyncMock()
        mock_service.upload_claim_document.return_value = {
            "success": True,
            "fileName": "CLM-1_receipt_1.jpg",
            "filePath": f"claim-documents/{claim_id}/CLM-1_receipt_1.jpg",
            "processingTriggered": True,
        }
        app.dependency_overrides[get_claim_document_service] = lambda: mock_service

        with patch("app.api.v1.endpoints.claim_uploads.process_claim_in_background") as background:
            response = test_client.post(
                f"/api/v1/claim-uploads/{claim_id}/documents",
                files={"file": ("receipt.jpg", b"\xff\xd8\xff\xe0jpeg", "image/jpeg")},
                data={"documentType": "receipt", "claimNumber": "CLM-1", "userId": TEST_USER_ID},
            )

        assert response.status_code == 201
        assert response.json()["message"] == "File uploaded successfully"
        upload = mock_service.upload_claim_document.call_args.kwargs
        assert upload["content"] == b"\xff\xd8\xff\xe0jpeg"
        assert upload["content_type"] == "image/jpeg"
        assert upload["document_type"] == "receipt"
        background.assert_called_once_with(claim_id)

    def test_upload_validation_error(self, test_client: TestClient) -> None:
        mock_service = AsyncMock()
        mock_service.upload_claim_document.side_effect = ValidationError("File exceeds 10MB limit")
        app.dependency_overrides[get_claim_document_service] = lambda: mock_service

        response = test_client.post(
            f"/api/v1/claim-uploads/{uuid4()}/documents",
            files={"file": ("big.png", b"png", "image/png")},
            data={"documentType": "photo", "claimNumber": "CLM-1"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "File exceeds 10MB limit"


class TestFulfillmentEndpoints:
    def test_availability(self, test_client: TestClient, auth_headers) -> None:
        response = test_client.get(
            "/api/v1/fulfillment/availability",
            params={"repairerId": "repairer-1", "date": "2026-10-20"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert isinstance(data["unavailableDates"], list)
        assert set(data["availableSlots"]) <= {
            "09:00 - 11:00",
            "11:00 - 13:00",
            "13:00 - 15:00",
            "15:00 - 17:00",
            "17:00 - 19:00",
        }

    def test_excess_payment(self, test_client: TestClient, auth_headers) -> None:
        claim_id = uuid4()
        mock_service = AsyncMock()
        mock_service.pay_excess.return_value = make_fulfillment(claim_id, fulfillment_type="collection_repair")
        app.dependency_overrides[get_fulfillment_service] = lambda: mock_service

        response = test_client.post(
            f"/api/v1/fulfillment/{claim_id}/excess-payment",
            json={"usePaymentOnFile": True},
            headers=auth_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Excess payment processed successfully"
        assert body["data"]["fulfillment"]["fulfillment_type"] == "collection_repair"
        assert body["data"]["fulfillment"]["excess_amount"] == 50.0


class TestServiceRequestEndpoints:
    def test_agent_chat_streams_events(self, test_client: TestClient, auth_headers) -> None:
        async def chunks():
            yield b'data: {"choices": [{"delta": {"content": "Hello"}}]}\n\n'
            yield b"data: [DONE]\n\n"

        mock_agent = AsyncMock()
        mock_agent.chat.return_value = chunks()
        app.dependency_overrides[get_service_agent] = lambda: mock_agent

        response = test_client.post(
            "/api/v1/service-requests/agent/chat",
            json={"messages": [{"role": "user", "content": "What can I sell?"}]},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["x-accel-buffering"] == "no"
        assert "data: [DONE]" in response.text

    def test_agent_chat_rate_limited(self, test_client: TestClient, auth_headers) -> None:
        mock_agent = AsyncMock()
        mock_agent.chat.side_effect = RateLimitError()
        app.dependency_overrides[get_service_agent] = lambda: mock_agent

        response = test_client.post(
            "/api/v1/service-requests/agent/chat",
            json={"messages": [{"role": "user", "content": "Hi"}]},
            headers=auth_headers,
        )

        assert response.status_code == 429
        assert response.json()["error"] == "Rate limits exceeded, please try again later."

    def test_create_service_request(self, test_client: TestClient, auth_headers, as_role) -> None:
        as_role("retail_agent")
        mock_service = AsyncMock()
        mock_service.create_service_request.return_value = {"request_reference": "SR-1", "status": "open"}
        app.dependency_overrides[get_service_request_service] = lambda: mock_service

        response = test_client.post(
            "/api/v1/service-requests",
            json={
                "customer_name": "Anna Schmidt",
                "customer_email": "anna@example.com",
                "reason": "Billing Issue",
                "details": "Charged twice",
            },
            headers=auth_headers,
        )

        assert response.status_code == 201
        assert response.json()["data"]["request_reference"] == "SR-1"
        created_by = mock_service.create_service_request.call_args.args[1]
        assert str(created_by) == TEST_USER_ID

    def test_invalid_email_is_rejected(self, test_client: TestClient, auth_headers, as_role) -> None:
        as_role("retail_agent")
        app.dependency_overrides[get_service_request_service] = lambda: AsyncMock()

        response = test_client.post(
            "/api/v1/service-requests",
            json={"customer_name": "A", "customer_email": "not-an-email", "reason": "Other", "details": "x"},
            headers=auth_headers,
        )

        assert response.status_code == 422


class TestComplaintEndpoints:
    def test_activity_requires_staff(self, test_client: TestClient, auth_headers, as_role) -> None:
        as_role("customer")
        app.dependency_overrides[get_complaints_service] = lambda: AsyncMock()

        response = test_client.get(f"/api/v1/complaints/{uuid4()}/activity", headers=auth_headers)

        assert response.status_code == 403

    def test_activity(self, test_client: TestClient, auth_headers, as_role) -> None:
        as_role("complaints_agent")
        mock_service = AsyncMock()
        mock_service.list_activity.return_value = [{"action_type": "status_changed"}]
        app.dependency_overrides[get_complaints_service] = lambda: mock_service

        response = test_client.get(f"/api/v1/complaints/{uuid4()}/activity", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["data"]["activity"][0]["action_type"] == "status_changed"


class TestErrorEnvelope:
    def test_unreachable_ai_gateway(self, test_client: TestClient, auth_headers) -> None:
        gateway = AIGatewayClient(
            api_key="key",
            api_url="https://gateway.example.com/v1/chat/completions",
            model="test-model",
            max_retries=0,
            retry_delay=0,
        )
        app.dependency_overrides[get_ai_client] = lambda: gateway
        post = AsyncMock(side_effect=httpx.ConnectError("connection refused"))

        with patch("httpx.AsyncClient.post", post):
            response = test_client.post(
                "/api/v1/analysis/device",
                json={"imageBase64": "data:image/png;base64,iVBORw0KGgo="},
                headers=auth_headers,
            )

        assert response.status_code == 500
        assert response.headers["content-type"].startswith("application/json")
        body = response.json()
        assert body["error"].startswith("AI gateway request failed")
        assert body["detail"]["title"] == "AIGatewayError"

    def test_database_failure(self, test_client: TestClient, auth_headers, as_role) -> None:
        as_role("complaints_agent")
        mock_service = AsyncMock()
        mock_service.list_activity.side_effect = OperationalError(
            "SELECT * FROM complaint_activity", {}, Exception("connection refused")
        )
        app.dependency_overrides[get_complaints_service] = lambda: mock_service

        response = test_client.get(f"/api/v1/complaints/{uuid4()}/activity", headers=auth_headers)

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "Database operation failed"
        assert body["detail"]["title"] == "DatabaseError"
        assert "connection refused" not in response.text
