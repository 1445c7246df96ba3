"""Customer document uploads for a claim and the upload-link email."""

import base64
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.ai_gateway import AIGatewayClient
from app.core.config import settings
from app.core.exceptions import NotFoundError, StorageError, ValidationError
from app.repositories.claim_repository import ClaimRepository
from app.repositories.communication_repository import CommunicationRepository
from app.repositories.document_repository import DocumentRepository
from app.services.analysis.claim_image_analyzer import ClaimImageAnalyzer, insured_device_for
from app.services.communications.communication_service import CommunicationService
from app.services.storage_service import StorageService
from app.utils.logging import get_logger
from app.utils.serialization import row_to_dict

LOGGER = get_logger(__name__)

ALLOWED_CONTENT_TYPES = ("image/jpeg", "image/png", "image/jpg", "application/pdf")

ANALYZED_DOCUMENT_TYPES = ("photo", "receipt")

UPLOAD_REQUEST_COMMUNICATION = "claim"

PREVIEW_URL_TTL_SECONDS = 3600


def upload_link(claim_id: UUID) -> str:
    return f"{settings.portal_url}/claim-upload/{claim_id}"


def document_request_html(customer_name: str, claim_number: str, policy_number: str, product_name: str) -> str:
    hours = settings.portal.upload_link_valid_hours
    return f"""
      <p style="font-size: 16px; margin-bottom: 20px;">Dear {customer_name},</p>

      <p style="font-size: 16px; margin-bottom: 20px;">
        Your claim <strong>{claim_number}</strong> has been registered successfully. To proceed with your claim, please upload the required supporting documents using the link below.
      </p>

      <div style="background: #f8f9fa; padding: 20px; border-radius: 8px; margin: 25px 0;">
        <table style="width: 100%; border-collapse: collapse;">
          <tr>
            <td style="padding: 8px 0; font-weight: 600; color: #666;">Claim Number:</td>
            <td style="padding: 8px 0; text-align: right; font-weight: 700; color: #e30613; font-size: 18px;">{claim_number}</td>
          </tr>
          <tr>
            <td style="padding: 8px 0; font-weight: 600; color: #666;">Policy Number:</td>
            <td style="padding: 8px 0; text-align: right; font-weight: 700; color: #333;">{policy_number}</td>
          </tr>
          <tr>
            <td style="padding: 8px 0; font-weight: 600; color: #666;">Product:</td>
            <td style="padding: 8px 0; text-align: right; font-weight: 700; color: #333;">{product_name}</td>
          </tr>
        </table>
      </div>

      <h2 style="color: #333; font-size: 20px; margin: 30px 0 15px;">Documents Required</h2>
      <ul style="margin: 0 0 25px 20px; padding: 0;">
        <li style="margin-bottom: 10px;">📸 Photos of the damaged/faulty device</li>
        <li style="margin-bottom: 10px;">🧾 Proof of purchase (receipt or invoice)</li>
        <li style="margin-bottom: 10px;">📋 Any additional supporting documents</li>
      </ul>

      <div style="background: #fff3cd; border-left: 4px solid #ffc107; padding: 15px; margin: 25px 0; border-radius: 4px;">
        <p style="margin: 0; color: #856404; font-size: 14px;">
          <strong>⚠️ Important:</strong> This upload link will expire in {hours} hours. Please upload your documents as soon as possible to avoid delays.
        </p>
      </div>

      <p style="font-size: 14px; color: #666; margin-top: 30px;">
        If you have any questions or need assistance, please don't hesitate to contact our support team.
      </p>
    """


class ClaimDocumentService:
    def __init__(
        self,
        db_session: AsyncSession,
        storage: StorageService,
        ai_client: AIGatewayClient,
        communications: CommunicationService,
    ):
        self.storage = storage
        self.analyzer = ClaimImageAnalyzer(ai_client)
        self.communications = communications
        self.claims = ClaimRepository(db_session)
        self.documents = DocumentRepository(db_session)
        self.communication_records = CommunicationRepository(db_session)

    async def upload_claim_document(
        self,
        content: Optional[bytes],
        file_name: Optional[str],
        content_type: Optional[str],
        claim_id: Optional[UUID],
        document_type: Optional[str],
        claim_number: Optional[str],
        user_id: Optional[UUID],
    ) -> Dict[str, Any]:
        """Store an uploaded file, analyze it and record it against the claim.

        Returns:
            success, fileName, filePath and processingTriggered. The caller
            starts automatic processing when processingTriggered is true.
        """
        if not content or not file_name or not claim_id or not document_type or not claim_number or not user_id:
            raise ValidationError("Missing required fields")
        if len(content) > settings.portal.max_upload_bytes:
            raise ValidationError("File exceeds 10MB limit")
        if content_type not in ALLOWED_CONTENT_TYPES:
            raise ValidationError("Invalid file format. Only JPG, PNG, and PDF are allowed")

        extension = file_name.rsplit(".", 1)[-1] if "." in file_name else "bin"
        stored_name = f"{claim_number}_{document_type}_{int(time.time() * 1000)}.{extension}"
        file_path = f"claim-documents/{claim_id}/{stored_name}"
        bucket = settings.portal.claim_documents_bucket

        await self.storage.upload_file(content, bucket, file_path, content_type=content_type)

        metadata = None
        if document_type in ANALYZED_DOCUMENT_TYPES and content_type.startswith("image/"):
            claim = await self.claims.get_with_policy(claim_id)
            data_uri = f"data:{content_type};base64,{base64.b64encode(content).decode('ascii')}"
            analysis = await self.analyzer.analyze(data_uri, document_type, insured_device_for(claim))
            if analysis:
                metadata = {"ai_analysis": analysis}

        try:
            await self.documents.create(
                claim_id=claim_id,
                user_id=user_id,
                document_type=document_type,
                document_subtype="receipt" if document_type == "receipt" else "other",
                file_name=file_name,
                file_path=file_path,
                file_size=len(content),
                metadata_=metadata,
            )
        except SQLAlchemyError:
            await self._remove_orphan(bucket, file_path)
            raise

        counts = await self.documents.count_by_type(claim_id)
        processing_triggered = counts["photos"] > 0 and counts["receipt"] > 0
        LOGGER.info(
            "Claim document uploaded",
            extra={"claim_id": str(claim_id), "file_path": file_path, "processing_triggered": processing_triggered},
        )

        return {
            "success": True,
            "fileName": stored_name,
            "filePath": file_path,
            "processingTriggered": processing_triggered,
        }

    async def _remove_orphan(self, bucket: str, file_path: str) -> None:
        try:
            await self.storage.remove_files(bucket, [file_path])
        except StorageError as e:
            LOGGER.error(f"Failed to remove orphaned upload {file_path}: {e.message}")

    async def get_upload_details(self, claim_id: Optional[UUID]) -> Dict[str, Any]:
        """Claim summary for the public upload page, with link expiry and counts."""
        if not claim_id:
            raise ValidationError("Claim ID is required")

        claim = await self.claims.get_with_policy(claim_id)
        if claim is None:
            raise NotFoundError("Claim not found")

        is_expired = False
        request = await self.communication_records.latest_for_claim(claim_id, UPLOAD_REQUEST_COMMUNICATION)
        if request is not None and request.sent_at is not None:
            valid_for = timedelta(hours=settings.portal.upload_link_valid_hours)
            is_expired = datetime.now(timezone.utc) - request.sent_at > valid_for

        policy = claim.policy
        claim_data = row_to_dict(claim)
        claim_data["policies"] = {
            "id": str(policy.id),
            "policy_number": policy.policy_number,
            "customer_name": policy.customer_name,
            "customer_email": policy.customer_email,
            "products": {"name": policy.product.name if policy.product else None},
        }
        covered_item = policy.covered_items[0] if policy.covered_items else None

        return {
            "claim": claim_data,
            "coveredItem": row_to_dict(covered_item),
            "isExpired": is_expired,
            "uploadedFiles": await self.documents.count_by_type(claim_id),
        }

    async def list_claim_documents(self, claim_id: UUID) -> List[Dict[str, Any]]:
        """Documents on a claim, each with a short-lived signed preview URL."""
        bucket = settings.portal.claim_documents_bucket
        documents = []
        for document in await self.documents.list_for_claim(claim_id):
            data = row_to_dict(document)
            data["previewUrl"] = await self.storage.get_signed_url(
                bucket, document.file_path, expires_in=PREVIEW_URL_TTL_SECONDS
            )
            documents.append(data)
        return documents

    async def send_document_request(self, claim_id: Optional[UUID]) -> Dict[str, Any]:
        """Email the customer a link to upload their claim documents."""
        if not claim_id:
            raise ValidationError("Claim ID is required")

        claim = await self.claims.get_with_policy(claim_id)
        if claim is None:
            raise NotFoundError("Claim not found")
        policy = claim.policy
        if not policy.customer_email:
            raise ValidationError("Policy has no customer email")

        html = document_request_html(
            customer_name=policy.customer_name or "Customer",
            claim_number=claim.claim_number,
            policy_number=policy.policy_number,
            product_name=policy.product.name if policy.product else "",
        )
        result = await self.communications.send_email(
            to=policy.customer_email,
            subject=f"Action Required: Upload Documents for Claim {claim.claim_number}",
            html=html,
            policy_id=policy.id,
            claim_id=claim.id,
            communication_type=UPLOAD_REQUEST_COMMUNICATION,
            action_url=upload_link(claim.id),
        )
        return {"success": True, "emailId": result["emailId"]}
