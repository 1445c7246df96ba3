"""Re-run AI analysis on every photo and receipt of a claim."""

import base64
import re
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.ai_gateway import AIGatewayClient
from app.core.config import settings
from app.core.exceptions import NotFoundError, StorageError, ValidationError
from app.database.models import Document
from app.repositories.claim_repository import ClaimRepository
from app.repositories.document_repository import DocumentRepository
from app.services.analysis.claim_image_analyzer import ClaimImageAnalyzer, insured_device_for
from app.services.storage_service import StorageService
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

IMAGE_FILE_RE = re.compile(r"\.(jpg|jpeg|png|gif|webp)$", re.IGNORECASE)

ANALYZED_DOCUMENT_TYPES = ("photo", "receipt")


def image_mime_type(file_name: str) -> str:
    return "image/png" if file_name.lower().endswith(".png") else "image/jpeg"


def to_data_uri(content: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(content).decode('ascii')}"


class ReanalysisService:
    def __init__(self, db_session: AsyncSession, ai_client: AIGatewayClient, storage: StorageService):
        self.claims = ClaimRepository(db_session)
        self.documents = DocumentRepository(db_session)
        self.storage = storage
        self.analyzer = ClaimImageAnalyzer(ai_client)

    async def reanalyze_claim_documents(self, claim_id: Optional[UUID]) -> Dict[str, Any]:
        """Analyze each photo and receipt again and store the new results.

        Returns:
            Per-document results plus totalProcessed, successful, failed and skipped counts
        """
        if not claim_id:
            raise ValidationError("Missing claimId")

        claim = await self.claims.get_with_policy(claim_id)
        device = insured_device_for(claim) if claim else None

        documents = await self.documents.list_for_claim(claim_id, ANALYZED_DOCUMENT_TYPES)
        if not documents:
            raise NotFoundError("No documents found for this claim")

        LOGGER.info(
            "Re-analyzing claim documents",
            extra={"claim_id": str(claim_id), "document_count": len(documents)},
        )

        results = [await self._reanalyze(document, device) for document in documents]

        return {
            "success": True,
            "results": results,
            "totalProcessed": len(results),
            "successful": sum(1 for r in results if r["status"] == "success"),
            "failed": sum(1 for r in results if r["status"] == "error"),
            "skipped": sum(1 for r in results if r["status"] == "skipped"),
        }

    async def _reanalyze(self, document: Document, device) -> Dict[str, Any]:
        base = {"documentId": str(document.id), "fileName": document.file_name}

        try:
            content = await self.storage.download_file(settings.portal.claim_documents_bucket, document.file_path)
        except StorageError as e:
            LOGGER.error(f"Failed to download {document.file_path}: {e.message}")
            return {**base, "status": "error", "error": "Failed to download file"}

        if not IMAGE_FILE_RE.search(document.file_name or ""):
            LOGGER.info(f"Skipping non-image file: {document.file_name}")
            return {**base, "status": "skipped", "reason": "Not an image file"}

        data_uri = to_data_uri(content, image_mime_type(document.file_name))
        analysis = await self.analyzer.analyze(data_uri, document.document_type, device)
        if analysis is None:
            return {**base, "status": "error", "error": "AI analysis failed"}

        try:
            await self.documents.set_ai_analysis(document.id, analysis)
        except SQLAlchemyError as e:
            LOGGER.error(f"Failed to store analysis for {document.id}: {e}")
            return {**base, "status": "error", "error": "Failed to update document"}

        return {
            **base,
            "documentType": document.document_type,
            "status": "success",
            "analysis": analysis,
        }
