"""Staff actions on claims: automatic processing, document requests and re-analysis."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Request

from app.core.auth import require_claims_handler
from app.core.dependencies import get_claim_document_service, get_claim_processing_service, get_reanalysis_service
from app.schemas.analysis import ReanalyzeRequest
from app.schemas.auth import CurrentUser
from app.schemas.claims import ClaimIdRequest
from app.schemas.common import ApiResponse
from app.services.analysis.reanalysis_service import ReanalysisService
from app.services.claims.claim_document_service import ClaimDocumentService
from app.services.claims.claim_processing_service import ClaimProcessingService
from app.utils.logging import get_logger
from app.utils.responses import create_api_response

LOGGER = get_logger(__name__)

router = APIRouter()


@router.post(
    "/process",
    response_model=ApiResponse,
    summary="Process a claim automatically",
    description=(
        "Ask the AI gateway for a decision on a claim with all required documents.\n\n"
        "Accepted claims wait for the excess payment. Anything uncertain is "
        "referred to a claims agent; nothing is rejected automatically."
    ),
    operation_id="process_claim",
)
async def process_claim(
    request: Request,
    body: ClaimIdRequest,
    current_user: Annotated[CurrentUser, Depends(require_claims_handler)] = None,
    processing_service: Annotated[ClaimProcessingService, Depends(get_claim_processing_service)] = None,
):
    LOGGER.info("Manual claim processing requested", extra={"claim_id": str(body.claim_id), "user_id": current_user.id})
    result = await processing_service.process_claim(body.claim_id)
    return create_api_response(data=result, message="Claim processed", request=request)


@router.post(
    "/document-request",
    response_model=ApiResponse,
    summary="Email the customer a document upload link",
    operation_id="send_claim_document_request",
)
async def send_document_request(
    request: Request,
    body: ClaimIdRequest,
    current_user: Annotated[CurrentUser, Depends(require_claims_handler)] = None,
    document_service: Annotated[ClaimDocumentService, Depends(get_claim_document_service)] = None,
):
    result = await document_service.send_document_request(body.claim_id)
    return create_api_response(data=result, message="Document request sent", request=request)


@router.post(
    "/reanalyze",
    response_model=ApiResponse,
    summary="Re-run AI analysis on a claim's photos and receipts",
    operation_id="reanalyze_claim_documents",
)
async def reanalyze_claim_documents(
    request: Request,
    body: ReanalyzeRequest,
    current_user: Annotated[CurrentUser, Depends(require_claims_handler)] = None,
    reanalysis_service: Annotated[ReanalysisService, Depends(get_reanalysis_service)] = None,
):
    result = await reanalysis_service.reanalyze_claim_documents(body.claim_id)
    return create_api_response(data=result, message="Documents re-analyzed", request=request)


@router.get(
    "/{claim_id}/documents",
    response_model=ApiResponse,
    summary="List a claim's documents with preview links",
    description="Each document carries a signed storage URL that stays valid for one hour.",
    operation_id="list_claim_documents",
)
async def list_claim_documents(
    request: Request,
    claim_id: UUID,
    current_user: Annotated[CurrentUser, Depends(require_claims_handler)] = None,
    document_service: Annotated[ClaimDocumentService, Depends(get_claim_document_service)] = None,
):
    documents = await document_service.list_claim_documents(claim_id)
    return create_api_response(data={"documents": documents}, request=request)
