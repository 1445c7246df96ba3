"""Customer upload link endpoints.

Reached from the emailed upload link, so they are excluded from JWT
authentication by the middleware.
"""

from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, Request, UploadFile, status

from app.core.dependencies import get_claim_document_service
from app.schemas.common import ApiResponse
from app.services.claims.claim_document_service import ClaimDocumentService
from app.services.claims.claim_processing_service import process_claim_in_background
from app.utils.logging import get_logger
from app.utils.responses import create_api_response

LOGGER = get_logger(__name__)

router = APIRouter()


@router.get(
    "/{claim_id}",
    response_model=ApiResponse,
    summary="Get claim details for the upload page",
    operation_id="get_claim_upload_details",
)
async def get_upload_details(
    request: Request,
    claim_id: UUID,
    document_service: Annotated[ClaimDocumentService, Depends(get_claim_document_service)] = None,
):
    result = await document_service.get_upload_details(claim_id)
    return create_api_response(data=result, request=request)


@router.post(
    "/{claim_id}/documents",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload a claim document",
    description=(
        "Store a photo or receipt against the claim and run AI analysis on it.\n\n"
        "When the upload completes the required documents, automatic claim "
        "processing is started in the background."
    ),
    operation_id="upload_claim_document",
)
async def upload_claim_document(
    request: Request,
    claim_id: UUID,
    background_tasks: BackgroundTasks,
    file: UploadFile = File(..., description="Photo, receipt or other supporting document"),
    document_type: str = Form(..., alias="documentType"),
    claim_number: str = Form(..., alias="claimNumber"),
    user_id: Optional[UUID] = Form(None, alias="userId"),
    document_service: Annotated[ClaimDocumentService, Depends(get_claim_document_service)] = None,
):
    content = await file.read()
    result = await document_service.upload_claim_document(
        content=content,
        file_name=file.filename,
        content_type=file.content_type,
        claim_id=claim_id,
        document_type=document_type,
        claim_number=claim_number,
        user_id=user_id,
    )

    if result.get("processingTriggered"):
        LOGGER.info("Scheduling automatic claim processing", extra={"claim_id": str(claim_id)})
        background_tasks.add_task(process_claim_in_background, claim_id)

    return create_api_response(data=result, message="File uploaded successfully", request=request)
