"""Customer email endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from app.core.auth import require_admin, require_staff
from app.core.dependencies import get_communication_service
from app.schemas.auth import CurrentUser
from app.schemas.common import ApiResponse
from app.schemas.communications import ResendCommunicationRequest, SendEmailRequest, TemplatedEmailRequest
from app.services.communications.communication_service import CommunicationService
from app.utils.logging import get_logger
from app.utils.responses import create_api_response

LOGGER = get_logger(__name__)

router = APIRouter()


@router.post(
    "/email",
    response_model=ApiResponse,
    summary="Send a branded email and record it",
    operation_id="send_customer_email",
)
async def send_email(
    request: Request,
    body: SendEmailRequest,
    current_user: Annotated[CurrentUser, Depends(require_staff)] = None,
    communication_service: Annotated[CommunicationService, Depends(get_communication_service)] = None,
):
    result = await communication_service.send_email(
        body.to,
        body.subject,
        body.html or "",
        policy_id=body.policy_id,
        claim_id=body.claim_id,
        complaint_id=body.complaint_id,
        communication_type=body.communication_type,
    )
    return create_api_response(data=result, message="Email sent successfully", request=request)


@router.post(
    "/templated",
    response_model=ApiResponse,
    summary="Send an email from a communication template",
    operation_id="send_templated_email",
)
async def send_templated_email(
    request: Request,
    body: TemplatedEmailRequest,
    current_user: Annotated[CurrentUser, Depends(require_staff)] = None,
    communication_service: Annotated[CommunicationService, Depends(get_communication_service)] = None,
):
    result = await communication_service.send_templated_email(
        body.policy_id,
        body.template_id,
        claim_id=body.claim_id,
        status=body.status,
    )
    return create_api_response(data=result, message="Email sent successfully", request=request)


@router.post(
    "/resend",
    response_model=ApiResponse,
    summary="Resend a recorded communication",
    operation_id="resend_communication",
)
async def resend_communication(
    request: Request,
    body: ResendCommunicationRequest,
    current_user: Annotated[CurrentUser, Depends(require_staff)] = None,
    communication_service: Annotated[CommunicationService, Depends(get_communication_service)] = None,
):
    result = await communication_service.resend_communication(body.communication_id)
    return create_api_response(data=result, message="Email resent successfully", request=request)


@router.post(
    "/regenerate",
    response_model=ApiResponse,
    summary="Re-wrap every stored email body in the current branded template",
    operation_id="regenerate_communications",
)
async def regenerate_communications(
    request: Request,
    current_user: Annotated[CurrentUser, Depends(require_admin)] = None,
    communication_service: Annotated[CommunicationService, Depends(get_communication_service)] = None,
):
    LOGGER.info("Regenerating communications", extra={"user_id": current_user.id})
    result = await communication_service.regenerate_communications()
    return create_api_response(data=result, request=request)
