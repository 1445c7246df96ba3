"""Customer complaints and the staff complaint workflow."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Request, status

from app.core.auth import get_current_user, require_staff
from app.core.dependencies import get_complaints_service
from app.schemas.auth import CurrentUser
from app.schemas.common import ApiResponse
from app.schemas.complaints import ComplaintCreate, ComplaintUpdate
from app.services.complaints_service import ComplaintsService
from app.utils.responses import create_api_response

router = APIRouter()


@router.post(
    "",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a complaint",
    operation_id="create_complaint",
)
async def create_complaint(
    request: Request,
    body: ComplaintCreate,
    current_user: Annotated[CurrentUser, Depends(get_current_user)] = None,
    complaints_service: Annotated[ComplaintsService, Depends(get_complaints_service)] = None,
):
    result = await complaints_service.create_complaint(body, UUID(current_user.id))
    return create_api_response(data=result, message="Complaint submitted successfully", request=request)


@router.patch(
    "/{complaint_id}",
    response_model=ApiResponse,
    summary="Update a complaint",
    description="Only the fields present in the body are changed. Each change is written to the activity log.",
    operation_id="update_complaint",
)
async def update_complaint(
    request: Request,
    complaint_id: UUID,
    body: ComplaintUpdate,
    current_user: Annotated[CurrentUser, Depends(require_staff)] = None,
    complaints_service: Annotated[ComplaintsService, Depends(get_complaints_service)] = None,
):
    result = await complaints_service.update_complaint(complaint_id, body, UUID(current_user.id))
    return create_api_response(data=result, message="Complaint updated successfully", request=request)


@router.get(
    "/{complaint_id}/activity",
    response_model=ApiResponse,
    summary="Complaint activity log",
    operation_id="list_complaint_activity",
)
async def list_activity(
    request: Request,
    complaint_id: UUID,
    current_user: Annotated[CurrentUser, Depends(require_staff)] = None,
    complaints_service: Annotated[ComplaintsService, Depends(get_complaints_service)] = None,
):
    activity = await complaints_service.list_activity(complaint_id)
    return create_api_response(data={"activity": activity}, request=request)
