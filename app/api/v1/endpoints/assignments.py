"""Fulfillment assignment administration: which repairer serves which programs and devices."""

from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status

from app.core.auth import require_admin
from app.core.dependencies import get_assignment_service
from app.schemas.auth import CurrentUser
from app.schemas.common import ApiResponse
from app.schemas.fulfillment import AssignmentCreate, EligibleRepairersQuery
from app.services.fulfillment.assignment_service import AssignmentService
from app.utils.responses import create_api_response
from app.utils.serialization import row_to_dict, rows_to_dicts

router = APIRouter()


@router.get(
    "",
    response_model=ApiResponse,
    summary="List fulfillment assignments",
    operation_id="list_fulfillment_assignments",
)
async def list_assignments(
    request: Request,
    search: Optional[str] = Query(None, description="Filter by label or repairer name"),
    current_user: Annotated[CurrentUser, Depends(require_admin)] = None,
    assignment_service: Annotated[AssignmentService, Depends(get_assignment_service)] = None,
):
    assignments = await assignment_service.list_assignments(search)
    return create_api_response(data={"assignments": assignments}, request=request)


@router.post(
    "",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a fulfillment assignment",
    operation_id="create_fulfillment_assignment",
)
async def create_assignment(
    request: Request,
    body: AssignmentCreate,
    current_user: Annotated[CurrentUser, Depends(require_admin)] = None,
    assignment_service: Annotated[AssignmentService, Depends(get_assignment_service)] = None,
):
    assignment = await assignment_service.create_assignment(body)
    return create_api_response(
        data={"assignment": row_to_dict(assignment)},
        message="Assignment created successfully",
        request=request,
    )


@router.delete(
    "/{assignment_id}",
    response_model=ApiResponse,
    summary="Delete a fulfillment assignment",
    operation_id="delete_fulfillment_assignment",
)
async def delete_assignment(
    request: Request,
    assignment_id: UUID,
    current_user: Annotated[CurrentUser, Depends(require_admin)] = None,
    assignment_service: Annotated[AssignmentService, Depends(get_assignment_service)] = None,
):
    await assignment_service.delete_assignment(assignment_id)
    return create_api_response(data=None, message="Assignment deleted successfully", request=request)


@router.post(
    "/eligible-repairers",
    response_model=ApiResponse,
    summary="Repairers that can take the assignment being configured",
    operation_id="list_assignment_eligible_repairers",
)
async def eligible_repairers(
    request: Request,
    body: EligibleRepairersQuery,
    current_user: Annotated[CurrentUser, Depends(require_admin)] = None,
    assignment_service: Annotated[AssignmentService, Depends(get_assignment_service)] = None,
):
    repairers = await assignment_service.eligible_repairers_for_assignment(body)
    return create_api_response(data={"repairers": rows_to_dicts(repairers)}, request=request)
