"""Staff account administration."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from app.core.auth import require_admin
from app.core.dependencies import get_user_admin_service
from app.schemas.auth import CurrentUser
from app.schemas.common import ApiResponse
from app.schemas.users import GrantRoleRequest, ManageUserRequest
from app.services.user_admin_service import UserAdminService
from app.utils.logging import get_logger
from app.utils.responses import create_api_response

LOGGER = get_logger(__name__)

router = APIRouter()


@router.post(
    "/grant-role",
    response_model=ApiResponse,
    summary="Create a user if needed and grant a role",
    operation_id="grant_user_role",
)
async def grant_role(
    request: Request,
    body: GrantRoleRequest,
    current_user: Annotated[CurrentUser, Depends(require_admin)] = None,
    user_admin_service: Annotated[UserAdminService, Depends(get_user_admin_service)] = None,
):
    LOGGER.info("Role grant requested", extra={"granted_by": current_user.id, "role": body.role})
    result = await user_admin_service.grant_role(
        body.email,
        body.password,
        body.full_name,
        body.role,
        exclusive=body.exclusive,
    )
    return create_api_response(data=result, request=request)


@router.post(
    "/manage",
    response_model=ApiResponse,
    summary="Create, update or bulk-create staff users",
    operation_id="manage_users",
)
async def manage_users(
    request: Request,
    body: ManageUserRequest,
    current_user: Annotated[CurrentUser, Depends(require_admin)] = None,
    user_admin_service: Annotated[UserAdminService, Depends(get_user_admin_service)] = None,
):
    result = await user_admin_service.manage_user(body.action, body.user_data)
    return create_api_response(data=result, request=request)


@router.post(
    "/consultant",
    response_model=ApiResponse,
    summary="Make sure the test consultant account exists",
    operation_id="create_consultant_user",
)
async def create_consultant(
    request: Request,
    current_user: Annotated[CurrentUser, Depends(require_admin)] = None,
    user_admin_service: Annotated[UserAdminService, Depends(get_user_admin_service)] = None,
):
    result = await user_admin_service.create_consultant()
    return create_api_response(data=result, message=result["message"], request=request)
