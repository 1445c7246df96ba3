"""Policy lookup and policy document generation."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from app.core.auth import require_staff
from app.core.dependencies import get_policy_documents_service, get_policy_lookup_service
from app.schemas.auth import CurrentUser
from app.schemas.common import ApiResponse
from app.schemas.policies import PolicyDocumentsRequest, PolicyLookupRequest
from app.services.policies.policy_documents_service import PolicyDocumentsService
from app.services.policies.policy_lookup_service import PolicyLookupService
from app.utils.responses import create_api_response

router = APIRouter()


@router.post(
    "/lookup",
    response_model=ApiResponse,
    summary="Find a policy by number, customer name, email or phone",
    operation_id="lookup_policy",
)
async def lookup_policy(
    request: Request,
    body: PolicyLookupRequest,
    current_user: Annotated[CurrentUser, Depends(require_staff)] = None,
    lookup_service: Annotated[PolicyLookupService, Depends(get_policy_lookup_service)] = None,
):
    result = await lookup_service.lookup_policy(body.policy_number)
    return create_api_response(data=result, request=request)


@router.post(
    "/documents",
    response_model=ApiResponse,
    summary="Generate the IPID, terms and schedule for a policy",
    operation_id="generate_policy_documents",
)
async def generate_policy_documents(
    request: Request,
    body: PolicyDocumentsRequest,
    current_user: Annotated[CurrentUser, Depends(require_staff)] = None,
    documents_service: Annotated[PolicyDocumentsService, Depends(get_policy_documents_service)] = None,
):
    result = await documents_service.generate_policy_documents(body.policy_id)
    return create_api_response(data=result, message=result["message"], request=request)
