"""Brand extraction from a retailer website."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from app.core.auth import require_admin
from app.core.dependencies import get_branding_service
from app.schemas.auth import CurrentUser
from app.schemas.branding import BrandingRequest
from app.schemas.common import ApiResponse
from app.services.branding_service import BrandingService
from app.utils.responses import create_api_response

router = APIRouter()


@router.post(
    "/extract",
    response_model=ApiResponse,
    summary="Extract brand colours, fonts and logo from a website",
    description=(
        "Fetch the page (or use the supplied HTML) and let the AI gateway pick out "
        "the brand palette. Sites behind bot protection report BOT_PROTECTION so the "
        "caller can paste the HTML instead."
    ),
    operation_id="extract_branding",
)
async def extract_branding(
    request: Request,
    body: BrandingRequest,
    current_user: Annotated[CurrentUser, Depends(require_admin)] = None,
    branding_service: Annotated[BrandingService, Depends(get_branding_service)] = None,
):
    result = await branding_service.extract_branding(body.url, body.html, body.source_url)
    return create_api_response(data=result, status=result.get("success", True), request=request)
