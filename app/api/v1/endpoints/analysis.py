"""AI analysis of device photos and purchase receipts."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from app.core.auth import get_current_user
from app.core.dependencies import get_device_analyzer, get_receipt_analyzer
from app.schemas.analysis import DeviceAnalysisRequest, ReceiptAnalysisRequest
from app.schemas.auth import CurrentUser
from app.schemas.common import ApiResponse
from app.services.analysis.device_analyzer import DeviceAnalyzer
from app.services.analysis.receipt_analyzer import ReceiptAnalyzer
from app.utils.responses import create_api_response

router = APIRouter()


@router.post(
    "/device",
    response_model=ApiResponse,
    summary="Analyze a photo of a damaged device",
    description=(
        "Identify the device, assess visible damage and check that it matches the "
        "insured device category."
    ),
    operation_id="analyze_device_photo",
)
async def analyze_device(
    request: Request,
    body: DeviceAnalysisRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)] = None,
    device_analyzer: Annotated[DeviceAnalyzer, Depends(get_device_analyzer)] = None,
):
    result = await device_analyzer.analyze(body.image_base64, body.insured_device_category)
    return create_api_response(data=result, request=request)


@router.post(
    "/receipt",
    response_model=ApiResponse,
    summary="Extract and validate a purchase receipt",
    operation_id="analyze_purchase_receipt",
)
async def analyze_receipt(
    request: Request,
    body: ReceiptAnalysisRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)] = None,
    receipt_analyzer: Annotated[ReceiptAnalyzer, Depends(get_receipt_analyzer)] = None,
):
    result = await receipt_analyzer.analyze(body.image_base64, body.expected_device)
    return create_api_response(data=result, request=request)
