"""Claim fulfillment endpoints: excess payment, scheduling, repair quotes and repairer advice."""

from datetime import date
from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request

from app.core.auth import get_current_user, require_claims_handler
from app.core.dependencies import get_advisor_service, get_fulfillment_service
from app.schemas.auth import CurrentUser
from app.schemas.common import ApiResponse
from app.schemas.fulfillment import (
    AdvisorRequest,
    DeviceValueRequest,
    ExcessPaymentRequest,
    FulfillmentTypeRequest,
    QuoteRejectRequest,
    ScheduleRequest,
)
from app.services.fulfillment.advisor_service import FulfillmentAdvisorService
from app.services.fulfillment.fulfillment_service import FulfillmentService, available_slots, unavailable_dates
from app.utils.logging import get_logger
from app.utils.responses import create_api_response
from app.utils.serialization import row_to_dict

LOGGER = get_logger(__name__)

router = APIRouter()


@router.post(
    "/advisor",
    response_model=ApiResponse,
    summary="Recommend repairers for a claim",
    description=(
        "Filter active repairers by device specialization, coverage area and the "
        "program's countries, then let the AI gateway rank them."
    ),
    operation_id="recommend_repairers",
)
async def recommend_repairers(
    request: Request,
    body: AdvisorRequest,
    current_user: Annotated[CurrentUser, Depends(require_claims_handler)] = None,
    advisor_service: Annotated[FulfillmentAdvisorService, Depends(get_advisor_service)] = None,
):
    result = await advisor_service.recommend(body.claim_id, body.device_category, body.coverage_area)
    return create_api_response(data=result, request=request)


@router.get(
    "/availability",
    response_model=ApiResponse,
    summary="Repairer booking availability",
    description="Days in the next 30 without bookings and the free time slots on a given day.",
    operation_id="get_repairer_availability",
)
async def get_availability(
    request: Request,
    repairer_id: Optional[str] = Query(None, alias="repairerId"),
    day: Optional[date] = Query(None, alias="date"),
    current_user: Annotated[CurrentUser, Depends(get_current_user)] = None,
):
    data = {"unavailableDates": unavailable_dates(repairer_id)}
    if day is not None:
        data["availableSlots"] = available_slots(repairer_id, day)
    return create_api_response(data=data, request=request)


@router.get(
    "/{claim_id}",
    response_model=ApiResponse,
    summary="Get the fulfillment state of a claim",
    operation_id="get_claim_fulfillment",
)
async def get_fulfillment(
    request: Request,
    claim_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)] = None,
    fulfillment_service: Annotated[FulfillmentService, Depends(get_fulfillment_service)] = None,
):
    result = await fulfillment_service.get_fulfillment(claim_id)
    return create_api_response(data=result, request=request)


@router.post(
    "/{claim_id}/excess-payment",
    response_model=ApiResponse,
    summary="Pay the claim excess",
    operation_id="pay_claim_excess",
)
async def pay_excess(
    request: Request,
    claim_id: UUID,
    body: ExcessPaymentRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)] = None,
    fulfillment_service: Annotated[FulfillmentService, Depends(get_fulfillment_service)] = None,
):
    fulfillment = await fulfillment_service.pay_excess(
        claim_id,
        body.use_payment_on_file,
        payment_method=body.payment_method,
        card=body.card,
    )
    return create_api_response(
        data={"fulfillment": row_to_dict(fulfillment)},
        message="Excess payment processed successfully",
        request=request,
    )


@router.put(
    "/{claim_id}/device-value",
    response_model=ApiResponse,
    summary="Set the insured device value",
    operation_id="set_claim_device_value",
)
async def set_device_value(
    request: Request,
    claim_id: UUID,
    body: DeviceValueRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)] = None,
    fulfillment_service: Annotated[FulfillmentService, Depends(get_fulfillment_service)] = None,
):
    fulfillment = await fulfillment_service.set_device_value(claim_id, body.device_value)
    return create_api_response(data={"fulfillment": row_to_dict(fulfillment)}, request=request)


@router.put(
    "/{claim_id}/type",
    response_model=ApiResponse,
    summary="Choose the fulfillment type",
    operation_id="set_claim_fulfillment_type",
)
async def set_fulfillment_type(
    request: Request,
    claim_id: UUID,
    body: FulfillmentTypeRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)] = None,
    fulfillment_service: Annotated[FulfillmentService, Depends(get_fulfillment_service)] = None,
):
    fulfillment = await fulfillment_service.set_fulfillment_type(claim_id, body.fulfillment_type)
    return create_api_response(data={"fulfillment": row_to_dict(fulfillment)}, request=request)


@router.post(
    "/{claim_id}/appointment",
    response_model=ApiResponse,
    summary="Schedule an engineer visit or collection",
    operation_id="schedule_claim_appointment",
)
async def schedule_appointment(
    request: Request,
    claim_id: UUID,
    body: ScheduleRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)] = None,
    fulfillment_service: Annotated[FulfillmentService, Depends(get_fulfillment_service)] = None,
):
    fulfillment = await fulfillment_service.schedule_appointment(
        claim_id,
        body.appointment_date,
        body.appointment_slot,
        repairer_id=body.repairer_id,
    )
    return create_api_response(
        data={"fulfillment": row_to_dict(fulfillment)},
        message="Appointment scheduled successfully",
        request=request,
    )


@router.post(
    "/{claim_id}/quote/approve",
    response_model=ApiResponse,
    summary="Approve the repairer's quote",
    operation_id="approve_repair_quote",
)
async def approve_quote(
    request: Request,
    claim_id: UUID,
    current_user: Annotated[CurrentUser, Depends(require_claims_handler)] = None,
    fulfillment_service: Annotated[FulfillmentService, Depends(get_fulfillment_service)] = None,
):
    fulfillment = await fulfillment_service.approve_quote(claim_id)
    return create_api_response(
        data={"fulfillment": row_to_dict(fulfillment)},
        message="Quote approved",
        request=request,
    )


@router.post(
    "/{claim_id}/quote/reject",
    response_model=ApiResponse,
    summary="Reject the quote and settle as Beyond Economic Repair",
    operation_id="reject_repair_quote",
)
async def reject_quote(
    request: Request,
    claim_id: UUID,
    body: QuoteRejectRequest,
    current_user: Annotated[CurrentUser, Depends(require_claims_handler)] = None,
    fulfillment_service: Annotated[FulfillmentService, Depends(get_fulfillment_service)] = None,
):
    result = await fulfillment_service.reject_quote(
        claim_id,
        body.reason,
        body.ber_value,
        settlement_method=body.settlement_method,
    )
    return create_api_response(data=result, message="Quote rejected and BER settlement recorded", request=request)
