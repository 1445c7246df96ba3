"""Request models for repairer recommendation, assignments and the fulfillment flow."""

from datetime import date
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class AdvisorRequest(_CamelModel):
    claim_id: Optional[UUID] = Field(None, alias="claimId")
    device_category: Optional[str] = Field(None, alias="deviceCategory")
    coverage_area: Optional[str] = Field(None, alias="coverageArea")


class AssignmentCreate(BaseModel):
    assignment_type: Literal["product", "device_category", "device"] = "product"
    program_ids: List[UUID] = Field(default_factory=list)
    repairer_id: Optional[UUID] = None
    product_id: Optional[UUID] = None
    device_category: Optional[str] = None
    manufacturer: Optional[str] = None
    model_name: Optional[str] = None


class EligibleRepairersQuery(BaseModel):
    assignment_type: Literal["product", "device_category", "device"] = "product"
    program_ids: List[UUID] = Field(default_factory=list)
    device_category: Optional[str] = None
    manufacturer: Optional[str] = None
    model_name: Optional[str] = None


class CardDetails(_CamelModel):
    card_number: Optional[str] = Field(None, alias="cardNumber")
    expiry_date: Optional[str] = Field(None, alias="expiryDate")
    cvv: Optional[str] = None
    cardholder_name: Optional[str] = Field(None, alias="cardholderName")


class ExcessPaymentRequest(_CamelModel):
    use_payment_on_file: Optional[bool] = Field(None, alias="usePaymentOnFile")
    payment_method: Optional[str] = Field(None, alias="paymentMethod")
    card: Optional[CardDetails] = None


class DeviceValueRequest(BaseModel):
    device_value: float


class FulfillmentTypeRequest(BaseModel):
    fulfillment_type: Literal["in_home_repair", "collection_repair", "voucher"]


class ScheduleRequest(_CamelModel):
    appointment_date: Optional[date] = Field(None, alias="appointmentDate")
    appointment_slot: Optional[str] = Field(None, alias="appointmentSlot")
    repairer_id: Optional[UUID] = Field(None, alias="repairerId")


class QuoteRejectRequest(_CamelModel):
    reason: Optional[str] = None
    ber_value: Optional[float] = Field(None, alias="berValue")
    settlement_method: Literal["cash", "voucher"] = Field("cash", alias="settlementMethod")
