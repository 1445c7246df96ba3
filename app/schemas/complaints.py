from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel

ComplaintReason = Literal[
    "claim_processing",
    "customer_service",
    "policy_terms",
    "payment_issue",
    "product_coverage",
    "other",
]


class ComplaintCreate(BaseModel):
    reason: ComplaintReason
    details: str
    policy_id: Optional[UUID] = None
    complaint_type: Optional[str] = None


class ComplaintUpdate(BaseModel):
    """Only fields present in the request body are applied."""

    status: Optional[str] = None
    classification: Optional[Literal["regulatory", "non_regulatory"]] = None
    assigned_to: Optional[UUID] = None
    response: Optional[str] = None
    notes: Optional[str] = None
