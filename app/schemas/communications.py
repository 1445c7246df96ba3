from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class SendEmailRequest(_CamelModel):
    to: Optional[str] = None
    subject: Optional[str] = None
    html: Optional[str] = None
    policy_id: Optional[UUID] = Field(None, alias="policyId")
    claim_id: Optional[UUID] = Field(None, alias="claimId")
    complaint_id: Optional[UUID] = Field(None, alias="complaintId")
    communication_type: Optional[str] = Field(None, alias="communicationType")


class TemplatedEmailRequest(_CamelModel):
    policy_id: UUID = Field(..., alias="policyId")
    template_id: UUID = Field(..., alias="templateId")
    claim_id: Optional[UUID] = Field(None, alias="claimId")
    status: Optional[str] = None


class ResendCommunicationRequest(_CamelModel):
    communication_id: Optional[UUID] = Field(None, alias="communicationId")
