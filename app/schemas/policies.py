from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class PolicyLookupRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    policy_number: Optional[str] = Field(None, alias="policyNumber", description="Number, name, email or phone")


class PolicyDocumentsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    policy_id: Optional[UUID] = Field(None, alias="policyId")
