from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ClaimIdRequest(BaseModel):
    """Body of the claim actions that only take a claim id."""

    model_config = ConfigDict(populate_by_name=True)

    claim_id: Optional[UUID] = Field(None, alias="claimId")
