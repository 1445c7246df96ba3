from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class BrandingRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    url: Optional[str] = None
    html: Optional[str] = None
    source_url: Optional[str] = Field(None, alias="sourceUrl")
