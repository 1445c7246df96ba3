"""Request models for the AI analysis endpoints."""

from typing import Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ExpectedDevice(BaseModel):
    """Insured device details a receipt is checked against."""

    category: Optional[str] = None
    serial: Optional[str] = None
    rrp: Optional[Union[float, str]] = None


class DeviceAnalysisRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    image_base64: Optional[str] = Field(None, alias="imageBase64")
    insured_device_category: Optional[str] = Field(None, alias="insuredDeviceCategory")


class ReceiptAnalysisRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    image_base64: Optional[str] = Field(None, alias="imageBase64")
    expected_device: Optional[ExpectedDevice] = Field(None, alias="expectedDevice")


class ReanalyzeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    claim_id: Optional[UUID] = Field(None, alias="claimId")
