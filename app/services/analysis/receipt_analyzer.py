"""Extraction of purchase details from receipts and invoices."""

from typing import Any, Dict, Optional

from app.core.exceptions import ValidationError
from app.schemas.analysis import ExpectedDevice
from app.services.analysis.base_analyzer import BaseAnalyzer, is_pdf_data_uri
from app.services.matching.device_categories import devices_match
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

RRP_TOLERANCE = 0.2

VALIDATED_FIELDS = ("deviceCategory", "serialNumber", "rrp", "dateOfSale")


def _to_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(str(value).replace(",", "").strip())
    except ValueError:
        return None


def validate_receipt(info: Dict[str, Any], expected: Optional[ExpectedDevice]) -> Dict[str, Dict[str, bool]]:
    """Compare extracted receipt fields with the insured device.

    Category matches through synonyms, serial numbers by case-insensitive
    equality and the price within 20% of the expected RRP. The date only
    has to be present.
    """
    validation = {field: {"found": bool(info.get(field)), "matches": False} for field in VALIDATED_FIELDS}
    if expected is None:
        return validation

    if info.get("deviceCategory") and expected.category:
        validation["deviceCategory"]["matches"] = devices_match(str(info["deviceCategory"]), expected.category)

    if info.get("serialNumber") and expected.serial:
        validation["serialNumber"]["matches"] = (
            str(info["serialNumber"]).lower().strip() == expected.serial.lower().strip()
        )

    extracted_rrp = _to_float(info.get("rrp"))
    expected_rrp = _to_float(expected.rrp)
    if extracted_rrp is not None and expected_rrp is not None:
        validation["rrp"]["matches"] = abs(extracted_rrp - expected_rrp) <= expected_rrp * RRP_TOLERANCE

    validation["dateOfSale"]["matches"] = bool(info.get("dateOfSale"))
    return validation


class ReceiptAnalyzer(BaseAnalyzer):
    """Reads device category, serial number, price and date of sale from a receipt."""

    SYSTEM_PROMPT = """You are an expert at extracting information from receipts and invoices. Analyze the document (image or PDF) and extract key product information.

IMPORTANT: Look carefully for serial numbers, IMEI numbers, or any unique device identifiers. They may appear:
- Near the product description or model number
- In a barcode or QR code area
- In a separate "Serial Number", "S/N", "IMEI", "Serial", or "SN" field
- Near the bottom of the receipt
- In item details or specifications section

Return ONLY valid JSON with this exact structure:
{
  "deviceCategory": "extracted device category/product type (e.g., Smartphone, Laptop, TV, etc.) or null if not found",
  "serialNumber": "extracted serial number/IMEI/S/N or null if not found - look for any unique alphanumeric identifier associated with the product",
  "rrp": "extracted price/RRP as a number or null if not found",
  "dateOfSale": "extracted date in YYYY-MM-DD format or null if not found",
  "manufacturer": "brand/manufacturer name or null if not found",
  "model": "product model or null if not found",
  "confidence": {
    "deviceCategory": "high, medium, low, or none",
    "serialNumber": "high, medium, low, or none",
    "rrp": "high, medium, low, or none",
    "dateOfSale": "high, medium, low, or none"
  }
}"""

    USER_PROMPT = "Extract device information from this receipt/invoice. Return ONLY the JSON object, no other text."

    @staticmethod
    def fallback() -> Dict[str, Any]:
        return {
            "deviceCategory": None,
            "serialNumber": None,
            "rrp": None,
            "dateOfSale": None,
            "manufacturer": None,
            "model": None,
            "confidence": {field: "none" for field in VALIDATED_FIELDS},
            "validation": {field: {"found": False, "matches": False} for field in VALIDATED_FIELDS},
            "allFieldsFound": False,
            "allFieldsMatch": False,
            "error": "Could not extract information from receipt",
        }

    def _attachment(self, data_uri: str, filename: str = "receipt.pdf") -> Dict[str, Any]:
        return super()._attachment(data_uri, filename)

    async def analyze(self, image_base64: Optional[str], expected_device: Optional[ExpectedDevice] = None) -> Dict[str, Any]:
        """Extract and validate receipt details.

        Args:
            image_base64: Receipt image or PDF as a data URI
            expected_device: Insured device to validate against

        Returns:
            Extracted fields plus per-field validation and summary flags
        """
        if not image_base64:
            raise ValidationError("No receipt file provided")

        LOGGER.info(
            "Analyzing receipt with AI",
            extra={"file_type": "PDF" if is_pdf_data_uri(image_base64) else "image"},
        )
        answer = await self._complete(self.USER_PROMPT, image_base64, system_prompt=self.SYSTEM_PROMPT)

        info = self._parse_object(answer)
        if info is None:
            return self.fallback()

        validation = validate_receipt(info, expected_device)
        return {
            **info,
            "validation": validation,
            "allFieldsFound": all(v["found"] for v in validation.values()),
            "allFieldsMatch": all(v["matches"] for v in validation.values()),
        }
