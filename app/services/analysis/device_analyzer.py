"""Device identification and damage assessment from a customer photo."""

from typing import Any, Dict, Optional

from app.core.exceptions import ValidationError
from app.services.analysis.base_analyzer import BaseAnalyzer
from app.services.matching.device_categories import devices_match
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

SEVERITY_LEVELS = {
    "critical": "Critical - Device unusable",
    "high": "High - Major functionality affected",
    "medium": "Medium - Some features not working",
    "low": "Low - Minor inconvenience",
}

DEFAULT_SEVERITY = SEVERITY_LEVELS["medium"]

# Categories the model uses when it cannot tell
UNDETERMINED_CATEGORIES = ("Other", "Unknown")


def normalize_severity(value: Optional[str]) -> str:
    """Map free-text severity onto one of the four dropdown levels."""
    lower_value = (value or "").lower()
    for keyword, level in SEVERITY_LEVELS.items():
        if keyword in lower_value:
            return level
    return DEFAULT_SEVERITY


class DeviceAnalyzer(BaseAnalyzer):
    """Identifies the device in a photo and assesses visible damage."""

    SYSTEM_PROMPT = """You are an expert device identification and damage assessment specialist. Analyze the image and extract device information in JSON format.

Return ONLY valid JSON with this exact structure:
{
  "deviceCategory": "one of: Smartphone, Tablet, Laptop, Desktop Computer, Smart Watch, Headphones, Camera, Gaming Console, Smart TV, Home Appliance, Other",
  "brand": "device brand/manufacturer name (e.g., Apple, Samsung, Sony)",
  "model": "specific model if visible (or 'Unknown' if not visible)",
  "color": "primary color of the device",
  "faultCategory": "one of: Screen Issues, Battery Problems, Physical Damage, Water Damage, Software/Performance, Audio Issues, Camera Issues, Charging Issues, Connectivity Issues, Button/Port Issues",
  "specificIssue": "detailed description of the main issue (e.g., Cracked Screen, Dead Pixels, Battery Draining Fast, Water Exposure, etc.)",
  "damageType": "one of: Screen Damage, Water Damage, Physical Impact, Scratches/Scuffs, Broken Parts, Multiple Issues, No Visible Damage",
  "affectedAreas": ["list of affected areas like: Screen, Back Panel, Camera, Buttons, Ports, etc."],
  "severityLevel": "MUST be exactly one of: Critical - Device unusable, High - Major functionality affected, Medium - Some features not working, Low - Minor inconvenience",
  "explanation": "brief 1-2 sentence description of what you see and the damage assessment",
  "hasVisiblePhysicalDamage": true or false (true if any cracks, dents, scratches, broken parts, or water damage are visible),
  "physicalDamageDescription": "detailed description of visible physical damage, or null if none detected"
}"""

    USER_PROMPT = (
        "Analyze this device image and provide comprehensive device identification and damage "
        "assessment. Return ONLY the JSON object, no other text."
    )

    @staticmethod
    def fallback(explanation: str) -> Dict[str, Any]:
        return {
            "deviceCategory": "Other",
            "brand": "Unknown",
            "model": "Unknown",
            "color": "Unknown",
            "faultCategory": "Physical Damage",
            "specificIssue": "Unspecified damage",
            "damageType": "Physical Impact",
            "affectedAreas": ["Unknown"],
            "severityLevel": DEFAULT_SEVERITY,
            "explanation": explanation,
            "deviceMismatch": False,
            "hasVisiblePhysicalDamage": False,
            "physicalDamageDescription": None,
        }

    async def analyze(self, image_base64: Optional[str], insured_category: Optional[str] = None) -> Dict[str, Any]:
        """Analyze a device photo.

        Args:
            image_base64: Image as a data URI
            insured_category: Category of the insured device, used to flag a wrong photo

        Returns:
            Device details, damage assessment and mismatch flags
        """
        if not image_base64:
            raise ValidationError("No image provided")

        LOGGER.info("Analyzing device with AI", extra={"insured_category": insured_category})
        answer = await self._complete(self.USER_PROMPT, image_base64, system_prompt=self.SYSTEM_PROMPT)

        info = self._parse_object(answer)
        if info is None:
            return self.fallback(answer)

        affected_areas = info.get("affectedAreas")
        result: Dict[str, Any] = {
            "deviceCategory": info.get("deviceCategory") or "Other",
            "brand": info.get("brand") or "Unknown",
            "model": info.get("model") or "Unknown",
            "color": info.get("color") or "Unknown",
            "faultCategory": info.get("faultCategory") or "Physical Damage",
            "specificIssue": info.get("specificIssue") or "Unspecified damage",
            "damageType": info.get("damageType") or "Physical Impact",
            "affectedAreas": affected_areas if isinstance(affected_areas, list) else ["Unknown"],
            "severityLevel": normalize_severity(info.get("severityLevel")),
            "explanation": info.get("explanation") or answer,
            "hasVisiblePhysicalDamage": bool(info.get("hasVisiblePhysicalDamage")),
            "physicalDamageDescription": info.get("physicalDamageDescription") or None,
        }

        if insured_category:
            detected = result["deviceCategory"]
            mismatch = not devices_match(detected, insured_category) and detected not in UNDETERMINED_CATEGORIES
            result["deviceMismatch"] = mismatch
            result["categoryMismatch"] = mismatch
            if mismatch:
                result["mismatchWarning"] = (
                    f"The photo appears to show a {detected}, but the insured device is a "
                    f"{insured_category}. Please verify you've uploaded the correct photo."
                )
                LOGGER.info(
                    "Device category mismatch",
                    extra={"detected": detected, "insured": insured_category},
                )

        return result
