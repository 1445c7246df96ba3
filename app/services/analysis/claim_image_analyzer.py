"""Validation of claim photos and receipts uploaded for a claim.

The result is stored on the document row under ``metadata.ai_analysis`` and
read by the automatic claim decision.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from app.core.exceptions import AppError
from app.services.analysis.base_analyzer import BaseAnalyzer
from app.services.matching.device_categories import devices_match
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

UNDETERMINED_CATEGORIES = ("Unknown", "Other")


@dataclass
class InsuredDevice:
    name: str
    model: Optional[str] = None
    price: Optional[float] = None


CONFIDENCE_RULES = """CONFIDENCE SCORING RULES (BE STRICT):
- 0.0-0.3: {invalid}
- 0.3-0.5: {poor}
- 0.5-0.7: {average}
- 0.7-0.9: {good}
- 0.9-1.0: {perfect}"""

PHOTO_PROMPT = """CRITICAL: You are analyzing a claim photo for insurance validation. Be STRICT and PRECISE.

{device_description}

VALIDATION RULES (MUST follow):
1. Check if image shows an ACTUAL PHYSICAL DEVICE (not screenshots, web pages, documents, or digital content)
2. If it's a screenshot, webpage, or digital content: isValid=false, confidence=0.1
3. If no device is visible: isValid=false, confidence=0.2
4. Device must be clearly visible and identifiable
5. Report the detected device category accurately

DEVICE CATEGORY DETECTION:
- Identify what type of device is shown (TV, Smartphone, Laptop, Tablet, etc.)
- Be specific about the device category you detect
- If you see a TV, report deviceCategory as the TV model/type (e.g., "Smart TV", "Samsung TV", "OLED TV")

{confidence_rules}

Analyze and return JSON:
{{
  "isValid": boolean (true only if real physical device visible),
  "validationIssue": "string or null (e.g., 'Screenshot detected', 'No product visible')",
  "deviceCategory": "string - the actual device type you see (e.g., 'Smart TV', 'iPhone', 'MacBook', 'Samsung Galaxy')",
  "hasPhysicalDamage": boolean,
  "damageDescription": "string",
  "severityLevel": "No Issues" | "Minor - Cosmetic damage only" | "Medium - Some features not working" | "Severe - Device not functional",
  "findings": ["finding1", "finding2"],
  "confidence": 0.0-1.0 (MUST follow scoring rules above - be harsh on quality)
}}"""

RECEIPT_PROMPT = """CRITICAL: You are validating a proof of purchase/receipt for insurance claims. Be STRICT.

{device_description}

VALIDATION RULES:
1. Must be a REAL receipt/invoice (not screenshots of websites, product photos, or random documents)
2. Must show: purchase date, product details, price/amount, seller/store name
3. Must be legible and not heavily obscured
4. If it's a product photo, screenshot, or webpage: isValid=false
5. Extract the product name/category from the receipt

PRODUCT EXTRACTION:
- Identify what product is listed on the receipt
- Report the product category/name as it appears on the receipt
- Be specific (e.g., "Samsung 65-inch TV", "iPhone 15 Pro", "MacBook Air")

{confidence_rules}

Analyze and return JSON:
{{
  "isValid": boolean (true only if valid receipt/invoice),
  "validationIssue": "string or null (e.g., 'Not a receipt', 'Missing purchase information')",
  "deviceCategory": "string - the product name/category from the receipt",
  "hasRequiredInfo": boolean (has date, product, price, seller),
  "findings": ["what you can see", "what's missing"],
  "confidence": 0.0-1.0 (MUST follow scoring rules above - be harsh on quality)
}}"""


def _photo_prompt(device: Optional[InsuredDevice]) -> str:
    if device:
        description = f"Expected device: {device.name}" + (f" (Model: {device.model})" if device.model else "")
    else:
        description = "Device type unknown"
    rules = CONFIDENCE_RULES.format(
        invalid="Invalid images (screenshots, no device, wrong content)",
        poor="Poor quality, unclear, partially visible device, or significant uncertainty",
        average="Average quality, device visible but some details unclear or minor issues",
        good="Good quality, clear device image, most details visible",
        perfect="ONLY for perfect images - crystal clear, well-lit, device fully visible, no ambiguity whatsoever",
    )
    return PHOTO_PROMPT.format(device_description=description, confidence_rules=rules)


def _receipt_prompt(device: Optional[InsuredDevice]) -> str:
    if device:
        description = (
            f"Expected purchase: {device.name}"
            + (f" (Model: {device.model})" if device.model else "")
            + (f" at approximately £{device.price}" if device.price else "")
        )
    else:
        description = "Device details unknown"
    rules = CONFIDENCE_RULES.format(
        invalid="Invalid (not a receipt, screenshot, product photo, unreadable)",
        poor="Poor quality or missing multiple required fields",
        average="Readable but missing some information or partially obscured",
        good="Good receipt with most required information visible",
        perfect="ONLY for perfect receipts - all fields clearly visible and legible",
    )
    return RECEIPT_PROMPT.format(device_description=description, confidence_rules=rules)


def build_assessment(document_type: str, analysis: Dict[str, Any], mismatch_warning: Optional[str]) -> str:
    """One-line verdict shown to claim handlers."""
    if document_type == "photo":
        damage = (
            f"Damage detected: {analysis.get('damageDescription')}"
            if analysis.get("hasPhysicalDamage")
            else "No visible damage."
        )
        if not analysis.get("isValid"):
            return f"⚠️ INVALID: {analysis.get('validationIssue') or 'Image does not show a valid physical device'}"
        if mismatch_warning:
            return f"⚠️ DEVICE MISMATCH: {mismatch_warning}. {damage}"
        return f"✓ Valid device photo. Device: {analysis.get('deviceCategory') or 'Unknown'}. {damage}"

    if not analysis.get("isValid"):
        return f"⚠️ INVALID: {analysis.get('validationIssue') or 'Not a valid receipt or proof of purchase'}"
    if mismatch_warning:
        info = (
            "Receipt contains required information."
            if analysis.get("hasRequiredInfo")
            else "Some information may be missing."
        )
        return f"⚠️ PRODUCT MISMATCH: {mismatch_warning}. {info}"
    info = "Contains required information." if analysis.get("hasRequiredInfo") else "Some information may be missing."
    return f"✓ Valid proof of purchase. Product: {analysis.get('deviceCategory') or 'Unknown'}. {info}"


class ClaimImageAnalyzer(BaseAnalyzer):
    """Checks that a claim photo shows the insured device, or that a receipt is genuine."""

    MAX_TOKENS = 500

    async def analyze(
        self,
        data_uri: str,
        document_type: str,
        device: Optional[InsuredDevice] = None,
    ) -> Optional[Dict[str, Any]]:
        """Analyze one claim image.

        Analysis is best effort: gateway failures and unparseable answers
        are logged and give None so the upload itself still succeeds.

        Args:
            data_uri: Image as a data URI
            document_type: "photo" or "receipt"
            device: Insured device from the claim's policy

        Returns:
            The analysis dict stored in document metadata, or None
        """
        prompt = _photo_prompt(device) if document_type == "photo" else _receipt_prompt(device)

        try:
            answer = await self._complete(prompt, data_uri, max_tokens=self.MAX_TOKENS)
        except AppError as e:
            LOGGER.warning(
                f"Claim image analysis failed: {e.message}",
                extra={"document_type": document_type},
                exc_info=True,
            )
            return None

        analysis = self._parse_object(answer)
        if analysis is None:
            return None

        mismatch_warning = None
        detected = analysis.get("deviceCategory")
        if device and detected:
            if not devices_match(detected, device.name) and detected not in UNDETERMINED_CATEGORIES:
                mismatch_warning = f'Device mismatch detected: Expected "{device.name}" but found "{detected}"'
                LOGGER.info(mismatch_warning)

        return {
            "assessment": build_assessment(document_type, analysis, mismatch_warning),
            "isValid": bool(analysis.get("isValid")),
            "validationIssue": analysis.get("validationIssue") or None,
            "severityLevel": analysis.get("severityLevel") or None,
            "findings": analysis.get("findings") or [],
            "confidence": analysis.get("confidence") or 0,
            "deviceCategory": detected or None,
            "deviceMismatch": mismatch_warning is not None,
            "mismatchWarning": mismatch_warning,
            "hasPhysicalDamage": bool(analysis.get("hasPhysicalDamage")),
            "hasRequiredInfo": bool(analysis.get("hasRequiredInfo")),
            "productMatches": mismatch_warning is None,
        }


def insured_device_for(claim: Any) -> Optional[InsuredDevice]:
    """Insured device of a claim loaded with its policy and covered items."""
    policy = getattr(claim, "policy", None)
    if policy is None or not policy.covered_items:
        return None
    item = policy.covered_items[0]
    price = float(item.purchase_price) if item.purchase_price is not None else None
    return InsuredDevice(name=item.product_name, model=item.model, price=price)
