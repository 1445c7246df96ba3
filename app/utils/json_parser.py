import json
import re
from typing import Any, Dict, List, Optional, Union

from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL)


def strip_code_fences(text: str) -> str:
    """Return the body of the first fenced block, or the trimmed text."""
    match = _FENCE_RE.search(text)
    if match:
        return match.group(1).strip()
    return text.strip()


def parse_json_safely(text: Optional[str]) -> Union[Dict[str, Any], List[Any], None]:
    """Parse JSON from model output.

    Handles markdown code fences, prose around the JSON and trailing data
    after the first complete object.

    Returns:
        Parsed JSON object or None if parsing fails
    """
    if not text:
        return None

    cleaned = strip_code_fences(text)

    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        LOGGER.warning(f"Initial JSON parse failed: {e}, attempting repairs...")

    # First decodable object or array in the text
    decoder = json.JSONDecoder()
    for idx, char in enumerate(cleaned):
        if char not in "{[":
            continue
        try:
            obj, _ = decoder.raw_decode(cleaned, idx)
            return obj
        except json.JSONDecodeError:
            continue

    LOGGER.error("Failed to parse JSON from model output", extra={"preview": cleaned[:200]})
    return None

