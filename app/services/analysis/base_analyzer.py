"""Base class for AI image and document analyzers.

Analyzers send one image (or PDF) plus a prompt to the AI gateway and read a
JSON object back from the message content.
"""

from typing import Any, Dict, List, Optional

from app.core.ai_gateway import AIGatewayClient, file_part, image_part, text_part
from app.utils.json_parser import parse_json_safely
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


def is_pdf_data_uri(data_uri: str) -> bool:
    return data_uri.startswith("data:application/pdf")


class BaseAnalyzer:
    """Shared gateway call and JSON parsing for analyzers.

    Attributes:
        client: AI gateway client
    """

    def __init__(self, client: AIGatewayClient):
        self.client = client

    def _attachment(self, data_uri: str, filename: str = "document.pdf") -> Dict[str, Any]:
        if is_pdf_data_uri(data_uri):
            return file_part(data_uri, filename)
        return image_part(data_uri)

    async def _complete(
        self,
        user_text: str,
        data_uri: str,
        system_prompt: Optional[str] = None,
        **extra,
    ) -> str:
        """Send the prompt and attachment and return the raw answer text."""
        messages: List[Dict[str, Any]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": [text_part(user_text), self._attachment(data_uri)]})

        answer = await self.client.complete(messages, **extra)
        LOGGER.debug(f"{self.__class__.__name__} answer", extra={"preview": answer[:300]})
        return answer

    def _parse_object(self, answer: str) -> Optional[Dict[str, Any]]:
        parsed = parse_json_safely(answer)
        if not isinstance(parsed, dict):
            LOGGER.warning(
                f"{self.__class__.__name__}: answer is not a JSON object",
                extra={"preview": (answer or "")[:300]},
            )
            return None
        return parsed
