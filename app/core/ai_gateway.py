"""Client for the OpenAI-compatible chat-completion gateway.

Used in three modes: plain completion (JSON answers in message content),
forced tool calls (structured answers in ``tool_calls``) and SSE streaming
for the service agent.
"""

import asyncio
import json
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx
from httpx import HTTPStatusError, TimeoutException

from app.core.config import settings
from app.core.exceptions import (
    AIGatewayError,
    APITimeoutError,
    ConfigurationError,
    PaymentRequiredError,
    RateLimitError,
)
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


def text_part(text: str) -> Dict[str, Any]:
    return {"type": "text", "text": text}


def image_part(data_uri: str) -> Dict[str, Any]:
    return {"type": "image_url", "image_url": {"url": data_uri}}


def file_part(data_uri: str, filename: str) -> Dict[str, Any]:
    return {"type": "file", "file": {"filename": filename, "file_data": data_uri}}


def tool_spec(name: str, description: str, parameters: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "type": "function",
        "function": {"name": name, "description": description, "parameters": parameters},
    }


class AIGatewayClient:
    """Chat-completion client with retry and gateway error mapping.

    429 and 402 are raised immediately as RateLimitError and
    PaymentRequiredError. Other 4xx responses are not retried. Timeouts,
    connection failures and 5xx responses get up to ``max_retries`` retries
    with exponential backoff.
    """

    def __init__(
        self,
        api_key: str,
        api_url: str,
        model: str,
        timeout: int = 60,
        max_retries: int = 2,
        retry_delay: int = 2,
    ):
        self.api_key = api_key
        self.api_url = api_url
        self.model = model
        self.timeout = timeout
        self.max_retries = max(0, max_retries)
        self.retry_delay = retry_delay

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _ensure_configured(self) -> None:
        if not self.api_key:
            LOGGER.error("LOVABLE_API_KEY not configured")
            raise ConfigurationError("AI service not configured")

    def _status_error(self, status_code: int, body: str) -> AIGatewayError:
        if status_code == 429:
            return RateLimitError()
        if status_code == 402:
            return PaymentRequiredError()
        return AIGatewayError(f"AI gateway error {status_code}: {body[:500]}")

    async def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        self._ensure_configured()
        attempts = self.max_retries + 1

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            for attempt in range(attempts):
                try:
                    response = await client.post(self.api_url, headers=self.headers, json=payload)
                    response.raise_for_status()
                    return response.json()
                except HTTPStatusError as e:
                    status_code = e.response.status_code
                    body = e.response.text
                    LOGGER.warning(
                        f"AI gateway HTTP error (attempt {attempt + 1}/{attempts})",
                        extra={"status_code": status_code, "error_body": body[:500]},
                    )
                    if status_code < 500 or attempt == attempts - 1:
                        raise self._status_error(status_code, body) from e
                except TimeoutException as e:
                    LOGGER.warning(f"AI gateway timeout (attempt {attempt + 1}/{attempts})")
                    if attempt == attempts - 1:
                        raise APITimeoutError(f"AI gateway timeout after {attempts} attempts", original_error=e) from e
                except httpx.RequestError as e:
                    LOGGER.warning(f"AI gateway request failed (attempt {attempt + 1}/{attempts}): {e}")
                    if attempt == attempts - 1:
                        raise AIGatewayError(f"AI gateway request failed: {e}", original_error=e) from e

                await asyncio.sleep(self.retry_delay * (2**attempt))

        raise AIGatewayError(f"AI gateway call failed after {attempts} attempts")

    def _payload(self, messages: List[Dict[str, Any]], **extra) -> Dict[str, Any]:
        return {"model": self.model, "messages": messages, **extra}

    async def complete(self, messages: List[Dict[str, Any]], **extra) -> str:
        """Return the assistant message content of a plain completion."""
        data = await self._post(self._payload(messages, **extra))
        try:
            return data["choices"][0]["message"].get("content") or ""
        except (KeyError, IndexError, TypeError) as e:
            raise AIGatewayError("AI gateway returned no choices", original_error=e) from e

    async def call_tool(
        self,
        messages: List[Dict[str, Any]],
        tool: Dict[str, Any],
    ) -> Optional[Dict[str, Any]]:
        """Force a single tool call and return its parsed arguments.

        Returns:
            The decoded arguments, or None when the model made no tool call.
        """
        name = tool["function"]["name"]
        data = await self._post(
            self._payload(
                messages,
                tools=[tool],
                tool_choice={"type": "function", "function": {"name": name}},
            )
        )

        try:
            tool_calls = data["choices"][0]["message"].get("tool_calls") or []
        except (KeyError, IndexError, TypeError):
            tool_calls = []

        for call in tool_calls:
            function = call.get("function") or {}
            if function.get("name") != name:
                continue
            arguments = function.get("arguments") or "{}"
            try:
                return json.loads(arguments) if isinstance(arguments, str) else arguments
            except json.JSONDecodeError as e:
                raise AIGatewayError(f"Invalid arguments in {name} tool call", original_error=e) from e

        LOGGER.warning("AI gateway returned no tool call", extra={"tool": name})
        return None

    async def stream(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
    ) -> AsyncIterator[bytes]:
        """Open a streaming completion and return an iterator over its SSE bytes.

        Gateway errors are raised here, before any byte is relayed, so the
        caller can still answer with the upstream status.
        """
        self._ensure_configured()
        payload = self._payload(messages, stream=True)
        if tools:
            payload["tools"] = tools
            payload["tool_choice"] = "auto"

        client = httpx.AsyncClient(timeout=self.timeout)
        try:
            request = client.build_request("POST", self.api_url, headers=self.headers, json=payload)
            response = await client.send(request, stream=True)
        except TimeoutException as e:
            await client.aclose()
            raise APITimeoutError("AI gateway timeout") from e
        except httpx.HTTPError as e:
            await client.aclose()
            raise AIGatewayError(f"AI gateway request failed: {e}", original_error=e) from e

        if response.status_code != 200:
            body = (await response.aread()).decode("utf-8", errors="replace")
            await response.aclose()
            await client.aclose()
            LOGGER.error("AI gateway stream rejected", extra={"status_code": response.status_code})
            raise self._status_error(response.status_code, body)

        return self._relay(client, response)

    @staticmethod
    async def _relay(client: httpx.AsyncClient, response: httpx.Response) -> AsyncIterator[bytes]:
        try:
            async for chunk in response.aiter_bytes():
                yield chunk
        finally:
            await response.aclose()
            await client.aclose()


def get_ai_gateway_client() -> AIGatewayClient:
    return AIGatewayClient(
        api_key=settings.ai.api_key,
        api_url=settings.ai.api_url,
        model=settings.ai.model,
        timeout=settings.ai.timeout,
        max_retries=settings.ai.max_retries,
        retry_delay=settings.retry_delay,
    )
