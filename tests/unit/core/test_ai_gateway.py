"""Unit tests for the AI gateway client."""

import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from app.core.ai_gateway import AIGatewayClient, tool_spec
from app.core.exceptions import (
    AIGatewayError,
    APITimeoutError,
    ConfigurationError,
    PaymentRequiredError,
    RateLimitError,
)

API_URL = "https://gateway.example.com/v1/chat/completions"


def make_client(**overrides) -> AIGatewayClient:
    options = {"api_key": "key", "api_url": API_URL, "model": "test-model", "max_retries": 2, "retry_delay": 0}
    options.update(overrides)
    return AIGatewayClient(**options)


def gateway_response(status_code: int, body=None) -> httpx.Response:
    return httpx.Response(status_code, json=body or {}, request=httpx.Request("POST", API_URL))


def completion(content: str) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


class TestComplete:
    @pytest.mark.asyncio
    async def test_returns_message_content(self):
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = gateway_response(200, completion('{"decision": "accepted"}'))

            content = await make_client().complete([{"role": "user", "content": "hi"}])

        assert content == '{"decision": "accepted"}'
        payload = mock_post.call_args.kwargs["json"]
        assert payload["model"] == "test-model"
        assert mock_post.call_args.kwargs["headers"]["Authorization"] == "Bearer key"

    @pytest.mark.asyncio
    async def test_rate_limit_is_not_retried(self):
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = gateway_response(429, {"error": "slow down"})

            with pytest.raises(RateLimitError) as exc_info:
                await make_client().complete([])

        assert exc_info.value.status_code == 429
        assert mock_post.await_count == 1

    @pytest.mark.asyncio
    async def test_payment_required_is_not_retried(self):
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = gateway_response(402)

            with pytest.raises(PaymentRequiredError):
                await make_client().complete([])

        assert mock_post.await_count == 1

    @pytest.mark.asyncio
    async def test_other_client_errors_are_not_retried(self):
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = gateway_response(400, {"error": "bad request"})

            with pytest.raises(AIGatewayError) as exc_info:
                await make_client().complete([])

        assert "400" in exc_info.value.message
        assert mock_post.await_count == 1

    @pytest.mark.asyncio
    async def test_server_error_is_retried(self):
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.side_effect = [gateway_response(503), gateway_response(200, completion("ok"))]

            content = await make_client().complete([])

        assert content == "ok"
        assert mock_post.await_count == 2

    @pytest.mark.asyncio
    async def test_timeout_after_all_attempts(self):
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.side_effect = httpx.ReadTimeout("timed out")

            with pytest.raises(APITimeoutError):
                await make_client().complete([])

        assert mock_post.await_count == 3

    @pytest.mark.asyncio
    async def test_connection_error_is_retried(self):
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.side_effect = [httpx.ConnectError("refused"), gateway_response(200, completion("ok"))]

            content = await make_client().complete([])

        assert content == "ok"
        assert mock_post.await_count == 2

    @pytest.mark.asyncio
    async def test_connection_error_after_all_attempts(self):
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.side_effect = httpx.ConnectError("refused")

            with pytest.raises(AIGatewayError, match="AI gateway request failed"):
                await make_client().complete([])

        # max_retries counts retries after the first attempt
        assert mock_post.await_count == 3

    @pytest.mark.asyncio
    async def test_no_retries(self):
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = gateway_response(503)

            with pytest.raises(AIGatewayError, match="503"):
                await make_client(max_retries=0).complete([])

        assert mock_post.await_count == 1

    @pytest.mark.asyncio
    async def test_missing_api_key(self):
        with pytest.raises(ConfigurationError):
            await make_client(api_key="").complete([])


class TestCallTool:
    TOOL = tool_spec("recommend", "Rank repairers", {"type": "object", "properties": {}})

    @pytest.mark.asyncio
    async def test_returns_parsed_arguments(self):
        body = {
            "choices": [
                {
                    "message": {
                        "tool_calls": [
                            {"function": {"name": "recommend", "arguments": json.dumps({"score": 90})}},
                        ]
                    }
                }
            ]
        }
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = gateway_response(200, body)

            arguments = await make_client().call_tool([], self.TOOL)

        assert arguments == {"score": 90}
        payload = mock_post.call_args.kwargs["json"]
        assert payload["tool_choice"] == {"type": "function", "function": {"name": "recommend"}}

    @pytest.mark.asyncio
    async def test_no_tool_call(self):
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = gateway_response(200, completion("I cannot help"))

            assert await make_client().call_tool([], self.TOOL) is None

    @pytest.mark.asyncio
    async def test_invalid_arguments(self):
        body = {"choices": [{"message": {"tool_calls": [{"function": {"name": "recommend", "arguments": "{oops"}}]}}]}
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = gateway_response(200, body)

            with pytest.raises(AIGatewayError):
                await make_client().call_tool([], self.TOOL)
