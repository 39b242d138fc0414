"""Unit tests for the Gemini generation client."""
import json

import httpx
import pytest

from pdfrag.errors import ConfigurationError, GenerationServiceError
from pdfrag.llm_client import GeminiClient


def _client(handler) -> GeminiClient:
    return GeminiClient(
        api_key="gm-test",
        model="gemini-test",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


def _response(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}, "finishReason": "STOP"}]}


def test_missing_api_key():
    with pytest.raises(ConfigurationError):
        GeminiClient(api_key="")


@pytest.mark.asyncio
async def test_generate_sends_prompt_and_returns_text():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["key"] = request.headers["x-goog-api-key"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=_response("Generated answer"))

    text = await _client(handler).generate("PROMPT")

    assert text == "Generated answer"
    assert seen["url"].endswith("/models/gemini-test:generateContent")
    assert seen["key"] == "gm-test"
    assert seen["body"] == {"contents": [{"parts": [{"text": "PROMPT"}]}]}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {},
        {"candidates": []},
        {"candidates": [{"finishReason": "SAFETY"}]},
        _response(""),
    ],
)
async def test_missing_output_raises(body):
    with pytest.raises(GenerationServiceError):
        await _client(lambda r: httpx.Response(200, json=body)).generate("p")


@pytest.mark.asyncio
async def test_http_error_raises():
    with pytest.raises(GenerationServiceError):
        await _client(lambda r: httpx.Response(503, text="overloaded")).generate("p")


@pytest.mark.asyncio
async def test_unreachable_raises():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(GenerationServiceError):
        await _client(handler).generate("p")
