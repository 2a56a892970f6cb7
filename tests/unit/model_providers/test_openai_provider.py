"""Tests for the OpenAI-compatible provider against an httpx mock transport."""

from __future__ import annotations

import json

import httpx
import pytest

from lensmap.core.config import LLMConfig
from lensmap.core.exceptions import EnhancementServiceError
from lensmap.core.protocols import IModelProvider
from lensmap.model_providers.openai_provider import OpenAIChatProvider

pytestmark = pytest.mark.asyncio

MESSAGES = [{"role": "user", "content": "1.\"Havana\""}]


def make_provider(handler, api_key="sk-test"):
    config = LLMConfig(api_key=api_key, model="test-model")
    client = httpx.AsyncClient(
        base_url="https://api.test/v1", transport=httpx.MockTransport(handler)
    )
    return OpenAIChatProvider(config, client=client)


async def test_posts_chat_completion():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={
            "choices": [{"message": {"content": '{"results": []}'}}],
            "usage": {"total_tokens": 123},
        })

    provider = make_provider(handler)
    result = await provider.chat(MESSAGES, max_tokens=800, temperature=0.1, json_mode=True)

    assert result.content == '{"results": []}'
    assert result.total_tokens == 123
    assert seen["url"] == "https://api.test/v1/chat/completions"
    assert seen["auth"] == "Bearer sk-test"
    assert seen["body"]["model"] == "test-model"
    assert seen["body"]["max_tokens"] == 800
    assert seen["body"]["response_format"] == {"type": "json_object"}
    await provider.aclose()


async def test_missing_usage_is_none():
    provider = make_provider(
        lambda request: httpx.Response(200, json={"choices": [{"message": {"content": "ok"}}]})
    )
    result = await provider.chat(MESSAGES, max_tokens=100, temperature=0.1)
    assert result.total_tokens is None


async def test_http_error_status():
    provider = make_provider(lambda request: httpx.Response(429, json={"error": "slow down"}))
    with pytest.raises(EnhancementServiceError) as excinfo:
        await provider.chat(MESSAGES, max_tokens=100, temperature=0.1)
    assert excinfo.value.status_code == 429


async def test_malformed_body():
    provider = make_provider(lambda request: httpx.Response(200, json={"choices": []}))
    with pytest.raises(EnhancementServiceError, match="Malformed"):
        await provider.chat(MESSAGES, max_tokens=100, temperature=0.1)


async def test_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    provider = make_provider(handler)
    with pytest.raises(EnhancementServiceError, match="Transport error"):
        await provider.chat(MESSAGES, max_tokens=100, temperature=0.1)


async def test_unconfigured_provider_refuses_to_call():
    calls = []
    provider = make_provider(lambda request: calls.append(request), api_key=None)
    assert not provider.is_configured
    with pytest.raises(EnhancementServiceError):
        await provider.chat(MESSAGES, max_tokens=100, temperature=0.1)
    assert calls == []


async def test_satisfies_protocol():
    provider = make_provider(lambda request: httpx.Response(200))
    assert isinstance(provider, IModelProvider)
    assert provider.is_configured


async def test_aclose_closes_the_client():
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(200)))
    provider = OpenAIChatProvider(LLMConfig(api_key="sk-test"), client=client)

    await provider.aclose()

    assert client.is_closed
