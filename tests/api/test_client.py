"""Tests for the HTTP model client."""

import json as _json
import typing as _typing

import httpx as _httpx
import pytest as _pytest

import pprog.api.client as client
import pprog.api.errors as errors
import pprog.api.providers.anthropic as anthropic
import pprog.api.providers.deepseek as deepseek
import pprog.api.types as types

OK_BODY = {
    "content": [{"type": "text", "text": "Hello"}],
    "stop_reason": "end_turn",
    "usage": {"input_tokens": 10, "output_tokens": 2},
}


def _make_client(
    handler: _typing.Callable[[_httpx.Request], _httpx.Response],
    *,
    api_key: str | None = "test-key",
    adapter: _typing.Any = None,
) -> client.HTTPModelClient:
    return client.HTTPModelClient(
        adapter or anthropic.AnthropicAdapter("claude-3-5-haiku-latest", 512),
        api_key=api_key,
        base_url="https://api.test/v1",
        transport=_httpx.MockTransport(handler),
    )


class TestQuery:
    @_pytest.mark.asyncio
    async def test_success(self) -> None:
        seen: list[_httpx.Request] = []

        def handler(request: _httpx.Request) -> _httpx.Response:
            seen.append(request)
            return _httpx.Response(200, json=OK_BODY)

        http = _make_client(handler)
        response = await http.query([types.Message.user_text("hi")], None, [])
        await http.close()

        assert response.text == "Hello"
        assert str(seen[0].url) == "https://api.test/v1/messages"
        assert seen[0].headers["x-api-key"] == "test-key"
        assert _json.loads(seen[0].content)["messages"][0]["role"] == "user"

    @_pytest.mark.asyncio
    async def test_non_2xx_is_api_error_with_body(self) -> None:
        def handler(request: _httpx.Request) -> _httpx.Response:
            return _httpx.Response(500, text='{"error": "overloaded"}')

        http = _make_client(handler)
        with _pytest.raises(errors.ApiError) as exc_info:
            await http.query([types.Message.user_text("hi")], None, [])

        assert exc_info.value.status_code == 500
        assert exc_info.value.body == '{"error": "overloaded"}'

    @_pytest.mark.asyncio
    async def test_error_body_never_parsed_as_success(self) -> None:
        def handler(request: _httpx.Request) -> _httpx.Response:
            return _httpx.Response(400, json=OK_BODY)

        with _pytest.raises(errors.ApiError):
            await _make_client(handler).query([types.Message.user_text("hi")], None, [])

    @_pytest.mark.asyncio
    async def test_transport_failure_is_network_error(self) -> None:
        def handler(request: _httpx.Request) -> _httpx.Response:
            raise _httpx.ConnectError("connection refused", request=request)

        with _pytest.raises(errors.NetworkError):
            await _make_client(handler).query([types.Message.user_text("hi")], None, [])

    @_pytest.mark.asyncio
    async def test_invalid_json(self) -> None:
        def handler(request: _httpx.Request) -> _httpx.Response:
            return _httpx.Response(200, text="<html>")

        with _pytest.raises(errors.InvalidResponse):
            await _make_client(handler).query([types.Message.user_text("hi")], None, [])

    @_pytest.mark.asyncio
    async def test_missing_key_fails_before_sending(self) -> None:
        seen: list[_httpx.Request] = []

        def handler(request: _httpx.Request) -> _httpx.Response:
            seen.append(request)
            return _httpx.Response(200, json=OK_BODY)

        with _pytest.raises(errors.MissingApiKey, match="ANTHROPIC_API_KEY"):
            await _make_client(handler, api_key=None).query([types.Message.user_text("hi")], None, [])
        assert seen == []


class TestCountTokens:
    @_pytest.mark.asyncio
    async def test_counting_endpoint(self) -> None:
        def handler(request: _httpx.Request) -> _httpx.Response:
            assert request.url.path == "/v1/messages/count_tokens"
            return _httpx.Response(200, json={"input_tokens": 321})

        assert await _make_client(handler).count_tokens([types.Message.user_text("hi")], None, []) == 321

    @_pytest.mark.asyncio
    async def test_unsupported_provider_returns_none(self) -> None:
        def handler(request: _httpx.Request) -> _httpx.Response:
            raise AssertionError("no request expected")

        http = _make_client(handler, adapter=deepseek.DeepSeekAdapter("deepseek-chat", 512))
        assert await http.count_tokens([types.Message.user_text("hi")], None, []) is None


def test_default_base_url() -> None:
    http = client.HTTPModelClient(deepseek.DeepSeekAdapter("deepseek-chat", 512), api_key="k")
    assert http.base_url == "https://api.deepseek.com"
