"""
HTTP model client shared by every JSON-over-HTTPS provider.

The client owns the ``httpx.AsyncClient`` and the error mapping; the
adapter it is paired with decides URLs, headers and body shapes.
"""

from __future__ import annotations

import logging as _logging
import typing as _typing

import httpx as _httpx

import pprog.api.base as base
import pprog.api.errors as errors
import pprog.api.types as types
import pprog.constants as _constants

if _typing.TYPE_CHECKING:
    import pprog.tools.base as tools_base

_logger = _logging.getLogger(__name__)


class HTTPModelClient(base.ModelClient):
    """
    Model client for HTTP providers (Anthropic, OpenAI, DeepSeek, Gemini).

    A non-2xx response becomes ApiError carrying the raw body; it is never
    parsed as a success payload. Nothing is retried.
    """

    def __init__(
        self,
        adapter: base.ProviderAdapter,
        *,
        api_key: str | None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: _httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            adapter: Adapter for the provider's wire format
            api_key: Provider API key; MissingApiKey is raised on first use if None
            base_url: API base URL (default: the provider's public endpoint)
            timeout: Request timeout in seconds (default: httpx's default)
            transport: Custom httpx transport (used by tests)
        """
        self._adapter = adapter
        self._api_key = api_key
        self._base_url = (base_url or _constants.DEFAULT_BASE_URLS[adapter.name]).rstrip("/")
        kwargs: dict[str, _typing.Any] = {"base_url": self._base_url}
        if timeout is not None:
            kwargs["timeout"] = timeout
        if transport is not None:
            kwargs["transport"] = transport
        self._client = _httpx.AsyncClient(**kwargs)

    @property
    def adapter(self) -> base.ProviderAdapter:
        return self._adapter

    @property
    def base_url(self) -> str:
        return self._base_url

    def _require_key(self) -> str:
        if not self._api_key:
            raise errors.MissingApiKey(
                self._adapter.name,
                _constants.API_KEY_ENV_VARS.get(self._adapter.name),
            )
        return self._api_key

    async def _post(self, path: str, payload: dict[str, _typing.Any]) -> _typing.Any:
        headers = self._adapter.headers(self._require_key())
        _logger.debug("POST %s%s", self._base_url, path)

        try:
            response = await self._client.post(path, json=payload, headers=headers)
        except _httpx.HTTPError as e:
            raise errors.NetworkError(f"Request to {self._adapter.name} failed: {e}") from e

        if not response.is_success:
            raise errors.ApiError(response.status_code, response.text)

        try:
            return response.json()
        except ValueError as e:
            raise errors.InvalidResponse(f"Response is not valid JSON: {e}") from e

    async def query(
        self,
        messages: list[types.Message],
        system_prompt: str | None,
        tools: list[tools_base.ToolDeclaration],
    ) -> types.ModelResponse:
        payload = self._adapter.to_wire(messages, system_prompt, tools)
        body = await self._post(self._adapter.endpoint(), payload)
        response = self._adapter.from_wire(body)
        _logger.debug(
            "%s responded: stop=%s in=%d out=%d",
            self._adapter.name,
            response.stop_reason,
            response.usage.input_tokens,
            response.usage.output_tokens,
        )
        return response

    async def count_tokens(
        self,
        messages: list[types.Message],
        system_prompt: str | None,
        tools: list[tools_base.ToolDeclaration],
    ) -> int | None:
        if not self._adapter.supports_token_counting:
            return None
        payload = self._adapter.to_count_wire(messages, system_prompt, tools)
        body = await self._post(self._adapter.count_endpoint(), payload)
        return self._adapter.parse_token_count(body)

    async def close(self) -> None:
        await self._client.aclose()
