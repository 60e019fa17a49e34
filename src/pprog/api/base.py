"""
Abstract bases for provider adapters and model clients.

An adapter is pure: it turns canonical messages into a provider request
body and a provider response body back into canonical content. A client
owns the transport and maps failures onto the error taxonomy. Keeping the
two apart lets every adapter be tested from fixture JSON alone.
"""

from __future__ import annotations

import abc as _abc
import typing as _typing

import pprog.api.errors as errors
import pprog.api.types as types

if _typing.TYPE_CHECKING:
    import pprog.tools.base as tools_base


def wire_object(value: _typing.Any, what: str, *, optional: bool = False) -> dict[str, _typing.Any]:
    """
    Check that a value taken from a response body is a JSON object.

    Args:
        value: The nested value
        what: Name used in the error message
        optional: Accept a missing (None) value as an empty object

    Raises:
        InvalidResponse: If the value is not an object
    """
    if value is None and optional:
        return {}
    if not isinstance(value, dict):
        raise errors.InvalidResponse(f"{what} is not an object: {value!r}")
    return value


def wire_list(value: _typing.Any, what: str, *, optional: bool = False) -> list[_typing.Any]:
    """Check that a value taken from a response body is a JSON array."""
    if value is None and optional:
        return []
    if not isinstance(value, list):
        raise errors.InvalidResponse(f"{what} is not an array: {value!r}")
    return value


class ProviderAdapter(_abc.ABC):
    """
    Converts between canonical messages and one provider's wire format.

    Implementations must not perform I/O.
    """

    def __init__(self, model: str, max_output_tokens: int) -> None:
        self._model = model
        self._max_output_tokens = max_output_tokens

    @property
    @_abc.abstractmethod
    def name(self) -> str:
        """Provider name (e.g., 'anthropic', 'gemini')."""
        ...

    @property
    def model(self) -> str:
        return self._model

    @property
    def max_output_tokens(self) -> int:
        return self._max_output_tokens

    @_abc.abstractmethod
    def endpoint(self) -> str:
        """Request path relative to the provider base URL."""
        ...

    @_abc.abstractmethod
    def headers(self, api_key: str) -> dict[str, str]:
        """Authentication and versioning headers for a request."""
        ...

    @_abc.abstractmethod
    def to_wire(
        self,
        messages: list[types.Message],
        system_prompt: str | None,
        tools: list[tools_base.ToolDeclaration],
    ) -> dict[str, _typing.Any]:
        """
        Build the provider request body.

        Args:
            messages: Conversation history in canonical form
            system_prompt: System prompt, sent the way the provider expects
            tools: Tool declarations to advertise

        Returns:
            JSON-serializable request body
        """
        ...

    @_abc.abstractmethod
    def from_wire(self, body: _typing.Any) -> types.ModelResponse:
        """
        Parse a provider response body.

        Raises:
            InvalidResponse: If the body does not have the expected shape
            SerializationError: If a tool call carries malformed JSON input
        """
        ...

    # Token counting is optional; providers without an endpoint keep the defaults

    @property
    def supports_token_counting(self) -> bool:
        return False

    def count_endpoint(self) -> str:
        raise NotImplementedError(f"{self.name} has no token counting endpoint")

    def to_count_wire(
        self,
        messages: list[types.Message],
        system_prompt: str | None,
        tools: list[tools_base.ToolDeclaration],
    ) -> dict[str, _typing.Any]:
        raise NotImplementedError(f"{self.name} has no token counting endpoint")

    def parse_token_count(self, body: _typing.Any) -> int:
        raise NotImplementedError(f"{self.name} has no token counting endpoint")

    def __repr__(self) -> str:
        return f"<{type(self).__name__} model={self._model!r}>"


class ModelClient(_abc.ABC):
    """
    Performs model queries for one provider.

    Clients never touch conversation state; they only translate a
    request into a response or an InferenceError.
    """

    @property
    @_abc.abstractmethod
    def adapter(self) -> ProviderAdapter:
        ...

    @property
    def name(self) -> str:
        return self.adapter.name

    @property
    def model(self) -> str:
        return self.adapter.model

    @_abc.abstractmethod
    async def query(
        self,
        messages: list[types.Message],
        system_prompt: str | None,
        tools: list[tools_base.ToolDeclaration],
    ) -> types.ModelResponse:
        """
        Send the conversation and return the parsed response.

        Raises:
            NetworkError: On transport failure
            ApiError: On a non-2xx status (raw body preserved)
            InvalidResponse: If the body cannot be parsed
            MissingApiKey: If no credentials are configured
            SerializationError: If tool input JSON is malformed
        """
        ...

    async def count_tokens(
        self,
        messages: list[types.Message],
        system_prompt: str | None,
        tools: list[tools_base.ToolDeclaration],
    ) -> int | None:
        """
        Count prompt tokens with the provider's counting endpoint.

        Returns:
            Token count, or None if the provider has no such endpoint
        """
        return None

    async def close(self) -> None:
        """Release transport resources."""
        return None
