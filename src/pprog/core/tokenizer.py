"""
Token counting for the pruning policy.

Counts come from the provider's counting endpoint when it has one, and
otherwise from a local estimate. Local estimates are approximate; they
only need to be good enough to keep the prompt under the context budget.
"""

from __future__ import annotations

import abc as _abc
import json as _json
import logging as _logging
import typing as _typing

import tiktoken as _tiktoken

import pprog.api.errors as errors
import pprog.api.types as types

if _typing.TYPE_CHECKING:
    import pprog.api.base as api_base
    import pprog.tools.base as tools_base

_logger = _logging.getLogger(__name__)


def message_text(message: types.Message) -> str:
    """Flatten a message to the text a tokenizer should see."""
    parts: list[str] = []
    for item in message.content:
        if isinstance(item, types.TextContent):
            parts.append(item.text)
        elif isinstance(item, types.ToolUseContent):
            parts.append(item.name)
            parts.append(_json.dumps(item.input))
        else:
            parts.append(item.content)
    return "".join(parts)


def prompt_text(messages: list[types.Message], system_prompt: str | None) -> str:
    return (system_prompt or "") + "".join(message_text(m) for m in messages)


def get_encoder(model: str) -> _tiktoken.Encoding:
    """
    Get a tiktoken encoder for the given model.

    Uses tiktoken's model-to-encoding mapping where available, with fallback
    to cl100k_base for unknown models (a reasonable approximation for
    non-OpenAI models).
    """
    try:
        return _tiktoken.encoding_for_model(model)
    except KeyError:
        return _tiktoken.get_encoding("cl100k_base")


class TokenCounter(_abc.ABC):
    """Counts the tokens of a prompt (messages plus system prompt)."""

    @_abc.abstractmethod
    async def count(self, messages: list[types.Message], system_prompt: str | None) -> int:
        ...


class CharEstimator(TokenCounter):
    """Cheap estimate: one token per two characters."""

    async def count(self, messages: list[types.Message], system_prompt: str | None) -> int:
        return len(prompt_text(messages, system_prompt)) // 2


class TiktokenEstimator(TokenCounter):
    """Local tokenizer estimate using tiktoken."""

    def __init__(self, model: str) -> None:
        self._encoder = get_encoder(model)

    @property
    def encoder_name(self) -> str:
        return self._encoder.name

    async def count(self, messages: list[types.Message], system_prompt: str | None) -> int:
        return len(self._encoder.encode(prompt_text(messages, system_prompt), disallowed_special=()))


class ClientTokenCounter(TokenCounter):
    """
    Counts through the provider's counting endpoint.

    Falls back to a local estimator when the provider has no endpoint or
    the endpoint call fails; the query that follows reports the real error.
    """

    def __init__(
        self,
        client: api_base.ModelClient,
        tools: list[tools_base.ToolDeclaration],
        fallback: TokenCounter | None = None,
    ) -> None:
        self._client = client
        self._tools = tools
        self._fallback = fallback or CharEstimator()

    async def count(self, messages: list[types.Message], system_prompt: str | None) -> int:
        try:
            counted = await self._client.count_tokens(messages, system_prompt, self._tools)
        except errors.InferenceError as e:
            _logger.warning("Token counting failed, using local estimate: %s", e)
            counted = None
        if counted is None:
            return await self._fallback.count(messages, system_prompt)
        return counted


def create_estimator(kind: str, model: str) -> TokenCounter:
    """
    Create a local estimator by name.

    Args:
        kind: 'chars' or 'tiktoken'
        model: Model name, for tokenizer selection

    Raises:
        ValueError: If the kind is unknown
    """
    if kind == "chars":
        return CharEstimator()
    if kind == "tiktoken":
        return TiktokenEstimator(model)
    raise ValueError(f"Unknown token estimator: {kind!r}")
