"""
Anthropic Messages API adapter.

Anthropic content is already a tagged array of ``text``, ``tool_use`` and
``tool_result`` blocks, so the mapping to canonical items is one to one.
The system prompt travels in a top-level ``system`` field, never as a
message, and tool results go back inside ``user`` messages.
"""

from __future__ import annotations

import logging as _logging
import typing as _typing

import pprog.api.base as base
import pprog.api.errors as errors
import pprog.api.types as types
import pprog.constants as _constants

if _typing.TYPE_CHECKING:
    import pprog.tools.base as tools_base

_logger = _logging.getLogger(__name__)


def block_to_wire(item: types.ContentItem) -> dict[str, _typing.Any]:
    """Render one canonical item as an Anthropic content block."""
    if isinstance(item, types.TextContent):
        return {"type": "text", "text": item.text}
    if isinstance(item, types.ToolUseContent):
        return {"type": "tool_use", "id": item.id, "name": item.name, "input": item.input}
    return {"type": "tool_result", "tool_use_id": item.tool_use_id, "content": item.content}


def block_from_wire(block: _typing.Any) -> types.ContentItem | None:
    """
    Parse one Anthropic content block.

    Returns:
        Canonical item, or None for block kinds with no canonical form
        (e.g. ``thinking``)

    Raises:
        InvalidResponse: If a known block is missing fields
        SerializationError: If tool input is not a JSON object
    """
    if not isinstance(block, dict):
        raise errors.InvalidResponse(f"Content block is not an object: {block!r}")

    kind = block.get("type")
    try:
        if kind == "text":
            return types.TextContent(text=block["text"])
        if kind == "tool_use":
            tool_input = block.get("input", {})
            if not isinstance(tool_input, dict):
                raise errors.SerializationError(
                    f"Tool input for '{block.get('name')}' is not a JSON object"
                )
            return types.ToolUseContent(id=block["id"], name=block["name"], input=tool_input)
        if kind == "tool_result":
            return types.ToolResultContent(
                tool_use_id=block["tool_use_id"],
                content=_tool_result_text(block.get("content", "")),
            )
    except KeyError as e:
        raise errors.InvalidResponse(f"Missing {e} in '{kind}' block") from e

    _logger.debug("Skipping unsupported content block type: %s", kind)
    return None


def _tool_result_text(content: _typing.Any) -> str:
    # tool_result content may be a plain string or a list of text blocks
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "".join(
            part.get("text", "") for part in content if isinstance(part, dict)
        )
    return str(content)


def render_messages(
    messages: list[types.Message],
    system_prompt: str | None,
) -> tuple[str | None, list[dict[str, _typing.Any]]]:
    """
    Split canonical history into Anthropic's (system, messages) pair.

    System and Developer messages are folded into the system text in order.
    Tool-role messages become ``user`` messages.

    Returns:
        Tuple of (system text or None, wire messages)
    """
    system_parts = [system_prompt] if system_prompt else []
    wire: list[dict[str, _typing.Any]] = []

    for message in messages:
        if message.role.is_system:
            if message.text and message.text not in system_parts:
                system_parts.append(message.text)
            continue
        role = "assistant" if message.role is types.Role.ASSISTANT else "user"
        wire.append({"role": role, "content": [block_to_wire(item) for item in message.content]})

    system = "\n\n".join(system_parts) if system_parts else None
    return system, wire


def parse_usage(data: _typing.Any) -> types.Usage:
    if not isinstance(data, dict):
        return types.Usage()
    cached = data.get("cache_read_input_tokens")
    return types.Usage(
        input_tokens=data.get("input_tokens", 0),
        output_tokens=data.get("output_tokens", 0),
        details=types.UsageDetails(cached_tokens=cached) if cached else None,
    )


def parse_response(body: _typing.Any) -> types.ModelResponse:
    """Parse a Messages API response body (shared with Bedrock)."""
    if not isinstance(body, dict) or not isinstance(body.get("content"), list):
        raise errors.InvalidResponse("Anthropic response has no content array")

    content = [item for item in map(block_from_wire, body["content"]) if item is not None]
    return types.ModelResponse(
        content=content,
        stop_reason=body.get("stop_reason"),
        usage=parse_usage(body.get("usage")),
    )


class AnthropicAdapter(base.ProviderAdapter):
    """Adapter for api.anthropic.com."""

    @property
    def name(self) -> str:
        return "anthropic"

    def endpoint(self) -> str:
        return "/messages"

    def headers(self, api_key: str) -> dict[str, str]:
        return {
            "x-api-key": api_key,
            "anthropic-version": _constants.ANTHROPIC_API_VERSION,
            "content-type": "application/json",
        }

    def to_wire(
        self,
        messages: list[types.Message],
        system_prompt: str | None,
        tools: list[tools_base.ToolDeclaration],
    ) -> dict[str, _typing.Any]:
        system, wire_messages = render_messages(messages, system_prompt)
        payload: dict[str, _typing.Any] = {
            "model": self.model,
            "max_tokens": self.max_output_tokens,
            "messages": wire_messages,
        }
        if system:
            payload["system"] = system
        if tools:
            payload["tools"] = [tool.to_anthropic_format() for tool in tools]
        return payload

    def from_wire(self, body: _typing.Any) -> types.ModelResponse:
        return parse_response(body)

    def message_from_wire(self, data: dict[str, _typing.Any]) -> types.Message:
        """Parse a request-side wire message back to canonical form."""
        content = data.get("content")
        if isinstance(content, str):
            items: list[types.ContentItem] = [types.TextContent(content)]
        else:
            items = [item for item in map(block_from_wire, content or []) if item is not None]
        role = types.Role.ASSISTANT if data.get("role") == "assistant" else types.Role.USER
        if items and all(isinstance(item, types.ToolResultContent) for item in items):
            role = types.Role.TOOL
        return types.Message(role=role, content=items)

    @property
    def supports_token_counting(self) -> bool:
        return True

    def count_endpoint(self) -> str:
        return "/messages/count_tokens"

    def to_count_wire(
        self,
        messages: list[types.Message],
        system_prompt: str | None,
        tools: list[tools_base.ToolDeclaration],
    ) -> dict[str, _typing.Any]:
        payload = self.to_wire(messages, system_prompt, tools)
        payload.pop("max_tokens")
        return payload

    def parse_token_count(self, body: _typing.Any) -> int:
        if not isinstance(body, dict) or not isinstance(body.get("input_tokens"), int):
            raise errors.InvalidResponse("Token count response has no input_tokens")
        return body["input_tokens"]
