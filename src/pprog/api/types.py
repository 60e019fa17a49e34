"""
Canonical message model.

Every provider adapter converts to and from these types, so the rest of
the system never sees a vendor wire format. Tool input is always held as
structured JSON (a dict), never as a string-encoded blob.
"""

from __future__ import annotations

import dataclasses as _dataclasses
import enum as _enum
import typing as _typing

import pprog.api.errors as errors


class Role(_enum.StrEnum):
    """Message roles. Exactly one per message."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    DEVELOPER = "developer"
    """Provider-specific alias for SYSTEM."""
    TOOL = "tool"
    """Carries a tool result."""

    @property
    def is_system(self) -> bool:
        return self in (Role.SYSTEM, Role.DEVELOPER)


@_dataclasses.dataclass
class TextContent:
    """Plain text."""

    text: str
    type: _typing.ClassVar[str] = "text"


@_dataclasses.dataclass
class ToolUseContent:
    """A tool invocation request emitted by the assistant."""

    id: str
    name: str
    input: dict[str, _typing.Any]
    type: _typing.ClassVar[str] = "tool_use"


@_dataclasses.dataclass
class ToolResultContent:
    """The result of executing a prior tool use, correlated by id."""

    tool_use_id: str
    content: str
    type: _typing.ClassVar[str] = "tool_result"


ContentItem = TextContent | ToolUseContent | ToolResultContent


def content_item_to_dict(item: ContentItem) -> dict[str, _typing.Any]:
    """Serialize a content item to its tagged JSON form."""
    if isinstance(item, TextContent):
        return {"type": "text", "text": item.text}
    if isinstance(item, ToolUseContent):
        return {"type": "tool_use", "id": item.id, "name": item.name, "input": item.input}
    return {"type": "tool_result", "tool_use_id": item.tool_use_id, "content": item.content}


def content_item_from_dict(data: _typing.Any) -> ContentItem:
    """
    Parse a tagged content item.

    Raises:
        SerializationError: If the tag is unknown or a field is missing or mistyped
    """
    if not isinstance(data, dict):
        raise errors.SerializationError(f"Content item must be an object, got {type(data).__name__}")

    kind = data.get("type")
    try:
        if kind == "text":
            return TextContent(text=_require_str(data, "text"))
        if kind == "tool_use":
            tool_input = data.get("input", {})
            if not isinstance(tool_input, dict):
                raise errors.SerializationError("Tool use 'input' must be an object")
            return ToolUseContent(
                id=_require_str(data, "id"),
                name=_require_str(data, "name"),
                input=tool_input,
            )
        if kind == "tool_result":
            return ToolResultContent(
                tool_use_id=_require_str(data, "tool_use_id"),
                content=_require_str(data, "content"),
            )
    except KeyError as e:
        raise errors.SerializationError(f"Missing field {e} in '{kind}' content item") from e
    raise errors.SerializationError(f"Unknown content item type: {kind!r}")


def _require_str(data: dict[str, _typing.Any], key: str) -> str:
    value = data[key]
    if not isinstance(value, str):
        raise errors.SerializationError(f"Field '{key}' must be a string")
    return value


@_dataclasses.dataclass
class Message:
    """
    A conversation turn.

    Messages sent by a human caller carry exactly one content item.
    Messages returned by a provider may carry several, e.g. explanatory
    text followed by one or more tool uses.
    """

    role: Role
    content: list[ContentItem]

    @classmethod
    def user_text(cls, text: str) -> Message:
        """Construct a single-text user message."""
        return cls(role=Role.USER, content=[TextContent(text)])

    @classmethod
    def assistant_text(cls, text: str) -> Message:
        return cls(role=Role.ASSISTANT, content=[TextContent(text)])

    @classmethod
    def system_text(cls, text: str) -> Message:
        return cls(role=Role.SYSTEM, content=[TextContent(text)])

    @classmethod
    def tool_result(cls, tool_use_id: str, content: str) -> Message:
        """Construct a Tool-role message wrapping one result."""
        return cls(role=Role.TOOL, content=[ToolResultContent(tool_use_id, content)])

    def is_simple_user_text(self) -> bool:
        """True for a User message holding exactly one Text item.

        These are the checkpoints the recovery policy rolls back to.
        """
        return (
            self.role is Role.USER
            and len(self.content) == 1
            and isinstance(self.content[0], TextContent)
        )

    @property
    def text(self) -> str:
        """All text items joined with newlines."""
        return "\n".join(item.text for item in self.content if isinstance(item, TextContent))

    @property
    def tool_uses(self) -> list[ToolUseContent]:
        return [item for item in self.content if isinstance(item, ToolUseContent)]

    @property
    def tool_results(self) -> list[ToolResultContent]:
        return [item for item in self.content if isinstance(item, ToolResultContent)]

    def to_dict(self) -> dict[str, _typing.Any]:
        """Convert to JSON-serializable dict."""
        return {
            "role": self.role.value,
            "content": [content_item_to_dict(item) for item in self.content],
        }

    @classmethod
    def from_dict(cls, data: _typing.Any) -> Message:
        """
        Create from the tagged JSON form.

        Raises:
            SerializationError: If the data is not a well-formed message
        """
        if not isinstance(data, dict):
            raise errors.SerializationError("Message must be an object")
        try:
            role = Role(data.get("role"))
        except ValueError as e:
            raise errors.SerializationError(f"Unknown role: {data.get('role')!r}") from e

        content = data.get("content")
        if isinstance(content, str):
            # Shorthand accepted at the boundary: a bare string is one text item.
            return cls(role=role, content=[TextContent(content)])
        if not isinstance(content, list):
            raise errors.SerializationError("Message 'content' must be a list")
        return cls(role=role, content=[content_item_from_dict(item) for item in content])


@_dataclasses.dataclass
class UsageDetails:
    """Detailed token usage breakdown (provider-specific)."""

    cached_tokens: int | None = None
    """Tokens served from cache (subset of input_tokens)."""

    provider: str | None = None
    """Provider that served the request."""


@_dataclasses.dataclass
class Usage:
    """Token usage information."""

    input_tokens: int = 0
    output_tokens: int = 0

    # Extended details (may be None for providers that don't support them)
    details: UsageDetails | None = None

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


@_dataclasses.dataclass
class ModelResponse:
    """Parsed response from one model query."""

    content: list[ContentItem]
    stop_reason: str | None = None
    usage: Usage = _dataclasses.field(default_factory=Usage)

    @property
    def tool_uses(self) -> list[ToolUseContent]:
        return [item for item in self.content if isinstance(item, ToolUseContent)]

    @property
    def has_tool_use(self) -> bool:
        return len(self.tool_uses) > 0

    @property
    def text(self) -> str:
        return "\n".join(item.text for item in self.content if isinstance(item, TextContent))

    def to_message(self) -> Message:
        """The assistant message to append to the conversation."""
        return Message(role=Role.ASSISTANT, content=list(self.content))
