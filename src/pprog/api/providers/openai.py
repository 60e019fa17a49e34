"""
OpenAI Chat Completions adapter.

Differences from the canonical model that this adapter absorbs:

- The system prompt is the first message (``developer`` for o1 models).
- Assistant tool calls carry their arguments as a JSON *string*; the
  adapter serializes and parses that second layer so canonical tool input
  stays structured.
- Tool results are not content items but separate ``role: tool``
  messages with a ``tool_call_id``, so they are hoisted out of their
  canonical message.
- o1 models reject ``max_tokens`` in favour of ``max_completion_tokens``.

With ``tool_mode="fenced"`` no native tool calling is used. Tools are
described in the system prompt and the model answers with a fenced
``tool_use`` block, which is scanned for only after structured parsing
found no tool calls.
"""

from __future__ import annotations

import json as _json
import logging as _logging
import re as _re
import typing as _typing
import uuid as _uuid

import pprog.api.base as base
import pprog.api.errors as errors
import pprog.api.types as types

if _typing.TYPE_CHECKING:
    import pprog.tools.base as tools_base

_logger = _logging.getLogger(__name__)

ToolMode = _typing.Literal["native", "fenced"]

O1_MODELS: frozenset[str] = frozenset({"o1", "o1-mini", "o1-preview"})
"""Models that use the developer role and max_completion_tokens."""

_FENCED_TOOL_USE = _re.compile(r"```tool_use[ \t]*\n(?P<body>.*?)\n?```", _re.DOTALL)

FENCED_TOOL_INSTRUCTIONS = """\
You can use the following tools. To call one, reply with exactly one fenced
block labelled tool_use containing a JSON object with "name" and "input":

```tool_use
{{"name": "read_file", "input": {{"path": "src/main.rs"}}}}
```

Results come back in a message starting with "Tool result". Available tools:

{tools}"""


def is_o1_model(model: str) -> bool:
    return model in O1_MODELS or model.startswith(("o1-", "o1_"))


def parse_arguments(name: str, arguments: _typing.Any) -> dict[str, _typing.Any]:
    """
    Decode the string-encoded tool arguments of an OpenAI tool call.

    Raises:
        SerializationError: If the arguments are not a JSON object
    """
    if isinstance(arguments, dict):
        return arguments
    if arguments in (None, ""):
        return {}
    try:
        parsed = _json.loads(arguments)
    except (TypeError, _json.JSONDecodeError) as e:
        raise errors.SerializationError(f"Invalid JSON arguments for tool '{name}': {e}") from e
    if not isinstance(parsed, dict):
        raise errors.SerializationError(f"Arguments for tool '{name}' are not a JSON object")
    return parsed


def tool_call_to_wire(item: types.ToolUseContent) -> dict[str, _typing.Any]:
    return {
        "id": item.id,
        "type": "function",
        "function": {"name": item.name, "arguments": _json.dumps(item.input)},
    }


def extract_fenced_tool_use(
    text: str,
) -> tuple[str, types.ToolUseContent] | None:
    """
    Find a fenced ``tool_use`` block in generated text.

    Returns:
        Tuple of (text with the block removed, synthesized tool use), or
        None if there is no block holding a JSON object with a string
        "name". Plain answers are never turned into tool calls.
    """
    match = _FENCED_TOOL_USE.search(text)
    if match is None:
        return None
    try:
        payload = _json.loads(match.group("body"))
    except _json.JSONDecodeError:
        _logger.debug("Ignoring tool_use block with invalid JSON")
        return None
    if not isinstance(payload, dict) or not isinstance(payload.get("name"), str):
        return None
    tool_input = payload.get("input", {})
    if not isinstance(tool_input, dict):
        return None

    remaining = (text[: match.start()] + text[match.end():]).strip()
    tool_use = types.ToolUseContent(
        id=f"call_{_uuid.uuid4().hex[:12]}",
        name=payload["name"],
        input=tool_input,
    )
    return remaining, tool_use


def render_fenced_tool_use(item: types.ToolUseContent) -> str:
    body = _json.dumps({"name": item.name, "input": item.input})
    return f"```tool_use\n{body}\n```"


class OpenAIAdapter(base.ProviderAdapter):
    """Adapter for the OpenAI Chat Completions API."""

    def __init__(
        self,
        model: str,
        max_output_tokens: int,
        *,
        tool_mode: ToolMode = "native",
    ) -> None:
        super().__init__(model, max_output_tokens)
        self._tool_mode = tool_mode

    @property
    def name(self) -> str:
        return "openai"

    @property
    def tool_mode(self) -> ToolMode:
        return self._tool_mode

    @property
    def system_role(self) -> str:
        return "developer" if is_o1_model(self.model) else "system"

    def endpoint(self) -> str:
        return "/chat/completions"

    def headers(self, api_key: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    def to_wire(
        self,
        messages: list[types.Message],
        system_prompt: str | None,
        tools: list[tools_base.ToolDeclaration],
    ) -> dict[str, _typing.Any]:
        wire: list[dict[str, _typing.Any]] = []

        system_text = system_prompt
        if self._tool_mode == "fenced" and tools:
            instructions = FENCED_TOOL_INSTRUCTIONS.format(
                tools="\n".join(
                    f"- {t.name}: {t.description} Parameters: {_json.dumps(t.json_schema)}"
                    for t in tools
                )
            )
            system_text = f"{system_text}\n\n{instructions}" if system_text else instructions
        if system_text:
            wire.append({"role": self.system_role, "content": system_text})

        for message in messages:
            wire.extend(self._message_to_wire(message))

        payload: dict[str, _typing.Any] = {"model": self.model, "messages": wire}
        if is_o1_model(self.model):
            payload["max_completion_tokens"] = self.max_output_tokens
        else:
            payload["max_tokens"] = self.max_output_tokens
        if tools and self._tool_mode == "native":
            payload["tools"] = [tool.to_openai_format() for tool in tools]
        return payload

    def _message_to_wire(self, message: types.Message) -> list[dict[str, _typing.Any]]:
        if message.role.is_system:
            return [{"role": self.system_role, "content": message.text}]

        if self._tool_mode == "fenced":
            return [self._fenced_message_to_wire(message)]

        # Tool messages must directly follow the assistant turn that called them,
        # so hoisted results come before any text in the same canonical message.
        out: list[dict[str, _typing.Any]] = [
            {"role": "tool", "tool_call_id": result.tool_use_id, "content": result.content}
            for result in message.tool_results
        ]

        text = message.text
        tool_uses = message.tool_uses
        if message.role is types.Role.ASSISTANT:
            entry: dict[str, _typing.Any] = {"role": "assistant", "content": text or None}
            if tool_uses:
                entry["tool_calls"] = [tool_call_to_wire(item) for item in tool_uses]
            if text or tool_uses:
                out.append(entry)
        elif text:
            out.append({"role": "user", "content": text})
        return out

    def _fenced_message_to_wire(self, message: types.Message) -> dict[str, _typing.Any]:
        parts: list[str] = []
        for item in message.content:
            if isinstance(item, types.TextContent):
                parts.append(item.text)
            elif isinstance(item, types.ToolUseContent):
                parts.append(render_fenced_tool_use(item))
            else:
                parts.append(f"Tool result ({item.tool_use_id}):\n{item.content}")
        role = "assistant" if message.role is types.Role.ASSISTANT else "user"
        return {"role": role, "content": "\n\n".join(parts)}

    def message_from_wire(self, data: dict[str, _typing.Any]) -> types.Message:
        """
        Parse one Chat Completions message to canonical form.

        Raises:
            InvalidResponse: If a tool call is missing its function
            SerializationError: If tool call arguments are not valid JSON
        """
        role = data.get("role", "assistant")
        if role == "tool":
            return types.Message.tool_result(data.get("tool_call_id", ""), data.get("content") or "")

        content: list[types.ContentItem] = []
        text = data.get("content")
        if isinstance(text, str) and text:
            content.append(types.TextContent(text))

        for call in base.wire_list(data.get("tool_calls"), "tool_calls", optional=True):
            function = call.get("function") if isinstance(call, dict) else None
            if not isinstance(function, dict) or "name" not in function:
                raise errors.InvalidResponse(f"Malformed tool call: {call!r}")
            content.append(
                types.ToolUseContent(
                    id=call.get("id", ""),
                    name=function["name"],
                    input=parse_arguments(function["name"], function.get("arguments")),
                )
            )

        if not any(isinstance(item, types.ToolUseContent) for item in content) and text:
            content = self._scan_fenced(text, content)

        try:
            canonical_role = types.Role(role)
        except ValueError:
            canonical_role = types.Role.ASSISTANT
        return types.Message(role=canonical_role, content=content)

    def _scan_fenced(
        self,
        text: str,
        content: list[types.ContentItem],
    ) -> list[types.ContentItem]:
        if self._tool_mode != "fenced":
            return content
        found = extract_fenced_tool_use(text)
        if found is None:
            return content
        remaining, tool_use = found
        items: list[types.ContentItem] = [types.TextContent(remaining)] if remaining else []
        items.append(tool_use)
        return items

    def from_wire(self, body: _typing.Any) -> types.ModelResponse:
        if not isinstance(body, dict):
            raise errors.InvalidResponse("OpenAI response is not an object")
        choices = base.wire_list(body.get("choices"), "choices", optional=True)
        if not choices:
            raise errors.InvalidResponse("No choices in response")

        choice = base.wire_object(choices[0], "Choice")
        message = choice.get("message")
        if not isinstance(message, dict):
            raise errors.InvalidResponse("Choice has no message")

        usage = base.wire_object(body.get("usage"), "usage", optional=True)
        return types.ModelResponse(
            content=self.message_from_wire(message).content,
            stop_reason=choice.get("finish_reason"),
            usage=types.Usage(
                input_tokens=usage.get("prompt_tokens", 0),
                output_tokens=usage.get("completion_tokens", 0),
            ),
        )
