"""
DeepSeek chat adapter.

DeepSeek speaks an OpenAI-compatible dialect, but its messages form a
two-shape union: a *regular* message (``role``, string ``content`` and
optional ``tool_calls`` with an ``index``) or a *tool* message
(``role: tool``, ``content``, ``tool_call_id``). Content is always a
string, never null.
"""

from __future__ import annotations

import json as _json
import typing as _typing

import pprog.api.base as base
import pprog.api.errors as errors
import pprog.api.providers.openai as openai
import pprog.api.types as types

if _typing.TYPE_CHECKING:
    import pprog.tools.base as tools_base


def regular_message(
    role: str,
    content: str,
    tool_uses: list[types.ToolUseContent] | None = None,
) -> dict[str, _typing.Any]:
    """Build the regular shape of a DeepSeek message."""
    message: dict[str, _typing.Any] = {"role": role, "content": content}
    if tool_uses:
        message["tool_calls"] = [
            {
                "id": item.id,
                "type": "function",
                "index": index,
                "function": {"name": item.name, "arguments": _json.dumps(item.input)},
            }
            for index, item in enumerate(tool_uses)
        ]
    return message


def tool_message(result: types.ToolResultContent) -> dict[str, _typing.Any]:
    """Build the tool shape of a DeepSeek message."""
    return {"role": "tool", "content": result.content, "tool_call_id": result.tool_use_id}


class DeepSeekAdapter(base.ProviderAdapter):
    """Adapter for api.deepseek.com."""

    @property
    def name(self) -> str:
        return "deepseek"

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
        if system_prompt:
            wire.append(regular_message("system", system_prompt))

        for message in messages:
            wire.extend(tool_message(result) for result in message.tool_results)
            if message.role.is_system:
                wire.append(regular_message("system", message.text))
            elif message.role is types.Role.ASSISTANT:
                wire.append(regular_message("assistant", message.text, message.tool_uses))
            elif message.text:
                wire.append(regular_message("user", message.text))

        payload: dict[str, _typing.Any] = {
            "model": self.model,
            "messages": wire,
            "max_tokens": self.max_output_tokens,
        }
        if tools:
            payload["tools"] = [tool.to_openai_format() for tool in tools]
        return payload

    def message_from_wire(self, data: dict[str, _typing.Any]) -> types.Message:
        """
        Reduce either message shape to canonical form.

        Raises:
            InvalidResponse: If a tool call is missing its function
            SerializationError: If tool call arguments are not valid JSON
        """
        if data.get("role") == "tool":
            return types.Message.tool_result(data.get("tool_call_id", ""), data.get("content") or "")

        content: list[types.ContentItem] = []
        text = data.get("content")
        if isinstance(text, str) and text:
            content.append(types.TextContent(text))

        calls = [
            base.wire_object(call, "Tool call")
            for call in base.wire_list(data.get("tool_calls"), "tool_calls", optional=True)
        ]
        for call in sorted(calls, key=lambda c: c.get("index", 0)):
            function = call.get("function")
            if not isinstance(function, dict) or "name" not in function:
                raise errors.InvalidResponse(f"Malformed tool call: {call!r}")
            content.append(
                types.ToolUseContent(
                    id=call.get("id", ""),
                    name=function["name"],
                    input=openai.parse_arguments(function["name"], function.get("arguments")),
                )
            )

        role = data.get("role", "assistant")
        try:
            canonical_role = types.Role(role)
        except ValueError:
            canonical_role = types.Role.ASSISTANT
        return types.Message(role=canonical_role, content=content)

    def from_wire(self, body: _typing.Any) -> types.ModelResponse:
        if not isinstance(body, dict):
            raise errors.InvalidResponse("DeepSeek response is not an object")
        choices = base.wire_list(body.get("choices"), "choices", optional=True)
        if not choices:
            raise errors.InvalidResponse("No choices in response")

        choice = base.wire_object(choices[0], "Choice")
        message = choice.get("message")
        if not isinstance(message, dict):
            raise errors.InvalidResponse("Choice has no message")

        usage = base.wire_object(body.get("usage"), "usage", optional=True)
        cached = usage.get("prompt_cache_hit_tokens")
        return types.ModelResponse(
            content=self.message_from_wire(message).content,
            stop_reason=choice.get("finish_reason"),
            usage=types.Usage(
                input_tokens=usage.get("prompt_tokens", 0),
                output_tokens=usage.get("completion_tokens", 0),
                details=types.UsageDetails(cached_tokens=cached, provider="deepseek")
                if cached is not None
                else None,
            ),
        )
