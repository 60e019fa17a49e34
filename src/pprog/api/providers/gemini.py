"""
Gemini generateContent adapter.

Gemini nests content as ``contents[].parts[]`` where every part is exactly
one of ``text``, ``functionCall`` or ``functionResponse``. A canonical
message with N items fans out into N parts, and N response parts fan back
into N items.

Known limitation: Gemini returns no tool-call ids. Every tool use gets the
constant placeholder id ``"1"``, so when the model issues several calls in
one turn their results cannot be told apart by id. A functionResponse is
named after the most recent preceding call with the same id, which is only
exact for one call per turn.
"""

from __future__ import annotations

import json as _json
import typing as _typing

import pprog.api.base as base
import pprog.api.errors as errors
import pprog.api.types as types
import pprog.constants as _constants

if _typing.TYPE_CHECKING:
    import pprog.tools.base as tools_base

PLACEHOLDER_ID = _constants.GEMINI_PLACEHOLDER_TOOL_ID


def part_to_wire(
    item: types.ContentItem,
    tool_names: dict[str, str],
) -> dict[str, _typing.Any]:
    """
    Render one canonical item as a Gemini part.

    Args:
        item: Canonical content item
        tool_names: Tool name of the most recent ToolUse per id, used to
            name functionResponse parts
    """
    if isinstance(item, types.TextContent):
        return {"text": item.text}
    if isinstance(item, types.ToolUseContent):
        return {"functionCall": {"name": item.name, "args": item.input}}
    name = tool_names.get(item.tool_use_id, "tool")
    return {
        "functionResponse": {
            "name": name,
            "response": {"name": name, "content": item.content},
        }
    }


def part_from_wire(part: _typing.Any) -> types.ContentItem | None:
    """
    Parse one Gemini part.

    Returns:
        Canonical item, or None for parts with no canonical form
        (inline data, executable code)
    """
    if not isinstance(part, dict):
        raise errors.InvalidResponse(f"Part is not an object: {part!r}")

    if "text" in part:
        return types.TextContent(text=part["text"])
    if "functionCall" in part:
        call = part["functionCall"]
        if not isinstance(call, dict) or "name" not in call:
            raise errors.InvalidResponse(f"Malformed functionCall: {call!r}")
        args = call.get("args", {})
        if not isinstance(args, dict):
            raise errors.SerializationError(f"Arguments for '{call['name']}' are not a JSON object")
        return types.ToolUseContent(id=PLACEHOLDER_ID, name=call["name"], input=args)
    if "functionResponse" in part:
        response = base.wire_object(part["functionResponse"], "functionResponse").get("response", {})
        content = response.get("content", response) if isinstance(response, dict) else response
        if not isinstance(content, str):
            content = _json.dumps(content)
        return types.ToolResultContent(tool_use_id=PLACEHOLDER_ID, content=content)
    return None


class GeminiAdapter(base.ProviderAdapter):
    """Adapter for the Gemini API (generativelanguage.googleapis.com)."""

    @property
    def name(self) -> str:
        return "gemini"

    def endpoint(self) -> str:
        return f"/models/{self.model}:generateContent"

    def headers(self, api_key: str) -> dict[str, str]:
        return {
            "x-goog-api-key": api_key,
            "Content-Type": "application/json",
        }

    def _render_contents(
        self,
        messages: list[types.Message],
        system_prompt: str | None,
    ) -> tuple[list[str], list[dict[str, _typing.Any]]]:
        system_parts = [system_prompt] if system_prompt else []
        contents: list[dict[str, _typing.Any]] = []
        tool_names: dict[str, str] = {}

        for message in messages:
            if message.role.is_system:
                if message.text and message.text not in system_parts:
                    system_parts.append(message.text)
                continue

            parts = []
            for item in message.content:
                parts.append(part_to_wire(item, tool_names))
                if isinstance(item, types.ToolUseContent):
                    tool_names[item.id] = item.name
            role = "model" if message.role is types.Role.ASSISTANT else "user"
            contents.append({"role": role, "parts": parts})

        return system_parts, contents

    def to_wire(
        self,
        messages: list[types.Message],
        system_prompt: str | None,
        tools: list[tools_base.ToolDeclaration],
    ) -> dict[str, _typing.Any]:
        system_parts, contents = self._render_contents(messages, system_prompt)
        payload: dict[str, _typing.Any] = {
            "contents": contents,
            "generationConfig": {"maxOutputTokens": self.max_output_tokens},
        }
        if system_parts:
            payload["systemInstruction"] = {"parts": [{"text": text} for text in system_parts]}
        if tools:
            payload["tools"] = [
                {"functionDeclarations": [tool.to_gemini_format() for tool in tools]}
            ]
        return payload

    def from_wire(self, body: _typing.Any) -> types.ModelResponse:
        if not isinstance(body, dict):
            raise errors.InvalidResponse("Gemini response is not an object")
        candidates = base.wire_list(body.get("candidates"), "candidates", optional=True)
        if not candidates:
            raise errors.InvalidResponse("No candidates in response")

        candidate = base.wire_object(candidates[0], "Candidate")
        parts = base.wire_object(candidate.get("content"), "Candidate content", optional=True).get("parts")
        if not isinstance(parts, list):
            raise errors.InvalidResponse("Candidate has no content parts")

        usage = base.wire_object(body.get("usageMetadata"), "usageMetadata", optional=True)
        return types.ModelResponse(
            content=[item for item in map(part_from_wire, parts) if item is not None],
            stop_reason=candidate.get("finishReason"),
            usage=types.Usage(
                input_tokens=usage.get("promptTokenCount", 0),
                output_tokens=usage.get("candidatesTokenCount", 0),
            ),
        )

    @property
    def supports_token_counting(self) -> bool:
        return True

    def count_endpoint(self) -> str:
        return f"/models/{self.model}:countTokens"

    def to_count_wire(
        self,
        messages: list[types.Message],
        system_prompt: str | None,
        tools: list[tools_base.ToolDeclaration],
    ) -> dict[str, _typing.Any]:
        request = self.to_wire(messages, system_prompt, tools)
        request.pop("generationConfig")
        request["model"] = f"models/{self.model}"
        return {"generateContentRequest": request}

    def parse_token_count(self, body: _typing.Any) -> int:
        if not isinstance(body, dict) or not isinstance(body.get("totalTokens"), int):
            raise errors.InvalidResponse("Token count response has no totalTokens")
        return body["totalTokens"]
