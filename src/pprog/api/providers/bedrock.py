"""
Amazon Bedrock adapter and client.

Bedrock hosts several model families behind one ``invoke_model`` call,
each with its own body format:

- Anthropic models take the structured Messages API body (plus
  ``anthropic_version``) and answer like the Anthropic API.
- Meta Llama models are completion-based: the whole conversation is
  templated into a single prompt string with ``[INST]`` and ``<<SYS>>``
  tags, and the answer is the ``generation`` field. There is no tool
  channel; tool results are inlined as text.

Any other family is rejected as unsupported.
"""

from __future__ import annotations

import asyncio as _asyncio
import json as _json
import logging as _logging
import typing as _typing

import boto3 as _boto3
import botocore.exceptions as _botocore_exceptions

import pprog.api.base as base
import pprog.api.errors as errors
import pprog.api.providers.anthropic as anthropic
import pprog.api.types as types
import pprog.constants as _constants

if _typing.TYPE_CHECKING:
    import pprog.tools.base as tools_base

_logger = _logging.getLogger(__name__)

ModelFamily = _typing.Literal["anthropic", "llama", "unsupported"]


def model_family(model_id: str) -> ModelFamily:
    """Classify a Bedrock model id (region prefixes like ``us.`` allowed)."""
    lowered = model_id.lower()
    if "anthropic." in lowered:
        return "anthropic"
    if "meta." in lowered or "llama" in lowered:
        return "llama"
    return "unsupported"


def _flatten_text(message: types.Message) -> str:
    parts: list[str] = []
    for item in message.content:
        if isinstance(item, types.TextContent):
            parts.append(item.text)
        elif isinstance(item, types.ToolResultContent):
            parts.append(f"Tool result:\n{item.content}")
    return "\n".join(parts)


def render_llama_prompt(messages: list[types.Message], system_prompt: str | None) -> str:
    """
    Template a conversation into a Llama instruction prompt.

    User turns close an ``[INST]`` block; assistant turns end the
    sequence and open the next one.
    """
    system_parts = [system_prompt] if system_prompt else []
    system_parts.extend(m.text for m in messages if m.role.is_system and m.text)

    prompt = "<s>[INST] "
    if system_parts:
        system = "\n\n".join(system_parts)
        prompt += f"<<SYS>>\n{system}\n<</SYS>>\n\n"

    for message in messages:
        if message.role.is_system:
            continue
        text = _flatten_text(message)
        if message.role is types.Role.ASSISTANT:
            prompt += f" {text} </s><s>[INST] "
        elif text:
            prompt += f"{text} [/INST]"
    return prompt


class BedrockAdapter(base.ProviderAdapter):
    """Adapter for models hosted on Amazon Bedrock."""

    def __init__(
        self,
        model: str,
        max_output_tokens: int,
        *,
        temperature: float = _constants.DEFAULT_TEMPERATURE,
    ) -> None:
        super().__init__(model, max_output_tokens)
        self._temperature = temperature

    @property
    def name(self) -> str:
        return "bedrock"

    @property
    def family(self) -> ModelFamily:
        return model_family(self.model)

    def endpoint(self) -> str:
        """Bedrock addresses models by id rather than by URL path."""
        return self.model

    def headers(self, api_key: str) -> dict[str, str]:
        return {"contentType": "application/json", "accept": "application/json"}

    def _unsupported(self) -> errors.InvalidResponse:
        return errors.InvalidResponse(f"Unsupported model: {self.model}")

    def to_wire(
        self,
        messages: list[types.Message],
        system_prompt: str | None,
        tools: list[tools_base.ToolDeclaration],
    ) -> dict[str, _typing.Any]:
        family = self.family
        if family == "anthropic":
            system, wire_messages = anthropic.render_messages(messages, system_prompt)
            payload: dict[str, _typing.Any] = {
                "anthropic_version": _constants.BEDROCK_ANTHROPIC_VERSION,
                "max_tokens": self.max_output_tokens,
                "messages": wire_messages,
            }
            if system:
                payload["system"] = system
            if tools:
                payload["tools"] = [tool.to_anthropic_format() for tool in tools]
            return payload
        if family == "llama":
            return {
                "prompt": render_llama_prompt(messages, system_prompt),
                "max_gen_len": self.max_output_tokens,
                "temperature": self._temperature,
                "top_p": 0.9,
            }
        raise self._unsupported()

    def from_wire(self, body: _typing.Any) -> types.ModelResponse:
        family = self.family
        if family == "anthropic":
            return anthropic.parse_response(body)
        if family == "llama":
            if not isinstance(body, dict) or not isinstance(body.get("generation"), str):
                raise errors.InvalidResponse("Llama response has no generation")
            return types.ModelResponse(
                content=[types.TextContent(body["generation"].strip())],
                stop_reason=body.get("stop_reason"),
                usage=types.Usage(
                    input_tokens=body.get("prompt_token_count", 0),
                    output_tokens=body.get("generation_token_count", 0),
                ),
            )
        raise self._unsupported()


class BedrockModelClient(base.ModelClient):
    """
    Model client backed by boto3's ``bedrock-runtime``.

    boto3 is synchronous, so each call runs in a worker thread and does
    not block other conversations on the event loop. Credentials come from
    the standard AWS chain.
    """

    def __init__(
        self,
        adapter: BedrockAdapter,
        *,
        region: str = _constants.DEFAULT_AWS_REGION,
        runtime_client: _typing.Any = None,
    ) -> None:
        self._adapter = adapter
        self._runtime = runtime_client or _boto3.client("bedrock-runtime", region_name=region)

    @property
    def adapter(self) -> BedrockAdapter:
        return self._adapter

    async def query(
        self,
        messages: list[types.Message],
        system_prompt: str | None,
        tools: list[tools_base.ToolDeclaration],
    ) -> types.ModelResponse:
        body = self._adapter.to_wire(messages, system_prompt, tools)
        raw = await _asyncio.to_thread(self._invoke, body)
        return self._adapter.from_wire(raw)

    def _invoke(self, body: dict[str, _typing.Any]) -> _typing.Any:
        _logger.debug("Bedrock invoke_model %s", self._adapter.model)
        try:
            response = self._runtime.invoke_model(
                modelId=self._adapter.endpoint(),
                body=_json.dumps(body),
                contentType="application/json",
                accept="application/json",
            )
        except _botocore_exceptions.NoCredentialsError as e:
            raise errors.MissingApiKey("bedrock", "AWS_ACCESS_KEY_ID") from e
        except _botocore_exceptions.ClientError as e:
            status = e.response.get("ResponseMetadata", {}).get("HTTPStatusCode", 500)
            raise errors.ApiError(status, _json.dumps(e.response.get("Error", {}))) from e
        except _botocore_exceptions.BotoCoreError as e:
            raise errors.NetworkError(f"Bedrock request failed: {e}") from e

        raw = response["body"].read()
        try:
            return _json.loads(raw)
        except (TypeError, ValueError) as e:
            raise errors.InvalidResponse(f"Bedrock returned invalid JSON: {e}") from e
