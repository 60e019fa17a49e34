"""Tests for the OpenAI adapter, including o1 and fenced tool mode."""

import json as _json

import pytest as _pytest

import pprog.api.errors as errors
import pprog.api.providers.openai as openai
import pprog.api.types as types
import pprog.tools.base as tools_base

EXECUTE = tools_base.ToolDeclaration(
    name="execute",
    description="Run a shell statement.",
    parameters={"statement": tools_base.ToolParameter(type="string", description="statement")},
    required=("statement",),
)


def _tool_round() -> list[types.Message]:
    return [
        types.Message.user_text("list files"),
        types.Message(
            role=types.Role.ASSISTANT,
            content=[types.ToolUseContent(id="call_1", name="execute", input={"statement": "ls"})],
        ),
        types.Message.tool_result("call_1", "a.rs\nb.rs"),
    ]


class TestNativeToWire:
    def test_system_first_and_max_tokens(self) -> None:
        adapter = openai.OpenAIAdapter("gpt-4o", 1000)

        payload = adapter.to_wire([types.Message.user_text("hi")], "Be brief.", [EXECUTE])

        assert payload["messages"][0] == {"role": "system", "content": "Be brief."}
        assert payload["messages"][1] == {"role": "user", "content": "hi"}
        assert payload["max_tokens"] == 1000
        assert payload["tools"][0]["function"]["name"] == "execute"

    def test_tool_arguments_are_string_encoded(self) -> None:
        wire = openai.OpenAIAdapter("gpt-4o", 1000).to_wire(_tool_round(), None, [])["messages"]

        assert wire[1] == {
            "role": "assistant",
            "content": None,
            "tool_calls": [
                {
                    "id": "call_1",
                    "type": "function",
                    "function": {"name": "execute", "arguments": '{"statement": "ls"}'},
                }
            ],
        }
        assert wire[2] == {"role": "tool", "tool_call_id": "call_1", "content": "a.rs\nb.rs"}

    def test_history_system_message_uses_system_role(self) -> None:
        wire = openai.OpenAIAdapter("gpt-4o", 10).to_wire([types.Message.system_text("sys")], None, [])
        assert wire["messages"] == [{"role": "system", "content": "sys"}]


class TestO1:
    def test_developer_role_and_completion_tokens(self) -> None:
        adapter = openai.OpenAIAdapter("o1-mini", 2000)

        payload = adapter.to_wire(
            [types.Message.system_text("rules"), types.Message.user_text("hi")], None, []
        )

        assert payload["messages"][0] == {"role": "developer", "content": "rules"}
        assert payload["max_completion_tokens"] == 2000
        assert "max_tokens" not in payload

    @_pytest.mark.parametrize("model", ["o1", "o1-preview", "o1-2024-12-17"])
    def test_is_o1_model(self, model: str) -> None:
        assert openai.is_o1_model(model)

    def test_gpt4o_is_not_o1(self) -> None:
        assert not openai.is_o1_model("gpt-4o")


class TestNativeFromWire:
    def test_text_response(self) -> None:
        body = {
            "choices": [{"message": {"role": "assistant", "content": "Hello"}, "finish_reason": "stop"}],
            "usage": {"prompt_tokens": 12, "completion_tokens": 3},
        }

        response = openai.OpenAIAdapter("gpt-4o", 10).from_wire(body)

        assert response.content == [types.TextContent("Hello")]
        assert response.stop_reason == "stop"
        assert (response.usage.input_tokens, response.usage.output_tokens) == (12, 3)

    def test_tool_call_arguments_are_decoded(self) -> None:
        body = {
            "choices": [
                {
                    "message": {
                        "role": "assistant",
                        "content": None,
                        "tool_calls": [
                            {
                                "id": "call_abc",
                                "type": "function",
                                "function": {"name": "read_file", "arguments": '{"path": "a.rs"}'},
                            }
                        ],
                    },
                    "finish_reason": "tool_calls",
                }
            ]
        }

        response = openai.OpenAIAdapter("gpt-4o", 10).from_wire(body)

        assert response.content == [
            types.ToolUseContent(id="call_abc", name="read_file", input={"path": "a.rs"})
        ]

    def test_malformed_arguments(self) -> None:
        body = {
            "choices": [
                {
                    "message": {
                        "tool_calls": [
                            {"id": "c", "function": {"name": "read_file", "arguments": "{not json"}}
                        ]
                    }
                }
            ]
        }
        with _pytest.raises(errors.SerializationError, match="read_file"):
            openai.OpenAIAdapter("gpt-4o", 10).from_wire(body)

    def test_no_choices(self) -> None:
        with _pytest.raises(errors.InvalidResponse, match="No choices"):
            openai.OpenAIAdapter("gpt-4o", 10).from_wire({"choices": []})

    @_pytest.mark.parametrize(
        "body",
        [
            {"choices": {"message": {}}},
            {"choices": ["oops"]},
            {"choices": [{"message": {"content": "hi"}}], "usage": "n/a"},
            {"choices": [{"message": {"content": "", "tool_calls": 3}}]},
        ],
    )
    def test_malformed_nested_values(self, body) -> None:
        with _pytest.raises(errors.InvalidResponse):
            openai.OpenAIAdapter("gpt-4o", 10).from_wire(body)

    def test_native_mode_ignores_fenced_text(self) -> None:
        text = '```tool_use\n{"name": "execute", "input": {"statement": "ls"}}\n```'
        body = {"choices": [{"message": {"role": "assistant", "content": text}}]}

        response = openai.OpenAIAdapter("gpt-4o", 10).from_wire(body)

        assert response.content == [types.TextContent(text)]

    def test_tool_role_message(self) -> None:
        message = openai.OpenAIAdapter("gpt-4o", 10).message_from_wire(
            {"role": "tool", "tool_call_id": "call_1", "content": "out"}
        )
        assert message == types.Message.tool_result("call_1", "out")


class TestFencedMode:
    @_pytest.fixture
    def adapter(self) -> openai.OpenAIAdapter:
        return openai.OpenAIAdapter("gpt-4o", 10, tool_mode="fenced")

    def test_tools_described_in_system_prompt(self, adapter: openai.OpenAIAdapter) -> None:
        payload = adapter.to_wire([types.Message.user_text("hi")], "Base.", [EXECUTE])

        system = payload["messages"][0]["content"]
        assert system.startswith("Base.\n\n")
        assert "- execute: Run a shell statement." in system
        assert "tools" not in payload

    def test_tool_round_rendered_as_text(self, adapter: openai.OpenAIAdapter) -> None:
        wire = adapter.to_wire(_tool_round(), None, [])["messages"]

        assert wire[1]["role"] == "assistant"
        assert wire[1]["content"].startswith("```tool_use\n")
        assert _json.loads(wire[1]["content"].split("\n")[1]) == {
            "name": "execute",
            "input": {"statement": "ls"},
        }
        assert wire[2] == {"role": "user", "content": "Tool result (call_1):\na.rs\nb.rs"}

    def test_fenced_block_becomes_tool_use(self, adapter: openai.OpenAIAdapter) -> None:
        text = 'I will list them.\n```tool_use\n{"name": "execute", "input": {"statement": "ls"}}\n```'
        body = {"choices": [{"message": {"role": "assistant", "content": text}}]}

        content = adapter.from_wire(body).content

        assert content[0] == types.TextContent("I will list them.")
        assert isinstance(content[1], types.ToolUseContent)
        assert content[1].name == "execute"
        assert content[1].input == {"statement": "ls"}
        assert content[1].id.startswith("call_")

    def test_plain_answer_stays_text(self, adapter: openai.OpenAIAdapter) -> None:
        text = "Use ```python\nprint(1)\n``` to print."
        body = {"choices": [{"message": {"role": "assistant", "content": text}}]}
        assert adapter.from_wire(body).content == [types.TextContent(text)]

    def test_invalid_json_in_block_stays_text(self, adapter: openai.OpenAIAdapter) -> None:
        text = "```tool_use\nnot json\n```"
        assert openai.extract_fenced_tool_use(text) is None
        body = {"choices": [{"message": {"role": "assistant", "content": text}}]}
        assert adapter.from_wire(body).content == [types.TextContent(text)]
