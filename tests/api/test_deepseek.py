"""Tests for the DeepSeek adapter."""

import pytest as _pytest

import pprog.api.errors as errors
import pprog.api.providers.deepseek as deepseek
import pprog.api.types as types


@_pytest.fixture
def adapter() -> deepseek.DeepSeekAdapter:
    return deepseek.DeepSeekAdapter("deepseek-chat", 4096)


class TestToWire:
    def test_regular_and_tool_shapes(self, adapter: deepseek.DeepSeekAdapter) -> None:
        messages = [
            types.Message.user_text("run ls"),
            types.Message(
                role=types.Role.ASSISTANT,
                content=[
                    types.ToolUseContent(id="call_a", name="execute", input={"statement": "ls"}),
                    types.ToolUseContent(id="call_b", name="execute", input={"statement": "pwd"}),
                ],
            ),
            types.Message.tool_result("call_a", "a.rs"),
        ]

        payload = adapter.to_wire(messages, "sys", [])

        wire = payload["messages"]
        assert wire[0] == {"role": "system", "content": "sys"}
        assert wire[1] == {"role": "user", "content": "run ls"}
        # Content is always a string, never null
        assert wire[2]["content"] == ""
        assert [c["index"] for c in wire[2]["tool_calls"]] == [0, 1]
        assert wire[2]["tool_calls"][1]["function"] == {"name": "execute", "arguments": '{"statement": "pwd"}'}
        assert wire[3] == {"role": "tool", "content": "a.rs", "tool_call_id": "call_a"}
        assert payload["max_tokens"] == 4096

    def test_no_token_counting_endpoint(self, adapter: deepseek.DeepSeekAdapter) -> None:
        assert not adapter.supports_token_counting
        with _pytest.raises(NotImplementedError):
            adapter.count_endpoint()


class TestFromWire:
    def test_tool_calls_sorted_by_index(self, adapter: deepseek.DeepSeekAdapter) -> None:
        body = {
            "choices": [
                {
                    "message": {
                        "role": "assistant",
                        "content": "Checking.",
                        "tool_calls": [
                            {"id": "c2", "index": 1, "function": {"name": "execute", "arguments": '{"statement": "pwd"}'}},
                            {"id": "c1", "index": 0, "function": {"name": "read_file", "arguments": '{"path": "a"}'}},
                        ],
                    },
                    "finish_reason": "tool_calls",
                }
            ],
            "usage": {"prompt_tokens": 50, "completion_tokens": 9, "prompt_cache_hit_tokens": 32},
        }

        response = adapter.from_wire(body)

        assert response.content == [
            types.TextContent("Checking."),
            types.ToolUseContent(id="c1", name="read_file", input={"path": "a"}),
            types.ToolUseContent(id="c2", name="execute", input={"statement": "pwd"}),
        ]
        assert response.usage.details == types.UsageDetails(cached_tokens=32, provider="deepseek")

    def test_tool_shape_message(self, adapter: deepseek.DeepSeekAdapter) -> None:
        message = adapter.message_from_wire({"role": "tool", "content": "out", "tool_call_id": "c1"})
        assert message == types.Message.tool_result("c1", "out")

    def test_empty_content_string_has_no_text_item(self, adapter: deepseek.DeepSeekAdapter) -> None:
        message = adapter.message_from_wire({"role": "assistant", "content": ""})
        assert message.content == []

    def test_no_choices(self, adapter: deepseek.DeepSeekAdapter) -> None:
        with _pytest.raises(errors.InvalidResponse):
            adapter.from_wire({"choices": None})

    @_pytest.mark.parametrize(
        "body",
        [
            {"choices": ["oops"]},
            {"choices": [{"message": {"content": "hi"}}], "usage": ["n/a"]},
            {"choices": [{"message": {"content": "", "tool_calls": ["call"]}}]},
        ],
    )
    def test_malformed_nested_values(self, adapter: deepseek.DeepSeekAdapter, body) -> None:
        with _pytest.raises(errors.InvalidResponse):
            adapter.from_wire(body)
