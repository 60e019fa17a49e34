"""
Shared pytest fixtures for pprog tests.

This file is automatically loaded by pytest. Fixtures defined here are
available to all test files without explicit imports.
"""

import os as _os
import pathlib as _pathlib
import typing as _typing
import unittest.mock as _mock

import pytest as _pytest

import pprog.api.base as api_base
import pprog.api.providers.anthropic as anthropic
import pprog.api.types as api_types
import pprog.config as config
import pprog.tools.registry as tools_registry

# Environment keys that should be cleared for isolated tests
ENV_KEYS_TO_CLEAR = [
    "ANTHROPIC_API_KEY",
    "OPENAI_API_KEY",
    "DEEPSEEK_API_KEY",
    "GEMINI_API_KEY",
]


@_pytest.fixture
def clean_env() -> dict[str, str]:
    """Environment with provider keys and PPROG_* variables removed."""
    return {
        k: v
        for k, v in _os.environ.items()
        if k not in ENV_KEYS_TO_CLEAR and not k.startswith("PPROG_")
    }


@_pytest.fixture
def isolated_env(clean_env: dict[str, str]):
    """
    Context manager that isolates tests from environment variables.

    Usage:
        def test_something(isolated_env):
            with isolated_env:
                settings = config.Settings.construct_without_dotenv()
    """
    return _mock.patch.dict(_os.environ, clean_env, clear=True)


@_pytest.fixture
def project(tmp_path: _pathlib.Path) -> _pathlib.Path:
    """A small non-git project directory."""
    root = tmp_path / "project"
    root.mkdir()
    (root / "main.py").write_text("print('hello')\n")
    (root / "src").mkdir()
    (root / "src" / "lib.py").write_text("VALUE = 1\n")
    return root


@_pytest.fixture
def clean_settings(isolated_env, project: _pathlib.Path) -> _typing.Iterator[config.Settings]:
    """
    Settings isolated from the environment, .env and any real pprog.yaml.

    The project root is pinned to the temporary project.
    """
    with isolated_env, _mock.patch.dict(_os.environ, {"PPROG_PROJECT_ROOT": str(project)}):
        yield config.Settings.construct_without_dotenv()


@_pytest.fixture
def registry(project: _pathlib.Path) -> tools_registry.ToolRegistry:
    return tools_registry.build_registry(project, "true")


# =============================================================================
# Scripted model client
# =============================================================================


def text_response(text: str) -> api_types.ModelResponse:
    return api_types.ModelResponse(
        content=[api_types.TextContent(text=text)],
        stop_reason="end_turn",
        usage=api_types.Usage(input_tokens=10, output_tokens=5),
    )


def tool_use_response(
    name: str,
    input: dict[str, _typing.Any],
    *,
    id: str = "toolu_1",
    text: str | None = None,
) -> api_types.ModelResponse:
    content: list[api_types.ContentItem] = []
    if text:
        content.append(api_types.TextContent(text=text))
    content.append(api_types.ToolUseContent(id=id, name=name, input=input))
    return api_types.ModelResponse(
        content=content,
        stop_reason="tool_use",
        usage=api_types.Usage(input_tokens=10, output_tokens=5),
    )


class ScriptedClient(api_base.ModelClient):
    """
    Model client that replays a script of responses or errors.

    Each query consumes the next entry: a ModelResponse is returned, an
    exception is raised. Every call's messages are recorded as a copy.
    """

    def __init__(
        self,
        script: list[api_types.ModelResponse | Exception],
        *,
        token_count: int | None = None,
    ) -> None:
        self._adapter = anthropic.AnthropicAdapter("scripted-model", 1024)
        self._script = list(script)
        self._token_count = token_count
        self.calls: list[list[api_types.Message]] = []
        self.system_prompts: list[str | None] = []
        self.closed = False

    @property
    def adapter(self) -> api_base.ProviderAdapter:
        return self._adapter

    async def query(
        self,
        messages: list[api_types.Message],
        system_prompt: str | None,
        tools: list[_typing.Any],  # noqa: ARG002
    ) -> api_types.ModelResponse:
        self.calls.append(list(messages))
        self.system_prompts.append(system_prompt)
        if not self._script:
            return text_response("[script exhausted]")
        entry = self._script.pop(0)
        if isinstance(entry, Exception):
            raise entry
        return entry

    async def count_tokens(
        self,
        messages: list[api_types.Message],  # noqa: ARG002
        system_prompt: str | None,  # noqa: ARG002
        tools: list[_typing.Any],  # noqa: ARG002
    ) -> int | None:
        return self._token_count

    async def close(self) -> None:
        self.closed = True

