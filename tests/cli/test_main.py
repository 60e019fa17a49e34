"""Tests for CLI main module."""

import io as _io
import json as _json
import os as _os
import pathlib as _pathlib
import unittest.mock as _mock

import click.testing as _click_testing
import pytest as _pytest
import rich.console as _rich_console
import yaml as _yaml

import pprog.cli as cli
import pprog.cli.main as cli_main
import pprog.core.chat as chat
import pprog.ui as ui
import tests.conftest as conftest


@_pytest.fixture
def runner(isolated_env, project: _pathlib.Path):
    """CliRunner isolated from provider keys, with the project root pinned."""
    with isolated_env, _mock.patch.dict(_os.environ, {"PPROG_PROJECT_ROOT": str(project)}):
        yield _click_testing.CliRunner()


class TestCLIBasics:
    def test_help_lists_commands(self, runner: _click_testing.CliRunner) -> None:
        result = runner.invoke(cli.cli, ["--help"])

        assert result.exit_code == 0
        for cmd in ["chat", "serve", "init", "config", "tools"]:
            assert cmd in result.output, f"Command '{cmd}' missing from help"

    def test_version(self, runner: _click_testing.CliRunner) -> None:
        result = runner.invoke(cli.cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_unknown_provider_rejected(self, runner: _click_testing.CliRunner) -> None:
        result = runner.invoke(cli.cli, ["--provider", "mistral", "tools"])
        assert result.exit_code != 0


class TestConfigShow:
    def test_json_output_masks_key(self, runner: _click_testing.CliRunner, project: _pathlib.Path) -> None:
        with _mock.patch.dict(_os.environ, {"PPROG_API_KEY": "sk-abcdefghijklmnop"}):
            result = runner.invoke(cli.cli, ["--provider", "gemini", "config", "show", "--json"])

        assert result.exit_code == 0
        data = _json.loads(result.output)
        assert data["provider"] == "gemini"
        assert data["api_key"] == "sk-a...mnop"
        assert data["project_root"] == str(project.resolve())

    def test_yaml_output(self, runner: _click_testing.CliRunner) -> None:
        result = runner.invoke(cli.cli, ["config", "show"])

        assert result.exit_code == 0
        assert _yaml.safe_load(result.output)["provider"] == "anthropic"

    def test_invalid_setting_is_reported(self, runner: _click_testing.CliRunner) -> None:
        with _mock.patch.dict(_os.environ, {"PPROG_MAX_CONTEXT": "zero"}):
            result = runner.invoke(cli.cli, ["config", "show"])

        assert result.exit_code != 0
        assert "max_context" in result.output


class TestTools:
    def test_lists_tools_without_check(self, runner: _click_testing.CliRunner) -> None:
        result = runner.invoke(cli.cli, ["tools"])

        assert result.exit_code == 0
        names = [line.split(":")[0] for line in result.output.splitlines()]
        assert names == ["read_file", "write_file", "execute"]

    def test_json_includes_compile_check_when_configured(
        self, runner: _click_testing.CliRunner, project: _pathlib.Path
    ) -> None:
        (project / "Cargo.toml").write_text("[package]\n")

        result = runner.invoke(cli.cli, ["tools", "--json"])

        assert result.exit_code == 0
        declared = _json.loads(result.output)
        assert [d["name"] for d in declared][-1] == "compile_check"
        assert "input_schema" in declared[0]


class TestInit:
    def test_writes_config(self, runner: _click_testing.CliRunner, project: _pathlib.Path) -> None:
        (project / "tsconfig.json").write_text("{}")

        result = runner.invoke(cli.cli, ["init"])

        assert result.exit_code == 0
        data = _yaml.safe_load((project / "pprog.yaml").read_text())
        assert data["provider"] == "anthropic"
        assert data["check_cmd"] == "tsc --noEmit"

    def test_refuses_to_overwrite(self, runner: _click_testing.CliRunner, project: _pathlib.Path) -> None:
        (project / "pprog.yaml").write_text("provider: gemini\n")

        result = runner.invoke(cli.cli, ["init"])

        assert result.exit_code != 0
        assert "already exists" in result.output
        assert (project / "pprog.yaml").read_text() == "provider: gemini\n"

    def test_force_overwrites(self, runner: _click_testing.CliRunner, project: _pathlib.Path) -> None:
        (project / "pprog.yaml").write_text("provider: gemini\n")

        result = runner.invoke(cli.cli, ["init", "--force"])

        assert result.exit_code == 0
        assert "No check command detected" in result.output
        assert "check_cmd" not in _yaml.safe_load((project / "pprog.yaml").read_text())


class TestSend:
    @_pytest.mark.asyncio
    async def test_tool_round_limit_leaves_chat_ready_for_text(self, registry) -> None:
        looping = [
            conftest.tool_use_response("read_file", {"path": "main.py"}, id=f"toolu_{i}")
            for i in range(2)
        ]
        client = conftest.ScriptedClient([*looping, conftest.text_response("ok")])
        conversation = chat.Chat(client, registry=registry, auto_execute=True, max_tool_rounds=1)
        output = _io.StringIO()
        renderer = ui.ConsoleRenderer(_rich_console.Console(file=output), auto_approve=True)

        assert await cli_main._send(conversation, renderer, "loop")
        assert "maximum number of tool rounds" in output.getvalue()
        assert conversation.state is chat.ChatState.IDLE

        assert await cli_main._send(conversation, renderer, "next")
        assert conversation.get_messages()[-1].text == "ok"
