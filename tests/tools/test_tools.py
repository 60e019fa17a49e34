"""Tests for the file and shell tools."""

import pathlib as _pathlib
import time as _time

import pytest as _pytest

import pprog.tools.file as file
import pprog.tools.sandbox as sandbox
import pprog.tools.shell as shell


class TestSandbox:
    def test_relative_path_resolves_inside_root(self, project: _pathlib.Path) -> None:
        assert sandbox.resolve_in_root("src/lib.py", project) == (project / "src" / "lib.py").resolve()

    def test_parent_escape_rejected(self, project: _pathlib.Path) -> None:
        with _pytest.raises(sandbox.PathValidationError):
            sandbox.resolve_in_root("../outside.txt", project)

    def test_absolute_path_elsewhere_rejected(self, project: _pathlib.Path) -> None:
        with _pytest.raises(sandbox.PathValidationError):
            sandbox.resolve_in_root("/etc/passwd", project)

    def test_symlink_out_of_root_rejected(self, project: _pathlib.Path, tmp_path: _pathlib.Path) -> None:
        outside = tmp_path / "secret.txt"
        outside.write_text("secret")
        (project / "link.txt").symlink_to(outside)

        with _pytest.raises(sandbox.PathValidationError):
            sandbox.resolve_in_root("link.txt", project)


class TestReadFile:
    @_pytest.mark.asyncio
    async def test_reads_whole_file(self, project: _pathlib.Path) -> None:
        result = await file.ReadFileTool(project).execute({"path": "src/lib.py"})
        assert result.success
        assert result.output == "VALUE = 1\n"

    @_pytest.mark.asyncio
    async def test_missing_file(self, project: _pathlib.Path) -> None:
        result = await file.ReadFileTool(project).execute({"path": "nope.rs"})
        assert not result.success
        assert result.error == "File not found: nope.rs"

    @_pytest.mark.asyncio
    async def test_directory_is_not_a_file(self, project: _pathlib.Path) -> None:
        result = await file.ReadFileTool(project).execute({"path": "src"})
        assert result.error == "Not a file: src"

    @_pytest.mark.asyncio
    async def test_binary_file(self, project: _pathlib.Path) -> None:
        (project / "blob.bin").write_bytes(b"\xff\xfe\x00\x81")
        result = await file.ReadFileTool(project).execute({"path": "blob.bin"})
        assert result.error == "Cannot read binary file: blob.bin"

    @_pytest.mark.asyncio
    async def test_escape_is_error_result(self, project: _pathlib.Path) -> None:
        result = await file.ReadFileTool(project).execute({"path": "../../etc/hosts"})
        assert not result.success
        assert "outside the project root" in (result.error or "")


class TestWriteFile:
    @_pytest.mark.asyncio
    async def test_writes_and_creates_parents(self, project: _pathlib.Path) -> None:
        result = await file.WriteFileTool(project).execute(
            {"path": "tests/new/test_a.py", "content": "assert True\n"}
        )
        assert result.success
        assert result.output == "File written successfully"
        assert (project / "tests" / "new" / "test_a.py").read_text() == "assert True\n"

    @_pytest.mark.asyncio
    async def test_overwrites_whole_file(self, project: _pathlib.Path) -> None:
        await file.WriteFileTool(project).execute({"path": "main.py", "content": "x = 2\n"})
        assert (project / "main.py").read_text() == "x = 2\n"

    @_pytest.mark.asyncio
    async def test_escape_does_not_write(self, project: _pathlib.Path, tmp_path: _pathlib.Path) -> None:
        result = await file.WriteFileTool(project).execute({"path": "../escaped.txt", "content": "x"})
        assert not result.success
        assert not (tmp_path / "escaped.txt").exists()


class TestExecute:
    @_pytest.mark.asyncio
    async def test_captures_stdout_and_stderr(self, project: _pathlib.Path) -> None:
        result = await shell.ExecuteTool(project).execute({"statement": "echo out; echo err >&2"})
        assert result.success
        assert result.output == "out\nerr\n"

    @_pytest.mark.asyncio
    async def test_runs_in_project_root(self, project: _pathlib.Path) -> None:
        result = await shell.ExecuteTool(project).execute({"statement": "cat main.py"})
        assert result.output == "print('hello')\n"

    @_pytest.mark.asyncio
    async def test_nonzero_exit(self, project: _pathlib.Path) -> None:
        result = await shell.ExecuteTool(project).execute({"statement": "echo bad; exit 3"})
        assert not result.success
        assert result.error == "exit status 3\nbad"

    @_pytest.mark.asyncio
    async def test_credentials_are_not_inherited(
        self, project: _pathlib.Path, monkeypatch: _pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-secret")
        monkeypatch.setenv("HARMLESS_SETTING", "visible")

        result = await shell.ExecuteTool(project).execute(
            {"statement": 'echo "[$ANTHROPIC_API_KEY][$HARMLESS_SETTING]"'}
        )

        assert result.output == "[][visible]\n"

    @_pytest.mark.asyncio
    async def test_timeout(self, project: _pathlib.Path) -> None:
        result = await shell.ExecuteTool(project, timeout=0.2).execute({"statement": "sleep 5"})
        assert not result.success
        assert result.error == "Command timed out after 0.2s"


class TestCompileCheck:
    def test_declaration_mentions_configured_command(self, project: _pathlib.Path) -> None:
        tool = shell.CompileCheckTool(project, "cargo check")
        assert tool.declaration.name == "compile_check"
        assert tool.declaration.description.endswith("The project's check command is: cargo check")
        assert tool.declaration.required == ("cmd",)

    @_pytest.mark.asyncio
    async def test_configured_command_wins(self, project: _pathlib.Path) -> None:
        tool = shell.CompileCheckTool(project, "echo configured")
        result = await tool.execute({"cmd": "echo from-model"})
        assert result.output == "configured\n"

    @_pytest.mark.asyncio
    async def test_quick_check_reports_full_output(self, project: _pathlib.Path) -> None:
        tool = shell.CompileCheckTool(project, "echo compiled; echo warning >&2")
        result = await tool.execute({"cmd": "ignored"})
        assert result.success
        assert result.output == "compiled\nwarning\n"

    @_pytest.mark.asyncio
    async def test_failing_check(self, project: _pathlib.Path) -> None:
        tool = shell.CompileCheckTool(project, "echo 'error[E0425]'; exit 101")
        result = await tool.execute({"cmd": "ignored"})
        assert not result.success
        assert result.error == "exit status 101\nerror[E0425]"

    @_pytest.mark.slow
    @_pytest.mark.asyncio
    async def test_long_check_is_killed_after_delay(self, project: _pathlib.Path) -> None:
        tool = shell.CompileCheckTool(project, "echo started; sleep 30", timeout=0.5)

        start = _time.monotonic()
        result = await tool.execute({"cmd": "ignored"})
        elapsed = _time.monotonic() - start

        assert elapsed < 5
        assert result.success
        assert result.output.startswith("started\n")
        assert result.output.endswith("[check stopped after 0.5s]")

    @_pytest.mark.asyncio
    async def test_model_command_used_without_configuration(self, project: _pathlib.Path) -> None:
        result = await shell.CompileCheckTool(project).execute({"cmd": "echo fallback"})
        assert result.output == "fallback\n"
