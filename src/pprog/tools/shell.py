"""
Shell tools: execute and compile_check.

Both run through ``/bin/sh`` in the project root with credentials
stripped from the environment.

``compile_check`` deliberately does not wait for the check command to
finish. The command is started in the background and the whole process
group is killed after a fixed short delay; whatever it printed by then is
returned. Long builds therefore report partial output, which keeps each
tool round bounded in latency.
"""

from __future__ import annotations

import asyncio as _asyncio
import logging as _logging
import os as _os
import pathlib as _pathlib
import signal as _signal
import typing as _typing

import pprog.constants as _constants
import pprog.tools.base as base

_logger = _logging.getLogger(__name__)

# Patterns for environment variables that should never reach a subprocess
_ENV_BLOCKLIST_PATTERNS: tuple[str, ...] = (
    "_API_KEY",
    "_SECRET",
    "_TOKEN",
    "_PASSWORD",
    "_CREDENTIAL",
    "AWS_",
    "PPROG_",
)


def _subprocess_env() -> dict[str, str]:
    """Current environment minus anything that looks like a credential."""
    return {
        key: value
        for key, value in _os.environ.items()
        if not any(pattern in key.upper() for pattern in _ENV_BLOCKLIST_PATTERNS)
    }


def _decode(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


class ExecuteTool(base.Tool):
    """Run a shell statement to completion and return stdout plus stderr."""

    def __init__(
        self,
        project_root: _pathlib.Path | None = None,
        timeout: float = _constants.DEFAULT_EXECUTE_TIMEOUT,
    ) -> None:
        self._project_root = project_root or _pathlib.Path.cwd()
        self._timeout = timeout

    @property
    def declaration(self) -> base.ToolDeclaration:
        return base.ToolDeclaration(
            name="execute",
            description="Execute bash statements as a single string.",
            parameters={
                "statement": base.ToolParameter(
                    type="string",
                    description="The bash statement to be executed.",
                ),
            },
            required=("statement",),
        )

    async def execute(self, input: dict[str, _typing.Any]) -> base.ToolResult:
        statement = input["statement"]
        _logger.debug("execute: %s", statement)

        try:
            proc = await _asyncio.create_subprocess_shell(
                statement,
                stdout=_asyncio.subprocess.PIPE,
                stderr=_asyncio.subprocess.PIPE,
                cwd=str(self._project_root),
                env=_subprocess_env(),
            )
        except OSError as e:
            return base.ToolResult(success=False, output="", error=f"Failed to execute command: {e}")

        try:
            stdout, stderr = await _asyncio.wait_for(proc.communicate(), timeout=self._timeout)
        except TimeoutError:
            proc.kill()
            await proc.wait()
            return base.ToolResult(
                success=False,
                output="",
                error=f"Command timed out after {self._timeout:g}s",
            )

        output = _decode(stdout) + _decode(stderr)
        if proc.returncode != 0:
            return base.ToolResult(
                success=False,
                output=output,
                error=f"exit status {proc.returncode}\n{output}".rstrip(),
            )
        return base.ToolResult(success=True, output=output)


class CompileCheckTool(base.Tool):
    """
    Run the project's check command with bounded latency.

    The command runs in its own process group so the kill reaches any
    children the shell spawned (compilers, test runners).
    """

    def __init__(
        self,
        project_root: _pathlib.Path | None = None,
        check_cmd: str | None = None,
        timeout: float = _constants.DEFAULT_CHECK_TIMEOUT,
    ) -> None:
        self._project_root = project_root or _pathlib.Path.cwd()
        self._check_cmd = check_cmd
        self._timeout = timeout

    @property
    def check_cmd(self) -> str | None:
        return self._check_cmd

    @property
    def declaration(self) -> base.ToolDeclaration:
        description = "Check if project compiles or runs without error."
        if self._check_cmd:
            description += f" The project's check command is: {self._check_cmd}"
        return base.ToolDeclaration(
            name="compile_check",
            description=description,
            parameters={
                "cmd": base.ToolParameter(
                    type="string",
                    description="The command to check for compiler/interpreter errors.",
                ),
            },
            required=("cmd",),
        )

    async def execute(self, input: dict[str, _typing.Any]) -> base.ToolResult:
        # The configured command wins; the model-supplied one is only a fallback
        cmd = self._check_cmd or input["cmd"]
        _logger.debug("compile_check: %s (killed after %gs)", cmd, self._timeout)

        try:
            proc = await _asyncio.create_subprocess_shell(
                cmd,
                stdout=_asyncio.subprocess.PIPE,
                stderr=_asyncio.subprocess.STDOUT,
                cwd=str(self._project_root),
                env=_subprocess_env(),
                start_new_session=True,
            )
        except OSError as e:
            return base.ToolResult(success=False, output="", error=f"Failed to run check: {e}")

        chunks: list[bytes] = []

        async def drain() -> None:
            assert proc.stdout is not None
            while chunk := await proc.stdout.read(4096):
                chunks.append(chunk)

        reader = _asyncio.create_task(drain())
        killed = False
        try:
            await _asyncio.wait_for(proc.wait(), timeout=self._timeout)
        except TimeoutError:
            killed = True
            self._kill_group(proc.pid)
            await proc.wait()

        # Output is whatever arrived before exit or kill
        try:
            await _asyncio.wait_for(reader, timeout=1.0)
        except TimeoutError:
            reader.cancel()

        output = _decode(b"".join(chunks))
        if killed:
            return base.ToolResult(
                success=True,
                output=output + f"\n[check stopped after {self._timeout:g}s]",
            )
        if proc.returncode != 0:
            return base.ToolResult(
                success=False,
                output=output,
                error=f"exit status {proc.returncode}\n{output}".rstrip(),
            )
        return base.ToolResult(success=True, output=output)

    @staticmethod
    def _kill_group(pid: int) -> None:
        try:
            _os.killpg(pid, _signal.SIGKILL)
        except ProcessLookupError:
            pass
