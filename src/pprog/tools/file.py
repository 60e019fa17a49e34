"""
File operation tools: read_file, write_file.

Both operate on whole files, with paths relative to the project root.
"""

from __future__ import annotations

import pathlib as _pathlib
import typing as _typing

import pprog.tools.base as base


class ReadFileTool(base.Tool, base.SandboxMixin):
    """Read a whole file as a string."""

    def __init__(self, project_root: _pathlib.Path | None = None) -> None:
        self._project_root = project_root or _pathlib.Path.cwd()

    @property
    def declaration(self) -> base.ToolDeclaration:
        return base.ToolDeclaration(
            name="read_file",
            description="Read file as string using path relative to root directory of project.",
            parameters={
                "path": base.ToolParameter(
                    type="string",
                    description="The file path relative to the project root directory",
                ),
            },
            required=("path",),
        )

    async def execute(self, input: dict[str, _typing.Any]) -> base.ToolResult:
        path = self._resolve_path_or_error(input["path"])
        if isinstance(path, base.ToolResult):
            return path

        if not path.exists():
            return base.ToolResult(success=False, output="", error=f"File not found: {input['path']}")
        if not path.is_file():
            return base.ToolResult(success=False, output="", error=f"Not a file: {input['path']}")

        try:
            content = path.read_text(encoding="utf-8")
        except UnicodeDecodeError:
            return base.ToolResult(
                success=False,
                output="",
                error=f"Cannot read binary file: {input['path']}",
            )
        except OSError as e:
            return base.ToolResult(success=False, output="", error=f"Failed to read file: {e}")

        return base.ToolResult(success=True, output=content)


class WriteFileTool(base.Tool, base.SandboxMixin):
    """
    Write a whole file.

    Creates parent directories as needed and overwrites existing content.
    """

    def __init__(self, project_root: _pathlib.Path | None = None) -> None:
        self._project_root = project_root or _pathlib.Path.cwd()

    @property
    def declaration(self) -> base.ToolDeclaration:
        return base.ToolDeclaration(
            name="write_file",
            description="Write string to file at path relative to root directory of project.",
            parameters={
                "path": base.ToolParameter(
                    type="string",
                    description="The file path relative to the project root directory",
                ),
                "content": base.ToolParameter(
                    type="string",
                    description="The content to write to the file",
                ),
            },
            required=("path", "content"),
        )

    async def execute(self, input: dict[str, _typing.Any]) -> base.ToolResult:
        path = self._resolve_path_or_error(input["path"])
        if isinstance(path, base.ToolResult):
            return path

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(input["content"], encoding="utf-8")
        except OSError as e:
            return base.ToolResult(success=False, output="", error=f"Failed to write file: {e}")

        return base.ToolResult(success=True, output="File written successfully")
