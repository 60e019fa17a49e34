"""
Tool registry for managing available tools.

The registry holds the fixed tool set for one project and renders the
declarations into each provider's schema dialect.
"""

from __future__ import annotations

import logging as _logging
import pathlib as _pathlib
import typing as _typing

import pprog.constants as _constants
import pprog.tools.base as base
import pprog.tools.file as file
import pprog.tools.shell as shell

_logger = _logging.getLogger(__name__)

BUILTIN_TOOL_NAMES: tuple[str, ...] = ("read_file", "write_file", "execute", "compile_check")
"""Names of the fixed tools, in declaration order."""


class ToolRegistry:
    """
    Registry for tool instances.

    Tools keep their registration order, which is the order they are
    advertised to the model.
    """

    def __init__(self) -> None:
        self._tools: dict[str, base.Tool] = {}

    def register(self, tool: base.Tool) -> None:
        """
        Register a tool instance.

        Args:
            tool: Tool instance to register

        Raises:
            ValueError: If a tool with the same name is already registered
        """
        if tool.name in self._tools:
            raise ValueError(f"Tool '{tool.name}' is already registered")
        self._tools[tool.name] = tool

    def get(self, name: str) -> base.Tool | None:
        """
        Get a tool by name.

        Args:
            name: Tool name (case-sensitive)

        Returns:
            Tool instance or None if not found
        """
        return self._tools.get(name)

    def list_tools(self) -> list[base.Tool]:
        """List all registered tools in registration order."""
        return list(self._tools.values())

    def list_names(self) -> list[str]:
        return list(self._tools.keys())

    def declarations(self) -> list[base.ToolDeclaration]:
        """Declarations of all registered tools."""
        return [tool.declaration for tool in self._tools.values()]

    def to_anthropic_format(self) -> list[dict[str, _typing.Any]]:
        return [d.to_anthropic_format() for d in self.declarations()]

    def to_openai_format(self) -> list[dict[str, _typing.Any]]:
        return [d.to_openai_format() for d in self.declarations()]

    def to_gemini_format(self) -> list[dict[str, _typing.Any]]:
        return [d.to_gemini_format() for d in self.declarations()]

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __iter__(self) -> _typing.Iterator[base.Tool]:
        return iter(self.list_tools())


def build_registry(
    project_root: _pathlib.Path,
    check_cmd: str | None = None,
    *,
    check_timeout: float = _constants.DEFAULT_CHECK_TIMEOUT,
) -> ToolRegistry:
    """
    Build the fixed tool set for a project.

    Args:
        project_root: Directory all tool paths resolve against
        check_cmd: Project check command; compile_check is omitted without one
        check_timeout: Seconds before a running check is killed

    Returns:
        Registry with read_file, write_file, execute and (maybe) compile_check
    """
    registry = ToolRegistry()
    registry.register(file.ReadFileTool(project_root))
    registry.register(file.WriteFileTool(project_root))
    registry.register(shell.ExecuteTool(project_root))
    if check_cmd:
        registry.register(
            shell.CompileCheckTool(project_root, check_cmd, timeout=check_timeout)
        )
    else:
        _logger.debug("No check command configured; compile_check not declared")
    return registry
