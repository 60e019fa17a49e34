"""
Tool system for pprog.

Tools are the interface between the model and the project on disk.
Each tool has a provider-independent declaration and an execute method.

Usage:
    from pprog.tools import build_registry

    registry = build_registry(project_root, check_cmd="cargo check")
    tool = registry.get("read_file")
    result = await tool.execute({"path": "src/main.rs"})
"""

from pprog.tools.base import SandboxMixin, Tool, ToolDeclaration, ToolParameter, ToolResult
from pprog.tools.file import ReadFileTool, WriteFileTool
from pprog.tools.registry import BUILTIN_TOOL_NAMES, ToolRegistry, build_registry
from pprog.tools.sandbox import PathValidationError, resolve_in_root
from pprog.tools.shell import CompileCheckTool, ExecuteTool

__all__ = [
    # Base classes
    "Tool",
    "ToolDeclaration",
    "ToolParameter",
    "ToolResult",
    "SandboxMixin",
    # Registry
    "BUILTIN_TOOL_NAMES",
    "ToolRegistry",
    "build_registry",
    # Sandbox
    "PathValidationError",
    "resolve_in_root",
    # Tools
    "ReadFileTool",
    "WriteFileTool",
    "ExecuteTool",
    "CompileCheckTool",
]
