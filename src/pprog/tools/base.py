"""
Base classes for the tool system.

Tools are the only way the model touches the project. Each tool has a
provider-independent declaration (name, description, parameters) that
adapters render into their own schema dialect, and an execute method.
"""

from __future__ import annotations

import abc as _abc
import dataclasses as _dataclasses
import pathlib as _pathlib
import typing as _typing

import pprog.tools.sandbox as sandbox


@_dataclasses.dataclass
class ToolResult:
    """
    Result of executing a tool.

    All tools return this standardized result format.
    """

    success: bool
    output: str
    error: str | None = None

    @property
    def content(self) -> str:
        """Text handed back to the model: output on success, else the error."""
        if self.success:
            return self.output
        return f"Error: {self.error or 'unknown error'}"

    def to_dict(self) -> dict[str, _typing.Any]:
        """Convert to JSON-serializable dict."""
        return {
            "success": self.success,
            "output": self.output,
            "error": self.error,
        }


@_dataclasses.dataclass
class ToolMetrics:
    """Call counts and durations for one tool over a session."""

    tool_name: str
    call_count: int = 0
    success_count: int = 0
    total_duration_ms: float = 0.0

    @property
    def failure_count(self) -> int:
        return self.call_count - self.success_count

    @property
    def average_duration_ms(self) -> float:
        """Average duration per call in milliseconds."""
        if self.call_count == 0:
            return 0.0
        return self.total_duration_ms / self.call_count

    def to_dict(self) -> dict[str, _typing.Any]:
        """Convert to JSON-serializable dict."""
        return {
            "tool_name": self.tool_name,
            "call_count": self.call_count,
            "success_count": self.success_count,
            "failure_count": self.failure_count,
            "total_duration_ms": self.total_duration_ms,
            "average_duration_ms": self.average_duration_ms,
        }


class MetricsCollector:
    """Collects tool metrics across a session."""

    def __init__(self) -> None:
        self._metrics: dict[str, ToolMetrics] = {}

    def record(self, tool_name: str, success: bool, duration_ms: float) -> None:
        metrics = self._metrics.setdefault(tool_name, ToolMetrics(tool_name=tool_name))
        metrics.call_count += 1
        if success:
            metrics.success_count += 1
        metrics.total_duration_ms += duration_ms

    def get(self, tool_name: str) -> ToolMetrics | None:
        return self._metrics.get(tool_name)

    def to_dict(self) -> dict[str, dict[str, _typing.Any]]:
        return {name: m.to_dict() for name, m in self._metrics.items()}


@_dataclasses.dataclass(frozen=True)
class ToolParameter:
    """One named tool parameter."""

    type: str
    description: str


@_dataclasses.dataclass(frozen=True)
class ToolDeclaration:
    """
    Provider-independent tool declaration.

    Static data; each adapter picks the rendering its provider expects.
    """

    name: str
    description: str
    parameters: dict[str, ToolParameter]
    required: tuple[str, ...] = ()

    @property
    def json_schema(self) -> dict[str, _typing.Any]:
        """JSON schema object describing the parameters."""
        return {
            "type": "object",
            "properties": {
                name: {"type": param.type, "description": param.description}
                for name, param in self.parameters.items()
            },
            "required": list(self.required),
        }

    def to_anthropic_format(self) -> dict[str, _typing.Any]:
        """Convert to Anthropic API tool format."""
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.json_schema,
        }

    def to_openai_format(self) -> dict[str, _typing.Any]:
        """
        Convert to OpenAI API format.

        OpenAI nests the schema under function.parameters.
        """
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.json_schema,
            },
        }

    def to_gemini_format(self) -> dict[str, _typing.Any]:
        """Convert to one entry of Gemini's functionDeclarations list."""
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.json_schema,
        }


class Tool(_abc.ABC):
    """
    Abstract base class for all tools.

    Subclasses must implement:
    - declaration (property): name, description and parameters
    - execute(): The actual tool implementation
    """

    @property
    @_abc.abstractmethod
    def declaration(self) -> ToolDeclaration:
        """Declaration advertised to the model."""
        ...

    @_abc.abstractmethod
    async def execute(self, input: dict[str, _typing.Any]) -> ToolResult:
        """
        Execute the tool with the given input.

        Input has already been checked for required string fields by the
        executor.

        Args:
            input: Dictionary matching the declaration's parameters

        Returns:
            ToolResult with success status, output, and optional error
        """
        ...

    @property
    def name(self) -> str:
        return self.declaration.name

    def __repr__(self) -> str:
        return f"<Tool {self.name}>"


class SandboxMixin:
    """
    Mixin for tools that resolve paths against the project root.

    Attributes:
        _project_root: Directory all tool paths are relative to
    """

    _project_root: _pathlib.Path

    def _resolve_path_or_error(self, path: str) -> _pathlib.Path | ToolResult:
        """
        Resolve a path, returning a ToolResult error if it escapes the root.

        Args:
            path: Path relative to the project root

        Returns:
            Resolved absolute path, or ToolResult with error
        """
        try:
            return sandbox.resolve_in_root(path, self._project_root)
        except sandbox.PathValidationError as e:
            return ToolResult(success=False, output="", error=str(e))
