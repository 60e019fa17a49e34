"""
Tool execution for model-issued tool uses.

The executor is the one place where a ToolUse turns into a side effect.
Its contract:

- unknown tool names produce an error result, so the model can be told;
- a missing or non-string required field is a hard error
  (SerializationError) returned to the caller, not to the model;
- any other failure becomes an error result whose content describes it.
"""

from __future__ import annotations

import abc as _abc
import logging as _logging
import time as _time
import typing as _typing

import pprog.api.errors as errors
import pprog.api.types as api_types
import pprog.tools.base as tools_base
import pprog.tools.registry as tools_registry

if _typing.TYPE_CHECKING:
    import pprog.logging as pprog_logging

_logger = _logging.getLogger(__name__)


class ToolExecutionCallbacks(_abc.ABC):
    """
    Hooks for front ends that display tool calls or ask before running them.
    """

    @_abc.abstractmethod
    async def show_tool_call(self, tool_use: api_types.ToolUseContent) -> None:
        """Display that a tool is about to be called."""
        ...

    @_abc.abstractmethod
    async def request_permission(self, tool_use: api_types.ToolUseContent) -> bool:
        """Ask whether the tool may run. Returns True if granted."""
        ...

    @_abc.abstractmethod
    async def show_tool_result(
        self,
        tool_use: api_types.ToolUseContent,
        result: tools_base.ToolResult,
    ) -> None:
        """Display the result of a tool execution."""
        ...


class ToolExecutor:
    """
    Executes tools from a registry, recording metrics and log events.
    """

    def __init__(
        self,
        registry: tools_registry.ToolRegistry,
        *,
        callbacks: ToolExecutionCallbacks | None = None,
        logger: pprog_logging.ConversationLogger | None = None,
    ) -> None:
        """
        Initialize the tool executor.

        Args:
            registry: Registry of available tools.
            callbacks: Optional display/permission hooks; without them
                every call runs unprompted.
            logger: Optional conversation logger.
        """
        self._registry = registry
        self._callbacks = callbacks
        self._logger = logger
        self._metrics = tools_base.MetricsCollector()

    @property
    def registry(self) -> tools_registry.ToolRegistry:
        return self._registry

    @property
    def metrics(self) -> tools_base.MetricsCollector:
        return self._metrics

    async def execute(
        self,
        name: str,
        input: dict[str, _typing.Any],
    ) -> tools_base.ToolResult:
        """
        Execute a tool by name.

        Args:
            name: Tool name as issued by the model
            input: Structured tool input

        Returns:
            The tool's result; unknown tools yield an error result

        Raises:
            SerializationError: If a required field is missing or not a string
        """
        tool = self._registry.get(name)
        if tool is None:
            return tools_base.ToolResult(success=False, output="", error=f"Invalid tool name: {name}")

        for field in tool.declaration.required:
            if not isinstance(input.get(field), str):
                raise errors.SerializationError(f"Missing or invalid '{field}' input")

        start_time = _time.perf_counter()
        try:
            result = await tool.execute(input)
        except Exception as e:
            _logger.exception("Tool %s raised", name)
            result = tools_base.ToolResult(success=False, output="", error=str(e))
        duration_ms = (_time.perf_counter() - start_time) * 1000
        self._metrics.record(name, result.success, duration_ms)
        _logger.debug("Tool %s finished in %.0fms (success=%s)", name, duration_ms, result.success)
        return result

    async def run(self, tool_use: api_types.ToolUseContent) -> api_types.ToolResultContent:
        """
        Execute a model-issued tool use and wrap the outcome as a ToolResult item.

        Runs the display and permission callbacks when configured.

        Raises:
            SerializationError: If a required field is missing or not a string
        """
        if self._logger:
            self._logger.log_tool_use(tool_use)

        if self._callbacks:
            await self._callbacks.show_tool_call(tool_use)
            if not await self._callbacks.request_permission(tool_use):
                result = tools_base.ToolResult(success=False, output="", error="Permission denied by user")
                return await self._finish(tool_use, result)

        result = await self.execute(tool_use.name, tool_use.input)
        return await self._finish(tool_use, result)

    async def _finish(
        self,
        tool_use: api_types.ToolUseContent,
        result: tools_base.ToolResult,
    ) -> api_types.ToolResultContent:
        if self._logger:
            self._logger.log_tool_result(tool_use, result)
        if self._callbacks:
            await self._callbacks.show_tool_result(tool_use, result)
        return to_result_content(tool_use, result)


def to_result_content(
    tool_use: api_types.ToolUseContent,
    result: tools_base.ToolResult,
) -> api_types.ToolResultContent:
    """Correlate a tool result with the tool use that produced it."""
    return api_types.ToolResultContent(tool_use_id=tool_use.id, content=result.content)
