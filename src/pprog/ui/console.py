"""
Rich console renderer.

Prints assistant replies as markdown panels and tool activity as
bordered panels, using the Rich library.
"""

from __future__ import annotations

import asyncio as _asyncio

import rich.console as _rich_console
import rich.markdown as _rich_markdown
import rich.panel as _rich_panel
import rich.prompt as _rich_prompt

import pprog.api.errors as errors
import pprog.api.types as types
import pprog.constants as _constants
import pprog.core.tool_executor as tool_executor
import pprog.tools.base as tools_base


def _truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[: limit - 3] + "..."


class ConsoleRenderer(tool_executor.ToolExecutionCallbacks):
    """
    Rich console output plus tool permission prompts.

    With ``auto_approve`` every tool call runs without asking.
    """

    def __init__(
        self,
        console: _rich_console.Console | None = None,
        *,
        auto_approve: bool = False,
        no_color: bool = False,
    ) -> None:
        self._console = console or _rich_console.Console(no_color=no_color)
        self._auto_approve = auto_approve

    @property
    def console(self) -> _rich_console.Console:
        return self._console

    def show_assistant_message(self, message: types.Message) -> None:
        """Display the text part of an assistant reply."""
        text = message.text.strip()
        if not text:
            return
        self._console.print(
            _rich_panel.Panel(
                _rich_markdown.Markdown(text),
                title="[bold green]Assistant[/bold green]",
                border_style="green",
            )
        )

    def show_error(self, error: Exception) -> None:
        self._console.print(f"[bold red]Error:[/bold red] {error}")
        if isinstance(error, errors.InferenceError) and error.recovered:
            self._console.print("[dim]Conversation rolled back; you can continue.[/dim]")

    def show_info(self, message: str) -> None:
        self._console.print(f"[dim]{message}[/dim]")

    async def show_tool_call(self, tool_use: types.ToolUseContent) -> None:
        input_lines = [
            f"[dim]{key}:[/dim] {_truncate(str(value), 100)}"
            for key, value in tool_use.input.items()
        ]
        self._console.print(
            _rich_panel.Panel(
                "\n".join(input_lines) or "[dim]No parameters[/dim]",
                title=f"[bold yellow]⚡ {tool_use.name}[/bold yellow]",
                border_style="yellow",
            )
        )

    async def request_permission(self, tool_use: types.ToolUseContent) -> bool:
        if self._auto_approve:
            return True
        # Confirm.ask blocks on stdin
        return await _asyncio.to_thread(
            _rich_prompt.Confirm.ask,
            f"[yellow]Allow {tool_use.name}?[/yellow]",
            console=self._console,
            default=False,
        )

    async def show_tool_result(
        self,
        tool_use: types.ToolUseContent,
        result: tools_base.ToolResult,
    ) -> None:
        if result.success:
            output = _truncate(result.output.strip(), _constants.DEFAULT_OUTPUT_TRUNCATE_LENGTH)
            self._console.print(
                _rich_panel.Panel(
                    output or "[dim]No output[/dim]",
                    title=f"[bold green]✓ {tool_use.name}[/bold green]",
                    border_style="green",
                )
            )
        else:
            self._console.print(
                _rich_panel.Panel(
                    f"[red]{_truncate(result.error or 'Unknown error', _constants.DEFAULT_OUTPUT_TRUNCATE_LENGTH)}[/red]",
                    title=f"[bold red]✗ {tool_use.name}[/bold red]",
                    border_style="red",
                )
            )
