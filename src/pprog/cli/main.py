"""
Main CLI entry point for pprog.

Provides the command-line interface using Click: an interactive (or
one-shot) terminal chat, the HTTP server, and configuration helpers.
"""

import asyncio as _asyncio
import json as _json
import logging as _logging
import pathlib as _pathlib
import typing as _typing

import click as _click
import pydantic as _pydantic
import rich.logging as _rich_logging
import yaml as _yaml

import pprog
import pprog.api.errors as errors
import pprog.api.factory as api_factory
import pprog.api.types as types
import pprog.config as config
import pprog.constants as _constants
import pprog.core.chat as chat
import pprog.core.message_validators as message_validators
import pprog.session as session
import pprog.tools.registry as tools_registry
import pprog.ui as ui

CONTEXT_SETTINGS: dict[str, _typing.Any] = {
    "help_option_names": ["-h", "--help"],
    "max_content_width": 100,
}

_EXIT_COMMANDS = frozenset({"/exit", "/quit"})


def _configure_logging(verbose: bool) -> None:
    _logging.basicConfig(
        level=_logging.DEBUG if verbose else _logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[_rich_logging.RichHandler(rich_tracebacks=verbose, show_path=verbose)],
    )
    # httpx logs every request at INFO
    _logging.getLogger("httpx").setLevel(_logging.INFO if verbose else _logging.WARNING)


def _load_settings(overrides: dict[str, _typing.Any]) -> config.Settings:
    try:
        return config.Settings(**{k: v for k, v in overrides.items() if v is not None})
    except _pydantic.ValidationError as e:
        raise _click.ClickException(str(e)) from None


@_click.group(context_settings=CONTEXT_SETTINGS)
@_click.version_option(pprog.__version__, "-v", "--version", prog_name="pprog")
@_click.option(
    "--provider",
    type=_click.Choice([kind.value for kind in api_factory.ProviderKind]),
    default=None,
    help="Model provider to use",
)
@_click.option("--model", type=str, default=None, help="Model to use for completions")
@_click.option("--verbose", is_flag=True, help="Enable debug logging")
@_click.pass_context
def cli(
    ctx: _click.Context,
    provider: str | None,
    model: str | None,
    verbose: bool,
) -> None:
    """
    pprog - AI pair programmer.

    \b
    Examples:
        pprog chat                         # Interactive mode
        pprog chat "add a --quiet flag"    # Single request
        pprog serve --port 8080            # HTTP server
        pprog config show                  # Show configuration
    """
    _configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["overrides"] = {"provider": provider, "model": model}


def _get_settings(ctx: _click.Context) -> config.Settings:
    if "settings" not in ctx.obj:
        ctx.obj["settings"] = _load_settings(ctx.obj["overrides"])
    return ctx.obj["settings"]


async def _send(
    conversation: chat.Chat,
    renderer: ui.ConsoleRenderer,
    text: str,
) -> bool:
    """Send one user message; returns False if the error was fatal."""
    try:
        reply = await conversation.handle_message(types.Message.user_text(text))
    except errors.InferenceError as e:
        renderer.show_error(e)
        return e.recovered
    except (ValueError, message_validators.ConversationIntegrityError) as e:
        renderer.show_error(e)
        return False
    renderer.show_assistant_message(reply)
    if reply.tool_uses:
        renderer.show_info("Stopped after the maximum number of tool rounds.")
        await conversation.cancel_pending_tool_uses("Stopped after the maximum number of tool rounds.")
    return True


async def _run_chat(
    conversation: chat.Chat,
    renderer: ui.ConsoleRenderer,
    prompt: str | None,
) -> int:
    try:
        if prompt:
            return 0 if await _send(conversation, renderer, prompt) else 1

        renderer.show_info("Type /clear to reset the conversation, /exit to quit.")
        while True:
            try:
                text = await _asyncio.to_thread(renderer.console.input, "[bold blue]> [/bold blue]")
            except (EOFError, KeyboardInterrupt):
                return 0
            text = text.strip()
            if not text:
                continue
            if text in _EXIT_COMMANDS:
                return 0
            if text == "/clear":
                conversation.clear()
                renderer.show_info("Chat history cleared")
                continue
            await _send(conversation, renderer, text)
    finally:
        await conversation.close()


@cli.command(name="chat")
@_click.option("--yes", "-y", "auto_approve", is_flag=True, help="Run tools without asking")
@_click.option("--no-color", is_flag=True, help="Disable colored output")
@_click.argument("prompt", required=False, nargs=-1)
@_click.pass_context
def chat_cmd(
    ctx: _click.Context,
    auto_approve: bool,
    no_color: bool,
    prompt: tuple[str, ...],
) -> None:
    """Chat about the project, letting the model read, write and check files."""
    settings = _get_settings(ctx)
    renderer = ui.ConsoleRenderer(auto_approve=auto_approve, no_color=no_color)
    try:
        conversation = session.create_chat(settings, callbacks=renderer, auto_execute=True)
    except ValueError as e:
        raise _click.ClickException(str(e)) from None
    exit_code = _asyncio.run(_run_chat(conversation, renderer, " ".join(prompt) or None))
    ctx.exit(exit_code)


@cli.command()
@_click.option("--host", default="127.0.0.1", show_default=True, help="Bind address")
@_click.option("--port", default=8080, show_default=True, type=int, help="Bind port")
@_click.pass_context
def serve(ctx: _click.Context, host: str, port: int) -> None:
    """Serve the chat API over HTTP."""
    import uvicorn as _uvicorn

    import pprog.server as server

    app = server.create_app(_get_settings(ctx))
    _uvicorn.run(app, host=host, port=port)


@cli.command()
@_click.option("--force", is_flag=True, help="Overwrite an existing config file")
def init(force: bool) -> None:
    """Write a pprog.yaml for the current project."""
    root = config.find_project_root()
    path = root / _constants.CONFIG_FILENAME
    if path.exists() and not force:
        raise _click.ClickException(f"{path} already exists (use --force to overwrite)")

    data: dict[str, _typing.Any] = {
        "provider": _constants.DEFAULT_PROVIDER,
        "model": _constants.DEFAULT_MODEL,
        "max_context": _constants.DEFAULT_MAX_CONTEXT,
    }
    check_cmd = config.detect_check_cmd(root)
    if check_cmd:
        data["check_cmd"] = check_cmd
    path.write_text(_yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
    _click.echo(f"Wrote {path}")
    if not check_cmd:
        _click.echo("No check command detected; set check_cmd to enable compile_check.")


@cli.group(name="config")
def config_cmd() -> None:
    """Inspect configuration."""


@config_cmd.command(name="show")
@_click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@_click.pass_context
def config_show(ctx: _click.Context, as_json: bool) -> None:
    """Print the effective settings (API key masked)."""
    data = _get_settings(ctx).to_dict()
    if as_json:
        _click.echo(_json.dumps(data, indent=2, default=str))
    else:
        _click.echo(_yaml.safe_dump(data, sort_keys=False).rstrip())


@cli.command()
@_click.option("--json", "as_json", is_flag=True, help="Output declarations as JSON")
@_click.pass_context
def tools(ctx: _click.Context, as_json: bool) -> None:
    """List the tools declared to the model."""
    settings = _get_settings(ctx)
    root: _pathlib.Path = settings.project_root
    registry = tools_registry.build_registry(
        root,
        settings.get_check_cmd(),
        check_timeout=settings.check_timeout,
    )
    if as_json:
        _click.echo(_json.dumps(registry.to_anthropic_format(), indent=2))
        return
    for declaration in registry.declarations():
        _click.echo(f"{declaration.name}: {declaration.description}")


if __name__ == "__main__":
    cli()
