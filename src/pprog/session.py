"""
Assembles a ready-to-use Chat from loaded settings.

Both front ends (the HTTP server and the terminal) build their
conversations here so they share one wiring of client, tools, token
counting and system prompt.
"""

from __future__ import annotations

import logging as _logging
import pathlib as _pathlib

import pprog.api.factory as api_factory
import pprog.config as config
import pprog.core.chat as chat
import pprog.core.project_tree as project_tree
import pprog.core.prompts as prompts
import pprog.core.tokenizer as tokenizer
import pprog.core.tool_executor as tool_executor
import pprog.logging as pprog_logging
import pprog.tools.registry as tools_registry

_logger = _logging.getLogger(__name__)


def create_conversation_logger(settings: config.Settings) -> pprog_logging.ConversationLogger | None:
    """JSONL conversation logger, or None when logging is disabled."""
    if not settings.log_conversations:
        return None
    return pprog_logging.ConversationLogger(
        log_dir=settings.logs_dir,
        provider=settings.provider,
        model=settings.model,
    )


def create_chat(
    settings: config.Settings,
    *,
    project_root: _pathlib.Path | None = None,
    callbacks: tool_executor.ToolExecutionCallbacks | None = None,
    auto_execute: bool | None = None,
) -> chat.Chat:
    """
    Build a Chat for the configured provider and project.

    Args:
        settings: Loaded settings
        project_root: Override for the settings' project root
        callbacks: Display/permission hooks for tool execution
        auto_execute: Override for settings.auto_execute

    Returns:
        A Chat seeded with the coding-assistant system prompt
    """
    root = project_root or settings.project_root
    check_cmd = settings.check_cmd or config.detect_check_cmd(root)
    registry = tools_registry.build_registry(root, check_cmd, check_timeout=settings.check_timeout)

    client = api_factory.create_client(settings)
    conversation_logger = create_conversation_logger(settings)
    executor = tool_executor.ToolExecutor(
        registry,
        callbacks=callbacks,
        logger=conversation_logger,
    )
    counter = tokenizer.ClientTokenCounter(
        client,
        registry.declarations(),
        fallback=tokenizer.create_estimator(settings.token_estimator, settings.model),
    )
    system_prompt = prompts.system_prompt_provider(
        project_tree.GitTreeProvider(root),
        has_check=check_cmd is not None,
    )

    _logger.debug(
        "Creating chat: provider=%s model=%s root=%s check=%r",
        settings.provider,
        settings.model,
        root,
        check_cmd,
    )
    return chat.Chat(
        client,
        registry=registry,
        system_prompt=system_prompt,
        max_context=settings.max_context,
        token_counter=counter,
        executor=executor,
        auto_execute=settings.auto_execute if auto_execute is None else auto_execute,
        max_tool_rounds=settings.max_tool_rounds,
        conversation_logger=conversation_logger,
    )
