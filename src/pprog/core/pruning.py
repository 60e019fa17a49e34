"""
Token-budget pruning.

Before each model query the conversation is trimmed from the front until
the prompt fits the context budget. System messages are never removed and
the remaining messages keep their order.

This is best effort. When only System messages are left the loop stops
even if the prompt is still over budget, and the query goes out anyway.
Pruning can also remove an assistant ToolUse while keeping the ToolResult
that answered it; providers that check pairing will then reject the
request and the recovery policy takes over.
"""

from __future__ import annotations

import logging as _logging

import pprog.api.types as types
import pprog.core.tokenizer as tokenizer

_logger = _logging.getLogger(__name__)


def _oldest_removable(messages: list[types.Message]) -> int | None:
    for index, message in enumerate(messages):
        if not message.role.is_system:
            return index
    return None


async def prune(
    messages: list[types.Message],
    system_prompt: str | None,
    counter: tokenizer.TokenCounter,
    max_context: int,
) -> int:
    """
    Remove the oldest non-System messages until the prompt fits.

    Mutates ``messages`` in place. Terminates after at most
    ``len(messages)`` removals.

    Args:
        messages: Conversation history (mutated)
        system_prompt: System prompt counted alongside the messages
        counter: Token counter (provider endpoint or local estimate)
        max_context: Token budget

    Returns:
        Number of messages removed
    """
    removed = 0
    while True:
        tokens = await counter.count(messages, system_prompt)
        if tokens <= max_context:
            break

        index = _oldest_removable(messages)
        if index is None:
            _logger.warning(
                "Prompt is %d tokens (budget %d) but only system messages remain",
                tokens,
                max_context,
            )
            break

        del messages[index]
        removed += 1
        _logger.debug("Pruned message %d (%d tokens > %d)", index, tokens, max_context)

    return removed
