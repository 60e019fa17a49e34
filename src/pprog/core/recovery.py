"""
Failure recovery.

When a model query fails the conversation may end in a state no provider
accepts: a ToolUse with no ToolResult, or a result with nothing after it.
Recovery rolls the history back to the last *checkpoint* (a User message
holding exactly one Text item) and appends a placeholder Assistant turn
so the next user message alternates correctly.
"""

from __future__ import annotations

import logging as _logging

import pprog.api.errors as errors
import pprog.api.types as types
import pprog.constants as _constants

_logger = _logging.getLogger(__name__)


def rollback_to_checkpoint(messages: list[types.Message]) -> bool:
    """
    Pop messages until the last one is a simple user text message.

    Leading System messages are never popped; reaching one means there is
    no checkpoint. A conversation that already ends at a checkpoint is left
    untouched.

    Args:
        messages: Conversation history (mutated)

    Returns:
        True if a checkpoint was reached, False if the history ran out
    """
    while messages:
        last = messages[-1]
        if last.is_simple_user_text():
            return True
        if last.role.is_system:
            return False
        messages.pop()
    return False


def recover(
    messages: list[types.Message],
    error: errors.InferenceError,
) -> errors.InferenceError:
    """
    Apply the recovery policy after a failed query.

    Args:
        messages: Conversation history (mutated)
        error: The error that interrupted the query

    Returns:
        The same error, annotated RECOVERED or UNRECOVERABLE
    """
    before = len(messages)
    if rollback_to_checkpoint(messages):
        messages.append(types.Message.assistant_text(_constants.INTERRUPTED_PLACEHOLDER))
        error.recovery = errors.RecoveryStatus.RECOVERED
        _logger.info("Recovered after %s: dropped %d message(s)", type(error).__name__, before - len(messages) + 1)
    else:
        error.recovery = errors.RecoveryStatus.UNRECOVERABLE
        _logger.warning("Unrecoverable %s: no checkpoint in history", type(error).__name__)
    return error
