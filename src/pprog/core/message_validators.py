"""Tool-id integrity checks for canonical conversations.

Every ToolResult must reference the id of a ToolUse emitted earlier in the
same conversation. A result that cannot be linked means the history is
corrupted; the orchestrator refuses such results from callers and these
validators let tests assert the property over whole conversations.

Two checks apply to a caller-supplied result. The id must have been
emitted earlier, and it must still be pending: unanswered by the
ToolUses of the latest assistant message. Pending uses are matched one
result per use, so Gemini, which reuses one placeholder id for every
call, still needs one result per call.
"""

import typing as _typing

import pprog.api.types as types


class ConversationIntegrityError(Exception):
    """Raised when a conversation's tool-id links are broken."""

    def __init__(
        self,
        message: str,
        *,
        violation_type: str,
        context: dict[str, _typing.Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.violation_type = violation_type
        self.context = context or {}


def emitted_tool_use_ids(messages: _typing.Iterable[types.Message]) -> set[str]:
    """Ids of every ToolUse in the given messages."""
    return {item.id for message in messages for item in message.tool_uses}


def find_orphan_tool_results(messages: list[types.Message]) -> list[tuple[int, str]]:
    """Find ToolResults whose id was not emitted by an earlier ToolUse.

    Returns:
        List of (message index, tool_use_id) pairs, in order.
    """
    seen: set[str] = set()
    orphans: list[tuple[int, str]] = []
    for i, message in enumerate(messages):
        for result in message.tool_results:
            if result.tool_use_id not in seen:
                orphans.append((i, result.tool_use_id))
        seen.update(item.id for item in message.tool_uses)
    return orphans


def validate_tool_correlation(
    messages: list[types.Message],
    *,
    strict: bool = True,
) -> list[str]:
    """Validate that every ToolResult links back to an earlier ToolUse.

    Args:
        messages: Conversation to check.
        strict: If True, raise on the first orphan. If False, collect and
                return all violations as strings.

    Returns:
        List of violation descriptions (empty if valid).

    Raises:
        ConversationIntegrityError: If strict=True and an orphan is found.
    """
    violations: list[str] = []
    for index, tool_use_id in find_orphan_tool_results(messages):
        description = f"Tool result at {index} has orphan tool_use_id: {tool_use_id!r}"
        if strict:
            raise ConversationIntegrityError(
                description,
                violation_type="orphan_tool_result",
                context={"index": index, "tool_use_id": tool_use_id},
            )
        violations.append(f"[orphan_tool_result] {description}")
    return violations


def check_incoming_tool_result(
    messages: list[types.Message],
    result: types.ToolResultContent,
) -> None:
    """Reject a caller-supplied result that does not answer a known ToolUse.

    Raises:
        ConversationIntegrityError: If no earlier ToolUse has the result's id.
    """
    known = emitted_tool_use_ids(messages)
    if result.tool_use_id not in known:
        raise ConversationIntegrityError(
            f"Tool result references unknown tool_use_id: {result.tool_use_id!r}",
            violation_type="unknown_tool_use_id",
            context={"tool_use_id": result.tool_use_id, "known": sorted(known)},
        )


def pending_tool_uses(messages: list[types.Message]) -> list[types.ToolUseContent]:
    """ToolUses of the latest assistant message that have no result yet.

    Each later ToolResult answers the first still-pending use with its id.
    """
    for index in range(len(messages) - 1, -1, -1):
        if messages[index].role is types.Role.ASSISTANT:
            break
    else:
        return []

    pending = list(messages[index].tool_uses)
    for message in messages[index + 1 :]:
        for result in message.tool_results:
            for position, tool_use in enumerate(pending):
                if tool_use.id == result.tool_use_id:
                    del pending[position]
                    break
    return pending


def check_awaited_tool_result(
    messages: list[types.Message],
    result: types.ToolResultContent,
) -> None:
    """Reject a caller-supplied result unless it answers a pending ToolUse.

    Raises:
        ConversationIntegrityError: If the id is unknown, or names a ToolUse
            that is already answered or belongs to an earlier turn.
    """
    check_incoming_tool_result(messages, result)
    pending = [tool_use.id for tool_use in pending_tool_uses(messages)]
    if result.tool_use_id not in pending:
        raise ConversationIntegrityError(
            f"Tool use {result.tool_use_id!r} is not awaiting a result",
            violation_type="tool_use_not_pending",
            context={"tool_use_id": result.tool_use_id, "pending": pending},
        )


def check_no_pending_tool_uses(messages: list[types.Message]) -> None:
    """Reject new user text while the latest ToolUses are unanswered.

    Raises:
        ConversationIntegrityError: If any ToolUse is still pending.
    """
    pending = [tool_use.id for tool_use in pending_tool_uses(messages)]
    if pending:
        raise ConversationIntegrityError(
            f"Expected a tool result for pending tool use(s): {', '.join(pending)}",
            violation_type="tool_result_expected",
            context={"pending": pending},
        )
