"""
Conversation orchestrator.

A Chat owns one conversation: the ordered message history, the state
machine, and the pruning and recovery policies that keep the history
acceptable to the provider. It is the only component that mutates the
history.

States::

    IDLE --text--> AWAITING_MODEL --response--> IDLE
                                  --tool use--> AWAITING_TOOL
    AWAITING_TOOL --last pending tool result--> AWAITING_MODEL
    AWAITING_TOOL --cancel--> IDLE
    AWAITING_MODEL --error--> ERROR --recovery--> IDLE

The system prompt lives in the history as a leading System message. When
it is given as a callable it is re-rendered before every query, so the
file tree it embeds reflects the model's latest writes.
"""

from __future__ import annotations

import asyncio as _asyncio
import enum as _enum
import logging as _logging
import typing as _typing

import pprog.api.base as api_base
import pprog.api.errors as errors
import pprog.api.types as types
import pprog.constants as _constants
import pprog.core.message_validators as message_validators
import pprog.core.pruning as pruning
import pprog.core.recovery as recovery
import pprog.core.tokenizer as tokenizer
import pprog.core.tool_executor as tool_executor
import pprog.tools.registry as tools_registry

if _typing.TYPE_CHECKING:
    import pprog.logging as pprog_logging

_logger = _logging.getLogger(__name__)

SystemPrompt = str | _typing.Callable[[], str] | None


class ChatState(_enum.StrEnum):
    IDLE = "idle"
    AWAITING_MODEL = "awaiting_model"
    AWAITING_TOOL = "awaiting_tool"
    ERROR = "error"


class Chat:
    """
    One conversation with a model.

    Calls to :meth:`handle_message` are serialized by a per-chat lock;
    separate Chat instances never share state.
    """

    def __init__(
        self,
        client: api_base.ModelClient,
        *,
        registry: tools_registry.ToolRegistry,
        system_prompt: SystemPrompt = None,
        max_context: int = _constants.DEFAULT_MAX_CONTEXT,
        token_counter: tokenizer.TokenCounter | None = None,
        executor: tool_executor.ToolExecutor | None = None,
        auto_execute: bool = False,
        max_tool_rounds: int = _constants.DEFAULT_MAX_TOOL_ROUNDS,
        conversation_logger: pprog_logging.ConversationLogger | None = None,
    ) -> None:
        """
        Create an empty conversation.

        Args:
            client: Model client for the active provider
            registry: Tools declared to the model
            system_prompt: Fixed text, or a callable rendering it per query
            max_context: Token budget for pruning
            token_counter: Prompt token counter (defaults to len/2 estimate)
            executor: Runs model-issued tool uses; built from the registry
                when omitted
            auto_execute: Run tool uses and re-query without returning to
                the caller, up to max_tool_rounds
            max_tool_rounds: Bound on automatic tool rounds per message
            conversation_logger: Optional JSONL event log
        """
        self._client = client
        self._registry = registry
        self._system_prompt = system_prompt
        self._max_context = max_context
        self._counter = token_counter or tokenizer.CharEstimator()
        self._executor = executor or tool_executor.ToolExecutor(
            registry, logger=conversation_logger
        )
        self._auto_execute = auto_execute
        self._max_tool_rounds = max_tool_rounds
        self._conversation_logger = conversation_logger
        self._lock = _asyncio.Lock()
        self._state = ChatState.IDLE
        self._messages: list[types.Message] = []

        prompt = self._render_system_prompt()
        if prompt is not None:
            self._messages.append(types.Message.system_text(prompt))
            if conversation_logger:
                conversation_logger.log_system_prompt(prompt)

    @property
    def state(self) -> ChatState:
        return self._state

    @property
    def client(self) -> api_base.ModelClient:
        return self._client

    @property
    def executor(self) -> tool_executor.ToolExecutor:
        return self._executor

    def get_messages(self) -> list[types.Message]:
        """Snapshot of the history."""
        return list(self._messages)

    def clear(self) -> None:
        """Drop the history except the leading System message(s)."""
        keep = 0
        while keep < len(self._messages) and self._messages[keep].role.is_system:
            keep += 1
        del self._messages[keep:]
        self._state = ChatState.IDLE
        if self._conversation_logger:
            self._conversation_logger.log_clear(remaining=keep)
        _logger.debug("Cleared chat history (kept %d system message(s))", keep)

    def reconfigure(
        self,
        client: api_base.ModelClient,
        token_counter: tokenizer.TokenCounter | None = None,
    ) -> None:
        """
        Switch to another provider or model; history is kept.

        Pass a new token counter when the old one counted through the
        previous client's endpoint.
        """
        _logger.info("Switching model client %s -> %s", self._client.name, client.name)
        self._client = client
        if token_counter is not None:
            self._counter = token_counter

    async def close(self) -> None:
        """Release the client's transport and close the conversation log."""
        await self._client.close()
        if self._conversation_logger:
            self._conversation_logger.close()

    async def handle_message(self, message: types.Message) -> types.Message:
        """
        Process one caller message and return the reply.

        Text messages are appended and sent to the model; they are refused
        while ToolUses of the latest reply are unanswered. ToolResult
        messages must answer one of those pending ToolUses. The model is
        queried once the last pending ToolUse is answered; until then the
        reply is an assistant message listing the ToolUses still pending.
        A ToolUse message is executed locally and its Tool-role result is
        returned without touching the history.

        Raises:
            ValueError: If the message does not hold exactly one content item
            ConversationIntegrityError: If a ToolResult answers no pending
                ToolUse, or text arrives while ToolUses are pending
            SerializationError: If a ToolUse lacks a required input field
            InferenceError: If the model query failed; the error carries the
                recovery outcome
        """
        if len(message.content) != 1:
            raise ValueError(f"Expected exactly one content item, got {len(message.content)}")

        async with self._lock:
            item = message.content[0]

            if isinstance(item, types.ToolUseContent):
                result = await self._executor.run(item)
                return types.Message(role=types.Role.TOOL, content=[result])

            if isinstance(item, types.ToolResultContent):
                message_validators.check_awaited_tool_result(self._messages, item)
                message = types.Message(role=types.Role.TOOL, content=[item])
            else:
                message_validators.check_no_pending_tool_uses(self._messages)

            self._append(message)

            pending = message_validators.pending_tool_uses(self._messages)
            if pending:
                self._state = ChatState.AWAITING_TOOL
                return types.Message(role=types.Role.ASSISTANT, content=list(pending))
            return await self._query_loop()

    async def cancel_pending_tool_uses(self, reason: str = "Tool call was not run.") -> int:
        """
        Answer every pending ToolUse with ``reason`` so the chat can take text again.

        Returns:
            Number of ToolUses answered
        """
        async with self._lock:
            pending = message_validators.pending_tool_uses(self._messages)
            for tool_use in pending:
                self._append(types.Message.tool_result(tool_use.id, reason))
            self._state = ChatState.IDLE
            if pending:
                _logger.info("Cancelled %d pending tool use(s)", len(pending))
            return len(pending)

    def _append(self, message: types.Message) -> None:
        if self._conversation_logger:
            self._conversation_logger.log_message(message)
        self._messages.append(message)

    async def _query_loop(self) -> types.Message:
        rounds = 0
        while True:
            reply = await self._query()
            if not (self._auto_execute and reply.tool_uses):
                return reply
            if rounds >= self._max_tool_rounds:
                _logger.warning("Stopping after %d tool rounds", rounds)
                return reply
            rounds += 1

            for tool_use in reply.tool_uses:
                try:
                    result = await self._executor.run(tool_use)
                except errors.SerializationError as e:
                    raise self._recover(e) from None
                self._append(types.Message(role=types.Role.TOOL, content=[result]))

    async def _query(self) -> types.Message:
        self._state = ChatState.AWAITING_MODEL
        try:
            self._refresh_system_prompt()
            if len(self._messages) > 1:
                removed = await pruning.prune(self._messages, None, self._counter, self._max_context)
                if removed and self._conversation_logger:
                    self._conversation_logger.log_prune(removed, len(self._messages))
            response = await self._client.query(
                self._messages,
                None,
                self._registry.declarations(),
            )
        except errors.InferenceError as e:
            raise self._recover(e) from None

        reply = response.to_message()
        self._messages.append(reply)
        if self._conversation_logger:
            self._conversation_logger.log_message(reply, stop_reason=response.stop_reason)
            self._conversation_logger.log_usage(response.usage)

        self._state = ChatState.AWAITING_TOOL if reply.tool_uses else ChatState.IDLE
        return reply

    def _recover(self, error: errors.InferenceError) -> errors.InferenceError:
        self._state = ChatState.ERROR
        _logger.error("Model query failed: %s", error.message)
        recovery.recover(self._messages, error)
        self._state = ChatState.IDLE
        if self._conversation_logger:
            self._conversation_logger.log_recovery(error, len(self._messages))
        return error

    def _render_system_prompt(self) -> str | None:
        if callable(self._system_prompt):
            return self._system_prompt()
        return self._system_prompt

    def _refresh_system_prompt(self) -> None:
        if not callable(self._system_prompt):
            return
        prompt = self._system_prompt()
        if self._messages and self._messages[0].role.is_system:
            self._messages[0] = types.Message.system_text(prompt)
        else:
            self._messages.insert(0, types.Message.system_text(prompt))
