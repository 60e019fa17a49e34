"""
JSONL event log for one conversation.

Every line is one JSON object with ``seq``, ``at``, ``event`` and the
event's fields. Messages are recorded in their canonical tagged form, so
a log can be replayed with ``Message.from_dict``.
"""

from __future__ import annotations

import datetime as _datetime
import enum as _enum
import json as _json
import os as _os
import pathlib as _pathlib
import typing as _typing

if _typing.TYPE_CHECKING:
    import pprog.api.errors as errors
    import pprog.api.types as types
    import pprog.tools.base as tools_base

DEFAULT_LOG_DIR = _pathlib.Path("/tmp/pprog-logs")


class EventType(_enum.StrEnum):
    SESSION_START = "session_start"
    SYSTEM_PROMPT = "system_prompt"
    MESSAGE = "message"
    TOOL_USE = "tool_use"
    TOOL_RESULT = "tool_result"
    USAGE = "usage"
    PRUNE = "prune"
    RECOVERY = "recovery"
    CLEAR = "clear"
    ERROR = "error"
    SESSION_END = "session_end"


class ConversationLogger:
    """
    Appends conversation events to a JSONL file.

    A logger created with ``enabled=False`` accepts every call and writes
    nothing. Write failures are ignored; the log never interrupts a
    conversation.

    Usage:
        with ConversationLogger(log_dir=settings.logs_dir, provider="gemini") as log:
            log.log_message(types.Message.user_text("hi"))
    """

    def __init__(
        self,
        *,
        log_dir: _pathlib.Path | str | None = None,
        log_file: _pathlib.Path | str | None = None,
        private_mode: bool = True,
        provider: str = "unknown",
        model: str = "unknown",
        enabled: bool = True,
    ) -> None:
        """
        Open the log file and record the session start.

        Args:
            log_dir: Directory for an auto-named file (default: /tmp/pprog-logs)
            log_file: Explicit file path; takes precedence over log_dir
            private_mode: Restrict an auto-created log_dir to its owner (0o700)
            provider: Provider name recorded in the session_start event
            model: Model name recorded in the session_start event
            enabled: When False nothing is opened or written
        """
        self._enabled = enabled
        self._seq = 0
        self._stream: _typing.TextIO | None = None
        self._path: _pathlib.Path | None = None
        self.session_id = _datetime.datetime.now().strftime("%Y%m%d_%H%M%S_%f")

        if not enabled:
            return

        if log_file is not None:
            self._path = _pathlib.Path(log_file)
            self._path.parent.mkdir(parents=True, exist_ok=True)
        else:
            directory = _pathlib.Path(log_dir) if log_dir else DEFAULT_LOG_DIR
            directory.mkdir(parents=True, exist_ok=True)
            if private_mode:
                _os.chmod(directory, 0o700)
            self._path = directory / f"pprog_{self.session_id}.jsonl"

        self._stream = self._path.open("w", encoding="utf-8")
        self._emit(EventType.SESSION_START, session_id=self.session_id, provider=provider, model=model)

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def file_path(self) -> _pathlib.Path | None:
        return self._path

    @property
    def event_count(self) -> int:
        return self._seq

    def _emit(self, event: EventType | str, **fields: _typing.Any) -> None:
        if self._stream is None:
            return
        self._seq += 1
        record = {
            "seq": self._seq,
            "at": _datetime.datetime.now().isoformat(),
            "event": str(event),
            **fields,
        }
        try:
            self._stream.write(_json.dumps(record, default=str) + "\n")
            self._stream.flush()
        except OSError:
            pass

    # =========================================================================
    # Conversation events
    # =========================================================================

    def log_system_prompt(self, prompt: str) -> None:
        self._emit(EventType.SYSTEM_PROMPT, content=prompt)

    def log_message(self, message: types.Message, *, stop_reason: str | None = None) -> None:
        """Record a message appended to the history."""
        fields: dict[str, _typing.Any] = {"message": message.to_dict()}
        if stop_reason is not None:
            fields["stop_reason"] = stop_reason
        self._emit(EventType.MESSAGE, **fields)

    def log_tool_use(self, tool_use: types.ToolUseContent) -> None:
        self._emit(EventType.TOOL_USE, id=tool_use.id, name=tool_use.name, input=tool_use.input)

    def log_tool_result(self, tool_use: types.ToolUseContent, result: tools_base.ToolResult) -> None:
        self._emit(
            EventType.TOOL_RESULT,
            id=tool_use.id,
            name=tool_use.name,
            success=result.success,
            output=result.output if result.success else None,
            error=result.error,
        )

    def log_usage(self, usage: types.Usage) -> None:
        fields: dict[str, _typing.Any] = {
            "input_tokens": usage.input_tokens,
            "output_tokens": usage.output_tokens,
        }
        if usage.details and usage.details.cached_tokens is not None:
            fields["cached_tokens"] = usage.details.cached_tokens
        self._emit(EventType.USAGE, **fields)

    def log_prune(self, removed: int, remaining: int) -> None:
        self._emit(EventType.PRUNE, removed=removed, remaining=remaining)

    def log_recovery(self, error: errors.InferenceError, remaining: int) -> None:
        """Record a failed query together with what recovery did to the history."""
        self._emit(
            EventType.RECOVERY,
            error=type(error).__name__,
            message=error.message,
            status=str(error.recovery) if error.recovery is not None else None,
            remaining=remaining,
        )

    def log_clear(self, remaining: int) -> None:
        self._emit(EventType.CLEAR, remaining=remaining)

    def log_error(self, error: str, context: str | None = None) -> None:
        self._emit(EventType.ERROR, error=error, context=context)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def close(self) -> None:
        """Record the session end and close the file. Safe to call twice."""
        if self._stream is None:
            return
        self._emit(EventType.SESSION_END, events=self._seq)
        try:
            self._stream.close()
        except OSError:
            pass
        finally:
            self._stream = None

    def __enter__(self) -> ConversationLogger:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: _typing.Any,
    ) -> None:
        if exc_type is not None:
            self.log_error(str(exc_val), context=exc_type.__name__)
        self.close()
