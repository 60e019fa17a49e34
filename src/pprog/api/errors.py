"""
Error taxonomy for model inference.

Adapters and clients raise these and never swallow them. Only the
conversation orchestrator reacts to them by changing conversation state,
and it records what it did in the ``recovery`` annotation.
"""

from __future__ import annotations

import enum as _enum


class RecoveryStatus(_enum.StrEnum):
    """What the orchestrator did with the conversation after a failed query."""

    RECOVERED = "recovered"
    """History was rolled back to the last simple user message."""

    UNRECOVERABLE = "unrecoverable"
    """No checkpoint was found; the history could not be repaired."""


class InferenceError(Exception):
    """Base class for every error raised while querying a model."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
        self.recovery: RecoveryStatus | None = None

    @property
    def recovered(self) -> bool:
        return self.recovery is RecoveryStatus.RECOVERED

    def __str__(self) -> str:
        if self.recovery is None:
            return self.message
        return f"{self.message} ({self.recovery})"


class NetworkError(InferenceError):
    """Transport failure. Retryable by the caller, never retried internally."""


class ApiError(InferenceError):
    """The provider rejected the request with a non-2xx status."""

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"API error {status_code}: {body}")
        self.status_code = status_code
        self.body = body


class InvalidResponse(InferenceError):
    """The response body did not have the shape the adapter expects."""


class MissingApiKey(InferenceError):
    """No API key is configured for the selected provider."""

    def __init__(self, provider: str, env_var: str | None = None) -> None:
        hint = f" (set {env_var} or PPROG_API_KEY)" if env_var else ""
        super().__init__(f"Missing API key for provider '{provider}'{hint}")
        self.provider = provider


class SerializationError(InferenceError):
    """Malformed JSON in a tool input or a canonical message."""
