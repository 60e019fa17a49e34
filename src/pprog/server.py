"""
HTTP boundary for pprog.

Routes:
    POST /chat      {"message": <canonical message>} -> {"message": <reply>}
    GET  /messages  -> list of canonical messages
    GET  /clear     -> {"cleared": true, "message": "Chat history cleared"}

Every route takes an optional ``conversation`` query parameter selecting
an independent Chat. Requests to one conversation are serialized by that
Chat's lock; different conversations run concurrently.

Run with: uvicorn pprog.server:app, or ``pprog serve``.
"""

from __future__ import annotations

import contextlib as _contextlib
import logging as _logging
import typing as _typing

import fastapi as _fastapi
import fastapi.responses as _fastapi_responses
import pydantic as _pydantic

import pprog.api.errors as errors
import pprog.api.types as types
import pprog.config as config
import pprog.core.chat as chat
import pprog.core.message_validators as message_validators
import pprog.session as session

_logger = _logging.getLogger(__name__)

DEFAULT_CONVERSATION = "default"

ChatFactory = _typing.Callable[[str], chat.Chat]


class ChatRequest(_pydantic.BaseModel):
    message: dict[str, _typing.Any]


def _error(status_code: int, message: str) -> _fastapi_responses.JSONResponse:
    return _fastapi_responses.JSONResponse(
        content={"error": f"Error: {message}"},
        status_code=status_code,
    )


class ChatPool:
    """Lazily created Chats keyed by conversation name."""

    def __init__(self, factory: ChatFactory) -> None:
        self._factory = factory
        self._chats: dict[str, chat.Chat] = {}

    def get(self, name: str) -> chat.Chat:
        if name not in self._chats:
            _logger.info("Starting conversation %r", name)
            self._chats[name] = self._factory(name)
        return self._chats[name]

    async def close(self) -> None:
        for conversation in self._chats.values():
            await conversation.close()
        self._chats.clear()


def create_app(
    settings: config.Settings | None = None,
    chat_factory: ChatFactory | None = None,
) -> _fastapi.FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Loaded settings (read from the environment when omitted)
        chat_factory: Builds the Chat for a new conversation name; defaults
            to the configured provider with tools returned to the caller

    Returns:
        The application
    """
    if chat_factory is None:
        settings = settings or config.Settings()

        def chat_factory(name: str) -> chat.Chat:
            # The caller drives tool execution over HTTP
            return session.create_chat(settings, auto_execute=False)

    pool = ChatPool(chat_factory)

    @_contextlib.asynccontextmanager
    async def lifespan(app: _fastapi.FastAPI) -> _typing.AsyncIterator[None]:
        yield
        await pool.close()

    app = _fastapi.FastAPI(title="pprog", lifespan=lifespan)
    app.state.chats = pool

    @app.post("/chat", response_model=None)
    async def post_chat(
        request: ChatRequest,
        conversation: str = DEFAULT_CONVERSATION,
    ) -> dict[str, _typing.Any] | _fastapi_responses.JSONResponse:
        try:
            message = types.Message.from_dict(request.message)
        except errors.SerializationError as e:
            return _error(400, e.message)

        try:
            reply = await pool.get(conversation).handle_message(message)
        except (ValueError, message_validators.ConversationIntegrityError) as e:
            return _error(400, str(e))
        except errors.InferenceError as e:
            # Malformed tool input from the caller fails before any model query
            caller_fault = isinstance(e, errors.SerializationError) and e.recovery is None
            return _error(400 if caller_fault else 500, str(e))

        return {"message": reply.to_dict()}

    @app.get("/messages")
    async def get_messages(conversation: str = DEFAULT_CONVERSATION) -> list[dict[str, _typing.Any]]:
        return [m.to_dict() for m in pool.get(conversation).get_messages()]

    @app.get("/clear")
    async def clear(conversation: str = DEFAULT_CONVERSATION) -> dict[str, _typing.Any]:
        pool.get(conversation).clear()
        return {"cleared": True, "message": "Chat history cleared"}

    return app


def __getattr__(name: str) -> _typing.Any:
    # Lets ``uvicorn pprog.server:app`` build the app on first access
    if name == "app":
        return create_app()
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
