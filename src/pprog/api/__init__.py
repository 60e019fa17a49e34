"""
Model API layer for pprog.

Provides the canonical message model, the inference error taxonomy, and
one adapter per provider:
- Anthropic (Messages API)
- OpenAI (Chat Completions, including o1 and fenced-text tool calling)
- DeepSeek
- Gemini
- Amazon Bedrock (Anthropic and Llama families)
"""

from pprog.api.base import ModelClient, ProviderAdapter
from pprog.api.client import HTTPModelClient
from pprog.api.errors import (
    ApiError,
    InferenceError,
    InvalidResponse,
    MissingApiKey,
    NetworkError,
    RecoveryStatus,
    SerializationError,
)
from pprog.api.factory import ProviderKind, create_adapter, create_client
from pprog.api.types import (
    ContentItem,
    Message,
    ModelResponse,
    Role,
    TextContent,
    ToolResultContent,
    ToolUseContent,
    Usage,
    UsageDetails,
)

__all__ = [
    # Base classes
    "ModelClient",
    "ProviderAdapter",
    "HTTPModelClient",
    # Factory
    "ProviderKind",
    "create_adapter",
    "create_client",
    # Errors
    "InferenceError",
    "NetworkError",
    "ApiError",
    "InvalidResponse",
    "MissingApiKey",
    "SerializationError",
    "RecoveryStatus",
    # Types
    "ContentItem",
    "Message",
    "ModelResponse",
    "Role",
    "TextContent",
    "ToolResultContent",
    "ToolUseContent",
    "Usage",
    "UsageDetails",
]
