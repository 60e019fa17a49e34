"""
Shared constants for pprog.

This module provides a single source of truth for default values
that are used across multiple modules.
"""

# Provider/Model defaults
DEFAULT_PROVIDER = "anthropic"
"""Default LLM provider."""

DEFAULT_MODEL = "claude-3-5-haiku-latest"
"""Default model for the default provider."""

DEFAULT_BASE_URLS: dict[str, str] = {
    "anthropic": "https://api.anthropic.com/v1",
    "openai": "https://api.openai.com/v1",
    "deepseek": "https://api.deepseek.com",
    "gemini": "https://generativelanguage.googleapis.com/v1beta",
}
"""Default API base URL per HTTP provider (Bedrock goes through boto3)."""

API_KEY_ENV_VARS: dict[str, str] = {
    "anthropic": "ANTHROPIC_API_KEY",
    "openai": "OPENAI_API_KEY",
    "deepseek": "DEEPSEEK_API_KEY",
    "gemini": "GEMINI_API_KEY",
}
"""Conventional environment variable holding each provider's API key."""

ANTHROPIC_API_VERSION = "2023-06-01"
"""Value of the anthropic-version header."""

BEDROCK_ANTHROPIC_VERSION = "bedrock-2023-05-31"
"""anthropic_version body field for Anthropic models hosted on Bedrock."""

DEFAULT_AWS_REGION = "us-east-1"
"""Region used for Bedrock when none is configured."""

# LLM interaction defaults
DEFAULT_MAX_CONTEXT = 100_000
"""Default token budget for the whole conversation plus system prompt."""

DEFAULT_MAX_OUTPUT_TOKENS = 8096
"""Default maximum tokens for LLM responses."""

DEFAULT_MAX_TOOL_ROUNDS = 20
"""Default maximum rounds of tool execution per turn in auto-execute mode."""

DEFAULT_TEMPERATURE = 0.5
"""Sampling temperature for completion-style (Bedrock) models."""

# Tool execution defaults
DEFAULT_CHECK_TIMEOUT = 5.0
"""Seconds a compile_check command may run before it is killed.

The check command is started in the background and forcibly terminated
after this delay. Output produced up to that point is returned; anything
the command would have printed later is lost.
"""

DEFAULT_EXECUTE_TIMEOUT = 120.0
"""Timeout in seconds for the execute tool (2 minutes)."""

GEMINI_PLACEHOLDER_TOOL_ID = "1"
"""Tool-use id assigned to every Gemini function call.

Gemini does not return call ids, so all calls share this id and
multi-call correlation is unreliable for that provider.
"""

INTERRUPTED_PLACEHOLDER = "[response interrupted]"
"""Assistant text appended after a failed query rolls back the history."""

CONFIG_FILENAME = "pprog.yaml"
"""Project configuration file, looked up at the project root."""

# Truncation limits for display
DEFAULT_OUTPUT_TRUNCATE_LENGTH = 2000
"""Default length to truncate tool output for display."""
