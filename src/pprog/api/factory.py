"""
Provider factory.

The set of providers is closed: ``ProviderKind`` enumerates them and the
factory pairs each kind with its adapter and client once, at
configuration time.
"""

from __future__ import annotations

import enum as _enum
import logging as _logging
import typing as _typing

import pprog.api.base as base
import pprog.api.client as client
import pprog.api.providers.anthropic as anthropic
import pprog.api.providers.bedrock as bedrock
import pprog.api.providers.deepseek as deepseek
import pprog.api.providers.gemini as gemini
import pprog.api.providers.openai as openai

if _typing.TYPE_CHECKING:
    import pprog.config.settings as settings_module

_logger = _logging.getLogger(__name__)


class ProviderKind(_enum.StrEnum):
    """Supported model providers."""

    ANTHROPIC = "anthropic"
    OPENAI = "openai"
    DEEPSEEK = "deepseek"
    GEMINI = "gemini"
    BEDROCK = "bedrock"

    @classmethod
    def parse(cls, value: str) -> ProviderKind:
        """
        Parse a provider name.

        Raises:
            ValueError: If the name is not a supported provider
        """
        try:
            return cls(value.lower())
        except ValueError:
            available = ", ".join(kind.value for kind in cls)
            raise ValueError(f"Unknown provider '{value}'. Available: {available}") from None


def create_adapter(settings: settings_module.Settings) -> base.ProviderAdapter:
    """
    Create the adapter for the configured provider.

    Raises:
        ValueError: If the provider is unknown
    """
    kind = ProviderKind.parse(settings.provider)
    model = settings.model
    max_tokens = settings.max_output_tokens

    if kind is ProviderKind.ANTHROPIC:
        return anthropic.AnthropicAdapter(model, max_tokens)
    if kind is ProviderKind.OPENAI:
        return openai.OpenAIAdapter(model, max_tokens, tool_mode=settings.tool_mode)
    if kind is ProviderKind.DEEPSEEK:
        return deepseek.DeepSeekAdapter(model, max_tokens)
    if kind is ProviderKind.GEMINI:
        return gemini.GeminiAdapter(model, max_tokens)
    return bedrock.BedrockAdapter(model, max_tokens, temperature=settings.temperature)


def create_client(settings: settings_module.Settings) -> base.ModelClient:
    """
    Create the model client for the configured provider.

    Args:
        settings: Loaded settings

    Returns:
        Client paired with the provider's adapter

    Raises:
        ValueError: If the provider is unknown
    """
    adapter = create_adapter(settings)
    _logger.debug("Creating %s client for model %s", adapter.name, adapter.model)

    if isinstance(adapter, bedrock.BedrockAdapter):
        return bedrock.BedrockModelClient(adapter, region=settings.aws_region)

    return client.HTTPModelClient(
        adapter,
        api_key=settings.get_api_key(),
        base_url=settings.get_base_url(),
        timeout=settings.request_timeout,
    )
