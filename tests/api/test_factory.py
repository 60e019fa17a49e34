"""Tests for provider selection."""

import os as _os
import typing as _typing
import unittest.mock as _mock

import pytest as _pytest

import pprog.api.client as client
import pprog.api.factory as factory
import pprog.api.providers.anthropic as anthropic
import pprog.api.providers.bedrock as bedrock
import pprog.api.providers.deepseek as deepseek
import pprog.api.providers.gemini as gemini
import pprog.api.providers.openai as openai
import pprog.config as config


@_pytest.fixture
def make_settings(isolated_env, project) -> _typing.Iterator[_typing.Callable[..., config.Settings]]:
    with isolated_env, _mock.patch.dict(_os.environ, {"PPROG_PROJECT_ROOT": str(project)}):
        yield config.Settings.construct_without_dotenv


class TestProviderKind:
    def test_parse_is_case_insensitive(self) -> None:
        assert factory.ProviderKind.parse("Gemini") is factory.ProviderKind.GEMINI

    def test_unknown_provider(self) -> None:
        with _pytest.raises(ValueError, match="Available: anthropic, openai"):
            factory.ProviderKind.parse("mistral")


class TestCreateAdapter:
    @_pytest.mark.parametrize(
        ("provider", "adapter_type"),
        [
            ("anthropic", anthropic.AnthropicAdapter),
            ("openai", openai.OpenAIAdapter),
            ("deepseek", deepseek.DeepSeekAdapter),
            ("gemini", gemini.GeminiAdapter),
            ("bedrock", bedrock.BedrockAdapter),
        ],
    )
    def test_each_provider(self, make_settings, provider: str, adapter_type: type) -> None:
        adapter = factory.create_adapter(make_settings(provider=provider, model="m"))

        assert isinstance(adapter, adapter_type)
        assert adapter.model == "m"

    def test_output_budget_is_passed(self, make_settings) -> None:
        adapter = factory.create_adapter(make_settings(max_output_tokens=77))
        assert adapter.max_output_tokens == 77


class TestCreateClient:
    def test_http_client_gets_key_and_base_url(self, make_settings) -> None:
        settings = make_settings(provider="openai", api_key="sk-test", base_url="http://localhost:9999/v1")

        created = factory.create_client(settings)

        assert isinstance(created, client.HTTPModelClient)
        assert created.base_url == "http://localhost:9999/v1"
        assert created.adapter.name == "openai"

    def test_bedrock_uses_boto3(self, make_settings) -> None:
        settings = make_settings(provider="bedrock", model="anthropic.claude-v2", aws_region="eu-west-1")

        with _mock.patch("boto3.client") as boto_client:
            created = factory.create_client(settings)

        assert isinstance(created, bedrock.BedrockModelClient)
        boto_client.assert_called_once_with("bedrock-runtime", region_name="eu-west-1")
