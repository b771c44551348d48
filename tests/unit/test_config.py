"""
Tests for runtime configuration.
"""

import logging
from types import SimpleNamespace

import pytest

from mealwise.config import DEFAULT_MODEL, MAX_ATTEMPTS, Settings
from mealwise.llm_provider import (
    NULL_REPLY_TEXT,
    AnthropicProvider,
    NullLLMProvider,
    get_llm_provider,
    require_llm_provider,
)


class TestSettings:
    """Tests for Settings.from_env."""

    def test_defaults(self):
        settings = Settings.from_env({})
        assert settings.model == DEFAULT_MODEL
        assert settings.max_attempts == MAX_ATTEMPTS
        assert settings.anthropic_api_key is None
        assert settings.log_level == logging.INFO

    def test_overrides(self):
        settings = Settings.from_env({
            "ANTHROPIC_API_KEY": "sk-test",
            "USE_NULL_LLM": "true",
            "MEALWISE_DB_DIR": "/tmp/mw",
            "MEALWISE_MAX_ATTEMPTS": "2",
            "DEBUG": "true",
        })
        assert settings.anthropic_api_key == "sk-test"
        assert settings.use_null_llm is True
        assert settings.db_dir == "/tmp/mw"
        assert settings.max_attempts == 2
        assert settings.log_level == logging.DEBUG

    def test_attempt_budget_clamped(self):
        assert Settings.from_env({"MEALWISE_MAX_ATTEMPTS": "7"}).max_attempts == 3
        assert Settings.from_env({"MEALWISE_MAX_ATTEMPTS": "0"}).max_attempts == 1

    def test_dotenv_loaded_for_process_environment(self, mocker):
        load = mocker.patch("mealwise.config.load_dotenv")
        Settings.from_env()
        load.assert_called_once()

    def test_explicit_mapping_skips_dotenv(self, mocker):
        load = mocker.patch("mealwise.config.load_dotenv")
        Settings.from_env({})
        load.assert_not_called()

    def test_dotenv_values_used(self, mocker, tmp_path, monkeypatch):
        """Variables from .env in the working directory are picked up; the real environment wins."""
        (tmp_path / ".env").write_text("MEALWISE_MODEL=from-dotenv\nMEALWISE_DB_DIR=/tmp/dotenv\n")
        monkeypatch.chdir(tmp_path)
        mocker.patch.dict("os.environ", {"MEALWISE_DB_DIR": "/tmp/real"}, clear=True)

        settings = Settings.from_env()

        assert settings.model == "from-dotenv"
        assert settings.db_dir == "/tmp/real"


class TestProviderFactory:
    """Tests for get_llm_provider and require_llm_provider."""

    def test_null_when_requested(self):
        provider = get_llm_provider(Settings(use_null_llm=True, anthropic_api_key="sk-test"))
        assert isinstance(provider, NullLLMProvider)

    def test_null_without_key(self):
        assert get_llm_provider(Settings()).is_null

    def test_require_without_key(self):
        with pytest.raises(ValueError):
            require_llm_provider(Settings())

    def test_anthropic_with_key(self, mocker):
        sdk = mocker.patch("mealwise.llm_provider.anthropic.Anthropic")
        provider = get_llm_provider(Settings(anthropic_api_key="sk-test"))
        assert isinstance(provider, AnthropicProvider)
        sdk.assert_called_once_with(api_key="sk-test", max_retries=0)

    def test_null_provider_records_calls(self):
        provider = NullLLMProvider()
        text = provider.complete(
            "s", [{"role": "user", "content": "hi"}], model="m", max_tokens=10, temperature=0.0
        )
        assert text == NULL_REPLY_TEXT
        assert provider.call_count == 1
        assert provider.calls[0]["system"] == "s"


class TestAnthropicProvider:
    """Tests for the Messages API adapter."""

    @pytest.fixture
    def sdk_client(self, mocker):
        return mocker.patch("mealwise.llm_provider.anthropic.Anthropic").return_value

    def test_joins_text_blocks(self, sdk_client):
        sdk_client.messages.create.return_value = SimpleNamespace(
            content=[
                SimpleNamespace(type="text", text="[{"),
                SimpleNamespace(type="tool_use", id="t1"),
                SimpleNamespace(type="text", text="}]"),
            ],
            stop_reason="end_turn",
        )
        provider = AnthropicProvider("sk-test")

        text = provider.complete("sys", [{"role": "user", "content": "go"}], model="m", max_tokens=99, temperature=0.4)

        assert text == "[{}]"
        sdk_client.messages.create.assert_called_once_with(
            model="m",
            max_tokens=99,
            temperature=0.4,
            system="sys",
            messages=[{"role": "user", "content": "go"}],
        )

    def test_truncated_reply_still_returned(self, sdk_client):
        sdk_client.messages.create.return_value = SimpleNamespace(
            content=[SimpleNamespace(type="text", text='[{"name": "Chi')],
            stop_reason="max_tokens",
        )
        text = AnthropicProvider("sk-test").complete("s", [], model="m", max_tokens=5, temperature=0.0)
        assert text == '[{"name": "Chi'

    def test_key_required(self):
        with pytest.raises(ValueError):
            AnthropicProvider("")
