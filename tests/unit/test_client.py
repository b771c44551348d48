"""
Tests for the generation client.

Tests cover:
- Backoff schedule
- Provider error classification
- Request parameters sent to the provider
"""

import anthropic
import httpx
import pytest

from mealwise.config import Settings
from mealwise.generation.client import GenerationClient, backoff_delay, classify_error
from mealwise.generation.errors import (
    AuthenticationFailedError,
    FatalServiceError,
    QuotaExceededError,
    RateLimitedError,
    ServiceUnavailableError,
    TransientServiceError,
)
from mealwise.generation.prompt_builder import build_plan_request

API_URL = "https://api.anthropic.com/v1/messages"


def status_error(cls, status: int, message: str):
    request = httpx.Request("POST", API_URL)
    response = httpx.Response(status, request=request)
    return cls(message, response=response, body=None)


class TestBackoff:
    """Tests for the retry backoff schedule."""

    def test_first_attempt_never_waits(self):
        assert backoff_delay(0) == 0

    def test_doubles_per_attempt(self):
        """Attempts 1-3 wait 1s, 2s, 4s."""
        assert [backoff_delay(n) for n in (1, 2, 3)] == [1, 2, 4]

    def test_capped_at_ten_seconds(self):
        assert backoff_delay(10) == 10


class TestClassifyError:
    """Tests for mapping provider errors onto the taxonomy."""

    def test_rate_limit_is_transient(self):
        error = classify_error(status_error(anthropic.RateLimitError, 429, "Too many requests"))
        assert isinstance(error, RateLimitedError)
        assert isinstance(error, TransientServiceError)

    def test_quota_is_fatal_even_on_429(self):
        """Quota exhaustion is never retried."""
        error = classify_error(
            status_error(anthropic.RateLimitError, 429, "You exceeded your current quota")
        )
        assert isinstance(error, QuotaExceededError)
        assert isinstance(error, FatalServiceError)

    def test_authentication_is_fatal(self):
        error = classify_error(status_error(anthropic.AuthenticationError, 401, "invalid x-api-key"))
        assert isinstance(error, AuthenticationFailedError)

    def test_permission_denied_is_fatal(self):
        error = classify_error(status_error(anthropic.PermissionDeniedError, 403, "forbidden"))
        assert isinstance(error, AuthenticationFailedError)

    def test_server_error_is_transient(self):
        error = classify_error(status_error(anthropic.InternalServerError, 529, "Overloaded"))
        assert isinstance(error, ServiceUnavailableError)

    def test_connection_error_is_transient(self):
        error = classify_error(anthropic.APIConnectionError(request=httpx.Request("POST", API_URL)))
        assert isinstance(error, ServiceUnavailableError)

    def test_plain_status_code_attribute(self):
        """Errors from other clients are classified by status_code."""
        error = RuntimeError("slow down")
        error.status_code = 429
        assert isinstance(classify_error(error), RateLimitedError)

    def test_unknown_error_is_transient(self):
        assert isinstance(classify_error(RuntimeError("boom")), ServiceUnavailableError)

    def test_classified_error_passes_through(self):
        original = QuotaExceededError("already classified")
        assert classify_error(original) is original

    def test_user_messages(self):
        """Each class carries a message fit to show the household."""
        assert "quota" in QuotaExceededError().user_message.lower()
        assert "api key" in AuthenticationFailedError().user_message.lower()


class TestGenerationClient:
    """Tests for one request/response round trip."""

    def test_returns_raw_text(self, provider_factory, sample_household):
        provider = provider_factory(["[1, 2, 3]"])
        client = GenerationClient(provider, Settings(model="test-model", max_tokens=123))
        request = build_plan_request(sample_household, {"Monday": "quick"})

        assert client.request(request) == "[1, 2, 3]"
        call = provider.calls[0]
        assert call["model"] == "test-model"
        assert call["system"] == request.system_prompt()
        assert call["messages"] == request.messages()
        assert call["temperature"] == Settings().temperature

    def test_provider_errors_are_classified(self, provider_factory, sample_household):
        provider = provider_factory([status_error(anthropic.AuthenticationError, 401, "bad key")])
        client = GenerationClient(provider)
        request = build_plan_request(sample_household, {"Monday": "quick"})

        with pytest.raises(AuthenticationFailedError) as exc_info:
            client.request(request)
        assert isinstance(exc_info.value.__cause__, anthropic.AuthenticationError)
