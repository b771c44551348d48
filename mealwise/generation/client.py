"""
Generation client: one request/response round trip to the text-generation
service.

The client returns raw reply text and never parses it. Provider errors
are classified into the taxonomy in errors.py:

    rate limit (429)                -> RateLimitedError (retryable)
    quota exhausted                 -> QuotaExceededError (fatal)
    401 / 403 / invalid key         -> AuthenticationFailedError (fatal)
    network, timeout, 5xx, overload -> ServiceUnavailableError (retryable)
"""

import logging
from typing import Optional

import anthropic

from ..config import Settings, BACKOFF_BASE_SECONDS, BACKOFF_CAP_SECONDS
from ..llm_provider import LLMProvider
from .errors import (
    ServiceError,
    RateLimitedError,
    ServiceUnavailableError,
    QuotaExceededError,
    AuthenticationFailedError,
)
from .prompt_builder import GenerationRequest

logger = logging.getLogger(__name__)

QUOTA_MARKERS = ("insufficient_quota", "exceeded your current quota", "credit balance is too low", "quota")
AUTH_MARKERS = ("authentication", "invalid api key", "invalid x-api-key", "permission")
RATE_LIMIT_MARKERS = ("rate limit", "rate_limit", "too many requests")


def backoff_delay(attempt: int) -> float:
    """Seconds to wait before ``attempt`` (0-based). Attempt 0 never waits.

    delay = min(10s, 1s * 2**(attempt - 1)) gives 1s, 2s, 4s for attempts 1-3.
    """
    if attempt <= 0:
        return 0.0
    return min(BACKOFF_CAP_SECONDS, BACKOFF_BASE_SECONDS * (2 ** (attempt - 1)))


def classify_error(error: Exception) -> ServiceError:
    """Map a provider exception onto the service error taxonomy."""
    if isinstance(error, ServiceError):
        return error

    message = str(error)
    lowered = message.lower()

    if any(marker in lowered for marker in QUOTA_MARKERS):
        return QuotaExceededError(message)

    if isinstance(error, (anthropic.AuthenticationError, anthropic.PermissionDeniedError)):
        return AuthenticationFailedError(message)

    if isinstance(error, anthropic.RateLimitError):
        return RateLimitedError(message)

    if isinstance(error, (anthropic.APITimeoutError, anthropic.APIConnectionError, anthropic.InternalServerError)):
        return ServiceUnavailableError(message)

    status = getattr(error, "status_code", None)
    if status == 429:
        return RateLimitedError(message)
    if status in (401, 403):
        return AuthenticationFailedError(message)
    if isinstance(status, int) and status >= 500:
        return ServiceUnavailableError(message)

    if any(marker in lowered for marker in RATE_LIMIT_MARKERS):
        return RateLimitedError(message)
    if any(marker in lowered for marker in AUTH_MARKERS):
        return AuthenticationFailedError(message)

    # Unknown failures are treated as transient; the attempt budget bounds them
    return ServiceUnavailableError(message)


class GenerationClient:
    """Sends GenerationRequests through an LLMProvider and returns raw text."""

    def __init__(self, provider: LLMProvider, settings: Optional[Settings] = None):
        self.provider = provider
        self.settings = settings or Settings()

    def request(self, req: GenerationRequest, attempt: int = 0) -> str:
        """Run one attempt and return the raw reply text.

        Args:
            req: The generation request to send
            attempt: 0-based attempt index, used for logging only

        Raises:
            TransientServiceError: retryable failure
            FatalServiceError: quota or authentication failure
        """
        logger.info(
            f"[GENERATION] Attempt {attempt + 1}: mode={req.mode.value}, "
            f"expected={req.expected_count}, feedback={len(req.feedback)}"
        )
        try:
            text = self.provider.complete(
                req.system_prompt(),
                req.messages(),
                model=self.settings.model,
                max_tokens=self.settings.max_tokens,
                temperature=self.settings.temperature,
            )
        except Exception as e:
            classified = classify_error(e)
            logger.warning(
                f"[GENERATION] Attempt {attempt + 1} failed: {type(classified).__name__}: {e}"
            )
            if classified is e:
                raise
            raise classified from e

        logger.debug(f"[GENERATION] Reply length: {len(text)} chars")
        return text
