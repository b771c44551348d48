"""
Error taxonomy for the recipe generation pipeline.

Every error carries a ``user_message`` that can be shown to the household
as is. Retry decisions key off the class:

- TransientServiceError: retried after backoff
- FatalServiceError: surfaced immediately, never retried
- UnparseableReply: retried like a transient error
- QualityFailure: retried with feedback, or repaired locally
"""

from typing import List, Optional


class MealwiseError(Exception):
    """Base class for errors raised by mealwise."""

    user_message = "Something went wrong while planning meals. Please try again."

    def __init__(self, message: Optional[str] = None, user_message: Optional[str] = None):
        super().__init__(message or self.user_message)
        if user_message:
            self.user_message = user_message


# ==================== Service errors ====================

class ServiceError(MealwiseError):
    """Failure talking to the text-generation service."""

    retryable = False


class TransientServiceError(ServiceError):
    retryable = True
    user_message = "The AI service is temporarily unavailable. Please try again in a moment."


class RateLimitedError(TransientServiceError):
    user_message = "AI service rate limit exceeded. Please try again in a few minutes."


class ServiceUnavailableError(TransientServiceError):
    """Network failure, timeout or 5xx from the service."""


class FatalServiceError(ServiceError):
    user_message = "The AI service cannot handle requests right now."


class QuotaExceededError(FatalServiceError):
    user_message = "AI service quota exceeded. Please update your API key or try again later."


class AuthenticationFailedError(FatalServiceError):
    user_message = "AI service authentication error. Please check your API key."


# ==================== Pipeline errors ====================

class UnparseableReply(MealwiseError):
    """The reply held no list, wrapped list or single recipe."""

    retryable = True
    user_message = "The AI service returned a reply that could not be read."

    def __init__(self, message: Optional[str] = None, raw_reply: str = ""):
        super().__init__(message)
        self.raw_reply = raw_reply


class QualityFailure(MealwiseError):
    """One or more recipes failed the quality rubric."""

    user_message = "Generated recipes did not meet the quality bar."

    def __init__(self, issues: List[str], message: Optional[str] = None):
        super().__init__(message or f"{len(issues)} quality issue(s)")
        self.issues = list(issues)


class GenerationFailed(MealwiseError):
    """The attempt budget ran out without a parseable recipe."""

    user_message = "We couldn't generate meals right now. Please try again."

    def __init__(self, message: Optional[str] = None, attempts: int = 0, last_error: Optional[Exception] = None):
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error


class GenerationCancelled(MealwiseError):
    """The caller abandoned the request before it finished."""

    user_message = "Meal generation was cancelled."


# ==================== Lookup errors ====================

class NotFoundError(MealwiseError):
    user_message = "The requested record was not found."


class HouseholdNotFound(NotFoundError):
    user_message = "Household not found. Please complete your household profile first."


class PlanNotFound(NotFoundError):
    user_message = "No meal plan found for this household."


class MealNotFound(NotFoundError):
    user_message = "Meal not found in the current plan."
