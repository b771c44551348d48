"""
Recipe generation pipeline.

PromptBuilder -> GenerationClient -> ResponseParser -> SchemaNormalizer
-> QualityValidator -> (InstructionRepairer), driven by RetryOrchestrator.
"""

from .errors import (
    MealwiseError,
    ServiceError,
    TransientServiceError,
    RateLimitedError,
    ServiceUnavailableError,
    FatalServiceError,
    QuotaExceededError,
    AuthenticationFailedError,
    UnparseableReply,
    QualityFailure,
    GenerationFailed,
    GenerationCancelled,
    NotFoundError,
    HouseholdNotFound,
    PlanNotFound,
    MealNotFound,
)
from .prompt_builder import (
    GenerationMode,
    DaySelection,
    GenerationRequest,
    build_plan_request,
    build_replacement_request,
    build_modification_request,
    build_single_meal_request,
)
from .client import GenerationClient, backoff_delay, classify_error
from .response_parser import parse_reply, RecipeList, WrappedList, SingleRecipe
from .normalizer import normalize_recipe
from .validator import validate_recipe, BANNED_PHRASES
from .repairer import InstructionRepairer, IngredientClassifier, TechniqueClassifier
from .orchestrator import RetryOrchestrator, PipelineState, GenerationResult

__all__ = [
    "MealwiseError",
    "ServiceError",
    "TransientServiceError",
    "RateLimitedError",
    "ServiceUnavailableError",
    "FatalServiceError",
    "QuotaExceededError",
    "AuthenticationFailedError",
    "UnparseableReply",
    "QualityFailure",
    "GenerationFailed",
    "GenerationCancelled",
    "NotFoundError",
    "HouseholdNotFound",
    "PlanNotFound",
    "MealNotFound",
    "GenerationMode",
    "DaySelection",
    "GenerationRequest",
    "build_plan_request",
    "build_replacement_request",
    "build_modification_request",
    "build_single_meal_request",
    "GenerationClient",
    "backoff_delay",
    "classify_error",
    "parse_reply",
    "RecipeList",
    "WrappedList",
    "SingleRecipe",
    "normalize_recipe",
    "validate_recipe",
    "BANNED_PHRASES",
    "InstructionRepairer",
    "IngredientClassifier",
    "TechniqueClassifier",
    "RetryOrchestrator",
    "PipelineState",
    "GenerationResult",
]
