"""Plan resolution and high-level planning operations."""

from .current_plan import Resolution, resolve, apply_resolution, resolve_current_plan
from .service import MealPlanService, build_service

__all__ = [
    "Resolution",
    "resolve",
    "apply_resolution",
    "resolve_current_plan",
    "MealPlanService",
    "build_service",
]
