"""Data models and storage for households, plans and grocery lists."""

from .models import (
    HouseholdMember,
    HouseholdProfile,
    Recipe,
    MealPlan,
    QualityReport,
    GroceryItem,
    GrocerySection,
    GroceryList,
    new_id,
)
from .repository import PlanRepository
from .database import SQLitePlanRepository
from .memory import InMemoryPlanRepository

__all__ = [
    "HouseholdMember",
    "HouseholdProfile",
    "Recipe",
    "MealPlan",
    "QualityReport",
    "GroceryItem",
    "GrocerySection",
    "GroceryList",
    "new_id",
    "PlanRepository",
    "SQLitePlanRepository",
    "InMemoryPlanRepository",
]
