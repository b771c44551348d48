"""
Storage interface for households, meal plans and grocery lists.

Every call is scoped by household id; one household's records are never
visible through another household's id. Implementations are injected
into services (see SQLitePlanRepository and InMemoryPlanRepository).
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from .models import HouseholdProfile, MealPlan, GroceryList


class PlanRepository(ABC):
    """Record interface consumed by the planning service and resolver."""

    # ==================== Households ====================

    @abstractmethod
    def get_household(self, household_id: str) -> Optional[HouseholdProfile]:
        pass

    @abstractmethod
    def save_household(self, profile: HouseholdProfile) -> str:
        pass

    # ==================== Meal Plans ====================

    @abstractmethod
    def list_plans(self, household_id: str) -> List[MealPlan]:
        """All plans of a household, most recently created first."""
        pass

    @abstractmethod
    def get_plan(self, household_id: str, plan_id: str) -> Optional[MealPlan]:
        pass

    @abstractmethod
    def save_plan(self, plan: MealPlan) -> str:
        """Insert or replace a plan.

        Saving an active plan deactivates the household's other plans.
        """
        pass

    @abstractmethod
    def set_active_plan(self, household_id: str, plan_id: str) -> bool:
        """Mark one plan active and the household's others inactive.

        Idempotent: repeating the call leaves the same flags. Returns False
        when the plan does not belong to the household.
        """
        pass

    # ==================== Grocery Lists ====================

    @abstractmethod
    def save_grocery_list(self, grocery_list: GroceryList) -> str:
        pass

    @abstractmethod
    def get_grocery_list_for_plan(self, household_id: str, meal_plan_id: str) -> Optional[GroceryList]:
        """Most recent grocery list built from the given plan."""
        pass
