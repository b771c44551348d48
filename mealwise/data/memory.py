"""In-memory PlanRepository, used by tests and the null-provider demo mode."""

import copy
import threading
from typing import Dict, List, Optional

from .models import HouseholdProfile, MealPlan, GroceryList
from .repository import PlanRepository


class InMemoryPlanRepository(PlanRepository):
    """Per-instance dictionaries keyed by household id.

    Records are deep-copied on the way in and out so callers cannot mutate
    stored state without saving.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._households: Dict[str, HouseholdProfile] = {}
        self._plans: Dict[str, Dict[str, MealPlan]] = {}
        self._grocery_lists: Dict[str, List[GroceryList]] = {}

    def get_household(self, household_id: str) -> Optional[HouseholdProfile]:
        with self._lock:
            profile = self._households.get(household_id)
            return copy.deepcopy(profile) if profile else None

    def save_household(self, profile: HouseholdProfile) -> str:
        with self._lock:
            self._households[profile.id] = copy.deepcopy(profile)
        return profile.id

    def list_plans(self, household_id: str) -> List[MealPlan]:
        with self._lock:
            plans = list(self._plans.get(household_id, {}).values())
        # dict order is insertion order, so reversing breaks created_at ties newest-first
        plans.reverse()
        plans.sort(key=lambda p: p.created_at, reverse=True)
        return [copy.deepcopy(p) for p in plans]

    def get_plan(self, household_id: str, plan_id: str) -> Optional[MealPlan]:
        with self._lock:
            plan = self._plans.get(household_id, {}).get(plan_id)
            return copy.deepcopy(plan) if plan else None

    def save_plan(self, plan: MealPlan) -> str:
        with self._lock:
            plans = self._plans.setdefault(plan.household_id, {})
            if plan.is_active:
                for other in plans.values():
                    if other.id != plan.id:
                        other.is_active = False
            plans.pop(plan.id, None)
            plans[plan.id] = copy.deepcopy(plan)
        return plan.id

    def set_active_plan(self, household_id: str, plan_id: str) -> bool:
        with self._lock:
            plans = self._plans.get(household_id, {})
            if plan_id not in plans:
                return False
            for plan in plans.values():
                plan.is_active = plan.id == plan_id
        return True

    def save_grocery_list(self, grocery_list: GroceryList) -> str:
        with self._lock:
            lists = self._grocery_lists.setdefault(grocery_list.household_id, [])
            lists[:] = [gl for gl in lists if gl.id != grocery_list.id]
            lists.append(copy.deepcopy(grocery_list))
        return grocery_list.id

    def get_grocery_list_for_plan(self, household_id: str, meal_plan_id: str) -> Optional[GroceryList]:
        with self._lock:
            matches = [
                gl for gl in self._grocery_lists.get(household_id, [])
                if gl.meal_plan_id == meal_plan_id
            ]
            if not matches:
                return None
            latest = max(reversed(matches), key=lambda gl: gl.created_at)
            return copy.deepcopy(latest)
