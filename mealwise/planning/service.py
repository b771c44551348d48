"""
Meal plan service.

Coordinates the generation pipeline with the plan repository:
generating plans, replacing and modifying single meals, editing the
current plan, and building grocery lists. All state lives in the
injected repository; one service instance can serve many households.
"""

import copy
import logging
import threading
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Union

from ..config import Settings
from ..data.models import GroceryList, HouseholdProfile, MealPlan, Recipe, new_id
from ..data.repository import PlanRepository
from ..generation.client import GenerationClient
from ..generation.errors import HouseholdNotFound, MealNotFound, PlanNotFound
from ..generation.normalizer import normalize_recipe
from ..generation.orchestrator import GenerationResult, RetryOrchestrator
from ..generation.prompt_builder import (
    build_modification_request,
    build_plan_request,
    build_replacement_request,
    build_single_meal_request,
)
from ..generation.validator import validate_recipe
from ..llm_provider import LLMProvider, get_llm_provider
from ..shopping.grocery import GroceryListBuilder
from .current_plan import resolve_current_plan

logger = logging.getLogger(__name__)


class MealPlanService:
    """High-level planning operations for households."""

    def __init__(
        self,
        repository: PlanRepository,
        orchestrator: RetryOrchestrator,
        grocery_builder: Optional[GroceryListBuilder] = None,
    ):
        self.repository = repository
        self.orchestrator = orchestrator
        self.grocery_builder = grocery_builder or GroceryListBuilder()

    # ==================== Households ====================

    def get_household(self, household_id: str) -> HouseholdProfile:
        profile = self.repository.get_household(household_id)
        if profile is None:
            raise HouseholdNotFound(f"Household {household_id} not found")
        return profile

    def save_household(self, profile: HouseholdProfile) -> HouseholdProfile:
        self.repository.save_household(profile)
        return profile

    # ==================== Generation ====================

    def generate_plan(
        self,
        household_id: str,
        selections: Mapping[str, str],
        special_notes: Optional[str] = None,
        environment_summary: Optional[str] = None,
        category_definitions: Optional[Mapping[str, str]] = None,
        cancel: Optional[threading.Event] = None,
    ) -> MealPlan:
        """Generate one recipe per selected day and store it as the active plan."""
        household = self.get_household(household_id)
        request = build_plan_request(
            household,
            selections,
            environment_summary=environment_summary,
            special_notes=special_notes,
            category_definitions=category_definitions,
        )
        result = self.orchestrator.run(request, cancel=cancel)
        self._log_result("MEAL PLAN", household_id, result)

        plan = MealPlan(
            household_id=household_id,
            name=f"Meal plan for {datetime.now():%B %d, %Y}",
            meals=result.recipes,
            is_active=True,
        )
        self.repository.save_plan(plan)
        return plan

    def generate_single_meal(
        self,
        household_id: str,
        meal_type: Optional[str] = None,
        additional_preferences: Optional[str] = None,
        environment_summary: Optional[str] = None,
        cancel: Optional[threading.Event] = None,
    ) -> Recipe:
        """Generate one free-form meal. It is returned, not stored."""
        household = self.get_household(household_id)
        request = build_single_meal_request(
            household,
            meal_type=meal_type,
            additional_preferences=additional_preferences,
            environment_summary=environment_summary,
        )
        result = self.orchestrator.run(request, cancel=cancel)
        self._log_result("SINGLE MEAL", household_id, result)
        return result.recipes[0]

    def replace_meal(
        self,
        household_id: str,
        meal_id: str,
        special_notes: Optional[str] = None,
        environment_summary: Optional[str] = None,
        cancel: Optional[threading.Event] = None,
    ) -> Recipe:
        """Swap a meal of the current plan for a new recipe in the same category."""
        household = self.get_household(household_id)
        plan, meal = self._find_meal(household_id, meal_id)

        request = build_replacement_request(
            household, meal, environment_summary=environment_summary, special_notes=special_notes
        )
        result = self.orchestrator.run(request, cancel=cancel)
        self._log_result("MEAL REPLACEMENT", household_id, result)

        replacement = result.recipes[0]
        replacement.day = meal.day
        replacement.category = meal.category or replacement.category
        replacement.categories = list(meal.categories) or replacement.categories
        replacement.set_lineage(replaced_from=meal.name)

        plan.replace_meal(meal_id, replacement)
        self.repository.save_plan(plan)
        return replacement

    def modify_meal(
        self,
        household_id: str,
        meal_id: str,
        modification_request: str,
        environment_summary: Optional[str] = None,
        cancel: Optional[threading.Event] = None,
    ) -> Recipe:
        """Rewrite a meal according to the user's request, keeping its id and slot."""
        household = self.get_household(household_id)
        plan, meal = self._find_meal(household_id, meal_id)

        request = build_modification_request(
            household, meal, modification_request, environment_summary=environment_summary
        )
        result = self.orchestrator.run(request, cancel=cancel)
        self._log_result("MEAL MODIFICATION", household_id, result)

        modified = result.recipes[0]
        modified.id = meal.id
        modified.day = meal.day
        modified.category = meal.category or modified.category
        modified.categories = list(meal.categories) or modified.categories
        modified.modification_request = request.modification_request
        modified.set_lineage(modified_from=meal.name)

        plan.replace_meal(meal_id, modified)
        self.repository.save_plan(plan)
        return modified

    # ==================== Plan edits ====================

    def current_plan(self, household_id: str) -> Optional[MealPlan]:
        """The household's current plan, healing stale active flags."""
        return resolve_current_plan(self.repository, household_id)

    def require_current_plan(self, household_id: str) -> MealPlan:
        plan = self.current_plan(household_id)
        if plan is None:
            raise PlanNotFound(f"No meal plan for household {household_id}")
        return plan

    def add_meal(self, household_id: str, meal: Union[Recipe, Mapping[str, Any]]) -> MealPlan:
        """Append a meal to the current plan, creating an active plan if there is none.

        ``meal`` may be a Recipe or a loose record in any shape the
        normalizer accepts (string ingredient lists, ``steps`` aliases).
        """
        plan = self.current_plan(household_id)
        if plan is None:
            plan = MealPlan(household_id=household_id, name="My meal plan", is_active=True)

        if isinstance(meal, Recipe):
            added = normalize_recipe(copy.deepcopy(meal))
        else:
            added = normalize_recipe(dict(meal))
        self._mark_quality(added)
        if plan.find_meal(added.id) is not None:
            # Same recipe added twice: keep a link to the one it was copied from
            source_id = added.id
            added.id = new_id("meal")
            added.set_lineage(original_id=source_id)
        plan.meals.append(added)
        self.repository.save_plan(plan)
        logger.info(f"[MEAL PLAN] Added '{added.name}' to plan {plan.id}")
        return plan

    def remove_meal(self, household_id: str, meal_id: str) -> MealPlan:
        plan = self.require_current_plan(household_id)
        if not plan.remove_meal(meal_id):
            raise MealNotFound(f"Meal {meal_id} not in plan {plan.id}")
        self.repository.save_plan(plan)
        logger.info(f"[MEAL PLAN] Removed meal {meal_id} from plan {plan.id}")
        return plan

    def update_meal(self, household_id: str, meal_id: str, changes: Dict) -> Recipe:
        """Apply field changes (stored field names) to one meal of the current plan."""
        plan, meal = self._find_meal(household_id, meal_id)
        data = meal.to_dict()
        data.update(changes)
        data["id"] = meal_id
        updated = normalize_recipe(data)
        self._mark_quality(updated)
        plan.replace_meal(meal_id, updated)
        self.repository.save_plan(plan)
        return updated

    # ==================== Grocery ====================

    def build_grocery_list(self, household_id: str) -> GroceryList:
        """Build and store a grocery list for the current plan."""
        plan = self.require_current_plan(household_id)
        grocery_list = self.grocery_builder.build(plan)
        self.repository.save_grocery_list(grocery_list)
        return grocery_list

    def grocery_list(self, household_id: str) -> Optional[GroceryList]:
        """The latest grocery list built for the current plan, if any."""
        plan = self.current_plan(household_id)
        if plan is None:
            return None
        return self.repository.get_grocery_list_for_plan(household_id, plan.id)

    # ==================== Helpers ====================

    def _find_meal(self, household_id: str, meal_id: str):
        plan = self.require_current_plan(household_id)
        meal = plan.find_meal(meal_id)
        if meal is None:
            raise MealNotFound(f"Meal {meal_id} not in plan {plan.id}")
        return plan, meal

    def _mark_quality(self, recipe: Recipe) -> None:
        # Hand-edited meals skip the pipeline, so check them against the same rubric
        report = validate_recipe(recipe)
        recipe.quality_issues = list(report.issues)
        recipe.needs_regeneration = not report.valid
        if not report.valid:
            logger.warning(f"[MEAL PLAN] '{recipe.name}' stored with quality issues: {report.issues}")

    def _log_result(self, tag: str, household_id: str, result: GenerationResult) -> None:
        logger.info(
            f"[{tag}] {household_id}: {len(result.recipes)} recipe(s) in {result.attempts} attempt(s)"
            + (", repaired" if result.repaired else "")
        )
        if result.missing_days:
            logger.warning(f"[{tag}] {household_id}: no recipe for {', '.join(result.missing_days)}")
        for recipe in result.flagged:
            logger.warning(f"[{tag}] '{recipe.name}' flagged for regeneration: {recipe.quality_issues}")


def build_service(
    settings: Settings,
    repository: PlanRepository,
    provider: Optional[LLMProvider] = None,
) -> MealPlanService:
    """Wire a MealPlanService from settings."""
    provider = provider or get_llm_provider(settings)
    client = GenerationClient(provider, settings)
    orchestrator = RetryOrchestrator(client, max_attempts=settings.max_attempts)
    return MealPlanService(repository, orchestrator)
