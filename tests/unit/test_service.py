"""
Tests for MealPlanService.

Tests cover:
- Plan generation and storage
- Replacing and modifying single meals
- Free-form single meals
- Manual plan edits
- Grocery lists
- Error propagation
"""

import pytest

from mealwise.data.models import Recipe
from mealwise.generation.errors import (
    GenerationFailed,
    HouseholdNotFound,
    MealNotFound,
    PlanNotFound,
    QuotaExceededError,
)


@pytest.fixture
def household_repo(memory_repo, sample_household):
    memory_repo.save_household(sample_household)
    return memory_repo


@pytest.fixture
def make_service(household_repo, provider_factory, service_factory):
    def _make(replies):
        provider = provider_factory(replies)
        return service_factory(household_repo, provider), provider
    return _make


@pytest.fixture
def planned_service(make_service, reply_factory, recipe_dict_factory):
    """Service whose household already has a two-day plan."""
    service, provider = make_service([reply_factory(
        recipe_dict_factory("Lemon Garlic Chicken", day="Monday", category="weeknight"),
        recipe_dict_factory("Beef Tacos", day="Tuesday", category="quick"),
    )])
    plan = service.generate_plan("fam_1", {"Monday": "weeknight", "Tuesday": "quick"})
    return service, provider, plan


class TestHouseholds:
    """Tests for household lookups."""

    def test_unknown_household(self, make_service):
        service, provider = make_service(["[]"])
        with pytest.raises(HouseholdNotFound):
            service.generate_plan("nobody", {"Monday": "quick"})
        assert provider.call_count == 0

    def test_save_and_get(self, make_service, sample_household):
        service, _ = make_service(["[]"])
        sample_household.id = "fam_9"
        service.save_household(sample_household)
        assert service.get_household("fam_9").name == "The Parkers"


class TestGeneratePlan:
    """Tests for full plan generation."""

    def test_plan_saved_as_current(self, planned_service):
        service, provider, plan = planned_service

        current = service.current_plan("fam_1")

        assert current.id == plan.id
        assert current.is_active
        assert [m.day for m in current.meals] == ["Monday", "Tuesday"]
        assert provider.call_count == 1

    def test_new_plan_replaces_active(self, planned_service, reply_factory, recipe_dict_factory):
        service, provider, first = planned_service
        provider.replies = [reply_factory(recipe_dict_factory("Salmon Bake", day="Friday"))]

        second = service.generate_plan("fam_1", {"Friday": "weeknight"})

        assert service.current_plan("fam_1").id == second.id
        stored_first = service.repository.get_plan("fam_1", first.id)
        assert stored_first.is_active is False

    def test_fatal_error_saves_nothing(self, make_service):
        service, _ = make_service([QuotaExceededError("quota")])
        with pytest.raises(QuotaExceededError):
            service.generate_plan("fam_1", {"Monday": "quick"})
        assert service.current_plan("fam_1") is None

    def test_exhausted_budget_saves_nothing(self, make_service):
        service, _ = make_service(["not json"])
        with pytest.raises(GenerationFailed):
            service.generate_plan("fam_1", {"Monday": "quick"})
        assert service.repository.list_plans("fam_1") == []

    def test_flagged_recipe_stored_with_marker(self, make_service, reply_factory, recipe_dict_factory):
        service, _ = make_service([reply_factory(recipe_dict_factory(description=""))])

        plan = service.generate_plan("fam_1", {"Monday": "quick"})

        stored = service.current_plan("fam_1").meals[0]
        assert stored.needs_regeneration is True
        assert plan.meals[0].to_dict()["needsRegeneration"] is True


class TestReplaceAndModify:
    """Tests for single-meal regeneration."""

    def test_replace_keeps_slot_and_records_lineage(self, planned_service, reply_factory, recipe_dict_factory):
        service, provider, plan = planned_service
        old = plan.meals[1]
        provider.replies = [reply_factory(recipe_dict_factory("Black Bean Quesadillas", category="dinner"))]

        replacement = service.replace_meal("fam_1", old.id)

        assert replacement.day == "Tuesday"
        assert replacement.category == "quick"
        assert replacement.replaced_from == "Beef Tacos"
        assert replacement.id != old.id
        assert 'Generate a single replacement meal for "Beef Tacos"' in provider.last_prompt()

        current = service.current_plan("fam_1")
        assert [m.name for m in current.meals] == ["Lemon Garlic Chicken", "Black Bean Quesadillas"]
        assert current.id == plan.id

    def test_modify_keeps_id(self, planned_service, reply_factory, recipe_dict_factory):
        service, provider, plan = planned_service
        old = plan.meals[0]
        provider.replies = [reply_factory(recipe_dict_factory("Dairy-Free Lemon Chicken"))]

        modified = service.modify_meal("fam_1", old.id, "Make it dairy-free")

        assert modified.id == old.id
        assert modified.day == "Monday"
        assert modified.modified_from == "Lemon Garlic Chicken"
        assert modified.modification_request == "Make it dairy-free"
        assert modified.replaced_from is None
        stored = service.current_plan("fam_1").find_meal(old.id)
        assert stored.name == "Dairy-Free Lemon Chicken"

    def test_unknown_meal(self, planned_service):
        service, provider, _ = planned_service
        with pytest.raises(MealNotFound):
            service.replace_meal("fam_1", "meal_missing")
        assert provider.call_count == 1

    def test_no_plan(self, make_service):
        service, _ = make_service(["[]"])
        with pytest.raises(PlanNotFound):
            service.modify_meal("fam_1", "meal_x", "less spicy")

    def test_single_meal_not_stored(self, make_service, reply_factory, recipe_dict_factory):
        service, provider = make_service([reply_factory(recipe_dict_factory("Veggie Curry"))])

        meal = service.generate_single_meal("fam_1", meal_type="vegetarian")

        assert meal.name == "Veggie Curry"
        assert service.current_plan("fam_1") is None
        assert "single vegetarian dinner" in provider.last_prompt()


class TestPlanEdits:
    """Tests for manual edits of the current plan."""

    def test_add_meal_creates_plan(self, make_service, recipe_factory):
        service, _ = make_service(["[]"])
        plan = service.add_meal("fam_1", recipe_factory("Pancakes", id="meal_p"))

        assert plan.is_active
        assert service.current_plan("fam_1").find_meal("meal_p").name == "Pancakes"

    def test_adding_same_meal_twice_links_original(self, planned_service):
        service, _, plan = planned_service
        existing = plan.meals[0]

        updated = service.add_meal("fam_1", existing)

        copy = updated.meals[-1]
        assert len(updated.meals) == 3
        assert copy.id != existing.id
        assert copy.original_id == existing.id

    def test_remove_meal(self, planned_service):
        service, _, plan = planned_service
        updated = service.remove_meal("fam_1", plan.meals[0].id)
        assert [m.name for m in updated.meals] == ["Beef Tacos"]
        with pytest.raises(MealNotFound):
            service.remove_meal("fam_1", plan.meals[0].id)

    def test_update_meal(self, planned_service):
        service, _, plan = planned_service
        meal_id = plan.meals[1].id

        updated = service.update_meal("fam_1", meal_id, {"name": "Turkey Tacos", "servings": 6})

        assert updated.id == meal_id
        assert updated.servings == 6
        assert service.current_plan("fam_1").find_meal(meal_id).name == "Turkey Tacos"


class TestGrocery:
    """Tests for grocery lists from the current plan."""

    def test_build_and_fetch(self, planned_service):
        service, _, plan = planned_service

        built = service.build_grocery_list("fam_1")
        fetched = service.grocery_list("fam_1")

        assert built.meal_plan_id == plan.id
        assert fetched.id == built.id
        meal_ids = {item.meal_id for section in fetched.sections for item in section.items}
        assert meal_ids == {m.id for m in plan.meals}

    def test_no_plan(self, make_service):
        service, _ = make_service(["[]"])
        with pytest.raises(PlanNotFound):
            service.build_grocery_list("fam_1")
        assert service.grocery_list("fam_1") is None


class TestHandEditedQuality:
    """Manually added or edited meals are checked against the quality rubric."""

    def test_added_meal_below_bar_is_flagged(self, make_service):
        service, _ = make_service(["[]"])

        plan = service.add_meal("fam_1", Recipe(id="meal_toast", name="Toast", instructions=["Toast bread"]))

        stored = service.current_plan("fam_1").find_meal("meal_toast")
        assert not stored.is_final()
        assert stored.needs_regeneration is True
        assert "Ingredients are missing or not a list" in stored.quality_issues
        assert plan.meals[0].to_dict()["needsRegeneration"] is True

    def test_added_valid_meal_not_flagged(self, make_service, recipe_factory):
        service, _ = make_service(["[]"])
        service.add_meal("fam_1", recipe_factory("Pancakes", id="meal_p"))
        stored = service.current_plan("fam_1").find_meal("meal_p")
        assert stored.needs_regeneration is False
        assert stored.quality_issues == []

    def test_added_record_is_normalized(self, make_service):
        """A loose record gets newline-split ingredients and aliased steps."""
        service, _ = make_service(["[]"])

        plan = service.add_meal("fam_1", {
            "id": "meal_rice",
            "name": "Rice Pilaf",
            "ingredients": "2 cups rice\n1 onion",
            "steps": ["Dice the onion."],
        })

        meal = plan.find_meal("meal_rice")
        assert meal.ingredients == ["2 cups rice", "1 onion"]
        assert meal.instructions == ["Dice the onion."]

    def test_update_that_breaks_meal_flags_it(self, planned_service):
        service, _, plan = planned_service
        meal_id = plan.meals[0].id

        updated = service.update_meal("fam_1", meal_id, {"instructions": ["Cook until done."]})

        assert updated.needs_regeneration is True
        assert service.current_plan("fam_1").find_meal(meal_id).needs_regeneration is True

    def test_update_that_fixes_meal_clears_flag(self, planned_service):
        service, _, plan = planned_service
        meal_id = plan.meals[0].id
        service.update_meal("fam_1", meal_id, {"description": ""})
        assert service.current_plan("fam_1").find_meal(meal_id).needs_regeneration is True

        fixed = service.update_meal("fam_1", meal_id, {"description": "Bright and quick."})

        assert fixed.needs_regeneration is False
        assert fixed.quality_issues == []
        assert "needsRegeneration" not in service.current_plan("fam_1").find_meal(meal_id).to_dict()
