"""
Tests for schema normalization.
"""

import json

from mealwise.data.models import Recipe
from mealwise.generation.normalizer import (
    DEFAULT_PREP_TIME,
    DEFAULT_SERVINGS,
    coerce_number,
    normalize_recipe,
    reconcile_fields,
)


class TestAliases:
    """Tests for alternate field names."""

    def test_directions_become_instructions(self):
        recipe = normalize_recipe({"name": "A", "directions": ["one", "two"]})
        assert recipe.instructions == ["one", "two"]

    def test_instructions_win_over_steps(self):
        recipe = normalize_recipe({"name": "A", "instructions": ["keep"], "steps": ["drop"]})
        assert recipe.instructions == ["keep"]

    def test_newline_separated_instructions_split(self):
        recipe = normalize_recipe({"name": "A", "method": "Chop.\n\nCook.\n"})
        assert recipe.instructions == ["Chop.", "Cook."]

    def test_step_objects_flattened(self):
        recipe = normalize_recipe({"name": "A", "steps": [{"step": 1, "text": "Chop."}]})
        assert recipe.instructions == ["Chop."]

    def test_longer_ingredient_list_wins(self):
        """mainIngredients replaces a shorter ingredients list."""
        data = reconcile_fields({"name": "A", "ingredients": ["x"], "mainIngredients": ["x", "y"]})
        assert data["ingredients"] == ["x", "y"]
        assert data["mainIngredients"] == ["x", "y"]

    def test_title_becomes_name(self):
        assert normalize_recipe({"title": "Stew"}).name == "Stew"

    def test_category_becomes_categories(self):
        recipe = normalize_recipe({"name": "A", "category": "quick"})
        assert recipe.categories == ["quick"]
        assert recipe.category == "quick"

    def test_categories_fill_category(self):
        recipe = normalize_recipe({"name": "A", "categories": ["batch", "quick"]})
        assert recipe.category == "batch"


class TestDefaults:
    """Tests for missing or malformed numbers."""

    def test_defaults_applied(self):
        recipe = normalize_recipe({"name": "A"})
        assert recipe.prep_time == DEFAULT_PREP_TIME
        assert recipe.servings == DEFAULT_SERVINGS
        assert recipe.id.startswith("meal_")

    def test_numeric_strings(self):
        recipe = normalize_recipe({"name": "A", "prepTime": "25 minutes", "servingSize": "6"})
        assert recipe.prep_time == 25
        assert recipe.servings == 6

    def test_coerce_number(self):
        assert coerce_number(12.7, 4) == 12
        assert coerce_number(0, 4) == 4
        assert coerce_number(True, 4) == 4
        assert coerce_number("about an hour", 30) == 30


class TestIdempotence:
    """normalize(normalize(r)) == normalize(r)."""

    def test_normalizing_twice_changes_nothing(self):
        raw = {
            "title": "  Chili  ",
            "directions": "Brown beef.\nSimmer 20 minutes.",
            "main_ingredients": ["1 lb beef", "1 can beans"],
            "prep_time": "40",
            "category": "batch",
        }
        once = normalize_recipe(raw)
        twice = normalize_recipe(once)
        assert once == twice
        assert once.name == "Chili"

    def test_existing_id_kept(self, sample_recipe_dict):
        sample_recipe_dict["id"] = "meal_keep"
        assert normalize_recipe(sample_recipe_dict).id == "meal_keep"

    def test_quality_markers_survive(self, sample_recipe):
        sample_recipe.needs_regeneration = True
        sample_recipe.quality_issues = ["Meal description is missing"]
        normalized = normalize_recipe(sample_recipe)
        assert normalized.needs_regeneration is True
        assert normalized.quality_issues == ["Meal description is missing"]

    def test_input_not_mutated(self):
        raw = {"name": "A", "steps": ["one"]}
        normalize_recipe(raw)
        assert raw == {"name": "A", "steps": ["one"]}
        assert isinstance(normalize_recipe(raw), Recipe)


class TestNonFiniteNumbers:
    """json.loads turns 1e999 and NaN into float inf/nan; they fall back to defaults."""

    def test_infinite_and_nan_use_defaults(self):
        assert coerce_number(float("inf"), 30) == 30
        assert coerce_number(float("-inf"), 30) == 30
        assert coerce_number(float("nan"), 4) == 4

    def test_overflowing_digit_string(self):
        assert coerce_number("9" * 400 + " minutes", 30) == 30

    def test_fraction_below_one(self):
        """0.5 truncates to 0, which is not a usable count."""
        assert coerce_number(0.5, 4) == 4
        assert coerce_number("0.5 hours", 30) == 30

    def test_reply_values_from_json(self):
        record = json.loads('{"name": "A", "prepTime": 1e999, "servings": NaN}')
        recipe = normalize_recipe(record)
        assert recipe.prep_time == DEFAULT_PREP_TIME
        assert recipe.servings == DEFAULT_SERVINGS
