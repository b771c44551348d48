"""
Prompt construction for recipe generation.

Turns a household profile plus day/category selections into an immutable
GenerationRequest. The request renders the system prompt (which states
the same quality rubric the validator enforces) and the user prompt
(household profile, per-day slots, corrective feedback).

Rendering is deterministic: identical inputs give identical text.
"""

import copy
import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Iterable

from ..data.models import HouseholdProfile, Recipe
from .validator import (
    BANNED_PHRASES,
    MIN_INSTRUCTION_STEPS,
    MAX_INSTRUCTION_STEPS,
    MIN_TIMED_STEPS,
)

logger = logging.getLogger(__name__)


class GenerationMode(Enum):
    FULL_PLAN = "full_plan"
    REPLACEMENT = "replacement"
    SINGLE_MEAL = "single_meal"
    MODIFICATION = "modification"


CATEGORY_DESCRIPTIONS = {
    "quick": "Quick & Easy (15-20 minutes)",
    "weeknight": "Weeknight Meal (30-40 minutes)",
    "batch": "Batch Cooking (make extras for leftovers)",
    "split": "Split Prep (prep ahead, cook later, including slow-cooker meals)",
    "split-prep": "Split Prep (prep ahead, cook later, including slow-cooker meals)",
}


def describe_category(category: str, definitions: Optional[Mapping[str, str]] = None) -> str:
    """Map a category label to the description used in prompts.

    Caller-supplied ``definitions`` take precedence over the built-in
    descriptions; unknown labels pass through unchanged.
    """
    if definitions:
        if category in definitions:
            return definitions[category]
        lowered = {key.lower(): value for key, value in definitions.items()}
        if category.lower() in lowered:
            return lowered[category.lower()]
    return CATEGORY_DESCRIPTIONS.get(category.lower(), category)


@dataclass(frozen=True)
class DaySelection:
    """Day label -> category label, one recipe slot per day.

    Keys are unique. Equality ignores order; rendering keeps the order the
    caller supplied.
    """

    slots: Tuple[Tuple[str, str], ...] = ()

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, str]) -> "DaySelection":
        return cls.from_pairs(mapping.items())

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[str, str]]) -> "DaySelection":
        seen = set()
        slots = []
        for day, category in pairs:
            day = (day or "").strip()
            category = (category or "").strip()
            if not day:
                raise ValueError("Day label must not be empty")
            if not category:
                raise ValueError(f"Category for {day} must not be empty")
            if day in seen:
                raise ValueError(f"Duplicate day in selection: {day}")
            seen.add(day)
            slots.append((day, category))
        return cls(slots=tuple(slots))

    @property
    def days(self) -> List[str]:
        return [day for day, _ in self.slots]

    def category_for(self, day: str) -> Optional[str]:
        for slot_day, category in self.slots:
            if slot_day == day:
                return category
        return None

    def as_dict(self) -> Dict[str, str]:
        return dict(self.slots)

    def __len__(self) -> int:
        return len(self.slots)

    def __eq__(self, other) -> bool:
        if not isinstance(other, DaySelection):
            return NotImplemented
        return self.as_dict() == other.as_dict()

    def __hash__(self) -> int:
        return hash(frozenset(self.slots))


@dataclass(frozen=True)
class GenerationRequest:
    """One ask to the generation service. Retries derive new values via with_feedback()."""

    household: HouseholdProfile
    mode: GenerationMode = GenerationMode.FULL_PLAN
    selections: DaySelection = field(default_factory=DaySelection)
    environment_summary: Optional[str] = None
    special_notes: Optional[str] = None
    category_definitions: Tuple[Tuple[str, str], ...] = ()

    # Replacement / modification target
    target_meal: Optional[Recipe] = None
    modification_request: Optional[str] = None

    # Single free-form meal
    meal_type: Optional[str] = None
    additional_preferences: Optional[str] = None

    feedback: Tuple[str, ...] = ()

    @property
    def expected_count(self) -> int:
        """Number of recipes the reply should contain."""
        if self.mode is GenerationMode.FULL_PLAN:
            return len(self.selections)
        return 1

    def with_feedback(self, issues: Sequence[str]) -> "GenerationRequest":
        """Copy of this request carrying the given issues as corrective feedback."""
        unique = []
        for issue in issues:
            if issue not in unique:
                unique.append(issue)
        return replace(self, feedback=tuple(unique))

    def without_feedback(self) -> "GenerationRequest":
        return replace(self, feedback=())

    def system_prompt(self) -> str:
        return render_system_prompt()

    def user_prompt(self) -> str:
        return render_user_prompt(self)

    def messages(self) -> List[Dict[str, str]]:
        return [{"role": "user", "content": self.user_prompt()}]


# ==================== Builders ====================

def build_plan_request(
    household: HouseholdProfile,
    selections: Mapping[str, str],
    environment_summary: Optional[str] = None,
    special_notes: Optional[str] = None,
    category_definitions: Optional[Mapping[str, str]] = None,
) -> GenerationRequest:
    """Request one recipe per selected day."""
    if not isinstance(selections, DaySelection):
        selections = DaySelection.from_mapping(selections)
    if not len(selections):
        raise ValueError("At least one day must be selected")

    logger.info(f"[PROMPT] Building plan request for {household.id}: {len(selections)} days")
    return GenerationRequest(
        household=copy.deepcopy(household),
        mode=GenerationMode.FULL_PLAN,
        selections=selections,
        environment_summary=environment_summary,
        special_notes=special_notes,
        category_definitions=tuple(sorted((category_definitions or {}).items())),
    )


def build_replacement_request(
    household: HouseholdProfile,
    meal: Recipe,
    environment_summary: Optional[str] = None,
    special_notes: Optional[str] = None,
) -> GenerationRequest:
    """Request a different recipe in the same category as ``meal``."""
    selections = DaySelection()
    if meal.day:
        selections = DaySelection.from_pairs([(meal.day, meal.category or _first(meal.categories) or "weeknight")])
    return GenerationRequest(
        household=copy.deepcopy(household),
        mode=GenerationMode.REPLACEMENT,
        selections=selections,
        environment_summary=environment_summary,
        special_notes=special_notes,
        target_meal=copy.deepcopy(meal),
    )


def build_modification_request(
    household: HouseholdProfile,
    meal: Recipe,
    modification_request: str,
    environment_summary: Optional[str] = None,
) -> GenerationRequest:
    """Request ``meal`` rewritten according to the user's change request."""
    if not modification_request or not modification_request.strip():
        raise ValueError("Modification request must not be empty")
    return GenerationRequest(
        household=copy.deepcopy(household),
        mode=GenerationMode.MODIFICATION,
        environment_summary=environment_summary,
        target_meal=copy.deepcopy(meal),
        modification_request=modification_request.strip(),
    )


def build_single_meal_request(
    household: HouseholdProfile,
    meal_type: Optional[str] = None,
    additional_preferences: Optional[str] = None,
    environment_summary: Optional[str] = None,
) -> GenerationRequest:
    """Request one free-form meal, not tied to a day."""
    return GenerationRequest(
        household=copy.deepcopy(household),
        mode=GenerationMode.SINGLE_MEAL,
        environment_summary=environment_summary,
        meal_type=meal_type,
        additional_preferences=additional_preferences,
    )


def _first(values: Sequence[str]) -> Optional[str]:
    return values[0] if values else None


# ==================== Rendering ====================

def render_system_prompt() -> str:
    banned = "\n".join(f'- "{phrase}"' for phrase in BANNED_PHRASES)
    return f"""You are a meal planning assistant that writes complete, beginner-friendly dinner recipes for busy families.
Treat food allergies, dietary restrictions and equipment limits as inviolable.

Every recipe you return is checked against this rubric. Recipes that fail it are rejected.
- Required fields: name, description, prepTime (minutes, number), servings (number)
- ingredients: a JSON array of strings, every entry with an exact quantity (e.g. "1 lb ground beef", "2 cloves garlic, minced")
- instructions: a JSON array of {MIN_INSTRUCTION_STEPS} to {MAX_INSTRUCTION_STEPS} step strings
- At least {MIN_TIMED_STEPS} steps must state an explicit time or temperature (e.g. "simmer for 10 minutes", "bake at 400°F")
- Name internal temperatures for meat (165°F for poultry, 160°F for ground meat, 145°F for fish)
- Never use these phrases:
{banned}

Respond with JSON only, no commentary. Use these exact camelCase field names:
name, description, day, category, categories, prepTime, servings, ingredients, instructions, rationales.
"rationales" is an array of 2-3 short reasons the meal fits this family."""


def _household_block(household: HouseholdProfile, environment_summary: Optional[str]) -> List[str]:
    members = ", ".join(m.describe() for m in household.members) or "Not specified"
    equipment = ", ".join(household.equipment) or "Standard kitchen equipment"
    lines = [
        f"- Family size: {household.size} people",
        f"- Family members: {members}",
        f"- Available kitchen equipment: {equipment}",
        f"- Cooking skill level (1-5): {household.cooking_skill}",
        f"- Preferences: {household.preferences or 'Family-friendly meals'}",
        f"- Location: {household.location or 'Unknown location'}",
    ]
    if household.challenges:
        lines.append(f"- Challenges: {household.challenges}")
    if environment_summary:
        lines.append(f"- Current weather: {environment_summary}")
    return lines


def _recipe_summary(meal: Recipe) -> List[str]:
    lines = [f'Original meal: "{meal.name}"']
    if meal.description:
        lines.append(f"Description: {meal.description}")
    category = meal.category or _first(meal.categories)
    if category:
        lines.append(f"Category: {category}")
    if meal.day:
        lines.append(f"Day: {meal.day}")
    if meal.prep_time:
        lines.append(f"Prep time: {meal.prep_time} minutes")
    if meal.ingredients:
        lines.append("Ingredients: " + "; ".join(meal.ingredients))
    return lines


def render_user_prompt(request: GenerationRequest) -> str:
    household = request.household
    definitions = dict(request.category_definitions)
    lines: List[str] = []

    if request.mode is GenerationMode.FULL_PLAN:
        lines.append(
            f"Create a personalized meal plan with {len(request.selections)} dinner ideas "
            "for a family with the following profile:"
        )
        lines.extend(_household_block(household, request.environment_summary))
        lines.append("")
        lines.append(f"Special notes for this week: {request.special_notes or 'No special notes'}")
        lines.append("")
        lines.append("Meal selections by day:")
        for day, category in request.selections.slots:
            lines.append(f"- {day}: {describe_category(category, definitions)}")
        lines.append("")
        lines.append(
            f"Return a JSON array with exactly {len(request.selections)} meal objects, one per day above, "
            'with "day" set to that day and "category" set to the selected category label.'
        )
        if any(c.lower().startswith("split") for _, c in request.selections.slots):
            lines.append(
                'For Split Prep meals also include "prepInstructions" (what to do ahead) '
                'and "cookingInstructions" (what to do on the day).'
            )

    elif request.mode is GenerationMode.REPLACEMENT:
        meal = request.target_meal
        category = (meal.category or _first(meal.categories) or "weeknight") if meal else "weeknight"
        lines.append(
            f'Generate a single replacement meal for "{meal.name if meal else "the current meal"}". '
            f"The replacement should be in the same category ({describe_category(category, definitions)}) "
            "but different enough to provide variety."
        )
        if meal:
            lines.extend(_recipe_summary(meal))
        lines.append("")
        lines.append("Family profile:")
        lines.extend(_household_block(household, request.environment_summary))
        if request.special_notes:
            lines.append(f"Special notes: {request.special_notes}")
        lines.append("")
        lines.append("Return a JSON array with exactly 1 meal object.")

    elif request.mode is GenerationMode.MODIFICATION:
        meal = request.target_meal
        lines.append(f"Modify this meal according to the request: {request.modification_request}")
        if meal:
            lines.extend(_recipe_summary(meal))
        lines.append("Keep the same category and day. Keep the prep time within about 5 minutes of the original.")
        lines.append("")
        lines.append("Family profile:")
        lines.extend(_household_block(household, request.environment_summary))
        lines.append("")
        lines.append("Return a JSON array with exactly 1 meal object.")

    else:
        meal_type = request.meal_type or "any"
        lines.append(f"Create a single {meal_type} dinner meal for a family with the following profile:")
        lines.extend(_household_block(household, request.environment_summary))
        if request.additional_preferences:
            lines.append(f"Specific preferences: {request.additional_preferences}")
        lines.append("")
        lines.append("Return a JSON array with exactly 1 meal object.")

    if request.feedback:
        lines.append("")
        lines.append("Your previous answer was rejected. Fix every one of these problems:")
        lines.extend(f"- {issue}" for issue in request.feedback)

    return "\n".join(lines)
