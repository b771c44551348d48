"""
Recipe quality rubric.

validate_recipe() checks a canonical Recipe against fixed thresholds and
returns a QualityReport. The same rubric is stated to the generation
service in the system prompt.

Rubric:
- missing name, description, prep time or servings: one issue each
- missing or non-list ingredients: one issue
- missing or non-list instructions: one issue; otherwise
  - fewer than 5 steps: issue citing the count
  - each banned phrase found (case-insensitive): one issue, and the
    timing check is skipped
  - fewer than 2 steps with a time or temperature: issue citing the count
"""

import logging
import re
from typing import Any, List

from ..data.models import QualityReport, Recipe

logger = logging.getLogger(__name__)

MIN_INSTRUCTION_STEPS = 5
MAX_INSTRUCTION_STEPS = 12
MIN_TIMED_STEPS = 2

BANNED_PHRASES = (
    "cook until done",
    "follow package directions",
    "cook according to instructions",
    "standard procedure",
    "cook following standard procedures",
)

# A number followed by a time unit, or by a degree marker
TIMED_STEP_PATTERN = re.compile(
    r"\d+(?:\.\d+)?\s*(?:-\s*\d+(?:\.\d+)?\s*)?"
    r"(?:(?:minutes?|mins?|hours?|hrs?|seconds?|secs?)\b|°|º|degrees?\b)",
    re.IGNORECASE,
)


def _missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def is_timed_step(step: str) -> bool:
    return bool(TIMED_STEP_PATTERN.search(step))


def find_banned_phrases(steps: List[str]) -> List[str]:
    """Banned phrases present in any step, in BANNED_PHRASES order."""
    lowered = [str(step).lower() for step in steps]
    return [phrase for phrase in BANNED_PHRASES if any(phrase in step for step in lowered)]


def instruction_issues(recipe: Recipe) -> List[str]:
    """The instruction part of the rubric; an empty list means the steps pass."""
    instructions = recipe.instructions
    if not isinstance(instructions, list) or not instructions:
        return ["Instructions are missing or not a list"]

    issues = []
    if len(instructions) < MIN_INSTRUCTION_STEPS:
        issues.append(
            f"Insufficient instructions: found {len(instructions)}, "
            f"minimum {MIN_INSTRUCTION_STEPS} steps required"
        )

    banned = find_banned_phrases(instructions)
    for phrase in banned:
        issues.append(f'Instructions contain generic phrase "{phrase}"')

    # A generic phrase already condemns the steps; the timing count is skipped
    if not banned:
        timed = sum(1 for step in instructions if is_timed_step(str(step)))
        if timed < MIN_TIMED_STEPS:
            issues.append(
                f"Instructions lack specific times or temperatures: found {timed} timed steps, "
                f"minimum {MIN_TIMED_STEPS} required"
            )
    return issues


def validate_recipe(recipe: Recipe) -> QualityReport:
    """Score a recipe against the rubric. Deterministic and side-effect free."""
    issues: List[str] = []

    if _missing(recipe.name):
        issues.append("Meal name is missing")
    if _missing(recipe.description):
        issues.append("Meal description is missing")
    if _missing(recipe.prep_time):
        issues.append("Prep time is missing")
    if _missing(recipe.servings):
        issues.append("Servings is missing")

    if not isinstance(recipe.ingredients, list) or not recipe.ingredients:
        issues.append("Ingredients are missing or not a list")

    issues.extend(instruction_issues(recipe))

    if issues:
        logger.debug(f"[QUALITY] {recipe.name or recipe.id}: {len(issues)} issue(s)")
    return QualityReport(issues=issues)
