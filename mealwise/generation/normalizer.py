"""
Schema normalization for generated recipe records.

The service does not always use the stored field names. normalize_recipe()
reconciles the known alternates into a canonical Recipe:

    instructions  <- directions, steps, method
    ingredients   <-> mainIngredients / main_ingredients (longer list wins)
    prepTime      <- prep_time, prepTimeMinutes, cookTime  (default 30)
    servings      <- servingSize, serving_size             (default 4)
    categories    <- category
    id            <- fresh id when absent

Normalization is idempotent: normalize(normalize(r)) == normalize(r).
"""

import logging
import math
import re
from typing import Any, Dict, List, Optional, Union

from ..data.models import Recipe, new_id

logger = logging.getLogger(__name__)

DEFAULT_SERVINGS = 4
DEFAULT_PREP_TIME = 30

INSTRUCTION_ALIASES = ("directions", "steps", "method")
INGREDIENT_ALIASES = ("mainIngredients", "main_ingredients")
PREP_TIME_ALIASES = ("prepTime", "prep_time", "prepTimeMinutes", "cookTime", "totalTime")
SERVINGS_ALIASES = ("servings", "servingSize", "serving_size")
RATIONALE_ALIASES = ("rationales", "rationale", "reasons")

_NUMBER = re.compile(r"\d+(?:\.\d+)?")


def _as_text_list(value: Any) -> Optional[List[str]]:
    """Lists of strings pass through; a newline-separated string is split."""
    if isinstance(value, list):
        items = []
        for item in value:
            if isinstance(item, str):
                text = item.strip()
            elif isinstance(item, dict):
                # {"step": 1, "text": "..."} style entries
                text = str(item.get("text") or item.get("instruction") or item.get("name") or "").strip()
            elif item is None:
                text = ""
            else:
                text = str(item).strip()
            if text:
                items.append(text)
        return items
    if isinstance(value, str) and value.strip():
        return [line.strip() for line in value.splitlines() if line.strip()]
    return None


def coerce_number(value: Any, default: int) -> int:
    """Numbers and numeric-looking strings ("25 minutes") become positive ints.

    Anything else (including inf, NaN and values below 1) gives ``default``.
    """
    if isinstance(value, bool):
        return default
    if isinstance(value, str):
        match = _NUMBER.search(value)
        if not match:
            return default
        value = float(match.group())
    if not isinstance(value, (int, float)):
        return default
    if isinstance(value, float) and not math.isfinite(value):
        return default
    number = int(value)
    return number if number > 0 else default


def _first_present(record: Dict[str, Any], keys) -> Any:
    for key in keys:
        value = record.get(key)
        if value not in (None, "", []):
            return value
    return None


def reconcile_fields(record: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of ``record`` with alternate fields folded into canonical ones."""
    data = dict(record)

    instructions = _as_text_list(data.get("instructions"))
    if not instructions:
        alternate = _first_present(data, INSTRUCTION_ALIASES)
        alternate = _as_text_list(alternate)
        if alternate:
            instructions = alternate
            logger.debug(f"[NORMALIZE] Copied alternate instructions field for: {data.get('name')}")
    data["instructions"] = instructions or []

    primary = _as_text_list(data.get("ingredients")) or []
    alternate = _as_text_list(_first_present(data, INGREDIENT_ALIASES)) or []
    ingredients = alternate if len(alternate) > len(primary) else primary
    data["ingredients"] = ingredients
    data["mainIngredients"] = list(ingredients)

    data["prepTime"] = coerce_number(_first_present(data, PREP_TIME_ALIASES), DEFAULT_PREP_TIME)
    data["servings"] = coerce_number(_first_present(data, SERVINGS_ALIASES), DEFAULT_SERVINGS)

    categories = data.get("categories")
    if isinstance(categories, str):
        categories = [categories]
    if not categories and data.get("category"):
        categories = [str(data["category"])]
    data["categories"] = [str(c) for c in (categories or []) if c]
    if not data.get("category") and data["categories"]:
        data["category"] = data["categories"][0]

    rationales = _as_text_list(_first_present(data, RATIONALE_ALIASES))
    data["rationales"] = rationales or []

    if not data.get("name") and data.get("title"):
        data["name"] = data["title"]

    if not data.get("id"):
        data["id"] = new_id("meal")

    return data


def normalize_recipe(record: Union[Dict[str, Any], Recipe]) -> Recipe:
    """Canonical Recipe from a loose record (or an existing Recipe)."""
    if isinstance(record, Recipe):
        data = record.to_dict()
    else:
        data = record

    data = reconcile_fields(data)
    recipe = Recipe.from_dict(data)
    recipe.name = str(recipe.name or "").strip()
    recipe.description = str(recipe.description or "").strip()

    if isinstance(record, Recipe):
        # Working markers are not part of the stored shape; keep them as they were
        recipe.needs_regeneration = record.needs_regeneration
        recipe.quality_issues = list(record.quality_issues)
        recipe.instructions_repaired = record.instructions_repaired
    return recipe


def normalize_records(records: List[Dict[str, Any]]) -> List[Recipe]:
    return [normalize_recipe(record) for record in records]
