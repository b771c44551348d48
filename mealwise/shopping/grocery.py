"""
Grocery list generation.

Builds a department-grouped shopping list from a meal plan's recipes
without calling the generation service. Each ingredient line becomes one
item tagged with the meal it came from.
"""

import logging
import re
from typing import Dict, List, Mapping, Optional, Sequence

from ..data.models import GroceryItem, GroceryList, GrocerySection, MealPlan

logger = logging.getLogger(__name__)

OTHER_DEPARTMENT = "Other"

# Checked in order; the first department with a matching keyword wins
DEFAULT_DEPARTMENTS: Dict[str, Sequence[str]] = {
    "Frozen": ("frozen",),
    "Bakery": ("bread", "tortilla", "bun", "roll", "pita", "naan", "baguette"),
    "Pantry": (
        "garlic powder", "onion powder",
        "broth", "stock", "flour", "sugar", "salt", "rice", "pasta", "spaghetti", "noodle",
        "oil", "vinegar", "sauce", "can", "canned", "beans", "lentil", "quinoa", "spice",
        "cumin", "paprika", "oregano", "cinnamon", "honey", "peanut butter", "cornstarch",
        "black pepper", "seasoning", "tomato paste", "salsa",
    ),
    "Meat & Seafood": (
        "chicken", "beef", "pork", "turkey", "sausage", "bacon", "ham", "lamb", "steak",
        "fish", "salmon", "tuna", "shrimp", "cod", "tilapia", "scallop",
    ),
    "Dairy & Eggs": ("milk", "cheese", "butter", "cream", "yogurt", "egg"),
    "Produce": (
        "lettuce", "tomato", "onion", "garlic", "pepper", "carrot", "cucumber", "avocado",
        "potato", "broccoli", "spinach", "zucchini", "mushroom", "celery", "lemon", "lime",
        "cilantro", "parsley", "basil", "ginger", "scallion", "kale", "corn", "apple",
        "cabbage", "squash", "green beans", "peas",
    ),
}

DEPARTMENT_ORDER = (
    "Produce",
    "Meat & Seafood",
    "Dairy & Eggs",
    "Bakery",
    "Pantry",
    "Frozen",
    OTHER_DEPARTMENT,
)


class GroceryListBuilder:
    """Groups a plan's ingredient lines into store departments."""

    def __init__(self, departments: Optional[Mapping[str, Sequence[str]]] = None):
        self.departments = dict(departments or DEFAULT_DEPARTMENTS)
        self._patterns = {
            department: [
                re.compile(r"\b" + re.escape(keyword) + r"(?:e?s)?\b", re.IGNORECASE)
                for keyword in keywords
            ]
            for department, keywords in self.departments.items()
        }

    def guess_department(self, line: str) -> str:
        """Guess the store department for an ingredient line."""
        for department, patterns in self._patterns.items():
            if any(p.search(line) for p in patterns):
                return department
        return OTHER_DEPARTMENT

    def build(self, plan: MealPlan) -> GroceryList:
        grouped: Dict[str, List[GroceryItem]] = {}
        seen = set()

        for meal in plan.meals:
            for line in meal.ingredients:
                name = " ".join(str(line).split())
                if not name:
                    continue
                key = (meal.id, name.lower())
                if key in seen:
                    continue
                seen.add(key)
                department = self.guess_department(name)
                grouped.setdefault(department, []).append(GroceryItem(name=name, meal_id=meal.id))

        order = list(DEPARTMENT_ORDER) + sorted(d for d in grouped if d not in DEPARTMENT_ORDER)
        sections = [GrocerySection(name=d, items=grouped[d]) for d in order if grouped.get(d)]

        grocery_list = GroceryList(
            household_id=plan.household_id,
            meal_plan_id=plan.id,
            sections=sections,
        )
        logger.info(
            f"[GROCERY] Built list for plan {plan.id}: {grocery_list.item_count} items "
            f"in {len(sections)} sections"
        )
        return grocery_list
