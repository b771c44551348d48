"""
Deterministic instruction repair.

When a recipe still fails the quality rubric after the last attempt, the
pipeline keeps it and rewrites its instructions locally instead of
calling the service again. The repairer:

1. Classifies each ingredient line into a bucket (protein, vegetable,
   starch, sauce/liquid, aromatic herb) using a keyword table.
2. Classifies the dish into a technique (stir-fry, taco-style, pasta,
   pressure-cooked, slow-cooked, other) from its name, description and
   ingredients.
3. Emits 10-12 templated steps (prep, heat source, protein sear with a
   safe internal temperature, vegetables, aromatics, sauce reduction,
   starch, garnish, plating) using the recipe's own ingredient names and
   quantities.

Both keyword tables are plain data and can be replaced per instance.
"""

import copy
import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence

from ..data.models import Recipe

logger = logging.getLogger(__name__)

PROTEIN = "protein"
VEGETABLE = "vegetable"
STARCH = "starch"
SAUCE = "sauce"
AROMATIC = "aromatic"
SEASONING = "seasoning"

STIR_FRY = "stir-fry"
TACO = "taco-style"
PASTA = "pasta"
PRESSURE = "pressure-cooked"
SLOW = "slow-cooked"
OTHER = "other"

# Checked in order: the first bucket with a matching keyword wins,
# so "chicken broth" is a sauce and "black pepper" a seasoning.
DEFAULT_INGREDIENT_BUCKETS: Dict[str, Sequence[str]] = {
    SEASONING: (
        "salt", "black pepper", "red pepper flakes", "pepper flakes", "cumin", "paprika",
        "chili powder", "oil", "butter", "sugar", "flour", "cornstarch", "seasoning", "spice",
        "garlic powder", "onion powder", "cinnamon",
    ),
    SAUCE: (
        "broth", "stock", "soy sauce", "sauce", "vinegar", "wine", "cream", "coconut milk",
        "milk", "salsa", "tomato paste", "marinara", "pesto", "honey", "juice", "water",
        "dressing", "yogurt", "sour cream",
    ),
    STARCH: (
        "rice", "pasta", "spaghetti", "penne", "fettuccine", "linguine", "macaroni", "noodle",
        "lasagna", "orzo", "gnocchi", "tortilla", "taco shell", "bread", "bun", "roll", "pita",
        "naan", "potato", "quinoa", "couscous", "polenta",
    ),
    AROMATIC: (
        "garlic", "ginger", "basil", "cilantro", "parsley", "thyme", "rosemary", "oregano",
        "dill", "mint", "scallion", "green onion", "chive", "sage", "bay leaf", "lemongrass",
        "shallot",
    ),
    PROTEIN: (
        "chicken", "turkey", "duck", "beef", "steak", "pork", "bacon", "sausage", "ham", "lamb",
        "shrimp", "salmon", "cod", "tilapia", "tuna", "fish", "scallop", "tofu", "tempeh", "egg",
        "black beans", "kidney beans", "pinto beans", "chickpea", "lentil",
    ),
    VEGETABLE: (
        "onion", "bell pepper", "pepper", "carrot", "broccoli", "zucchini", "spinach", "kale",
        "mushroom", "tomato", "celery", "corn", "peas", "green beans", "cabbage", "cauliflower",
        "squash", "eggplant", "lettuce", "cucumber", "avocado", "asparagus", "bok choy",
        "snap peas", "jalapeno",
    ),
}

# Checked in order against name + description + ingredients
DEFAULT_TECHNIQUES: Dict[str, Sequence[str]] = {
    PRESSURE: ("instant pot", "pressure cooker", "pressure cooked", "pressure-cooked", "pressure cook"),
    SLOW: ("slow cooker", "slow-cooker", "crockpot", "crock pot", "crock-pot", "slow cooked", "slow-cooked"),
    STIR_FRY: ("stir fry", "stir-fry", "stir fried", "stir-fried", "wok", "lo mein", "fried rice"),
    TACO: ("taco", "burrito", "fajita", "quesadilla", "enchilada", "tortilla", "nacho"),
    PASTA: (
        "pasta", "spaghetti", "penne", "fettuccine", "linguine", "macaroni", "noodle",
        "lasagna", "orzo", "rigatoni", "ziti",
    ),
}


@dataclass(frozen=True)
class ProteinProfile:
    """How to sear a protein and the internal temperature it must reach."""
    sear_minutes: str
    cue: str
    safe_temp: Optional[int]  # °F, None when there is no meaningful internal target


# Checked in order; "ground" cuts come before their whole-cut counterparts
PROTEIN_PROFILES: Dict[str, ProteinProfile] = {
    "ground chicken": ProteinProfile("6-8", "no longer pink", 165),
    "ground turkey": ProteinProfile("7-9", "no longer pink", 165),
    "ground beef": ProteinProfile("7-9", "browned throughout", 160),
    "ground pork": ProteinProfile("7-9", "no longer pink", 160),
    "sausage": ProteinProfile("8-10", "browned and cooked through", 160),
    "chicken": ProteinProfile("6-8", "golden and no longer pink in the center", 165),
    "turkey": ProteinProfile("6-8", "no longer pink in the center", 165),
    "duck": ProteinProfile("6-8", "skin rendered and golden", 165),
    "egg": ProteinProfile("3-4", "set with no runny white", 160),
    "steak": ProteinProfile("4-5", "deeply browned", 145),
    "beef": ProteinProfile("5-7", "browned on all sides", 145),
    "pork": ProteinProfile("5-7", "browned on all sides", 145),
    "lamb": ProteinProfile("5-7", "browned on all sides", 145),
    "ham": ProteinProfile("3-4", "heated through", 140),
    "bacon": ProteinProfile("6-8", "crisp", 145),
    "shrimp": ProteinProfile("2-3", "pink and opaque", 145),
    "scallop": ProteinProfile("2-3", "opaque with a golden crust", 145),
    "salmon": ProteinProfile("4-5", "flakes easily with a fork", 145),
    "fish": ProteinProfile("3-4", "opaque and flakes easily", 145),
    "cod": ProteinProfile("3-4", "opaque and flakes easily", 145),
    "tilapia": ProteinProfile("3-4", "opaque and flakes easily", 145),
    "tuna": ProteinProfile("2-3", "seared on the outside", 145),
    "tofu": ProteinProfile("8-10", "golden on all sides", None),
    "tempeh": ProteinProfile("8-10", "golden on all sides", None),
}

DEFAULT_PROTEIN_PROFILE = ProteinProfile("6-8", "browned and cooked through", 165)

UNITS = (
    r"cups?|tablespoons?|tbsps?|teaspoons?|tsps?|lbs?|pounds?|oz|ounces?|grams?|g|kg|ml|"
    r"liters?|l|cloves?|cans?|packages?|pkgs?|bunch(?:es)?|pinch(?:es)?|slices?|pieces?|"
    r"stalks?|heads?|sprigs?|quarts?|pints?|large|medium|small"
)
QUANTITY_PATTERN = re.compile(
    r"^\s*(?P<amount>(?:\d+\s+)?\d+(?:[./]\d+)?(?:\s*-\s*\d+(?:[./]\d+)?)?|[½¼¾⅓⅔])"
    r"\s*(?P<unit>(?:" + UNITS + r")\b\.?)?\s*(?:of\s+)?(?P<name>.*)$",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class ParsedIngredient:
    """An ingredient line split into quantity and name."""
    line: str
    quantity: str
    name: str

    @classmethod
    def parse(cls, line: str) -> "ParsedIngredient":
        text = " ".join(str(line).split())
        match = QUANTITY_PATTERN.match(text)
        if match and match.group("name"):
            amount = match.group("amount")
            unit = match.group("unit") or ""
            quantity = f"{amount} {unit}".strip()
            name = match.group("name")
        else:
            quantity = ""
            name = text
        # "chicken breast, cut into strips" -> "chicken breast"
        name = name.split(",")[0].strip() or text
        return cls(line=text, quantity=quantity, name=name)


def _keyword_pattern(keyword: str) -> "re.Pattern":
    return re.compile(r"\b" + re.escape(keyword) + r"(?:e?s)?\b", re.IGNORECASE)


class IngredientClassifier:
    """Assigns ingredient lines to buckets from a keyword table."""

    def __init__(self, table: Optional[Mapping[str, Sequence[str]]] = None):
        self.table = dict(table or DEFAULT_INGREDIENT_BUCKETS)
        self._patterns = {
            bucket: [_keyword_pattern(kw) for kw in keywords]
            for bucket, keywords in self.table.items()
        }

    def bucket_for(self, line: str) -> Optional[str]:
        for bucket, patterns in self._patterns.items():
            if any(p.search(line) for p in patterns):
                return bucket
        return None

    def classify(self, ingredients: Sequence[str]) -> Dict[str, List[ParsedIngredient]]:
        """Bucket name -> parsed ingredients, in recipe order. Every bucket is present."""
        buckets: Dict[str, List[ParsedIngredient]] = {bucket: [] for bucket in self.table}
        buckets.setdefault("other", [])
        for line in ingredients:
            if not isinstance(line, str) or not line.strip():
                continue
            parsed = ParsedIngredient.parse(line)
            bucket = self.bucket_for(parsed.name) or self.bucket_for(parsed.line) or "other"
            buckets.setdefault(bucket, []).append(parsed)
        return buckets


class TechniqueClassifier:
    """Picks a cooking technique from keywords in the recipe text."""

    def __init__(self, table: Optional[Mapping[str, Sequence[str]]] = None):
        self.table = dict(table or DEFAULT_TECHNIQUES)
        self._patterns = {
            technique: [_keyword_pattern(kw) for kw in keywords]
            for technique, keywords in self.table.items()
        }

    def classify(self, recipe: Recipe) -> str:
        title = f"{recipe.name} {recipe.description}"
        ingredients = " ".join(i for i in recipe.ingredients if isinstance(i, str))
        # Name and description take precedence over the ingredient list
        for text in (title, ingredients):
            for technique, patterns in self._patterns.items():
                if any(p.search(text) for p in patterns):
                    return technique
        return OTHER


def protein_profile(name: str) -> ProteinProfile:
    lowered = name.lower()
    for keyword, profile in PROTEIN_PROFILES.items():
        if _keyword_pattern(keyword).search(lowered):
            return profile
    return DEFAULT_PROTEIN_PROFILE


def _join(names: Sequence[str]) -> str:
    names = list(names)
    if not names:
        return ""
    if len(names) == 1:
        return names[0]
    return ", ".join(names[:-1]) + f" and {names[-1]}"


def _lines(items: Sequence[ParsedIngredient]) -> str:
    return _join([item.line for item in items])


def _names(items: Sequence[ParsedIngredient]) -> str:
    return _join([f"the {item.name}" for item in items])


# Starch keyword -> (start step, finish step); a None start means nothing to pre-cook
STARCH_STEPS = {
    "rice": (
        "Start the rice: rinse {line} in a fine strainer for 30 seconds, then bring it to a boil "
        "with twice its volume of salted water, cover, and simmer on low for 18 minutes. "
        "Let it stand off the heat, covered, for 5 minutes.",
        "Fluff the rice with a fork and spoon it into bowls or onto a platter as the base.",
    ),
    "quinoa": (
        "Start the quinoa: rinse {line}, then simmer it covered in twice its volume of salted water "
        "for 15 minutes until the water is absorbed.",
        "Fluff the quinoa with a fork and fold in 2 tablespoons of the pan sauce.",
    ),
    "couscous": (
        None,
        "Pour 1 cup boiling water over {line}, cover for 5 minutes, then fluff with a fork.",
    ),
    "potato": (
        "Start the potatoes: cut {line} into 1-inch chunks, cover with cold salted water, "
        "bring to a boil and cook for 12-15 minutes until a knife slides in easily. Drain.",
        "Add the drained potatoes to the pan and toss for 2 minutes to coat them in the sauce.",
    ),
    "tortilla": (
        None,
        "Warm {line} in a dry skillet over medium heat for 30 seconds per side, then wrap them "
        "in a clean towel to keep soft.",
    ),
    "taco shell": (
        None,
        "Warm {line} on a baking sheet in a 350°F oven for 5 minutes.",
    ),
    "bread": (
        None,
        "Slice {line} and toast it for 2-3 minutes until golden at the edges.",
    ),
}

PASTA_STEPS = (
    "Start the pasta: bring 4 quarts of water with 1 tablespoon salt to a rolling boil, add {line} "
    "and boil for 8-10 minutes, stirring occasionally, until tender but still slightly firm.",
    "Scoop out 1/2 cup of the starchy cooking water, drain {name}, and toss it in the skillet "
    "with the sauce for 1-2 minutes, adding splashes of the reserved water until glossy.",
)

HEAT_STEPS = {
    STIR_FRY: "Heat a wok or 12-inch skillet over high heat for 2 minutes until very hot, then add "
              "1 tablespoon oil and swirl to coat.",
    TACO: "Heat a large skillet over medium-high heat for 2 minutes, then add 1 tablespoon oil.",
    PASTA: "Set a 12-inch skillet over medium heat for 2 minutes and add 2 tablespoons olive oil.",
    PRESSURE: "Press Sauté on the pressure cooker and let it heat for 2-3 minutes until it reads Hot, "
              "then add 1 tablespoon oil.",
    SLOW: "Heat a large skillet over medium-high heat for 2 minutes and add 1 tablespoon oil to "
          "brown the ingredients before they go into the slow cooker.",
    OTHER: "Heat a large skillet or Dutch oven over medium-high heat for 2 minutes, then add "
           "1 tablespoon oil and swirl to coat.",
}


class InstructionRepairer:
    """Rewrites a recipe's instructions from its ingredients. Never fails."""

    MIN_STEPS = 10
    MAX_STEPS = 12

    def __init__(
        self,
        ingredient_table: Optional[Mapping[str, Sequence[str]]] = None,
        technique_table: Optional[Mapping[str, Sequence[str]]] = None,
    ):
        self.ingredients = IngredientClassifier(ingredient_table)
        self.techniques = TechniqueClassifier(technique_table)

    def repair(self, recipe: Recipe) -> Recipe:
        """Return a copy of ``recipe`` with synthesized instructions."""
        repaired = copy.deepcopy(recipe)
        buckets = self.ingredients.classify(recipe.ingredients)
        technique = self.techniques.classify(recipe)

        steps = self.build_steps(buckets, technique)
        repaired.instructions = steps
        repaired.instructions_repaired = True
        logger.info(
            f"[REPAIR] Rewrote instructions for '{recipe.name}': technique={technique}, "
            f"{len(steps)} steps"
        )
        return repaired

    def build_steps(self, buckets: Dict[str, List[ParsedIngredient]], technique: str) -> List[str]:
        proteins = buckets.get(PROTEIN, [])
        vegetables = buckets.get(VEGETABLE, [])
        aromatics = buckets.get(AROMATIC, [])
        sauces = buckets.get(SAUCE, [])
        starches = buckets.get(STARCH, [])
        seasonings = buckets.get(SEASONING, [])

        starch_start, starch_finish = self._starch_steps(starches, technique)

        steps = [self._prep_step(proteins, vegetables, aromatics)]
        steps.append(self._season_step(proteins, vegetables, seasonings))
        if starch_start:
            steps.append(starch_start)
        steps.append(HEAT_STEPS.get(technique, HEAT_STEPS[OTHER]))
        steps.append(self._protein_step(proteins, technique))
        steps.append(self._vegetable_step(vegetables, technique))
        steps.append(self._aromatic_step(aromatics))
        steps.extend(self._sauce_steps(sauces, proteins, technique))
        steps.append(starch_finish)
        steps.append(self._garnish_step(aromatics))
        steps.append(self._plating_step(technique))

        if len(steps) < self.MIN_STEPS:
            steps.insert(-1, "Taste the finished dish and adjust with 1/4 teaspoon salt at a time, "
                             "stirring for 30 seconds after each addition.")
        return steps[: self.MAX_STEPS]

    # ==================== Step templates ====================

    def _prep_step(self, proteins, vegetables, aromatics) -> str:
        parts = []
        if proteins:
            parts.append(f"pat {_lines(proteins)} dry and cut into 1-inch pieces")
        if vegetables:
            parts.append(f"dice {_lines(vegetables)} into 1/2-inch pieces")
        if aromatics:
            parts.append(f"mince {_lines(aromatics)}")
        if not parts:
            return "Prep: measure every ingredient into separate bowls before turning on the heat."
        return "Prep: " + "; ".join(parts) + ". Keep each group in its own bowl."

    def _season_step(self, proteins, vegetables, seasonings) -> str:
        target = _names(proteins) or _names(vegetables[:1]) or "the main ingredients"
        if seasonings:
            spices = _lines(seasonings)
            return f"Season {target} with {spices}, tossing to coat evenly, and let stand for 10 minutes."
        return (f"Season {target} with 1/2 teaspoon salt and 1/4 teaspoon black pepper and let stand "
                "for 10 minutes while the pan heats.")

    def _protein_step(self, proteins, technique) -> str:
        if not proteins:
            return ("Add 1/2 cup of water to the pan, cover, and steam the firmest vegetables for "
                    "3 minutes to give them a head start.")
        main = proteins[0]
        profile = protein_profile(main.name)
        if profile.safe_temp:
            doneness = (f"until {profile.cue} and an instant-read thermometer in the thickest piece "
                        f"reads {profile.safe_temp}°F")
        else:
            doneness = f"until {profile.cue}"
        if technique in (SLOW, PRESSURE):
            return (f"Sear {main.line} in a single layer for {profile.sear_minutes} minutes, turning once, "
                    f"until browned; it will finish cooking later and must reach "
                    f"{profile.safe_temp or 165}°F inside. Transfer to a plate.")
        return (f"Add {main.line} in a single layer and sear for {profile.sear_minutes} minutes, "
                f"turning once, {doneness}. Transfer to a clean plate.")

    def _vegetable_step(self, vegetables, technique) -> str:
        if not vegetables:
            return "Add 1 tablespoon oil to the same pan and let it heat for 30 seconds."
        minutes = "2-3" if technique == STIR_FRY else "4-5"
        return (f"Add {_names(vegetables)} to the same pan and cook for {minutes} minutes, stirring "
                "often, until softened and lightly browned at the edges.")

    def _aromatic_step(self, aromatics) -> str:
        hardy = [a for a in aromatics if not _is_tender_herb(a.name)]
        if hardy:
            return f"Stir in {_names(hardy)} and cook for 30-60 seconds until fragrant."
        return "Stir the pan and cook for 1 minute to toast the seasonings until fragrant."

    def _sauce_steps(self, sauces, proteins, technique) -> List[str]:
        liquid = _lines(sauces) or "1 cup water"
        protein = _names(proteins[:1]) or "the vegetables"
        temp = protein_profile(proteins[0].name).safe_temp if proteins else None

        if technique == SLOW:
            return [
                f"Transfer everything, including {protein}, to the slow cooker and pour in {liquid}.",
                f"Cover and cook on LOW for 6-7 hours or HIGH for 3-4 hours, until {protein} is tender"
                + (f" and reads {temp}°F inside." if temp else "."),
            ]
        if technique == PRESSURE:
            return [
                f"Pour in {liquid}, scraping the bottom of the pot for 1 minute, then return {protein} to the pot.",
                "Lock the lid, set the valve to Sealing and cook on HIGH pressure for 10 minutes; "
                "let the pressure release naturally for 10 minutes, then vent the rest"
                + (f". Check that {protein} reads {temp}°F." if temp else "."),
            ]
        if technique == STIR_FRY:
            return [f"Return {protein} to the pan, pour in {liquid}, and toss constantly for 1-2 minutes "
                    "until the sauce thickens and coats everything."]
        return [f"Pour in {liquid}, return {protein} to the pan, and simmer for 8-10 minutes until "
                "the liquid reduces by about a third and coats the back of a spoon."]

    def _starch_steps(self, starches, technique):
        if not starches:
            return None, "Spoon the sauce over each portion and serve any extra on the side."
        main = starches[0]
        lowered = main.name.lower()
        if technique == PASTA or any(_keyword_pattern(k).search(lowered) for k in DEFAULT_TECHNIQUES[PASTA]):
            start, finish = PASTA_STEPS
            return start.format(line=main.line), finish.format(name=f"the {main.name}")
        for keyword, (start, finish) in STARCH_STEPS.items():
            if _keyword_pattern(keyword).search(lowered):
                return (start.format(line=main.line) if start else None), finish.format(line=main.line)
        return None, f"Serve {main.line} alongside, warmed for 2-3 minutes if needed."

    def _garnish_step(self, aromatics) -> str:
        tender = [a for a in aromatics if _is_tender_herb(a.name)]
        if tender:
            return f"Remove from the heat and scatter {_names(tender)} over the top."
        return "Remove from the heat and let the dish rest for 2 minutes so the sauce settles."

    def _plating_step(self, technique) -> str:
        if technique == TACO:
            return "Fill each warm tortilla with the filling, add your toppings, and serve right away."
        return "Divide among warm plates, spooning the pan sauce over the top, and serve immediately."


TENDER_HERBS = ("basil", "cilantro", "parsley", "dill", "mint", "chive", "scallion", "green onion")


def _is_tender_herb(name: str) -> bool:
    return any(_keyword_pattern(h).search(name) for h in TENDER_HERBS)
