"""
Data models for the meal planning assistant.

These models define the core entities used throughout the system:
- HouseholdProfile: the family unit recipes are generated for
- Recipe: one generated meal, serialized with the interchange field names
- MealPlan: an ordered set of recipes owned by a household
- QualityReport: the outcome of validating one recipe
- GroceryList: department-grouped shopping list for a plan
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Dict, Any
import uuid


def new_id(prefix: str) -> str:
    """Generate a unique identifier with a readable prefix."""
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


@dataclass
class HouseholdMember:
    """One person cooked for."""
    name: str
    age_class: str = "adult"  # "adult", "teen", "child" (free text accepted)
    dietary_restrictions: str = ""

    def describe(self) -> str:
        """Render as 'Name (age, restrictions)'."""
        details = [self.age_class]
        if self.dietary_restrictions:
            details.append(self.dietary_restrictions)
        return f"{self.name} ({', '.join(details)})"

    def to_dict(self) -> Dict:
        return {
            "name": self.name,
            "age_class": self.age_class,
            "dietary_restrictions": self.dietary_restrictions,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "HouseholdMember":
        return cls(
            name=data["name"],
            age_class=data.get("age_class") or data.get("age") or "adult",
            dietary_restrictions=data.get("dietary_restrictions") or data.get("dietaryRestrictions") or "",
        )


@dataclass
class HouseholdProfile:
    """Durable description of a household, read-only to generation."""

    id: str
    name: str = ""
    members: List[HouseholdMember] = field(default_factory=list)
    equipment: List[str] = field(default_factory=list)
    cooking_skill: int = 3  # 1 (beginner) .. 5 (expert)
    preferences: str = ""
    location: Optional[str] = None
    challenges: Optional[str] = None
    updated_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        """Keep skill in range and equipment as a sorted set."""
        self.cooking_skill = max(1, min(5, int(self.cooking_skill)))
        self.equipment = sorted({item.strip() for item in self.equipment if item and item.strip()})

    @property
    def size(self) -> int:
        return len(self.members)

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "name": self.name,
            "members": [member.to_dict() for member in self.members],
            "equipment": list(self.equipment),
            "cooking_skill": self.cooking_skill,
            "preferences": self.preferences,
            "location": self.location,
            "challenges": self.challenges,
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "HouseholdProfile":
        """Create HouseholdProfile from dictionary."""
        updated_at = data.get("updated_at")
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            members=[HouseholdMember.from_dict(m) for m in data.get("members", [])],
            equipment=data.get("equipment", []),
            cooking_skill=data.get("cooking_skill", 3),
            preferences=data.get("preferences", ""),
            location=data.get("location"),
            challenges=data.get("challenges"),
            updated_at=datetime.fromisoformat(updated_at) if updated_at else datetime.now(),
        )


@dataclass
class Recipe:
    """A generated meal.

    Serialized with the interchange field names (``prepTime``,
    ``modifiedFrom``, ...). The quality markers are working state: they
    are only written out when set.
    """

    id: str = ""
    name: str = ""
    description: str = ""
    day: Optional[str] = None
    category: Optional[str] = None
    categories: List[str] = field(default_factory=list)
    prep_time: Optional[int] = None  # Minutes
    servings: Optional[int] = None
    ingredients: List[str] = field(default_factory=list)
    instructions: List[str] = field(default_factory=list)
    rationales: List[str] = field(default_factory=list)

    # Lineage - at most one of these is set
    modified_from: Optional[str] = None
    replaced_from: Optional[str] = None
    original_id: Optional[str] = None

    # Split-prep meals carry separate prep and cook texts
    prep_instructions: Optional[str] = None
    cooking_instructions: Optional[str] = None
    modification_request: Optional[str] = None

    # Quality markers
    needs_regeneration: bool = False
    quality_issues: List[str] = field(default_factory=list)
    instructions_repaired: bool = False

    def set_lineage(
        self,
        modified_from: Optional[str] = None,
        replaced_from: Optional[str] = None,
        original_id: Optional[str] = None,
    ) -> None:
        """Replace the lineage link, clearing any previous one."""
        links = [v for v in (modified_from, replaced_from, original_id) if v]
        if len(links) > 1:
            raise ValueError("A recipe carries at most one lineage link")
        self.modified_from = modified_from
        self.replaced_from = replaced_from
        self.original_id = original_id

    def is_final(self) -> bool:
        """A stored recipe needs at least 5 steps and one ingredient."""
        return len(self.instructions) >= 5 and len(self.ingredients) >= 1

    def to_dict(self) -> Dict:
        """Convert to dictionary using the stored field names."""
        data = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "day": self.day,
            "category": self.category,
            "categories": list(self.categories),
            "prepTime": self.prep_time,
            "servings": self.servings,
            "ingredients": list(self.ingredients),
            "instructions": list(self.instructions),
            "rationales": list(self.rationales),
        }
        optional = {
            "modifiedFrom": self.modified_from,
            "replacedFrom": self.replaced_from,
            "originalId": self.original_id,
            "prepInstructions": self.prep_instructions,
            "cookingInstructions": self.cooking_instructions,
            "modificationRequest": self.modification_request,
        }
        data.update({key: value for key, value in optional.items() if value})

        if self.needs_regeneration:
            data["needsRegeneration"] = True
        if self.quality_issues:
            data["qualityIssues"] = list(self.quality_issues)
        if self.instructions_repaired:
            data["instructionsImproved"] = True
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> "Recipe":
        """Create Recipe from a stored dictionary."""
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            description=data.get("description", ""),
            day=data.get("day"),
            category=data.get("category"),
            categories=list(data.get("categories") or []),
            prep_time=data.get("prepTime"),
            servings=data.get("servings"),
            ingredients=list(data.get("ingredients") or []),
            instructions=list(data.get("instructions") or []),
            rationales=list(data.get("rationales") or []),
            modified_from=data.get("modifiedFrom"),
            replaced_from=data.get("replacedFrom"),
            original_id=data.get("originalId"),
            prep_instructions=data.get("prepInstructions"),
            cooking_instructions=data.get("cookingInstructions"),
            modification_request=data.get("modificationRequest"),
            needs_regeneration=data.get("needsRegeneration", False),
            quality_issues=list(data.get("qualityIssues") or []),
            instructions_repaired=data.get("instructionsImproved", False),
        )


@dataclass
class MealPlan:
    """Ordered recipes for one household. The id is stable across edits."""

    household_id: str
    meals: List[Recipe] = field(default_factory=list)
    name: str = ""
    is_active: bool = False
    created_at: datetime = field(default_factory=datetime.now)
    id: str = field(default_factory=lambda: new_id("mp"))

    @property
    def has_meals(self) -> bool:
        return len(self.meals) > 0

    def find_meal(self, meal_id: str) -> Optional[Recipe]:
        for meal in self.meals:
            if meal.id == meal_id:
                return meal
        return None

    def replace_meal(self, meal_id: str, new_meal: Recipe) -> bool:
        """Swap a meal in place, keeping its position. Returns False if absent."""
        for index, meal in enumerate(self.meals):
            if meal.id == meal_id:
                self.meals[index] = new_meal
                return True
        return False

    def remove_meal(self, meal_id: str) -> bool:
        before = len(self.meals)
        self.meals = [meal for meal in self.meals if meal.id != meal_id]
        return len(self.meals) < before

    def get_summary(self) -> str:
        """Get human-readable summary."""
        state = "active" if self.is_active else "inactive"
        return f"Meal Plan {self.id}: {len(self.meals)} meals ({state})"

    def __str__(self) -> str:
        return self.get_summary()

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "householdId": self.household_id,
            "name": self.name,
            "isActive": self.is_active,
            "createdAt": self.created_at.isoformat(),
            "meals": [meal.to_dict() for meal in self.meals],
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "MealPlan":
        """Create MealPlan from dictionary."""
        return cls(
            id=data["id"],
            household_id=data["householdId"],
            name=data.get("name", ""),
            is_active=data.get("isActive", False),
            created_at=datetime.fromisoformat(data["createdAt"]),
            meals=[Recipe.from_dict(m) for m in data.get("meals", [])],
        )


@dataclass
class QualityReport:
    """Validation outcome for one recipe. Never persisted."""
    issues: List[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.issues


@dataclass
class GroceryItem:
    """One shopping line, quantity embedded in the name."""
    name: str
    meal_id: Optional[str] = None
    id: str = field(default_factory=lambda: new_id("gi"))

    def to_dict(self) -> Dict:
        return {"id": self.id, "name": self.name, "mealId": self.meal_id}

    @classmethod
    def from_dict(cls, data: Dict) -> "GroceryItem":
        return cls(id=data["id"], name=data["name"], meal_id=data.get("mealId"))


@dataclass
class GrocerySection:
    """Items of one store department."""
    name: str
    items: List[GroceryItem] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {"name": self.name, "items": [item.to_dict() for item in self.items]}

    @classmethod
    def from_dict(cls, data: Dict) -> "GrocerySection":
        return cls(name=data["name"], items=[GroceryItem.from_dict(i) for i in data.get("items", [])])


@dataclass
class GroceryList:
    """Shopping list built from one meal plan."""

    household_id: str
    meal_plan_id: Optional[str]
    sections: List[GrocerySection] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.now)
    id: str = field(default_factory=lambda: new_id("gl"))

    def section(self, name: str) -> Optional[GrocerySection]:
        for section in self.sections:
            if section.name == name:
                return section
        return None

    @property
    def item_count(self) -> int:
        return sum(len(section.items) for section in self.sections)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "householdId": self.household_id,
            "mealPlanId": self.meal_plan_id,
            "createdAt": self.created_at.isoformat(),
            "sections": [section.to_dict() for section in self.sections],
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "GroceryList":
        """Create GroceryList from dictionary."""
        return cls(
            id=data["id"],
            household_id=data["householdId"],
            meal_plan_id=data.get("mealPlanId"),
            created_at=datetime.fromisoformat(data["createdAt"]),
            sections=[GrocerySection.from_dict(s) for s in data.get("sections", [])],
        )
