"""
Pytest configuration and shared fixtures.

Fixtures are reusable test setup that can be injected into tests.
"""

import json
import shutil
import tempfile
from datetime import datetime
from typing import Any, Dict, List, Optional

import pytest

from mealwise.data.database import SQLitePlanRepository
from mealwise.data.memory import InMemoryPlanRepository
from mealwise.data.models import HouseholdMember, HouseholdProfile, MealPlan, Recipe
from mealwise.generation.client import GenerationClient
from mealwise.generation.orchestrator import RetryOrchestrator
from mealwise.llm_provider import LLMProvider
from mealwise.planning.service import MealPlanService


class ScriptedProvider(LLMProvider):
    """Replays a queue of reply texts or exceptions, one per call.

    When the queue runs out the last entry is repeated.
    """

    def __init__(self, replies: List[Any]):
        self.replies = list(replies)
        self.calls: List[Dict[str, Any]] = []

    def complete(self, system, messages, *, model, max_tokens, temperature):
        self.calls.append({
            "system": system,
            "messages": messages,
            "model": model,
            "max_tokens": max_tokens,
            "temperature": temperature,
        })
        index = min(len(self.calls) - 1, len(self.replies) - 1)
        reply = self.replies[index]
        if isinstance(reply, Exception):
            raise reply
        return reply

    @property
    def is_null(self) -> bool:
        return False

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def last_prompt(self) -> str:
        return self.calls[-1]["messages"][-1]["content"]


def make_recipe_dict(name: str = "Lemon Garlic Chicken", day: Optional[str] = None, **overrides) -> Dict:
    """A recipe record that passes the quality rubric."""
    data = {
        "name": name,
        "description": "Juicy pan-seared chicken with a bright lemon garlic sauce.",
        "category": "weeknight",
        "prepTime": 35,
        "servings": 4,
        "ingredients": [
            "1.5 lb chicken breast",
            "3 cloves garlic, minced",
            "1 lemon, juiced",
            "1 cup chicken broth",
            "2 tablespoons olive oil",
        ],
        "instructions": [
            "Pat the chicken dry and season both sides with salt and pepper.",
            "Heat the olive oil in a large skillet over medium-high heat for 2 minutes.",
            "Sear the chicken for 6-7 minutes per side until it reads 165°F inside.",
            "Transfer the chicken to a plate and lower the heat to medium.",
            "Add the garlic and stir for 30 seconds until fragrant.",
            "Pour in the broth and lemon juice and simmer for 5 minutes until reduced.",
            "Return the chicken to the pan, spoon the sauce over, and serve.",
        ],
        "rationales": ["Ready in under 40 minutes", "Kid-friendly flavors"],
    }
    if day:
        data["day"] = day
    data.update(overrides)
    return data


def make_recipe(name: str = "Lemon Garlic Chicken", **overrides) -> Recipe:
    data = make_recipe_dict(name, **overrides)
    data.setdefault("id", f"meal_{name.lower().replace(' ', '_')}")
    return Recipe.from_dict(data)


def reply_for(*records: Dict) -> str:
    """A well-formed list reply."""
    return json.dumps(list(records))


@pytest.fixture
def temp_db_dir():
    """
    Create a temporary database directory for testing.

    This fixture is automatically cleaned up after each test.
    """
    temp_dir = tempfile.mkdtemp()
    yield temp_dir
    shutil.rmtree(temp_dir)


@pytest.fixture
def sqlite_repo(temp_db_dir):
    """Fresh SQLitePlanRepository for each test."""
    return SQLitePlanRepository(db_dir=temp_db_dir)


@pytest.fixture
def memory_repo():
    return InMemoryPlanRepository()


@pytest.fixture(params=["sqlite", "memory"])
def repo(request, temp_db_dir):
    """Both repository implementations, for contract tests."""
    if request.param == "sqlite":
        return SQLitePlanRepository(db_dir=temp_db_dir)
    return InMemoryPlanRepository()


@pytest.fixture
def sample_household():
    """Sample household profile for testing."""
    return HouseholdProfile(
        id="fam_1",
        name="The Parkers",
        members=[
            HouseholdMember(name="Dana", age_class="adult"),
            HouseholdMember(name="Sam", age_class="adult", dietary_restrictions="no shellfish"),
            HouseholdMember(name="Mia", age_class="child"),
        ],
        equipment=["oven", "slow cooker", "stovetop"],
        cooking_skill=3,
        preferences="Mild flavors, lots of vegetables",
        location="Denver, CO",
        updated_at=datetime(2025, 10, 13, 10, 0, 0),
    )


@pytest.fixture
def sample_recipe_dict():
    return make_recipe_dict()


@pytest.fixture
def sample_recipe():
    return make_recipe()


@pytest.fixture
def sample_plan(sample_household):
    """Active two-meal plan for the sample household."""
    return MealPlan(
        household_id=sample_household.id,
        name="Test week",
        is_active=True,
        meals=[
            make_recipe("Lemon Garlic Chicken", id="meal_a", day="Monday"),
            make_recipe("Beef Tacos", id="meal_b", day="Tuesday", category="quick"),
        ],
    )


def build_test_service(repository, provider: LLMProvider, delays: Optional[List[float]] = None) -> MealPlanService:
    """Service wired to a scripted provider with backoff recorded, not slept."""
    delays = delays if delays is not None else []
    orchestrator = RetryOrchestrator(GenerationClient(provider), sleep=delays.append)
    return MealPlanService(repository, orchestrator)


# Factories as fixtures so test modules never import conftest directly

@pytest.fixture
def recipe_dict_factory():
    return make_recipe_dict


@pytest.fixture
def recipe_factory():
    return make_recipe


@pytest.fixture
def reply_factory():
    return reply_for


@pytest.fixture
def provider_factory():
    """Build a ScriptedProvider from a list of replies or exceptions."""
    return ScriptedProvider


@pytest.fixture
def service_factory():
    return build_test_service
