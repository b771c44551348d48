"""
SQLite-backed plan repository.

Manages one database file (mealwise.db) with:
- households: profile JSON per household
- meal_plans: plan rows with meals stored as JSON
- grocery_lists: department sections stored as JSON
"""

import sqlite3
import json
import logging
from typing import List, Optional
from datetime import datetime
from pathlib import Path

from .models import HouseholdProfile, MealPlan, Recipe, GroceryList, GrocerySection
from .repository import PlanRepository

logger = logging.getLogger(__name__)


class SQLitePlanRepository(PlanRepository):
    """PlanRepository over a SQLite file. Each call opens its own connection."""

    def __init__(self, db_dir: str = "data"):
        """
        Initialize the repository.

        Args:
            db_dir: Directory containing the database file
        """
        self.db_dir = Path(db_dir)
        self.db_dir.mkdir(parents=True, exist_ok=True)

        self.db_path = self.db_dir / "mealwise.db"

        self._init_database()

    def _init_database(self):
        """Initialize database schema."""
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS households (
                    id TEXT PRIMARY KEY,
                    profile_json TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS meal_plans (
                    id TEXT PRIMARY KEY,
                    household_id TEXT NOT NULL,
                    name TEXT,
                    created_at TEXT NOT NULL,
                    is_active INTEGER NOT NULL DEFAULT 0,
                    meals_json TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_meal_plans_household
                ON meal_plans(household_id, created_at)
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS grocery_lists (
                    id TEXT PRIMARY KEY,
                    household_id TEXT NOT NULL,
                    meal_plan_id TEXT,
                    created_at TEXT NOT NULL,
                    sections_json TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_grocery_lists_plan
                ON grocery_lists(household_id, meal_plan_id)
            """)

            conn.commit()

    # ==================== Households ====================

    def get_household(self, household_id: str) -> Optional[HouseholdProfile]:
        with sqlite3.connect(self.db_path) as conn:
            conn.row_factory = sqlite3.Row
            cursor = conn.cursor()

            cursor.execute("SELECT profile_json FROM households WHERE id = ?", (household_id,))
            row = cursor.fetchone()

            if row:
                return HouseholdProfile.from_dict(json.loads(row["profile_json"]))
            return None

    def save_household(self, profile: HouseholdProfile) -> str:
        profile.updated_at = datetime.now()

        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT OR REPLACE INTO households (id, profile_json, updated_at)
                VALUES (?, ?, ?)
                """,
                (profile.id, json.dumps(profile.to_dict()), profile.updated_at.isoformat()),
            )
            conn.commit()

        logger.info(f"Saved household {profile.id} ({profile.size} members)")
        return profile.id

    # ==================== Meal Plans ====================

    def _row_to_plan(self, row: sqlite3.Row) -> MealPlan:
        return MealPlan(
            id=row["id"],
            household_id=row["household_id"],
            name=row["name"] or "",
            is_active=bool(row["is_active"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            meals=[Recipe.from_dict(m) for m in json.loads(row["meals_json"])],
        )

    def list_plans(self, household_id: str) -> List[MealPlan]:
        with sqlite3.connect(self.db_path) as conn:
            conn.row_factory = sqlite3.Row
            cursor = conn.cursor()

            cursor.execute(
                "SELECT * FROM meal_plans WHERE household_id = ? ORDER BY created_at DESC, rowid DESC",
                (household_id,),
            )
            return [self._row_to_plan(row) for row in cursor.fetchall()]

    def get_plan(self, household_id: str, plan_id: str) -> Optional[MealPlan]:
        with sqlite3.connect(self.db_path) as conn:
            conn.row_factory = sqlite3.Row
            cursor = conn.cursor()

            cursor.execute(
                "SELECT * FROM meal_plans WHERE id = ? AND household_id = ?",
                (plan_id, household_id),
            )
            row = cursor.fetchone()

            if row:
                return self._row_to_plan(row)
            return None

    def save_plan(self, plan: MealPlan) -> str:
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.cursor()

            if plan.is_active:
                cursor.execute(
                    "UPDATE meal_plans SET is_active = 0 WHERE household_id = ? AND id != ?",
                    (plan.household_id, plan.id),
                )

            cursor.execute(
                """
                INSERT OR REPLACE INTO meal_plans
                (id, household_id, name, created_at, is_active, meals_json)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    plan.id,
                    plan.household_id,
                    plan.name,
                    plan.created_at.isoformat(),
                    1 if plan.is_active else 0,
                    json.dumps([meal.to_dict() for meal in plan.meals]),
                ),
            )
            conn.commit()

        logger.info(f"Saved meal plan {plan.id} with {len(plan.meals)} meals")
        return plan.id

    def set_active_plan(self, household_id: str, plan_id: str) -> bool:
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.cursor()

            cursor.execute(
                "SELECT 1 FROM meal_plans WHERE id = ? AND household_id = ?",
                (plan_id, household_id),
            )
            if cursor.fetchone() is None:
                return False

            cursor.execute(
                """
                UPDATE meal_plans
                SET is_active = CASE WHEN id = ? THEN 1 ELSE 0 END
                WHERE household_id = ?
                """,
                (plan_id, household_id),
            )
            conn.commit()

        logger.debug(f"Activated meal plan {plan_id} for household {household_id}")
        return True

    # ==================== Grocery Lists ====================

    def save_grocery_list(self, grocery_list: GroceryList) -> str:
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT OR REPLACE INTO grocery_lists
                (id, household_id, meal_plan_id, created_at, sections_json)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    grocery_list.id,
                    grocery_list.household_id,
                    grocery_list.meal_plan_id,
                    grocery_list.created_at.isoformat(),
                    json.dumps([section.to_dict() for section in grocery_list.sections]),
                ),
            )
            conn.commit()

        logger.info(f"Saved grocery list {grocery_list.id} ({grocery_list.item_count} items)")
        return grocery_list.id

    def get_grocery_list_for_plan(self, household_id: str, meal_plan_id: str) -> Optional[GroceryList]:
        with sqlite3.connect(self.db_path) as conn:
            conn.row_factory = sqlite3.Row
            cursor = conn.cursor()

            cursor.execute(
                """
                SELECT * FROM grocery_lists
                WHERE household_id = ? AND meal_plan_id = ?
                ORDER BY created_at DESC LIMIT 1
                """,
                (household_id, meal_plan_id),
            )
            row = cursor.fetchone()

            if row:
                return GroceryList(
                    id=row["id"],
                    household_id=row["household_id"],
                    meal_plan_id=row["meal_plan_id"],
                    created_at=datetime.fromisoformat(row["created_at"]),
                    sections=[GrocerySection.from_dict(s) for s in json.loads(row["sections_json"])],
                )
            return None
