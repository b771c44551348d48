#!/usr/bin/env python3
"""
Command line entry point for mealwise.

Runs the planning pipeline against the SQLite repository:

    mealwise household fam_1 --from-file profile.json
    mealwise plan fam_1 --day Monday=quick --day Tuesday=vegetarian
    mealwise current fam_1
    mealwise grocery fam_1
    mealwise serve
"""

import argparse
import json
import logging
import sys
from dataclasses import replace
from typing import Dict, List, Optional

from .config import Settings, configure_logging
from .data.database import SQLitePlanRepository
from .data.models import GroceryList, HouseholdProfile, MealPlan
from .generation.errors import MealwiseError
from .planning.service import MealPlanService, build_service

logger = logging.getLogger(__name__)


def parse_day_args(values: List[str]) -> Dict[str, str]:
    """Turn ["Monday=quick", ...] into {"Monday": "quick", ...}."""
    selections: Dict[str, str] = {}
    for value in values:
        day, sep, category = value.partition("=")
        if not sep or not day.strip() or not category.strip():
            raise ValueError(f"Expected DAY=CATEGORY, got '{value}'")
        selections[day.strip()] = category.strip()
    return selections


def print_plan(plan: MealPlan) -> None:
    print(f"\n{plan.name} ({plan.id})")
    print("=" * 60)
    for meal in plan.meals:
        marker = " [needs review]" if meal.needs_regeneration else ""
        print(f"\n{meal.day or '-'}: {meal.name} ({meal.category}){marker}")
        print(f"  {meal.prep_time} min, serves {meal.servings}")
        for i, step in enumerate(meal.instructions, 1):
            print(f"  {i}. {step}")


def print_grocery_list(grocery_list: GroceryList) -> None:
    print(f"\nGrocery list ({grocery_list.item_count} items)")
    print("=" * 60)
    for section in grocery_list.sections:
        print(f"\n{section.name}:")
        for item in section.items:
            print(f"  - {item.name}")


def _household_command(service: MealPlanService, args) -> int:
    if args.from_file:
        with open(args.from_file) as f:
            data = json.load(f)
        data["id"] = args.household_id
        profile = service.save_household(HouseholdProfile.from_dict(data))
        print(f"Saved household {profile.id}")
    else:
        profile = service.get_household(args.household_id)
    print(json.dumps(profile.to_dict(), indent=2))
    return 0


def _plan_command(service: MealPlanService, args) -> int:
    plan = service.generate_plan(
        args.household_id,
        parse_day_args(args.day),
        special_notes=args.notes,
        environment_summary=args.weather,
    )
    print_plan(plan)
    return 0


def _current_command(service: MealPlanService, args) -> int:
    plan = service.current_plan(args.household_id)
    if plan is None:
        print(f"No meal plan for household {args.household_id}")
        return 1
    print_plan(plan)
    return 0


def _grocery_command(service: MealPlanService, args) -> int:
    print_grocery_list(service.build_grocery_list(args.household_id))
    return 0


COMMANDS = {
    "household": _household_command,
    "plan": _plan_command,
    "current": _current_command,
    "grocery": _grocery_command,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Household meal planning assistant")
    parser.add_argument(
        "--db-dir",
        type=str,
        default=None,
        help="Database directory (default: MEALWISE_DB_DIR or data)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    household = subparsers.add_parser("household", help="Show or save a household profile")
    household.add_argument("household_id")
    household.add_argument("--from-file", help="JSON profile to save before showing")

    plan = subparsers.add_parser("plan", help="Generate a new meal plan")
    plan.add_argument("household_id")
    plan.add_argument(
        "--day",
        action="append",
        required=True,
        metavar="DAY=CATEGORY",
        help="Day and meal category, repeatable (e.g. Monday=quick)",
    )
    plan.add_argument("--notes", help="Special notes for this week")
    plan.add_argument("--weather", help="Current weather or environment summary")

    current = subparsers.add_parser("current", help="Show the current meal plan")
    current.add_argument("household_id")

    grocery = subparsers.add_parser("grocery", help="Build a grocery list for the current plan")
    grocery.add_argument("household_id")

    subparsers.add_parser("serve", help="Run the HTTP API")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)

    settings = Settings.from_env()
    if args.db_dir:
        settings = replace(settings, db_dir=args.db_dir)
    configure_logging(settings)

    if args.command == "serve":
        from .api.main import run
        run(settings)
        return 0

    service = build_service(settings, SQLitePlanRepository(db_dir=settings.db_dir))
    try:
        return COMMANDS[args.command](service, args)
    except ValueError as e:
        print(f"Error: {e}")
        return 2
    except MealwiseError as e:
        logger.error(f"{args.command} failed: {e!r}")
        print(f"Error: {e.user_message}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
