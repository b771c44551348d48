"""
Plan routes.

Provides endpoints for:
- Generating a meal plan from day/category selections
- Getting the current plan
- Adding, updating and removing meals
- Replacing or modifying a single meal
- Generating one free-form meal
"""
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ...planning.service import MealPlanService
from ..dependencies import get_service, run_blocking, run_cancellable

logger = logging.getLogger(__name__)

router = APIRouter()


# Request/Response models
class CreatePlanRequest(BaseModel):
    """Request body for generating a meal plan."""
    selections: Dict[str, str] = Field(..., min_length=1)
    special_notes: Optional[str] = None
    environment_summary: Optional[str] = None
    category_definitions: Optional[Dict[str, str]] = None


class ReplaceMealRequest(BaseModel):
    special_notes: Optional[str] = None
    environment_summary: Optional[str] = None


class ModifyMealRequest(BaseModel):
    modification_request: str = Field(..., min_length=1)
    environment_summary: Optional[str] = None


class SingleMealRequest(BaseModel):
    meal_type: Optional[str] = None
    additional_preferences: Optional[str] = None
    environment_summary: Optional[str] = None


class AddMealRequest(BaseModel):
    """A meal record (stored field names or the loose shapes the normalizer accepts)."""
    meal: Dict[str, Any]


class UpdateMealRequest(BaseModel):
    changes: Dict[str, Any]


class PlanResponse(BaseModel):
    """Response model for a meal plan."""
    success: bool
    plan: Optional[dict] = None
    error: Optional[str] = None


class MealResponse(BaseModel):
    """Response model for a single meal."""
    success: bool
    meal: Optional[dict] = None
    error: Optional[str] = None


@router.post("/households/{household_id}/meal-plan", response_model=PlanResponse)
async def create_plan(
    household_id: str,
    body: CreatePlanRequest,
    service: MealPlanService = Depends(get_service),
):
    """Generate a new active meal plan, one recipe per selected day."""
    plan = await run_cancellable(
        service.generate_plan,
        household_id,
        body.selections,
        special_notes=body.special_notes,
        environment_summary=body.environment_summary,
        category_definitions=body.category_definitions,
    )
    return PlanResponse(success=True, plan=plan.to_dict())


@router.get("/households/{household_id}/meal-plan/current", response_model=PlanResponse)
async def current_plan(household_id: str, service: MealPlanService = Depends(get_service)):
    """Get the household's current plan (plan is null when there is none)."""
    plan = await run_blocking(service.current_plan, household_id)
    return PlanResponse(success=True, plan=plan.to_dict() if plan else None)


@router.post("/households/{household_id}/meals", response_model=PlanResponse)
async def add_meal(
    household_id: str,
    body: AddMealRequest,
    service: MealPlanService = Depends(get_service),
):
    """Add a meal to the current plan."""
    plan = await run_blocking(service.add_meal, household_id, body.meal)
    return PlanResponse(success=True, plan=plan.to_dict())


@router.post("/households/{household_id}/meals/generate", response_model=MealResponse)
async def generate_single_meal(
    household_id: str,
    body: SingleMealRequest,
    service: MealPlanService = Depends(get_service),
):
    """Generate one free-form meal without storing it."""
    meal = await run_cancellable(
        service.generate_single_meal,
        household_id,
        meal_type=body.meal_type,
        additional_preferences=body.additional_preferences,
        environment_summary=body.environment_summary,
    )
    return MealResponse(success=True, meal=meal.to_dict())


@router.patch("/households/{household_id}/meals/{meal_id}", response_model=MealResponse)
async def update_meal(
    household_id: str,
    meal_id: str,
    body: UpdateMealRequest,
    service: MealPlanService = Depends(get_service),
):
    """Change fields of one meal in the current plan."""
    meal = await run_blocking(service.update_meal, household_id, meal_id, body.changes)
    return MealResponse(success=True, meal=meal.to_dict())


@router.delete("/households/{household_id}/meals/{meal_id}", response_model=PlanResponse)
async def remove_meal(household_id: str, meal_id: str, service: MealPlanService = Depends(get_service)):
    """Remove a meal from the current plan."""
    plan = await run_blocking(service.remove_meal, household_id, meal_id)
    return PlanResponse(success=True, plan=plan.to_dict())


@router.post("/households/{household_id}/meals/{meal_id}/replace", response_model=MealResponse)
async def replace_meal(
    household_id: str,
    meal_id: str,
    body: Optional[ReplaceMealRequest] = None,
    service: MealPlanService = Depends(get_service),
):
    """Replace a meal with a different recipe in the same category."""
    body = body or ReplaceMealRequest()
    meal = await run_cancellable(
        service.replace_meal,
        household_id,
        meal_id,
        special_notes=body.special_notes,
        environment_summary=body.environment_summary,
    )
    return MealResponse(success=True, meal=meal.to_dict())


@router.post("/households/{household_id}/meals/{meal_id}/modify", response_model=MealResponse)
async def modify_meal(
    household_id: str,
    meal_id: str,
    body: ModifyMealRequest,
    service: MealPlanService = Depends(get_service),
):
    """Rewrite a meal according to a change request."""
    meal = await run_cancellable(
        service.modify_meal,
        household_id,
        meal_id,
        body.modification_request,
        environment_summary=body.environment_summary,
    )
    return MealResponse(success=True, meal=meal.to_dict())
