"""
Shopping routes.

Provides endpoints for:
- Building a grocery list from the current plan
- Getting the latest grocery list
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ...planning.service import MealPlanService
from ..dependencies import get_service, run_blocking

logger = logging.getLogger(__name__)

router = APIRouter()


class GroceryListResponse(BaseModel):
    success: bool
    grocery_list: Optional[dict] = None
    error: Optional[str] = None


@router.post("/households/{household_id}/grocery-list", response_model=GroceryListResponse)
async def build_grocery_list(household_id: str, service: MealPlanService = Depends(get_service)):
    """Build and store a grocery list for the current plan."""
    grocery_list = await run_blocking(service.build_grocery_list, household_id)
    return GroceryListResponse(success=True, grocery_list=grocery_list.to_dict())


@router.get("/households/{household_id}/grocery-list", response_model=GroceryListResponse)
async def get_grocery_list(household_id: str, service: MealPlanService = Depends(get_service)):
    """Latest grocery list for the current plan (null if none was built)."""
    grocery_list = await run_blocking(service.grocery_list, household_id)
    return GroceryListResponse(
        success=True,
        grocery_list=grocery_list.to_dict() if grocery_list else None,
    )
