"""
Household routes.

Provides endpoints for:
- Reading a household profile
- Creating or replacing a household profile
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ...data.models import HouseholdMember, HouseholdProfile
from ...planning.service import MealPlanService
from ..dependencies import get_service, run_blocking

logger = logging.getLogger(__name__)

router = APIRouter()


class MemberModel(BaseModel):
    """One household member."""
    name: str
    age_class: str = "adult"
    dietary_restrictions: str = ""


class HouseholdRequest(BaseModel):
    """Request body for saving a household profile."""
    name: str = ""
    members: List[MemberModel] = Field(default_factory=list)
    equipment: List[str] = Field(default_factory=list)
    cooking_skill: int = Field(3, ge=1, le=5)
    preferences: str = ""
    location: Optional[str] = None
    challenges: Optional[str] = None


class HouseholdResponse(BaseModel):
    success: bool
    household: Optional[dict] = None
    error: Optional[str] = None


@router.get("/households/{household_id}", response_model=HouseholdResponse)
async def get_household(household_id: str, service: MealPlanService = Depends(get_service)):
    """Get a household profile."""
    profile = await run_blocking(service.get_household, household_id)
    return HouseholdResponse(success=True, household=profile.to_dict())


@router.put("/households/{household_id}", response_model=HouseholdResponse)
async def save_household(
    household_id: str,
    body: HouseholdRequest,
    service: MealPlanService = Depends(get_service),
):
    """Create or replace a household profile."""
    profile = HouseholdProfile(
        id=household_id,
        name=body.name,
        members=[
            HouseholdMember(
                name=m.name,
                age_class=m.age_class,
                dietary_restrictions=m.dietary_restrictions,
            )
            for m in body.members
        ],
        equipment=body.equipment,
        cooking_skill=body.cooking_skill,
        preferences=body.preferences,
        location=body.location,
        challenges=body.challenges,
    )
    await run_blocking(service.save_household, profile)
    logger.info(f"Saved household {household_id}")
    return HouseholdResponse(success=True, household=profile.to_dict())
