"""
Current plan resolution.

A household can hold several stored plans with inconsistent active flags,
for example an active plan left empty by a failed generation next to an
inactive plan with real meals. resolve() picks the plan to show, first
matching rule wins:

1. An active plan with meals (most recent first).
2. The most recent plan with meals; it becomes the only active plan.
3. The most recent active plan, even if empty.
4. The most recent plan of any kind; it becomes the only active plan.

resolve() is pure. resolve_current_plan() also writes the corrected
flags back; the write is idempotent so concurrent resolutions are safe.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from ..data.models import MealPlan
from ..data.repository import PlanRepository

logger = logging.getLogger(__name__)


@dataclass
class Resolution:
    """The chosen plan plus the flag changes needed to make it the only active one."""
    plan: Optional[MealPlan] = None
    rule: Optional[int] = None
    activate: Optional[str] = None
    deactivate: List[str] = field(default_factory=list)

    @property
    def needs_write_back(self) -> bool:
        return self.activate is not None or bool(self.deactivate)


def _newest_first(plans: Sequence[MealPlan]) -> List[MealPlan]:
    # sorted() is stable, so equal timestamps keep the caller's order
    return sorted(plans, key=lambda p: p.created_at, reverse=True)


def resolve(candidates: Sequence[MealPlan]) -> Resolution:
    """Pick the current plan from one household's candidates."""
    if not candidates:
        return Resolution()

    plans = _newest_first(candidates)
    active = [p for p in plans if p.is_active]

    chosen: Optional[MealPlan] = None
    rule = None
    for number, pool in (
        (1, [p for p in active if p.has_meals]),
        (2, [p for p in plans if p.has_meals]),
        (3, active),
        (4, plans),
    ):
        if pool:
            chosen, rule = pool[0], number
            break

    resolution = Resolution(plan=chosen, rule=rule)
    if not chosen.is_active:
        resolution.activate = chosen.id
    resolution.deactivate = [p.id for p in active if p.id != chosen.id]
    return resolution


def apply_resolution(repository: PlanRepository, household_id: str, resolution: Resolution) -> None:
    """Write back the corrected active flags."""
    if resolution.plan is None or not resolution.needs_write_back:
        return
    repository.set_active_plan(household_id, resolution.plan.id)
    resolution.plan.is_active = True
    logger.info(
        f"[CURRENT PLAN] Healed active flag for {household_id}: plan {resolution.plan.id} "
        f"(rule {resolution.rule}, deactivated {len(resolution.deactivate)})"
    )


def resolve_current_plan(repository: PlanRepository, household_id: str) -> Optional[MealPlan]:
    """Resolve the household's current plan and heal its active flags."""
    resolution = resolve(repository.list_plans(household_id))
    if resolution.plan is None:
        logger.debug(f"[CURRENT PLAN] No plans for {household_id}")
        return None
    apply_resolution(repository, household_id, resolution)
    return resolution.plan
