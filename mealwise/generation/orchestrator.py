"""
Bounded generation loop.

RetryOrchestrator ties the pipeline together as an explicit state machine:

    Building -> Requesting -> Parsing -> Normalizing -> Validating
             -> Done | Retrying | Repairing | Failed

- Transient service error or unparseable reply: resend the request of
  the failed attempt after backoff while attempts remain. That request
  keeps any feedback from an earlier quality failure, since those issues
  were never answered.
- Quality failure: retry with the issues appended as feedback while
  attempts remain, otherwise repair the failing recipes locally.
- Fatal service error: fail immediately.
- Budget exhausted: repair the best parsed attempt if there was one,
  otherwise fail.

The attempt budget is 3 in total, the first attempt included.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Tuple

from ..config import MAX_ATTEMPTS
from ..data.models import QualityReport, Recipe
from .client import GenerationClient, backoff_delay
from .errors import (
    FatalServiceError,
    TransientServiceError,
    UnparseableReply,
    QualityFailure,
    GenerationFailed,
    GenerationCancelled,
)
from .normalizer import normalize_records
from .prompt_builder import GenerationMode, GenerationRequest
from .repairer import InstructionRepairer
from .response_parser import parse_reply
from .validator import validate_recipe, instruction_issues

logger = logging.getLogger(__name__)


class PipelineState(Enum):
    BUILDING = "building"
    REQUESTING = "requesting"
    PARSING = "parsing"
    NORMALIZING = "normalizing"
    VALIDATING = "validating"
    RETRYING = "retrying"
    REPAIRING = "repairing"
    DONE = "done"
    FAILED = "failed"


@dataclass
class GenerationResult:
    """Recipes produced for one top-level request."""
    recipes: List[Recipe]
    attempts: int
    states: List[PipelineState] = field(default_factory=list)
    repaired: bool = False
    missing_days: List[str] = field(default_factory=list)

    @property
    def flagged(self) -> List[Recipe]:
        """Recipes still carrying quality issues."""
        return [r for r in self.recipes if r.needs_regeneration]


@dataclass
class _Attempt:
    recipes: List[Recipe]
    reports: List[QualityReport]
    missing_days: List[str]

    @property
    def issues(self) -> List[str]:
        issues = [f"Missing meal for {day}" for day in self.missing_days]
        for report in self.reports:
            issues.extend(report.issues)
        return issues

    @property
    def valid(self) -> bool:
        return not self.issues

    def check(self) -> None:
        """Raise QualityFailure listing every issue of this attempt."""
        if not self.valid:
            raise QualityFailure(self.issues)

    def score(self) -> Tuple[int, int]:
        """More recipes first, then fewer issues."""
        return len(self.recipes), -len(self.issues)


class RetryOrchestrator:
    """Runs one GenerationRequest to completion within the attempt budget."""

    def __init__(
        self,
        client: GenerationClient,
        repairer: Optional[InstructionRepairer] = None,
        max_attempts: int = MAX_ATTEMPTS,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        self.client = client
        self.repairer = repairer or InstructionRepairer()
        self.max_attempts = max(1, min(max_attempts, MAX_ATTEMPTS))
        self._sleep = sleep

    def run(self, request: GenerationRequest, cancel: Optional[threading.Event] = None) -> GenerationResult:
        """Run the pipeline.

        Args:
            request: The initial request (no feedback)
            cancel: Set by the caller to abandon the run; checked before each
                attempt and during backoff

        Returns:
            GenerationResult with at least one recipe

        Raises:
            FatalServiceError: quota or authentication failure
            GenerationFailed: no parseable reply within the budget
            GenerationCancelled: ``cancel`` was set
        """
        states = [PipelineState.BUILDING]
        current = request
        best: Optional[_Attempt] = None
        last_error: Optional[Exception] = None
        attempts = 0

        for attempt in range(self.max_attempts):
            if attempt > 0:
                states.append(PipelineState.RETRYING)
                self._backoff(attempt, cancel, states)
            self._check_cancelled(cancel, states)

            attempts += 1
            states.append(PipelineState.REQUESTING)
            try:
                raw = self.client.request(current, attempt)
            except FatalServiceError:
                states.append(PipelineState.FAILED)
                logger.error(f"[RETRY] Fatal service error on attempt {attempts}, not retrying")
                raise
            except TransientServiceError as e:
                last_error = e
                # `current` is resent as is, earlier feedback included
                logger.warning(f"[RETRY] Attempt {attempts}/{self.max_attempts} transient failure: {e}")
                continue

            states.append(PipelineState.PARSING)
            try:
                records = parse_reply(raw)
            except UnparseableReply as e:
                last_error = e
                logger.warning(f"[RETRY] Attempt {attempts}/{self.max_attempts} unparseable reply: {e}")
                continue

            states.append(PipelineState.NORMALIZING)
            recipes, missing = self.assign_slots(request, normalize_records(records))

            states.append(PipelineState.VALIDATING)
            outcome = _Attempt(
                recipes=recipes,
                reports=[validate_recipe(r) for r in recipes],
                missing_days=missing,
            )

            try:
                outcome.check()
            except QualityFailure as e:
                last_error = e
                logger.warning(f"[RETRY] Attempt {attempts}/{self.max_attempts} failed quality checks: {e}")
                if best is None or outcome.score() > best.score():
                    best = outcome
                current = request.with_feedback(e.issues)
                continue

            states.append(PipelineState.DONE)
            logger.info(f"[RETRY] {len(recipes)} recipe(s) passed validation on attempt {attempts}")
            return GenerationResult(recipes=recipes, attempts=attempts, states=states)

        if best is None:
            states.append(PipelineState.FAILED)
            logger.error(f"[RETRY] No parseable reply after {attempts} attempts")
            raise GenerationFailed(
                f"Generation failed after {attempts} attempts: {last_error}",
                attempts=attempts,
                last_error=last_error,
            )

        states.append(PipelineState.REPAIRING)
        recipes = self.repair_all(best)
        states.append(PipelineState.DONE)
        return GenerationResult(
            recipes=recipes,
            attempts=attempts,
            states=states,
            repaired=True,
            missing_days=list(best.missing_days),
        )

    # ==================== Steps ====================

    def assign_slots(self, request: GenerationRequest, recipes: List[Recipe]) -> Tuple[List[Recipe], List[str]]:
        """Match recipes to requested days. Returns (recipes in slot order, missing days)."""
        if request.mode is not GenerationMode.FULL_PLAN:
            if not recipes:
                return [], []
            recipe = recipes[0]
            if len(recipes) > 1:
                logger.info(f"[RETRY] Expected 1 recipe, got {len(recipes)}; keeping the first")
            for day, category in request.selections.slots:
                recipe.day = recipe.day or day
                recipe.category = recipe.category or category
            if recipe.category and not recipe.categories:
                recipe.categories = [recipe.category]
            return [recipe], []

        remaining = list(recipes)
        assigned: List[Recipe] = []
        missing: List[str] = []

        # Exact day matches first, then fill the remaining days in reply order
        by_day = {}
        for day, _ in request.selections.slots:
            match = next((r for r in remaining if (r.day or "").strip().lower() == day.lower()), None)
            if match is not None:
                remaining.remove(match)
                by_day[day] = match

        for day, category in request.selections.slots:
            recipe = by_day.get(day)
            if recipe is None and remaining:
                recipe = remaining.pop(0)
            if recipe is None:
                missing.append(day)
                continue
            recipe.day = day
            recipe.category = recipe.category or category
            if not recipe.categories:
                recipe.categories = [recipe.category]
            assigned.append(recipe)

        if remaining:
            logger.info(f"[RETRY] Dropped {len(remaining)} recipe(s) beyond the requested days")
        return assigned, missing

    def repair_all(self, attempt: _Attempt) -> List[Recipe]:
        """Repair failing recipes once and set their quality markers."""
        result = []
        for recipe, report in zip(attempt.recipes, attempt.reports):
            if report.valid:
                result.append(recipe)
                continue

            if instruction_issues(recipe):
                recipe = self.repairer.repair(recipe)

            remaining = validate_recipe(recipe).issues
            recipe.quality_issues = remaining
            recipe.needs_regeneration = bool(remaining)
            if remaining:
                logger.warning(f"[REPAIR] '{recipe.name}' still needs regeneration: {remaining}")
            result.append(recipe)
        return result

    def _backoff(self, attempt: int, cancel: Optional[threading.Event], states: List[PipelineState]) -> None:
        delay = backoff_delay(attempt)
        if delay <= 0:
            return
        logger.info(f"[RETRY] Waiting {delay:.0f}s before attempt {attempt + 1}")
        if self._sleep is not None:
            self._sleep(delay)
        elif cancel is not None:
            cancel.wait(delay)
        else:
            time.sleep(delay)
        self._check_cancelled(cancel, states)

    def _check_cancelled(self, cancel: Optional[threading.Event], states: List[PipelineState]) -> None:
        if cancel is not None and cancel.is_set():
            states.append(PipelineState.FAILED)
            logger.info("[RETRY] Cancelled by caller")
            raise GenerationCancelled("Generation cancelled by caller")
