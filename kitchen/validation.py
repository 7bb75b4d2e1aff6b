"""
Recipe step validation.

The validator decides whether a proposed ingredient or action is right for an
instance's current step, moves the step pointer and counts errors. Whether a
mistake blocks or only costs points is decided by the session's policy.
"""

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from catalog import IngredientRequirement, RecipeCatalog, Step
from config import FryerConfig, WokPhysicsConfig
from kitchen.instances import BundleInstance
from kitchen_types import ActionType, DifficultyLevel, PowerLevel, RejectionReason, StepType

logger = logging.getLogger(__name__)


class Verdict(Enum):
    """What a policy does with a mistake"""
    REJECT = "reject"
    REJECT_PENALIZED = "reject_penalized"
    ACCEPT_PENALIZED = "accept_penalized"


class ValidationPolicy(ABC):
    """Decides how a session treats each kind of player mistake."""

    name: str = ""
    strict: bool = False

    @abstractmethod
    def judge(self, reason: RejectionReason) -> Verdict:
        pass


class StrictPolicy(ValidationPolicy):
    """Every mistake is refused and nothing changes."""

    name = "strict"
    strict = True

    def judge(self, reason: RejectionReason) -> Verdict:
        return Verdict.REJECT


class LenientPolicy(ValidationPolicy):
    """Mistakes cost an error but mostly let the player carry on."""

    name = "lenient"
    strict = False

    _refused = {
        RejectionReason.WRONG_INGREDIENT,
        RejectionReason.NOT_INGREDIENT_STEP,
        RejectionReason.WRONG_ACTION,
        RejectionReason.NOT_ACTION_STEP,
    }

    def judge(self, reason: RejectionReason) -> Verdict:
        if reason in self._refused:
            return Verdict.REJECT_PENALIZED
        return Verdict.ACCEPT_PENALIZED


def policy_for_level(level: DifficultyLevel) -> ValidationPolicy:
    """Beginners play strictly; everyone else plays leniently."""
    if level == DifficultyLevel.BEGINNER:
        return StrictPolicy()
    return LenientPolicy()


@dataclass
class StationReading:
    """Physical conditions at the station an instance is cooking on."""
    temperature: Optional[float] = None
    has_water: bool = False
    is_boiling: bool = False
    oil_temperature: Optional[float] = None
    timer_done: bool = False


@dataclass
class ValidationOutcome:
    accepted: bool
    reason: Optional[RejectionReason] = None
    message: str = ""
    penalized: bool = False
    advanced: bool = False
    requirement: Optional[IngredientRequirement] = None
    step: Optional[Step] = None
    burned: bool = False


class StepValidator:
    """Checks ingredients and actions against the current step of a bundle."""

    def __init__(self, catalog: RecipeCatalog, policy: ValidationPolicy,
                 wok_physics: WokPhysicsConfig, fryer: FryerConfig):
        self.catalog = catalog
        self.policy = policy
        self.wok_physics = wok_physics
        self.fryer = fryer

    def current_step(self, instance: BundleInstance) -> Optional[Step]:
        return self.catalog.step_at(instance.bundle_id, instance.cooking.current_step)

    def current_requirements(self, instance: BundleInstance):
        step = self.current_step(instance)
        if step is None or step.type != StepType.INGREDIENT:
            return []
        return list(step.ingredients)

    def advance(self, instance: BundleInstance, tick: int):
        cooking = instance.cooking
        cooking.current_step += 1
        cooking.added_ingredient_ids = []
        cooking.step_started_at = tick
        logger.debug(f"{instance.id} advanced to step {cooking.current_step}/{cooking.total_steps}")

    def _mistake(self, instance: BundleInstance, reason: RejectionReason, message: str,
                 step: Optional[Step] = None) -> ValidationOutcome:
        verdict = self.policy.judge(reason)
        if verdict == Verdict.REJECT:
            return ValidationOutcome(accepted=False, reason=reason, message=message, step=step)
        instance.errors += 1
        if verdict == Verdict.REJECT_PENALIZED:
            return ValidationOutcome(accepted=False, reason=reason, message=message,
                                     penalized=True, step=step)
        return ValidationOutcome(accepted=True, reason=reason, message=message,
                                 penalized=True, step=step)

    # Ingredients

    def feed(self, instance: BundleInstance, ingredient_ref: str, amount: float,
             tick: int) -> ValidationOutcome:
        """Check an ingredient against the current step.

        ingredient_ref may be a requirement id or the ingredient id it asks for.
        """
        step = self.current_step(instance)
        if step is None:
            return ValidationOutcome(accepted=False, reason=RejectionReason.STEPS_EXHAUSTED,
                                     message="All steps are already done")
        if step.type != StepType.INGREDIENT:
            return self._mistake(instance, RejectionReason.NOT_INGREDIENT_STEP,
                                 f"Step {step.order} expects {step.action_type.value}", step)

        added = instance.cooking.added_ingredient_ids
        matches = [r for r in step.ingredients if ingredient_ref in (r.id, r.ingredient_id)]
        if not matches:
            return self._mistake(instance, RejectionReason.WRONG_INGREDIENT,
                                 f"{ingredient_ref} is not part of step {step.order}", step)

        pending = [r for r in matches if r.id not in added]
        if not pending:
            return ValidationOutcome(accepted=False, reason=RejectionReason.DUPLICATE_INGREDIENT,
                                     message=f"{matches[0].display_name or ingredient_ref} already added",
                                     step=step)
        requirement = pending[0]

        outcome = ValidationOutcome(accepted=True, requirement=requirement, step=step)
        if not math.isclose(amount, requirement.required_amount, rel_tol=1e-9, abs_tol=1e-6):
            outcome = self._mistake(
                instance, RejectionReason.WRONG_AMOUNT,
                f"{requirement.display_name or requirement.id} needs "
                f"{requirement.required_amount:g}{requirement.required_unit}, got {amount:g}",
                step,
            )
            if not outcome.accepted:
                return outcome
            outcome.requirement = requirement

        added.append(requirement.id)
        if all(r.id in added for r in step.ingredients):
            self.advance(instance, tick)
            outcome.advanced = True
        return outcome

    # Actions

    def act(self, instance: BundleInstance, action: ActionType, reading: StationReading,
            tick: int) -> ValidationOutcome:
        """Check an action against the current step and the station's physical state."""
        if action == ActionType.DEEP_FRY:
            return ValidationOutcome(accepted=False, reason=RejectionReason.AUTOMATIC_ACTION,
                                     message="Deep frying advances on its own while submerged")

        step = self.current_step(instance)
        if step is None:
            return ValidationOutcome(accepted=False, reason=RejectionReason.STEPS_EXHAUSTED,
                                     message="All steps are already done")
        if step.type != StepType.ACTION:
            return self._mistake(instance, RejectionReason.NOT_ACTION_STEP,
                                 f"Step {step.order} expects ingredients", step)
        if step.action_type != action:
            return self._mistake(instance, RejectionReason.WRONG_ACTION,
                                 f"Step {step.order} expects {step.action_type.value}, got {action.value}",
                                 step)

        failure = self.check_precondition(step, action, reading)
        if failure:
            return ValidationOutcome(accepted=False, reason=RejectionReason.PRECONDITION_FAILED,
                                     message=failure, step=step)

        outcome = ValidationOutcome(accepted=True, step=step)
        if step.time_limit_seconds is not None:
            waited = tick - instance.cooking.step_started_at
            if waited > step.time_limit_seconds:
                message = f"{action.value} came {waited}s after the step started (limit {step.time_limit_seconds:g}s)"
                outcome = self._mistake(instance, RejectionReason.TIME_LIMIT_EXCEEDED, message, step)
                if not outcome.accepted:
                    outcome.burned = True
                    return outcome

        self.advance(instance, tick)
        outcome.advanced = True
        return outcome

    def check_precondition(self, step: Step, action: ActionType,
                           reading: StationReading) -> Optional[str]:
        """Return why the station cannot perform the action, or None."""
        if action in (ActionType.STIR_FRY, ActionType.FLIP):
            minimum = step.min_temperature or self.wok_physics.min_stir_fry
            if reading.temperature is None:
                return f"{action.value} needs a wok"
            if reading.temperature < minimum:
                return f"Wok at {reading.temperature:.0f}°C, needs {minimum:.0f}°C"
        elif action in (ActionType.BOIL, ActionType.BLANCH):
            if not reading.is_boiling:
                return "Water is not boiling yet"
        elif action == ActionType.SIMMER:
            if not reading.has_water:
                return "There is no water in the wok"
        elif action in (ActionType.LIFT_BASKET, ActionType.DRAIN) and reading.oil_temperature is not None:
            if reading.oil_temperature < self.fryer.min_oil_temperature:
                return f"Oil at {reading.oil_temperature:.0f}°C, needs {self.fryer.min_oil_temperature:.0f}°C"
        elif action == ActionType.MICROWAVE:
            if not reading.timer_done:
                return "Microwave timer is still running"
        return None

    # Station configuration

    def check_timer_config(self, instance: BundleInstance, action: ActionType,
                           timer_seconds: int, power: Optional[PowerLevel] = None) -> ValidationOutcome:
        """Compare a timer (and power) chosen at assignment with what the recipe declares."""
        step = self.catalog.first_action_step(instance.bundle_id, action)
        if step is None:
            return ValidationOutcome(accepted=True)

        problems = []
        declared = step.required_duration
        if declared is not None and declared != timer_seconds:
            problems.append(f"timer {timer_seconds}s but recipe says {declared}s")
        if power is not None and step.power is not None and step.power != power:
            problems.append(f"power {power.value} but recipe says {step.power.value}")
        if not problems:
            return ValidationOutcome(accepted=True, step=step)
        return self._mistake(instance, RejectionReason.INVALID_CONFIG, "; ".join(problems), step)
