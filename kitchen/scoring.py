"""
Order and session scoring.
"""

from dataclasses import dataclass

from config import OrderConfig
from kitchen_types import TimeTier

RECIPE_SCORE_CLEAN = 100
RECIPE_SCORE_WITH_ERRORS = 30

TIME_TIER_SCORES = {
    TimeTier.PERFECT: 100,
    TimeTier.GOOD: 85,
    TimeTier.WARNING: 70,
    TimeTier.CRITICAL: 30,
    TimeTier.CANCELLED: -50,
}


@dataclass
class TimeScore:
    tier: TimeTier
    score: int
    minutes: int


@dataclass
class ServeScore:
    time: TimeScore
    recipe_score: int
    recipe_accuracy: float
    final_score: int


def calculate_time_score(elapsed_seconds: float, orders: OrderConfig) -> TimeScore:
    """Score how long an order waited before it was served."""
    minutes = int(elapsed_seconds // 60)
    if elapsed_seconds > orders.cancel_seconds:
        tier = TimeTier.CANCELLED
    elif elapsed_seconds > orders.critical_minutes * 60:
        tier = TimeTier.CRITICAL
    elif elapsed_seconds > orders.warning_minutes * 60:
        tier = TimeTier.WARNING
    elif elapsed_seconds <= orders.target_minutes * 60:
        tier = TimeTier.PERFECT
    else:
        tier = TimeTier.GOOD
    return TimeScore(tier=tier, score=TIME_TIER_SCORES[tier], minutes=minutes)


def recipe_accuracy(total_steps: int, errors: int) -> float:
    """Share of steps done without a mistake, 0-100."""
    if total_steps <= 0:
        return 100.0 if errors == 0 else 0.0
    return max(0.0, (total_steps - errors) / total_steps * 100.0)


def calculate_serve_score(elapsed_seconds: float, total_steps: int, errors: int,
                          orders: OrderConfig) -> ServeScore:
    """Average of the time score and the recipe score."""
    time_score = calculate_time_score(elapsed_seconds, orders)
    recipe_score = RECIPE_SCORE_CLEAN if errors == 0 else RECIPE_SCORE_WITH_ERRORS
    return ServeScore(
        time=time_score,
        recipe_score=recipe_score,
        recipe_accuracy=round(recipe_accuracy(total_steps, errors), 1),
        final_score=round((time_score.score + recipe_score) / 2),
    )


def session_score(correct_actions: int, total_actions: int, completed_orders: int,
                  elapsed_seconds: float, active_burner_seconds: float,
                  burner_samples: int, burner_count: int,
                  speed_baseline: float = 120.0) -> dict:
    """End-of-game score out of 100.

    Half recipe accuracy, 30% speed (one dish per two minutes scores full
    marks) and 20% burner usage.
    """
    accuracy = correct_actions / total_actions if total_actions else 0.0
    speed = min(1.0, completed_orders * speed_baseline / elapsed_seconds) if elapsed_seconds > 0 else 0.0
    capacity = burner_samples * burner_count
    burner_usage = min(1.0, active_burner_seconds / capacity) if capacity else 0.0
    total = accuracy * 0.5 + speed * 0.3 + burner_usage * 0.2
    return {
        "recipe_accuracy": round(accuracy * 100, 1),
        "speed_score": round(speed * 100, 1),
        "burner_usage": round(burner_usage * 100, 1),
        "total_score": round(total * 100, 1),
    }
