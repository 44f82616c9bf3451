"""Metrics engine: BMR, TDEE and daily targets.

Every function here is pure. ``MetricsEngine.compute`` is the single entry
point used by the plan orchestrator; the module-level functions are exposed for
direct use and testing.
"""

import logging
import math
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta

from health_targets.domain.errors import InvalidInputError
from health_targets.domain.profile import (
    ActivityLevel,
    PlanInputs,
    PrimaryGoal,
    Sex,
)
from health_targets.domain.targets import ComputedTargets, Projection

_SEX_OFFSETS = {
    Sex.MALE: 5.0,
    Sex.FEMALE: -161.0,
    Sex.OTHER: (5.0 - 161.0) / 2,
}

ACTIVITY_MULTIPLIERS = {
    ActivityLevel.SEDENTARY: 1.2,
    ActivityLevel.LIGHTLY_ACTIVE: 1.375,
    ActivityLevel.MODERATELY_ACTIVE: 1.55,
    ActivityLevel.VERY_ACTIVE: 1.725,
    ActivityLevel.EXTREMELY_ACTIVE: 1.9,
}

PROTEIN_PER_KG = {
    PrimaryGoal.LOSE_WEIGHT: 2.2,
    PrimaryGoal.GAIN_MUSCLE: 2.4,
    PrimaryGoal.MAINTAIN: 2.0,
}

WEEKLY_RATES = {
    PrimaryGoal.LOSE_WEIGHT: -0.5,
    PrimaryGoal.GAIN_MUSCLE: 0.4,
    PrimaryGoal.MAINTAIN: 0.0,
}

WEIGHT_LOSS_DEFICIT = 500
MUSCLE_GAIN_SURPLUS = 400
WATER_ML_PER_KG = 35
DEFAULT_CALORIE_FLOOR = 1200

VALIDATION_RANGES = {
    "weight_kg": (30.0, 300.0),
    "height_cm": (100.0, 250.0),
    "age": (13, 120),
    "target_weight_kg": (30.0, 300.0),
}

_logger = logging.getLogger(__name__)


def bmr(weight_kg: float, height_cm: float, age: int, sex: Sex) -> int:
    """Mifflin-St Jeor basal metabolic rate in kcal/day."""
    problems = []
    if weight_kg <= 0:
        problems.append(f"weight_kg must be positive (got {weight_kg})")
    if height_cm <= 0:
        problems.append(f"height_cm must be positive (got {height_cm})")
    if age < 1:
        problems.append(f"age must be at least 1 (got {age})")
    if problems:
        raise InvalidInputError(problems)
    raw = 10 * weight_kg + 6.25 * height_cm - 5 * age + _SEX_OFFSETS[Sex(sex)]
    return _round_half_up(raw)


def tdee(bmr_kcal: int, activity_level: ActivityLevel) -> int:
    """Total daily energy expenditure in kcal/day."""
    multiplier = ACTIVITY_MULTIPLIERS[ActivityLevel(activity_level)]
    return _round_half_up(bmr_kcal * multiplier)


def calorie_target(
    tdee_kcal: int, goal: PrimaryGoal, floor: int = DEFAULT_CALORIE_FLOOR
) -> int:
    """Daily calorie target for a goal, never below ``floor``."""
    goal = PrimaryGoal(goal)
    if goal == PrimaryGoal.LOSE_WEIGHT:
        target = tdee_kcal - WEIGHT_LOSS_DEFICIT
    elif goal == PrimaryGoal.GAIN_MUSCLE:
        target = tdee_kcal + MUSCLE_GAIN_SURPLUS
    else:
        target = tdee_kcal
    if target < floor:
        _logger.warning(
            "Calorie target %s below floor %s for goal=%s; clamping",
            target,
            floor,
            goal,
        )
        return floor
    return target


def protein_target(weight_kg: float, goal: PrimaryGoal) -> int:
    """Daily protein target in grams."""
    return _round_half_up(weight_kg * PROTEIN_PER_KG[PrimaryGoal(goal)])


def water_target(weight_kg: float) -> int:
    """Daily water target in ml, rounded to the nearest 100 ml."""
    return _round_half_up(weight_kg * WATER_ML_PER_KG / 100) * 100


def weekly_rate(goal: PrimaryGoal) -> float:
    """Expected weekly weight change in kg (negative for loss)."""
    return WEEKLY_RATES[PrimaryGoal(goal)]


def projection(
    current_weight_kg: float,
    target_weight_kg: float,
    weekly_rate_kg: float,
    today: date | None = None,
) -> Projection:
    """Weeks and date needed to reach the target weight."""
    if weekly_rate_kg == 0 or current_weight_kg == target_weight_kg:
        return Projection(estimated_weeks=None, projected_date=None)
    difference = abs(current_weight_kg - target_weight_kg)
    weeks = math.ceil(difference / abs(weekly_rate_kg))
    start = today or datetime.now(tz=UTC).date()
    return Projection(
        estimated_weeks=weeks,
        projected_date=start + timedelta(days=weeks * 7),
    )


def age_on(date_of_birth: date, today: date) -> int:
    """Whole years elapsed between ``date_of_birth`` and ``today``."""
    years = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        years -= 1
    return years


def validate_inputs(inputs: PlanInputs) -> None:
    """Raise InvalidInputError when any input is outside supported ranges."""
    values = {
        "weight_kg": inputs.weight_kg,
        "height_cm": inputs.height_cm,
        "age": inputs.age,
        "target_weight_kg": inputs.target_weight_kg,
    }
    problems = []
    for name, value in values.items():
        if value is None:
            continue
        low, high = VALIDATION_RANGES[name]
        if not low <= value <= high:
            problems.append(f"{name}: {value} is outside {low}-{high}")
    if problems:
        raise InvalidInputError(problems)


@dataclass
class MetricsEngine:
    """Computes the full set of targets from validated plan inputs."""

    calorie_floor: int = DEFAULT_CALORIE_FLOOR

    def compute(
        self, inputs: PlanInputs, today: date | None = None
    ) -> ComputedTargets:
        """Validate inputs and compute every target in a single pass."""
        validate_inputs(inputs)
        bmr_kcal = bmr(inputs.weight_kg, inputs.height_cm, inputs.age, inputs.sex)
        tdee_kcal = tdee(bmr_kcal, inputs.activity_level)
        rate = weekly_rate(inputs.primary_goal)
        if inputs.target_weight_kg is not None:
            timeline = projection(
                inputs.weight_kg, inputs.target_weight_kg, rate, today=today
            )
        else:
            timeline = Projection(estimated_weeks=None, projected_date=None)
        return ComputedTargets(
            bmr=bmr_kcal,
            tdee=tdee_kcal,
            calorie_target=calorie_target(
                tdee_kcal, inputs.primary_goal, floor=self.calorie_floor
            ),
            protein_target=protein_target(inputs.weight_kg, inputs.primary_goal),
            water_target=water_target(inputs.weight_kg),
            weekly_rate=rate,
            estimated_weeks=timeline.estimated_weeks,
            projected_date=timeline.projected_date,
        )


def _round_half_up(value: float) -> int:
    """Round to the nearest integer with ties going up."""
    return math.floor(value + 0.5)
