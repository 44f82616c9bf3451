"""Computed target and explanation models."""

from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True)
class Projection:
    """Estimated time to reach the target weight."""

    estimated_weeks: int | None
    projected_date: date | None


@dataclass(frozen=True)
class ComputedTargets:
    """Daily targets derived from a profile."""

    bmr: int
    tdee: int
    calorie_target: int
    protein_target: int
    water_target: int
    weekly_rate: float
    estimated_weeks: int | None = None
    projected_date: date | None = None


@dataclass(frozen=True)
class Explanation:
    """Educational copy for a single metric."""

    title: str
    explanation: str
    metric: float | None = None


@dataclass(frozen=True)
class WhyItWorks:
    """Explanations for every computed target."""

    bmr: Explanation
    tdee: Explanation
    calorie_target: Explanation
    protein_target: Explanation
    water_target: Explanation
    timeline: Explanation
