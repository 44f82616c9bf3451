"""Profile domain models."""

from dataclasses import dataclass
from datetime import date
from enum import StrEnum
from uuid import UUID

from health_targets.domain.errors import ProfileIncompleteError


class Sex(StrEnum):
    """Biological sex category used by the BMR equation."""

    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class ActivityLevel(StrEnum):
    """Habitual activity level."""

    SEDENTARY = "sedentary"
    LIGHTLY_ACTIVE = "lightly_active"
    MODERATELY_ACTIVE = "moderately_active"
    VERY_ACTIVE = "very_active"
    EXTREMELY_ACTIVE = "extremely_active"


class PrimaryGoal(StrEnum):
    """The user's primary body-composition goal."""

    LOSE_WEIGHT = "lose_weight"
    GAIN_MUSCLE = "gain_muscle"
    MAINTAIN = "maintain"


@dataclass(frozen=True)
class PlanInputs:
    """Complete set of profile values fed to the metrics engine."""

    weight_kg: float
    height_cm: float
    age: int
    sex: Sex
    activity_level: ActivityLevel
    primary_goal: PrimaryGoal
    target_weight_kg: float | None = None
    target_date: date | None = None


@dataclass(frozen=True)
class Profile:
    """User profile as owned by the settings collaborator."""

    user_id: UUID
    age: int | None
    sex: Sex | None
    weight_kg: float | None
    height_cm: float | None
    activity_level: ActivityLevel | None
    primary_goal: PrimaryGoal | None
    target_weight_kg: float | None = None
    target_date: date | None = None
    onboarding_completed: bool = False

    def missing_fields(self) -> list[str]:
        """Return the names of required fields that are not set."""
        required = {
            "age": self.age,
            "sex": self.sex,
            "weight_kg": self.weight_kg,
            "height_cm": self.height_cm,
            "activity_level": self.activity_level,
            "primary_goal": self.primary_goal,
        }
        return [name for name, value in required.items() if value is None]

    def require_inputs(self) -> PlanInputs:
        """Return engine inputs or raise when required fields are missing."""
        missing = self.missing_fields()
        if missing:
            raise ProfileIncompleteError(self.user_id, missing)
        return PlanInputs(
            weight_kg=float(self.weight_kg),
            height_cm=float(self.height_cm),
            age=int(self.age),
            sex=self.sex,
            activity_level=self.activity_level,
            primary_goal=self.primary_goal,
            target_weight_kg=self.target_weight_kg,
            target_date=self.target_date,
        )
