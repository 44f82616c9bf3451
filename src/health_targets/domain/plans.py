"""Plan record domain models."""

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from uuid import UUID

from health_targets.domain.profile import PlanInputs
from health_targets.domain.targets import ComputedTargets, WhyItWorks


@dataclass(frozen=True)
class PlanRecord:
    """The latest computed targets for a user."""

    id: UUID
    user_id: UUID
    computed_at: datetime
    targets: ComputedTargets
    inputs: PlanInputs
    previous_targets: ComputedTargets | None = None
    recomputed: bool = False
    change_reason: str | None = None


class PlanSource(StrEnum):
    """Where a returned plan came from."""

    CACHE = "cache"
    STORAGE = "storage"
    COMPUTED = "computed"


@dataclass(frozen=True)
class PlanResult:
    """A plan record returned to a caller, with its explanation."""

    record: PlanRecord
    why_it_works: WhyItWorks
    source: PlanSource
