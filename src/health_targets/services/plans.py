"""Plan orchestration: cache lookups, recomputation and change detection."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol, TypeVar
from uuid import UUID, uuid4

from health_targets.domain.errors import ProfileNotFoundError, TransientStorageError
from health_targets.domain.plans import PlanRecord, PlanResult, PlanSource
from health_targets.domain.profile import Profile
from health_targets.domain.targets import ComputedTargets
from health_targets.services.cache import PlanCache
from health_targets.services.explanations import build_why_it_works
from health_targets.services.metrics import MetricsEngine

_T = TypeVar("_T")

_logger = logging.getLogger(__name__)


class ProfileRepository(Protocol):
    """Read access to user profiles."""

    def get_profile(self, user_id: UUID) -> Profile | None:
        """Return the profile for a user, if present."""

    def list_eligible_user_ids(self, after: UUID | None, limit: int) -> list[UUID]:
        """Return profile-complete user ids ordered by id, after ``after``."""


class PlanRecordRepository(Protocol):
    """Durable storage for the latest plan record per user."""

    def load_plan_record(self, user_id: UUID) -> PlanRecord | None:
        """Return the stored plan record for a user, if present."""

    def save_plan_record(self, record: PlanRecord) -> None:
        """Persist a plan record, replacing the user's previous one."""


@dataclass(frozen=True)
class SignificanceThresholds:
    """Minimum differences that make a recompute worth reporting."""

    calorie_kcal: int = 50
    ratio: float = 0.10


@dataclass(frozen=True)
class TargetChange:
    """A material difference between two sets of targets."""

    reason: str


def detect_significant_change(
    previous: ComputedTargets,
    current: ComputedTargets,
    thresholds: SignificanceThresholds,
) -> TargetChange | None:
    """Compare targets and describe the change if it is significant."""
    reasons = []
    calorie_diff = abs(current.calorie_target - previous.calorie_target)
    if calorie_diff >= thresholds.calorie_kcal:
        reasons.append(f"calories changed by {calorie_diff}kcal")
    protein_ratio = _relative_change(previous.protein_target, current.protein_target)
    if protein_ratio >= thresholds.ratio:
        reasons.append(f"protein changed by {protein_ratio:.0%}")
    water_ratio = _relative_change(previous.water_target, current.water_target)
    if water_ratio >= thresholds.ratio:
        reasons.append(f"water changed by {water_ratio:.0%}")
    if not reasons:
        return None
    return TargetChange(reason=", ".join(reasons))


@dataclass
class PlanOrchestrator:
    """Decides between cached and recomputed plans for a user."""

    profile_repository: ProfileRepository
    plan_repository: PlanRecordRepository
    cache: PlanCache
    engine: MetricsEngine = field(default_factory=MetricsEngine)
    thresholds: SignificanceThresholds = field(default_factory=SignificanceThresholds)
    storage_retry_attempts: int = 1
    clock: Callable[[], datetime] = field(default=lambda: datetime.now(tz=UTC))

    async def get_plan(
        self, user_id: UUID, force_recompute: bool = False
    ) -> PlanResult:
        """Return the user's plan, recomputing when absent, stale or forced."""
        if not force_recompute:
            cached = self.cache.get(user_id)
            if cached is not None:
                return plan_result(cached, PlanSource.CACHE)

        async def compute() -> PlanRecord:
            return await self._compute(user_id, force_recompute)

        record = await self.cache.compute_if_absent_or_stale(
            user_id, compute, force=force_recompute
        )
        return plan_result(record, PlanSource.COMPUTED)

    def invalidate(self, user_id: UUID) -> None:
        """Handle a profile change affecting the user's targets."""
        self.cache.invalidate(user_id)

    async def load_stored_plan(self, user_id: UUID) -> PlanRecord | None:
        """Read the user's plan from durable storage."""
        return await self._storage_call(
            lambda: self.plan_repository.load_plan_record(user_id),
            action="load_plan_record",
        )

    async def _compute(self, user_id: UUID, force_recompute: bool) -> PlanRecord:
        profile = await self._storage_call(
            lambda: self.profile_repository.get_profile(user_id),
            action="get_profile",
        )
        if profile is None:
            raise ProfileNotFoundError(user_id)
        inputs = profile.require_inputs()
        now = self.clock()
        targets = self.engine.compute(inputs, today=now.date())

        previous = await self._previous_record(user_id)
        change = None
        if previous is not None:
            change = detect_significant_change(
                previous.targets, targets, self.thresholds
            )
        record = PlanRecord(
            id=uuid4(),
            user_id=user_id,
            computed_at=now,
            targets=targets,
            inputs=inputs,
            previous_targets=previous.targets if change else None,
            recomputed=force_recompute,
            change_reason=change.reason if change else None,
        )
        await self._storage_call(
            lambda: self.plan_repository.save_plan_record(record),
            action="save_plan_record",
        )
        _logger.info(
            "Plan computed: user_id=%s calories=%s protein=%s recomputed=%s "
            "changed=%s",
            user_id,
            targets.calorie_target,
            targets.protein_target,
            force_recompute,
            change is not None,
        )
        return record

    async def _previous_record(self, user_id: UUID) -> PlanRecord | None:
        entry = self.cache.peek(user_id)
        if entry is not None:
            return entry.record
        return await self.load_stored_plan(user_id)

    async def _storage_call(self, func: Callable[[], _T], *, action: str) -> _T:
        """Run a blocking storage call, retrying transient failures."""
        attempt = 0
        while True:
            try:
                return await asyncio.to_thread(func)
            except TransientStorageError as exc:
                attempt += 1
                _logger.warning(
                    "Storage %s failed (attempt %s/%s): %s",
                    action,
                    attempt,
                    self.storage_retry_attempts + 1,
                    exc,
                )
                if attempt > self.storage_retry_attempts:
                    raise


def plan_result(record: PlanRecord, source: PlanSource) -> PlanResult:
    """Wrap a record with its explanation."""
    return PlanResult(
        record=record,
        why_it_works=build_why_it_works(record.targets, record.inputs),
        source=source,
    )


def _relative_change(previous: int, current: int) -> float:
    if previous == 0:
        return 0.0 if current == 0 else 1.0
    return abs(current - previous) / previous
