"""Shared test fixtures."""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date
from uuid import UUID, uuid4

import pytest

from health_targets.config import Settings
from health_targets.containers import AppContainer, build_services
from health_targets.domain.errors import TransientStorageError
from health_targets.domain.jobs import RunSummary
from health_targets.domain.plans import PlanRecord
from health_targets.domain.profile import (
    ActivityLevel,
    PlanInputs,
    PrimaryGoal,
    Profile,
    Sex,
)
from health_targets.domain.targets import ComputedTargets
from health_targets.services.cache import PlanCache
from health_targets.services.metrics import MetricsEngine
from health_targets.services.plans import (
    PlanOrchestrator,
    PlanRecordRepository,
    ProfileRepository,
)
from health_targets.services.recompute import RecomputeRunRepository


@dataclass
class InMemoryProfileRepository(ProfileRepository):
    """In-memory profile repository for tests."""

    profiles: dict[UUID, Profile] = field(default_factory=dict)
    failing_users: set[UUID] = field(default_factory=set)
    list_error: Exception | None = None
    get_calls: list[UUID] = field(default_factory=list)
    list_calls: list[tuple[UUID | None, int]] = field(default_factory=list)
    on_list: Callable[[], None] | None = None

    def add(self, profile: Profile) -> Profile:
        self.profiles[profile.user_id] = profile
        return profile

    def get_profile(self, user_id: UUID) -> Profile | None:
        self.get_calls.append(user_id)
        if user_id in self.failing_users:
            raise RuntimeError(f"profile backend exploded for {user_id}")
        return self.profiles.get(user_id)

    def list_eligible_user_ids(self, after: UUID | None, limit: int) -> list[UUID]:
        self.list_calls.append((after, limit))
        if self.on_list is not None:
            self.on_list()
        if self.list_error is not None:
            raise self.list_error
        eligible = sorted(
            user_id
            for user_id, profile in self.profiles.items()
            if profile.onboarding_completed
        )
        if after is not None:
            eligible = [user_id for user_id in eligible if user_id > after]
        return eligible[:limit]


@dataclass
class InMemoryPlanRepository(PlanRecordRepository):
    """In-memory plan record repository with transient failure injection."""

    records: dict[UUID, PlanRecord] = field(default_factory=dict)
    save_failures: int = 0
    load_failures: int = 0
    saved: list[PlanRecord] = field(default_factory=list)

    def load_plan_record(self, user_id: UUID) -> PlanRecord | None:
        if self.load_failures > 0:
            self.load_failures -= 1
            raise TransientStorageError("load_plan_record failed")
        return self.records.get(user_id)

    def save_plan_record(self, record: PlanRecord) -> None:
        if self.save_failures > 0:
            self.save_failures -= 1
            raise TransientStorageError("save_plan_record failed")
        self.records[record.user_id] = record
        self.saved.append(record)


@dataclass
class InMemoryRecomputeRunRepository(RecomputeRunRepository):
    """In-memory recompute run history for tests."""

    runs: dict[UUID, RunSummary] = field(default_factory=dict)
    saves: list[RunSummary] = field(default_factory=list)

    def save_run(self, summary: RunSummary) -> None:
        self.runs[summary.id] = summary
        self.saves.append(summary)

    def get_latest_run(self) -> RunSummary | None:
        if not self.runs:
            return None
        return max(self.runs.values(), key=lambda run: run.started_at)


@dataclass
class CountingEngine(MetricsEngine):
    """Metrics engine that counts how often it is invoked."""

    calls: int = 0

    def compute(
        self, inputs: PlanInputs, today: date | None = None
    ) -> ComputedTargets:
        self.calls += 1
        return super().compute(inputs, today=today)


def make_profile(user_id: UUID | None = None, **overrides: object) -> Profile:
    """Build a complete profile, overriding individual fields."""
    values: dict[str, object] = {
        "user_id": user_id or uuid4(),
        "age": 30,
        "sex": Sex.MALE,
        "weight_kg": 80.0,
        "height_cm": 180.0,
        "activity_level": ActivityLevel.SEDENTARY,
        "primary_goal": PrimaryGoal.LOSE_WEIGHT,
        "target_weight_kg": 75.0,
        "onboarding_completed": True,
    }
    values.update(overrides)
    return Profile(**values)


@pytest.fixture
def profile_factory() -> Callable[..., Profile]:
    return make_profile


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="service-key",
        admin_token="admin-token",
    )


@pytest.fixture
def profile_repository() -> InMemoryProfileRepository:
    return InMemoryProfileRepository()


@pytest.fixture
def plan_repository() -> InMemoryPlanRepository:
    return InMemoryPlanRepository()


@pytest.fixture
def run_repository() -> InMemoryRecomputeRunRepository:
    return InMemoryRecomputeRunRepository()


@pytest.fixture
def engine() -> CountingEngine:
    return CountingEngine()


@pytest.fixture
def plan_cache() -> PlanCache:
    return PlanCache()


@pytest.fixture
def orchestrator(
    profile_repository: InMemoryProfileRepository,
    plan_repository: InMemoryPlanRepository,
    plan_cache: PlanCache,
    engine: CountingEngine,
) -> PlanOrchestrator:
    return PlanOrchestrator(
        profile_repository=profile_repository,
        plan_repository=plan_repository,
        cache=plan_cache,
        engine=engine,
    )


@pytest.fixture
def container(
    settings: Settings,
    profile_repository: InMemoryProfileRepository,
    plan_repository: InMemoryPlanRepository,
    run_repository: InMemoryRecomputeRunRepository,
) -> AppContainer:
    return build_services(
        settings=settings,
        profile_repository=profile_repository,
        plan_repository=plan_repository,
        run_repository=run_repository,
    )
