"""Tests for Supabase adapter implementations."""

from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime
from uuid import UUID, uuid4

import httpx
import pytest
from postgrest import APIError

from health_targets.adapters.supabase_plan_repository import SupabasePlanRepository
from health_targets.adapters.supabase_profile_repository import (
    SupabaseProfileRepository,
)
from health_targets.adapters.supabase_recompute_run_repository import (
    SupabaseRecomputeRunRepository,
)
from health_targets.domain.errors import TransientStorageError
from health_targets.domain.jobs import (
    JobStatus,
    RunSummary,
    SignificantUpdate,
    UserFailure,
)
from health_targets.domain.plans import PlanRecord
from health_targets.domain.profile import ActivityLevel, PlanInputs, PrimaryGoal, Sex
from health_targets.services.metrics import MetricsEngine


@dataclass
class FakeResponse:
    data: list[dict[str, object]] | None


@dataclass
class FakeTable:
    name: str
    response_queue: dict[str, list[list[dict[str, object]]]] = field(
        default_factory=lambda: {"select": [], "upsert": []}
    )
    last_payload: object | None = None
    last_on_conflict: str | None = None
    last_filters: list[tuple[str, str, object]] = field(default_factory=list)
    last_order: tuple[str, bool] | None = None
    last_limit: int | None = None
    error: Exception | None = None

    def queue(self, action: str, data: list[dict[str, object]]) -> None:
        self.response_queue[action].append(data)

    def select(self, *_args) -> "FakeTable":
        self._action = "select"
        return self

    def upsert(self, payload, on_conflict: str = "") -> "FakeTable":  # type: ignore[no-untyped-def]
        self._action = "upsert"
        self.last_payload = payload
        self.last_on_conflict = on_conflict
        return self

    def eq(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append(("eq", column, value))
        return self

    def gt(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append(("gt", column, value))
        return self

    def limit(self, count: int) -> "FakeTable":
        self.last_limit = count
        return self

    def order(self, column: str, desc: bool = False) -> "FakeTable":
        self.last_order = (column, desc)
        return self

    def execute(self) -> FakeResponse:
        if self.error is not None:
            raise self.error
        action = getattr(self, "_action", "select")
        queue = self.response_queue.get(action, [])
        data = queue.pop(0) if queue else []
        return FakeResponse(data=data)


@dataclass
class FakeSupabaseClient:
    tables: dict[str, FakeTable] = field(default_factory=dict)

    def table(self, name: str) -> FakeTable:
        if name not in self.tables:
            self.tables[name] = FakeTable(name=name)
        return self.tables[name]


def _profile_row(user_id: UUID, **overrides: object) -> dict[str, object]:
    row: dict[str, object] = {
        "user_id": str(user_id),
        "date_of_birth": "1994-03-10",
        "gender": "female",
        "current_weight": "62.5",
        "height": 168,
        "activity_level": "moderately_active",
        "primary_goal": "lose_weight",
        "target_weight": 58,
        "target_date": "2024-12-31",
        "onboarding_completed": True,
    }
    row.update(overrides)
    return row


def test_supabase_profile_repository_parses_profile() -> None:
    client = FakeSupabaseClient()
    table = client.table("user_settings")
    user_id = uuid4()
    table.queue("select", [_profile_row(user_id)])

    repository = SupabaseProfileRepository(client, today=lambda: date(2024, 6, 1))
    profile = repository.get_profile(user_id)

    assert profile is not None
    assert profile.user_id == user_id
    assert profile.age == 30
    assert profile.sex == Sex.FEMALE
    assert profile.weight_kg == 62.5
    assert profile.height_cm == 168.0
    assert profile.activity_level == ActivityLevel.MODERATELY_ACTIVE
    assert profile.primary_goal == PrimaryGoal.LOSE_WEIGHT
    assert profile.target_weight_kg == 58.0
    assert profile.target_date == date(2024, 12, 31)
    assert profile.onboarding_completed is True
    assert ("eq", "user_id", str(user_id)) in table.last_filters


def test_supabase_profile_repository_missing_fields() -> None:
    client = FakeSupabaseClient()
    user_id = uuid4()
    client.table("user_settings").queue(
        "select",
        [
            _profile_row(
                user_id,
                date_of_birth=None,
                gender="unknown",
                current_weight=None,
                activity_level="",
            )
        ],
    )

    profile = SupabaseProfileRepository(client).get_profile(user_id)

    assert profile is not None
    assert profile.missing_fields() == [
        "age",
        "sex",
        "weight_kg",
        "activity_level",
    ]


def test_supabase_profile_repository_returns_none_when_absent() -> None:
    client = FakeSupabaseClient()

    assert SupabaseProfileRepository(client).get_profile(uuid4()) is None


def test_supabase_profile_repository_lists_eligible_users() -> None:
    client = FakeSupabaseClient()
    table = client.table("user_settings")
    after = uuid4()
    page = [uuid4(), uuid4()]
    table.queue("select", [{"user_id": str(user_id)} for user_id in page])

    user_ids = SupabaseProfileRepository(client).list_eligible_user_ids(after, 2)

    assert user_ids == page
    assert ("eq", "onboarding_completed", True) in table.last_filters
    assert ("gt", "user_id", str(after)) in table.last_filters
    assert table.last_order == ("user_id", False)
    assert table.last_limit == 2


def test_supabase_profile_repository_first_page_has_no_cursor() -> None:
    client = FakeSupabaseClient()
    table = client.table("user_settings")

    assert SupabaseProfileRepository(client).list_eligible_user_ids(None, 10) == []
    assert not any(op == "gt" for op, _, _ in table.last_filters)


def test_supabase_plan_repository_roundtrip() -> None:
    client = FakeSupabaseClient()
    table = client.table("plan_records")
    inputs = PlanInputs(
        weight_kg=75.0,
        height_cm=180.0,
        age=30,
        sex=Sex.MALE,
        activity_level=ActivityLevel.SEDENTARY,
        primary_goal=PrimaryGoal.LOSE_WEIGHT,
        target_weight_kg=70.0,
        target_date=date(2024, 9, 1),
    )
    engine = MetricsEngine()
    record = PlanRecord(
        id=uuid4(),
        user_id=uuid4(),
        computed_at=datetime(2024, 6, 1, 9, 30, tzinfo=UTC),
        targets=engine.compute(inputs, today=date(2024, 6, 1)),
        inputs=inputs,
        previous_targets=engine.compute(
            replace(inputs, weight_kg=85.0),
            today=date(2024, 5, 1),
        ),
        recomputed=True,
        change_reason="calories changed by 100kcal",
    )

    repository = SupabasePlanRepository(client)
    repository.save_plan_record(record)
    assert table.last_on_conflict == "user_id"
    table.queue("select", [table.last_payload])

    loaded = repository.load_plan_record(record.user_id)

    assert loaded == record


def test_supabase_plan_repository_returns_none_when_absent() -> None:
    client = FakeSupabaseClient()

    assert SupabasePlanRepository(client).load_plan_record(uuid4()) is None


def test_supabase_run_repository_roundtrip() -> None:
    client = FakeSupabaseClient()
    table = client.table("recompute_runs")
    summary = RunSummary()
    summary.add_enumerated(2)
    summary.record_success(
        SignificantUpdate(
            user_id=uuid4(),
            previous_calorie_target=2000,
            new_calorie_target=1900,
            previous_protein_target=150,
            new_protein_target=140,
            reason="calories changed by 100kcal",
        )
    )
    summary.record_failure(
        UserFailure(user_id=uuid4(), error_type="RuntimeError", message="boom")
    )
    summary.finish(JobStatus.COMPLETED)

    repository = SupabaseRecomputeRunRepository(client)
    repository.save_run(summary)
    assert table.last_on_conflict == "id"
    table.queue("select", [table.last_payload])

    loaded = repository.get_latest_run()

    assert loaded == summary
    assert table.last_order == ("started_at", True)


def test_supabase_run_repository_without_runs() -> None:
    client = FakeSupabaseClient()

    assert SupabaseRecomputeRunRepository(client).get_latest_run() is None


@pytest.mark.parametrize(
    "error",
    [
        APIError({"message": "upstream timeout", "code": "57014"}),
        httpx.ConnectError("connection refused"),
    ],
)
def test_supabase_errors_become_transient(error: Exception) -> None:
    client = FakeSupabaseClient()
    client.table("plan_records").error = error

    with pytest.raises(TransientStorageError):
        SupabasePlanRepository(client).load_plan_record(uuid4())
