"""Supabase repository for plan records."""

from dataclasses import dataclass
from datetime import date, datetime
from uuid import UUID

from supabase import Client

from health_targets.adapters.supabase_errors import execute_query
from health_targets.domain.plans import PlanRecord
from health_targets.domain.profile import ActivityLevel, PlanInputs, PrimaryGoal, Sex
from health_targets.domain.targets import ComputedTargets
from health_targets.services.plans import PlanRecordRepository

_PLAN_COLUMNS = (
    "id, user_id, computed_at, targets, inputs, previous_targets, recomputed, "
    "change_reason"
)


@dataclass
class SupabasePlanRepository(PlanRecordRepository):
    """Supabase implementation keeping one plan record per user."""

    client: Client

    def load_plan_record(self, user_id: UUID) -> PlanRecord | None:
        """Return the stored plan record for a user."""
        response = execute_query(
            self.client.table("plan_records")
            .select(_PLAN_COLUMNS)
            .eq("user_id", str(user_id))
            .limit(1),
            "load_plan_record",
        )
        if not response.data:
            return None
        return _parse_row(response.data[0])

    def save_plan_record(self, record: PlanRecord) -> None:
        """Upsert the user's plan record."""
        execute_query(
            self.client.table("plan_records").upsert(
                _to_row(record), on_conflict="user_id"
            ),
            "save_plan_record",
        )


def _to_row(record: PlanRecord) -> dict[str, object]:
    return {
        "id": str(record.id),
        "user_id": str(record.user_id),
        "computed_at": record.computed_at.isoformat(),
        "targets": _targets_to_json(record.targets),
        "inputs": _inputs_to_json(record.inputs),
        "previous_targets": _targets_to_json(record.previous_targets)
        if record.previous_targets
        else None,
        "recomputed": record.recomputed,
        "change_reason": record.change_reason,
    }


def _parse_row(row: dict[str, object]) -> PlanRecord:
    previous = row.get("previous_targets")
    return PlanRecord(
        id=UUID(str(row["id"])),
        user_id=UUID(str(row["user_id"])),
        computed_at=datetime.fromisoformat(str(row["computed_at"])),
        targets=_parse_targets(row["targets"]),
        inputs=_parse_inputs(row["inputs"]),
        previous_targets=_parse_targets(previous) if previous else None,
        recomputed=bool(row.get("recomputed")),
        change_reason=row.get("change_reason"),
    )


def _targets_to_json(targets: ComputedTargets) -> dict[str, object]:
    return {
        "bmr": targets.bmr,
        "tdee": targets.tdee,
        "calorie_target": targets.calorie_target,
        "protein_target": targets.protein_target,
        "water_target": targets.water_target,
        "weekly_rate": targets.weekly_rate,
        "estimated_weeks": targets.estimated_weeks,
        "projected_date": targets.projected_date.isoformat()
        if targets.projected_date
        else None,
    }


def _parse_targets(data: dict[str, object]) -> ComputedTargets:
    projected = data.get("projected_date")
    weeks = data.get("estimated_weeks")
    return ComputedTargets(
        bmr=int(data["bmr"]),
        tdee=int(data["tdee"]),
        calorie_target=int(data["calorie_target"]),
        protein_target=int(data["protein_target"]),
        water_target=int(data["water_target"]),
        weekly_rate=float(data["weekly_rate"]),
        estimated_weeks=int(weeks) if weeks is not None else None,
        projected_date=date.fromisoformat(projected) if projected else None,
    )


def _inputs_to_json(inputs: PlanInputs) -> dict[str, object]:
    return {
        "weight_kg": inputs.weight_kg,
        "height_cm": inputs.height_cm,
        "age": inputs.age,
        "sex": inputs.sex.value,
        "activity_level": inputs.activity_level.value,
        "primary_goal": inputs.primary_goal.value,
        "target_weight_kg": inputs.target_weight_kg,
        "target_date": inputs.target_date.isoformat() if inputs.target_date else None,
    }


def _parse_inputs(data: dict[str, object]) -> PlanInputs:
    target_weight = data.get("target_weight_kg")
    target_date = data.get("target_date")
    return PlanInputs(
        weight_kg=float(data["weight_kg"]),
        height_cm=float(data["height_cm"]),
        age=int(data["age"]),
        sex=Sex(data["sex"]),
        activity_level=ActivityLevel(data["activity_level"]),
        primary_goal=PrimaryGoal(data["primary_goal"]),
        target_weight_kg=float(target_weight) if target_weight is not None else None,
        target_date=date.fromisoformat(target_date) if target_date else None,
    )
