"""Supabase repository for recompute run history."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from supabase import Client

from health_targets.adapters.supabase_errors import execute_query
from health_targets.domain.jobs import (
    JobStatus,
    RunSummary,
    SignificantUpdate,
    UserFailure,
)
from health_targets.services.recompute import RecomputeRunRepository

_RUN_COLUMNS = (
    "id, status, started_at, finished_at, total_users, success_count, "
    "error_count, updates, failures, error"
)


@dataclass
class SupabaseRecomputeRunRepository(RecomputeRunRepository):
    """Supabase implementation for recompute runs."""

    client: Client

    def save_run(self, summary: RunSummary) -> None:
        """Insert or update a run row keyed by run id."""
        execute_query(
            self.client.table("recompute_runs").upsert(
                _to_row(summary), on_conflict="id"
            ),
            "save_run",
        )

    def get_latest_run(self) -> RunSummary | None:
        """Return the most recently started run."""
        response = execute_query(
            self.client.table("recompute_runs")
            .select(_RUN_COLUMNS)
            .order("started_at", desc=True)
            .limit(1),
            "get_latest_run",
        )
        if not response.data:
            return None
        return _parse_row(response.data[0])


def _to_row(summary: RunSummary) -> dict[str, object]:
    return {
        "id": str(summary.id),
        "status": summary.status.value,
        "started_at": summary.started_at.isoformat(),
        "finished_at": summary.finished_at.isoformat()
        if summary.finished_at
        else None,
        "total_users": summary.total_users,
        "success_count": summary.success_count,
        "error_count": summary.error_count,
        "updates": [
            {
                "user_id": str(update.user_id),
                "previous_calorie_target": update.previous_calorie_target,
                "new_calorie_target": update.new_calorie_target,
                "previous_protein_target": update.previous_protein_target,
                "new_protein_target": update.new_protein_target,
                "reason": update.reason,
            }
            for update in summary.updates
        ],
        "failures": [
            {
                "user_id": str(failure.user_id),
                "error_type": failure.error_type,
                "message": failure.message,
            }
            for failure in summary.failures
        ],
        "error": summary.error,
    }


def _parse_row(row: dict[str, object]) -> RunSummary:
    finished_at = row.get("finished_at")
    return RunSummary(
        id=UUID(str(row["id"])),
        status=JobStatus(row["status"]),
        started_at=datetime.fromisoformat(str(row["started_at"])),
        finished_at=datetime.fromisoformat(str(finished_at)) if finished_at else None,
        total_users=int(row.get("total_users") or 0),
        success_count=int(row.get("success_count") or 0),
        error_count=int(row.get("error_count") or 0),
        updates=[
            SignificantUpdate(
                user_id=UUID(str(item["user_id"])),
                previous_calorie_target=int(item["previous_calorie_target"]),
                new_calorie_target=int(item["new_calorie_target"]),
                previous_protein_target=int(item["previous_protein_target"]),
                new_protein_target=int(item["new_protein_target"]),
                reason=str(item.get("reason", "")),
            )
            for item in row.get("updates") or []
        ],
        failures=[
            UserFailure(
                user_id=UUID(str(item["user_id"])),
                error_type=str(item.get("error_type", "")),
                message=str(item.get("message", "")),
            )
            for item in row.get("failures") or []
        ],
        error=row.get("error"),
    )
