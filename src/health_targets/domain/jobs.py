"""Batch recompute run models."""

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import StrEnum
from uuid import UUID, uuid4

# Per-user details kept on a run; counters are never capped.
MAX_RECORDED_DETAILS = 1000


class JobStatus(StrEnum):
    """Lifecycle of a recompute run."""

    IDLE = "IDLE"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


@dataclass(frozen=True)
class SignificantUpdate:
    """A user whose targets changed materially during a run."""

    user_id: UUID
    previous_calorie_target: int
    new_calorie_target: int
    previous_protein_target: int
    new_protein_target: int
    reason: str


@dataclass(frozen=True)
class UserFailure:
    """A user whose recompute failed during a run."""

    user_id: UUID
    error_type: str
    message: str


@dataclass
class RunSummary:
    """Progress and outcome of one recompute run.

    Counters only grow while the run is RUNNING. Once the run reaches a
    terminal status the summary rejects further mutation. Only the most
    recent ``MAX_RECORDED_DETAILS`` updates and failures are kept.
    """

    id: UUID = field(default_factory=uuid4)
    status: JobStatus = JobStatus.RUNNING
    started_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))
    finished_at: datetime | None = None
    total_users: int = 0
    success_count: int = 0
    error_count: int = 0
    updates: list[SignificantUpdate] = field(default_factory=list)
    failures: list[UserFailure] = field(default_factory=list)
    error: str | None = None

    @property
    def is_finished(self) -> bool:
        """Return True once the run reached a terminal status."""
        return self.status in {
            JobStatus.COMPLETED,
            JobStatus.FAILED,
            JobStatus.CANCELLED,
        }

    def add_enumerated(self, count: int) -> None:
        """Account for a newly enumerated page of users."""
        self._ensure_running()
        self.total_users += count

    def record_success(self, update: SignificantUpdate | None = None) -> None:
        """Count a successful user recompute."""
        self._ensure_running()
        self.success_count += 1
        if update is not None:
            self.updates.append(update)
            _trim(self.updates)

    def record_failure(self, failure: UserFailure) -> None:
        """Count a failed user recompute."""
        self._ensure_running()
        self.error_count += 1
        self.failures.append(failure)
        _trim(self.failures)

    def finish(self, status: JobStatus, error: str | None = None) -> None:
        """Move the run to a terminal status."""
        self._ensure_running()
        self.status = status
        self.error = error
        self.finished_at = datetime.now(tz=UTC)

    def snapshot(self) -> "RunSummary":
        """Return a copy that later progress will not mutate."""
        return replace(self, updates=list(self.updates), failures=list(self.failures))

    def _ensure_running(self) -> None:
        if self.status != JobStatus.RUNNING:
            raise RuntimeError(f"Run {self.id} is {self.status} and cannot change")


def _trim(details: list) -> None:
    overflow = len(details) - MAX_RECORDED_DETAILS
    if overflow > 0:
        del details[:overflow]
