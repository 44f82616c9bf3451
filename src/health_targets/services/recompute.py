"""Population-wide recompute of plan targets."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Protocol
from uuid import UUID

from health_targets.domain.errors import JobAlreadyRunningError
from health_targets.domain.jobs import (
    JobStatus,
    RunSummary,
    SignificantUpdate,
    UserFailure,
)
from health_targets.services.plans import PlanOrchestrator, ProfileRepository

_logger = logging.getLogger(__name__)


class RecomputeRunRepository(Protocol):
    """Persistence interface for recompute run history."""

    def save_run(self, summary: RunSummary) -> None:
        """Insert or update a run summary."""

    def get_latest_run(self) -> RunSummary | None:
        """Return the most recently started run, if any."""


@dataclass
class BatchRecomputeJob:
    """Recomputes every eligible user's plan in paginated, bounded batches.

    One user's failure is recorded in the run summary and never cancels other
    users. Only a failure to enumerate users fails the run. Cancellation is
    honoured between pages, so in-flight users always finish.
    """

    orchestrator: PlanOrchestrator
    profile_repository: ProfileRepository
    run_repository: RecomputeRunRepository
    page_size: int = 1000
    concurrency: int = 10
    page_delay_seconds: float = 0.0
    _current: RunSummary | None = field(default=None, init=False, repr=False)
    _task: "asyncio.Task[RunSummary] | None" = field(
        default=None, init=False, repr=False
    )
    _cancel_requested: bool = field(default=False, init=False, repr=False)

    @property
    def status(self) -> JobStatus:
        """Return the status of the current or last run."""
        if self._current is None:
            return JobStatus.IDLE
        return self._current.status

    def snapshot(self) -> RunSummary | None:
        """Return a read-only copy of the current or last run summary."""
        if self._current is None:
            return None
        return self._current.snapshot()

    def start(self) -> RunSummary:
        """Launch a run in the background and return its initial snapshot."""
        summary = self._begin()
        self._task = asyncio.get_running_loop().create_task(self._execute(summary))
        return summary.snapshot()

    async def run(self) -> RunSummary:
        """Execute a run to completion and return its final snapshot."""
        summary = self._begin()
        return await self._execute(summary)

    def cancel(self) -> bool:
        """Ask the running job to stop at the next page boundary."""
        if self.status != JobStatus.RUNNING:
            return False
        self._cancel_requested = True
        _logger.info("Recompute cancellation requested: run_id=%s", self._current.id)
        return True

    async def wait(self) -> RunSummary | None:
        """Wait for a background run started with ``start`` to finish."""
        if self._task is None:
            return self.snapshot()
        return await self._task

    def _begin(self) -> RunSummary:
        if self._current is not None and self._current.status == JobStatus.RUNNING:
            raise JobAlreadyRunningError(self._current.snapshot())
        self._cancel_requested = False
        self._current = RunSummary()
        _logger.info("Recompute run started: run_id=%s", self._current.id)
        return self._current

    async def _execute(self, summary: RunSummary) -> RunSummary:
        await self._persist(summary)
        status = JobStatus.COMPLETED
        error = None
        try:
            after: UUID | None = None
            while True:
                if self._cancel_requested:
                    status = JobStatus.CANCELLED
                    break
                user_ids = await asyncio.to_thread(
                    self.profile_repository.list_eligible_user_ids,
                    after,
                    self.page_size,
                )
                if not user_ids:
                    break
                summary.add_enumerated(len(user_ids))
                await self._process_page(summary, user_ids)
                if len(user_ids) < self.page_size:
                    break
                after = user_ids[-1]
                if self.page_delay_seconds > 0:
                    await asyncio.sleep(self.page_delay_seconds)
        except Exception as exc:
            _logger.exception("Recompute enumeration failed: run_id=%s", summary.id)
            status = JobStatus.FAILED
            error = f"{type(exc).__name__}: {exc}"

        summary.finish(status, error)
        await self._persist(summary)
        _logger.info(
            "Recompute run finished: run_id=%s status=%s total=%s success=%s "
            "errors=%s updated=%s",
            summary.id,
            summary.status,
            summary.total_users,
            summary.success_count,
            summary.error_count,
            len(summary.updates),
        )
        return summary.snapshot()

    async def _process_page(self, summary: RunSummary, user_ids: list[UUID]) -> None:
        semaphore = asyncio.Semaphore(self.concurrency)

        async def worker(user_id: UUID) -> None:
            async with semaphore:
                await self._recompute_user(summary, user_id)

        await asyncio.gather(
            *(worker(user_id) for user_id in user_ids), return_exceptions=True
        )

    async def _recompute_user(self, summary: RunSummary, user_id: UUID) -> None:
        try:
            result = await self.orchestrator.get_plan(user_id, force_recompute=True)
        except Exception as exc:
            _logger.exception("Recompute failed for user: user_id=%s", user_id)
            summary.record_failure(
                UserFailure(
                    user_id=user_id,
                    error_type=type(exc).__name__,
                    message=str(exc),
                )
            )
            return

        record = result.record
        update = None
        if record.previous_targets is not None:
            update = SignificantUpdate(
                user_id=user_id,
                previous_calorie_target=record.previous_targets.calorie_target,
                new_calorie_target=record.targets.calorie_target,
                previous_protein_target=record.previous_targets.protein_target,
                new_protein_target=record.targets.protein_target,
                reason=record.change_reason or "",
            )
        summary.record_success(update)

    async def _persist(self, summary: RunSummary) -> None:
        try:
            await asyncio.to_thread(self.run_repository.save_run, summary.snapshot())
        except Exception:
            _logger.exception("Failed to persist recompute run: run_id=%s", summary.id)
