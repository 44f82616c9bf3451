"""Cron scheduling for the batch recompute job."""

import logging
from dataclasses import dataclass, field

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from health_targets.domain.errors import JobAlreadyRunningError
from health_targets.domain.jobs import RunSummary
from health_targets.services.recompute import BatchRecomputeJob

RECOMPUTE_JOB_ID = "recompute_all_plans"

_logger = logging.getLogger(__name__)


@dataclass
class RecomputeScheduler:
    """Owns the APScheduler instance that triggers population recomputes."""

    job: BatchRecomputeJob
    cron_expression: str = "0 3 * * mon"
    scheduler: AsyncIOScheduler = field(
        default_factory=lambda: AsyncIOScheduler(
            timezone="UTC",
            job_defaults={
                "coalesce": True,
                "max_instances": 1,
                "misfire_grace_time": 3600,
            },
        )
    )

    def __post_init__(self) -> None:
        self.scheduler.add_job(
            self.run_scheduled,
            trigger=CronTrigger.from_crontab(self.cron_expression, timezone="UTC"),
            id=RECOMPUTE_JOB_ID,
            name="Recompute all plans",
            replace_existing=True,
        )

    def start(self) -> None:
        """Start firing the cron trigger."""
        if self.scheduler.running:
            _logger.warning("Recompute scheduler already running")
            return
        self.scheduler.start()
        _logger.info("Recompute scheduler started: cron=%s", self.cron_expression)

    def shutdown(self) -> None:
        """Stop the scheduler without waiting for a running recompute."""
        if not self.scheduler.running:
            return
        self.scheduler.shutdown(wait=False)
        _logger.info("Recompute scheduler stopped")

    async def run_scheduled(self) -> RunSummary | None:
        """Scheduler tick: run the job unless one is already running."""
        try:
            return await self.job.run()
        except JobAlreadyRunningError as exc:
            _logger.info(
                "Skipping scheduled recompute, run already active: run_id=%s",
                exc.summary.id,
            )
            return None
