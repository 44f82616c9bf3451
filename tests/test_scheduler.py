"""Tests for recompute scheduling."""

import asyncio
from datetime import UTC, datetime

import pytest

from health_targets.domain.jobs import JobStatus
from health_targets.services.recompute import BatchRecomputeJob
from health_targets.services.scheduler import RECOMPUTE_JOB_ID, RecomputeScheduler


@pytest.fixture
def job(orchestrator, profile_repository, run_repository) -> BatchRecomputeJob:
    return BatchRecomputeJob(
        orchestrator=orchestrator,
        profile_repository=profile_repository,
        run_repository=run_repository,
    )


def test_default_schedule_fires_monday_at_three_utc(job) -> None:
    scheduler = RecomputeScheduler(job=job)

    scheduled = scheduler.scheduler.get_job(RECOMPUTE_JOB_ID)
    next_fire = scheduled.trigger.get_next_fire_time(
        None, datetime(2024, 6, 5, 12, 0, tzinfo=UTC)
    )

    assert next_fire == datetime(2024, 6, 10, 3, 0, tzinfo=UTC)


def test_custom_cron_expression(job) -> None:
    scheduler = RecomputeScheduler(job=job, cron_expression="30 1 * * *")

    scheduled = scheduler.scheduler.get_job(RECOMPUTE_JOB_ID)
    next_fire = scheduled.trigger.get_next_fire_time(
        None, datetime(2024, 6, 5, 12, 0, tzinfo=UTC)
    )

    assert next_fire == datetime(2024, 6, 6, 1, 30, tzinfo=UTC)


def test_invalid_cron_expression_is_rejected(job) -> None:
    with pytest.raises(ValueError):
        RecomputeScheduler(job=job, cron_expression="every monday")


def test_scheduled_tick_runs_job(job, profile_repository, profile_factory) -> None:
    profile_repository.add(profile_factory())
    scheduler = RecomputeScheduler(job=job)

    summary = asyncio.run(scheduler.run_scheduled())

    assert summary is not None
    assert summary.status == JobStatus.COMPLETED
    assert summary.success_count == 1


def test_scheduled_tick_skips_when_job_running(
    job, profile_repository, profile_factory
) -> None:
    profile_repository.add(profile_factory())
    scheduler = RecomputeScheduler(job=job)

    async def scenario():
        started = job.start()
        skipped = await scheduler.run_scheduled()
        await job.wait()
        return started, skipped

    started, skipped = asyncio.run(scenario())

    assert started.status == JobStatus.RUNNING
    assert skipped is None


def test_start_and_shutdown(job) -> None:
    scheduler = RecomputeScheduler(job=job)

    async def scenario() -> tuple[bool, bool]:
        scheduler.start()
        scheduler.start()
        running = scheduler.scheduler.running
        scheduler.shutdown()
        return running, scheduler.scheduler.running

    running, after_shutdown = asyncio.run(scenario())

    assert running is True
    assert after_shutdown is False
