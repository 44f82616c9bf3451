"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import timedelta

from supabase import create_client

from health_targets.adapters.supabase_plan_repository import SupabasePlanRepository
from health_targets.adapters.supabase_profile_repository import (
    SupabaseProfileRepository,
)
from health_targets.adapters.supabase_recompute_run_repository import (
    SupabaseRecomputeRunRepository,
)
from health_targets.config import Settings
from health_targets.services.cache import PlanCache
from health_targets.services.fallback import OnDemandFallback
from health_targets.services.metrics import MetricsEngine
from health_targets.services.plans import (
    PlanOrchestrator,
    PlanRecordRepository,
    ProfileRepository,
    SignificanceThresholds,
)
from health_targets.services.recompute import (
    BatchRecomputeJob,
    RecomputeRunRepository,
)
from health_targets.services.scheduler import RecomputeScheduler


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    plan_cache: PlanCache
    orchestrator: PlanOrchestrator
    fallback: OnDemandFallback
    recompute_job: BatchRecomputeJob
    run_repository: RecomputeRunRepository
    scheduler: RecomputeScheduler
    close_resources: Callable[[], Awaitable[None]]


def build_services(
    settings: Settings,
    profile_repository: ProfileRepository,
    plan_repository: PlanRecordRepository,
    run_repository: RecomputeRunRepository,
) -> AppContainer:
    """Wire services on top of the given repositories."""
    plan_cache = PlanCache(
        staleness=timedelta(hours=settings.plan_staleness_hours),
        wait_timeout_seconds=settings.plan_wait_timeout_seconds,
    )
    orchestrator = PlanOrchestrator(
        profile_repository=profile_repository,
        plan_repository=plan_repository,
        cache=plan_cache,
        engine=MetricsEngine(calorie_floor=settings.calorie_floor_kcal),
        thresholds=SignificanceThresholds(
            calorie_kcal=settings.significance_calorie_kcal,
            ratio=settings.significance_ratio,
        ),
        storage_retry_attempts=settings.storage_retry_attempts,
    )
    fallback = OnDemandFallback(orchestrator=orchestrator, cache=plan_cache)
    recompute_job = BatchRecomputeJob(
        orchestrator=orchestrator,
        profile_repository=profile_repository,
        run_repository=run_repository,
        page_size=settings.recompute_page_size,
        concurrency=settings.recompute_concurrency,
        page_delay_seconds=settings.recompute_page_delay_seconds,
    )
    scheduler = RecomputeScheduler(
        job=recompute_job, cron_expression=settings.recompute_cron
    )

    async def close_resources() -> None:
        scheduler.shutdown()

    return AppContainer(
        settings=settings,
        plan_cache=plan_cache,
        orchestrator=orchestrator,
        fallback=fallback,
        recompute_job=recompute_job,
        run_repository=run_repository,
        scheduler=scheduler,
        close_resources=close_resources,
    )


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container backed by Supabase."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    return build_services(
        settings=resolved_settings,
        profile_repository=SupabaseProfileRepository(supabase_client),
        plan_repository=SupabasePlanRepository(supabase_client),
        run_repository=SupabaseRecomputeRunRepository(supabase_client),
    )
