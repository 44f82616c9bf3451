"""Read-path fallback that computes a plan when none is available yet."""

import logging
from dataclasses import dataclass
from uuid import UUID

from health_targets.domain.errors import NotReadyError, ProfileIncompleteError
from health_targets.domain.plans import PlanResult, PlanSource
from health_targets.services.cache import PlanCache
from health_targets.services.plans import PlanOrchestrator, plan_result

_logger = logging.getLogger(__name__)


@dataclass
class OnDemandFallback:
    """Serve today's plan, computing it synchronously on a miss."""

    orchestrator: PlanOrchestrator
    cache: PlanCache

    async def get_or_compute_now(self, user_id: UUID) -> PlanResult:
        """Return the user's plan from cache, storage, or a fresh computation."""
        cached = self.cache.get(user_id)
        if cached is not None:
            return plan_result(cached, PlanSource.CACHE)

        if not self.cache.is_invalidated(user_id) and not self.cache.is_computing(
            user_id
        ):
            stored = await self.orchestrator.load_stored_plan(user_id)
            if stored is not None and self.cache.is_fresh(stored.computed_at):
                record = self.cache.prime(stored)
                return plan_result(record, PlanSource.STORAGE)

        try:
            return await self.orchestrator.get_plan(user_id, force_recompute=False)
        except ProfileIncompleteError as exc:
            _logger.info(
                "Plan not ready, profile incomplete: user_id=%s missing=%s",
                user_id,
                ",".join(exc.missing_fields),
            )
            raise NotReadyError(user_id, "profile incomplete") from exc
