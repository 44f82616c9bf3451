"""Per-user plan cache with single-flight computation."""

import asyncio
import itertools
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from uuid import UUID

from health_targets.domain.errors import NotReadyError
from health_targets.domain.plans import PlanRecord

_logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class PlanCacheEntry:
    """Cached plan for one user."""

    record: PlanRecord
    last_computed_at: datetime
    version: int


class PlanCache:
    """Latest plan per user, with at most one computation in flight per user.

    Entries expire lazily: a stale entry is dropped the next time ``get`` sees
    it. ``invalidate`` leaves a tombstone stamped with the current version so a
    computation that started before the invalidation is not cached.
    """

    def __init__(
        self,
        staleness: timedelta = timedelta(hours=24),
        wait_timeout_seconds: float = 5.0,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.staleness = staleness
        self.wait_timeout_seconds = wait_timeout_seconds
        self._clock = clock
        self._entries: dict[UUID, PlanCacheEntry] = {}
        self._inflight: dict[UUID, asyncio.Future[PlanRecord]] = {}
        self._invalidated: dict[UUID, int] = {}
        self._versions = itertools.count(1)

    def get(self, user_id: UUID) -> PlanRecord | None:
        """Return the cached record if present and not stale."""
        entry = self._entries.get(user_id)
        if entry is None:
            return None
        if not self.is_fresh(entry.last_computed_at):
            self._entries.pop(user_id, None)
            return None
        return entry.record

    def peek(self, user_id: UUID) -> PlanCacheEntry | None:
        """Return the entry for a user regardless of its age."""
        return self._entries.get(user_id)

    def is_fresh(self, computed_at: datetime) -> bool:
        """Return True when a computation time is inside the staleness window."""
        return self._clock() - computed_at < self.staleness

    def is_invalidated(self, user_id: UUID) -> bool:
        """Return True when the user's plan was invalidated and not recomputed."""
        return user_id in self._invalidated

    def is_computing(self, user_id: UUID) -> bool:
        """Return True while a computation for the user is in flight."""
        return user_id in self._inflight

    def invalidate(self, user_id: UUID) -> None:
        """Drop the cached plan so the next read recomputes it."""
        self._entries.pop(user_id, None)
        self._invalidated[user_id] = next(self._versions)
        _logger.info("Plan cache invalidated: user_id=%s", user_id)

    def prime(self, record: PlanRecord) -> PlanRecord:
        """Seed the cache with a stored record and return the cached one.

        Existing entries win, and invalidated users are never primed.
        """
        existing = self._entries.get(record.user_id)
        if existing is not None:
            return existing.record
        if self.is_invalidated(record.user_id):
            return record
        self._entries[record.user_id] = PlanCacheEntry(
            record=record,
            last_computed_at=record.computed_at,
            version=next(self._versions),
        )
        return record

    async def compute_if_absent_or_stale(
        self,
        user_id: UUID,
        compute_fn: Callable[[], Awaitable[PlanRecord]],
        *,
        force: bool = False,
    ) -> PlanRecord:
        """Return a fresh record, computing it at most once per user at a time.

        Callers arriving while a computation is in flight wait for its result
        instead of starting another one. A failed computation is propagated to
        every waiter and leaves the previous entry untouched. A forced caller
        that times out waiting never falls back to the previous entry.
        """
        inflight = self._inflight.get(user_id)
        if inflight is not None:
            return await self._wait_for(user_id, inflight, allow_prior=not force)
        if not force:
            cached = self.get(user_id)
            if cached is not None:
                return cached

        future: asyncio.Future[PlanRecord] = (
            asyncio.get_running_loop().create_future()
        )
        self._inflight[user_id] = future
        started_version = next(self._versions)
        try:
            record = await compute_fn()
        except asyncio.CancelledError:
            future.set_exception(NotReadyError(user_id, "computation cancelled"))
            future.exception()
            raise
        except Exception as exc:
            future.set_exception(exc)
            # Mark retrieved so an unobserved failure is not reported by asyncio.
            future.exception()
            raise
        finally:
            self._inflight.pop(user_id, None)

        self._store(user_id, record, started_version)
        future.set_result(record)
        return record

    async def _wait_for(
        self,
        user_id: UUID,
        inflight: asyncio.Future[PlanRecord],
        *,
        allow_prior: bool = True,
    ) -> PlanRecord:
        try:
            return await asyncio.wait_for(
                asyncio.shield(inflight), timeout=self.wait_timeout_seconds
            )
        except TimeoutError:
            entry = self._entries.get(user_id) if allow_prior else None
            _logger.warning(
                "Plan computation wait timed out: user_id=%s prior=%s",
                user_id,
                entry is not None,
            )
            if entry is not None:
                return entry.record
            raise NotReadyError(user_id, "computation still in progress") from None

    def _store(self, user_id: UUID, record: PlanRecord, started_version: int) -> None:
        invalidated_at = self._invalidated.get(user_id)
        if invalidated_at is not None and invalidated_at > started_version:
            _logger.info(
                "Discarding plan computed before invalidation: user_id=%s", user_id
            )
            return
        self._invalidated.pop(user_id, None)
        self._entries[user_id] = PlanCacheEntry(
            record=record,
            last_computed_at=self._clock(),
            version=started_version,
        )
