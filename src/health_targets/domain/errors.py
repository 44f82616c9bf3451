"""Domain errors raised by the health targets core."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

if TYPE_CHECKING:
    from health_targets.domain.jobs import RunSummary


class HealthTargetsError(Exception):
    """Base class for expected domain failures."""


class InvalidInputError(HealthTargetsError):
    """Numeric input outside the supported domain."""

    def __init__(self, problems: list[str]) -> None:
        self.problems = problems
        super().__init__("Invalid input parameters: " + ", ".join(problems))


class ProfileNotFoundError(HealthTargetsError):
    """No profile exists for the user."""

    def __init__(self, user_id: UUID) -> None:
        self.user_id = user_id
        super().__init__(f"Profile not found for user {user_id}")


class ProfileIncompleteError(HealthTargetsError):
    """The user has not filled in every field the engine needs."""

    def __init__(self, user_id: UUID, missing_fields: list[str]) -> None:
        self.user_id = user_id
        self.missing_fields = missing_fields
        super().__init__(
            f"Profile for user {user_id} is incomplete: missing "
            + ", ".join(missing_fields)
        )


class NotReadyError(HealthTargetsError):
    """No plan can be returned yet."""

    def __init__(self, user_id: UUID, reason: str) -> None:
        self.user_id = user_id
        self.reason = reason
        super().__init__(f"Plan for user {user_id} is not ready: {reason}")


class TransientStorageError(HealthTargetsError):
    """Durable storage failed in a way that may succeed on retry."""


class JobAlreadyRunningError(HealthTargetsError):
    """A recompute run was triggered while another one is running."""

    def __init__(self, summary: RunSummary) -> None:
        self.summary = summary
        super().__init__(f"Recompute run {summary.id} is already running")
