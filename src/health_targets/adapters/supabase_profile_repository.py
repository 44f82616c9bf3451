"""Supabase repository for user profiles."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from enum import StrEnum
from typing import TypeVar
from uuid import UUID

from supabase import Client

from health_targets.adapters.supabase_errors import execute_query
from health_targets.domain.profile import ActivityLevel, PrimaryGoal, Profile, Sex
from health_targets.services.metrics import age_on
from health_targets.services.plans import ProfileRepository

_PROFILE_COLUMNS = (
    "user_id, date_of_birth, gender, current_weight, height, activity_level, "
    "primary_goal, target_weight, target_date, onboarding_completed"
)

_E = TypeVar("_E", bound=StrEnum)

_logger = logging.getLogger(__name__)


def _today() -> date:
    return datetime.now(tz=UTC).date()


@dataclass
class SupabaseProfileRepository(ProfileRepository):
    """Supabase implementation for profile reads."""

    client: Client
    today: Callable[[], date] = field(default=_today)

    def get_profile(self, user_id: UUID) -> Profile | None:
        """Return the profile stored in user_settings."""
        response = execute_query(
            self.client.table("user_settings")
            .select(_PROFILE_COLUMNS)
            .eq("user_id", str(user_id))
            .limit(1),
            "get_profile",
        )
        if not response.data:
            return None
        return _parse_row(response.data[0], self.today())

    def list_eligible_user_ids(self, after: UUID | None, limit: int) -> list[UUID]:
        """Return the next page of profile-complete user ids."""
        query = (
            self.client.table("user_settings")
            .select("user_id")
            .eq("onboarding_completed", True)
        )
        if after is not None:
            query = query.gt("user_id", str(after))
        response = execute_query(
            query.order("user_id", desc=False).limit(limit),
            "list_eligible_user_ids",
        )
        return [UUID(row["user_id"]) for row in response.data or []]


def _parse_row(row: dict[str, object], today: date) -> Profile:
    user_id = UUID(str(row["user_id"]))
    date_of_birth = _parse_date(row.get("date_of_birth"))
    return Profile(
        user_id=user_id,
        age=age_on(date_of_birth, today) if date_of_birth else None,
        sex=_parse_enum(Sex, row.get("gender"), user_id),
        weight_kg=_parse_float(row.get("current_weight")),
        height_cm=_parse_float(row.get("height")),
        activity_level=_parse_enum(ActivityLevel, row.get("activity_level"), user_id),
        primary_goal=_parse_enum(PrimaryGoal, row.get("primary_goal"), user_id),
        target_weight_kg=_parse_float(row.get("target_weight")),
        target_date=_parse_date(row.get("target_date")),
        onboarding_completed=bool(row.get("onboarding_completed")),
    )


def _parse_float(value: object) -> float | None:
    if value is None or value == "":
        return None
    return float(value)


def _parse_date(value: object) -> date | None:
    if isinstance(value, str) and value:
        return date.fromisoformat(value[:10])
    return None


def _parse_enum(enum_type: type[_E], value: object, user_id: UUID) -> _E | None:
    if value is None or value == "":
        return None
    try:
        return enum_type(value)
    except ValueError:
        _logger.warning(
            "Unknown %s value for user_id=%s: %r", enum_type.__name__, user_id, value
        )
        return None
