"""Error translation for Supabase queries."""

from typing import Any

import httpx
from postgrest import APIError

from health_targets.domain.errors import TransientStorageError


def execute_query(query: Any, action: str) -> Any:
    """Execute a PostgREST query, raising TransientStorageError on failure."""
    try:
        return query.execute()
    except (APIError, httpx.HTTPError) as exc:
        raise TransientStorageError(f"Supabase {action} failed: {exc}") from exc
