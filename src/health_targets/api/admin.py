"""Admin and job API endpoints with simple token auth."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from fastapi.responses import JSONResponse

from health_targets.api.serializers import serialize_run_summary
from health_targets.domain.errors import JobAlreadyRunningError, TransientStorageError

if TYPE_CHECKING:
    from health_targets.containers import AppContainer

router = APIRouter(prefix="/admin", tags=["admin"])
jobs_router = APIRouter(prefix="/jobs", tags=["jobs"])

_logger = logging.getLogger(__name__)


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.get("/health", dependencies=[Depends(require_admin)])
async def admin_health() -> dict[str, str]:
    """Admin health check endpoint."""
    return {"status": "ok"}


@router.post(
    "/users/{user_id}/profile-changed", dependencies=[Depends(require_admin)]
)
async def profile_changed(user_id: UUID, request: Request) -> dict[str, str]:
    """Profile-mutation hook: drop the user's cached plan."""
    container: AppContainer = request.app.state.container
    container.orchestrator.invalidate(user_id)
    return {"status": "invalidated", "userId": str(user_id)}


@jobs_router.post("/recompute-all", dependencies=[Depends(require_admin)])
async def trigger_recompute(request: Request) -> JSONResponse:
    """Start a population recompute, or report the run already in progress."""
    container: AppContainer = request.app.state.container
    try:
        summary = container.recompute_job.start()
    except JobAlreadyRunningError as exc:
        _logger.info("Recompute already running: run_id=%s", exc.summary.id)
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content=serialize_run_summary(exc.summary),
        )
    return JSONResponse(
        status_code=status.HTTP_202_ACCEPTED,
        content=serialize_run_summary(summary),
    )


@jobs_router.get("/recompute-all/status", dependencies=[Depends(require_admin)])
async def recompute_status(request: Request) -> dict[str, object]:
    """Return the current run, or the latest persisted one."""
    container: AppContainer = request.app.state.container
    summary = container.recompute_job.snapshot()
    if summary is None:
        try:
            summary = await asyncio.to_thread(container.run_repository.get_latest_run)
        except TransientStorageError as exc:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)
            ) from exc
    if summary is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="No recompute runs yet"
        )
    return serialize_run_summary(summary)


@jobs_router.post("/recompute-all/cancel", dependencies=[Depends(require_admin)])
async def cancel_recompute(request: Request) -> JSONResponse:
    """Ask the running recompute to stop at the next page boundary."""
    container: AppContainer = request.app.state.container
    if not container.recompute_job.cancel():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="No recompute is running"
        )
    return JSONResponse(
        status_code=status.HTTP_202_ACCEPTED,
        content={"status": "cancelling"},
    )
