"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import UUID

from fastapi import FastAPI, Header, HTTPException, Request, status

from health_targets.api.admin import jobs_router
from health_targets.api.admin import router as admin_router
from health_targets.api.models import GeneratePlanRequest
from health_targets.api.serializers import serialize_plan_result
from health_targets.app_logging import configure_logging
from health_targets.containers import AppContainer
from health_targets.domain.errors import (
    HealthTargetsError,
    InvalidInputError,
    NotReadyError,
    ProfileIncompleteError,
    ProfileNotFoundError,
    TransientStorageError,
)


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        state_container: AppContainer = app.state.container
        if state_container.settings.scheduler_enabled:
            state_container.scheduler.start()
        yield
        await state_container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(admin_router)
    app.include_router(jobs_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/plans/generate")
    async def generate_plan(
        request: Request,
        body: GeneratePlanRequest | None = None,
        x_user_id: UUID = Header(),
    ) -> dict[str, object]:
        """Return the caller's plan, recomputing it when asked to."""
        state_container: AppContainer = request.app.state.container
        force_recompute = body.force_recompute if body else False
        try:
            result = await state_container.orchestrator.get_plan(
                x_user_id, force_recompute=force_recompute
            )
        except HealthTargetsError as exc:
            logger.info("Plan generation failed: user_id=%s error=%s", x_user_id, exc)
            raise _http_error(exc) from exc
        return serialize_plan_result(result)

    @app.get("/plans/today")
    async def todays_plan(
        request: Request, x_user_id: UUID = Header()
    ) -> dict[str, object]:
        """Return the caller's current plan, computing it on a cold start."""
        state_container: AppContainer = request.app.state.container
        try:
            result = await state_container.fallback.get_or_compute_now(x_user_id)
        except HealthTargetsError as exc:
            raise _http_error(exc) from exc
        return serialize_plan_result(result)

    return app


def _http_error(exc: HealthTargetsError) -> HTTPException:
    """Translate a domain error into an HTTP error response."""
    if isinstance(exc, ProfileIncompleteError):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": str(exc), "missingFields": exc.missing_fields},
        )
    if isinstance(exc, InvalidInputError):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "Invalid input parameters", "problems": exc.problems},
        )
    if isinstance(exc, ProfileNotFoundError | NotReadyError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, TransientStorageError):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)
        )
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
