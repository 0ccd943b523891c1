"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from fishing_time.api.admin import router as admin_router
from fishing_time.api.models import SessionCreate, SessionStatusUpdate
from fishing_time.app_logging import configure_logging
from fishing_time.containers import AppContainer
from fishing_time.domain.errors import (
    InvalidTransitionError,
    SessionNotFoundError,
    StoreUnavailableError,
)
from fishing_time.domain.sessions import Duration, SessionRecord, TableNumber
from fishing_time.services.sessions import SessionFilter, sort_by_remaining
from fishing_time.services.stats import SessionSummary
from fishing_time.services.timing import (
    classify_session,
    format_remaining,
    progress_percent,
    session_remaining,
)


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        state_container: AppContainer = app.state.container
        if state_container.settings.monitor_enabled:
            try:
                await state_container.session_monitor.start()
            except Exception:
                logger.exception("Failed to start session monitor")
        yield
        await state_container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(admin_router)

    @app.exception_handler(SessionNotFoundError)
    async def not_found_handler(
        _request: Request, exc: SessionNotFoundError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)}
        )

    @app.exception_handler(InvalidTransitionError)
    async def invalid_transition_handler(
        _request: Request, exc: InvalidTransitionError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT, content={"detail": str(exc)}
        )

    @app.exception_handler(StoreUnavailableError)
    async def store_unavailable_handler(
        _request: Request, exc: StoreUnavailableError
    ) -> JSONResponse:
        logger.warning("Store unavailable: %s", exc)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": "Session store unavailable, please retry"},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/durations")
    async def list_durations(request: Request) -> list[dict[str, object]]:
        """Return purchasable durations."""
        state_container: AppContainer = request.app.state.container
        durations = state_container.catalog_service.list_durations()
        return [_serialize_duration(duration) for duration in durations]

    @app.get("/table-numbers")
    async def list_tables(request: Request) -> list[dict[str, object]]:
        """Return fishing stations."""
        state_container: AppContainer = request.app.state.container
        tables = state_container.catalog_service.list_tables()
        return [_serialize_table(table) for table in tables]

    @app.get("/user-selected-durations/active")
    async def list_active(
        request: Request, state: SessionFilter | None = None
    ) -> list[dict[str, object]]:
        """Return open sessions, closest to expiry first."""
        service = request.app.state.container.session_service
        now = service.now()
        sessions = service.list_active()
        if state is not None:
            sessions = service.filter(sessions, state, now)
        return [
            _serialize_session(session, now, service.critical_threshold_seconds)
            for session in sort_by_remaining(sessions, now)
        ]

    @app.get("/user-selected-durations/completed")
    async def list_completed(request: Request) -> list[dict[str, object]]:
        """Return completed sessions, newest first."""
        service = request.app.state.container.session_service
        now = service.now()
        return [
            _serialize_session(session, now, service.critical_threshold_seconds)
            for session in service.list_completed()
        ]

    @app.get("/user-selected-durations/summary")
    async def summary(request: Request) -> dict[str, int]:
        """Return session counts."""
        service = request.app.state.container.session_service
        return _serialize_summary(service.summary())

    @app.post("/user-selected-durations", status_code=status.HTTP_201_CREATED)
    async def create_session(
        payload: SessionCreate, request: Request
    ) -> dict[str, object]:
        """Start a session for a purchased duration."""
        service = request.app.state.container.session_service
        session = service.create_session(
            user_id=payload.user_id,
            duration_id=payload.duration_id,
            table_id=payload.table_number_id,
            start_time=payload.start_time,
        )
        return _serialize_session(
            session, service.now(), service.critical_threshold_seconds
        )

    @app.post("/user-selected-durations/refresh")
    async def refresh(request: Request) -> dict[str, object]:
        """Re-fetch sessions from the store."""
        service = request.app.state.container.session_service
        active, completed = service.refresh()
        now = service.now()
        threshold = service.critical_threshold_seconds
        return {
            "active": [
                _serialize_session(session, now, threshold)
                for session in sort_by_remaining(active, now)
            ],
            "completed": [
                _serialize_session(session, now, threshold) for session in completed
            ],
            "summary": _serialize_summary(service.summary(now)),
        }

    @app.put("/user-selected-durations/{session_id}/status")
    async def update_status(
        session_id: int, payload: SessionStatusUpdate, request: Request
    ) -> dict[str, object]:
        """Manually change a session status."""
        service = request.app.state.container.session_service
        session = service.set_status(session_id, payload.status)
        return _serialize_session(
            session, service.now(), service.critical_threshold_seconds
        )

    return app


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _serialize_duration(duration: Duration) -> dict[str, object]:
    return {
        "id": duration.id,
        "name": duration.name,
        "seconds": duration.length_in_seconds,
    }


def _serialize_table(table: TableNumber) -> dict[str, object]:
    return {"id": table.id, "number": table.label}


def _serialize_session(
    session: SessionRecord, now: datetime, critical_threshold: int
) -> dict[str, object]:
    remaining = session_remaining(session, now)
    return {
        "id": session.id,
        "user_id": session.user_id,
        "duration_id": session.duration_id,
        "table_number_id": session.table_id,
        "start_time": _iso(session.start_time),
        "end_time": _iso(session.end_time),
        "completed_at": _iso(session.completed_at),
        "status": session.status.value,
        "state": classify_session(session, now, critical_threshold).value,
        "remaining_seconds": remaining,
        "remaining_display": format_remaining(remaining),
        "progress_percent": progress_percent(remaining),
        "table_label": session.table.label if session.table else None,
        "duration_name": session.duration.name if session.duration else None,
        "user": {
            "id": session.user.id,
            "name": session.user.display_name,
            "avatar": session.user.avatar_url,
        }
        if session.user
        else None,
    }


def _serialize_summary(summary: SessionSummary) -> dict[str, int]:
    return {
        "total": summary.total,
        "active": summary.active,
        "completed": summary.completed,
        "critical": summary.critical,
    }
