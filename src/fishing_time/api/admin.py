"""Admin API endpoints with simple token auth."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

if TYPE_CHECKING:
    from fishing_time.containers import AppContainer

router = APIRouter(prefix="/admin", tags=["admin"])


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


@router.get("/monitor", dependencies=[Depends(require_admin)])
async def monitor_state(request: Request) -> dict[str, object]:
    """Return the session monitor's current state."""
    container: AppContainer = request.app.state.container
    monitor = container.session_monitor
    return {
        "running": monitor.running,
        "tick_count": monitor.tick_count,
        "last_tick_at": monitor.last_tick_at.isoformat()
        if monitor.last_tick_at
        else None,
        "last_refresh_at": monitor.last_refresh_at.isoformat()
        if monitor.last_refresh_at
        else None,
        "tick_interval_seconds": monitor.tick_interval_seconds,
        "active": len(monitor.active_sessions()),
        "completed": len(monitor.completed_sessions()),
    }


@router.post("/monitor/tick", dependencies=[Depends(require_admin)])
async def force_tick(request: Request) -> dict[str, object]:
    """Run one reconciliation pass immediately."""
    container: AppContainer = request.app.state.container
    result = await asyncio.to_thread(container.session_monitor.tick)
    return {
        "now": result.now.isoformat(),
        "still_open": result.still_open,
        "completed": [session.id for session in result.completed],
        "retrying": result.retrying,
    }
