"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from fishing_time.adapters.supabase_catalog_repository import (
    SupabaseCatalogRepository,
)
from fishing_time.adapters.supabase_session_repository import (
    SupabaseSessionRepository,
)
from fishing_time.config import Settings
from fishing_time.services.catalog import CatalogService
from fishing_time.services.monitor import SessionMonitor
from fishing_time.services.sessions import SessionService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    catalog_service: CatalogService
    session_service: SessionService
    session_monitor: SessionMonitor
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    session_repository = SupabaseSessionRepository(supabase_client)
    catalog_repository = SupabaseCatalogRepository(supabase_client)
    session_monitor = SessionMonitor(
        repository=session_repository,
        tick_interval_seconds=resolved_settings.tick_interval_seconds,
        refresh_interval_seconds=resolved_settings.refresh_interval_seconds,
    )
    session_service = SessionService(
        repository=session_repository,
        catalog_repository=catalog_repository,
        monitor=session_monitor,
        critical_threshold_seconds=resolved_settings.critical_threshold_seconds,
    )

    async def close_resources() -> None:
        await session_monitor.stop()

    return AppContainer(
        settings=resolved_settings,
        catalog_service=CatalogService(catalog_repository),
        session_service=session_service,
        session_monitor=session_monitor,
        close_resources=close_resources,
    )
