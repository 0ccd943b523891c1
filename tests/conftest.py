"""Shared test fixtures."""

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta

import pytest

from fishing_time.config import Settings
from fishing_time.containers import AppContainer
from fishing_time.domain.errors import SessionNotFoundError, StoreUnavailableError
from fishing_time.domain.sessions import (
    Duration,
    SessionRecord,
    SessionStatus,
    TableNumber,
    UserSnapshot,
    check_transition,
)
from fishing_time.services.catalog import CatalogRepository, CatalogService
from fishing_time.services.monitor import SessionMonitor
from fishing_time.services.sessions import SessionRepository, SessionService

T0 = datetime(2025, 6, 12, 9, 0, tzinfo=UTC)


@dataclass
class FakeClock:
    """Manually advanced clock."""

    now: datetime = T0

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@dataclass
class InMemoryCatalogRepository(CatalogRepository):
    """In-memory catalog seeded like the storefront defaults."""

    durations: dict[int, Duration] = field(
        default_factory=lambda: {
            1: Duration(id=1, name="30 minutes", length_in_seconds=1800),
            2: Duration(id=2, name="1 hour", length_in_seconds=3600),
            3: Duration(id=3, name="1 hour 30 minutes", length_in_seconds=5400),
            4: Duration(id=4, name="2 hours", length_in_seconds=7200),
        }
    )
    tables: dict[int, TableNumber] = field(
        default_factory=lambda: {
            1: TableNumber(id=1, label="B2"),
            2: TableNumber(id=2, label="A1"),
            3: TableNumber(id=3, label="A2"),
            4: TableNumber(id=4, label="B1"),
        }
    )
    users: dict[int, UserSnapshot] = field(
        default_factory=lambda: {
            1: UserSnapshot(id=1, display_name="Jane Smith"),
            2: UserSnapshot(id=2, display_name="Alex Wilson", avatar_url="a.png"),
        }
    )

    def list_durations(self) -> list[Duration]:
        return list(self.durations.values())

    def get_duration(self, duration_id: int) -> Duration | None:
        return self.durations.get(duration_id)

    def list_tables(self) -> list[TableNumber]:
        return list(self.tables.values())

    def get_table(self, table_id: int) -> TableNumber | None:
        return self.tables.get(table_id)

    def get_user(self, user_id: int) -> UserSnapshot | None:
        return self.users.get(user_id)


@dataclass
class InMemorySessionRepository(SessionRepository):
    """In-memory session repository for tests."""

    clock: FakeClock = field(default_factory=FakeClock)
    sessions: dict[int, SessionRecord] = field(default_factory=dict)
    writes: list[tuple[int, SessionStatus]] = field(default_factory=list)
    failing_ids: set[int] = field(default_factory=set)
    unavailable: bool = False
    next_id: int = 1

    def create_session(
        self,
        user_id: int,
        duration_id: int,
        table_id: int,
        start_time: datetime,
        end_time: datetime,
    ) -> SessionRecord:
        self._check_available()
        session = SessionRecord(
            id=self.next_id,
            user_id=user_id,
            duration_id=duration_id,
            table_id=table_id,
            start_time=start_time,
            end_time=end_time,
            status=SessionStatus.ACTIVE,
        )
        self.sessions[session.id] = session
        self.next_id += 1
        return session

    def get_session(self, session_id: int) -> SessionRecord | None:
        self._check_available()
        return self.sessions.get(session_id)

    def list_active_sessions(self) -> list[SessionRecord]:
        self._check_available()
        active = [s for s in self.sessions.values() if not s.is_completed]
        return sorted(active, key=lambda s: (s.end_time, s.id))

    def list_completed_sessions(self) -> list[SessionRecord]:
        self._check_available()
        completed = [s for s in self.sessions.values() if s.is_completed]
        return sorted(
            completed,
            key=lambda s: (s.completed_at or s.end_time, s.id),
            reverse=True,
        )

    def update_status(self, session_id: int, status: SessionStatus) -> SessionRecord:
        self._check_available()
        if session_id in self.failing_ids:
            raise StoreUnavailableError(f"write for {session_id} timed out")
        session = self.sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError("Session", session_id)
        if not check_transition(session_id, session.status, status):
            return session
        self.writes.append((session_id, status))
        updated = replace(session, status=status, completed_at=self.clock())
        self.sessions[session_id] = updated
        return updated

    def add(
        self,
        start_time: datetime,
        seconds: int,
        table_id: int = 1,
        user_id: int = 1,
    ) -> SessionRecord:
        """Insert an active session lasting ``seconds`` from ``start_time``."""
        return self.create_session(
            user_id=user_id,
            duration_id=2,
            table_id=table_id,
            start_time=start_time,
            end_time=start_time + timedelta(seconds=seconds),
        )

    def _check_available(self) -> None:
        if self.unavailable:
            raise StoreUnavailableError("store offline")


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="header.payload.signature",
        admin_token="admin-token",
        monitor_enabled=False,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def session_repository(clock: FakeClock) -> InMemorySessionRepository:
    return InMemorySessionRepository(clock=clock)


@pytest.fixture
def catalog_repository() -> InMemoryCatalogRepository:
    return InMemoryCatalogRepository()


@pytest.fixture
def monitor(
    session_repository: InMemorySessionRepository, clock: FakeClock
) -> SessionMonitor:
    return SessionMonitor(repository=session_repository, clock=clock)


@pytest.fixture
def session_service(
    session_repository: InMemorySessionRepository,
    catalog_repository: InMemoryCatalogRepository,
    monitor: SessionMonitor,
) -> SessionService:
    return SessionService(
        repository=session_repository,
        catalog_repository=catalog_repository,
        monitor=monitor,
    )


@pytest.fixture
def container(
    settings: Settings,
    catalog_repository: InMemoryCatalogRepository,
    session_service: SessionService,
    monitor: SessionMonitor,
) -> AppContainer:
    async def close_resources() -> None:
        await monitor.stop()

    return AppContainer(
        settings=settings,
        catalog_service=CatalogService(catalog_repository),
        session_service=session_service,
        session_monitor=monitor,
        close_resources=close_resources,
    )
