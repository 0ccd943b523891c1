"""Query service for fishing sessions."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Protocol

from fishing_time.domain.errors import SessionNotFoundError, StoreUnavailableError
from fishing_time.domain.sessions import (
    SessionRecord,
    SessionState,
    SessionStatus,
    compute_end_time,
)
from fishing_time.services.catalog import CatalogRepository
from fishing_time.services.stats import SessionSummary, summarize
from fishing_time.services.timing import (
    CRITICAL_THRESHOLD_SECONDS,
    classify_session,
    session_remaining,
)

if TYPE_CHECKING:
    from fishing_time.services.monitor import SessionMonitor

logger = logging.getLogger(__name__)


class SessionRepository(Protocol):
    """Persistence interface for fishing sessions."""

    def create_session(
        self,
        user_id: int,
        duration_id: int,
        table_id: int,
        start_time: datetime,
        end_time: datetime,
    ) -> SessionRecord:
        """Create an active session and return it."""

    def get_session(self, session_id: int) -> SessionRecord | None:
        """Return a session by id, if present."""

    def list_active_sessions(self) -> list[SessionRecord]:
        """Return sessions whose persisted status is active."""

    def list_completed_sessions(self) -> list[SessionRecord]:
        """Return completed sessions, most recently completed first."""

    def update_status(self, session_id: int, status: SessionStatus) -> SessionRecord:
        """Set a session status and return the stored session.

        Repeating the current status succeeds without writing. Raises
        ``SessionNotFoundError`` for unknown ids and ``InvalidTransitionError``
        when a completed session would become active again.
        """


class SessionFilter(str, Enum):
    """Client-side selection over a session set."""

    ALL = "all"
    ACTIVE = "active"
    COMPLETED = "completed"
    CRITICAL = "critical"
    NORMAL = "normal"


def filter_sessions(
    sessions: Iterable[SessionRecord],
    criterion: SessionFilter,
    now: datetime,
    critical_threshold: int = CRITICAL_THRESHOLD_SECONDS,
) -> list[SessionRecord]:
    """Select sessions by derived state without touching the store."""
    selected = []
    for session in sessions:
        state = classify_session(session, now, critical_threshold)
        if criterion is SessionFilter.ALL:
            keep = True
        elif criterion is SessionFilter.ACTIVE:
            keep = state is not SessionState.COMPLETED
        elif criterion is SessionFilter.COMPLETED:
            keep = state is SessionState.COMPLETED
        elif criterion is SessionFilter.CRITICAL:
            keep = state is SessionState.CRITICAL
        else:
            keep = state is SessionState.ACTIVE
        if keep:
            selected.append(session)
    return selected


def sort_by_remaining(
    sessions: Iterable[SessionRecord], now: datetime
) -> list[SessionRecord]:
    """Order sessions so the ones closest to expiry come first."""
    return sorted(sessions, key=lambda s: (session_remaining(s, now), s.id))


@dataclass
class SessionService:
    """Boundary operations over the monitor's working sets and the store."""

    repository: SessionRepository
    catalog_repository: CatalogRepository
    monitor: SessionMonitor
    critical_threshold_seconds: int = CRITICAL_THRESHOLD_SECONDS

    def now(self) -> datetime:
        return self.monitor.clock()

    def list_active(self) -> list[SessionRecord]:
        """Return sessions not yet reconciled as completed."""
        return self.monitor.active_sessions()

    def list_completed(self) -> list[SessionRecord]:
        """Return completed sessions, newest first."""
        return self.monitor.completed_sessions()

    def refresh(self) -> tuple[list[SessionRecord], list[SessionRecord]]:
        """Re-fetch both sets from the store and return them."""
        self.monitor.refresh()
        return self.list_active(), self.list_completed()

    def set_status(self, session_id: int, status: SessionStatus) -> SessionRecord:
        """Apply a manual status change.

        Store errors propagate to the caller. A failed follow-up refresh is
        only logged because the write itself already succeeded.
        """
        updated = self.repository.update_status(session_id, status)
        logger.info("Session %s manually set to %s", session_id, status.value)
        self._resync()
        return updated

    def create_session(
        self,
        user_id: int,
        duration_id: int,
        table_id: int,
        start_time: datetime | None = None,
    ) -> SessionRecord:
        """Start a session for a purchased duration at a table."""
        duration = self.catalog_repository.get_duration(duration_id)
        if duration is None:
            raise SessionNotFoundError("Duration", duration_id)
        if self.catalog_repository.get_table(table_id) is None:
            raise SessionNotFoundError("Table", table_id)
        if self.catalog_repository.get_user(user_id) is None:
            raise SessionNotFoundError("User", user_id)
        start = start_time or self.now()
        session = self.repository.create_session(
            user_id=user_id,
            duration_id=duration_id,
            table_id=table_id,
            start_time=start,
            end_time=compute_end_time(start, duration),
        )
        logger.info(
            "Session %s started on table %s for %ss",
            session.id,
            table_id,
            duration.length_in_seconds,
        )
        self._resync()
        return session

    def filter(
        self,
        sessions: Iterable[SessionRecord],
        criterion: SessionFilter,
        now: datetime | None = None,
    ) -> list[SessionRecord]:
        """Filter a caller-held session set."""
        return filter_sessions(
            sessions, criterion, now or self.now(), self.critical_threshold_seconds
        )

    def summary(self, now: datetime | None = None) -> SessionSummary:
        """Return counts over the current working sets."""
        return summarize(
            self.list_active(),
            self.list_completed(),
            now or self.now(),
            self.critical_threshold_seconds,
        )

    def _resync(self) -> None:
        try:
            self.monitor.refresh()
        except StoreUnavailableError as exc:
            logger.warning("Session refresh after manual change failed: %s", exc)
