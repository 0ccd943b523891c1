"""Summary counts over the current session sets."""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from fishing_time.domain.sessions import SessionRecord, SessionState
from fishing_time.services.timing import CRITICAL_THRESHOLD_SECONDS, classify_session


@dataclass(frozen=True)
class SessionSummary:
    """Aggregated session counts."""

    total: int
    active: int
    completed: int
    critical: int


def summarize(
    active_sessions: Iterable[SessionRecord],
    completed_sessions: Iterable[SessionRecord],
    now: datetime,
    critical_threshold: int = CRITICAL_THRESHOLD_SECONDS,
) -> SessionSummary:
    """Compute counts from the given sets; holds no state of its own."""
    active = list(active_sessions)
    completed_count = sum(1 for _ in completed_sessions)
    critical = sum(
        1
        for session in active
        if classify_session(session, now, critical_threshold) is SessionState.CRITICAL
    )
    return SessionSummary(
        total=len(active) + completed_count,
        active=len(active),
        completed=completed_count,
        critical=critical,
    )
