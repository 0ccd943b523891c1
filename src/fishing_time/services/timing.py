"""Remaining-time calculation and session classification."""

import math
from datetime import datetime

from fishing_time.domain.sessions import SessionRecord, SessionState, SessionStatus

CRITICAL_THRESHOLD_SECONDS = 600
PROGRESS_WINDOW_MINUTES = 60


def remaining_seconds(now: datetime, end_time: datetime) -> int:
    """Return whole seconds left until ``end_time``, never negative."""
    return max(0, math.floor((end_time - now).total_seconds()))


def session_remaining(session: SessionRecord, now: datetime) -> int:
    """Return remaining seconds for a session.

    A clock reading before the session start counts as the start, so the
    result never exceeds the purchased duration.
    """
    return remaining_seconds(max(now, session.start_time), session.end_time)


def classify(
    remaining: int,
    status: SessionStatus,
    critical_threshold: int = CRITICAL_THRESHOLD_SECONDS,
) -> SessionState:
    """Derive the display state of a session."""
    if status is SessionStatus.COMPLETED or remaining <= 0:
        return SessionState.COMPLETED
    if remaining <= critical_threshold:
        return SessionState.CRITICAL
    return SessionState.ACTIVE


def classify_session(
    session: SessionRecord,
    now: datetime,
    critical_threshold: int = CRITICAL_THRESHOLD_SECONDS,
) -> SessionState:
    """Classify a session against the given clock reading."""
    return classify(
        session_remaining(session, now), session.status, critical_threshold
    )


def format_remaining(remaining: int) -> str:
    """Format remaining seconds as MM:SS."""
    if remaining <= 0:
        return "00:00"
    minutes, seconds = divmod(remaining, 60)
    return f"{minutes:02d}:{seconds:02d}"


def progress_percent(remaining: int) -> float:
    """Return the countdown bar fill, capped at one hour of remaining time."""
    minutes = max(remaining, 0) // 60
    return min(100.0, minutes / PROGRESS_WINDOW_MINUTES * 100)
