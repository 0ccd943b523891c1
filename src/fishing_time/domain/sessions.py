"""Domain models for fishing sessions."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from fishing_time.domain.errors import InvalidTransitionError


class SessionStatus(str, Enum):
    """Persisted session status."""

    ACTIVE = "active"
    COMPLETED = "completed"


class SessionState(str, Enum):
    """Display state derived from remaining time, never persisted."""

    ACTIVE = "active"
    CRITICAL = "critical"
    COMPLETED = "completed"


@dataclass(frozen=True)
class Duration:
    """A purchasable block of fishing time."""

    id: int
    name: str
    length_in_seconds: int


@dataclass(frozen=True)
class TableNumber:
    """A fishing station."""

    id: int
    label: str


@dataclass(frozen=True)
class UserSnapshot:
    """Who holds a session."""

    id: int
    display_name: str
    avatar_url: str | None = None


@dataclass(frozen=True)
class SessionRecord:
    """Represents a persisted fishing session."""

    id: int
    user_id: int
    duration_id: int
    table_id: int
    start_time: datetime
    end_time: datetime
    status: SessionStatus
    completed_at: datetime | None = None
    duration: Duration | None = None
    table: TableNumber | None = None
    user: UserSnapshot | None = None

    @property
    def is_completed(self) -> bool:
        return self.status is SessionStatus.COMPLETED


def compute_end_time(start_time: datetime, duration: Duration) -> datetime:
    """Return the fixed end of a session started at ``start_time``."""
    return start_time + timedelta(seconds=max(duration.length_in_seconds, 0))


def check_transition(
    session_id: int, current: SessionStatus, requested: SessionStatus
) -> bool:
    """Validate a status change and report whether it changes anything.

    Repeating the current status is an idempotent no-op. Moving a completed
    session back to active raises ``InvalidTransitionError``.
    """
    if current is requested:
        return False
    if current is SessionStatus.COMPLETED:
        raise InvalidTransitionError(session_id, current.value, requested.value)
    return True
