"""Supabase-backed session repository."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from fishing_time.adapters.supabase_rows import (
    execute,
    parse_duration,
    parse_table,
    parse_timestamp,
    parse_user,
)
from fishing_time.domain.errors import SessionNotFoundError, StoreUnavailableError
from fishing_time.domain.sessions import (
    SessionRecord,
    SessionStatus,
    check_transition,
)
from fishing_time.services.sessions import SessionRepository

logger = logging.getLogger(__name__)

_TABLE = "user_selected_durations"
_COLUMNS = (
    "id, user_id, duration_id, table_number_id, start_time, end_time, status, "
    "completed_at, durations(id, name, seconds), table_numbers(id, number), "
    "users(id, name, avatar)"
)


@dataclass
class SupabaseSessionRepository(SessionRepository):
    """Supabase implementation for fishing sessions."""

    client: Client

    def create_session(
        self,
        user_id: int,
        duration_id: int,
        table_id: int,
        start_time: datetime,
        end_time: datetime,
    ) -> SessionRecord:
        """Create a session row and return it."""
        response = execute(
            self.client.table(_TABLE).insert(
                {
                    "user_id": user_id,
                    "duration_id": duration_id,
                    "table_number_id": table_id,
                    "start_time": start_time.isoformat(),
                    "end_time": end_time.isoformat(),
                    "status": SessionStatus.ACTIVE.value,
                }
            )
        )
        if not response.data:
            raise StoreUnavailableError("Failed to create session")
        return _parse_row(response.data[0])

    def get_session(self, session_id: int) -> SessionRecord | None:
        """Return a session by id, if present."""
        response = execute(
            self.client.table(_TABLE).select(_COLUMNS).eq("id", session_id).limit(1)
        )
        if not response.data:
            return None
        return _parse_row(response.data[0])

    def list_active_sessions(self) -> list[SessionRecord]:
        """Return active sessions ordered by end time."""
        response = execute(
            self.client.table(_TABLE)
            .select(_COLUMNS)
            .eq("status", SessionStatus.ACTIVE.value)
            .order("end_time", desc=False)
        )
        return _parse_rows(response.data or [])

    def list_completed_sessions(self) -> list[SessionRecord]:
        """Return completed sessions, most recently completed first."""
        response = execute(
            self.client.table(_TABLE)
            .select(_COLUMNS)
            .eq("status", SessionStatus.COMPLETED.value)
            .order("end_time", desc=True)
        )
        sessions = _parse_rows(response.data or [])
        return sorted(sessions, key=_completion_key, reverse=True)

    def update_status(self, session_id: int, status: SessionStatus) -> SessionRecord:
        """Conditionally update the status so concurrent writers converge."""
        current = self.get_session(session_id)
        if current is None:
            raise SessionNotFoundError("Session", session_id)
        if not check_transition(session_id, current.status, status):
            return current

        now = datetime.now(tz=UTC).isoformat()
        payload: dict[str, object] = {"status": status.value, "updated_at": now}
        if status is SessionStatus.COMPLETED:
            payload["completed_at"] = now
        response = execute(
            self.client.table(_TABLE)
            .update(payload)
            .eq("id", session_id)
            .eq("status", current.status.value)
        )
        latest = self.get_session(session_id)
        if latest is None:
            raise SessionNotFoundError("Session", session_id)
        if not response.data:
            # Lost the race: accept the other writer's result if it matches.
            check_transition(session_id, latest.status, status)
            if latest.status is not status:
                raise StoreUnavailableError(
                    f"Status update for session {session_id} was not applied"
                )
        return latest


def _parse_rows(rows: list[dict[str, object]]) -> list[SessionRecord]:
    sessions = []
    for row in rows:
        try:
            sessions.append(_parse_row(row))
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning(
                "Skipping malformed session row %s: %s", row.get("id"), exc
            )
    return sessions


def _completion_key(session: SessionRecord) -> datetime:
    return session.completed_at or session.end_time


def _parse_row(row: dict[str, object]) -> SessionRecord:
    start_time = parse_timestamp(row.get("start_time"))
    end_time = parse_timestamp(row.get("end_time"))
    if start_time is None or end_time is None:
        raise ValueError(f"Session row {row.get('id')} has no timestamps")
    duration = row.get("durations")
    table = row.get("table_numbers")
    user = row.get("users")
    return SessionRecord(
        id=int(row["id"]),
        user_id=int(row["user_id"]),
        duration_id=int(row["duration_id"]),
        table_id=int(row["table_number_id"]),
        start_time=start_time,
        end_time=max(end_time, start_time),
        status=SessionStatus(row.get("status", SessionStatus.ACTIVE.value)),
        completed_at=parse_timestamp(row.get("completed_at")),
        duration=parse_duration(duration) if isinstance(duration, dict) else None,
        table=parse_table(table) if isinstance(table, dict) else None,
        user=parse_user(user) if isinstance(user, dict) else None,
    )


