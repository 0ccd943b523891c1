"""Shared helpers for Supabase query execution and row parsing."""

from datetime import UTC, datetime

import httpx
from postgrest.exceptions import APIError

from fishing_time.domain.errors import StoreUnavailableError
from fishing_time.domain.sessions import Duration, TableNumber, UserSnapshot


def execute(query):  # type: ignore[no-untyped-def]
    """Run a PostgREST query, mapping transport failures to the store error."""
    try:
        return query.execute()
    except (APIError, httpx.HTTPError) as exc:
        raise StoreUnavailableError(str(exc)) from exc


def parse_timestamp(raw: object) -> datetime | None:
    """Parse an ISO timestamp; naive values are taken as UTC."""
    if not isinstance(raw, str) or not raw:
        return None
    value = datetime.fromisoformat(raw)
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value


def parse_duration(row: dict[str, object]) -> Duration:
    return Duration(
        id=int(row["id"]),
        name=str(row.get("name", "")),
        length_in_seconds=int(row.get("seconds", 0)),
    )


def parse_table(row: dict[str, object]) -> TableNumber:
    return TableNumber(id=int(row["id"]), label=str(row.get("number", "")))


def parse_user(row: dict[str, object]) -> UserSnapshot:
    avatar = row.get("avatar")
    return UserSnapshot(
        id=int(row["id"]),
        display_name=str(row.get("name", "")),
        avatar_url=str(avatar) if avatar else None,
    )
