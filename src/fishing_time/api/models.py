"""Pydantic models for session request payloads."""

from datetime import UTC, datetime

from pydantic import BaseModel, field_validator

from fishing_time.domain.sessions import SessionStatus


class SessionStatusUpdate(BaseModel):
    """Manual status change payload."""

    status: SessionStatus


class SessionCreate(BaseModel):
    """Payload for starting a session at a table."""

    user_id: int
    duration_id: int
    table_number_id: int
    start_time: datetime | None = None

    @field_validator("start_time")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value
