"""Errors raised by the session lifecycle core."""


class SessionError(Exception):
    """Base class for session lifecycle errors."""


class SessionNotFoundError(SessionError):
    """Raised when a referenced record does not exist in the store."""

    def __init__(self, entity: str, entity_id: int) -> None:
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class InvalidTransitionError(SessionError):
    """Raised when a status change would move a session backwards."""

    def __init__(self, session_id: int, current: str, requested: str) -> None:
        super().__init__(
            f"Session {session_id} cannot move from {current} to {requested}"
        )
        self.session_id = session_id
        self.current = current
        self.requested = requested


class StoreUnavailableError(SessionError):
    """Raised when the session store cannot be reached."""
