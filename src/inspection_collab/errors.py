"""Errors raised by the collaboration protocol."""


class CollaborationError(Exception):
    """Base error for collaboration failures."""


class SessionNotFoundError(CollaborationError):
    """The referenced session does not exist."""

    def __init__(self, session_id: str | None) -> None:
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class InvalidRequestError(CollaborationError):
    """The request names an unknown action or misses a required field."""


class StorageError(CollaborationError):
    """Session storage is unavailable or returned a corrupt payload."""


class CollaborationRequestError(CollaborationError):
    """The collaboration endpoint answered with a failure."""

    def __init__(self, status_code: int, error: str | None) -> None:
        super().__init__(f"Collaboration request failed ({status_code}): {error}")
        self.status_code = status_code
        self.error = error
