"""Errors raised by the strike engine."""


class StrikeCoachError(Exception):
    """Base class for recoverable strike engine errors."""


class SessionNotFound(StrikeCoachError):
    """An operation targeted a session id that is not registered."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session not found: {session_id}")


class SessionClosed(StrikeCoachError):
    """An ended session was asked to accept more data."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session already ended: {session_id}")
