"""Exception types raised by contextkit."""

from __future__ import annotations


class ContextKitError(Exception):
    """Base class for all contextkit errors."""


class NotFoundError(ContextKitError, LookupError):
    """A session or entry that the caller referenced does not exist."""


class SessionNotFoundError(NotFoundError):
    """Raised when a session id is unknown to the store."""

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__(f"Session {session_id} not found")


class EntryNotFoundError(NotFoundError):
    """Raised when a branch target is not part of the session tree."""

    def __init__(self, entry_id: str) -> None:
        self.entry_id = entry_id
        super().__init__(f"Entry {entry_id} not found in session tree")
