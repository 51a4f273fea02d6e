"""
Session management module.

Tree-structured conversation storage with branching, plus pluggable
persistence for the trees.
"""

from contextkit.session.manager import SessionManager
from contextkit.session.models import (
    MessageEntry,
    MessageRole,
    SessionEntry,
    SessionHeader,
    from_record,
    is_header,
    is_message,
    to_record,
)
from contextkit.session.store import (
    InMemorySessionStore,
    JsonlSessionStore,
    SessionStore,
)
from contextkit.session.tree import SessionTree, find_entry, walk_to_root

__all__ = [
    # Manager
    "SessionManager",
    # Models
    "MessageEntry",
    "MessageRole",
    "SessionEntry",
    "SessionHeader",
    "from_record",
    "is_header",
    "is_message",
    "to_record",
    # Store
    "InMemorySessionStore",
    "JsonlSessionStore",
    "SessionStore",
    # Tree
    "SessionTree",
    "find_entry",
    "walk_to_root",
]
