"""Session data models."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Literal

MessageRole = Literal["user", "assistant", "system"]

VALID_ROLES: frozenset[str] = frozenset({"user", "assistant", "system"})


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def new_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class SessionHeader:
    """Root of a session tree. Exactly one per tree, never mutated."""

    id: str = field(default_factory=new_id)
    created_at: int = field(default_factory=now_ms)
    cwd: str = ""

    @property
    def parent_id(self) -> None:
        return None


@dataclass(frozen=True)
class MessageEntry:
    """A single conversation turn, parented at another entry of the same tree."""

    parent_id: str
    role: str
    content: str
    id: str = field(default_factory=new_id)
    created_at: int = field(default_factory=now_ms)


# Union of everything that can live in a session tree
SessionEntry = SessionHeader | MessageEntry


def is_header(entry: object) -> bool:
    return isinstance(entry, SessionHeader)


def is_message(entry: object) -> bool:
    return isinstance(entry, MessageEntry)


# ---------------------------------------------------------------------------
# Persisted record shape
# ---------------------------------------------------------------------------


def to_record(entry: SessionEntry) -> dict[str, Any]:
    """
    Convert an entry to the record shape exchanged with session stores.

    Headers carry ``cwd`` and no ``role``/``content``; messages carry both.
    """
    if isinstance(entry, SessionHeader):
        return {
            "id": entry.id,
            "parent_id": None,
            "created_at": entry.created_at,
            "cwd": entry.cwd,
        }
    return {
        "id": entry.id,
        "parent_id": entry.parent_id,
        "role": entry.role,
        "content": entry.content,
        "created_at": entry.created_at,
    }


def from_record(data: dict[str, Any]) -> SessionEntry:
    """
    Parse a persisted record back into a typed entry.

    Raises :class:`ValueError` when the record has no ``id`` or a message
    record has no parent or an unknown role.
    """
    entry_id = data.get("id")
    if not entry_id:
        raise ValueError("Missing 'id' field in session record")

    created_at = int(data.get("created_at") or 0)
    if data.get("role") is None and data.get("content") is None:
        return SessionHeader(id=entry_id, created_at=created_at, cwd=data.get("cwd") or "")

    parent_id = data.get("parent_id")
    if not parent_id:
        raise ValueError(f"Message record {entry_id!r} has no parent_id")
    role = data.get("role")
    if role not in VALID_ROLES:
        raise ValueError(f"Message record {entry_id!r} has invalid role {role!r}")
    return MessageEntry(
        id=entry_id,
        parent_id=parent_id,
        role=role,
        content=data.get("content") or "",
        created_at=created_at,
    )
