"""
Session persistence.

Stores exchange plain records (see :func:`contextkit.session.models.to_record`)
so any backend can hold them. Two backends ship with the package: an
in-memory store and a JSONL store where each session is one file whose first
line is the header and subsequent lines are message entries.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Protocol

from contextkit.errors import SessionNotFoundError
from contextkit.logging import get_logger

logger = get_logger("session.store")

# Base directory under the user's home for all session data.
_SESSIONS_BASE = Path.home() / ".contextkit" / "sessions"


class SessionStore(Protocol):
    """Persistence collaborator for session trees."""

    async def load_tree(self, session_id: str) -> list[dict[str, Any]]:
        """Return the stored records in order, or raise SessionNotFoundError."""
        ...

    async def save_tree(self, session_id: str, entries: list[dict[str, Any]]) -> None: ...

    async def delete_tree(self, session_id: str) -> bool: ...

    async def list_sessions(self) -> list[str]: ...


class InMemorySessionStore:
    """Process-local store, mostly useful for tests and ephemeral agents."""

    def __init__(self) -> None:
        self._trees: dict[str, list[dict[str, Any]]] = {}

    async def load_tree(self, session_id: str) -> list[dict[str, Any]]:
        records = self._trees.get(session_id)
        if not records:
            raise SessionNotFoundError(session_id)
        return [dict(r) for r in records]

    async def save_tree(self, session_id: str, entries: list[dict[str, Any]]) -> None:
        self._trees[session_id] = [dict(r) for r in entries]

    async def delete_tree(self, session_id: str) -> bool:
        return self._trees.pop(session_id, None) is not None

    async def list_sessions(self) -> list[str]:
        return list(self._trees)


# ---------------------------------------------------------------------------
# JSONL store
# ---------------------------------------------------------------------------


def _serialize_record(record: dict[str, Any]) -> str:
    return json.dumps(record, separators=(",", ":"))


def _read_records(path: Path) -> list[dict[str, Any]]:
    """
    Read all records from the JSONL file at *path*.

    Malformed lines are skipped.
    """
    records: list[dict[str, Any]] = []
    with path.open("rb") as fh:
        for lineno, raw in enumerate(fh, start=1):
            try:
                stripped = raw.decode("utf-8").strip()
                if not stripped:
                    continue
                obj = json.loads(stripped)
            except (UnicodeDecodeError, json.JSONDecodeError):
                logger.warning("Skipping malformed line %d in %s", lineno, path)
                continue
            if isinstance(obj, dict) and obj.get("id"):
                records.append(obj)
    return records


class JsonlSessionStore:
    """
    One ``<session_id>.jsonl`` file per session under ``base_dir``.

    Saves rewrite the whole file through a temporary file so a crash mid-write
    leaves the previous version in place.
    """

    def __init__(self, base_dir: str | Path | None = None) -> None:
        self.base_dir = Path(base_dir) if base_dir is not None else _SESSIONS_BASE
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, session_id: str) -> Path:
        if not session_id or "/" in session_id or session_id.startswith("."):
            raise ValueError(f"Invalid session id: {session_id!r}")
        return self.base_dir / f"{session_id}.jsonl"

    async def load_tree(self, session_id: str) -> list[dict[str, Any]]:
        path = self.path_for(session_id)
        if not path.exists():
            raise SessionNotFoundError(session_id)
        records = _read_records(path)
        if not records:
            raise SessionNotFoundError(session_id)
        return records

    async def save_tree(self, session_id: str, entries: list[dict[str, Any]]) -> None:
        path = self.path_for(session_id)
        tmp_path = path.with_suffix(".jsonl.tmp")
        try:
            with tmp_path.open("w", encoding="utf-8") as fh:
                for record in entries:
                    fh.write(_serialize_record(record) + "\n")
            os.replace(tmp_path, path)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise
        logger.debug("Saved %d entries for session %s", len(entries), session_id)

    async def delete_tree(self, session_id: str) -> bool:
        path = self.path_for(session_id)
        if not path.exists():
            return False
        path.unlink()
        return True

    async def list_sessions(self) -> list[str]:
        """Session ids ordered by file modification time, most recent first."""
        files = sorted(
            self.base_dir.glob("*.jsonl"),
            key=lambda p: p.stat().st_mtime,
            reverse=True,
        )
        return [f.stem for f in files]
