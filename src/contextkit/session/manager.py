"""
SessionManager - session trees backed by a persistence collaborator.

Trees are cached in-process once loaded. Appends are persisted immediately;
branching only moves the in-memory leaf and is not written. Callers must
serialize operations on the same session id.
"""

from __future__ import annotations

from typing import Any

from contextkit.errors import SessionNotFoundError
from contextkit.logging import get_logger
from contextkit.session.models import SessionEntry, from_record, to_record
from contextkit.session.store import InMemorySessionStore, SessionStore
from contextkit.session.tree import SessionTree

logger = get_logger("session.manager")


class SessionManager:
    """
    Owns the active-tree registry for one orchestrator.

    Example:
        manager = SessionManager(JsonlSessionStore("~/.contextkit/sessions"))
        session_id = await manager.create_session("/work/project")
        await manager.append_message(session_id, "user", "hi")
        history = await manager.get_history(session_id)
    """

    def __init__(self, store: SessionStore | None = None) -> None:
        self.store: SessionStore = store if store is not None else InMemorySessionStore()
        self._active_trees: dict[str, SessionTree] = {}

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def create_session(self, cwd: str = "/home/user/project") -> str:
        """Create and persist a new session. The session id is the header id."""
        tree = SessionTree(cwd)
        session_id = tree.root_id
        self._active_trees[session_id] = tree
        await self.persist_tree(session_id)
        logger.info("Created session %s (cwd=%s)", session_id, cwd)
        return session_id

    async def load_session(self, session_id: str) -> SessionTree:
        """Return the cached tree, loading it from the store on first use."""
        tree = self._active_trees.get(session_id)
        if tree is not None:
            return tree

        records = await self.store.load_tree(session_id)
        entries: list[SessionEntry] = []
        for record in records:
            try:
                entries.append(from_record(record))
            except ValueError as exc:
                logger.warning("Dropping invalid record in session %s: %s", session_id, exc)
        if not entries:
            raise SessionNotFoundError(session_id)

        try:
            tree = SessionTree.from_entries(entries)
        except ValueError as exc:
            raise SessionNotFoundError(session_id) from exc

        self._active_trees[session_id] = tree
        logger.info("Loaded session %s with %d entries", session_id, len(tree))
        return tree

    async def delete_session(self, session_id: str) -> bool:
        self._active_trees.pop(session_id, None)
        return await self.store.delete_tree(session_id)

    def evict(self, session_id: str) -> None:
        """Drop the cached tree; the next access reloads it from the store."""
        self._active_trees.pop(session_id, None)

    def active_sessions(self) -> list[str]:
        return list(self._active_trees)

    # ------------------------------------------------------------------
    # Tree operations
    # ------------------------------------------------------------------

    async def append_message(self, session_id: str, role: str, content: str) -> str:
        tree = await self.load_session(session_id)
        entry_id = tree.append_message(role, content)
        await self.persist_tree(session_id)
        return entry_id

    async def branch(self, session_id: str, entry_id: str) -> None:
        tree = await self.load_session(session_id)
        tree.branch(entry_id)

    async def get_history(self, session_id: str) -> list[SessionEntry]:
        tree = await self.load_session(session_id)
        return tree.get_history()

    async def get_tree(self, session_id: str) -> SessionTree:
        return await self.load_session(session_id)

    async def persist_tree(self, session_id: str) -> None:
        tree = self._active_trees.get(session_id)
        if tree is None:
            return
        records: list[dict[str, Any]] = [to_record(e) for e in tree.get_all_entries()]
        await self.store.save_tree(session_id, records)
