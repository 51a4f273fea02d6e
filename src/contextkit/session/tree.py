"""
In-memory session tree.

Entries form a tree via ``parent_id`` pointers rooted at a single
:class:`SessionHeader`. The *leaf* pointer tracks the current position:
appending creates a child of the leaf, branching moves the leaf to any
existing entry so the next append starts a sibling branch. History is the
linear walk from the leaf back to the root.

Single writer per tree instance; nothing here locks.
"""

from __future__ import annotations

from typing import Callable, Iterable, Mapping, cast

from contextkit.errors import EntryNotFoundError
from contextkit.session.models import (
    VALID_ROLES,
    MessageEntry,
    SessionEntry,
    SessionHeader,
    new_id,
    now_ms,
)


def walk_to_root(
    entries: Mapping[str, SessionEntry],
    leaf_id: str | None,
) -> list[SessionEntry]:
    """
    Walk from ``leaf_id`` to the root, following ``parent_id`` links.

    Returns a list ordered from **leaf to root**. The walk stops early at a
    dangling parent link or a cycle, returning whatever was reachable.
    """
    path: list[SessionEntry] = []
    visited: set[str] = set()
    current_id = leaf_id

    while current_id is not None:
        if current_id in visited:
            break
        visited.add(current_id)

        entry = entries.get(current_id)
        if entry is None:
            break
        path.append(entry)
        current_id = entry.parent_id

    return path


def find_entry(entries: Iterable[SessionEntry], entry_id: str) -> SessionEntry | None:
    """Find an entry by id, or return ``None`` if not found."""
    for entry in entries:
        if entry.id == entry_id:
            return entry
    return None


class SessionTree:
    """
    Tree of conversation entries with a movable leaf.

    Example:
        tree = SessionTree(cwd="/work/project")
        u1 = tree.append_message("user", "hi")
        tree.append_message("assistant", "hello")
        tree.branch(tree.root_id)
        tree.append_message("user", "bye")  # sibling of u1
    """

    def __init__(
        self,
        cwd: str = "/home/user/project",
        *,
        id_factory: Callable[[], str] = new_id,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._id_factory = id_factory
        self._clock = clock
        self._cwd = cwd
        self._entries: dict[str, SessionEntry] = {}
        self._reset_root(cwd)

    def _reset_root(self, cwd: str) -> None:
        header = SessionHeader(id=self._id_factory(), created_at=self._clock(), cwd=cwd)
        self._entries = {header.id: header}
        self._root_id = header.id
        self._leaf_id = header.id

    @classmethod
    def from_entries(
        cls,
        entries: Iterable[SessionEntry],
        *,
        id_factory: Callable[[], str] = new_id,
        clock: Callable[[], int] = now_ms,
    ) -> SessionTree:
        """
        Rebuild a tree from stored entries.

        The root is the header; the leaf is the last entry in stored order,
        which is the most recently appended one. Raises :class:`ValueError`
        when no header is present.
        """
        tree = cls.__new__(cls)
        tree._id_factory = id_factory
        tree._clock = clock
        tree._entries = {}
        root_id: str | None = None
        last_id: str | None = None
        for entry in entries:
            tree._entries[entry.id] = entry
            if isinstance(entry, SessionHeader) and root_id is None:
                root_id = entry.id
            last_id = entry.id

        if root_id is None:
            raise ValueError("Cannot rebuild a session tree without a header")

        header = cast(SessionHeader, tree._entries[root_id])
        tree._cwd = header.cwd
        tree._root_id = root_id
        tree._leaf_id = last_id or root_id
        return tree

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def root_id(self) -> str:
        return self._root_id

    @property
    def leaf_id(self) -> str:
        return self._leaf_id

    @property
    def header(self) -> SessionHeader:
        return cast(SessionHeader, self._entries[self._root_id])

    def __len__(self) -> int:
        return len(self._entries)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def append_message(self, role: str, content: str) -> str:
        """Append a message as a child of the current leaf and advance the leaf."""
        if role not in VALID_ROLES:
            raise ValueError(f"Invalid message role: {role!r}")
        entry = MessageEntry(
            id=self._id_factory(),
            parent_id=self._leaf_id,
            role=role,
            content=content,
            created_at=self._clock(),
        )
        self._entries[entry.id] = entry
        self._leaf_id = entry.id
        return entry.id

    def branch(self, entry_id: str) -> None:
        """Move the leaf to an existing entry. No entries are created."""
        if entry_id not in self._entries:
            raise EntryNotFoundError(entry_id)
        self._leaf_id = entry_id

    def clear(self) -> None:
        """Discard every entry and start over with a fresh header."""
        self._reset_root(self._cwd)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_history(self) -> list[SessionEntry]:
        """Linear history from the root to the current leaf, header first."""
        path = walk_to_root(self._entries, self._leaf_id)
        path.reverse()
        return path

    def get_messages(self) -> list[MessageEntry]:
        """History without the header."""
        return [e for e in self.get_history() if isinstance(e, MessageEntry)]

    def get_tree(self) -> dict[str, SessionEntry]:
        """Copy of the id -> entry map, including every branch."""
        return dict(self._entries)

    def get_entry(self, entry_id: str) -> SessionEntry | None:
        return self._entries.get(entry_id)

    def has_entry(self, entry_id: str) -> bool:
        return entry_id in self._entries

    def get_all_entries(self) -> list[SessionEntry]:
        """All entries in creation order."""
        return list(self._entries.values())

    def get_children(self, entry_id: str) -> list[SessionEntry]:
        """Direct children of ``entry_id`` in creation order."""
        return [e for e in self._entries.values() if e.parent_id == entry_id]

    def get_branches(self) -> list[list[SessionEntry]]:
        """
        Every root-to-tip path in the tree.

        A tip is an entry without children. Paths are returned in the
        creation order of their tips.
        """
        parents = {e.parent_id for e in self._entries.values() if e.parent_id is not None}
        branches: list[list[SessionEntry]] = []
        for entry_id in self._entries:
            if entry_id in parents:
                continue
            path = walk_to_root(self._entries, entry_id)
            path.reverse()
            branches.append(path)
        return branches
