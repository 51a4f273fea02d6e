"""
Tool catalogs.

The analyzer only needs ``get_all_tools()``. Two implementations ship here:
an in-memory :class:`ToolRegistry` populated programmatically, and a
:class:`DirectoryToolCatalog` that reads YAML tool manifests from disk and
can watch them for changes.

Manifest format (one tool per file, or a ``tools:`` list):

    name: git
    description: Inspect and modify git repositories
    functions:
      - name: commit
        description: Record staged changes
    permissions: [fs]
"""

from __future__ import annotations

import asyncio
import re
from pathlib import Path
from typing import Any, Callable, Protocol

import yaml
from watchfiles import awatch

from contextkit.logging import get_logger
from contextkit.tools.models import ToolCapability

logger = get_logger("tools.catalog")

TOOL_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]{1,50}$")

MANIFEST_SUFFIXES = (".yaml", ".yml")


class ToolCatalog(Protocol):
    """Source of tool capabilities."""

    async def get_all_tools(self) -> list[ToolCapability]: ...


def validate_tool(tool: ToolCapability) -> None:
    """Raise :class:`ValueError` if *tool* cannot be registered."""
    if not TOOL_NAME_PATTERN.match(tool.name):
        raise ValueError(f"Invalid tool name: {tool.name!r}")
    for func in tool.functions:
        if not func.name:
            raise ValueError(f"Tool {tool.name!r} declares a function without a name")


class ToolRegistry:
    """In-memory tool catalog. Iteration order is registration order."""

    def __init__(self, tools: list[ToolCapability] | None = None) -> None:
        self._tools: dict[str, ToolCapability] = {}
        for tool in tools or []:
            self.register(tool)

    def register(self, tool: ToolCapability) -> None:
        validate_tool(tool)
        if tool.name in self._tools:
            raise ValueError(f"Tool {tool.name} already exists")
        self._tools[tool.name] = tool

    def unregister(self, name: str) -> bool:
        return self._tools.pop(name, None) is not None

    def get(self, name: str) -> ToolCapability | None:
        return self._tools.get(name)

    def has(self, name: str) -> bool:
        return name in self._tools

    def list_tools(self) -> list[ToolCapability]:
        return list(self._tools.values())

    async def get_all_tools(self) -> list[ToolCapability]:
        return self.list_tools()


# ---------------------------------------------------------------------------
# YAML manifests
# ---------------------------------------------------------------------------


def parse_manifest(content: str) -> list[ToolCapability]:
    """Parse a YAML manifest into capabilities."""
    data = yaml.safe_load(content)
    if data is None:
        return []
    items: list[Any]
    if isinstance(data, dict) and "tools" in data:
        items = data.get("tools") or []
    elif isinstance(data, list):
        items = data
    else:
        items = [data]

    tools: list[ToolCapability] = []
    for item in items:
        if not isinstance(item, dict):
            raise ValueError("Tool manifest entries must be mappings")
        tools.append(ToolCapability.from_dict(item))
    return tools


def load_manifest(path: Path) -> list[ToolCapability]:
    """Load capabilities from the manifest at *path*."""
    return parse_manifest(path.read_text(encoding="utf-8"))


class DirectoryToolCatalog:
    """
    Tools loaded from ``*.yaml`` / ``*.yml`` manifests in one or more directories.

    Manifests are read lazily on first access and cached until a reload.
    Invalid manifests are logged and skipped; duplicate names keep the
    first definition seen (directories in order, files sorted by name).
    """

    def __init__(self, dirs: list[Path], watch_debounce_ms: int = 250) -> None:
        self.dirs = [Path(d).expanduser() for d in dirs]
        self.watch_debounce_ms = watch_debounce_ms
        self._registry: ToolRegistry | None = None
        self._watch_task: asyncio.Task[None] | None = None
        self._watch_stop_event: asyncio.Event | None = None
        self._watch_callbacks: list[Callable[[set[Path]], None]] = []

    def _manifest_paths(self) -> list[Path]:
        paths: list[Path] = []
        for directory in self.dirs:
            if not directory.is_dir():
                continue
            paths.extend(
                sorted(p for p in directory.iterdir() if p.is_file() and p.suffix in MANIFEST_SUFFIXES)
            )
        return paths

    def load(self) -> ToolRegistry:
        """(Re)read every manifest and return the resulting registry."""
        registry = ToolRegistry()
        for path in self._manifest_paths():
            try:
                tools = load_manifest(path)
            except (OSError, yaml.YAMLError, ValueError) as exc:
                logger.warning("Skipping tool manifest %s: %s", path, exc)
                continue
            for tool in tools:
                if registry.has(tool.name):
                    logger.warning("Duplicate tool %r in %s ignored", tool.name, path)
                    continue
                try:
                    registry.register(tool)
                except ValueError as exc:
                    logger.warning("Skipping tool in %s: %s", path, exc)
        self._registry = registry
        logger.debug("Loaded %d tools from %d directories", len(registry.list_tools()), len(self.dirs))
        return registry

    def invalidate_cache(self) -> None:
        self._registry = None

    async def get_all_tools(self) -> list[ToolCapability]:
        registry = self._registry if self._registry is not None else self.load()
        return registry.list_tools()

    # File watching

    async def start_watching(self, callback: Callable[[set[Path]], None] | None = None) -> None:
        """Watch the manifest directories and invalidate the cache on change."""
        if self._watch_task is not None:
            return

        if callback:
            self._watch_callbacks.append(callback)

        self._watch_stop_event = asyncio.Event()
        self._watch_task = asyncio.create_task(self._watch_loop())

    async def stop_watching(self) -> None:
        if self._watch_task is None:
            return

        if self._watch_stop_event:
            self._watch_stop_event.set()

        self._watch_task.cancel()
        try:
            await self._watch_task
        except asyncio.CancelledError:
            pass

        self._watch_task = None
        self._watch_stop_event = None

    @property
    def is_watching(self) -> bool:
        return self._watch_task is not None and not self._watch_task.done()

    async def _watch_loop(self) -> None:
        watch_paths = [str(d) for d in self.dirs if d.exists()]
        if not watch_paths:
            return

        try:
            async for changes in awatch(
                *watch_paths,
                debounce=self.watch_debounce_ms,
                stop_event=self._watch_stop_event,
            ):
                manifest_changes = {
                    Path(path_str) for _, path_str in changes if Path(path_str).suffix in MANIFEST_SUFFIXES
                }
                if not manifest_changes:
                    continue

                self.invalidate_cache()
                for callback in self._watch_callbacks:
                    try:
                        callback(manifest_changes)
                    except Exception:
                        logger.exception("Tool watch callback failed")
        except asyncio.CancelledError:
            pass
