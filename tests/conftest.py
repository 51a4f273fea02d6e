"""Shared pytest fixtures for contextkit tests."""

from __future__ import annotations

import itertools
from pathlib import Path
from textwrap import dedent
from typing import Callable

import pytest

from contextkit.session.manager import SessionManager
from contextkit.session.store import InMemorySessionStore
from contextkit.session.tree import SessionTree
from contextkit.tools.catalog import ToolRegistry
from contextkit.tools.models import ToolCapability, ToolFunction


class FakeClock:
    """Manually advanced epoch-ms clock."""

    def __init__(self, start: int = 1_700_000_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("CONTEXTKIT_MAX_TOKENS", raising=False)
    monkeypatch.delenv("CONTEXTKIT_LOG_LEVEL", raising=False)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def id_factory() -> Callable[[], str]:
    """Sequential ids: e0, e1, e2, ..."""
    counter = itertools.count()
    return lambda: f"e{next(counter)}"


@pytest.fixture
def tree(id_factory: Callable[[], str], clock: FakeClock) -> SessionTree:
    return SessionTree("/work/project", id_factory=id_factory, clock=clock)


@pytest.fixture
def git_tool() -> ToolCapability:
    return ToolCapability(
        name="git",
        description="Inspect and modify git repositories",
        functions=(
            ToolFunction(name="commit", description="Record staged changes"),
            ToolFunction(name="push", description="Upload commits to a remote"),
        ),
        permissions=("fs", "network"),
    )


@pytest.fixture
def search_tool() -> ToolCapability:
    return ToolCapability(
        name="search",
        description="Search files in the workspace for matching text",
        functions=(ToolFunction(name="grep"),),
        permissions=("fs",),
    )


@pytest.fixture
def http_tool() -> ToolCapability:
    return ToolCapability(
        name="http",
        description="Fetch remote web pages",
        functions=(ToolFunction(name="fetch"),),
        permissions=("network",),
    )


@pytest.fixture
def registry(git_tool: ToolCapability, search_tool: ToolCapability, http_tool: ToolCapability) -> ToolRegistry:
    return ToolRegistry([git_tool, search_tool, http_tool])


@pytest.fixture
def session_manager() -> SessionManager:
    return SessionManager(InMemorySessionStore())


@pytest.fixture
def tools_dir(tmp_path: Path) -> Path:
    """A directory of YAML tool manifests."""
    directory = tmp_path / "tools"
    directory.mkdir()

    (directory / "git.yaml").write_text(
        dedent("""
        name: git
        description: Inspect and modify git repositories
        functions:
          - name: commit
            description: Record staged changes
          - push
        permissions: [fs, network]
    """).strip()
    )

    (directory / "web.yml").write_text(
        dedent("""
        tools:
          - name: http
            description: Fetch remote web pages
            functions: [fetch]
            permissions: [network]
          - name: browser
            description: Drive a headless browser
    """).strip()
    )

    (directory / "README.md").write_text("not a manifest")
    return directory
