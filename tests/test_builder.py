"""End-to-end tests for ContextBuilder."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from contextkit.config import ContextConfig
from contextkit.context.builder import ContextBuilder, create_context_builder
from contextkit.context.models import ContextResult
from contextkit.errors import SessionNotFoundError
from contextkit.session.manager import SessionManager
from contextkit.session.store import InMemorySessionStore
from contextkit.tools.catalog import ToolRegistry


@pytest.fixture
def builder(registry: ToolRegistry, session_manager: SessionManager) -> ContextBuilder:
    return ContextBuilder(registry, session_manager)


async def _session_with_messages(manager: SessionManager, count: int = 2, length: int = 0) -> str:
    session_id = await manager.create_session("/work/project")
    for i in range(count):
        role = "user" if i % 2 == 0 else "assistant"
        content = "x" * length if length else f"message {i}"
        await manager.append_message(session_id, role, content)
    return session_id


class TestBuildContext:
    @pytest.mark.asyncio
    async def test_assembles_prompt(self, builder: ContextBuilder, session_manager: SessionManager):
        session_id = await _session_with_messages(session_manager)

        result = await builder.build_context(session_id, "commit and push my changes")

        assert isinstance(result, ContextResult)
        assert result.session_id == session_id
        messages = result.prompt.messages
        assert messages[0].role == "system"
        assert "**git**" in messages[0].content
        assert [m.content for m in messages[1:-1]] == ["message 0", "message 1"]
        assert messages[-1].role == "user"
        assert messages[-1].content == "commit and push my changes"
        assert result.relevant_tools[0].tool.name == "git"
        assert result.prompt.relevant_tools == [rt.tool for rt in result.relevant_tools]
        assert result.prompt.token_usage.limit == 8000

    @pytest.mark.asyncio
    async def test_records_context_window(self, builder: ContextBuilder, session_manager: SessionManager):
        session_id = await _session_with_messages(session_manager)
        result = await builder.build_context(session_id, "hello")

        assert result.context_stats.message_count == len(result.prompt.messages)
        assert result.context_stats.token_count == result.prompt.token_usage.current
        assert builder.get_current_context(session_id) == result.prompt.messages
        assert builder.get_active_sessions() == [session_id]

    @pytest.mark.asyncio
    async def test_windows_accumulate_across_turns(
        self, builder: ContextBuilder, session_manager: SessionManager
    ):
        session_id = await _session_with_messages(session_manager)
        first = await builder.build_context(session_id, "one")
        second = await builder.build_context(session_id, "two")
        assert second.context_stats.message_count == (
            len(first.prompt.messages) + len(second.prompt.messages)
        )

    @pytest.mark.asyncio
    async def test_unknown_session(self, builder: ContextBuilder):
        with pytest.raises(SessionNotFoundError, match="Session nope not found"):
            await builder.build_context("nope", "anything")
        assert builder.get_active_sessions() == []

    @pytest.mark.asyncio
    async def test_no_tools_fallback(self, session_manager: SessionManager):
        builder = ContextBuilder(ToolRegistry(), session_manager)
        session_id = await session_manager.create_session()
        result = await builder.build_context(session_id, "hello")
        assert result.relevant_tools == []
        assert "You can execute code to help with tasks." in result.prompt.messages[0].content
        assert [m.role for m in result.prompt.messages] == ["system", "user"]

    @pytest.mark.asyncio
    async def test_max_tools_from_config(self, session_manager: SessionManager, registry: ToolRegistry):
        builder = ContextBuilder(registry, session_manager, ContextConfig(max_tools=1))
        session_id = await session_manager.create_session()
        result = await builder.build_context(session_id, "search files and commit with git")
        assert len(result.relevant_tools) == 1

    @pytest.mark.asyncio
    async def test_oversized_history_is_optimized(
        self, builder: ContextBuilder, session_manager: SessionManager
    ):
        session_id = await _session_with_messages(session_manager, count=20, length=400)
        result = await builder.build_context(session_id, "q" * 4000, max_tokens=2000)

        assert result.prompt.token_usage.limit == 2000
        assert result.prompt.token_usage.current <= 2000
        assert result.prompt.optimized_history[0].is_summary

    @pytest.mark.asyncio
    async def test_deterministic(self, registry: ToolRegistry):
        store = InMemorySessionStore()
        manager = SessionManager(store)
        session_id = await _session_with_messages(manager, count=6, length=300)

        first = await ContextBuilder(registry, SessionManager(store)).build_context(session_id, "git push")
        second = await ContextBuilder(registry, SessionManager(store)).build_context(session_id, "git push")

        first_dict = first.to_dict()
        second_dict = second.to_dict()
        first_dict["context_stats"].pop("last_updated")
        second_dict["context_stats"].pop("last_updated")
        assert first_dict == second_dict


class TestSessionHelpers:
    @pytest.mark.asyncio
    async def test_optimize_conversation(self, builder: ContextBuilder, session_manager: SessionManager):
        session_id = await _session_with_messages(session_manager, count=50, length=400)
        assert await builder.optimize_conversation(session_id, 1000) == []

        history = await builder.optimize_conversation(session_id)
        total = sum(builder.conversation_optimizer.estimate_tokens(m) for m in history)
        assert 0 < total <= 3000

    @pytest.mark.asyncio
    async def test_get_session_tree(self, builder: ContextBuilder, session_manager: SessionManager):
        session_id = await _session_with_messages(session_manager)
        tree = await builder.get_session_tree(session_id)
        assert tree.root_id == session_id
        assert len(tree.get_messages()) == 2

    @pytest.mark.asyncio
    async def test_get_tool_capabilities(self, builder: ContextBuilder):
        tools = await builder.get_tool_capabilities()
        assert [t.name for t in tools] == ["git", "search", "http"]


class TestContextHelpers:
    @pytest.mark.asyncio
    async def test_stats_and_clear(self, builder: ContextBuilder, session_manager: SessionManager):
        session_id = await _session_with_messages(session_manager)
        await builder.build_context(session_id, "hello")

        assert builder.get_context_stats(session_id).message_count == 4
        assert not builder.needs_optimization(session_id)
        assert builder.needs_optimization(session_id, 1)

        builder.clear_context(session_id)
        assert builder.get_active_sessions() == []

    @pytest.mark.asyncio
    async def test_cleanup_old_contexts(self, builder: ContextBuilder, session_manager: SessionManager):
        first = await _session_with_messages(session_manager)
        second = await _session_with_messages(session_manager)
        await builder.build_context(first, "hello")
        await builder.build_context(second, "hello")

        assert builder.cleanup_old_contexts() == 0
        assert builder.cleanup_old_contexts(0) == 2
        assert builder.get_active_sessions() == []


class TestToolWatching:
    """Tests for reloading tool manifests while building contexts."""

    @pytest.mark.asyncio
    async def test_watch_disabled_is_noop(self, tools_dir: Path, session_manager: SessionManager):
        builder = await create_context_builder(ContextConfig(tool_dirs=[tools_dir]), session_manager)
        await builder.start_watching()

        assert not builder.tool_catalog.is_watching

    @pytest.mark.asyncio
    async def test_registry_cannot_be_watched(self, registry: ToolRegistry, session_manager: SessionManager):
        builder = ContextBuilder(registry, session_manager, ContextConfig(watch=True))
        await builder.start_watching()
        await builder.stop_watching()

    @pytest.mark.asyncio
    async def test_new_manifest_is_picked_up(self, tools_dir: Path, session_manager: SessionManager):
        config = ContextConfig(tool_dirs=[tools_dir], watch=True, watch_debounce_ms=10)
        builder = await create_context_builder(config, session_manager)
        fired = asyncio.Event()
        builder.on_tools_change(lambda changed: fired.set())

        try:
            assert builder.tool_catalog.is_watching
            await asyncio.sleep(0.5)
            (tools_dir / "deploy.yaml").write_text(
                "name: deploy\ndescription: Deploy the service to production\n"
            )
            await asyncio.wait_for(fired.wait(), timeout=10)
        finally:
            await builder.stop_watching()

        names = [tool.name for tool in await builder.get_tool_capabilities()]
        assert "deploy" in names

        session_id = await session_manager.create_session("/work")
        result = await builder.build_context(session_id, "deploy the production service")
        assert result.relevant_tools[0].tool.name == "deploy"


class TestDefaultBudget:
    @pytest.mark.asyncio
    async def test_env_budget_without_config(
        self, monkeypatch: pytest.MonkeyPatch, registry: ToolRegistry, session_manager: SessionManager
    ):
        monkeypatch.setenv("CONTEXTKIT_MAX_TOKENS", "6000")
        builder = ContextBuilder(registry, session_manager)
        session_id = await session_manager.create_session("/work")

        result = await builder.build_context(session_id, "hello")

        assert result.prompt.token_usage.limit == 6000
