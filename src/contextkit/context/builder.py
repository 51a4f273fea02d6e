"""
ContextBuilder - single entry point for context assembly.

Given a session id and the user's query, resolves the session tree, ranks the
tool catalog, builds and if necessary re-optimizes the prompt, records the
turn in the session's context window, and returns the lot.

Example:
    builder = ContextBuilder(
        tool_catalog=ToolRegistry([git_tool]),
        session_manager=SessionManager(JsonlSessionStore()),
    )
    result = await builder.build_context(session_id, "commit my changes")
    send_to_model(result.prompt.messages)
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable

from contextkit.config import ContextConfig
from contextkit.context.manager import ContextManager
from contextkit.context.models import ContextResult, ContextStats
from contextkit.context.optimizer import ConversationOptimizer
from contextkit.context.prompt import PromptBuilder
from contextkit.logging import get_logger
from contextkit.session.manager import SessionManager
from contextkit.session.tree import SessionTree
from contextkit.tokens import MessageLike, TokenEstimator, default_estimator
from contextkit.tools.analyzer import ToolAnalyzer
from contextkit.tools.catalog import DirectoryToolCatalog, ToolCatalog
from contextkit.tools.models import ToolCapability

logger = get_logger("context.builder")


class ContextBuilder:
    """Wires the analyzer, optimizer, prompt builder and window manager together."""

    def __init__(
        self,
        tool_catalog: ToolCatalog,
        session_manager: SessionManager,
        config: ContextConfig | None = None,
        estimator: TokenEstimator | None = None,
    ) -> None:
        self.config = config or ContextConfig()
        self.session_manager = session_manager
        estimator = estimator or default_estimator

        self.tool_catalog = tool_catalog
        self.tool_analyzer = ToolAnalyzer(tool_catalog)
        self._on_tools_change: list[Callable[[set[Path]], None]] = []
        self.conversation_optimizer = ConversationOptimizer(
            estimator=estimator,
            reserved_tokens=self.config.reserved_tokens,
        )
        self.prompt_builder = PromptBuilder(
            self.conversation_optimizer,
            estimator=estimator,
            token_limit=self.config.token_limit,
            safety_margin=self.config.safety_margin,
        )
        self.context_manager = ContextManager(self.conversation_optimizer, estimator=estimator)

    async def build_context(
        self,
        session_id: str,
        query: str,
        max_tokens: int | None = None,
    ) -> ContextResult:
        """
        Assemble the prompt for ``query`` in session ``session_id``.

        Raises :class:`~contextkit.errors.SessionNotFoundError` for unknown
        sessions. Catalog and store failures propagate unchanged.
        """
        max_tokens = self.config.max_tokens if max_tokens is None else max_tokens
        tree = await self.get_session_tree(session_id)

        relevant_tools = await self.tool_analyzer.find_relevant_tools(query, self.config.max_tools)

        prompt = self.prompt_builder.build_prompt(
            query,
            tree,
            [rt.tool for rt in relevant_tools],
            max_tokens,
        )
        prompt = self.prompt_builder.optimize_prompt(prompt, tree)

        self.context_manager.update_context_window(session_id, prompt.messages, max_tokens)

        logger.debug(
            "Built context for %s: %d messages, %d tools, %d/%d tokens",
            session_id,
            len(prompt.messages),
            len(relevant_tools),
            prompt.token_usage.current,
            prompt.token_usage.limit,
        )
        return ContextResult(
            session_id=session_id,
            prompt=prompt,
            relevant_tools=relevant_tools,
            context_stats=self.context_manager.get_context_stats(session_id),
        )

    async def optimize_conversation(
        self,
        session_id: str,
        max_tokens: int | None = None,
    ) -> list[MessageLike]:
        max_tokens = self.config.history_max_tokens if max_tokens is None else max_tokens
        tree = await self.get_session_tree(session_id)
        return self.conversation_optimizer.compress_history(tree, max_tokens)

    async def get_tool_capabilities(self) -> list[ToolCapability]:
        return await self.tool_analyzer.get_tool_capabilities()

    async def get_session_tree(self, session_id: str) -> SessionTree:
        return await self.session_manager.get_tree(session_id)

    def get_current_context(self, session_id: str) -> list[MessageLike]:
        return self.context_manager.get_current_context(session_id)

    def get_context_stats(self, session_id: str) -> ContextStats:
        return self.context_manager.get_context_stats(session_id)

    def clear_context(self, session_id: str) -> None:
        self.context_manager.clear_context_window(session_id)

    def needs_optimization(self, session_id: str, max_tokens: int | None = None) -> bool:
        max_tokens = self.config.max_tokens if max_tokens is None else max_tokens
        return self.context_manager.needs_optimization(session_id, max_tokens)

    def get_active_sessions(self) -> list[str]:
        return self.context_manager.get_active_sessions()

    def cleanup_old_contexts(self, max_age_ms: int | None = None) -> int:
        max_age_ms = self.config.context_max_age_ms if max_age_ms is None else max_age_ms
        return self.context_manager.cleanup_old_contexts(max_age_ms)

    # Tool manifest watching

    async def start_watching(self) -> None:
        """Reload the tool catalog when its manifests change, if ``config.watch`` is set."""
        if not self.config.watch:
            return

        start = getattr(self.tool_catalog, "start_watching", None)
        if start is None:
            logger.debug("Tool catalog %s cannot be watched", type(self.tool_catalog).__name__)
            return

        def on_change(changed: set[Path]) -> None:
            logger.info("Tool manifests changed: %s", sorted(p.name for p in changed))
            for callback in self._on_tools_change:
                callback(changed)

        await start(on_change)

    async def stop_watching(self) -> None:
        stop = getattr(self.tool_catalog, "stop_watching", None)
        if stop is not None:
            await stop()

    def on_tools_change(self, callback: Callable[[set[Path]], None]) -> None:
        """Register a callback for tool manifest changes."""
        self._on_tools_change.append(callback)


async def create_context_builder(
    config: ContextConfig | None = None,
    session_manager: SessionManager | None = None,
) -> ContextBuilder:
    """
    Build a :class:`ContextBuilder` over the manifests in ``config.tool_dirs``.

    Watching starts immediately when ``config.watch`` is set; call
    :meth:`ContextBuilder.stop_watching` when done.
    """
    config = config or ContextConfig()
    catalog = DirectoryToolCatalog(config.tool_dirs, watch_debounce_ms=config.watch_debounce_ms)
    builder = ContextBuilder(catalog, session_manager or SessionManager(), config=config)

    if config.watch:
        await builder.start_watching()

    return builder
