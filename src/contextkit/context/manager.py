"""
Per-session context windows.

Each session gets a rolling window of the messages sent on recent turns.
Windows are created on first access, trimmed with the optimizer's
newest-first/summarize-the-rest strategy when they overflow, and evicted once
idle for longer than a caller-chosen age. Not safe for concurrent mutation of
the same session id.
"""

from __future__ import annotations

from typing import Callable, Iterable

from contextkit.context.models import ContextStats, ContextWindow
from contextkit.context.optimizer import ConversationOptimizer
from contextkit.logging import get_logger
from contextkit.session.models import now_ms
from contextkit.tokens import MessageLike, TokenEstimator

logger = get_logger("context.manager")

DEFAULT_MAX_AGE_MS = 3_600_000


class ContextManager:
    """Owns the session id -> :class:`ContextWindow` map."""

    def __init__(
        self,
        optimizer: ConversationOptimizer,
        estimator: TokenEstimator | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.optimizer = optimizer
        self.estimator = estimator or optimizer.estimator
        self._clock = clock
        self._windows: dict[str, ContextWindow] = {}

    def get_context_window(self, session_id: str) -> ContextWindow:
        window = self._windows.get(session_id)
        if window is None:
            window = ContextWindow(last_updated=self._clock())
            self._windows[session_id] = window
        return window

    def update_context_window(
        self,
        session_id: str,
        new_messages: Iterable[MessageLike],
        max_tokens: int = 8000,
    ) -> ContextWindow:
        """Append ``new_messages`` and trim the window if it now exceeds ``max_tokens``."""
        window = self.get_context_window(session_id)

        for message in new_messages:
            window.messages.append(message)
            window.token_count += self.estimator.estimate(message)

        if window.token_count > max_tokens:
            self.optimize_context_window(session_id, max_tokens)

        window.last_updated = self._clock()
        return window

    def optimize_context_window(self, session_id: str, max_tokens: int = 8000) -> ContextWindow:
        window = self.get_context_window(session_id)
        before = len(window.messages)
        messages, tokens = self.optimizer.fit_messages(window.messages, max_tokens)
        window.messages = messages
        window.token_count = tokens
        logger.debug(
            "Trimmed context window for %s: %d -> %d messages (%d tokens)",
            session_id,
            before,
            len(messages),
            tokens,
        )
        return window

    def get_current_context(self, session_id: str) -> list[MessageLike]:
        return list(self.get_context_window(session_id).messages)

    def clear_context_window(self, session_id: str) -> None:
        self._windows.pop(session_id, None)

    def get_context_stats(self, session_id: str) -> ContextStats:
        window = self.get_context_window(session_id)
        count = len(window.messages)
        return ContextStats(
            message_count=count,
            token_count=window.token_count,
            average_tokens_per_message=window.token_count / count if count else 0.0,
            last_updated=window.last_updated,
        )

    def needs_optimization(self, session_id: str, max_tokens: int = 8000) -> bool:
        return self.get_context_window(session_id).token_count > max_tokens

    def get_active_sessions(self) -> list[str]:
        return list(self._windows)

    def cleanup_old_contexts(self, max_age_ms: int = DEFAULT_MAX_AGE_MS) -> int:
        """Evict windows idle for at least ``max_age_ms``; return how many were removed."""
        now = self._clock()
        stale = [sid for sid, w in self._windows.items() if now - w.last_updated >= max_age_ms]
        for session_id in stale:
            del self._windows[session_id]
        if stale:
            logger.info("Evicted %d idle context windows", len(stale))
        return len(stale)
