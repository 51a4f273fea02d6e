"""
Conversation history compression.

History is selected from the most recent message backwards until the next
older message would overflow the budget. Everything older than that point is
folded into a single synthetic summary message, which is kept only if it fits
in what is left of the budget. The result is in chronological order with the
summary (if any) first, and its estimated size never exceeds the budget.
"""

from __future__ import annotations

from typing import Sequence

from contextkit.context.models import SUMMARY_TYPE, ChatMessage
from contextkit.logging import get_logger
from contextkit.session.tree import SessionTree
from contextkit.tokens import MessageLike, TokenEstimator, default_estimator

logger = get_logger("context.optimizer")

DEFAULT_RESERVED_TOKENS = 1000

# Substrings that mark assistant messages as worth keeping
ACTION_WORDS = ("executed", "created", "built", "installed", "updated", "deleted", "tool_call")

# Keyword -> activity label used in summaries
ACTIVITY_KEYWORDS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("executed", "created"), "code execution"),
    (("tool",), "tool usage"),
)


class ConversationOptimizer:
    """
    Compresses a session's root-to-leaf history into a token budget.

    Example:
        optimizer = ConversationOptimizer()
        history = optimizer.compress_history(tree, max_tokens=4000)
    """

    def __init__(
        self,
        estimator: TokenEstimator | None = None,
        reserved_tokens: int = DEFAULT_RESERVED_TOKENS,
    ) -> None:
        self.estimator = estimator or default_estimator
        self.reserved_tokens = reserved_tokens

    def estimate_tokens(self, message: MessageLike | None) -> int:
        return self.estimator.estimate(message)

    def compress_history(self, tree: SessionTree, max_tokens: int = 4000) -> list[MessageLike]:
        """
        Compress ``tree``'s current history to fit ``max_tokens``.

        ``reserved_tokens`` of the budget are held back for the system prompt
        and the current query.
        """
        messages = tree.get_messages()
        if not messages:
            return []
        available = max_tokens - self.reserved_tokens
        compressed, tokens = self.fit_messages(messages, available)
        logger.debug(
            "Compressed %d messages to %d (%d/%d tokens)",
            len(messages),
            len(compressed),
            tokens,
            available,
        )
        return compressed

    def compress_messages(self, messages: Sequence[MessageLike], max_tokens: int) -> list[MessageLike]:
        """Same as :meth:`compress_history` for an explicit message sequence."""
        compressed, _ = self.fit_messages(messages, max_tokens - self.reserved_tokens)
        return compressed

    def fit_messages(
        self,
        messages: Sequence[MessageLike],
        budget: int,
    ) -> tuple[list[MessageLike], int]:
        """
        Keep the newest messages that fit ``budget``; summarize the rest.

        Returns the chronologically ordered selection and its estimated
        token total.
        """
        kept: list[MessageLike] = []
        total = 0

        for index in range(len(messages) - 1, -1, -1):
            message = messages[index]
            message_tokens = self.estimate_tokens(message)

            if total + message_tokens > budget:
                summary = self.summarize_messages(messages[: index + 1])
                summary_tokens = self.estimate_tokens(summary)
                if total + summary_tokens <= budget:
                    kept.append(summary)
                    total += summary_tokens
                else:
                    logger.debug("Dropping summary of %d messages: over budget", index + 1)
                break

            kept.append(message)
            total += message_tokens

        kept.reverse()
        return kept, total

    def summarize_messages(self, messages: Sequence[MessageLike]) -> ChatMessage:
        """Build a templated summary of ``messages``."""
        if not messages:
            return ChatMessage(role="system", content="No previous conversation.", type=SUMMARY_TYPE)

        total = len(messages)
        user_count = sum(1 for m in messages if m.role == "user")
        assistant_count = sum(1 for m in messages if m.role == "assistant")

        summary = f"Previous conversation: {total} messages ({user_count} user, {assistant_count} assistant)."

        activities: list[str] = []
        for message in messages:
            if message.role != "assistant" or not message.content:
                continue
            content = message.content.lower()
            for keywords, label in ACTIVITY_KEYWORDS:
                if label not in activities and any(k in content for k in keywords):
                    activities.append(label)

        if activities:
            summary += f" Key activities: {', '.join(activities)}."

        return ChatMessage(role="system", content=summary, type=SUMMARY_TYPE)

    def extract_key_messages(self, tree: SessionTree) -> list[MessageLike]:
        """
        User messages plus assistant messages that report an action or are
        substantial (over 100 characters).
        """
        key_messages: list[MessageLike] = []
        for message in tree.get_messages():
            if message.role == "user":
                key_messages.append(message)
            elif message.role == "assistant":
                content = message.content.lower()
                if len(message.content) > 100 or any(w in content for w in ACTION_WORDS):
                    key_messages.append(message)
        return key_messages
