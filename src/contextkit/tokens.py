"""
Token estimation.

The engine never needs exact counts, only a deterministic approximation that
is stable across calls. Estimators are pluggable so a real tokenizer can be
dropped in without touching the compression logic.

Example:
    from contextkit.tokens import CharTokenEstimator

    estimator = CharTokenEstimator()
    estimator.estimate(message)  # ceil(len(content) / 4) + overhead
"""

from __future__ import annotations

import math
from typing import Iterable, Protocol, runtime_checkable


@runtime_checkable
class MessageLike(Protocol):
    """Anything carrying a role and text content."""

    role: str
    content: str


class TokenEstimator(Protocol):
    """Estimates the token cost of a single message."""

    def estimate(self, message: MessageLike | None) -> int: ...


class CharTokenEstimator:
    """
    Characters-per-token heuristic.

    Each message costs ``ceil(len(content) / chars_per_token)`` plus a fixed
    per-message overhead for role and separators. System messages carry a
    larger overhead. Messages without content cost nothing.
    """

    def __init__(
        self,
        chars_per_token: int = 4,
        message_overhead: int = 10,
        system_overhead: int = 20,
    ) -> None:
        if chars_per_token <= 0:
            raise ValueError("chars_per_token must be positive")
        self.chars_per_token = chars_per_token
        self.message_overhead = message_overhead
        self.system_overhead = system_overhead

    def estimate(self, message: MessageLike | None) -> int:
        content = getattr(message, "content", None)
        if not content:
            return 0
        content_tokens = math.ceil(len(content) / self.chars_per_token)
        role = getattr(message, "role", None)
        overhead = self.system_overhead if role == "system" else self.message_overhead
        return content_tokens + overhead


def estimate_messages(estimator: TokenEstimator, messages: Iterable[MessageLike]) -> int:
    """Estimate total tokens for a sequence of messages."""
    return sum(estimator.estimate(m) for m in messages)


default_estimator = CharTokenEstimator()
