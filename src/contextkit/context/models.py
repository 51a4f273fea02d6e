"""Data models produced by context assembly."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Sequence

from contextkit.session.models import MessageEntry
from contextkit.tools.models import RankedTool, ToolCapability
from contextkit.tokens import MessageLike

SUMMARY_TYPE = "summary"


@dataclass(frozen=True)
class ChatMessage:
    """A message-like record that is not (or no longer) a tree entry."""

    role: str
    content: str
    type: str | None = None  # "summary" for synthesized history summaries

    @property
    def is_summary(self) -> bool:
        return self.type == SUMMARY_TYPE


def message_to_dict(message: MessageLike) -> dict[str, Any]:
    """Render any message-like record as a provider-neutral dict."""
    data: dict[str, Any] = {"role": message.role, "content": message.content}
    if isinstance(message, ChatMessage) and message.type:
        data["type"] = message.type
    elif isinstance(message, MessageEntry):
        data["id"] = message.id
    return data


@dataclass(frozen=True)
class TokenUsage:
    """Estimated token accounting for a prompt."""

    current: int
    limit: int
    remaining: int
    utilization: float  # percent of limit

    def to_dict(self) -> dict[str, Any]:
        return {
            "current": self.current,
            "limit": self.limit,
            "remaining": self.remaining,
            "utilization": self.utilization,
        }


@dataclass(frozen=True)
class Prompt:
    """Final message list for one model call plus its accounting."""

    messages: list[MessageLike]
    token_usage: TokenUsage
    relevant_tools: list[ToolCapability] = field(default_factory=list)
    optimized_history: list[MessageLike] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "messages": [message_to_dict(m) for m in self.messages],
            "token_usage": self.token_usage.to_dict(),
            "relevant_tools": [t.to_dict() for t in self.relevant_tools],
            "optimized_history": [message_to_dict(m) for m in self.optimized_history],
        }


@dataclass
class ContextWindow:
    """Rolling per-session buffer of messages in scope for the next call."""

    messages: list[MessageLike] = field(default_factory=list)
    token_count: int = 0
    last_updated: int = 0  # epoch ms
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ContextStats:
    message_count: int
    token_count: int
    average_tokens_per_message: float
    last_updated: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "message_count": self.message_count,
            "token_count": self.token_count,
            "average_tokens_per_message": self.average_tokens_per_message,
            "last_updated": self.last_updated,
        }


@dataclass(frozen=True)
class ContextResult:
    """Everything ``build_context`` hands back to the orchestrator."""

    session_id: str
    prompt: Prompt
    relevant_tools: Sequence[RankedTool]
    context_stats: ContextStats

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "prompt": self.prompt.to_dict(),
            "relevant_tools": [rt.to_dict() for rt in self.relevant_tools],
            "context_stats": self.context_stats.to_dict(),
        }
