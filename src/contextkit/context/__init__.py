"""Context assembly: history compression, prompts and context windows."""

from contextkit.context.builder import ContextBuilder, create_context_builder
from contextkit.context.manager import ContextManager
from contextkit.context.models import (
    ChatMessage,
    ContextResult,
    ContextStats,
    ContextWindow,
    Prompt,
    TokenUsage,
    message_to_dict,
)
from contextkit.context.optimizer import ConversationOptimizer
from contextkit.context.prompt import PromptBuilder

__all__ = [
    "ChatMessage",
    "ContextBuilder",
    "ContextManager",
    "ContextResult",
    "ContextStats",
    "ContextWindow",
    "ConversationOptimizer",
    "Prompt",
    "PromptBuilder",
    "TokenUsage",
    "create_context_builder",
    "message_to_dict",
]
