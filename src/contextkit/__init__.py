"""
contextkit - conversation-state and context-assembly engine for coding agents.

Holds tree-structured, branching conversations and, on every turn, assembles
a prompt that fits the model's context window: relevant tools in the system
message, compressed history, and the current query.

Example:
    from contextkit import ContextBuilder, SessionManager, ToolRegistry

    sessions = SessionManager()
    session_id = await sessions.create_session("/work/project")
    await sessions.append_message(session_id, "user", "list the files")

    builder = ContextBuilder(tool_catalog=ToolRegistry(), session_manager=sessions)
    result = await builder.build_context(session_id, "now commit them")
"""

from contextkit.config import ContextConfig, get_default_max_tokens
from contextkit.context import (
    ChatMessage,
    ContextBuilder,
    ContextManager,
    ContextResult,
    ContextStats,
    ContextWindow,
    ConversationOptimizer,
    Prompt,
    PromptBuilder,
    TokenUsage,
    create_context_builder,
)
from contextkit.errors import (
    ContextKitError,
    EntryNotFoundError,
    NotFoundError,
    SessionNotFoundError,
)
from contextkit.session import (
    InMemorySessionStore,
    JsonlSessionStore,
    MessageEntry,
    SessionHeader,
    SessionManager,
    SessionStore,
    SessionTree,
)
from contextkit.tokens import CharTokenEstimator, TokenEstimator
from contextkit.tools import (
    DirectoryToolCatalog,
    RankedTool,
    ToolAnalyzer,
    ToolCapability,
    ToolCatalog,
    ToolFunction,
    ToolRegistry,
)

__version__ = "0.1.0"

__all__ = [
    # Config
    "ContextConfig",
    "get_default_max_tokens",
    # Context
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
    # Errors
    "ContextKitError",
    "EntryNotFoundError",
    "NotFoundError",
    "SessionNotFoundError",
    # Sessions
    "InMemorySessionStore",
    "JsonlSessionStore",
    "MessageEntry",
    "SessionHeader",
    "SessionManager",
    "SessionStore",
    "SessionTree",
    # Tokens
    "CharTokenEstimator",
    "TokenEstimator",
    # Tools
    "DirectoryToolCatalog",
    "RankedTool",
    "ToolAnalyzer",
    "ToolCapability",
    "ToolCatalog",
    "ToolFunction",
    "ToolRegistry",
]
