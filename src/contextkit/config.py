"""
Configuration for the context engine.

Settings can be loaded from YAML files or constructed programmatically.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

DEFAULT_MAX_TOKENS = 8000


def get_default_max_tokens() -> int:
    """Get the default prompt budget from ``CONTEXTKIT_MAX_TOKENS``, defaulting to 8000."""
    val = os.environ.get("CONTEXTKIT_MAX_TOKENS", "")
    try:
        parsed = int(val)
    except ValueError:
        return DEFAULT_MAX_TOKENS
    return parsed if parsed > 0 else DEFAULT_MAX_TOKENS


@dataclass
class ContextConfig:
    """
    Main configuration for context assembly.

    Example YAML:
        max_tokens: 8000
        history_max_tokens: 4000
        reserved_tokens: 1000
        max_tools: 5
        sessions_dir: ~/.contextkit/sessions
        tool_dirs:
          - ./tools
        watch: true
    """

    # Budgets
    max_tokens: int = field(default_factory=get_default_max_tokens)  # Prompt budget for build_context
    history_max_tokens: int = 4000  # Budget for optimize_conversation
    reserved_tokens: int = 1000  # Held back for system prompt + query
    token_limit: int = DEFAULT_MAX_TOKENS  # Reported limit when none is given
    safety_margin: float = 0.8  # Fraction of the limit used on recompression

    # Tools
    max_tools: int = 5  # Tools included in the system prompt
    tool_dirs: list[Path] = field(default_factory=list)  # YAML tool manifests

    # Context windows
    context_max_age_ms: int = 3_600_000  # Idle windows older than this are evicted

    # Sessions
    sessions_dir: Path = field(default_factory=lambda: Path.home() / ".contextkit" / "sessions")
    default_cwd: str = "/home/user/project"

    # File watching
    watch: bool = False
    watch_debounce_ms: int = 250

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ContextConfig:
        """Create config from a dictionary."""
        defaults = cls()
        sessions_dir = data.get("sessions_dir")
        return cls(
            max_tokens=int(data.get("max_tokens", get_default_max_tokens())),
            history_max_tokens=int(data.get("history_max_tokens", defaults.history_max_tokens)),
            reserved_tokens=int(data.get("reserved_tokens", defaults.reserved_tokens)),
            token_limit=int(data.get("token_limit", defaults.token_limit)),
            safety_margin=float(data.get("safety_margin", defaults.safety_margin)),
            max_tools=int(data.get("max_tools", defaults.max_tools)),
            tool_dirs=[Path(p).expanduser() for p in data.get("tool_dirs", [])],
            context_max_age_ms=int(data.get("context_max_age_ms", defaults.context_max_age_ms)),
            sessions_dir=Path(sessions_dir).expanduser() if sessions_dir else defaults.sessions_dir,
            default_cwd=data.get("default_cwd", defaults.default_cwd),
            watch=data.get("watch", False),
            watch_debounce_ms=int(data.get("watch_debounce_ms", defaults.watch_debounce_ms)),
        )

    @classmethod
    def from_yaml(cls, path: Path) -> ContextConfig:
        """Load config from a YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f)
        return cls.from_dict(data or {})

    @classmethod
    def from_yaml_string(cls, content: str) -> ContextConfig:
        """Load config from a YAML string."""
        data = yaml.safe_load(content)
        return cls.from_dict(data or {})

    def to_dict(self) -> dict[str, Any]:
        """Convert config to a dictionary."""
        return {
            "max_tokens": self.max_tokens,
            "history_max_tokens": self.history_max_tokens,
            "reserved_tokens": self.reserved_tokens,
            "token_limit": self.token_limit,
            "safety_margin": self.safety_margin,
            "max_tools": self.max_tools,
            "tool_dirs": [str(p) for p in self.tool_dirs],
            "context_max_age_ms": self.context_max_age_ms,
            "sessions_dir": str(self.sessions_dir),
            "default_cwd": self.default_cwd,
            "watch": self.watch,
            "watch_debounce_ms": self.watch_debounce_ms,
        }
