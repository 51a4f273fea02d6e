"""Tests for configuration models."""

from pathlib import Path
from textwrap import dedent

import pytest

from contextkit.config import ContextConfig, get_default_max_tokens


class TestContextConfig:
    """Tests for ContextConfig."""

    def test_default_values(self) -> None:
        """Should have sensible defaults."""
        config = ContextConfig()

        assert config.max_tokens == 8000
        assert config.history_max_tokens == 4000
        assert config.reserved_tokens == 1000
        assert config.token_limit == 8000
        assert config.safety_margin == 0.8
        assert config.max_tools == 5
        assert config.tool_dirs == []
        assert config.context_max_age_ms == 3_600_000
        assert config.sessions_dir == Path.home() / ".contextkit" / "sessions"
        assert config.default_cwd == "/home/user/project"
        assert config.watch is False
        assert config.watch_debounce_ms == 250

    def test_from_dict_basic(self) -> None:
        """Should create config from dictionary."""
        config = ContextConfig.from_dict(
            {
                "max_tokens": 16000,
                "history_max_tokens": 6000,
                "max_tools": 3,
                "tool_dirs": ["/path/to/tools"],
                "sessions_dir": "/var/sessions",
                "watch": True,
            }
        )

        assert config.max_tokens == 16000
        assert config.history_max_tokens == 6000
        assert config.max_tools == 3
        assert config.tool_dirs == [Path("/path/to/tools")]
        assert config.sessions_dir == Path("/var/sessions")
        assert config.watch is True
        assert config.reserved_tokens == 1000

    def test_from_dict_expands_user(self) -> None:
        """Should expand ~ in paths."""
        config = ContextConfig.from_dict({"tool_dirs": ["~/tools"], "sessions_dir": "~/sessions"})

        assert config.tool_dirs == [Path.home() / "tools"]
        assert config.sessions_dir == Path.home() / "sessions"

    def test_from_yaml_string(self) -> None:
        """Should parse YAML configuration."""
        config = ContextConfig.from_yaml_string(
            dedent("""
            max_tokens: 4000
            safety_margin: 0.5
            context_max_age_ms: 60000
            tool_dirs:
              - ./tools
        """)
        )

        assert config.max_tokens == 4000
        assert config.safety_margin == 0.5
        assert config.context_max_age_ms == 60000
        assert config.tool_dirs == [Path("./tools")]

    def test_from_yaml_string_empty(self) -> None:
        """Should fall back to defaults for empty YAML."""
        config = ContextConfig.from_yaml_string("")

        assert config.max_tokens == 8000
        assert config.max_tools == 5

    def test_from_yaml_file(self, tmp_path: Path) -> None:
        """Should load configuration from a file."""
        path = tmp_path / "contextkit.yaml"
        path.write_text("reserved_tokens: 500\nmax_tools: 2\n")

        config = ContextConfig.from_yaml(path)

        assert config.reserved_tokens == 500
        assert config.max_tools == 2

    def test_to_dict_round_trip(self) -> None:
        """Should serialize to a dictionary that loads back."""
        config = ContextConfig(max_tokens=1234, tool_dirs=[Path("/tools")], watch=True)

        data = config.to_dict()

        assert data["max_tokens"] == 1234
        assert data["tool_dirs"] == ["/tools"]
        assert ContextConfig.from_dict(data) == config


class TestMaxTokensEnv:
    """Tests for the CONTEXTKIT_MAX_TOKENS override."""

    def test_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("CONTEXTKIT_MAX_TOKENS", raising=False)
        assert get_default_max_tokens() == 8000

    def test_env_value(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CONTEXTKIT_MAX_TOKENS", "12000")
        assert get_default_max_tokens() == 12000
        assert ContextConfig.from_dict({}).max_tokens == 12000

    def test_explicit_value_wins(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CONTEXTKIT_MAX_TOKENS", "12000")
        assert ContextConfig.from_dict({"max_tokens": 2000}).max_tokens == 2000

    def test_env_sets_constructor_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CONTEXTKIT_MAX_TOKENS", "12000")
        assert ContextConfig().max_tokens == 12000
        assert ContextConfig(max_tokens=2000).max_tokens == 2000

    @pytest.mark.parametrize("value", ["", "lots", "0", "-5"])
    def test_invalid_values_ignored(self, monkeypatch: pytest.MonkeyPatch, value: str) -> None:
        monkeypatch.setenv("CONTEXTKIT_MAX_TOKENS", value)
        assert get_default_max_tokens() == 8000
