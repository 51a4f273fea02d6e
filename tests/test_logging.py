"""Tests for logging helpers."""

import io
import logging

import pytest

from contextkit.logging import disable, enable, get_logger, set_level, setup_logging


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger("contextkit")
    level, handlers = root.level, list(root.handlers)
    yield
    root.setLevel(level)
    root.handlers[:] = handlers


class TestLogging:
    def test_child_logger_names(self) -> None:
        assert get_logger("session.manager").name == "contextkit.session.manager"
        assert get_logger("contextkit.tools").name == "contextkit.tools"

    def test_setup_writes_to_stream(self) -> None:
        stream = io.StringIO()
        setup_logging("DEBUG", format="%(name)s %(message)s", stream=stream)

        get_logger("context.builder").debug("built")

        assert stream.getvalue().strip() == "contextkit.context.builder built"

    def test_level_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CONTEXTKIT_LOG_LEVEL", "error")
        root = setup_logging(stream=io.StringIO())
        assert root.level == logging.ERROR

    def test_default_level(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("CONTEXTKIT_LOG_LEVEL", raising=False)
        assert setup_logging(stream=io.StringIO()).level == logging.WARNING

    def test_unknown_level(self) -> None:
        with pytest.raises(ValueError, match="Unknown log level"):
            set_level("chatty")

    def test_disable_and_enable(self) -> None:
        stream = io.StringIO()
        setup_logging("INFO", format="%(message)s", stream=stream)
        logger = get_logger("test")

        disable()
        logger.info("hidden")
        enable()
        logger.info("shown")

        assert stream.getvalue().splitlines() == ["shown"]
