"""Tests for WORM logging setup."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import pytest

from worm.core.logging import ConsoleFormatter, JSONLFormatter, resolve_level, setup_logging


def _record(name: str, level: int, message: str) -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, message, None, None)


class TestResolveLevel:
    @pytest.mark.parametrize(
        ("level", "expected"),
        [("debug", logging.DEBUG), ("INFO", logging.INFO), ("warn", logging.WARNING), (logging.ERROR, logging.ERROR)],
    )
    def test_known_levels(self, level, expected: int) -> None:
        assert resolve_level(level) == expected

    def test_unknown_level(self) -> None:
        with pytest.raises(ValueError, match="Unknown log level"):
            resolve_level("chatty")


class TestSetupLogging:
    def test_configures_worm_logger(self) -> None:
        logger = setup_logging("debug")

        assert logger.name == "worm"
        assert logger.level == logging.DEBUG
        assert logger.propagate is False
        assert len(logger.handlers) == 1

    def test_repeated_setup_does_not_stack_handlers(self) -> None:
        setup_logging()
        logger = setup_logging()
        assert len(logger.handlers) == 1

    def test_jsonl_file(self, tmp_path: Path) -> None:
        log_file = tmp_path / "logs" / "worm.jsonl"
        setup_logging("info", log_file=log_file)

        logging.getLogger("worm.adapters.go").warning("Go toolchain not found")
        logging.getLogger("worm.adapters.go").debug("filtered out")

        lines = log_file.read_text().splitlines()
        assert len(lines) == 1
        entry = json.loads(lines[0])
        assert entry["level"] == "WARNING"
        assert entry["component"] == "adapters.go"
        assert entry["message"] == "Go toolchain not found"


class TestFormatters:
    def test_jsonl_includes_exception(self) -> None:
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = logging.LogRecord("worm", logging.ERROR, __file__, 1, "failed", None, None)
            record.exc_info = sys.exc_info()

        entry = json.loads(JSONLFormatter().format(record))
        assert entry["component"] == "worm"
        assert entry["exception"] == {"type": "RuntimeError", "message": "boom"}

    def test_console_shows_component_and_level(self) -> None:
        text = ConsoleFormatter().format(_record("worm.container.store", logging.WARNING, "corrupt archive"))

        assert "[container.store]" in text
        assert "WARNING" in text
        assert text.endswith("corrupt archive")

    def test_console_omits_info_level_name(self) -> None:
        text = ConsoleFormatter().format(_record("worm.pipelines", logging.INFO, "done"))
        assert "INFO" not in text
