"""Tests for log context propagation and formatting."""

import asyncio
import json
import logging
import logging.handlers
from pathlib import Path
from types import SimpleNamespace

import pytest

from observability.logging import (
    ContextFilter,
    JsonFormatter,
    TextFormatter,
    clear_context,
    set_run_context,
    set_source_context,
    setup_logging,
    source_var,
)


def make_record(msg: str = "Source gathered", level: int = logging.INFO) -> logging.LogRecord:
    return logging.LogRecord("gatherer", level, "gatherer.py", 42, msg, None, None, func="gather_source")


@pytest.fixture(autouse=True)
def reset_context():
    clear_context()
    yield
    clear_context()


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


class TestContext:
    def test_filter_stamps_run_and_source(self) -> None:
        set_run_context("intel_1")
        set_source_context("Daily News")
        record = make_record()

        assert ContextFilter().filter(record) is True
        assert record.run_id == "intel_1"
        assert record.source_name == "Daily News"

    def test_defaults_without_context(self) -> None:
        record = make_record()
        ContextFilter().filter(record)
        assert (record.run_id, record.source_name) == ("-", "-")

    @pytest.mark.asyncio
    async def test_source_context_is_task_local(self) -> None:
        seen: dict[str, str] = {}

        async def worker(name: str) -> None:
            set_source_context(name)
            await asyncio.sleep(0)
            seen[name] = source_var.get()

        await asyncio.gather(worker("A"), worker("B"))

        assert seen == {"A": "A", "B": "B"}
        assert source_var.get() == "-"


class TestFormatters:
    def test_json_includes_context_and_extras(self) -> None:
        set_run_context("intel_2")
        set_source_context("Security Wire")
        record = make_record()
        record.alerts = 3
        ContextFilter().filter(record)

        data = json.loads(JsonFormatter().format(record))

        assert data["message"] == "Source gathered"
        assert data["run_id"] == "intel_2"
        assert data["source_name"] == "Security Wire"
        assert data["alerts"] == 3
        assert "location" not in data

    def test_json_omits_unset_source_and_locates_warnings(self) -> None:
        record = make_record("Source timed out", logging.WARNING)
        ContextFilter().filter(record)

        data = json.loads(JsonFormatter().format(record))

        assert "source_name" not in data
        assert data["location"] == "gatherer.py:42 gather_source"

    def test_text_format(self) -> None:
        set_run_context("intel_3")
        set_source_context("Academy")
        record = make_record()
        ContextFilter().filter(record)

        line = TextFormatter().format(record)

        assert "[INFO] [intel_3|Academy] gatherer: Source gathered" in line


class TestSetup:
    def _config(self, log_dir: Path, **overrides) -> SimpleNamespace:
        values = dict(
            log_dir=log_dir, log_level="INFO", log_format="text",
            log_backup_count=3, log_max_bytes=0,
        )
        values.update(overrides)
        return SimpleNamespace(**values)

    def test_file_logging_enabled(self, tmp_path: Path, restore_root_logger) -> None:
        assert setup_logging(self._config(tmp_path / "log")) is True
        assert len(logging.getLogger().handlers) == 2
        assert (tmp_path / "log" / "scout.log").exists()

    def test_size_rotation(self, tmp_path: Path, restore_root_logger) -> None:
        setup_logging(self._config(tmp_path / "log", log_max_bytes=1024))
        handler = logging.getLogger().handlers[1]
        assert isinstance(handler, logging.handlers.RotatingFileHandler)
        assert handler.maxBytes == 1024

    def test_unwritable_dir_falls_back_to_console(self, tmp_path: Path, restore_root_logger, capsys) -> None:
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("x")

        assert setup_logging(self._config(blocker)) is False
        assert len(logging.getLogger().handlers) == 1
        assert "console-only" in capsys.readouterr().err
