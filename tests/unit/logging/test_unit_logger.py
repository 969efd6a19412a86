# tests/unit/logging/test_unit_logger.py
"""Tests for logging/logger.py and logging/context.py."""

from __future__ import annotations

import json
import logging

import pytest

from docforge.logging.context import (
    clear_context,
    get_context,
    set_agent_context,
    set_project_context,
)
from docforge.logging.logger import (
    JsonFormatter,
    TextFormatter,
    get_logger,
    parse_size,
    setup_logging,
)


@pytest.fixture(autouse=True)
def _reset_context():
    clear_context()
    yield
    clear_context()


def _record(message: str = "hello") -> logging.LogRecord:
    return logging.LogRecord("docforge.test", logging.INFO, __file__, 1, message, None, None)


class TestContext:
    def test_empty_by_default(self):
        assert get_context().as_dict() == {}

    def test_set_and_clear(self):
        set_project_context("proj_1")
        set_agent_context("writer", step="section_0003")
        assert get_context().as_dict() == {
            "project_id": "proj_1", "agent": "writer", "step": "section_0003",
        }
        clear_context()
        assert get_context().project_id is None


class TestFormatters:
    def test_json_includes_context(self):
        set_project_context("proj_1")
        entry = json.loads(JsonFormatter().format(_record()))
        assert entry["message"] == "hello"
        assert entry["level"] == "INFO"
        assert entry["context"] == {"project_id": "proj_1"}

    def test_json_includes_extra_data(self):
        record = _record()
        record.data = {"section": 3}
        assert json.loads(JsonFormatter().format(record))["data"] == {"section": 3}

    def test_text_includes_context(self):
        set_project_context("proj_1")
        set_agent_context("writer", step="section_0001")
        line = TextFormatter().format(_record("generated"))
        assert "<proj_1>" in line
        assert "[writer]" in line
        assert "(section_0001)" in line
        assert line.endswith(": generated")


class TestSetup:
    def test_parse_size(self):
        assert parse_size("10MB") == 10 * 1024 * 1024
        assert parse_size("512 kb") == 512 * 1024
        with pytest.raises(ValueError):
            parse_size("ten")

    def test_get_logger_namespace(self):
        assert get_logger("worker").name == "docforge.worker"

    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "logs" / "docforge.log"
        setup_logging(level="DEBUG", log_format="json", log_file=log_file)
        try:
            logging.getLogger("docforge.test").info("written to file")
            for handler in logging.getLogger("docforge").handlers:
                handler.flush()
            line = log_file.read_text(encoding="utf-8").strip().splitlines()[-1]
            assert json.loads(line)["message"] == "written to file"
        finally:
            root = logging.getLogger("docforge")
            for handler in list(root.handlers):
                handler.close()
            root.handlers.clear()
