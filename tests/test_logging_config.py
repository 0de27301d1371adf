"""Test logging setup and contextual fields.

Tests for repair_harness.logging_config:
    - Human lines carry context fields (page=..., case=...)
    - JSON lines are parseable and carry context fields
    - setup_logging() is idempotent and writes to a file
    - push_context / pop_context / log_context / case_context

Run:
    pytest tests/test_logging_config.py -v
"""

import json
import logging
import logging.handlers

import pytest

from repair_harness.logging_config import (
    ContextFormatter,
    case_context,
    get_context,
    log_context,
    pop_context,
    push_context,
    setup_logging,
)


@pytest.fixture()
def restore_root():
    """Put the root logger back the way pytest configured it."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        if handler not in handlers:
            handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
    pop_context()


def make_record(msg: str = "Case started", level: int = logging.INFO) -> logging.LogRecord:
    return logging.LogRecord("repair_harness.test", level, __file__, 1, msg, None, None)


class TestFormatter:
    def test_human_with_context(self):
        fmt = ContextFormatter("human", use_color=False)
        with log_context(page="index"), case_context("top center"):
            line = fmt.format(make_record())
        assert "| INFO     | page=index case=top center | Case started" in line

    def test_human_without_context(self):
        line = ContextFormatter("human", use_color=False).format(make_record("plain"))
        assert line.endswith("| INFO     | plain")

    def test_json(self):
        fmt = ContextFormatter("json")
        with case_context("thin"):
            entry = json.loads(fmt.format(make_record("hello", logging.ERROR)))
        assert entry["lvl"] == "ERROR"
        assert entry["case"] == "thin"
        assert entry["msg"] == "hello"

    def test_unknown_mode(self):
        with pytest.raises(ValueError):
            ContextFormatter("xml")


class TestContext:
    def test_push_pop(self):
        push_context(page="shape1", case="a")
        assert get_context() == {"page": "shape1", "case": "a"}
        pop_context(["case"])
        assert get_context() == {"page": "shape1"}
        pop_context()
        assert get_context() == {}

    def test_case_context_restores(self):
        with log_context(page="index"):
            with case_context("x"):
                assert get_context() == {"page": "index", "case": "x"}
            assert get_context() == {"page": "index"}
        assert get_context() == {}


class TestSetup:
    def test_file_logging(self, tmp_path, restore_root):
        log_file = tmp_path / "logs" / "run.log"
        handlers = setup_logging("INFO", str(log_file), to_stderr=False, capture_warnings=False)
        logging.getLogger("repair_harness.test").info("written to file")
        for handler in handlers:
            handler.flush()
        assert "written to file" in log_file.read_text()

    def test_idempotent(self, tmp_path, restore_root):
        first = setup_logging("INFO", str(tmp_path / "a.log"), to_stderr=False, capture_warnings=False)
        second = setup_logging("DEBUG", str(tmp_path / "b.log"), to_stderr=False, capture_warnings=False)
        root = restore_root
        assert first[0] not in root.handlers
        assert second[0] in root.handlers
        assert root.level == logging.DEBUG

    def test_rotating_handler(self, tmp_path, restore_root):
        handlers = setup_logging(
            "INFO", str(tmp_path / "r.log"), to_stderr=False,
            rotate={"max_bytes": 1000, "backup_count": 2},
        )
        assert isinstance(handlers[0], logging.handlers.RotatingFileHandler)

    def test_unknown_level(self, restore_root):
        with pytest.raises(ValueError):
            setup_logging("LOUD", to_stderr=False)
