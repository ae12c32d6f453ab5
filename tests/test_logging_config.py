"""Tests for structured logging configuration."""

from __future__ import annotations

import json
import logging
import sys

from tracker.logging_config import JSONFormatter, get_logger, log_context, setup_logging


def _record(msg="hello %s", args=("world",), level=logging.INFO, exc_info=None):
    return logging.LogRecord(
        name="test", level=level, pathname="test.py",
        lineno=1, msg=msg, args=args, exc_info=exc_info
    )


def test_json_formatter_outputs_valid_json():
    parsed = json.loads(JSONFormatter().format(_record()))
    assert parsed["message"] == "hello world"
    assert parsed["level"] == "INFO"
    assert parsed["logger"] == "test"
    assert "timestamp" in parsed
    assert "context" not in parsed


def test_json_formatter_includes_exception():
    try:
        raise ValueError("test error")
    except ValueError:
        exc_info = sys.exc_info()
    parsed = json.loads(JSONFormatter().format(_record("fail", (), logging.ERROR, exc_info)))
    assert parsed["exception"]["type"] == "ValueError"
    assert parsed["exception"]["message"] == "test error"


def test_json_formatter_collects_context_fields():
    record = _record("assignment created", ())
    record.ctx_assignment_id = 42
    record.ctx_group_code = "AB12C"
    record.unrelated = "skip me"
    parsed = json.loads(JSONFormatter().format(record))
    assert parsed["context"] == {"ctx_assignment_id": 42, "ctx_group_code": "AB12C"}


def test_get_logger_returns_named_logger():
    log = get_logger("my.module")
    assert log.name == "my.module"
    assert isinstance(log, logging.Logger)


def test_setup_logging_idempotent():
    root = logging.getLogger()
    initial_count = len(root.handlers)
    setup_logging()
    setup_logging()
    # Should not add duplicate handlers
    assert len(root.handlers) <= initial_count + 1


def test_json_formatter_tags_service_and_env():
    parsed = json.loads(JSONFormatter(env="staging").format(_record()))
    assert parsed["service"] == "test-tracker"
    assert parsed["env"] == "staging"
    assert "env" not in json.loads(JSONFormatter().format(_record()))


def test_log_context_prefixes_and_drops_none():
    assert log_context(assignment_id=7, group_code=None, attempts=0) == {"ctx_assignment_id": 7, "ctx_attempts": 0}
