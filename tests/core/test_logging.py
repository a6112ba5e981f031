"""Tests for videoracle.core.logging module."""

from __future__ import annotations

import json
import logging

import pytest

from videoracle.core.logging import (
    CallLogger,
    JSONFormatter,
    StandardFormatter,
    configure_logging,
    correlation_context,
    generate_correlation_id,
    get_correlation_id,
    set_correlation_id,
)


@pytest.fixture
def restore_root_logger():
    """Put the root logger back the way it was."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield root
    root.handlers = handlers
    root.setLevel(level)


def _record(msg: str = "hello", level: int = logging.INFO) -> logging.LogRecord:
    return logging.LogRecord("videoracle.test", level, __file__, 10, msg, None, None)


# ============================================================================
# Correlation ID Tests
# ============================================================================


class TestCorrelationId:
    def test_default_none(self):
        set_correlation_id(None)
        assert get_correlation_id() is None

    def test_set_and_get(self):
        set_correlation_id("test-correlation-123")
        assert get_correlation_id() == "test-correlation-123"
        set_correlation_id(None)

    def test_generate_unique(self):
        id1 = generate_correlation_id()
        id2 = generate_correlation_id()
        assert id1 != id2
        assert len(id1) == 32

    def test_context_generates_and_restores(self):
        set_correlation_id(None)
        with correlation_context() as cid:
            assert get_correlation_id() == cid
        assert get_correlation_id() is None

    def test_context_uses_given_id(self):
        with correlation_context("fixed-id") as cid:
            assert cid == "fixed-id"
            assert get_correlation_id() == "fixed-id"


# ============================================================================
# Formatter Tests
# ============================================================================


class TestJSONFormatter:
    def test_basic_fields(self):
        data = json.loads(JSONFormatter().format(_record()))
        assert data["level"] == "INFO"
        assert data["logger"] == "videoracle.test"
        assert data["message"] == "hello"
        assert "source" not in data

    def test_includes_correlation_id(self):
        with correlation_context("cid-1"):
            data = json.loads(JSONFormatter().format(_record()))
        assert data["correlation_id"] == "cid-1"

    def test_warning_has_source(self):
        data = json.loads(JSONFormatter().format(_record(level=logging.WARNING)))
        assert data["source"]["line"] == 10

    def test_extra_data(self):
        record = _record()
        record.extra_data = {"operation": "submit_proof"}
        data = json.loads(JSONFormatter().format(record))
        assert data["extra"] == {"operation": "submit_proof"}


class TestStandardFormatter:
    def test_prefixes_short_correlation_id(self):
        formatter = StandardFormatter(use_colors=False)
        with correlation_context("abcdef123456"):
            line = formatter.format(_record())
        assert "[abcdef12] hello" in line

    def test_does_not_mutate_record(self):
        record = _record()
        with correlation_context("abcdef123456"):
            StandardFormatter(use_colors=False).format(record)
        assert record.msg == "hello"


# ============================================================================
# configure_logging
# ============================================================================


class TestConfigureLogging:
    def test_json_handler(self, clean_env, restore_root_logger):
        configure_logging(level="DEBUG", json_format=True)
        root = restore_root_logger
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)

    def test_text_from_config(self, clean_env, restore_root_logger, monkeypatch):
        monkeypatch.setenv("VIDEORACLE_LOG_FORMAT", "text")
        monkeypatch.setenv("VIDEORACLE_LOG_LEVEL", "WARNING")
        configure_logging()
        root = restore_root_logger
        assert root.level == logging.WARNING
        assert isinstance(root.handlers[0].formatter, StandardFormatter)

    def test_log_file_gets_json(self, clean_env, restore_root_logger, tmp_path):
        log_file = tmp_path / "videoracle.log"
        configure_logging(level="INFO", json_format=False, log_file=str(log_file))
        root = restore_root_logger
        assert len(root.handlers) == 2
        assert isinstance(root.handlers[1].formatter, JSONFormatter)
        for handler in root.handlers[1:]:
            handler.close()


# ============================================================================
# CallLogger
# ============================================================================


class TestCallLogger:
    def test_truncates_long_text(self):
        logger = CallLogger()
        data = logger._truncate({"reason": "x" * 500, "nested": ["y" * 300], "stake": 5})
        assert data["reason"] == "x" * 200 + "..."
        assert data["nested"][0] == "y" * 200 + "..."
        assert data["stake"] == 5

    def test_log_call(self, caplog):
        logger = CallLogger(logging.getLogger("videoracle.calls.test"))
        with caplog.at_level(logging.DEBUG, logger="videoracle.calls.test"):
            logger.log_call("submit_proof", "alice", {"request_id": 1})
        assert "Call: submit_proof by alice" in caplog.text
        assert caplog.records[0].extra_data["arguments"] == {"request_id": 1}

    def test_log_result_failure(self, caplog):
        logger = CallLogger(logging.getLogger("videoracle.calls.test"))
        with caplog.at_level(logging.DEBUG, logger="videoracle.calls.test"):
            logger.log_result("upvote_proof", False, 1.5, "DuplicateVote")
        assert "Result: upvote_proof -> failure (DuplicateVote) (1.5ms)" in caplog.text
