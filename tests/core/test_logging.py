"""Tests for open_e2ee.core.logging module."""

from __future__ import annotations

import json
import logging

import pytest

from open_e2ee.core.logging import (
    JSONFormatter,
    OperationLogger,
    StandardFormatter,
    configure_logging,
    correlation_context,
    generate_correlation_id,
    get_correlation_id,
    log_operation,
    sanitize,
    set_correlation_id,
)


def _record(msg: str = "hello", level: int = logging.INFO) -> logging.LogRecord:
    return logging.LogRecord("open_e2ee.test", level, __file__, 10, msg, None, None)


# ============================================================================
# Correlation ID Tests
# ============================================================================


class TestCorrelationId:
    """Tests for correlation ID functionality."""

    def test_default_none(self):
        set_correlation_id(None)
        assert get_correlation_id() is None

    def test_generate_unique(self):
        id1 = generate_correlation_id()
        assert id1 != generate_correlation_id()
        assert len(id1) == 36

    def test_context_generates_and_resets(self):
        set_correlation_id(None)
        with correlation_context() as cid:
            assert get_correlation_id() == cid
        assert get_correlation_id() is None

    def test_context_uses_provided_id(self):
        with correlation_context("my-id") as cid:
            assert cid == "my-id"

    def test_nested_context_reuses_outer_id(self):
        set_correlation_id(None)
        with correlation_context() as outer:
            with correlation_context() as inner:
                assert inner == outer


# ============================================================================
# Formatter Tests
# ============================================================================


class TestJSONFormatter:
    """Tests for JSONFormatter."""

    def test_basic_fields(self):
        set_correlation_id(None)
        data = json.loads(JSONFormatter().format(_record()))
        assert data["level"] == "INFO"
        assert data["logger"] == "open_e2ee.test"
        assert data["message"] == "hello"
        assert "correlation_id" not in data
        assert "source" not in data

    def test_includes_correlation_id(self):
        with correlation_context("abc-123"):
            data = json.loads(JSONFormatter().format(_record()))
        assert data["correlation_id"] == "abc-123"

    def test_warning_includes_source(self):
        data = json.loads(JSONFormatter().format(_record(level=logging.WARNING)))
        assert data["source"]["line"] == 10

    def test_extra_data(self):
        record = _record()
        record.extra_data = {"operation": "encrypt"}
        data = json.loads(JSONFormatter().format(record))
        assert data["extra"] == {"operation": "encrypt"}


class TestStandardFormatter:
    """Tests for StandardFormatter."""

    def test_prefixes_short_correlation_id(self):
        formatter = StandardFormatter(use_colors=False)
        with correlation_context("12345678-aaaa"):
            output = formatter.format(_record())
        assert "[12345678] hello" in output

    def test_does_not_mutate_record(self):
        record = _record()
        with correlation_context("12345678-aaaa"):
            StandardFormatter(use_colors=False).format(record)
        assert record.msg == "hello"


class TestConfigureLogging:
    """Tests for configure_logging."""

    @pytest.fixture(autouse=True)
    def restore_root(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        root.handlers = handlers
        root.setLevel(level)

    def test_json_handler(self, clean_env):
        configure_logging(level="DEBUG", json_format=True)
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)

    def test_format_from_env(self, clean_env, monkeypatch):
        monkeypatch.setenv("OPEN_E2EE_LOG_FORMAT", "text")
        configure_logging()
        assert isinstance(logging.getLogger().handlers[0].formatter, StandardFormatter)

    def test_log_file(self, clean_env, tmp_path):
        log_file = tmp_path / "e2ee.log"
        configure_logging(level="INFO", json_format=False, log_file=str(log_file))
        handlers = logging.getLogger().handlers
        assert len(handlers) == 2
        assert isinstance(handlers[1].formatter, JSONFormatter)
        handlers[1].close()


# ============================================================================
# Sanitization Tests
# ============================================================================


class TestSanitize:
    """Tests for parameter sanitization."""

    def test_redacts_sensitive_keys(self):
        result = sanitize({"passphrase": "hunter2", "session_key": "ab", "data": "secret", "user_id": "alice"})
        assert result == {
            "passphrase": "[REDACTED]",
            "session_key": "[REDACTED]",
            "data": "[REDACTED]",
            "user_id": "alice",
        }

    def test_keeps_fingerprints_and_counts(self):
        result = sanitize({"fingerprint": "f00d", "key_fingerprint": "beef", "verification_key_count": 2})
        assert result == {"fingerprint": "f00d", "key_fingerprint": "beef", "verification_key_count": 2}

    def test_nested(self):
        result = sanitize({"outer": [{"password": "x"}, {"ok": 1}]})
        assert result == {"outer": [{"password": "[REDACTED]"}, {"ok": 1}]}

    def test_truncates_long_strings(self):
        result = sanitize({"note": "x" * 300})
        assert result["note"] == "x" * 200 + "..."


class TestOperationLogger:
    """Tests for OperationLogger and log_operation."""

    def test_log_call_sanitizes(self, caplog):
        logger = OperationLogger(logging.getLogger("test.ops"))
        with caplog.at_level(logging.DEBUG, logger="test.ops"):
            logger.log_call("load", {"passphrase": "hunter2", "user_id": "alice"})

        record = caplog.records[0]
        assert record.extra_data["arguments"] == {"passphrase": "[REDACTED]", "user_id": "alice"}
        assert "hunter2" not in caplog.text

    def test_failure_logged_at_warning(self, caplog):
        logger = OperationLogger(logging.getLogger("test.ops"))
        with caplog.at_level(logging.DEBUG, logger="test.ops"):
            logger.log_result("decrypt", success=False, duration_ms=1.5, error="bad tag")

        record = caplog.records[0]
        assert record.levelno == logging.WARNING
        assert "decrypt -> failure (1.5ms): bad tag" in record.getMessage()

    def test_log_operation_success(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="open_e2ee.operations"):
            with log_operation("encrypt", fingerprint="f00d") as cid:
                assert get_correlation_id() == cid

        messages = [r.getMessage() for r in caplog.records]
        assert messages[0] == "Operation start: encrypt"
        assert messages[1].startswith("Operation result: encrypt -> success")

    def test_log_operation_reraises(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="open_e2ee.operations"):
            with pytest.raises(ValueError, match="boom"):
                with log_operation("share"):
                    raise ValueError("boom")

        assert caplog.records[-1].levelno == logging.WARNING
        assert "boom" in caplog.records[-1].getMessage()
