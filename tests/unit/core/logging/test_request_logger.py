"""
Tests for RequestLogger.
"""

import json
import logging
from logging.handlers import RotatingFileHandler

import pytest

from omni_request.core.logging.config import LogFormat, LoggingConfig, LogLevel
from omni_request.core.logging.filters import clear_correlation_id, set_correlation_id
from omni_request.core.logging.logger import DEFAULT_LOGGER_NAME, OWNER_ATTR, RequestLogger
from omni_request.utils.sanitizer import MASK


def read_records(path):
    with open(path, encoding="utf-8") as f:
        return [json.loads(line) for line in f if line.strip()]


def own_handlers(logger):
    """Handlers installed by RequestLogger, ignoring pytest capture handlers."""
    return [h for h in logger._logger.handlers if getattr(h, OWNER_ATTR, False)]


@pytest.fixture
def file_logger(logging_config_with_file):
    logger = RequestLogger(logging_config_with_file, name="omni_request.tests")
    yield logger
    logger.close()
    clear_correlation_id()


class TestRequestLoggerSetup:
    """Tests for logger construction."""

    def test_defaults(self):
        logger = RequestLogger()
        try:
            assert logger.name == DEFAULT_LOGGER_NAME
            assert logger.config.level == LogLevel.INFO
            assert logger.config.format == LogFormat.TEXT
            assert logger._logger.propagate is False
        finally:
            logger.close()

    def test_level_applied(self):
        logger = RequestLogger(LoggingConfig.create(level="WARNING"), name="omni_request.level")
        try:
            assert logger._logger.level == logging.WARNING
        finally:
            logger.close()

    def test_console_only(self):
        logger = RequestLogger(LoggingConfig.create(), name="omni_request.console")
        try:
            own = own_handlers(logger)
            assert len(own) == 1
            assert type(own[0]) is logging.StreamHandler
        finally:
            logger.close()

    def test_file_handler(self, file_logger):
        own = own_handlers(file_logger)
        assert len(own) == 1
        assert isinstance(own[0], RotatingFileHandler)

    def test_reinit_replaces_handlers(self):
        first = RequestLogger(LoggingConfig.create(), name="omni_request.reinit")
        second = RequestLogger(LoggingConfig.create(), name="omni_request.reinit")
        try:
            assert len(own_handlers(second)) == 1
        finally:
            second.close()
            first.close()

    def test_close_idempotent(self):
        logger = RequestLogger(LoggingConfig.create(), name="omni_request.close")
        logger.close()
        logger.close()

        assert logger.closed is True
        assert own_handlers(logger) == []

    def test_foreign_handlers_untouched(self):
        """Test close and re-init only remove handlers the logger installed."""
        foreign = logging.NullHandler()
        logging.getLogger("omni_request.foreign").addHandler(foreign)
        try:
            first = RequestLogger(LoggingConfig.create(), name="omni_request.foreign")
            second = RequestLogger(LoggingConfig.create(), name="omni_request.foreign")
            first.close()
            second.close()

            assert logging.getLogger("omni_request.foreign").handlers.count(foreign) == 1
        finally:
            logging.getLogger("omni_request.foreign").removeHandler(foreign)

    def test_context_manager(self):
        with RequestLogger(LoggingConfig.create(), name="omni_request.ctx") as logger:
            assert not logger.closed
        assert logger.closed


class TestRequestLoggerEvents:
    """Tests for lifecycle events written as JSON."""

    def test_request_started(self, file_logger, logging_config_with_file):
        file_logger.request_started("GET", "https://api.example.com/users", "xhr", abort_id="users")

        record = read_records(logging_config_with_file.file_path)[0]
        assert record["message"] == "Request started"
        assert record["method"] == "GET"
        assert record["transport"] == "xhr"
        assert record["abort_id"] == "users"
        assert "headers" not in record

    def test_request_started_masks_url(self, file_logger, logging_config_with_file):
        file_logger.request_started("GET", "https://u:p@api.example.com/x?token=abc&page=1", "fetch")

        record = read_records(logging_config_with_file.file_path)[0]
        assert "abc" not in record["url"]
        assert ":p@" not in record["url"]
        assert "page=1" in record["url"]

    def test_headers_logged_when_enabled(self, tmp_path):
        path = tmp_path / "headers.log"
        config = LoggingConfig.create(
            level="DEBUG", format="json", enable_console=False,
            enable_file=True, file_path=str(path), log_headers=True,
        )
        with RequestLogger(config, name="omni_request.headers") as logger:
            logger.request_started(
                "GET", "https://api.example.com", "xhr",
                headers={"Authorization": "Bearer secret", "Accept": "*/*"},
            )

        record = read_records(path)[0]
        assert record["headers"] == {"Authorization": MASK, "Accept": "*/*"}

    def test_request_completed_success(self, file_logger, logging_config_with_file):
        file_logger.request_completed("GET", "https://api.example.com", 200, 12.3456)

        record = read_records(logging_config_with_file.file_path)[0]
        assert record["level"] == "INFO"
        assert record["message"] == "Request completed"
        assert record["status"] == 200
        assert record["duration_ms"] == 12.35

    def test_request_completed_failure_is_warning(self, file_logger, logging_config_with_file):
        file_logger.request_completed("GET", "https://api.example.com", 404, 5)

        record = read_records(logging_config_with_file.file_path)[0]
        assert record["level"] == "WARNING"
        assert record["message"] == "Request failed"

    def test_slow_request_warning(self, tmp_path):
        path = tmp_path / "slow.log"
        config = LoggingConfig.create(
            format="json", enable_console=False, enable_file=True,
            file_path=str(path), slow_request_ms=100,
        )
        with RequestLogger(config, name="omni_request.slow") as logger:
            logger.request_completed("GET", "https://api.example.com", 200, 250)
            logger.request_completed("GET", "https://api.example.com", 200, 50)

        messages = [r["message"] for r in read_records(path)]
        assert messages == ["Request completed", "Slow request", "Request completed"]

    def test_request_aborted(self, file_logger, logging_config_with_file):
        file_logger.request_aborted("POST", "https://api.example.com/upload", "upload")

        record = read_records(logging_config_with_file.file_path)[0]
        assert record["message"] == "Request aborted"
        assert record["abort_id"] == "upload"

    def test_transport_error(self, file_logger, logging_config_with_file):
        file_logger.transport_error("GET", "https://api.example.com", ConnectionError("refused"), 3)

        record = read_records(logging_config_with_file.file_path)[0]
        assert record["level"] == "ERROR"
        assert record["error_type"] == "ConnectionError"
        assert record["error"] == "refused"

    def test_sensitive_extra_masked(self, file_logger, logging_config_with_file):
        file_logger.info("Custom", password="hunter2", user="alice")

        record = read_records(logging_config_with_file.file_path)[0]
        assert record["password"] == MASK
        assert record["user"] == "alice"

    def test_correlation_id(self, file_logger, logging_config_with_file):
        set_correlation_id("req-777")
        file_logger.info("Tagged")

        record = read_records(logging_config_with_file.file_path)[0]
        assert record["correlation_id"] == "req-777"

    def test_extra_fields(self, tmp_path):
        path = tmp_path / "extra.log"
        config = LoggingConfig.create(
            format="json", enable_console=False, enable_file=True,
            file_path=str(path), extra_fields={"service": "billing"},
        )
        with RequestLogger(config, name="omni_request.extra") as logger:
            logger.info("Hello")

        assert read_records(path)[0]["service"] == "billing"
