"""
Unit tests for logging configuration
"""
import json
import logging
import os
import tempfile
import uuid

from nestcam.core.logging_config import (
    CustomJsonFormatter,
    LogContextFilter,
    SanitizingFilter,
    camera_log_context,
    clear_request_id,
    get_logger,
    get_request_id,
    sanitize_log_value,
    set_request_id,
    setup_logging,
)


def make_record(msg="Test message", args=(), name="test"):
    return logging.LogRecord(
        name=name,
        level=logging.INFO,
        pathname="test.py",
        lineno=1,
        msg=msg,
        args=args,
        exc_info=None
    )


class TestRequestIdContext:
    """Test request ID context variable functionality"""

    def test_set_and_get_request_id(self):
        test_id = str(uuid.uuid4())
        token = set_request_id(test_id)

        assert get_request_id() == test_id

        clear_request_id(token)

    def test_clear_request_id_resets_context(self):
        original_id = str(uuid.uuid4())
        token1 = set_request_id(original_id)

        token2 = set_request_id(str(uuid.uuid4()))
        clear_request_id(token2)
        assert get_request_id() == original_id

        clear_request_id(token1)


class TestLogContextFilter:
    """Test request and camera context on log records"""

    def test_filter_adds_request_id_to_record(self):
        record = make_record()
        test_id = str(uuid.uuid4())
        token = set_request_id(test_id)

        assert LogContextFilter().filter(record) is True
        assert record.request_id == test_id

        clear_request_id(token)

    def test_filter_uses_dash_when_no_request_id(self):
        record = make_record()
        token = set_request_id(None)

        LogContextFilter().filter(record)

        assert record.request_id == "-"
        clear_request_id(token)

    def test_camera_context_tags_record(self):
        record = make_record()

        with camera_log_context("cam-1"):
            LogContextFilter().filter(record)

        assert record.camera_id == "cam-1"

    def test_camera_context_reset_after_block(self):
        with camera_log_context("cam-1"):
            pass
        record = make_record()

        LogContextFilter().filter(record)

        assert record.camera_id is None

    def test_explicit_camera_id_wins(self):
        record = make_record()
        record.camera_id = "cam-2"

        with camera_log_context("cam-1"):
            LogContextFilter().filter(record)

        assert record.camera_id == "cam-2"


class TestSanitizingFilter:
    """Test log sanitization filter"""

    def test_filter_removes_newlines(self):
        record = make_record("Camera Front\nDoor")

        SanitizingFilter().filter(record)

        assert record.msg == "Camera Front Door"

    def test_filter_sanitizes_args(self):
        record = make_record("Camera: %s", args=("Garage\r\nfake line",))

        SanitizingFilter().filter(record)

        assert "\n" not in record.args[0]


class TestSanitizeLogValue:
    """Test sanitize_log_value helper function"""

    def test_sanitize_removes_newlines(self):
        assert sanitize_log_value("USER_LOGGED\nOUT") == "USER_LOGGED OUT"

    def test_sanitize_truncates_long_strings(self):
        result = sanitize_log_value("a" * 20000)

        assert "[truncated]" in result
        assert len(result) < 20000

    def test_sanitize_handles_non_strings(self):
        assert sanitize_log_value(None) == "None"


class TestCustomJsonFormatter:
    """Test custom JSON log formatter"""

    def test_formatter_produces_valid_json(self):
        record = make_record(name="nestcam.services.nest_cam")
        record.request_id = "test-uuid"

        parsed = json.loads(CustomJsonFormatter().format(record))

        assert "timestamp" in parsed
        assert parsed["level"] == "INFO"
        assert parsed["message"] == "Test message"
        assert parsed["logger"] == "nestcam.services.nest_cam"
        assert parsed["request_id"] == "test-uuid"

    def test_formatter_includes_extra_fields(self):
        record = make_record("Motion detected")
        record.camera_id = "cam-1"
        record.status_code = 502

        parsed = json.loads(CustomJsonFormatter().format(record))

        assert parsed.get("camera_id") == "cam-1"
        assert parsed.get("status_code") == 502

    def test_formatter_drops_unset_camera_fields(self):
        record = make_record()
        LogContextFilter().filter(record)
        record.event_type = None

        parsed = json.loads(CustomJsonFormatter().format(record))

        assert "camera_id" not in parsed
        assert "event_type" not in parsed
        assert parsed["version"]

    def test_location_only_for_warnings(self):
        info = json.loads(CustomJsonFormatter().format(make_record()))

        warning = make_record()
        warning.levelno = logging.WARNING
        warning.levelname = "WARNING"
        parsed = json.loads(CustomJsonFormatter().format(warning))

        assert "location" not in info
        assert parsed["location"] == "test:1"


class TestSetupLogging:
    """Test logging setup function"""

    def test_setup_logging_creates_log_files(self):
        log_dir = tempfile.mkdtemp()

        logger = setup_logging(log_level="INFO", log_dir=log_dir)
        logger.info("written to file")

        assert isinstance(logger, logging.Logger)
        assert os.path.exists(os.path.join(log_dir, "app.log"))
        assert os.path.exists(os.path.join(log_dir, "error.log"))

    def test_setup_logging_respects_log_level(self):
        log_dir = tempfile.mkdtemp()

        setup_logging(log_level="WARNING", log_dir=log_dir)
        assert logging.getLogger().level == logging.WARNING

        setup_logging(log_level="INFO", log_dir=log_dir)

    def test_third_party_loggers_quieted(self):
        setup_logging(log_level="DEBUG", log_dir=tempfile.mkdtemp())

        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("pyhap").level == logging.WARNING

        setup_logging(log_level="INFO", log_dir=tempfile.mkdtemp())


class TestGetLogger:

    def test_get_logger_returns_named_logger(self):
        logger = get_logger("nestcam.test")

        assert logger.name == "nestcam.test"
