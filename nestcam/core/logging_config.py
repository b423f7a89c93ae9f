"""
Structured JSON logging for the bridge

Every record is written as one JSON object to the console, a rotating
app.log and an error-only error.log. Two context variables tag records
without threading ids through call signatures:

- request_id: set by RequestLoggingMiddleware for each UI/API request
- camera_id: set around a camera's poll cycle or property change, so cloud
  errors logged deep in the HTTP layer still name the camera

Camera names and cloud error bodies are user controlled, so CR/LF are
flattened before a record reaches a handler.
"""
import contextvars
import logging
import logging.handlers
import os
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator, Optional

from pythonjsonlogger import jsonlogger

from nestcam.core.config import settings

request_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    'request_id', default=None
)
camera_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    'camera_id', default=None
)

# Set by setup_logging(app_version=...)
APP_VERSION = "1.0.0"

DEFAULT_LOG_DIR = os.path.join('data', 'logs')

# Cloud error bodies can be whole HTML pages
MAX_LOG_VALUE_LENGTH = 2000

# (filename, level or None for the configured level, max bytes, backups)
LOG_FILES = (
    ('app.log', None, 20 * 1024 * 1024, 5),
    ('error.log', logging.ERROR, 5 * 1024 * 1024, 3),
)

NOISY_LOGGERS = ('uvicorn.access', 'httpx', 'httpcore', 'pyhap', 'zeroconf')


def _flatten(value: str) -> str:
    return value.replace('\r\n', ' ').replace('\n', ' ').replace('\r', ' ')


class LogContextFilter(logging.Filter):
    """Copies request_id and camera_id from the current context onto the record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get() or "-"
        # An explicit extra={"camera_id": ...} wins over the context
        if not getattr(record, 'camera_id', None):
            record.camera_id = camera_id_var.get()
        return True


class SanitizingFilter(logging.Filter):
    """Flattens CR/LF in the message and its string arguments."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = _flatten(record.msg)

        if isinstance(record.args, tuple):
            record.args = tuple(
                _flatten(arg) if isinstance(arg, str) else arg
                for arg in record.args
            )
        elif isinstance(record.args, dict):
            record.args = {
                key: _flatten(arg) if isinstance(arg, str) else arg
                for key, arg in record.args.items()
            }

        return True


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter adding the bridge's standard fields.

    Output format:
    {
        "timestamp": "2025-11-23T10:30:00.000000+00:00",
        "level": "INFO",
        "message": "Set property 'streaming.enabled' for Front Door to True",
        "logger": "nestcam.services.nest_cam",
        "version": "1.0.0",
        "request_id": "-",
        "camera_id": "a1b2c3",
        "event_type": "property_set",
        ...other extra fields...
    }

    camera_id and event_type are only present when known.
    """

    def add_fields(
        self,
        log_record: dict,
        record: logging.LogRecord,
        message_dict: dict
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        if not log_record.get('timestamp'):
            log_record['timestamp'] = datetime.fromtimestamp(record.created, timezone.utc).isoformat()

        log_record['level'] = record.levelname
        log_record['logger'] = record.name
        log_record['version'] = APP_VERSION
        log_record['request_id'] = getattr(record, 'request_id', '-')

        if log_record.get('camera_id') is None:
            log_record.pop('camera_id', None)
        if log_record.get('event_type') is None:
            log_record.pop('event_type', None)

        # Source location only matters for warnings and worse
        if record.levelno >= logging.WARNING:
            log_record['location'] = f"{record.module}:{record.lineno}"

        if 'message' not in log_record:
            log_record['message'] = record.getMessage()


def _configure_handler(handler: logging.Handler, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    handler.addFilter(LogContextFilter())
    handler.addFilter(SanitizingFilter())
    return handler


def setup_logging(
    log_level: Optional[str] = None,
    log_dir: Optional[str] = None,
    app_version: Optional[str] = None
) -> logging.Logger:
    """
    Configure the root logger with JSON console and rotating file output.

    Args:
        log_level: Override log level (default from settings.LOG_LEVEL)
        log_dir: Override log directory (default settings.LOG_DIR, then data/logs)
        app_version: Version stamped on every record

    Returns:
        The configured root logger
    """
    global APP_VERSION

    level = getattr(logging, (log_level or settings.LOG_LEVEL).upper(), logging.INFO)
    directory = log_dir or settings.LOG_DIR or DEFAULT_LOG_DIR
    if app_version:
        APP_VERSION = app_version

    os.makedirs(directory, exist_ok=True)

    json_formatter = CustomJsonFormatter('%(timestamp)s %(level)s %(name)s %(message)s')

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    root_logger.addHandler(_configure_handler(logging.StreamHandler(), level, json_formatter))

    for filename, file_level, max_bytes, backups in LOG_FILES:
        file_handler = logging.handlers.RotatingFileHandler(
            os.path.join(directory, filename),
            maxBytes=max_bytes,
            backupCount=backups,
            encoding='utf-8'
        )
        root_logger.addHandler(_configure_handler(file_handler, file_level or level, json_formatter))

    # pyhap logs every characteristic write at INFO
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger by name (typically __name__ of the calling module)."""
    return logging.getLogger(name)


def set_request_id(request_id: Optional[str]) -> contextvars.Token:
    """
    Set the request ID for the current context.

    Returns:
        Token that can be used to reset the context
    """
    return request_id_var.set(request_id)


def get_request_id() -> Optional[str]:
    return request_id_var.get()


def clear_request_id(token: contextvars.Token) -> None:
    """Reset the request ID using the token from set_request_id."""
    request_id_var.reset(token)


@contextmanager
def camera_log_context(camera_id: str) -> Iterator[None]:
    """
    Tag every record logged inside the block with camera_id.

    Example:
        >>> with camera_log_context(cam.info.uuid):
        ...     await cam.endpoints.send_request(...)
    """
    token = camera_id_var.set(camera_id)
    try:
        yield
    finally:
        camera_id_var.reset(token)


def sanitize_log_value(value: Any) -> str:
    """
    Make a value safe to embed in a log message.

    CR/LF are flattened and anything longer than MAX_LOG_VALUE_LENGTH
    is truncated.
    """
    sanitized = _flatten(value if isinstance(value, str) else str(value))
    if len(sanitized) > MAX_LOG_VALUE_LENGTH:
        sanitized = sanitized[:MAX_LOG_VALUE_LENGTH] + '...[truncated]'
    return sanitized
