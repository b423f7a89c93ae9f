"""
Request logging middleware

Tags each request with a request_id (taken from the configuration UI's
X-Request-ID header when it sends a usable one), logs start and completion
with timing, and echoes the id back in the response headers.
"""
import logging
import re
import time
import uuid
from typing import Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from nestcam.core.logging_config import clear_request_id, set_request_id

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Ids supplied by clients end up in every log line of the request
_CLIENT_REQUEST_ID = re.compile(r"^[A-Za-z0-9._-]{8,64}$")


def resolve_request_id(header_value: Optional[str]) -> str:
    """Client supplied id if it is safe to log, otherwise a fresh UUID."""
    if header_value and _CLIENT_REQUEST_ID.match(header_value):
        return header_value
    return str(uuid.uuid4())


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs every HTTP request with timing and a correlation id.

    Each UI bridge call (auth, structures, cameras) fans out into several
    cloud requests; they all share the request's id in the logs. Request
    bodies are never logged since the auth body carries Google cookies.
    """

    # Not logged at all
    EXCLUDED_PATHS = {'/health', '/docs', '/redoc', '/openapi.json'}

    # The configuration UI polls these; logged at DEBUG
    QUIET_PATH_SUFFIXES = ('/homekit/status', '/homekit/cameras')

    def _success_level(self, path: str) -> int:
        return logging.DEBUG if path.endswith(self.QUIET_PATH_SUFFIXES) else logging.INFO

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        token = set_request_id(request_id)
        request.state.request_id = request_id

        start_time = time.perf_counter()
        method = request.method
        path = request.url.path
        client_host = request.client.host if request.client else "unknown"
        should_log = path not in self.EXCLUDED_PATHS

        if should_log:
            logger.log(
                self._success_level(path),
                f"{method} {path} started",
                extra={
                    "event_type": "request_start",
                    "method": method,
                    "path": path,
                    "client_ip": client_host,
                }
            )

        try:
            response = await call_next(request)
            response_time_ms = round((time.perf_counter() - start_time) * 1000, 2)
            response.headers[REQUEST_ID_HEADER] = request_id

            if should_log:
                if response.status_code >= 500:
                    log_level = logging.ERROR
                elif response.status_code >= 400:
                    log_level = logging.WARNING
                else:
                    log_level = self._success_level(path)

                logger.log(
                    log_level,
                    f"{method} {path} -> {response.status_code} in {response_time_ms}ms",
                    extra={
                        "event_type": "request_complete",
                        "method": method,
                        "path": path,
                        "status_code": response.status_code,
                        "response_time_ms": response_time_ms,
                    }
                )

            return response

        except Exception as e:
            logger.error(
                f"{method} {path} failed: {type(e).__name__}",
                extra={
                    "event_type": "request_error",
                    "method": method,
                    "path": path,
                    "response_time_ms": round((time.perf_counter() - start_time) * 1000, 2),
                    "error_type": type(e).__name__,
                },
                exc_info=True
            )
            raise

        finally:
            clear_request_id(token)
