"""
Nest cloud endpoints and request plumbing

Holds the host names of the production and field test environments and a
single `send_request` used by the auth flow, camera discovery, property
toggles and cue point polling.

No retries: a failed call raises an httpx exception which callers report
through `handle_error` and then move on.
"""
import logging
from typing import Any, Dict, Optional, Union
from urllib.parse import urlencode

import httpx

logger = logging.getLogger(__name__)

API_TIMEOUT_SECONDS = 10.0

USER_AGENT_STRING = "Nest/5.69.0 (iOScom.nestlabs.jasper.release) os=14.0"

# Transport errors that are expected while the cloud or network is flapping
TRANSIENT_ERRORS = (httpx.ConnectError, httpx.ReadError, httpx.RemoteProtocolError, httpx.TimeoutException)


class NestApiError(Exception):
    """Raised when the cloud answers with a payload we cannot use."""
    pass


class NestEndpoints:
    """
    Host names and HTTP access for the Nest cloud.

    Args:
        field_test: Use the field test (pre-release) environment
        http_client: Optional shared httpx AsyncClient (one is created per
            request if not provided)
    """

    def __init__(self, field_test: bool = False, http_client: Optional[httpx.AsyncClient] = None):
        self.field_test = field_test
        self.http_client = http_client

        if field_test:
            self.CAMERA_API_HOSTNAME = "https://webapi.camera.home.ft.nest.com"
            self.NEST_API_HOSTNAME = "https://home.ft.nest.com"
        else:
            self.CAMERA_API_HOSTNAME = "https://webapi.camera.home.nest.com"
            self.NEST_API_HOSTNAME = "https://home.nest.com"

    def build_headers(self, access_token: Optional[str], method: str) -> Dict[str, str]:
        """Headers sent with every cloud request."""
        headers = {
            "User-Agent": USER_AGENT_STRING,
            "Referer": self.NEST_API_HOSTNAME,
        }
        if method.upper() == "POST":
            headers["Content-Type"] = "application/x-www-form-urlencoded"
        if access_token:
            headers["Authorization"] = f"Basic {access_token}"
        return headers

    async def send_request(
        self,
        access_token: Optional[str],
        hostname: str,
        endpoint: str,
        method: str = "GET",
        response_type: str = "json",
        data: Optional[Union[str, Dict[str, Any]]] = None,
    ) -> Any:
        """
        Send one request to the Nest cloud.

        Args:
            access_token: Nest JWT (omitted from headers when None)
            hostname: Scheme and host, e.g. CAMERA_API_HOSTNAME
            endpoint: Path including any query string
            method: HTTP method
            response_type: "json", "text" or "bytes"
            data: Form body; dicts are url-encoded

        Returns:
            Decoded response body

        Raises:
            httpx.HTTPStatusError: Non-2xx response
            httpx.RequestError: Transport failure
        """
        url = f"{hostname}{endpoint}"
        headers = self.build_headers(access_token, method)
        content = urlencode(data) if isinstance(data, dict) else data

        logger.debug(
            f"Nest request {method} {endpoint}",
            extra={"method": method, "host": hostname}
        )

        client = self.http_client or httpx.AsyncClient(timeout=API_TIMEOUT_SECONDS)
        should_close_client = self.http_client is None

        try:
            response = await client.request(
                method,
                url,
                headers=headers,
                content=content,
                timeout=API_TIMEOUT_SECONDS,
            )
            response.raise_for_status()

            if response_type == "json":
                return response.json()
            if response_type == "text":
                return response.text
            return response.content
        finally:
            if should_close_client:
                await client.aclose()


def handle_error(log: logging.Logger, error: Exception, message: str, debug: bool = False) -> None:
    """
    Report a cloud error as a single log line.

    Server errors, 404s and transient connection failures go to debug level
    when `debug` is set, since they clear up on the next poll. Everything
    else is logged as an error.

    Args:
        log: Logger of the calling module
        error: Exception raised by send_request or while handling its result
        message: Context prefix, e.g. "Error checking alerts"
        debug: Downgrade expected transient failures to debug level
    """
    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        err_msg = f"{message}: {status}"
        if debug and (status >= 500 or status == 404):
            log.debug(err_msg, extra={"status_code": status})
        else:
            log.error(err_msg, extra={"status_code": status})
    elif isinstance(error, httpx.RequestError):
        err_msg = f"{message}: {type(error).__name__}"
        if debug and isinstance(error, TRANSIENT_ERRORS):
            log.debug(err_msg, extra={"error_type": type(error).__name__})
        else:
            log.error(err_msg, extra={"error_type": type(error).__name__})
    else:
        log.error(f"{message}: {error}", extra={"error_type": type(error).__name__})
