"""
HTTP Response Mock Factories

Factory functions building real httpx.Response objects bound to a request,
so raise_for_status() and error classification behave as in production.
"""
from typing import Any, Dict, List, Optional, Union
from unittest.mock import AsyncMock

import httpx


def create_http_response(
    status_code: int = 200,
    json_data: Optional[Union[Dict[str, Any], List[Any]]] = None,
    content: Optional[bytes] = None,
    headers: Optional[Dict[str, str]] = None,
    request_url: str = "https://webapi.camera.home.nest.com/endpoint",
    request_method: str = "GET",
) -> httpx.Response:
    """
    Create an HTTP response.

    Args:
        status_code: HTTP status code
        json_data: JSON response data (will be serialized)
        content: Raw response content (mutually exclusive with json_data)
        headers: Response headers
        request_url: URL of the original request
        request_method: HTTP method of the original request

    Returns:
        httpx.Response with its request attached
    """
    request = httpx.Request(request_method, request_url)
    if json_data is not None:
        return httpx.Response(status_code, json=json_data, headers=headers, request=request)
    return httpx.Response(status_code, content=content or b"", headers=headers, request=request)


def create_json_response(
    data: Union[Dict[str, Any], List[Any]],
    status_code: int = 200,
    request_method: str = "GET",
) -> httpx.Response:
    """Convenience wrapper for create_http_response with JSON data."""
    return create_http_response(
        status_code=status_code,
        json_data=data,
        request_method=request_method,
    )


def create_error_response(
    status_code: int = 500,
    error_message: str = "Internal Server Error",
) -> httpx.Response:
    """Create an error response carrying a JSON error body."""
    return create_http_response(
        status_code=status_code,
        json_data={"error": error_message},
    )


def create_transport_error(
    error_class: type = httpx.ConnectError,
    message: str = "Connection refused",
) -> httpx.RequestError:
    """Create a transport-level httpx error bound to a request."""
    return error_class(message, request=httpx.Request("GET", "https://webapi.camera.home.nest.com"))


def create_mock_client(
    response: Optional[httpx.Response] = None,
    side_effect: Any = None,
) -> AsyncMock:
    """
    Create an AsyncMock httpx client.

    request(), get() and post() all return `response` (or apply
    `side_effect`).
    """
    client = AsyncMock(spec=httpx.AsyncClient)
    for method in (client.request, client.get, client.post):
        if side_effect is not None:
            method.side_effect = side_effect
        else:
            method.return_value = response
    return client
