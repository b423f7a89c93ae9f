"""
Mock Factories Package

Provides factory functions for creating realistic mock objects
that match httpx types and Nest cloud response structures.
"""
from tests.mocks.http_mocks import (
    create_http_response,
    create_json_response,
    create_error_response,
    create_transport_error,
    create_mock_client,
)

__all__ = [
    "create_http_response",
    "create_json_response",
    "create_error_response",
    "create_transport_error",
    "create_mock_client",
]
