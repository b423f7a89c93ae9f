"""
Shared pytest fixtures for API tests.

Each test gets a fresh UiServer so authentication state does not leak
between tests.
"""
import pytest
from fastapi.testclient import TestClient

from main import app
from nestcam.services.ui_server import UiServer, get_ui_server


@pytest.fixture
def ui_server():
    return UiServer()


@pytest.fixture
def client(ui_server):
    """TestClient with the UI session dependency overridden (lifespan not run)."""
    app.dependency_overrides[get_ui_server] = lambda: ui_server
    yield TestClient(app)
    app.dependency_overrides.pop(get_ui_server, None)
