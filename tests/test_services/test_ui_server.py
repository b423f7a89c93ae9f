"""
Unit tests for the configuration UI bridge

Tests cover:
- Platform config generation and field test detection
- Auth success and failure (access token dropped on failure)
- Structure and camera queries before and after auth
"""
from unittest.mock import AsyncMock, patch

import pytest

from nestcam.services.ui_server import UiServer
from tests.conftest import make_camera_info

ISSUE_TOKEN = "https://accounts.google.com/o/oauth2/iframerpc?action=issueToken&origin=https%3A%2F%2Fhome.nest.com"
FT_ISSUE_TOKEN = "https://accounts.google.com/o/oauth2/iframerpc?action=issueToken&origin=https%3A%2F%2Fhome.ft.nest.com"


class TestGenerateConfig:

    def test_none_without_tokens(self):
        server = UiServer()

        assert server.generate_config() is None

        server.access_token = "jwt"
        assert server.generate_config() is None

    def test_production_config(self):
        server = UiServer()
        server.access_token = "jwt"
        server.issue_token = ISSUE_TOKEN

        config = server.generate_config()

        assert config.platform == "Nest-cam"
        assert config.access_token == "jwt"
        assert config.field_test is False

    def test_field_test_config(self):
        server = UiServer()
        server.access_token = "jwt"
        server.issue_token = FT_ISSUE_TOKEN

        assert server.generate_config().field_test is True


class TestAuthRequest:

    @pytest.mark.asyncio
    async def test_success_stores_tokens(self):
        server = UiServer()
        with patch("nestcam.services.ui_server.auth", AsyncMock(return_value="jwt")) as mock_auth:
            assert await server.handle_auth_request(FT_ISSUE_TOKEN, "SID=1") is True

        mock_auth.assert_awaited_once_with(FT_ISSUE_TOKEN, "SID=1", True)
        assert server.access_token == "jwt"
        assert server.issue_token == FT_ISSUE_TOKEN

    @pytest.mark.asyncio
    async def test_failure_drops_access_token(self):
        server = UiServer()
        with patch("nestcam.services.ui_server.auth", AsyncMock(return_value="jwt-1")):
            assert await server.handle_auth_request(ISSUE_TOKEN, "SID=1") is True

        with patch("nestcam.services.ui_server.auth", AsyncMock(return_value=None)):
            assert await server.handle_auth_request(FT_ISSUE_TOKEN, "SID=2") is False

        assert server.access_token is None
        assert server.issue_token == ISSUE_TOKEN
        assert server.generate_config() is None

    @pytest.mark.asyncio
    async def test_queries_stop_after_failed_reauth(self):
        server = UiServer()
        server.access_token = "jwt-1"
        server.issue_token = ISSUE_TOKEN

        with patch("nestcam.services.ui_server.auth", AsyncMock(return_value="")), \
                patch("nestcam.services.ui_server.get_cameras", AsyncMock()) as mock_get:
            await server.handle_auth_request(ISSUE_TOKEN, "SID=2")
            assert await server.handle_cameras_request() is None

        assert server.access_token is None
        mock_get.assert_not_awaited()


class TestQueries:

    @pytest.fixture
    def authenticated(self):
        server = UiServer()
        server.access_token = "jwt"
        server.issue_token = ISSUE_TOKEN
        return server

    @pytest.mark.asyncio
    async def test_unauthenticated_queries_return_none(self):
        server = UiServer()
        with patch("nestcam.services.ui_server.get_cameras", AsyncMock()) as mock_get:
            assert await server.handle_structure_request() is None
            assert await server.handle_cameras_request() is None

        mock_get.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_structures_are_deduplicated(self, authenticated):
        cameras = [
            make_camera_info(uuid="a", nest_structure_id="structure.home-1", nest_structure_name="Home"),
            make_camera_info(uuid="b", nest_structure_id="structure.home-1", nest_structure_name="Home"),
        ]
        with patch("nestcam.services.ui_server.get_cameras", AsyncMock(return_value=cameras)):
            structures = await authenticated.handle_structure_request()

        assert len(structures) == 1
        assert structures[0].id == "home-1"

    @pytest.mark.asyncio
    async def test_cameras_fetched_with_session_config(self, authenticated):
        cameras = [make_camera_info()]
        with patch("nestcam.services.ui_server.get_cameras", AsyncMock(return_value=cameras)) as mock_get:
            result = await authenticated.handle_cameras_request()

        assert result == cameras
        config = mock_get.await_args.args[0]
        assert config.access_token == "jwt"
        assert config.field_test is False
