"""
Tests for HomeKit API endpoints

Tests cover:
- HomeKit status endpoint
- Bridged camera state endpoint
- Error handling
- Schema validation
"""
from unittest.mock import MagicMock, patch

import pytest
from pydantic import ValidationError

from nestcam.api.v1.homekit import CameraStateResponse, HomeKitStatusResponse
from nestcam.services.homekit_service import HomekitStatus


class TestHomeKitSchemas:
    """Tests for HomeKit API Pydantic schemas."""

    def test_status_response_schema(self):
        response = HomeKitStatusResponse(
            enabled=True,
            running=True,
            paired=False,
            accessory_count=2,
            bridge_name="Nest Cam Bridge",
            setup_code="031-45-154",
            port=51826,
        )

        assert response.polling_count == 0
        assert response.error is None

    def test_status_response_requires_fields(self):
        with pytest.raises(ValidationError):
            HomeKitStatusResponse(enabled=True)

    def test_camera_state_defaults(self):
        state = CameraStateResponse(
            uuid="cam-1",
            name="Front Door",
            motion_detected=False,
            motion_in_progress=False,
            doorbell_rang=False,
            checking_alerts=True,
        )

        assert state.removed is False
        assert state.properties == {}
        assert state.last_event is None


class TestHomeKitEndpoints:

    def test_status(self, client):
        service = MagicMock()
        service.get_status.return_value = HomekitStatus(
            enabled=True,
            running=True,
            paired=False,
            accessory_count=2,
            polling_count=2,
            bridge_name="Nest Cam Bridge",
            setup_code="031-45-154",
            setup_uri="X-HM://0023B6WQLAB1C",
            port=51826,
        )
        with patch("nestcam.api.v1.homekit.get_homekit_service", return_value=service):
            response = client.get("/api/v1/homekit/status")

        assert response.status_code == 200
        body = response.json()
        assert body["running"] is True
        assert body["accessory_count"] == 2
        assert body["setup_code"] == "031-45-154"
        assert body["setup_uri"] == "X-HM://0023B6WQLAB1C"

    def test_status_failure_returns_500(self, client):
        service = MagicMock()
        service.get_status.side_effect = RuntimeError("driver gone")
        with patch("nestcam.api.v1.homekit.get_homekit_service", return_value=service):
            response = client.get("/api/v1/homekit/status")

        assert response.status_code == 500
        assert "driver gone" in response.json()["detail"]

    def test_cameras(self, client):
        service = MagicMock()
        service.get_camera_states.return_value = [{
            "uuid": "cam-1",
            "name": "Front Door",
            "motion_detected": True,
            "motion_in_progress": True,
            "doorbell_rang": False,
            "checking_alerts": True,
            "removed": False,
            "properties": {"streaming.enabled": True},
            "last_event": {"event": "motion-detected", "value": True, "timestamp": "2025-12-14T10:00:00+00:00"},
        }]
        with patch("nestcam.api.v1.homekit.get_homekit_service", return_value=service):
            response = client.get("/api/v1/homekit/cameras")

        assert response.status_code == 200
        body = response.json()
        assert body[0]["uuid"] == "cam-1"
        assert body[0]["last_event"]["event"] == "motion-detected"

    def test_cameras_empty_when_not_running(self, client):
        service = MagicMock()
        service.get_camera_states.return_value = []
        with patch("nestcam.api.v1.homekit.get_homekit_service", return_value=service):
            response = client.get("/api/v1/homekit/cameras")

        assert response.json() == []
