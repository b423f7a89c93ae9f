"""Pytest fixtures and configuration for test suite

This module provides:
1. Factory functions for creating camera descriptors and platform configs
2. Lightweight stand-ins for HAP-python services and accessories
3. Pytest fixtures that use the factory functions

Factory Functions:
    - make_camera_info(**overrides) -> CameraInfo
    - make_nest_config(**option_overrides) -> NestConfig
"""
import os
import tempfile
from collections import defaultdict
from unittest.mock import AsyncMock, MagicMock

import pytest

from nestcam.config.homekit import HomekitConfig
from nestcam.config.nest import NestConfig, NestOptions
from nestcam.schemas.camera import CameraInfo
from nestcam.services.homekit_accessories import (
    SERVICE_DOORBELL,
    SERVICE_MOTION_SENSOR,
    SERVICE_PROGRAMMABLE_SWITCH,
    SWITCH_AUDIO,
    SWITCH_CHIME,
    SWITCH_STREAMING,
)
from nestcam.services.nest_endpoints import NestEndpoints


# =============================================================================
# Factory Functions for Test Objects
# =============================================================================

def make_camera_info(
    uuid: str = "cam-uuid-001",
    name: str = "Front Door",
    nest_structure_id: str = "structure.home-1",
    nest_structure_name: str = "Home",
    nexus_api_nest_domain_host: str = "nexusapi-us1.camera.home.nest.com",
    doorbell: bool = False,
    **overrides
) -> CameraInfo:
    """
    Factory function to create CameraInfo instances for testing.

    Args:
        uuid: Camera identifier
        name: Display name
        nest_structure_id: Structure reference with the 'structure.' prefix
        nest_structure_name: Structure display name
        nexus_api_nest_domain_host: Cue point host
        doorbell: Advertise the indoor_chime capability
        **overrides: Any additional CameraInfo fields

    Example:
        camera = make_camera_info(name="Garage", properties={"audio.enabled": True})
    """
    data = {
        "uuid": uuid,
        "name": name,
        "nest_structure_id": nest_structure_id,
        "nest_structure_name": nest_structure_name,
        "nexus_api_nest_domain_host": nexus_api_nest_domain_host,
        "capabilities": ["indoor_chime"] if doorbell else [],
        "properties": {},
    }
    data.update(overrides)
    return CameraInfo.model_validate(data)


def make_nest_config(access_token: str = "test-jwt", field_test: bool = False, **option_overrides) -> NestConfig:
    """Factory function to create a NestConfig with option overrides."""
    return NestConfig(
        access_token=access_token,
        field_test=field_test,
        options=NestOptions(**option_overrides),
    )


# =============================================================================
# HAP stand-ins
# =============================================================================

class FakeService:
    """Service whose characteristics are MagicMocks created on first access."""

    def __init__(self, name: str):
        self.display_name = name
        self.characteristics = defaultdict(MagicMock)

    def get_characteristic(self, name: str) -> MagicMock:
        return self.characteristics[name]


class FakeAccessory:
    """Accessory exposing get_service(name) over a fixed set of services."""

    def __init__(self, *service_names: str):
        self.services = {name: FakeService(name) for name in service_names}

    def get_service(self, name: str):
        return self.services.get(name)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def camera_info():
    return make_camera_info()


@pytest.fixture
def doorbell_info():
    return make_camera_info(uuid="doorbell-uuid-001", name="Doorbell", doorbell=True)


@pytest.fixture
def nest_config():
    return make_nest_config(alert_cooldown_rate=1)


@pytest.fixture
def fake_accessory():
    """Accessory with every service a doorbell camera can carry."""
    return FakeAccessory(
        SERVICE_MOTION_SENSOR,
        SERVICE_DOORBELL,
        SERVICE_PROGRAMMABLE_SWITCH,
        SWITCH_STREAMING,
        SWITCH_CHIME,
        SWITCH_AUDIO,
    )


@pytest.fixture
def mock_endpoints():
    """NestEndpoints with send_request replaced by an AsyncMock."""
    endpoints = NestEndpoints(field_test=False)
    endpoints.send_request = AsyncMock(return_value=[])
    return endpoints


@pytest.fixture
def homekit_config():
    """HomeKit config persisting into a temporary directory."""
    temp_dir = tempfile.mkdtemp()
    return HomekitConfig(
        enabled=True,
        port=51826,
        bridge_name="Test Bridge",
        manufacturer="Nest",
        persist_dir=os.path.join(temp_dir, "homekit"),
        pincode="031-45-154",
    )
