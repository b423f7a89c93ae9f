"""
Nest platform configuration

The platform config carries the account credentials (access token, field
test flag) and the per-platform options that shape polling and which
accessory services are exposed.
"""
from dataclasses import dataclass, field
from typing import List, Optional

from nestcam.core.config import settings

PLATFORM_NAME = "Nest-cam"

DEFAULT_ALERT_COOLDOWN_RATE = 180  # seconds
DEFAULT_ALERT_CHECK_RATE = 10  # seconds
DEFAULT_CAMERA_REFRESH_RATE = 600  # seconds

# Issue tokens minted for the field test environment end with the encoded origin
FIELD_TEST_ISSUE_TOKEN_SUFFIX = "https%3A%2F%2Fhome.ft.nest.com"


@dataclass
class NestOptions:
    """
    Platform options.

    Attributes:
        alert_types: Cue point types that raise motion; empty = any important event
        alert_cooldown_rate: Seconds before a repeated alert of the same kind may fire
        alert_check_rate: Seconds between event polls
        structures: Structure ids to expose; empty = all
        camera_refresh_rate: Seconds between camera re-discovery; 0 disables it
        motion_detection: Add a MotionSensor service to every camera
        doorbell_alerts: Add a Doorbell service to doorbell cameras
        doorbell_switch: Add a StatelessProgrammableSwitch to doorbell cameras
        streaming_switch: Add a "Streaming" switch
        chime_switch: Add a "Chime" switch to doorbell cameras
        audio_switch: Add an "Audio" switch
    """
    alert_types: List[str] = field(default_factory=list)
    alert_cooldown_rate: int = DEFAULT_ALERT_COOLDOWN_RATE
    alert_check_rate: int = DEFAULT_ALERT_CHECK_RATE
    structures: List[str] = field(default_factory=list)
    camera_refresh_rate: int = DEFAULT_CAMERA_REFRESH_RATE
    motion_detection: bool = True
    doorbell_alerts: bool = True
    doorbell_switch: bool = True
    streaming_switch: bool = False
    chime_switch: bool = False
    audio_switch: bool = False


@dataclass
class NestConfig:
    """Platform config handed to the cloud client and every NestCam."""
    access_token: Optional[str] = None
    field_test: bool = False
    platform: str = PLATFORM_NAME
    options: NestOptions = field(default_factory=NestOptions)


def is_field_test_token(issue_token: Optional[str]) -> bool:
    """Whether an issue token was minted for the field test environment."""
    return bool(issue_token) and issue_token.endswith(FIELD_TEST_ISSUE_TOKEN_SUFFIX)


def get_nest_config() -> NestConfig:
    """Build the platform config from application settings."""
    return NestConfig(
        access_token=settings.NEST_ACCESS_TOKEN,
        field_test=settings.NEST_FIELD_TEST,
        options=NestOptions(
            alert_types=settings.alert_types_list,
            alert_cooldown_rate=settings.NEST_ALERT_COOLDOWN_RATE,
            alert_check_rate=settings.NEST_ALERT_CHECK_RATE,
            structures=settings.structures_list,
            camera_refresh_rate=settings.NEST_CAMERA_REFRESH_RATE,
            motion_detection=settings.NEST_MOTION_DETECTION,
            doorbell_alerts=settings.NEST_DOORBELL_ALERTS,
            doorbell_switch=settings.NEST_DOORBELL_SWITCH,
            streaming_switch=settings.NEST_STREAMING_SWITCH,
            chime_switch=settings.NEST_CHIME_SWITCH,
            audio_switch=settings.NEST_AUDIO_SWITCH,
        ),
    )
