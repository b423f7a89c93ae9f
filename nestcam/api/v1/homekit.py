"""
HomeKit API endpoints

- GET /api/v1/homekit/status - Get HomeKit bridge status
- GET /api/v1/homekit/cameras - Get alert state of every bridged camera
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field

from nestcam.services.homekit_service import get_homekit_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/homekit",
    tags=["homekit"]
)


# ============================================================================
# Pydantic Schemas
# ============================================================================


class HomeKitStatusResponse(BaseModel):
    """HomeKit bridge status response."""
    enabled: bool = Field(..., description="Whether HomeKit is enabled in config")
    running: bool = Field(..., description="Whether bridge is currently running")
    paired: bool = Field(..., description="Whether any iOS devices are paired")
    accessory_count: int = Field(..., description="Number of camera accessories in bridge")
    polling_count: int = Field(0, description="Number of cameras polling for alerts")
    bridge_name: str = Field(..., description="Bridge name shown in Apple Home")
    setup_code: Optional[str] = Field(None, description="Pairing code (hidden if paired)")
    setup_uri: Optional[str] = Field(None, description="X-HM:// Setup URI for QR code")
    qr_code_data: Optional[str] = Field(None, description="Base64 PNG QR code for pairing")
    port: int = Field(..., description="HAP server port")
    error: Optional[str] = Field(None, description="Error message if any")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "enabled": True,
                "running": True,
                "paired": False,
                "accessory_count": 2,
                "polling_count": 2,
                "bridge_name": "Nest Cam Bridge",
                "setup_code": "123-45-678",
                "setup_uri": "X-HM://0023B6WQLAB1C",
                "qr_code_data": None,
                "port": 51826,
                "error": None
            }
        }
    )


class CameraEvent(BaseModel):
    """Last notification emitted by a camera."""
    event: str = Field(..., description="Event name, e.g. motion-detected")
    value: Optional[Any] = Field(None, description="Event payload")
    timestamp: Optional[str] = Field(None, description="ISO 8601 time the event was emitted")


class CameraStateResponse(BaseModel):
    """Alert state of one bridged camera."""
    uuid: str
    name: str
    motion_detected: bool = Field(..., description="Motion alert within its cooldown")
    motion_in_progress: bool = Field(..., description="Motion session open")
    doorbell_rang: bool = Field(..., description="Doorbell alert within its cooldown")
    checking_alerts: bool = Field(..., description="Alert polling running")
    removed: bool = False
    properties: Dict[str, Any] = Field(default_factory=dict)
    last_event: Optional[CameraEvent] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "uuid": "5f8e4c2a1b3d4e6f8a9b0c1d2e3f4a5b",
                "name": "Front Door",
                "motion_detected": False,
                "motion_in_progress": False,
                "doorbell_rang": True,
                "checking_alerts": True,
                "removed": False,
                "properties": {"streaming.enabled": True},
                "last_event": {
                    "event": "doorbell-rang",
                    "value": True,
                    "timestamp": "2025-12-14T10:00:00+00:00"
                }
            }
        }
    )


# ============================================================================
# Endpoints
# ============================================================================


@router.get("/status", response_model=HomeKitStatusResponse)
async def get_homekit_status():
    """
    Get HomeKit bridge status.

    Setup code, URI and QR code are hidden once the bridge is paired.
    """
    try:
        service_status = get_homekit_service().get_status()
        return HomeKitStatusResponse(
            enabled=service_status.enabled,
            running=service_status.running,
            paired=service_status.paired,
            accessory_count=service_status.accessory_count,
            polling_count=service_status.polling_count,
            bridge_name=service_status.bridge_name,
            setup_code=service_status.setup_code,
            setup_uri=service_status.setup_uri,
            qr_code_data=service_status.qr_code_data,
            port=service_status.port,
            error=service_status.error,
        )

    except Exception as e:
        logger.error(f"Failed to get HomeKit status: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to get HomeKit status: {str(e)}"
        )


@router.get("/cameras", response_model=List[CameraStateResponse])
async def get_homekit_cameras():
    """Get alert flags, properties and last event of every bridged camera."""
    try:
        return [
            CameraStateResponse(**state)
            for state in get_homekit_service().get_camera_states()
        ]

    except Exception as e:
        logger.error(f"Failed to get HomeKit cameras: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to get HomeKit cameras: {str(e)}"
        )
