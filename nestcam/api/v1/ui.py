"""
Configuration UI endpoints

Backs the companion configuration UI:
- POST /api/v1/ui/auth - Exchange issue token and cookies for an access token
- GET /api/v1/ui/structures - List the account's structures
- GET /api/v1/ui/cameras - List the account's cameras

The read endpoints return null until an auth request has succeeded.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from nestcam.schemas.camera import CameraInfo, Structure
from nestcam.services.ui_server import UiServer, get_ui_server

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ui", tags=["ui"])


class AuthRequest(BaseModel):
    """Credentials captured from a signed-in Nest web session."""
    issue_token: str = Field(..., alias="issueToken", description="issueToken URL from the Google iframe request")
    cookies: str = Field(..., description="Cookie header sent with that request")

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "issueToken": "https://accounts.google.com/o/oauth2/iframerpc?action=issueToken&...",
                "cookies": "OCAK=...; SID=...; HSID=...",
            }
        },
    )


@router.post("/auth", response_model=bool)
async def authenticate(request: AuthRequest, ui_server: UiServer = Depends(get_ui_server)):
    """
    Exchange UI credentials for a Nest access token.

    Returns:
        true if the token was obtained, false otherwise
    """
    return await ui_server.handle_auth_request(request.issue_token, request.cookies)


@router.get("/structures", response_model=Optional[List[Structure]])
async def list_structures(ui_server: UiServer = Depends(get_ui_server)):
    """Deduplicated structures of the account's cameras; null when not authenticated."""
    return await ui_server.handle_structure_request()


@router.get("/cameras", response_model=Optional[List[CameraInfo]])
async def list_cameras(ui_server: UiServer = Depends(get_ui_server)):
    """Camera descriptors of the account; null when not authenticated."""
    return await ui_server.handle_cameras_request()
