"""
Nest account connection: token exchange and camera discovery

auth():
    issue token + Google cookies
        -> GET issue token URL            -> Google OAuth access token
        -> POST issue_jwt (auth proxy)    -> Nest JWT (the access token)

get_cameras():
    GET cameras.get_owned_and_member_of_with_properties -> CameraInfo list
"""
import logging
from typing import List, Optional

import httpx
from pydantic import ValidationError

from nestcam.config.nest import NestConfig
from nestcam.core.logging_config import sanitize_log_value
from nestcam.schemas.camera import CameraInfo
from nestcam.services.nest_endpoints import (
    API_TIMEOUT_SECONDS,
    USER_AGENT_STRING,
    NestApiError,
    NestEndpoints,
    handle_error,
)

logger = logging.getLogger(__name__)

ISSUE_JWT_URL = "https://nestauthproxyservice-pa.googleapis.com/v1/issue_jwt"
GOOGLE_IFRAME_REFERER = "https://accounts.google.com/o/oauth2/iframe"
JWT_EXPIRE_AFTER = "3600s"
JWT_POLICY_ID = "authproxy-oauth-policy"

CAMERAS_ENDPOINT = "/api/cameras.get_owned_and_member_of_with_properties"


async def _get_google_access_token(client: httpx.AsyncClient, issue_token: str, cookies: str) -> str:
    """Exchange the issue token and browser cookies for a Google access token."""
    response = await client.get(
        issue_token,
        headers={
            "Sec-Fetch-Mode": "cors",
            "User-Agent": USER_AGENT_STRING,
            "X-Requested-With": "XmlHttpRequest",
            "Referer": GOOGLE_IFRAME_REFERER,
            "cookie": cookies,
        },
        timeout=API_TIMEOUT_SECONDS,
    )
    response.raise_for_status()
    result = response.json()

    if result.get("error"):
        logger.error(
            "Google authentication was unsuccessful. Make sure you did not log out "
            "of your Google account after getting your googleAuth parameters.",
            extra={"error": sanitize_log_value(result.get("error"))}
        )
        raise NestApiError(f"Google authentication failed: {result.get('error')}")

    access_token = result.get("access_token")
    if not access_token:
        raise NestApiError("Google response did not include an access token")
    return access_token


async def _issue_jwt(client: httpx.AsyncClient, google_access_token: str, field_test: bool) -> str:
    """Trade a Google access token for a Nest JWT."""
    endpoints = NestEndpoints(field_test)
    response = await client.post(
        ISSUE_JWT_URL,
        json={
            "embed_google_oauth_access_token": True,
            "expire_after": JWT_EXPIRE_AFTER,
            "google_oauth_access_token": google_access_token,
            "policy_id": JWT_POLICY_ID,
        },
        headers={
            "Authorization": f"Bearer {google_access_token}",
            "User-Agent": USER_AGENT_STRING,
            "Referer": endpoints.NEST_API_HOSTNAME,
        },
        timeout=API_TIMEOUT_SECONDS,
    )
    response.raise_for_status()
    jwt = response.json().get("jwt")
    if not jwt:
        raise NestApiError("issue_jwt response did not include a jwt")
    return jwt


async def auth(
    issue_token: str,
    cookies: str,
    field_test: bool = False,
    http_client: Optional[httpx.AsyncClient] = None,
) -> Optional[str]:
    """
    Obtain a Nest access token from Google issue token and cookies.

    Args:
        issue_token: The issueToken URL captured from the Nest web login
        cookies: The cookie header captured alongside it
        field_test: Whether the account lives in the field test environment
        http_client: Optional httpx AsyncClient

    Returns:
        Nest JWT, or None if any step failed (the failure is logged)
    """
    client = http_client or httpx.AsyncClient(timeout=API_TIMEOUT_SECONDS)
    should_close_client = http_client is None

    try:
        google_access_token = await _get_google_access_token(client, issue_token, cookies)
        jwt = await _issue_jwt(client, google_access_token, field_test)
        logger.info(
            "Nest authentication successful",
            extra={"event_type": "nest_auth_success", "field_test": field_test}
        )
        return jwt
    except (httpx.HTTPError, NestApiError, ValueError) as e:
        handle_error(logger, e, "Error authenticating Nest account")
        return None
    finally:
        if should_close_client:
            await client.aclose()


async def get_cameras(config: NestConfig, http_client: Optional[httpx.AsyncClient] = None) -> List[CameraInfo]:
    """
    Fetch every camera the account owns or is a member of.

    Args:
        config: Platform config carrying the access token
        http_client: Optional httpx AsyncClient

    Returns:
        Camera descriptors, or an empty list if the request failed (logged)
    """
    endpoints = NestEndpoints(config.field_test, http_client=http_client)
    try:
        response = await endpoints.send_request(
            config.access_token,
            endpoints.CAMERA_API_HOSTNAME,
            CAMERAS_ENDPOINT,
            "GET",
        )
        items = response.get("items") if isinstance(response, dict) else None
        if items is None:
            raise NestApiError("camera list response did not include items")

        cameras = [CameraInfo.model_validate(item) for item in items]
        logger.debug(
            f"Fetched {len(cameras)} cameras",
            extra={"camera_count": len(cameras)}
        )
        return cameras
    except (httpx.HTTPError, NestApiError, ValidationError, ValueError) as e:
        handle_error(logger, e, "Error fetching cameras")
        return []


def filter_cameras_by_structure(cameras: List[CameraInfo], structures: List[str]) -> List[CameraInfo]:
    """Keep the cameras whose structure id is listed; an empty list keeps all."""
    if not structures:
        return list(cameras)
    return [camera for camera in cameras if camera.structure_id in structures]
