"""
Configuration UI bridge

Backs the companion configuration UI: exchanges the Google issue token and
cookies for a Nest access token, then answers structure and camera queries
with that token. Nothing is persisted; state lives for the life of the
process.
"""
import logging
from typing import List, Optional

from nestcam.config.nest import PLATFORM_NAME, NestConfig, is_field_test_token
from nestcam.schemas.camera import CameraInfo, Structure, get_structures
from nestcam.services.connection import auth, get_cameras

logger = logging.getLogger(__name__)


class UiServer:
    """
    Holds the tokens of one UI session.

    access_token and issue_token are both None until an auth request
    succeeds. A failed request drops the access token, so queries answer
    None until the next successful auth.
    """

    def __init__(self):
        self.access_token: Optional[str] = None
        self.issue_token: Optional[str] = None

    def generate_config(self) -> Optional[NestConfig]:
        """Platform config for the held tokens, or None if either is missing."""
        if not self.access_token or not self.issue_token:
            return None
        return NestConfig(
            platform=PLATFORM_NAME,
            access_token=self.access_token,
            field_test=is_field_test_token(self.issue_token),
        )

    async def handle_auth_request(self, issue_token: str, cookies: str) -> bool:
        """
        Exchange UI credentials for an access token.

        Returns:
            True if the token was obtained and stored
        """
        self.access_token = await auth(issue_token, cookies, is_field_test_token(issue_token))
        if not self.access_token:
            self.access_token = None
            logger.warning("UI authentication failed", extra={"event_type": "ui_auth_failed"})
            return False

        self.issue_token = issue_token
        logger.info("UI authentication successful", extra={"event_type": "ui_auth_success"})
        return True

    async def handle_structure_request(self) -> Optional[List[Structure]]:
        """Deduplicated structures of the account's cameras, or None if unauthenticated."""
        config = self.generate_config()
        if config is None:
            return None
        cameras = await get_cameras(config)
        return get_structures(cameras)

    async def handle_cameras_request(self) -> Optional[List[CameraInfo]]:
        config = self.generate_config()
        if config is None:
            return None
        return await get_cameras(config)


_ui_server: Optional[UiServer] = None


def get_ui_server() -> UiServer:
    """Get the global UiServer instance, creating it on first call."""
    global _ui_server
    if _ui_server is None:
        _ui_server = UiServer()
    return _ui_server
