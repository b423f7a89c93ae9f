"""
HomeKit bridge for Nest cameras

Runs the HAP-python accessory server and wires one NestCam poller to each
camera accessory on the bridge.

    start(cameras)
        AccessoryDriver + Bridge
        for each camera (filtered by configured structures):
            CameraAccessory  -> added to the bridge
            NestCam          -> alert polling on the application event loop
        driver thread started

Switch setters are invoked from the driver thread; they schedule the
matching NestCam toggle on the application loop.

Cameras are re-discovered every camera_refresh_rate seconds. A camera that
is no longer on the account is marked removed and its polling stops; it is
restored if it comes back. New cameras are picked up on the next start.
"""
import asyncio
import base64
import io
import json
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import qrcode
from pyhap.accessory import Bridge
from pyhap.accessory_driver import AccessoryDriver

from nestcam.config.homekit import (
    HOMEKIT_CATEGORY_BRIDGE,
    HomekitConfig,
    generate_pincode,
    generate_setup_id,
    generate_setup_uri,
    get_homekit_config,
)
from nestcam.config.nest import NestConfig, get_nest_config
from nestcam.schemas.camera import CameraInfo
from nestcam.services.connection import filter_cameras_by_structure, get_cameras
from nestcam.services.homekit_accessories import (
    SWITCH_AUDIO,
    SWITCH_CHIME,
    SWITCH_STREAMING,
    CameraAccessory,
)
from nestcam.services.nest_cam import NestCam, NestCamEvents

logger = logging.getLogger(__name__)


@dataclass
class HomekitStatus:
    """Status information for the HomeKit bridge."""
    enabled: bool = False
    running: bool = False
    paired: bool = False
    accessory_count: int = 0
    polling_count: int = 0
    bridge_name: str = "Nest Cam Bridge"
    setup_code: Optional[str] = None
    setup_uri: Optional[str] = None
    qr_code_data: Optional[str] = None
    port: int = 51826
    error: Optional[str] = None


class HomekitService:
    """
    HomeKit accessory server for Nest cameras.

    Lifecycle:
        1. Initialize with configuration
        2. Call start() with the camera descriptors from get_cameras()
        3. NestCam pollers drive motion and doorbell characteristics
        4. Call stop() on shutdown

    Example:
        >>> service = HomekitService()
        >>> await service.start(cameras)
        >>> service.get_camera_states()
        >>> await service.stop()
    """

    def __init__(self, config: Optional[HomekitConfig] = None, nest_config: Optional[NestConfig] = None):
        self.config = config or get_homekit_config()
        self.nest_config = nest_config or get_nest_config()
        self._driver: Optional[AccessoryDriver] = None
        self._bridge: Optional[Bridge] = None
        self._accessories: Dict[str, CameraAccessory] = {}
        self._cams: Dict[str, NestCam] = {}
        self._last_events: Dict[str, Dict[str, Any]] = {}
        self._running = False
        self._driver_thread: Optional[threading.Thread] = None
        self._refresh_task: Optional[asyncio.Task] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._pincode: Optional[str] = None
        self._setup_id: Optional[str] = None
        self._error: Optional[str] = None

    @property
    def is_running(self) -> bool:
        """Check if the accessory server is running."""
        return self._running and self._driver is not None

    @property
    def is_paired(self) -> bool:
        """Check if the bridge is paired with a Home app."""
        if not self._driver:
            return False
        try:
            state_file = Path(self.config.persist_file)
            if state_file.exists():
                with open(state_file, 'r') as f:
                    state_data = json.load(f)
                return len(state_data.get('paired_clients', [])) > 0
            return False
        except (OSError, ValueError):
            return False

    @property
    def accessory_count(self) -> int:
        return len(self._accessories)

    @property
    def cams(self) -> Dict[str, NestCam]:
        return self._cams

    @property
    def pincode(self) -> str:
        """Get the HomeKit pairing code."""
        if self._pincode:
            return self._pincode
        self._pincode = self.config.pincode or generate_pincode()
        return self._pincode

    @property
    def setup_id(self) -> str:
        if not self._setup_id:
            self._setup_id = generate_setup_id()
        return self._setup_id

    def get_setup_uri(self) -> str:
        """
        Get the X-HM:// Setup URI for QR code pairing.

        Returns:
            URI encoding the setup code, bridge category and setup ID
        """
        return generate_setup_uri(
            setup_code=self.pincode,
            setup_id=self.setup_id,
            category=HOMEKIT_CATEGORY_BRIDGE
        )

    def get_qr_code_data(self) -> Optional[str]:
        """
        Render the Setup URI as a QR code.

        Returns:
            PNG data URI, or None if rendering failed
        """
        try:
            qr = qrcode.QRCode(
                version=1,
                error_correction=qrcode.constants.ERROR_CORRECT_M,
                box_size=10,
                border=4,
            )
            qr.add_data(self.get_setup_uri())
            qr.make(fit=True)

            img = qr.make_image(fill_color="black", back_color="white")

            buffer = io.BytesIO()
            img.save(buffer, format='PNG')
            img_data = base64.b64encode(buffer.getvalue()).decode('utf-8')

            return f"data:image/png;base64,{img_data}"

        except Exception as e:
            logger.error(f"Failed to generate QR code: {e}")
            return None

    def get_status(self) -> HomekitStatus:
        """
        Get current bridge status.

        Setup code, URI and QR code are hidden once the bridge is paired.
        """
        is_paired = self.is_paired
        return HomekitStatus(
            enabled=self.config.enabled,
            running=self.is_running,
            paired=is_paired,
            accessory_count=self.accessory_count,
            polling_count=sum(1 for cam in self._cams.values() if cam.is_checking_alerts),
            bridge_name=self.config.bridge_name,
            setup_code=self.pincode if not is_paired else None,
            setup_uri=self.get_setup_uri() if not is_paired else None,
            qr_code_data=self.get_qr_code_data() if not is_paired else None,
            port=self.config.port,
            error=self._error,
        )

    def _make_switch_setter(self, camera_id: str) -> Callable[[str], Callable[[Any], None]]:
        """Build the factory CameraAccessory uses to create switch setters."""

        def factory(switch_name: str) -> Callable[[Any], None]:
            def setter(value: Any) -> None:
                cam = self._cams.get(camera_id)
                if cam is None or self._loop is None:
                    logger.warning(
                        f"Switch {switch_name} set before camera {camera_id} was ready",
                        extra={"camera_id": camera_id}
                    )
                    return

                toggle = {
                    SWITCH_STREAMING: cam.toggle_active,
                    SWITCH_CHIME: cam.toggle_chime,
                    SWITCH_AUDIO: cam.toggle_audio,
                }[switch_name]
                asyncio.run_coroutine_threadsafe(toggle(bool(value)), self._loop)

            return setter

        return factory

    def _record_event(self, camera_id: str, event: NestCamEvents) -> Callable[..., None]:
        def listener(*args: Any) -> None:
            self._last_events[camera_id] = {
                "event": event.value,
                "value": args[0] if args else None,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        return listener

    def _add_camera(self, info: CameraInfo) -> None:
        accessory = CameraAccessory(
            driver=self._driver,
            info=info,
            options=self.nest_config.options,
            manufacturer=self.config.manufacturer,
            switch_setter=self._make_switch_setter(info.uuid),
        )
        cam = NestCam(self.nest_config, info, accessory)
        for event in NestCamEvents:
            cam.on(event, self._record_event(info.uuid, event))

        self._accessories[info.uuid] = accessory
        self._cams[info.uuid] = cam
        self._bridge.add_accessory(accessory.accessory)
        logger.info(
            f"Added HomeKit accessory for camera: {info.name}",
            extra={"camera_id": info.uuid, "services": accessory.service_names}
        )

    async def start(self, cameras: List[CameraInfo]) -> bool:
        """
        Start the HomeKit accessory server.

        Args:
            cameras: Camera descriptors to expose

        Returns:
            True if started successfully, False otherwise
        """
        if not self.config.enabled:
            logger.info("HomeKit integration is disabled")
            return False

        if self._running:
            logger.warning("HomeKit service already running")
            return True

        try:
            logger.info("Starting HomeKit bridge initialization")
            self.config.ensure_persist_dir()
            self._loop = asyncio.get_running_loop()

            driver_kwargs = {
                "port": self.config.port,
                "persist_file": self.config.persist_file,
                "pincode": self.pincode.encode('utf-8'),
            }
            bind_address = self.config.bind_address
            if bind_address and bind_address != "0.0.0.0":
                driver_kwargs["address"] = bind_address
                logger.info(
                    f"HomeKit HAP server binding to specific address: {bind_address}",
                    extra={"bind_address": bind_address}
                )

            self._driver = AccessoryDriver(**driver_kwargs)
            self._bridge = Bridge(self._driver, self.config.bridge_name)

            selected = filter_cameras_by_structure(cameras, self.nest_config.options.structures)
            for info in selected:
                self._add_camera(info)

            self._driver.add_accessory(self._bridge)

            self._driver_thread = threading.Thread(
                target=self._run_driver,
                name="homekit-driver",
                daemon=True
            )
            self._driver_thread.start()

            options = self.nest_config.options
            if options.motion_detection or options.doorbell_alerts:
                for cam in self._cams.values():
                    cam.start_alert_checks(options.alert_check_rate)

            if options.camera_refresh_rate > 0:
                self._refresh_task = self._loop.create_task(
                    self._refresh_loop(options.camera_refresh_rate),
                    name="homekit_camera_refresh"
                )

            self._running = True
            self._error = None

            logger.info(
                f"HomeKit accessory server started on port {self.config.port} "
                f"with {len(self._accessories)} cameras",
                extra={
                    "port": self.config.port,
                    "camera_count": len(self._accessories),
                    "skipped_count": len(cameras) - len(selected),
                }
            )
            return True

        except Exception as e:
            self._error = str(e)
            logger.error(f"Failed to start HomeKit service: {e}", exc_info=True)
            return False

    def _run_driver(self) -> None:
        """Run the accessory driver in a separate thread."""
        try:
            self._driver.start()
        except Exception as e:
            self._error = str(e)
            logger.error(f"HomeKit driver error: {e}", exc_info=True)
            self._running = False

    async def stop(self) -> None:
        """Stop polling and the accessory server."""
        if not self._running:
            return

        logger.info("Stopping HomeKit accessory server")

        try:
            if self._refresh_task and not self._refresh_task.done():
                self._refresh_task.cancel()
            self._refresh_task = None

            for cam in self._cams.values():
                cam.stop_alert_checks()

            if self._driver:
                self._driver.stop()

            if self._driver_thread:
                self._driver_thread.join(timeout=5.0)

            self._running = False
            self._driver = None
            self._bridge = None
            self._accessories.clear()
            self._cams.clear()
            self._last_events.clear()

            logger.info("HomeKit accessory server stopped")

        except Exception as e:
            logger.error(f"Error stopping HomeKit service: {e}", exc_info=True)

    def remove_camera(self, camera_id: str) -> bool:
        """
        Mark a camera as removed from the account; its poller stops checking.

        Returns:
            True if the camera was known
        """
        cam = self._cams.get(camera_id)
        if cam is None:
            return False
        cam.removed = True
        cam.stop_alert_checks()
        logger.info(f"Removed camera: {cam.name}", extra={"camera_id": camera_id})
        return True

    def _restore_camera(self, camera_id: str) -> None:
        cam = self._cams[camera_id]
        cam.removed = False
        options = self.nest_config.options
        if options.motion_detection or options.doorbell_alerts:
            cam.start_alert_checks(options.alert_check_rate)
        logger.info(f"Camera is back on the account: {cam.name}", extra={"camera_id": camera_id})

    async def refresh_cameras(self) -> int:
        """
        Re-discover the account's cameras and reconcile the bridge.

        Bridged cameras missing from the result are marked removed; removed
        cameras that reappear are restored. An empty result is treated as a
        failed fetch and changes nothing.

        Returns:
            Number of cameras marked removed by this refresh
        """
        cameras = await get_cameras(self.nest_config)
        if not cameras:
            logger.warning("Camera refresh returned no cameras, keeping current state")
            return 0

        found = {info.uuid for info in cameras}
        removed = 0
        for camera_id, cam in self._cams.items():
            if camera_id not in found and not cam.removed:
                self.remove_camera(camera_id)
                removed += 1
            elif camera_id in found and cam.removed:
                self._restore_camera(camera_id)

        unknown = [
            info for info in filter_cameras_by_structure(cameras, self.nest_config.options.structures)
            if info.uuid not in self._cams
        ]
        if unknown:
            logger.info(
                f"{len(unknown)} new cameras found; restart to add them to the bridge",
                extra={"camera_ids": [info.uuid for info in unknown]}
            )
        return removed

    async def _refresh_loop(self, interval: float) -> None:
        try:
            while True:
                await asyncio.sleep(interval)
                try:
                    await self.refresh_cameras()
                except Exception as e:
                    logger.error(f"Camera refresh failed: {e}", exc_info=True)
        except asyncio.CancelledError:
            logger.debug("Camera refresh stopped")
            raise

    def get_camera_states(self) -> List[Dict[str, Any]]:
        """State of every camera on the bridge, with the last emitted event."""
        states = []
        for camera_id, cam in self._cams.items():
            state = cam.get_state()
            state["removed"] = cam.removed
            state["last_event"] = self._last_events.get(camera_id)
            states.append(state)
        return states


# Global service instance
_homekit_service: Optional[HomekitService] = None


def get_homekit_service() -> HomekitService:
    """
    Get the global HomeKit service instance.

    Creates the instance on first call.
    """
    global _homekit_service
    if _homekit_service is None:
        _homekit_service = HomekitService()
    return _homekit_service


async def shutdown_homekit_service() -> None:
    """Stop the HomeKit service."""
    global _homekit_service
    if _homekit_service:
        await _homekit_service.stop()
