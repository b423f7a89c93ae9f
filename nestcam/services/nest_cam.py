"""
Nest camera model

One NestCam per physical camera. It keeps the cached camera descriptor,
exposes the streaming / chime / audio toggles, and runs the alert poll:

    every `interval` seconds
        GET https://<nexus host>/cuepoint/<uuid>/2?start_time=<now - 60s>
            important + "doorbell" and doorbell not active -> ring doorbell
            important + allowed type and motion not active  -> raise motion
            no events while a motion session is open         -> clear motion

Raised alerts set an "active" flag that a cooldown timer clears after
`alert_cooldown_rate` seconds; while it is set the same alert is not raised
again. Every signal updates a characteristic on the camera's HomeKit
accessory and is emitted to registered listeners.
"""
import asyncio
import logging
import time
from collections import defaultdict
from enum import Enum
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlencode

from nestcam.config.nest import NestConfig
from nestcam.core.logging_config import camera_id_var, camera_log_context
from nestcam.schemas.camera import (
    AUDIO_ENABLED,
    INDOOR_CHIME_ENABLED,
    STREAMING_ENABLED,
    CameraInfo,
    CuePoint,
)
from nestcam.services.homekit_accessories import (
    CHAR_MOTION_DETECTED,
    CHAR_ON,
    CHAR_PROGRAMMABLE_SWITCH_EVENT,
    SERVICE_DOORBELL,
    SERVICE_MOTION_SENSOR,
    SERVICE_PROGRAMMABLE_SWITCH,
    SINGLE_PRESS,
    SWITCH_AUDIO,
    SWITCH_CHIME,
    SWITCH_STREAMING,
    update_characteristic,
)
from nestcam.services.nest_endpoints import NestApiError, NestEndpoints, handle_error

logger = logging.getLogger(__name__)

# Cue points are requested from this many seconds in the past
ALERT_WINDOW_SECONDS = 60

SET_PROPERTIES_ENDPOINT = "/api/dropcams.set_properties"
CUEPOINT_ENDPOINT = "/cuepoint/{uuid}/2"

DOORBELL_CUE_TYPE = "doorbell"

MOTION_FLAG = "motion_detected"
DOORBELL_FLAG = "doorbell_rang"


class NestCamEvents(str, Enum):
    """Notifications emitted by a NestCam."""
    CAMERA_STATE_CHANGED = "camera-change"
    CHIME_STATE_CHANGED = "chime-change"
    AUDIO_STATE_CHANGED = "audio-change"
    DOORBELL_RANG = "doorbell-rang"
    MOTION_DETECTED = "motion-detected"


class NestCam:
    """
    A single Nest camera mirrored onto a HomeKit accessory.

    Lifecycle:
        1. Construct with platform config, camera descriptor and accessory
        2. start_alert_checks(interval) from within the running event loop
        3. toggle_* from switch setters, trigger_* from the poll
        4. stop_alert_checks() on shutdown

    Args:
        config: Platform config (access token, field test, options)
        info: Camera descriptor; its property bag is updated in place
        accessory: Object exposing get_service(name) (HAP-python Accessory)
        endpoints: Optional NestEndpoints (created from config if not provided)
    """

    def __init__(
        self,
        config: NestConfig,
        info: CameraInfo,
        accessory: Any,
        endpoints: Optional[NestEndpoints] = None,
    ):
        self.config = config
        self.info = info
        self.accessory = accessory
        self.endpoints = endpoints or NestEndpoints(config.field_test)

        self.alert_types: List[str] = list(config.options.alert_types)
        self.alert_cooldown: float = config.options.alert_cooldown_rate

        # Alert state
        self.motion_detected = False
        self.motion_in_progress = False
        self.doorbell_rang = False

        # Set when the camera disappears from the account; polling is skipped
        self.removed = False

        self._alert_task: Optional[asyncio.Task] = None
        self._cooldown_tasks: Dict[str, asyncio.Task] = {}
        self._listeners: Dict[NestCamEvents, List[Callable[..., None]]] = defaultdict(list)

    @property
    def name(self) -> str:
        return self.info.name

    @property
    def is_checking_alerts(self) -> bool:
        return self._alert_task is not None and not self._alert_task.done()

    # =========================================================================
    # Notifications
    # =========================================================================

    def on(self, event: NestCamEvents, callback: Callable[..., None]) -> None:
        """Register a listener for an event."""
        self._listeners[NestCamEvents(event)].append(callback)

    def emit(self, event: NestCamEvents, *args: Any) -> None:
        """Call every listener of an event; a failing listener does not stop the rest."""
        event = NestCamEvents(event)
        for callback in list(self._listeners.get(event, [])):
            try:
                callback(*args)
            except Exception as e:
                logger.error(
                    f"Listener for {event.value} failed on {self.name}: {e}",
                    exc_info=True,
                    extra={"camera_id": self.info.uuid, "event": event.value}
                )

    # =========================================================================
    # Property toggles
    # =========================================================================

    async def _set_boolean_property(
        self,
        key: str,
        value: bool,
        service_name: str,
        event: Optional[NestCamEvents] = None,
    ) -> bool:
        """
        Set a boolean camera property in the cloud.

        On a zero status the cached property, the switch characteristic
        (if the accessory has the switch) and listeners are updated.
        Anything else leaves state unchanged.

        Returns:
            True if the cloud accepted the change
        """
        query = urlencode({
            key: "true" if value else "false",
            "uuid": self.info.uuid,
        })

        try:
            response = await self.endpoints.send_request(
                self.config.access_token,
                self.endpoints.CAMERA_API_HOSTNAME,
                SET_PROPERTIES_ENDPOINT,
                "POST",
                "json",
                query,
            )

            status = response.get("status") if isinstance(response, dict) else None
            if type(status) is not int or status != 0:
                logger.error(
                    f"Unable to set property '{key}' for {self.name} to {value}",
                    extra={"camera_id": self.info.uuid, "property": key, "status": status}
                )
                return False

            self.info.properties[key] = value
            service = self.accessory.get_service(service_name)
            if service:
                update_characteristic(service, CHAR_ON, value)
            if event:
                self.emit(event, value)

            logger.info(
                f"Set property '{key}' for {self.name} to {value}",
                extra={"camera_id": self.info.uuid, "property": key}
            )
            return True

        except Exception as e:
            handle_error(logger, e, f"Error setting property for {self.name}")
            return False

    async def toggle_active(self, enabled: bool) -> bool:
        """Turn camera streaming on or off."""
        with camera_log_context(self.info.uuid):
            return await self._set_boolean_property(
                STREAMING_ENABLED, enabled, SWITCH_STREAMING, NestCamEvents.CAMERA_STATE_CHANGED
            )

    async def toggle_chime(self, enabled: bool) -> bool:
        """Turn the indoor chime of a doorbell on or off."""
        with camera_log_context(self.info.uuid):
            return await self._set_boolean_property(
                INDOOR_CHIME_ENABLED, enabled, SWITCH_CHIME, NestCamEvents.CHIME_STATE_CHANGED
            )

    async def toggle_audio(self, enabled: bool) -> bool:
        """Turn microphone audio on or off."""
        with camera_log_context(self.info.uuid):
            return await self._set_boolean_property(
                AUDIO_ENABLED, enabled, SWITCH_AUDIO, NestCamEvents.AUDIO_STATE_CHANGED
            )

    # =========================================================================
    # Alert polling
    # =========================================================================

    def start_alert_checks(self, interval: float) -> None:
        """
        Start polling for alerts every `interval` seconds.

        Does nothing if polling is already running. Must be called with a
        running event loop.
        """
        if self.is_checking_alerts:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(
                f"Could not start alert checks for {self.name} - no running event loop",
                extra={"camera_id": self.info.uuid}
            )
            return

        self._alert_task = loop.create_task(
            self._alert_loop(interval),
            name=f"nestcam_alerts_{self.info.uuid}"
        )
        logger.debug(
            f"Started alert checks on {self.name} every {interval}s",
            extra={"camera_id": self.info.uuid, "interval": interval}
        )

    def stop_alert_checks(self) -> None:
        """Stop polling; pending cooldowns are cancelled and their flags cleared."""
        if self._alert_task:
            if not self._alert_task.done():
                self._alert_task.cancel()
            self._alert_task = None

        for flag in list(self._cooldown_tasks.keys()):
            self._cancel_cooldown(flag)
            setattr(self, flag, False)

    async def _alert_loop(self, interval: float) -> None:
        # The task owns its context copy, so the camera tag lasts for the loop
        camera_id_var.set(self.info.uuid)
        try:
            while True:
                await asyncio.sleep(interval)
                await self.check_alerts()
        except asyncio.CancelledError:
            logger.debug(
                f"Alert checks stopped on {self.name}",
                extra={"camera_id": self.info.uuid}
            )
            raise

    async def check_alerts(self) -> None:
        """Run one poll cycle. Errors are logged and the cycle is skipped."""
        logger.debug(f"Checking for alerts on {self.name}", extra={"camera_id": self.info.uuid})

        if self.removed:
            return

        try:
            start_time = round(time.time() - ALERT_WINDOW_SECONDS)
            query = urlencode({"start_time": start_time})
            response = await self.endpoints.send_request(
                self.config.access_token,
                f"https://{self.info.nexus_api_nest_domain_host}",
                f"{CUEPOINT_ENDPOINT.format(uuid=self.info.uuid)}?{query}",
                "GET",
            )
            if response is None:
                response = []
            if not isinstance(response, list):
                raise NestApiError("cue point response is not a list")

            cue_points = [CuePoint.model_validate(item) for item in response]

            if cue_points:
                for cue_point in cue_points:
                    if (
                        cue_point.is_important
                        and DOORBELL_CUE_TYPE in cue_point.types
                        and not self.doorbell_rang
                    ):
                        self.trigger_doorbell()
                        break

                    # Intersection of the allow-list with the received types
                    intersection = cue_point.types
                    if self.alert_types:
                        intersection = [t for t in self.alert_types if t in cue_point.types]

                    if cue_point.is_important and intersection and not self.motion_detected:
                        self.trigger_motion()
                        break

            elif self.motion_in_progress:
                self._set_motion(False)
                self.motion_in_progress = False

        except Exception as e:
            handle_error(logger, e, "Error checking alerts", debug=True)

    # =========================================================================
    # Signals
    # =========================================================================

    def trigger_motion(self) -> None:
        """Raise motion and start its cooldown."""
        self._set_motion(True)
        self.motion_detected = True
        self.motion_in_progress = True
        self._start_cooldown(MOTION_FLAG)

    def _set_motion(self, state: bool) -> None:
        service = self.accessory.get_service(SERVICE_MOTION_SENSOR)
        if service:
            logger.debug(
                f"Setting {self.name} Motion to {state}",
                extra={"camera_id": self.info.uuid, "sensor_type": "motion"}
            )
            update_characteristic(service, CHAR_MOTION_DETECTED, state)
            self.emit(NestCamEvents.MOTION_DETECTED, state)

    def trigger_doorbell(self) -> None:
        """Ring the doorbell and start its cooldown."""
        self._set_doorbell()
        self.doorbell_rang = True
        self._start_cooldown(DOORBELL_FLAG)

    def _set_doorbell(self) -> None:
        doorbell_service = self.accessory.get_service(SERVICE_DOORBELL)
        if doorbell_service:
            logger.debug(
                f"Ringing {self.name} Doorbell",
                extra={"camera_id": self.info.uuid, "sensor_type": "doorbell"}
            )
            update_characteristic(doorbell_service, CHAR_PROGRAMMABLE_SWITCH_EVENT, SINGLE_PRESS)
            self.emit(NestCamEvents.DOORBELL_RANG, True)

        switch_service = self.accessory.get_service(SERVICE_PROGRAMMABLE_SWITCH)
        if switch_service:
            update_characteristic(switch_service, CHAR_PROGRAMMABLE_SWITCH_EVENT, SINGLE_PRESS)

    # =========================================================================
    # Cooldown timers
    # =========================================================================

    def _cancel_cooldown(self, flag: str) -> None:
        task = self._cooldown_tasks.pop(flag, None)
        if task and not task.done():
            task.cancel()

    def _start_cooldown(self, flag: str) -> None:
        """(Re)start the timer that clears `flag` after the cooldown."""
        self._cancel_cooldown(flag)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Without a loop the flag cannot be timed, so it is not held at all
            logger.debug(
                f"No running event loop for {flag} cooldown on {self.name}, clearing immediately",
                extra={"camera_id": self.info.uuid}
            )
            setattr(self, flag, False)
            return

        self._cooldown_tasks[flag] = loop.create_task(
            self._cooldown_coroutine(flag),
            name=f"nestcam_{flag}_cooldown_{self.info.uuid}"
        )

    async def _cooldown_coroutine(self, flag: str) -> None:
        try:
            await asyncio.sleep(self.alert_cooldown)
            setattr(self, flag, False)
            self._cooldown_tasks.pop(flag, None)
            logger.debug(
                f"Cleared {flag} on {self.name} after {self.alert_cooldown}s",
                extra={"camera_id": self.info.uuid}
            )
        except asyncio.CancelledError:
            # Restarted by a newer alert or stopped
            pass

    def get_state(self) -> Dict[str, Any]:
        """Snapshot of the camera's alert state and properties."""
        return {
            "uuid": self.info.uuid,
            "name": self.name,
            "motion_detected": self.motion_detected,
            "motion_in_progress": self.motion_in_progress,
            "doorbell_rang": self.doorbell_rang,
            "checking_alerts": self.is_checking_alerts,
            "properties": dict(self.info.properties),
        }
