"""
HomeKit accessory for a Nest camera

One HAP-python Accessory per camera, carrying:
- MotionSensor (MotionDetected) when motion detection is enabled
- Doorbell (ProgrammableSwitchEvent) for doorbell cameras
- StatelessProgrammableSwitch mirroring doorbell rings, for automations
- Switch services named "Streaming", "Chime" and "Audio" whose On
  characteristic mirrors the camera property and whose setter toggles it

NestCam looks services up by name through `accessory.get_service(name)`,
so switch services are renamed to their role after creation.
"""
import logging
from typing import Any, Callable, Dict, Optional

from pyhap.accessory import Accessory
from pyhap.const import CATEGORY_CAMERA, CATEGORY_VIDEO_DOOR_BELL

from nestcam.config.nest import NestOptions
from nestcam.schemas.camera import (
    AUDIO_ENABLED,
    INDOOR_CHIME_ENABLED,
    STREAMING_ENABLED,
    CameraInfo,
)

logger = logging.getLogger(__name__)

SERVICE_MOTION_SENSOR = "MotionSensor"
SERVICE_DOORBELL = "Doorbell"
SERVICE_PROGRAMMABLE_SWITCH = "StatelessProgrammableSwitch"
SERVICE_SWITCH = "Switch"

SWITCH_STREAMING = "Streaming"
SWITCH_CHIME = "Chime"
SWITCH_AUDIO = "Audio"

CHAR_MOTION_DETECTED = "MotionDetected"
CHAR_PROGRAMMABLE_SWITCH_EVENT = "ProgrammableSwitchEvent"
CHAR_ON = "On"
CHAR_NAME = "Name"

# ProgrammableSwitchEvent value for a single press
SINGLE_PRESS = 0

# Switch name -> camera property it mirrors
SWITCH_PROPERTIES: Dict[str, str] = {
    SWITCH_STREAMING: STREAMING_ENABLED,
    SWITCH_CHIME: INDOOR_CHIME_ENABLED,
    SWITCH_AUDIO: AUDIO_ENABLED,
}

SwitchSetter = Callable[[Any], None]


def update_characteristic(service: Any, char_name: str, value: Any) -> None:
    """Set a characteristic value on a service and notify paired clients."""
    service.get_characteristic(char_name).set_value(value)


class CameraAccessory:
    """
    HomeKit accessory wrapper for a single Nest camera.

    Args:
        driver: HAP-python AccessoryDriver
        info: Camera descriptor
        options: Platform options selecting which services to add
        manufacturer: Manufacturer shown in the Home app
        switch_setter: Factory returning the On setter for a switch name
    """

    def __init__(
        self,
        driver: Any,
        info: CameraInfo,
        options: NestOptions,
        manufacturer: str = "Nest",
        switch_setter: Optional[Callable[[str], SwitchSetter]] = None,
    ):
        self.camera_id = info.uuid
        self.name = info.name
        self.is_doorbell = info.is_doorbell

        self.accessory = Accessory(driver, info.name)
        self.accessory.category = CATEGORY_VIDEO_DOOR_BELL if info.is_doorbell else CATEGORY_CAMERA
        self.accessory.set_info_service(
            firmware_revision=info.software_version,
            manufacturer=manufacturer,
            model="Nest Doorbell" if info.is_doorbell else "Nest Cam",
            serial_number=info.serial_number or info.uuid,
        )

        if options.motion_detection:
            motion = self.accessory.add_preload_service(SERVICE_MOTION_SENSOR)
            motion.configure_char(CHAR_MOTION_DETECTED, value=False)

        if info.is_doorbell and options.doorbell_alerts:
            doorbell = self.accessory.add_preload_service(SERVICE_DOORBELL)
            doorbell.configure_char(CHAR_PROGRAMMABLE_SWITCH_EVENT, value=SINGLE_PRESS)

        if info.is_doorbell and options.doorbell_switch:
            switch = self.accessory.add_preload_service(SERVICE_PROGRAMMABLE_SWITCH)
            switch.configure_char(CHAR_PROGRAMMABLE_SWITCH_EVENT, value=SINGLE_PRESS)

        if options.streaming_switch:
            self._add_switch(SWITCH_STREAMING, info, switch_setter)
        if options.chime_switch and info.is_doorbell:
            self._add_switch(SWITCH_CHIME, info, switch_setter)
        if options.audio_switch:
            self._add_switch(SWITCH_AUDIO, info, switch_setter)

        logger.debug(
            f"Created HomeKit accessory for camera: {self.name}",
            extra={
                "camera_id": self.camera_id,
                "services": self.service_names,
            }
        )

    def _add_switch(
        self,
        name: str,
        info: CameraInfo,
        switch_setter: Optional[Callable[[str], SwitchSetter]],
    ) -> None:
        service = self.accessory.add_preload_service(SERVICE_SWITCH, chars=[CHAR_NAME])
        service.display_name = name
        service.configure_char(CHAR_NAME, value=name)
        initial = bool(info.properties.get(SWITCH_PROPERTIES[name], False))
        if switch_setter:
            service.configure_char(CHAR_ON, value=initial, setter_callback=switch_setter(name))
        else:
            service.configure_char(CHAR_ON, value=initial)

    def get_service(self, name: str) -> Optional[Any]:
        return self.accessory.get_service(name)

    @property
    def service_names(self) -> list:
        return [service.display_name for service in self.accessory.services]
