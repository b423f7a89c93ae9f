"""Pydantic schemas for Nest camera records, structures and cue points"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional

# Boolean property keys that can be toggled through dropcams.set_properties
STREAMING_ENABLED = "streaming.enabled"
AUDIO_ENABLED = "audio.enabled"
INDOOR_CHIME_ENABLED = "doorbell.indoor_chime.enabled"

# Capability advertised by cameras that are doorbells
DOORBELL_CAPABILITY = "indoor_chime"

STRUCTURE_ID_PREFIX = "structure."


class CameraInfo(BaseModel):
    """
    Camera descriptor as returned by cameras.get_owned_and_member_of_with_properties.

    Only the fields the bridge relies on are declared; everything else the
    cloud sends is kept as extra data and round-trips through the UI API.
    """

    uuid: str = Field(..., description="Unique camera identifier")
    name: str = Field(..., description="Display name")
    nest_structure_id: str = Field("", description="Owning structure reference (structure.<id>)")
    nest_structure_name: str = Field("", description="Owning structure display name")
    nexus_api_nest_domain_host: str = Field("", description="Host serving the cue point (event) API")
    properties: Dict[str, Any] = Field(default_factory=dict, description="Mutable property bag")
    capabilities: List[str] = Field(default_factory=list)
    is_online: bool = True
    is_streaming_enabled: bool = False
    serial_number: Optional[str] = None
    software_version: Optional[str] = None
    type: Optional[int] = None

    model_config = ConfigDict(
        extra="allow",
        json_schema_extra={
            "example": {
                "uuid": "5f8e4c2a1b3d4e6f8a9b0c1d2e3f4a5b",
                "name": "Front Door",
                "nest_structure_id": "structure.a1b2c3",
                "nest_structure_name": "Home",
                "nexus_api_nest_domain_host": "nexusapi-us1.camera.home.nest.com",
                "properties": {
                    "streaming.enabled": True,
                    "audio.enabled": True,
                    "doorbell.indoor_chime.enabled": True,
                },
                "capabilities": ["indoor_chime", "audio.microphone"],
                "is_online": True,
                "is_streaming_enabled": True,
            }
        },
    )

    @property
    def structure_id(self) -> str:
        """Structure id with the 'structure.' prefix removed."""
        return self.nest_structure_id.replace(STRUCTURE_ID_PREFIX, "")

    @property
    def is_doorbell(self) -> bool:
        return DOORBELL_CAPABILITY in self.capabilities


class Structure(BaseModel):
    """A named grouping of cameras (a home/site)"""

    name: str
    id: str

    model_config = ConfigDict(
        json_schema_extra={"example": {"name": "Home", "id": "a1b2c3"}}
    )


class CuePoint(BaseModel):
    """One event from the cue point window of a camera"""

    is_important: bool = False
    types: List[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow")


def get_structures(cameras: List[CameraInfo]) -> List[Structure]:
    """
    Derive the structure list from camera descriptors.

    One entry per unique structure id, in the order the structures are
    first seen.
    """
    structures: List[Structure] = []
    seen = set()
    for camera in cameras:
        structure_id = camera.structure_id
        if structure_id in seen:
            continue
        seen.add(structure_id)
        structures.append(Structure(name=camera.nest_structure_name, id=structure_id))
    return structures
