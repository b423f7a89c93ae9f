"""Pydantic schemas for request/response validation"""
from nestcam.schemas.camera import (
    CameraInfo,
    CuePoint,
    Structure,
    get_structures,
)

__all__ = [
    'CameraInfo',
    'CuePoint',
    'Structure',
    'get_structures',
]
