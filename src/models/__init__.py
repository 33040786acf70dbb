"""
Typed models for the camera module harness.

Use the from_dict/to_dict adapters to convert from and to plain documents.
"""

from .camera import (
    RawImage,
    ImageMetadata,
    IntrinsicParameters,
    CameraProperties,
    MIME_TYPE_JPEG,
)
from .config import (
    ComponentConfig,
    ModuleConfig,
    RobotConfig,
    LocatorConfig,
    TimeoutConfig,
    HarnessSettings,
    CAMERA_API,
    CSI_PI_MODEL,
)

__all__ = [
    # Camera values
    "RawImage",
    "ImageMetadata",
    "IntrinsicParameters",
    "CameraProperties",
    "MIME_TYPE_JPEG",
    # Robot configuration
    "ComponentConfig",
    "ModuleConfig",
    "RobotConfig",
    "CAMERA_API",
    "CSI_PI_MODEL",
    # Harness settings
    "LocatorConfig",
    "TimeoutConfig",
    "HarnessSettings",
]
