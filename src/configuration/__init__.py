"""
Configuration: the robot config document builder and the layered harness settings.
"""

from .builder import (
    build_camera_config,
    build_config_document,
    parse_robot_config,
    validate_robot_config,
)
from .settings import load_config, load_settings, validate_settings

__all__ = [
    "build_camera_config",
    "build_config_document",
    "parse_robot_config",
    "validate_robot_config",
    "load_config",
    "load_settings",
    "validate_settings",
]
