"""
Camera client factory + image decoding helpers.

This is the single entrypoint the rest of the project should use to get a camera.
"""

from __future__ import annotations

from typing import Optional

import cv2
import numpy as np

from models.camera import MIME_TYPE_JPEG, RawImage
from models.config import CAMERA_API
from runtime.errors import CallError, ComponentNotFound
from runtime.instance import RuntimeInstance

from .client import DEFAULT_CALL_TIMEOUT_S, CameraClient

DECODABLE_MIME_TYPES = ("image/jpeg", "image/png")


def client_for(
    runtime: RuntimeInstance,
    name: str,
    call_timeout: float = DEFAULT_CALL_TIMEOUT_S,
) -> CameraClient:
    """
    Return a camera client for component `name`.

    Raises:
        ComponentNotFound: no such component, or it is not a camera.
    """
    binding = runtime.resource(name)
    if binding.api != CAMERA_API:
        raise ComponentNotFound(f"resource {name!r} is a {binding.api}, not a camera")
    return CameraClient(runtime, name, call_timeout=call_timeout)


def decode_image(image: RawImage) -> np.ndarray:
    """
    Decode encoded image bytes into a BGR array.

    Raises:
        CallError: unsupported MIME type or bytes that do not decode.
    """
    if image.mime_type not in DECODABLE_MIME_TYPES:
        raise CallError(f"cannot decode images of type {image.mime_type}")
    if not image.data:
        raise CallError("image payload is empty")

    buf = np.frombuffer(image.data, dtype=np.uint8)
    frame = cv2.imdecode(buf, cv2.IMREAD_COLOR)
    if frame is None or frame.size == 0:
        raise CallError(f"failed to decode {len(image.data)} bytes of {image.mime_type}")
    return frame


def decode_image_from_camera(
    camera: CameraClient,
    mime_type: str = MIME_TYPE_JPEG,
    timeout: Optional[float] = None,
) -> np.ndarray:
    """Fetch one image and decode it."""
    return decode_image(camera.fetch_image(mime_type, timeout=timeout))
