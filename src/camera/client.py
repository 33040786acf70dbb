"""
Camera client bound to one component of a RuntimeInstance.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from models.camera import MIME_TYPE_JPEG, CameraProperties, ImageMetadata, RawImage
from runtime import protocol
from runtime.errors import CallError
from runtime.instance import RuntimeInstance

from .base import Camera

DEFAULT_CALL_TIMEOUT_S = 2.0

# What a malformed driver payload raises while being typed
PAYLOAD_ERRORS = (AttributeError, TypeError, ValueError)


class CameraClient(Camera):
    """
    Non-owning handle for one camera component.

    Calls are routed through the runtime instance; the client never stops
    modules itself. close() only invalidates this handle. Safe to share
    between threads.

    Every method accepts an optional timeout that can only shorten
    call_timeout, so callers with their own deadline never wait past it.
    """

    def __init__(self, runtime: RuntimeInstance, name: str, call_timeout: float = DEFAULT_CALL_TIMEOUT_S):
        self._runtime = runtime
        self.name = name
        self.call_timeout = call_timeout
        self._closed = False

    @property
    def is_closed(self) -> bool:
        return self._closed or not self._runtime.is_alive

    def effective_timeout(self, timeout: Optional[float] = None) -> float:
        if timeout is None:
            return self.call_timeout
        return max(0.0, min(self.call_timeout, timeout))

    def _call(self, method: str, params: Optional[Dict[str, Any]] = None, timeout: Optional[float] = None) -> Dict[str, Any]:
        if self._closed:
            raise CallError(f"camera client {self.name} is closed", method=method)
        result = self._runtime.call(self.name, method, params, timeout=self.effective_timeout(timeout))
        if not isinstance(result, dict):
            raise CallError(f"{method} returned a malformed result", method=method)
        return result

    def fetch_image(self, mime_type: str = MIME_TYPE_JPEG, timeout: Optional[float] = None) -> RawImage:
        result = self._call(protocol.METHOD_GET_IMAGE, {"mime_type": mime_type}, timeout)
        try:
            return RawImage.from_dict(result)
        except PAYLOAD_ERRORS as e:
            raise CallError(f"get_image returned undecodable payload: {e}", method=protocol.METHOD_GET_IMAGE) from e

    def fetch_images(self, timeout: Optional[float] = None) -> Tuple[List[RawImage], ImageMetadata]:
        result = self._call(protocol.METHOD_GET_IMAGES, timeout=timeout)
        try:
            images = [RawImage.from_dict(d) for d in result.get("images") or []]
            metadata = ImageMetadata.from_dict(result.get("metadata") or {})
        except PAYLOAD_ERRORS as e:
            raise CallError(f"get_images returned undecodable payload: {e}", method=protocol.METHOD_GET_IMAGES) from e
        return images, metadata

    def fetch_properties(self, timeout: Optional[float] = None) -> CameraProperties:
        result = self._call(protocol.METHOD_GET_PROPERTIES, timeout=timeout)
        try:
            return CameraProperties.from_dict(result)
        except PAYLOAD_ERRORS as e:
            raise CallError(
                f"get_properties returned undecodable payload: {e}", method=protocol.METHOD_GET_PROPERTIES
            ) from e

    def close(self) -> None:
        self._closed = True

    def __repr__(self) -> str:
        return f"CameraClient(name={self.name!r}, closed={self.is_closed})"
