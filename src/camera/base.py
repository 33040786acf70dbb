"""
Camera capability interface.

Every camera handle exposes the same three read-only operations regardless
of the driver behind it.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

from models.camera import MIME_TYPE_JPEG, CameraProperties, ImageMetadata, RawImage


class Camera:
    def fetch_image(self, mime_type: str = MIME_TYPE_JPEG, timeout: Optional[float] = None) -> RawImage:
        raise NotImplementedError

    def fetch_images(self, timeout: Optional[float] = None) -> Tuple[List[RawImage], ImageMetadata]:
        raise NotImplementedError

    def fetch_properties(self, timeout: Optional[float] = None) -> CameraProperties:
        raise NotImplementedError

    def close(self) -> None:
        raise NotImplementedError
