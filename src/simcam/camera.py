"""
Simulated CSI camera.

Stands in for the hardware capture pipeline the same way the driver's CI
test mode does: frames come from a synthetic test source, are JPEG encoded,
and are only available once the "pipeline" has warmed up.
"""

from __future__ import annotations

import time
from typing import Any, Dict, List, Optional

import cv2
import numpy as np

from models.camera import MIME_TYPE_JPEG, CameraProperties, ImageMetadata, IntrinsicParameters, RawImage

DEFAULT_INPUT_WIDTH = 1920
DEFAULT_INPUT_HEIGHT = 1080
DEFAULT_INPUT_FRAMERATE = 30
DEFAULT_INPUT_SENSOR = "0"
DEFAULT_WARMUP_S = 0.0
JPEG_QUALITY = 85

# SMPTE-style colour bars (BGR)
COLOR_BARS = [
    (192, 192, 192),
    (0, 192, 192),
    (192, 192, 0),
    (0, 192, 0),
    (192, 0, 192),
    (0, 0, 192),
    (192, 0, 0),
]


def _int_attr(attrs: Dict[str, Any], name: str, default: int) -> int:
    if name not in attrs:
        return default
    value = attrs[name]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"attribute {name} must be a number")
    value = int(value)
    if value <= 0:
        raise ValueError(f"attribute {name} must be positive")
    return value


class SimulatedCSICamera:
    """
    A camera that renders moving colour bars.

    Attributes read from the component config:
        width_px, height_px, frame_rate: capture format.
        video_path: sensor id (unused by the simulation, echoed back).
        warmup_s: seconds before the first frame is available.
    """

    def __init__(self, name: str, attributes: Optional[Dict[str, Any]] = None, clock=time.monotonic):
        self.name = name
        self._clock = clock
        self.configure(attributes or {})

    def configure(self, attrs: Dict[str, Any]) -> None:
        """Validate attributes and (re)start the synthetic pipeline."""
        self.width_px = _int_attr(attrs, "width_px", DEFAULT_INPUT_WIDTH)
        self.height_px = _int_attr(attrs, "height_px", DEFAULT_INPUT_HEIGHT)
        self.frame_rate = _int_attr(attrs, "frame_rate", DEFAULT_INPUT_FRAMERATE)

        video_path = attrs.get("video_path", DEFAULT_INPUT_SENSOR)
        if not isinstance(video_path, str):
            raise ValueError("attribute video_path must be a string")
        self.video_path = video_path

        warmup = attrs.get("warmup_s", DEFAULT_WARMUP_S)
        if isinstance(warmup, bool) or not isinstance(warmup, (int, float)) or warmup < 0:
            raise ValueError("attribute warmup_s must be a non-negative number")
        self.warmup_s = float(warmup)

        self._started_at = self._clock()
        self._frame_index = 0

    @property
    def is_ready(self) -> bool:
        return self._clock() - self._started_at >= self.warmup_s

    def render_frame(self) -> np.ndarray:
        """Colour bars shifted one bar-width per second, plus a frame counter."""
        h, w = self.height_px, self.width_px
        frame = np.zeros((h, w, 3), dtype=np.uint8)
        bar_w = max(1, w // len(COLOR_BARS))
        shift = int(self._frame_index / max(1, self.frame_rate) * bar_w) % w
        for i, color in enumerate(COLOR_BARS):
            frame[:, i * bar_w:(i + 1) * bar_w] = color
        frame = np.roll(frame, shift, axis=1)
        cv2.putText(
            frame,
            f"{self.name} #{self._frame_index}",
            (10, max(20, h // 10)),
            cv2.FONT_HERSHEY_SIMPLEX,
            max(0.4, h / 720),
            (255, 255, 255),
            2,
        )
        self._frame_index += 1
        return frame

    def get_image(self, mime_type: str = MIME_TYPE_JPEG) -> RawImage:
        # the driver always returns JPEG whatever the caller asked for
        if not self.is_ready:
            raise RuntimeError("capture pipeline is not ready")
        ok, buf = cv2.imencode(".jpg", self.render_frame(), [int(cv2.IMWRITE_JPEG_QUALITY), JPEG_QUALITY])
        if not ok or buf.size == 0:
            raise RuntimeError("no bytes retrieved from capture pipeline")
        return RawImage(data=buf.tobytes(), mime_type=MIME_TYPE_JPEG, source_name="")

    def get_images(self) -> Dict[str, Any]:
        image = self.get_image()
        metadata = ImageMetadata.from_dict({"captured_at_ns": time.time_ns()})
        images: List[Dict[str, Any]] = [image.to_dict()]
        return {"images": images, "metadata": metadata.to_dict()}

    def get_properties(self) -> CameraProperties:
        return CameraProperties(
            supports_pcd=False,
            intrinsic_parameters=IntrinsicParameters(width_px=self.width_px, height_px=self.height_px),
            mime_types=[MIME_TYPE_JPEG],
            frame_rate=float(self.frame_rate),
        )
