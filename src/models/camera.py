"""
Camera capability values returned by the camera client.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

MIME_TYPE_JPEG = "image/jpeg"


@dataclass
class RawImage:
    """
    Encoded image bytes as returned by a camera driver.

    Attributes:
        data: The encoded image payload.
        mime_type: MIME type of the payload (the CSI driver always emits JPEG).
        source_name: Name of the sensor that produced the image; empty for
            single-source cameras.
    """
    data: bytes
    mime_type: str = MIME_TYPE_JPEG
    source_name: str = ""

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "RawImage":
        return cls(
            data=base64.b64decode(d.get("data") or ""),
            mime_type=d.get("mime_type", MIME_TYPE_JPEG),
            source_name=d.get("source_name", ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "data": base64.b64encode(self.data).decode("ascii"),
            "mime_type": self.mime_type,
            "source_name": self.source_name,
        }

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class ImageMetadata:
    """Metadata attached to a batch of images."""
    captured_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ImageMetadata":
        captured_ns = d.get("captured_at_ns")
        captured_at = None
        if captured_ns is not None:
            captured_at = datetime.fromtimestamp(int(captured_ns) / 1e9, tz=timezone.utc)
        return cls(captured_at=captured_at)

    def to_dict(self) -> Dict[str, Any]:
        if self.captured_at is None:
            return {}
        return {"captured_at_ns": int(self.captured_at.timestamp() * 1e9)}


@dataclass
class IntrinsicParameters:
    """Pinhole intrinsics as far as the driver reports them."""
    width_px: int = 0
    height_px: int = 0
    focal_x_px: Optional[float] = None
    focal_y_px: Optional[float] = None
    center_x_px: Optional[float] = None
    center_y_px: Optional[float] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "IntrinsicParameters":
        return cls(
            width_px=int(d.get("width_px", 0)),
            height_px=int(d.get("height_px", 0)),
            focal_x_px=d.get("focal_x_px"),
            focal_y_px=d.get("focal_y_px"),
            center_x_px=d.get("center_x_px"),
            center_y_px=d.get("center_y_px"),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"width_px": self.width_px, "height_px": self.height_px}
        for key in ("focal_x_px", "focal_y_px", "center_x_px", "center_y_px"):
            value = getattr(self, key)
            if value is not None:
                d[key] = value
        return d


@dataclass
class CameraProperties:
    """Static driver metadata; does not depend on capture readiness."""
    supports_pcd: bool = False
    intrinsic_parameters: Optional[IntrinsicParameters] = None
    mime_types: List[str] = field(default_factory=list)
    frame_rate: Optional[float] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CameraProperties":
        intrinsics = d.get("intrinsic_parameters")
        return cls(
            supports_pcd=bool(d.get("supports_pcd", False)),
            intrinsic_parameters=IntrinsicParameters.from_dict(intrinsics) if intrinsics else None,
            mime_types=list(d.get("mime_types") or []),
            frame_rate=d.get("frame_rate"),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "supports_pcd": self.supports_pcd,
            "mime_types": list(self.mime_types),
        }
        if self.intrinsic_parameters is not None:
            d["intrinsic_parameters"] = self.intrinsic_parameters.to_dict()
        if self.frame_rate is not None:
            d["frame_rate"] = self.frame_rate
        return d
