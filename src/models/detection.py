"""
Detection models for remote detection results.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Sequence

from .frame import FrameDimensions


@dataclass(frozen=True)
class OverlayBox:
    """
    A bounding box expressed as fractions of the source frame.

    Attributes:
        left: x / frame width.
        top: y / frame height.
        width: box width / frame width.
        height: box height / frame height.
    """
    left: float
    top: float
    width: float
    height: float


@dataclass(frozen=True)
class BoundingBox:
    """
    A bounding box in absolute source-frame pixel coordinates.

    Attributes:
        x: Left edge x coordinate.
        y: Top edge y coordinate.
        width: Box width in pixels.
        height: Box height in pixels.
    """
    x: float
    y: float
    width: float
    height: float

    @classmethod
    def from_service_box(cls, box: Sequence[float]) -> "BoundingBox":
        """
        Create from the detection service's [y_min, x_min, y_max, x_max] order.
        """
        if len(box) != 4:
            raise ValueError(f"Expected 4 box coordinates, got {len(box)}")
        y_min, x_min, y_max, x_max = (float(v) for v in box)
        return cls(x=x_min, y=y_min, width=x_max - x_min, height=y_max - y_min)

    def to_overlay(self, dims: FrameDimensions) -> OverlayBox:
        """
        Convert to fractions of the frame that produced this box.

        Values outside the frame are passed through unclamped.
        """
        return OverlayBox(
            left=self.x / dims.width,
            top=self.y / dims.height,
            width=self.width / dims.width,
            height=self.height / dims.height,
        )

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class DetectionResult:
    """
    Outcome of one completed detection round-trip.

    Attributes:
        detected: Whether the target class was found.
        confidence: Score for the target class (0-1); 0 when not detected.
        timestamp: When the round-trip completed.
        bounding_box: Box of the target, present iff detected.
    """
    detected: bool
    confidence: float
    timestamp: datetime
    bounding_box: Optional[BoundingBox] = None

    def __post_init__(self) -> None:
        if self.detected != (self.bounding_box is not None):
            raise ValueError("bounding_box must be present exactly when detected is True")

    @classmethod
    def found(
        cls,
        confidence: float,
        bounding_box: BoundingBox,
        timestamp: Optional[datetime] = None,
    ) -> "DetectionResult":
        return cls(
            detected=True,
            confidence=float(confidence),
            timestamp=timestamp or _utcnow(),
            bounding_box=bounding_box,
        )

    @classmethod
    def not_detected(cls, timestamp: Optional[datetime] = None) -> "DetectionResult":
        return cls(detected=False, confidence=0.0, timestamp=timestamp or _utcnow())

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "detected": self.detected,
            "confidence": self.confidence,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.bounding_box is not None:
            d["bounding_box"] = self.bounding_box.to_dict()
        return d
