"""
Frame models for captured and encoded frames.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Tuple

import numpy as np


class SourceMode(str, Enum):
    """Which kind of source, if any, is currently producing frames."""
    IDLE = "idle"
    LIVE_CAPTURE = "live-capture"
    STATIC_IMAGE = "static-image"


@dataclass(frozen=True)
class FrameDimensions:
    """Pixel size of a source frame."""
    width: int
    height: int

    def __post_init__(self) -> None:
        if not isinstance(self.width, int) or not isinstance(self.height, int):
            raise ValueError("Frame dimensions must be integers")
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Frame dimensions must be positive, got {self.width}x{self.height}")

    @classmethod
    def from_numpy(cls, frame: np.ndarray) -> "FrameDimensions":
        """Create from an image array of shape (height, width, ...)."""
        h, w = frame.shape[:2]
        return cls(width=int(w), height=int(h))

    @property
    def size(self) -> Tuple[int, int]:
        """Return (width, height)."""
        return (self.width, self.height)

    def to_dict(self) -> dict:
        return {"width": self.width, "height": self.height}


@dataclass(frozen=True)
class EncodedFrame:
    """
    A still frame ready to submit to the detection service.

    Attributes:
        data: Encoded image bytes.
        content_type: MIME type of data (e.g. "image/jpeg").
        dimensions: Native size of the frame the bytes encode.
    """
    data: bytes
    content_type: str
    dimensions: FrameDimensions

    def __len__(self) -> int:
        return len(self.data)
