"""
Still-image observation source for uploaded images.
"""

from __future__ import annotations

import logging
from typing import Optional

import cv2
import numpy as np

from models.errors import DecodeError
from models.frame import EncodedFrame, FrameDimensions
from .base import ObservationConfig, ObservationSource

_SIGNATURES = (
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"BM", "image/bmp"),
)


def guess_content_type(data: bytes) -> str:
    """Best-effort MIME type from the leading magic bytes."""
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    for signature, content_type in _SIGNATURES:
        if data.startswith(signature):
            return content_type
    return "application/octet-stream"


class StaticImageSource(ObservationSource):
    """
    Serves a single uploaded image.

    The uploaded bytes are kept as-is and submitted for detection unchanged;
    the decoded array is only used for its dimensions and for read().
    """

    def __init__(self, data: bytes, config: Optional[ObservationConfig] = None):
        super().__init__(config or ObservationConfig(source_id="upload"))
        self._data = data
        self._image: Optional[np.ndarray] = None

    def open(self) -> None:
        if self._is_open:
            return
        if not self._data:
            raise DecodeError("Image data is empty")

        buf = np.frombuffer(self._data, dtype=np.uint8)
        image = cv2.imdecode(buf, cv2.IMREAD_COLOR)
        if image is None:
            raise DecodeError("Image data could not be decoded")

        self._image = image
        self._is_open = True
        h, w = image.shape[:2]
        logging.info(f"StaticImageSource opened: {w}x{h}, {len(self._data)} bytes")

    def read(self) -> Optional[np.ndarray]:
        if not self._is_open or self._image is None:
            return None
        return self._image.copy()

    def dimensions(self) -> Optional[FrameDimensions]:
        if self._image is None:
            return None
        return FrameDimensions.from_numpy(self._image)

    def encoded_frame(self) -> EncodedFrame:
        """The uploaded bytes, ready to submit."""
        dims = self.dimensions()
        if not self._is_open or dims is None:
            raise DecodeError("Image source is not open")
        return EncodedFrame(
            data=self._data,
            content_type=guess_content_type(self._data),
            dimensions=dims,
        )

    def close(self) -> None:
        self._image = None
        self._is_open = False
