"""
OpenCV-based live capture source.

device_id is a camera index (int) or anything cv2.VideoCapture opens by
name (str), such as a device path or stream URL.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

import cv2
import numpy as np

from models.errors import CaptureError
from models.frame import FrameDimensions
from .base import ObservationConfig, ObservationSource
from .url_utils import sanitize_url


@dataclass
class OpenCVSourceConfig(ObservationConfig):
    """
    Configuration for OpenCV capture sources.

    Attributes:
        device_id: Camera index (int) or device path / stream URL (str).
    """
    device_id: Union[int, str] = 0

    @classmethod
    def from_camera_config(
        cls,
        camera_cfg: Dict[str, Any],
        device_id: Optional[Union[int, str]] = None,
        resolution: Optional[tuple[int, int]] = None,
    ) -> "OpenCVSourceConfig":
        """
        Adapter: Create OpenCVSourceConfig from a camera config dict.

        Args:
            camera_cfg: Camera configuration dict (from config.yaml).
            device_id: Overrides camera_cfg["device_id"] (e.g. resolved from facing mode).
            resolution: Overrides camera_cfg["resolution"].
        """
        if device_id is None:
            device_id = camera_cfg.get("device_id", 0)
        if resolution is None and camera_cfg.get("resolution"):
            resolution = tuple(camera_cfg["resolution"])

        return cls(
            source_id=f"camera-{sanitize_url(device_id)}",
            resolution=resolution,
            device_id=device_id,
        )


class OpenCVSource(ObservationSource):
    """
    Live capture via cv2.VideoCapture.

    read() and close() are serialized by a lock so the device is never
    released underneath an in-progress read.
    """

    def __init__(self, config: OpenCVSourceConfig):
        super().__init__(config)
        self._opencv_config = config
        self._cap: Optional[cv2.VideoCapture] = None
        self._lock = threading.Lock()

    @property
    def device_id(self) -> Union[int, str]:
        return self._opencv_config.device_id

    def open(self) -> None:
        """Open the capture device."""
        with self._lock:
            if self._is_open:
                return

            cap = cv2.VideoCapture(self.device_id)
            if not cap.isOpened():
                cap.release()
                raise CaptureError(
                    f"Failed to open capture device {sanitize_url(self.device_id)} "
                    "(permission denied or device unavailable)"
                )

            if isinstance(self.device_id, int) and self._opencv_config.resolution:
                w, h = self._opencv_config.resolution
                cap.set(cv2.CAP_PROP_FRAME_WIDTH, w)
                cap.set(cv2.CAP_PROP_FRAME_HEIGHT, h)
                # Keep one buffered frame so snapshots are current.
                cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)

            self._cap = cap
            self._is_open = True

        logging.info(
            f"OpenCVSource opened: source_id={self.source_id}, "
            f"device={sanitize_url(self.device_id)}, ideal_resolution={self._opencv_config.resolution}"
        )

    def read(self) -> Optional[np.ndarray]:
        """Grab the current frame from the device."""
        with self._lock:
            if not self._is_open or self._cap is None:
                return None
            ret, frame = self._cap.read()
            if not ret or frame is None:
                logging.warning(f"Failed to read frame from {self.source_id}")
                return None
            return frame

    def dimensions(self) -> Optional[FrameDimensions]:
        """Actual resolution negotiated with the device."""
        with self._lock:
            if self._cap is None:
                return None
            w = int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH))
            h = int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        if w <= 0 or h <= 0:
            return None
        return FrameDimensions(width=w, height=h)

    def close(self) -> None:
        """Release the capture device."""
        with self._lock:
            if self._cap is not None:
                self._cap.release()
                self._cap = None
            was_open = self._is_open
            self._is_open = False
        if was_open:
            logging.info(f"OpenCVSource closed: source_id={self.source_id}")
