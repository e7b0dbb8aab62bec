"""
ObservationSource interface for pluggable frame sources.

This defines the contract that concrete sources implement so the
FrameSource facade can treat them uniformly:
- USB/CSI cameras (OpenCV)
- A single uploaded still image
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import numpy as np

from models.frame import FrameDimensions


@dataclass
class ObservationConfig:
    """
    Base configuration for observation sources.

    Attributes:
        source_id: Identifier for this source (e.g., "camera-0", "upload").
        resolution: Ideal resolution as (width, height). None = source default.
    """
    source_id: str = "default"
    resolution: Optional[tuple[int, int]] = None


class ObservationSource(ABC):
    """
    Abstract base class for observation sources.

    Lifecycle:
        1. Create instance with config
        2. Call open() to initialize the source
        3. Call read() to sample the current frame
        4. Call close() to release resources

    open(), read() and close() may block; the FrameSource facade runs them
    off the event loop.
    """

    def __init__(self, config: ObservationConfig):
        self._config = config
        self._is_open = False

    @property
    def source_id(self) -> str:
        """Identifier for this source."""
        return self._config.source_id

    @property
    def is_open(self) -> bool:
        """Whether the source is currently open and ready to read."""
        return self._is_open

    @abstractmethod
    def open(self) -> None:
        """
        Open/initialize the observation source.

        Raises:
            CaptureError: If a capture device cannot be opened.
            DecodeError: If still-image bytes cannot be decoded.
        """

    @abstractmethod
    def read(self) -> Optional[np.ndarray]:
        """
        Sample the current frame as a BGR image array.

        Returns None if no frame is available.
        """

    @abstractmethod
    def close(self) -> None:
        """
        Release any resources held by the source.

        Safe to call multiple times.
        """

    @abstractmethod
    def dimensions(self) -> Optional[FrameDimensions]:
        """Native frame size, or None until the source reports it."""

    def __enter__(self) -> "ObservationSource":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
