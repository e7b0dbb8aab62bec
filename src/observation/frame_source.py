"""
FrameSource: where pixels come from.

Owns at most one active ObservationSource, either a live capture device or a
single uploaded image, and produces encoded snapshots on demand. Blocking
OpenCV work runs in worker threads so the event loop never stalls.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional, Tuple

import cv2
import numpy as np

from models.config import CameraConfig
from models.errors import CaptureError, DecodeError, SnapshotError
from models.frame import EncodedFrame, FrameDimensions, SourceMode
from .base import ObservationSource
from .image_source import StaticImageSource
from .opencv_source import OpenCVSource, OpenCVSourceConfig

SourceFactory = Callable[[OpenCVSourceConfig], ObservationSource]


def encode_jpeg(frame: np.ndarray, quality: int = 80) -> bytes:
    """Encode a BGR frame as JPEG at its native size."""
    ok, buf = cv2.imencode(".jpg", frame, [int(cv2.IMWRITE_JPEG_QUALITY), int(quality)])
    if not ok:
        raise SnapshotError("Failed to encode JPEG")
    return buf.tobytes()


class FrameSource:
    """
    Source lifecycle: idle, live-capture or static-image, never two at once.

    Example:
        frames = FrameSource(CameraConfig())
        await frames.start_capture()
        frame = await frames.snapshot()
        frames.stop()
    """

    def __init__(
        self,
        camera: Optional[CameraConfig] = None,
        source_factory: Optional[SourceFactory] = None,
    ):
        self._camera_cfg = camera or CameraConfig()
        self._source_factory: SourceFactory = source_factory or OpenCVSource
        self._source: Optional[ObservationSource] = None
        self._mode = SourceMode.IDLE
        self._dimensions: Optional[FrameDimensions] = None
        # Bumped on every source change so late async steps can tell they are stale.
        self._generation = 0

    @property
    def mode(self) -> SourceMode:
        return self._mode

    @property
    def is_active(self) -> bool:
        return self._mode is not SourceMode.IDLE

    def dimensions(self) -> Optional[FrameDimensions]:
        return self._dimensions

    async def start_capture(
        self,
        preferred_facing: Optional[str] = None,
        ideal_resolution: Optional[Tuple[int, int]] = None,
    ) -> None:
        """
        Open a live capture device, replacing any current source.

        Raises:
            CaptureError: Permission denied, device unavailable, or the start
                was superseded by stop() or another source.
        """
        self.stop()
        generation = self._generation

        cfg = self._camera_cfg
        device_id = cfg.resolve_device(preferred_facing or cfg.facing_mode)
        resolution = tuple(ideal_resolution or cfg.resolution)
        source = self._source_factory(
            OpenCVSourceConfig.from_camera_config(
                cfg.to_dict(), device_id=device_id, resolution=resolution
            )
        )

        try:
            await asyncio.to_thread(source.open)
        except CaptureError:
            source.close()
            raise
        except Exception as e:
            source.close()
            raise CaptureError(f"Error accessing camera: {e}") from e

        if generation != self._generation:
            source.close()
            raise CaptureError("Capture start was superseded")

        self._source = source
        self._mode = SourceMode.LIVE_CAPTURE
        logging.info(f"Live capture started: {source.source_id}")

        # Metadata arrives one step after the device opens.
        dims = await asyncio.to_thread(source.dimensions)
        if generation == self._generation and dims is not None:
            self._dimensions = dims

    async def load_static_image(self, data: bytes) -> FrameDimensions:
        """
        Decode an uploaded image and make it the active source.

        Any live capture is released first. A failed decode leaves the
        current source untouched.

        Raises:
            DecodeError: If the bytes are not a decodable image.
        """
        source = StaticImageSource(data)
        await asyncio.to_thread(source.open)
        dims = source.dimensions()
        if dims is None:
            raise DecodeError("Decoded image has no dimensions")

        self.stop()
        self._source = source
        self._mode = SourceMode.STATIC_IMAGE
        self._dimensions = dims
        logging.info(f"Static image loaded: {dims.width}x{dims.height}")
        return dims

    async def snapshot(self) -> EncodedFrame:
        """
        Produce one encoded still frame from the active source.

        Raises:
            SnapshotError: No active source, or the frame could not be read or encoded.
        """
        source = self._source
        if source is None or self._mode is SourceMode.IDLE:
            raise SnapshotError("no active source")

        if isinstance(source, StaticImageSource):
            try:
                return source.encoded_frame()
            except DecodeError as e:
                raise SnapshotError(str(e)) from e

        generation = self._generation
        frame = await asyncio.to_thread(source.read)
        if generation != self._generation:
            raise SnapshotError("no active source")
        if frame is None:
            raise SnapshotError("Failed to read frame from capture device")

        data = await asyncio.to_thread(encode_jpeg, frame, self._camera_cfg.jpeg_quality)
        dims = FrameDimensions.from_numpy(frame)
        if generation == self._generation:
            self._dimensions = dims
        return EncodedFrame(data=data, content_type="image/jpeg", dimensions=dims)

    def stop(self) -> None:
        """Release the active source, if any. Idempotent."""
        self._generation += 1
        source = self._source
        self._source = None
        self._mode = SourceMode.IDLE
        self._dimensions = None
        if source is not None:
            source.close()
            logging.info(f"Frame source stopped: {source.source_id}")
