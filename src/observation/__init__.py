"""
Observation layer for frame sources.

This layer abstracts where frames come from (a capture device or a single
uploaded image) from the detection scheduler. FrameSource is the facade the
engine uses; the concrete sources implement ObservationSource.
"""

from .base import ObservationSource, ObservationConfig
from .opencv_source import OpenCVSource, OpenCVSourceConfig
from .image_source import StaticImageSource, guess_content_type
from .frame_source import FrameSource, encode_jpeg

__all__ = [
    "ObservationSource",
    "ObservationConfig",
    "OpenCVSource",
    "OpenCVSourceConfig",
    "StaticImageSource",
    "guess_content_type",
    "FrameSource",
    "encode_jpeg",
]
