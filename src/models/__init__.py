"""
Typed models for the detection engine.

Value objects are frozen dataclasses; config models adapt to and from the
raw YAML dictionaries.
"""

from .frame import EncodedFrame, FrameDimensions, SourceMode
from .detection import BoundingBox, DetectionResult, OverlayBox
from .errors import (
    AuthError,
    CaptureError,
    DecodeError,
    DetectionError,
    EngineError,
    ServiceError,
    SnapshotError,
    TransportError,
    UnauthenticatedError,
)
from .config import (
    Config,
    CameraConfig,
    PollingConfig,
    ServiceConfig,
    WebConfig,
)

__all__ = [
    # Frame
    "EncodedFrame",
    "FrameDimensions",
    "SourceMode",
    # Detection
    "BoundingBox",
    "DetectionResult",
    "OverlayBox",
    # Errors
    "EngineError",
    "AuthError",
    "CaptureError",
    "DecodeError",
    "SnapshotError",
    "DetectionError",
    "UnauthenticatedError",
    "ServiceError",
    "TransportError",
    # Config
    "Config",
    "CameraConfig",
    "PollingConfig",
    "ServiceConfig",
    "WebConfig",
]
