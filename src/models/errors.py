"""
Error kinds raised by the detection engine.

None of these are fatal; each leaves the engine in a well-defined state that a
later user action can recover from.
"""

from __future__ import annotations

from typing import Optional


class EngineError(Exception):
    """Base class for all detection engine errors."""


class AuthError(EngineError):
    """Token fetch failed or the token endpoint returned a malformed response."""


class CaptureError(EngineError):
    """Capture device permission denied or hardware unavailable."""


class DecodeError(EngineError):
    """Uploaded image bytes could not be decoded."""


class SnapshotError(EngineError):
    """No frame could be produced (no active source, read or encode failure)."""


class DetectionError(EngineError):
    """A detection round-trip failed."""


class UnauthenticatedError(DetectionError):
    """No credential was held when the detection was requested."""

    def __init__(self, message: str = "Authentication token is not available"):
        super().__init__(message)


class ServiceError(DetectionError):
    """The detection service rejected or failed the request."""

    def __init__(self, status_code: int, body: Optional[str] = None):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Detection service returned status {status_code}")


class TransportError(DetectionError):
    """Network-level failure talking to the detection service."""
