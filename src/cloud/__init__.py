"""
Remote detection service access: token acquisition and detection calls.
"""

from .auth import AuthSession, CredentialState
from .client import DetectionClient
from .utils import parse_detection_response

__all__ = [
    "AuthSession",
    "CredentialState",
    "DetectionClient",
    "parse_detection_response",
]
