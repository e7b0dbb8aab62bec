"""
Pytest configuration and shared fixtures.
"""

import os
import sys

import cv2
import numpy as np
import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory with default.yaml."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    default_yaml = config_dir / "default.yaml"
    default_yaml.write_text("""
service:
  base_url: "http://localhost:8000"
  target_class: "patriota"

camera:
  device_id: 0
  resolution: [640, 480]

polling:
  interval_s: 2.0

log_path: "logs/test.log"
log_level: "INFO"
""")

    return config_dir


@pytest.fixture
def valid_config():
    """Return a valid configuration dictionary."""
    return {
        "service": {
            "base_url": "http://localhost:8000",
            "token_path": "/auth/token",
            "detect_path": "/detect",
            "target_class": "patriota",
            "request_timeout_s": None,
        },
        "camera": {
            "device_id": 0,
            "facing_devices": {"environment": 0, "user": 1},
            "resolution": [1280, 720],
            "jpeg_quality": 80,
        },
        "polling": {
            "interval_s": 2.0,
            "auto_start": False,
        },
        "web": {
            "enabled": False,
            "port": 5000,
        },
        "log_path": "logs/test.log",
        "log_level": "INFO",
    }


@pytest.fixture
def png_bytes():
    """A small encoded PNG (64x48)."""
    ok, buf = cv2.imencode(".png", np.full((48, 64, 3), 127, dtype=np.uint8))
    assert ok
    return buf.tobytes()


@pytest.fixture
def jpeg_bytes():
    """A small encoded JPEG (320x240)."""
    ok, buf = cv2.imencode(".jpg", np.zeros((240, 320, 3), dtype=np.uint8))
    assert ok
    return buf.tobytes()
