"""
Smoke tests for typed models and adapters.
"""

from datetime import datetime, timezone

import numpy as np
import pytest

from models.config import Config, CameraConfig, PollingConfig, ServiceConfig
from models.detection import BoundingBox, DetectionResult, OverlayBox
from models.errors import DetectionError, ServiceError, TransportError, UnauthenticatedError
from models.frame import EncodedFrame, FrameDimensions, SourceMode


class TestBoundingBox:
    def test_from_service_box(self):
        bbox = BoundingBox.from_service_box([80, 100, 200, 250])
        assert bbox.x == 100
        assert bbox.y == 80
        assert bbox.width == 150
        assert bbox.height == 120

    def test_from_service_box_wrong_length(self):
        with pytest.raises(ValueError):
            BoundingBox.from_service_box([1, 2, 3])

    def test_to_overlay(self):
        bbox = BoundingBox(x=100, y=80, width=150, height=120)
        overlay = bbox.to_overlay(FrameDimensions(width=1280, height=720))
        assert overlay == OverlayBox(
            left=100 / 1280,
            top=80 / 720,
            width=150 / 1280,
            height=120 / 720,
        )

    def test_to_overlay_is_not_clamped(self):
        bbox = BoundingBox(x=1200, y=-10, width=200, height=50)
        overlay = bbox.to_overlay(FrameDimensions(width=1000, height=500))
        assert overlay.left == pytest.approx(1.2)
        assert overlay.top == pytest.approx(-0.02)


class TestDetectionResult:
    def test_found(self):
        bbox = BoundingBox(10, 20, 30, 40)
        result = DetectionResult.found(0.75, bbox)
        assert result.detected is True
        assert result.confidence == 0.75
        assert result.bounding_box is bbox
        assert result.timestamp.tzinfo is not None

    def test_not_detected(self):
        result = DetectionResult.not_detected()
        assert result.detected is False
        assert result.confidence == 0.0
        assert result.bounding_box is None

    def test_detected_requires_box(self):
        with pytest.raises(ValueError):
            DetectionResult(detected=True, confidence=0.9, timestamp=datetime.now(timezone.utc))

    def test_not_detected_rejects_box(self):
        with pytest.raises(ValueError):
            DetectionResult(
                detected=False,
                confidence=0.0,
                timestamp=datetime.now(timezone.utc),
                bounding_box=BoundingBox(0, 0, 1, 1),
            )

    def test_to_dict(self):
        ts = datetime(2024, 7, 28, 12, 0, tzinfo=timezone.utc)
        result = DetectionResult.found(0.5, BoundingBox(1, 2, 3, 4), timestamp=ts)
        d = result.to_dict()
        assert d["timestamp"] == "2024-07-28T12:00:00+00:00"
        assert d["bounding_box"] == {"x": 1, "y": 2, "width": 3, "height": 4}

        assert "bounding_box" not in DetectionResult.not_detected(ts).to_dict()

    def test_is_immutable(self):
        result = DetectionResult.not_detected()
        with pytest.raises(Exception):
            result.detected = True


class TestFrameDimensions:
    def test_from_numpy(self):
        dims = FrameDimensions.from_numpy(np.zeros((480, 640, 3), dtype=np.uint8))
        assert dims == FrameDimensions(640, 480)
        assert dims.size == (640, 480)

    @pytest.mark.parametrize("w,h", [(0, 10), (10, 0), (-1, 5)])
    def test_rejects_non_positive(self, w, h):
        with pytest.raises(ValueError):
            FrameDimensions(w, h)

    def test_encoded_frame_len(self):
        frame = EncodedFrame(b"abcd", "image/jpeg", FrameDimensions(2, 2))
        assert len(frame) == 4


class TestErrors:
    def test_service_error_carries_status(self):
        err = ServiceError(503, "busy")
        assert isinstance(err, DetectionError)
        assert err.status_code == 503
        assert err.body == "busy"
        assert "503" in str(err)

    def test_hierarchy(self):
        assert issubclass(UnauthenticatedError, DetectionError)
        assert issubclass(TransportError, DetectionError)


class TestConfig:
    def test_defaults(self):
        cfg = Config.from_dict({})
        assert cfg.service.target_class == "patriota"
        assert cfg.service.request_timeout_s is None
        assert cfg.camera.resolution == [1280, 720]
        assert cfg.camera.jpeg_quality == 80
        assert cfg.polling.interval_s == 2.0
        assert SourceMode.IDLE.value == "idle"

    def test_service_urls(self):
        svc = ServiceConfig(base_url="http://example.com/", token_path="/auth/token", detect_path="/detect")
        assert svc.token_url == "http://example.com/auth/token"
        assert svc.detect_url == "http://example.com/detect"

    def test_resolve_device(self):
        cam = CameraConfig(device_id=0, facing_devices={"user": 2})
        assert cam.resolve_device("user") == 2
        assert cam.resolve_device("environment") == 0
        assert cam.resolve_device(None) == 0

    def test_roundtrip(self, valid_config):
        cfg = Config.from_dict(valid_config)
        again = Config.from_dict(cfg.to_dict())
        assert again == cfg

    def test_polling_from_dict_coerces_float(self):
        assert PollingConfig.from_dict({"interval_s": 3}).interval_s == 3.0
