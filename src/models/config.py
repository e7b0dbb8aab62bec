"""
Typed configuration models matching the YAML config structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


@dataclass
class ServiceConfig:
    """Remote detection service configuration."""
    base_url: str = "http://localhost:8000"
    token_path: str = "/auth/token"
    detect_path: str = "/detect"
    target_class: str = "patriota"
    auth_header: str = "X-Auth-Token"
    request_timeout_s: Optional[float] = None

    @property
    def token_url(self) -> str:
        return self.base_url.rstrip("/") + self.token_path

    @property
    def detect_url(self) -> str:
        return self.base_url.rstrip("/") + self.detect_path

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ServiceConfig":
        """Adapter: Create from config dictionary."""
        return cls(
            base_url=d.get("base_url", "http://localhost:8000"),
            token_path=d.get("token_path", "/auth/token"),
            detect_path=d.get("detect_path", "/detect"),
            target_class=d.get("target_class", "patriota"),
            auth_header=d.get("auth_header", "X-Auth-Token"),
            request_timeout_s=d.get("request_timeout_s"),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "base_url": self.base_url,
            "token_path": self.token_path,
            "detect_path": self.detect_path,
            "target_class": self.target_class,
            "auth_header": self.auth_header,
        }
        if self.request_timeout_s is not None:
            d["request_timeout_s"] = self.request_timeout_s
        return d


@dataclass
class CameraConfig:
    """Camera configuration."""
    device_id: Union[int, str] = 0
    facing_mode: str = "environment"
    facing_devices: Dict[str, Union[int, str]] = field(default_factory=dict)
    resolution: List[int] = field(default_factory=lambda: [1280, 720])
    jpeg_quality: int = 80

    def resolve_device(self, facing: Optional[str]) -> Union[int, str]:
        """Map a facing mode ("environment", "user") to a capture device."""
        if facing and facing in self.facing_devices:
            return self.facing_devices[facing]
        return self.device_id

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CameraConfig":
        """Adapter: Create from config dictionary."""
        return cls(
            device_id=d.get("device_id", 0),
            facing_mode=d.get("facing_mode", "environment"),
            facing_devices=dict(d.get("facing_devices") or {}),
            resolution=d.get("resolution", [1280, 720]),
            jpeg_quality=d.get("jpeg_quality", 80),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "device_id": self.device_id,
            "facing_mode": self.facing_mode,
            "facing_devices": dict(self.facing_devices),
            "resolution": self.resolution,
            "jpeg_quality": self.jpeg_quality,
        }


@dataclass
class PollingConfig:
    """Continuous detection configuration."""
    interval_s: float = 2.0
    auto_start: bool = False

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "PollingConfig":
        return cls(
            interval_s=float(d.get("interval_s", 2.0)),
            auto_start=d.get("auto_start", False),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "interval_s": self.interval_s,
            "auto_start": self.auto_start,
        }


@dataclass
class WebConfig:
    """Consumer API server configuration."""
    enabled: bool = True
    host: str = "127.0.0.1"
    port: int = 5000

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "WebConfig":
        return cls(
            enabled=d.get("enabled", True),
            host=d.get("host", "127.0.0.1"),
            port=d.get("port", 5000),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "host": self.host,
            "port": self.port,
        }


@dataclass
class Config:
    """
    Complete application configuration.

    This is a typed representation of the YAML config structure.
    """
    service: ServiceConfig = field(default_factory=ServiceConfig)
    camera: CameraConfig = field(default_factory=CameraConfig)
    polling: PollingConfig = field(default_factory=PollingConfig)
    web: WebConfig = field(default_factory=WebConfig)
    log_path: str = "logs/detection_engine.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Adapter: Create Config from raw dictionary (e.g., from load_config)."""
        return cls(
            service=ServiceConfig.from_dict(d.get("service", {}) or {}),
            camera=CameraConfig.from_dict(d.get("camera", {}) or {}),
            polling=PollingConfig.from_dict(d.get("polling", {}) or {}),
            web=WebConfig.from_dict(d.get("web", {}) or {}),
            log_path=d.get("log_path", "logs/detection_engine.log"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to dictionary (for saving or dumping to YAML)."""
        return {
            "service": self.service.to_dict(),
            "camera": self.camera.to_dict(),
            "polling": self.polling.to_dict(),
            "web": self.web.to_dict(),
            "log_path": self.log_path,
            "log_level": self.log_level,
        }
