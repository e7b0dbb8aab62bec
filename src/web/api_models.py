"""
Pydantic request and response models for the /api routes.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from analytics.history import HistoryStats
from models.detection import BoundingBox, DetectionResult, OverlayBox
from models.frame import FrameDimensions


class BoundingBoxModel(BaseModel):
    x: float
    y: float
    width: float
    height: float

    @classmethod
    def from_bbox(cls, bbox: BoundingBox) -> "BoundingBoxModel":
        return cls(x=bbox.x, y=bbox.y, width=bbox.width, height=bbox.height)


class OverlayModel(BaseModel):
    """Bounding box as fractions of the frame (multiply by 100 for CSS percentages)."""
    left: float
    top: float
    width: float
    height: float

    @classmethod
    def from_overlay(cls, overlay: OverlayBox) -> "OverlayModel":
        return cls(left=overlay.left, top=overlay.top, width=overlay.width, height=overlay.height)


class DimensionsModel(BaseModel):
    width: int
    height: int

    @classmethod
    def from_dims(cls, dims: FrameDimensions) -> "DimensionsModel":
        return cls(width=dims.width, height=dims.height)


class DetectionResultModel(BaseModel):
    detected: bool
    confidence: float
    timestamp: datetime
    bounding_box: Optional[BoundingBoxModel] = None

    @classmethod
    def from_result(cls, result: DetectionResult) -> "DetectionResultModel":
        return cls(
            detected=result.detected,
            confidence=result.confidence,
            timestamp=result.timestamp,
            bounding_box=BoundingBoxModel.from_bbox(result.bounding_box) if result.bounding_box else None,
        )


class HistoryStatsModel(BaseModel):
    total: int
    detected_count: int
    success_rate: float = Field(..., ge=0, le=1)
    average_confidence: float

    @classmethod
    def from_stats(cls, stats: HistoryStats) -> "HistoryStatsModel":
        return cls(
            total=stats.total,
            detected_count=stats.detected_count,
            success_rate=stats.success_rate,
            average_confidence=stats.average_confidence,
        )


class RecentDetectionsResponse(BaseModel):
    count: int
    detections: List[DetectionResultModel]


class StatusResponse(BaseModel):
    """
    Engine state for presentation polling.
    """
    source_mode: str = Field(..., description="idle|live-capture|static-image")
    dimensions: Optional[DimensionsModel] = None
    last_result: Optional[DetectionResultModel] = None
    overlay: Optional[OverlayModel] = None
    in_flight: bool
    polling: bool
    poll_interval_s: Optional[float] = None
    auth_state: str = Field(..., description="absent|pending|held")
    scheduler_state: str = Field(..., description="idle|ready|in-flight|stopped")
    stats: HistoryStatsModel
    warnings: List[str] = Field(default_factory=list, description="Active warning codes")


class ImageUploadResponse(BaseModel):
    dimensions: DimensionsModel
    result: Optional[DetectionResultModel] = None


class PollingRequest(BaseModel):
    interval_s: Optional[float] = Field(None, gt=0, description="Seconds between detections")


class CameraStartRequest(BaseModel):
    preferred_facing: Optional[str] = Field(None, description="environment|user")
    ideal_resolution: Optional[List[int]] = Field(None, min_length=2, max_length=2)
