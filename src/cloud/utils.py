"""
Utility functions for talking to the detection service.
"""

from datetime import datetime
from typing import Any, Dict, Optional

import aiohttp

from models.detection import BoundingBox, DetectionResult


def parse_detection_response(
    payload: Dict[str, Any],
    target_class: str,
    timestamp: Optional[datetime] = None,
) -> DetectionResult:
    """
    Turn a detection service response into a DetectionResult.

    The response carries three parallel sequences:
        detection_classes: class labels (strings)
        detection_boxes: [y_min, x_min, y_max, x_max] in absolute pixels
        detection_scores: confidence scores

    Only the first occurrence of target_class is used.

    Args:
        payload: Decoded JSON body from the detection endpoint
        target_class: Class label of interest
        timestamp: Completion time; defaults to now

    Returns:
        DetectionResult, not detected when the class is absent

    Raises:
        ValueError: If the payload or the matched box is malformed
    """
    if not isinstance(payload, dict):
        raise ValueError(f"Expected a JSON object, got {type(payload).__name__}")

    classes = payload.get("detection_classes") or []
    boxes = payload.get("detection_boxes")
    scores = payload.get("detection_scores")

    try:
        index = list(classes).index(target_class)
    except ValueError:
        return DetectionResult.not_detected(timestamp)

    if not boxes or not scores or index >= len(boxes) or index >= len(scores):
        return DetectionResult.not_detected(timestamp)

    bbox = BoundingBox.from_service_box(boxes[index])
    return DetectionResult.found(float(scores[index]), bbox, timestamp)


def request_kwargs(timeout_s: Optional[float]) -> Dict[str, Any]:
    """
    Extra keyword arguments for an aiohttp request.

    The engine imposes no timeout of its own; one is only set when configured.
    """
    if timeout_s is None:
        return {}
    return {"timeout": aiohttp.ClientTimeout(total=float(timeout_s))}
