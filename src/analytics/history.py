"""
In-memory detection history with running counters.

Results are kept in completion order; stats() is O(1).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List

from models.detection import DetectionResult


@dataclass(frozen=True)
class HistoryStats:
    total: int
    detected_count: int
    success_rate: float
    average_confidence: float

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "detected_count": self.detected_count,
            "success_rate": self.success_rate,
            "average_confidence": self.average_confidence,
        }


class DetectionHistory:
    """Append-only log of detection results in completion order."""

    def __init__(self) -> None:
        self._results: List[DetectionResult] = []
        self._detected_count = 0
        self._confidence_sum = 0.0

    def record(self, result: DetectionResult) -> None:
        self._results.append(result)
        if result.detected:
            self._detected_count += 1
        self._confidence_sum += result.confidence

    def stats(self) -> HistoryStats:
        total = len(self._results)
        if total == 0:
            return HistoryStats(total=0, detected_count=0, success_rate=0.0, average_confidence=0.0)
        return HistoryStats(
            total=total,
            detected_count=self._detected_count,
            success_rate=self._detected_count / total,
            average_confidence=self._confidence_sum / total,
        )

    def recent(self, n: int = 5) -> List[DetectionResult]:
        """Last n results, most recent first."""
        if n < 0:
            raise ValueError("n must be non-negative")
        if n == 0:
            return []
        return list(reversed(self._results[-n:]))

    @property
    def last(self) -> DetectionResult | None:
        return self._results[-1] if self._results else None

    def clear(self) -> None:
        self._results.clear()
        self._detected_count = 0
        self._confidence_sum = 0.0

    def __len__(self) -> int:
        return len(self._results)

    def __iter__(self) -> Iterator[DetectionResult]:
        return iter(list(self._results))
