"""Read-only summaries of the detection history for the API and CLI."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from analytics.history import DetectionHistory


@dataclass
class StatsService:
    history: DetectionHistory
    recent_limit: int = 5

    def get_summary(self) -> Dict[str, Any]:
        return self.history.stats().to_dict()

    def get_recent(self, n: Optional[int] = None) -> List[Dict[str, Any]]:
        limit = self.recent_limit if n is None else n
        return [r.to_dict() for r in self.history.recent(limit)]

