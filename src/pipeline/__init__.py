"""
Detection pipeline: scheduling of detection round-trips.
"""

from .scheduler import DetectionScheduler, SchedulerState, SchedulerStats

__all__ = [
    "DetectionScheduler",
    "SchedulerState",
    "SchedulerStats",
]
