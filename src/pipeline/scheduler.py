"""
Detection scheduler.

Drives the detection client on demand (manual trigger) or periodically
(polling) while enforcing that at most one detection request is outstanding
at any time. Results are recorded to the history in completion order, which
under the single-flight rule is also submission order.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional, Set

from analytics.history import DetectionHistory
from models.detection import DetectionResult
from models.errors import EngineError
from models.frame import FrameDimensions
from observation.frame_source import FrameSource

ResultCallback = Callable[[DetectionResult, Optional[FrameDimensions]], None]
ErrorCallback = Callable[[EngineError, str], None]


class SchedulerState(str, Enum):
    IDLE = "idle"
    READY = "ready"
    IN_FLIGHT = "in-flight"
    STOPPED = "stopped"


@dataclass
class SchedulerStats:
    """Runtime counters for the scheduler."""
    triggers: int = 0
    completed: int = 0
    errors: int = 0
    skipped: int = 0
    dropped_ticks: int = 0


class DetectionScheduler:
    """
    Single-flight detection driver with optional continuous polling.

    Manual triggers and polling ticks share one asyncio.Lock. A trigger that
    finds the lock held returns immediately instead of queueing.

    Example:
        scheduler = DetectionScheduler(frames, client, history)
        scheduler.mark_ready()
        result = await scheduler.trigger_once()
        scheduler.start_polling(2.0)
    """

    def __init__(self, frames: FrameSource, client: Any, history: DetectionHistory):
        self._frames = frames
        self._client = client
        self._history = history
        self._lock = asyncio.Lock()
        self._state = SchedulerState.IDLE
        self._poll_task: Optional[asyncio.Task] = None
        self._poll_interval_s: Optional[float] = None
        self._tasks: Set[asyncio.Task] = set()
        self._result_callbacks: List[ResultCallback] = []
        self._error_callbacks: List[ErrorCallback] = []
        self._last_result: Optional[DetectionResult] = None
        self._last_dimensions: Optional[FrameDimensions] = None
        self.stats = SchedulerStats()

    @property
    def state(self) -> SchedulerState:
        if self._lock.locked():
            return SchedulerState.IN_FLIGHT
        return self._state

    @property
    def in_flight(self) -> bool:
        return self._lock.locked()

    @property
    def is_polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    @property
    def poll_interval_s(self) -> Optional[float]:
        return self._poll_interval_s if self.is_polling else None

    @property
    def last_result(self) -> Optional[DetectionResult]:
        return self._last_result

    @property
    def last_dimensions(self) -> Optional[FrameDimensions]:
        """Dimensions of the frame that produced the last result."""
        return self._last_dimensions

    def add_result_callback(self, callback: ResultCallback) -> None:
        self._result_callbacks.append(callback)

    def add_error_callback(self, callback: ErrorCallback) -> None:
        self._error_callbacks.append(callback)

    def mark_ready(self) -> None:
        """A new source became active; leave the idle/stopped state."""
        if self._state in (SchedulerState.IDLE, SchedulerState.STOPPED):
            self._state = SchedulerState.READY

    def clear_last_result(self) -> None:
        self._last_result = None
        self._last_dimensions = None

    async def trigger_once(self, origin: str = "manual") -> Optional[DetectionResult]:
        """
        Capture one frame and run one detection.

        Returns None without side effects if a detection is already in flight
        or no frame source is active.

        Raises:
            SnapshotError, DetectionError: The attempt failed. Nothing is retried.
        """
        if self._lock.locked():
            self.stats.skipped += 1
            logging.debug(f"Detection skipped ({origin}): request already in flight")
            return None
        if not self._frames.is_active:
            logging.debug(f"Detection skipped ({origin}): no active frame source")
            return None

        try:
            async with self._lock:
                self.stats.triggers += 1
                try:
                    frame = await self._frames.snapshot()
                    result = await self._client.detect(frame)
                except EngineError as e:
                    self.stats.errors += 1
                    self._notify_error(e, origin)
                    raise

                self.stats.completed += 1
                self._record(result, frame.dimensions)
                return result
        finally:
            self._settle_stopped()

    def start_polling(self, interval_s: float) -> None:
        """Begin periodic detection. No-op if already polling."""
        if interval_s <= 0:
            raise ValueError("Polling interval must be positive")
        if self.is_polling:
            return
        self._poll_interval_s = float(interval_s)
        self._poll_task = asyncio.ensure_future(self._poll_loop(float(interval_s)))
        logging.info(f"Continuous detection started (every {interval_s}s)")

    def stop_polling(self) -> None:
        """Cancel future ticks. An in-flight detection still completes. Idempotent."""
        task = self._poll_task
        self._poll_task = None
        self._poll_interval_s = None
        if task is not None and not task.done():
            task.cancel()
            logging.info("Continuous detection stopped")

    def stop(self) -> None:
        """
        Stop polling and release the frame source.

        The scheduler is STOPPED until an in-flight detection completes, then
        IDLE.
        """
        self.stop_polling()
        self._frames.stop()
        self._state = SchedulerState.STOPPED
        if not self._lock.locked():
            self._settle_stopped()

    async def wait_idle(self) -> None:
        """Wait for detections started by polling ticks to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _settle_stopped(self) -> None:
        if self._state is SchedulerState.STOPPED:
            self._state = SchedulerState.IDLE

    async def _poll_loop(self, interval_s: float) -> None:
        loop = asyncio.get_running_loop()
        next_tick = loop.time() + interval_s
        while True:
            await asyncio.sleep(max(0.0, next_tick - loop.time()))
            now = loop.time()
            next_tick += interval_s
            if next_tick <= now:
                # Fell behind (stalled loop); realign instead of bursting.
                next_tick = now + interval_s

            if self._lock.locked():
                self.stats.dropped_ticks += 1
                logging.debug("Polling tick dropped: detection in flight")
                continue
            if not self._frames.is_active:
                continue

            # Own task, so cancelling the ticker never aborts a running detection.
            task = asyncio.ensure_future(self._polled_detection())
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _polled_detection(self) -> None:
        try:
            await self.trigger_once(origin="polling")
        except EngineError as e:
            logging.warning(f"Detection error during polling, will retry next tick: {e}")

    def _record(self, result: DetectionResult, dims: Optional[FrameDimensions]) -> None:
        self._history.record(result)
        self._last_result = result
        self._last_dimensions = dims
        for callback in list(self._result_callbacks):
            try:
                callback(result, dims)
            except Exception as e:
                logging.warning(f"Result callback error: {e}")

    def _notify_error(self, error: EngineError, origin: str) -> None:
        for callback in list(self._error_callbacks):
            try:
                callback(error, origin)
            except Exception as e:
                logging.warning(f"Error callback error: {e}")
