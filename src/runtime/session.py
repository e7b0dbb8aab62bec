"""
DetectionSession: the single owner of engine state.

Wires the HTTP session, credential, frame source, scheduler and history,
and exposes read-only state plus listeners to the CLI and the web API.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Tuple

import aiohttp

from analytics.history import DetectionHistory, HistoryStats
from cloud.auth import AuthSession, CredentialState
from cloud.client import DetectionClient
from models.config import Config
from models.detection import DetectionResult, OverlayBox
from models.errors import AuthError, CaptureError, DecodeError, EngineError
from models.frame import FrameDimensions, SourceMode
from observation.frame_source import FrameSource, SourceFactory
from pipeline.scheduler import DetectionScheduler, SchedulerState


@dataclass(frozen=True)
class SessionState:
    """Everything the presentation layer is allowed to read."""
    source_mode: SourceMode
    dimensions: Optional[FrameDimensions]
    last_result: Optional[DetectionResult]
    overlay: Optional[OverlayBox]
    in_flight: bool
    polling: bool
    poll_interval_s: Optional[float]
    auth_state: CredentialState
    scheduler_state: SchedulerState
    stats: HistoryStats


class DetectionSession:
    """
    Owns one engine instance: credential, frame source, scheduler and history.

    Replaces ambient globals with explicit getters and listeners; close()
    releases the capture device, cancels polling and closes the HTTP session.

    Example:
        async with DetectionSession(Config()) as session:
            await session.start_camera()
            result = await session.trigger()
    """

    def __init__(
        self,
        config: Config,
        http: Any = None,
        source_factory: Optional[SourceFactory] = None,
    ):
        self.config = config
        self._http = http
        self._owns_http = False
        self.history = DetectionHistory()
        self.frames = FrameSource(config.camera, source_factory)
        self.auth: Optional[AuthSession] = None
        self.client: Optional[DetectionClient] = None
        self.scheduler: Optional[DetectionScheduler] = None
        self._started = False
        self._closed = False
        self._result_listeners: List[Callable[[DetectionResult], None]] = []
        self._error_listeners: List[Callable[[EngineError, str], None]] = []
        self._auth_listeners: List[Callable[[CredentialState], None]] = []

    @property
    def started(self) -> bool:
        return self._started and not self._closed

    def add_result_listener(self, callback: Callable[[DetectionResult], None]) -> None:
        self._result_listeners.append(callback)

    def add_error_listener(self, callback: Callable[[EngineError, str], None]) -> None:
        self._error_listeners.append(callback)

    def add_auth_listener(self, callback: Callable[[CredentialState], None]) -> None:
        self._auth_listeners.append(callback)

    async def start(self) -> None:
        """Wire components and kick off the initial token request."""
        if self._started:
            return
        if self._http is None:
            self._http = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=None))
            self._owns_http = True

        service = self.config.service
        self.auth = AuthSession(self._http, service)
        self.client = DetectionClient(self._http, self.auth, service)
        self.scheduler = DetectionScheduler(self.frames, self.client, self.history)

        self.auth.add_ready_listener(self._on_auth_ready)
        self.auth.add_error_listener(self._on_auth_error)
        self.scheduler.add_result_callback(self._on_result)
        self.scheduler.add_error_callback(self._emit_error)

        self._started = True
        logging.info(f"Detection session started (service={service.base_url}, target={service.target_class})")
        self.auth.request_acquire()

    async def start_camera(
        self,
        preferred_facing: Optional[str] = None,
        ideal_resolution: Optional[Tuple[int, int]] = None,
    ) -> None:
        scheduler = self._require_started()
        scheduler.stop_polling()
        scheduler.clear_last_result()
        try:
            await self.frames.start_capture(preferred_facing, ideal_resolution)
        except CaptureError as e:
            logging.error(f"Camera start failed: {e}")
            self._emit_error(e, "capture")
            raise
        scheduler.mark_ready()
        if self.config.polling.auto_start:
            scheduler.start_polling(self.config.polling.interval_s)

    def stop_camera(self) -> None:
        """Stop polling and release the capture device."""
        if self.scheduler is not None:
            self.scheduler.stop()
        else:
            self.frames.stop()

    async def load_image(self, data: bytes, detect: bool = True) -> Optional[DetectionResult]:
        """
        Switch to an uploaded image and, by default, run one detection on it.

        Raises:
            DecodeError: The bytes are not an image; the previous source stays active.
            DetectionError: The immediate detection failed.
        """
        scheduler = self._require_started()
        try:
            await self.frames.load_static_image(data)
        except DecodeError as e:
            logging.error(f"Uploaded image rejected: {e}")
            self._emit_error(e, "upload")
            raise
        scheduler.stop_polling()
        scheduler.clear_last_result()
        scheduler.mark_ready()
        if not detect:
            return None
        return await scheduler.trigger_once(origin="upload")

    async def trigger(self) -> Optional[DetectionResult]:
        return await self._require_started().trigger_once()

    def start_polling(self, interval_s: Optional[float] = None) -> None:
        interval = interval_s if interval_s is not None else self.config.polling.interval_s
        self._require_started().start_polling(interval)

    def stop_polling(self) -> None:
        if self.scheduler is not None:
            self.scheduler.stop_polling()

    async def reauthenticate(self) -> str:
        """User-initiated retry after an auth failure."""
        auth = self.auth
        if auth is None:
            raise RuntimeError("Detection session has not been started")
        return await auth.acquire(force=True)

    def overlay(self) -> Optional[OverlayBox]:
        """Overlay fractions for the last result, scaled by the frame that produced it."""
        if self.scheduler is None:
            return None
        result = self.scheduler.last_result
        dims = self.scheduler.last_dimensions
        if result is None or result.bounding_box is None or dims is None:
            return None
        return result.bounding_box.to_overlay(dims)

    def snapshot_state(self) -> SessionState:
        scheduler = self.scheduler
        return SessionState(
            source_mode=self.frames.mode,
            dimensions=self.frames.dimensions(),
            last_result=scheduler.last_result if scheduler else None,
            overlay=self.overlay(),
            in_flight=scheduler.in_flight if scheduler else False,
            polling=scheduler.is_polling if scheduler else False,
            poll_interval_s=scheduler.poll_interval_s if scheduler else None,
            auth_state=self.auth.state if self.auth else CredentialState.ABSENT,
            scheduler_state=scheduler.state if scheduler else SchedulerState.IDLE,
            stats=self.history.stats(),
        )

    async def close(self) -> None:
        """Tear down: stop polling, release the device, close HTTP. Idempotent."""
        if self._closed:
            return
        self._closed = True
        if self.scheduler is not None:
            self.scheduler.stop()
            await self.scheduler.wait_idle()
        else:
            self.frames.stop()
        if self.auth is not None:
            self.auth.cancel()
        if self._owns_http and self._http is not None:
            await self._http.close()
        logging.info("Detection session closed")

    async def __aenter__(self) -> "DetectionSession":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _require_started(self) -> DetectionScheduler:
        if not self._started or self.scheduler is None:
            raise RuntimeError("Detection session has not been started")
        if self._closed:
            raise RuntimeError("Detection session is closed")
        return self.scheduler

    def _on_result(self, result: DetectionResult, dims: Optional[FrameDimensions]) -> None:
        for callback in list(self._result_listeners):
            try:
                callback(result)
            except Exception as e:
                logging.warning(f"Result listener error: {e}")

    def _emit_error(self, error: EngineError, origin: str) -> None:
        for callback in list(self._error_listeners):
            try:
                callback(error, origin)
            except Exception as e:
                logging.warning(f"Error listener error: {e}")

    def _on_auth_ready(self) -> None:
        self._emit_auth(CredentialState.HELD)

    def _on_auth_error(self, error: AuthError) -> None:
        self._emit_auth(CredentialState.ABSENT)
        self._emit_error(error, "auth")

    def _emit_auth(self, state: CredentialState) -> None:
        for callback in list(self._auth_listeners):
            try:
                callback(state)
            except Exception as e:
                logging.warning(f"Auth listener error: {e}")
