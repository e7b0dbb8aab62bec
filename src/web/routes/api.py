from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Body, HTTPException, Query, Request
from fastapi.responses import Response

from cloud.auth import CredentialState
from models.errors import (
    AuthError,
    CaptureError,
    DecodeError,
    DetectionError,
    SnapshotError,
    UnauthenticatedError,
)
from models.frame import SourceMode
from runtime.session import DetectionSession, SessionState
from ..api_models import (
    CameraStartRequest,
    DetectionResultModel,
    DimensionsModel,
    HistoryStatsModel,
    ImageUploadResponse,
    OverlayModel,
    PollingRequest,
    RecentDetectionsResponse,
    StatusResponse,
)
from ..services.stats_service import StatsService

router = APIRouter()


def _session(request: Request) -> DetectionSession:
    return request.app.state.session


def _compute_warnings(auth_state: CredentialState, source_mode: SourceMode, polling: bool) -> List[str]:
    """
    Warning codes for the status endpoint.

    - unauthenticated: no credential and none pending
    - no_source: nothing to capture from
    - polling_idle: polling is on but there is no source to sample
    """
    warnings = []
    if auth_state is CredentialState.ABSENT:
        warnings.append("unauthenticated")
    if source_mode is SourceMode.IDLE:
        warnings.append("no_source")
        if polling:
            warnings.append("polling_idle")
    return warnings


def build_status(state: SessionState) -> StatusResponse:
    return StatusResponse(
        source_mode=state.source_mode.value,
        dimensions=DimensionsModel.from_dims(state.dimensions) if state.dimensions else None,
        last_result=DetectionResultModel.from_result(state.last_result) if state.last_result else None,
        overlay=OverlayModel.from_overlay(state.overlay) if state.overlay else None,
        in_flight=state.in_flight,
        polling=state.polling,
        poll_interval_s=state.poll_interval_s,
        auth_state=state.auth_state.value,
        scheduler_state=state.scheduler_state.value,
        stats=HistoryStatsModel.from_stats(state.stats),
        warnings=_compute_warnings(state.auth_state, state.source_mode, state.polling),
    )


def _detection_http_error(e: Exception) -> HTTPException:
    if isinstance(e, UnauthenticatedError):
        return HTTPException(status_code=401, detail=str(e))
    if isinstance(e, SnapshotError):
        return HTTPException(status_code=409, detail=str(e))
    return HTTPException(status_code=502, detail=str(e))


@router.get("/status", response_model=StatusResponse)
async def status(request: Request):
    return build_status(_session(request).snapshot_state())


@router.get("/stats", response_model=HistoryStatsModel)
async def stats(request: Request):
    return StatsService(_session(request).history).get_summary()


@router.get("/detections/recent", response_model=RecentDetectionsResponse)
async def recent_detections(request: Request, n: Optional[int] = Query(None, ge=0, le=1000)):
    detections = StatsService(_session(request).history).get_recent(n)
    return RecentDetectionsResponse(count=len(detections), detections=detections)


@router.post("/detect", response_model=DetectionResultModel)
async def detect(request: Request):
    try:
        result = await _session(request).trigger()
    except (DetectionError, SnapshotError) as e:
        raise _detection_http_error(e)
    if result is None:
        raise HTTPException(
            status_code=409,
            detail="Detection skipped: a request is already in flight or no source is active",
        )
    return DetectionResultModel.from_result(result)


@router.post("/polling/start", response_model=StatusResponse)
async def polling_start(request: Request, req: Optional[PollingRequest] = Body(None)):
    session = _session(request)
    session.start_polling(req.interval_s if req else None)
    return build_status(session.snapshot_state())


@router.post("/polling/stop", response_model=StatusResponse)
async def polling_stop(request: Request):
    session = _session(request)
    session.stop_polling()
    return build_status(session.snapshot_state())


@router.post("/camera/start", response_model=StatusResponse)
async def camera_start(request: Request, req: Optional[CameraStartRequest] = Body(None)):
    session = _session(request)
    facing = req.preferred_facing if req else None
    resolution = tuple(req.ideal_resolution) if req and req.ideal_resolution else None
    try:
        await session.start_camera(facing, resolution)
    except CaptureError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return build_status(session.snapshot_state())


@router.post("/camera/stop", response_model=StatusResponse)
async def camera_stop(request: Request):
    session = _session(request)
    session.stop_camera()
    return build_status(session.snapshot_state())


@router.get("/camera/snapshot")
async def camera_snapshot(request: Request):
    try:
        frame = await _session(request).frames.snapshot()
    except SnapshotError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return Response(
        content=frame.data,
        media_type=frame.content_type,
        headers={"Cache-Control": "no-store"},
    )


@router.post("/image", response_model=ImageUploadResponse)
async def upload_image(request: Request, detect: bool = True):
    """Raw image bytes in the request body; detection runs right away unless detect=false."""
    session = _session(request)
    data = await request.body()
    try:
        result = await session.load_image(data, detect=detect)
    except DecodeError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (DetectionError, SnapshotError) as e:
        logging.warning(f"Detection on uploaded image failed: {e}")
        raise _detection_http_error(e)

    dims = session.frames.dimensions()
    return ImageUploadResponse(
        dimensions=DimensionsModel.from_dims(dims),
        result=DetectionResultModel.from_result(result) if result else None,
    )


@router.post("/auth/retry", response_model=StatusResponse)
async def auth_retry(request: Request):
    session = _session(request)
    try:
        await session.reauthenticate()
    except AuthError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return build_status(session.snapshot_state())
