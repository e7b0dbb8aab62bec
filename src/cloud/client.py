"""
Detection service client.

Performs exactly one detection round-trip per call. Retry policy belongs to
the caller.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import aiohttp

from models.config import ServiceConfig
from models.detection import DetectionResult
from models.errors import ServiceError, TransportError, UnauthenticatedError
from models.frame import EncodedFrame
from .auth import AuthSession
from .utils import parse_detection_response, request_kwargs

UPLOAD_FIELD = "image"
UPLOAD_FILENAME = "detection-image.jpg"


class DetectionClient:
    """
    Submits encoded frames to the remote detection endpoint.

    Example:
        client = DetectionClient(http, auth, ServiceConfig())
        result = await client.detect(frame)
    """

    def __init__(self, http: Any, auth: AuthSession, service: ServiceConfig):
        self._http = http
        self._auth = auth
        self._detect_url = service.detect_url
        self._auth_header = service.auth_header
        self._target_class = service.target_class
        self._timeout_s = service.request_timeout_s

    @property
    def target_class(self) -> str:
        return self._target_class

    async def detect(self, frame: EncodedFrame) -> DetectionResult:
        """
        Run one detection on an encoded frame.

        Raises:
            UnauthenticatedError: No credential is held; re-acquisition has
                been started in the background.
            ServiceError: The service answered with a non-2xx status.
            TransportError: Network failure or unreadable response.
        """
        token = self._auth.current()
        if token is None:
            logging.warning("Auth token not available, requesting a new one")
            self._auth.request_acquire()
            raise UnauthenticatedError()

        form = aiohttp.FormData()
        form.add_field(
            UPLOAD_FIELD,
            frame.data,
            filename=UPLOAD_FILENAME,
            content_type=frame.content_type,
        )

        logging.debug(f"Submitting {len(frame)} byte frame to {self._detect_url}")
        try:
            async with self._http.post(
                self._detect_url,
                data=form,
                headers={self._auth_header: token},
                **request_kwargs(self._timeout_s),
            ) as resp:
                status = resp.status
                body = await resp.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportError(f"Detection request failed: {e}") from e

        if not 200 <= status < 300:
            logging.error(f"Detection service returned status {status}: {body}")
            if status in (401, 403):
                self._auth.invalidate()
            raise ServiceError(status, body)

        try:
            payload = json.loads(body)
            result = parse_detection_response(payload, self._target_class)
        except (ValueError, TypeError) as e:
            raise TransportError(f"Malformed detection response: {e}") from e

        if result.detected:
            logging.info(f"Target '{self._target_class}' detected with confidence {result.confidence:.3f}")
        else:
            logging.debug(f"Target '{self._target_class}' not detected")
        return result
