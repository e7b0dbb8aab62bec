"""
Tests for the detection client and response parsing.
"""

import asyncio

import aiohttp
import pytest

from cloud.auth import AuthSession
from cloud.client import DetectionClient
from cloud.utils import parse_detection_response, request_kwargs
from models.config import ServiceConfig
from models.detection import BoundingBox
from models.errors import ServiceError, TransportError, UnauthenticatedError
from models.frame import EncodedFrame, FrameDimensions
from fakes import SAMPLE_RESPONSE, FakeHttp, FakeResponse, token_response, wait_for

SERVICE = ServiceConfig(base_url="http://detector.test")
FRAME = EncodedFrame(data=b"\xff\xd8\xffjpeg", content_type="image/jpeg", dimensions=FrameDimensions(1280, 720))


class TestParseDetectionResponse:
    def test_first_target_match(self):
        result = parse_detection_response(SAMPLE_RESPONSE, "patriota")
        assert result.detected is True
        assert result.confidence == pytest.approx(0.92)
        assert result.bounding_box == BoundingBox(x=100, y=80, width=150, height=120)

    def test_only_first_occurrence_used(self):
        payload = {
            "detection_classes": ["patriota", "patriota"],
            "detection_boxes": [[0, 0, 10, 10], [5, 5, 50, 50]],
            "detection_scores": [0.4, 0.99],
        }
        result = parse_detection_response(payload, "patriota")
        assert result.confidence == pytest.approx(0.4)
        assert result.bounding_box == BoundingBox(0, 0, 10, 10)

    def test_absent_class(self):
        result = parse_detection_response(SAMPLE_RESPONSE, "giraffe")
        assert result.detected is False
        assert result.confidence == 0.0
        assert result.bounding_box is None

    def test_empty_payload(self):
        assert parse_detection_response({}, "patriota").detected is False

    def test_short_parallel_arrays(self):
        payload = {"detection_classes": ["patriota"], "detection_boxes": [], "detection_scores": []}
        assert parse_detection_response(payload, "patriota").detected is False

    def test_malformed_box(self):
        payload = {"detection_classes": ["patriota"], "detection_boxes": [[1, 2]], "detection_scores": [0.5]}
        with pytest.raises(ValueError):
            parse_detection_response(payload, "patriota")

    def test_non_object_payload(self):
        with pytest.raises(ValueError):
            parse_detection_response(["patriota"], "patriota")

    def test_request_kwargs(self):
        assert request_kwargs(None) == {}
        assert request_kwargs(2.5)["timeout"].total == 2.5


async def _client_with_token(http: FakeHttp, service: ServiceConfig = SERVICE):
    auth = AuthSession(http, service)
    await auth.acquire()
    return auth, DetectionClient(http, auth, service)


def test_detect_without_token_starts_reacquisition():
    async def run():
        http = FakeHttp(get=[token_response("fresh")])
        auth = AuthSession(http, SERVICE)
        client = DetectionClient(http, auth, SERVICE)

        with pytest.raises(UnauthenticatedError):
            await client.detect(FRAME)

        assert http.count("POST") == 0
        await wait_for(lambda: auth.current() == "fresh")
        assert http.count("GET") == 1

    asyncio.run(run())


def test_detect_success_sends_form_and_token():
    async def run():
        http = FakeHttp(get=[token_response("tok-xyz")], post=[FakeResponse(200, SAMPLE_RESPONSE)])
        _, client = await _client_with_token(http)

        result = await client.detect(FRAME)

        assert result.detected is True
        assert result.bounding_box == BoundingBox(x=100, y=80, width=150, height=120)

        method, url, kwargs = http.calls[-1]
        assert method == "POST"
        assert url == "http://detector.test/detect"
        assert kwargs["headers"] == {"X-Auth-Token": "tok-xyz"}
        assert isinstance(kwargs["data"], aiohttp.FormData)
        assert "timeout" not in kwargs

    asyncio.run(run())


def test_detect_custom_target_class():
    async def run():
        service = ServiceConfig(base_url="http://detector.test", target_class="other")
        http = FakeHttp(get=[token_response()], post=[FakeResponse(200, SAMPLE_RESPONSE)])
        _, client = await _client_with_token(http, service)

        result = await client.detect(FRAME)
        assert client.target_class == "other"
        assert result.confidence == pytest.approx(0.1)

    asyncio.run(run())


def test_unauthorized_invalidates_credential():
    async def run():
        http = FakeHttp(get=[token_response()], post=[FakeResponse(401, "expired")])
        auth, client = await _client_with_token(http)

        with pytest.raises(ServiceError) as exc_info:
            await client.detect(FRAME)

        assert exc_info.value.status_code == 401
        assert exc_info.value.body == "expired"
        assert auth.current() is None

    asyncio.run(run())


def test_server_error_keeps_credential():
    async def run():
        http = FakeHttp(get=[token_response()], post=[FakeResponse(500, "oops")])
        auth, client = await _client_with_token(http)

        with pytest.raises(ServiceError) as exc_info:
            await client.detect(FRAME)

        assert exc_info.value.status_code == 500
        assert auth.current() == "tok-123"

    asyncio.run(run())


def test_network_error_is_transport_error():
    async def run():
        http = FakeHttp(get=[token_response()], post=[aiohttp.ClientConnectionError("reset")])
        _, client = await _client_with_token(http)

        with pytest.raises(TransportError):
            await client.detect(FRAME)

    asyncio.run(run())


def test_timeout_is_transport_error():
    async def run():
        http = FakeHttp(get=[token_response()], post=[asyncio.TimeoutError()])
        _, client = await _client_with_token(http)

        with pytest.raises(TransportError):
            await client.detect(FRAME)

    asyncio.run(run())


@pytest.mark.parametrize("body", ["<html>", {"detection_classes": ["patriota"], "detection_boxes": [[1]], "detection_scores": [1]}])
def test_malformed_response_is_transport_error(body):
    async def run():
        http = FakeHttp(get=[token_response()], post=[FakeResponse(200, body)])
        _, client = await _client_with_token(http)

        with pytest.raises(TransportError):
            await client.detect(FRAME)

    asyncio.run(run())


def test_configured_timeout_is_passed():
    async def run():
        service = ServiceConfig(base_url="http://detector.test", request_timeout_s=3)
        http = FakeHttp(get=[token_response()], post=[FakeResponse(200, {})])
        _, client = await _client_with_token(http, service)

        result = await client.detect(FRAME)
        assert result.detected is False
        assert http.calls[-1][2]["timeout"].total == 3.0

    asyncio.run(run())
