# tests/test_service.py
import asyncio
import json

import httpx
import pytest

from fakes import SAMPLE_PAYLOAD
from tracemap import MeasurementService, ServiceError, Settings, TransportFailure


def _service(handler, **settings):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return MeasurementService(Settings(endpoint="https://svc.test/mtr", **settings), client=client)


def test_measure_posts_target_and_headers():
    """Request carries ip, schedule, JSON content type and the api key header."""
    seen = {}

    def handler(request):
        seen["method"] = request.method
        seen["url"] = str(request.url)
        seen["headers"] = request.headers
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=SAMPLE_PAYLOAD)

    service = _service(handler, api_key="secret")
    data = asyncio.run(service.measure("8.8.8.8", "15m"))

    assert data == SAMPLE_PAYLOAD
    assert seen["method"] == "POST"
    assert seen["url"] == "https://svc.test/mtr"
    assert seen["headers"]["content-type"] == "application/json"
    assert seen["headers"]["x-api-key"] == "secret"
    assert seen["body"] == {"ip": "8.8.8.8", "schedule": "15m"}


def test_schedule_none_can_be_omitted():
    bodies = []

    def handler(request):
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"hops": []})

    asyncio.run(_service(handler, send_schedule_none=False).measure("1.1.1.1"))
    asyncio.run(_service(handler).measure("1.1.1.1"))
    assert bodies == [{"ip": "1.1.1.1"}, {"ip": "1.1.1.1", "schedule": "none"}]


def test_error_status_uses_service_message():
    service = _service(lambda request: httpx.Response(500, json={"error": "rate limited"}))
    with pytest.raises(ServiceError) as info:
        asyncio.run(service.measure("8.8.8.8"))
    assert info.value.message == "rate limited"
    assert info.value.status_code == 500


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(502, json={}),
        httpx.Response(400, json={"error": ""}),
        httpx.Response(503, text="<html>down</html>"),
    ],
)
def test_error_status_without_message_is_generic(response):
    service = _service(lambda request: response)
    with pytest.raises(ServiceError) as info:
        asyncio.run(service.measure("8.8.8.8"))
    assert info.value.message == "Unknown error"


def test_transport_error_raises_transport_failure():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TransportFailure) as info:
        asyncio.run(_service(handler).measure("8.8.8.8"))
    assert info.value.message == "Could not connect to the backend."


def test_undecodable_success_body_is_transport_failure():
    service = _service(lambda request: httpx.Response(200, text="not json"))
    with pytest.raises(TransportFailure):
        asyncio.run(service.measure("8.8.8.8"))


def test_non_object_success_body_is_empty_payload():
    service = _service(lambda request: httpx.Response(200, json=[1, 2, 3]))
    assert asyncio.run(service.measure("8.8.8.8")) == {}


def test_context_manager_closes_owned_client():
    async def scenario():
        async with MeasurementService(Settings()) as service:
            client = service.client
        return client

    client = asyncio.run(scenario())
    assert client.is_closed
