import json

import httpx
import pytest

from edu_gateway.core.config import settings
from edu_gateway.services.relay import interruption_marker
from edu_gateway.tests.utils.upstream import dashscope_frame, make_relay, sse_response

URL = f"{settings.API_V1_STR}/ai/generate"
BODY = {"messages": [{"role": "user", "content": "Q"}]}


@pytest.mark.asyncio
async def test_streams_plain_text(async_client, override_app):
    override_app(
        make_relay(
            lambda req: sse_response(
                dashscope_frame("Hel"), dashscope_frame("Hello"), b"data: [DONE]\n\n"
            )
        )
    )

    response = await async_client.post(URL, json=BODY)

    assert response.status_code == 200
    assert response.text == "HelHello"
    assert response.headers["content-type"] == "text/plain; charset=utf-8"
    assert response.headers["cache-control"] == "no-cache"
    assert response.headers["x-accel-buffering"] == "no"


@pytest.mark.asyncio
async def test_drop_mid_stream_ends_with_marker(async_client, override_app):
    override_app(
        make_relay(lambda req: sse_response(dashscope_frame("one"), error=httpx.ReadError("reset")))
    )

    response = await async_client.post(URL, json=BODY)

    assert response.status_code == 200
    assert response.text == "one" + interruption_marker("stream interrupted (ReadError)")


@pytest.mark.asyncio
async def test_get_is_not_allowed(async_client):
    response = await async_client.get(URL)

    assert response.status_code == 405


@pytest.mark.asyncio
async def test_missing_credential_is_500(async_client, override_app):
    override_app(make_relay(lambda req: sse_response(), dashscope_key=None))

    response = await async_client.post(URL, json=BODY)

    assert response.status_code == 500
    body = response.json()
    assert body["type"] == "configuration_error"
    assert body["error"]


@pytest.mark.asyncio
async def test_upstream_status_is_passed_through(async_client, override_app):
    override_app(make_relay(lambda req: httpx.Response(401, text='{"code":"InvalidApiKey"}')))

    response = await async_client.post(URL, json=BODY)

    assert response.status_code == 401
    assert response.json() == {
        "error": 'Upstream API error: {"code":"InvalidApiKey"}',
        "type": "upstream_rejected",
    }


@pytest.mark.asyncio
async def test_connect_timeout_is_504(async_client, override_app):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("slow", request=request)

    override_app(make_relay(handler))

    response = await async_client.post(URL, json=BODY)

    assert response.status_code == 504
    assert response.json()["type"] == "timeout"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"messages": []},
        {"messages": [{"role": "system", "content": "only instructions"}]},
        {"messages": [{"role": "robot", "content": "Q"}]},
        {},
    ],
)
async def test_invalid_request_is_422(async_client, override_app, payload):
    calls = []
    override_app(make_relay(lambda req: calls.append(req) or sse_response()))

    response = await async_client.post(URL, json=payload)

    assert response.status_code == 422
    assert calls == []


@pytest.mark.asyncio
async def test_model_selects_upstream_model(async_client, override_app):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return sse_response(b"data: [DONE]\n\n")

    override_app(make_relay(handler))

    response = await async_client.post(URL, json={**BODY, "model": "qwen-max"})

    assert response.status_code == 200
    assert response.text == ""
    assert json.loads(seen[0].content)["model"] == "qwen-max"


@pytest.mark.asyncio
async def test_request_id_is_echoed(async_client, override_app):
    override_app(make_relay(lambda req: sse_response(b"data: [DONE]\n\n")))

    response = await async_client.post(URL, json=BODY, headers={"X-Request-ID": "req-42"})

    assert response.headers["x-request-id"] == "req-42"


@pytest.mark.asyncio
async def test_metrics_endpoint(async_client):
    response = await async_client.get("/metrics")

    assert response.status_code == 200
    assert "http_requests_total" in response.text
