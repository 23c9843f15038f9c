"""Shared test fixtures.

The upstream provider is replaced by an ``httpx.MockTransport`` and the app is
driven through ``httpx.ASGITransport``, so no test touches the network.
"""

from collections.abc import AsyncGenerator, Callable, Iterator

import httpx
import pytest
import pytest_asyncio

from edu_gateway.api.deps import get_generation_client, get_relay
from edu_gateway.main import app
from edu_gateway.services.client import GenerationClient, LocalTransport
from edu_gateway.services.relay import StreamRelay
from edu_gateway.services.retry import RetryPlan


@pytest.fixture
def override_app() -> Iterator[Callable[..., None]]:
    """Install a relay (and optionally a client) on the app for one test."""

    def install(relay: StreamRelay, client: GenerationClient | None = None) -> None:
        client = client or GenerationClient(
            LocalTransport(relay), RetryPlan.from_pairs([("qwen-plus", 5.0)])
        )
        app.dependency_overrides[get_relay] = lambda: relay
        app.dependency_overrides[get_generation_client] = lambda: client

    yield install
    app.dependency_overrides.pop(get_relay, None)
    app.dependency_overrides.pop(get_generation_client, None)


@pytest_asyncio.fixture
async def async_client() -> AsyncGenerator[httpx.AsyncClient, None]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
