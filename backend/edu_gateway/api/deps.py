from typing import Annotated

from fastapi import Depends, Header, Request

from edu_gateway.core.config import settings
from edu_gateway.services.client import GenerationClient
from edu_gateway.services.relay import StreamRelay


def get_relay(request: Request) -> StreamRelay:
    return request.app.state.relay


def get_generation_client(request: Request) -> GenerationClient:
    return request.app.state.generation_client


def get_rate_limit_key(
    request: Request,
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
) -> str:
    """Configured API keys get their own bucket; everyone else is keyed by host."""
    if x_api_key and x_api_key in settings.API_KEYS:
        return f"key:{x_api_key}"
    host = request.client.host if request.client else "unknown"
    return f"host:{host}"


RelayDep = Annotated[StreamRelay, Depends(get_relay)]
ClientDep = Annotated[GenerationClient, Depends(get_generation_client)]
RateLimitKeyDep = Annotated[str, Depends(get_rate_limit_key)]


async def enforce_rate_limit(request: Request, key: RateLimitKeyDep) -> None:
    await request.app.state.rate_limiter.for_key(key).acquire()
