from contextlib import asynccontextmanager

import sentry_sdk
from fastapi import FastAPI
from fastapi.routing import APIRoute
from starlette.middleware.cors import CORSMiddleware

from edu_gateway.api.main import api_router
from edu_gateway.core.config import settings
from edu_gateway.middleware.request_id import RequestIdMiddleware
from edu_gateway.observability import MetricsMiddleware, metrics_router
from edu_gateway.services.client import build_client_from_settings
from edu_gateway.services.relay import StreamRelay, build_upstream_client
from edu_gateway.utils.rate_limit import KeyedRateLimiter


def custom_generate_unique_id(route: APIRoute) -> str:
    return f"{route.tags[0]}-{route.name}"


@asynccontextmanager
async def lifespan(app: FastAPI):
    # One pooled client and one relay per process; the credential is read-only
    upstream = build_upstream_client(settings)
    relay = StreamRelay.from_settings(settings, upstream)
    app.state.relay = relay
    app.state.generation_client = build_client_from_settings(settings, relay, upstream)
    try:
        yield
    finally:
        await upstream.aclose()


if settings.SENTRY_DSN and settings.ENVIRONMENT != "local":
    sentry_sdk.init(dsn=str(settings.SENTRY_DSN), enable_tracing=True)

app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    generate_unique_id_function=custom_generate_unique_id,
    lifespan=lifespan,
)
app.state.rate_limiter = KeyedRateLimiter(settings.RATE_LIMIT_PER_MINUTE)

app.add_middleware(RequestIdMiddleware)
app.add_middleware(MetricsMiddleware)

# Set all CORS enabled origins
if settings.all_cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.all_cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(api_router, prefix=settings.API_V1_STR)
app.include_router(metrics_router, tags=["metrics"])
