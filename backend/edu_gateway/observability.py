import time
import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import APIRouter

logger = structlog.get_logger()

REQ_COUNTER = Counter("http_requests_total", "Total HTTP Requests", ["method", "path", "status"])
REQ_LATENCY = Histogram("http_request_latency_seconds", "Request latency", ["method", "path"])

UPSTREAM_ATTEMPTS = Counter(
    "generation_upstream_attempts_total",
    "Upstream generation attempts by outcome",
    ["provider", "outcome"],
)
DOWNGRADES = Counter(
    "generation_downgrades_total",
    "Retry plan entries abandoned before the first delta",
    ["from_model"],
)
STREAM_EVENTS = Counter(
    "generation_stream_events_total",
    "Notable events while relaying an upstream stream",
    ["provider", "kind"],
)


class MetricsMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
            return response
        finally:
            # streamed bodies are still running here; this is time to first byte
            latency = time.perf_counter() - start
            path = request.url.path
            method = request.method
            REQ_COUNTER.labels(method, path, status).inc()
            REQ_LATENCY.labels(method, path).observe(latency)


metrics_router = APIRouter()


@metrics_router.get("/metrics")
async def metrics():
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
