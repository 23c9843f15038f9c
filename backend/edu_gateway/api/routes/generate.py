from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.background import BackgroundTask
import structlog

from edu_gateway.api.deps import RelayDep, enforce_rate_limit
from edu_gateway.errors import (
    ConfigurationError,
    FailureKind,
    GenerationFailure,
    UpstreamRejected,
)
from edu_gateway.schemas import ErrorBody, GenerateRequest

router = APIRouter(prefix="/ai", tags=["ai"], dependencies=[Depends(enforce_rate_limit)])
logger = structlog.get_logger()

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # Disable nginx buffering
}


def _error(status_code: int, message: str, kind: str) -> JSONResponse:
    body = ErrorBody(error=message, type=kind)
    return JSONResponse(status_code=status_code, content=body.model_dump())


@router.post(
    "/generate",
    responses={
        200: {"content": {"text/plain": {}}, "description": "Generated text, streamed"},
        500: {"model": ErrorBody},
    },
)
async def generate(payload: GenerateRequest, request: Request, relay: RelayDep):
    """
    Relay one generation as a plain text stream.

    Upstream failures before the first byte are answered with a JSON error;
    a drop mid-stream ends the body with an inline `[ERROR: ...]` marker.
    """
    try:
        upstream = await relay.open(payload.to_generation_request(), payload.model)
    except ConfigurationError as e:
        logger.error("relay_configuration_error", error=str(e))
        return _error(500, str(e), "configuration_error")
    except UpstreamRejected as e:
        return _error(e.status or 502, f"Upstream API error: {e.body}", FailureKind.UPSTREAM_REJECTED.value)
    except GenerationFailure as e:
        status_code = 504 if e.kind is FailureKind.TIMEOUT else 502
        return _error(status_code, str(e), e.kind.value)

    logger.info(
        "relay_stream_started",
        provider=upstream.provider,
        model=upstream.model,
        request_id=getattr(request.state, "request_id", None),
    )
    return StreamingResponse(
        upstream.text_stream(),
        media_type="text/plain; charset=utf-8",
        headers=STREAM_HEADERS,
        # closes the upstream even if the body was never iterated
        background=BackgroundTask(upstream.aclose),
    )
