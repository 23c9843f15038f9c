"""Error taxonomy for the generation gateway.

Public API:
    GatewayError: Base exception for all gateway errors
    ConfigurationError: Missing or invalid credential (fatal, never retried)
    GenerationFailure: The model never answered (or stopped answering)
    UpstreamRejected: Upstream returned non-2xx before streaming began
    StreamInterrupted: Upstream connection dropped mid-stream
    RetryPlanExhausted: Every entry of the retry plan failed
    ExtractionFailure: The model answered, but not in the expected shape
"""

from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from edu_gateway.services.extractor import ExtractionError


class FailureKind(str, Enum):
    UPSTREAM_REJECTED = "upstream_rejected"
    TIMEOUT = "timeout"
    TRANSPORT = "transport"
    CIRCUIT_OPEN = "circuit_open"
    INTERRUPTED = "interrupted"
    EXHAUSTED = "exhausted"


class GatewayError(Exception):
    """Base exception for all gateway errors."""

    pass


class ConfigurationError(GatewayError):
    """Credential or provider configuration is missing."""

    pass


class GenerationFailure(GatewayError):
    """Upstream generation failed.

    Attributes:
        kind: Failure class, used by the retry policy
        status: HTTP status when the upstream answered with one
        body: Upstream response body (rejections only)
    """

    def __init__(
        self,
        message: str,
        *,
        kind: FailureKind,
        status: int | None = None,
        body: str | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.status = status
        self.body = body


class UpstreamRejected(GenerationFailure):
    """Upstream answered with a non-2xx status; no stream was started."""

    def __init__(self, status: int, body: str) -> None:
        super().__init__(
            f"Upstream rejected the request with HTTP {status}: {body[:200]}",
            kind=FailureKind.UPSTREAM_REJECTED,
            status=status,
            body=body,
        )


class StreamInterrupted(GenerationFailure):
    """Upstream connection dropped before the stream terminated."""

    def __init__(self, reason: str, *, trailing: int = 0) -> None:
        super().__init__(reason, kind=FailureKind.INTERRUPTED)
        self.reason = reason
        # characters of an in-band diagnostic marker already delivered as text
        self.trailing = trailing


class RetryPlanExhausted(GenerationFailure):
    """All retry plan entries failed before producing any text."""

    def __init__(self, last_error: GenerationFailure, attempts: int) -> None:
        super().__init__(
            f"Generation failed after {attempts} attempt(s): {last_error}",
            kind=FailureKind.EXHAUSTED,
            status=last_error.status,
            body=last_error.body,
        )
        self.last_error = last_error
        self.attempts = attempts


class ExtractionFailure(GatewayError):
    """Final text holds no recoverable JSON value."""

    def __init__(self, error: "ExtractionError", result: Any = None) -> None:
        super().__init__(f"{error.kind.value}: {error.message}")
        self.error = error
        self.result = result


__all__ = [
    "FailureKind",
    "GatewayError",
    "ConfigurationError",
    "GenerationFailure",
    "UpstreamRejected",
    "StreamInterrupted",
    "RetryPlanExhausted",
    "ExtractionFailure",
]
