"""Caller-facing generation API.

The client owns the retry/downgrade policy. An attempt is only abandoned for
the next plan entry while it has produced no text: once the first delta has
arrived the attempt is committed, and whatever happens afterwards ends the
request with the text received so far.
"""

import asyncio
import re
from abc import ABC, abstractmethod
from contextlib import aclosing
from typing import Any, AsyncIterator, Callable, NamedTuple, Optional

import httpx
import structlog
from pydantic import BaseModel
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt

from edu_gateway.core.config import Settings
from edu_gateway.errors import (
    ConfigurationError,
    ExtractionFailure,
    FailureKind,
    GenerationFailure,
    RetryPlanExhausted,
    StreamInterrupted,
    UpstreamRejected,
)
from edu_gateway.observability import DOWNGRADES
from edu_gateway.providers.base import GenerationMode, GenerationRequest
from edu_gateway.services.extractor import ExtractionResult, JsonShape, extract
from edu_gateway.services.relay import MARKER_PREFIX, StreamRelay
from edu_gateway.services.retry import RetryEntry, RetryPlan, is_retryable

logger = structlog.get_logger()

_MARKER_RE = re.compile(re.escape(MARKER_PREFIX) + r"([^\n]*)\]$")
_MARKER_WINDOW = 512


class GenerationTransport(ABC):
    """Delivers the text deltas of one upstream attempt."""

    @abstractmethod
    def open(self, req: GenerationRequest, model: str) -> AsyncIterator[str]:
        """Async iterator of deltas; raises StreamInterrupted if cut short."""
        raise NotImplementedError


class LocalTransport(GenerationTransport):
    """Drives a StreamRelay living in the same process."""

    def __init__(self, relay: StreamRelay) -> None:
        self._relay = relay

    async def open(self, req: GenerationRequest, model: str) -> AsyncIterator[str]:
        stream = await self._relay.open(req, model)
        async with aclosing(stream.deltas()) as deltas:
            async for text in deltas:
                yield text


class HttpTransport(GenerationTransport):
    """Reaches a relay process through its POST endpoint."""

    def __init__(self, client: httpx.AsyncClient, url: str) -> None:
        self._client = client
        self._url = url

    async def open(self, req: GenerationRequest, model: str) -> AsyncIterator[str]:
        body = {"messages": [m.model_dump() for m in req.messages], "model": model}
        started = False
        # text held back while it could still be a bare interruption marker
        pending = ""
        tail = ""
        try:
            async with self._client.stream("POST", self._url, json=body) as response:
                if response.status_code != 200:
                    await response.aread()
                    raise _relay_error(response)
                async for text in response.aiter_text():
                    if not text:
                        continue
                    if not started:
                        pending += text
                        if _may_be_marker(pending):
                            continue
                        text, pending = pending, ""
                    started = True
                    tail = (tail + text)[-_MARKER_WINDOW:]
                    yield text
        except httpx.TimeoutException as exc:
            if started:
                raise StreamInterrupted(f"stream interrupted ({type(exc).__name__})") from exc
            raise GenerationFailure(
                f"Relay timed out: {type(exc).__name__}", kind=FailureKind.TIMEOUT
            ) from exc
        except httpx.HTTPError as exc:
            if started:
                raise StreamInterrupted(f"stream interrupted ({type(exc).__name__})") from exc
            raise GenerationFailure(f"Relay transport error: {exc}", kind=FailureKind.TRANSPORT) from exc

        if not started and pending:
            match = _MARKER_RE.fullmatch(pending)
            if match:
                # dropped before any text: nothing is committed, so the plan moves on
                raise StreamInterrupted(match.group(1))
            tail = pending[-_MARKER_WINDOW:]
            yield pending

        # The relay reports an upstream drop in-band, after the text it did get
        match = _MARKER_RE.search(tail)
        if match:
            raise StreamInterrupted(match.group(1), trailing=len(match.group(0)))


def _may_be_marker(text: str) -> bool:
    if MARKER_PREFIX.startswith(text):
        return True
    return text.startswith(MARKER_PREFIX) and "\n" not in text[len(MARKER_PREFIX):]


def _relay_error(response: httpx.Response) -> Exception:
    try:
        data = response.json()
    except ValueError:
        data = {}
    message = data.get("error") if isinstance(data, dict) else None
    message = message or response.text
    if isinstance(data, dict) and data.get("type") == "configuration_error":
        return ConfigurationError(message)
    return UpstreamRejected(response.status_code, message)


class Accumulator:
    """Append-only text of one in-flight request."""

    def __init__(self) -> None:
        self._text = ""

    def append(self, delta: str) -> None:
        self._text += delta

    @property
    def text(self) -> str:
        return self._text

    def drop_trailing(self, count: int) -> None:
        if count > 0:
            self._text = self._text[:-count]

    def final(self) -> str:
        return self._text


class GenerationResult(BaseModel):
    text: str
    model: str
    complete: bool = True
    error: Optional[str] = None
    attempts: int = 1
    data: Any = None
    shape: Optional[JsonShape] = None


class _CommittedAttempt(NamedTuple):
    entry: RetryEntry
    number: int
    first: Optional[str]
    deltas: AsyncIterator[str]


class GenerationStream:
    """Async iterable of the growing text; ``result`` is set once exhausted."""

    def __init__(self, client: "GenerationClient", req: GenerationRequest) -> None:
        self._client = client
        self._req = req
        self.result: Optional[GenerationResult] = None

    def __aiter__(self) -> AsyncIterator[str]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[str]:
        attempt = await self._client._commit(self._req)
        acc = Accumulator()
        error: Optional[str] = None
        if attempt.first is not None:
            acc.append(attempt.first)
            yield acc.text
            try:
                async with aclosing(attempt.deltas) as deltas:
                    async for delta in deltas:
                        acc.append(delta)
                        yield acc.text
            except StreamInterrupted as exc:
                acc.drop_trailing(exc.trailing)
                error = exc.reason
            except GenerationFailure as exc:
                error = str(exc)

        self.result = GenerationResult(
            text=acc.final(),
            model=attempt.entry.model,
            complete=error is None,
            error=error,
            attempts=attempt.number,
        )
        log = logger.warning if error else logger.info
        log(
            "generation_finished",
            model=attempt.entry.model,
            attempts=attempt.number,
            chars=len(self.result.text),
            complete=self.result.complete,
            error=error,
        )


class GenerationClient:
    def __init__(
        self,
        transport: GenerationTransport,
        plan: RetryPlan,
        *,
        extractor: Callable[[str], ExtractionResult] = extract,
    ) -> None:
        self._transport = transport
        self._plan = plan
        self._extract = extractor

    def stream(self, req: GenerationRequest) -> GenerationStream:
        return GenerationStream(self, req)

    async def generate(self, req: GenerationRequest) -> GenerationResult:
        """Run a request to completion.

        In structured mode the final text goes through the extractor and the
        parsed value lands in ``result.data``.

        Raises:
            ConfigurationError: no credential for the provider
            GenerationFailure: no attempt produced any text
            ExtractionFailure: structured mode and no JSON could be recovered
        """
        stream = self.stream(req)
        async for _ in stream:
            pass
        result = stream.result
        if result is None:
            raise GenerationFailure(
                "Generation stream ended without a result", kind=FailureKind.INTERRUPTED
            )
        if req.mode is GenerationMode.STRUCTURED:
            extracted = self._extract(result.text)
            if not extracted.ok:
                logger.warning(
                    "structured_extraction_failed",
                    model=result.model,
                    kind=extracted.kind.value,
                    snippet=extracted.snippet,
                )
                raise ExtractionFailure(extracted, result)
            result = result.model_copy(update={"data": extracted.value, "shape": extracted.shape})
        return result

    async def _commit(self, req: GenerationRequest) -> _CommittedAttempt:
        plan = self._plan.led_by(req.model)
        number = 0
        retrying = AsyncRetrying(
            stop=stop_after_attempt(len(plan)),
            retry=retry_if_exception(is_retryable),
            before_sleep=self._on_downgrade(plan),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    number = attempt.retry_state.attempt_number
                    entry = plan.entries[number - 1]
                    return await self._start(req, entry, number)
        except GenerationFailure as exc:
            if is_retryable(exc):
                raise RetryPlanExhausted(exc, number) from exc
            raise
        raise AssertionError("unreachable")  # pragma: no cover

    async def _start(
        self, req: GenerationRequest, entry: RetryEntry, number: int
    ) -> _CommittedAttempt:
        deltas = self._transport.open(req, entry.model)
        try:
            # Only establishment and the first delta are timed
            async with asyncio.timeout(entry.timeout):
                first = await anext(deltas, None)
        except TimeoutError as exc:
            await deltas.aclose()
            raise GenerationFailure(
                f"No output from {entry.model} within {entry.timeout}s",
                kind=FailureKind.TIMEOUT,
            ) from exc
        if first is None:
            await deltas.aclose()
        return _CommittedAttempt(entry=entry, number=number, first=first, deltas=deltas)

    def _on_downgrade(self, plan: RetryPlan) -> Callable[[RetryCallState], None]:
        def before_sleep(state: RetryCallState) -> None:
            failed = plan.entries[state.attempt_number - 1]
            exc = state.outcome.exception() if state.outcome else None
            DOWNGRADES.labels(failed.model).inc()
            logger.warning(
                "generation_downgrade",
                from_model=failed.model,
                to_model=plan.entries[state.attempt_number].model,
                error=str(exc),
            )

        return before_sleep


def build_client_from_settings(
    settings: Settings,
    relay: Optional[StreamRelay],
    http: Optional[httpx.AsyncClient],
) -> GenerationClient:
    plan = RetryPlan.from_pairs(settings.GENERATION_RETRY_PLAN)
    if settings.RELAY_URL:
        if http is None:
            raise ConfigurationError("RELAY_URL is set but no HTTP client was provided")
        return GenerationClient(HttpTransport(http, settings.RELAY_URL), plan)
    if relay is None:
        raise ConfigurationError("No relay available for in-process generation")
    return GenerationClient(LocalTransport(relay), plan)


__all__ = [
    "Accumulator",
    "GenerationClient",
    "GenerationResult",
    "GenerationStream",
    "GenerationTransport",
    "HttpTransport",
    "LocalTransport",
    "build_client_from_settings",
]
