"""Relay one generation request from the upstream provider to a caller.

The relay never buffers generated text: every decoded delta is handed to the
consumer as soon as it is decoded, and the upstream socket is only read when
the consumer asks for more, so a slow client slows the upstream read instead of
growing a buffer.
"""

from contextlib import aclosing
from typing import AsyncIterator, Dict, List, Optional

import httpx
import structlog
from pybreaker import CircuitBreaker, CircuitBreakerError

from edu_gateway.core.config import Settings
from edu_gateway.errors import (
    ConfigurationError,
    FailureKind,
    GenerationFailure,
    StreamInterrupted,
    UpstreamRejected,
)
from edu_gateway.observability import STREAM_EVENTS, UPSTREAM_ATTEMPTS
from edu_gateway.providers.base import GenerationRequest, ProviderAdapter, UpstreamRequest
from edu_gateway.services.decoder import EventKind, StreamDecoder, StreamEvent
from edu_gateway.services.router import build_providers, resolve_provider

logger = structlog.get_logger()

MARKER_PREFIX = "\n[ERROR: "
MARKER_SUFFIX = "]"


def interruption_marker(reason: str) -> str:
    return f"{MARKER_PREFIX}{reason}{MARKER_SUFFIX}"


def build_upstream_client(settings: Settings) -> httpx.AsyncClient:
    # No read timeout: once streaming, the provider decides when the stream ends.
    timeout = httpx.Timeout(
        connect=settings.UPSTREAM_CONNECT_TIMEOUT_SECONDS,
        read=None,
        write=30.0,
        pool=settings.UPSTREAM_CONNECT_TIMEOUT_SECONDS,
    )
    return httpx.AsyncClient(timeout=timeout)


class UpstreamStream:
    """An accepted upstream response, decoded lazily into text deltas."""

    def __init__(
        self,
        response: httpx.Response,
        decoder: StreamDecoder,
        *,
        provider: str,
        model: str,
    ) -> None:
        self._response = response
        self._decoder = decoder
        self.provider = provider
        self.model = model
        self.terminated = False

    async def deltas(self) -> AsyncIterator[str]:
        """Yield text deltas in upstream order.

        Raises:
            StreamInterrupted: the connection failed before a terminator or EOF
        """
        try:
            async for chunk in self._response.aiter_bytes():
                for text in self._handle(self._decoder.feed(chunk)):
                    yield text
                if self._decoder.finished:
                    return
            for text in self._handle(self._decoder.close()):
                yield text
            if not self.terminated:
                logger.info(
                    "upstream_closed_without_terminator",
                    provider=self.provider,
                    model=self.model,
                )
        except httpx.HTTPError as exc:
            STREAM_EVENTS.labels(self.provider, "interrupted").inc()
            logger.warning(
                "upstream_stream_interrupted",
                provider=self.provider,
                model=self.model,
                error=str(exc),
            )
            raise StreamInterrupted(f"stream interrupted ({type(exc).__name__})") from exc
        finally:
            # Runs on consumer cancellation too, which cancels the upstream call
            await self._response.aclose()

    async def text_stream(self) -> AsyncIterator[str]:
        """Outbound body: deltas, plus an inline marker if the upstream drops."""
        try:
            async with aclosing(self.deltas()) as deltas:
                async for text in deltas:
                    yield text
        except StreamInterrupted as exc:
            yield interruption_marker(exc.reason)

    async def aclose(self) -> None:
        await self._response.aclose()

    def _handle(self, events: List[StreamEvent]) -> List[str]:
        texts = []
        for event in events:
            if event.kind is EventKind.DELTA:
                texts.append(event.text)
            elif event.kind is EventKind.MALFORMED:
                STREAM_EVENTS.labels(self.provider, "malformed").inc()
                logger.warning(
                    "malformed_frame_skipped",
                    provider=self.provider,
                    payload=(event.raw or "")[:200],
                )
            else:
                self.terminated = True
        return texts


class StreamRelay:
    def __init__(
        self,
        client: httpx.AsyncClient,
        providers: Dict[str, ProviderAdapter],
        *,
        default_model: str,
        breakers: Optional[Dict[str, CircuitBreaker]] = None,
    ) -> None:
        self._client = client
        self._providers = providers
        self._default_model = default_model
        self._breakers = breakers if breakers is not None else {
            name: CircuitBreaker(fail_max=5, reset_timeout=60) for name in providers
        }

    @classmethod
    def from_settings(cls, settings: Settings, client: httpx.AsyncClient) -> "StreamRelay":
        providers = build_providers(settings)
        breakers = {
            name: CircuitBreaker(
                fail_max=settings.CB_FAIL_MAX,
                reset_timeout=settings.CB_RESET_TIMEOUT,
                name=name,
            )
            for name in providers
        }
        return cls(client, providers, default_model=settings.DEFAULT_MODEL, breakers=breakers)

    async def open(self, req: GenerationRequest, model: Optional[str] = None) -> UpstreamStream:
        """Start one upstream generation and return its stream once accepted.

        Raises:
            ConfigurationError: the provider has no credential
            UpstreamRejected: non-2xx answer; nothing was streamed
            GenerationFailure: timeout, transport error or open circuit
        """
        provider_name, model = resolve_provider(model or req.model, self._default_model)
        adapter = self._providers[provider_name]
        if not adapter.configured:
            raise ConfigurationError(
                f"Server configuration error: missing API key for provider '{provider_name}'"
            )

        upstream = adapter.build_upstream_request(req, model)
        breaker = self._breakers[provider_name]
        try:
            with breaker.calling():
                response = await self._send(upstream)
        except CircuitBreakerError as exc:
            UPSTREAM_ATTEMPTS.labels(provider_name, "circuit_open").inc()
            raise GenerationFailure(
                f"Circuit open for provider '{provider_name}'", kind=FailureKind.CIRCUIT_OPEN
            ) from exc
        except GenerationFailure as exc:
            UPSTREAM_ATTEMPTS.labels(provider_name, exc.kind.value).inc()
            logger.warning(
                "upstream_request_failed",
                provider=provider_name,
                model=model,
                kind=exc.kind.value,
                status=exc.status,
            )
            raise

        UPSTREAM_ATTEMPTS.labels(provider_name, "accepted").inc()
        logger.info("upstream_stream_opened", provider=provider_name, model=model)
        return UpstreamStream(
            response,
            StreamDecoder(adapter.parse_frame),
            provider=provider_name,
            model=model,
        )

    async def _send(self, upstream: UpstreamRequest) -> httpx.Response:
        request = self._client.build_request(
            "POST", upstream.url, headers=upstream.headers, json=upstream.json_body
        )
        try:
            response = await self._client.send(request, stream=True)
        except httpx.TimeoutException as exc:
            raise GenerationFailure(
                f"Upstream timed out: {type(exc).__name__}", kind=FailureKind.TIMEOUT
            ) from exc
        except httpx.TransportError as exc:
            raise GenerationFailure(
                f"Upstream transport error: {exc}", kind=FailureKind.TRANSPORT
            ) from exc

        if response.is_success:
            return response
        try:
            body = (await response.aread()).decode("utf-8", errors="replace")
        except httpx.HTTPError:
            body = ""
        finally:
            await response.aclose()
        raise UpstreamRejected(response.status_code, body)
