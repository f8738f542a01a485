"""
Client for the upstream model-serving endpoint.

Wraps ``httpx.AsyncClient`` and maps every failure onto the relay error
taxonomy so the caller only ever sees ``RelayError`` subclasses.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

import httpx

from vibeflows.core.errors import ConfigurationError, TransportError, UpstreamError
from vibeflows.core.logger import get_logger
from vibeflows.core.settings import DEFAULT_STREAM_PATH, DEFAULT_TIMEOUT, RelaySettings, get_settings

logger = get_logger("vibeflows.upstream")


class UpstreamClient:
    """
    Streams one request to the model service.

    Usage:
        async with client.stream(payload) as chunks:
            async for chunk in chunks:
                ...
    """

    def __init__(
        self,
        base_url: str,
        stream_path: str = DEFAULT_STREAM_PATH,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.stream_path = stream_path
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Optional[RelaySettings] = None) -> "UpstreamClient":
        settings = settings or get_settings()
        if not settings.ai_api_url:
            raise ConfigurationError("VIBEFLOWS_AI_API_URL is not configured")
        return cls(
            base_url=settings.ai_api_url,
            stream_path=settings.ai_stream_path,
            timeout=settings.ai_timeout,
        )

    @property
    def url(self) -> str:
        return f"{self.base_url}{self.stream_path}"

    def _timeout(self) -> httpx.Timeout:
        # SSE streams can be quiet for long stretches; only bound connection setup.
        return httpx.Timeout(connect=self.timeout, read=None, write=self.timeout, pool=self.timeout)

    @asynccontextmanager
    async def stream(self, payload: dict[str, Any]) -> AsyncIterator[AsyncIterator[bytes]]:
        """Open the upstream stream and yield its body as byte chunks.

        Raises:
            UpstreamError: non-2xx response
            TransportError: connection or read failure
        """
        logger.debug("POST %s", self.url)
        async with httpx.AsyncClient(timeout=self._timeout(), transport=self._transport, trust_env=False) as client:
            try:
                async with client.stream(
                    "POST",
                    self.url,
                    json=payload,
                    headers={"Accept": "text/event-stream", "Content-Type": "application/json"},
                ) as response:
                    if not response.is_success:
                        body = (await response.aread()).decode("utf-8", errors="replace")
                        raise UpstreamError(response.status_code, body)
                    yield _iter_body(response)
            except httpx.TimeoutException as exc:
                raise TransportError(f"upstream request timed out: {exc}") from exc
            except httpx.HTTPError as exc:
                raise TransportError(f"upstream connection failed: {exc}") from exc


async def _iter_body(response: httpx.Response) -> AsyncIterator[bytes]:
    try:
        async for chunk in response.aiter_bytes():
            yield chunk
    except httpx.HTTPError as exc:
        raise TransportError(f"upstream stream interrupted: {exc}") from exc
