"""
HTTP Client for CLI
Wraps httpx clients with unified error handling and retry logic.
"""

import json
import logging
from typing import Any, Dict, Optional
from urllib.parse import urljoin

import httpx

logger = logging.getLogger(__name__)

_SENSITIVE_HEADERS = ("authorization", "x-api-key")


# ============================================================================
# Error Classes
# ============================================================================


class APIError(Exception):
    """Base exception for API errors."""

    def __init__(self, message: str, status_code: Optional[int] = None, response_text: str = ""):
        self.message = message
        self.status_code = status_code
        self.response_text = response_text
        super().__init__(self.message)

    def user_friendly_message(self) -> str:
        """Returns a user-friendly error message."""
        return self.message


class NetworkError(APIError):
    """Network connectivity errors (connection refused, DNS failure, etc.)."""

    def user_friendly_message(self) -> str:
        return (
            f"[ERROR] Unable to connect to server\n\n"
            f"Error: {self.message}\n\n"
            f"Suggestions:\n"
            f"  1. Check that the relay is running (uvicorn vibeflows.main:app ...)\n"
            f"  2. Check the --api-base option\n"
            f"  3. Check your network connection"
        )


class TimeoutError(APIError):
    """Request timeout errors."""

    def user_friendly_message(self) -> str:
        return (
            f"[TIMEOUT] Request timed out\n\n"
            f"Error: {self.message}\n\n"
            f"Suggestions:\n"
            f"  1. Check your network connection\n"
            f"  2. Check whether the relay is responding slowly\n"
            f"  3. Increase the timeout (--timeout)"
        )


class HTTPStatusError(APIError):
    """HTTP status code errors (4xx, 5xx)."""

    def user_friendly_message(self) -> str:
        status = self.status_code or "Unknown"
        return (
            f"[SERVER ERROR] (HTTP {status})\n\n"
            f"Error: {self.message}\n\n"
            f"Response: {self.response_text[:200]}"
        )


class JSONParseError(APIError):
    """JSON parsing errors in response."""

    def user_friendly_message(self) -> str:
        return (
            f"[JSON ERROR] Failed to parse JSON\n\n"
            f"Error: {self.message}\n\n"
            f"Raw response: {self.response_text[:200]}"
        )


def _safe_headers(headers: Dict[str, str]) -> Dict[str, str]:
    return {k: ("***" if k.lower() in _SENSITIVE_HEADERS else v) for k, v in headers.items()}


def _raise_for_status(status_code: int, response_text: str) -> None:
    if status_code >= 400:
        raise HTTPStatusError(
            f"HTTP {status_code}: {response_text[:100]}",
            status_code=status_code,
            response_text=response_text,
        )


def _process_response(response: httpx.Response) -> Any:
    """
    Process HTTP response.

    Handles:
    - Non-2xx status codes -> HTTPStatusError
    - JSON parse errors -> JSONParseError
    """
    _raise_for_status(response.status_code, response.text)
    try:
        return response.json()
    except (json.JSONDecodeError, ValueError) as e:
        raise JSONParseError(
            f"Failed to parse JSON response: {str(e)}",
            response_text=response.text,
        ) from e


def _wrap_transport_error(error: Exception, retry_times: int) -> APIError:
    if isinstance(error, httpx.ConnectTimeout):
        return NetworkError("Connection timeout: server may be unreachable")
    if isinstance(error, httpx.TimeoutException):
        return TimeoutError(f"Request timeout after {retry_times} attempts")
    if isinstance(error, (httpx.ConnectError, httpx.NetworkError)):
        return NetworkError(str(error))
    return NetworkError(f"HTTP error: {str(error)}")


# ============================================================================
# HTTP Client
# ============================================================================


class APIClient:
    """
    HTTP Client wrapper around httpx.Client with unified error handling.

    Used for the relay's JSON endpoints (chats, messages).
    """

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:8000",
        timeout: float = 30.0,
        retry_times: int = 1,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Initialize API client.

        Args:
            base_url: Base URL for the relay (e.g., http://127.0.0.1:8000)
            timeout: Request timeout in seconds
            retry_times: Number of attempts on network errors (not on 4xx/5xx)
            transport: Optional httpx transport (tests)
        """
        self.base_url = base_url
        self.timeout = timeout
        self.retry_times = max(1, retry_times)

        self._client = httpx.Client(
            base_url=base_url,
            timeout=timeout,
            headers={"Content-Type": "application/json"},
            transport=transport,
            trust_env=False,
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self):
        """Close the underlying httpx client."""
        if self._client:
            self._client.close()

    def _request(self, method: str, path: str, **kwargs) -> Any:
        url = urljoin(self.base_url, path)
        logger.debug(f"{method} {url} | headers: {_safe_headers(kwargs.get('headers', {}))}")

        for attempt in range(1, self.retry_times + 1):
            try:
                response = self._client.request(method, path, **kwargs)
            except httpx.HTTPError as e:
                logger.error(f"Request failed (attempt {attempt}): {type(e).__name__}: {str(e)}")
                if attempt >= self.retry_times:
                    raise _wrap_transport_error(e, self.retry_times) from e
                continue
            return _process_response(response)

    def get(self, path: str, **kwargs) -> Any:
        """
        Make GET request.

        Raises:
            NetworkError: Connection failure
            TimeoutError: Request timeout
            HTTPStatusError: Non-2xx HTTP status
            JSONParseError: JSON parsing failure
        """
        return self._request("GET", path, **kwargs)

    def post(self, path: str, json: Optional[Dict[str, Any]] = None, **kwargs) -> Any:
        """Make POST request. Raises the same errors as ``get``."""
        return self._request("POST", path, json=json, **kwargs)


# ============================================================================
# Async Version
# ============================================================================


class _AsyncStreamContextWrapper:
    """
    Async context manager around ``httpx.AsyncClient.stream``.
    Validates the status code on entry and maps transport errors.
    """

    def __init__(self, ctx_mgr):
        self.ctx_mgr = ctx_mgr
        self.response: Optional[httpx.Response] = None

    async def __aenter__(self) -> httpx.Response:
        try:
            self.response = await self.ctx_mgr.__aenter__()
        except httpx.TimeoutException as e:
            raise TimeoutError("Stream request timeout") from e
        except httpx.HTTPError as e:
            raise NetworkError(str(e)) from e

        if self.response.status_code >= 400:
            response_text = (await self.response.aread()).decode("utf-8", errors="replace")
            await self.ctx_mgr.__aexit__(None, None, None)
            _raise_for_status(self.response.status_code, response_text)
        return self.response

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return await self.ctx_mgr.__aexit__(exc_type, exc_val, exc_tb)


class AsyncAPIClient:
    """
    Async HTTP Client wrapper around httpx.AsyncClient.

    Used to consume the relay's SSE stream.
    """

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:8000",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url
        self.timeout = timeout

        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            headers={"Content-Type": "application/json"},
            transport=transport,
            trust_env=False,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        """Close the underlying httpx client."""
        if self._client:
            await self._client.aclose()

    def stream(self, method: str, path: str, json: Optional[Dict[str, Any]] = None, **kwargs):
        """
        Make a streaming request and return an async context manager for SSE.

        Usage:
            async with client.stream("POST", "/api/ai/stream", json=payload) as response:
                async for chunk in response.aiter_bytes():
                    ...

        Raises (on entry):
            NetworkError: Connection failure
            TimeoutError: Request timeout
            HTTPStatusError: Non-2xx HTTP status
        """
        url = urljoin(self.base_url, path)
        logger.debug(f"{method} {url} (stream)")

        # For SSE streams, disable read timeout to tolerate sparse server events.
        stream_timeout = kwargs.pop("timeout", None)
        if stream_timeout is None:
            stream_timeout = httpx.Timeout(
                connect=self.timeout,
                read=None,
                write=self.timeout,
                pool=self.timeout,
            )
        headers = {"Accept": "text/event-stream", **kwargs.pop("headers", {})}
        ctx_mgr = self._client.stream(method, path, json=json, timeout=stream_timeout, headers=headers, **kwargs)
        return _AsyncStreamContextWrapper(ctx_mgr)
