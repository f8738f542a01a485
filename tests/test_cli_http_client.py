"""
Unit tests for CLI HTTP client error handling and retry logic.

Covers APIClient against the relay's JSON endpoints and the status check
done by AsyncAPIClient.stream on entry.
"""

import asyncio
import json
from unittest.mock import patch

import httpx
import pytest

from vibeflows.cli.client import (
    APIClient,
    AsyncAPIClient,
    HTTPStatusError,
    JSONParseError,
    NetworkError,
    TimeoutError as ClientTimeoutError,
)


def _client_with(handler, retry_times: int = 1) -> APIClient:
    return APIClient(base_url="http://relay.test", retry_times=retry_times, transport=httpx.MockTransport(handler))


class TestRetries:
    """Transport failures are retried; status errors are not."""

    def test_connect_error_retried_then_raised(self) -> None:
        client = APIClient(base_url="http://relay.test", retry_times=3)

        with patch.object(client._client, "request") as mock_request:
            mock_request.side_effect = httpx.ConnectError("Connection refused")

            with pytest.raises(NetworkError):
                client.get("/api/chats")

            assert mock_request.call_count == 3

        client.close()

    def test_success_after_transient_failures(self) -> None:
        attempts = {"n": 0}

        def handler(request: httpx.Request) -> httpx.Response:
            attempts["n"] += 1
            if attempts["n"] < 3:
                raise httpx.ConnectError("Connection refused", request=request)
            return httpx.Response(200, json={"chats": []})

        with _client_with(handler, retry_times=3) as client:
            assert client.get("/api/chats") == {"chats": []}
        assert attempts["n"] == 3

    def test_status_error_not_retried(self) -> None:
        attempts = {"n": 0}

        def handler(request: httpx.Request) -> httpx.Response:
            attempts["n"] += 1
            return httpx.Response(404, json={"detail": "chat not found"})

        with _client_with(handler, retry_times=3) as client:
            with pytest.raises(HTTPStatusError) as exc_info:
                client.get("/api/chats/chat_x")

        assert exc_info.value.status_code == 404
        assert "chat not found" in exc_info.value.response_text
        assert attempts["n"] == 1


class TestErrorMapping:
    """httpx exceptions map onto the CLI error classes."""

    @pytest.mark.parametrize(
        "raised,expected",
        [
            (httpx.ConnectTimeout("slow connect"), NetworkError),
            (httpx.ReadTimeout("slow read"), ClientTimeoutError),
            (httpx.NetworkError("dns"), NetworkError),
            (httpx.RemoteProtocolError("bad frame"), NetworkError),
        ],
    )
    def test_transport_errors(self, raised, expected) -> None:
        client = APIClient(base_url="http://relay.test", retry_times=1)
        with patch.object(client._client, "request", side_effect=raised):
            with pytest.raises(expected):
                client.post("/api/messages", json={"text": "x"})
        client.close()

    def test_invalid_json_body(self) -> None:
        with _client_with(lambda request: httpx.Response(200, text="not json {]")) as client:
            with pytest.raises(JSONParseError) as exc_info:
                client.get("/health")
        assert "not json" in exc_info.value.response_text

    def test_post_sends_json_payload(self) -> None:
        seen: dict = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"chat_id": "chat_1"})

        with _client_with(handler) as client:
            assert client.post("/api/chats", json={"title": "t"}) == {"chat_id": "chat_1"}
        assert seen == {"method": "POST", "body": {"title": "t"}}


class TestAsyncStream:
    """Status validation when opening the relay stream."""

    def test_error_status_raises_on_entry(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(500, text="relay down"))

        async def open_stream():
            async with AsyncAPIClient(base_url="http://relay.test", transport=transport) as client:
                async with client.stream("POST", "/api/ai/stream", json={"user_query": "x"}):
                    pass

        with pytest.raises(HTTPStatusError) as exc_info:
            asyncio.run(open_stream())
        assert exc_info.value.status_code == 500
        assert exc_info.value.response_text == "relay down"

    def test_stream_yields_body(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(200, content=b"data: [DONE]\n\n"))

        async def read_all() -> bytes:
            async with AsyncAPIClient(base_url="http://relay.test", transport=transport) as client:
                async with client.stream("POST", "/api/ai/stream", json={"user_query": "x"}) as response:
                    return b"".join([chunk async for chunk in response.aiter_bytes()])

        assert asyncio.run(read_all()) == b"data: [DONE]\n\n"


class TestErrorMessages:
    """User-facing messages."""

    def test_messages(self) -> None:
        assert "connect" in NetworkError("refused").user_friendly_message().lower()
        assert "timed out" in ClientTimeoutError("slow").user_friendly_message().lower()
        assert "400" in HTTPStatusError("bad", status_code=400, response_text="x").user_friendly_message()
        assert "json" in JSONParseError("bad", response_text="x").user_friendly_message().lower()
