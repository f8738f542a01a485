"""Relay error taxonomy.

Once the outbound SSE response has started, none of these escape as HTTP
errors: the relay turns them into a single in-band ``error`` event.
"""

from __future__ import annotations


class RelayError(Exception):
    """Base exception for relay failures."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class ConfigurationError(RelayError):
    """Upstream model service address is not configured."""


class UpstreamError(RelayError):
    """Upstream model service answered with a non-2xx status."""

    def __init__(self, status_code: int, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(f"AI API responded with status: {status_code} - {body}")


class TransportError(RelayError):
    """Network failure while talking to the upstream service."""


class FrameParseError(RelayError):
    """A single data frame could not be parsed. Always recovered per line."""

    def __init__(self, message: str, line: str = ""):
        self.line = line
        super().__init__(message)


class PersistenceError(RelayError):
    """Writing a chat message failed."""
