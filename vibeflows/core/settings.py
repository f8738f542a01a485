"""
Relay configuration.

Sources (read on every call so tests can patch the environment):
  - AI_API_URL: VIBEFLOWS_AI_API_URL (env) → unset (the relay reports a configuration error)
  - AI_STREAM_PATH: VIBEFLOWS_AI_STREAM_PATH (env) → /api/ai/stream
  - AI_TIMEOUT: VIBEFLOWS_AI_TIMEOUT (env) → 30 (seconds, connect/write/pool only)
  - CORS_ORIGINS: VIBEFLOWS_CORS_ORIGINS (env, comma separated) → local dev origins
"""

import os
from dataclasses import dataclass, field
from typing import Optional

DEFAULT_STREAM_PATH = "/api/ai/stream"
DEFAULT_TIMEOUT = 30.0
DEFAULT_CORS_ORIGINS = (
    "http://localhost:3000",
    "http://127.0.0.1:3000",
)


@dataclass
class RelaySettings:
    ai_api_url: Optional[str] = None
    ai_stream_path: str = DEFAULT_STREAM_PATH
    ai_timeout: float = DEFAULT_TIMEOUT
    cors_origins: list[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))


def _get_ai_api_url() -> Optional[str]:
    value = os.getenv("VIBEFLOWS_AI_API_URL", "").strip()
    return value or None


def _get_stream_path() -> str:
    value = os.getenv("VIBEFLOWS_AI_STREAM_PATH", "").strip()
    if not value:
        return DEFAULT_STREAM_PATH
    return value if value.startswith("/") else f"/{value}"


def _get_timeout() -> float:
    try:
        raw = os.getenv("VIBEFLOWS_AI_TIMEOUT")
        if raw:
            return float(raw)
    except (ValueError, TypeError):
        pass
    return DEFAULT_TIMEOUT


def _get_cors_origins() -> list[str]:
    raw = os.getenv("VIBEFLOWS_CORS_ORIGINS", "").strip()
    if not raw:
        return list(DEFAULT_CORS_ORIGINS)
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def get_settings() -> RelaySettings:
    return RelaySettings(
        ai_api_url=_get_ai_api_url(),
        ai_stream_path=_get_stream_path(),
        ai_timeout=_get_timeout(),
        cors_origins=_get_cors_origins(),
    )
