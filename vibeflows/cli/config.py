"""
VibeFlows CLI Configuration Module

Handles configuration priority:
  1. CLI flags (highest priority)
  2. Environment variables
  3. Default values (lowest priority)

Configuration sources:
  - API_BASE: VIBEFLOWS_API_BASE (env) → http://127.0.0.1:8000 (default)
  - TIMEOUT: VIBEFLOWS_CLI_TIMEOUT (env) → 30 (default, seconds)
  - RETRY_TIMES: VIBEFLOWS_CLI_RETRY_TIMES (env) → 3 (default)
  - PROFILE: VIBEFLOWS_CLI_PROFILE (env) → auto (default, auto|compact|verbose)
  - COALESCE_MS: VIBEFLOWS_CLI_COALESCE_MS (env) → 300 (default, milliseconds)
"""

import os
import shutil
from dataclasses import dataclass
from typing import Literal, Optional

from vibeflows.cli.lib.render_policy import Profile, profile_for_width

ProfileSetting = Literal["auto", "compact", "verbose"]

DEFAULT_API_BASE = "http://127.0.0.1:8000"


@dataclass
class CLIConfig:
    """CLI Configuration object."""

    api_base: str = DEFAULT_API_BASE
    timeout: int = 30  # seconds
    retry_times: int = 3
    profile: ProfileSetting = "auto"
    coalesce_ms: int = 300

    def resolve_profile(self, columns: Optional[int] = None) -> Profile:
        """Turn ``auto`` into a concrete profile using the terminal width."""
        if self.profile != "auto":
            return self.profile
        if columns is None:
            columns = shutil.get_terminal_size(fallback=(120, 24)).columns
        return profile_for_width(columns)


def _int_from_env(name: str, default: int) -> int:
    try:
        raw = os.getenv(name)
        if raw:
            return int(raw)
    except (ValueError, TypeError):
        pass
    return default


def get_api_base_from_env() -> str:
    return os.getenv("VIBEFLOWS_API_BASE") or DEFAULT_API_BASE


def get_profile_from_env() -> ProfileSetting:
    profile = os.getenv("VIBEFLOWS_CLI_PROFILE", "auto").strip().lower()
    if profile in ("auto", "compact", "verbose"):
        return profile  # type: ignore
    return "auto"


def get_config(
    api_base: Optional[str] = None,
    timeout: Optional[int] = None,
    retry_times: Optional[int] = None,
    profile: Optional[ProfileSetting] = None,
    coalesce_ms: Optional[int] = None,
) -> CLIConfig:
    """Build CLI configuration with priority: CLI flag > env > default."""
    return CLIConfig(
        api_base=api_base or get_api_base_from_env(),
        timeout=timeout or _int_from_env("VIBEFLOWS_CLI_TIMEOUT", 30),
        retry_times=retry_times or _int_from_env("VIBEFLOWS_CLI_RETRY_TIMES", 3),
        profile=profile or get_profile_from_env(),
        coalesce_ms=coalesce_ms if coalesce_ms is not None else _int_from_env("VIBEFLOWS_CLI_COALESCE_MS", 300),
    )
