from typing import Optional

from vibeflows.cli.config import CLIConfig, get_config

_config: Optional[CLIConfig] = None


def set_global_config(config: CLIConfig) -> None:
    global _config
    _config = config


def get_global_config() -> CLIConfig:
    global _config
    if _config is None:
        _config = get_config()
    return _config
