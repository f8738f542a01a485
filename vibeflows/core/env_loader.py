import os
from pathlib import Path


def _project_env_path() -> Path:
    custom = os.getenv("VIBEFLOWS_ENV_FILE", "").strip()
    if custom:
        return Path(custom)
    return Path(__file__).resolve().parents[2] / ".env"


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {'"', "'"}:
        return value[1:-1]
    return value


def load_project_env(override: bool = False) -> dict[str, str]:
    """Load ``KEY=VALUE`` pairs from the project ``.env`` into ``os.environ``.

    Existing variables win unless ``override`` is set. Returns the pairs that
    were applied.
    """
    env_path = _project_env_path()
    if not env_path.exists():
        return {}

    applied: dict[str, str] = {}
    for raw_line in env_path.read_text(encoding="utf-8-sig").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        if line.startswith("export "):
            line = line[len("export ") :].lstrip()

        key, value = line.split("=", 1)
        key = key.strip()
        if not key:
            continue
        value = _unquote(value.strip())

        if override or key not in os.environ:
            os.environ[key] = value
            applied[key] = value
    return applied
