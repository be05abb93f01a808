from __future__ import annotations

import json
import os
import re
from pathlib import Path
from typing import Any, Dict

from dotenv import load_dotenv

_CONFIG_DIR = Path(__file__).resolve().parent.parent
_PACKAGE_ROOT = _CONFIG_DIR.parent

load_dotenv(_PACKAGE_ROOT / ".env")

_DEFAULT_CONFIG_PATHS = {
    "provider_settings": str(_CONFIG_DIR / "providersettings.json"),
}

_ENV_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


def expand_env_in_str(value: str) -> str:
    """Expand ``${VAR}`` tokens within a string."""

    def _repl(match: re.Match[str]) -> str:
        var = match.group(1)
        return os.getenv(var, "")

    return _ENV_PATTERN.sub(_repl, value)


def expand_env(obj: Any) -> Any:
    """Recursively expand environment variables in nested structures."""
    if isinstance(obj, str):
        return expand_env_in_str(obj)
    if isinstance(obj, list):
        return [expand_env(v) for v in obj]
    if isinstance(obj, dict):
        return {k: expand_env(v) for k, v in obj.items()}

    return obj


def read_json(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as fh:
        return json.load(fh)


def _load_config_paths() -> Dict[str, str]:
    paths = dict(_DEFAULT_CONFIG_PATHS)
    override = os.getenv("MOVIE_MANAGER_PROVIDER_SETTINGS")
    if override:
        paths["provider_settings"] = str(Path(override).expanduser().resolve())

    return paths


PATHS: Dict[str, str] = _load_config_paths()


def get_provider_settings_path() -> Path:
    return Path(PATHS["provider_settings"])


__all__ = [
    "PATHS",
    "expand_env",
    "expand_env_in_str",
    "get_provider_settings_path",
    "read_json",
]
