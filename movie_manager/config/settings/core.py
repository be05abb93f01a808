from __future__ import annotations

import os
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from movie_manager.backend.common.errors import ConfigError
from movie_manager.backend.common.logging import get_logger
from movie_manager.backend.common.types import LogLevel

from .providers import (
    get_api_key_tmdb,
    get_default_headers,
    get_provider_endpoints,
    get_service_config,
    load_information_provider_settings,
)

log = get_logger(__name__)

_SETTINGS_LOCK = threading.Lock()
_SETTINGS_SINGLETON: Optional["Settings"] = None

_SERVICE_NAME = "tmdb"
DEFAULT_BASE_URL = "https://api.themoviedb.org/3"
DEFAULT_AUTHORIZATION_URL = "https://www.themoviedb.org/authenticate/"


@dataclass
class Settings:
    api_key: Optional[str] = None
    base_url: str = DEFAULT_BASE_URL
    authorization_url: str = DEFAULT_AUTHORIZATION_URL
    timeout: float = 20.0
    authorization_timeout: Optional[float] = None
    log_level: LogLevel = "INFO"
    task_workers: int = 4
    default_headers: Dict[str, str] = field(default_factory=dict)
    endpoints: Dict[str, str] = field(default_factory=dict)
    image_fallback_size: str = "original"

    def endpoint(self, key: str) -> str:
        try:
            return self.endpoints[key]
        except KeyError:
            raise ConfigError(f"Unknown endpoint '{key}'. Known: {sorted(self.endpoints)}") from None

    def require_api_key(self) -> str:
        if not self.api_key:
            raise ConfigError("TMDB_API_KEY must be configured")
        return self.api_key

    def as_dict(self) -> Dict[str, Any]:
        return {
            "api_key_configured": bool(self.api_key),
            "base_url": self.base_url,
            "authorization_url": self.authorization_url,
            "timeout": self.timeout,
            "authorization_timeout": self.authorization_timeout,
            "log_level": self.log_level,
            "task_workers": self.task_workers,
            "endpoints": dict(self.endpoints),
        }


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        log.warning("Ignoring invalid %s=%r", name, raw)
        return default
    return value if value > 0 else default


def build_settings(provider_settings: Optional[Mapping[str, Any]] = None) -> Settings:
    data = provider_settings if provider_settings is not None else load_information_provider_settings()
    cfg = get_service_config(_SERVICE_NAME, data) or {}

    api_key = os.getenv("TMDB_API_KEY") or get_api_key_tmdb(data) or None
    log_level = os.getenv("MOVIE_MANAGER_LOG_LEVEL", "INFO").upper()

    task_workers_raw = os.getenv("MOVIE_MANAGER_TASK_WORKERS") or 4
    try:
        task_workers = max(1, int(task_workers_raw))
    except (TypeError, ValueError):
        task_workers = 4

    images = cfg.get("images") or {}

    return Settings(
        api_key=api_key,
        base_url=cfg.get("base_url") or DEFAULT_BASE_URL,
        authorization_url=cfg.get("authorization_url") or DEFAULT_AUTHORIZATION_URL,
        timeout=_env_float("MOVIE_MANAGER_TIMEOUT", 20.0) or 20.0,
        authorization_timeout=_env_float("MOVIE_MANAGER_AUTHORIZATION_TIMEOUT", None),
        log_level=log_level,
        task_workers=task_workers,
        default_headers=get_default_headers(_SERVICE_NAME, data),
        endpoints=get_provider_endpoints(_SERVICE_NAME, data),
        image_fallback_size=str(images.get("fallback_size") or "original"),
    )


def get_settings(*, reload: bool = False) -> Settings:
    global _SETTINGS_SINGLETON
    with _SETTINGS_LOCK:
        if _SETTINGS_SINGLETON is None or reload:
            _SETTINGS_SINGLETON = build_settings()

        return _SETTINGS_SINGLETON


__all__ = [
    "DEFAULT_AUTHORIZATION_URL",
    "DEFAULT_BASE_URL",
    "Settings",
    "build_settings",
    "get_settings",
]
