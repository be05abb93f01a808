from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from movie_manager.backend.common.errors import ConfigError

from .paths import expand_env, get_provider_settings_path, read_json


def load_information_provider_settings(path: Optional[Path] = None) -> Dict[str, Any]:
    target = Path(path) if path is not None else get_provider_settings_path()
    try:
        data = read_json(target)
    except (OSError, ValueError) as exc:
        raise ConfigError(f"Unable to read provider settings from {target}: {exc}") from exc

    return expand_env(data)


def _provider_settings(settings: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    data = settings if settings is not None else load_information_provider_settings()

    return dict(data.get("providers", {}) or {})


def get_service_config(service: str, settings: Optional[Mapping[str, Any]] = None) -> Optional[Dict[str, Any]]:
    providers = _provider_settings(settings)
    cfg = providers.get(service)

    return dict(cfg) if isinstance(cfg, Mapping) else None


def get_default_headers(service: str, settings: Optional[Mapping[str, Any]] = None) -> Dict[str, str]:
    cfg = get_service_config(service, settings) or {}
    headers = cfg.get("default_headers", {}) or {}

    return {str(k): str(v) for k, v in headers.items()}


def get_provider_endpoints(service: str, settings: Optional[Mapping[str, Any]] = None) -> Dict[str, str]:
    cfg = get_service_config(service, settings) or {}

    return dict(cfg.get("endpoints", {}) or {})


def get_api_key_tmdb(settings: Optional[Mapping[str, Any]] = None) -> Optional[str]:
    cfg = get_service_config("tmdb", settings)

    return cfg.get("api_key") if cfg else None


__all__ = [
    "get_api_key_tmdb",
    "get_default_headers",
    "get_provider_endpoints",
    "get_service_config",
    "load_information_provider_settings",
]
