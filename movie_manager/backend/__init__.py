"""Backend public interfaces with lazy loading to avoid circular imports."""

from __future__ import annotations

import importlib
from typing import TYPE_CHECKING, Any

__all__ = [
    "AuthFlow",
    "AuthStage",
    "AuthorizationPresenter",
    "Credentials",
    "HttpSession",
    "Movie",
    "MovieManager",
    "RequestDescriptor",
    "SessionState",
    "TMDbConfig",
    "TMDbManager",
]

_MODULE_EXPORTS = {
    "common.types": {
        "RequestDescriptor",
    },
    "network_handlers.session": {
        "HttpSession",
    },
    "information_handlers.auth_flow": {
        "AuthFlow",
        "AuthStage",
        "AuthorizationPresenter",
    },
    "information_handlers.models": {
        "Movie",
        "TMDbConfig",
    },
    "information_handlers.providers": {
        "MovieManager",
    },
    "information_handlers.session_state": {
        "Credentials",
        "SessionState",
    },
    "information_handlers.tmdb_manager": {
        "TMDbManager",
    },
}

if TYPE_CHECKING:  # pragma: no cover - for static analysis only
    from .common.types import RequestDescriptor
    from .information_handlers.auth_flow import AuthFlow, AuthorizationPresenter, AuthStage
    from .information_handlers.models import Movie, TMDbConfig
    from .information_handlers.providers import MovieManager
    from .information_handlers.session_state import Credentials, SessionState
    from .information_handlers.tmdb_manager import TMDbManager
    from .network_handlers.session import HttpSession


def __getattr__(name: str) -> Any:
    for module_name, symbols in _MODULE_EXPORTS.items():
        if name in symbols:
            module = importlib.import_module(f"{__name__}.{module_name}")
            value = getattr(module, name)
            globals()[name] = value
            return value
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


def __dir__() -> list[str]:
    exported = set(__all__)
    for symbols in _MODULE_EXPORTS.values():
        exported.update(symbols)
    exported.update(globals().keys())
    return sorted(exported)
