from __future__ import annotations

import re
from typing import Any, Dict, Mapping, Optional, Tuple
from urllib.parse import urlencode, urljoin

from movie_manager.backend.common.types import RequestDescriptor
from movie_manager.config.settings import Settings

_PLACEHOLDER = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")
_API_KEY_PARAM = "api_key"


class URLManager:
    """
    Builds API URLs and injects the static api key, without doing any network I/O.

    - path placeholders like ``{id}`` are filled from ``descriptor.path_args``
    - query parameters are merged left to right; later writes win
    - ``api_key`` is always written last so the configured key wins
    """

    def __init__(self, settings: Settings):
        self._settings = settings

    # -------- Public API --------

    def build(self, descriptor: RequestDescriptor) -> Tuple[str, Dict[str, str]]:
        """Return ``(url, headers)`` for a request descriptor."""
        path = substitute_path(descriptor.path, descriptor.path_args)
        params = self.query_params(descriptor.params)

        base = _ensure_trailing_slash(self._settings.base_url)
        url = urljoin(base, path.lstrip("/"))
        url = f"{url}?{urlencode(params, doseq=True)}"

        return url, self.default_headers()

    def query_params(self, *layers: Optional[Mapping[str, Any]]) -> Dict[str, str]:
        merged: Dict[str, str] = {}
        for layer in layers:
            for key, value in (layer or {}).items():
                if value is None:
                    continue
                merged[str(key)] = _stringify(value)
        merged[_API_KEY_PARAM] = self._settings.require_api_key()

        return merged

    def default_headers(self) -> Dict[str, str]:
        return dict(self._settings.default_headers or {})

    def authorization_url(self, request_token: str) -> str:
        return f"{self._settings.authorization_url}{request_token}"


# ----------------------------
# Helpers
# ----------------------------

def substitute_path(template: str, path_args: Optional[Mapping[str, Any]] = None) -> str:
    """Fill ``{key}`` placeholders; a placeholder without a value is an error."""
    args = dict(path_args or {})

    def _repl(match: re.Match[str]) -> str:
        key = match.group(1)
        if key not in args or args[key] is None:
            raise ValueError(f"Missing value for '{{{key}}}' in path '{template}'")
        return str(args[key])

    return _PLACEHOLDER.sub(_repl, template)


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _ensure_trailing_slash(u: str) -> str:
    return u if u.endswith("/") else (u + "/")


def redact(url: str) -> str:
    """Strip the api key value from a URL before it reaches a log line."""
    return re.sub(r"(api_key=)[^&]*", r"\1***", url)
