"""Higher level TMDb helper built on top of :mod:`network_handlers`.

The manager covers the calls the rest of the client depends on:

* movie text search
* the account's favorite and watchlist movies
* marking a movie as favorite / adding it to the watchlist (and undoing both)
* the images configuration used to build poster URLs

Every network request is routed through :class:`HttpSession`. Account calls
read the current :class:`SessionState` and refuse to run without a session id
and user id, so an unauthenticated request never leaves the process.
Transport errors are not rewrapped; payloads that lack the expected field
raise :class:`ParseError`.
"""

from __future__ import annotations

import threading
from typing import Any, Dict, Optional, Sequence

from movie_manager.backend.common.errors import ClientError
from movie_manager.backend.common.logging import get_logger
from movie_manager.backend.information_handlers.models import (
    ConfigurationResponse,
    Movie,
    MovieList,
    StatusResponse,
    TMDbConfig,
    parse_model,
)
from movie_manager.backend.information_handlers.session_state import SessionState
from movie_manager.backend.network_handlers.session import HttpSession

_MEDIA_TYPE_MOVIE = "movie"


class TMDbManager:
    """Thin wrapper around TMDb's REST API returning typed models."""

    def __init__(self, session: HttpSession, state: SessionState) -> None:
        self._log = get_logger(__name__)
        self._session = session
        self._state = state
        self._config: Optional[TMDbConfig] = None
        self._config_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    @property
    def config(self) -> Optional[TMDbConfig]:
        """The active image configuration, or ``None`` before the first fetch."""
        return self._config

    def search_movies(self, query: str) -> Sequence[Movie]:
        payload = self._session.get(self._endpoint("search_movie"), params={"query": query})

        return self._movies(payload, operation="search_movies")

    def list_favorites(self) -> Sequence[Movie]:
        session_id, user_id = self._state.require_account()
        payload = self._session.get(
            self._endpoint("favorite_movies"),
            params={"session_id": session_id},
            path_args={"id": user_id},
        )

        return self._movies(payload, operation="list_favorites")

    def list_watchlist(self) -> Sequence[Movie]:
        session_id, user_id = self._state.require_account()
        payload = self._session.get(
            self._endpoint("watchlist_movies"),
            params={"session_id": session_id},
            path_args={"id": user_id},
        )

        return self._movies(payload, operation="list_watchlist")

    def fetch_config(self) -> TMDbConfig:
        payload = self._session.get(self._endpoint("configuration"))
        parsed = parse_model(ConfigurationResponse, payload, operation="fetch_config", field="images")

        with self._config_lock:
            self._config = parsed.images
        self._log.debug("TMDb image configuration updated")

        return parsed.images

    def set_favorite(self, movie: Movie, favorite: bool) -> int:
        return self._mark(
            "favorite",
            movie,
            {"media_type": _MEDIA_TYPE_MOVIE, "media_id": movie.id, "favorite": bool(favorite)},
            operation="set_favorite",
        )

    def set_watchlist(self, movie: Movie, watchlist: bool) -> int:
        return self._mark(
            "watchlist",
            movie,
            {"media_type": _MEDIA_TYPE_MOVIE, "media_id": movie.id, "watchlist": bool(watchlist)},
            operation="set_watchlist",
        )

    def poster_url(self, movie: Movie, *, size: Optional[str] = None) -> Optional[str]:
        """Absolute poster URL for ``movie`` using the active configuration."""
        if not movie.poster_path:
            return None

        config = self._config
        if config is None:
            raise ClientError("Fetch the TMDb configuration before building image URLs")

        base_url = (config.secure_base_image_url or config.base_image_url).rstrip("/")
        chosen = size or self._preferred_size(config.poster_sizes)

        return f"{base_url}/{chosen}/{movie.poster_path.lstrip('/')}"

    def fetch_poster(self, movie: Movie, *, size: Optional[str] = None) -> Optional[bytes]:
        url = self.poster_url(movie, size=size)
        if url is None:
            return None

        return self._session.fetch_bytes(url)

    def logout(self) -> bool:
        """Forget the local session, then invalidate it upstream.

        Returns ``True`` when a session existed. Local state is cleared before
        the remote call, so a transport error still leaves the client logged out.
        """
        session_id = self._state.session_id
        self._state.clear()
        if session_id is None:
            return False

        self._session.delete(
            self._endpoint("session_delete"),
            json_body={"session_id": session_id},
        )
        self._log.info("TMDb session invalidated")

        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _endpoint(self, key: str) -> str:
        return self._session.settings.endpoint(key)

    def _movies(self, payload: Any, *, operation: str) -> Sequence[Movie]:
        parsed = parse_model(MovieList, payload, operation=operation, field="results")

        return list(parsed.results)

    def _mark(self, endpoint_key: str, movie: Movie, body: Dict[str, Any], *, operation: str) -> int:
        session_id, user_id = self._state.require_account()
        payload = self._session.post(
            self._endpoint(endpoint_key),
            json_body=body,
            params={"session_id": session_id},
            path_args={"id": user_id},
        )
        parsed = parse_model(StatusResponse, payload, operation=operation, field="status_code")
        self._log.debug("%s movie=%s -> status %s", operation, movie.id, parsed.status_code)

        return parsed.status_code

    def _preferred_size(self, sizes: Sequence[str]) -> str:
        if not sizes:
            return self._session.settings.image_fallback_size
        preferred_order = ("w500", "w342", "w780", "w185", "original")
        for candidate in preferred_order:
            if candidate in sizes:
                return candidate
        return sizes[-1]


__all__ = ["TMDbManager"]
