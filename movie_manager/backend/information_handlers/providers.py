"""Top level interface for the TMDb client.

This module exposes a single convenience façade, :class:`MovieManager`, that
wires together the lower-level pieces implemented in the sibling modules: one
:class:`HttpSession`, the :class:`SessionState` it owns, the
:class:`AuthFlow` that populates it and the :class:`TMDbManager` that reads
it. Nothing here is global; every client is constructed explicitly and
passed to whoever needs it.

The façade is synchronous. :meth:`MovieManager.submit` runs any of its
operations on a small thread pool and hands back a
:class:`concurrent.futures.Future` for callers that must not block.
"""

from __future__ import annotations

import threading
from concurrent.futures import Future
from typing import Any, Callable, Optional, Sequence

from movie_manager.backend.common.logging import get_logger
from movie_manager.backend.common.tasks import TaskRunner, TaskSpec
from movie_manager.backend.information_handlers.auth_flow import (
    AuthFlow,
    AuthorizationPresenter,
    AuthStage,
)
from movie_manager.backend.information_handlers.models import Movie, TMDbConfig
from movie_manager.backend.information_handlers.session_state import (
    Credentials,
    SessionState,
)
from movie_manager.backend.information_handlers.tmdb_manager import TMDbManager
from movie_manager.backend.network_handlers.session import HttpSession
from movie_manager.config.settings import Settings, get_settings


class MovieManager:
    """Aggregate façade over authentication and the TMDb resource calls.

    Parameters
    ----------
    presenter:
        The host application's :class:`AuthorizationPresenter`. Required for
        :meth:`authenticate`; resource calls that need no account work
        without one.
    settings:
        Optional :class:`Settings`. Defaults to :func:`get_settings`, which
        reads ``providersettings.json`` and the environment.
    http_session, state, tmdb, auth_flow, runner:
        Pre-built collaborators can be supplied for testing. When omitted the
        façade constructs defaults that share one session and one state.
    """

    def __init__(
        self,
        presenter: Optional[AuthorizationPresenter] = None,
        *,
        settings: Optional[Settings] = None,
        http_session: Optional[HttpSession] = None,
        state: Optional[SessionState] = None,
        tmdb: Optional[TMDbManager] = None,
        auth_flow: Optional[AuthFlow] = None,
        runner: Optional[TaskRunner] = None,
    ) -> None:
        self._log = get_logger(__name__)
        self.settings = settings or (http_session.settings if http_session else get_settings())
        self.settings.require_api_key()

        self._session = http_session or HttpSession(self.settings)
        self._state = state or SessionState()
        self._tmdb = tmdb or TMDbManager(self._session, self._state)
        self._presenter = presenter
        self._auth_flow = auth_flow
        self._flow_lock = threading.Lock()
        self._runner = runner

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def tmdb(self) -> TMDbManager:
        return self._tmdb

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def credentials(self) -> Credentials:
        return self._state.snapshot()

    @property
    def config(self) -> Optional[TMDbConfig]:
        return self._tmdb.config

    @property
    def auth_flow(self) -> AuthFlow:
        with self._flow_lock:
            if self._auth_flow is None:
                if self._presenter is None:
                    raise RuntimeError("An AuthorizationPresenter is required to authenticate")
                self._auth_flow = AuthFlow(
                    self._session,
                    self._state,
                    self._presenter,
                    authorization_timeout=self.settings.authorization_timeout,
                )
            return self._auth_flow

    @property
    def auth_stage(self) -> Optional[AuthStage]:
        return self._auth_flow.stage if self._auth_flow is not None else None

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------
    def authenticate(self) -> Credentials:
        return self.auth_flow.authenticate()

    def cancel_authentication(self) -> None:
        if self._auth_flow is not None:
            self._auth_flow.cancel()

    def logout(self) -> bool:
        """Forget the session, refusing while a handshake holds the state."""

        flow = self._auth_flow
        if flow is None and self._presenter is not None:
            flow = self.auth_flow
        if flow is None:
            return self._tmdb.logout()

        with flow.exclusive():
            return self._tmdb.logout()

    # ------------------------------------------------------------------
    # Resource calls
    # ------------------------------------------------------------------
    def search_movies(self, query: str) -> Sequence[Movie]:
        return self._tmdb.search_movies(query)

    def list_favorites(self) -> Sequence[Movie]:
        return self._tmdb.list_favorites()

    def list_watchlist(self) -> Sequence[Movie]:
        return self._tmdb.list_watchlist()

    def fetch_config(self) -> TMDbConfig:
        return self._tmdb.fetch_config()

    def set_favorite(self, movie: Movie, favorite: bool) -> int:
        return self._tmdb.set_favorite(movie, favorite)

    def set_watchlist(self, movie: Movie, watchlist: bool) -> int:
        return self._tmdb.set_watchlist(movie, watchlist)

    def poster_url(self, movie: Movie, *, size: Optional[str] = None) -> Optional[str]:
        return self._tmdb.poster_url(movie, size=size)

    def fetch_poster(self, movie: Movie, *, size: Optional[str] = None) -> Optional[bytes]:
        return self._tmdb.fetch_poster(movie, size=size)

    # ------------------------------------------------------------------
    # Background execution
    # ------------------------------------------------------------------
    def submit(self, fn: Callable[..., Any], *args: Any, name: Optional[str] = None, **kwargs: Any) -> Future:
        """Run ``fn(*args, **kwargs)`` on the client's task runner."""

        if self._runner is None:
            self._runner = TaskRunner(max_workers=self.settings.task_workers)
        spec = TaskSpec(fn=fn, args=args, kwargs=kwargs, name=name or getattr(fn, "__name__", "task"))

        return self._runner.submit(spec)

    def close(self) -> None:
        if self._auth_flow is not None and self._auth_flow.in_progress:
            self._auth_flow.cancel()
        if self._runner is not None:
            self._runner.close(wait=True)
        self._session.close()

    def __enter__(self) -> "MovieManager":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = ["MovieManager"]
