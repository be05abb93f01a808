"""Command line front-end for the Movie Manager client.

Session state lives in memory only, so every account command performs the
TMDb handshake first and, unless ``--keep-session`` is given, invalidates the
session again before exiting.
"""

from __future__ import annotations

import argparse
from typing import Any, Callable, Optional, Sequence

from movie_manager.backend.common.errors import MovieManagerError
from movie_manager.backend.common.logging import get_logger, init_logging
from movie_manager.backend.information_handlers.models import Movie
from movie_manager.backend.information_handlers.providers import MovieManager
from movie_manager.backend.network_handlers.url_manager import URLManager
from movie_manager.config.settings import Settings, get_settings

from ._utils import (
    build_subparser,
    exit_with_error,
    print_json,
    require_subcommand,
    to_serializable,
)
from .authorization import ConsoleAuthorizationPresenter

log = get_logger(__name__)

Handler = Callable[[argparse.Namespace, MovieManager], None]


def _build_manager(settings: Settings, args: argparse.Namespace) -> MovieManager:
    presenter = ConsoleAuthorizationPresenter(
        URLManager(settings).authorization_url,
        open_browser=not args.no_browser,
    )
    return MovieManager(presenter, settings=settings)


def _login(manager: MovieManager) -> None:
    if not manager.state.is_authenticated:
        manager.authenticate()


def _movie_ref(movie_id: int) -> Movie:
    return Movie(id=movie_id, title="")


def _movies_payload(manager: MovieManager, movies: Sequence[Movie], *, with_posters: bool) -> Any:
    payload = to_serializable(list(movies))
    if with_posters:
        for entry, movie in zip(payload, movies):
            entry["poster_url"] = manager.poster_url(movie)
    return payload


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

def _handle_config(_: argparse.Namespace, manager: MovieManager) -> None:
    print_json(to_serializable(manager.fetch_config()))


def _handle_search(args: argparse.Namespace, manager: MovieManager) -> None:
    if args.with_posters:
        manager.fetch_config()
    movies = manager.search_movies(args.query)
    print_json(_movies_payload(manager, movies, with_posters=args.with_posters))


def _handle_login(_: argparse.Namespace, manager: MovieManager) -> None:
    credentials = manager.authenticate()
    print_json({"authenticated": credentials.is_authenticated, "user_id": credentials.user_id})


def _handle_favorites(args: argparse.Namespace, manager: MovieManager) -> None:
    _login(manager)
    if args.with_posters:
        manager.fetch_config()
    print_json(_movies_payload(manager, manager.list_favorites(), with_posters=args.with_posters))


def _handle_watchlist(args: argparse.Namespace, manager: MovieManager) -> None:
    _login(manager)
    if args.with_posters:
        manager.fetch_config()
    print_json(_movies_payload(manager, manager.list_watchlist(), with_posters=args.with_posters))


def _handle_favorite(args: argparse.Namespace, manager: MovieManager) -> None:
    _login(manager)
    status = manager.set_favorite(_movie_ref(args.movie_id), not args.remove)
    print_json({"movie_id": args.movie_id, "favorite": not args.remove, "status_code": status})


def _handle_watch(args: argparse.Namespace, manager: MovieManager) -> None:
    _login(manager)
    status = manager.set_watchlist(_movie_ref(args.movie_id), not args.remove)
    print_json({"movie_id": args.movie_id, "watchlist": not args.remove, "status_code": status})


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="movie-manager", description="TMDb movie manager.")
    parser.add_argument("--no-browser", action="store_true", help="Print the approval URL without opening a browser.")
    parser.add_argument(
        "--keep-session",
        action="store_true",
        help="Do not invalidate the TMDb session after account commands.",
    )
    parser.add_argument("--log-level", help="Override MOVIE_MANAGER_LOG_LEVEL for this run.")

    subparsers = parser.add_subparsers(dest="command")
    require_subcommand(subparsers)

    config_parser = build_subparser(subparsers, "config", help="Fetch the TMDb image configuration.")
    config_parser.set_defaults(func=_handle_config, needs_account=False)

    search = build_subparser(subparsers, "search", help="Search movies by title.")
    search.add_argument("query", help="Text to search for.")
    search.add_argument("--with-posters", action="store_true", help="Include absolute poster URLs.")
    search.set_defaults(func=_handle_search, needs_account=False)

    login = build_subparser(subparsers, "login", help="Run the TMDb session handshake.")
    login.set_defaults(func=_handle_login, needs_account=True)

    favorites = build_subparser(subparsers, "favorites", help="List the account's favorite movies.")
    favorites.add_argument("--with-posters", action="store_true", help="Include absolute poster URLs.")
    favorites.set_defaults(func=_handle_favorites, needs_account=True)

    watchlist = build_subparser(subparsers, "watchlist", help="List the account's movie watchlist.")
    watchlist.add_argument("--with-posters", action="store_true", help="Include absolute poster URLs.")
    watchlist.set_defaults(func=_handle_watchlist, needs_account=True)

    favorite = build_subparser(subparsers, "favorite", help="Mark or unmark a movie as favorite.")
    favorite.add_argument("movie_id", type=int, help="TMDb movie identifier.")
    favorite.add_argument("--remove", action="store_true", help="Remove the movie from favorites.")
    favorite.set_defaults(func=_handle_favorite, needs_account=True)

    watch = build_subparser(subparsers, "watch", help="Add or remove a movie from the watchlist.")
    watch.add_argument("movie_id", type=int, help="TMDb movie identifier.")
    watch.add_argument("--remove", action="store_true", help="Remove the movie from the watchlist.")
    watch.set_defaults(func=_handle_watch, needs_account=True)

    return parser


def main(
    argv: Optional[Sequence[str]] = None,
    *,
    manager: Optional[MovieManager] = None,
) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)
    handler: Optional[Handler] = getattr(args, "func", None)
    if handler is None:
        parser.print_help()
        return

    try:
        settings = manager.settings if manager is not None else get_settings()
        init_logging(args.log_level or settings.log_level)
        client = manager or _build_manager(settings, args)
    except MovieManagerError as exc:
        exit_with_error(str(exc))
        return

    with client:
        try:
            handler(args, client)
        except MovieManagerError as exc:
            exit_with_error(str(exc))
        finally:
            if args.needs_account and not args.keep_session and client.state.session_id is not None:
                try:
                    client.logout()
                except MovieManagerError as exc:
                    log.warning("Could not invalidate TMDb session: %s", exc)


if __name__ == "__main__":  # pragma: no cover
    main()
