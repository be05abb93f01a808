from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple, Union
from urllib.parse import parse_qs, urlsplit

import pytest
import requests

from movie_manager.backend.information_handlers.session_state import SessionState
from movie_manager.backend.network_handlers.session import HttpSession
from movie_manager.config.settings import Settings, build_settings

API_PREFIX = "/3"


def make_response(
    status: int = 200,
    payload: Any = None,
    *,
    body: Optional[bytes] = None,
    url: str = "https://api.themoviedb.org/3/",
) -> requests.Response:
    resp = requests.Response()
    resp.status_code = status
    if body is None:
        body = json.dumps(payload).encode("utf-8") if payload is not None else b""
    resp._content = body
    resp.url = url
    resp.encoding = "utf-8"
    return resp


@dataclass
class RecordedCall:
    method: str
    url: str
    path: str
    params: Dict[str, str]
    headers: Dict[str, str]
    body: Any
    timeout: Any


Route = Union[requests.Response, BaseException, Callable[[RecordedCall], requests.Response]]


@dataclass
class FakeHttp:
    """Stands in for ``requests.Session``; routes on (method, API path)."""

    routes: Dict[Tuple[str, str], List[Route]] = field(default_factory=dict)
    calls: List[RecordedCall] = field(default_factory=list)
    closed: bool = False

    def add(
        self,
        method: str,
        path: str,
        payload: Any = None,
        *,
        status: int = 200,
        body: Optional[bytes] = None,
        exc: Optional[BaseException] = None,
        handler: Optional[Callable[[RecordedCall], requests.Response]] = None,
    ) -> None:
        route: Route
        if exc is not None:
            route = exc
        elif handler is not None:
            route = handler
        else:
            route = make_response(status, payload, body=body)
        self.routes.setdefault((method, path), []).append(route)

    def request(self, method, url, headers=None, data=None, timeout=None, **_: Any):
        parts = urlsplit(url)
        path = parts.path
        if path.startswith(API_PREFIX + "/"):
            path = path[len(API_PREFIX):]
        params = {k: v[-1] for k, v in parse_qs(parts.query).items()}
        call = RecordedCall(
            method=method,
            url=url,
            path=path,
            params=params,
            headers=dict(headers or {}),
            body=json.loads(data.decode("utf-8")) if data else None,
            timeout=timeout,
        )
        self.calls.append(call)

        queue = self.routes.get((method, path)) or self.routes.get((method, url))
        if not queue:
            raise AssertionError(f"Unexpected request {method} {path}")
        route = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(route, BaseException):
            raise route
        if callable(route) and not isinstance(route, requests.Response):
            return route(call)
        return route

    def close(self) -> None:
        self.closed = True

    def paths(self) -> List[str]:
        return [c.path for c in self.calls]


class StubPresenter:
    """Authorization collaborator that answers immediately."""

    def __init__(self, success: bool = True, reason: Optional[str] = None) -> None:
        self.success = success
        self.reason = reason
        self.tokens: List[str] = []

    def present_authorization(self, token, on_complete) -> None:
        self.tokens.append(token)
        on_complete(self.success, self.reason)


@pytest.fixture
def settings(monkeypatch: pytest.MonkeyPatch) -> Settings:
    monkeypatch.setenv("TMDB_API_KEY", "test-key")
    for var in (
        "MOVIE_MANAGER_TIMEOUT",
        "MOVIE_MANAGER_AUTHORIZATION_TIMEOUT",
        "MOVIE_MANAGER_LOG_LEVEL",
        "MOVIE_MANAGER_TASK_WORKERS",
    ):
        monkeypatch.delenv(var, raising=False)
    return build_settings()


@pytest.fixture
def fake_http() -> FakeHttp:
    return FakeHttp()


@pytest.fixture
def http_session(settings: Settings, fake_http: FakeHttp) -> HttpSession:
    return HttpSession(settings, http=fake_http)


@pytest.fixture
def state() -> SessionState:
    return SessionState()


@pytest.fixture
def authenticated_state(state: SessionState) -> SessionState:
    state.set_request_token("tok1")
    state.set_session_id("sess1")
    state.set_user_id(42)
    return state


@pytest.fixture
def presenter() -> StubPresenter:
    return StubPresenter()
