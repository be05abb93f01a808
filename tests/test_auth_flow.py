from __future__ import annotations

from typing import List

import pytest

from conftest import StubPresenter, make_response
from movie_manager.backend.common.errors import (
    AlreadyInProgress,
    AuthenticationFailed,
    HTTPStatusError,
    NetworkError,
    RequestCancelled,
)
from movie_manager.backend.information_handlers.auth_flow import (
    AUTHORIZATION_FAILED,
    REQUEST_TOKEN_FAILED,
    SESSION_ID_FAILED,
    USER_ID_FAILED,
    AuthFlow,
    AuthStage,
)
from movie_manager.backend.information_handlers.session_state import Credentials

TOKEN_PATH = "/authentication/token/new"
SESSION_PATH = "/authentication/session/new"
ACCOUNT_PATH = "/account"


def _happy_routes(fake_http) -> None:
    fake_http.add("GET", TOKEN_PATH, {"success": True, "request_token": "tok1"})
    fake_http.add("GET", SESSION_PATH, {"success": True, "session_id": "sess1"})
    fake_http.add("GET", ACCOUNT_PATH, {"id": 42, "username": "moviefan"})


def _flow(http_session, state, presenter, **kwargs) -> AuthFlow:
    return AuthFlow(http_session, state, presenter, **kwargs)


def test_full_handshake_populates_session_state(http_session, fake_http, state, presenter):
    _happy_routes(fake_http)
    flow = _flow(http_session, state, presenter)

    creds = flow.authenticate()

    assert creds == Credentials(request_token="tok1", session_id="sess1", user_id=42)
    assert state.snapshot() == creds
    assert flow.stage is AuthStage.AUTHENTICATED
    assert flow.failure is None
    assert presenter.tokens == ["tok1"]
    assert fake_http.paths() == [TOKEN_PATH, SESSION_PATH, ACCOUNT_PATH]
    assert fake_http.calls[1].params["request_token"] == "tok1"
    assert fake_http.calls[2].params["session_id"] == "sess1"


def test_missing_request_token_halts_before_authorization(http_session, fake_http, state, presenter):
    fake_http.add("GET", TOKEN_PATH, {"success": False})
    flow = _flow(http_session, state, presenter)

    with pytest.raises(AuthenticationFailed) as info:
        flow.authenticate()

    assert info.value.reason == REQUEST_TOKEN_FAILED
    assert info.value.stage == AuthStage.START.value
    assert presenter.tokens == []
    assert fake_http.paths() == [TOKEN_PATH]
    assert state.snapshot() == Credentials()
    assert flow.stage is AuthStage.FAILED


def test_transport_failure_maps_to_step_reason(http_session, fake_http, state, presenter):
    fake_http.add("GET", TOKEN_PATH, {"status_message": "Invalid API key"}, status=401)
    flow = _flow(http_session, state, presenter)

    with pytest.raises(AuthenticationFailed) as info:
        flow.authenticate()

    assert info.value.reason == REQUEST_TOKEN_FAILED
    assert isinstance(info.value.__cause__, HTTPStatusError)
    assert info.value.__cause__.status_code == 401


def test_declined_authorization_uses_collaborator_reason(http_session, fake_http, state):
    fake_http.add("GET", TOKEN_PATH, {"request_token": "tok1"})
    presenter = StubPresenter(success=False, reason="User denied access.")
    flow = _flow(http_session, state, presenter)

    with pytest.raises(AuthenticationFailed) as info:
        flow.authenticate()

    assert info.value.reason == "User denied access."
    assert fake_http.paths() == [TOKEN_PATH]
    assert state.snapshot() == Credentials(request_token="tok1")


def test_declined_authorization_without_reason(http_session, fake_http, state):
    fake_http.add("GET", TOKEN_PATH, {"request_token": "tok1"})
    flow = _flow(http_session, state, StubPresenter(success=False))

    with pytest.raises(AuthenticationFailed) as info:
        flow.authenticate()

    assert info.value.reason == AUTHORIZATION_FAILED


def test_presenter_error_fails_authorization(http_session, fake_http, state):
    class Broken:
        def present_authorization(self, token, on_complete):
            raise RuntimeError("no display")

    fake_http.add("GET", TOKEN_PATH, {"request_token": "tok1"})
    flow = _flow(http_session, state, Broken())

    with pytest.raises(AuthenticationFailed) as info:
        flow.authenticate()

    assert info.value.reason == AUTHORIZATION_FAILED
    assert isinstance(info.value.__cause__, RuntimeError)


def test_authorization_timeout(http_session, fake_http, state):
    class Silent:
        def present_authorization(self, token, on_complete):
            pass

    fake_http.add("GET", TOKEN_PATH, {"request_token": "tok1"})
    flow = _flow(http_session, state, Silent(), authorization_timeout=0.2)

    with pytest.raises(AuthenticationFailed) as info:
        flow.authenticate()

    assert info.value.reason == AUTHORIZATION_FAILED
    assert fake_http.paths() == [TOKEN_PATH]


def test_only_first_completion_counts(http_session, fake_http, state):
    class Chatty:
        def present_authorization(self, token, on_complete):
            on_complete(True, None)
            on_complete(False, "late failure")

    _happy_routes(fake_http)
    creds = _flow(http_session, state, Chatty()).authenticate()

    assert creds.user_id == 42


def test_missing_session_id(http_session, fake_http, state, presenter):
    fake_http.add("GET", TOKEN_PATH, {"request_token": "tok1"})
    fake_http.add("GET", SESSION_PATH, {"success": False, "status_message": "denied"})
    flow = _flow(http_session, state, presenter)

    with pytest.raises(AuthenticationFailed) as info:
        flow.authenticate()

    assert info.value.reason == SESSION_ID_FAILED
    assert fake_http.paths() == [TOKEN_PATH, SESSION_PATH]
    assert state.snapshot() == Credentials(request_token="tok1")


def test_network_error_on_account_lookup(http_session, fake_http, state, presenter):
    import requests

    fake_http.add("GET", TOKEN_PATH, {"request_token": "tok1"})
    fake_http.add("GET", SESSION_PATH, {"session_id": "sess1"})
    fake_http.add("GET", ACCOUNT_PATH, exc=requests.exceptions.ConnectionError("dns"))
    flow = _flow(http_session, state, presenter)

    with pytest.raises(AuthenticationFailed) as info:
        flow.authenticate()

    assert info.value.reason == USER_ID_FAILED
    assert isinstance(info.value.__cause__, NetworkError)
    assert state.snapshot() == Credentials(request_token="tok1", session_id="sess1")


@pytest.mark.parametrize("payload", [{}, {"id": "42"}, {"id": None}, {"id": True}])
def test_user_id_must_be_an_integer(http_session, fake_http, state, presenter, payload):
    fake_http.add("GET", TOKEN_PATH, {"request_token": "tok1"})
    fake_http.add("GET", SESSION_PATH, {"session_id": "sess1"})
    fake_http.add("GET", ACCOUNT_PATH, payload)

    with pytest.raises(AuthenticationFailed) as info:
        _flow(http_session, state, presenter).authenticate()

    assert info.value.reason == USER_ID_FAILED
    assert state.user_id is None


def test_reentrant_authenticate_is_rejected(http_session, fake_http, state):
    errors: List[BaseException] = []

    class Reentrant:
        def present_authorization(self, token, on_complete):
            try:
                flow.authenticate()
            except AlreadyInProgress as exc:
                errors.append(exc)
            on_complete(True, None)

    _happy_routes(fake_http)
    flow = _flow(http_session, state, Reentrant())

    creds = flow.authenticate()

    assert len(errors) == 1
    assert creds.user_id == 42
    assert fake_http.paths() == [TOKEN_PATH, SESSION_PATH, ACCOUNT_PATH]


def test_cancel_during_authorization_stops_flow(http_session, fake_http, state):
    class Cancelling:
        def present_authorization(self, token, on_complete):
            flow.cancel()
            on_complete(True, None)

    _happy_routes(fake_http)
    flow = _flow(http_session, state, Cancelling())

    with pytest.raises(RequestCancelled):
        flow.authenticate()

    assert flow.stage is AuthStage.CANCELLED
    assert fake_http.paths() == [TOKEN_PATH]
    assert state.snapshot() == Credentials(request_token="tok1")


def test_cancel_while_request_in_flight_discards_result(http_session, fake_http, state, presenter):
    def _respond(call):
        flow.cancel()
        return make_response(200, {"session_id": "sess1"})

    fake_http.add("GET", TOKEN_PATH, {"request_token": "tok1"})
    fake_http.add("GET", SESSION_PATH, handler=_respond)
    flow = _flow(http_session, state, presenter)

    with pytest.raises(RequestCancelled):
        flow.authenticate()

    assert state.session_id is None
    assert ACCOUNT_PATH not in fake_http.paths()


def test_step_drives_one_transition_at_a_time(http_session, fake_http, state, presenter):
    _happy_routes(fake_http)
    flow = _flow(http_session, state, presenter)

    assert flow.stage is AuthStage.START
    assert flow.step() is AuthStage.TOKEN_OBTAINED
    assert fake_http.paths() == [TOKEN_PATH]
    assert flow.step() is AuthStage.TOKEN_VALIDATED
    assert flow.step() is AuthStage.SESSION_CREATED
    assert state.session_id == "sess1"
    assert flow.step() is AuthStage.AUTHENTICATED
    assert flow.step() is AuthStage.AUTHENTICATED
    assert len(fake_http.calls) == 3


def test_new_handshake_starts_from_clean_state(http_session, fake_http, state, presenter):
    _happy_routes(fake_http)
    flow = _flow(http_session, state, presenter)
    flow.authenticate()

    fake_http.routes.clear()
    fake_http.add("GET", TOKEN_PATH, {"request_token": "tok2"})
    fake_http.add("GET", SESSION_PATH, {"status_message": "expired"}, status=401)

    with pytest.raises(AuthenticationFailed):
        flow.authenticate()

    assert state.snapshot() == Credentials(request_token="tok2")


@pytest.mark.parametrize("entry", ["step", "run", "reset"])
def test_driving_a_running_handshake_is_rejected(http_session, fake_http, state, entry):
    errors: List[BaseException] = []

    class Meddling:
        def __init__(self):
            self.tokens: List[str] = []

        def present_authorization(self, token, on_complete):
            self.tokens.append(token)
            on_complete(True, None)
            try:
                getattr(flow, entry)()
            except AlreadyInProgress as exc:
                errors.append(exc)

    _happy_routes(fake_http)
    presenter = Meddling()
    flow = _flow(http_session, state, presenter)

    creds = flow.authenticate()

    assert len(errors) == 1
    assert presenter.tokens == ["tok1"]
    assert creds.user_id == 42
    assert fake_http.paths() == [TOKEN_PATH, SESSION_PATH, ACCOUNT_PATH]


def test_exclusive_blocks_authenticate(http_session, fake_http, state, presenter):
    flow = _flow(http_session, state, presenter)

    with flow.exclusive():
        assert flow.in_progress
        with pytest.raises(AlreadyInProgress):
            flow.authenticate()

    assert not flow.in_progress
    assert fake_http.calls == []
