"""TMDb session handshake.

The handshake is four dependent steps, each started only once the previous
one has succeeded:

* request a new request token
* let the user authorize that token (delegated to an
  :class:`AuthorizationPresenter` supplied by the host application)
* exchange the authorized token for a session id
* look up the account id for the session

The first failing step ends the flow with that step's fixed reason string.
:class:`SessionState` keeps whatever earlier steps stored; nothing from the
failing step is written.
"""

from __future__ import annotations

import threading
import time
from contextlib import contextmanager
from enum import Enum
from typing import Any, Callable, Dict, Iterator, Mapping, Optional, Protocol, Type

from pydantic import BaseModel

from movie_manager.backend.common.errors import (
    AlreadyInProgress,
    AuthenticationFailed,
    ParseError,
    RequestCancelled,
    TransportError,
)
from movie_manager.backend.common.logging import get_logger
from movie_manager.backend.information_handlers.models import (
    AccountDetails,
    RequestTokenResponse,
    SessionResponse,
    parse_model,
)
from movie_manager.backend.information_handlers.session_state import (
    Credentials,
    SessionState,
)
from movie_manager.backend.network_handlers.session import HttpSession

REQUEST_TOKEN_FAILED = "Login Failed (Request Token)."
AUTHORIZATION_FAILED = "Login Failed (Authorization)."
SESSION_ID_FAILED = "Login Failed (Session ID)."
USER_ID_FAILED = "Login Failed (User ID)."

# How often a pending authorization re-checks for cancellation.
_AUTHORIZATION_POLL_SECONDS = 0.1

AuthorizationCallback = Callable[[bool, Optional[str]], None]


class AuthStage(str, Enum):
    START = "start"
    TOKEN_OBTAINED = "token_obtained"
    TOKEN_VALIDATED = "token_validated"
    SESSION_CREATED = "session_created"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in {AuthStage.AUTHENTICATED, AuthStage.FAILED, AuthStage.CANCELLED}


class AuthorizationPresenter(Protocol):
    """Host-side collaborator that lets the user approve a request token.

    Implementations must eventually call ``on_complete(success, error_reason)``
    exactly once, from any thread. Extra calls are ignored.
    """

    def present_authorization(self, token: str, on_complete: AuthorizationCallback) -> None: ...


class AuthFlow:
    """Drives the handshake and is the only writer of :class:`SessionState`."""

    def __init__(
        self,
        session: HttpSession,
        state: SessionState,
        presenter: AuthorizationPresenter,
        *,
        authorization_timeout: Optional[float] = None,
    ) -> None:
        self._log = get_logger(__name__)
        self._session = session
        self._state = state
        self._presenter = presenter
        self._authorization_timeout = authorization_timeout

        self._run_lock = threading.Lock()
        self._commit_lock = threading.Lock()
        self._cancel = threading.Event()
        self._stage = AuthStage.START
        self._failure: Optional[AuthenticationFailed] = None

        self._transitions: Dict[AuthStage, Callable[[], AuthStage]] = {
            AuthStage.START: self._request_new_token,
            AuthStage.TOKEN_OBTAINED: self._validate_token,
            AuthStage.TOKEN_VALIDATED: self._create_session,
            AuthStage.SESSION_CREATED: self._fetch_user_id,
        }

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    @property
    def stage(self) -> AuthStage:
        return self._stage

    @property
    def failure(self) -> Optional[AuthenticationFailed]:
        return self._failure

    @property
    def in_progress(self) -> bool:
        return self._run_lock.locked()

    @contextmanager
    def exclusive(self) -> Iterator[None]:
        """Hold the handshake lock, or raise :class:`AlreadyInProgress` if it is taken."""

        if not self._run_lock.acquire(blocking=False):
            raise AlreadyInProgress("An authentication handshake is already running")
        try:
            yield
        finally:
            self._run_lock.release()

    def authenticate(self) -> Credentials:
        """Run the whole handshake and return the resulting credentials.

        Raises :class:`AlreadyInProgress` when another handshake is running,
        :class:`AuthenticationFailed` when a step fails, and
        :class:`RequestCancelled` after :meth:`cancel`.
        """

        with self.exclusive():
            self._reset()
            return self._run()

    def run(self) -> Credentials:
        """Drive the current handshake from its present stage to the end."""

        with self.exclusive():
            return self._run()

    def step(self) -> AuthStage:
        """Perform the transition out of the current stage and return the new one."""

        with self.exclusive():
            return self._step()

    def cancel(self) -> None:
        """Abandon the running handshake; results arriving later are discarded."""

        with self._commit_lock:
            self._cancel.set()

    def reset(self) -> None:
        with self.exclusive():
            self._reset()

    # ------------------------------------------------------------------
    # Stage machine
    # ------------------------------------------------------------------
    def _run(self) -> Credentials:
        while not self._stage.is_terminal:
            self._step()

        if self._stage is AuthStage.CANCELLED:
            raise RequestCancelled("Authentication was cancelled")
        if self._stage is AuthStage.FAILED:
            assert self._failure is not None
            raise self._failure

        return self._state.snapshot()

    def _step(self) -> AuthStage:
        if self._stage.is_terminal:
            return self._stage

        current = self._stage
        transition = self._transitions[current]
        try:
            self._stage = transition()
        except RequestCancelled:
            self._stage = AuthStage.CANCELLED
            self._log.info("Authentication cancelled during %s", current.value)
        except AuthenticationFailed as exc:
            exc.stage = exc.stage or current.value
            self._failure = exc
            self._stage = AuthStage.FAILED
            self._log.warning("Authentication failed during %s: %s", current.value, exc.reason)
        else:
            self._log.info("Authentication stage %s -> %s", current.value, self._stage.value)

        return self._stage

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------
    def _request_new_token(self) -> AuthStage:
        payload = self._fetch(
            self._endpoint("token_new"),
            params=None,
            reason=REQUEST_TOKEN_FAILED,
        )
        parsed = self._extract(
            RequestTokenResponse, payload, operation="request_token", field="request_token", reason=REQUEST_TOKEN_FAILED
        )
        self._commit(lambda: self._state.set_request_token(parsed.request_token))

        return AuthStage.TOKEN_OBTAINED

    def _validate_token(self) -> AuthStage:
        token = self._state.request_token
        if token is None:
            raise AuthenticationFailed(AUTHORIZATION_FAILED)

        done = threading.Event()
        outcome: Dict[str, Any] = {}

        def _on_complete(success: bool, error_reason: Optional[str] = None) -> None:
            if done.is_set():
                return
            outcome["success"] = bool(success)
            outcome["reason"] = error_reason
            done.set()

        try:
            self._presenter.present_authorization(token, _on_complete)
        except Exception as exc:
            raise AuthenticationFailed(AUTHORIZATION_FAILED) from exc

        deadline = None
        if self._authorization_timeout is not None:
            deadline = time.monotonic() + self._authorization_timeout

        while not done.wait(_AUTHORIZATION_POLL_SECONDS):
            if self._cancel.is_set():
                raise RequestCancelled("Authorization was cancelled")
            if deadline is not None and time.monotonic() >= deadline:
                raise AuthenticationFailed(AUTHORIZATION_FAILED)

        if self._cancel.is_set():
            raise RequestCancelled("Authorization was cancelled")
        if not outcome.get("success"):
            raise AuthenticationFailed(outcome.get("reason") or AUTHORIZATION_FAILED)

        return AuthStage.TOKEN_VALIDATED

    def _create_session(self) -> AuthStage:
        token = self._state.request_token
        payload = self._fetch(
            self._endpoint("session_new"),
            params={"request_token": token},
            reason=SESSION_ID_FAILED,
        )
        parsed = self._extract(
            SessionResponse, payload, operation="create_session", field="session_id", reason=SESSION_ID_FAILED
        )
        self._commit(lambda: self._state.set_session_id(parsed.session_id))

        return AuthStage.SESSION_CREATED

    def _fetch_user_id(self) -> AuthStage:
        session_id = self._state.session_id
        payload = self._fetch(
            self._endpoint("account"),
            params={"session_id": session_id},
            reason=USER_ID_FAILED,
        )
        parsed = self._extract(
            AccountDetails, payload, operation="account", field="id", reason=USER_ID_FAILED
        )
        self._commit(lambda: self._state.set_user_id(parsed.id))

        return AuthStage.AUTHENTICATED

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _reset(self) -> None:
        self._cancel.clear()
        self._stage = AuthStage.START
        self._failure = None
        self._state.clear()

    def _endpoint(self, key: str) -> str:
        return self._session.settings.endpoint(key)

    def _fetch(self, path: str, *, params: Optional[Mapping[str, Any]], reason: str) -> Any:
        try:
            return self._session.get(path, params=params, cancel_event=self._cancel)
        except RequestCancelled:
            raise
        except TransportError as exc:
            self._log.debug("Transport failure during handshake: %s", exc)
            raise AuthenticationFailed(reason) from exc

    def _extract(
        self,
        model: Type[BaseModel],
        payload: Any,
        *,
        operation: str,
        field: str,
        reason: str,
    ) -> Any:
        try:
            return parse_model(model, payload, operation=operation, field=field)
        except ParseError as exc:
            self._log.debug("Could not find %s in %s response", field, operation)
            raise AuthenticationFailed(reason) from exc

    def _commit(self, write: Callable[[], None]) -> None:
        # Checked and applied under the same lock as cancel(), so a cancelled
        # flow never writes.
        with self._commit_lock:
            if self._cancel.is_set():
                raise RequestCancelled("Authentication was cancelled")
            write()


__all__ = [
    "AUTHORIZATION_FAILED",
    "AuthFlow",
    "AuthStage",
    "AuthorizationCallback",
    "AuthorizationPresenter",
    "REQUEST_TOKEN_FAILED",
    "SESSION_ID_FAILED",
    "USER_ID_FAILED",
]
