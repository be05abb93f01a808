"""In-memory credentials for the current TMDb session."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Optional, Tuple

from movie_manager.backend.common.errors import NotAuthenticated


@dataclass(frozen=True)
class Credentials:
    request_token: Optional[str] = None
    session_id: Optional[str] = None
    user_id: Optional[int] = None

    @property
    def is_authenticated(self) -> bool:
        return self.session_id is not None and self.user_id is not None


class SessionState:
    """Request token, session id and user id.

    Written only by :class:`AuthFlow` (and cleared by logout); read by the
    resource client. Each setter checks that the previous handshake step
    already populated its field.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._request_token: Optional[str] = None
        self._session_id: Optional[str] = None
        self._user_id: Optional[int] = None

    @property
    def request_token(self) -> Optional[str]:
        return self._request_token

    @property
    def session_id(self) -> Optional[str]:
        return self._session_id

    @property
    def user_id(self) -> Optional[int]:
        return self._user_id

    @property
    def is_authenticated(self) -> bool:
        return self.snapshot().is_authenticated

    def snapshot(self) -> Credentials:
        with self._lock:
            return Credentials(
                request_token=self._request_token,
                session_id=self._session_id,
                user_id=self._user_id,
            )

    def require_account(self) -> Tuple[str, int]:
        """Return ``(session_id, user_id)`` or raise :class:`NotAuthenticated`."""
        creds = self.snapshot()
        if creds.session_id is None or creds.user_id is None:
            raise NotAuthenticated("Log in before using account operations")
        return creds.session_id, creds.user_id

    def set_request_token(self, token: str) -> None:
        with self._lock:
            self._request_token = token
            self._session_id = None
            self._user_id = None

    def set_session_id(self, session_id: str) -> None:
        with self._lock:
            if self._request_token is None:
                raise RuntimeError("Cannot store a session id without a request token")
            self._session_id = session_id

    def set_user_id(self, user_id: int) -> None:
        with self._lock:
            if self._session_id is None:
                raise RuntimeError("Cannot store a user id without a session id")
            self._user_id = user_id

    def clear(self) -> None:
        with self._lock:
            self._request_token = None
            self._session_id = None
            self._user_id = None

    def __repr__(self) -> str:
        creds = self.snapshot()
        return (
            f"SessionState(request_token={'set' if creds.request_token else None}, "
            f"session_id={'set' if creds.session_id else None}, user_id={creds.user_id})"
        )
