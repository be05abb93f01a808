"""Terminal implementation of the authorization step of the TMDb handshake."""

from __future__ import annotations

import sys
import webbrowser
from typing import Callable, Optional, TextIO

from movie_manager.backend.information_handlers.auth_flow import (
    AUTHORIZATION_FAILED,
    AuthorizationCallback,
)

_DECLINE_ANSWERS = {"n", "no", "q", "quit"}


class ConsoleAuthorizationPresenter:
    """Shows the TMDb approval URL and waits for the user to confirm.

    The user approves the request token in a browser; TMDb has no callback
    into a terminal, so the user's confirmation is taken at face value and
    the session call that follows is what actually verifies it.
    """

    def __init__(
        self,
        url_for: Callable[[str], str],
        *,
        open_browser: bool = True,
        prompt: Callable[[str], str] = input,
        stream: Optional[TextIO] = None,
    ) -> None:
        self._url_for = url_for
        self._open_browser = open_browser
        self._prompt = prompt
        self._stream = stream or sys.stderr

    def present_authorization(self, token: str, on_complete: AuthorizationCallback) -> None:
        url = self._url_for(token)
        self._stream.write(f"Approve access for this client at:\n  {url}\n")
        self._stream.flush()
        if self._open_browser:
            webbrowser.open(url, new=2)

        try:
            answer = self._prompt("Press Enter once approved (or 'n' to cancel): ")
        except (EOFError, KeyboardInterrupt):
            on_complete(False, AUTHORIZATION_FAILED)
            return

        if answer.strip().lower() in _DECLINE_ANSWERS:
            on_complete(False, "Login cancelled by user.")
            return
        on_complete(True, None)
