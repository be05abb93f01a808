from __future__ import annotations

from typing import Optional



class MovieManagerError(Exception):
    """Base for all Movie Manager exceptions."""


class ConfigError(MovieManagerError):
    """Configuration related issues."""


class TaskError(MovieManagerError):
    """Task scheduling/execution issues."""


# ---------------- Transport ----------------

class TransportError(MovieManagerError):
    """Network/HTTP layer issues."""


class NetworkError(TransportError):
    """Connectivity failure (DNS, refused/reset connection, ...)."""


class RequestTimeout(NetworkError):
    """The per-request timeout elapsed before a response arrived."""


class HTTPStatusError(TransportError):
    def __init__(self, status_code: int, message: Optional[str] = None) -> None:
        super().__init__(message or f"{status_code} HTTP error")
        self.status_code = status_code


class EmptyBodyError(TransportError):
    """A 2xx response arrived without a body."""


class DecodeError(TransportError):
    """The response body is not valid JSON."""


class RequestCancelled(TransportError):
    """The caller cancelled the call; its result was abandoned."""


# ---------------- Client ----------------

class ClientError(MovieManagerError):
    """Resource client and authentication issues."""


class ParseError(ClientError):
    """Valid JSON that lacks the field an operation needs."""

    def __init__(self, operation: str, field: str, message: Optional[str] = None) -> None:
        super().__init__(message or f"Could not parse {operation} (missing '{field}')")
        self.operation = operation
        self.field = field


class NotAuthenticated(ClientError):
    """An account operation was attempted without a session and user id."""


class AlreadyInProgress(ClientError):
    """An authentication handshake is already running."""


class AuthenticationFailed(ClientError):
    """The handshake stopped at a step; ``reason`` is the user-facing text."""

    def __init__(self, reason: str, *, stage: Optional[str] = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.stage = stage
