from __future__ import annotations

import json
import threading
from typing import Any, Dict, Mapping, Optional

import requests
from requests.adapters import HTTPAdapter

from movie_manager.backend.common.errors import (
    DecodeError,
    EmptyBodyError,
    HTTPStatusError,
    NetworkError,
    RequestCancelled,
    RequestTimeout,
)
from movie_manager.backend.common.logging import get_logger
from movie_manager.backend.common.types import HttpMethod, RequestDescriptor
from movie_manager.backend.network_handlers.url_manager import URLManager, redact
from movie_manager.config.settings import Settings, get_settings

log = get_logger(__name__)

_JSON_HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/json",
}


def _map_http_error(status: int) -> HTTPStatusError:
    if status == 401: return HTTPStatusError(status, "401 Unauthorized")
    if status == 404: return HTTPStatusError(status, "404 Not Found")
    if status == 429: return HTTPStatusError(status, "429 Too Many Requests")
    if 500 <= status < 600: return HTTPStatusError(status, f"{status} Upstream error")

    return HTTPStatusError(status)


def is_success(status: int) -> bool:
    return 200 <= status <= 299


# ---------------- Main Session ----------------

class HttpSession:
    """
    Central HTTP client:
      - URL building + api key injection via URLManager
      - JSON bodies with Accept/Content-Type headers
      - per-request timeout
      - typed error mapping, one attempt per call
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        timeout: Optional[float] = None,
        http: Optional[requests.Session] = None,
    ):
        self.settings = settings or get_settings()
        self.urlm = URLManager(self.settings)
        self.timeout = timeout if timeout is not None else self.settings.timeout

        if http is None:
            http = requests.Session()
            http.mount("http://", HTTPAdapter(pool_connections=4, pool_maxsize=8))
            http.mount("https://", HTTPAdapter(pool_connections=4, pool_maxsize=8))
        self._session = http

    # -------- public API --------

    def request(
        self,
        descriptor: RequestDescriptor,
        *,
        cancel_event: Optional[threading.Event] = None,
    ) -> Any:
        """Perform ``descriptor`` and return the decoded JSON payload."""
        response = self._send(descriptor, cancel_event=cancel_event)

        return decode_json(response)

    def get(
        self,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        path_args: Optional[Mapping[str, Any]] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> Any:
        return self.request(
            _descriptor("GET", path, params=params, path_args=path_args),
            cancel_event=cancel_event,
        )

    def post(
        self,
        path: str,
        *,
        json_body: Any,
        params: Optional[Mapping[str, Any]] = None,
        path_args: Optional[Mapping[str, Any]] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> Any:
        return self.request(
            _descriptor("POST", path, params=params, path_args=path_args, json_body=json_body),
            cancel_event=cancel_event,
        )

    def delete(
        self,
        path: str,
        *,
        json_body: Any = None,
        params: Optional[Mapping[str, Any]] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> Any:
        return self.request(
            _descriptor("DELETE", path, params=params, json_body=json_body),
            cancel_event=cancel_event,
        )

    def fetch_bytes(self, url: str, *, cancel_event: Optional[threading.Event] = None) -> bytes:
        """Download a raw asset (poster images) from an absolute URL."""
        _check_cancelled(cancel_event, url)
        try:
            resp = self._session.request(method="GET", url=url, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            raise RequestTimeout(str(e)) from e
        except requests.exceptions.RequestException as e:
            raise NetworkError(str(e)) from e

        _check_cancelled(cancel_event, url)
        _check_status(resp, "GET", url)
        if not resp.content:
            raise EmptyBodyError(f"No data was returned for {url}")

        return resp.content

    def close(self) -> None:
        self._session.close()

    # -------- internals --------

    def _send(
        self,
        descriptor: RequestDescriptor,
        *,
        cancel_event: Optional[threading.Event] = None,
    ) -> requests.Response:
        url, base_headers = self.urlm.build(descriptor)
        hdrs: Dict[str, str] = dict(base_headers or {})
        data: Optional[bytes] = None
        if descriptor.has_body:
            hdrs.update(_JSON_HEADERS)
            data = json.dumps(descriptor.json_body).encode("utf-8")

        safe_url = redact(url)
        _check_cancelled(cancel_event, safe_url)
        log.debug("%s %s", descriptor.method, safe_url)

        try:
            resp = self._session.request(
                method=descriptor.method,
                url=url,
                headers=hdrs,
                data=data,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            log.warning("%s %s timed out after %ss", descriptor.method, safe_url, self.timeout)
            raise RequestTimeout(str(e)) from e
        except requests.exceptions.RequestException as e:
            log.warning("%s %s failed: %s", descriptor.method, safe_url, e)
            raise NetworkError(str(e)) from e

        # A cancelled caller never sees the payload, even a successful one.
        _check_cancelled(cancel_event, safe_url)
        _check_status(resp, descriptor.method, safe_url)

        return resp


def decode_json(response: requests.Response) -> Any:
    if not response.content:
        raise EmptyBodyError("No data was returned by the request")
    try:
        return response.json()
    except ValueError as exc:
        raise DecodeError(f"Could not parse the data as JSON: {exc}") from exc


def _descriptor(
    method: HttpMethod,
    path: str,
    *,
    params: Optional[Mapping[str, Any]] = None,
    path_args: Optional[Mapping[str, Any]] = None,
    json_body: Any = None,
) -> RequestDescriptor:
    return RequestDescriptor(
        method=method,
        path=path,
        params=dict(params or {}),
        path_args=dict(path_args or {}),
        json_body=json_body,
    )


def _check_cancelled(cancel_event: Optional[threading.Event], url: str) -> None:
    if cancel_event is not None and cancel_event.is_set():
        log.debug("Abandoning cancelled request %s", url)
        raise RequestCancelled(f"Request to {url} was cancelled")


def _check_status(resp: requests.Response, method: str, url: str) -> None:
    status = resp.status_code
    if is_success(status):
        log.debug("%s %s -> %s", method, url, status)
        return

    log.warning("%s %s -> %s", method, url, status)
    raise _map_http_error(status)
