from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any

import requests

from ..config import REQUEST
from .errors import MalformedResponse, NullResponse, TransportFailure, UpstreamRejection


def default_session() -> requests.Session:
    session = requests.Session()
    session.headers.update({"User-Agent": REQUEST.user_agent})
    return session


@dataclass
class HTTPClient:
    """
    Small helper to standardize request + timeout + outcome classification + stats counting.

    Every call either returns a decoded body or raises one of:
    - TransportFailure: no response (network error, timeout)
    - UpstreamRejection: non-2xx status (carries `status`)
    - MalformedResponse: 2xx but undecodable, or the literal JSON `null`

    There are no retries here: some failures (a private profile) are not transient, so the
    retry policy belongs to callers.
    """

    session: requests.Session = field(default_factory=default_session)
    stats: dict[str, Any] | None = None
    timeout_s: float = REQUEST.timeout_s

    def _bump(self, key: str, amount: int = 1) -> None:
        if self.stats is None:
            return
        self.stats[key] = int(self.stats.get(key, 0) or 0) + amount

    def _send(
        self,
        method: str,
        url: str,
        *,
        counter_key: str,
        context: str,
        **kwargs: Any,
    ) -> requests.Response:
        self._bump(counter_key)
        send = self.session.post if method == "POST" else self.session.get
        t0 = time.perf_counter()
        try:
            r = send(url, timeout=self.timeout_s, **kwargs)
        except requests.exceptions.RequestException as e:
            self._bump("network_errors")
            logging.error(f"[NETWORK] {context}: {type(e).__name__}: {e}")
            raise TransportFailure(f"Request failed: {e}") from e
        finally:
            self._bump(f"{counter_key}_ms", int(round((time.perf_counter() - t0) * 1000.0)))

        status = int(getattr(r, "status_code", 0) or 0)
        if not 200 <= status < 300:
            self._bump("http_errors")
            logging.error(f"[HTTP] {context}: {status}")
            raise UpstreamRejection(status)
        return r

    @staticmethod
    def _decode_json(r: requests.Response, *, context: str) -> Any:
        try:
            data = r.json()
        except ValueError as e:
            raise MalformedResponse(f"Invalid JSON response ({context})") from e
        if data is None:
            raise NullResponse(f"Empty (null) response ({context})")
        return data

    def get_json(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        counter_key: str = "http_get",
        context: str,
    ) -> Any:
        kwargs: dict[str, Any] = {}
        if params is not None:
            kwargs["params"] = params
        if headers is not None:
            kwargs["headers"] = headers
        r = self._send("GET", url, counter_key=counter_key, context=context, **kwargs)
        return self._decode_json(r, context=context)

    def post_json(
        self,
        url: str,
        *,
        json_body: Any | None = None,
        headers: dict[str, str] | None = None,
        counter_key: str = "http_post",
        context: str,
    ) -> Any:
        kwargs: dict[str, Any] = {}
        if json_body is not None:
            kwargs["json"] = json_body
        if headers is not None:
            kwargs["headers"] = headers
        r = self._send("POST", url, counter_key=counter_key, context=context, **kwargs)
        return self._decode_json(r, context=context)

    def get_text(
        self,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        counter_key: str = "http_get",
        context: str,
    ) -> str:
        kwargs: dict[str, Any] = {}
        if headers is not None:
            kwargs["headers"] = headers
        r = self._send("GET", url, counter_key=counter_key, context=context, **kwargs)
        text = getattr(r, "text", None)
        if not isinstance(text, str):
            raise MalformedResponse(f"Non-text response ({context})")
        return text

    @staticmethod
    def format_requests(stats: dict[str, Any] | None, *keys: str) -> str:
        """Format request counters tracked via `_bump()`."""
        if not stats:
            return " ".join(f"{k}=0" for k in keys)
        return " ".join(f"{k}={int(stats.get(k, 0) or 0)}" for k in keys)
