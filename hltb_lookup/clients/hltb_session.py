from __future__ import annotations

import json
import logging
import re
import threading
import time
from dataclasses import dataclass
from typing import Callable

from bs4 import BeautifulSoup

from ..config import HLTB
from .errors import HLTBError, MalformedResponse
from .http_client import HTTPClient

# `/api/<path>/init` identifies the search endpoint (its token lives under the same path).
_INIT_PATTERN = re.compile(r"""/api/(\w+)/init""")
# Older bundles build the search URL as fetch("/api/<path>/".concat(...)).
_FETCH_PATTERN = re.compile(r"""fetch\(\s*["'`]/api/(\w+)/["'`]\s*\.concat""")
# Other API families that also appear in the bundles.
_NON_SEARCH_PATHS = {"user", "logout", "error", "game", "steam", "locate"}


@dataclass(frozen=True)
class AuthSession:
    token: str
    endpoint_url: str
    obtained_at: float

    def age_s(self, now: float) -> float:
        return max(0.0, now - self.obtained_at)


class EndpointManager:
    """
    Discover the current HLTB search endpoint and keep a short-lived auth token fresh.

    The site's private API rotates its search path between deployments, and search requests
    need an `x-auth-token` obtained from `<search path>/init`. Both values are cached for the
    lifetime of this object; the token is re-fetched once it is older than `token_ttl_s`.

    All state is written under a lock, and readers go through the accessors, so a refresh in
    progress on another thread is never observed half-written.
    """

    def __init__(
        self,
        http: HTTPClient,
        *,
        base_url: str = HLTB.base_url,
        token_ttl_s: float = HLTB.token_ttl_s,
        clock: Callable[[], float] = time.time,
    ):
        self.http = http
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.token_ttl_s = float(token_ttl_s)
        self._clock = clock
        self._lock = threading.RLock()
        self._endpoint_url: str | None = None
        self._endpoint_is_fallback = False
        self._build_id: str | None = None
        self._discovered_at: float | None = None
        self._session: AuthSession | None = None
        self.last_error: HLTBError | None = None

    # -------------------------------------------------
    # Accessors
    # -------------------------------------------------
    def get_endpoint(self) -> str:
        with self._lock:
            if self._endpoint_url is None:
                self._discover()
            assert self._endpoint_url is not None
            return self._endpoint_url

    def get_build_id(self) -> str | None:
        with self._lock:
            if self._endpoint_url is None or (
                self._build_id is None and self._may_rediscover(self._clock())
            ):
                self._discover()
            return self._build_id

    def get_auth_token(self) -> str | None:
        """
        Return a valid token, or None when one cannot be obtained right now.

        A missing token is not fatal: `last_error` records why, and callers may still try the
        unauthenticated request.
        """
        session = self.ensure_fresh()
        return session.token if session is not None else None

    def ensure_fresh(self) -> AuthSession | None:
        with self._lock:
            now = self._clock()
            current = self._session
            if current is not None and current.age_s(now) < self.token_ttl_s:
                return current

            # A fallback endpoint may simply mean the homepage was unreachable last time.
            if self._endpoint_url is None or (
                self._endpoint_is_fallback and self._may_rediscover(now)
            ):
                self._discover()
            endpoint = self._endpoint_url
            assert endpoint is not None

            try:
                token = self._fetch_token(endpoint, now)
            except HLTBError as e:
                self.last_error = e
                self._session = None
                logging.warning(f"HLTB auth token refresh failed: {e}")
                return None

            self._session = AuthSession(token=token, endpoint_url=endpoint, obtained_at=now)
            self.last_error = None
            logging.debug(f"HLTB auth token refreshed for {endpoint}")
            return self._session

    def invalidate(self) -> None:
        """Forget the discovered endpoint, build id and token (e.g. after a 403/404)."""
        with self._lock:
            self._endpoint_url = None
            self._endpoint_is_fallback = False
            self._build_id = None
            self._discovered_at = None
            self._session = None

    # -------------------------------------------------
    # Discovery
    # -------------------------------------------------
    def _may_rediscover(self, now: float) -> bool:
        """Incomplete discovery is retried at most once per `token_ttl_s`."""
        return self._discovered_at is None or now - self._discovered_at >= self.token_ttl_s

    def _fallback_endpoint(self) -> str:
        return f"{self.base_url}api/{HLTB.fallback_search_path}"

    def _discover(self) -> None:
        self._discovered_at = self._clock()
        try:
            homepage = self.http.get_text(
                self.base_url,
                headers={"Referer": self.base_url},
                counter_key="http_homepage",
                context="HLTB homepage",
            )
        except HLTBError as e:
            self.last_error = e
            logging.warning(
                f"HLTB endpoint discovery failed ({e}); using fallback {self._fallback_endpoint()}"
            )
            self._endpoint_url = self._fallback_endpoint()
            self._endpoint_is_fallback = True
            return

        self._build_id = self._discover_build_id(homepage)
        path = self._discover_search_path(homepage)
        if path:
            self._endpoint_url = f"{self.base_url}api/{path}"
            self._endpoint_is_fallback = False
            logging.info(
                f"HLTB API endpoint: /api/{path} (buildId={self._build_id or 'N/A'})"
            )
            return

        logging.warning(
            "Could not discover the HLTB search endpoint from script bundles; "
            f"using fallback {self._fallback_endpoint()}"
        )
        self._endpoint_url = self._fallback_endpoint()
        self._endpoint_is_fallback = True

    def _script_urls(self, homepage_html: str) -> list[str]:
        soup = BeautifulSoup(homepage_html, "html.parser")
        urls: list[str] = []
        for tag in soup.find_all("script", src=True):
            src = str(tag.get("src", "") or "")
            if "/_next/static/chunks/" not in src or src.endswith("Manifest.js"):
                continue
            url = src if src.startswith("http") else f"{self.base_url}{src.lstrip('/')}"
            urls.append(url)
        # The search call usually lives in the `_app` bundle; check it first.
        urls.sort(key=lambda u: 0 if "/pages/_app" in u else 1)
        return urls

    def _discover_search_path(self, homepage_html: str) -> str:
        for url in self._script_urls(homepage_html):
            try:
                js = self.http.get_text(url, counter_key="http_bundle", context="HLTB bundle")
            except HLTBError:
                continue
            for pattern in (_INIT_PATTERN, _FETCH_PATTERN):
                for m in pattern.finditer(js):
                    path = m.group(1)
                    if path in _NON_SEARCH_PATHS:
                        continue
                    return path
        return ""

    @staticmethod
    def _discover_build_id(homepage_html: str) -> str | None:
        """
        Extract the Next.js buildId from the homepage.

        Prefers the `__NEXT_DATA__` JSON blob; falls back to the
        `/_next/static/<buildId>/_buildManifest.js` script path.
        """
        soup = BeautifulSoup(homepage_html, "html.parser")
        next_data = soup.find("script", id="__NEXT_DATA__")
        if next_data is not None and next_data.string:
            try:
                build_id = json.loads(next_data.string).get("buildId")
            except (ValueError, AttributeError):
                build_id = None
            if isinstance(build_id, str) and build_id.strip():
                return build_id.strip()

        for tag in soup.find_all("script", src=True):
            parts = str(tag.get("src", "") or "").split("/")
            if "_buildManifest.js" in parts:
                idx = parts.index("_buildManifest.js")
                if idx >= 1 and parts[idx - 1]:
                    return parts[idx - 1]
        return None

    def _fetch_token(self, endpoint: str, now: float) -> str:
        data = self.http.get_json(
            f"{endpoint}/init",
            params={"t": int(now * 1000)},
            headers={"Referer": self.base_url, "Origin": self.base_url.rstrip("/")},
            counter_key="http_token",
            context="HLTB auth token",
        )
        token = data.get("token") if isinstance(data, dict) else None
        if not isinstance(token, str) or not token.strip():
            raise MalformedResponse("Auth token missing from init response")
        return token.strip()
