from __future__ import annotations

from typing import Any

import pytest

BASE = "https://howlongtobeat.com/"

HOMEPAGE_HTML = """
<html><head>
<script src="/_next/static/build-abc/_buildManifest.js"></script>
<script src="/_next/static/chunks/framework-111.js"></script>
<script src="/_next/static/chunks/pages/_app-222.js"></script>
</head><body></body></html>
"""

APP_BUNDLE_JS = 'a=fetch("/api/user/init");b=n.get("/api/seek/init?t="+Date.now());'


class FakeResponse:
    def __init__(
        self,
        status_code: int = 200,
        json_data: Any = None,
        text: str | None = None,
        *,
        bad_json: bool = False,
    ):
        self.status_code = status_code
        self._json = json_data
        self._bad_json = bad_json
        self.text = text if text is not None else ""

    def json(self) -> Any:
        if self._bad_json:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._json


class FakeSession:
    """
    Scripted stand-in for `requests.Session`.

    Routes are matched in registration order by method and URL substring (or exact URL). Each
    route holds a queue of responses; the last one repeats. Exceptions in the queue are raised.
    """

    def __init__(self) -> None:
        self.headers: dict[str, str] = {}
        self.routes: list[tuple[str, str, bool, list[Any]]] = []
        self.calls: list[tuple[str, str, dict[str, Any]]] = []

    def add(self, method: str, url: str, *responses: Any, exact: bool = False) -> FakeSession:
        self.routes.append((method, url, exact, list(responses)))
        return self

    def _dispatch(self, method: str, url: str, **kwargs: Any) -> Any:
        self.calls.append((method, url, kwargs))
        for m, pattern, exact, responses in self.routes:
            if m != method:
                continue
            if (url == pattern) if exact else (pattern in url):
                resp = responses.pop(0) if len(responses) > 1 else responses[0]
                if isinstance(resp, BaseException):
                    raise resp
                return resp
        raise AssertionError(f"unexpected request {method} {url}")

    def get(self, url: str, **kwargs: Any) -> Any:
        return self._dispatch("GET", url, **kwargs)

    def post(self, url: str, **kwargs: Any) -> Any:
        return self._dispatch("POST", url, **kwargs)

    def count(self, fragment: str, method: str | None = None) -> int:
        return sum(
            1 for m, url, _ in self.calls if fragment in url and (method is None or m == method)
        )


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def fake_response():
    return FakeResponse


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def hltb_site(fake_session: FakeSession) -> FakeSession:
    """A session that serves the HLTB homepage, script bundles and a token for `/api/seek`."""
    fake_session.add("GET", "/_next/static/chunks/pages/_app", FakeResponse(text=APP_BUNDLE_JS))
    fake_session.add("GET", "/_next/static/chunks/", FakeResponse(text="var x=1;"))
    fake_session.add("GET", "api/seek/init", FakeResponse(json_data={"token": "tok-1"}))
    fake_session.add("GET", BASE, FakeResponse(text=HOMEPAGE_HTML), exact=True)
    return fake_session
