from __future__ import annotations

import logging
import time
from typing import Any, Callable

from ..config import HLTB
from ..models import CatalogRecord, ExternalIdentity, Fetched
from .errors import (
    HLTBError,
    MalformedResponse,
    NoIdentityFound,
    NullResponse,
    PrivateOrInaccessibleSource,
    UpstreamRejection,
)
from .hltb_session import EndpointManager
from .http_client import HTTPClient
from .parse import as_str, get_list_of_dicts, parse_int_text

# Statuses that usually mean the discovered endpoint/build id/token went stale.
_STALE_SEARCH_STATUSES = {403, 404}


class HLTBClient:
    """
    Client for HowLongToBeat's private API.

    Every public method returns a `Fetched` value; transport exceptions stop here.
    """

    def __init__(
        self,
        http: HTTPClient | None = None,
        *,
        endpoints: EndpointManager | None = None,
        base_url: str = HLTB.base_url,
        clock: Callable[[], float] = time.time,
    ):
        self.stats: dict[str, int] = {
            "search_ok": 0,
            "search_miss": 0,
            "search_failed": 0,
            "by_id_ok": 0,
            "by_id_miss": 0,
            "by_id_failed": 0,
            "import_ok": 0,
            "import_miss": 0,
            "import_failed": 0,
            # HTTP request counters (attempts, including the single stale-endpoint retry).
            "http_search": 0,
            "http_by_id": 0,
            "http_import": 0,
            "http_token": 0,
            "http_homepage": 0,
            "http_bundle": 0,
        }
        self.http = http if http is not None else HTTPClient()
        if self.http.stats is None:
            self.http.stats = self.stats
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.endpoints = endpoints or EndpointManager(
            self.http, base_url=self.base_url, clock=clock
        )

    def _headers(self, token: str | None = None) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "*/*",
            "Referer": self.base_url,
            "Origin": self.base_url.rstrip("/"),
        }
        if token:
            headers["x-auth-token"] = token
        return headers

    def _search_body(self, query: str) -> dict[str, Any]:
        return {
            "searchType": "games",
            "searchTerms": query.split(),
            "searchPage": 1,
            "size": HLTB.search_page_size,
            "searchOptions": {
                "games": {
                    "userId": 0,
                    "platform": "",
                    "sortCategory": "popular",
                    "rangeCategory": "main",
                    "rangeTime": {"min": 0, "max": 0},
                    "gameplay": {"perspective": "", "flow": "", "genre": "", "difficulty": ""},
                    "rangeYear": {"max": "", "min": ""},
                    "modifier": "hide_dlc",
                },
                "users": {"sortCategory": "postcount"},
                "lists": {"sortCategory": "follows"},
                "filter": "",
                "sort": 0,
                "randomizer": 0,
            },
            "useCache": True,
        }

    def search(self, query: str) -> Fetched:
        """
        Search HLTB by free text.

        Returns `ok` with a list of `CatalogRecord` in the site's relevance order, `miss` when the
        search succeeded but found nothing.
        """
        q = str(query or "").strip()
        if not q:
            self.stats["search_miss"] += 1
            return Fetched.miss(NoIdentityFound("Empty search query"))

        data: Any = None
        for attempt in range(2):
            session = self.endpoints.ensure_fresh()
            endpoint = session.endpoint_url if session else self.endpoints.get_endpoint()
            try:
                data = self.http.post_json(
                    endpoint,
                    json_body=self._search_body(q),
                    headers=self._headers(session.token if session else None),
                    counter_key="http_search",
                    context=f"HLTB search '{q}'",
                )
                break
            except UpstreamRejection as e:
                if e.status in _STALE_SEARCH_STATUSES and attempt == 0:
                    logging.info(f"HLTB search got HTTP {e.status}; rediscovering endpoint")
                    self.endpoints.invalidate()
                    continue
                self.stats["search_failed"] += 1
                return Fetched.failed(e)
            except HLTBError as e:
                self.stats["search_failed"] += 1
                logging.warning(f"HLTB search failed for '{q}': {e}")
                return Fetched.from_error(e)

        if not isinstance(data, dict) or not isinstance(data.get("data"), list):
            self.stats["search_failed"] += 1
            return Fetched.malformed(MalformedResponse("Unexpected search response structure"))

        records = [
            r
            for r in (CatalogRecord.from_payload(g) for g in get_list_of_dicts(data["data"]))
            if r is not None
        ]
        if not records:
            self.stats["search_miss"] += 1
            return Fetched.miss(NoIdentityFound(f"No results for '{q}'"))
        self.stats["search_ok"] += 1
        return Fetched.ok(records)

    def fetch_game_by_id(self, catalog_id: int | str) -> Fetched:
        """
        Fetch one game's record through the site's Next.js data route.

        The route is versioned by the deployment's build id, so a 404 usually means the id we
        discovered is stale: rediscover once and retry.
        """
        gid = parse_int_text(catalog_id)
        if gid is None or gid <= 0:
            self.stats["by_id_failed"] += 1
            return Fetched.failed(HLTBError(f"Invalid HLTB game id: {catalog_id!r}"))

        data: Any = None
        for attempt in range(2):
            build_id = self.endpoints.get_build_id()
            if not build_id:
                self.stats["by_id_failed"] += 1
                return Fetched.failed(
                    self.endpoints.last_error or HLTBError("Could not discover the site build id")
                )
            try:
                data = self.http.get_json(
                    f"{self.base_url}_next/data/{build_id}/game/{gid}.json",
                    headers={"Referer": self.base_url},
                    counter_key="http_by_id",
                    context=f"HLTB game {gid}",
                )
                break
            except UpstreamRejection as e:
                if e.status == 404 and attempt == 0:
                    logging.info(f"HLTB game route 404 for id={gid}; rediscovering build id")
                    self.endpoints.invalidate()
                    continue
                self.stats["by_id_failed"] += 1
                return Fetched.failed(e)
            except HLTBError as e:
                self.stats["by_id_failed"] += 1
                logging.warning(f"HLTB fetch failed for id={gid}: {e}")
                return Fetched.from_error(e)

        try:
            games = data["pageProps"]["game"]["data"]["game"]
        except (KeyError, TypeError):
            games = None
        if not isinstance(games, list):
            self.stats["by_id_failed"] += 1
            return Fetched.malformed(MalformedResponse("Unexpected response structure"))
        if not games:
            self.stats["by_id_miss"] += 1
            return Fetched.miss(NoIdentityFound("No game data found"))

        record = CatalogRecord.from_payload(games[0])
        if record is None:
            self.stats["by_id_failed"] += 1
            return Fetched.malformed(MalformedResponse("Game payload has no usable id"))
        self.stats["by_id_ok"] += 1
        return Fetched.ok(record)

    def fetch_steam_import(self, steam_user_id: str) -> Fetched:
        """
        Fetch HLTB's Steam library import for a user.

        Returns `ok` with a list of `ExternalIdentity` (catalog id absent for games HLTB does not
        know). A private profile and an empty library look the same to us: both are `miss`.
        """
        user = str(steam_user_id or "").strip()
        if not user:
            self.stats["import_failed"] += 1
            return Fetched.failed(HLTBError("No Steam user ID provided"))

        try:
            data = self.http.post_json(
                f"{self.base_url}{HLTB.steam_import_path}",
                json_body={"steamUserId": user, "steamOmitData": 0},
                headers=self._headers(),
                counter_key="http_import",
                context="HLTB Steam import",
            )
        except NullResponse:
            self.stats["import_miss"] += 1
            logging.warning("HLTB Steam import returned null (profile may be private)")
            return Fetched.miss(PrivateOrInaccessibleSource("Empty response (profile may be private)"))
        except HLTBError as e:
            self.stats["import_failed"] += 1
            return Fetched.from_error(e)

        if not isinstance(data, dict):
            self.stats["import_failed"] += 1
            return Fetched.malformed(MalformedResponse("Unexpected import response structure"))
        if data.get("error"):
            self.stats["import_miss"] += 1
            msg = f"HLTB API error: {as_str(data.get('error'))} (profile may be private)"
            logging.warning(msg)
            return Fetched.miss(PrivateOrInaccessibleSource(msg))

        games = get_list_of_dicts(data.get("games"))
        if not games:
            self.stats["import_miss"] += 1
            logging.warning("HLTB Steam import has no games (profile may be private)")
            return Fetched.miss(
                PrivateOrInaccessibleSource("No games in response (profile may be private)")
            )

        identities: list[ExternalIdentity] = []
        for g in games:
            app_id = parse_int_text(g.get("steam_id"))
            if app_id is None or app_id <= 0:
                continue
            hltb_id = parse_int_text(g.get("hltb_id"))
            identities.append(
                ExternalIdentity(
                    storefront_id=app_id,
                    catalog_id=hltb_id if hltb_id and hltb_id > 0 else None,
                    title=as_str(g.get("hltb_name")) or as_str(g.get("steam_name")),
                )
            )
        self.stats["import_ok"] += 1
        logging.info(
            f"HLTB Steam import: {len(identities)} games, "
            f"{sum(1 for i in identities if i.catalog_id)} with an HLTB id"
        )
        return Fetched.ok(identities)

    def clear(self) -> None:
        """Forget discovered endpoint, build id and token."""
        self.endpoints.invalidate()

    def format_cache_stats(self) -> str:
        s = self.stats
        return (
            f"search ok={s['search_ok']} miss={s['search_miss']} failed={s['search_failed']}, "
            f"by_id ok={s['by_id_ok']} miss={s['by_id_miss']} failed={s['by_id_failed']}, "
            f"import ok={s['import_ok']} miss={s['import_miss']} failed={s['import_failed']}, "
            "http "
            + HTTPClient.format_requests(
                s, "http_search", "http_by_id", "http_import", "http_token", "http_homepage"
            )
        )
