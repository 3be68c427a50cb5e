from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable

import requests

from .caches.id_cache import IdCache, IdCachePolicy, reconcile
from .caches.result_cache import ResultCache
from .clients.hltb_client import HLTBClient
from .clients.http_client import HTTPClient, default_session
from .clients.parse import parse_int_text
from .clients.steam_client import SteamClient
from .config import REFRESH, Settings
from .models import CatalogRecord, Fetched, ResolvedGame
from .overrides import OverrideTable, load_overrides
from .resolver import Resolver

RefreshCallback = Callable[[int, "CatalogRecord | None"], None]


class DisplayState:
    """The app id the caller is currently showing. Background refreshes check it before notifying."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._current: int | None = None

    def show(self, app_id: int | None) -> None:
        with self._lock:
            self._current = app_id

    @property
    def current(self) -> int | None:
        with self._lock:
            return self._current

    def is_current(self, app_id: int) -> bool:
        with self._lock:
            return self._current == app_id


@dataclass(frozen=True)
class LookupResult:
    data: CatalogRecord | None
    from_cache: bool
    # Resolves to the refreshed record (or None) when a stale cache entry is being revalidated.
    pending_refresh: Future | None = None
    searched_name: str = ""


class LookupService:
    """
    Resolve Steam app ids to HLTB records with stale-while-revalidate caching.

    Cached values are returned immediately; a stale one also starts a background refresh on a
    small thread pool. The refreshed value is always stored under its own app id, and
    `on_refresh` is only called if that app id is still the one being displayed.
    """

    def __init__(
        self,
        resolver: Resolver,
        id_cache: IdCache,
        result_cache: ResultCache,
        *,
        acting_user_id: str | None = None,
        on_refresh: RefreshCallback | None = None,
        executor: ThreadPoolExecutor | None = None,
        display: DisplayState | None = None,
    ):
        self.resolver = resolver
        self.id_cache = id_cache
        self.result_cache = result_cache
        self.acting_user_id = str(acting_user_id or "").strip() or None
        self.on_refresh = on_refresh
        self.display = display or DisplayState()
        self._executor = executor or ThreadPoolExecutor(
            max_workers=REFRESH.max_workers, thread_name_prefix="hltb-refresh"
        )
        self._owns_executor = executor is None
        self._inflight_lock = threading.Lock()
        self._inflight: dict[int, Future] = {}
        self._import_outcomes: dict[str, bool] = {}

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        session: requests.Session | None = None,
        on_refresh: RefreshCallback | None = None,
    ) -> LookupService:
        session = session or default_session()
        overrides = load_overrides()
        if settings.overrides_path is not None:
            extra = load_overrides(settings.overrides_path)
            overrides = OverrideTable({**overrides.entries, **extra.entries})
        resolver = Resolver(
            HLTBClient(HTTPClient(session=session)),
            SteamClient(HTTPClient(session=session)),
            overrides,
        )
        return cls(
            resolver,
            IdCache(
                settings.id_cache_path,
                policy=IdCachePolicy(refresh=settings.id_refresh, max_age_s=settings.id_max_age_s),
            ),
            ResultCache(settings.result_cache_path, ttl_s=settings.result_ttl_s),
            acting_user_id=settings.steam_user_id or None,
            on_refresh=on_refresh,
        )

    # -------------------------------------------------
    # Lookup
    # -------------------------------------------------
    def resolve(self, app_id: int | str) -> LookupResult:
        sid = parse_int_text(app_id)
        if sid is None or sid <= 0:
            raise ValueError(f"Invalid Steam app id: {app_id!r}")
        self.display.show(sid)

        cached = self.result_cache.get(sid)
        if cached is not None:
            pending = self._schedule_refresh(sid) if cached.is_stale else None
            return LookupResult(
                data=cached.game.record,
                from_cache=True,
                pending_refresh=pending,
                searched_name=cached.game.searched_name,
            )

        fetched = self._fetch(sid)
        game: ResolvedGame = fetched.value if isinstance(fetched.value, ResolvedGame) else ResolvedGame()
        return LookupResult(data=game.record, from_cache=False, searched_name=game.searched_name)

    def _fetch(self, app_id: int) -> Fetched:
        """Resolve from upstream and cache ok/miss outcomes. Failures are not cached."""
        hltb_id = self.id_cache.get(app_id, self.acting_user_id)
        if hltb_id is not None:
            fetched = self.resolver.resolve_by_id(hltb_id, app_id)
        else:
            fetched = self.resolver.resolve_by_name(app_id)

        if fetched.is_ok or fetched.is_miss:
            game = fetched.value if isinstance(fetched.value, ResolvedGame) else ResolvedGame()
            self.result_cache.put(app_id, game)
        return fetched

    def _schedule_refresh(self, app_id: int) -> Future:
        with self._inflight_lock:
            running = self._inflight.get(app_id)
            if running is not None and not running.done():
                return running
            future = self._executor.submit(self._refresh, app_id)
            self._inflight[app_id] = future
        future.add_done_callback(lambda f: self._forget(app_id, f))
        return future

    def _forget(self, app_id: int, future: Future) -> None:
        with self._inflight_lock:
            if self._inflight.get(app_id) is future:
                del self._inflight[app_id]

    def _refresh(self, app_id: int) -> CatalogRecord | None:
        try:
            fetched = self._fetch(app_id)
        except Exception:
            logging.exception(f"[{app_id}] Background refresh crashed")
            return None

        if not (fetched.is_ok or fetched.is_miss):
            logging.warning(f"[{app_id}] Background refresh failed: {fetched.reason}")
            return None

        record = fetched.value.record if isinstance(fetched.value, ResolvedGame) else None
        if not self.display.is_current(app_id):
            logging.debug(f"[{app_id}] Refreshed, but no longer displayed; not applying")
            return record
        if self.on_refresh is not None:
            try:
                self.on_refresh(app_id, record)
            except Exception:
                logging.exception(f"[{app_id}] on_refresh callback failed")
        return record

    # -------------------------------------------------
    # Bulk import
    # -------------------------------------------------
    def import_library(self, owner_user_id: str) -> bool:
        """
        Make sure the id cache holds `owner_user_id`'s mapping, importing it if needed.

        Returns True if mappings were obtained: by this call, by an earlier import in this process,
        or from a stored cache that is still valid. A failed or empty import keeps whatever the
        cache held before, and later calls that skip the import report that same failure.
        """
        owner = str(owner_user_id or "").strip()
        if not owner:
            logging.warning("No Steam user id; skipping library import")
            return False
        self.acting_user_id = owner

        if not self.id_cache.needs_refresh(owner):
            logging.debug(f"HLTB id cache is current for user {owner}")
            last = self._import_outcomes.get(owner)
            return last if last is not None else self.id_cache.is_valid_for(owner)

        fetched = self.resolver.hltb.fetch_steam_import(owner)
        self.id_cache.mark_imported(owner)
        if not fetched.is_ok:
            logging.warning(f"HLTB library import for user {owner} got no data: {fetched.reason}")
            obtained = False
        else:
            obtained = reconcile(self.id_cache, fetched.value, owner)
        self._import_outcomes[owner] = obtained
        return obtained

    # -------------------------------------------------
    # Housekeeping
    # -------------------------------------------------
    def clear_caches(self) -> None:
        self.result_cache.clear()
        self.id_cache.clear()
        self._import_outcomes.clear()
        self.resolver.hltb.clear()
        logging.info("Cleared HLTB caches")

    def cache_stats(self) -> dict[str, Any]:
        return {
            "results": self.result_cache.summary(),
            "ids": self.id_cache.summary(),
        }

    def format_stats(self) -> str:
        return ", ".join(
            [
                self.result_cache.format_cache_stats(),
                self.id_cache.format_cache_stats(),
                self.resolver.hltb.format_cache_stats(),
            ]
        )

    def shutdown(self, wait: bool = True) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=wait)

    def __enter__(self) -> LookupService:
        return self

    def __exit__(self, *exc: object) -> None:
        self.shutdown()
