from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterable

from ..config import CACHE, ID_REFRESH_EVERY_SESSION, ID_REFRESH_MAX_AGE, ID_REFRESH_POLICIES
from ..models import ExternalIdentity
from ..utils.cache_io import CacheIOTracker


@dataclass(frozen=True)
class IdCachePolicy:
    """
    How often the Steam -> HLTB mapping is rebuilt from a bulk import.

    - max_age: re-import when the stored mapping is older than `max_age_s` (or owned by
      another user)
    - every_session: re-import once per user per process, regardless of age
    """

    refresh: str = CACHE.id_refresh
    max_age_s: float = CACHE.id_max_age_s

    def __post_init__(self) -> None:
        if self.refresh not in ID_REFRESH_POLICIES:
            raise ValueError(f"Unknown id refresh policy: {self.refresh!r}")


class IdCache:
    """
    Steam app id -> HLTB game id, owned by one Steam user.

    Persisted as `{"mappings": {app_id: hltb_id}, "metadata": {"timestamp": ms, "ownerUserId": id}}`.
    Content is only ever replaced as a whole by `reconcile()`.
    """

    def __init__(
        self,
        cache_path: str | Path,
        *,
        policy: IdCachePolicy | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.cache_path = Path(cache_path)
        self.policy = policy or IdCachePolicy()
        self._clock = clock
        self._lock = threading.Lock()
        self.stats: dict[str, int] = {
            "hit": 0,
            "miss": 0,
            "wrong_owner": 0,
            "expired": 0,
            "reconciled": 0,
        }
        self._mappings: dict[int, int] = {}
        self._owner: str = ""
        self._written_at_ms: int = 0
        self._imported_users: set[str] = set()
        self._cache_io = CacheIOTracker(self.stats, prefix="id_cache")
        self._load(self._cache_io.load_json(self.cache_path))

    def _load(self, raw: dict[str, Any]) -> None:
        if not raw:
            return
        mappings = raw.get("mappings")
        metadata = raw.get("metadata")
        if not isinstance(mappings, dict) or not isinstance(metadata, dict):
            logging.warning(
                "HLTB id cache file is in an incompatible format; ignoring it (delete it to rebuild)."
            )
            return
        out: dict[int, int] = {}
        for k, v in mappings.items():
            try:
                app_id = int(str(k))
            except ValueError:
                continue
            if isinstance(v, int) and not isinstance(v, bool) and v > 0:
                out[app_id] = v
        self._mappings = out
        self._owner = str(metadata.get("ownerUserId") or "")
        ts = metadata.get("timestamp")
        self._written_at_ms = int(ts) if isinstance(ts, (int, float)) else 0

    def _save(self) -> None:
        self._cache_io.save_json(
            {
                "mappings": {str(k): v for k, v in sorted(self._mappings.items())},
                "metadata": {"timestamp": self._written_at_ms, "ownerUserId": self._owner},
            },
            self.cache_path,
        )

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    # -------------------------------------------------
    # Reads
    # -------------------------------------------------
    @property
    def owner_user_id(self) -> str:
        return self._owner

    def age_s(self) -> float | None:
        if not self._written_at_ms:
            return None
        return max(0.0, (self._now_ms() - self._written_at_ms) / 1000.0)

    def is_valid_for(self, user_id: str | None) -> bool:
        """True if the stored mapping belongs to `user_id` and (under max_age) is young enough."""
        user = str(user_id or "").strip()
        with self._lock:
            if not user or not self._mappings or self._owner != user:
                return False
            if self.policy.refresh == ID_REFRESH_MAX_AGE:
                return self._fresh()
            return True

    def _fresh(self) -> bool:
        age = self.age_s()
        return age is not None and age <= self.policy.max_age_s

    def get(self, app_id: int, user_id: str | None) -> int | None:
        """
        Return the HLTB id for `app_id`, or None.

        Mappings belong to their owner: a lookup on behalf of anyone else (or of nobody) misses.
        Under the max_age policy an expired mapping misses too.
        """
        user = str(user_id or "").strip()
        with self._lock:
            if not user or user != self._owner:
                if self._mappings:
                    self.stats["wrong_owner"] += 1
                return None
            if self.policy.refresh == ID_REFRESH_MAX_AGE and not self._fresh():
                self.stats["expired"] += 1
                return None
            hltb_id = self._mappings.get(int(app_id))
            self.stats["hit" if hltb_id is not None else "miss"] += 1
            return hltb_id

    def needs_refresh(self, user_id: str | None) -> bool:
        user = str(user_id or "").strip()
        if not user:
            return False
        if self.policy.refresh == ID_REFRESH_EVERY_SESSION:
            return user not in self._imported_users
        return not self.is_valid_for(user)

    def __len__(self) -> int:
        return len(self._mappings)

    # -------------------------------------------------
    # Writes
    # -------------------------------------------------
    def reconcile(self, identities: Iterable[ExternalIdentity], owner_user_id: str) -> bool:
        """
        Replace the whole mapping with a bulk import result.

        Identities without an HLTB id are dropped. An import that yields no mappings leaves the
        current content untouched and returns False.
        """
        owner = str(owner_user_id or "").strip()
        mappings = {
            i.storefront_id: i.catalog_id
            for i in identities
            if i.catalog_id is not None and i.catalog_id > 0
        }
        if not owner or not mappings:
            logging.info("HLTB id cache: import produced no mappings; keeping existing cache")
            return False

        with self._lock:
            self._mappings = mappings
            self._owner = owner
            self._written_at_ms = self._now_ms()
            self._imported_users.add(owner)
            self.stats["reconciled"] += 1
            self._save()
        logging.info(f"HLTB id cache: stored {len(mappings)} mappings for user {owner}")
        return True

    def mark_imported(self, user_id: str) -> None:
        """Record that this process already tried an import for `user_id`."""
        self._imported_users.add(str(user_id or "").strip())

    def clear(self) -> None:
        with self._lock:
            self._mappings = {}
            self._owner = ""
            self._written_at_ms = 0
            self._imported_users.clear()
            self._save()

    def summary(self) -> dict[str, Any]:
        age = self.age_s()
        return {
            "count": len(self._mappings),
            "owner": self._owner,
            "age_hours": round(age / 3600.0, 1) if age is not None else None,
            "policy": self.policy.refresh,
        }

    def format_cache_stats(self) -> str:
        s = self.stats
        return (
            f"id_cache hit={s['hit']} miss={s['miss']} wrong_owner={s['wrong_owner']} "
            f"expired={s['expired']} reconciled={s['reconciled']}, "
            f"{CacheIOTracker.format_io(s, prefix='id_cache')}"
        )


def reconcile(cache: IdCache, identities: Iterable[ExternalIdentity], owner_user_id: str) -> bool:
    """Bulk-import reconciliation entry point; see `IdCache.reconcile`."""
    return cache.reconcile(identities, owner_user_id)
