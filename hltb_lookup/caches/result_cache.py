from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterator

from ..config import CACHE
from ..models import ResolvedGame
from ..utils.cache_io import CacheIOTracker


@dataclass(frozen=True)
class CachedResult:
    game: ResolvedGame
    written_at_ms: int
    is_stale: bool


class ResultCache:
    """
    Steam app id -> last resolved outcome (record or confirmed miss).

    Persisted as `{app_id: {"data": {...}, "timestamp": ms}}`. Entries are replaced whole and are
    only removed by `clear()`. A miss is always reported stale so it gets retried.
    """

    def __init__(
        self,
        cache_path: str | Path,
        *,
        ttl_s: float = CACHE.result_ttl_s,
        clock: Callable[[], float] = time.time,
    ):
        self.cache_path = Path(cache_path)
        self.ttl_s = float(ttl_s)
        self._clock = clock
        self._lock = threading.Lock()
        self.stats: dict[str, int] = {"hit": 0, "stale_hit": 0, "miss": 0, "writes": 0}
        self._entries: dict[str, dict[str, Any]] = {}
        self._cache_io = CacheIOTracker(self.stats, prefix="result_cache")
        self._load(self._cache_io.load_json(self.cache_path))

    def _load(self, raw: dict[str, Any]) -> None:
        skipped = 0
        for k, v in raw.items():
            if (
                isinstance(v, dict)
                and isinstance(v.get("data"), dict)
                and isinstance(v.get("timestamp"), (int, float))
            ):
                self._entries[str(k)] = {"data": v["data"], "timestamp": int(v["timestamp"])}
            else:
                skipped += 1
        if skipped:
            logging.warning(f"HLTB result cache: ignored {skipped} malformed entries")

    def _save(self) -> None:
        self._cache_io.save_json(dict(self._entries), self.cache_path)

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _to_cached(self, entry: dict[str, Any]) -> CachedResult:
        game = ResolvedGame.from_cache_data(entry["data"])
        written = int(entry["timestamp"])
        age_s = (self._now_ms() - written) / 1000.0
        return CachedResult(
            game=game,
            written_at_ms=written,
            is_stale=(not game.found) or age_s > self.ttl_s,
        )

    def get(self, app_id: int) -> CachedResult | None:
        with self._lock:
            entry = self._entries.get(str(app_id))
            if entry is None:
                self.stats["miss"] += 1
                return None
            cached = self._to_cached(entry)
            self.stats["stale_hit" if cached.is_stale else "hit"] += 1
            return cached

    def put(self, app_id: int, game: ResolvedGame) -> None:
        entry = {"data": game.to_cache_data(), "timestamp": self._now_ms()}
        with self._lock:
            self._entries[str(app_id)] = entry
            self.stats["writes"] += 1
            self._save()

    def clear(self) -> None:
        with self._lock:
            self._entries = {}
            self._save()

    def items(self) -> Iterator[tuple[int, CachedResult]]:
        """Snapshot of all entries, ordered by app id."""
        with self._lock:
            snapshot = [(int(k), self._to_cached(v)) for k, v in self._entries.items() if k.isdigit()]
        yield from sorted(snapshot, key=lambda kv: kv[0])

    def __len__(self) -> int:
        return len(self._entries)

    def summary(self) -> dict[str, Any]:
        with self._lock:
            timestamps = [int(v["timestamp"]) for v in self._entries.values()]
            found = sum(1 for v in self._entries.values() if v["data"].get("game_id"))
        oldest_h = None
        if timestamps:
            oldest_h = round((self._now_ms() - min(timestamps)) / 3_600_000.0, 1)
        return {
            "count": len(timestamps),
            "found": found,
            "misses": len(timestamps) - found,
            "oldest_age_hours": oldest_h,
        }

    def format_cache_stats(self) -> str:
        s = self.stats
        return (
            f"result_cache hit={s['hit']} stale={s['stale_hit']} miss={s['miss']} "
            f"writes={s['writes']}, {CacheIOTracker.format_io(s, prefix='result_cache')}"
        )
