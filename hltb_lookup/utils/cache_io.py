from __future__ import annotations

import json
import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ..config import CACHE


def load_json_cache(path: str | Path) -> dict[str, Any]:
    p = Path(path)
    if not p.exists():
        return {}
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logging.warning(f"[CACHE] Ignoring unreadable cache file '{p.name}': {e}")
        return {}
    return data if isinstance(data, dict) else {}


def save_json_cache(cache: dict[str, Any], path: str | Path) -> None:
    """Write the whole blob to a temp file and swap it in, so readers never see half a file."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    tmp = p.with_name(p.name + ".tmp")
    tmp.write_text(json.dumps(cache, ensure_ascii=False, indent=2), encoding="utf-8")
    os.replace(tmp, p)


@dataclass
class CacheIOTracker:
    """Write-through JSON cache file IO, with load/save counts and timings."""

    stats: dict[str, Any]
    prefix: str = "cache"

    def __post_init__(self) -> None:
        self.stats.setdefault(f"{self.prefix}_load_count", 0)
        self.stats.setdefault(f"{self.prefix}_load_ms", 0)
        self.stats.setdefault(f"{self.prefix}_save_count", 0)
        self.stats.setdefault(f"{self.prefix}_save_ms", 0)

    def _add(self, key: str, amount: int) -> None:
        k = f"{self.prefix}_{key}"
        self.stats[k] = int(self.stats.get(k, 0) or 0) + amount

    def load_json(self, path: str | Path) -> dict[str, Any]:
        t0 = time.perf_counter()
        raw = load_json_cache(path)
        self._add("load_count", 1)
        self._add("load_ms", int(round((time.perf_counter() - t0) * 1000.0)))
        return raw

    def save_json(self, cache: dict[str, Any], path: str | Path) -> None:
        path = Path(path)
        t0 = time.perf_counter()
        try:
            save_json_cache(cache, path)
        except OSError as e:
            # A cache that cannot be persisted still works in memory for this process.
            logging.warning(f"[CACHE] Could not write '{path.name}': {e}")
            return
        dur_ms = int(round((time.perf_counter() - t0) * 1000.0))
        self._add("save_count", 1)
        self._add("save_ms", dur_ms)

        slow_ms = int(CACHE.slow_save_log_ms or 0)
        if slow_ms > 0 and dur_ms >= slow_ms:
            logging.info(f"[CACHE] Wrote '{path.name}' in {dur_ms}ms")

    @staticmethod
    def format_io(stats: dict[str, Any] | None, *, prefix: str = "cache") -> str:
        if not stats:
            return f"{prefix} load_ms=0 saves=0 save_ms=0"
        load_ms = int(stats.get(f"{prefix}_load_ms", 0) or 0)
        save_count = int(stats.get(f"{prefix}_save_count", 0) or 0)
        save_ms = int(stats.get(f"{prefix}_save_ms", 0) or 0)
        return f"{prefix} load_ms={load_ms} saves={save_count} save_ms={save_ms}"
