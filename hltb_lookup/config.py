from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

ID_REFRESH_MAX_AGE = "max_age"
ID_REFRESH_EVERY_SESSION = "every_session"
ID_REFRESH_POLICIES = {ID_REFRESH_MAX_AGE, ID_REFRESH_EVERY_SESSION}


@dataclass(frozen=True)
class RequestConfig:
    timeout_s: float = 10.0
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
    )


@dataclass(frozen=True)
class HLTBConfig:
    base_url: str = "https://howlongtobeat.com/"
    # Used when the search path cannot be discovered from the site's script bundles.
    fallback_search_path: str = "search"
    # Auth tokens are short-lived; re-fetch once older than this.
    token_ttl_s: float = 300.0
    search_page_size: int = 20
    steam_import_path: str = "api/steam/getSteamImportData"


@dataclass(frozen=True)
class MatchingConfig:
    # Accept a fuzzy match when distance <= max(min_distance, ratio * longer title length).
    min_distance: int = 5
    distance_ratio: float = 0.2


@dataclass(frozen=True)
class CacheConfig:
    result_ttl_s: float = 24 * 3600.0
    id_max_age_s: float = 7 * 24 * 3600.0
    id_refresh: str = ID_REFRESH_MAX_AGE
    # Log cache writes that take longer than this threshold (milliseconds).
    slow_save_log_ms: int = 2000


@dataclass(frozen=True)
class RefreshConfig:
    max_workers: int = 2


REQUEST = RequestConfig()
HLTB = HLTBConfig()
MATCHING = MatchingConfig()
CACHE = CacheConfig()
REFRESH = RefreshConfig()


@dataclass(frozen=True)
class Settings:
    """
    User-facing settings, usually loaded from a YAML file.

    Only the knobs that legitimately differ between deployments live here; protocol constants
    stay in the config groups above.
    """

    cache_dir: Path
    steam_user_id: str = ""
    result_ttl_s: float = CACHE.result_ttl_s
    id_refresh: str = CACHE.id_refresh
    id_max_age_s: float = CACHE.id_max_age_s
    overrides_path: Path | None = None

    def __post_init__(self) -> None:
        if self.id_refresh not in ID_REFRESH_POLICIES:
            raise ValueError(
                f"Unknown id_refresh policy {self.id_refresh!r}; "
                f"expected one of: {', '.join(sorted(ID_REFRESH_POLICIES))}"
            )
        if self.result_ttl_s <= 0:
            raise ValueError("result_ttl_hours must be > 0")
        if self.id_max_age_s <= 0:
            raise ValueError("id_max_age_days must be > 0")

    @property
    def id_cache_path(self) -> Path:
        return self.cache_dir / "hltb_id_cache.json"

    @property
    def result_cache_path(self) -> Path:
        return self.cache_dir / "hltb_result_cache.json"


def default_cache_dir() -> Path:
    return Path.home() / ".cache" / "hltb-lookup"


def load_settings(
    path: str | Path | None = None,
    *,
    cache_dir: str | Path | None = None,
) -> Settings:
    """
    Load settings from a YAML file (all keys optional).

    Example:
        cache_dir: ~/.cache/hltb-lookup
        steam_user_id: "76561197960287930"
        result_ttl_hours: 24
        id_refresh: max_age        # or: every_session
        id_max_age_days: 7
        overrides: ./my_name_fixes.yaml

    `cache_dir` (when given) wins over the file value.
    """
    raw: dict[str, Any] = {}
    if path is not None:
        p = Path(path)
        if not p.exists():
            raise FileNotFoundError(f"Settings file not found: {p}")
        with open(p, encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
        if not isinstance(loaded, dict):
            raise ValueError(f"Settings file must contain a mapping: {p}")
        raw = loaded

    def _path(value: Any) -> Path | None:
        s = str(value or "").strip()
        return Path(s).expanduser() if s else None

    resolved_cache_dir = (
        _path(cache_dir) or _path(raw.get("cache_dir")) or default_cache_dir()
    )
    try:
        result_ttl_s = float(raw.get("result_ttl_hours", CACHE.result_ttl_s / 3600.0)) * 3600.0
        id_max_age_s = float(raw.get("id_max_age_days", CACHE.id_max_age_s / 86400.0)) * 86400.0
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid numeric setting: {e}") from e

    return Settings(
        cache_dir=resolved_cache_dir,
        steam_user_id=str(raw.get("steam_user_id", "") or "").strip(),
        result_ttl_s=result_ttl_s,
        id_refresh=str(raw.get("id_refresh", CACHE.id_refresh) or "").strip(),
        id_max_age_s=id_max_age_s,
        overrides_path=_path(raw.get("overrides")),
    )
