from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .clients.errors import HLTBError, MalformedResponse
from .clients.parse import as_int, as_str, parse_int_text, seconds_to_hours

FETCH_OK = "ok"
FETCH_MISS = "miss"
FETCH_MALFORMED = "malformed"
FETCH_FAILED = "failed"


@dataclass(frozen=True)
class Fetched:
    """
    Tagged outcome of a single upstream operation.

    - ok: `value` holds the decoded result
    - miss: the upstream answered properly but had nothing for us (`value` may still carry
      context such as the searched name)
    - malformed: the upstream answered with an unusable body
    - failed: no usable answer (network error, non-2xx status, missing prerequisites)
    """

    kind: str
    value: Any = None
    error: HLTBError | None = None

    @classmethod
    def ok(cls, value: Any) -> Fetched:
        return cls(FETCH_OK, value=value)

    @classmethod
    def miss(cls, error: HLTBError | None = None, value: Any = None) -> Fetched:
        return cls(FETCH_MISS, value=value, error=error)

    @classmethod
    def malformed(cls, error: HLTBError) -> Fetched:
        return cls(FETCH_MALFORMED, error=error)

    @classmethod
    def failed(cls, error: HLTBError) -> Fetched:
        return cls(FETCH_FAILED, error=error)

    @classmethod
    def from_error(cls, error: HLTBError) -> Fetched:
        if isinstance(error, MalformedResponse):
            return cls.malformed(error)
        return cls.failed(error)

    @property
    def is_ok(self) -> bool:
        return self.kind == FETCH_OK

    @property
    def is_miss(self) -> bool:
        return self.kind == FETCH_MISS

    @property
    def reason(self) -> str:
        if self.error is None:
            return self.kind
        return f"{type(self.error).__name__}: {self.error}"


@dataclass(frozen=True)
class CatalogRecord:
    """HLTB completion times for one game. Hours of 0.0 mean "no data"."""

    catalog_id: int
    title: str
    main_hours: float = 0.0
    main_plus_extras_hours: float = 0.0
    completionist_hours: float = 0.0
    # The Steam app id HLTB associates with this entry, when it has one.
    steam_app_id: int | None = None

    @property
    def has_times(self) -> bool:
        return any(
            h > 0 for h in (self.main_hours, self.main_plus_extras_hours, self.completionist_hours)
        )

    @staticmethod
    def from_payload(game: dict[str, Any]) -> CatalogRecord | None:
        """Decode a raw HLTB game payload (durations in seconds)."""
        if not isinstance(game, dict):
            return None
        gid = parse_int_text(game.get("game_id"))
        if gid is None or gid <= 0:
            return None
        steam_id = parse_int_text(game.get("profile_steam"))
        return CatalogRecord(
            catalog_id=gid,
            title=as_str(game.get("game_name")),
            main_hours=seconds_to_hours(game.get("comp_main")),
            main_plus_extras_hours=seconds_to_hours(game.get("comp_plus")),
            completionist_hours=seconds_to_hours(game.get("comp_100")),
            steam_app_id=steam_id if steam_id else None,
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "game_id": self.catalog_id,
            "game_name": self.title,
            "comp_main": self.main_hours,
            "comp_plus": self.main_plus_extras_hours,
            "comp_100": self.completionist_hours,
        }
        if self.steam_app_id is not None:
            out["steam_app_id"] = self.steam_app_id
        return out

    @staticmethod
    def from_dict(data: dict[str, Any]) -> CatalogRecord | None:
        """Decode a record previously written by `to_dict()` (durations in hours)."""
        if not isinstance(data, dict):
            return None
        gid = as_int(data.get("game_id"))
        if gid is None or gid <= 0:
            return None

        def _hours(key: str) -> float:
            v = data.get(key)
            if isinstance(v, bool) or not isinstance(v, (int, float)) or v < 0:
                return 0.0
            return float(v)

        return CatalogRecord(
            catalog_id=gid,
            title=as_str(data.get("game_name")),
            main_hours=_hours("comp_main"),
            main_plus_extras_hours=_hours("comp_plus"),
            completionist_hours=_hours("comp_100"),
            steam_app_id=as_int(data.get("steam_app_id")),
        )


@dataclass(frozen=True)
class ExternalIdentity:
    """A Steam app id and the HLTB id it maps to (absent when HLTB has no entry)."""

    storefront_id: int
    catalog_id: int | None = None
    title: str = ""


@dataclass(frozen=True)
class ResolvedGame:
    """
    Terminal outcome of a lookup: a record, or a confirmed miss carrying the searched name.

    A miss is still useful to the caller, which can offer "not found, search manually for X".
    """

    searched_name: str = ""
    record: CatalogRecord | None = None

    @property
    def found(self) -> bool:
        return self.record is not None

    def to_cache_data(self) -> dict[str, Any]:
        data: dict[str, Any] = self.record.to_dict() if self.record is not None else {}
        if self.searched_name:
            data["searched_name"] = self.searched_name
        return data

    @staticmethod
    def from_cache_data(data: dict[str, Any]) -> ResolvedGame:
        if not isinstance(data, dict):
            return ResolvedGame()
        return ResolvedGame(
            searched_name=as_str(data.get("searched_name")),
            record=CatalogRecord.from_dict(data),
        )
