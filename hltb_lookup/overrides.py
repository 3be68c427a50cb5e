from __future__ import annotations

from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from typing import Any

import yaml

BUNDLED_NAME_FIXES = "name_fixes.yaml"


@dataclass(frozen=True)
class OverrideTable:
    """
    Static Steam app id -> HLTB title table.

    When an app id is listed, its title is searched verbatim (no sanitize/simplify) instead of
    the Steam store name.
    """

    entries: dict[int, str] = field(default_factory=dict)

    def get(self, app_id: int) -> str | None:
        return self.entries.get(int(app_id))

    def __contains__(self, app_id: object) -> bool:
        return isinstance(app_id, int) and app_id in self.entries

    def __len__(self) -> int:
        return len(self.entries)


def parse_override_entries(raw: Any, *, source: str = "<overrides>") -> OverrideTable:
    """
    Validate and build an override table from parsed YAML.

    The table must be a list of `{app_id, name}` mappings with positive integer ids in strictly
    ascending order (so no duplicates) and non-empty names. Anything else is a configuration
    error.
    """
    if raw is None:
        return OverrideTable()
    if not isinstance(raw, list):
        raise ValueError(f"{source}: expected a list of {{app_id, name}} entries")

    entries: dict[int, str] = {}
    prev: int | None = None
    for i, item in enumerate(raw):
        if not isinstance(item, dict):
            raise ValueError(f"{source}: entry #{i} is not a mapping")
        app_id = item.get("app_id")
        name = item.get("name")
        if isinstance(app_id, bool) or not isinstance(app_id, int) or app_id <= 0:
            raise ValueError(f"{source}: entry #{i} has an invalid app_id: {app_id!r}")
        if not isinstance(name, str) or not name.strip():
            raise ValueError(f"{source}: app_id {app_id} has an empty name")
        if prev is not None and app_id == prev:
            raise ValueError(f"{source}: duplicate app_id {app_id}")
        if prev is not None and app_id < prev:
            raise ValueError(f"{source}: app_id {app_id} is out of order (after {prev})")
        entries[app_id] = name.strip()
        prev = app_id
    return OverrideTable(entries)


def load_overrides(path: str | Path | None = None) -> OverrideTable:
    """Load the override table from `path`, or the one bundled with the package."""
    if path is None:
        text = resources.files("hltb_lookup.data").joinpath(BUNDLED_NAME_FIXES).read_text(
            encoding="utf-8"
        )
        return parse_override_entries(yaml.safe_load(text), source=BUNDLED_NAME_FIXES)

    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Override table not found: {p}")
    with open(p, encoding="utf-8") as f:
        return parse_override_entries(yaml.safe_load(f), source=str(p))
