from __future__ import annotations

from typing import Any


def as_str(value: object) -> str:
    if value is None:
        return ""
    return str(value).strip()


def as_int(value: object) -> int | None:
    """
    Strict numeric conversion.

    - Accepts: int, integral float
    - Rejects: bool, strings (even if numeric)
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    return None


def parse_int_text(value: object) -> int | None:
    """
    Parse an integer from provider fields that may be numbers or numeric strings.

    Steam and SteamHunters return app ids as strings in some payloads and as numbers in others.
    """
    n = as_int(value)
    if n is not None:
        return n
    if not isinstance(value, str):
        return None
    s = value.strip()
    if s.isdigit():
        return int(s)
    return None


def seconds_to_hours(value: object) -> float:
    """
    Convert an HLTB duration (seconds) into hours, rounded to one decimal.

    Missing, negative or non-numeric values become 0.0, which means "no data".
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if not isinstance(value, (int, float)):
        return 0.0
    if value <= 0:
        return 0.0
    return round(float(value) / 3600.0, 1)


def get_list_of_dicts(value: Any) -> list[dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, dict)]
