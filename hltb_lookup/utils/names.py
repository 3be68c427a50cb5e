from __future__ import annotations

import math
import re
from dataclasses import dataclass

from rapidfuzz.distance import Levenshtein

from ..config import MATCHING

# ----------------------------
# sanitize
# ----------------------------

# Replaced with a space so "Velocity®Ultra" keeps its word boundary.
_SYMBOL_PATTERN = re.compile(r"[™®©℠]|\((?:TM|R|C)\)", re.IGNORECASE)
_SUPERSCRIPT_MAP = str.maketrans("⁰¹²³⁴⁵⁶⁷⁸⁹", "0123456789")
_QUOTE_MAP = str.maketrans({"`": "'", "‘": "'", "’": "'", "“": '"', "”": '"'})
_DECORATIVE_PATTERN = re.compile(r"[∞★☆♥♡†‡•]")
_SPACE_BEFORE_PUNCT = re.compile(r"\s+([:,!?])")


def sanitize(name: str) -> str:
    """
    Strip decorative glyphs that differ between Steam and HLTB without changing identity.

    "Dark Souls™: Prepare to Die Edition" -> "Dark Souls: Prepare to Die Edition"
    """
    s = _SYMBOL_PATTERN.sub(" ", str(name or ""))
    s = s.translate(_SUPERSCRIPT_MAP).translate(_QUOTE_MAP)
    s = _DECORATIVE_PATTERN.sub("", s)
    s = re.sub(r"\s+", " ", s).strip()
    return _SPACE_BEFORE_PUNCT.sub(r"\1", s)


# ----------------------------
# simplify
# ----------------------------

# A colon, or a spaced hyphen ("Half-Life" is not a separator).
_SEP = r"(?:\s*:\s*|\s+-\s*)"
_EDITION_WORDS = (
    r"Enhanced|Complete|Definitive|Ultimate|Special|Legacy|Maximum|Deluxe|Premium|Gold|"
    r"Platinum|Steam|Collector'?s|Anniversary|GOTY|Game\s+of\s+the\s+Year"
)

# Release years, only stripped in parentheses ("Tomb Raider (2013)").
_YEAR = r"(?:19\d\d|20[0-3]\d)"

# Applied in order, repeatedly, until the name stops changing (handles stacked suffixes).
_EDITION_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\s+\d+(?:st|nd|rd|th)\s+Anniversary\s+Edition$", re.IGNORECASE),
    re.compile(rf"(?:{_SEP}|\s+)(?:{_EDITION_WORDS})\s+Edition$", re.IGNORECASE),
    # Any subtitle ending in "Edition": "Dark Souls: Prepare to Die Edition"
    re.compile(rf"{_SEP}[^:-]*\bEdition$", re.IGNORECASE),
    re.compile(rf"(?:{_SEP}|\s+)(?:GOTY|Game\s+of\s+the\s+Year)$", re.IGNORECASE),
    re.compile(rf"(?:{_SEP}|\s+)Remaster(?:ed)?$", re.IGNORECASE),
    re.compile(r"\s+\(\d*D\s*Remake\)$", re.IGNORECASE),
    re.compile(rf"(?:{_SEP}|\s+)Remake$", re.IGNORECASE),
    re.compile(rf"(?:{_SEP}|\s+)Director'?s\s+Cut$", re.IGNORECASE),
    re.compile(rf"(?:{_SEP}|\s+)(?:Classic|HD|Redux|Reloaded|Enhanced)$", re.IGNORECASE),
    re.compile(r"\s+\((?:Classic|Legacy)\)$", re.IGNORECASE),
    re.compile(rf"(?:{_SEP}|\s+)Single\s+Player$", re.IGNORECASE),
    re.compile(rf"\s+\({_YEAR}\)$"),
    # Leftover separator after stripping
    re.compile(r"\s*[-:]\s*$"),
)


def simplify(sanitized_name: str) -> str:
    """
    Strip edition/remaster qualifiers and parenthesised years from an already sanitized name.

    Only removes content: the result is never longer than the input, and a name that would
    simplify to nothing is returned unchanged.
    """
    original = str(sanitized_name or "").strip()
    name = re.sub(r"\s*[–—]\s*", " - ", original)

    prev = ""
    while prev != name:
        prev = name
        for pattern in _EDITION_PATTERNS:
            name = pattern.sub("", name).strip()

    name = re.sub(r"\s+", " ", name).strip()
    if not name or len(name) > len(original):
        return original
    return name


# ----------------------------
# Edit distance
# ----------------------------


def edit_distance(a: str, b: str) -> int:
    """Case-insensitive Levenshtein distance."""
    return int(Levenshtein.distance(str(a or "").lower(), str(b or "").lower()))


def distance_threshold(a: str, b: str) -> int:
    """Largest distance still accepted as a match between `a` and `b`."""
    longer = max(len(a or ""), len(b or ""))
    return max(MATCHING.min_distance, math.floor(MATCHING.distance_ratio * longer))


@dataclass(frozen=True)
class NameQuery:
    raw_name: str
    sanitized_name: str
    simplified_name: str

    @staticmethod
    def from_raw(raw_name: str) -> NameQuery:
        sanitized = sanitize(raw_name)
        return NameQuery(
            raw_name=str(raw_name or ""),
            sanitized_name=sanitized,
            simplified_name=simplify(sanitized),
        )

    def variants(self) -> list[str]:
        """Search queries to try, most faithful first."""
        out: list[str] = []
        for v in (self.sanitized_name, self.simplified_name):
            if v and v not in out:
                out.append(v)
        return out
