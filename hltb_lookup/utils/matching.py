from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Sequence

from ..models import CatalogRecord
from .names import distance_threshold, edit_distance


@dataclass(frozen=True)
class MatchCandidate:
    catalog_id: int
    title: str
    # Edit distance to the query (0 = exact, case-insensitive).
    score: int
    verified: bool = False
    record: CatalogRecord | None = None

    @property
    def is_exact(self) -> bool:
        return self.score == 0


def _candidate(record: CatalogRecord, score: int, *, verified: bool = False) -> MatchCandidate:
    return MatchCandidate(
        catalog_id=record.catalog_id,
        title=record.title,
        score=score,
        verified=verified,
        record=record,
    )


def select_best_match(
    query: str,
    candidates: Sequence[CatalogRecord],
    *,
    verify: Callable[[CatalogRecord], bool] | None = None,
) -> MatchCandidate | None:
    """
    Pick the search result that best matches `query`.

    Rules, first satisfied wins:
    1. A title equal to the query (case-insensitive) is returned without computing distances.
    2. The minimum edit distance wins if it is within `distance_threshold`; ties keep the
       site's relevance order (first occurrence).
    3. Otherwise there is no match.

    `verify` is an optional, expensive second signal (one request per call). It only runs when
    several candidates tie at the best accepted distance, and the first verified one wins.
    """
    if not candidates:
        return None

    q = str(query or "").strip()
    q_lower = q.lower()
    for record in candidates:
        if record.title.strip().lower() == q_lower:
            return _candidate(record, 0)

    scored = [(edit_distance(q, r.title), r) for r in candidates]
    best_score = min(score for score, _ in scored)
    tied = [
        r for score, r in scored if score == best_score and score <= distance_threshold(q, r.title)
    ]
    if not tied:
        closest = next(r for score, r in scored if score == best_score)
        logging.debug(
            f"No match for '{q}': closest '{closest.title}' at distance {best_score} "
            f"(threshold {distance_threshold(q, closest.title)})"
        )
        return None
    best = tied[0]

    if verify is not None and len(tied) > 1:
        for record in tied:
            if verify(record):
                logging.info(f"Verified '{record.title}' (id={record.catalog_id}) among {len(tied)} ties")
                return _candidate(record, best_score, verified=True)

    return _candidate(best, best_score)
