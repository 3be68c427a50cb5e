from __future__ import annotations

import logging
from typing import Callable, Iterable, TypeVar

from ..models import Fetched

T = TypeVar("T")


def first_found(
    strategies: Iterable[tuple[str, Callable[[T], Fetched]]],
    arg: T,
) -> Fetched:
    """
    Run named strategies in order and return the first `ok` outcome.

    When every strategy comes up empty, return the last failure if there was one (so callers can
    tell "nobody could answer" from "everybody answered no"), otherwise the last miss.
    """
    last_miss: Fetched | None = None
    last_failure: Fetched | None = None
    for name, strategy in strategies:
        outcome = strategy(arg)
        if outcome.is_ok:
            return outcome
        logging.debug(f"{name}: {outcome.reason}")
        if outcome.is_miss:
            last_miss = outcome
        else:
            last_failure = outcome
    if last_failure is not None:
        return last_failure
    return last_miss or Fetched.miss()
