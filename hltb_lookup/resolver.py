from __future__ import annotations

import logging

from .clients.errors import HLTBError, NoIdentityFound
from .clients.hltb_client import HLTBClient
from .clients.steam_client import SteamClient
from .models import CatalogRecord, Fetched, ResolvedGame
from .overrides import OverrideTable
from .utils.matching import MatchCandidate, select_best_match
from .utils.names import NameQuery


class Resolver:
    """
    The two lookup paths for a Steam app id.

    - `resolve_by_id`: a known HLTB id, fetched directly (no matching involved)
    - `resolve_by_name`: override title or store name, searched and matched

    Both return `Fetched[ResolvedGame]`: `ok` with a record, `miss` with only the searched name,
    or a failure when HLTB (or the name sources) could not be asked.
    """

    def __init__(
        self,
        hltb: HLTBClient,
        steam: SteamClient,
        overrides: OverrideTable | None = None,
        *,
        verify_ties: bool = True,
    ):
        self.hltb = hltb
        self.steam = steam
        self.overrides = overrides or OverrideTable()
        self.verify_ties = verify_ties

    def resolve_by_id(self, catalog_id: int, storefront_id: int) -> Fetched:
        fetched = self.hltb.fetch_game_by_id(catalog_id)
        if fetched.is_ok:
            record: CatalogRecord = fetched.value
            logging.info(
                f"[{storefront_id}] HLTB id {catalog_id}: '{record.title}' main={record.main_hours}h"
            )
            return Fetched.ok(ResolvedGame(searched_name=record.title, record=record))
        if fetched.is_miss:
            logging.info(f"[{storefront_id}] HLTB has no data for id {catalog_id}")
            return Fetched.miss(fetched.error, value=ResolvedGame())
        logging.warning(f"[{storefront_id}] HLTB fetch for id {catalog_id} failed: {fetched.reason}")
        return fetched

    def resolve_by_name(self, storefront_id: int) -> Fetched:
        override = self.overrides.get(storefront_id)
        if override:
            logging.info(f"[{storefront_id}] Using name override: '{override}'")
            queries = [override]
        else:
            name = self.steam.get_app_name(storefront_id)
            if not name.is_ok:
                logging.warning(f"[{storefront_id}] Could not get the store name: {name.reason}")
                return Fetched.failed(
                    name.error or NoIdentityFound(f"No store name for app {storefront_id}")
                )
            query = NameQuery.from_raw(name.value)
            logging.info(
                f"[{storefront_id}] Store name '{query.raw_name}' -> '{query.sanitized_name}'"
            )
            queries = query.variants()

        return self._search_variants(storefront_id, queries)

    def _search_variants(self, storefront_id: int, queries: list[str]) -> Fetched:
        """
        Search each query in order, keeping the closest match.

        An exact match ends the fold immediately; ties keep the earlier query. A miss is only
        reported when every search actually answered.
        """
        best: MatchCandidate | None = None
        best_query = ""
        failure: HLTBError | None = None

        for q in queries:
            results = self.hltb.search(q)
            if not results.is_ok:
                if not results.is_miss:
                    failure = results.error
                logging.debug(f"[{storefront_id}] search '{q}': {results.reason}")
                continue

            match = select_best_match(
                q,
                results.value,
                verify=(lambda r: self._verify(r, storefront_id)) if self.verify_ties else None,
            )
            if match is None:
                continue
            if best is None or match.score < best.score:
                best, best_query = match, q
            if match.is_exact:
                break

        if best is not None and best.record is not None:
            logging.info(
                f"[{storefront_id}] Matched '{best_query}' -> '{best.title}' "
                f"(id={best.catalog_id}, distance={best.score})"
            )
            return Fetched.ok(ResolvedGame(searched_name=best_query, record=best.record))

        if failure is not None:
            return Fetched.failed(failure)

        searched = queries[0] if queries else ""
        logging.info(f"[{storefront_id}] No HLTB match for '{searched}'")
        return Fetched.miss(
            NoIdentityFound(f"No match for '{searched}'"),
            value=ResolvedGame(searched_name=searched),
        )

    def _verify(self, record: CatalogRecord, storefront_id: int) -> bool:
        """Check that a candidate's HLTB entry points back at this Steam app."""
        if record.steam_app_id is not None:
            return record.steam_app_id == storefront_id
        fetched = self.hltb.fetch_game_by_id(record.catalog_id)
        return fetched.is_ok and fetched.value.steam_app_id == storefront_id
