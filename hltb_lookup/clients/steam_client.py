from __future__ import annotations

from typing import Any

from ..models import Fetched
from ..utils.strategies import first_found
from .errors import HLTBError, MalformedResponse, NoIdentityFound
from .http_client import HTTPClient
from .parse import as_str

STEAM_APPDETAILS_URL = "https://store.steampowered.com/api/appdetails"
STEAMHUNTERS_APP_URL = "https://steamhunters.com/api/apps/{app_id}"


class SteamClient:
    """
    Look up a game's store title by Steam app id.

    The Steam store API is the primary source; SteamHunters covers delisted apps and the
    occasional appdetails outage.
    """

    def __init__(self, http: HTTPClient | None = None):
        self.stats: dict[str, int] = {
            "name_steam": 0,
            "name_steamhunters": 0,
            "name_missing": 0,
            "http_appdetails": 0,
            "http_steamhunters": 0,
        }
        self.http = http if http is not None else HTTPClient()
        if self.http.stats is None:
            self.http.stats = self.stats

    def get_app_name_from_store(self, app_id: int) -> Fetched:
        try:
            data = self.http.get_json(
                STEAM_APPDETAILS_URL,
                params={"appids": str(app_id), "filters": "basic"},
                counter_key="http_appdetails",
                context=f"Steam appdetails {app_id}",
            )
        except HLTBError as e:
            return Fetched.from_error(e)

        entry: Any = data.get(str(app_id)) if isinstance(data, dict) else None
        if not isinstance(entry, dict):
            return Fetched.malformed(MalformedResponse("Unexpected appdetails structure"))
        if not entry.get("success"):
            return Fetched.miss(NoIdentityFound(f"Steam has no details for app {app_id}"))
        name = as_str((entry.get("data") or {}).get("name"))
        if not name:
            return Fetched.miss(NoIdentityFound(f"Steam app {app_id} has no name"))
        self.stats["name_steam"] += 1
        return Fetched.ok(name)

    def get_app_name_from_steamhunters(self, app_id: int) -> Fetched:
        try:
            data = self.http.get_json(
                STEAMHUNTERS_APP_URL.format(app_id=app_id),
                counter_key="http_steamhunters",
                context=f"SteamHunters app {app_id}",
            )
        except HLTBError as e:
            return Fetched.from_error(e)

        if not isinstance(data, dict):
            return Fetched.malformed(MalformedResponse("Unexpected SteamHunters structure"))
        name = as_str(data.get("name"))
        if not name:
            return Fetched.miss(NoIdentityFound(f"SteamHunters has no name for app {app_id}"))
        self.stats["name_steamhunters"] += 1
        return Fetched.ok(name)

    def get_app_name(self, app_id: int) -> Fetched:
        """Return the app's store title, trying each source in order."""
        outcome = first_found(
            [
                ("Steam appdetails", self.get_app_name_from_store),
                ("SteamHunters", self.get_app_name_from_steamhunters),
            ],
            app_id,
        )
        if not outcome.is_ok:
            self.stats["name_missing"] += 1
        return outcome
