"""
API clients for HowLongToBeat and Steam name sources.

Client classes are loaded lazily: `hltb_lookup.models` imports the error taxonomy from this
package, and the clients themselves import the models.
"""

from __future__ import annotations

from typing import Any

__all__ = ["EndpointManager", "HLTBClient", "HTTPClient", "SteamClient"]


def __getattr__(name: str) -> Any:  # pragma: no cover
    if name == "HLTBClient":
        from .hltb_client import HLTBClient

        return HLTBClient
    if name == "EndpointManager":
        from .hltb_session import EndpointManager

        return EndpointManager
    if name == "HTTPClient":
        from .http_client import HTTPClient

        return HTTPClient
    if name == "SteamClient":
        from .steam_client import SteamClient

        return SteamClient
    raise AttributeError(name)
