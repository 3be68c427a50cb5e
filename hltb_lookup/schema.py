from __future__ import annotations

from typing import Any

# -----------------------------------------------------------------------------
# CSV schema / column sets
# -----------------------------------------------------------------------------

# Input column identifying the game.
STEAM_APPID_COL = "Steam_AppID"

# Columns filled by `batch` and written by `export`.
HLTB_COLS: dict[str, Any] = {
    "HLTB_ID": "",
    "HLTB_Name": "",
    "HLTB_Main": "",
    "HLTB_Extra": "",
    "HLTB_Completionist": "",
    # The name searched for, kept for misses so they can be looked up by hand.
    "HLTB_Query": "",
}

EXPORT_COLS = (STEAM_APPID_COL, *HLTB_COLS, "Cached_At", "Stale")
