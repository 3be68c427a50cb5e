from __future__ import annotations

import csv
from pathlib import Path

import pandas as pd


def test_write_csv_does_not_emit_nan_tokens(tmp_path: Path) -> None:
    from hltb_lookup.utils.csv_io import write_csv

    df = pd.DataFrame(
        [
            {"Steam_AppID": "620", "HLTB_Main": float("nan"), "HLTB_Query": pd.NA},
            {"Steam_AppID": "400", "HLTB_Main": None, "HLTB_Query": ""},
        ]
    )
    out = tmp_path / "nested" / "out.csv"
    write_csv(df, out)

    with out.open("r", encoding="utf-8", newline="") as f:
        rows = list(csv.reader(f))

    assert rows[0] == ["Steam_AppID", "HLTB_Main", "HLTB_Query"]
    for row in rows:
        for cell in row:
            assert cell.strip().casefold() != "nan"


def test_read_csv_keeps_ids_as_strings(tmp_path: Path) -> None:
    from hltb_lookup.schema import HLTB_COLS
    from hltb_lookup.utils.csv_io import ensure_columns, format_hours, read_csv

    p = tmp_path / "in.csv"
    p.write_text("Steam_AppID,Name\n0620,Portal 2\n,Unknown\n", encoding="utf-8")
    df = ensure_columns(read_csv(p), HLTB_COLS)

    assert list(df["Steam_AppID"]) == ["0620", ""]
    assert set(HLTB_COLS) <= set(df.columns)
    assert format_hours(0.0) == ""
    assert format_hours(12.34) == "12.3"
