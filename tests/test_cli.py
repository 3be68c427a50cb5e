from __future__ import annotations

import json


def test_export_writes_cached_outcomes(tmp_path, clock):
    import pandas as pd

    from hltb_lookup.caches.result_cache import ResultCache
    from hltb_lookup.cli import export_results
    from hltb_lookup.models import CatalogRecord, ResolvedGame

    cache = ResultCache(tmp_path / "results.json", clock=clock)
    cache.put(
        1145360,
        ResolvedGame(
            searched_name="Hades",
            record=CatalogRecord(68151, "Hades", main_hours=22.5, main_plus_extras_hours=48.0),
        ),
    )
    cache.put(42, ResolvedGame(searched_name="Obscure Game"))

    out = tmp_path / "out" / "export.csv"
    assert export_results(cache, out) == 2

    df = pd.read_csv(out, dtype=str, keep_default_na=False)
    assert list(df["Steam_AppID"]) == ["42", "1145360"]
    hades = df[df["Steam_AppID"] == "1145360"].iloc[0]
    assert hades["HLTB_ID"] == "68151"
    assert hades["HLTB_Main"] == "22.5"
    assert hades["HLTB_Extra"] == "48.0"
    assert hades["HLTB_Completionist"] == ""
    assert hades["Stale"] == ""
    miss = df[df["Steam_AppID"] == "42"].iloc[0]
    assert miss["HLTB_ID"] == ""
    assert miss["HLTB_Query"] == "Obscure Game"
    assert miss["Stale"] == "yes"


def test_stats_and_clear_cache_commands(tmp_path, capsys):
    from hltb_lookup.cli import main

    main(["stats", "--cache-dir", str(tmp_path)])
    stats = json.loads(capsys.readouterr().out)
    assert stats["results"]["count"] == 0
    assert stats["ids"]["count"] == 0
    assert stats["ids"]["policy"] == "max_age"

    main(["clear-cache", "--cache-dir", str(tmp_path)])
    assert "caches cleared" in capsys.readouterr().out


def test_batch_rejects_csv_without_app_id_column(tmp_path):
    import pytest

    from hltb_lookup.cli import main

    src = tmp_path / "games.csv"
    src.write_text("Name\nHades\n", encoding="utf-8")
    with pytest.raises(SystemExit):
        main(["batch", str(src), "--cache-dir", str(tmp_path)])
