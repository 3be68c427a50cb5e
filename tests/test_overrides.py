from __future__ import annotations

import pytest


def test_bundled_table_loads_and_is_sorted():
    from hltb_lookup.overrides import load_overrides

    table = load_overrides()
    assert table.get(1004640) == "Final Fantasy Tactics: The Ivalice Chronicles"
    assert table.get(1) is None
    assert list(table.entries) == sorted(table.entries)


def test_table_from_file(tmp_path):
    from hltb_lookup.overrides import load_overrides

    p = tmp_path / "fixes.yaml"
    p.write_text("- app_id: 10\n  name: Counter-Strike\n- app_id: 20\n  name: ' TFC '\n", encoding="utf-8")
    table = load_overrides(p)
    assert table.entries == {10: "Counter-Strike", 20: "TFC"}
    assert 10 in table
    assert len(table) == 2


@pytest.mark.parametrize(
    ("raw", "message"),
    [
        ({"10": "x"}, "expected a list"),
        ([{"app_id": 20, "name": "b"}, {"app_id": 10, "name": "a"}], "out of order"),
        ([{"app_id": 10, "name": "a"}, {"app_id": 10, "name": "b"}], "duplicate"),
        ([{"app_id": 10, "name": "  "}], "empty name"),
        ([{"app_id": "10", "name": "a"}], "invalid app_id"),
        (["10: a"], "not a mapping"),
    ],
)
def test_malformed_tables_are_configuration_errors(raw, message):
    from hltb_lookup.overrides import parse_override_entries

    with pytest.raises(ValueError, match=message):
        parse_override_entries(raw)


def test_missing_file_raises(tmp_path):
    from hltb_lookup.overrides import load_overrides

    with pytest.raises(FileNotFoundError):
        load_overrides(tmp_path / "nope.yaml")
