from __future__ import annotations

from pathlib import Path

import pytest


def test_defaults_without_a_file(tmp_path):
    from hltb_lookup.config import CACHE, load_settings

    settings = load_settings(cache_dir=tmp_path)
    assert settings.cache_dir == tmp_path
    assert settings.steam_user_id == ""
    assert settings.result_ttl_s == CACHE.result_ttl_s
    assert settings.id_refresh == "max_age"
    assert settings.id_cache_path == tmp_path / "hltb_id_cache.json"
    assert settings.result_cache_path == tmp_path / "hltb_result_cache.json"


def test_yaml_settings(tmp_path):
    from hltb_lookup.config import load_settings

    p = tmp_path / "settings.yaml"
    p.write_text(
        "cache_dir: ./cache\n"
        "steam_user_id: 76561197960287930\n"
        "result_ttl_hours: 12\n"
        "id_refresh: every_session\n"
        "id_max_age_days: 1\n"
        "overrides: ./fixes.yaml\n",
        encoding="utf-8",
    )
    settings = load_settings(p)
    assert settings.cache_dir == Path("./cache")
    assert settings.steam_user_id == "76561197960287930"
    assert settings.result_ttl_s == 12 * 3600.0
    assert settings.id_refresh == "every_session"
    assert settings.id_max_age_s == 86400.0
    assert settings.overrides_path == Path("./fixes.yaml")

    assert load_settings(p, cache_dir=tmp_path / "other").cache_dir == tmp_path / "other"


@pytest.mark.parametrize(
    "body",
    ["id_refresh: hourly\n", "result_ttl_hours: soon\n", "result_ttl_hours: 0\n", "- a\n- b\n"],
)
def test_bad_settings_are_rejected(tmp_path, body):
    from hltb_lookup.config import load_settings

    p = tmp_path / "settings.yaml"
    p.write_text(body, encoding="utf-8")
    with pytest.raises(ValueError):
        load_settings(p)


def test_missing_settings_file(tmp_path):
    from hltb_lookup.config import load_settings

    with pytest.raises(FileNotFoundError):
        load_settings(tmp_path / "missing.yaml")
