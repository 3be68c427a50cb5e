from __future__ import annotations

import json


def _ids(*pairs):
    from hltb_lookup.models import ExternalIdentity

    return [ExternalIdentity(storefront_id=s, catalog_id=c) for s, c in pairs]


def _cache(tmp_path, clock, refresh="max_age", max_age_s=7 * 86400.0):
    from hltb_lookup.caches.id_cache import IdCache, IdCachePolicy

    return IdCache(
        tmp_path / "hltb_id_cache.json",
        policy=IdCachePolicy(refresh=refresh, max_age_s=max_age_s),
        clock=clock,
    )


def test_reconcile_replaces_content_and_persists_blob(tmp_path, clock):
    from hltb_lookup.caches.id_cache import reconcile

    cache = _cache(tmp_path, clock)
    assert reconcile(cache, _ids((620, 7231), (400, 7230), (10, None)), "user-a")
    assert cache.get(620, "user-a") == 7231
    assert cache.get(10, "user-a") is None

    blob = json.loads((tmp_path / "hltb_id_cache.json").read_text(encoding="utf-8"))
    assert blob["mappings"] == {"400": 7230, "620": 7231}
    assert blob["metadata"] == {"timestamp": int(clock.now * 1000), "ownerUserId": "user-a"}

    # Whole replacement, not a merge.
    assert reconcile(cache, _ids((70, 1)), "user-a")
    assert cache.get(620, "user-a") is None
    assert cache.get(70, "user-a") == 1


def test_empty_import_leaves_valid_cache_unchanged(tmp_path, clock):
    from hltb_lookup.caches.id_cache import reconcile

    cache = _cache(tmp_path, clock)
    reconcile(cache, _ids((620, 7231)), "user-a")
    before = (tmp_path / "hltb_id_cache.json").read_text(encoding="utf-8")

    clock.advance(60)
    assert reconcile(cache, [], "user-a") is False
    assert reconcile(cache, _ids((1, None)), "user-a") is False
    assert cache.get(620, "user-a") == 7231
    assert cache.is_valid_for("user-a")
    assert (tmp_path / "hltb_id_cache.json").read_text(encoding="utf-8") == before


def test_mappings_belong_to_their_owner(tmp_path, clock):
    from hltb_lookup.caches.id_cache import reconcile

    cache = _cache(tmp_path, clock)
    reconcile(cache, _ids((620, 7231)), "user-a")

    assert cache.get(620, "user-b") is None
    assert cache.get(620, None) is None
    assert not cache.is_valid_for("user-b")
    assert cache.needs_refresh("user-b")


def test_max_age_policy_expires_mapping(tmp_path, clock):
    from hltb_lookup.caches.id_cache import reconcile

    cache = _cache(tmp_path, clock, max_age_s=3600.0)
    assert cache.needs_refresh("user-a")
    reconcile(cache, _ids((620, 7231)), "user-a")
    assert not cache.needs_refresh("user-a")

    assert cache.get(620, "user-a") == 7231

    clock.advance(3601)
    assert not cache.is_valid_for("user-a")
    assert cache.needs_refresh("user-a")
    assert cache.get(620, "user-a") is None
    assert cache.stats["expired"] == 1


def test_every_session_policy_imports_once_per_process(tmp_path, clock):
    from hltb_lookup.caches.id_cache import reconcile

    cache = _cache(tmp_path, clock)
    reconcile(cache, _ids((620, 7231)), "user-a")

    reloaded = _cache(tmp_path, clock, refresh="every_session")
    # Fresh on disk, but this process has not imported yet.
    assert reloaded.get(620, "user-a") == 7231
    assert reloaded.needs_refresh("user-a")

    reloaded.mark_imported("user-a")
    clock.advance(30 * 86400)
    assert not reloaded.needs_refresh("user-a")


def test_unknown_policy_is_rejected():
    import pytest

    from hltb_lookup.caches.id_cache import IdCachePolicy

    with pytest.raises(ValueError):
        IdCachePolicy(refresh="hourly")


def test_incompatible_file_is_ignored(tmp_path, clock):
    (tmp_path / "hltb_id_cache.json").write_text('{"620": 7231}', encoding="utf-8")
    cache = _cache(tmp_path, clock)
    assert len(cache) == 0
    assert cache.summary()["owner"] == ""


def test_clear_forgets_everything(tmp_path, clock):
    from hltb_lookup.caches.id_cache import reconcile

    cache = _cache(tmp_path, clock)
    reconcile(cache, _ids((620, 7231)), "user-a")
    cache.clear()
    assert len(cache) == 0
    assert cache.get(620, "user-a") is None
    assert _cache(tmp_path, clock).summary()["count"] == 0
