from __future__ import annotations

import requests


def _client(session):
    from hltb_lookup.clients.http_client import HTTPClient
    from hltb_lookup.clients.steam_client import SteamClient

    return SteamClient(HTTPClient(session=session))


def test_store_name_comes_from_appdetails(fake_session, fake_response):
    fake_session.add(
        "GET",
        "store.steampowered.com/api/appdetails",
        fake_response(200, {"570": {"success": True, "data": {"name": "Dota 2"}}}),
    )
    client = _client(fake_session)

    fetched = client.get_app_name(570)
    assert fetched.is_ok
    assert fetched.value == "Dota 2"
    assert fake_session.count("steamhunters") == 0
    assert client.stats["name_steam"] == 1


def test_steamhunters_is_the_fallback(fake_session, fake_response):
    fake_session.add(
        "GET", "store.steampowered.com/api/appdetails", fake_response(200, {"1": {"success": False}})
    )
    fake_session.add("GET", "steamhunters.com/api/apps/1", fake_response(200, {"name": "Delisted"}))
    client = _client(fake_session)

    fetched = client.get_app_name(1)
    assert fetched.is_ok
    assert fetched.value == "Delisted"
    assert client.stats["name_steamhunters"] == 1


def test_both_sources_down_is_a_failure_not_a_miss(fake_session):
    fake_session.add(
        "GET", "store.steampowered.com", requests.exceptions.ConnectionError("down")
    )
    fake_session.add("GET", "steamhunters.com", requests.exceptions.Timeout("slow"))
    client = _client(fake_session)

    fetched = client.get_app_name(2)
    assert fetched.kind == "failed"
    assert client.stats["name_missing"] == 1


def test_both_sources_without_name_is_a_miss(fake_session, fake_response):
    fake_session.add(
        "GET", "store.steampowered.com", fake_response(200, {"3": {"success": True, "data": {}}})
    )
    fake_session.add("GET", "steamhunters.com", fake_response(200, {"name": ""}))
    client = _client(fake_session)

    assert client.get_app_name(3).is_miss


def test_first_found_short_circuits():
    from hltb_lookup.models import Fetched
    from hltb_lookup.utils.strategies import first_found

    calls: list[str] = []

    def make(name, outcome):
        def run(arg):
            calls.append(name)
            return outcome

        return (name, run)

    result = first_found(
        [make("a", Fetched.miss()), make("b", Fetched.ok("B")), make("c", Fetched.ok("C"))], 0
    )
    assert result.value == "B"
    assert calls == ["a", "b"]
