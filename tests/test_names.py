from __future__ import annotations

import pytest


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Dark Souls™: Prepare to Die Edition", "Dark Souls: Prepare to Die Edition"),
        ("Velocity®Ultra", "Velocity Ultra"),
        ("Tom Clancy's(R) Rainbow Six(TM) Siege", "Tom Clancy's Rainbow Six Siege"),
        ("Portal²", "Portal2"),
        ("Baldur`s Gate", "Baldur's Gate"),
        ("  Hades   II ", "Hades II"),
    ],
)
def test_sanitize_strips_decorative_glyphs(raw, expected):
    from hltb_lookup.utils.names import sanitize

    assert sanitize(raw) == expected


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("Dark Souls: Prepare to Die Edition", "Dark Souls"),
        ("The Elder Scrolls V: Skyrim Special Edition", "The Elder Scrolls V: Skyrim"),
        ("Tomb Raider (2013)", "Tomb Raider"),
        ("Mafia II: Definitive Edition", "Mafia II"),
        ("BioShock Remastered", "BioShock"),
        ("Deus Ex: Human Revolution - Director's Cut", "Deus Ex: Human Revolution"),
        ("Half-Life 2", "Half-Life 2"),
        ("Half-Life: Alyx", "Half-Life: Alyx"),
        ("Cyberpunk 2077", "Cyberpunk 2077"),
        ("Metro 2033", "Metro 2033"),
        ("Football Manager 2024", "Football Manager 2024"),
        ("F1 2020", "F1 2020"),
    ],
)
def test_simplify_strips_edition_qualifiers(name, expected):
    from hltb_lookup.utils.names import simplify

    assert simplify(name) == expected


def test_simplify_never_empties_a_name():
    from hltb_lookup.utils.names import simplify

    assert simplify("Remastered") == "Remastered"
    assert simplify("") == ""


def test_simplify_after_sanitize_never_grows():
    from hltb_lookup.utils.names import sanitize, simplify

    names = [
        "Dark Souls™: Prepare to Die Edition",
        "Batman™: Arkham Knight – Game of the Year Edition",
        "Alan Wake – Remastered",
        "A–B",
        "FINAL FANTASY® VII REMAKE INTERGRADE",
        "Control Ultimate Edition",
        "",
    ]
    for raw in names:
        s = sanitize(raw)
        assert len(simplify(s)) <= len(s), raw


def test_edit_distance_is_case_insensitive_and_zero_on_self():
    from hltb_lookup.utils.names import edit_distance

    for s in ["", "Doom", "Dark Souls: Prepare to Die Edition", "ÆON"]:
        assert edit_distance(s, s) == 0
    assert edit_distance("DOOM", "doom") == 0
    assert edit_distance("kitten", "sitting") == 3


def test_distance_threshold_has_a_floor_and_scales_with_length():
    from hltb_lookup.utils.names import distance_threshold

    assert distance_threshold("Doom", "Quake") == 5
    # 40 chars -> floor(0.2 * 40) = 8
    assert distance_threshold("a" * 40, "b" * 10) == 8
    assert distance_threshold("a" * 29, "") == 5


def test_name_query_variants_skip_duplicates():
    from hltb_lookup.utils.names import NameQuery

    q = NameQuery.from_raw("Dark Souls™: Prepare to Die Edition")
    assert q.variants() == ["Dark Souls: Prepare to Die Edition", "Dark Souls"]

    plain = NameQuery.from_raw("Hollow Knight")
    assert plain.variants() == ["Hollow Knight"]
