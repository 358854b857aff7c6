"""
Tests for name normalization and the catalog merge engine.

Run: pytest backend/tests/test_merge.py -v
"""
from __future__ import annotations

import pytest

from shared.models.domain import CatalogDocument
from catalog.merge import CatalogMerger, has_provenance, real_catalog_counts
from catalog.normalize import clean_external_id, normalize_name, slugify

from tests.factories import make_sport, make_team, player_row, team_row


# ── Normalization ───────────────────────────────────────────────────────

@pytest.mark.parametrize(
    "raw,expected",
    [
        ("  Manchester   United ", "manchester united"),
        ("Paris Saint-Germain", "paris saint-germain"),
        ("A.C. Milan!", "ac milan"),
        ("Atlético Madrid", "atltico madrid"),
        ("", ""),
        (None, ""),
    ],
)
def test_normalize_name(raw, expected) -> None:
    assert normalize_name(raw) == expected


def test_slugify_falls_back_for_symbol_only_names() -> None:
    assert slugify("Real Madrid") == "real-madrid"
    assert slugify("!!!") == "item"


@pytest.mark.parametrize("raw,expected", [(" 133604 ", "133604"), (133604, "133604"), ("", None), (None, None)])
def test_clean_external_id(raw, expected) -> None:
    assert clean_external_id(raw) == expected


# ── Upserts ─────────────────────────────────────────────────────────────

@pytest.fixture
def doc() -> CatalogDocument:
    return CatalogDocument(sports=[make_sport("Soccer", popular=True)])


def test_merging_same_rows_twice_is_idempotent(doc: CatalogDocument) -> None:
    sport = doc.sports[0]
    rows = [team_row("Arsenal", "133604"), team_row("Chelsea", "133610")]

    first = CatalogMerger(doc)
    created_first = [first.merge_provider_team(sport.id, r).created for r in rows]
    snapshot = doc.model_dump()

    second = CatalogMerger(doc)
    created_second = [second.merge_provider_team(sport.id, r).created for r in rows]

    assert created_first == [True, True]
    assert created_second == [False, False]
    assert doc.model_dump() == snapshot


def test_name_variants_collapse_to_one_team(doc: CatalogDocument) -> None:
    sport = doc.sports[0]
    merger = CatalogMerger(doc)
    a = merger.upsert_team(sport.id, "Manchester  United")
    b = merger.upsert_team(sport.id, " manchester united ")

    assert a.created and not b.created
    assert a.entity.id == b.entity.id
    assert len(doc.teams) == 1


def test_external_id_wins_over_renamed_team(doc: CatalogDocument) -> None:
    sport = doc.sports[0]
    merger = CatalogMerger(doc)
    original = merger.merge_provider_team(sport.id, team_row("Spurs", "133616"))
    renamed = merger.merge_provider_team(sport.id, team_row("Tottenham Hotspur", "133616"))

    assert renamed.entity.id == original.entity.id
    assert len(doc.teams) == 1


def test_provenance_is_backfilled_on_name_match(doc: CatalogDocument) -> None:
    sport = doc.sports[0]
    manual = make_team(sport, "Arsenal")
    doc.teams.append(manual)

    result = CatalogMerger(doc).merge_provider_team(sport.id, team_row("Arsenal", "133604"))

    assert not result.created
    assert result.entity.id == manual.id
    assert result.entity.external_source == "thesportsdb"
    assert result.entity.external_id == "133604"
    assert has_provenance(doc.teams[0])


def test_existing_provenance_is_never_overwritten(doc: CatalogDocument) -> None:
    sport = doc.sports[0]
    doc.teams.append(make_team(sport, "Arsenal", external_id="111"))

    CatalogMerger(doc).upsert_team(sport.id, "Arsenal", "222", "thesportsdb")

    assert doc.teams[0].external_id == "111"


def test_same_name_in_different_sports_stays_separate(doc: CatalogDocument) -> None:
    soccer = doc.sports[0]
    rugby = make_sport("Rugby")
    doc.sports.append(rugby)
    merger = CatalogMerger(doc)

    a = merger.upsert_team(soccer.id, "Leicester")
    b = merger.upsert_team(rugby.id, "Leicester")

    assert a.created and b.created
    assert a.entity.id != b.entity.id


def test_blank_names_are_ignored(doc: CatalogDocument) -> None:
    merger = CatalogMerger(doc)
    assert merger.upsert_team(doc.sports[0].id, "   ") is None
    assert merger.merge_provider_player(doc.sports[0].id, {"idPlayer": "9"}) is None
    assert doc.teams == [] and doc.players == []


def test_player_team_link_is_updated(doc: CatalogDocument) -> None:
    sport = doc.sports[0]
    merger = CatalogMerger(doc)
    old_team = merger.upsert_team(sport.id, "Arsenal").entity
    new_team = merger.upsert_team(sport.id, "Chelsea").entity

    merger.merge_provider_player(sport.id, player_row("Raheem Sterling", "34146"), team_id=old_team.id)
    moved = merger.merge_provider_player(sport.id, player_row("Raheem Sterling", "34146"), team_id=new_team.id)

    assert not moved.created
    assert moved.entity.team_id == new_team.id
    assert len(doc.players) == 1


def test_new_sport_gets_popularity_and_slug() -> None:
    doc = CatalogDocument()
    merger = CatalogMerger(doc)
    basketball = merger.merge_provider_sport({"strSport": "Basketball", "idSport": "103"}).entity
    curling = merger.merge_provider_sport({"strSport": "Curling", "idSport": "120"}).entity

    assert basketball.popular and not curling.popular
    assert basketball.slug == "basketball"
    assert basketball.id.startswith("spt_")


def test_real_catalog_counts_only_counts_provenance(doc: CatalogDocument) -> None:
    sport = doc.sports[0]
    doc.teams.extend([make_team(sport, "Manual FC"), make_team(sport, "Arsenal", external_id="133604")])

    assert real_catalog_counts(doc, sport.id) == {"teams": 1, "players": 0, "leagues": 0}


def test_find_sport_by_id_or_name(doc: CatalogDocument) -> None:
    merger = CatalogMerger(doc)
    sport = doc.sports[0]
    assert merger.find_sport(sport.id) is sport
    assert merger.find_sport(" SOCCER ") is sport
    assert merger.find_sport("Cricket") is None
