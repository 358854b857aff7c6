"""Tests for the highlights resolver: candidate leagues, fallbacks, filtering and limits."""
from __future__ import annotations

from unittest.mock import MagicMock, call

import pytest

from shared.errors import ProviderUnavailable
from shared.models.domain import CatalogDocument
from feed.highlights import HighlightsResolver, event_matches_league, event_to_highlight

from tests.factories import event_row, make_league, make_sport


@pytest.fixture
def doc() -> CatalogDocument:
    soccer = make_sport("Soccer", popular=True)
    rugby = make_sport("Rugby")
    return CatalogDocument(
        sports=[soccer, rugby],
        leagues=[
            make_league(soccer, "Hand Entered League"),
            make_league(soccer, "English Premier League", "4328"),
            make_league(soccer, "Spanish La Liga", "4335"),
            make_league(soccer, "German Bundesliga", "4331"),
            make_league(rugby, "Premiership Rugby", "4414"),
        ],
    )


def test_candidates_require_provenance_and_cap(doc: CatalogDocument, fake_provider: MagicMock) -> None:
    resolver = HighlightsResolver(fake_provider, max_leagues=2)
    names = [lg.name for lg in resolver.candidate_leagues(doc, doc.sports[0].id)]
    assert names == ["English Premier League", "Spanish La Liga"]


def test_preferred_leagues_restrict_candidates(doc: CatalogDocument, fake_provider: MagicMock) -> None:
    bundesliga = doc.leagues[3]
    resolver = HighlightsResolver(fake_provider)
    assert resolver.candidate_leagues(doc, doc.sports[0].id, [bundesliga.id]) == [bundesliga]


@pytest.mark.asyncio
async def test_falls_back_to_past_events(doc: CatalogDocument, fake_provider: MagicMock) -> None:
    fake_provider.next_league_events.side_effect = [[], []]
    fake_provider.past_league_events.side_effect = [
        [event_row("English Premier League", "4328", "Arsenal", "Chelsea")],
        [],
    ]

    highlights = await HighlightsResolver(fake_provider).fetch_highlights(doc, doc.sports[0].id, limit=3)

    assert [h.title for h in highlights] == ["Arsenal vs Chelsea"]
    assert highlights[0].league == "English Premier League"
    assert highlights[0].date == "2026-03-07" and highlights[0].time == "15:00:00"
    fake_provider.past_league_events.assert_has_awaits([call("4328"), call("4335")])


@pytest.mark.asyncio
async def test_stops_scanning_once_limit_reached(doc: CatalogDocument, fake_provider: MagicMock) -> None:
    fake_provider.next_league_events.return_value = [
        event_row("English Premier League", "4328", f"Home {i}", f"Away {i}") for i in range(5)
    ]

    highlights = await HighlightsResolver(fake_provider).fetch_highlights(doc, doc.sports[0].id, limit=3)

    assert len(highlights) == 3
    fake_provider.next_league_events.assert_awaited_once_with("4328")


@pytest.mark.asyncio
async def test_provider_error_skips_league(doc: CatalogDocument, fake_provider: MagicMock) -> None:
    fake_provider.next_league_events.side_effect = [
        ProviderUnavailable("down"),
        [event_row("Spanish La Liga", "4335", "Betis", "Sevilla")],
    ]

    highlights = await HighlightsResolver(fake_provider).fetch_highlights(doc, doc.sports[0].id, limit=3)

    assert [h.title for h in highlights] == ["Betis vs Sevilla"]


@pytest.mark.asyncio
async def test_every_league_failing_raises(doc: CatalogDocument, fake_provider: MagicMock) -> None:
    fake_provider.next_league_events.side_effect = ProviderUnavailable("down")

    with pytest.raises(ProviderUnavailable):
        await HighlightsResolver(fake_provider).fetch_highlights(doc, doc.sports[0].id, limit=3)
    assert fake_provider.next_league_events.await_count == 2


@pytest.mark.asyncio
async def test_no_candidates_means_no_calls(fake_provider: MagicMock) -> None:
    sport = make_sport("Darts")
    doc = CatalogDocument(sports=[sport], leagues=[make_league(sport, "Manual League")])

    assert await HighlightsResolver(fake_provider).fetch_highlights(doc, sport.id, limit=3) == []
    fake_provider.next_league_events.assert_not_awaited()


# ── Event filtering ─────────────────────────────────────────────────────

def test_event_matching_prefers_external_id() -> None:
    league = make_league(make_sport("Soccer"), "English Premier League", "4328")
    assert event_matches_league({"idLeague": "4328", "strLeague": "Renamed"}, league)
    assert not event_matches_league({"idLeague": "4480", "strLeague": "English Premier League"}, league)


def test_event_matching_falls_back_to_name_then_accepts() -> None:
    league = make_league(make_sport("Soccer"), "English Premier League", "4328")
    assert event_matches_league({"strLeague": "english  premier league"}, league)
    assert not event_matches_league({"strLeague": "FA Cup"}, league)
    assert event_matches_league({}, league)


def test_title_built_from_teams_when_event_name_missing() -> None:
    league = make_league(make_sport("Soccer"), "English Premier League", "4328")
    highlight = event_to_highlight({"strHomeTeam": "Arsenal", "strAwayTeam": "Spurs"}, league)
    assert highlight.title == "Arsenal vs Spurs"
    assert highlight.league == "English Premier League"
