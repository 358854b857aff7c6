"""
Highlights resolver: upcoming (or, failing that, recent) fixtures for the
leagues a sport section should show.
"""
from __future__ import annotations

from typing import Any, Iterable, Optional

from shared.errors import ProviderError
from shared.models.domain import CatalogDocument, Highlight, League
from shared.utils.logging import get_logger

from catalog.merge import has_provenance
from catalog.normalize import clean_external_id, clean_name, normalize_name
from ingest.providers.thesportsdb import TheSportsDBClient

logger = get_logger(__name__)


def event_matches_league(event: dict[str, Any], league: League) -> bool:
    """
    Provider league feeds occasionally include other competitions. Compare
    by external id when both sides have one, else by normalized name, and
    accept the event when there is nothing to compare.
    """
    event_league_id = clean_external_id(event.get("idLeague"))
    if event_league_id and league.external_id:
        return event_league_id == league.external_id
    event_league_name = normalize_name(event.get("strLeague"))
    league_name = normalize_name(league.name)
    if event_league_name and league_name:
        return event_league_name == league_name
    return True


def event_to_highlight(event: dict[str, Any], league: League) -> Highlight:
    title = clean_name(event.get("strEvent"))
    if not title:
        home = clean_name(event.get("strHomeTeam"))
        away = clean_name(event.get("strAwayTeam"))
        title = f"{home} vs {away}" if home and away else home or away
    return Highlight(
        league=clean_name(event.get("strLeague")) or league.name,
        title=title,
        date=event.get("dateEvent") or None,
        time=event.get("strTime") or None,
    )


class HighlightsResolver:
    """Fixture lookups bounded to the first few candidate leagues."""

    def __init__(self, provider: TheSportsDBClient, max_leagues: int = 2) -> None:
        self._provider = provider
        self._max_leagues = max_leagues

    def candidate_leagues(
        self,
        doc: CatalogDocument,
        sport_id: str,
        preferred_league_ids: Optional[Iterable[str]] = None,
    ) -> list[League]:
        leagues = [lg for lg in doc.leagues if lg.sport_id == sport_id and has_provenance(lg)]
        preferred = set(preferred_league_ids or ())
        if preferred:
            leagues = [lg for lg in leagues if lg.id in preferred]
        return leagues[: self._max_leagues]

    async def fetch_highlights(
        self,
        doc: CatalogDocument,
        sport_id: str,
        limit: int,
        preferred_league_ids: Optional[Iterable[str]] = None,
    ) -> list[Highlight]:
        """
        Collect up to ``limit`` highlights across the candidate leagues.

        A failing league is skipped. If every league tried failed, the last
        provider error is re-raised so an outage is not mistaken for a
        sport with no fixtures.
        """
        highlights: list[Highlight] = []
        answered = 0
        last_error: Optional[ProviderError] = None
        for league in self.candidate_leagues(doc, sport_id, preferred_league_ids):
            if len(highlights) >= limit:
                break
            external_id = league.external_id or ""
            try:
                events = await self._provider.next_league_events(external_id)
                if not events:
                    events = await self._provider.past_league_events(external_id)
            except ProviderError as exc:
                logger.warning("highlights_league_skipped", league=league.name, error=exc.message)
                last_error = exc
                continue
            answered += 1
            highlights.extend(
                event_to_highlight(ev, league) for ev in events if event_matches_league(ev, league)
            )
        if last_error is not None and not answered:
            raise last_error
        return highlights[:limit]
