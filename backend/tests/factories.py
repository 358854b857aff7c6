"""Catalog builders, provider row shapes and test doubles shared across test modules."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from shared.models.domain import CatalogDocument, League, Player, Sport, Team, new_id
from shared.store import RecordStore

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class MemoryRecordStore(RecordStore):
    """Keeps deep copies so callers cannot mutate the stored document in place."""

    def __init__(self, doc: Optional[CatalogDocument] = None) -> None:
        self.doc = doc or CatalogDocument()
        self.saves = 0

    async def load(self) -> CatalogDocument:
        return self.doc.model_copy(deep=True)

    async def save(self, doc: CatalogDocument) -> None:
        self.doc = doc.model_copy(deep=True)
        self.saves += 1


class FakeClock:
    """Manually advanced monotonic clock in seconds."""

    def __init__(self, start: float = 1000.0) -> None:
        self.value = start

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


class FakeNow:
    """Manually advanced wall clock."""

    def __init__(self, start: datetime = T0) -> None:
        self.value = start

    def __call__(self) -> datetime:
        return self.value


def make_sport(name: str, *, popular: bool = False, external_id: Optional[str] = None) -> Sport:
    return Sport(
        id=new_id("spt"),
        name=name,
        slug=name.lower().replace(" ", "-"),
        popular=popular,
        external_source="thesportsdb" if external_id else None,
        external_id=external_id,
    )


def make_league(sport: Sport, name: str, external_id: Optional[str] = None) -> League:
    return League(
        id=new_id("lea"),
        sport_id=sport.id,
        name=name,
        slug=name.lower().replace(" ", "-"),
        external_source="thesportsdb" if external_id else None,
        external_id=external_id,
    )


def make_team(sport: Sport, name: str, external_id: Optional[str] = None) -> Team:
    return Team(
        id=new_id("tea"),
        sport_id=sport.id,
        name=name,
        slug=name.lower().replace(" ", "-"),
        external_source="thesportsdb" if external_id else None,
        external_id=external_id,
    )


def make_player(sport: Sport, name: str, team: Optional[Team] = None) -> Player:
    return Player(id=new_id("ply"), sport_id=sport.id, team_id=team.id if team else None, name=name)


def league_row(sport: str, name: str, ext: str) -> dict[str, Any]:
    return {"strSport": sport, "strLeague": name, "idLeague": ext}


def team_row(name: str, ext: str) -> dict[str, Any]:
    return {"strTeam": name, "idTeam": ext}


def player_row(name: str, ext: str) -> dict[str, Any]:
    return {"strPlayer": name, "idPlayer": ext}


def event_row(league: str, league_ext: str, home: str, away: str, date: str = "2026-03-07") -> dict[str, Any]:
    return {
        "strLeague": league,
        "idLeague": league_ext,
        "strEvent": f"{home} vs {away}",
        "strHomeTeam": home,
        "strAwayTeam": away,
        "dateEvent": date,
        "strTime": "15:00:00",
    }
