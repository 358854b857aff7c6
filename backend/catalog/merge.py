"""
Entity merge engine.

Turns raw provider rows (and admin bulk rows) into canonical Sport, League,
Team and Player records inside a CatalogDocument without duplicating a
logical entity. A record is found by its ``(external_source, external_id)``
pair first and by its normalized name second, always scoped to the owning
sport. Both lookups go through in-memory indexes built once per merger.

Merging is idempotent: applying the same rows again creates nothing new.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar, Union

from shared.models.domain import CatalogDocument, League, Player, Sport, Team, new_id
from shared.models.enums import EntityType, ProviderName
from shared.utils.logging import get_logger
from shared.utils.metrics import CATALOG_ENTITIES_CREATED

from catalog.normalize import (
    clean_external_id,
    clean_name,
    is_popular_sport,
    normalize_name,
    slugify,
)

logger = get_logger(__name__)

PROVIDER_SOURCE = ProviderName.THESPORTSDB.value

Entity = Union[Sport, League, Team, Player]
E = TypeVar("E", Sport, League, Team, Player)

_ID_PREFIX = {
    EntityType.SPORT: "spt",
    EntityType.LEAGUE: "lea",
    EntityType.TEAM: "tea",
    EntityType.PLAYER: "ply",
}


@dataclass
class MergeResult(Generic[E]):
    entity: E
    created: bool


class _Index:
    """External-id and normalized-name lookups for one collection within one scope."""

    __slots__ = ("by_external", "by_name")

    def __init__(self) -> None:
        self.by_external: dict[tuple[str, str], Entity] = {}
        self.by_name: dict[str, Entity] = {}

    def add(self, entity: Entity) -> None:
        if entity.external_id:
            key = (entity.external_source or PROVIDER_SOURCE, entity.external_id)
            self.by_external.setdefault(key, entity)
        norm = normalize_name(entity.name)
        if norm:
            self.by_name.setdefault(norm, entity)

    def find(self, source: str, external_id: Optional[str], norm: str) -> Optional[Entity]:
        if external_id:
            hit = self.by_external.get((source, external_id))
            if hit is not None:
                return hit
        return self.by_name.get(norm)


def has_provenance(entity: Entity) -> bool:
    return bool(entity.external_source and entity.external_id)


def real_catalog_counts(doc: CatalogDocument, sport_id: str) -> dict[str, int]:
    """Provenance-backed teams/players/leagues for one sport."""
    return {
        "teams": sum(1 for t in doc.teams if t.sport_id == sport_id and has_provenance(t)),
        "players": sum(1 for p in doc.players if p.sport_id == sport_id and has_provenance(p)),
        "leagues": sum(1 for lg in doc.leagues if lg.sport_id == sport_id and has_provenance(lg)),
    }


class CatalogMerger:
    """Upserts canonical catalog records into one in-memory document."""

    def __init__(self, doc: CatalogDocument) -> None:
        self._doc = doc
        self._indexes: dict[tuple[EntityType, str], _Index] = {}
        for sport in doc.sports:
            self._index(EntityType.SPORT, "").add(sport)
        for league in doc.leagues:
            self._index(EntityType.LEAGUE, league.sport_id).add(league)
        for team in doc.teams:
            self._index(EntityType.TEAM, team.sport_id).add(team)
        for player in doc.players:
            self._index(EntityType.PLAYER, player.sport_id).add(player)

    @property
    def doc(self) -> CatalogDocument:
        return self._doc

    def _index(self, kind: EntityType, scope: str) -> _Index:
        key = (kind, scope)
        index = self._indexes.get(key)
        if index is None:
            index = self._indexes[key] = _Index()
        return index

    def _resolve(
        self,
        kind: EntityType,
        scope: str,
        name: str,
        external_id: Optional[str],
        external_source: Optional[str],
    ) -> tuple[Optional[Entity], str, Optional[str], str]:
        source = external_source or PROVIDER_SOURCE
        ext_id = clean_external_id(external_id)
        norm = normalize_name(name)
        return self._index(kind, scope).find(source, ext_id, norm), source, ext_id, norm

    def _backfill_provenance(
        self, kind: EntityType, scope: str, entity: Entity, source: str, ext_id: Optional[str]
    ) -> None:
        if ext_id and not entity.external_id:
            entity.external_source = source
            entity.external_id = ext_id
            self._index(kind, scope).add(entity)
            logger.debug("catalog_provenance_backfilled", kind=kind.value, id=entity.id, external_id=ext_id)

    def _minted(self, kind: EntityType, scope: str, entity: E, bucket: list[Any]) -> MergeResult[E]:
        bucket.append(entity)
        self._index(kind, scope).add(entity)
        CATALOG_ENTITIES_CREATED.labels(kind=kind.value).inc()
        return MergeResult(entity=entity, created=True)

    # ── Upserts ─────────────────────────────────────────────────────────

    def upsert_sport(
        self,
        name: Any,
        external_id: Any = None,
        external_source: Optional[str] = None,
    ) -> Optional[MergeResult[Sport]]:
        name = clean_name(name)
        if not normalize_name(name):
            return None
        found, source, ext_id, norm = self._resolve(EntityType.SPORT, "", name, external_id, external_source)
        if found is not None:
            self._backfill_provenance(EntityType.SPORT, "", found, source, ext_id)
            return MergeResult(entity=found, created=False)
        sport = Sport(
            id=new_id(_ID_PREFIX[EntityType.SPORT]),
            name=name,
            slug=slugify(name),
            popular=is_popular_sport(norm),
            external_source=source if ext_id else None,
            external_id=ext_id,
        )
        return self._minted(EntityType.SPORT, "", sport, self._doc.sports)

    def upsert_league(
        self,
        sport_id: str,
        name: Any,
        external_id: Any = None,
        external_source: Optional[str] = None,
    ) -> Optional[MergeResult[League]]:
        name = clean_name(name)
        if not normalize_name(name):
            return None
        found, source, ext_id, _ = self._resolve(EntityType.LEAGUE, sport_id, name, external_id, external_source)
        if found is not None:
            self._backfill_provenance(EntityType.LEAGUE, sport_id, found, source, ext_id)
            return MergeResult(entity=found, created=False)
        league = League(
            id=new_id(_ID_PREFIX[EntityType.LEAGUE]),
            sport_id=sport_id,
            name=name,
            slug=slugify(name),
            external_source=source if ext_id else None,
            external_id=ext_id,
        )
        return self._minted(EntityType.LEAGUE, sport_id, league, self._doc.leagues)

    def upsert_team(
        self,
        sport_id: str,
        name: Any,
        external_id: Any = None,
        external_source: Optional[str] = None,
    ) -> Optional[MergeResult[Team]]:
        name = clean_name(name)
        if not normalize_name(name):
            return None
        found, source, ext_id, _ = self._resolve(EntityType.TEAM, sport_id, name, external_id, external_source)
        if found is not None:
            self._backfill_provenance(EntityType.TEAM, sport_id, found, source, ext_id)
            return MergeResult(entity=found, created=False)
        team = Team(
            id=new_id(_ID_PREFIX[EntityType.TEAM]),
            sport_id=sport_id,
            name=name,
            slug=slugify(name),
            external_source=source if ext_id else None,
            external_id=ext_id,
        )
        return self._minted(EntityType.TEAM, sport_id, team, self._doc.teams)

    def upsert_player(
        self,
        sport_id: str,
        name: Any,
        external_id: Any = None,
        external_source: Optional[str] = None,
        team_id: Optional[str] = None,
    ) -> Optional[MergeResult[Player]]:
        name = clean_name(name)
        if not normalize_name(name):
            return None
        found, source, ext_id, _ = self._resolve(EntityType.PLAYER, sport_id, name, external_id, external_source)
        if found is not None:
            self._backfill_provenance(EntityType.PLAYER, sport_id, found, source, ext_id)
            if team_id and found.team_id != team_id:
                found.team_id = team_id
            return MergeResult(entity=found, created=False)
        player = Player(
            id=new_id(_ID_PREFIX[EntityType.PLAYER]),
            sport_id=sport_id,
            team_id=team_id,
            name=name,
            external_source=source if ext_id else None,
            external_id=ext_id,
        )
        return self._minted(EntityType.PLAYER, sport_id, player, self._doc.players)

    # ── Provider row mapping ────────────────────────────────────────────

    def merge_provider_sport(self, row: dict[str, Any]) -> Optional[MergeResult[Sport]]:
        return self.upsert_sport(row.get("strSport"), row.get("idSport"), PROVIDER_SOURCE)

    def merge_provider_league(self, sport_id: str, row: dict[str, Any]) -> Optional[MergeResult[League]]:
        return self.upsert_league(sport_id, row.get("strLeague"), row.get("idLeague"), PROVIDER_SOURCE)

    def merge_provider_team(self, sport_id: str, row: dict[str, Any]) -> Optional[MergeResult[Team]]:
        return self.upsert_team(sport_id, row.get("strTeam"), row.get("idTeam"), PROVIDER_SOURCE)

    def merge_provider_player(
        self, sport_id: str, row: dict[str, Any], team_id: Optional[str] = None
    ) -> Optional[MergeResult[Player]]:
        return self.upsert_player(
            sport_id, row.get("strPlayer"), row.get("idPlayer"), PROVIDER_SOURCE, team_id=team_id
        )

    # ── Lookups used by the orchestrator ────────────────────────────────

    def find_sport(self, ref: str) -> Optional[Sport]:
        """Resolve a sport by id, falling back to its normalized name."""
        sport = self._doc.sport_by_id(ref)
        if sport is not None:
            return sport
        found = self._index(EntityType.SPORT, "").by_name.get(normalize_name(ref))
        return found if isinstance(found, Sport) else None

    def find_team(self, sport_id: str, ref: str) -> Optional[Team]:
        team = next((t for t in self._doc.teams if t.id == ref and t.sport_id == sport_id), None)
        if team is not None:
            return team
        found = self._index(EntityType.TEAM, sport_id).by_name.get(normalize_name(ref))
        return found if isinstance(found, Team) else None
