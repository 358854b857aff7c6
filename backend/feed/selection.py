"""Resolve a user's follows into per-sport selections."""
from __future__ import annotations

from dataclasses import dataclass, field

from shared.models.domain import CatalogDocument, Follow, Sport
from shared.models.enums import EntityType

from feed.cache import build_feed_preference_key


@dataclass
class SportSelection:
    sport: Sport
    team_ids: list[str] = field(default_factory=list)
    player_ids: list[str] = field(default_factory=list)
    league_ids: list[str] = field(default_factory=list)

    @property
    def preference_key(self) -> str:
        return build_feed_preference_key(
            self.sport.id, self.team_ids, self.player_ids, self.league_ids
        )


def _unique(ids: list[str]) -> list[str]:
    return list(dict.fromkeys(ids))


def ordered_sport_ids(doc: CatalogDocument, user_id: str, follows: list[Follow]) -> list[str]:
    """Explicit user order first, then any other followed sport in follow order."""
    followed = _unique([f.entity_id for f in follows if f.entity_type == EntityType.SPORT])
    followed_set = set(followed)
    explicit = [sid for sid in _unique(doc.user_sport_order.get(user_id, [])) if sid in followed_set]
    explicit_set = set(explicit)
    return explicit + [sid for sid in followed if sid not in explicit_set]


def resolve_selections(doc: CatalogDocument, user_id: str) -> list[SportSelection]:
    follows = doc.follows_for(user_id)
    selections: dict[str, SportSelection] = {}
    for sport_id in ordered_sport_ids(doc, user_id, follows):
        sport = doc.sport_by_id(sport_id)
        if sport is not None:
            selections[sport_id] = SportSelection(sport=sport)

    owners = {
        EntityType.TEAM: {t.id: t.sport_id for t in doc.teams},
        EntityType.PLAYER: {p.id: p.sport_id for p in doc.players},
        EntityType.LEAGUE: {lg.id: lg.sport_id for lg in doc.leagues},
    }
    for follow in follows:
        if follow.entity_type == EntityType.SPORT:
            continue
        selection = selections.get(owners[follow.entity_type].get(follow.entity_id, ""))
        if selection is None:
            continue
        if follow.entity_type == EntityType.TEAM:
            selection.team_ids.append(follow.entity_id)
        elif follow.entity_type == EntityType.PLAYER:
            selection.player_ids.append(follow.entity_id)
        else:
            selection.league_ids.append(follow.entity_id)

    for selection in selections.values():
        selection.team_ids = _unique(selection.team_ids)
        selection.player_ids = _unique(selection.player_ids)
        selection.league_ids = _unique(selection.league_ids)
    return list(selections.values())


def preference_keys(doc: CatalogDocument, user_id: str) -> dict[str, str]:
    return {s.sport.id: s.preference_key for s in resolve_selections(doc, user_id)}
