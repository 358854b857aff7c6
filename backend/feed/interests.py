"""
Onboarding: the options a user can pick from, and replacing a user's
selection of sports/teams/players/leagues.
"""
from __future__ import annotations

from typing import Any

from shared.config import Settings, get_settings
from shared.errors import InvalidInterestScope, NoInterestSelected
from shared.models.domain import CatalogDocument, Follow, InterestSelection, utcnow
from shared.models.enums import EntityType
from shared.store import RecordStore
from shared.utils.logging import get_logger

from feed.cache import FeedCache
from feed.selection import preference_keys, resolve_selections

logger = get_logger(__name__)


def _unique(ids: list[str]) -> list[str]:
    return list(dict.fromkeys(i for i in ids if i))


def validate_selection(doc: CatalogDocument, selection: InterestSelection) -> None:
    """
    Raises:
        NoInterestSelected: no sport chosen.
        InvalidInterestScope: unknown ids, or entities outside the chosen sports.
    """
    sport_ids = _unique(selection.sport_ids)
    if not sport_ids:
        raise NoInterestSelected()

    known_sports = {s.id for s in doc.sports}
    invalid = [sid for sid in sport_ids if sid not in known_sports]
    chosen = set(sport_ids)

    scoped = (
        (selection.team_ids, {t.id: t.sport_id for t in doc.teams}),
        (selection.player_ids, {p.id: p.sport_id for p in doc.players}),
        (selection.league_ids, {lg.id: lg.sport_id for lg in doc.leagues}),
    )
    for ids, owners in scoped:
        invalid.extend(i for i in _unique(ids) if owners.get(i) not in chosen)

    if invalid:
        raise InvalidInterestScope(invalid)


def current_selection(doc: CatalogDocument, user_id: str) -> InterestSelection:
    result = InterestSelection()
    for sel in resolve_selections(doc, user_id):
        result.sport_ids.append(sel.sport.id)
        result.team_ids.extend(sel.team_ids)
        result.player_ids.extend(sel.player_ids)
        result.league_ids.extend(sel.league_ids)
    return result


class InterestService:
    def __init__(self, store: RecordStore, settings: Settings | None = None) -> None:
        self._store = store
        self._settings = settings or get_settings()

    async def get_interests(self, user_id: str) -> InterestSelection:
        return current_selection(await self._store.load(), user_id)

    async def replace_interests(
        self, user_id: str, selection: InterestSelection
    ) -> InterestSelection:
        """
        Replace every follow of ``user_id`` with ``selection``.

        Cache entries addressed by the user's previous selection are dropped
        for each sport whose selection changed; entries other users share
        under an unchanged key are left alone.
        """
        doc = await self._store.load()
        validate_selection(doc, selection)

        old_keys = preference_keys(doc, user_id)

        now = utcnow()
        sport_ids = _unique(selection.sport_ids)
        follows = [
            Follow(user_id=user_id, entity_type=entity_type, entity_id=entity_id, created_at=now)
            for entity_type, ids in (
                (EntityType.SPORT, sport_ids),
                (EntityType.TEAM, selection.team_ids),
                (EntityType.PLAYER, selection.player_ids),
                (EntityType.LEAGUE, selection.league_ids),
            )
            for entity_id in _unique(ids)
        ]
        doc.follows = [f for f in doc.follows if f.user_id != user_id] + follows
        doc.user_sport_order[user_id] = sport_ids

        new_keys = preference_keys(doc, user_id)
        cache = FeedCache(doc, self._settings)
        invalidated = 0
        for sport_id, old_key in old_keys.items():
            if new_keys.get(sport_id) != old_key and cache.invalidate(sport_id, old_key):
                invalidated += 1

        await self._store.save(doc)
        logger.info(
            "interests_replaced",
            user_id=user_id,
            sports=len(sport_ids),
            follows=len(follows),
            cache_invalidated=invalidated,
        )
        return current_selection(doc, user_id)

    async def catalog_options(self) -> dict[str, Any]:
        """Sports plus teams/players/leagues grouped by owning sport id."""
        doc = await self._store.load()

        def grouped(items: list[Any]) -> dict[str, list[dict[str, Any]]]:
            out: dict[str, list[dict[str, Any]]] = {}
            for item in sorted(items, key=lambda i: i.name.lower()):
                out.setdefault(item.sport_id, []).append(item.to_wire())
            return out

        sports = sorted(doc.sports, key=lambda s: (not s.popular, s.name.lower()))
        return {
            "sports": [s.to_wire() for s in sports],
            "leagues": grouped(doc.leagues),
            "teams": grouped(doc.teams),
            "players": grouped(doc.players),
        }
