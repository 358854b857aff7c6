"""
Preference-keyed feed cache.

Entries live in ``doc.feed_cache_by_sport[sport_id][preference_key]``. The
key encodes exactly which teams/players/leagues the user follows in that
sport, so changing a selection addresses a different entry instead of
invalidating the whole sport. Each sport keeps only its freshest variants.
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable, Optional

from shared.config import Settings, get_settings
from shared.models.domain import CatalogDocument, FeedCacheEntry
from shared.utils.logging import get_logger

logger = get_logger(__name__)


def _id_list(ids: Iterable[str]) -> str:
    return ",".join(sorted({i for i in ids if i}))


def build_feed_preference_key(
    sport_id: str,
    team_ids: Iterable[str] = (),
    player_ids: Iterable[str] = (),
    league_ids: Iterable[str] = (),
) -> str:
    """
    Deterministic cache discriminator for one user's selection in one sport.

    Invariant to input order and duplicate ids.

    Example:
        >>> build_feed_preference_key("spt_1", ["t2", "t1", "t2"], [], ["l1"])
        'spt_1|t:t1,t2|p:|l:l1'
    """
    return f"{sport_id}|t:{_id_list(team_ids)}|p:{_id_list(player_ids)}|l:{_id_list(league_ids)}"


def is_fresh(entry: FeedCacheEntry, now: datetime, ttl: timedelta) -> bool:
    return now - entry.fetched_at <= ttl


def prune_variants(
    variants: dict[str, FeedCacheEntry], max_variants: int
) -> dict[str, FeedCacheEntry]:
    """Keep the ``max_variants`` most recently fetched entries."""
    ranked = sorted(variants.items(), key=lambda kv: kv[1].fetched_at, reverse=True)
    return dict(ranked[:max_variants])


class FeedCache:
    """Read/write view over the cache map of one loaded document."""

    def __init__(self, doc: CatalogDocument, settings: Settings | None = None) -> None:
        settings = settings or get_settings()
        self._doc = doc
        self._ttl = timedelta(seconds=settings.feed_cache_ttl_s)
        self._max_variants = settings.feed_cache_max_variants

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def lookup(self, sport_id: str, key: str) -> Optional[FeedCacheEntry]:
        return self._doc.feed_cache_by_sport.get(sport_id, {}).get(key)

    def is_fresh(self, entry: FeedCacheEntry, now: datetime) -> bool:
        return is_fresh(entry, now, self._ttl)

    def store(self, sport_id: str, key: str, entry: FeedCacheEntry) -> None:
        """Replace the entry under ``key`` and prune the sport's variants."""
        variants = dict(self._doc.feed_cache_by_sport.get(sport_id, {}))
        variants[key] = entry
        pruned = prune_variants(variants, self._max_variants)
        if len(pruned) < len(variants):
            logger.debug("feed_cache_pruned", sport_id=sport_id, dropped=len(variants) - len(pruned))
        self._doc.feed_cache_by_sport[sport_id] = pruned

    def invalidate(self, sport_id: str, key: str) -> bool:
        variants = self._doc.feed_cache_by_sport.get(sport_id)
        if not variants or key not in variants:
            return False
        del variants[key]
        if not variants:
            del self._doc.feed_cache_by_sport[sport_id]
        logger.debug("feed_cache_invalidated", sport_id=sport_id, key=key)
        return True
