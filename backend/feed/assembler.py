"""
Home feed assembly.

One section per followed sport. Cached sections are served when fresh;
otherwise a bounded number of sections per request get a live refresh,
racing highlights and news against a soft deadline. Everything else is
served from whatever the cache holds, stale or empty.
"""
from __future__ import annotations

import asyncio
from typing import Callable, Optional

from shared.config import Settings, get_settings
from shared.models.domain import (
    CatalogDocument,
    FeedCacheEntry,
    FeedCounts,
    FeedResponse,
    FeedSection,
    Highlight,
    NewsItem,
    SportRef,
    utcnow,
)
from shared.models.enums import CacheLookup
from shared.store import RecordStore
from shared.utils.logging import get_logger
from shared.utils.metrics import (
    FEED_BUILD_LATENCY,
    FEED_CACHE_LOOKUPS,
    FEED_LIVE_REFRESHES,
    atrack_latency,
)

from feed.cache import FeedCache
from feed.deadline import with_soft_timeout
from feed.highlights import HighlightsResolver
from feed.selection import SportSelection, resolve_selections
from ingest.news_fetcher import NewsClient, build_news_query

logger = get_logger(__name__)


def synthesize_match_updates(highlights: list[Highlight], sport_name: str) -> list[NewsItem]:
    """Headline-shaped items built from fixtures when the news feed is empty."""
    return [
        NewsItem(
            title=f"Match update: {h.title}",
            link="",
            published_at=h.date,
            source=h.league or sport_name,
        )
        for h in highlights
    ]


class FeedAssembler:
    def __init__(
        self,
        store: RecordStore,
        highlights: HighlightsResolver,
        news: NewsClient,
        settings: Settings | None = None,
        now: Callable = utcnow,
    ) -> None:
        self._store = store
        self._highlights = highlights
        self._news = news
        self._settings = settings or get_settings()
        self._now = now

    async def build_feed(self, user_id: str) -> FeedResponse:
        async with atrack_latency(FEED_BUILD_LATENCY):
            doc = await self._store.load()
            cache = FeedCache(doc, self._settings)
            limit = self._settings.feed_items_per_section

            sections: list[FeedSection] = []
            refreshes = 0
            dirty = False
            for selection in resolve_selections(doc, user_id):
                key = selection.preference_key
                entry = cache.lookup(selection.sport.id, key)

                if entry is not None and cache.is_fresh(entry, self._now()):
                    FEED_CACHE_LOOKUPS.labels(result=CacheLookup.HIT.value).inc()
                elif refreshes < self._settings.feed_max_live_refreshes:
                    FEED_CACHE_LOOKUPS.labels(
                        result=(CacheLookup.STALE if entry else CacheLookup.MISS).value
                    ).inc()
                    refreshes += 1
                    refreshed = await self._refresh(doc, selection, entry)
                    if refreshed is not None:
                        cache.store(selection.sport.id, key, refreshed)
                        entry = refreshed
                        dirty = True
                else:
                    FEED_CACHE_LOOKUPS.labels(
                        result=(CacheLookup.STALE if entry else CacheLookup.MISS).value
                    ).inc()

                sections.append(self._section(doc, selection, entry, limit))

            if dirty:
                await self._store.save(doc)

        logger.info(
            "feed_built",
            user_id=user_id,
            sections=len(sections),
            live_refreshes=refreshes,
        )
        return FeedResponse(sections=sections, total=len(sections))

    async def _refresh(
        self,
        doc: CatalogDocument,
        selection: SportSelection,
        previous: Optional[FeedCacheEntry],
    ) -> Optional[FeedCacheEntry]:
        """
        Fetch highlights and news concurrently under the soft deadline.

        Returns None when neither call completed, leaving the existing
        entry untouched.
        """
        FEED_LIVE_REFRESHES.inc()
        sport = selection.sport
        limit = self._settings.feed_items_per_section
        timeout_s = self._settings.feed_soft_timeout_ms / 1000

        names = _names(doc, selection)
        query = build_news_query(sport.name, names)

        (highlights, highlights_ok), (news, news_ok) = await asyncio.gather(
            with_soft_timeout(
                self._highlights.fetch_highlights(doc, sport.id, limit, selection.league_ids),
                timeout_s,
                list(previous.highlights) if previous else [],
                label="highlights",
            ),
            with_soft_timeout(
                self._news.search_news(query, limit),
                timeout_s,
                list(previous.news) if previous else [],
                label="news",
            ),
        )
        if not (highlights_ok or news_ok):
            logger.warning("feed_refresh_failed", sport_id=sport.id)
            return None

        if not news and highlights:
            news = synthesize_match_updates(highlights, sport.name)

        return FeedCacheEntry(
            fetched_at=self._now(),
            highlights=highlights[:limit],
            news=news[:limit],
        )

    @staticmethod
    def _section(
        doc: CatalogDocument,
        selection: SportSelection,
        entry: Optional[FeedCacheEntry],
        limit: int,
    ) -> FeedSection:
        sport = selection.sport
        return FeedSection(
            sport=SportRef(id=sport.id, name=sport.name, slug=sport.slug),
            counts=FeedCounts(
                teams=len(selection.team_ids),
                players=len(selection.player_ids),
                leagues=len(selection.league_ids),
            ),
            highlights=list(entry.highlights[:limit]) if entry else [],
            news=list(entry.news[:limit]) if entry else [],
        )


def _names(doc: CatalogDocument, selection: SportSelection) -> list[str]:
    """Followed team names, falling back to league names, to narrow the news query."""
    teams = {t.id: t.name for t in doc.teams}
    names = [teams[tid] for tid in selection.team_ids if tid in teams]
    if not names:
        leagues = {lg.id: lg.name for lg in doc.leagues}
        names = [leagues[lid] for lid in selection.league_ids if lid in leagues]
    return names
