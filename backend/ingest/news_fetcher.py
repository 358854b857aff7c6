"""
RSS news search for feed sections.
Queries a GET search endpoint returning RSS, parses items with feedparser
(CDATA and XML entities are decoded there), and never raises to the caller.
"""
from __future__ import annotations

import re
from html import unescape
from typing import Any, Optional

import feedparser
import httpx

from shared.config import Settings, get_settings
from shared.models.domain import NewsItem
from shared.models.enums import ProviderName
from shared.utils.http_client import ProviderHTTPClient
from shared.utils.logging import get_logger

logger = get_logger(__name__)

TAG_STRIP_RE = re.compile(r"<[^>]+>")


def _strip_html(raw: str) -> str:
    if not raw:
        return ""
    text = TAG_STRIP_RE.sub(" ", raw)
    text = unescape(text)
    return " ".join(text.split()).strip()


def _entry_source(entry: Any, feed_title: str) -> str:
    source = entry.get("source") or {}
    title = source.get("title") if hasattr(source, "get") else None
    return _strip_html(title or feed_title or "")


def parse_news_feed(content: bytes | str, limit: int) -> list[NewsItem]:
    """Extract title/link/published/source from each RSS item, in document order."""
    parsed = feedparser.parse(content)
    feed_title = _strip_html(parsed.feed.get("title", ""))
    items: list[NewsItem] = []
    for entry in parsed.entries:
        if len(items) >= limit:
            break
        title = _strip_html(entry.get("title", ""))
        if not title:
            continue
        items.append(
            NewsItem(
                title=title,
                link=(entry.get("link") or "").strip(),
                published_at=entry.get("published") or entry.get("updated") or None,
                source=_entry_source(entry, feed_title),
            )
        )
    return items


class NewsClient:
    """Secondary source: sport/team headlines from an RSS search feed."""

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = settings or get_settings()
        self._http = ProviderHTTPClient(
            provider_name=ProviderName.NEWS_RSS.value,
            base_url=settings.news_search_url,
            timeout_s=settings.news_request_timeout_s,
            max_retries=0,
            transport=transport,
        )

    async def start(self) -> None:
        await self._http.start()

    async def close(self) -> None:
        await self._http.close()

    async def search_news(self, query: str, limit: int) -> list[NewsItem]:
        """
        Search headlines for ``query``, letting provider errors propagate.

        Feed refreshes call this so a failed search keeps the cached headlines.
        """
        if limit <= 0 or not query.strip():
            return []
        params: dict[str, str] = {"q": query, "hl": "en-US", "gl": "US", "ceid": "US:en"}
        resp = await self._http.get("", params=params, endpoint="news_search")
        return parse_news_feed(resp.content, limit)

    async def get_news_feed(self, query: str, limit: int) -> list[NewsItem]:
        """
        Search headlines for ``query``.

        Returns:
            At most ``limit`` items; an empty list on any failure.
        """
        try:
            return await self.search_news(query, limit)
        except Exception as exc:
            logger.warning("news_feed_failed", query=query, error=str(exc))
            return []


def build_news_query(sport_name: str, focus_names: Optional[list[str]] = None) -> str:
    """Search query for a sport section, narrowed by up to two followed names."""
    names = [n for n in (focus_names or []) if n][:2]
    if not names:
        return sport_name
    return f"{sport_name} " + " OR ".join(f'"{n}"' for n in names)
