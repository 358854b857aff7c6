"""Tests for RSS news parsing and the never-raising news client."""
from __future__ import annotations

import httpx
import pytest

from shared.config import Settings
from shared.errors import ProviderUnavailable
from ingest.news_fetcher import NewsClient, build_news_query, parse_news_feed

RSS = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Sports Search</title>
    <item>
      <title><![CDATA[Arsenal &amp; Chelsea draw <b>2-2</b>]]></title>
      <link>https://news.test/a</link>
      <pubDate>Sun, 01 Mar 2026 10:00:00 GMT</pubDate>
      <source url="https://bbc.test">BBC Sport</source>
    </item>
    <item>
      <title>Liverpool &amp; City set for title clash</title>
      <link>https://news.test/b</link>
      <pubDate>Sun, 01 Mar 2026 09:00:00 GMT</pubDate>
    </item>
    <item>
      <title>Third headline</title>
      <link>https://news.test/c</link>
    </item>
  </channel>
</rss>
"""


def test_parse_decodes_cdata_entities_and_tags() -> None:
    items = parse_news_feed(RSS, limit=5)

    assert [i.title for i in items] == [
        "Arsenal & Chelsea draw 2-2",
        "Liverpool & City set for title clash",
        "Third headline",
    ]
    assert items[0].link == "https://news.test/a"
    assert items[0].source == "BBC Sport"
    assert items[0].published_at == "Sun, 01 Mar 2026 10:00:00 GMT"


def test_item_without_source_falls_back_to_channel_title() -> None:
    items = parse_news_feed(RSS, limit=5)
    assert items[1].source == "Sports Search"


def test_parse_respects_limit() -> None:
    assert len(parse_news_feed(RSS, limit=2)) == 2


def test_parse_garbage_yields_nothing() -> None:
    assert parse_news_feed(b"<html>not a feed", limit=3) == []


def test_build_news_query() -> None:
    assert build_news_query("Soccer") == "Soccer"
    assert build_news_query("Soccer", ["Arsenal", "Chelsea", "Spurs"]) == 'Soccer "Arsenal" OR "Chelsea"'


@pytest.mark.asyncio
async def test_client_sends_query_and_parses(settings: Settings) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, content=RSS, headers={"content-type": "application/rss+xml"})

    client = NewsClient(settings, transport=httpx.MockTransport(handler))
    await client.start()
    try:
        items = await client.get_news_feed("Soccer", limit=3)
    finally:
        await client.close()

    assert len(items) == 3
    assert seen[0].url.params["q"] == "Soccer"


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [429, 500, 503])
async def test_client_failure_returns_empty(settings: Settings, status: int) -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(status)

    client = NewsClient(settings, transport=httpx.MockTransport(handler))
    await client.start()
    try:
        assert await client.get_news_feed("Soccer", limit=3) == []
    finally:
        await client.close()
    assert calls == 1


@pytest.mark.asyncio
async def test_client_skips_empty_query_and_zero_limit(settings: Settings) -> None:
    client = NewsClient(settings)
    assert await client.get_news_feed("  ", limit=3) == []
    assert await client.get_news_feed("Soccer", limit=0) == []


@pytest.mark.asyncio
async def test_search_news_raises_on_failure(settings: Settings) -> None:
    client = NewsClient(settings, transport=httpx.MockTransport(lambda request: httpx.Response(503)))
    await client.start()
    try:
        with pytest.raises(ProviderUnavailable):
            await client.search_news("Soccer", limit=3)
    finally:
        await client.close()
