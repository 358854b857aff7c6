from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from shared.config import Settings


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        sportsdb_base_url="https://provider.test/api/v1/json",
        sportsdb_api_key="3",
        news_search_url="https://news.test/rss/search",
        admin_token="admin-secret",
    )


@pytest.fixture
def fake_provider() -> MagicMock:
    """TheSportsDBClient double; every accessor returns no rows unless configured."""
    provider = MagicMock()
    provider.source = "thesportsdb"
    provider.all_sports = AsyncMock(return_value=[])
    provider.all_leagues = AsyncMock(return_value=[])
    provider.teams_by_league = AsyncMock(return_value=[])
    provider.teams_by_country = AsyncMock(return_value=[])
    provider.players_by_team = AsyncMock(return_value=[])
    provider.next_league_events = AsyncMock(return_value=[])
    provider.past_league_events = AsyncMock(return_value=[])
    return provider
