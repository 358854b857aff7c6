"""Tests for the one-shot seed script."""
from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

import seed as seed_script
from shared.config import Settings, StoreBackend
from shared.store import JsonFileRecordStore


@pytest.fixture
def provider_cls(fake_provider: MagicMock, monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    fake_provider.__aenter__ = AsyncMock(return_value=fake_provider)
    fake_provider.__aexit__ = AsyncMock(return_value=None)
    cls = MagicMock(return_value=fake_provider)
    monkeypatch.setattr(seed_script, "TheSportsDBClient", cls)
    return cls


@pytest.mark.asyncio
async def test_seeds_sports_and_syncs_popular_ones(
    provider_cls: MagicMock, fake_provider: MagicMock, settings: Settings, tmp_path: Path
) -> None:
    fake_provider.all_sports.return_value = [
        {"strSport": "Soccer", "idSport": "102"},
        {"strSport": "Curling", "idSport": "120"},
    ]
    file_settings = settings.model_copy(update={"store_path": str(tmp_path / "store.json")})

    failures = await seed_script.seed(settings=file_settings)

    assert failures == 0
    doc = await JsonFileRecordStore(file_settings.store_path).load()
    assert {s.name for s in doc.sports} == {"Soccer", "Curling"}
    # Only the popular sport gets a catalog crawl
    fake_provider.all_leagues.assert_awaited_once()
    fake_provider.__aexit__.assert_awaited_once()


@pytest.mark.asyncio
async def test_redis_is_released_when_a_sync_raises(
    settings: Settings, monkeypatch: pytest.MonkeyPatch
) -> None:
    redis = MagicMock(connect=AsyncMock(), disconnect=AsyncMock())
    monkeypatch.setattr(seed_script, "RedisManager", MagicMock(return_value=redis))
    monkeypatch.setattr(seed_script, "_run", AsyncMock(side_effect=RuntimeError("boom")))
    redis_settings = settings.model_copy(update={"store_backend": StoreBackend.REDIS})

    with pytest.raises(RuntimeError):
        await seed_script.seed(settings=redis_settings)

    redis.connect.assert_awaited_once()
    redis.disconnect.assert_awaited_once()
