"""
Seed script for SportsOne.

Pulls the provider's sports list into the record store, then runs a full
catalog sync for each named sport (default: every popular sport).

Usage:
    python -m seed
    python -m seed soccer basketball
"""
from __future__ import annotations

import asyncio
import sys
from datetime import datetime, timezone
from typing import Optional, Sequence

from shared.config import Settings, StoreBackend, get_settings
from shared.models.domain import SyncOptions
from shared.store import RecordStore, build_record_store
from shared.utils.logging import get_logger, setup_logging
from shared.utils.redis_manager import RedisManager

from catalog.normalize import normalize_name
from catalog.sync import CatalogSyncService
from ingest.providers.thesportsdb import TheSportsDBClient

logger = get_logger(__name__)


async def seed(
    sport_names: Optional[Sequence[str]] = None,
    settings: Optional[Settings] = None,
) -> int:
    """Main seed function. Returns the number of sports that failed to sync."""
    settings = settings or get_settings()
    setup_logging("seed", settings=settings)

    redis: Optional[RedisManager] = None
    if settings.store_backend == StoreBackend.REDIS:
        redis = RedisManager(settings)
        await redis.connect()

    try:
        store = build_record_store(settings, redis)
        return await _run(store, settings, sport_names)
    finally:
        if redis is not None:
            await redis.disconnect()


async def _run(
    store: RecordStore, settings: Settings, sport_names: Optional[Sequence[str]]
) -> int:
    print(f"\n{'=' * 60}")
    print(f"  SportsOne Seed - {datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M UTC')}")
    print(f"{'=' * 60}")

    failures = 0
    async with TheSportsDBClient(settings) as provider:
        service = CatalogSyncService(store, provider, settings)
        sports_outcome = await service.sync_sports()
        print(
            f"  sports list: {sports_outcome.status.value} "
            f"({sports_outcome.created_sports} new / {sports_outcome.touched_sports} seen)"
        )

        doc = await store.load()
        wanted = {normalize_name(n) for n in sport_names or []}
        if wanted:
            targets = [s for s in doc.sports if normalize_name(s.name) in wanted or s.slug in wanted]
        else:
            targets = [s for s in doc.sports if s.popular]
        if wanted and not targets:
            print(f"  no sport matched {sorted(wanted)}")

        for sport in targets:
            outcome = await service.sync_sport_catalog(sport.id, SyncOptions.full(settings))
            if not outcome.ok:
                failures += 1
            print(
                f"  · {sport.name:20s} {outcome.status.value if outcome.status else '-':8s} "
                f"teams +{outcome.created_teams}  players +{outcome.created_players}  "
                f"leagues +{outcome.created_leagues}"
                + ("  (timed out)" if outcome.timed_out else "")
            )

    logger.info("seed_completed", sports=len(targets), failures=failures)
    return failures


if __name__ == "__main__":
    sys.exit(1 if asyncio.run(seed(sys.argv[1:])) else 0)
