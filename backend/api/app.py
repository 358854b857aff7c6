"""
FastAPI application factory for the SportsOne catalog API.

Creates the app with:
- REST routes (feed, interests, admin sync)
- Middleware stack
- Health check endpoint
- Lifespan management (record store, provider/news clients, services)
"""
from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Awaitable, Callable, Optional

from fastapi import FastAPI

from shared.config import StoreBackend, get_settings
from shared.store import build_record_store
from shared.utils.logging import get_logger, setup_logging
from shared.utils.metrics import start_metrics_server
from shared.utils.redis_manager import RedisManager

from api.dependencies import Services, init_dependencies, reset_dependencies
from api.middleware import setup_middleware
from api.routes.admin import router as admin_router
from api.routes.feed import router as feed_router
from api.routes.interests import router as interests_router
from catalog.sync import CatalogSyncService
from feed.assembler import FeedAssembler
from feed.highlights import HighlightsResolver
from feed.interests import InterestService
from ingest.news_fetcher import NewsClient
from ingest.providers.thesportsdb import TheSportsDBClient

logger = get_logger(__name__)

_CONNECT_RETRY_ATTEMPTS = 10
_CONNECT_RETRY_BASE_DELAY_S = 2.0


async def _connect_with_retry(connect_fn: Callable[[], Awaitable[None]], name: str) -> None:
    """Call async connect_fn(); retry with exponential backoff on failure."""
    for attempt in range(1, _CONNECT_RETRY_ATTEMPTS + 1):
        try:
            await connect_fn()
            return
        except Exception as exc:
            if attempt == _CONNECT_RETRY_ATTEMPTS:
                raise
            delay = _CONNECT_RETRY_BASE_DELAY_S * (2 ** (attempt - 1))
            logger.warning(
                "connect_retry",
                name=name,
                attempt=attempt,
                max_attempts=_CONNECT_RETRY_ATTEMPTS,
                delay_s=delay,
                error=str(exc),
            )
            await asyncio.sleep(delay)


@asynccontextmanager
async def _noop_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """No-op lifespan for testing; services are injected by the caller."""
    yield


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.
    Handles startup (record store, outbound clients, services) and
    shutdown (close clients and Redis).
    """
    settings = get_settings()
    setup_logging("api", settings=settings)
    start_metrics_server()

    redis: Optional[RedisManager] = None
    if settings.store_backend == StoreBackend.REDIS:
        redis = RedisManager(settings)
        await _connect_with_retry(redis.connect, "Redis")
    store = build_record_store(settings, redis)

    provider = TheSportsDBClient(settings)
    news = NewsClient(settings)
    await provider.start()
    await news.start()

    init_dependencies(
        Services(
            store=store,
            sync=CatalogSyncService(store, provider, settings),
            feed=FeedAssembler(
                store,
                HighlightsResolver(provider, max_leagues=settings.highlights_max_leagues),
                news,
                settings,
            ),
            interests=InterestService(store, settings),
        )
    )
    logger.info(
        "api_service_started",
        host=settings.api_host,
        port=settings.api_port,
        store_backend=settings.store_backend.value,
    )

    yield

    reset_dependencies()
    await news.close()
    await provider.close()
    if redis is not None:
        await redis.disconnect()
    logger.info("api_service_stopped")


def create_app(*, use_lifespan: bool = True) -> FastAPI:
    """Create and configure the FastAPI application. Set use_lifespan=False for testing."""
    app = FastAPI(
        title="SportsOne API",
        description="Sports catalog sync and personalized home feed",
        version="1.0.0",
        lifespan=lifespan if use_lifespan else _noop_lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    setup_middleware(app)

    app.include_router(feed_router)
    app.include_router(interests_router)
    app.include_router(admin_router)

    @app.get("/health", tags=["system"])
    async def health() -> dict[str, str]:
        return {"status": "ok", "service": "api"}

    return app


# For running with uvicorn directly
app = create_app()
