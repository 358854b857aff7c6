"""
Metrics for the catalog sync and feed layers.
Wraps prometheus_client; the exporter is optional and off by default.
"""
from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

from prometheus_client import Counter, Histogram, start_http_server

from shared.config import get_settings
from shared.utils.logging import get_logger

logger = get_logger(__name__)

# ── Provider ────────────────────────────────────────────────────────────
PROVIDER_REQUESTS = Counter(
    "so_provider_requests_total",
    "Total outbound provider/news HTTP requests",
    ["provider", "endpoint", "status"],
)
PROVIDER_LATENCY = Histogram(
    "so_provider_latency_seconds",
    "Outbound provider request latency in seconds",
    ["provider"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

# ── Catalog sync ────────────────────────────────────────────────────────
CATALOG_SYNC_RUNS = Counter(
    "so_catalog_sync_runs_total",
    "Catalog sync runs by outcome status",
    ["status"],
)
CATALOG_ENTITIES_CREATED = Counter(
    "so_catalog_entities_created_total",
    "Catalog entities minted by the merge engine",
    ["kind"],
)
CATALOG_SYNC_DURATION = Histogram(
    "so_catalog_sync_duration_seconds",
    "Wall-clock duration of a catalog sync run",
    buckets=(0.5, 1.0, 2.5, 5.0, 10.0, 20.0, 40.0),
)

# ── Feed ────────────────────────────────────────────────────────────────
FEED_CACHE_LOOKUPS = Counter(
    "so_feed_cache_lookups_total",
    "Feed cache lookups per sport section",
    ["result"],
)
FEED_LIVE_REFRESHES = Counter(
    "so_feed_live_refreshes_total",
    "Live refreshes performed while building feeds",
)
FEED_SOFT_TIMEOUTS = Counter(
    "so_feed_soft_timeouts_total",
    "Feed refresh calls that fell back to cached/empty data",
    ["call", "reason"],
)
FEED_BUILD_LATENCY = Histogram(
    "so_feed_build_seconds",
    "Time to assemble a home feed",
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 4.0),
)


@asynccontextmanager
async def atrack_latency(histogram: Histogram, **labels: str) -> AsyncIterator[None]:
    """Async context manager to track operation latency."""
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start
        if labels:
            histogram.labels(**labels).observe(elapsed)
        else:
            histogram.observe(elapsed)


def start_metrics_server(port: int | None = None) -> None:
    """Start the Prometheus metrics HTTP server."""
    settings = get_settings()
    if not settings.metrics_enabled:
        return
    metrics_port = port or settings.metrics_port
    try:
        start_http_server(metrics_port)
        logger.info("metrics_server_started", port=metrics_port)
    except OSError as exc:
        logger.warning("metrics_server_failed", error=str(exc), port=metrics_port)
