"""Soft deadlines for live feed refresh calls."""
from __future__ import annotations

import asyncio
from typing import Awaitable, TypeVar

from shared.errors import ProviderError
from shared.utils.logging import get_logger
from shared.utils.metrics import FEED_SOFT_TIMEOUTS

logger = get_logger(__name__)

T = TypeVar("T")


async def with_soft_timeout(
    awaitable: Awaitable[T], timeout_s: float, fallback: T, *, label: str
) -> tuple[T, bool]:
    """
    Race ``awaitable`` against ``timeout_s``.

    On expiry the underlying task is cancelled (closing its connection)
    before the fallback is returned, so a late response can never be
    observed by the caller. Provider errors also yield the fallback.

    Returns:
        ``(value, completed)`` where ``completed`` is False when the
        fallback was substituted.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout_s), True
    except asyncio.TimeoutError:
        FEED_SOFT_TIMEOUTS.labels(call=label, reason="timeout").inc()
        logger.info("feed_soft_timeout", call=label, timeout_s=timeout_s)
        return fallback, False
    except ProviderError as exc:
        FEED_SOFT_TIMEOUTS.labels(call=label, reason="provider_error").inc()
        logger.warning("feed_call_failed", call=label, error=exc.message)
        return fallback, False
