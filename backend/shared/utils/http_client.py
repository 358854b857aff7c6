"""
Async HTTP client wrapper for outbound provider requests.
Enforces a hard per-call deadline, retries only on HTTP 429 and records metrics.
"""
from __future__ import annotations

import asyncio
import time
from typing import Any, Optional

import httpx

from shared.config import get_settings
from shared.errors import ProviderRateLimited, ProviderUnavailable
from shared.utils.logging import get_logger
from shared.utils.metrics import PROVIDER_LATENCY, PROVIDER_REQUESTS

logger = get_logger(__name__)


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Seconds from a ``retry-after`` header; None when absent or not numeric."""
    if value is None:
        return None
    try:
        seconds = float(value.strip())
    except (TypeError, ValueError):
        return None
    return seconds if seconds >= 0 else None


class ProviderHTTPClient:
    """
    Async HTTP client tailored for third-party sports/news APIs.

    Every attempt runs under ``timeout_s``; on expiry the in-flight request is
    cancelled and the call fails. A 429 is retried up to ``max_retries`` times,
    sleeping ``retry-after`` seconds when the header is present and
    ``attempt * 1s`` otherwise. Any other non-2xx status fails immediately.
    """

    def __init__(
        self,
        provider_name: str,
        base_url: str,
        headers: dict[str, str] | None = None,
        timeout_s: float | None = None,
        max_retries: int = 2,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self._provider = provider_name
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_s or settings.provider_request_timeout_s
        self._max_retries = max(0, max_retries)
        self._default_headers = headers or {}
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def provider(self) -> str:
        return self._provider

    @property
    def max_retries(self) -> int:
        return self._max_retries

    async def start(self) -> None:
        """Initialize the underlying httpx client."""
        if self._client is not None:
            return
        self._client = httpx.AsyncClient(
            headers=self._default_headers,
            timeout=httpx.Timeout(self._timeout, connect=5.0),
            follow_redirects=True,
            limits=httpx.Limits(max_connections=20, max_keepalive_connections=10),
            transport=self._transport,
        )

    async def close(self) -> None:
        """Close the underlying httpx client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "ProviderHTTPClient":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def get(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        endpoint: str = "unknown",
    ) -> httpx.Response:
        """
        Perform a GET request with the 429 retry policy.

        Args:
            path: Path appended to the base URL ("" for the base URL itself).
            params: Query parameters.
            endpoint: Endpoint label for logs and metrics.

        Returns:
            The successful (2xx) httpx.Response.

        Raises:
            ProviderUnavailable: timeout, transport error, non-2xx status, or
                429 retries exhausted.
        """
        if not self._client:
            raise RuntimeError("ProviderHTTPClient not started. Call start() first.")

        url = f"{self._base_url}{path}"
        attempts = self._max_retries + 1

        for attempt in range(1, attempts + 1):
            start_time = time.perf_counter()
            status = "unknown"
            try:
                resp = await asyncio.wait_for(
                    self._client.get(url, params=params), timeout=self._timeout
                )
                status = str(resp.status_code)
            except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
                status = "timeout"
                logger.warning(
                    "provider_timeout",
                    provider=self._provider,
                    endpoint=endpoint,
                    attempt=attempt,
                    timeout_s=self._timeout,
                )
                raise ProviderUnavailable(
                    f"{self._provider} {endpoint} timed out after {self._timeout}s",
                    endpoint=endpoint,
                ) from exc
            except httpx.HTTPError as exc:
                status = "error"
                logger.warning(
                    "provider_request_error",
                    provider=self._provider,
                    endpoint=endpoint,
                    attempt=attempt,
                    error=str(exc),
                )
                raise ProviderUnavailable(
                    f"{self._provider} {endpoint} failed: {exc}", endpoint=endpoint
                ) from exc
            finally:
                PROVIDER_REQUESTS.labels(
                    provider=self._provider, endpoint=endpoint, status=status
                ).inc()
                PROVIDER_LATENCY.labels(provider=self._provider).observe(
                    time.perf_counter() - start_time
                )

            if resp.status_code == 429:
                delay = parse_retry_after(resp.headers.get("retry-after"))
                if delay is None:
                    delay = float(attempt)
                rate_limited = ProviderRateLimited(endpoint, delay)
                if attempt >= attempts:
                    logger.error(
                        "provider_rate_limit_exhausted",
                        provider=self._provider,
                        endpoint=endpoint,
                        attempts=attempt,
                    )
                    raise ProviderUnavailable(
                        f"{self._provider} {endpoint} still rate limited after {attempt} attempts",
                        endpoint=endpoint,
                        status_code=429,
                    ) from rate_limited
                logger.warning(
                    "provider_rate_limited",
                    provider=self._provider,
                    endpoint=endpoint,
                    attempt=attempt,
                    retry_in_s=delay,
                )
                await asyncio.sleep(delay)
                continue

            if not resp.is_success:
                logger.error(
                    "provider_http_error",
                    provider=self._provider,
                    endpoint=endpoint,
                    status=resp.status_code,
                )
                raise ProviderUnavailable(
                    f"{self._provider} {endpoint} returned HTTP {resp.status_code}",
                    endpoint=endpoint,
                    status_code=resp.status_code,
                )

            logger.debug(
                "provider_request_success",
                provider=self._provider,
                endpoint=endpoint,
                status=resp.status_code,
                latency_ms=round((time.perf_counter() - start_time) * 1000, 2),
            )
            return resp

        raise ProviderUnavailable(
            f"{self._provider} {endpoint} failed after {attempts} attempts", endpoint=endpoint
        )
