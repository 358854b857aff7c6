"""
Error taxonomy for catalog sync, feed assembly and interest selection.

Provider errors are caught at the sync orchestrator boundary and at each
feed live-refresh call site; validation errors surface to the caller.
"""
from __future__ import annotations

from typing import Any, Optional


class CatalogError(Exception):
    """Base class for every error raised by the catalog/feed core."""

    code = "catalog_error"

    def __init__(self, message: str = "", **details: Any) -> None:
        self.message = message or self.code
        self.details = details
        super().__init__(self.message)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"ok": False, "reason": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


# ── Provider ────────────────────────────────────────────────────────────
class ProviderError(CatalogError):
    code = "provider_error"


class ProviderUnavailable(ProviderError):
    """Timeout, transport failure, non-2xx status or retry exhaustion."""

    def __init__(
        self,
        message: str = "",
        *,
        endpoint: str = "",
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message or "provider unavailable", endpoint=endpoint, status_code=status_code)
        self.endpoint = endpoint
        self.status_code = status_code


class ProviderRateLimited(ProviderError):
    """HTTP 429 from the provider; recovered via backoff inside the client."""

    def __init__(self, endpoint: str, retry_after_s: float) -> None:
        super().__init__(f"rate limited on {endpoint}", endpoint=endpoint, retry_after_s=retry_after_s)
        self.endpoint = endpoint
        self.retry_after_s = retry_after_s


class MalformedProviderResponse(ProviderError):
    """Body could not be decoded; never surfaced past the client."""


# ── Catalog ─────────────────────────────────────────────────────────────
class SportNotFound(CatalogError):
    code = "sport_not_found"

    def __init__(self, sport_id: str) -> None:
        super().__init__(f"sport {sport_id} not found", sport_id=sport_id)
        self.sport_id = sport_id


# ── Interest selection ──────────────────────────────────────────────────
class InterestValidationError(CatalogError):
    code = "invalid_interests"


class NoInterestSelected(InterestValidationError):
    code = "no_interest_selected"

    def __init__(self) -> None:
        super().__init__("Select at least one sport.")


class InvalidInterestScope(InterestValidationError):
    code = "invalid_interest_scope"

    def __init__(self, invalid_ids: list[str]) -> None:
        super().__init__("Invalid interest ids in request.", invalid_ids=invalid_ids)
        self.invalid_ids = invalid_ids
