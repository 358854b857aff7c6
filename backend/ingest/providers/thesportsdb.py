"""
TheSportsDB provider client.

Raw accessors for the v1 JSON API (key as a path segment). Responses are
envelopes with one named array (``sports``, ``leagues``, ``teams``,
``player``, ``events``); a missing array is an empty list, and an empty or
undecodable body degrades to ``{}``.
"""
from __future__ import annotations

from typing import Any

import httpx

from shared.config import Settings, get_settings
from shared.errors import MalformedProviderResponse
from shared.models.enums import ProviderName
from shared.utils.http_client import ProviderHTTPClient
from shared.utils.logging import get_logger

logger = get_logger(__name__)


def decode_envelope(resp: httpx.Response) -> dict[str, Any]:
    """Parse a provider body into a JSON object or raise MalformedProviderResponse."""
    if not resp.content or not resp.text.strip():
        raise MalformedProviderResponse("empty body")
    try:
        data = resp.json()
    except ValueError as exc:
        raise MalformedProviderResponse(f"undecodable body: {exc}") from exc
    if not isinstance(data, dict):
        raise MalformedProviderResponse(f"unexpected body type {type(data).__name__}")
    return data


def envelope_rows(data: dict[str, Any], field: str) -> list[dict[str, Any]]:
    """Rows of the named envelope array; absent or null means no rows."""
    rows = data.get(field)
    if not isinstance(rows, list):
        return []
    return [row for row in rows if isinstance(row, dict)]


class TheSportsDBClient:
    """Resilient accessor for TheSportsDB endpoints used by catalog sync and highlights."""

    source = ProviderName.THESPORTSDB.value

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = settings or get_settings()
        self._http = ProviderHTTPClient(
            provider_name=ProviderName.THESPORTSDB.value,
            base_url=settings.sportsdb_url,
            timeout_s=settings.provider_request_timeout_s,
            max_retries=settings.sportsdb_max_retries,
            transport=transport,
        )

    async def start(self) -> None:
        await self._http.start()

    async def close(self) -> None:
        await self._http.close()

    async def __aenter__(self) -> "TheSportsDBClient":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def get(self, endpoint: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """
        Call ``/{endpoint}.php`` and return the parsed JSON object.

        Raises:
            ProviderUnavailable: see ProviderHTTPClient.get.
        """
        resp = await self._http.get(f"/{endpoint}.php", params=params, endpoint=endpoint)
        try:
            return decode_envelope(resp)
        except MalformedProviderResponse as exc:
            logger.info("provider_body_degraded", endpoint=endpoint, reason=exc.message)
            return {}

    # ── Endpoint helpers ────────────────────────────────────────────────

    async def all_sports(self) -> list[dict[str, Any]]:
        return envelope_rows(await self.get("all_sports"), "sports")

    async def all_leagues(self) -> list[dict[str, Any]]:
        return envelope_rows(await self.get("all_leagues"), "leagues")

    async def teams_by_league(self, league_name: str) -> list[dict[str, Any]]:
        return envelope_rows(await self.get("search_all_teams", {"l": league_name}), "teams")

    async def teams_by_country(self, sport_name: str, country: str) -> list[dict[str, Any]]:
        data = await self.get("search_all_teams", {"s": sport_name, "c": country})
        return envelope_rows(data, "teams")

    async def players_by_team(self, team_external_id: str) -> list[dict[str, Any]]:
        return envelope_rows(await self.get("lookup_all_players", {"id": team_external_id}), "player")

    async def next_league_events(self, league_external_id: str) -> list[dict[str, Any]]:
        data = await self.get("eventsnextleague", {"id": league_external_id})
        return envelope_rows(data, "events")

    async def past_league_events(self, league_external_id: str) -> list[dict[str, Any]]:
        data = await self.get("eventspastleague", {"id": league_external_id})
        return envelope_rows(data, "events")
