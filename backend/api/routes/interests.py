"""
Onboarding and sport entry endpoints.

GET  /v1/me/interests           — Current selection of the caller.
PUT  /v1/me/interests           — Replace the caller's selection.
GET  /v1/catalog/options        — Sports with their leagues/teams/players.
POST /v1/sports/{sport_id}/open — Interactive catalog sync when a sport is opened.
"""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from shared.models.domain import InterestSelection, SyncOptions
from shared.config import get_settings
from shared.utils.logging import get_logger

from api.dependencies import (
    UserContext,
    get_interest_service,
    get_sync_service,
    require_user,
)
from catalog.sync import CatalogSyncService
from feed.interests import InterestService

logger = get_logger(__name__)
router = APIRouter(prefix="/v1", tags=["interests"])


@router.get("/me/interests")
async def get_interests(
    user: UserContext = Depends(require_user),
    interests: InterestService = Depends(get_interest_service),
) -> dict[str, Any]:
    selection = await interests.get_interests(user.user_id)
    return selection.to_wire()


@router.put("/me/interests")
async def replace_interests(
    body: InterestSelection,
    user: UserContext = Depends(require_user),
    interests: InterestService = Depends(get_interest_service),
) -> dict[str, Any]:
    """Validation failures leave the stored selection untouched (400)."""
    selection = await interests.replace_interests(user.user_id, body)
    return {"ok": True, **selection.to_wire()}


@router.get("/catalog/options")
async def catalog_options(
    interests: InterestService = Depends(get_interest_service),
) -> dict[str, Any]:
    return await interests.catalog_options()


@router.post("/sports/{sport_id}/open", response_model=None)
async def open_sport(
    sport_id: str,
    sync: CatalogSyncService = Depends(get_sync_service),
) -> dict[str, Any] | JSONResponse:
    """
    Run a small, time-boxed crawl for a sport the user just opened.

    Skipped while the sport's catalog is rich and inside its cooldown.
    """
    outcome = await sync.sync_sport_catalog(sport_id, SyncOptions.interactive(get_settings()))
    if not outcome.ok:
        return JSONResponse(status_code=502, content=outcome.to_wire())
    return outcome.to_wire()
