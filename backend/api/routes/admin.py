"""
Operator endpoints. Every route requires the X-Admin-Token header.

POST /v1/admin/sports/sync            — Pull the provider's sports list.
POST /v1/admin/sports/{sport_id}/sync — Forced full catalog sync for one sport.
POST /v1/admin/catalog/bulk           — Bulk upsert operator-entered rows.
GET  /v1/admin/sync/requests          — Per-sport sync state.
GET  /v1/admin/sync/history           — Recent sync runs, newest first.
"""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from shared.config import get_settings
from shared.models.domain import BulkCatalogRequest, SyncOptions
from shared.utils.logging import get_logger

from api.dependencies import get_sync_service, require_admin
from catalog.sync import CatalogSyncService

logger = get_logger(__name__)
router = APIRouter(
    prefix="/v1/admin",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
)


@router.post("/sports/sync", response_model=None)
async def sync_sports(
    sync: CatalogSyncService = Depends(get_sync_service),
) -> dict[str, Any] | JSONResponse:
    outcome = await sync.sync_sports()
    if not outcome.ok:
        return JSONResponse(status_code=502, content=outcome.to_wire())
    return outcome.to_wire()


@router.post("/sports/{sport_id}/sync", response_model=None)
async def sync_sport_catalog(
    sport_id: str,
    sync: CatalogSyncService = Depends(get_sync_service),
) -> dict[str, Any] | JSONResponse:
    outcome = await sync.sync_sport_catalog(sport_id, SyncOptions.full(get_settings(), force=True))
    if not outcome.ok:
        return JSONResponse(status_code=502, content=outcome.to_wire())
    return outcome.to_wire()


@router.post("/catalog/bulk")
async def bulk_upsert(
    body: BulkCatalogRequest,
    sync: CatalogSyncService = Depends(get_sync_service),
) -> dict[str, Any]:
    result = await sync.bulk_upsert(body)
    return {"ok": True, **result.to_wire()}


@router.get("/sync/requests")
async def list_sync_requests(
    sync: CatalogSyncService = Depends(get_sync_service),
) -> dict[str, Any]:
    return {"requests": await sync.list_requests()}


@router.get("/sync/history")
async def list_sync_history(
    limit: int = Query(default=50, ge=1, le=50),
    sync: CatalogSyncService = Depends(get_sync_service),
) -> dict[str, Any]:
    return {"history": await sync.list_history(limit)}
