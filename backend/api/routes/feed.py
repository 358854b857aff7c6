"""
Home feed endpoint.

GET /v1/feed — One section per followed sport with highlights and news.
"""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from shared.utils.logging import get_logger

from api.dependencies import UserContext, get_feed_assembler, require_user
from feed.assembler import FeedAssembler

logger = get_logger(__name__)
router = APIRouter(prefix="/v1", tags=["feed"])


@router.get("/feed")
async def get_feed(
    user: UserContext = Depends(require_user),
    assembler: FeedAssembler = Depends(get_feed_assembler),
) -> dict[str, Any]:
    """
    Build the caller's home feed.

    Sections follow the user's explicit sport order. Fresh cached sections
    are served as-is; at most two stale sections per request are refreshed
    live, the rest fall back to cached or empty content.
    """
    feed = await assembler.build_feed(user.user_id)
    return feed.to_wire()
