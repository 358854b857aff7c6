"""
Dependency injection for the API service.
Provides the record store, services, user context and admin guard to route handlers.
"""
from __future__ import annotations

import secrets
from dataclasses import dataclass
from typing import Optional

from fastapi import Header, HTTPException

from shared.config import get_settings
from shared.store import RecordStore

from catalog.sync import CatalogSyncService
from feed.assembler import FeedAssembler
from feed.interests import InterestService


@dataclass(frozen=True)
class UserContext:
    user_id: str
    is_authenticated: bool


@dataclass
class Services:
    store: RecordStore
    sync: CatalogSyncService
    feed: FeedAssembler
    interests: InterestService


# Module-level singleton, initialized at startup
_services: Services | None = None


def init_dependencies(services: Services) -> None:
    """Initialize module-level singletons. Called once at startup."""
    global _services
    _services = services


def reset_dependencies() -> None:
    global _services
    _services = None


def get_services() -> Services:
    if _services is None:
        raise RuntimeError("Services not initialized; call init_dependencies first")
    return _services


def get_sync_service() -> CatalogSyncService:
    return get_services().sync


def get_feed_assembler() -> FeedAssembler:
    return get_services().feed


def get_interest_service() -> InterestService:
    return get_services().interests


def get_user_context(x_user_id: Optional[str] = Header(default=None)) -> UserContext:
    user_id = (x_user_id or "").strip()
    return UserContext(user_id=user_id, is_authenticated=bool(user_id))


def require_user(x_user_id: Optional[str] = Header(default=None)) -> UserContext:
    ctx = get_user_context(x_user_id)
    if not ctx.is_authenticated:
        raise HTTPException(status_code=401, detail="X-User-Id header required")
    return ctx


def require_admin(x_admin_token: Optional[str] = Header(default=None)) -> None:
    expected = get_settings().admin_token
    if not expected or not x_admin_token or not secrets.compare_digest(x_admin_token, expected):
        raise HTTPException(status_code=403, detail="admin token required")
