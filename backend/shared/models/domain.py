"""
Pydantic v2 domain models for the catalog, sync state and feed cache.
Serialized with camelCase aliases so the stored document keeps its wire shape.
"""
from __future__ import annotations

import secrets
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from shared.models.enums import EntityType, SyncStatus, SyncType

if TYPE_CHECKING:
    from shared.config import Settings


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id(prefix: str) -> str:
    """Mint a record id such as ``tea_3f9a0c1d2b4e5f60``."""
    return f"{prefix}_{secrets.token_hex(8)}"


# ── Base ────────────────────────────────────────────────────────────────
class DomainModel(BaseModel):
    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class FrozenModel(DomainModel):
    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        alias_generator=to_camel,
        frozen=True,
    )


# ── Catalog entities ────────────────────────────────────────────────────
class Sport(DomainModel):
    id: str
    name: str
    slug: str
    popular: bool = False
    external_source: Optional[str] = None
    external_id: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)


class League(DomainModel):
    id: str
    sport_id: str
    name: str
    slug: str
    external_source: Optional[str] = None
    external_id: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)


class Team(DomainModel):
    id: str
    sport_id: str
    name: str
    slug: str
    external_source: Optional[str] = None
    external_id: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)


class Player(DomainModel):
    id: str
    sport_id: str
    team_id: Optional[str] = None
    name: str
    external_source: Optional[str] = None
    external_id: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)


class Follow(DomainModel):
    id: str = Field(default_factory=lambda: new_id("fol"))
    user_id: str
    entity_type: EntityType
    entity_id: str
    created_at: datetime = Field(default_factory=utcnow)


# ── Sync bookkeeping ────────────────────────────────────────────────────
class CatalogSyncState(DomainModel):
    last_attempt_at: Optional[datetime] = None
    last_success_at: Optional[datetime] = None
    status: Optional[SyncStatus] = None
    timed_out: bool = False
    touched_teams: int = 0
    touched_players: int = 0
    touched_leagues: int = 0
    created_teams: int = 0
    created_players: int = 0
    created_leagues: int = 0
    error: Optional[str] = None


class SyncHistoryEntry(FrozenModel):
    id: str = Field(default_factory=lambda: new_id("syn"))
    at: datetime = Field(default_factory=utcnow)
    source: str
    type: SyncType
    status: SyncStatus
    sport_id: Optional[str] = None
    counts: dict[str, int] = Field(default_factory=dict)
    timed_out: bool = False
    error: Optional[str] = None


class SyncOptions(DomainModel):
    force: bool = False
    max_teams: int = 120
    max_leagues: int = 8
    players_per_team_cap: int = 30
    max_player_teams: int = 20
    max_duration_ms: int = 25_000
    cooldown_ms: int = 6 * 60 * 60 * 1000

    @classmethod
    def full(cls, settings: "Settings", *, force: bool = True) -> "SyncOptions":
        """Operator-triggered crawl with the wide caps."""
        return cls(
            force=force,
            max_teams=settings.sync_max_teams,
            max_leagues=settings.sync_max_leagues,
            players_per_team_cap=settings.sync_players_per_team_cap,
            max_player_teams=settings.sync_max_player_teams,
            max_duration_ms=settings.sync_max_duration_ms,
            cooldown_ms=settings.sync_cooldown_ms,
        )

    @classmethod
    def interactive(cls, settings: "Settings") -> "SyncOptions":
        """Caps for the "open sport" action, which must answer within seconds."""
        return cls(
            force=False,
            max_teams=settings.open_max_teams,
            max_leagues=settings.open_max_leagues,
            players_per_team_cap=settings.open_players_per_team_cap,
            max_player_teams=settings.open_max_player_teams,
            max_duration_ms=settings.open_max_duration_ms,
            cooldown_ms=settings.sync_cooldown_ms,
        )


class SyncOutcome(DomainModel):
    ok: bool
    status: Optional[SyncStatus] = None
    skipped: bool = False
    timed_out: bool = False
    created_teams: int = 0
    created_players: int = 0
    created_leagues: int = 0
    touched_teams: int = 0
    reason: Optional[str] = None
    error: Optional[str] = None


class SportsSyncOutcome(DomainModel):
    ok: bool
    status: SyncStatus
    created_sports: int = 0
    touched_sports: int = 0
    reason: Optional[str] = None
    error: Optional[str] = None


class BulkCatalogRow(DomainModel):
    """Admin-entered row; the owning sport is given by id or by name."""

    name: str
    sport_id: Optional[str] = None
    sport: Optional[str] = None
    team: Optional[str] = None
    external_id: Optional[str] = None
    external_source: Optional[str] = None


class BulkCatalogRequest(DomainModel):
    sports: list[BulkCatalogRow] = Field(default_factory=list)
    leagues: list[BulkCatalogRow] = Field(default_factory=list)
    teams: list[BulkCatalogRow] = Field(default_factory=list)
    players: list[BulkCatalogRow] = Field(default_factory=list)


class BulkCatalogResult(DomainModel):
    created: dict[str, int] = Field(default_factory=dict)
    total: dict[str, int] = Field(default_factory=dict)


# ── Feed ────────────────────────────────────────────────────────────────
class Highlight(FrozenModel):
    league: str = ""
    title: str = ""
    date: Optional[str] = None
    time: Optional[str] = None


class NewsItem(FrozenModel):
    title: str
    link: str = ""
    published_at: Optional[str] = None
    source: str = ""


class FeedCacheEntry(FrozenModel):
    fetched_at: datetime
    highlights: list[Highlight] = Field(default_factory=list)
    news: list[NewsItem] = Field(default_factory=list)


class SportRef(DomainModel):
    id: str
    name: str
    slug: str


class FeedCounts(DomainModel):
    teams: int = 0
    players: int = 0
    leagues: int = 0


class FeedSection(DomainModel):
    sport: SportRef
    counts: FeedCounts
    highlights: list[Highlight] = Field(default_factory=list)
    news: list[NewsItem] = Field(default_factory=list)


class FeedResponse(DomainModel):
    sections: list[FeedSection] = Field(default_factory=list)
    total: int = 0


class InterestSelection(DomainModel):
    sport_ids: list[str] = Field(default_factory=list)
    team_ids: list[str] = Field(default_factory=list)
    player_ids: list[str] = Field(default_factory=list)
    league_ids: list[str] = Field(default_factory=list)


# ── Record store document ───────────────────────────────────────────────
class CatalogDocument(DomainModel):
    """
    The whole persisted record store.

    Collections owned by the surrounding application (users, sessions, ...)
    are carried through untouched as extra fields.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        alias_generator=to_camel,
        extra="allow",
    )

    sports: list[Sport] = Field(default_factory=list)
    leagues: list[League] = Field(default_factory=list)
    teams: list[Team] = Field(default_factory=list)
    players: list[Player] = Field(default_factory=list)
    follows: list[Follow] = Field(default_factory=list)
    user_sport_order: dict[str, list[str]] = Field(default_factory=dict)
    catalog_sync_state: dict[str, CatalogSyncState] = Field(default_factory=dict)
    feed_cache_by_sport: dict[str, dict[str, FeedCacheEntry]] = Field(default_factory=dict)
    sync_history: list[SyncHistoryEntry] = Field(default_factory=list)

    def sport_by_id(self, sport_id: str) -> Optional[Sport]:
        return next((s for s in self.sports if s.id == sport_id), None)

    def follows_for(self, user_id: str) -> list[Follow]:
        return [f for f in self.follows if f.user_id == user_id]
