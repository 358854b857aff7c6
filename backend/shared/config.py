"""
Central configuration for the Sports One catalog and feed services.
Uses pydantic-settings for env-based config with validation.
"""
from __future__ import annotations

from enum import Enum
from functools import lru_cache

from pydantic import AliasChoices, Field, RedisDsn
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    DEV = "dev"
    STAGING = "staging"
    PRODUCTION = "production"


class StoreBackend(str, Enum):
    FILE = "file"
    REDIS = "redis"


DEFAULT_SOCCER_FALLBACK_COUNTRIES = [
    "England",
    "Spain",
    "Germany",
    "Italy",
    "France",
    "Netherlands",
    "Portugal",
    "Brazil",
    "Argentina",
    "United States",
    "Mexico",
    "Turkey",
]


class Settings(BaseSettings):
    """Root settings shared by the API, sync and feed layers."""

    model_config = SettingsConfigDict(
        env_prefix="SO_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # ── General ──────────────────────────────────────────────
    environment: Environment = Environment.DEV
    debug: bool = False
    log_level: str = "INFO"
    instance_id: str = Field(default="", description="Pod/container ID bound into every log line")

    # ── Record store ─────────────────────────────────────────
    store_backend: StoreBackend = StoreBackend.FILE
    store_path: str = "data/store.json"
    store_redis_key: str = "sportsone:store"
    redis_url: RedisDsn = Field(default="redis://redis:6379/0")
    redis_max_connections: int = 20

    # ── API ──────────────────────────────────────────────────
    api_host: str = "0.0.0.0"
    api_port: int = 3000
    cors_origins: list[str] = ["*"]
    admin_token: str = ""

    # ── Provider ─────────────────────────────────────────────
    sportsdb_base_url: str = "https://www.thesportsdb.com/api/v1/json"
    sportsdb_api_key: str = Field(
        default="3",
        validation_alias=AliasChoices("SO_SPORTSDB_API_KEY", "SPORTSDB_API_KEY"),
    )
    sportsdb_max_retries: int = Field(
        default=2,
        ge=0,
        validation_alias=AliasChoices("SO_SPORTSDB_MAX_RETRIES", "SPORTSDB_MAX_RETRIES"),
    )
    provider_request_timeout_s: float = 10.0

    # ── News ─────────────────────────────────────────────────
    news_search_url: str = "https://news.google.com/rss/search"
    news_request_timeout_s: float = 10.0
    news_items_limit: int = 3

    # ── Catalog sync (full / admin) ──────────────────────────
    sync_max_teams: int = 120
    sync_max_leagues: int = 8
    sync_players_per_team_cap: int = 30
    sync_max_player_teams: int = 20
    sync_max_duration_ms: int = 25_000
    sync_cooldown_ms: int = 6 * 60 * 60 * 1000

    # ── Catalog sync (interactive "open sport") ──────────────
    open_max_teams: int = 40
    open_max_leagues: int = 3
    open_players_per_team_cap: int = 15
    open_max_player_teams: int = 6
    open_max_duration_ms: int = 6_000

    # ── Sync policy ──────────────────────────────────────────
    rich_catalog_min_teams: int = 40
    rich_catalog_min_players: int = 80
    soccer_fallback_min_teams: int = 40
    soccer_fallback_countries: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SOCCER_FALLBACK_COUNTRIES)
    )
    sync_history_limit: int = 50

    # ── Feed cache ───────────────────────────────────────────
    feed_cache_ttl_s: float = 300.0
    feed_cache_max_variants: int = 8
    feed_max_live_refreshes: int = 2
    feed_soft_timeout_ms: int = 1800
    feed_items_per_section: int = 3
    highlights_max_leagues: int = 2

    # ── Observability ────────────────────────────────────────
    metrics_enabled: bool = False
    metrics_port: int = 9090

    @property
    def redis_url_str(self) -> str:
        return str(self.redis_url)

    @property
    def sportsdb_url(self) -> str:
        """Versioned base URL with the API key as a path segment."""
        return f"{self.sportsdb_base_url.rstrip('/')}/{self.sportsdb_api_key}"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Singleton access to validated settings."""
    return Settings()
