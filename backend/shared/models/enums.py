"""Domain enumerations for the Sports One catalog."""
from __future__ import annotations

from enum import Enum


class ProviderName(str, Enum):
    THESPORTSDB = "thesportsdb"
    NEWS_RSS = "news_rss"


class EntityType(str, Enum):
    SPORT = "sport"
    LEAGUE = "league"
    TEAM = "team"
    PLAYER = "player"


class SyncStatus(str, Enum):
    OK = "ok"
    PARTIAL = "partial"
    NO_DATA = "no_data"
    ERROR = "error"


class SyncType(str, Enum):
    SPORT_CATALOG = "sport_catalog"
    SPORTS = "sports"
    ADMIN_BULK = "admin_bulk"


class CacheLookup(str, Enum):
    HIT = "hit"
    STALE = "stale"
    MISS = "miss"
