"""
Catalog sync orchestrator.

Drives a bounded crawl for one sport: leagues → teams → players, under
caps and a wall-clock budget. Every stage checks the budget before issuing
another provider call; once it is spent iteration stops but everything
already merged is kept. Repeated runs converge the catalog because merging
is idempotent.

State (CatalogSyncState) and history (SyncHistoryEntry) are written only
here. The document is loaded once per run and saved once at the end.
"""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Optional

from shared.config import Settings, get_settings
from shared.errors import ProviderError, SportNotFound
from shared.models.domain import (
    BulkCatalogRequest,
    BulkCatalogResult,
    CatalogDocument,
    CatalogSyncState,
    SportsSyncOutcome,
    Sport,
    SyncHistoryEntry,
    SyncOptions,
    SyncOutcome,
    Team,
    utcnow,
)
from shared.models.enums import SyncStatus, SyncType
from shared.store import RecordStore
from shared.utils.logging import get_logger
from shared.utils.metrics import CATALOG_SYNC_DURATION, CATALOG_SYNC_RUNS

from catalog.merge import PROVIDER_SOURCE, CatalogMerger, real_catalog_counts
from catalog.normalize import SOCCER, clean_external_id, normalize_name
from ingest.providers.thesportsdb import TheSportsDBClient

logger = get_logger(__name__)

ADMIN_SOURCE = "admin"


@dataclass
class CrawlProgress:
    """Counters and budget for one sync run."""

    max_duration_ms: int
    clock: Callable[[], float]
    started: float = 0.0
    timed_out: bool = False
    touched_leagues: int = 0
    touched_teams: int = 0
    touched_players: int = 0
    created_leagues: int = 0
    created_teams: int = 0
    created_players: int = 0
    player_teams: int = 0
    seen_team_ids: set[str] = field(default_factory=set)

    def __post_init__(self) -> None:
        self.started = self.clock()

    def time_up(self) -> bool:
        if self.timed_out:
            return True
        if (self.clock() - self.started) * 1000 >= self.max_duration_ms:
            self.timed_out = True
        return self.timed_out

    @property
    def produced(self) -> bool:
        return (self.touched_leagues + self.touched_teams + self.touched_players) > 0

    def counts(self) -> dict[str, int]:
        return {
            "touchedLeagues": self.touched_leagues,
            "touchedTeams": self.touched_teams,
            "touchedPlayers": self.touched_players,
            "createdLeagues": self.created_leagues,
            "createdTeams": self.created_teams,
            "createdPlayers": self.created_players,
        }


def classify_status(real: dict[str, int], timed_out: bool) -> SyncStatus:
    if timed_out:
        return SyncStatus.PARTIAL
    if real["teams"] or real["players"]:
        return SyncStatus.OK
    if real["leagues"]:
        return SyncStatus.PARTIAL
    return SyncStatus.NO_DATA


class CatalogSyncService:
    """Entry point for sport catalog crawls, sports list pulls and admin bulk upserts."""

    def __init__(
        self,
        store: RecordStore,
        provider: TheSportsDBClient,
        settings: Settings | None = None,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._provider = provider
        self._settings = settings or get_settings()
        self._clock = clock
        self._now = now

    # ── Sport catalog crawl ─────────────────────────────────────────────

    async def sync_sport_catalog(
        self, sport_id: str, options: Optional[SyncOptions] = None
    ) -> SyncOutcome:
        """
        Pull leagues, teams and players for one sport and merge them.

        Raises:
            SportNotFound: before any state is written.
        """
        options = options or SyncOptions.full(self._settings)
        doc = await self._store.load()
        sport = doc.sport_by_id(sport_id)
        if sport is None:
            raise SportNotFound(sport_id)

        now = self._now()
        state = doc.catalog_sync_state.get(sport.id)
        if self._should_skip(doc, sport, state, options, now):
            logger.info("catalog_sync_skipped", sport_id=sport.id, sport=sport.name)
            return SyncOutcome(
                ok=True,
                skipped=True,
                status=state.status if state else None,
                timed_out=state.timed_out if state else False,
            )

        merger = CatalogMerger(doc)
        progress = CrawlProgress(max_duration_ms=options.max_duration_ms, clock=self._clock)
        error: Optional[str] = None
        logger.info(
            "catalog_sync_started",
            sport_id=sport.id,
            sport=sport.name,
            force=options.force,
            max_teams=options.max_teams,
            max_duration_ms=options.max_duration_ms,
        )
        try:
            await self._crawl(merger, sport, options, progress)
        except ProviderError as exc:
            error = exc.message
            logger.error("catalog_sync_provider_error", sport_id=sport.id, error=error)

        # Only the league pull propagates here, before anything is merged.
        real = real_catalog_counts(doc, sport.id)
        if error is not None and not progress.produced:
            status = SyncStatus.ERROR
        elif error is not None:
            status = SyncStatus.PARTIAL
        else:
            status = classify_status(real, progress.timed_out)

        self._record_state(doc, sport, status, progress, now, error)
        self._append_history(
            doc,
            SyncHistoryEntry(
                at=now,
                source=PROVIDER_SOURCE,
                type=SyncType.SPORT_CATALOG,
                status=status,
                sport_id=sport.id,
                counts=progress.counts(),
                timed_out=progress.timed_out,
                error=error,
            ),
        )
        await self._store.save(doc)

        CATALOG_SYNC_RUNS.labels(status=status.value).inc()
        CATALOG_SYNC_DURATION.observe(self._clock() - progress.started)
        logger.info(
            "catalog_sync_completed",
            sport_id=sport.id,
            status=status.value,
            timed_out=progress.timed_out,
            real_teams=real["teams"],
            real_players=real["players"],
            real_leagues=real["leagues"],
            **progress.counts(),
        )

        if status == SyncStatus.ERROR:
            return SyncOutcome(ok=False, status=status, reason="provider_error", error=error)
        return SyncOutcome(
            ok=True,
            status=status,
            timed_out=progress.timed_out,
            created_teams=progress.created_teams,
            created_players=progress.created_players,
            created_leagues=progress.created_leagues,
            touched_teams=progress.touched_teams,
            error=error,
        )

    def _should_skip(
        self,
        doc: CatalogDocument,
        sport: Sport,
        state: Optional[CatalogSyncState],
        options: SyncOptions,
        now: datetime,
    ) -> bool:
        if options.force or state is None or state.last_success_at is None:
            return False
        since_ms = (now - state.last_success_at).total_seconds() * 1000
        if since_ms >= options.cooldown_ms:
            return False
        real = real_catalog_counts(doc, sport.id)
        return (
            real["teams"] >= self._settings.rich_catalog_min_teams
            or real["players"] >= self._settings.rich_catalog_min_players
        )

    async def _crawl(
        self,
        merger: CatalogMerger,
        sport: Sport,
        options: SyncOptions,
        progress: CrawlProgress,
    ) -> None:
        if progress.time_up():
            return

        league_rows = await self._provider.all_leagues()
        target = normalize_name(sport.name)
        retained = []
        retained_ids: set[str] = set()
        for row in league_rows:
            if normalize_name(row.get("strSport")) != target:
                continue
            result = merger.merge_provider_league(sport.id, row)
            if result is None or result.entity.id in retained_ids:
                continue
            retained_ids.add(result.entity.id)
            retained.append(result.entity)
            progress.touched_leagues += 1
            progress.created_leagues += int(result.created)

        for league in retained[: options.max_leagues]:
            if progress.time_up() or progress.touched_teams >= options.max_teams:
                break
            try:
                team_rows = await self._provider.teams_by_league(league.name)
            except ProviderError as exc:
                logger.warning("catalog_sync_league_skipped", league=league.name, error=exc.message)
                continue
            await self._merge_teams(merger, sport, team_rows, options, progress)

        if self._needs_soccer_country_fallback(sport, options, progress):
            await self._soccer_country_fallback(merger, sport, options, progress)

    async def _merge_teams(
        self,
        merger: CatalogMerger,
        sport: Sport,
        rows: list[dict[str, Any]],
        options: SyncOptions,
        progress: CrawlProgress,
    ) -> None:
        # Rows already fetched are merged even once the budget is spent; only
        # further provider calls are cut.
        for row in rows:
            if progress.touched_teams >= options.max_teams:
                return
            external_id = clean_external_id(row.get("idTeam"))
            if external_id and external_id in progress.seen_team_ids:
                continue
            result = merger.merge_provider_team(sport.id, row)
            if result is None:
                continue
            if external_id:
                progress.seen_team_ids.add(external_id)
            progress.touched_teams += 1
            progress.created_teams += int(result.created)
            await self._expand_players(merger, sport, result.entity, options, progress)

    async def _expand_players(
        self,
        merger: CatalogMerger,
        sport: Sport,
        team: Team,
        options: SyncOptions,
        progress: CrawlProgress,
    ) -> None:
        if not team.external_id or progress.player_teams >= options.max_player_teams:
            return
        if progress.time_up():
            return
        progress.player_teams += 1
        try:
            rows = await self._provider.players_by_team(team.external_id)
        except ProviderError as exc:
            logger.warning("catalog_sync_roster_skipped", team=team.name, error=exc.message)
            return
        merged = 0
        for row in rows:
            if merged >= options.players_per_team_cap:
                break
            result = merger.merge_provider_player(sport.id, row, team_id=team.id)
            if result is None:
                continue
            merged += 1
            progress.touched_players += 1
            progress.created_players += int(result.created)

    # Soccer leagues listed by the provider are a small slice of the clubs it
    # knows about, so a thin league pass is topped up country by country.
    def _needs_soccer_country_fallback(
        self, sport: Sport, options: SyncOptions, progress: CrawlProgress
    ) -> bool:
        if normalize_name(sport.name) != SOCCER:
            return False
        threshold = min(options.max_teams, self._settings.soccer_fallback_min_teams)
        return progress.touched_teams < threshold

    async def _soccer_country_fallback(
        self,
        merger: CatalogMerger,
        sport: Sport,
        options: SyncOptions,
        progress: CrawlProgress,
    ) -> None:
        for country in self._settings.soccer_fallback_countries:
            if progress.time_up() or progress.touched_teams >= options.max_teams:
                return
            try:
                rows = await self._provider.teams_by_country(sport.name, country)
            except ProviderError as exc:
                logger.warning("catalog_sync_country_skipped", country=country, error=exc.message)
                continue
            await self._merge_teams(merger, sport, rows, options, progress)

    def _record_state(
        self,
        doc: CatalogDocument,
        sport: Sport,
        status: SyncStatus,
        progress: CrawlProgress,
        now: datetime,
        error: Optional[str],
    ) -> None:
        state = doc.catalog_sync_state.get(sport.id) or CatalogSyncState()
        state.last_attempt_at = now
        if progress.produced:
            state.last_success_at = now
        state.status = status
        state.timed_out = progress.timed_out
        state.touched_teams = progress.touched_teams
        state.touched_players = progress.touched_players
        state.touched_leagues = progress.touched_leagues
        state.created_teams = progress.created_teams
        state.created_players = progress.created_players
        state.created_leagues = progress.created_leagues
        state.error = error
        doc.catalog_sync_state[sport.id] = state

    def _append_history(self, doc: CatalogDocument, entry: SyncHistoryEntry) -> None:
        doc.sync_history.insert(0, entry)
        del doc.sync_history[self._settings.sync_history_limit :]

    # ── Sports list ─────────────────────────────────────────────────────

    async def sync_sports(self) -> SportsSyncOutcome:
        """Merge the provider's sports list into the catalog."""
        doc = await self._store.load()
        merger = CatalogMerger(doc)
        now = self._now()
        created = touched = 0
        error: Optional[str] = None
        try:
            rows = await self._provider.all_sports()
        except ProviderError as exc:
            rows = []
            error = exc.message
            logger.error("sports_sync_provider_error", error=error)

        for row in rows:
            result = merger.merge_provider_sport(row)
            if result is None:
                continue
            touched += 1
            created += int(result.created)

        if error is not None:
            status = SyncStatus.ERROR
        else:
            status = SyncStatus.OK if touched else SyncStatus.NO_DATA
        self._append_history(
            doc,
            SyncHistoryEntry(
                at=now,
                source=PROVIDER_SOURCE,
                type=SyncType.SPORTS,
                status=status,
                counts={"touchedSports": touched, "createdSports": created},
                error=error,
            ),
        )
        await self._store.save(doc)
        CATALOG_SYNC_RUNS.labels(status=status.value).inc()
        logger.info("sports_sync_completed", status=status.value, touched=touched, created=created)

        if status == SyncStatus.ERROR:
            return SportsSyncOutcome(ok=False, status=status, reason="provider_error", error=error)
        return SportsSyncOutcome(ok=True, status=status, created_sports=created, touched_sports=touched)

    # ── Admin bulk upsert ───────────────────────────────────────────────

    async def bulk_upsert(self, request: BulkCatalogRequest) -> BulkCatalogResult:
        """
        Merge admin-entered rows. Rows whose sport (or player team) cannot be
        resolved are skipped; compare ``created`` and ``total`` to see them.
        """
        doc = await self._store.load()
        merger = CatalogMerger(doc)
        created = {"sports": 0, "leagues": 0, "teams": 0, "players": 0}
        total = {
            "sports": len(request.sports),
            "leagues": len(request.leagues),
            "teams": len(request.teams),
            "players": len(request.players),
        }

        for row in request.sports:
            result = merger.upsert_sport(row.name, row.external_id, row.external_source)
            if result is not None:
                created["sports"] += int(result.created)

        for kind, rows in (("leagues", request.leagues), ("teams", request.teams)):
            upsert = merger.upsert_league if kind == "leagues" else merger.upsert_team
            for row in rows:
                sport = merger.find_sport(row.sport_id or row.sport or "")
                if sport is None:
                    continue
                result = upsert(sport.id, row.name, row.external_id, row.external_source)
                if result is not None:
                    created[kind] += int(result.created)

        for row in request.players:
            sport = merger.find_sport(row.sport_id or row.sport or "")
            if sport is None:
                continue
            team = merger.find_team(sport.id, row.team) if row.team else None
            result = merger.upsert_player(
                sport.id,
                row.name,
                row.external_id,
                row.external_source,
                team_id=team.id if team else None,
            )
            if result is not None:
                created["players"] += int(result.created)

        self._append_history(
            doc,
            SyncHistoryEntry(
                at=self._now(),
                source=ADMIN_SOURCE,
                type=SyncType.ADMIN_BULK,
                status=SyncStatus.OK if any(created.values()) else SyncStatus.NO_DATA,
                counts={f"created{k.title()}": v for k, v in created.items()},
            ),
        )
        await self._store.save(doc)
        logger.info("catalog_bulk_upsert", created=created, total=total)
        return BulkCatalogResult(created=created, total=total)

    # ── Read-only listings ──────────────────────────────────────────────

    async def list_requests(self) -> list[dict[str, Any]]:
        """Latest sync state per sport, most recently attempted first."""
        doc = await self._store.load()
        rows = []
        for sport_id, state in doc.catalog_sync_state.items():
            sport = doc.sport_by_id(sport_id)
            rows.append({
                "sportId": sport_id,
                "sportName": sport.name if sport else None,
                **state.to_wire(),
            })
        rows.sort(key=lambda r: r.get("lastAttemptAt") or "", reverse=True)
        return rows

    async def list_history(self, limit: Optional[int] = None) -> list[dict[str, Any]]:
        doc = await self._store.load()
        entries = doc.sync_history[:limit] if limit else doc.sync_history
        return [e.to_wire() for e in entries]
