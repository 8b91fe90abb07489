"""
Aggregation layer between the page handlers and the remote data sources.

Owns the two read-through caches (pilot names, identity profiles) and turns
raw pilots/matches into view data. Remote failures on read paths are logged
and downgraded to empty results so pages still render; rollups only use
names already in the cache (at most one bulk pilot listing per call to fill
gaps), never one remote call per match.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from clients.api_client import CompetitionApiClient, RemoteError
from clients.schema import IdentityProfile, Match, Pilot, UploadResult, Winner
from clients.sso_client import SSOClient
from utils.formatting import discord_avatar_url, format_date_time, from_epoch_millis

from . import stats
from .cache import ReadThroughCache
from .views import (
    HomeMatchRow,
    HomePilotRow,
    OverallStats,
    PilotHeader,
    PilotStatsView,
    PilotSummary,
    TeamView,
    UploadNames,
    UserDirectoryRow,
    UserStatsView,
    VersionStatsView,
)

logger = logging.getLogger(__name__)

DEFAULT_CACHE_SIZE = 2048
DEFAULT_IDENTITY_TTL_SECONDS = 60 * 60 * 24


class AggregationService:
    """Cache-checked access to pilots, matches and identities, plus statistics rollups."""

    def __init__(
        self,
        api_client: CompetitionApiClient,
        sso_client: SSOClient,
        *,
        pilot_name_cache_size: int = DEFAULT_CACHE_SIZE,
        identity_cache_size: int = DEFAULT_CACHE_SIZE,
        identity_ttl_seconds: float = DEFAULT_IDENTITY_TTL_SECONDS,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self.api = api_client
        self.sso = sso_client
        self.pilot_names: ReadThroughCache[str, str] = ReadThroughCache.lru(
            "pilot-name", pilot_name_cache_size, self._fetch_pilot_name
        )
        self.identities: ReadThroughCache[str, IdentityProfile] = ReadThroughCache.ttl(
            "identity", identity_cache_size, identity_ttl_seconds, self._fetch_identity, timer=timer
        )

    async def aclose(self) -> None:
        await asyncio.gather(self.api.aclose(), self.sso.aclose())

    # --- cache fetchers -------------------------------------------------

    async def _fetch_pilot_name(self, pilot_id: str) -> Optional[str]:
        try:
            pilots = await self.api.list_pilots(pilot_id=pilot_id)
        except RemoteError as e:
            logger.error("Failed to fetch pilot %s: %s", pilot_id, e)
            return None
        return pilots[0].name if pilots else None

    async def _fetch_identity(self, user_id: str) -> Optional[IdentityProfile]:
        return await self.sso.fetch_user(user_id)

    # --- remote reads ---------------------------------------------------

    async def list_pilots(
        self, name: Optional[str] = None, pilot_id: Optional[str] = None
    ) -> List[Pilot]:
        """List pilots (optionally filtered) and warm the name cache with every result."""
        try:
            pilots = await self.api.list_pilots(name=name, pilot_id=pilot_id)
        except RemoteError as e:
            logger.error("Failed to fetch pilot list: %s", e)
            return []
        self.pilot_names.warm((p.id, p.name) for p in pilots)
        return pilots

    async def get_pilot_by_name(self, name: str) -> Optional[Pilot]:
        pilots = await self.list_pilots(name=name)
        for pilot in pilots:
            if pilot.name == name:
                return pilot
        return pilots[0] if pilots else None

    async def list_matches(
        self, pilot_id: Optional[str] = None, version: Optional[int] = None
    ) -> List[Match]:
        try:
            return await self.api.list_matches(pilot_id=pilot_id, pilot_version=version)
        except RemoteError as e:
            logger.error("Failed to fetch match results: %s", e)
            return []

    async def get_match(self, match_id: str) -> Optional[Match]:
        try:
            matches = await self.api.list_matches(match_id=match_id)
        except RemoteError as e:
            logger.error("Failed to fetch match result %s: %s", match_id, e)
            return None
        return matches[0] if matches else None

    async def upload_pilot(self, name: str, owner_id: str, data: bytes) -> UploadResult:
        """Upload a pilot binary. Raises RemoteError; write failures are not swallowed."""
        result = await self.api.upload_pilot(name, owner_id, data)
        logger.info("Uploaded pilot %s v%s for %s (%s)", name, result.version, owner_id, result.upload_id)
        return result

    async def prewarm(self) -> None:
        """Fill the pilot name cache (and touch the match endpoint) once at startup."""
        pilots, matches = await asyncio.gather(self.list_pilots(), self.list_matches())
        logger.info("Cache pre-warm: %d pilots, %d matches", len(pilots), len(matches))

    # --- name / identity resolution ------------------------------------

    async def pilot_name(self, pilot_id: str) -> str:
        """Pilot name via the read-through cache, or the raw id if unknown."""
        return await self.pilot_names.get_or_fetch(pilot_id) or pilot_id

    def cached_pilot_name(self, pilot_id: str) -> str:
        """Pilot name if cached, else the raw id. Never calls the remote."""
        return self.pilot_names.peek(pilot_id) or pilot_id

    async def identity(self, user_id: str) -> Optional[IdentityProfile]:
        return await self.identities.get_or_fetch(user_id)

    async def _ensure_names(self, pilot_ids: Iterable[str]) -> None:
        """One bulk listing if any of ``pilot_ids`` is not in the name cache."""
        missing = {pid for pid in pilot_ids if self.pilot_names.peek(pid) is None}
        if missing:
            logger.debug("%d pilot names not cached; refreshing pilot list", len(missing))
            await self.list_pilots()

    async def _creator(self, owner_id: str) -> Tuple[str, Optional[str]]:
        """(display name, avatar url) for a pilot owner, falling back to the raw id."""
        profile = await self.identity(owner_id)
        if profile is None:
            return owner_id, None
        return profile.username, _avatar(owner_id, profile)

    # --- rollups --------------------------------------------------------

    async def pilot_stats(
        self,
        pilot: Pilot,
        matches: Sequence[Match],
        viewer_id: Optional[str] = None,
    ) -> PilotStatsView:
        """Overall, per-opponent, per-version and recent-match stats for one pilot."""
        outcomes = stats.outcomes_for(matches, pilot.id)
        _, (creator, creator_avatar) = await asyncio.gather(
            self._ensure_names(o.opponent_id for o in outcomes),
            self._creator(pilot.owner_id),
        )
        resolve = self.cached_pilot_name
        return PilotStatsView(
            pilot=PilotHeader(
                id=pilot.id,
                name=pilot.name,
                owner_id=pilot.owner_id,
                current_version=pilot.current.version,
                creator=creator,
                creator_avatar=creator_avatar,
                is_own=viewer_id is not None and pilot.owner_id == viewer_id,
            ),
            overall=stats.tally(outcomes),
            opponents=stats.group_by_opponent(outcomes, resolve),
            versions=stats.group_by_version(outcomes),
            recent_matches=stats.recent_matches(outcomes, resolve),
            matches=list(matches),
        )

    async def pilot_stats_by_name(
        self, name: str, viewer_id: Optional[str] = None
    ) -> Optional[PilotStatsView]:
        pilot = await self.get_pilot_by_name(name)
        if pilot is None:
            return None
        matches = await self.list_matches(pilot_id=pilot.id)
        return await self.pilot_stats(pilot, matches, viewer_id=viewer_id)

    async def version_stats(self, name: str, version: int) -> Optional[VersionStatsView]:
        """Stats restricted to the matches ``name`` played with ``version``."""
        pilot = await self.get_pilot_by_name(name)
        if pilot is None:
            return None
        matches = await self.list_matches(pilot_id=pilot.id, version=version)
        outcomes = [o for o in stats.outcomes_for(matches, pilot.id) if o.own_version == version]
        await self._ensure_names(o.opponent_id for o in outcomes)
        resolve = self.cached_pilot_name
        return VersionStatsView(
            pilot_name=pilot.name,
            version=version,
            overall=stats.tally(outcomes),
            opponents=stats.group_by_opponent(outcomes, resolve),
            recent_matches=stats.recent_matches(outcomes, resolve),
        )

    async def user_stats(self, owner_id: str) -> Optional[UserStatsView]:
        """Stats across every pilot owned by ``owner_id``; None when they own no pilots."""
        all_pilots = await self.list_pilots()
        pilots = [p for p in all_pilots if p.owner_id == owner_id]
        if not pilots:
            return None

        per_pilot_matches, (username, avatar_url) = await asyncio.gather(
            asyncio.gather(*(self.list_matches(pilot_id=p.id) for p in pilots)),
            self._creator(owner_id),
        )

        summaries: List[PilotSummary] = []
        tagged: List[Tuple[str, stats.PilotOutcome]] = []
        wins = total = 0
        for pilot, matches in zip(pilots, per_pilot_matches):
            outcomes = stats.outcomes_for(matches, pilot.id)
            pilot_tally = stats.tally(outcomes)
            summaries.append(
                PilotSummary(
                    name=pilot.name,
                    current_version=pilot.current.version,
                    total_matches=pilot_tally.total_matches,
                    wins=pilot_tally.wins,
                    losses=pilot_tally.losses,
                    win_rate=pilot_tally.win_rate,
                )
            )
            tagged.extend((pilot.name, o) for o in outcomes)
            wins += pilot_tally.wins
            total += pilot_tally.total_matches

        summaries.sort(key=lambda s: s.total_matches, reverse=True)
        await self._ensure_names(o.opponent_id for _, o in tagged)

        return UserStatsView(
            owner_id=owner_id,
            username=username,
            avatar_url=avatar_url,
            overall=OverallStats(
                total_matches=total,
                wins=wins,
                losses=total - wins,
                win_rate=stats.win_rate(wins, total),
                pilot_count=len(pilots),
            ),
            pilots=summaries,
            recent_matches=stats.recent_cross_pilot_matches(tagged, self.cached_pilot_name),
        )

    async def users_overview(self) -> List[UserDirectoryRow]:
        """Every pilot owner with pilot names, match count and overall win rate."""
        pilots, matches = await asyncio.gather(self.list_pilots(), self.list_matches())

        wins_by_pilot: Dict[str, int] = {}
        total_by_pilot: Dict[str, int] = {}
        for m in matches:
            # a pilot playing itself is counted once, from the team A side
            for pilot_id in {m.team_a.aip_id, m.team_b.aip_id}:
                outcome = stats.outcome_for(m, pilot_id)
                total_by_pilot[pilot_id] = total_by_pilot.get(pilot_id, 0) + 1
                if outcome is not None and outcome.won:
                    wins_by_pilot[pilot_id] = wins_by_pilot.get(pilot_id, 0) + 1

        rows: Dict[str, UserDirectoryRow] = {}
        for pilot in pilots:
            row = rows.get(pilot.owner_id)
            if row is None:
                row = UserDirectoryRow(
                    owner_id=pilot.owner_id,
                    username=pilot.owner_id,
                    avatar_url=None,
                    pilot_names=[],
                    total_matches=0,
                    wins=0,
                    win_rate=0.0,
                )
                rows[pilot.owner_id] = row
            row.pilot_names.append(pilot.name)
            row.total_matches += total_by_pilot.get(pilot.id, 0)
            row.wins += wins_by_pilot.get(pilot.id, 0)

        creators = await asyncio.gather(*(self._creator(owner_id) for owner_id in rows))
        for row, (username, avatar_url) in zip(rows.values(), creators):
            row.username = username
            row.avatar_url = avatar_url
            row.win_rate = stats.win_rate(row.wins, row.total_matches)

        result = list(rows.values())
        result.sort(key=lambda r: (r.pilot_count, r.total_matches), reverse=True)
        return result

    # --- home page ------------------------------------------------------

    async def home_pilots(self, viewer_id: Optional[str] = None) -> List[HomePilotRow]:
        """All pilots, the viewer's own first, annotated with their creator."""
        pilots = await self.list_pilots()
        if viewer_id is not None:
            pilots.sort(key=lambda p: p.owner_id != viewer_id)

        creators = await asyncio.gather(*(self._creator(p.owner_id) for p in pilots))
        rows = []
        for pilot, (username, avatar_url) in zip(pilots, creators):
            is_own = viewer_id is not None and pilot.owner_id == viewer_id
            rows.append(
                HomePilotRow(
                    id=pilot.id,
                    name=pilot.name,
                    version=pilot.current.version,
                    owner_id=pilot.owner_id,
                    creator="You" if is_own else username,
                    creator_avatar=avatar_url,
                    is_own=is_own,
                )
            )
        return rows

    async def home_matches(self) -> List[HomeMatchRow]:
        """All matches, newest first, with team names and replay links."""
        matches = await self.list_matches()
        matches.sort(key=lambda m: m.created_at, reverse=True)
        await self._ensure_names(
            pid for m in matches for pid in (m.team_a.aip_id, m.team_b.aip_id)
        )
        return [self._match_row(m) for m in matches]

    def _match_row(self, m: Match) -> HomeMatchRow:
        team_a_name = self.cached_pilot_name(m.team_a.aip_id)
        team_b_name = self.cached_pilot_name(m.team_b.aip_id)
        if m.winner == Winner.TEAM_A:
            winner = team_a_name
        elif m.winner == Winner.TEAM_B:
            winner = team_b_name
        else:
            winner = "Unknown"
        return HomeMatchRow(
            id=m.id,
            created_at=format_date_time(from_epoch_millis(m.created_at)),
            is_manual=m.manual_run,
            team_a=TeamView(
                aip_id=m.team_a.aip_id,
                aip_name=team_a_name,
                version=m.team_a.version,
                winner=m.winner == Winner.TEAM_A,
            ),
            team_b=TeamView(
                aip_id=m.team_b.aip_id,
                aip_name=team_b_name,
                version=m.team_b.version,
                winner=m.winner == Winner.TEAM_B,
            ),
            winner=winner,
            download_url=self.api.replay_url(m.replay_id) if m.replay_id else None,
        )

    async def upload_names(self, owner_id: str) -> UploadNames:
        """Split pilot names into the caller's own and everybody else's."""
        pilots = await self.list_pilots()
        mine = [p.name for p in pilots if p.owner_id == owner_id]
        others = [p.name for p in pilots if p.owner_id != owner_id]
        return UploadNames(my_names=mine, other_names=others)


def _avatar(owner_id: str, profile: IdentityProfile) -> Optional[str]:
    if not profile.avatar:
        return None
    return discord_avatar_url(owner_id, profile.avatar)
