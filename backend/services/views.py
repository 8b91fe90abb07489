"""View data handed from the aggregation layer to the templates and JSON routes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from clients.schema import Match

TREND_UP = "up"
TREND_DOWN = "down"
TREND_NEUTRAL = "neutral"


@dataclass
class OverallStats:
    total_matches: int
    wins: int
    losses: int
    win_rate: float
    pilot_count: Optional[int] = None


@dataclass
class OpponentStats:
    opponent_id: str
    name: str
    wins: int
    losses: int
    total: int
    win_rate: float


@dataclass
class VersionStats:
    version: int
    wins: int
    losses: int
    total: int
    win_rate: float
    trend: str = TREND_NEUTRAL


@dataclass
class RecentMatch:
    match_id: str
    opponent: str
    opponent_version: int
    won: bool
    created_at: str
    is_manual: bool
    pilot_name: Optional[str] = None
    pilot_version: Optional[int] = None


@dataclass
class PilotHeader:
    id: str
    name: str
    owner_id: str
    current_version: int
    creator: str
    creator_avatar: Optional[str]
    is_own: bool


@dataclass
class PilotStatsView:
    pilot: PilotHeader
    overall: OverallStats
    opponents: List[OpponentStats]
    versions: List[VersionStats]
    recent_matches: List[RecentMatch]
    matches: List[Match] = field(default_factory=list)


@dataclass
class VersionStatsView:
    pilot_name: str
    version: int
    overall: OverallStats
    opponents: List[OpponentStats]
    recent_matches: List[RecentMatch]


@dataclass
class HomePilotRow:
    id: str
    name: str
    version: int
    owner_id: str
    creator: str
    creator_avatar: Optional[str]
    is_own: bool


@dataclass
class TeamView:
    aip_id: str
    aip_name: str
    version: int
    winner: bool


@dataclass
class HomeMatchRow:
    id: str
    created_at: str
    is_manual: bool
    team_a: TeamView
    team_b: TeamView
    winner: str
    download_url: Optional[str]


@dataclass
class PilotSummary:
    name: str
    current_version: int
    total_matches: int
    wins: int
    losses: int
    win_rate: float


@dataclass
class UserStatsView:
    owner_id: str
    username: str
    avatar_url: Optional[str]
    overall: OverallStats
    pilots: List[PilotSummary]
    recent_matches: List[RecentMatch]


@dataclass
class UserDirectoryRow:
    owner_id: str
    username: str
    avatar_url: Optional[str]
    pilot_names: List[str]
    total_matches: int
    wins: int
    win_rate: float

    @property
    def pilot_count(self) -> int:
        return len(self.pilot_names)


@dataclass
class UploadNames:
    my_names: List[str]
    other_names: List[str]
