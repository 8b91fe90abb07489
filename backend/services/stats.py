"""
Win/loss rollups over already-fetched matches.

Everything here is synchronous and remote-free: opponent names come from a
``resolve_name`` callable that the aggregation layer backs with the pilot
name cache (falling back to the raw id).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from clients.schema import Match, Winner
from utils.formatting import format_date_time, from_epoch_millis

from .views import (
    TREND_DOWN,
    TREND_NEUTRAL,
    TREND_UP,
    OpponentStats,
    OverallStats,
    RecentMatch,
    VersionStats,
)

NameResolver = Callable[[str], str]

RECENT_PILOT_MATCHES = 10
RECENT_USER_MATCHES = 20


def win_rate(wins: int, total: int) -> float:
    """Percentage of ``wins`` over ``total``; 0.0 when there is nothing to divide by."""
    if total <= 0:
        return 0.0
    return wins / total * 100.0


@dataclass(frozen=True)
class PilotOutcome:
    """One match seen from one pilot's side."""

    match: Match
    own_version: int
    opponent_id: str
    opponent_version: int
    won: bool


def outcome_for(match: Match, pilot_id: str) -> Optional[PilotOutcome]:
    """Return the match from ``pilot_id``'s perspective, or None if it did not play."""
    side = match.side_of(pilot_id)
    if side == "a":
        return PilotOutcome(
            match=match,
            own_version=match.team_a.version,
            opponent_id=match.team_b.aip_id,
            opponent_version=match.team_b.version,
            won=match.winner == Winner.TEAM_A,
        )
    if side == "b":
        return PilotOutcome(
            match=match,
            own_version=match.team_b.version,
            opponent_id=match.team_a.aip_id,
            opponent_version=match.team_a.version,
            won=match.winner == Winner.TEAM_B,
        )
    return None


def outcomes_for(matches: Iterable[Match], pilot_id: str) -> List[PilotOutcome]:
    result = []
    for m in matches:
        outcome = outcome_for(m, pilot_id)
        if outcome is not None:
            result.append(outcome)
    return result


def tally(outcomes: Sequence[PilotOutcome]) -> OverallStats:
    total = len(outcomes)
    wins = sum(1 for o in outcomes if o.won)
    return OverallStats(
        total_matches=total,
        wins=wins,
        losses=total - wins,
        win_rate=win_rate(wins, total),
    )


def group_by_opponent(
    outcomes: Sequence[PilotOutcome], resolve_name: NameResolver
) -> List[OpponentStats]:
    """Per-opponent tallies, most played first (ties keep first-seen order)."""
    counts: Dict[str, List[int]] = {}
    for o in outcomes:
        wins_losses = counts.setdefault(o.opponent_id, [0, 0])
        wins_losses[0 if o.won else 1] += 1

    rows = [
        OpponentStats(
            opponent_id=opponent_id,
            name=resolve_name(opponent_id),
            wins=wins,
            losses=losses,
            total=wins + losses,
            win_rate=win_rate(wins, wins + losses),
        )
        for opponent_id, (wins, losses) in counts.items()
    ]
    rows.sort(key=lambda r: r.total, reverse=True)
    return rows


def group_by_version(outcomes: Sequence[PilotOutcome]) -> List[VersionStats]:
    """Per-version tallies, newest version first, each tagged with its trend vs the next older one."""
    counts: Dict[int, List[int]] = {}
    for o in outcomes:
        wins_losses = counts.setdefault(o.own_version, [0, 0])
        wins_losses[0 if o.won else 1] += 1

    rows = [
        VersionStats(
            version=version,
            wins=wins,
            losses=losses,
            total=wins + losses,
            win_rate=win_rate(wins, wins + losses),
        )
        for version, (wins, losses) in counts.items()
    ]
    rows.sort(key=lambda r: r.version, reverse=True)

    for index, row in enumerate(rows):
        if index == len(rows) - 1:
            row.trend = TREND_NEUTRAL
            continue
        older = rows[index + 1].win_rate
        if row.win_rate > older:
            row.trend = TREND_UP
        elif row.win_rate < older:
            row.trend = TREND_DOWN
        else:
            row.trend = TREND_NEUTRAL
    return rows


def latest_first(outcomes: Sequence[PilotOutcome]) -> List[PilotOutcome]:
    return sorted(outcomes, key=lambda o: o.match.created_at, reverse=True)


def _recent_row(
    o: PilotOutcome, resolve_name: NameResolver, pilot_name: Optional[str] = None
) -> RecentMatch:
    return RecentMatch(
        match_id=o.match.id,
        opponent=resolve_name(o.opponent_id),
        opponent_version=o.opponent_version,
        won=o.won,
        created_at=format_date_time(from_epoch_millis(o.match.created_at)),
        is_manual=o.match.manual_run,
        pilot_name=pilot_name,
        pilot_version=o.own_version if pilot_name is not None else None,
    )


def recent_matches(
    outcomes: Sequence[PilotOutcome],
    resolve_name: NameResolver,
    limit: int = RECENT_PILOT_MATCHES,
) -> List[RecentMatch]:
    """The ``limit`` newest matches of one pilot, resolved for display."""
    return [_recent_row(o, resolve_name) for o in latest_first(outcomes)[:limit]]


def recent_cross_pilot_matches(
    tagged: Sequence[Tuple[str, PilotOutcome]],
    resolve_name: NameResolver,
    limit: int = RECENT_USER_MATCHES,
) -> List[RecentMatch]:
    """Newest matches across several pilots; ``tagged`` pairs each outcome with its pilot's name."""
    ordered = sorted(tagged, key=lambda pair: pair[1].match.created_at, reverse=True)
    return [_recent_row(o, resolve_name, pilot_name) for pilot_name, o in ordered[:limit]]
