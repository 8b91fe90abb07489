"""Win/loss rollups: tallies, opponent and version grouping, recent matches."""

from __future__ import annotations

from fakes import make_match
from services import stats
from services.views import TREND_DOWN, TREND_NEUTRAL, TREND_UP

NAMES = {"1": "alpha", "2": "beta", "3": "gamma", "4": "delta"}


def resolve(pilot_id: str) -> str:
    return NAMES.get(pilot_id, pilot_id)


def test_win_rate_zero_total_is_zero():
    assert stats.win_rate(0, 0) == 0.0
    assert stats.win_rate(3, 4) == 75.0


def test_outcome_for_each_side():
    m = make_match("m1", "1", 1, "2", 3, winner="TeamB")
    a = stats.outcome_for(m, "1")
    b = stats.outcome_for(m, "2")
    assert (a.own_version, a.opponent_id, a.opponent_version, a.won) == (1, "2", 3, False)
    assert (b.own_version, b.opponent_id, b.opponent_version, b.won) == (3, "1", 1, True)
    assert stats.outcome_for(m, "9") is None


def test_unknown_winner_counts_as_loss():
    m = make_match("m1", "1", 1, "2", 1, winner="Draw")
    outcomes = stats.outcomes_for([m], "1") + stats.outcomes_for([m], "2")
    assert [o.won for o in outcomes] == [False, False]


def test_alpha_scenario_overall_and_versions():
    """alpha wins once as team A v1 and loses once as team B v2."""
    matches = [
        make_match("m1", "1", 1, "2", 1, winner="TeamA", created_at=1_000),
        make_match("m2", "2", 1, "1", 2, winner="TeamA", created_at=2_000),
    ]
    outcomes = stats.outcomes_for(matches, "1")

    overall = stats.tally(outcomes)
    assert (overall.total_matches, overall.wins, overall.losses) == (2, 1, 1)
    assert overall.win_rate == 50.0

    versions = stats.group_by_version(outcomes)
    assert [(v.version, v.wins, v.losses, v.total) for v in versions] == [(2, 0, 1, 1), (1, 1, 0, 1)]
    assert [v.win_rate for v in versions] == [0.0, 100.0]
    assert [v.trend for v in versions] == [TREND_DOWN, TREND_NEUTRAL]


def test_version_trend_up_and_flat():
    matches = [
        make_match("m1", "1", 1, "2", 1, winner="TeamB"),
        make_match("m2", "1", 2, "2", 1, winner="TeamA"),
        make_match("m3", "1", 3, "2", 1, winner="TeamA"),
    ]
    versions = stats.group_by_version(stats.outcomes_for(matches, "1"))
    assert [v.version for v in versions] == [3, 2, 1]
    assert [v.trend for v in versions] == [TREND_NEUTRAL, TREND_UP, TREND_NEUTRAL]


def test_opponents_sorted_by_total_with_stable_ties():
    matches = [
        make_match("m1", "1", 1, "3", 1, winner="TeamA"),
        make_match("m2", "1", 1, "2", 1, winner="TeamA"),
        make_match("m3", "2", 1, "1", 1, winner="TeamA"),
        make_match("m4", "1", 1, "4", 1, winner="TeamB"),
    ]
    rows = stats.group_by_opponent(stats.outcomes_for(matches, "1"), resolve)
    assert [(r.name, r.total) for r in rows] == [("beta", 2), ("gamma", 1), ("delta", 1)]
    beta = rows[0]
    assert (beta.wins, beta.losses, beta.win_rate) == (1, 1, 50.0)


def test_tallies_are_consistent():
    matches = [
        make_match(f"m{i}", "1", 1, "2", 1, winner="TeamA" if i % 3 else "TeamB")
        for i in range(10)
    ]
    outcomes = stats.outcomes_for(matches, "1")
    overall = stats.tally(outcomes)
    assert overall.wins + overall.losses == overall.total_matches
    assert 0.0 <= overall.win_rate <= 100.0
    for row in stats.group_by_opponent(outcomes, resolve) + stats.group_by_version(outcomes):
        assert row.wins + row.losses == row.total
        assert 0.0 <= row.win_rate <= 100.0


def test_unresolved_opponent_falls_back_to_id():
    m = make_match("m1", "1", 1, "99", 1)
    rows = stats.group_by_opponent(stats.outcomes_for([m], "1"), resolve)
    assert rows[0].name == "99"


def test_recent_matches_newest_first_and_limited():
    matches = [
        make_match(f"m{i}", "1", 1, "2", 1, created_at=1_700_000_000_000 + i * 1000)
        for i in range(15)
    ]
    recent = stats.recent_matches(stats.outcomes_for(matches, "1"), resolve)
    assert len(recent) == 10
    assert recent[0].match_id == "m14"
    assert recent[0].opponent == "beta"
    assert recent[0].created_at == "2023-11-14 22:13:34"
    assert recent[0].pilot_name is None


def test_recent_cross_pilot_matches_tag_pilot():
    m1 = make_match("m1", "1", 2, "3", 1, created_at=1_000)
    m2 = make_match("m2", "3", 1, "2", 5, winner="TeamB", created_at=2_000)
    tagged = [("alpha", stats.outcome_for(m1, "1")), ("beta", stats.outcome_for(m2, "2"))]
    recent = stats.recent_cross_pilot_matches(tagged, resolve)
    assert [(r.pilot_name, r.pilot_version, r.won) for r in recent] == [
        ("beta", 5, True),
        ("alpha", 2, True),
    ]
