"""
Tests for rebuilding group membership from persisted fixtures.
"""

import logging

import pytest

from padelpro.services.fixture_generator import generate_group_fixtures
from padelpro.services.format_rules import SchedulingMode, TournamentFormat
from padelpro.services.playoff_engine import next_round
from padelpro.services.seeding import SeedingMethod, seed_pairs
from padelpro.services.tournament_state import PairEntry, RatedPlayer, TournamentSnapshot
from padelpro.utils.group_assignment import assign_groups
from padelpro.utils.group_reconstruction import detect_mode, reconstruct_groups


def _pairs(n):
    return [PairEntry(id=i, player1_id=2 * i - 1, player2_id=2 * i) for i in range(1, n + 1)]


def _players(pairs):
    players = []
    for pair in pairs:
        rating = 1100 + 25 * ((pair.id * 7) % 11)
        players.append(RatedPlayer(id=pair.player1_id, name="a", global_rating=rating))
        players.append(RatedPlayer(id=pair.player2_id, name="b", global_rating=rating))
    return players


@pytest.mark.parametrize(
    "fmt,count,courts",
    [
        (TournamentFormat.mini_8, 8, 4),
        (TournamentFormat.mini_10, 10, 5),
        (TournamentFormat.mini_12, 12, 6),
        (TournamentFormat.mini_12, 12, 3),
        (TournamentFormat.mini_16, 16, 8),
        (TournamentFormat.mini_16, 16, 6),
    ],
)
def test_reconstruction_is_idempotent(fmt, count, courts):
    pairs = _pairs(count)
    players = _players(pairs)
    groups = assign_groups(seed_pairs(pairs, players, SeedingMethod.elo_mixed), fmt, mixed=True)
    fixtures = generate_group_fixtures(groups, fmt, courts)

    rebuilt = reconstruct_groups(pairs, fixtures, players, fmt)

    assert {g.id: set(g.pair_ids) for g in rebuilt} == {g.id: set(g.pair_ids) for g in groups}
    # Seed order within each group is recovered too
    assert [g.pair_ids for g in rebuilt] == [g.pair_ids for g in groups]


def test_knockout_fixtures_are_ignored():
    fmt = TournamentFormat.mini_8
    pairs = _pairs(8)
    groups = assign_groups(pairs, fmt)
    fixtures = generate_group_fixtures(groups, fmt, 4)
    for f in fixtures:
        f.score_a, f.score_b = 6, 3

    snapshot = TournamentSnapshot(format=fmt, court_count=4, current_round=3, pairs=pairs, fixtures=fixtures, groups=groups)
    fixtures = fixtures + next_round(snapshot, 4)

    rebuilt = reconstruct_groups(pairs, fixtures, [], fmt)
    assert [g.pair_ids for g in rebuilt] == [g.pair_ids for g in groups]


def test_detect_mode():
    fmt = TournamentFormat.mini_16
    groups = assign_groups(_pairs(16), fmt)
    assert detect_mode(generate_group_fixtures(groups, fmt, 8), fmt) == SchedulingMode.simultaneous
    assert detect_mode(generate_group_fixtures(groups, fmt, 6), fmt) == SchedulingMode.rotational
    assert detect_mode([], TournamentFormat.mini_8) == SchedulingMode.simultaneous


def test_falls_back_to_balanced_groups_when_fixtures_missing(caplog):
    fmt = TournamentFormat.mini_8
    pairs = _pairs(8)
    players = _players(pairs)
    fixtures = [f for f in generate_group_fixtures(assign_groups(pairs, fmt), fmt, 4) if f.round != 1]

    with caplog.at_level(logging.WARNING):
        rebuilt = reconstruct_groups(pairs, fixtures, players, fmt)

    expected = assign_groups(seed_pairs(pairs, players, SeedingMethod.elo_balanced), fmt)
    assert [g.pair_ids for g in rebuilt] == [g.pair_ids for g in expected]
    assert "regenerating" in caplog.text


def test_fallback_skips_ineligible_pairs():
    fmt = TournamentFormat.mini_8
    pairs = _pairs(10)
    players = _players(pairs)
    pairs[2].status = "pending"
    pairs[5].player2_id = None
    rebuilt = reconstruct_groups(pairs, [], players, fmt)
    assigned = {pid for g in rebuilt for pid in g.pair_ids}
    assert assigned == set(range(1, 11)) - {3, 6}


def test_fallback_seeds_late_strong_pairs_into_the_groups():
    fmt = TournamentFormat.mini_8
    pairs = _pairs(10)
    players = []
    for pair in pairs:
        rating = 1800 if pair.id > 8 else 1000 + pair.id
        players.append(RatedPlayer(id=pair.player1_id, name="a", global_rating=rating))
        players.append(RatedPlayer(id=pair.player2_id, name="b", global_rating=rating))

    rebuilt = reconstruct_groups(pairs, [], players, fmt)

    assert rebuilt[0].pair_ids[:2] == [9, 10]
    assigned = {pid for g in rebuilt for pid in g.pair_ids}
    assert assigned == {3, 4, 5, 6, 7, 8, 9, 10}
