"""
Tests for group-stage fixture generation.

Every format must produce a complete round robin inside each group, with
bracket slots matching the enumerated tables.
"""

from collections import Counter
from itertools import combinations

import pytest

from padelpro.services.fixture_generator import generate_group_fixtures
from padelpro.services.fixture_tables import membership_entries, schedule_table
from padelpro.services.format_rules import (
    Phase,
    SchedulingMode,
    TournamentFormat,
    group_round_count,
    scheduling_mode,
)
from padelpro.services.tournament_state import Group, PairEntry
from padelpro.utils.group_assignment import assign_groups


def _groups(fmt, count):
    pairs = [PairEntry(id=i, player1_id=2 * i - 1, player2_id=2 * i) for i in range(1, count + 1)]
    return assign_groups(pairs, fmt)


CASES = [
    (TournamentFormat.mini_8, 8, 4),
    (TournamentFormat.mini_10, 10, 5),
    (TournamentFormat.mini_12, 12, 6),
    (TournamentFormat.mini_12, 12, 4),
    (TournamentFormat.mini_16, 16, 8),
    (TournamentFormat.mini_16, 16, 6),
]


@pytest.mark.parametrize("fmt,count,courts", CASES)
def test_round_robin_completeness(fmt, count, courts):
    groups = _groups(fmt, count)
    fixtures = generate_group_fixtures(groups, fmt, courts)

    for group in groups:
        members = set(group.pair_ids)
        internal = [
            frozenset((f.pair_a_id, f.pair_b_id))
            for f in fixtures
            if f.pair_a_id in members and f.pair_b_id in members
        ]
        n = len(group.pair_ids)
        assert len(internal) == n * (n - 1) // 2
        assert set(internal) == {frozenset(c) for c in combinations(group.pair_ids, 2)}


@pytest.mark.parametrize("fmt,count,courts", CASES)
def test_fixtures_are_unscored_group_matches(fmt, count, courts):
    fixtures = generate_group_fixtures(_groups(fmt, count), fmt, courts)
    assert fixtures
    for f in fixtures:
        assert f.phase == Phase.group
        assert f.bracket is None
        assert not f.is_finished
        assert not f.is_placeholder


@pytest.mark.parametrize("fmt,count,courts", CASES)
def test_no_pair_plays_twice_in_a_round(fmt, count, courts):
    fixtures = generate_group_fixtures(_groups(fmt, count), fmt, courts)
    rounds = {f.round for f in fixtures}
    assert rounds == set(range(1, group_round_count(fmt, scheduling_mode(fmt, courts)) + 1))
    for round_number in rounds:
        appearances = Counter()
        slots = Counter()
        for f in fixtures:
            if f.round == round_number:
                appearances.update([f.pair_a_id, f.pair_b_id])
                slots[f.bracket_slot] += 1
        assert max(appearances.values()) == 1
        assert max(slots.values()) == 1


class TestSixteenPairs:
    def test_simultaneous_mode_uses_eight_courts(self):
        fixtures = generate_group_fixtures(_groups(TournamentFormat.mini_16, 16), TournamentFormat.mini_16, 8)
        assert len(fixtures) == 24
        for round_number in (1, 2, 3):
            in_round = [f for f in fixtures if f.round == round_number]
            assert len(in_round) == 8
            assert sorted(f.physical_court for f in in_round) == list(range(1, 9))

    def test_rotational_mode_never_needs_more_than_six_courts(self):
        groups = _groups(TournamentFormat.mini_16, 16)
        fixtures = generate_group_fixtures(groups, TournamentFormat.mini_16, 6)
        assert len(fixtures) == 24
        assert max(f.round for f in fixtures) == 4
        assert max(f.physical_court for f in fixtures) == 6
        for round_number in (1, 2, 3, 4):
            assert len([f for f in fixtures if f.round == round_number]) == 6

        group_d = set(groups[3].pair_ids)
        assert not any(pid in (f.pair_a_id, f.pair_b_id) for f in fixtures if f.round == 1 for pid in group_d)
        per_pair = Counter(pid for f in fixtures for pid in (f.pair_a_id, f.pair_b_id))
        assert set(per_pair.values()) == {3}

    def test_mode_threshold(self):
        assert scheduling_mode(TournamentFormat.mini_16, 8) == SchedulingMode.simultaneous
        assert scheduling_mode(TournamentFormat.mini_16, 7) == SchedulingMode.rotational
        assert scheduling_mode(TournamentFormat.mini_12, 2) == SchedulingMode.simultaneous


class TestTenPairs:
    def test_every_pair_plays_every_round(self):
        groups = _groups(TournamentFormat.mini_10, 10)
        fixtures = generate_group_fixtures(groups, TournamentFormat.mini_10, 5)
        assert len(fixtures) == 25
        for round_number in range(1, 6):
            in_round = [f for f in fixtures if f.round == round_number]
            played = {pid for f in in_round for pid in (f.pair_a_id, f.pair_b_id)}
            assert played == set(range(1, 11))

    def test_fillers_are_cross_group_on_slot_three(self):
        groups = _groups(TournamentFormat.mini_10, 10)
        group_a = set(groups[0].pair_ids)
        fixtures = generate_group_fixtures(groups, TournamentFormat.mini_10, 5)

        fillers = [f for f in fixtures if (f.pair_a_id in group_a) != (f.pair_b_id in group_a)]
        assert len(fillers) == 5
        assert {f.bracket_slot for f in fillers} == {3}
        # Each pair meets exactly one opponent from the other group
        per_pair = Counter(pid for f in fillers for pid in (f.pair_a_id, f.pair_b_id))
        assert set(per_pair.values()) == {1}
        assert len(per_pair) == 10


class TestTwelvePairs:
    def test_full_courts_use_slot_as_court(self):
        fixtures = generate_group_fixtures(_groups(TournamentFormat.mini_12, 12), TournamentFormat.mini_12, 6)
        assert all(f.physical_court == f.bracket_slot for f in fixtures)

    def test_group_c_waits_below_six_courts(self):
        groups = _groups(TournamentFormat.mini_12, 12)
        group_c = set(groups[2].pair_ids)
        fixtures = generate_group_fixtures(groups, TournamentFormat.mini_12, 4)

        for f in fixtures:
            if f.pair_a_id in group_c:
                assert f.physical_court is None
                assert f.bracket_slot in (5, 6)
            else:
                assert f.physical_court == f.bracket_slot


def test_short_group_drops_fixtures():
    groups = [Group(id="A", pair_ids=[1, 2, 3]), Group(id="B", pair_ids=[5, 6, 7, 8])]
    fixtures = generate_group_fixtures(groups, TournamentFormat.mini_8, 4)
    group_a = [f for f in fixtures if f.pair_a_id in (1, 2, 3)]
    assert len(group_a) == 3
    assert len(fixtures) == 9


def test_rotational_table_staggers_group_d():
    table = schedule_table(TournamentFormat.mini_16, SchedulingMode.rotational)
    first_d = min(e.round for e in table if e.group_a == "D")
    assert first_d == 2


def test_membership_entries_cover_every_position():
    for fmt, mode in [
        (TournamentFormat.mini_8, SchedulingMode.simultaneous),
        (TournamentFormat.mini_10, SchedulingMode.simultaneous),
        (TournamentFormat.mini_12, SchedulingMode.simultaneous),
        (TournamentFormat.mini_16, SchedulingMode.simultaneous),
        (TournamentFormat.mini_16, SchedulingMode.rotational),
    ]:
        positions = set()
        for e in membership_entries(fmt, mode):
            positions.add((e.group_a, e.index_a))
            positions.add((e.group_b, e.index_b))
        groups = {g for g, _ in positions}
        size = 5 if fmt == TournamentFormat.mini_10 else 4
        assert len(positions) == len(groups) * size
