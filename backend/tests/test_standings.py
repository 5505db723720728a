"""
Tests for stats recalculation and group ranking.
"""

from padelpro.services.format_rules import Bracket, Phase
from padelpro.services.standings import group_standings, rank_across_groups, rank_group, recalculate_stats
from padelpro.services.tournament_state import (
    Fixture,
    Group,
    PairEntry,
    PairStats,
    TournamentSnapshot,
)


def _pairs(n):
    return [PairEntry(id=i, player1_id=2 * i - 1, player2_id=2 * i) for i in range(1, n + 1)]


def _fixture(a, b, score_a=None, score_b=None, round_number=1, slot=1):
    return Fixture(
        round=round_number,
        phase=Phase.group,
        bracket_slot=slot,
        pair_a_id=a,
        pair_b_id=b,
        score_a=score_a,
        score_b=score_b,
    )


def test_recalculate_stats_folds_finished_matches():
    fixtures = [
        _fixture(1, 2, 6, 4),
        _fixture(1, 3, 3, 3, round_number=2),
        _fixture(2, 3, round_number=3),  # unfinished
    ]
    stats = {p.id: p.stats for p in recalculate_stats(_pairs(3), fixtures)}

    assert stats[1] == PairStats(played=2, won=1, game_diff=2)
    assert stats[2] == PairStats(played=1, won=0, game_diff=-2)
    assert stats[3] == PairStats(played=1, won=0, game_diff=0)


def test_stats_are_consistent():
    fixtures = [
        _fixture(1, 2, 6, 1),
        _fixture(3, 4, 4, 6),
        _fixture(1, 3, 5, 5, round_number=2),
        _fixture(2, 4, 7, 6, round_number=2),
    ]
    pairs = recalculate_stats(_pairs(4), fixtures)

    for pair in pairs:
        assert pair.stats.played == sum(1 for f in fixtures if f.is_finished and pair.id in (f.pair_a_id, f.pair_b_id))
    decided = sum(1 for f in fixtures if f.is_finished and f.score_a != f.score_b)
    assert sum(p.stats.won for p in pairs) == decided
    assert sum(p.stats.game_diff for p in pairs) == 0


def test_recalculate_does_not_mutate_inputs():
    pairs = _pairs(2)
    recalculate_stats(pairs, [_fixture(1, 2, 6, 0)])
    assert pairs[0].stats == PairStats()


def test_recalculate_starts_from_zero():
    pairs = _pairs(2)
    pairs[0].stats = PairStats(played=9, won=9, game_diff=40)
    result = recalculate_stats(pairs, [])
    assert result[0].stats == PairStats()


def test_rank_group_by_wins_then_game_diff():
    pairs = _pairs(4)
    pairs[0].stats = PairStats(played=3, won=1, game_diff=-2)
    pairs[1].stats = PairStats(played=3, won=2, game_diff=1)
    pairs[2].stats = PairStats(played=3, won=2, game_diff=5)
    pairs[3].stats = PairStats(played=3, won=1, game_diff=-4)

    ranked = rank_group(pairs, Group(id="A", pair_ids=[1, 2, 3, 4]))
    assert [p.id for p in ranked] == [3, 2, 1, 4]


def test_rank_group_full_tie_keeps_group_order():
    pairs = _pairs(4)
    ranked = rank_group(pairs, Group(id="A", pair_ids=[4, 2, 3, 1]))
    assert [p.id for p in ranked] == [4, 2, 3, 1]


def test_rank_group_ignores_non_members():
    ranked = rank_group(_pairs(4), Group(id="B", pair_ids=[2, 4, 99]))
    assert [p.id for p in ranked] == [2, 4]


def test_rank_across_groups():
    pairs = _pairs(3)
    pairs[0].stats = PairStats(won=1, game_diff=-4)
    pairs[1].stats = PairStats(won=1, game_diff=3)
    pairs[2].stats = PairStats(won=2, game_diff=-1)
    assert [p.id for p in rank_across_groups(pairs)] == [3, 2, 1]


def test_group_standings_only_counts_group_phase():
    pairs = _pairs(4)
    fixtures = [
        _fixture(1, 2, 6, 2),
        _fixture(3, 4, 6, 2, slot=2),
        Fixture(round=4, phase=Phase.qf, bracket=Bracket.main, bracket_slot=1, pair_a_id=2, pair_b_id=1, score_a=6, score_b=0),
    ]
    snapshot = TournamentSnapshot(
        format="8_mini",
        court_count=4,
        pairs=pairs,
        fixtures=fixtures,
        groups=[Group(id="A", pair_ids=[1, 2]), Group(id="B", pair_ids=[3, 4])],
    )
    standings = group_standings(snapshot)
    assert [p.id for p in standings["A"]] == [1, 2]
    assert standings["A"][0].stats == PairStats(played=1, won=1, game_diff=4)
