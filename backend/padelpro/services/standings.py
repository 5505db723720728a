"""
Standings: per-pair stats derived from finished fixtures, and group ranking.

Stats are always recomputed from scratch; nothing is accumulated incrementally.
"""

from dataclasses import replace
from typing import Dict, List, Sequence

from padelpro.services.tournament_state import Fixture, Group, PairEntry, PairStats, TournamentSnapshot


def recalculate_stats(pairs: Sequence[PairEntry], fixtures: Sequence[Fixture]) -> List[PairEntry]:
    """
    Fold every finished fixture into fresh per-pair stats.

    - played += 1 for both sides
    - won += 1 for the side with more games (draws count for nobody)
    - game_diff += own games - opponent games

    Returns new PairEntry objects in input order; inputs are not mutated.
    """
    totals: Dict[int, PairStats] = {p.id: PairStats() for p in pairs}

    for fixture in fixtures:
        if not fixture.is_finished:
            continue
        sides = (
            (fixture.pair_a_id, fixture.score_a, fixture.score_b),
            (fixture.pair_b_id, fixture.score_b, fixture.score_a),
        )
        for pair_id, own, other in sides:
            stats = totals.get(pair_id)
            if stats is None:
                continue
            stats.played += 1
            if own > other:
                stats.won += 1
            stats.game_diff += own - other

    return [replace(p, stats=totals[p.id]) for p in pairs]


def _rank_key(pair: PairEntry):
    return (-pair.stats.won, -pair.stats.game_diff)


def rank_group(pairs: Sequence[PairEntry], group: Group) -> List[PairEntry]:
    """Members of `group` sorted by wins, then game differential (both descending)."""
    by_id = {p.id: p for p in pairs}
    members = [by_id[pid] for pid in group.pair_ids if pid in by_id]
    return sorted(members, key=_rank_key)


def rank_across_groups(pairs: Sequence[PairEntry]) -> List[PairEntry]:
    """Same ordering as rank_group, applied to pairs drawn from different groups."""
    return sorted(pairs, key=_rank_key)


def group_standings(snapshot: TournamentSnapshot) -> Dict[str, List[PairEntry]]:
    """Ranked members of every group, with stats recomputed from group-phase fixtures."""
    group_fixtures = [f for f in snapshot.fixtures if f.bracket is None]
    pairs = recalculate_stats(snapshot.pairs, group_fixtures)
    return {group.id: rank_group(pairs, group) for group in snapshot.groups}
