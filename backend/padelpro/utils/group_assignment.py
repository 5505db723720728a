"""
Group assignment for mini tournaments.

Partitions a seeded pair list into named groups (A-D) sized for the format.
"""

from typing import List, Optional, Sequence

from padelpro.services.format_rules import TournamentFormat, group_names, group_size, pair_quota
from padelpro.services.seeding import SeedingMethod, is_mixed, seed_pairs
from padelpro.services.tournament_state import Group, PairEntry, RatedPlayer


def assign_groups(ordered_pairs: Sequence[PairEntry], fmt: TournamentFormat, mixed: bool = False) -> List[Group]:
    """
    Assign the top pairs of a seeded list to groups.

    Only the first pair_quota(fmt) pairs are used; any surplus are reserves and
    are left to the caller.

    Blocked (mixed=False):
        Group A: ordered[0:size], Group B: ordered[size:2*size], etc.
        With a rating sort, group A gets the strongest block.

    Zig-zag (mixed=True):
        pair i goes to group i % group_count, spreading strong and weak pairs
        evenly across every group.

    Args:
        ordered_pairs: Pairs in final seed order (best first)
        fmt: Tournament format
        mixed: Use zig-zag distribution instead of contiguous blocks

    Returns:
        List of groups in name order, each listing pair ids in seed order
    """
    names = group_names(fmt)
    size = group_size(fmt)
    titular = list(ordered_pairs)[: pair_quota(fmt)]

    if mixed:
        buckets: List[List[int]] = [[] for _ in names]
        for i, pair in enumerate(titular):
            buckets[i % len(names)].append(pair.id)
        return [Group(id=name, pair_ids=bucket) for name, bucket in zip(names, buckets)]

    groups: List[Group] = []
    for index, name in enumerate(names):
        start = index * size
        groups.append(Group(id=name, pair_ids=[p.id for p in titular[start : start + size]]))
    return groups


def groups_for_method(
    pairs: Sequence[PairEntry],
    players: Sequence[RatedPlayer],
    fmt: TournamentFormat,
    method: SeedingMethod,
    manual_order: Optional[Sequence[int]] = None,
) -> List[Group]:
    """Seed `pairs` with `method` and assign groups in one step."""
    if manual_order is not None:
        by_id = {p.id: p for p in pairs}
        ordered = []
        for pid in manual_order:
            if pid in by_id and by_id[pid] not in ordered:
                ordered.append(by_id[pid])
    else:
        ordered = seed_pairs(pairs, players, method)
    return assign_groups(ordered, fmt, mixed=is_mixed(method))
