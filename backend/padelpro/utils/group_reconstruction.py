"""
Group reconstruction from persisted fixtures.

Used when a tournament is reloaded with missing or partial group assignments.
Membership is read back from the slots of each group's first round, using
the same tables the fixture generator wrote them from.
"""

import logging
from typing import Dict, List, Sequence

from padelpro.services.fixture_tables import membership_entries
from padelpro.services.format_rules import SchedulingMode, TournamentFormat, group_names, group_size
from padelpro.services.seeding import SeedingMethod, eligible_pairs, seed_pairs
from padelpro.services.tournament_state import Fixture, Group, PairEntry, RatedPlayer
from padelpro.utils.group_assignment import assign_groups

logger = logging.getLogger(__name__)


def detect_mode(fixtures: Sequence[Fixture], fmt: TournamentFormat) -> SchedulingMode:
    """Only the 16-pair simultaneous schedule uses slots 7-8 in round 1."""
    if TournamentFormat(fmt) != TournamentFormat.mini_16:
        return SchedulingMode.simultaneous
    if any(f.round == 1 and f.bracket is None and f.bracket_slot >= 7 for f in fixtures):
        return SchedulingMode.simultaneous
    return SchedulingMode.rotational


def reconstruct_groups(
    pairs: Sequence[PairEntry],
    fixtures: Sequence[Fixture],
    players: Sequence[RatedPlayer],
    fmt: TournamentFormat,
) -> List[Group]:
    """
    Infer group membership from group-phase fixtures.

    Falls back to fresh elo-balanced groups when any inferred group is short;
    the fallback does not recover the original seeding.
    """
    fmt = TournamentFormat(fmt)
    mode = detect_mode(fixtures, fmt)
    by_key: Dict[tuple, Fixture] = {
        (f.round, f.bracket_slot): f for f in fixtures if f.bracket is None
    }

    positions: Dict[str, Dict[int, int]] = {name: {} for name in group_names(fmt)}
    for entry in membership_entries(fmt, mode):
        fixture = by_key.get((entry.round, entry.slot))
        if fixture is None:
            continue
        if fixture.pair_a_id is not None:
            positions[entry.group_a][entry.index_a] = fixture.pair_a_id
        if fixture.pair_b_id is not None:
            positions[entry.group_b][entry.index_b] = fixture.pair_b_id

    groups = [
        Group(id=name, pair_ids=[slots[i] for i in sorted(slots)])
        for name, slots in positions.items()
    ]

    expected = group_size(fmt)
    if any(len(g.pair_ids) < expected for g in groups):
        logger.warning(
            "Could not recover %s groups from %d fixtures; regenerating elo-balanced groups",
            fmt.value,
            len(fixtures),
        )
        return assign_groups(seed_pairs(eligible_pairs(pairs), players, SeedingMethod.elo_balanced), fmt)

    return groups
