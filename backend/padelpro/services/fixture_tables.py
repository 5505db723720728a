"""
Group-stage schedule tables.

Every group-stage schedule is an enumerated table, not an algorithm:
(format, mode) -> list of ScheduleEntry. Slots double as court numbers when
enough courts are available and are the keys the group reconstructor reads.

Pool size 4 uses the preset order:
- Round 1: 1v2, 3v4  -> (0,1), (2,3)
- Round 2: 1v3, 2v4  -> (0,2), (1,3)
- Round 3: 1v4, 2v3  -> (0,3), (1,2)
"""

from typing import Dict, List, NamedTuple, Tuple

from padelpro.services.format_rules import SchedulingMode, TournamentFormat


class ScheduleEntry(NamedTuple):
    round: int
    group_a: str
    index_a: int  # 0-based position within group_a
    group_b: str
    index_b: int  # 0-based position within group_b
    slot: int


RR4_PATTERNS: Dict[int, Tuple[Tuple[int, int], ...]] = {
    1: ((0, 1), (2, 3)),
    2: ((0, 2), (1, 3)),
    3: ((0, 3), (1, 2)),
}

# (round, group, pattern, first_slot): the group plays RR4_PATTERNS[pattern] on
# slots first_slot and first_slot + 1 in that round.
BlockPlan = Tuple[int, str, int, int]

_SIMULTANEOUS_16: List[BlockPlan] = [
    (1, "A", 1, 1), (1, "B", 1, 3), (1, "C", 1, 5), (1, "D", 1, 7),
    (2, "A", 2, 1), (2, "B", 2, 3), (2, "C", 2, 5), (2, "D", 2, 7),
    (3, "A", 3, 1), (3, "B", 3, 3), (3, "C", 3, 5), (3, "D", 3, 7),
]

# Three groups per round on six courts. Group D starts in round 2 and every
# group finishes its three matches by round 4.
_ROTATIONAL_16: List[BlockPlan] = [
    (1, "A", 1, 1), (1, "B", 1, 3), (1, "C", 1, 5),
    (2, "A", 2, 1), (2, "B", 2, 3), (2, "D", 1, 5),
    (3, "A", 3, 1), (3, "C", 2, 3), (3, "D", 2, 5),
    (4, "B", 3, 1), (4, "C", 3, 3), (4, "D", 3, 5),
]

_GROUPS_12: List[BlockPlan] = [
    (1, "A", 1, 1), (1, "B", 1, 3), (1, "C", 1, 5),
    (2, "A", 2, 1), (2, "B", 2, 3), (2, "C", 2, 5),
    (3, "A", 3, 1), (3, "B", 3, 3), (3, "C", 3, 5),
]

_GROUPS_8: List[BlockPlan] = [
    (1, "A", 1, 1), (1, "B", 1, 3),
    (2, "A", 2, 1), (2, "B", 2, 3),
    (3, "A", 3, 1), (3, "B", 3, 3),
]

# Two groups of five. Each round one pair per group rests; the two resting
# pairs meet cross-group on slot 3 so all five courts stay busy.
# Group A on slots 1-2, filler on 3, group B on slots 4-5.
_GROUPS_10: List[ScheduleEntry] = [
    ScheduleEntry(1, "A", 0, "A", 1, 1), ScheduleEntry(1, "A", 2, "A", 3, 2),
    ScheduleEntry(1, "A", 4, "B", 0, 3),
    ScheduleEntry(1, "B", 1, "B", 2, 4), ScheduleEntry(1, "B", 3, "B", 4, 5),

    ScheduleEntry(2, "A", 0, "A", 2, 1), ScheduleEntry(2, "A", 1, "A", 4, 2),
    ScheduleEntry(2, "A", 3, "B", 1, 3),
    ScheduleEntry(2, "B", 0, "B", 3, 4), ScheduleEntry(2, "B", 2, "B", 4, 5),

    ScheduleEntry(3, "A", 0, "A", 3, 1), ScheduleEntry(3, "A", 2, "A", 4, 2),
    ScheduleEntry(3, "A", 1, "B", 2, 3),
    ScheduleEntry(3, "B", 0, "B", 4, 4), ScheduleEntry(3, "B", 1, "B", 3, 5),

    ScheduleEntry(4, "A", 0, "A", 4, 1), ScheduleEntry(4, "A", 1, "A", 3, 2),
    ScheduleEntry(4, "A", 2, "B", 3, 3),
    ScheduleEntry(4, "B", 0, "B", 2, 4), ScheduleEntry(4, "B", 1, "B", 4, 5),

    ScheduleEntry(5, "A", 1, "A", 2, 1), ScheduleEntry(5, "A", 3, "A", 4, 2),
    ScheduleEntry(5, "A", 0, "B", 4, 3),
    ScheduleEntry(5, "B", 0, "B", 1, 4), ScheduleEntry(5, "B", 2, "B", 3, 5),
]


def _expand_blocks(plan: List[BlockPlan]) -> List[ScheduleEntry]:
    entries: List[ScheduleEntry] = []
    for round_number, group_id, pattern, first_slot in plan:
        for offset, (idx_a, idx_b) in enumerate(RR4_PATTERNS[pattern]):
            entries.append(ScheduleEntry(round_number, group_id, idx_a, group_id, idx_b, first_slot + offset))
    return entries


SCHEDULE_TABLES: Dict[Tuple[TournamentFormat, SchedulingMode], List[ScheduleEntry]] = {
    (TournamentFormat.mini_16, SchedulingMode.simultaneous): _expand_blocks(_SIMULTANEOUS_16),
    (TournamentFormat.mini_16, SchedulingMode.rotational): _expand_blocks(_ROTATIONAL_16),
    (TournamentFormat.mini_12, SchedulingMode.simultaneous): _expand_blocks(_GROUPS_12),
    (TournamentFormat.mini_10, SchedulingMode.simultaneous): list(_GROUPS_10),
    (TournamentFormat.mini_8, SchedulingMode.simultaneous): _expand_blocks(_GROUPS_8),
}


def schedule_table(fmt: TournamentFormat, mode: SchedulingMode) -> List[ScheduleEntry]:
    """Return the group-stage table for a format; non-16 formats ignore mode."""
    fmt = TournamentFormat(fmt)
    if fmt != TournamentFormat.mini_16:
        mode = SchedulingMode.simultaneous
    return list(SCHEDULE_TABLES[(fmt, SchedulingMode(mode))])


def membership_entries(fmt: TournamentFormat, mode: SchedulingMode) -> List[ScheduleEntry]:
    """
    Entries from the first round each group plays in.

    Those rounds alone cover every group member (round 1, plus round 2 for
    group D in the rotational 16-pair schedule).
    """
    table = schedule_table(fmt, mode)
    first_round: Dict[str, int] = {}
    for entry in table:
        for group_id in (entry.group_a, entry.group_b):
            first_round[group_id] = min(first_round.get(group_id, entry.round), entry.round)
    return [
        e for e in table
        if e.round == first_round[e.group_a] and e.round == first_round[e.group_b]
    ]
