"""
Group-stage fixture generation.

Turns groups into the complete group-stage schedule for a format by reading the
enumerated tables in fixture_tables.py. Output fixtures are unscored.
"""

import logging
from typing import Dict, List, Optional, Sequence

from padelpro.services.fixture_tables import ScheduleEntry, schedule_table
from padelpro.services.format_rules import (
    FULL_COURT_THRESHOLD_12,
    Phase,
    SchedulingMode,
    TournamentFormat,
    scheduling_mode,
)
from padelpro.services.tournament_state import Fixture, Group

logger = logging.getLogger(__name__)


def _waiting_groups(fmt: TournamentFormat, court_count: int) -> frozenset:
    """Groups whose fixtures have no dedicated court and wait for a free one."""
    if fmt == TournamentFormat.mini_12 and court_count < FULL_COURT_THRESHOLD_12:
        return frozenset({"C"})
    return frozenset()


def _build_fixtures(
    entries: Sequence[ScheduleEntry],
    groups: Sequence[Group],
    waiting: frozenset = frozenset(),
) -> List[Fixture]:
    members: Dict[str, List[int]] = {g.id: list(g.pair_ids) for g in groups}
    fixtures: List[Fixture] = []
    for entry in entries:
        pair_a = _member(members, entry.group_a, entry.index_a)
        pair_b = _member(members, entry.group_b, entry.index_b)
        if pair_a is None or pair_b is None:
            # Quota is validated by the caller; a short group just drops the fixture.
            continue
        is_waiting = entry.group_a in waiting or entry.group_b in waiting
        fixtures.append(
            Fixture(
                round=entry.round,
                phase=Phase.group,
                bracket=None,
                bracket_slot=entry.slot,
                physical_court=None if is_waiting else entry.slot,
                pair_a_id=pair_a,
                pair_b_id=pair_b,
            )
        )
    return fixtures


def _member(members: Dict[str, List[int]], group_id: str, index: int) -> Optional[int]:
    group = members.get(group_id)
    if group is None or index >= len(group):
        return None
    return group[index]


def generate_matches_16(groups: Sequence[Group], court_count: int) -> List[Fixture]:
    """Four groups of four; simultaneous on 8+ courts, rotational otherwise."""
    mode = scheduling_mode(TournamentFormat.mini_16, court_count)
    return _build_fixtures(schedule_table(TournamentFormat.mini_16, mode), groups)


def generate_matches_12(groups: Sequence[Group], court_count: int) -> List[Fixture]:
    """Three groups of four; group C waits for a free court below six courts."""
    return _build_fixtures(
        schedule_table(TournamentFormat.mini_12, SchedulingMode.simultaneous),
        groups,
        waiting=_waiting_groups(TournamentFormat.mini_12, court_count),
    )


def generate_matches_10(groups: Sequence[Group]) -> List[Fixture]:
    """Two groups of five plus one cross-group filler per round."""
    if any(len(g.pair_ids) != 5 for g in groups if g.id in ("A", "B")):
        return []
    return _build_fixtures(schedule_table(TournamentFormat.mini_10, SchedulingMode.simultaneous), groups)


def generate_matches_8(groups: Sequence[Group]) -> List[Fixture]:
    """Two groups of four on courts 1-4."""
    return _build_fixtures(schedule_table(TournamentFormat.mini_8, SchedulingMode.simultaneous), groups)


def generate_group_fixtures(groups: Sequence[Group], fmt: TournamentFormat, court_count: int) -> List[Fixture]:
    """Complete group-stage schedule for any supported format."""
    fmt = TournamentFormat(fmt)
    if fmt == TournamentFormat.mini_16:
        fixtures = generate_matches_16(groups, court_count)
    elif fmt == TournamentFormat.mini_12:
        fixtures = generate_matches_12(groups, court_count)
    elif fmt == TournamentFormat.mini_10:
        fixtures = generate_matches_10(groups)
    else:
        fixtures = generate_matches_8(groups)

    logger.debug(
        "Generated %d group fixtures for %s (courts=%d)", len(fixtures), fmt.value, court_count
    )
    return fixtures
