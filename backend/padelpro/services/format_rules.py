"""
Format Rules: Mini tournament formats (Single Source of Truth)

This module defines every per-format constant used by the engine:
pair quotas, group layout, scheduling mode and round counts.
All other modules must import from here. Do NOT duplicate these rules elsewhere.
"""

from enum import Enum
from typing import Dict, List, Tuple


class TournamentFormat(str, Enum):
    mini_8 = "8_mini"
    mini_10 = "10_mini"
    mini_12 = "12_mini"
    mini_16 = "16_mini"


class SchedulingMode(str, Enum):
    simultaneous = "simultaneous"
    rotational = "rotational"


class Phase(str, Enum):
    group = "group"
    qf = "qf"
    sf = "sf"
    final = "final"


class Bracket(str, Enum):
    main = "main"
    consolation = "consolation"


# =============================================================================
# Pair quotas and group layout
# =============================================================================

PAIR_QUOTAS: Dict[TournamentFormat, int] = {
    TournamentFormat.mini_8: 8,
    TournamentFormat.mini_10: 10,
    TournamentFormat.mini_12: 12,
    TournamentFormat.mini_16: 16,
}

GROUP_NAMES: Dict[TournamentFormat, List[str]] = {
    TournamentFormat.mini_8: ["A", "B"],
    TournamentFormat.mini_10: ["A", "B"],
    TournamentFormat.mini_12: ["A", "B", "C"],
    TournamentFormat.mini_16: ["A", "B", "C", "D"],
}

# 16 -> 4x4, 12 -> 3x4, 10 -> 2x5, 8 -> 2x4
GROUP_SIZES: Dict[TournamentFormat, int] = {
    TournamentFormat.mini_8: 4,
    TournamentFormat.mini_10: 5,
    TournamentFormat.mini_12: 4,
    TournamentFormat.mini_16: 4,
}

# Court count at or above which a format plays every group in parallel.
SIMULTANEOUS_COURT_THRESHOLD_16 = 8
# Below this court count the third 12-pair group waits for a free court.
FULL_COURT_THRESHOLD_12 = 6


def pair_quota(fmt: TournamentFormat) -> int:
    """Confirmed, complete pairs required to start a tournament of this format."""
    return PAIR_QUOTAS[TournamentFormat(fmt)]


def group_names(fmt: TournamentFormat) -> List[str]:
    return list(GROUP_NAMES[TournamentFormat(fmt)])


def group_size(fmt: TournamentFormat) -> int:
    return GROUP_SIZES[TournamentFormat(fmt)]


def scheduling_mode(fmt: TournamentFormat, court_count: int) -> SchedulingMode:
    """
    Return the scheduling mode for a format and club court count.

    Only the 16-pair format changes shape with court count:
    - court_count >= 8: all four groups play every round (simultaneous)
    - court_count < 8: three groups per round, fourth staggered (rotational)
    """
    if TournamentFormat(fmt) == TournamentFormat.mini_16 and court_count < SIMULTANEOUS_COURT_THRESHOLD_16:
        return SchedulingMode.rotational
    return SchedulingMode.simultaneous


# =============================================================================
# Round counts
# =============================================================================

# Group-stage rounds per (format, mode).
# 10-pair: complete 5-pair round robin needs 5 rounds (one pair rests per group per round).
GROUP_ROUNDS: Dict[Tuple[TournamentFormat, SchedulingMode], int] = {
    (TournamentFormat.mini_8, SchedulingMode.simultaneous): 3,
    (TournamentFormat.mini_10, SchedulingMode.simultaneous): 5,
    (TournamentFormat.mini_12, SchedulingMode.simultaneous): 3,
    (TournamentFormat.mini_16, SchedulingMode.simultaneous): 3,
    (TournamentFormat.mini_16, SchedulingMode.rotational): 4,
}

# Rounds after the group stage in which each bracket plays its final,
# expressed as an offset from the last group round.
#   8:  QF +1, SF +2, finals +3 (main and consolation)
#   10: QF + consolation final +1, SF +2, final +3
#   12: QF + consolation SF +1, SF + consolation final +2, final +3
#   16: QF +1, SF + consolation QF +2, final + consolation SF +3, consolation final +4
FINAL_ROUND_OFFSETS: Dict[TournamentFormat, Dict[Bracket, int]] = {
    TournamentFormat.mini_8: {Bracket.main: 3, Bracket.consolation: 3},
    TournamentFormat.mini_10: {Bracket.main: 3, Bracket.consolation: 1},
    TournamentFormat.mini_12: {Bracket.main: 3, Bracket.consolation: 2},
    TournamentFormat.mini_16: {Bracket.main: 3, Bracket.consolation: 4},
}


def group_round_count(fmt: TournamentFormat, mode: SchedulingMode = SchedulingMode.simultaneous) -> int:
    fmt = TournamentFormat(fmt)
    if fmt != TournamentFormat.mini_16:
        mode = SchedulingMode.simultaneous
    return GROUP_ROUNDS[(fmt, SchedulingMode(mode))]


def final_rounds(fmt: TournamentFormat, mode: SchedulingMode = SchedulingMode.simultaneous) -> Dict[Bracket, int]:
    """Return {bracket: round number of that bracket's final}."""
    fmt = TournamentFormat(fmt)
    last_group_round = group_round_count(fmt, mode)
    return {bracket: last_group_round + offset for bracket, offset in FINAL_ROUND_OFFSETS[fmt].items()}


def terminal_round(fmt: TournamentFormat, mode: SchedulingMode = SchedulingMode.simultaneous) -> int:
    """Last round in which any match is played."""
    return max(final_rounds(fmt, mode).values())
