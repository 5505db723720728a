"""
Playoff Engine: group stage to knockout transitions (Single Source of Truth)

Every knockout round is an enumerated table keyed by format and by the
round offset from the last group round (offset 1 = first knockout round).
Each table row says which bracket slot is played and where both sides come
from: a group position, a best-third ranking, or the winner/loser of an
earlier (round, bracket, slot).

bracket_slot is the lookup key between rounds. It is never a physical court.
"""

import logging
from typing import Dict, List, NamedTuple, Optional, Sequence, Union

from padelpro.services.format_rules import (
    Bracket,
    Phase,
    TournamentFormat,
    final_rounds,
    group_round_count,
    scheduling_mode,
    terminal_round,
)
from padelpro.services.standings import group_standings, rank_across_groups
from padelpro.services.tournament_state import UNDETERMINED, Fixture, PairEntry, TournamentSnapshot

logger = logging.getLogger(__name__)


class RoundAdvanceError(ValueError):
    """Raised when the current round is not a defined case for the format."""
    pass


# =============================================================================
# Side references
# =============================================================================


class GroupSeed(NamedTuple):
    group: str
    rank: int  # 0-based finishing position


class ThirdPlace(NamedTuple):
    rank: int  # 0 = best third-placed pair across groups


class PriorMatch(NamedTuple):
    offset: int  # knockout round offset of the referenced match
    bracket: Bracket
    slot: int
    outcome: str  # "winner" | "loser" | "pair_a" | "pair_b"


SideRef = Union[GroupSeed, ThirdPlace, PriorMatch]


class PlayoffSlot(NamedTuple):
    slot: int
    bracket: Bracket
    phase: Phase
    side_a: SideRef
    side_b: SideRef
    waiting: bool = False  # no court yet; carried into the next round


def W(offset: int, bracket: Bracket, slot: int) -> PriorMatch:
    return PriorMatch(offset, bracket, slot, "winner")


def L(offset: int, bracket: Bracket, slot: int) -> PriorMatch:
    return PriorMatch(offset, bracket, slot, "loser")


MAIN = Bracket.main
CONS = Bracket.consolation


# =============================================================================
# Knockout tables
# =============================================================================

# 16 pairs: winners cross A/C and B/D; 3rd/4th go to the consolation bracket.
# Only two consolation quarterfinals fit beside the main QFs; the other two
# wait on slots 7-8 and are played as consolation QF slots 3-4 next round.
PLAYOFFS_16: Dict[int, List[PlayoffSlot]] = {
    1: [
        PlayoffSlot(1, MAIN, Phase.qf, GroupSeed("A", 0), GroupSeed("C", 1)),
        PlayoffSlot(2, MAIN, Phase.qf, GroupSeed("C", 0), GroupSeed("A", 1)),
        PlayoffSlot(3, MAIN, Phase.qf, GroupSeed("B", 0), GroupSeed("D", 1)),
        PlayoffSlot(4, MAIN, Phase.qf, GroupSeed("D", 0), GroupSeed("B", 1)),
        PlayoffSlot(5, CONS, Phase.qf, GroupSeed("A", 2), GroupSeed("C", 3)),
        PlayoffSlot(6, CONS, Phase.qf, GroupSeed("C", 2), GroupSeed("A", 3)),
        PlayoffSlot(7, CONS, Phase.qf, GroupSeed("B", 2), GroupSeed("D", 3), waiting=True),
        PlayoffSlot(8, CONS, Phase.qf, GroupSeed("D", 2), GroupSeed("B", 3), waiting=True),
    ],
    2: [
        PlayoffSlot(1, MAIN, Phase.sf, W(1, MAIN, 1), W(1, MAIN, 3)),
        PlayoffSlot(2, MAIN, Phase.sf, W(1, MAIN, 2), W(1, MAIN, 4)),
        PlayoffSlot(3, CONS, Phase.qf, PriorMatch(1, CONS, 7, "pair_a"), PriorMatch(1, CONS, 7, "pair_b")),
        PlayoffSlot(4, CONS, Phase.qf, PriorMatch(1, CONS, 8, "pair_a"), PriorMatch(1, CONS, 8, "pair_b")),
    ],
    3: [
        PlayoffSlot(1, MAIN, Phase.final, W(2, MAIN, 1), W(2, MAIN, 2)),
        PlayoffSlot(2, CONS, Phase.sf, W(1, CONS, 5), W(2, CONS, 3)),
        PlayoffSlot(3, CONS, Phase.sf, W(1, CONS, 6), W(2, CONS, 4)),
    ],
    4: [
        PlayoffSlot(1, CONS, Phase.final, W(3, CONS, 2), W(3, CONS, 3)),
    ],
}

# 10 pairs: top four of each group cross-seeded; both 5th places meet in a
# one-off consolation final alongside the quarterfinals.
PLAYOFFS_10: Dict[int, List[PlayoffSlot]] = {
    1: [
        PlayoffSlot(1, MAIN, Phase.qf, GroupSeed("A", 0), GroupSeed("B", 3)),
        PlayoffSlot(2, MAIN, Phase.qf, GroupSeed("B", 0), GroupSeed("A", 3)),
        PlayoffSlot(3, MAIN, Phase.qf, GroupSeed("A", 1), GroupSeed("B", 2)),
        PlayoffSlot(4, MAIN, Phase.qf, GroupSeed("B", 1), GroupSeed("A", 2)),
        PlayoffSlot(5, CONS, Phase.final, GroupSeed("A", 4), GroupSeed("B", 4)),
    ],
    2: [
        PlayoffSlot(1, MAIN, Phase.sf, W(1, MAIN, 1), W(1, MAIN, 3)),
        PlayoffSlot(2, MAIN, Phase.sf, W(1, MAIN, 2), W(1, MAIN, 4)),
    ],
    3: [
        PlayoffSlot(1, MAIN, Phase.final, W(2, MAIN, 1), W(2, MAIN, 2)),
    ],
}

# 8 pairs: 1A-2B, 1B-2A, 3A-4B, 3B-4A; quarterfinal losers form the
# consolation semifinals.
PLAYOFFS_8: Dict[int, List[PlayoffSlot]] = {
    1: [
        PlayoffSlot(1, MAIN, Phase.qf, GroupSeed("A", 0), GroupSeed("B", 1)),
        PlayoffSlot(2, MAIN, Phase.qf, GroupSeed("B", 0), GroupSeed("A", 1)),
        PlayoffSlot(3, MAIN, Phase.qf, GroupSeed("A", 2), GroupSeed("B", 3)),
        PlayoffSlot(4, MAIN, Phase.qf, GroupSeed("B", 2), GroupSeed("A", 3)),
    ],
    2: [
        PlayoffSlot(1, MAIN, Phase.sf, W(1, MAIN, 1), W(1, MAIN, 3)),
        PlayoffSlot(2, MAIN, Phase.sf, W(1, MAIN, 2), W(1, MAIN, 4)),
        PlayoffSlot(3, CONS, Phase.sf, L(1, MAIN, 1), L(1, MAIN, 3)),
        PlayoffSlot(4, CONS, Phase.sf, L(1, MAIN, 2), L(1, MAIN, 4)),
    ],
    3: [
        PlayoffSlot(1, MAIN, Phase.final, W(2, MAIN, 1), W(2, MAIN, 2)),
        PlayoffSlot(2, CONS, Phase.final, W(2, CONS, 3), W(2, CONS, 4)),
    ],
}

# 12 pairs: group winners, runners-up and the two best thirds play the main
# quarterfinals; the worst third joins the three 4th places in the
# consolation semifinals.
PLAYOFFS_12: Dict[int, List[PlayoffSlot]] = {
    1: [
        PlayoffSlot(1, MAIN, Phase.qf, GroupSeed("A", 0), ThirdPlace(1)),
        PlayoffSlot(2, MAIN, Phase.qf, GroupSeed("B", 0), ThirdPlace(0)),
        PlayoffSlot(3, MAIN, Phase.qf, GroupSeed("C", 0), GroupSeed("A", 1)),
        PlayoffSlot(4, MAIN, Phase.qf, GroupSeed("B", 1), GroupSeed("C", 1)),
        PlayoffSlot(5, CONS, Phase.sf, ThirdPlace(2), GroupSeed("A", 3)),
        PlayoffSlot(6, CONS, Phase.sf, GroupSeed("B", 3), GroupSeed("C", 3)),
    ],
    2: [
        PlayoffSlot(1, MAIN, Phase.sf, W(1, MAIN, 1), W(1, MAIN, 3)),
        PlayoffSlot(2, MAIN, Phase.sf, W(1, MAIN, 2), W(1, MAIN, 4)),
        PlayoffSlot(3, CONS, Phase.final, W(1, CONS, 5), W(1, CONS, 6)),
    ],
    3: [
        PlayoffSlot(1, MAIN, Phase.final, W(2, MAIN, 1), W(2, MAIN, 2)),
    ],
}

PLAYOFF_TABLES: Dict[TournamentFormat, Dict[int, List[PlayoffSlot]]] = {
    TournamentFormat.mini_8: PLAYOFFS_8,
    TournamentFormat.mini_10: PLAYOFFS_10,
    TournamentFormat.mini_12: PLAYOFFS_12,
    TournamentFormat.mini_16: PLAYOFFS_16,
}


# =============================================================================
# Lookups
# =============================================================================


def find_fixture(fixtures: Sequence[Fixture], round_number: int, bracket: Bracket, slot: int) -> Optional[Fixture]:
    for fixture in fixtures:
        if fixture.round == round_number and fixture.bracket == bracket and fixture.bracket_slot == slot:
            return fixture
    return None


def winner_of(fixtures: Sequence[Fixture], round_number: int, bracket: Bracket, slot: int) -> Optional[int]:
    """Winner of the match at (round, bracket, slot), or UNDETERMINED."""
    fixture = find_fixture(fixtures, round_number, bracket, slot)
    return fixture.winner_id if fixture else UNDETERMINED


def loser_of(fixtures: Sequence[Fixture], round_number: int, bracket: Bracket, slot: int) -> Optional[int]:
    """Loser of the match at (round, bracket, slot), or UNDETERMINED."""
    fixture = find_fixture(fixtures, round_number, bracket, slot)
    return fixture.loser_id if fixture else UNDETERMINED


def is_round_defined(fmt: TournamentFormat, court_count: int, round_number: int) -> bool:
    """True when `round_number` is a round the format can be advanced from."""
    mode = scheduling_mode(fmt, court_count)
    return 1 <= round_number <= terminal_round(fmt, mode)


def waiting_fixtures(snapshot: TournamentSnapshot, round_number: Optional[int] = None) -> List[Fixture]:
    """
    Knockout fixtures of a round that have no court yet.

    The next round re-emits them on real slots, so these rows are never
    scored themselves and the caller drops them after advancing.
    """
    if round_number is None:
        round_number = snapshot.current_round
    return [
        f for f in snapshot.fixtures
        if f.round == round_number and f.bracket is not None and f.is_waiting
    ]


# =============================================================================
# Transition
# =============================================================================


class _SideResolver:
    def __init__(self, snapshot: TournamentSnapshot, last_group_round: int):
        self.snapshot = snapshot
        self.last_group_round = last_group_round
        self._standings: Optional[Dict[str, List[PairEntry]]] = None
        self._thirds: Optional[List[PairEntry]] = None

    @property
    def standings(self) -> Dict[str, List[PairEntry]]:
        if self._standings is None:
            self._standings = group_standings(self.snapshot)
        return self._standings

    @property
    def thirds(self) -> List[PairEntry]:
        if self._thirds is None:
            candidates = [ranked[2] for ranked in self.standings.values() if len(ranked) > 2]
            self._thirds = rank_across_groups(candidates)
        return self._thirds

    def resolve(self, ref: SideRef) -> Optional[int]:
        if isinstance(ref, GroupSeed):
            ranked = self.standings.get(ref.group, [])
            return ranked[ref.rank].id if ref.rank < len(ranked) else UNDETERMINED

        if isinstance(ref, ThirdPlace):
            return self.thirds[ref.rank].id if ref.rank < len(self.thirds) else UNDETERMINED

        fixture = find_fixture(
            self.snapshot.fixtures, self.last_group_round + ref.offset, ref.bracket, ref.slot
        )
        if fixture is None:
            return UNDETERMINED
        if ref.outcome == "winner":
            return fixture.winner_id
        if ref.outcome == "loser":
            return fixture.loser_id
        if ref.outcome == "pair_a":
            return fixture.pair_a_id
        return fixture.pair_b_id


def next_round(snapshot: TournamentSnapshot, court_count: int) -> List[Fixture]:
    """
    Fixtures for round current_round + 1.

    - Group rounds before the last one return [] (the whole group stage is
      scheduled up front).
    - The terminal round returns []: every bracket is closed.
    - A side whose feeder match is missing, unfinished or drawn is
      UNDETERMINED; the fixture is still emitted.

    Raises:
        RoundAdvanceError: current_round is < 1 or past the terminal round
    """
    fmt = TournamentFormat(snapshot.format)
    mode = scheduling_mode(fmt, court_count)
    last_group_round = group_round_count(fmt, mode)
    current = snapshot.current_round

    if not is_round_defined(fmt, court_count, current):
        raise RoundAdvanceError(
            f"Round {current} is not defined for format {fmt.value} "
            f"(valid: 1..{terminal_round(fmt, mode)})"
        )

    if current < last_group_round:
        return []

    table = PLAYOFF_TABLES[fmt].get(current + 1 - last_group_round, [])
    resolver = _SideResolver(snapshot, last_group_round)

    fixtures: List[Fixture] = []
    for row in table:
        fixture = Fixture(
            round=current + 1,
            phase=row.phase,
            bracket=row.bracket,
            bracket_slot=row.slot,
            physical_court=None if row.waiting else row.slot,
            pair_a_id=resolver.resolve(row.side_a),
            pair_b_id=resolver.resolve(row.side_b),
        )
        if fixture.is_placeholder:
            logger.warning(
                "Round %d %s slot %d has an undetermined side", fixture.round, row.bracket.value, row.slot
            )
        fixtures.append(fixture)

    if fixtures:
        logger.info("Built %d fixtures for round %d (%s)", len(fixtures), current + 1, fmt.value)
    return fixtures


def resolve_champions(snapshot: TournamentSnapshot, court_count: int) -> Dict[Bracket, Optional[int]]:
    """Winner of each bracket's final, or UNDETERMINED while it is unplayed."""
    fmt = TournamentFormat(snapshot.format)
    mode = scheduling_mode(fmt, court_count)
    champions: Dict[Bracket, Optional[int]] = {}
    for bracket, final_round in final_rounds(fmt, mode).items():
        champions[bracket] = UNDETERMINED
        for fixture in snapshot.fixtures:
            if fixture.round == final_round and fixture.bracket == bracket and fixture.phase == Phase.final:
                champions[bracket] = fixture.winner_id
                break
    return champions
