"""
Engine value types.

The engine reads a TournamentSnapshot and returns new pairs/fixtures/groups.
Nothing in here touches the database; services/tournament_service.py maps
SQLModel rows to and from these structs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from padelpro.services.format_rules import Bracket, Phase, TournamentFormat

# Placeholder opponent for a bracket slot whose feeder match is absent or unfinished.
UNDETERMINED: Optional[int] = None
UNDETERMINED_LABEL = "TBD"


@dataclass
class RatedPlayer:
    id: int
    name: str
    nickname: Optional[str] = None
    global_rating: Optional[float] = None
    category_ratings: Dict[str, float] = field(default_factory=dict)
    main_category: Optional[str] = None
    manual_rating: Optional[float] = None  # 1-10 scale, only seeds players with no history


@dataclass
class PairStats:
    played: int = 0
    won: int = 0
    game_diff: int = 0  # games_for - games_against


@dataclass
class PairEntry:
    id: int
    player1_id: int
    player2_id: Optional[int] = None
    status: str = "confirmed"  # "confirmed" | "pending" | "rejected"
    group_id: Optional[str] = None
    stats: PairStats = field(default_factory=PairStats)

    @property
    def is_complete(self) -> bool:
        return self.player2_id is not None


@dataclass
class Fixture:
    """
    One match of the tournament.

    bracket_slot is the stable lookup key used to advance winners/losers between
    rounds; physical_court is where the match is actually played (None = waiting
    for a free court).
    """

    round: int
    phase: Phase
    bracket_slot: int
    pair_a_id: Optional[int]
    pair_b_id: Optional[int]
    bracket: Optional[Bracket] = None  # None only for group phase
    physical_court: Optional[int] = None
    score_a: Optional[int] = None
    score_b: Optional[int] = None
    id: Optional[int] = None

    @property
    def is_finished(self) -> bool:
        return self.score_a is not None and self.score_b is not None

    @property
    def is_placeholder(self) -> bool:
        return self.pair_a_id is UNDETERMINED or self.pair_b_id is UNDETERMINED

    @property
    def is_waiting(self) -> bool:
        return self.physical_court is None

    @property
    def winner_id(self) -> Optional[int]:
        if not self.is_finished or self.score_a == self.score_b:
            return UNDETERMINED
        return self.pair_a_id if self.score_a > self.score_b else self.pair_b_id

    @property
    def loser_id(self) -> Optional[int]:
        if not self.is_finished or self.score_a == self.score_b:
            return UNDETERMINED
        return self.pair_b_id if self.score_a > self.score_b else self.pair_a_id

@dataclass
class Group:
    id: str  # "A".."D"
    pair_ids: List[int] = field(default_factory=list)


@dataclass
class TournamentSnapshot:
    format: TournamentFormat
    court_count: int
    current_round: int = 0
    players: List[RatedPlayer] = field(default_factory=list)
    pairs: List[PairEntry] = field(default_factory=list)
    fixtures: List[Fixture] = field(default_factory=list)
    groups: List[Group] = field(default_factory=list)
    category: Optional[str] = None

    def players_by_id(self) -> Dict[int, RatedPlayer]:
        return {p.id: p for p in self.players}

    def pairs_by_id(self) -> Dict[int, PairEntry]:
        return {p.id: p for p in self.pairs}

    def group(self, group_id: str) -> Optional[Group]:
        for g in self.groups:
            if g.id == group_id:
                return g
        return None
