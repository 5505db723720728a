"""
Score parser for padel results.

A mini-tournament match is scored in games. Accepted inputs:
  "6-4"           → games 6-4
  "6-3 4-6 7-5"   → one entry per set, games summed (17-14)
  "6-3, 4-6"      → comma-separated variant
  {"a": 6, "b": 4} → explicit game counts
  {"sets": [{"a": 6, "b": 3}, {"a": 4, "b": 6}]}

Matches are recorded as game totals, so a multi-set score is only accepted
when the side that won more sets also won more games: "7-6 0-6 7-6" would
record the set winner as the loser and is rejected.

Returns None on anything that is not a non-negative, consistent score.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union


@dataclass
class ParsedScore:
    sets: List[Tuple[int, int]]  # (pair_a_games, pair_b_games) per set
    pair_a_games: int
    pair_b_games: int

    @property
    def pair_a_sets(self) -> int:
        return sum(1 for a, b in self.sets if a > b)

    @property
    def pair_b_sets(self) -> int:
        return sum(1 for a, b in self.sets if b > a)

    @property
    def is_draw(self) -> bool:
        return self.pair_a_games == self.pair_b_games

    @property
    def is_consistent(self) -> bool:
        """Set winner and game winner agree (trivially true for a single set)."""
        if self.pair_a_sets == self.pair_b_sets:
            return True
        sets_favour_a = self.pair_a_sets > self.pair_b_sets
        if self.is_draw:
            return False
        return sets_favour_a == (self.pair_a_games > self.pair_b_games)


def parse_score(raw: Union[str, Dict[str, Any], None]) -> Optional[ParsedScore]:
    """Parse a score string or dict into game counts; None if unparseable."""
    if not raw:
        return None

    if isinstance(raw, dict):
        if isinstance(raw.get("sets"), list):
            return _from_sets(raw["sets"])
        if "a" in raw and "b" in raw:
            return _from_sets([raw])
        raw = str(raw.get("display") or raw.get("score") or "")

    if not isinstance(raw, str) or not raw.strip():
        return None
    return _parse_score_string(raw.strip())


def _from_sets(sets_list: list) -> Optional[ParsedScore]:
    sets: List[Tuple[int, int]] = []
    for s in sets_list:
        try:
            a = int(s.get("a", 0))
            b = int(s.get("b", 0))
        except (AttributeError, TypeError, ValueError):
            return None
        sets.append((a, b))
    return _build(sets)


def _parse_score_string(raw: str) -> Optional[ParsedScore]:
    parts = raw.replace(",", " ").split()

    sets: List[Tuple[int, int]] = []
    for part in parts:
        games = part.split("-")
        if len(games) != 2:
            return None
        try:
            sets.append((int(games[0]), int(games[1])))
        except ValueError:
            return None
    return _build(sets)


def _build(sets: List[Tuple[int, int]]) -> Optional[ParsedScore]:
    if not sets or any(a < 0 or b < 0 for a, b in sets):
        return None
    parsed = ParsedScore(
        sets=sets,
        pair_a_games=sum(a for a, _ in sets),
        pair_b_games=sum(b for _, b in sets),
    )
    return parsed if parsed.is_consistent else None
