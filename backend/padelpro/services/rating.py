"""
Rating Engine: ELO-style ratings for padel pairs.

- Expected score: E = 1 / (1 + 10^((rating_b - rating_a) / 400))
- K-factor: base 32 scaled by game margin (1 + |a - b| / 3), capped at 2x base
- Delta: K * (actual - expected); side A gets +delta, side B gets -delta
- Match rating: per-category rating, initialised from 70% global + 30% category base
- Display rating: 50% global + 30% main category + 20% best other category
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Optional

from padelpro.services.tournament_state import Fixture, PairEntry, RatedPlayer, TournamentSnapshot

K_BASE = 32
DEFAULT_RATING = 1200

# Share of a category delta that also moves the cross-category global rating.
GLOBAL_DAMPING = 0.5

BASE_RATING_BY_CATEGORY: Dict[str, int] = {
    "Iniciación": 1100,
    "5ª CAT": 1250,
    "4ª CAT": 1400,
    "3ª CAT": 1550,
    "2ª CAT": 1700,
    "1ª CAT": 1850,
}


def expected_score(rating_a: float, rating_b: float) -> float:
    """Probability in [0, 1] that side A beats side B."""
    return 1.0 / (1.0 + 10 ** ((rating_b - rating_a) / 400.0))


def dynamic_k(score_a: int, score_b: int) -> float:
    """K-factor scaled by the game margin, capped at twice the base."""
    margin_factor = 1 + abs(score_a - score_b) / 3
    return min(K_BASE * margin_factor, K_BASE * 2)


def rating_delta(avg_rating_a: float, avg_rating_b: float, score_a: int, score_b: int) -> float:
    """
    Rating change for side A. Caller applies +delta to A's players and -delta to B's.

    actual is 1 / 0.5 / 0 for win / draw / loss from A's perspective.
    """
    if score_a > score_b:
        actual = 1.0
    elif score_a < score_b:
        actual = 0.0
    else:
        actual = 0.5
    return dynamic_k(score_a, score_b) * (actual - expected_score(avg_rating_a, avg_rating_b))


def manual_to_rating(manual: Optional[float] = None) -> float:
    """Convert the 1-10 manual scale to the rating scale: 1 -> 1000, 5 -> 1400, 10 -> 1900."""
    if manual is None:
        manual = 5
    return 900 + manual * 100


def global_rating(player: RatedPlayer) -> float:
    """Global rating, falling back to the manual rating for players with no history."""
    if player.global_rating is not None:
        return player.global_rating
    if player.manual_rating is not None:
        return manual_to_rating(player.manual_rating)
    return DEFAULT_RATING


def match_rating(player: RatedPlayer, category: Optional[str]) -> float:
    """Effective rating of a player for a match played in `category`."""
    if category and category in (player.category_ratings or {}):
        return player.category_ratings[category]
    base = BASE_RATING_BY_CATEGORY.get(category or "", DEFAULT_RATING)
    return round(0.7 * global_rating(player) + 0.3 * base)


def display_rating(player: RatedPlayer) -> int:
    """Blended rating used as the seeding and leaderboard key."""
    glob = global_rating(player)
    ratings = player.category_ratings or {}

    if player.main_category:
        main = match_rating(player, player.main_category)
    else:
        main = glob

    others = [value for cat, value in ratings.items() if cat != player.main_category]
    best_other = max(others) if others else main

    return int(round(0.5 * glob + 0.3 * main + 0.2 * best_other))


def pair_rating(pair: PairEntry, players_by_id: Dict[int, RatedPlayer]) -> int:
    """Combined display rating of a pair; a missing player counts as DEFAULT_RATING."""
    total = 0
    for player_id in (pair.player1_id, pair.player2_id):
        player = players_by_id.get(player_id) if player_id is not None else None
        total += display_rating(player) if player else DEFAULT_RATING
    return total


def _pair_members(pair: PairEntry, players_by_id: Dict[int, RatedPlayer]) -> List[RatedPlayer]:
    return [players_by_id[pid] for pid in (pair.player1_id, pair.player2_id) if pid in players_by_id]


# =============================================================================
# Tournament replay
# =============================================================================


@dataclass
class RatingChange:
    player_id: int
    category_delta: float = 0.0
    global_delta: float = 0.0
    matches: int = 0


def rating_changes(snapshot: TournamentSnapshot, category: Optional[str] = None) -> Dict[int, RatingChange]:
    """
    Replay every finished, fully-determined match in round/slot order and return
    per-player rating changes.

    Ratings move as the replay progresses, so later matches use the updated
    category ratings of earlier ones.
    """
    category = category if category is not None else snapshot.category
    players_by_id = snapshot.players_by_id()
    pairs_by_id = snapshot.pairs_by_id()

    working: Dict[int, float] = {pid: match_rating(p, category) for pid, p in players_by_id.items()}
    changes: Dict[int, RatingChange] = defaultdict(lambda: RatingChange(player_id=0))

    ordered: List[Fixture] = sorted(
        (f for f in snapshot.fixtures if f.is_finished and not f.is_placeholder),
        key=lambda f: (f.round, f.bracket_slot),
    )
    for fixture in ordered:
        pair_a = pairs_by_id.get(fixture.pair_a_id)
        pair_b = pairs_by_id.get(fixture.pair_b_id)
        if pair_a is None or pair_b is None:
            continue
        side_a = _pair_members(pair_a, players_by_id)
        side_b = _pair_members(pair_b, players_by_id)
        if not side_a or not side_b:
            continue

        avg_a = sum(working[p.id] for p in side_a) / len(side_a)
        avg_b = sum(working[p.id] for p in side_b) / len(side_b)
        delta = rating_delta(avg_a, avg_b, fixture.score_a, fixture.score_b)

        for members, signed in ((side_a, delta), (side_b, -delta)):
            for player in members:
                working[player.id] += signed
                change = changes[player.id]
                change.player_id = player.id
                change.category_delta += signed
                change.global_delta += signed * GLOBAL_DAMPING
                change.matches += 1

    return dict(changes)
