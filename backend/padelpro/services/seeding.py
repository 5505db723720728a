"""
Pair seeding.

Deterministic rules for ordering registered pairs before group assignment,
and for deciding which pairs are titular and which are reserves.
"""

from enum import Enum
from typing import List, Sequence, Tuple

from padelpro.services.format_rules import TournamentFormat, pair_quota
from padelpro.services.rating import pair_rating
from padelpro.services.tournament_state import PairEntry, RatedPlayer


class SeedingMethod(str, Enum):
    arrival = "arrival"
    elo_balanced = "elo-balanced"
    elo_mixed = "elo-mixed"
    manual = "manual"


def seed_pairs(
    pairs: Sequence[PairEntry],
    players: Sequence[RatedPlayer],
    method: SeedingMethod,
) -> List[PairEntry]:
    """
    Order pairs for group assignment.

    - arrival: ascending pair id (registration order)
    - elo-balanced / elo-mixed: combined pair rating, strongest first.
      Both sort the same way; they differ only in how groups consume the order.
    - manual: input order preserved verbatim

    Sorts are stable, so equal ratings keep their input order.
    """
    method = SeedingMethod(method)
    ordered = list(pairs)

    if method == SeedingMethod.arrival:
        return sorted(ordered, key=lambda p: p.id)

    if method in (SeedingMethod.elo_balanced, SeedingMethod.elo_mixed):
        players_by_id = {p.id: p for p in players}
        return sorted(ordered, key=lambda p: -pair_rating(p, players_by_id))

    return ordered


def is_mixed(method: SeedingMethod) -> bool:
    """Zig-zag group distribution is used only by elo-mixed."""
    return SeedingMethod(method) == SeedingMethod.elo_mixed


def eligible_pairs(pairs: Sequence[PairEntry]) -> List[PairEntry]:
    """Confirmed pairs with both players registered."""
    return [p for p in pairs if p.status == "confirmed" and p.is_complete]


def split_reserves(pairs: Sequence[PairEntry], fmt: TournamentFormat) -> Tuple[List[PairEntry], List[PairEntry]]:
    """
    Split pairs into (titular, reserves) in registration order.

    Reserve status is derived on read: an eligible pair is titular when its
    index among eligible pairs is below the format quota. Incomplete or
    pending pairs are always reserves.
    """
    quota = pair_quota(fmt)
    ordered = sorted(pairs, key=lambda p: p.id)
    eligible_ids = {p.id for p in eligible_pairs(ordered)}

    titular: List[PairEntry] = []
    reserves: List[PairEntry] = []
    for pair in ordered:
        if pair.id in eligible_ids and len(titular) < quota:
            titular.append(pair)
        else:
            reserves.append(pair)
    return titular, reserves
