"""
Tournament lifecycle service.

Maps SQLModel rows to engine snapshots and persists what the engine returns:

    setup  --start_tournament-->  active  --advance_round (terminal)-->  finished
      ^                             |
      +--------reset_to_setup-------+

Every mutation runs under the tournament's write lock.
"""

import logging
import os
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from sqlmodel import Session, select

from padelpro.models.match import Match
from padelpro.models.pair import TournamentPair
from padelpro.models.player import Player
from padelpro.models.tournament import Tournament, TournamentStatus
from padelpro.services.fixture_generator import generate_group_fixtures
from padelpro.services.format_rules import (
    Bracket,
    Phase,
    TournamentFormat,
    group_names,
    group_size,
    pair_quota,
    scheduling_mode,
    terminal_round,
)
from padelpro.services.playoff_engine import next_round, resolve_champions, waiting_fixtures
from padelpro.services.rating import global_rating, match_rating, rating_changes
from padelpro.services.seeding import SeedingMethod, eligible_pairs, split_reserves
from padelpro.services.standings import recalculate_stats
from padelpro.services.tournament_state import Fixture, Group, PairEntry, RatedPlayer, TournamentSnapshot
from padelpro.utils.group_assignment import groups_for_method
from padelpro.utils.group_reconstruction import reconstruct_groups
from padelpro.utils.tournament_locks import tournament_lock

logger = logging.getLogger(__name__)


class EntityNotFoundError(Exception):
    """Raised when a referenced tournament, pair, player or match does not exist."""
    pass


class TournamentNotFoundError(EntityNotFoundError):
    """Raised when a tournament id does not exist."""
    pass


class TournamentLifecycleError(Exception):
    """Raised when an operation's precondition does not hold for the tournament's current state."""
    pass


def default_court_count() -> int:
    return int(os.getenv("DEFAULT_COURT_COUNT", "6"))


def _get_tournament(session: Session, tournament_id: int) -> Tournament:
    tournament = session.get(Tournament, tournament_id)
    if not tournament:
        raise TournamentNotFoundError(f"Tournament {tournament_id} not found")
    return tournament


def _require_status(tournament: Tournament, *statuses: TournamentStatus) -> None:
    if tournament.status not in [s.value for s in statuses]:
        raise TournamentLifecycleError(
            f"Tournament {tournament.id} is '{tournament.status}', "
            f"expected {' or '.join(s.value for s in statuses)}"
        )


def _pairs(session: Session, tournament_id: int) -> List[TournamentPair]:
    return list(
        session.exec(
            select(TournamentPair)
            .where(TournamentPair.tournament_id == tournament_id)
            .order_by(TournamentPair.id)
        ).all()
    )


def _matches(session: Session, tournament_id: int) -> List[Match]:
    return list(
        session.exec(
            select(Match)
            .where(Match.tournament_id == tournament_id)
            .order_by(Match.round_number, Match.bracket_slot)
        ).all()
    )


# =============================================================================
# Setup
# =============================================================================


def create_tournament(
    session: Session,
    name: str,
    fmt: TournamentFormat,
    court_count: Optional[int] = None,
    court_names: Optional[List[str]] = None,
    category: Optional[str] = None,
    seeding_method: SeedingMethod = SeedingMethod.elo_balanced,
) -> Tournament:
    if court_count is None:
        court_count = default_court_count()
    if court_count < 1:
        raise TournamentLifecycleError("court_count must be at least 1")

    tournament = Tournament(
        name=name,
        format=TournamentFormat(fmt).value,
        court_count=court_count,
        court_names=court_names,
        category=category,
        seeding_method=SeedingMethod(seeding_method).value,
    )
    session.add(tournament)
    session.commit()
    session.refresh(tournament)
    logger.info("Created tournament %s (%s, %d courts)", tournament.id, tournament.format, court_count)
    return tournament


def set_format(session: Session, tournament_id: int, fmt: TournamentFormat) -> Tournament:
    """Change the format while pairs are still being registered."""
    with tournament_lock(tournament_id):
        tournament = _get_tournament(session, tournament_id)
        _require_status(tournament, TournamentStatus.setup)
        tournament.format = TournamentFormat(fmt).value
        tournament.updated_at = datetime.utcnow()
        session.add(tournament)
        session.commit()
        session.refresh(tournament)
        return tournament


def _get_pair(session: Session, tournament_id: int, pair_id: int) -> TournamentPair:
    pair = session.get(TournamentPair, pair_id)
    if not pair or pair.tournament_id != tournament_id:
        raise EntityNotFoundError(f"Pair {pair_id} not found in tournament {tournament_id}")
    return pair


def _check_players_available(
    session: Session,
    tournament_id: int,
    player_ids: Sequence[Optional[int]],
    ignore_pair_ids: Sequence[int] = (),
) -> None:
    """Players must exist and not sit in another live pair of the tournament."""
    wanted = [pid for pid in player_ids if pid is not None]
    if len(wanted) != len(set(wanted)):
        raise TournamentLifecycleError("A pair needs two different players")
    for pid in wanted:
        if not session.get(Player, pid):
            raise EntityNotFoundError(f"Player {pid} not found")

    for pair in _pairs(session, tournament_id):
        if pair.id in ignore_pair_ids or pair.status == "rejected":
            continue
        taken = {pair.player1_id, pair.player2_id} & set(wanted)
        if taken:
            raise TournamentLifecycleError(
                f"Player {sorted(taken)[0]} is already registered in pair {pair.id}"
            )


def register_pair(
    session: Session,
    tournament_id: int,
    player1_id: int,
    player2_id: Optional[int] = None,
    status: str = "confirmed",
) -> TournamentPair:
    """
    Register a pair. Allowed until the tournament finishes; pairs registered
    after the start only ever act as reserves.
    """
    with tournament_lock(tournament_id):
        tournament = _get_tournament(session, tournament_id)
        _require_status(tournament, TournamentStatus.setup, TournamentStatus.active)

        if status not in ("confirmed", "pending"):
            raise TournamentLifecycleError(f"Unknown pair status '{status}'")
        _check_players_available(session, tournament_id, [player1_id, player2_id])

        pair = TournamentPair(
            tournament_id=tournament_id,
            player1_id=player1_id,
            player2_id=player2_id,
            status=status,
        )
        session.add(pair)
        session.commit()
        session.refresh(pair)
        return pair


def update_pair(
    session: Session,
    tournament_id: int,
    pair_id: int,
    player1_id: int,
    player2_id: Optional[int] = None,
) -> TournamentPair:
    """Replace a pair's players. Setup only; identities are fixed once groups exist."""
    with tournament_lock(tournament_id):
        tournament = _get_tournament(session, tournament_id)
        _require_status(tournament, TournamentStatus.setup)
        pair = _get_pair(session, tournament_id, pair_id)
        _check_players_available(session, tournament_id, [player1_id, player2_id], ignore_pair_ids=[pair.id])

        pair.player1_id = player1_id
        pair.player2_id = player2_id
        session.add(pair)
        session.commit()
        session.refresh(pair)
        return pair


def assign_partner(
    session: Session,
    tournament_id: int,
    pair_id: int,
    partner_id: int,
    merge_with_pair_id: Optional[int] = None,
) -> TournamentPair:
    """
    Complete a solo registration with `partner_id`.

    When the partner registered solo as well, pass that pair as
    `merge_with_pair_id`: it is deleted and the partner moves into `pair_id`.
    """
    with tournament_lock(tournament_id):
        tournament = _get_tournament(session, tournament_id)
        _require_status(tournament, TournamentStatus.setup)
        pair = _get_pair(session, tournament_id, pair_id)
        if pair.player2_id is not None:
            raise TournamentLifecycleError(f"Pair {pair_id} already has two players")

        merged: Optional[TournamentPair] = None
        if merge_with_pair_id is not None:
            if merge_with_pair_id == pair_id:
                raise TournamentLifecycleError("A pair cannot merge with itself")
            merged = _get_pair(session, tournament_id, merge_with_pair_id)
            if merged.player1_id != partner_id or merged.player2_id is not None:
                raise TournamentLifecycleError(
                    f"Pair {merge_with_pair_id} is not a solo registration of player {partner_id}"
                )

        ignore = [pair.id] + ([merged.id] if merged else [])
        _check_players_available(session, tournament_id, [pair.player1_id, partner_id], ignore_pair_ids=ignore)

        if merged:
            session.delete(merged)
        pair.player2_id = partner_id
        session.add(pair)
        session.commit()
        session.refresh(pair)
        logger.info("Pair %s completed with player %s", pair.id, partner_id)
        return pair


def respond_to_invite(session: Session, tournament_id: int, pair_id: int, accept: bool) -> TournamentPair:
    """Confirm or reject a pending pair. Rejected pairs free their players."""
    with tournament_lock(tournament_id):
        tournament = _get_tournament(session, tournament_id)
        _require_status(tournament, TournamentStatus.setup)
        pair = _get_pair(session, tournament_id, pair_id)
        if pair.status != "pending":
            raise TournamentLifecycleError(f"Pair {pair_id} is '{pair.status}', expected pending")

        pair.status = "confirmed" if accept else "rejected"
        session.add(pair)
        session.commit()
        session.refresh(pair)
        return pair


def remove_pair(session: Session, tournament_id: int, pair_id: int) -> None:
    """Remove a pair no match references. Reserve status of the others shifts on read."""
    with tournament_lock(tournament_id):
        _get_tournament(session, tournament_id)
        pair = _get_pair(session, tournament_id, pair_id)

        referenced = session.exec(
            select(Match).where(
                Match.tournament_id == tournament_id,
                (Match.pair_a_id == pair_id) | (Match.pair_b_id == pair_id),
            )
        ).first()
        if referenced:
            raise TournamentLifecycleError(f"Pair {pair_id} already plays in match {referenced.id}")

        session.delete(pair)
        session.commit()


def list_pairs_with_reserve(session: Session, tournament_id: int) -> List[Tuple[TournamentPair, bool]]:
    """
    (pair, is_reserve) in registration order.

    During setup the quota is filled in registration order. Once groups
    exist, a pair is a reserve exactly when it belongs to no group.
    """
    tournament = _get_tournament(session, tournament_id)
    rows = _pairs(session, tournament_id)
    if tournament.status == TournamentStatus.setup.value:
        _, reserves = split_reserves([_pair_entry(p) for p in rows], TournamentFormat(tournament.format))
        reserve_ids = {p.id for p in reserves}
        return [(row, row.id in reserve_ids) for row in rows]

    active_ids = {pid for g in build_snapshot(session, tournament).groups for pid in g.pair_ids}
    return [(row, row.id not in active_ids) for row in rows]


# =============================================================================
# Snapshot mapping
# =============================================================================


def _pair_entry(row: TournamentPair) -> PairEntry:
    return PairEntry(
        id=row.id,
        player1_id=row.player1_id,
        player2_id=row.player2_id,
        status=row.status,
        group_id=row.group_id,
    )


def to_rated_player(row: Player) -> RatedPlayer:
    return RatedPlayer(
        id=row.id,
        name=row.name,
        nickname=row.nickname,
        global_rating=row.global_rating,
        category_ratings=dict(row.category_ratings or {}),
        main_category=row.main_category,
        manual_rating=row.manual_rating,
    )


def _fixture(row: Match) -> Fixture:
    return Fixture(
        id=row.id,
        round=row.round_number,
        phase=Phase(row.phase),
        bracket=Bracket(row.bracket) if row.bracket else None,
        bracket_slot=row.bracket_slot,
        physical_court=row.court,
        pair_a_id=row.pair_a_id,
        pair_b_id=row.pair_b_id,
        score_a=row.score_a,
        score_b=row.score_b,
    )


def _match_row(tournament_id: int, fixture: Fixture) -> Match:
    return Match(
        tournament_id=tournament_id,
        round_number=fixture.round,
        phase=Phase(fixture.phase).value,
        bracket=Bracket(fixture.bracket).value if fixture.bracket else None,
        bracket_slot=fixture.bracket_slot,
        court=fixture.physical_court,
        pair_a_id=fixture.pair_a_id,
        pair_b_id=fixture.pair_b_id,
    )


def _stored_groups(rows: Sequence[TournamentPair]) -> List[Group]:
    members: Dict[str, List[TournamentPair]] = {}
    for row in rows:
        if row.group_id:
            members.setdefault(row.group_id, []).append(row)
    return [
        Group(
            id=group_id,
            pair_ids=[r.id for r in sorted(grouped, key=lambda r: (r.group_position is None, r.group_position, r.id))],
        )
        for group_id, grouped in sorted(members.items())
    ]


def _groups_complete(groups: Sequence[Group], fmt: TournamentFormat) -> bool:
    if [g.id for g in groups] != group_names(fmt):
        return False
    return all(len(g.pair_ids) == group_size(fmt) for g in groups)


def build_snapshot(session: Session, tournament: Tournament) -> TournamentSnapshot:
    """
    Rehydrate the engine view of a tournament.

    Groups come from the pairs' group columns; when those are missing or
    incomplete on an active tournament they are reconstructed from the group
    fixtures.
    """
    pair_rows = _pairs(session, tournament.id)
    match_rows = _matches(session, tournament.id)

    player_ids = {pid for r in pair_rows for pid in (r.player1_id, r.player2_id) if pid is not None}
    players = [to_rated_player(p) for p in session.exec(select(Player).where(Player.id.in_(player_ids))).all()] if player_ids else []

    fixtures = [_fixture(m) for m in match_rows]
    pairs = recalculate_stats([_pair_entry(r) for r in pair_rows], fixtures)
    fmt = TournamentFormat(tournament.format)

    groups = _stored_groups(pair_rows)
    if fixtures and not _groups_complete(groups, fmt):
        logger.warning("Tournament %s has fixtures but incomplete stored groups; reconstructing", tournament.id)
        groups = reconstruct_groups(pairs, fixtures, players, fmt)

    return TournamentSnapshot(
        format=fmt,
        court_count=tournament.court_count,
        current_round=tournament.current_round,
        players=players,
        pairs=pairs,
        fixtures=fixtures,
        groups=groups,
        category=tournament.category,
    )


# =============================================================================
# Lifecycle
# =============================================================================


def start_tournament(
    session: Session,
    tournament_id: int,
    method: Optional[SeedingMethod] = None,
    manual_order: Optional[Sequence[int]] = None,
) -> List[Match]:
    """
    Seed pairs, assign groups and schedule the whole group stage.

    Raises:
        TournamentLifecycleError: not in setup, or fewer eligible pairs than the quota
    """
    with tournament_lock(tournament_id):
        tournament = _get_tournament(session, tournament_id)
        _require_status(tournament, TournamentStatus.setup)

        fmt = TournamentFormat(tournament.format)
        method = SeedingMethod(method or tournament.seeding_method)
        quota = pair_quota(fmt)

        snapshot = build_snapshot(session, tournament)
        eligible = eligible_pairs(snapshot.pairs)
        if len(eligible) < quota:
            raise TournamentLifecycleError(
                f"Format {fmt.value} needs {quota} confirmed complete pairs, only {len(eligible)} registered"
            )

        if method == SeedingMethod.manual:
            if manual_order is None:
                raise TournamentLifecycleError("Manual seeding needs an explicit pair order")
            eligible_ids = {p.id for p in eligible}
            listed = len({pid for pid in manual_order if pid in eligible_ids})
            if listed < quota:
                raise TournamentLifecycleError(
                    f"Manual order lists {listed} eligible pairs, format {fmt.value} needs {quota}"
                )
        else:
            manual_order = None

        # Seeding ranks every eligible pair; assign_groups keeps the top quota.
        groups = groups_for_method(eligible, snapshot.players, fmt, method, manual_order=manual_order)
        fixtures = generate_group_fixtures(groups, fmt, tournament.court_count)

        rows_by_id = {r.id: r for r in _pairs(session, tournament_id)}
        for group in groups:
            for position, pair_id in enumerate(group.pair_ids):
                row = rows_by_id[pair_id]
                row.group_id = group.id
                row.group_position = position
                session.add(row)

        matches = [_match_row(tournament_id, f) for f in fixtures]
        session.add_all(matches)

        tournament.status = TournamentStatus.active.value
        tournament.current_round = 1
        tournament.seeding_method = method.value
        tournament.updated_at = datetime.utcnow()
        session.add(tournament)
        session.commit()
        for match in matches:
            session.refresh(match)

        logger.info(
            "Started tournament %s: %s, %s seeding, %d group fixtures",
            tournament_id,
            fmt.value,
            method.value,
            len(matches),
        )
        return matches


def record_score(session: Session, tournament_id: int, match_id: int, score_a: int, score_b: int) -> Match:
    """
    Record both scores of a current-round match at once.

    Raises:
        TournamentLifecycleError: tournament not active, match outside the
            current round, undetermined side, waiting knockout match, negative
            score or drawn knockout match
    """
    with tournament_lock(tournament_id):
        tournament = _get_tournament(session, tournament_id)
        _require_status(tournament, TournamentStatus.active)

        match = session.get(Match, match_id)
        if not match or match.tournament_id != tournament_id:
            raise EntityNotFoundError(f"Match {match_id} not found in tournament {tournament_id}")
        if match.round_number != tournament.current_round:
            raise TournamentLifecycleError(
                f"Match {match_id} belongs to round {match.round_number}, current round is {tournament.current_round}"
            )
        if match.pair_a_id is None or match.pair_b_id is None:
            raise TournamentLifecycleError(f"Match {match_id} has an undetermined side and cannot be scored yet")
        if match.bracket is not None and match.court is None:
            raise TournamentLifecycleError(f"Match {match_id} is waiting for a court and is played next round")
        if score_a < 0 or score_b < 0:
            raise TournamentLifecycleError("Scores must be non-negative")
        if match.bracket is not None and score_a == score_b:
            raise TournamentLifecycleError("Knockout matches cannot end in a draw")

        match.score_a = score_a
        match.score_b = score_b
        match.completed_at = datetime.utcnow()
        session.add(match)
        session.commit()
        session.refresh(match)
        return match


def advance_round(session: Session, tournament_id: int) -> List[Match]:
    """
    Close the current round and persist the next one.

    Returns the newly created matches; empty between group rounds and when the
    terminal round closes (the tournament is then finished).

    Raises:
        TournamentLifecycleError: tournament not active or current round unfinished
        RoundAdvanceError: current round is not defined for the format
    """
    with tournament_lock(tournament_id):
        tournament = _get_tournament(session, tournament_id)
        _require_status(tournament, TournamentStatus.active)

        snapshot = build_snapshot(session, tournament)
        carried = {f.id for f in waiting_fixtures(snapshot)}
        pending = [
            f for f in snapshot.fixtures
            if f.round == tournament.current_round and f.id not in carried and not f.is_finished
        ]
        if pending:
            raise TournamentLifecycleError(
                f"Round {tournament.current_round} has {len(pending)} unfinished matches"
            )

        fixtures = next_round(snapshot, tournament.court_count)
        matches = [_match_row(tournament_id, f) for f in fixtures]
        session.add_all(matches)

        for match_id in carried:
            session.delete(session.get(Match, match_id))

        mode = scheduling_mode(snapshot.format, tournament.court_count)
        if tournament.current_round >= terminal_round(snapshot.format, mode):
            session.commit()
            _finish(session, tournament)
            return []

        tournament.current_round += 1
        tournament.updated_at = datetime.utcnow()
        session.add(tournament)
        session.commit()
        for match in matches:
            session.refresh(match)

        logger.info(
            "Tournament %s advanced to round %d (%d new matches)",
            tournament_id,
            tournament.current_round,
            len(matches),
        )
        return matches


def finish_tournament(session: Session, tournament_id: int) -> Tournament:
    """
    Record champions and apply rating updates.

    Raises:
        TournamentLifecycleError: tournament not active, or a final is still unplayed
    """
    with tournament_lock(tournament_id):
        tournament = _get_tournament(session, tournament_id)
        _require_status(tournament, TournamentStatus.active)
        return _finish(session, tournament)


def _finish(session: Session, tournament: Tournament) -> Tournament:
    snapshot = build_snapshot(session, tournament)
    champions = resolve_champions(snapshot, tournament.court_count)
    if champions[Bracket.main] is None:
        raise TournamentLifecycleError(f"Tournament {tournament.id} has no decided main final yet")

    tournament.champion_main_id = champions[Bracket.main]
    tournament.champion_consolation_id = champions.get(Bracket.consolation)
    if not tournament.ratings_applied:
        _apply_ratings(session, snapshot)
        tournament.ratings_applied = True

    tournament.status = TournamentStatus.finished.value
    tournament.updated_at = datetime.utcnow()
    session.add(tournament)
    session.commit()
    session.refresh(tournament)

    logger.info(
        "Tournament %s finished: main champion pair %s, consolation champion pair %s",
        tournament.id,
        tournament.champion_main_id,
        tournament.champion_consolation_id,
    )
    return tournament


def _apply_ratings(session: Session, snapshot: TournamentSnapshot) -> None:
    players_by_id = snapshot.players_by_id()
    for player_id, change in rating_changes(snapshot, snapshot.category).items():
        row = session.get(Player, player_id)
        before = players_by_id[player_id]

        row.global_rating = round(global_rating(before) + change.global_delta, 1)
        if snapshot.category:
            ratings = dict(row.category_ratings or {})
            ratings[snapshot.category] = round(match_rating(before, snapshot.category) + change.category_delta, 1)
            row.category_ratings = ratings
        row.matches_played += change.matches
        session.add(row)


def reset_to_setup(session: Session, tournament_id: int) -> Tournament:
    """
    Drop every match and group assignment of an active tournament.

    Finished tournaments cannot be reset: their ratings are already applied.
    """
    with tournament_lock(tournament_id):
        tournament = _get_tournament(session, tournament_id)
        _require_status(tournament, TournamentStatus.active)

        for match in _matches(session, tournament_id):
            session.delete(match)
        for row in _pairs(session, tournament_id):
            row.group_id = None
            row.group_position = None
            session.add(row)

        tournament.status = TournamentStatus.setup.value
        tournament.current_round = 0
        tournament.champion_main_id = None
        tournament.champion_consolation_id = None
        tournament.updated_at = datetime.utcnow()
        session.add(tournament)
        session.commit()
        session.refresh(tournament)

        logger.info("Tournament %s reset to setup", tournament_id)
        return tournament
