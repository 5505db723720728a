"""
Runtime: start, scoring, round advance and standings of an active tournament.

Scores are entered per match; rounds only advance on explicit request once
every playable match of the current round is scored.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, model_validator
from sqlmodel import Session

from padelpro.database import get_session
from padelpro.models.match import Match
from padelpro.models.tournament import Tournament
from padelpro.services import tournament_service
from padelpro.services.format_rules import Bracket
from padelpro.services.playoff_engine import resolve_champions
from padelpro.services.score_parser import parse_score
from padelpro.services.seeding import SeedingMethod
from padelpro.services.standings import group_standings
from padelpro.services.tournament_state import UNDETERMINED_LABEL
from padelpro.utils.courts import court_label_for_index
from padelpro.utils.tournament_guards import require_tournament, service_errors

router = APIRouter()


class StartRequest(BaseModel):
    method: Optional[SeedingMethod] = None
    manual_order: Optional[List[int]] = None


class ScoreUpdate(BaseModel):
    """Either score_a + score_b, or a score string / dict like "6-4"."""

    score_a: Optional[int] = None
    score_b: Optional[int] = None
    score: Optional[Union[str, Dict[str, Any]]] = None

    @model_validator(mode="after")
    def validate_shape(self):
        has_pair = self.score_a is not None and self.score_b is not None
        if not has_pair and self.score is None:
            raise ValueError("Provide score_a and score_b, or score")
        return self


class MatchState(BaseModel):
    id: int
    tournament_id: int
    round_number: int
    phase: str
    bracket: Optional[str] = None
    bracket_slot: int
    court: Optional[int] = None
    court_label: str
    pair_a_id: Optional[int] = None
    pair_b_id: Optional[int] = None
    pair_a_label: str
    pair_b_label: str
    score_a: Optional[int] = None
    score_b: Optional[int] = None
    is_finished: bool
    completed_at: Optional[datetime] = None


class StandingRow(BaseModel):
    position: int
    pair_id: int
    played: int
    won: int
    game_diff: int


class ChampionsResponse(BaseModel):
    status: str
    main: Optional[int] = None
    consolation: Optional[int] = None


def _to_state(m: Match, tournament: Tournament) -> MatchState:
    return MatchState(
        id=m.id,
        tournament_id=m.tournament_id,
        round_number=m.round_number,
        phase=m.phase,
        bracket=m.bracket,
        bracket_slot=m.bracket_slot,
        court=m.court,
        court_label=court_label_for_index(tournament.court_names, m.court),
        pair_a_id=m.pair_a_id,
        pair_b_id=m.pair_b_id,
        pair_a_label=str(m.pair_a_id) if m.pair_a_id is not None else UNDETERMINED_LABEL,
        pair_b_label=str(m.pair_b_id) if m.pair_b_id is not None else UNDETERMINED_LABEL,
        score_a=m.score_a,
        score_b=m.score_b,
        is_finished=m.is_finished,
        completed_at=m.completed_at,
    )


@router.post("/tournaments/{tournament_id}/start", response_model=List[MatchState])
def start_tournament(
    tournament_id: int,
    body: Optional[StartRequest] = None,
    session: Session = Depends(get_session),
):
    """Seed pairs, build groups and schedule the group stage"""
    body = body or StartRequest()
    with service_errors():
        matches = tournament_service.start_tournament(
            session, tournament_id, method=body.method, manual_order=body.manual_order
        )
    tournament = require_tournament(session, tournament_id)
    return [_to_state(m, tournament) for m in matches]


@router.get("/tournaments/{tournament_id}/matches", response_model=List[MatchState])
def list_matches(tournament_id: int, round_number: Optional[int] = None, session: Session = Depends(get_session)):
    """All matches, or one round's, ordered by round and bracket slot"""
    tournament = require_tournament(session, tournament_id)
    matches = sorted(tournament.matches, key=lambda m: (m.round_number, m.bracket or "", m.bracket_slot))
    if round_number is not None:
        matches = [m for m in matches if m.round_number == round_number]
    return [_to_state(m, tournament) for m in matches]


@router.patch("/tournaments/{tournament_id}/matches/{match_id}/score", response_model=MatchState)
def update_score(
    tournament_id: int,
    match_id: int,
    update: ScoreUpdate,
    session: Session = Depends(get_session),
):
    """Record a match score in games"""
    if update.score_a is not None and update.score_b is not None:
        score_a, score_b = update.score_a, update.score_b
    else:
        parsed = parse_score(update.score)
        if parsed is None:
            raise HTTPException(status_code=422, detail=f"Invalid or inconsistent score: {update.score!r}")
        score_a, score_b = parsed.pair_a_games, parsed.pair_b_games

    with service_errors():
        match = tournament_service.record_score(session, tournament_id, match_id, score_a, score_b)
    tournament = require_tournament(session, tournament_id)
    return _to_state(match, tournament)


@router.post("/tournaments/{tournament_id}/next-round", response_model=List[MatchState])
def next_round(tournament_id: int, session: Session = Depends(get_session)):
    """Close the current round; returns the matches created for the next one"""
    with service_errors():
        matches = tournament_service.advance_round(session, tournament_id)
    tournament = require_tournament(session, tournament_id)
    return [_to_state(m, tournament) for m in matches]


@router.get("/tournaments/{tournament_id}/standings", response_model=Dict[str, List[StandingRow]])
def get_standings(tournament_id: int, session: Session = Depends(get_session)):
    """Group tables ranked by wins, then game differential"""
    tournament = require_tournament(session, tournament_id)
    snapshot = tournament_service.build_snapshot(session, tournament)
    return {
        group_id: [
            StandingRow(
                position=index + 1,
                pair_id=pair.id,
                played=pair.stats.played,
                won=pair.stats.won,
                game_diff=pair.stats.game_diff,
            )
            for index, pair in enumerate(ranked)
        ]
        for group_id, ranked in group_standings(snapshot).items()
    }


@router.get("/tournaments/{tournament_id}/champions", response_model=ChampionsResponse)
def get_champions(tournament_id: int, session: Session = Depends(get_session)):
    """Bracket winners so far; None while a final is unplayed"""
    tournament = require_tournament(session, tournament_id)
    if tournament.status == "finished":
        return ChampionsResponse(
            status=tournament.status,
            main=tournament.champion_main_id,
            consolation=tournament.champion_consolation_id,
        )
    snapshot = tournament_service.build_snapshot(session, tournament)
    champions = resolve_champions(snapshot, tournament.court_count)
    return ChampionsResponse(
        status=tournament.status,
        main=champions.get(Bracket.main),
        consolation=champions.get(Bracket.consolation),
    )


@router.post("/tournaments/{tournament_id}/finish", response_model=ChampionsResponse)
def finish_tournament(tournament_id: int, session: Session = Depends(get_session)):
    """Finish early once the main final is decided; applies rating updates"""
    with service_errors():
        tournament = tournament_service.finish_tournament(session, tournament_id)
    return ChampionsResponse(
        status=tournament.status,
        main=tournament.champion_main_id,
        consolation=tournament.champion_consolation_id,
    )


@router.post("/tournaments/{tournament_id}/reset")
def reset_tournament(tournament_id: int, session: Session = Depends(get_session)):
    """Drop all matches and groups and return to setup"""
    with service_errors():
        tournament = tournament_service.reset_to_setup(session, tournament_id)
    return {"tournament_id": tournament.id, "status": tournament.status}
