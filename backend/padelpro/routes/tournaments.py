from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, field_validator
from sqlmodel import Session, select

from padelpro.database import get_session
from padelpro.models.tournament import Tournament, TournamentStatus
from padelpro.services import tournament_service
from padelpro.services.format_rules import TournamentFormat, pair_quota
from padelpro.services.seeding import SeedingMethod
from padelpro.utils.courts import parse_court_names
from padelpro.utils.tournament_guards import require_status, require_tournament, service_errors
from padelpro.utils.tournament_locks import forget

router = APIRouter()


class TournamentCreate(BaseModel):
    name: str
    format: TournamentFormat
    court_count: Optional[int] = None
    court_names: Optional[List[str]] = None
    category: Optional[str] = None
    seeding_method: SeedingMethod = SeedingMethod.elo_balanced

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("name is required")
        return v.strip()

    @field_validator("court_count")
    @classmethod
    def validate_court_count(cls, v):
        if v is not None and v < 1:
            raise ValueError("court_count must be >= 1")
        return v


class FormatUpdate(BaseModel):
    format: TournamentFormat


class TournamentResponse(BaseModel):
    id: int
    name: str
    format: str
    status: str
    current_round: int
    court_count: int
    court_names: Optional[List[str]] = None
    category: Optional[str]
    seeding_method: str
    pair_quota: int
    champion_main_id: Optional[int]
    champion_consolation_id: Optional[int]
    created_at: datetime
    updated_at: datetime

    @field_validator("court_names", mode="before")
    @classmethod
    def normalize_court_names(cls, v):
        if v is None:
            return None
        return parse_court_names(v)


class PairCreate(BaseModel):
    player1_id: int
    player2_id: Optional[int] = None
    status: str = "confirmed"


class PairUpdate(BaseModel):
    player1_id: int
    player2_id: Optional[int] = None


class PartnerAssign(BaseModel):
    partner_id: int
    merge_with_pair_id: Optional[int] = None


class InviteResponse(BaseModel):
    action: str

    @field_validator("action")
    @classmethod
    def validate_action(cls, v):
        if v not in ("accept", "reject"):
            raise ValueError("action must be 'accept' or 'reject'")
        return v


class PairResponse(BaseModel):
    id: int
    tournament_id: int
    player1_id: int
    player2_id: Optional[int]
    status: str
    group_id: Optional[str]
    is_reserve: bool

    class Config:
        from_attributes = True


def _to_response(tournament: Tournament) -> TournamentResponse:
    fmt = TournamentFormat(tournament.format)
    return TournamentResponse(
        id=tournament.id,
        name=tournament.name,
        format=fmt.value,
        status=tournament.status,
        current_round=tournament.current_round,
        court_count=tournament.court_count,
        court_names=tournament.court_names,
        category=tournament.category,
        seeding_method=tournament.seeding_method,
        pair_quota=pair_quota(fmt),
        champion_main_id=tournament.champion_main_id,
        champion_consolation_id=tournament.champion_consolation_id,
        created_at=tournament.created_at,
        updated_at=tournament.updated_at,
    )


@router.get("/tournaments", response_model=List[TournamentResponse])
def list_tournaments(session: Session = Depends(get_session)):
    """List all tournaments"""
    return [_to_response(t) for t in session.exec(select(Tournament).order_by(Tournament.id)).all()]


@router.post("/tournaments", response_model=TournamentResponse, status_code=201)
def create_tournament(data: TournamentCreate, session: Session = Depends(get_session)):
    with service_errors():
        tournament = tournament_service.create_tournament(
            session,
            name=data.name,
            fmt=data.format,
            court_count=data.court_count,
            court_names=data.court_names,
            category=data.category,
            seeding_method=data.seeding_method,
        )
    return _to_response(tournament)


@router.get("/tournaments/{tournament_id}", response_model=TournamentResponse)
def get_tournament(tournament_id: int, session: Session = Depends(get_session)):
    return _to_response(require_tournament(session, tournament_id))


@router.put("/tournaments/{tournament_id}/format", response_model=TournamentResponse)
def update_format(tournament_id: int, data: FormatUpdate, session: Session = Depends(get_session)):
    """Change format; only while the tournament is in setup"""
    with service_errors():
        tournament = tournament_service.set_format(session, tournament_id, data.format)
    return _to_response(tournament)


@router.delete("/tournaments/{tournament_id}", status_code=204)
def delete_tournament(tournament_id: int, session: Session = Depends(get_session)):
    """Delete a tournament that is not currently being played"""
    tournament = require_status(
        require_tournament(session, tournament_id), TournamentStatus.setup, TournamentStatus.finished
    )
    for match in tournament.matches:
        session.delete(match)
    for pair in tournament.pairs:
        session.delete(pair)
    session.delete(tournament)
    session.commit()
    forget(tournament_id)
    return Response(status_code=204)


# =============================================================================
# Pairs
# =============================================================================


def _pair_response(session: Session, tournament_id: int, pair_id: int) -> PairResponse:
    with service_errors():
        rows = tournament_service.list_pairs_with_reserve(session, tournament_id)
    pair, is_reserve = next((row, reserve) for row, reserve in rows if row.id == pair_id)
    return PairResponse(
        id=pair.id,
        tournament_id=pair.tournament_id,
        player1_id=pair.player1_id,
        player2_id=pair.player2_id,
        status=pair.status,
        group_id=pair.group_id,
        is_reserve=is_reserve,
    )


@router.get("/tournaments/{tournament_id}/pairs", response_model=List[PairResponse])
def list_pairs(tournament_id: int, session: Session = Depends(get_session)):
    """Pairs in registration order; reserves are derived from the quota, or from group membership once started"""
    with service_errors():
        rows = tournament_service.list_pairs_with_reserve(session, tournament_id)
    return [
        PairResponse(
            id=pair.id,
            tournament_id=pair.tournament_id,
            player1_id=pair.player1_id,
            player2_id=pair.player2_id,
            status=pair.status,
            group_id=pair.group_id,
            is_reserve=is_reserve,
        )
        for pair, is_reserve in rows
    ]


@router.post("/tournaments/{tournament_id}/pairs", response_model=PairResponse, status_code=201)
def register_pair(tournament_id: int, data: PairCreate, session: Session = Depends(get_session)):
    with service_errors():
        pair = tournament_service.register_pair(
            session, tournament_id, data.player1_id, data.player2_id, data.status
        )
    return _pair_response(session, tournament_id, pair.id)


@router.put("/tournaments/{tournament_id}/pairs/{pair_id}", response_model=PairResponse)
def update_pair(tournament_id: int, pair_id: int, data: PairUpdate, session: Session = Depends(get_session)):
    """Replace a pair's players; only while the tournament is in setup"""
    with service_errors():
        tournament_service.update_pair(session, tournament_id, pair_id, data.player1_id, data.player2_id)
    return _pair_response(session, tournament_id, pair_id)


@router.post("/tournaments/{tournament_id}/pairs/{pair_id}/partner", response_model=PairResponse)
def assign_partner(tournament_id: int, pair_id: int, data: PartnerAssign, session: Session = Depends(get_session)):
    """Complete a solo registration, optionally merging the partner's own solo pair"""
    with service_errors():
        tournament_service.assign_partner(
            session, tournament_id, pair_id, data.partner_id, merge_with_pair_id=data.merge_with_pair_id
        )
    return _pair_response(session, tournament_id, pair_id)


@router.post("/tournaments/{tournament_id}/pairs/{pair_id}/respond", response_model=PairResponse)
def respond_to_invite(tournament_id: int, pair_id: int, data: InviteResponse, session: Session = Depends(get_session)):
    with service_errors():
        tournament_service.respond_to_invite(session, tournament_id, pair_id, accept=data.action == "accept")
    return _pair_response(session, tournament_id, pair_id)


@router.delete("/tournaments/{tournament_id}/pairs/{pair_id}", status_code=204)
def remove_pair(tournament_id: int, pair_id: int, session: Session = Depends(get_session)):
    with service_errors():
        tournament_service.remove_pair(session, tournament_id, pair_id)
    return Response(status_code=204)
