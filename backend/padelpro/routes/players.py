from datetime import datetime
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator
from sqlmodel import Session, select

from padelpro.database import get_session
from padelpro.models.player import Player
from padelpro.services.rating import BASE_RATING_BY_CATEGORY, display_rating
from padelpro.services.tournament_service import to_rated_player

router = APIRouter()


class PlayerCreate(BaseModel):
    name: str
    nickname: Optional[str] = None
    main_category: Optional[str] = None
    manual_rating: Optional[float] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("name is required")
        return v.strip()

    @field_validator("manual_rating")
    @classmethod
    def validate_manual_rating(cls, v):
        if v is not None and not 1 <= v <= 10:
            raise ValueError("manual_rating must be between 1 and 10")
        return v

    @field_validator("main_category")
    @classmethod
    def validate_main_category(cls, v):
        if v is not None and v not in BASE_RATING_BY_CATEGORY:
            raise ValueError(f"main_category must be one of {list(BASE_RATING_BY_CATEGORY)}")
        return v


class PlayerUpdate(BaseModel):
    name: Optional[str] = None
    nickname: Optional[str] = None
    main_category: Optional[str] = None
    manual_rating: Optional[float] = None


class PlayerResponse(BaseModel):
    id: int
    name: str
    nickname: Optional[str]
    global_rating: Optional[float]
    category_ratings: Dict[str, float]
    main_category: Optional[str]
    manual_rating: Optional[float]
    matches_played: int
    display_rating: int
    created_at: datetime


def _to_response(player: Player) -> PlayerResponse:
    return PlayerResponse(
        id=player.id,
        name=player.name,
        nickname=player.nickname,
        global_rating=player.global_rating,
        category_ratings=player.category_ratings or {},
        main_category=player.main_category,
        manual_rating=player.manual_rating,
        matches_played=player.matches_played,
        display_rating=display_rating(to_rated_player(player)),
        created_at=player.created_at,
    )


@router.get("/players", response_model=List[PlayerResponse])
def list_players(session: Session = Depends(get_session)):
    """List players, highest display rating first"""
    players = [_to_response(p) for p in session.exec(select(Player).order_by(Player.id)).all()]
    return sorted(players, key=lambda p: -p.display_rating)


@router.post("/players", response_model=PlayerResponse, status_code=201)
def create_player(player_data: PlayerCreate, session: Session = Depends(get_session)):
    player = Player(**player_data.model_dump())
    session.add(player)
    session.commit()
    session.refresh(player)
    return _to_response(player)


@router.get("/players/{player_id}", response_model=PlayerResponse)
def get_player(player_id: int, session: Session = Depends(get_session)):
    player = session.get(Player, player_id)
    if not player:
        raise HTTPException(status_code=404, detail="Player not found")
    return _to_response(player)


@router.put("/players/{player_id}", response_model=PlayerResponse)
def update_player(player_id: int, player_data: PlayerUpdate, session: Session = Depends(get_session)):
    """Update identity fields; ratings only change when a tournament finishes"""
    player = session.get(Player, player_id)
    if not player:
        raise HTTPException(status_code=404, detail="Player not found")

    update_data = player_data.model_dump(exclude_unset=True)
    if "main_category" in update_data and update_data["main_category"] not in (None, *BASE_RATING_BY_CATEGORY):
        raise HTTPException(status_code=422, detail="Unknown main_category")
    for field, value in update_data.items():
        setattr(player, field, value)

    session.add(player)
    session.commit()
    session.refresh(player)
    return _to_response(player)
