from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import JSON, String
from sqlmodel import Column, Field, Relationship, SQLModel

from padelpro.services.format_rules import TournamentFormat

if TYPE_CHECKING:
    from padelpro.models.match import Match
    from padelpro.models.pair import TournamentPair


class TournamentStatus(str, Enum):
    setup = "setup"
    active = "active"
    finished = "finished"


class Tournament(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    format: TournamentFormat = Field(sa_column=Column(String, nullable=False))
    status: str = Field(default=TournamentStatus.setup.value)  # "setup" | "active" | "finished"
    current_round: int = Field(default=0)  # 0 while in setup
    court_count: int
    court_names: Optional[List[str]] = Field(default=None, sa_column=Column(JSON))
    category: Optional[str] = None  # rating category the matches count for
    seeding_method: str = Field(default="elo-balanced")

    champion_main_id: Optional[int] = Field(default=None)
    champion_consolation_id: Optional[int] = Field(default=None)
    ratings_applied: bool = Field(default=False)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column_kwargs={"onupdate": datetime.utcnow})

    # Relationships
    pairs: List["TournamentPair"] = Relationship(back_populates="tournament")
    matches: List["Match"] = Relationship(back_populates="tournament")
