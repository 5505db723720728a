from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from padelpro.models.tournament import Tournament


class TournamentPair(SQLModel, table=True):
    """
    A registered pair. Player identities are fixed once the tournament starts.

    Reserve status is not stored. During setup it follows registration order
    and the format quota; once started, pairs outside every group are reserves.
    """

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    player1_id: int = Field(foreign_key="player.id")
    player2_id: Optional[int] = Field(default=None, foreign_key="player.id")  # None = solo registration
    status: str = Field(default="confirmed")  # "confirmed" | "pending" | "rejected"
    group_id: Optional[str] = Field(default=None, index=True)  # "A".."D" once started
    group_position: Optional[int] = Field(default=None)  # 0-based seed position within the group
    created_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    tournament: "Tournament" = Relationship(back_populates="pairs")
