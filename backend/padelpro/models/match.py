from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from padelpro.models.tournament import Tournament


class Match(SQLModel, table=True):
    __table_args__ = (
        SAUniqueConstraint("tournament_id", "round_number", "bracket", "bracket_slot", name="uq_match_round_slot"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    round_number: int
    phase: str  # "group" | "qf" | "sf" | "final"
    bracket: Optional[str] = Field(default=None)  # "main" | "consolation" | None for group phase
    bracket_slot: int  # lookup key between rounds
    court: Optional[int] = Field(default=None)  # physical court; None = waiting for a free court

    # Nullable: knockout sides stay empty until their feeder match is decided
    pair_a_id: Optional[int] = Field(default=None, foreign_key="tournamentpair.id")
    pair_b_id: Optional[int] = Field(default=None, foreign_key="tournamentpair.id")

    score_a: Optional[int] = Field(default=None)
    score_b: Optional[int] = Field(default=None)
    completed_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    tournament: "Tournament" = Relationship(back_populates="matches")

    @property
    def is_finished(self) -> bool:
        return self.score_a is not None and self.score_b is not None
