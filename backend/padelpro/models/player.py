from datetime import datetime
from typing import Dict, Optional

from sqlalchemy import JSON
from sqlmodel import Column, Field, SQLModel


class Player(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    nickname: Optional[str] = None
    global_rating: Optional[float] = Field(default=None)  # None until the first rated match
    category_ratings: Dict[str, float] = Field(default_factory=dict, sa_column=Column(JSON))
    main_category: Optional[str] = None
    manual_rating: Optional[float] = Field(default=None)  # 1-10 scale
    matches_played: int = Field(default=0)
    created_at: datetime = Field(default_factory=datetime.utcnow)
