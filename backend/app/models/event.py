from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import String
from sqlmodel import Column, Field, Relationship, SQLModel

if TYPE_CHECKING:
    from app.models.match import Match
    from app.models.registration import Registration


class EventFormat(str, Enum):
    groups = "groups"
    single_elimination = "single-elimination"
    double_elimination = "double-elimination"


ELIMINATION_FORMATS = (EventFormat.single_elimination, EventFormat.double_elimination)


class Event(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    format: EventFormat = Field(default=EventFormat.groups, sa_column=Column(String, nullable=False))
    best_of: int = Field(default=3)  # odd: 1, 3, 5, ...
    has_third_place_match: bool = Field(default=False)
    # Double elimination only: null = full double elimination, 1 = losers bracket starts at SF, 2 = at QF
    losers_start_rounds_before_final: Optional[int] = Field(default=None)
    completed: bool = Field(default=False)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column_kwargs={"onupdate": datetime.utcnow})

    # Relationships
    matches: List["Match"] = Relationship(back_populates="event")
    registrations: List["Registration"] = Relationship(back_populates="event")

    @property
    def is_elimination(self) -> bool:
        return is_elimination_format(self.format)


def is_elimination_format(value) -> bool:
    """True for formats that are played as a bracket."""
    try:
        return EventFormat(value) in ELIMINATION_FORMATS
    except ValueError:
        return False
