from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from app.models.event import Event
    from app.models.match_set import MatchSet

SLOT_A = 1
SLOT_B = 2


class Match(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("event_id", "bracket_position", name="uq_match_event_position"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    event_id: int = Field(foreign_key="event.id", index=True)
    group_id: Optional[int] = Field(default=None)  # Round-robin group; always null for bracket matches
    round_number: int
    match_number: int  # Display order within round
    bracket_position: Optional[int] = Field(default=None)  # Dense, unique per event
    bracket_type: Optional[str] = Field(default=None)  # "winners" | "losers" | "grand-final" (double elim only)

    # Occupants: slot 1 (A) and slot 2 (B); null while awaiting an upstream result or for the bye side
    registration_a_id: Optional[int] = Field(default=None, foreign_key="registration.id")
    registration_b_id: Optional[int] = Field(default=None, foreign_key="registration.id")

    # Advancement links, fixed at generation time
    winner_to_id: Optional[int] = Field(default=None, foreign_key="match.id")
    winner_to_slot: Optional[int] = Field(default=None)  # 1 | 2
    loser_to_id: Optional[int] = Field(default=None, foreign_key="match.id")
    loser_to_slot: Optional[int] = Field(default=None)  # 1 | 2

    is_bye: bool = Field(default=False)
    is_third_place: bool = Field(default=False)
    is_reset: bool = Field(default=False)  # Second grand final, only played if the losers champion wins game 1

    played: bool = Field(default=False)
    winner_id: Optional[int] = Field(default=None, foreign_key="registration.id")

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column_kwargs={"onupdate": datetime.utcnow})

    # Relationships
    event: "Event" = Relationship(back_populates="matches")
    sets: List["MatchSet"] = Relationship(back_populates="match")

    def occupant(self, slot: int) -> Optional[int]:
        return self.registration_a_id if slot == SLOT_A else self.registration_b_id

    def set_occupant(self, slot: int, registration_id: Optional[int]) -> None:
        if slot == SLOT_A:
            self.registration_a_id = registration_id
        else:
            self.registration_b_id = registration_id
