from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from app.models.match import Match


class MatchSet(SQLModel, table=True):
    """Per-set score of a match. Deleted with its match on bracket reset."""

    __table_args__ = (SAUniqueConstraint("match_id", "set_number", name="uq_match_set_number"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    match_id: int = Field(foreign_key="match.id", index=True)
    set_number: int
    score_a: int = Field(default=0)
    score_b: int = Field(default=0)
    played: bool = Field(default=False)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    match: "Match" = Relationship(back_populates="sets")
