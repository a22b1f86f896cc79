from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from app.models.event import Event


class Registration(SQLModel, table=True):
    __table_args__ = (
        # Enforce unique seeds within an event (where seed is not null)
        SAUniqueConstraint("event_id", "seed", name="uq_registration_event_seed"),
        SAUniqueConstraint("event_id", "name", name="uq_registration_event_name"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    event_id: int = Field(foreign_key="event.id", index=True)
    name: str  # Player or pair display name
    seed: Optional[int] = Field(default=None)  # 1-based seed (1=strongest); written by bracket generation
    created_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    event: "Event" = Relationship(back_populates="registrations")
