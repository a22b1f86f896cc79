from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, ValidationInfo, field_validator
from sqlmodel import Session, select

from app.database import get_session
from app.models.event import Event, EventFormat
from app.utils.bracket_guards import require_event

router = APIRouter()


class EventCreate(BaseModel):
    name: str
    format: EventFormat = EventFormat.single_elimination
    best_of: int = 3
    has_third_place_match: bool = False
    losers_start_rounds_before_final: Optional[int] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("name cannot be empty")
        return v.strip()

    @field_validator("best_of")
    @classmethod
    def validate_best_of(cls, v):
        if v < 1 or v % 2 == 0:
            raise ValueError("best_of must be a positive odd number")
        return v

    @field_validator("losers_start_rounds_before_final")
    @classmethod
    def validate_losers_start(cls, v, info: ValidationInfo):
        if v is None:
            return v
        if info.data.get("format") != EventFormat.double_elimination:
            raise ValueError("losers_start_rounds_before_final only applies to double-elimination events")
        if v < 1:
            raise ValueError("losers_start_rounds_before_final must be >= 1")
        return v


class EventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    format: EventFormat
    best_of: int
    has_third_place_match: bool
    losers_start_rounds_before_final: Optional[int] = None
    completed: bool
    created_at: datetime
    updated_at: datetime


@router.get("/events", response_model=List[EventResponse])
def get_events(session: Session = Depends(get_session)):
    """Get all events"""
    return session.exec(select(Event).order_by(Event.id)).all()


@router.post("/events", response_model=EventResponse, status_code=201)
def create_event(event_data: EventCreate, session: Session = Depends(get_session)):
    """Create a new event"""
    existing = session.exec(select(Event).where(Event.name == event_data.name)).first()
    if existing:
        raise HTTPException(status_code=409, detail=f"Event with name '{event_data.name}' already exists")

    event = Event(**event_data.model_dump())
    session.add(event)
    session.commit()
    session.refresh(event)

    return event


@router.get("/events/{event_id}", response_model=EventResponse)
def get_event(event_id: int, session: Session = Depends(get_session)):
    """Get a specific event"""
    return require_event(session, event_id)
