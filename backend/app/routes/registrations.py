"""
Registration API Routes
Minimal entrant management for events: the bracket is generated from these rows.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, field_validator
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from app.database import get_session
from app.models.registration import Registration
from app.utils.bracket_guards import require_event

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class RegistrationCreateRequest(BaseModel):
    name: str
    seed: Optional[int] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("name cannot be empty")
        return v.strip()

    @field_validator("seed")
    @classmethod
    def validate_seed(cls, v):
        if v is not None and v < 1:
            raise ValueError("seed must be >= 1")
        return v


class RegistrationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    event_id: int
    name: str
    seed: Optional[int] = None
    created_at: datetime


# ============================================================================
# Registration Endpoints
# ============================================================================


@router.get("/events/{event_id}/registrations", response_model=List[RegistrationResponse])
def get_registrations(event_id: int, session: Session = Depends(get_session)):
    """
    Get all registrations for an event, in registration order (id ascending).
    """
    require_event(session, event_id)
    return session.exec(
        select(Registration).where(Registration.event_id == event_id).order_by(Registration.id)
    ).all()


@router.post("/events/{event_id}/registrations", response_model=RegistrationResponse, status_code=201)
def create_registration(
    event_id: int, request: RegistrationCreateRequest, session: Session = Depends(get_session)
):
    """
    Register an entrant for an event.

    Constraints:
    - (event_id, seed) must be unique if seed is not null
    - (event_id, name) must be unique
    """
    require_event(session, event_id)

    registration = Registration(event_id=event_id, name=request.name, seed=request.seed)
    try:
        session.add(registration)
        session.commit()
        session.refresh(registration)
        return registration
    except IntegrityError as e:
        session.rollback()
        if "seed" in str(e.orig):
            raise HTTPException(
                status_code=409, detail=f"Registration with seed {request.seed} already exists for this event"
            )
        raise HTTPException(
            status_code=409, detail=f"Registration with name '{request.name}' already exists for this event"
        )
