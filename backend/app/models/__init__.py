from app.models.event import Event, EventFormat
from app.models.match import Match
from app.models.match_set import MatchSet
from app.models.registration import Registration

__all__ = [
    "Event",
    "EventFormat",
    "Match",
    "MatchSet",
    "Registration",
]
