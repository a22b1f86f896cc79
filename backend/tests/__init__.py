# Force SQLModel table registration at test discovery time
# This ensures all models are registered before any test database creation
from app.models.event import Event  # noqa: F401
from app.models.match import Match  # noqa: F401
from app.models.match_set import MatchSet  # noqa: F401
from app.models.registration import Registration  # noqa: F401
