"""
Services Layer

Bracket business logic that:
- Accepts domain inputs (event/match IDs, sessions, seed assignments)
- Returns domain outputs (models, dataclasses, dicts)
- Does NOT depend on HTTP request/response objects
- Raises app.services.bracket_errors exceptions; routes map them to status codes
"""
