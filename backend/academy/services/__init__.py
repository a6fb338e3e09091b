"""
Services Layer

Reservation and enrollment logic that:
- Accepts domain inputs (sessions, identities, ids, intervals)
- Returns domain outputs (models, dataclasses)
- Raises academy.errors exceptions, never HTTP responses
- Owns every conflict and capacity check against the store
"""
