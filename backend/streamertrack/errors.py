"""Domain error taxonomy.

Each error carries an HTTP status so the API layer can map it without
per-route try/except blocks.
"""
from __future__ import annotations


class StreamerTrackError(Exception):
    status_code = 500
    label = "Error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(StreamerTrackError):
    """Malformed or out-of-range input. Never retried."""
    status_code = 400
    label = "Validation error"


class ScopeViolation(StreamerTrackError):
    """A vessel-scoped caller acted outside its vessel, or lacks the capability."""
    status_code = 403
    label = "Forbidden"


class NotFound(StreamerTrackError):
    status_code = 404
    label = "Not found"


class ConflictError(StreamerTrackError):
    """Request collides with existing data (duplicate key, dependent rows)."""
    status_code = 409
    label = "Conflict"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class StoreFailure(StreamerTrackError):
    """Underlying persistence failed. Surfaced to clients generically."""
    status_code = 500
    label = "Internal server error"
