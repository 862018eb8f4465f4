"""Exceptions raised by the match tracking core.

Every service operation fails with one of these. The HTTP layer maps them to a
status code and a ``{"error": kind, "detail": message}`` body.
"""


# ========== Base Application Exception ==========


class MatchTrackerException(Exception):
    """Base exception for all match tracking errors."""

    status_code = 400
    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# ========== Lookup Exceptions ==========


class NotFound(MatchTrackerException):
    """Raised when a referenced match, team, player, formation or event is absent."""

    status_code = 404
    kind = "not_found"


# ========== Match State Exceptions ==========


class InvalidTransition(MatchTrackerException):
    """Raised when a status change is not an edge of the match status graph."""

    status_code = 409
    kind = "invalid_transition"


class InvalidState(MatchTrackerException):
    """Raised when an operation is not permitted in the match's current status."""

    status_code = 409
    kind = "invalid_state"


# ========== Payload Exceptions ==========


class ValidationError(MatchTrackerException):
    """Raised for a malformed or incomplete event or lineup payload."""

    status_code = 422
    kind = "validation_error"


class ConflictError(MatchTrackerException):
    """Raised when a lineup replacement was based on a stale version."""

    status_code = 409
    kind = "conflict"
