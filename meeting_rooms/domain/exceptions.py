"""Domain Exceptions

Every business-rule failure raised by the reservation core derives from
ReservationError. The HTTP adapter maps ``kind`` and ``http_status`` onto a
JSON error body; nothing in the domain depends on HTTP.
"""
from typing import List, Optional


class ReservationError(Exception):
    """Base class for reservation core errors"""

    kind = "ReservationError"
    http_status = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailed(ReservationError):
    """Malformed input (bad range, non-positive counts, empty reason)"""

    kind = "ValidationFailed"
    http_status = 400


class PolicyViolation(ReservationError):
    """Advance-notice, business-hours or weekday rule violated"""

    kind = "PolicyViolation"
    http_status = 400

    def __init__(self, violations: List[str]):
        super().__init__("; ".join(violations))
        self.violations = list(violations)


class CapacityExceeded(ReservationError):
    kind = "CapacityExceeded"
    http_status = 400


class SchedulingConflict(ReservationError):
    """Room already taken for an overlapping range"""

    kind = "SchedulingConflict"
    http_status = 409

    def __init__(self, message: str = "Room is not available for the requested time range",
                 conflicting_id: Optional[str] = None):
        super().__init__(message)
        self.conflicting_id = conflicting_id


class NotFound(ReservationError):
    """Room or reservation missing, inactive, or action unavailable"""

    kind = "NotFound"
    http_status = 404


class InvalidTransition(NotFound):
    """Action is not legal from the reservation's current state"""

    kind = "InvalidTransition"
    http_status = 404


class Forbidden(ReservationError):
    kind = "Forbidden"
    http_status = 403


class StorageFailure(ReservationError):
    kind = "StorageFailure"
    http_status = 500
