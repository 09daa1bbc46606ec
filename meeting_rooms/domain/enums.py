"""Domain Enums"""
from enum import Enum


class ReservationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


ACTIVE_STATUSES = frozenset({ReservationStatus.PENDING, ReservationStatus.APPROVED})
TERMINAL_STATUSES = frozenset({
    ReservationStatus.REJECTED,
    ReservationStatus.CANCELLED,
    ReservationStatus.COMPLETED,
})


class CoffeeBreakStatus(str, Enum):
    NOT_APPLICABLE = "not_applicable"
    REQUESTED = "requested"
    NOT_REQUESTED = "not_requested"


class Role(str, Enum):
    ORGANIZER = "organizer"
    APPROVER = "approver"
    ADMINISTRATOR = "administrator"
    RECEPTION = "reception"


class Action(str, Enum):
    CREATE = "create"
    VIEW = "view"
    UPDATE = "update"
    CANCEL = "cancel"
    APPROVE = "approve"
    REJECT = "reject"
    CHECK_IN = "check_in"
    MARK_NO_SHOW = "mark_no_show"
    CONFIRM_COMPLETION = "confirm_completion"
    MANAGE_ROOMS = "manage_rooms"
    VIEW_AUDIT = "view_audit"


class EventName(str, Enum):
    CREATED = "ReservationCreated"
    UPDATED = "ReservationUpdated"
    APPROVED = "ReservationApproved"
    REJECTED = "ReservationRejected"
    CANCELLED = "ReservationCancelled"
    CHECKED_IN = "ReservationCheckedIn"
    MARKED_NO_SHOW = "ReservationMarkedNoShow"
    COMPLETED = "ReservationCompleted"
