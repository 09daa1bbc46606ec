"""Reservation State Machine

Transition table for the reservation lifecycle. ``create`` has no source
state and is handled by the Reservation factory; every other action must
start from one of the listed statuses. Rejected, cancelled and completed
reservations accept no action at all.
"""
from typing import Dict, FrozenSet, NamedTuple, Optional

from meeting_rooms.domain.enums import Action, ReservationStatus, TERMINAL_STATUSES
from meeting_rooms.domain.exceptions import InvalidTransition


class Transition(NamedTuple):
    sources: FrozenSet[ReservationStatus]
    target: Optional[ReservationStatus]  # None: decided by the action itself


_PENDING = ReservationStatus.PENDING
_APPROVED = ReservationStatus.APPROVED

TRANSITIONS: Dict[Action, Transition] = {
    Action.APPROVE: Transition(frozenset({_PENDING}), ReservationStatus.APPROVED),
    Action.REJECT: Transition(frozenset({_PENDING}), ReservationStatus.REJECTED),
    Action.CANCEL: Transition(frozenset({_PENDING, _APPROVED}), ReservationStatus.CANCELLED),
    Action.UPDATE: Transition(frozenset({_PENDING, _APPROVED}), None),
    Action.CHECK_IN: Transition(frozenset({_APPROVED}), ReservationStatus.APPROVED),
    Action.MARK_NO_SHOW: Transition(frozenset({_APPROVED}), ReservationStatus.COMPLETED),
    Action.CONFIRM_COMPLETION: Transition(frozenset({_APPROVED}), ReservationStatus.COMPLETED),
}


def is_terminal(status: ReservationStatus) -> bool:
    return status in TERMINAL_STATUSES


def can_transition(status: ReservationStatus, action: Action) -> bool:
    transition = TRANSITIONS.get(action)
    return transition is not None and status in transition.sources


def ensure_transition(status: ReservationStatus, action: Action) -> Optional[ReservationStatus]:
    """Return the target status for ``action`` or raise InvalidTransition"""
    if not can_transition(status, action):
        raise InvalidTransition(
            f"Cannot {action.value.replace('_', ' ')} a reservation in {status.value} status"
        )
    return TRANSITIONS[action].target
