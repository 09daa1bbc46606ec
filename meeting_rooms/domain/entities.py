"""Domain Entities - Aggregates"""
from datetime import datetime, timezone
from typing import FrozenSet, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from meeting_rooms.domain.enums import (
    ACTIVE_STATUSES, Action, CoffeeBreakStatus, ReservationStatus,
)
from meeting_rooms.domain.exceptions import InvalidTransition, ValidationFailed
from meeting_rooms.domain.state_machine import ensure_transition
from meeting_rooms.domain.value_objects import ReservationPatch, RoomPatch, TimeRange


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Room(BaseModel):
    """Room Entity"""

    room_id: UUID = Field(default_factory=uuid4)
    name: str
    description: Optional[str] = None
    capacity: int = Field(ge=1)
    location: str = ""
    equipment: FrozenSet[str] = frozenset()
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow)

    model_config = {"from_attributes": True}

    def apply(self, patch: RoomPatch) -> None:
        for field, value in patch.model_dump(exclude_none=True).items():
            setattr(self, field, value)

    def deactivate(self) -> None:
        """Soft delete: historical reservations keep referencing the room"""
        self.is_active = False


class Reservation(BaseModel):
    """Reservation Aggregate Root Entity"""

    # Identity
    reservation_id: UUID = Field(default_factory=uuid4)

    # References to other contexts
    room_id: UUID
    organizer_id: UUID

    # Details
    title: str
    description: Optional[str] = None
    time_range: TimeRange
    attendees_count: int = Field(ge=1)
    coffee_break: CoffeeBreakStatus = CoffeeBreakStatus.NOT_APPLICABLE

    # Lifecycle
    status: ReservationStatus = ReservationStatus.PENDING
    approver_id: Optional[UUID] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    checked_in: bool = False
    checked_in_at: Optional[datetime] = None
    no_show: bool = False
    completion_confirmed: bool = False
    completion_confirmed_at: Optional[datetime] = None

    # Metadata
    created_at: datetime = Field(default_factory=utcnow)
    modified_at: datetime = Field(default_factory=utcnow)
    version: int = 1

    model_config = {"from_attributes": True}

    # ==================== FACTORY METHOD ====================
    @staticmethod
    def create(
        room_id: UUID,
        organizer_id: UUID,
        title: str,
        description: Optional[str],
        time_range: TimeRange,
        attendees_count: int,
        coffee_break: CoffeeBreakStatus,
        created_at: Optional[datetime] = None,
    ) -> "Reservation":
        """Create a new reservation in pending status"""
        Reservation._validate_details(title, attendees_count)
        created_at = created_at or utcnow()
        return Reservation(
            room_id=room_id,
            organizer_id=organizer_id,
            title=title.strip(),
            description=description,
            time_range=time_range,
            attendees_count=attendees_count,
            coffee_break=coffee_break,
            status=ReservationStatus.PENDING,
            created_at=created_at,
            modified_at=created_at,
        )

    # ==================== MODIFICATION METHODS ====================
    def apply_update(
        self,
        patch: ReservationPatch,
        new_range: TimeRange,
        coffee_break: CoffeeBreakStatus,
        at: Optional[datetime] = None,
    ) -> bool:
        """Apply an update; returns True when a prior approval was reset"""
        ensure_transition(self.status, Action.UPDATE)

        title = patch.title if patch.title is not None else self.title
        attendees = patch.attendees_count if patch.attendees_count is not None else self.attendees_count
        Reservation._validate_details(title, attendees)

        time_changed = new_range != self.time_range
        approval_reset = time_changed and self.status == ReservationStatus.APPROVED

        self.title = title.strip()
        if patch.description is not None:
            self.description = patch.description
        self.attendees_count = attendees
        self.time_range = new_range
        self.coffee_break = coffee_break

        # Modification invalidates prior approval
        if approval_reset:
            self.status = ReservationStatus.PENDING
            self.approver_id = None
            self.approved_at = None

        self._touch(at)
        return approval_reset

    # ==================== STATE TRANSITION METHODS ====================
    def approve(self, approver_id: UUID, at: Optional[datetime] = None) -> None:
        self.status = ensure_transition(self.status, Action.APPROVE)
        self.approver_id = approver_id
        self.approved_at = at or utcnow()
        self._touch(at)

    def reject(self, approver_id: UUID, reason: str, at: Optional[datetime] = None) -> None:
        target = ensure_transition(self.status, Action.REJECT)
        if not reason or not reason.strip():
            raise ValidationFailed("A reason is required to reject a reservation")

        self.status = target
        self.approver_id = approver_id
        self.approved_at = at or utcnow()
        self.rejection_reason = reason.strip()
        self._touch(at)

    def cancel(self, reason: Optional[str] = None, at: Optional[datetime] = None) -> None:
        self.status = ensure_transition(self.status, Action.CANCEL)
        self.rejection_reason = reason
        self.cancelled_at = at or utcnow()
        self._touch(at)

    def check_in(self, at: Optional[datetime] = None) -> None:
        target = ensure_transition(self.status, Action.CHECK_IN)
        if self.checked_in:
            raise InvalidTransition("Reservation is already checked in")

        self.status = target
        self.checked_in = True
        self.checked_in_at = at or utcnow()
        self._touch(at)

    def mark_no_show(self, at: Optional[datetime] = None) -> None:
        # A checked-in meeting cannot turn into a no-show afterwards
        target = ensure_transition(self.status, Action.MARK_NO_SHOW)
        if self.checked_in:
            raise InvalidTransition("Cannot mark a checked-in reservation as no-show")

        self.status = target
        self.no_show = True
        self._touch(at)

    def confirm_completion(self, at: Optional[datetime] = None) -> None:
        self.status = ensure_transition(self.status, Action.CONFIRM_COMPLETION)
        self.completion_confirmed = True
        self.completion_confirmed_at = at or utcnow()
        self._touch(at)

    # ==================== QUERY METHODS ====================
    def is_active(self) -> bool:
        """Pending and approved reservations occupy their room"""
        return self.status in ACTIVE_STATUSES

    def is_owned_by(self, user_id: UUID) -> bool:
        return self.organizer_id == user_id

    # ==================== PRIVATE METHODS ====================
    def _touch(self, at: Optional[datetime]) -> None:
        self.modified_at = at or utcnow()
        self.version += 1

    @staticmethod
    def _validate_details(title: str, attendees_count: int) -> None:
        if not title or not title.strip():
            raise ValidationFailed("Title is required")
        if attendees_count < 1:
            raise ValidationFailed("Attendees count must be a positive integer")
