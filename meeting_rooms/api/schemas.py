"""API Schemas - Request and Response DTOs"""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from meeting_rooms.domain.entities import Reservation, Room
from meeting_rooms.domain.enums import CoffeeBreakStatus, Role


# ============================================================================
# ROOM SCHEMAS
# ============================================================================

class CreateRoomRequest(BaseModel):
    """Create room request DTO"""
    name: str = Field(max_length=100)
    capacity: int
    location: str = Field(default="", max_length=200)
    equipment: List[str] = []
    description: Optional[str] = Field(default=None, max_length=500)


class UpdateRoomRequest(BaseModel):
    """Update room request DTO"""
    name: Optional[str] = Field(default=None, max_length=100)
    capacity: Optional[int] = None
    location: Optional[str] = Field(default=None, max_length=200)
    equipment: Optional[List[str]] = None
    description: Optional[str] = Field(default=None, max_length=500)


class RoomResponse(BaseModel):
    """Room response DTO"""
    room_id: UUID
    name: str
    description: Optional[str] = None
    capacity: int
    location: str
    equipment: List[str]
    is_active: bool

    @classmethod
    def from_entity(cls, room: Room) -> "RoomResponse":
        return cls(
            room_id=room.room_id,
            name=room.name,
            description=room.description,
            capacity=room.capacity,
            location=room.location,
            equipment=sorted(room.equipment),
            is_active=room.is_active,
        )


class RoomAvailabilityResponse(BaseModel):
    available: bool
    room_id: UUID
    start_time: datetime
    end_time: datetime


# ============================================================================
# RESERVATION SCHEMAS
# ============================================================================

class CreateReservationRequest(BaseModel):
    """Create reservation request DTO"""
    room_id: UUID
    title: str = Field(max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    start_time: datetime
    end_time: datetime
    attendees_count: int
    coffee_break: Optional[CoffeeBreakStatus] = None


class UpdateReservationRequest(BaseModel):
    """Update reservation request DTO"""
    title: Optional[str] = Field(default=None, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    attendees_count: Optional[int] = None
    coffee_break: Optional[CoffeeBreakStatus] = None


class RejectReservationRequest(BaseModel):
    """Reject reservation request DTO"""
    reason: str


class CancelReservationRequest(BaseModel):
    """Cancel reservation request DTO"""
    reason: Optional[str] = None


class ReservationResponse(BaseModel):
    """Reservation response DTO"""
    reservation_id: UUID
    room_id: UUID
    organizer_id: UUID
    title: str
    description: Optional[str] = None
    start_time: datetime
    end_time: datetime
    attendees_count: int
    coffee_break: str
    status: str
    approver_id: Optional[UUID] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    checked_in: bool
    checked_in_at: Optional[datetime] = None
    no_show: bool
    completion_confirmed: bool
    completion_confirmed_at: Optional[datetime] = None
    created_at: datetime
    modified_at: datetime
    version: int

    @classmethod
    def from_entity(cls, reservation: Reservation) -> "ReservationResponse":
        return cls(
            reservation_id=reservation.reservation_id,
            room_id=reservation.room_id,
            organizer_id=reservation.organizer_id,
            title=reservation.title,
            description=reservation.description,
            start_time=reservation.time_range.start,
            end_time=reservation.time_range.end,
            attendees_count=reservation.attendees_count,
            coffee_break=reservation.coffee_break.value,
            status=reservation.status.value,
            approver_id=reservation.approver_id,
            approved_at=reservation.approved_at,
            rejection_reason=reservation.rejection_reason,
            checked_in=reservation.checked_in,
            checked_in_at=reservation.checked_in_at,
            no_show=reservation.no_show,
            completion_confirmed=reservation.completion_confirmed,
            completion_confirmed_at=reservation.completion_confirmed_at,
            created_at=reservation.created_at,
            modified_at=reservation.modified_at,
            version=reservation.version,
        )


class UpdateReservationResponse(BaseModel):
    """Update response DTO; approval_reset is true when re-approval is required"""
    reservation: ReservationResponse
    approval_reset: bool


class AuditEntryResponse(BaseModel):
    event: str
    actor_id: Optional[str] = None
    status: Optional[str] = None
    occurred_at: datetime


class NotificationResponse(BaseModel):
    notification_id: UUID
    reservation_id: Optional[str] = None
    type: str
    title: str
    message: str
    sent_at: datetime
    is_read: bool


# ============================================================================
# AUTH SCHEMAS
# ============================================================================

class Token(BaseModel):
    """Token response DTO"""
    access_token: str
    token_type: str


class TokenData(BaseModel):
    """Token payload DTO"""
    username: Optional[str] = None


class UserResponse(BaseModel):
    """User response DTO"""
    user_id: UUID
    username: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    role: Role
    disabled: bool
