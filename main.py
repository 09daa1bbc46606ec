from contextlib import asynccontextmanager
from datetime import date, datetime, timedelta
from typing import List, Optional
from uuid import UUID

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.security import OAuth2PasswordRequestForm

from meeting_rooms.api.dependencies import approver_ids, fake_users_db, get_caller, get_current_active_user, get_user
from meeting_rooms.api.errors import register_error_handlers
from meeting_rooms.api.schemas import (
    # Rooms
    CreateRoomRequest, UpdateRoomRequest, RoomResponse, RoomAvailabilityResponse,
    # Reservations
    CreateReservationRequest, UpdateReservationRequest, RejectReservationRequest,
    CancelReservationRequest, ReservationResponse, UpdateReservationResponse,
    AuditEntryResponse, NotificationResponse,
    # Auth
    Token, UserResponse,
)
from meeting_rooms.application.locks import RoomLockRegistry
from meeting_rooms.application.services import ReservationService, RoomAvailabilityService, RoomService
from meeting_rooms.domain.auth import Caller, User
from meeting_rooms.domain.authorization import require
from meeting_rooms.domain.enums import Action, CoffeeBreakStatus, ReservationStatus, Role
from meeting_rooms.domain.value_objects import ReservationPatch, RoomPatch
from meeting_rooms.infrastructure.config import get_settings
from meeting_rooms.infrastructure.events import (
    AuditTrailSink, CompositeEventSink, LoggingEventSink, NotificationSink,
)
from meeting_rooms.infrastructure.logging_config import add_request_logging_middleware, configure_logging
from meeting_rooms.infrastructure.repositories.in_memory_repositories import (
    InMemoryReservationRepository, InMemoryRoomRepository,
)
from meeting_rooms.infrastructure.security import verify_password, create_access_token

settings = get_settings()
configure_logging(settings.log_level)

# Initialize repositories and sinks
room_repo = InMemoryRoomRepository()
reservation_repo = InMemoryReservationRepository()
audit_sink = AuditTrailSink()
notification_sink = NotificationSink(approver_ids)
event_sink = CompositeEventSink([LoggingEventSink(), audit_sink, notification_sink])

availability_service = RoomAvailabilityService(room_repo, reservation_repo)
room_locks = RoomLockRegistry()
policy = settings.reservation_policy()
reservation_service = ReservationService(
    room_repo,
    reservation_repo,
    event_sink,
    policy=policy,
    availability=availability_service,
    locks=room_locks,
    upcoming_window_hours=settings.upcoming_window_hours,
)
room_service = RoomService(room_repo, availability_service, policy=policy, locks=room_locks)

DEMO_ROOMS = [
    {"name": "Sala Ejecutiva", "capacity": 12, "location": "Floor 3", "equipment": ["projector", "tv"]},
    {"name": "Sala de Juntas", "capacity": 50, "location": "Floor 1", "equipment": ["projector", "audio"]},
    {"name": "Sala Pequeña", "capacity": 4, "location": "Floor 2", "equipment": ["whiteboard"]},
]


@asynccontextmanager
async def lifespan(_: FastAPI):
    if settings.seed_demo_data and not await room_repo.list_active():
        admin = get_user(fake_users_db, "admin").as_caller()
        for room in DEMO_ROOMS:
            await room_service.create_room(admin, **room)
    yield


app = FastAPI(
    title=settings.app_name,
    description="Meeting room reservations with approval workflow",
    version="1.0.0",
    lifespan=lifespan,
)
register_error_handlers(app)
add_request_logging_middleware(app)


# Dependency injection
def get_reservation_service() -> ReservationService:
    return reservation_service


def get_room_service() -> RoomService:
    return room_service

# ============================================================================
# HEALTH & ENUM REFERENCE ENDPOINTS
# ============================================================================

@app.get("/api/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "message": "API is running"}

@app.get("/api/enums/reservation-status", tags=["Enum Reference"])
async def get_reservation_statuses():
    """Get all ReservationStatus enum values"""
    return {"values": [item.value for item in ReservationStatus]}

@app.get("/api/enums/coffee-break", tags=["Enum Reference"])
async def get_coffee_break_statuses():
    """Get all CoffeeBreakStatus enum values"""
    return {"values": [item.value for item in CoffeeBreakStatus]}

@app.get("/api/enums/role", tags=["Enum Reference"])
async def get_roles():
    """Get all Role enum values"""
    return {"values": [item.value for item in Role]}

# ============================================================================
# AUTH ENDPOINTS
# ============================================================================

@app.post("/token", response_model=Token, tags=["Auth"])
async def login_for_access_token(form_data: OAuth2PasswordRequestForm = Depends()):
    user = get_user(fake_users_db, form_data.username)
    if not user or not verify_password(form_data.password, user.hashed_password):
        raise HTTPException(
            status_code=401,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    access_token_expires = timedelta(minutes=settings.access_token_expire_minutes)
    access_token = create_access_token(
        data={"sub": user.username, "role": user.role.value}, expires_delta=access_token_expires
    )
    return {"access_token": access_token, "token_type": "bearer"}

@app.get("/users/me", response_model=UserResponse, tags=["Auth"])
async def read_users_me(current_user: User = Depends(get_current_active_user)):
    return current_user

# ============================================================================
# ROOM ENDPOINTS
# ============================================================================

@app.get("/api/rooms", response_model=List[RoomResponse], tags=["Rooms"])
async def list_rooms(
    service: RoomService = Depends(get_room_service),
    caller: Caller = Depends(get_caller)
):
    """List active rooms ordered by name"""
    return [RoomResponse.from_entity(r) for r in await service.list_rooms()]

@app.get("/api/rooms/available", response_model=List[RoomResponse], tags=["Rooms"])
async def find_available_rooms(
    start_time: datetime,
    end_time: datetime,
    min_capacity: Optional[int] = Query(None, ge=1),
    service: RoomService = Depends(get_room_service),
    caller: Caller = Depends(get_caller)
):
    """Rooms free for the whole range, optionally with a minimum capacity"""
    rooms = await service.find_available_rooms(start_time, end_time, min_capacity)
    return [RoomResponse.from_entity(r) for r in rooms]

@app.get("/api/rooms/{room_id}", response_model=RoomResponse, tags=["Rooms"])
async def get_room(
    room_id: UUID,
    service: RoomService = Depends(get_room_service),
    caller: Caller = Depends(get_caller)
):
    return RoomResponse.from_entity(await service.get_room(room_id))

@app.get("/api/rooms/{room_id}/availability", response_model=RoomAvailabilityResponse, tags=["Rooms"])
async def check_room_availability(
    room_id: UUID,
    start_time: datetime,
    end_time: datetime,
    exclude_reservation_id: Optional[UUID] = None,
    service: RoomService = Depends(get_room_service),
    caller: Caller = Depends(get_caller)
):
    """Whether the room is free; pass exclude_reservation_id when moving that reservation"""
    available = await service.check_availability(room_id, start_time, end_time, exclude_reservation_id)
    return RoomAvailabilityResponse(
        available=available, room_id=room_id, start_time=start_time, end_time=end_time,
    )

@app.post("/api/rooms", response_model=RoomResponse, status_code=201, tags=["Rooms"])
async def create_room(
    request: CreateRoomRequest,
    service: RoomService = Depends(get_room_service),
    caller: Caller = Depends(get_caller)
):
    """Create a room (administrators only)"""
    room = await service.create_room(
        caller,
        name=request.name,
        capacity=request.capacity,
        location=request.location,
        equipment=request.equipment,
        description=request.description,
    )
    return RoomResponse.from_entity(room)

@app.put("/api/rooms/{room_id}", response_model=RoomResponse, tags=["Rooms"])
async def update_room(
    room_id: UUID,
    request: UpdateRoomRequest,
    service: RoomService = Depends(get_room_service),
    caller: Caller = Depends(get_caller)
):
    """Update room details (administrators only)"""
    patch = RoomPatch(
        name=request.name,
        description=request.description,
        capacity=request.capacity,
        location=request.location,
        equipment=frozenset(request.equipment) if request.equipment is not None else None,
    )
    return RoomResponse.from_entity(await service.update_room(caller, room_id, patch))

@app.delete("/api/rooms/{room_id}", response_model=RoomResponse, tags=["Rooms"])
async def deactivate_room(
    room_id: UUID,
    service: RoomService = Depends(get_room_service),
    caller: Caller = Depends(get_caller)
):
    """Deactivate a room; its reservations stay on record"""
    return RoomResponse.from_entity(await service.deactivate_room(caller, room_id))

# ============================================================================
# RESERVATION ENDPOINTS
# ============================================================================

@app.post("/api/reservations", response_model=ReservationResponse, status_code=201, tags=["Reservations"])
async def create_reservation(
    request: CreateReservationRequest,
    service: ReservationService = Depends(get_reservation_service),
    caller: Caller = Depends(get_caller)
):
    """Create new reservation, pending approval"""
    reservation = await service.create_reservation(
        caller,
        room_id=request.room_id,
        title=request.title,
        description=request.description,
        start=request.start_time,
        end=request.end_time,
        attendees_count=request.attendees_count,
        coffee_break=request.coffee_break,
    )
    return ReservationResponse.from_entity(reservation)

@app.get("/api/reservations", response_model=List[ReservationResponse], tags=["Reservations"])
async def list_reservations(
    room_id: Optional[UUID] = None,
    organizer_id: Optional[UUID] = None,
    status: Optional[ReservationStatus] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    limit: Optional[int] = Query(None, ge=1),
    service: ReservationService = Depends(get_reservation_service),
    caller: Caller = Depends(get_caller)
):
    """List reservations; organizers only see their own"""
    reservations = await service.list_reservations(
        caller,
        room_id=room_id,
        organizer_id=organizer_id,
        status=status,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
    )
    return [ReservationResponse.from_entity(r) for r in reservations]

@app.get("/api/reservations/calendar", response_model=List[ReservationResponse], tags=["Reservations"])
async def calendar_view(
    start_date: date,
    end_date: date,
    room_id: Optional[UUID] = None,
    service: ReservationService = Depends(get_reservation_service),
    caller: Caller = Depends(get_caller)
):
    """Calendar of pending, approved and completed reservations"""
    reservations = await service.calendar_view(start_date, end_date, room_id)
    return [ReservationResponse.from_entity(r) for r in reservations]

@app.get("/api/reservations/pending", response_model=List[ReservationResponse], tags=["Reservations"])
async def pending_approvals(
    service: ReservationService = Depends(get_reservation_service),
    caller: Caller = Depends(get_caller)
):
    """Reservations waiting for approval, oldest first"""
    return [ReservationResponse.from_entity(r) for r in await service.pending_approvals(caller)]

@app.get("/api/reservations/upcoming", response_model=List[ReservationResponse], tags=["Reservations"])
async def upcoming_reservations(
    hours: Optional[int] = Query(None, ge=1),
    service: ReservationService = Depends(get_reservation_service),
    caller: Caller = Depends(get_caller)
):
    """Approved reservations starting in the next hours"""
    return [ReservationResponse.from_entity(r) for r in await service.upcoming_reservations(hours)]

@app.get("/api/reservations/{reservation_id}", response_model=ReservationResponse, tags=["Reservations"])
async def get_reservation(
    reservation_id: UUID,
    service: ReservationService = Depends(get_reservation_service),
    caller: Caller = Depends(get_caller)
):
    """Get reservation by ID"""
    return ReservationResponse.from_entity(await service.get_reservation(reservation_id, caller))

@app.put("/api/reservations/{reservation_id}", response_model=UpdateReservationResponse, tags=["Reservations"])
async def update_reservation(
    reservation_id: UUID,
    request: UpdateReservationRequest,
    service: ReservationService = Depends(get_reservation_service),
    caller: Caller = Depends(get_caller)
):
    """Modify reservation; rescheduling an approved one requires approval again"""
    patch = ReservationPatch(
        title=request.title,
        description=request.description,
        start=request.start_time,
        end=request.end_time,
        attendees_count=request.attendees_count,
        coffee_break=request.coffee_break,
    )
    result = await service.update_reservation(reservation_id, caller, patch)
    return UpdateReservationResponse(
        reservation=ReservationResponse.from_entity(result.reservation),
        approval_reset=result.approval_reset,
    )

@app.post("/api/reservations/{reservation_id}/approve", response_model=ReservationResponse, tags=["Reservations"])
async def approve_reservation(
    reservation_id: UUID,
    service: ReservationService = Depends(get_reservation_service),
    caller: Caller = Depends(get_caller)
):
    return ReservationResponse.from_entity(await service.approve(reservation_id, caller))

@app.post("/api/reservations/{reservation_id}/reject", response_model=ReservationResponse, tags=["Reservations"])
async def reject_reservation(
    reservation_id: UUID,
    request: RejectReservationRequest,
    service: ReservationService = Depends(get_reservation_service),
    caller: Caller = Depends(get_caller)
):
    return ReservationResponse.from_entity(
        await service.reject(reservation_id, caller, request.reason)
    )

@app.post("/api/reservations/{reservation_id}/cancel", response_model=ReservationResponse, tags=["Reservations"])
async def cancel_reservation(
    reservation_id: UUID,
    request: CancelReservationRequest,
    service: ReservationService = Depends(get_reservation_service),
    caller: Caller = Depends(get_caller)
):
    return ReservationResponse.from_entity(
        await service.cancel(reservation_id, caller, request.reason)
    )

@app.post("/api/reservations/{reservation_id}/check-in", response_model=ReservationResponse, tags=["Reservations"])
async def check_in_reservation(
    reservation_id: UUID,
    service: ReservationService = Depends(get_reservation_service),
    caller: Caller = Depends(get_caller)
):
    return ReservationResponse.from_entity(await service.check_in(reservation_id, caller))

@app.post("/api/reservations/{reservation_id}/no-show", response_model=ReservationResponse, tags=["Reservations"])
async def mark_no_show(
    reservation_id: UUID,
    service: ReservationService = Depends(get_reservation_service),
    caller: Caller = Depends(get_caller)
):
    return ReservationResponse.from_entity(await service.mark_no_show(reservation_id, caller))

@app.post("/api/reservations/{reservation_id}/complete", response_model=ReservationResponse, tags=["Reservations"])
async def confirm_completion(
    reservation_id: UUID,
    service: ReservationService = Depends(get_reservation_service),
    caller: Caller = Depends(get_caller)
):
    return ReservationResponse.from_entity(await service.confirm_completion(reservation_id, caller))

@app.get("/api/reservations/{reservation_id}/audit", response_model=List[AuditEntryResponse], tags=["Audit"])
async def reservation_audit_trail(
    reservation_id: UUID,
    caller: Caller = Depends(get_caller)
):
    """Audit trail of one reservation (administrators only)"""
    require(caller.role, Action.VIEW_AUDIT)
    return [
        AuditEntryResponse(event=e.event, actor_id=e.actor_id, status=e.status, occurred_at=e.occurred_at)
        for e in audit_sink.trail(reservation_id)
    ]

# ============================================================================
# NOTIFICATION ENDPOINTS
# ============================================================================

@app.get("/api/notifications", response_model=List[NotificationResponse], tags=["Notifications"])
async def my_notifications(
    unread_only: bool = False,
    caller: Caller = Depends(get_caller)
):
    return [
        NotificationResponse(**n.model_dump(exclude={"user_id", "read_at"}))
        for n in notification_sink.for_user(caller.user_id, unread_only=unread_only)
    ]

@app.post("/api/notifications/{notification_id}/read", response_model=NotificationResponse, tags=["Notifications"])
async def mark_notification_read(
    notification_id: UUID,
    caller: Caller = Depends(get_caller)
):
    notification = notification_sink.mark_read(notification_id, caller.user_id)
    if notification is None:
        raise HTTPException(status_code=404, detail="Notification not found")
    return NotificationResponse(**notification.model_dump(exclude={"user_id", "read_at"}))


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
