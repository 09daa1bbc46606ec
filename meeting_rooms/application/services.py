"""Application Services - Business use cases"""
import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional
from uuid import UUID

from pydantic import BaseModel

from meeting_rooms.application.locks import RoomLockRegistry
from meeting_rooms.domain.auth import Caller
from meeting_rooms.domain.authorization import authorize, require
from meeting_rooms.domain.entities import Reservation, Room
from meeting_rooms.domain.enums import Action, CoffeeBreakStatus, EventName, ReservationStatus
from meeting_rooms.domain.exceptions import (
    CapacityExceeded, NotFound, ReservationError, SchedulingConflict, StorageFailure,
    ValidationFailed,
)
from meeting_rooms.domain.policies import ReservationPolicy
from meeting_rooms.domain.repositories import EventSink, ReservationRepository, RoomRepository
from meeting_rooms.domain.state_machine import ensure_transition
from meeting_rooms.domain.value_objects import ReservationPatch, RoomPatch, TimeRange

logger = logging.getLogger(__name__)

MAX_ROOM_CAPACITY = 100
CALENDAR_STATUSES = [
    ReservationStatus.PENDING,
    ReservationStatus.APPROVED,
    ReservationStatus.COMPLETED,
]


def _system_clock() -> datetime:
    return datetime.now(timezone.utc)


async def _persist(write: Awaitable[Reservation]) -> Reservation:
    """Await a repository write, surfacing unexpected store errors as StorageFailure"""
    try:
        return await write
    except ReservationError:
        raise
    except Exception as exc:
        logger.exception("Reservation store write failed")
        raise StorageFailure("Reservation store is unavailable") from exc


class UpdateResult(BaseModel):
    """Outcome of an update; approval_reset tells the caller the approval was dropped"""
    reservation: Reservation
    approval_reset: bool = False


class RoomAvailabilityService:
    """Availability index over active (pending/approved) reservations.

    Nothing is cached: each query re-reads the repository.
    """

    def __init__(self, room_repo: RoomRepository, reservation_repo: ReservationRepository):
        self.room_repo = room_repo
        self.reservation_repo = reservation_repo

    @staticmethod
    def date_window(time_range: TimeRange) -> TimeRange:
        """Whole days covered by ``time_range``"""
        start = datetime.combine(time_range.start.date(), time.min, tzinfo=time_range.start.tzinfo)
        end = datetime.combine(time_range.end.date() + timedelta(days=1), time.min,
                               tzinfo=time_range.end.tzinfo)
        return TimeRange(start=start, end=end)

    async def find_conflict(
        self,
        room_id: UUID,
        time_range: TimeRange,
        exclude_reservation_id: Optional[UUID] = None,
    ) -> Optional[Reservation]:
        candidates = await self.reservation_repo.list_active_for_room(
            room_id, self.date_window(time_range)
        )
        for reservation in candidates:
            if reservation.reservation_id == exclude_reservation_id:
                continue
            if reservation.time_range.overlaps(time_range):
                return reservation
        return None

    async def is_available(
        self,
        room_id: UUID,
        time_range: TimeRange,
        exclude_reservation_id: Optional[UUID] = None,
    ) -> bool:
        return await self.find_conflict(room_id, time_range, exclude_reservation_id) is None

    async def find_available_rooms(
        self,
        time_range: TimeRange,
        min_capacity: Optional[int] = None,
    ) -> List[Room]:
        """Active rooms, ordered by name, big enough and free for ``time_range``"""
        available = []
        for room in await self.room_repo.list_active():
            if min_capacity is not None and room.capacity < min_capacity:
                continue
            if await self.is_available(room.room_id, time_range):
                available.append(room)
        return available


class ReservationService:
    """Reservation lifecycle: the only entry point that mutates reservations"""

    def __init__(self,
                 room_repo: RoomRepository,
                 reservation_repo: ReservationRepository,
                 event_sink: EventSink,
                 policy: Optional[ReservationPolicy] = None,
                 availability: Optional[RoomAvailabilityService] = None,
                 locks: Optional[RoomLockRegistry] = None,
                 clock: Callable[[], datetime] = _system_clock,
                 upcoming_window_hours: int = 24):
        self.room_repo = room_repo
        self.reservation_repo = reservation_repo
        self.event_sink = event_sink
        self.policy = policy or ReservationPolicy()
        self.availability = availability or RoomAvailabilityService(room_repo, reservation_repo)
        self.locks = locks or RoomLockRegistry()
        self.clock = clock
        self.upcoming_window_hours = upcoming_window_hours

    # ==================== CREATE / UPDATE ====================
    async def create_reservation(
        self,
        caller: Caller,
        room_id: UUID,
        title: str,
        description: Optional[str],
        start: datetime,
        end: datetime,
        attendees_count: int,
        coffee_break: Optional[CoffeeBreakStatus] = None,
    ) -> Reservation:
        """Create a pending reservation after policy, capacity and availability checks"""
        require(caller.role, Action.CREATE)

        time_range = self.policy.localize(TimeRange(start=start, end=end))
        now = self.clock()
        self.policy.check_time_range(time_range, now)
        if attendees_count < 1:
            raise ValidationFailed("Attendees count must be a positive integer")

        async with self.locks.lock_for(room_id):
            room = await self._load_active_room(room_id)
            self._check_capacity(room, attendees_count)
            await self._ensure_available(room_id, time_range)
            reservation = Reservation.create(
                room_id=room_id,
                organizer_id=caller.user_id,
                title=title,
                description=description,
                time_range=time_range,
                attendees_count=attendees_count,
                coffee_break=self.policy.derive_coffee_break(time_range, coffee_break),
                created_at=now,
            )
            await _persist(self.reservation_repo.insert(reservation))

        logger.info("Reservation %s created in room %s by %s",
                    reservation.reservation_id, room_id, caller.user_id)
        await self._emit(EventName.CREATED, reservation, caller)
        return reservation

    async def update_reservation(
        self,
        reservation_id: UUID,
        caller: Caller,
        patch: ReservationPatch,
    ) -> UpdateResult:
        """Update fields or time; a new time on an approved reservation sends it back to pending"""
        current = await self._load(reservation_id)

        async with self.locks.lock_for(current.room_id):
            reservation = await self._load(reservation_id)
            require(caller.role, Action.UPDATE, reservation.is_owned_by(caller.user_id))
            ensure_transition(reservation.status, Action.UPDATE)

            now = self.clock()
            new_range = self.policy.localize(TimeRange(
                start=patch.start or reservation.time_range.start,
                end=patch.end or reservation.time_range.end,
            ))
            time_changed = new_range != reservation.time_range
            if time_changed:
                self.policy.check_time_range(new_range, now)

            if patch.attendees_count is not None:
                if patch.attendees_count < 1:
                    raise ValidationFailed("Attendees count must be a positive integer")
                room = await self.room_repo.get(reservation.room_id)
                if room is None:
                    raise NotFound("Room not found")
                self._check_capacity(room, patch.attendees_count)

            if time_changed:
                await self._ensure_available(reservation.room_id, new_range, reservation_id)

            coffee_break = reservation.coffee_break
            if time_changed or patch.coffee_break is not None:
                requested = patch.coffee_break
                if requested is None and reservation.coffee_break == CoffeeBreakStatus.REQUESTED:
                    requested = CoffeeBreakStatus.REQUESTED
                coffee_break = self.policy.derive_coffee_break(new_range, requested)

            approval_reset = reservation.apply_update(patch, new_range, coffee_break, at=now)
            await _persist(self.reservation_repo.update(reservation))

        if approval_reset:
            logger.info("Reservation %s rescheduled by %s; approval reset to pending",
                        reservation_id, caller.user_id)
        else:
            logger.info("Reservation %s updated by %s", reservation_id, caller.user_id)
        await self._emit(EventName.UPDATED, reservation, caller, approval_reset=approval_reset)
        return UpdateResult(reservation=reservation, approval_reset=approval_reset)

    # ==================== STATE TRANSITIONS ====================
    async def approve(self, reservation_id: UUID, caller: Caller) -> Reservation:
        return await self._transition(
            reservation_id, caller, Action.APPROVE, EventName.APPROVED,
            lambda r, now: r.approve(caller.user_id, at=now),
        )

    async def reject(self, reservation_id: UUID, caller: Caller, reason: str) -> Reservation:
        return await self._transition(
            reservation_id, caller, Action.REJECT, EventName.REJECTED,
            lambda r, now: r.reject(caller.user_id, reason, at=now),
        )

    async def cancel(self, reservation_id: UUID, caller: Caller,
                     reason: Optional[str] = None) -> Reservation:
        return await self._transition(
            reservation_id, caller, Action.CANCEL, EventName.CANCELLED,
            lambda r, now: r.cancel(reason, at=now),
        )

    async def check_in(self, reservation_id: UUID, caller: Caller) -> Reservation:
        return await self._transition(
            reservation_id, caller, Action.CHECK_IN, EventName.CHECKED_IN,
            lambda r, now: r.check_in(at=now),
        )

    async def mark_no_show(self, reservation_id: UUID, caller: Caller) -> Reservation:
        return await self._transition(
            reservation_id, caller, Action.MARK_NO_SHOW, EventName.MARKED_NO_SHOW,
            lambda r, now: r.mark_no_show(at=now),
        )

    async def confirm_completion(self, reservation_id: UUID, caller: Caller) -> Reservation:
        return await self._transition(
            reservation_id, caller, Action.CONFIRM_COMPLETION, EventName.COMPLETED,
            lambda r, now: r.confirm_completion(at=now),
        )

    # ==================== QUERIES ====================
    async def get_reservation(self, reservation_id: UUID, caller: Caller) -> Reservation:
        reservation = await self._load(reservation_id)
        require(caller.role, Action.VIEW, reservation.is_owned_by(caller.user_id))
        return reservation

    async def list_reservations(
        self,
        caller: Caller,
        room_id: Optional[UUID] = None,
        organizer_id: Optional[UUID] = None,
        status: Optional[ReservationStatus] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: Optional[int] = None,
    ) -> List[Reservation]:
        """Newest first; organizers only ever see their own reservations"""
        if not _may_view_all(caller):
            organizer_id = caller.user_id
        reservations = await self.reservation_repo.find(
            room_id=room_id,
            organizer_id=organizer_id,
            statuses=[status] if status else None,
            start_date=start_date,
            end_date=end_date,
        )
        reservations.sort(key=lambda r: r.time_range.start, reverse=True)
        return reservations if limit is None else reservations[:limit]

    async def calendar_view(
        self,
        start_date: date,
        end_date: date,
        room_id: Optional[UUID] = None,
    ) -> List[Reservation]:
        if end_date < start_date:
            raise ValidationFailed("end_date must not be before start_date")
        reservations = await self.reservation_repo.find(
            room_id=room_id,
            statuses=CALENDAR_STATUSES,
            start_date=start_date,
            end_date=end_date,
        )
        return sorted(reservations, key=lambda r: r.time_range.start)

    async def pending_approvals(self, caller: Caller) -> List[Reservation]:
        require(caller.role, Action.APPROVE)
        pending = await self.reservation_repo.find(statuses=[ReservationStatus.PENDING])
        return sorted(pending, key=lambda r: r.created_at)

    async def upcoming_reservations(self, hours: Optional[int] = None) -> List[Reservation]:
        """Approved meetings starting within the next ``hours``"""
        if hours is None:
            hours = self.upcoming_window_hours
        now = self.clock()
        approved = await self.reservation_repo.find(statuses=[ReservationStatus.APPROVED])
        upcoming = []
        for reservation in approved:
            start = reservation.time_range.start
            local_now = self.policy.align(now, start)
            if local_now <= start <= local_now + timedelta(hours=hours):
                upcoming.append(reservation)
        return sorted(upcoming, key=lambda r: r.time_range.start)

    # ==================== PRIVATE METHODS ====================
    async def _transition(
        self,
        reservation_id: UUID,
        caller: Caller,
        action: Action,
        event: EventName,
        mutate: Callable[[Reservation, datetime], None],
    ) -> Reservation:
        current = await self._load(reservation_id)
        async with self.locks.lock_for(current.room_id):
            reservation = await self._load(reservation_id)
            require(caller.role, action, reservation.is_owned_by(caller.user_id))
            mutate(reservation, self.clock())
            await _persist(self.reservation_repo.update(reservation))

        logger.info("Reservation %s: %s by %s -> %s",
                    reservation_id, action.value, caller.user_id, reservation.status.value)
        await self._emit(event, reservation, caller)
        return reservation

    async def _load(self, reservation_id: UUID) -> Reservation:
        reservation = await self.reservation_repo.get(reservation_id)
        if reservation is None:
            raise NotFound(f"Reservation {reservation_id} not found")
        return reservation

    async def _load_active_room(self, room_id: UUID) -> Room:
        room = await self.room_repo.get(room_id)
        if room is None or not room.is_active:
            raise NotFound(f"Room {room_id} not found or inactive")
        return room

    @staticmethod
    def _check_capacity(room: Room, attendees_count: int) -> None:
        if attendees_count > room.capacity:
            raise CapacityExceeded(
                f"Room {room.name} holds {room.capacity} people, {attendees_count} requested"
            )

    async def _ensure_available(self, room_id: UUID, time_range: TimeRange,
                                exclude_reservation_id: Optional[UUID] = None) -> None:
        conflict = await self.availability.find_conflict(room_id, time_range, exclude_reservation_id)
        if conflict is not None:
            logger.info("Scheduling conflict in room %s with reservation %s",
                        room_id, conflict.reservation_id)
            raise SchedulingConflict(conflicting_id=str(conflict.reservation_id))

    async def _emit(self, event: EventName, reservation: Reservation, caller: Caller,
                    **extra: Any) -> None:
        # Runs after commit; a failing sink must not undo the transition
        payload: Dict[str, Any] = {
            "reservation": reservation.model_dump(mode="json"),
            "actor_id": str(caller.user_id),
            **extra,
        }
        try:
            await self.event_sink.publish(event.value, payload)
        except Exception:
            logger.exception("Publishing %s for reservation %s failed",
                             event.value, reservation.reservation_id)


def _may_view_all(caller: Caller) -> bool:
    return authorize(caller.role, Action.VIEW, is_owner=False)


class RoomService:
    """Room administration (administrators only) and room queries"""

    def __init__(self,
                 repository: RoomRepository,
                 availability: RoomAvailabilityService,
                 policy: Optional[ReservationPolicy] = None,
                 locks: Optional[RoomLockRegistry] = None):
        self.repository = repository
        self.availability = availability
        self.policy = policy or ReservationPolicy()
        # Must be the registry the ReservationService holds
        self.locks = locks or RoomLockRegistry()

    async def create_room(
        self,
        caller: Caller,
        name: str,
        capacity: int,
        location: str = "",
        equipment: Iterable[str] = (),
        description: Optional[str] = None,
    ) -> Room:
        require(caller.role, Action.MANAGE_ROOMS)
        name = self._validate_name(name)
        self._validate_capacity(capacity)
        await self._ensure_unique_name(name)

        room = Room(
            name=name,
            capacity=capacity,
            location=location,
            equipment=frozenset(equipment),
            description=description,
        )
        await self.repository.save(room)
        logger.info("Room %s (%s) created by %s", room.room_id, room.name, caller.user_id)
        return room

    async def update_room(self, caller: Caller, room_id: UUID, patch: RoomPatch) -> Room:
        require(caller.role, Action.MANAGE_ROOMS)
        if patch.name is not None:
            patch = patch.model_copy(update={"name": self._validate_name(patch.name)})
            await self._ensure_unique_name(patch.name, exclude_room_id=room_id)
        if patch.capacity is not None:
            self._validate_capacity(patch.capacity)

        async with self.locks.lock_for(room_id):
            room = await self.get_room(room_id)
            room.apply(patch)
            await self.repository.save(room)
        logger.info("Room %s updated by %s", room_id, caller.user_id)
        return room

    async def deactivate_room(self, caller: Caller, room_id: UUID) -> Room:
        require(caller.role, Action.MANAGE_ROOMS)
        async with self.locks.lock_for(room_id):
            room = await self.get_room(room_id)
            room.deactivate()
            await self.repository.save(room)
        logger.info("Room %s deactivated by %s", room_id, caller.user_id)
        return room

    async def get_room(self, room_id: UUID) -> Room:
        room = await self.repository.get(room_id)
        if room is None or not room.is_active:
            raise NotFound(f"Room {room_id} not found or inactive")
        return room

    async def list_rooms(self) -> List[Room]:
        return await self.repository.list_active()

    async def find_available_rooms(self, start: datetime, end: datetime,
                                   min_capacity: Optional[int] = None) -> List[Room]:
        time_range = self._query_range(start, end)
        return await self.availability.find_available_rooms(time_range, min_capacity)

    async def check_availability(self, room_id: UUID, start: datetime, end: datetime,
                                 exclude_reservation_id: Optional[UUID] = None) -> bool:
        """Whether an active room is free for the range, ignoring one reservation if given"""
        time_range = self._query_range(start, end)
        await self.get_room(room_id)
        return await self.availability.is_available(room_id, time_range, exclude_reservation_id)

    def _query_range(self, start: datetime, end: datetime) -> TimeRange:
        time_range = self.policy.localize(TimeRange(start=start, end=end))
        if not time_range.is_valid():
            raise ValidationFailed("End time must be after start time")
        return time_range

    @staticmethod
    def _validate_name(name: str) -> str:
        name = (name or "").strip()
        if len(name) < 2 or len(name) > 100:
            raise ValidationFailed("Room name must be between 2 and 100 characters")
        return name

    @staticmethod
    def _validate_capacity(capacity: int) -> None:
        if capacity < 1 or capacity > MAX_ROOM_CAPACITY:
            raise ValidationFailed(f"Capacity must be between 1 and {MAX_ROOM_CAPACITY}")

    async def _ensure_unique_name(self, name: str, exclude_room_id: Optional[UUID] = None) -> None:
        existing = await self.repository.find_active_by_name(name)
        if existing is not None and existing.room_id != exclude_room_id:
            raise ValidationFailed(f"An active room named {name} already exists")
