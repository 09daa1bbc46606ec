"""In-Memory Repository Implementations"""
from datetime import date
from typing import Dict, List, Optional
from uuid import UUID

from meeting_rooms.domain.entities import Reservation, Room
from meeting_rooms.domain.enums import ReservationStatus
from meeting_rooms.domain.exceptions import SchedulingConflict, StorageFailure
from meeting_rooms.domain.repositories import ReservationRepository, RoomRepository
from meeting_rooms.domain.value_objects import TimeRange


class InMemoryRoomRepository(RoomRepository):
    """In-memory implementation of RoomRepository"""

    def __init__(self):
        self._storage: Dict[UUID, Room] = {}

    async def get(self, room_id: UUID) -> Optional[Room]:
        room = self._storage.get(room_id)
        return room.model_copy(deep=True) if room else None

    async def list_active(self) -> List[Room]:
        rooms = [r for r in self._storage.values() if r.is_active]
        return [r.model_copy(deep=True) for r in sorted(rooms, key=lambda r: r.name)]

    async def find_active_by_name(self, name: str) -> Optional[Room]:
        wanted = name.strip().lower()
        for room in self._storage.values():
            if room.is_active and room.name.strip().lower() == wanted:
                return room.model_copy(deep=True)
        return None

    async def save(self, room: Room) -> Room:
        self._storage[room.room_id] = room.model_copy(deep=True)
        return room


class InMemoryReservationRepository(ReservationRepository):
    """In-memory implementation of ReservationRepository.

    Acts as the authoritative backstop for the no-overlap rule: a write that
    would leave two active reservations of one room overlapping is refused,
    whatever the caller checked beforehand. Each write runs without awaiting,
    so it is atomic with respect to other coroutines on the loop.
    """

    def __init__(self):
        self._storage: Dict[UUID, Reservation] = {}

    async def get(self, reservation_id: UUID) -> Optional[Reservation]:
        reservation = self._storage.get(reservation_id)
        return reservation.model_copy(deep=True) if reservation else None

    async def list_active_for_room(self, room_id: UUID, window: TimeRange) -> List[Reservation]:
        return [
            r.model_copy(deep=True)
            for r in self._storage.values()
            if r.room_id == room_id and r.is_active() and r.time_range.overlaps(window)
        ]

    async def insert(self, reservation: Reservation) -> Reservation:
        if reservation.reservation_id in self._storage:
            raise StorageFailure(f"Reservation {reservation.reservation_id} already exists")
        self._enforce_no_overlap(reservation)
        self._storage[reservation.reservation_id] = reservation.model_copy(deep=True)
        return reservation

    async def update(self, reservation: Reservation) -> Reservation:
        if reservation.reservation_id not in self._storage:
            raise StorageFailure(f"Reservation {reservation.reservation_id} does not exist")
        self._enforce_no_overlap(reservation)
        self._storage[reservation.reservation_id] = reservation.model_copy(deep=True)
        return reservation

    async def find(
        self,
        room_id: Optional[UUID] = None,
        organizer_id: Optional[UUID] = None,
        statuses: Optional[List[ReservationStatus]] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[Reservation]:
        results = []
        for reservation in self._storage.values():
            starts_on = reservation.time_range.start.date()
            if room_id is not None and reservation.room_id != room_id:
                continue
            if organizer_id is not None and reservation.organizer_id != organizer_id:
                continue
            if statuses is not None and reservation.status not in statuses:
                continue
            if start_date is not None and starts_on < start_date:
                continue
            if end_date is not None and starts_on > end_date:
                continue
            results.append(reservation.model_copy(deep=True))
        return results

    def _enforce_no_overlap(self, candidate: Reservation) -> None:
        if not candidate.is_active():
            return
        for other in self._storage.values():
            if (other.reservation_id != candidate.reservation_id
                    and other.room_id == candidate.room_id
                    and other.is_active()
                    and other.time_range.overlaps(candidate.time_range)):
                raise SchedulingConflict(conflicting_id=str(other.reservation_id))
