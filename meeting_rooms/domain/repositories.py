"""Domain Repository Interfaces"""
from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Dict, List, Optional
from uuid import UUID

from meeting_rooms.domain.entities import Reservation, Room
from meeting_rooms.domain.enums import ReservationStatus
from meeting_rooms.domain.value_objects import TimeRange


class RoomRepository(ABC):
    """Repository interface for Room Entity"""

    @abstractmethod
    async def get(self, room_id: UUID) -> Optional[Room]:
        """Find room by ID, active or not"""
        pass

    @abstractmethod
    async def list_active(self) -> List[Room]:
        """Active rooms ordered by name"""
        pass

    @abstractmethod
    async def find_active_by_name(self, name: str) -> Optional[Room]:
        pass

    @abstractmethod
    async def save(self, room: Room) -> Room:
        """Insert or replace room"""
        pass


class ReservationRepository(ABC):
    """Repository interface for Reservation Aggregate.

    Implementations must reject an insert or update that would make two
    active reservations of the same room overlap, raising SchedulingConflict.
    """

    @abstractmethod
    async def get(self, reservation_id: UUID) -> Optional[Reservation]:
        """Find reservation by ID"""
        pass

    @abstractmethod
    async def list_active_for_room(self, room_id: UUID, window: TimeRange) -> List[Reservation]:
        """Pending/approved reservations of the room intersecting ``window``"""
        pass

    @abstractmethod
    async def insert(self, reservation: Reservation) -> Reservation:
        pass

    @abstractmethod
    async def update(self, reservation: Reservation) -> Reservation:
        pass

    @abstractmethod
    async def find(
        self,
        room_id: Optional[UUID] = None,
        organizer_id: Optional[UUID] = None,
        statuses: Optional[List[ReservationStatus]] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[Reservation]:
        """Filtered search; dates apply to the reservation's start date"""
        pass


class EventSink(ABC):
    """Observer of lifecycle transitions (notifications, audit)"""

    @abstractmethod
    async def publish(self, event_name: str, payload: Dict[str, Any]) -> None:
        pass
