"""Domain Value Objects"""
from datetime import datetime, tzinfo
from typing import FrozenSet, Optional

from pydantic import BaseModel, ConfigDict

from meeting_rooms.domain.enums import CoffeeBreakStatus

SATURDAY = 5
SUNDAY = 6


def to_local(moment: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """Express an aware timestamp in the organization's zone; naive ones are already local"""
    if tz is not None and moment.tzinfo is not None:
        return moment.astimezone(tz)
    return moment


class TimeRange(BaseModel):
    """Value Object for a half-open interval [start, end)"""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    def is_valid(self) -> bool:
        return self.end > self.start

    def overlaps(self, other: "TimeRange") -> bool:
        """Back-to-back ranges do not overlap"""
        return self.start < other.end and other.start < self.end

    def is_within_business_hours(self, start_hour: int = 7, end_hour: int = 19,
                                 tz: Optional[tzinfo] = None) -> bool:
        # Hour granularity: 19:30 still counts as hour 19
        return (to_local(self.start, tz).hour >= start_hour
                and to_local(self.end, tz).hour <= end_hour)

    def is_weekday(self, tz: Optional[tzinfo] = None) -> bool:
        return to_local(self.start, tz).weekday() not in (SATURDAY, SUNDAY)

    def duration_hours(self) -> float:
        return (self.end - self.start).total_seconds() / 3600


def overlaps(a: TimeRange, b: TimeRange) -> bool:
    return a.overlaps(b)


class ReservationPatch(BaseModel):
    """Fields a caller may change on an existing reservation"""

    title: Optional[str] = None
    description: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    attendees_count: Optional[int] = None
    coffee_break: Optional[CoffeeBreakStatus] = None

    @property
    def touches_time(self) -> bool:
        return self.start is not None or self.end is not None


class RoomPatch(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    capacity: Optional[int] = None
    location: Optional[str] = None
    equipment: Optional[FrozenSet[str]] = None
