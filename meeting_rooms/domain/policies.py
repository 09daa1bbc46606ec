"""Reservation Policy - time rules and coffee-break derivation"""
from datetime import datetime, timedelta, tzinfo
from typing import List, Optional
from zoneinfo import ZoneInfo

from pydantic import BaseModel, ConfigDict

from meeting_rooms.domain.enums import CoffeeBreakStatus
from meeting_rooms.domain.exceptions import PolicyViolation, ValidationFailed
from meeting_rooms.domain.value_objects import TimeRange, to_local


class ReservationPolicy(BaseModel):
    """Value Object holding the organization's booking rules"""

    model_config = ConfigDict(frozen=True)

    timezone: str = "America/Mexico_City"
    min_advance_hours: int = 3
    business_hours_start: int = 7
    business_hours_end: int = 19
    coffee_break_start_hour: int = 9
    coffee_break_end_hour: int = 13
    coffee_break_min_hours: float = 1

    @property
    def tz(self) -> tzinfo:
        return ZoneInfo(self.timezone)

    def align(self, now: datetime, reference: datetime) -> datetime:
        """Bring ``now`` into the same naive/aware form as ``reference``"""
        if reference.tzinfo is None and now.tzinfo is not None:
            return now.astimezone(self.tz).replace(tzinfo=None)
        if reference.tzinfo is not None and now.tzinfo is None:
            return now.replace(tzinfo=self.tz)
        return now

    def localize(self, time_range: TimeRange) -> TimeRange:
        """Express ``time_range`` as naive organization-local time.

        Stored ranges are always naive local, so any two of them compare
        safely whatever form the caller sent.
        """
        return TimeRange(
            start=to_local(time_range.start, self.tz).replace(tzinfo=None),
            end=to_local(time_range.end, self.tz).replace(tzinfo=None),
        )

    def violations(self, time_range: TimeRange, now: datetime) -> List[str]:
        """Advance-notice, business-hours and weekday rules, in that order"""
        problems = []
        earliest = self.align(now, time_range.start) + timedelta(hours=self.min_advance_hours)
        if time_range.start < earliest:
            problems.append(
                f"Reservations must be made at least {self.min_advance_hours} hours in advance"
            )
        if not time_range.is_within_business_hours(self.business_hours_start,
                                                   self.business_hours_end, self.tz):
            problems.append(
                f"Reservations are only allowed between {self.business_hours_start}:00 "
                f"and {self.business_hours_end}:00"
            )
        if not time_range.is_weekday(self.tz):
            problems.append("Reservations cannot be made on weekends")
        return problems

    def check_time_range(self, time_range: TimeRange, now: datetime) -> None:
        if not time_range.is_valid():
            raise ValidationFailed("End time must be after start time")
        problems = self.violations(time_range, now)
        if problems:
            raise PolicyViolation(problems)

    def derive_coffee_break(self, time_range: TimeRange,
                            requested: Optional[CoffeeBreakStatus] = None) -> CoffeeBreakStatus:
        """Coffee break is offered only for late-morning meetings of at least an hour.

        Within the window an explicit request is honored, otherwise the
        default is not_requested. Hours are compared at hour granularity.
        """
        if time_range.duration_hours() < self.coffee_break_min_hours:
            return CoffeeBreakStatus.NOT_APPLICABLE

        start_hour = to_local(time_range.start, self.tz).hour
        end_hour = to_local(time_range.end, self.tz).hour
        if start_hour >= self.coffee_break_start_hour and end_hour <= self.coffee_break_end_hour:
            return requested or CoffeeBreakStatus.NOT_REQUESTED
        return CoffeeBreakStatus.NOT_APPLICABLE
