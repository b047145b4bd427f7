"""
Domain models for appointments, travel buffers, slots and calendar rows.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union

import pendulum
from pendulum import DateTime

from .exceptions import InvalidInputError
from .timeutils import parse_clock, parse_datetime

WEEKDAY_NAMES = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)

UNKNOWN_ADDRESS = "Unknown"


class TravelMode(str, Enum):
    """Transport modes a provider can travel in."""
    DRIVING = "driving"
    WALKING = "walking"
    CYCLING = "cycling"
    TRANSIT = "transit"


class FailureReason(str, Enum):
    """Why a travel estimate could not be produced."""
    GEOCODE_NOT_FOUND = "geocode_not_found"
    ROUTE_NOT_FOUND = "route_not_found"
    PROVIDER_UNAVAILABLE = "provider_unavailable"
    MISSING_ADDRESS = "missing_address"


@dataclass(frozen=True)
class TimeRange:
    """
    Represents an immutable half-open time range [start, end).

    Invariant: start must not be after end. Zero-length ranges are allowed
    because appointments may last zero minutes.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start > self.end:
            raise InvalidInputError(
                f"Start time {self.start} must not be after end time {self.end}"
            )

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def overlaps(self, other: "TimeRange") -> bool:
        """Check if this range overlaps with another."""
        return self.start < other.end and self.end > other.start

    def expand(self, minutes: int) -> "TimeRange":
        """Widen the range by ``minutes`` on both sides."""
        return TimeRange(
            start=self.start.subtract(minutes=minutes),
            end=self.end.add(minutes=minutes),
        )

    def conflicts_with(self, other: "TimeRange") -> bool:
        """
        Four-way booking conflict test against ``other``.

        A range conflicts when it starts inside ``other``, ends inside it,
        or fully contains it. Being fully contained is covered by the
        first case.
        """
        starts_inside = other.start <= self.start < other.end
        ends_inside = other.start < self.end <= other.end
        contains = self.start < other.start and self.end > other.end
        return starts_inside or ends_inside or contains

    def __str__(self) -> str:
        return f"{self.start.format('DD.MM.YYYY HH:mm')} - {self.end.format('HH:mm')}"


@dataclass(frozen=True)
class Appointment:
    """
    A booked appointment as supplied by the storage layer.

    The occupied interval is [scheduled_at, scheduled_at + duration_minutes).
    """
    id: Union[int, str]
    scheduled_at: DateTime
    duration_minutes: int
    address: Optional[str] = None
    status: str = "confirmed"

    def __post_init__(self):
        if not isinstance(self.scheduled_at, datetime):
            raise InvalidInputError(
                f"Appointment {self.id}: scheduled_at must be a datetime, got {self.scheduled_at!r}"
            )
        if self.duration_minutes < 0:
            raise InvalidInputError(
                f"Appointment {self.id}: duration must not be negative, got {self.duration_minutes}"
            )
        if not isinstance(self.scheduled_at, DateTime):
            object.__setattr__(self, "scheduled_at", pendulum.instance(self.scheduled_at))

    @property
    def end(self) -> DateTime:
        return self.scheduled_at.add(minutes=self.duration_minutes)

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(start=self.scheduled_at, end=self.end)

    @property
    def has_address(self) -> bool:
        return bool(self.address and self.address.strip())

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], timezone: str = "UTC") -> "Appointment":
        """
        Build an appointment from a storage record.

        Expected keys: id, scheduled_at, duration_minutes, and optionally
        address and status. Naive timestamps are read in ``timezone``.
        """
        try:
            return cls(
                id=data["id"],
                scheduled_at=parse_datetime(data["scheduled_at"], timezone),
                duration_minutes=int(data["duration_minutes"]),
                address=data.get("address") or None,
                status=data.get("status", "confirmed"),
            )
        except KeyError as exc:
            raise InvalidInputError(f"Appointment record is missing {exc}") from exc


@dataclass(frozen=True)
class DaySchedule:
    """Working hours for a single weekday."""
    enabled: bool
    start: str = "09:00"
    end: str = "17:00"

    def __post_init__(self):
        # Fail fast on malformed clock strings
        parse_clock(self.start)
        parse_clock(self.end)

    def start_time(self) -> time:
        return parse_clock(self.start)

    def end_time(self) -> time:
        return parse_clock(self.end)

    # The calendar grid only honours the hour of the configured start and
    # end. "09:30" renders from 9 and "17:45" stops at 17. Keep it that way
    # unless the grid learns sub-hour rows.
    @property
    def start_hour(self) -> int:
        return self.start_time().hour

    @property
    def end_hour(self) -> int:
        return self.end_time().hour


@dataclass
class WorkingHoursSchedule:
    """Weekday name (lowercase English) to working hours."""
    days: Dict[str, DaySchedule] = field(default_factory=dict)

    def for_date(self, day: date) -> Optional[DaySchedule]:
        """Return the schedule entry for the weekday of ``day``."""
        return self.days.get(WEEKDAY_NAMES[day.weekday()])

    def is_working_day(self, day: date) -> bool:
        schedule = self.for_date(day)
        return bool(schedule and schedule.enabled)

    @classmethod
    def default(cls) -> "WorkingHoursSchedule":
        """Monday to Saturday 09:00-17:00, Sunday off."""
        return cls(
            days={
                name: DaySchedule(enabled=name != "sunday", start="09:00", end="17:00")
                for name in WEEKDAY_NAMES
            }
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Mapping[str, Any]]) -> "WorkingHoursSchedule":
        """Build a schedule from the ``{day: {enabled, start, end}}`` shape."""
        days: Dict[str, DaySchedule] = {}
        for name, entry in data.items():
            key = name.lower()
            if key not in WEEKDAY_NAMES:
                raise InvalidInputError(f"Unknown weekday in working hours: {name!r}")
            days[key] = DaySchedule(
                enabled=bool(entry.get("enabled", False)),
                start=entry.get("start", "09:00"),
                end=entry.get("end", "17:00"),
            )
        return cls(days=days)


@dataclass(frozen=True)
class Coordinates:
    lat: float
    lng: float

    def as_lng_lat(self) -> str:
        """Format as ``lng,lat`` (the order routing APIs expect)."""
        return f"{self.lng},{self.lat}"


@dataclass(frozen=True)
class TravelEstimate:
    """Successful travel lookup."""
    minutes: int
    distance_meters: float = 0.0

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class TravelFailure:
    """Failed travel lookup; callers decide on a fallback."""
    reason: FailureReason
    message: str = ""

    @property
    def ok(self) -> bool:
        return False


TravelResult = Union[TravelEstimate, TravelFailure]


@dataclass(frozen=True)
class TravelBuffer:
    """
    Buffer kept clear around one appointment.

    ``fallback_reason`` is None when the travel time came from a provider
    and set when a fixed fallback duration was substituted.
    """
    appointment_id: Union[int, str]
    travel_minutes: int
    grace_minutes: int
    origin_address: str
    destination_address: str
    fallback_reason: Optional[FailureReason] = None

    @property
    def total_buffer_minutes(self) -> int:
        return self.travel_minutes + self.grace_minutes

    @property
    def is_estimated(self) -> bool:
        return self.fallback_reason is None


@dataclass(frozen=True)
class TimeSlotCandidate:
    """An offerable, not yet booked interval."""
    start: DateTime
    end: DateTime

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(start=self.start, end=self.end)

    def duration_minutes(self) -> int:
        return self.time_range.duration_minutes()

    def format_display(self) -> str:
        """
        Format the slot for display.
        Format: Weekday, DD.MM.YYYY | HH:mm - HH:mm (N min)
        """
        weekday = WEEKDAY_NAMES[self.start.weekday()].capitalize()
        date_str = self.start.format("DD.MM.YYYY")
        time_str = f"{self.start.format('HH:mm')} - {self.end.format('HH:mm')}"
        return f"{weekday}, {date_str} | {time_str} ({self.duration_minutes()} min)"


@dataclass(frozen=True)
class CalendarHourSlot:
    """
    One row of the hour grid.

    ``day_offset`` is 1 for hours rendered after a midnight wrap.
    """
    hour: int
    label: str
    appointment: Optional[Appointment]
    blocked: bool
    day_offset: int = 0

    @property
    def is_free(self) -> bool:
        return self.appointment is None and not self.blocked
