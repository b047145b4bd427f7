"""
Domain layer - Scheduling logic with travel providers injected from outside.
"""

from .buffer_calculator import DEFAULT_FALLBACK_MINUTES, DayBufferCalculator, TravelTimeProvider
from .calendar_grid import CalendarGridRenderer, format_hour_label
from .exceptions import InvalidInputError, SchedulingError
from .models import (
    Appointment,
    CalendarHourSlot,
    Coordinates,
    DaySchedule,
    FailureReason,
    TimeRange,
    TimeSlotCandidate,
    TravelBuffer,
    TravelEstimate,
    TravelFailure,
    TravelMode,
    TravelResult,
    WorkingHoursSchedule,
)
from .slot_scanner import SlotAvailabilityScanner

__all__ = [
    "Appointment",
    "CalendarGridRenderer",
    "CalendarHourSlot",
    "Coordinates",
    "DEFAULT_FALLBACK_MINUTES",
    "DayBufferCalculator",
    "DaySchedule",
    "FailureReason",
    "InvalidInputError",
    "SchedulingError",
    "SlotAvailabilityScanner",
    "TimeRange",
    "TimeSlotCandidate",
    "TravelBuffer",
    "TravelEstimate",
    "TravelFailure",
    "TravelMode",
    "TravelResult",
    "TravelTimeProvider",
    "WorkingHoursSchedule",
    "format_hour_label",
]
