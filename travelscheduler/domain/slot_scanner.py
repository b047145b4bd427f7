"""
Core business logic for finding offerable appointment slots.

Pure domain logic: travel buffers are computed elsewhere and passed in.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Dict, List, Optional, Sequence, Union

from .exceptions import InvalidInputError
from .models import (
    Appointment,
    DaySchedule,
    TimeRange,
    TimeSlotCandidate,
    TravelBuffer,
)
from .timeutils import at_clock, local_date

logger = logging.getLogger(__name__)

DEFAULT_SLOT_INTERVAL_MINUTES = 30
DEFAULT_BUFFER_MINUTES = 15


class SlotAvailabilityScanner:
    """
    Finds start times for a new appointment that keep clear of existing
    appointments and their travel buffers.

    Algorithm:
    1. Bail out on days without enabled working hours
    2. Step through candidate starts at a fixed interval from opening time
    3. Drop candidates that would run past closing time
    4. Expand each existing appointment by its travel buffer
    5. Keep candidates that conflict with no expanded appointment

    Only the existing appointments' own legs are checked. Travel to and from
    the new client's address is not known here and is not verified.
    """

    def __init__(
        self,
        timezone: str = "UTC",
        slot_interval_minutes: int = DEFAULT_SLOT_INTERVAL_MINUTES,
        default_buffer_minutes: int = DEFAULT_BUFFER_MINUTES,
    ):
        if slot_interval_minutes <= 0:
            raise InvalidInputError("slot_interval_minutes must be greater than zero")
        if default_buffer_minutes < 0:
            raise InvalidInputError("default_buffer_minutes must not be negative")
        self.timezone = timezone
        self.slot_interval_minutes = slot_interval_minutes
        self.default_buffer_minutes = default_buffer_minutes

    def find_available_slots(
        self,
        day: Union[date, str],
        working_hours: Optional[DaySchedule],
        existing_appointments: Sequence[Appointment],
        travel_buffers: Sequence[TravelBuffer],
        service_duration_minutes: int,
    ) -> List[TimeSlotCandidate]:
        """
        Find all offerable slots on a single day.

        Args:
            day: The calendar day to scan
            working_hours: The schedule entry for that day
            existing_appointments: Appointments already booked that day
            travel_buffers: Buffers from DayBufferCalculator, matched by appointment id
            service_duration_minutes: Length of the appointment being booked

        Returns:
            Candidates in ascending start order
        """
        if service_duration_minutes <= 0:
            raise InvalidInputError(
                f"service_duration_minutes must be greater than zero, got {service_duration_minutes}"
            )

        day = local_date(day, self.timezone)

        if working_hours is None or not working_hours.enabled:
            logger.debug("No working hours on %s; no slots offered", day)
            return []

        day_start = at_clock(day, working_hours.start_time(), self.timezone)
        day_end = at_clock(day, working_hours.end_time(), self.timezone)

        blocked_ranges = self._buffered_ranges(existing_appointments, travel_buffers)

        slots: List[TimeSlotCandidate] = []
        candidate_start = day_start

        while candidate_start < day_end:
            candidate_end = candidate_start.add(minutes=service_duration_minutes)

            if candidate_end > day_end:
                break

            candidate = TimeRange(start=candidate_start, end=candidate_end)
            if not self._has_conflict(candidate, blocked_ranges):
                slots.append(TimeSlotCandidate(start=candidate_start, end=candidate_end))

            candidate_start = candidate_start.add(minutes=self.slot_interval_minutes)

        return slots

    def find_conflict(
        self,
        proposed: TimeRange,
        existing_appointments: Sequence[Appointment],
        travel_buffers: Sequence[TravelBuffer],
    ) -> Optional[tuple[Appointment, int]]:
        """
        Return the first appointment whose buffered interval conflicts with
        ``proposed``, together with the buffer minutes applied to it.
        """
        buffer_lookup = self._buffer_lookup(travel_buffers)

        for appointment in sorted(existing_appointments, key=lambda apt: apt.scheduled_at):
            buffer_minutes = buffer_lookup.get(appointment.id, self.default_buffer_minutes)
            if proposed.conflicts_with(appointment.time_range.expand(buffer_minutes)):
                return appointment, buffer_minutes

        return None

    def _buffered_ranges(
        self,
        appointments: Sequence[Appointment],
        travel_buffers: Sequence[TravelBuffer],
    ) -> List[TimeRange]:
        """
        Expand every appointment by its total buffer on both sides.

        Appointments without a computed buffer get the default buffer.
        """
        buffer_lookup = self._buffer_lookup(travel_buffers)

        return [
            appointment.time_range.expand(
                buffer_lookup.get(appointment.id, self.default_buffer_minutes)
            )
            for appointment in appointments
        ]

    @staticmethod
    def _buffer_lookup(travel_buffers: Sequence[TravelBuffer]) -> Dict[Union[int, str], int]:
        return {
            buffer.appointment_id: buffer.total_buffer_minutes
            for buffer in travel_buffers
        }

    @staticmethod
    def _has_conflict(candidate: TimeRange, blocked_ranges: Sequence[TimeRange]) -> bool:
        return any(candidate.conflicts_with(blocked) for blocked in blocked_ranges)
