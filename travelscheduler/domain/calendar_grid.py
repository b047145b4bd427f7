"""
Hour grid for the day view of the calendar.

Hours are treated as discrete buckets. The visible range starts from the
configured working hours and grows to cover every appointment, including
ones that run past midnight. Hours after midnight are numbered 24, 25, ...
internally and displayed as 0, 1, ...
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Sequence, Union

from .exceptions import InvalidInputError
from .models import Appointment, CalendarHourSlot, DaySchedule
from .timeutils import local_date

logger = logging.getLogger(__name__)

DEFAULT_START_HOUR = 9
DEFAULT_END_HOUR = 20


def format_hour_label(hour: int) -> str:
    """Format a 0-23 hour as a 12-hour clock label."""
    if hour == 0:
        return "12 AM"
    if hour == 12:
        return "12 PM"
    if hour < 12:
        return f"{hour} AM"
    return f"{hour - 12} PM"


@dataclass(frozen=True)
class _HourSpan:
    """Hour buckets of one appointment, relative to the rendered day."""
    appointment: Appointment
    start_hour: int
    end_hour: int
    end_minute: int

    @property
    def last_hour(self) -> int:
        # Ending on the hour does not occupy that hour; any leftover minute does
        last = self.end_hour if self.end_minute > 0 else self.end_hour - 1
        return max(last, self.start_hour)

    def occupies(self, hour: int) -> bool:
        return self.start_hour <= hour <= self.last_hour


class CalendarGridRenderer:
    """
    Renders a day's appointments into CalendarHourSlot rows.

    Midnight handling uses local hours with an explicit wrap: an appointment
    from 23:00 to 01:05 occupies 23, 0 and 1, and the grid runs
    [start..23] followed by [0..end].
    """

    def __init__(
        self,
        timezone: str = "UTC",
        default_start_hour: int = DEFAULT_START_HOUR,
        default_end_hour: int = DEFAULT_END_HOUR,
    ):
        for value in (default_start_hour, default_end_hour):
            if not 0 <= value <= 23:
                raise InvalidInputError(f"Hour must be between 0 and 23, got {value}")
        self.timezone = timezone
        self.default_start_hour = default_start_hour
        self.default_end_hour = default_end_hour

    def render(
        self,
        day: Union[date, str],
        appointments: Sequence[Appointment],
        working_hours: Optional[DaySchedule] = None,
    ) -> List[CalendarHourSlot]:
        """
        Build the hour grid for ``day``.

        Args:
            day: The calendar day to render
            appointments: Appointments starting on that day
            working_hours: The schedule entry for that day, if any

        Returns:
            Contiguous hour rows, wrapping through midnight when needed
        """
        day = local_date(day, self.timezone)

        start_hour = self.default_start_hour
        end_hour = self.default_end_hour

        if working_hours is not None and working_hours.enabled:
            start_hour = working_hours.start_hour
            end_hour = working_hours.end_hour

        spans = self._spans_for_day(day, appointments)

        for span in spans:
            start_hour = min(start_hour, span.start_hour)
            if span.end_hour > end_hour or (
                span.end_hour == end_hour and span.end_minute > 0
            ):
                end_hour = span.end_hour

        # At least one row, and never more than a full day so hours stay unique
        end_hour = max(end_hour, start_hour)
        end_hour = min(end_hour, start_hour + 23)

        rows: List[CalendarHourSlot] = []
        for absolute_hour in range(start_hour, end_hour + 1):
            hour = absolute_hour % 24
            appointment = next(
                (span.appointment for span in spans if span.occupies(absolute_hour)),
                None,
            )
            rows.append(
                CalendarHourSlot(
                    hour=hour,
                    label=format_hour_label(hour),
                    appointment=appointment,
                    blocked=self.is_blocked(hour, working_hours),
                    day_offset=absolute_hour // 24,
                )
            )

        return rows

    @staticmethod
    def is_blocked(hour: int, working_hours: Optional[DaySchedule]) -> bool:
        """
        Whether ``hour`` lies outside working hours.

        Both ends are inclusive, so with 09:00-17:00 the 17 row is open even
        though an appointment ending at 17:00 sharp does not occupy it.
        Without a schedule nothing is blocked; a disabled day blocks all.
        """
        if working_hours is None:
            return False
        if not working_hours.enabled:
            return True
        return not (working_hours.start_hour <= hour <= working_hours.end_hour)

    def _spans_for_day(
        self, day: date, appointments: Sequence[Appointment]
    ) -> List[_HourSpan]:
        spans: List[_HourSpan] = []
        day_ordinal = day.toordinal()

        for appointment in sorted(appointments, key=lambda apt: apt.scheduled_at):
            start_local = appointment.scheduled_at.in_timezone(self.timezone)
            if start_local.date().toordinal() != day_ordinal:
                logger.debug(
                    "Appointment %s starts on %s, not %s; left off the grid",
                    appointment.id,
                    start_local.date(),
                    day,
                )
                continue

            end_local = appointment.end.in_timezone(self.timezone)
            end_day_offset = end_local.date().toordinal() - day_ordinal

            spans.append(
                _HourSpan(
                    appointment=appointment,
                    start_hour=start_local.hour,
                    end_hour=end_local.hour + 24 * end_day_offset,
                    end_minute=end_local.minute,
                )
            )

        return spans
