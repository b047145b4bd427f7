"""
Small helpers for turning caller input into timezone-aware pendulum values.
"""

from __future__ import annotations

import re
from datetime import date, datetime, time
from typing import Union

import pendulum
from pendulum import Date, DateTime

from .exceptions import InvalidInputError

_CLOCK_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")

DateLike = Union[date, datetime, str]


def parse_clock(value: str) -> time:
    """Parse an ``HH:MM`` working-hours string."""
    match = _CLOCK_PATTERN.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise InvalidInputError(f"Expected a time in HH:MM format, got {value!r}")

    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise InvalidInputError(f"Time out of range: {value!r}")

    return time(hour=hour, minute=minute)


def local_date(value: DateLike, timezone: str) -> Date:
    """
    Resolve a calendar date in ``timezone``.

    Datetimes are converted into the timezone first, so an instant late in
    the UTC evening can land on the next local day. Strings are parsed as
    dates or datetimes.
    """
    if isinstance(value, str):
        try:
            parsed = pendulum.parse(value, tz=timezone)
        except ValueError as exc:
            raise InvalidInputError(f"Could not parse date: {value!r}") from exc
        if not isinstance(parsed, (DateTime, Date)):
            raise InvalidInputError(f"Could not parse date: {value!r}")
        value = parsed

    if isinstance(value, datetime):
        return pendulum.instance(value, tz=timezone).in_timezone(timezone).date()

    if isinstance(value, date):
        return pendulum.date(value.year, value.month, value.day)

    raise InvalidInputError(f"Unsupported date value: {value!r}")


def parse_datetime(value: Union[datetime, str], timezone: str) -> DateTime:
    """Parse an absolute timestamp; naive values are read in ``timezone``."""
    if isinstance(value, str):
        try:
            value = pendulum.parse(value, tz=timezone)
        except ValueError as exc:
            raise InvalidInputError(f"Could not parse datetime: {value!r}") from exc

    if not isinstance(value, datetime):
        raise InvalidInputError(f"Could not parse datetime: {value!r}")

    return pendulum.instance(value, tz=timezone)


def at_clock(day: date, clock: time, timezone: str) -> DateTime:
    """Combine a calendar date and a wall-clock time in ``timezone``."""
    return pendulum.datetime(
        day.year, day.month, day.day, clock.hour, clock.minute, tz=timezone
    )


def day_bounds(day: date, timezone: str) -> tuple[DateTime, DateTime]:
    """Return the first and last instant of a local calendar day."""
    start = pendulum.datetime(day.year, day.month, day.day, tz=timezone)
    return start, start.end_of("day")
