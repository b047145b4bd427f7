"""
Tests for the calendar hour grid.
"""

import pendulum
import pytest

from travelscheduler.domain.calendar_grid import CalendarGridRenderer, format_hour_label
from travelscheduler.domain.exceptions import InvalidInputError
from travelscheduler.domain.models import Appointment, DaySchedule

DAY = pendulum.date(2025, 7, 7)
NINE_TO_FIVE = DaySchedule(enabled=True, start="09:00", end="17:00")


def _appointment(apt_id, hour, minute=0, duration=60, tz="UTC", day=7):
    return Appointment(
        id=apt_id,
        scheduled_at=pendulum.datetime(2025, 7, day, hour, minute, tz=tz),
        duration_minutes=duration,
    )


def _row(rows, hour, day_offset=0):
    return next(r for r in rows if r.hour == hour and r.day_offset == day_offset)


@pytest.fixture
def renderer():
    return CalendarGridRenderer()


class TestGridRange:
    """Which hours the grid shows."""

    def test_default_range_without_schedule(self, renderer):
        """Test the 9 AM to 8 PM grid without working hours."""
        rows = renderer.render(DAY, [])

        assert [r.hour for r in rows] == list(range(9, 21))
        assert all(r.is_free for r in rows)

    def test_working_hours_set_the_range(self, renderer):
        """Test that working hours define the grid."""
        rows = renderer.render(DAY, [], NINE_TO_FIVE)

        assert [r.hour for r in rows] == list(range(9, 18))

    def test_disabled_schedule_uses_defaults_and_blocks_all(self, renderer):
        """Test that a disabled day shows the default range, all blocked."""
        rows = renderer.render(DAY, [], DaySchedule(enabled=False))

        assert [r.hour for r in rows] == list(range(9, 21))
        assert all(r.blocked for r in rows)

    def test_early_appointment_extends_start(self, renderer):
        """Test that an appointment before opening extends the grid."""
        rows = renderer.render(DAY, [_appointment(1, 7)], NINE_TO_FIVE)

        assert rows[0].hour == 7
        assert rows[0].appointment.id == 1
        assert rows[0].blocked

    def test_late_appointment_extends_end(self, renderer):
        """Test that an appointment past closing extends the grid."""
        rows = renderer.render(DAY, [_appointment(1, 16, duration=75)], NINE_TO_FIVE)

        assert rows[-1].hour == 17
        assert _row(rows, 16).appointment.id == 1
        assert _row(rows, 17).appointment.id == 1

    def test_ending_on_the_hour_does_not_occupy_it(self, renderer):
        """Test that ending at 17:00 leaves the 17 row free."""
        rows = renderer.render(DAY, [_appointment(1, 16, duration=60)], NINE_TO_FIVE)

        assert rows[-1].hour == 17
        assert _row(rows, 16).appointment.id == 1
        assert _row(rows, 17).appointment is None

    def test_end_extends_past_default(self, renderer):
        """Test that an end after the default end adds rows."""
        rows = renderer.render(DAY, [_appointment(1, 20, duration=60)])

        assert rows[-1].hour == 21
        assert _row(rows, 20).appointment.id == 1
        assert _row(rows, 21).appointment is None

    def test_rows_are_contiguous(self, renderer):
        """Test that rows have no gaps between distant appointments."""
        rows = renderer.render(
            DAY, [_appointment(1, 6, duration=30), _appointment(2, 22, duration=30)]
        )

        hours = [r.hour for r in rows]
        assert hours == list(range(6, 23))


class TestMidnightWrap:
    """Appointments running past midnight."""

    def test_wraps_through_midnight(self, renderer):
        """Test an appointment from 23:00 to 01:05."""
        rows = renderer.render(DAY, [_appointment(1, 23, duration=125)])

        assert [r.hour for r in rows] == list(range(9, 24)) + [0, 1]
        assert len(rows) == 17
        for hour, offset in ((23, 0), (0, 1), (1, 1)):
            assert _row(rows, hour, offset).appointment.id == 1
        assert _row(rows, 22).appointment is None

    def test_ending_at_midnight_adds_empty_row(self, renderer):
        """Test that ending exactly at midnight adds an empty 0 row."""
        rows = renderer.render(DAY, [_appointment(1, 23, duration=60)])

        assert rows[-1].hour == 0
        assert rows[-1].day_offset == 1
        assert rows[-1].appointment is None
        assert _row(rows, 23).appointment.id == 1

    def test_never_more_than_a_day_of_rows(self, renderer):
        """Test that the grid is capped at 24 rows."""
        rows = renderer.render(DAY, [_appointment(1, 0, duration=48 * 60)])

        assert [r.hour for r in rows] == list(range(24))
        assert all(r.appointment is not None for r in rows)


class TestOccupancy:
    """Which appointment a row shows."""

    def test_zero_duration_occupies_start_hour(self, renderer):
        """Test that a zero-minute appointment shows in its start hour."""
        rows = renderer.render(DAY, [_appointment(1, 10, duration=0)])

        assert _row(rows, 10).appointment.id == 1
        assert _row(rows, 11).appointment is None

    def test_first_appointment_wins(self, renderer):
        """Test that the earliest appointment owns a shared hour."""
        rows = renderer.render(
            DAY, [_appointment(2, 10, minute=30), _appointment(1, 10, duration=20)]
        )

        assert _row(rows, 10).appointment.id == 1
        assert _row(rows, 11).appointment.id == 2

    def test_other_days_are_left_off(self, renderer):
        """Test that appointments on another date are not rendered."""
        rows = renderer.render(DAY, [_appointment(1, 10, day=8)])

        assert all(r.appointment is None for r in rows)

    def test_local_timezone(self):
        """Test that hours are taken in the renderer's timezone."""
        renderer = CalendarGridRenderer(timezone="Europe/Berlin")

        rows = renderer.render(DAY, [_appointment(1, 10)])  # 12:00 in Berlin

        assert _row(rows, 12).appointment.id == 1
        assert _row(rows, 10).appointment is None


class TestBlocked:
    """Rows outside working hours are blocked."""

    @pytest.mark.parametrize(
        "hour,expected",
        [(8, True), (9, False), (12, False), (17, False), (18, True), (0, True)],
    )
    def test_inclusive_bounds(self, hour, expected):
        """Test that the start and end hours are both bookable."""
        assert CalendarGridRenderer.is_blocked(hour, NINE_TO_FIVE) is expected

    def test_no_schedule_blocks_nothing(self):
        """Test that without a schedule no hour is blocked."""
        assert not CalendarGridRenderer.is_blocked(3, None)

    def test_rows_outside_schedule_are_blocked(self, renderer):
        """Test that extended and wrapped rows are blocked."""
        rows = renderer.render(DAY, [_appointment(1, 23, duration=125)], NINE_TO_FIVE)

        assert not _row(rows, 17).blocked
        assert _row(rows, 18).blocked
        assert _row(rows, 23).blocked
        assert _row(rows, 0, 1).blocked
        assert _row(rows, 1, 1).appointment.id == 1


class TestLabels:
    @pytest.mark.parametrize(
        "hour,label",
        [(0, "12 AM"), (1, "1 AM"), (9, "9 AM"), (12, "12 PM"), (13, "1 PM"), (23, "11 PM")],
    )
    def test_format_hour_label(self, hour, label):
        """Test 12-hour clock labels."""
        assert format_hour_label(hour) == label

    def test_rows_carry_labels(self, renderer):
        """Test that rows carry their labels."""
        rows = renderer.render(DAY, [], NINE_TO_FIVE)

        assert rows[0].label == "9 AM"
        assert rows[-1].label == "5 PM"

    def test_invalid_default_hours(self):
        """Test that default hours outside 0-23 are rejected."""
        with pytest.raises(InvalidInputError):
            CalendarGridRenderer(default_start_hour=24)
