"""
Application services for travel-aware availability.

The service reads a day's appointments through an appointment store
protocol, computes travel buffers through the injected provider and hands
everything to the domain components. The web layer and the CLI both go
through it, so the store and provider can be swapped for fakes in tests.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, Iterable, List, Optional, Protocol, Union

from pendulum import DateTime

from ..adapters.base import BaseTravelTimeProvider
from ..adapters.google_distance_matrix import GoogleDistanceMatrixProvider
from ..adapters.mapbox_directions import MapboxTravelTimeProvider
from ..adapters.mock_travel_provider import MockTravelTimeProvider
from ..config import AppConfig, ProfileConfig
from ..domain.buffer_calculator import DayBufferCalculator, TravelTimeProvider
from ..domain.calendar_grid import CalendarGridRenderer
from ..domain.exceptions import InvalidInputError
from ..domain.models import (
    Appointment,
    CalendarHourSlot,
    DaySchedule,
    TimeRange,
    TimeSlotCandidate,
    TravelBuffer,
    TravelMode,
    TravelResult,
    WorkingHoursSchedule,
)
from ..domain.slot_scanner import SlotAvailabilityScanner
from ..domain.timeutils import day_bounds, local_date, parse_datetime

logger = logging.getLogger(__name__)

CONFLICT_MESSAGE = (
    "Travel time between appointments is {minutes} mins - "
    "try a later time or different location."
)


class AppointmentStore(Protocol):
    """Protocol describing the storage read the service needs."""

    def get_appointments(self, start: DateTime, end: DateTime) -> List[Appointment]:
        """Return appointments starting within [start, end]."""


@dataclass(frozen=True)
class ProviderProfile:
    """Travel settings of the service provider whose calendar is scheduled."""
    home_base_address: Optional[str] = None
    grace_minutes: int = 5
    transportation_mode: TravelMode = TravelMode.DRIVING
    default_buffer_minutes: int = 15
    working_hours: WorkingHoursSchedule = field(default_factory=WorkingHoursSchedule.default)

    @classmethod
    def from_config(cls, profile: ProfileConfig) -> "ProviderProfile":
        return cls(
            home_base_address=profile.home_base_address,
            grace_minutes=profile.grace_minutes,
            transportation_mode=profile.transportation_mode,
            default_buffer_minutes=profile.default_buffer_minutes,
            working_hours=profile.working_hours_schedule(),
        )


@dataclass(frozen=True)
class SchedulingCheck:
    """Outcome of validating a proposed appointment time."""
    is_valid: bool
    conflict_message: Optional[str] = None
    conflicting_appointment_id: Optional[Union[int, str]] = None
    travel_buffers: List[TravelBuffer] = field(default_factory=list)


def build_travel_provider(config: AppConfig, mock: bool = False) -> BaseTravelTimeProvider:
    """Create the travel provider selected in the configuration."""
    defaults = config.defaults

    if mock or config.provider == "mock":
        if config.mock_routes_file and config.mock_routes_file.exists():
            return MockTravelTimeProvider.load_from_json(
                config.mock_routes_file, transit_multiplier=defaults.transit_multiplier
            )
        return MockTravelTimeProvider(
            default_minutes=defaults.fallback_minutes[TravelMode.DRIVING],
            transit_multiplier=defaults.transit_multiplier,
        )

    if config.provider == "google":
        return GoogleDistanceMatrixProvider(
            api_key=config.resolve_google_key(),
            timeout=defaults.request_timeout_seconds,
            transit_multiplier=defaults.transit_multiplier,
        )

    return MapboxTravelTimeProvider(
        access_token=config.resolve_mapbox_token(),
        timeout=defaults.request_timeout_seconds,
        transit_multiplier=defaults.transit_multiplier,
    )


class AvailabilityService:
    """
    Orchestrates appointment retrieval, travel buffers, slot scanning and
    calendar rendering for one service provider.
    """

    def __init__(
        self,
        appointment_store: AppointmentStore,
        travel_provider: TravelTimeProvider,
        profile: ProviderProfile,
        buffer_calculator: Optional[DayBufferCalculator] = None,
        slot_scanner: Optional[SlotAvailabilityScanner] = None,
        grid_renderer: Optional[CalendarGridRenderer] = None,
        timezone: str = "UTC",
        ignored_statuses: Iterable[str] = ("cancelled",),
        default_service_duration_minutes: int = 60,
    ) -> None:
        self._appointment_store = appointment_store
        self._travel_provider = travel_provider
        self.profile = profile
        self.timezone = timezone
        self.ignored_statuses = {status.lower() for status in ignored_statuses}
        self.default_service_duration_minutes = default_service_duration_minutes

        self._buffer_calculator = buffer_calculator or DayBufferCalculator(travel_provider)
        self._slot_scanner = slot_scanner or SlotAvailabilityScanner(
            timezone=timezone,
            default_buffer_minutes=profile.default_buffer_minutes,
        )
        self._grid_renderer = grid_renderer or CalendarGridRenderer(timezone=timezone)

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        appointment_store: AppointmentStore,
        travel_provider: Optional[TravelTimeProvider] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> "AvailabilityService":
        """Wire up the service from an AppConfig."""
        defaults = config.defaults
        provider = travel_provider or build_travel_provider(config)
        profile = ProviderProfile.from_config(config.profile)

        return cls(
            appointment_store=appointment_store,
            travel_provider=provider,
            profile=profile,
            buffer_calculator=DayBufferCalculator(
                provider,
                fallback_minutes=defaults.fallback_minutes,
                throttle_seconds=defaults.throttle_seconds,
                sleep=sleep,
            ),
            slot_scanner=SlotAvailabilityScanner(
                timezone=config.timezone,
                slot_interval_minutes=defaults.slot_interval_minutes,
                default_buffer_minutes=profile.default_buffer_minutes,
            ),
            grid_renderer=CalendarGridRenderer(
                timezone=config.timezone,
                default_start_hour=defaults.grid_start_hour,
                default_end_hour=defaults.grid_end_hour,
            ),
            timezone=config.timezone,
            ignored_statuses=config.ignored_statuses,
            default_service_duration_minutes=defaults.service_duration_minutes,
        )

    def day_appointments(self, day: Union[date, str]) -> List[Appointment]:
        """Fetch the day's appointments, leaving out ignored statuses."""
        day = local_date(day, self.timezone)
        start, end = day_bounds(day, self.timezone)

        appointments = self._appointment_store.get_appointments(start, end)

        return [
            apt for apt in appointments
            if (apt.status or "").lower() not in self.ignored_statuses
        ]

    def day_travel_buffers(
        self,
        day: Union[date, str],
        appointments: Optional[List[Appointment]] = None,
    ) -> List[TravelBuffer]:
        """Compute travel buffers for every appointment on ``day``."""
        if appointments is None:
            appointments = self.day_appointments(day)

        if not appointments:
            return []

        return self._buffer_calculator.compute_day_buffers(
            appointments,
            home_base_address=self.profile.home_base_address,
            grace_minutes=self.profile.grace_minutes,
            mode=self.profile.transportation_mode,
        )

    def find_available_slots(
        self,
        day: Union[date, str],
        service_duration_minutes: Optional[int] = None,
        client_address: Optional[str] = None,
    ) -> List[TimeSlotCandidate]:
        """
        Find offerable slots on ``day`` for a new appointment.

        ``client_address`` is recorded for logging only. Travel to the new
        client is not part of the buffer chain and is not checked.
        """
        day = local_date(day, self.timezone)
        duration = (
            self.default_service_duration_minutes
            if service_duration_minutes is None
            else service_duration_minutes
        )
        if duration <= 0:
            raise InvalidInputError(
                f"service_duration_minutes must be greater than zero, got {duration}"
            )

        schedule = self.profile.working_hours.for_date(day)
        if schedule is None or not schedule.enabled:
            logger.info("Working hours disabled on %s; no slots offered", day)
            return []

        appointments = self.day_appointments(day)
        buffers = self.day_travel_buffers(day, appointments)

        slots = self._slot_scanner.find_available_slots(
            day,
            schedule,
            appointments,
            buffers,
            duration,
        )

        logger.debug(
            "Found %d slot(s) of %d min on %s for client address %r",
            len(slots),
            duration,
            day,
            client_address,
        )
        return slots

    def validate_proposed_time(
        self,
        proposed_start: Union[datetime, str],
        proposed_end: Union[datetime, str],
    ) -> SchedulingCheck:
        """
        Check a proposed appointment against the day's buffered appointments.

        Raises:
            InvalidInputError: If the timestamps cannot be parsed or end is
                not after start
        """
        start = parse_datetime(proposed_start, self.timezone)
        end = parse_datetime(proposed_end, self.timezone)
        if end <= start:
            raise InvalidInputError("Proposed end time must be after the start time")

        day = local_date(start, self.timezone)
        appointments = self.day_appointments(day)
        buffers = self.day_travel_buffers(day, appointments)

        conflict = self._slot_scanner.find_conflict(
            TimeRange(start=start, end=end), appointments, buffers
        )

        if conflict is None:
            return SchedulingCheck(is_valid=True, travel_buffers=buffers)

        appointment, buffer_minutes = conflict
        return SchedulingCheck(
            is_valid=False,
            conflict_message=CONFLICT_MESSAGE.format(minutes=buffer_minutes),
            conflicting_appointment_id=appointment.id,
            travel_buffers=buffers,
        )

    def render_calendar(self, day: Union[date, str]) -> List[CalendarHourSlot]:
        """Render the hour grid for ``day``; no travel lookups involved."""
        day = local_date(day, self.timezone)

        schedule = self.profile.working_hours.for_date(day)
        if schedule is None and self.profile.working_hours.days:
            # A weekday left out of a configured schedule is a day off
            schedule = DaySchedule(enabled=False)

        return self._grid_renderer.render(day, self.day_appointments(day), schedule)

    def estimate_travel(
        self,
        origin: str,
        destination: str,
        mode: Optional[TravelMode] = None,
    ) -> TravelResult:
        """Raw provider estimate, no fallback substitution."""
        if not origin or not destination:
            raise InvalidInputError("Origin and destination are required")
        return self._travel_provider.estimate(
            origin, destination, mode or self.profile.transportation_mode
        )
