"""
Travel buffers for a day of appointments.

Each appointment's buffer depends on where the provider is coming from,
which is the previous appointment's address (or the home base for the
first appointment of the day). The day is therefore walked strictly in
order, one provider call per appointment.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, List, Mapping, Optional, Protocol, Sequence, Union

from .exceptions import InvalidInputError
from .models import (
    UNKNOWN_ADDRESS,
    Appointment,
    Coordinates,
    FailureReason,
    TravelBuffer,
    TravelFailure,
    TravelMode,
    TravelResult,
)

logger = logging.getLogger(__name__)

DEFAULT_FALLBACK_MINUTES: Mapping[TravelMode, int] = {
    TravelMode.DRIVING: 15,
    TravelMode.WALKING: 30,
    TravelMode.CYCLING: 20,
    TravelMode.TRANSIT: 25,
}

DEFAULT_THROTTLE_SECONDS = 0.1
MAX_THROTTLE_SECONDS = 2.0


class TravelTimeProvider(Protocol):
    """Anything that can estimate travel time between two places."""

    def estimate(
        self,
        origin: Union[str, Coordinates],
        destination: Union[str, Coordinates],
        mode: TravelMode = TravelMode.DRIVING,
    ) -> TravelResult:
        """Return a TravelEstimate or a TravelFailure; never raise."""


class DayBufferCalculator:
    """
    Computes one TravelBuffer per appointment for a single day.

    Algorithm:
    1. Sort the day's appointments by start time
    2. Fold over them, carrying the previous resolved address
    3. Ask the provider for travel time from that address to the current one
    4. Substitute the mode's fallback duration whenever the provider fails
    """

    def __init__(
        self,
        travel_provider: TravelTimeProvider,
        fallback_minutes: Optional[Mapping[TravelMode, int]] = None,
        throttle_seconds: float = DEFAULT_THROTTLE_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if not 0 <= throttle_seconds <= MAX_THROTTLE_SECONDS:
            raise InvalidInputError(
                f"throttle_seconds must be between 0 and {MAX_THROTTLE_SECONDS}, got {throttle_seconds}"
            )
        self.travel_provider = travel_provider
        self.fallback_minutes = dict(DEFAULT_FALLBACK_MINUTES)
        if fallback_minutes:
            self.fallback_minutes.update(fallback_minutes)
        self.throttle_seconds = throttle_seconds
        self._sleep = sleep

    def fallback_for(self, mode: TravelMode) -> int:
        """Fixed travel minutes used when no estimate is available."""
        return self.fallback_minutes[TravelMode(mode)]

    def compute_day_buffers(
        self,
        appointments: Sequence[Appointment],
        home_base_address: Optional[str],
        grace_minutes: int,
        mode: TravelMode = TravelMode.DRIVING,
    ) -> List[TravelBuffer]:
        """
        Compute travel buffers for a day's appointments.

        Args:
            appointments: The day's appointments, in any order
            home_base_address: Where the day starts
            grace_minutes: Extra minutes added to every known leg
            mode: Transport mode passed to the provider

        Returns:
            One TravelBuffer per appointment, in ascending start order.
            Empty when no home base is configured.

        Raises:
            InvalidInputError: If grace_minutes is negative
        """
        if grace_minutes < 0:
            raise InvalidInputError(f"grace_minutes must not be negative, got {grace_minutes}")

        mode = TravelMode(mode)

        if not home_base_address or not home_base_address.strip():
            logger.warning(
                "No home base address configured; skipping travel buffers for %d appointment(s)",
                len(appointments),
            )
            return []

        ordered = sorted(appointments, key=lambda apt: apt.scheduled_at)

        buffers: List[TravelBuffer] = []
        previous_address = home_base_address
        calls_made = 0

        for appointment in ordered:
            if not appointment.has_address:
                buffers.append(self._missing_destination_buffer(appointment, mode))
            else:
                if calls_made:
                    self._throttle()
                calls_made += 1
                buffers.append(
                    self._buffer_for_leg(
                        appointment, previous_address, grace_minutes, mode
                    )
                )

            previous_address = (
                appointment.address if appointment.has_address else home_base_address
            )

        return buffers

    def _buffer_for_leg(
        self,
        appointment: Appointment,
        origin: str,
        grace_minutes: int,
        mode: TravelMode,
    ) -> TravelBuffer:
        destination = appointment.address
        result = self._estimate(origin, destination, mode)

        if result.ok:
            travel_minutes = result.minutes
            fallback_reason = None
        else:
            travel_minutes = self.fallback_for(mode)
            fallback_reason = result.reason
            logger.warning(
                "Travel time lookup failed for appointment %s (%s): %s; using %d min fallback",
                appointment.id,
                result.reason.value,
                result.message,
                travel_minutes,
            )

        return TravelBuffer(
            appointment_id=appointment.id,
            travel_minutes=travel_minutes,
            grace_minutes=grace_minutes,
            origin_address=origin,
            destination_address=destination,
            fallback_reason=fallback_reason,
        )

    def _missing_destination_buffer(
        self, appointment: Appointment, mode: TravelMode
    ) -> TravelBuffer:
        # No grace without a known destination
        logger.info(
            "Appointment %s has no address; using %d min fallback buffer",
            appointment.id,
            self.fallback_for(mode),
        )
        return TravelBuffer(
            appointment_id=appointment.id,
            travel_minutes=self.fallback_for(mode),
            grace_minutes=0,
            origin_address=UNKNOWN_ADDRESS,
            destination_address=UNKNOWN_ADDRESS,
            fallback_reason=FailureReason.MISSING_ADDRESS,
        )

    def _estimate(self, origin: str, destination: str, mode: TravelMode) -> TravelResult:
        try:
            return self.travel_provider.estimate(origin, destination, mode)
        except Exception as exc:
            logger.exception("Travel provider raised for %s -> %s", origin, destination)
            return TravelFailure(
                reason=FailureReason.PROVIDER_UNAVAILABLE,
                message=str(exc),
            )

    def _throttle(self) -> None:
        if self.throttle_seconds > 0:
            self._sleep(self.throttle_seconds)
