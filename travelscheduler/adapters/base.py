"""
Shared behaviour for travel time providers.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import Union

from ..domain.exceptions import InvalidInputError
from ..domain.models import Coordinates, TravelEstimate, TravelMode, TravelResult

DEFAULT_TRANSIT_MULTIPLIER = 1.5
DEFAULT_TIMEOUT_SECONDS = 10.0

Location = Union[str, Coordinates]


def seconds_to_minutes(seconds: float) -> int:
    """Convert provider seconds to whole minutes, always rounding up."""
    return math.ceil(seconds / 60)


class BaseTravelTimeProvider(ABC):
    """
    Base class implementing the transit heuristic on top of a direct lookup.

    Transit is never queried directly. The driving estimate is scaled by
    ``transit_multiplier`` and rounded up; a driving failure is returned
    as-is. Subclasses implement ``_estimate_direct`` for the other modes.
    """

    def __init__(self, transit_multiplier: float = DEFAULT_TRANSIT_MULTIPLIER):
        if transit_multiplier < 1:
            raise InvalidInputError("transit_multiplier must be at least 1")
        self.transit_multiplier = transit_multiplier

    def estimate(
        self,
        origin: Location,
        destination: Location,
        mode: TravelMode = TravelMode.DRIVING,
    ) -> TravelResult:
        """
        Estimate travel time between two places.

        Returns:
            TravelEstimate on success, TravelFailure otherwise
        """
        try:
            mode = TravelMode(mode)
        except ValueError as exc:
            raise InvalidInputError(f"Unsupported travel mode: {mode!r}") from exc

        if mode is TravelMode.TRANSIT:
            driving = self._estimate_direct(origin, destination, TravelMode.DRIVING)
            if not driving.ok:
                return driving
            return TravelEstimate(
                minutes=math.ceil(driving.minutes * self.transit_multiplier),
                distance_meters=driving.distance_meters,
            )

        return self._estimate_direct(origin, destination, mode)

    @abstractmethod
    def _estimate_direct(
        self, origin: Location, destination: Location, mode: TravelMode
    ) -> TravelResult:
        """Look up a non-transit mode."""
