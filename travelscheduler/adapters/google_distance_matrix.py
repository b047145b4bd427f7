"""
Travel time estimates from the Google Maps Distance Matrix API.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests

from ..domain.models import (
    Coordinates,
    FailureReason,
    TravelEstimate,
    TravelFailure,
    TravelMode,
    TravelResult,
)
from .base import (
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_TRANSIT_MULTIPLIER,
    BaseTravelTimeProvider,
    Location,
    seconds_to_minutes,
)

logger = logging.getLogger(__name__)


class GoogleDistanceMatrixProvider(BaseTravelTimeProvider):
    """
    Travel time provider backed by the Distance Matrix API.

    Addresses are sent as-is; Google geocodes them server side. Driving
    requests ask for live traffic and prefer ``duration_in_traffic``.
    """

    DISTANCE_MATRIX_ENDPOINT = "https://maps.googleapis.com/maps/api/distancematrix/json"

    MODES = {
        TravelMode.DRIVING: "driving",
        TravelMode.WALKING: "walking",
        TravelMode.CYCLING: "bicycling",
    }

    # Top-level statuses where the service, not the route, is at fault
    UNAVAILABLE_STATUSES = {"OVER_QUERY_LIMIT", "OVER_DAILY_LIMIT", "REQUEST_DENIED", "UNKNOWN_ERROR"}

    def __init__(
        self,
        api_key: Optional[str],
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transit_multiplier: float = DEFAULT_TRANSIT_MULTIPLIER,
    ):
        super().__init__(transit_multiplier=transit_multiplier)
        self.api_key = api_key
        self.session = session or requests.Session()
        self.timeout = timeout

    def _estimate_direct(
        self, origin: Location, destination: Location, mode: TravelMode
    ) -> TravelResult:
        if not self.api_key:
            return TravelFailure(
                reason=FailureReason.PROVIDER_UNAVAILABLE,
                message="Google Maps API key not configured",
            )

        params = {
            "origins": self._format_location(origin),
            "destinations": self._format_location(destination),
            "mode": self.MODES[mode],
            "key": self.api_key,
        }
        if mode is TravelMode.DRIVING:
            params["traffic_model"] = "best_guess"
            params["departure_time"] = "now"

        try:
            response = self.session.get(
                self.DISTANCE_MATRIX_ENDPOINT, params=params, timeout=self.timeout
            )
            response.raise_for_status()
            data = response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.warning("Distance Matrix request failed: %s", e)
            return TravelFailure(
                reason=FailureReason.PROVIDER_UNAVAILABLE,
                message="Failed to connect to mapping service",
            )

        return self._parse_matrix_response(data)

    def _parse_matrix_response(self, data: Dict[str, Any]) -> TravelResult:
        """
        Parse a single-cell distance matrix.

        Response format:
        {
            "status": "OK",
            "rows": [{"elements": [{
                "status": "OK",
                "duration": {"value": 900},
                "duration_in_traffic": {"value": 1020},
                "distance": {"value": 12000}
            }]}]
        }
        """
        status = data.get("status")
        if status != "OK":
            reason = (
                FailureReason.PROVIDER_UNAVAILABLE
                if status in self.UNAVAILABLE_STATUSES
                else FailureReason.ROUTE_NOT_FOUND
            )
            return TravelFailure(
                reason=reason,
                message=data.get("error_message") or "Failed to calculate travel time",
            )

        try:
            element = data["rows"][0]["elements"][0]
        except (KeyError, IndexError, TypeError):
            element = None

        if not element or element.get("status") != "OK":
            element_status = element.get("status") if element else None
            reason = (
                FailureReason.GEOCODE_NOT_FOUND
                if element_status == "NOT_FOUND"
                else FailureReason.ROUTE_NOT_FOUND
            )
            return TravelFailure(
                reason=reason, message="No route found between the addresses"
            )

        duration = element.get("duration_in_traffic") or element.get("duration") or {}
        distance = element.get("distance") or {}

        return TravelEstimate(
            minutes=seconds_to_minutes(float(duration.get("value", 0))),
            distance_meters=float(distance.get("value", 0)),
        )

    @staticmethod
    def _format_location(location: Location) -> str:
        if isinstance(location, Coordinates):
            return f"{location.lat},{location.lng}"
        return location
