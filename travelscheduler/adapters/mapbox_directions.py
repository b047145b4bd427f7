"""
Travel time estimates from the Mapbox Directions API.
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
from .mapbox_geocoder import MapboxGeocoder

logger = logging.getLogger(__name__)


class MapboxTravelTimeProvider(BaseTravelTimeProvider):
    """
    Travel time provider backed by Mapbox.

    Address strings are geocoded first, then routed between the two
    coordinate pairs with the profile matching the travel mode.
    """

    DIRECTIONS_ENDPOINT = "https://api.mapbox.com/directions/v5/mapbox"

    PROFILES = {
        TravelMode.DRIVING: "driving-traffic",
        TravelMode.WALKING: "walking",
        TravelMode.CYCLING: "cycling",
    }

    def __init__(
        self,
        access_token: Optional[str],
        geocoder: Optional[MapboxGeocoder] = None,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transit_multiplier: float = DEFAULT_TRANSIT_MULTIPLIER,
    ):
        super().__init__(transit_multiplier=transit_multiplier)
        self.access_token = access_token
        self.session = session or requests.Session()
        self.timeout = timeout
        self.geocoder = geocoder or MapboxGeocoder(
            access_token=access_token, session=self.session, timeout=timeout
        )

    def _estimate_direct(
        self, origin: Location, destination: Location, mode: TravelMode
    ) -> TravelResult:
        if not self.access_token:
            return TravelFailure(
                reason=FailureReason.PROVIDER_UNAVAILABLE,
                message="Mapbox access token not configured",
            )

        origin_coords = self._resolve(origin)
        destination_coords = self._resolve(destination)

        if origin_coords is None or destination_coords is None:
            return TravelFailure(
                reason=FailureReason.GEOCODE_NOT_FOUND,
                message="Unable to geocode one or both addresses",
            )

        coordinates = f"{origin_coords.as_lng_lat()};{destination_coords.as_lng_lat()}"
        url = f"{self.DIRECTIONS_ENDPOINT}/{self.PROFILES[mode]}/{coordinates}"
        params = {
            "access_token": self.access_token,
            "geometries": "geojson",
            "steps": "false",
            "overview": "false",
        }

        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.warning("Mapbox directions request failed: %s", e)
            return TravelFailure(reason=FailureReason.PROVIDER_UNAVAILABLE, message=str(e))

        if response.status_code == 429 or response.status_code >= 500:
            return TravelFailure(
                reason=FailureReason.PROVIDER_UNAVAILABLE,
                message=f"Mapbox responded with HTTP {response.status_code}",
            )

        try:
            data = response.json()
        except ValueError as e:
            return TravelFailure(
                reason=FailureReason.PROVIDER_UNAVAILABLE,
                message=f"Malformed Mapbox response: {e}",
            )

        return self._parse_directions_response(data)

    def _parse_directions_response(self, data: Dict[str, Any]) -> TravelResult:
        """
        Parse a directions response into a travel estimate.

        Response format:
        {
            "code": "Ok",
            "routes": [{"duration": 1234.5, "distance": 5678.9, "legs": [...]}]
        }
        """
        routes = data.get("routes") or []
        if data.get("code") != "Ok" or not routes:
            return TravelFailure(
                reason=FailureReason.ROUTE_NOT_FOUND,
                message=data.get("message") or "No route found",
            )

        route = routes[0]
        try:
            return TravelEstimate(
                minutes=seconds_to_minutes(float(route["duration"])),
                distance_meters=float(route.get("distance", 0)),
            )
        except (KeyError, TypeError, ValueError) as e:
            return TravelFailure(
                reason=FailureReason.ROUTE_NOT_FOUND,
                message=f"Could not parse route: {e}",
            )

    def _resolve(self, location: Location) -> Optional[Coordinates]:
        if isinstance(location, Coordinates):
            return location
        return self.geocoder.geocode(location)
