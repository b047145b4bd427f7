"""
Address geocoding using the Mapbox Geocoding API.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import requests

from ..domain.models import Coordinates
from .base import DEFAULT_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


class MapboxGeocoder:
    """
    Resolves free-text addresses to coordinates.

    A lookup that fails for any reason (network error, HTTP error, no
    results) returns None; callers treat that as "not found".
    """

    GEOCODING_ENDPOINT = "https://api.mapbox.com/geocoding/v5/mapbox.places"

    def __init__(
        self,
        access_token: Optional[str],
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        """
        Initialize the geocoder.

        Args:
            access_token: Mapbox access token
            session: Optional requests session (injected in tests)
            timeout: Request timeout in seconds
        """
        self.access_token = access_token
        self.session = session or requests.Session()
        self.timeout = timeout

    def geocode(self, address: str) -> Optional[Coordinates]:
        """
        Look up the best match for ``address``.

        Returns:
            Coordinates of the first result, or None when nothing was found
        """
        if not address or not address.strip():
            return None

        if not self.access_token:
            logger.warning("Mapbox access token not configured; cannot geocode %r", address)
            return None

        url = f"{self.GEOCODING_ENDPOINT}/{quote(address.strip(), safe='')}.json"

        try:
            response = self.session.get(
                url,
                params={"access_token": self.access_token, "limit": 1},
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.warning("Geocoding request for %r failed: %s", address, e)
            return None

        return self._parse_geocoding_response(address, data)

    def _parse_geocoding_response(
        self, address: str, data: Dict[str, Any]
    ) -> Optional[Coordinates]:
        """
        Parse the first feature of a geocoding response.

        Response format:
        {
            "features": [
                {"center": [lng, lat], "place_name": "..."}
            ]
        }
        """
        features = data.get("features") or []
        if not features:
            logger.info("No geocoding results for %r", address)
            return None

        try:
            lng, lat = features[0]["center"][:2]
            return Coordinates(lat=float(lat), lng=float(lng))
        except (KeyError, IndexError, TypeError, ValueError) as e:
            logger.warning("Could not parse geocoding result for %r: %s", address, e)
            return None
