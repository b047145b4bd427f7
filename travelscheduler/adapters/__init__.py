"""
Adapters layer - External integrations (Mapbox, Google Maps, JSON files).
"""

from .appointment_file import JsonAppointmentStore
from .base import BaseTravelTimeProvider, seconds_to_minutes
from .google_distance_matrix import GoogleDistanceMatrixProvider
from .mapbox_directions import MapboxTravelTimeProvider
from .mapbox_geocoder import MapboxGeocoder
from .mock_travel_provider import MockTravelTimeProvider

__all__ = [
    "BaseTravelTimeProvider",
    "GoogleDistanceMatrixProvider",
    "JsonAppointmentStore",
    "MapboxGeocoder",
    "MapboxTravelTimeProvider",
    "MockTravelTimeProvider",
    "seconds_to_minutes",
]
