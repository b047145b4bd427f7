"""
Tests for the travel time provider adapters.
"""

import json

import pytest
import requests

from travelscheduler.adapters.base import BaseTravelTimeProvider, seconds_to_minutes
from travelscheduler.adapters.google_distance_matrix import GoogleDistanceMatrixProvider
from travelscheduler.adapters.mapbox_directions import MapboxTravelTimeProvider
from travelscheduler.adapters.mapbox_geocoder import MapboxGeocoder
from travelscheduler.adapters.mock_travel_provider import MockTravelTimeProvider
from travelscheduler.domain.exceptions import InvalidInputError
from travelscheduler.domain.models import Coordinates, FailureReason, TravelMode


class StubResponse:
    def __init__(self, payload=None, status_code=200, raw=None):
        self._payload = payload
        self.status_code = status_code
        self._raw = raw

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"HTTP {self.status_code}")

    def json(self):
        if self._raw is not None:
            return json.loads(self._raw)
        return self._payload


class StubSession:
    """Returns canned responses in order and records requests."""

    def __init__(self, *responses):
        self._responses = list(responses)
        self.requests = []

    def get(self, url, params=None, timeout=None):
        self.requests.append({"url": url, "params": params, "timeout": timeout})
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _feature(lng, lat):
    return StubResponse({"features": [{"center": [lng, lat], "place_name": "x"}]})


def _route(duration, distance=1000.0):
    return StubResponse({"code": "Ok", "routes": [{"duration": duration, "distance": distance}]})


class TestSecondsToMinutes:
    @pytest.mark.parametrize(
        "seconds,minutes", [(0, 0), (60, 1), (61, 2), (599.4, 10), (1320, 22)]
    )
    def test_rounds_up(self, seconds, minutes):
        """Test that seconds round up to whole minutes."""
        assert seconds_to_minutes(seconds) == minutes


class TestBaseTravelTimeProvider:
    def test_subclass_must_implement_direct_lookup(self):
        """A provider without a direct lookup cannot be instantiated."""
        class IncompleteProvider(BaseTravelTimeProvider):
            pass

        with pytest.raises(TypeError):
            IncompleteProvider()


class TestMapboxGeocoder:
    """Tests for address geocoding."""

    def test_parses_first_feature(self):
        """Test that the first feature's center is returned."""
        session = StubSession(_feature(13.41, 52.52))
        geocoder = MapboxGeocoder("token", session=session)

        coords = geocoder.geocode("Alexanderplatz 1, Berlin")

        assert coords == Coordinates(lat=52.52, lng=13.41)
        request = session.requests[0]
        assert request["url"].endswith("/Alexanderplatz%201%2C%20Berlin.json")
        assert request["params"] == {"access_token": "token", "limit": 1}

    def test_no_results(self):
        """Test that no features means not found."""
        geocoder = MapboxGeocoder("token", session=StubSession(StubResponse({"features": []})))

        assert geocoder.geocode("nowhere") is None

    def test_network_error(self):
        """Test that network errors mean not found."""
        session = StubSession(requests.exceptions.ConnectionError("down"))
        geocoder = MapboxGeocoder("token", session=session)

        assert geocoder.geocode("Alexanderplatz 1") is None

    def test_blank_address_and_missing_token_skip_request(self):
        """Test that no request is made without an address or token."""
        session = StubSession()

        assert MapboxGeocoder("token", session=session).geocode("  ") is None
        assert MapboxGeocoder(None, session=session).geocode("Alexanderplatz 1") is None
        assert session.requests == []


class TestMapboxTravelTimeProvider:
    """Tests for Mapbox directions lookups."""

    def test_estimate_geocodes_then_routes(self):
        """Test geocoding both ends and routing between them."""
        session = StubSession(_feature(13.41, 52.52), _feature(13.40, 52.49), _route(1290.0, 5400.0))
        provider = MapboxTravelTimeProvider("token", session=session)

        result = provider.estimate("A", "B", TravelMode.DRIVING)

        assert result.ok
        assert result.minutes == 22
        assert result.distance_meters == 5400.0
        directions = session.requests[2]
        assert directions["url"].endswith("/driving-traffic/13.41,52.52;13.4,52.49")
        assert directions["params"]["access_token"] == "token"

    @pytest.mark.parametrize(
        "mode,profile",
        [(TravelMode.WALKING, "walking"), (TravelMode.CYCLING, "cycling")],
    )
    def test_profile_per_mode(self, mode, profile):
        """Test the routing profile used for each mode."""
        session = StubSession(_route(600.0))
        provider = MapboxTravelTimeProvider("token", session=session)

        provider.estimate(Coordinates(1.0, 2.0), Coordinates(3.0, 4.0), mode)

        assert f"/{profile}/" in session.requests[0]["url"]

    def test_transit_scales_driving(self):
        """Test that transit is a scaled driving lookup."""
        session = StubSession(_route(600.0))
        provider = MapboxTravelTimeProvider("token", session=session)

        result = provider.estimate(Coordinates(1.0, 2.0), Coordinates(3.0, 4.0), TravelMode.TRANSIT)

        assert result.minutes == 15
        assert "/driving-traffic/" in session.requests[0]["url"]

    def test_geocode_failure(self):
        """Test that an unknown address fails with geocode_not_found."""
        session = StubSession(StubResponse({"features": []}), _feature(13.40, 52.49))
        provider = MapboxTravelTimeProvider("token", session=session)

        result = provider.estimate("nowhere", "B")

        assert not result.ok
        assert result.reason is FailureReason.GEOCODE_NOT_FOUND
        assert len(session.requests) == 2

    def test_no_route(self):
        """Test that a NoRoute response fails with route_not_found."""
        session = StubSession(StubResponse({"code": "NoRoute", "routes": []}))
        provider = MapboxTravelTimeProvider("token", session=session)

        result = provider.estimate(Coordinates(1.0, 2.0), Coordinates(3.0, 4.0))

        assert result.reason is FailureReason.ROUTE_NOT_FOUND

    @pytest.mark.parametrize("status_code", [429, 500, 503])
    def test_rate_limit_and_server_errors(self, status_code):
        """Test that 429 and 5xx responses mean provider_unavailable."""
        session = StubSession(StubResponse({}, status_code=status_code))
        provider = MapboxTravelTimeProvider("token", session=session)

        result = provider.estimate(Coordinates(1.0, 2.0), Coordinates(3.0, 4.0))

        assert result.reason is FailureReason.PROVIDER_UNAVAILABLE

    def test_malformed_json(self):
        """Test that a non-JSON body means provider_unavailable."""
        session = StubSession(StubResponse(raw="<html>"))
        provider = MapboxTravelTimeProvider("token", session=session)

        result = provider.estimate(Coordinates(1.0, 2.0), Coordinates(3.0, 4.0))

        assert result.reason is FailureReason.PROVIDER_UNAVAILABLE

    def test_timeout(self):
        """Test that a timeout means provider_unavailable."""
        session = StubSession(requests.exceptions.Timeout("slow"))
        provider = MapboxTravelTimeProvider("token", session=session)

        result = provider.estimate(Coordinates(1.0, 2.0), Coordinates(3.0, 4.0))

        assert result.reason is FailureReason.PROVIDER_UNAVAILABLE

    def test_missing_token(self):
        """Test that no request is made without a token."""
        session = StubSession()
        provider = MapboxTravelTimeProvider(None, session=session)

        result = provider.estimate("A", "B")

        assert result.reason is FailureReason.PROVIDER_UNAVAILABLE
        assert session.requests == []

    def test_unknown_mode_raises(self):
        """Test that unknown modes are rejected."""
        provider = MapboxTravelTimeProvider("token", session=StubSession())

        with pytest.raises(InvalidInputError, match="Unsupported travel mode"):
            provider.estimate("A", "B", "teleport")


class TestGoogleDistanceMatrixProvider:
    """Tests for Distance Matrix lookups."""

    @staticmethod
    def _matrix(element, status="OK"):
        return StubResponse({"status": status, "rows": [{"elements": [element]}]})

    def test_prefers_duration_in_traffic(self):
        """Test that driving uses live traffic durations."""
        session = StubSession(
            self._matrix(
                {
                    "status": "OK",
                    "duration": {"value": 900},
                    "duration_in_traffic": {"value": 1020},
                    "distance": {"value": 12000},
                }
            )
        )
        provider = GoogleDistanceMatrixProvider("key", session=session)

        result = provider.estimate("A", "B", TravelMode.DRIVING)

        assert result.minutes == 17
        assert result.distance_meters == 12000.0
        params = session.requests[0]["params"]
        assert params["departure_time"] == "now"
        assert params["traffic_model"] == "best_guess"
        assert params["mode"] == "driving"

    def test_cycling_uses_bicycling_without_traffic(self):
        """Test the cycling mode mapping."""
        session = StubSession(self._matrix({"status": "OK", "duration": {"value": 300}}))
        provider = GoogleDistanceMatrixProvider("key", session=session)

        result = provider.estimate("A", "B", TravelMode.CYCLING)

        assert result.minutes == 5
        params = session.requests[0]["params"]
        assert params["mode"] == "bicycling"
        assert "departure_time" not in params

    def test_coordinates_are_sent_lat_lng(self):
        """Test that coordinates are sent as lat,lng."""
        session = StubSession(self._matrix({"status": "OK", "duration": {"value": 60}}))
        provider = GoogleDistanceMatrixProvider("key", session=session)

        provider.estimate(Coordinates(lat=52.5, lng=13.4), "B", TravelMode.WALKING)

        assert session.requests[0]["params"]["origins"] == "52.5,13.4"

    def test_element_not_found(self):
        """Test that a NOT_FOUND element means geocode_not_found."""
        session = StubSession(self._matrix({"status": "NOT_FOUND"}))
        provider = GoogleDistanceMatrixProvider("key", session=session)

        assert provider.estimate("A", "B").reason is FailureReason.GEOCODE_NOT_FOUND

    def test_zero_results(self):
        """Test that ZERO_RESULTS means route_not_found."""
        session = StubSession(self._matrix({"status": "ZERO_RESULTS"}))
        provider = GoogleDistanceMatrixProvider("key", session=session)

        assert provider.estimate("A", "B").reason is FailureReason.ROUTE_NOT_FOUND

    def test_over_query_limit(self):
        """Test that quota errors mean provider_unavailable."""
        session = StubSession(StubResponse({"status": "OVER_QUERY_LIMIT", "rows": []}))
        provider = GoogleDistanceMatrixProvider("key", session=session)

        assert provider.estimate("A", "B").reason is FailureReason.PROVIDER_UNAVAILABLE

    def test_http_error(self):
        """Test that HTTP errors mean provider_unavailable."""
        session = StubSession(StubResponse({}, status_code=502))
        provider = GoogleDistanceMatrixProvider("key", session=session)

        result = provider.estimate("A", "B")

        assert result.reason is FailureReason.PROVIDER_UNAVAILABLE
        assert result.message == "Failed to connect to mapping service"

    def test_missing_key(self):
        """Test that no request is made without an API key."""
        session = StubSession()
        provider = GoogleDistanceMatrixProvider(None, session=session)

        assert provider.estimate("A", "B").reason is FailureReason.PROVIDER_UNAVAILABLE
        assert session.requests == []


class TestMockTravelTimeProvider:
    """Tests for the deterministic mock provider."""

    def test_routes_are_symmetric(self):
        """Test that routes answer in both directions and calls are recorded."""
        provider = MockTravelTimeProvider(routes={("A", "B"): 12})

        assert provider.estimate("A", "B").minutes == 12
        assert provider.estimate("B", "A").minutes == 12
        assert provider.calls == [
            ("A", "B", TravelMode.DRIVING),
            ("B", "A", TravelMode.DRIVING),
        ]

    def test_asymmetric_routes(self):
        """Test that reverse lookups fail when symmetry is off."""
        provider = MockTravelTimeProvider(routes={("A", "B"): 12}, symmetric=False)

        assert provider.estimate("B", "A").reason is FailureReason.ROUTE_NOT_FOUND

    def test_default_minutes(self):
        """Test the default minutes for unknown pairs."""
        provider = MockTravelTimeProvider(default_minutes=20)

        assert provider.estimate("X", "Y").minutes == 20

    def test_failures_take_precedence(self):
        """Test that configured failures win over routes."""
        provider = MockTravelTimeProvider(
            routes={("A", "B"): 12},
            failures={("A", "B"): FailureReason.GEOCODE_NOT_FOUND},
        )

        assert provider.estimate("A", "B").reason is FailureReason.GEOCODE_NOT_FOUND

    def test_transit_from_driving(self):
        """Test transit scaling on the mock provider."""
        provider = MockTravelTimeProvider(routes={("A", "B"): 11})

        assert provider.estimate("A", "B", TravelMode.TRANSIT).minutes == 17
        assert provider.calls[0][2] is TravelMode.DRIVING

    def test_load_from_json(self, tmp_path):
        """Test loading routes, defaults and failures from JSON."""
        path = tmp_path / "routes.json"
        path.write_text(
            json.dumps(
                {
                    "default_minutes": 25,
                    "routes": [{"origin": "A", "destination": "B", "minutes": 9}],
                    "failures": [
                        {"origin": "A", "destination": "C", "reason": "provider_unavailable"}
                    ],
                }
            ),
            encoding="utf-8",
        )

        provider = MockTravelTimeProvider.load_from_json(path)

        assert provider.estimate("B", "A").minutes == 9
        assert provider.estimate("A", "Z").minutes == 25
        assert provider.estimate("A", "C").reason is FailureReason.PROVIDER_UNAVAILABLE
