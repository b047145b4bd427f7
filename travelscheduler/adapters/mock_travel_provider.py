"""
Mock travel time provider for testing and offline runs.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

from ..domain.models import (
    FailureReason,
    TravelEstimate,
    TravelFailure,
    TravelMode,
    TravelResult,
)
from .base import DEFAULT_TRANSIT_MULTIPLIER, BaseTravelTimeProvider, Location

RouteKey = Tuple[str, str]


class MockTravelTimeProvider(BaseTravelTimeProvider):
    """
    Deterministic provider answering from a route table.

    Routes are looked up by (origin, destination) and, unless
    ``symmetric`` is off, by the reversed pair. Pairs listed in
    ``failures`` fail with the given reason. Every direct lookup is
    recorded in ``calls``.
    """

    def __init__(
        self,
        routes: Optional[Mapping[RouteKey, int]] = None,
        default_minutes: Optional[int] = None,
        failures: Optional[Mapping[RouteKey, FailureReason]] = None,
        symmetric: bool = True,
        transit_multiplier: float = DEFAULT_TRANSIT_MULTIPLIER,
    ):
        super().__init__(transit_multiplier=transit_multiplier)
        self.routes: Dict[RouteKey, int] = dict(routes or {})
        self.default_minutes = default_minutes
        self.failures: Dict[RouteKey, FailureReason] = dict(failures or {})
        self.symmetric = symmetric
        self.calls: List[Tuple[str, str, TravelMode]] = []

    @classmethod
    def load_from_json(
        cls, path: Path, transit_multiplier: float = DEFAULT_TRANSIT_MULTIPLIER
    ) -> "MockTravelTimeProvider":
        """
        Load a route table from JSON.

        File format:
        {
            "default_minutes": 20,
            "routes": [{"origin": "A", "destination": "B", "minutes": 12}],
            "failures": [{"origin": "A", "destination": "C", "reason": "route_not_found"}]
        }
        """
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)

        routes = {
            (route["origin"], route["destination"]): int(route["minutes"])
            for route in data.get("routes", [])
        }
        failures = {
            (failure["origin"], failure["destination"]): FailureReason(
                failure.get("reason", FailureReason.ROUTE_NOT_FOUND.value)
            )
            for failure in data.get("failures", [])
        }

        return cls(
            routes=routes,
            default_minutes=data.get("default_minutes"),
            failures=failures,
            symmetric=data.get("symmetric", True),
            transit_multiplier=transit_multiplier,
        )

    def _estimate_direct(
        self, origin: Location, destination: Location, mode: TravelMode
    ) -> TravelResult:
        key = (str(origin), str(destination))
        self.calls.append((key[0], key[1], mode))

        reason = self._lookup(self.failures, key)
        if reason is not None:
            return TravelFailure(reason=reason, message=f"Mock failure for {key[0]} -> {key[1]}")

        minutes = self._lookup(self.routes, key)
        if minutes is None:
            minutes = self.default_minutes

        if minutes is None:
            return TravelFailure(
                reason=FailureReason.ROUTE_NOT_FOUND,
                message=f"No mock route for {key[0]} -> {key[1]}",
            )

        return TravelEstimate(minutes=minutes)

    def _lookup(self, table: Mapping[RouteKey, object], key: RouteKey):
        if key in table:
            return table[key]
        if self.symmetric and (key[1], key[0]) in table:
            return table[(key[1], key[0])]
        return None
