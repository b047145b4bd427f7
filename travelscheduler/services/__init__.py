"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .availability import (
    AppointmentStore,
    AvailabilityService,
    ProviderProfile,
    SchedulingCheck,
    build_travel_provider,
)

__all__ = [
    "AppointmentStore",
    "AvailabilityService",
    "ProviderProfile",
    "SchedulingCheck",
    "build_travel_provider",
]
