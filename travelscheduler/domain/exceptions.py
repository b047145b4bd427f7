"""
Domain-specific exception hierarchy for the travel scheduler.

Expected runtime conditions (unreachable geocoder, unknown route, missing
addresses, disabled days) are never raised; they are returned as values.
"""


class SchedulingError(Exception):
    """Base class for all application-level errors."""


class InvalidInputError(SchedulingError, ValueError):
    """Raised for structurally malformed input (bad dates, negative durations)."""

