"""
Appointment store reading booked appointments from a JSON file.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List

from pendulum import DateTime

from ..domain.exceptions import InvalidInputError
from ..domain.models import Appointment

logger = logging.getLogger(__name__)


class JsonAppointmentStore:
    """
    Loads appointments from a JSON list of records.

    Record format:
    [
        {
            "id": 1,
            "scheduled_at": "2025-07-07T09:00:00",
            "duration_minutes": 60,
            "address": "12 High Street",
            "status": "confirmed"
        }
    ]
    """

    def __init__(self, path: Path, timezone: str = "UTC"):
        self.path = Path(path)
        self.timezone = timezone
        self.appointments = self._load()

    def _load(self) -> List[Appointment]:
        if not self.path.exists():
            logger.warning("Appointments file %s not found; starting with no appointments", self.path)
            return []

        with open(self.path, "r", encoding="utf-8") as f:
            records = json.load(f)

        if not isinstance(records, list):
            raise InvalidInputError(f"{self.path} must contain a JSON list of appointments")

        return [Appointment.from_dict(record, timezone=self.timezone) for record in records]

    def get_appointments(self, start: DateTime, end: DateTime) -> List[Appointment]:
        """Return appointments starting within [start, end], ordered by start."""
        return sorted(
            (apt for apt in self.appointments if start <= apt.scheduled_at <= end),
            key=lambda apt: apt.scheduled_at,
        )
