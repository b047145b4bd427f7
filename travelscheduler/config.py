"""
Configuration management using Pydantic models loaded from YAML.
"""

import os
from pathlib import Path
from typing import Dict, List, Literal, Optional

import pendulum
import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.buffer_calculator import DEFAULT_FALLBACK_MINUTES, MAX_THROTTLE_SECONDS
from .domain.models import WEEKDAY_NAMES, TravelMode, WorkingHoursSchedule
from .domain.timeutils import parse_clock

MAPBOX_TOKEN_ENV = "MAPBOX_ACCESS_TOKEN"
GOOGLE_KEY_ENV = "GOOGLE_MAPS_API_KEY"


class DefaultsConfig(BaseModel):
    """Engine-wide defaults."""
    grid_start_hour: int = 9
    grid_end_hour: int = 20
    slot_interval_minutes: int = 30
    service_duration_minutes: int = 60
    throttle_seconds: float = 0.1
    transit_multiplier: float = 1.5
    request_timeout_seconds: float = 10.0
    fallback_minutes: Dict[TravelMode, int] = Field(
        default_factory=lambda: dict(DEFAULT_FALLBACK_MINUTES)
    )

    @field_validator("grid_start_hour", "grid_end_hour")
    @classmethod
    def validate_hour(cls, v: int) -> int:
        """Validate hour is between 0 and 23."""
        if not 0 <= v <= 23:
            raise ValueError(f"Hour must be between 0 and 23, got {v}")
        return v

    @field_validator("slot_interval_minutes", "service_duration_minutes")
    @classmethod
    def validate_positive_minutes(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("minutes must be greater than zero")
        return value

    @field_validator("throttle_seconds")
    @classmethod
    def validate_throttle(cls, value: float) -> float:
        """Keep the delay between provider calls small and bounded."""
        if not 0 <= value <= MAX_THROTTLE_SECONDS:
            raise ValueError(f"throttle_seconds must be between 0 and {MAX_THROTTLE_SECONDS}")
        return value

    @field_validator("transit_multiplier")
    @classmethod
    def validate_multiplier(cls, value: float) -> float:
        if value < 1:
            raise ValueError("transit_multiplier must be at least 1")
        return value

    @field_validator("request_timeout_seconds")
    @classmethod
    def validate_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("request_timeout_seconds must be greater than zero")
        return value

    @field_validator("fallback_minutes")
    @classmethod
    def validate_fallbacks(cls, value: Dict[TravelMode, int]) -> Dict[TravelMode, int]:
        """Fill in modes left out of the file and reject negative values."""
        merged = dict(DEFAULT_FALLBACK_MINUTES)
        merged.update(value)
        negative = [mode.value for mode, minutes in merged.items() if minutes < 0]
        if negative:
            raise ValueError(f"fallback_minutes must not be negative: {negative}")
        return merged

    @model_validator(mode="after")
    def validate_hours_order(self) -> "DefaultsConfig":
        """Ensure the default grid opens before it closes."""
        if self.grid_end_hour < self.grid_start_hour:
            raise ValueError("grid_end_hour must not be earlier than grid_start_hour")
        return self


class DayScheduleConfig(BaseModel):
    """Working hours for one weekday."""
    enabled: bool = False
    start: str = "09:00"
    end: str = "17:00"

    @field_validator("start", "end", mode="before")
    @classmethod
    def reject_sexagesimal(cls, value):
        """YAML 1.1 reads an unquoted 17:00 as the integer 1020."""
        if isinstance(value, int) and not isinstance(value, bool):
            hours, minutes = divmod(value, 60)
            raise ValueError(
                f"Time was read as the number {value}; quote it in the YAML file, "
                f'e.g. "{hours:02d}:{minutes:02d}"'
            )
        return value

    @field_validator("start", "end")
    @classmethod
    def validate_clock(cls, value: str) -> str:
        parse_clock(value)
        return value


def _default_working_hours() -> Dict[str, DayScheduleConfig]:
    return {
        name: DayScheduleConfig(enabled=schedule.enabled, start=schedule.start, end=schedule.end)
        for name, schedule in WorkingHoursSchedule.default().days.items()
    }


class ProfileConfig(BaseModel):
    """The service provider's travel settings and working hours."""
    home_base_address: Optional[str] = None
    grace_minutes: int = 5
    transportation_mode: TravelMode = TravelMode.DRIVING
    default_buffer_minutes: int = 15  # Used when no buffer could be computed
    working_hours: Dict[str, DayScheduleConfig] = Field(default_factory=_default_working_hours)

    @field_validator("grace_minutes", "default_buffer_minutes")
    @classmethod
    def validate_non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("minutes must not be negative")
        return value

    @field_validator("working_hours")
    @classmethod
    def validate_weekdays(cls, value: Dict[str, DayScheduleConfig]) -> Dict[str, DayScheduleConfig]:
        """Normalise weekday names to lowercase and reject unknown ones."""
        normalized: Dict[str, DayScheduleConfig] = {}
        for name, schedule in value.items():
            key = name.lower()
            if key not in WEEKDAY_NAMES:
                raise ValueError(f"Unknown weekday in working_hours: {name}")
            normalized[key] = schedule
        return normalized

    def working_hours_schedule(self) -> WorkingHoursSchedule:
        return WorkingHoursSchedule.from_mapping(
            {name: schedule.model_dump() for name, schedule in self.working_hours.items()}
        )


class AppConfig(BaseModel):
    """Application configuration."""
    timezone: str = "UTC"
    provider: Literal["mapbox", "google", "mock"] = "mapbox"
    mapbox_access_token: Optional[str] = None
    google_maps_api_key: Optional[str] = None
    mock_routes_file: Optional[Path] = None
    appointments_file: Optional[Path] = None
    ignored_statuses: List[str] = Field(default_factory=lambda: ["cancelled"])
    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)
    profile: ProfileConfig = Field(default_factory=ProfileConfig)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        try:
            pendulum.timezone(value)
        except Exception as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    @field_validator("ignored_statuses")
    @classmethod
    def normalize_statuses(cls, value: List[str]) -> List[str]:
        return [status.lower() for status in value]

    def resolve_mapbox_token(self) -> Optional[str]:
        """Token from the file, else from the environment."""
        return self.mapbox_access_token or os.environ.get(MAPBOX_TOKEN_ENV)

    def resolve_google_key(self) -> Optional[str]:
        """API key from the file, else from the environment."""
        return self.google_maps_api_key or os.environ.get(GOOGLE_KEY_ENV)

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Relative file paths inside the config are resolved against the
        config file's directory.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        config = cls(**data)

        base_dir = config_path.parent
        for field_name in ("mock_routes_file", "appointments_file"):
            path = getattr(config, field_name)
            if path is not None and not path.is_absolute():
                setattr(config, field_name, base_dir / path)

        return config


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
