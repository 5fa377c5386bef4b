"""
Configuration management using Pydantic models loaded from YAML.
"""

from datetime import time
from pathlib import Path
from typing import List, Optional

import pendulum
import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.models import Practitioner, WorkingHours


def _parse_clock(value: str) -> time:
    """Parse an ``HH:MM`` string."""
    try:
        hour_str, minute_str = value.split(":")
        return time(hour=int(hour_str), minute=int(minute_str))
    except ValueError as exc:
        raise ValueError(f"Expected time as HH:MM, got {value!r}") from exc


class WorkingHoursConfig(BaseModel):
    """Daily working hours as ``HH:MM`` strings."""
    start: str = "09:00"
    end: str = "17:00"

    @field_validator("start", "end")
    @classmethod
    def validate_clock(cls, v: str) -> str:
        """Validate the HH:MM format."""
        _parse_clock(v)
        return v

    @model_validator(mode="after")
    def validate_hours_order(self) -> "WorkingHoursConfig":
        """Ensure the configured window opens before it closes."""
        if self.get_end_time() <= self.get_start_time():
            raise ValueError("working_hours.end must be later than working_hours.start")
        return self

    def get_start_time(self) -> time:
        """Get start time as time object."""
        return _parse_clock(self.start)

    def get_end_time(self) -> time:
        """Get end time as time object."""
        return _parse_clock(self.end)


class PractitionerConfig(BaseModel):
    """Practitioner roster entry."""
    id: str
    name: str
    specialization: Optional[str] = None
    working_hours: WorkingHoursConfig = Field(default_factory=WorkingHoursConfig)

    def to_practitioner(self) -> Practitioner:
        return Practitioner(
            id=self.id,
            name=self.name,
            specialization=self.specialization,
            working_hours=WorkingHours(
                start_time=self.working_hours.get_start_time(),
                end_time=self.working_hours.get_end_time(),
            ),
        )


class AppConfig(BaseModel):
    """Application configuration."""
    timezone: str = "Europe/Berlin"
    store_timeout_seconds: float = 5.0
    data_file: Path = Path("appointments.json")
    practitioners: List[PractitionerConfig] = Field(default_factory=list)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Reject unknown IANA timezone names."""
        try:
            pendulum.timezone(value)
        except (KeyError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    @field_validator("store_timeout_seconds")
    @classmethod
    def validate_timeout(cls, value: float) -> float:
        """Ensure store timeout is positive."""
        if value <= 0:
            raise ValueError("store_timeout_seconds must be greater than zero")
        return value

    @field_validator("practitioners")
    @classmethod
    def validate_practitioners(cls, value: List[PractitionerConfig]) -> List[PractitionerConfig]:
        """Ensure practitioner ids are unique."""
        seen_ids: set[str] = set()
        for practitioner in value:
            if practitioner.id in seen_ids:
                raise ValueError(f"Duplicate practitioner id detected: {practitioner.id}")
            seen_ids.add(practitioner.id)
        return value

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        A relative ``data_file`` is resolved against the config file's
        directory.

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
        if not config.data_file.is_absolute():
            config.data_file = config_path.parent / config.data_file
        return config

    def find_practitioner(self, practitioner_id: str) -> PractitionerConfig | None:
        """Find a practitioner by id."""
        for practitioner in self.practitioners:
            if practitioner.id == practitioner_id:
                return practitioner
        return None


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of slotbooker/)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
