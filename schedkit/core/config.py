# schedkit/core/config.py
"""
Scheduling configuration.

One immutable SchedulingConfig is built per process (or per test) and
passed into service constructors. Values come from keyword arguments,
then SCHEDKIT_* environment variables, then an optional .env file.

Example:
    SCHEDKIT_CONFLICT_DETECTION__BUFFER_MINUTES=10
    SCHEDKIT_VALIDATION__REQUIRE_FUTURE_DATES=false
"""

from functools import lru_cache
import logging
import re
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .enums import ScheduleType

logger = logging.getLogger(__name__)

_HH_MM = re.compile(r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$")

KNOWN_RULES = ("working_hours", "max_duration", "no_weekends", "no_overlap")


class ConflictDetectionSettings(BaseModel):
    """Global conflict detection switch and buffer around existing schedules."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    buffer_minutes: int = Field(default=0, ge=0)
    # Upper bound on occurrence dates scanned when the candidate itself recurs
    recurrence_horizon_days: int = Field(default=366, ge=1)


class ValidationSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    require_future_dates: bool = True
    max_date_range_days: int = Field(default=365, ge=1)
    min_period_minutes: int = Field(default=15, ge=0)
    max_period_minutes: int = Field(default=480, ge=1)
    max_periods_per_schedule: int = Field(default=50, ge=1)
    allow_overlapping_periods_within_schedule: bool = False


class TimeSlotSettings(BaseModel):
    """Defaults for the availability engine."""

    model_config = ConfigDict(frozen=True)

    buffer_minutes: int = Field(default=0, ge=0)
    default_slot_minutes: int = Field(default=60, ge=1)
    day_start: str = "09:00"
    day_end: str = "17:00"
    horizon_days: int = Field(default=30, ge=1)

    @field_validator("day_start", "day_end")
    @classmethod
    def validate_hh_mm(cls, v: str) -> str:
        if not _HH_MM.match(v):
            raise ValueError(f"Invalid time '{v}', expected HH:MM")
        return v


def _default_rules() -> Dict[str, Any]:
    return {
        "no_overlap": {
            "enabled": True,
            "applies_to": [ScheduleType.APPOINTMENT.value, ScheduleType.BLOCKED.value],
        },
    }


class SchedulingConfig(BaseSettings):
    """Immutable configuration threaded into every scheduling service."""

    model_config = SettingsConfigDict(
        env_prefix="SCHEDKIT_",
        env_nested_delimiter="__",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    conflict_detection: ConflictDetectionSettings = Field(default_factory=ConflictDetectionSettings)
    validation: ValidationSettings = Field(default_factory=ValidationSettings)
    time_slots: TimeSlotSettings = Field(default_factory=TimeSlotSettings)
    default_rules: Dict[str, Any] = Field(default_factory=_default_rules)

    database_url: str = "sqlite:///./schedkit.db"
    database_echo: bool = False

    @field_validator("default_rules")
    @classmethod
    def validate_rule_names(cls, v: Dict[str, Any]) -> Dict[str, Any]:
        unknown = set(v) - set(KNOWN_RULES)
        if unknown:
            # Unknown rules are ignored by the pipeline; flag them early
            logger.warning("Ignoring unknown default rules: %s", sorted(unknown))
        return v

    @property
    def no_overlap_applies_to(self) -> List[str]:
        rule = self.default_rules.get("no_overlap")
        if isinstance(rule, dict) and rule.get("applies_to"):
            return list(rule["applies_to"])
        return [ScheduleType.APPOINTMENT.value, ScheduleType.BLOCKED.value]


@lru_cache(maxsize=1)
def get_scheduling_config() -> SchedulingConfig:
    """Build the process-wide configuration once."""
    config = SchedulingConfig()
    logger.info(
        "[CONFIG] conflict_detection.enabled=%s buffer=%s",
        config.conflict_detection.enabled,
        config.conflict_detection.buffer_minutes,
    )
    return config
