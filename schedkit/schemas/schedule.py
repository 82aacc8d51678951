# schedkit/schemas/schedule.py
"""
Candidate schedule schemas.

A ScheduleCandidate is what the (external) fluent builder hands to the
validation pipeline: owner, attributes, periods and per-candidate rules.
Times stay as raw strings here because checking their format is one of the
validation rules; time objects are accepted and normalized to HH:MM.
"""

import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..core.enums import ScheduleType
from ..domain.owner import OwnerRef
from ..utils.time_helpers import is_valid_time_format
from ._strict_base import StrictRequestModel

# Type aliases for clarity
DateType = datetime.date
TimeType = datetime.time


class PeriodInput(StrictRequestModel):
    """One requested time-of-day interval; date defaults to the start date."""

    date: Optional[DateType] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    is_available: bool = True
    metadata: Optional[Dict[str, Any]] = None

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def normalize_time_objects(cls, v: Any) -> Any:
        if isinstance(v, TimeType):
            return v.strftime("%H:%M")
        return v


class ScheduleAttributes(StrictRequestModel):
    name: Optional[str] = None
    description: Optional[str] = None
    start_date: Optional[DateType] = None
    end_date: Optional[DateType] = None
    is_recurring: bool = False
    # Kept as a string so unknown kinds reach the pipeline and fail there
    frequency: Optional[str] = None
    frequency_config: Dict[str, Any] = Field(default_factory=dict)
    schedule_type: ScheduleType = ScheduleType.CUSTOM
    metadata: Dict[str, Any] = Field(default_factory=dict)
    is_active: bool = True


class ScheduleCandidate(StrictRequestModel):
    """Draft schedule awaiting validation."""

    owner: Optional[OwnerRef] = None
    attributes: ScheduleAttributes = Field(default_factory=ScheduleAttributes)
    periods: List[PeriodInput] = Field(default_factory=list)
    # rule name -> config dict, True (defaults) or False/None (disabled)
    rules: Dict[str, Any] = Field(default_factory=dict)


# Rule configurations


class RuleConfig(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    enabled: bool = True


class WorkingHoursRule(RuleConfig):
    start: str = "09:00"
    end: str = "17:00"

    @field_validator("start", "end")
    @classmethod
    def validate_hh_mm(cls, v: str) -> str:
        if not is_valid_time_format(v):
            raise ValueError(f"Invalid time '{v}', expected HH:MM")
        return v


class MaxDurationRule(RuleConfig):
    minutes: int = Field(gt=0)


class NoWeekendsRule(RuleConfig):
    saturday: bool = True
    sunday: bool = True


class NoOverlapRule(RuleConfig):
    applies_to: List[ScheduleType] = Field(
        default_factory=lambda: [ScheduleType.APPOINTMENT, ScheduleType.BLOCKED]
    )
    # negative values are treated as 0
    buffer_minutes: Optional[int] = None
