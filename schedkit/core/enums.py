# schedkit/core/enums.py
"""
Core enums for schedkit.

These enums are persisted as plain strings so stored rows remain readable
and unknown values coming from older data can be handled explicitly.
"""

from enum import Enum
from typing import Dict


class ScheduleType(str, Enum):
    """
    Kind of schedule, which governs the overlap policy.

    availability and custom schedules may overlap anything; appointment and
    blocked schedules must never overlap each other.
    """

    AVAILABILITY = "availability"
    APPOINTMENT = "appointment"
    BLOCKED = "blocked"
    CUSTOM = "custom"

    @classmethod
    def values(cls) -> list[str]:
        return [member.value for member in cls]


class Frequency(str, Enum):
    """Recurrence kinds supported by the recurrence evaluator."""

    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


# Python's date.weekday(): Monday == 0
WEEKDAY_NUMBERS: Dict[str, int] = {
    "monday": 0,
    "tuesday": 1,
    "wednesday": 2,
    "thursday": 3,
    "friday": 4,
    "saturday": 5,
    "sunday": 6,
}
