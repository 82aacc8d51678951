"""
Time-of-day helpers.

The engine does all interval math on minute-of-day integers. A `time(0, 0)`
used as an end bound after a non-midnight start means end of day (1440).
"""

from datetime import datetime, time
import re
from typing import Union

MINUTES_PER_DAY = 24 * 60

HH_MM_PATTERN = re.compile(r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$")

TimeLike = Union[time, str]


def is_valid_time_format(value: str) -> bool:
    return bool(HH_MM_PATTERN.match(value))


def string_to_time(time_str: str) -> time:
    """Parse HH:MM or HH:MM:SS strings, treating '24:00' as midnight."""
    normalized = time_str.strip()
    if len(normalized) <= 5:
        normalized += ":00"
    if normalized == "24:00:00":
        return time(0, 0)
    if len(normalized) == 7:
        # H:MM:SS
        normalized = "0" + normalized
    return datetime.strptime(normalized, "%H:%M:%S").time()


def coerce_time(value: TimeLike) -> time:
    if isinstance(value, time):
        return value
    return string_to_time(value)


def to_minutes(t: time) -> int:
    return t.hour * 60 + t.minute


def minutes_range(start: TimeLike, end: TimeLike) -> tuple[int, int]:
    """Minute offsets for a start/end pair, mapping a midnight end to 1440."""
    start_t = coerce_time(start)
    end_t = coerce_time(end)
    start_min = to_minutes(start_t)
    end_min = to_minutes(end_t)
    if end_t == time(0, 0) and start_t != time(0, 0):
        end_min = MINUTES_PER_DAY
    return start_min, end_min


def from_minutes(minutes: int) -> time:
    """Inverse of to_minutes; 1440 wraps to midnight."""
    minutes = minutes % MINUTES_PER_DAY
    return time(minutes // 60, minutes % 60)
