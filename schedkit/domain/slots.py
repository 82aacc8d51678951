"""Fixed-size slot window generation."""

from __future__ import annotations

from typing import List

from ..utils.time_helpers import MINUTES_PER_DAY
from .intervals import Interval

# One tick per minute of a day
MAX_SLOT_ITERATIONS = MINUTES_PER_DAY


def generate_windows(
    day_start: int,
    day_end: int,
    slot_duration: int,
    buffer_minutes: int = 0,
) -> List[Interval]:
    """
    Consecutive windows of slot_duration minutes inside [day_start, day_end).

    Each window is followed by a gap of buffer_minutes before the next one
    starts. Windows that would spill past day_end are dropped. Degenerate
    input yields an empty list.
    """
    if slot_duration <= 0 or day_end <= day_start:
        return []
    buffer_minutes = max(0, buffer_minutes)

    windows: List[Interval] = []
    current = day_start
    iterations = 0
    while current < day_end and iterations < MAX_SLOT_ITERATIONS:
        slot_end = current + slot_duration
        if slot_end > day_end:
            break
        windows.append((current, slot_end))
        current = slot_end + buffer_minutes
        iterations += 1
    return windows
