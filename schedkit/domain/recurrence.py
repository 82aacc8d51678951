"""
Recurrence evaluation.

Occurrences are never materialized: callers ask whether a pattern occurs on
a given date and rebuild the occurrence from the schedule's base periods.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, FrozenSet, Iterator, Mapping, Optional

from ..core.enums import WEEKDAY_NUMBERS, Frequency


@dataclass(frozen=True)
class RecurrencePattern:
    """
    Recurrence descriptor.

    kind is kept as the raw string so unknown kinds stored by other writers
    can be carried around and evaluated as "never occurs".
    """

    kind: str
    weekdays: FrozenSet[int] = field(default_factory=frozenset)
    interval: int = 1
    day_of_month: Optional[int] = None

    @classmethod
    def from_config(
        cls, frequency: Optional[str], config: Optional[Mapping[str, Any]] = None
    ) -> "RecurrencePattern":
        config = config or {}
        kind = (frequency or Frequency.NONE.value).lower()

        weekdays = frozenset(
            WEEKDAY_NUMBERS[day.lower()]
            for day in config.get("days") or []
            if isinstance(day, str) and day.lower() in WEEKDAY_NUMBERS
        )

        interval = config.get("interval") or 1
        if not isinstance(interval, int) or interval < 1:
            interval = 1

        day_of_month = config.get("day_of_month")
        if not isinstance(day_of_month, int):
            day_of_month = None

        return cls(kind=kind, weekdays=weekdays, interval=interval, day_of_month=day_of_month)


def _week_start(d: date) -> date:
    return d - timedelta(days=d.weekday())


def weeks_between(start: date, d: date) -> int:
    """Whole Monday-based weeks from start's week to d's week."""
    return (_week_start(d) - _week_start(start)).days // 7


def occurs_on(
    pattern: RecurrencePattern,
    start_date: date,
    end_date: Optional[date],
    target: date,
) -> bool:
    """Does the pattern produce an occurrence on target?"""
    if target < start_date:
        return False
    if end_date is not None and target > end_date:
        return False

    if pattern.kind == Frequency.DAILY.value:
        return True

    if pattern.kind == Frequency.WEEKLY.value:
        if target.weekday() not in pattern.weekdays:
            return False
        if pattern.interval > 1:
            return weeks_between(start_date, target) % pattern.interval == 0
        return True

    if pattern.kind == Frequency.MONTHLY.value:
        day_of_month = pattern.day_of_month or start_date.day
        return target.day == day_of_month

    # Unknown kinds fail closed
    return False


def iter_occurrences(
    pattern: RecurrencePattern,
    start_date: date,
    end_date: Optional[date],
    window_start: date,
    window_end: date,
) -> Iterator[date]:
    """Yield occurrence dates inside [window_start, window_end], in order."""
    current = max(window_start, start_date)
    last = window_end if end_date is None else min(window_end, end_date)
    while current <= last:
        if occurs_on(pattern, start_date, end_date, current):
            yield current
        current += timedelta(days=1)
