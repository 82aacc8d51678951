"""Half-open interval algebra on minute-of-day integers."""

from __future__ import annotations

from typing import Iterable, List, Tuple

Interval = Tuple[int, int]


def overlaps(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    """True iff [start_a, end_a) and [start_b, end_b) share any instant.

    Touching intervals (end_a == start_b) do not overlap.
    """
    return start_a < end_b and end_a > start_b


def expand(start: int, end: int, buffer_minutes: int) -> Interval:
    """Widen an interval by a buffer on both sides; negative buffers count as 0."""
    buffer_minutes = max(0, buffer_minutes)
    return start - buffer_minutes, end + buffer_minutes


def merge_intervals(intervals: Iterable[Interval]) -> List[Interval]:
    """Union overlapping or touching intervals, sorted by start."""
    ordered = sorted(intervals)
    if not ordered:
        return []
    merged: List[Interval] = []
    cs, ce = ordered[0]
    for s, e in ordered[1:]:
        if s <= ce:
            ce = max(ce, e)
        else:
            merged.append((cs, ce))
            cs, ce = s, e
    merged.append((cs, ce))
    return merged


def overlaps_any(start: int, end: int, intervals: Iterable[Interval]) -> bool:
    return any(overlaps(start, end, s, e) for s, e in intervals)
