"""
schedkit: temporal scheduling engine.

Recurrence evaluation, conflict detection, slot generation and the
validation rule pipeline for calendar-like schedules owned by any entity.
"""

__version__ = "0.1.0"
