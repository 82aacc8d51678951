# schedkit/repositories/factory.py
"""
Repository Factory for schedkit

Services ask the factory for their default store, so callers and tests can
inject another IScheduleStore implementation instead.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

# Avoid circular imports
if TYPE_CHECKING:
    from .schedule_repository import ScheduleRepository


class RepositoryFactory:
    """Creates repositories bound to a session."""

    @staticmethod
    def create_schedule_repository(db: Session) -> "ScheduleRepository":
        from .schedule_repository import ScheduleRepository

        return ScheduleRepository(db)
