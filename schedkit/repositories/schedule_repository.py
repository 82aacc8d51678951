# schedkit/repositories/schedule_repository.py
"""
Schedule Repository for schedkit

Implements the schedule store contract consumed by conflict detection and
the availability engine. Every read that feeds the engine is one bulk query
with periods eagerly loaded, so the engine can do all date and overlap math
in memory instead of querying per slot.
"""

from abc import ABC, abstractmethod
from datetime import date
import logging
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Query, Session, selectinload

from ..core.enums import ScheduleType
from ..core.exceptions import RepositoryException
from ..domain.owner import OwnerRef
from ..models.schedule import Schedule
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)

# (start, end); end None means open-ended
DateRange = Tuple[date, Optional[date]]


class IScheduleStore(ABC):
    """Store contract the scheduling engine depends on."""

    @abstractmethod
    def load_active_schedules(
        self,
        owner: OwnerRef,
        date_range: Optional[DateRange] = None,
        schedule_types: Optional[Iterable[ScheduleType]] = None,
        exclude_schedule_id: Optional[str] = None,
    ) -> List[Schedule]:
        """
        Load the owner's active schedules, with periods, in a single bulk call.

        Args:
            owner: Schedule owner
            date_range: Only schedules whose date range can intersect it
            schedule_types: Only these schedule types
            exclude_schedule_id: Schedule to leave out (e.g. the one being edited)

        Returns:
            Schedules ordered by start date
        """

    @abstractmethod
    def persist(self, schedule: Schedule) -> Schedule:
        """Add a schedule and its periods; flushes so the id is assigned."""

    @abstractmethod
    def deactivate(self, schedule: Schedule) -> Schedule:
        """Soft-disable a schedule so it no longer takes part in any computation."""

    @abstractmethod
    def delete_schedule(self, schedule: Schedule) -> None:
        """Remove a schedule and its periods."""

    @abstractmethod
    def get_schedule(self, schedule_id: str) -> Optional[Schedule]:
        """Fetch one schedule with its periods."""

    @abstractmethod
    def get_for_owner(
        self, owner: OwnerRef, active_only: bool = False, recurring_only: bool = False
    ) -> List[Schedule]:
        """All schedules of an owner."""

    @abstractmethod
    def has_schedules(self, owner: OwnerRef, active_only: bool = False) -> bool:
        """Existence check for an owner's schedules."""


class ScheduleRepository(BaseRepository[Schedule], IScheduleStore):
    """
    SQLAlchemy implementation of the schedule store.
    """

    def __init__(self, db: Session):
        """Initialize with Schedule model as primary."""
        super().__init__(db, Schedule)

    def _apply_eager_loading(self, query: Query) -> Query:
        return query.options(selectinload(Schedule.periods))

    def _owner_query(self, owner: OwnerRef) -> Query:
        return self.db.query(Schedule).filter(
            Schedule.schedulable_type == owner.kind,
            Schedule.schedulable_id == str(owner.id),
        )

    # Engine reads

    def load_active_schedules(
        self,
        owner: OwnerRef,
        date_range: Optional[DateRange] = None,
        schedule_types: Optional[Iterable[ScheduleType]] = None,
        exclude_schedule_id: Optional[str] = None,
    ) -> List[Schedule]:
        query = self._apply_eager_loading(self._owner_query(owner)).filter(
            Schedule.is_active.is_(True)
        )

        if date_range is not None:
            range_start, range_end = date_range
            if range_end is not None:
                query = query.filter(Schedule.start_date <= range_end)
            query = query.filter(
                or_(Schedule.end_date.is_(None), Schedule.end_date >= range_start)
            )

        if schedule_types is not None:
            values = [ScheduleType(t).value for t in schedule_types]
            query = query.filter(Schedule.schedule_type.in_(values))

        if exclude_schedule_id:
            query = query.filter(Schedule.id != exclude_schedule_id)

        query = query.order_by(Schedule.start_date, Schedule.created_at, Schedule.id)
        schedules = self._execute_query(query)
        self.logger.debug(
            "Loaded %d active schedules for %s (range=%s)", len(schedules), owner, date_range
        )
        return schedules

    # Writes

    def persist(self, schedule: Schedule) -> Schedule:
        """
        Add a schedule and its periods.

        Note: Does NOT commit - transaction management is handled by service layer.
        """
        try:
            self.db.add(schedule)
            self.db.flush()
            return schedule
        except IntegrityError as exc:
            self.logger.error("Integrity error persisting schedule: %s", exc, exc_info=True)
            self.db.rollback()
            raise RepositoryException(f"Integrity constraint violated: {exc}") from exc
        except SQLAlchemyError as e:
            self.logger.error(f"Error persisting schedule: {str(e)}")
            self.db.rollback()
            raise RepositoryException(f"Failed to persist schedule: {str(e)}")

    def deactivate(self, schedule: Schedule) -> Schedule:
        try:
            schedule.is_active = False
            self.db.flush()
            return schedule
        except SQLAlchemyError as e:
            self.logger.error(f"Error deactivating schedule {schedule.id}: {str(e)}")
            self.db.rollback()
            raise RepositoryException(f"Failed to deactivate schedule: {str(e)}")

    def delete_schedule(self, schedule: Schedule) -> None:
        try:
            self.db.delete(schedule)
            self.db.flush()
        except SQLAlchemyError as e:
            self.logger.error(f"Error deleting schedule {schedule.id}: {str(e)}")
            self.db.rollback()
            raise RepositoryException(f"Failed to delete schedule: {str(e)}")

    # Owner queries

    def get_schedule(self, schedule_id: str) -> Optional[Schedule]:
        return self.get_by_id(schedule_id)

    def get_for_owner(
        self, owner: OwnerRef, active_only: bool = False, recurring_only: bool = False
    ) -> List[Schedule]:
        query = self._apply_eager_loading(self._owner_query(owner))
        if active_only:
            query = query.filter(Schedule.is_active.is_(True))
        if recurring_only:
            query = query.filter(Schedule.is_recurring.is_(True))
        return self._execute_query(query.order_by(Schedule.start_date, Schedule.created_at))

    def has_schedules(self, owner: OwnerRef, active_only: bool = False) -> bool:
        criteria = {"schedulable_type": owner.kind, "schedulable_id": str(owner.id)}
        if active_only:
            criteria["is_active"] = True
        return self.exists(**criteria)
