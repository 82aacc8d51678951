# schedkit/services/schedule_service.py
"""
Schedule Service for schedkit

Owner-facing operations on schedules:
- Create (validate then persist) and build transient schedules
- Deactivate and delete
- Owner queries by date, date range and recurrence
- Conflict checks for existing schedules

This is the only component that mutates schedules. Event dispatch after
creation is left to the caller.
"""

from datetime import date
import logging
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from ..core.config import SchedulingConfig
from ..core.exceptions import NotFoundException
from ..domain.owner import OwnerRef
from ..models.schedule import Schedule, ScheduleOccurrence
from ..repositories import RepositoryFactory
from ..repositories.schedule_repository import IScheduleStore
from ..schemas.schedule import ScheduleCandidate
from .base import BaseService
from .conflict_detection_service import ConflictDetectionService
from .validation_service import ValidationService, candidate_to_schedule

logger = logging.getLogger(__name__)


class ScheduleService(BaseService):
    """
    Service orchestrating the schedule lifecycle for an owner.

    Validation and persistence for one schedule happen inside a single
    session transaction. Serializing concurrent writers for the same owner
    is the store's job (row locks or serializable isolation).
    """

    def __init__(
        self,
        db: Session,
        config: Optional[SchedulingConfig] = None,
        repository: Optional[IScheduleStore] = None,
        conflict_service: Optional[ConflictDetectionService] = None,
        validation_service: Optional[ValidationService] = None,
        today: Callable[[], date] = date.today,
    ):
        """
        Initialize schedule service.

        Args:
            db: Database session
            config: Scheduling configuration
            repository: Optional schedule store
            conflict_service: Optional conflict detection service
            validation_service: Optional validation service
            today: Clock used by the future-date rule
        """
        super().__init__(db, config)
        self.repository = repository or RepositoryFactory.create_schedule_repository(db)
        self.conflict_service = conflict_service or ConflictDetectionService(
            db, self.config, repository=self.repository
        )
        self.validation_service = validation_service or ValidationService(
            db, self.config, conflict_service=self.conflict_service, today=today
        )

    # Lifecycle

    @BaseService.measure_operation("create_schedule")
    def create_schedule(self, candidate: ScheduleCandidate) -> Schedule:
        """
        Validate a candidate and persist it.

        Args:
            candidate: Draft schedule

        Returns:
            The persisted schedule

        Raises:
            ScheduleConstructionException: Owner or start date missing
            ScheduleConflictException: The no-overlap rule found conflicts
            InvalidScheduleException: Any other rule failed
        """
        with self.transaction():
            self.validation_service.validate(candidate)
            schedule = self.repository.persist(self.build_schedule(candidate))

        self.logger.info(
            f"Created {schedule.schedule_type} schedule {schedule.id} for {schedule.owner} "
            f"with {len(schedule.periods)} periods"
        )
        return schedule

    def build_schedule(self, candidate: ScheduleCandidate) -> Schedule:
        """Transient (unsaved) schedule from a candidate; undated periods use the start date."""
        return candidate_to_schedule(candidate)

    @BaseService.measure_operation("deactivate_schedule")
    def deactivate_schedule(self, schedule_id: str) -> Schedule:
        """Exclude a schedule from all conflict and availability computation."""
        schedule = self._get_or_404(schedule_id)
        with self.transaction():
            self.repository.deactivate(schedule)
        self.logger.info(f"Deactivated schedule {schedule_id}")
        return schedule

    @BaseService.measure_operation("delete_schedule")
    def delete_schedule(self, schedule_id: str) -> None:
        schedule = self._get_or_404(schedule_id)
        with self.transaction():
            self.repository.delete_schedule(schedule)
        self.logger.info(f"Deleted schedule {schedule_id}")

    # Owner queries

    def get_schedule(self, schedule_id: str) -> Schedule:
        return self._get_or_404(schedule_id)

    def get_schedules(self, owner: OwnerRef, active_only: bool = False) -> List[Schedule]:
        return self.repository.get_for_owner(owner, active_only=active_only)

    def get_recurring_schedules(self, owner: OwnerRef) -> List[Schedule]:
        """Active recurring schedules of an owner."""
        return self.repository.get_for_owner(owner, active_only=True, recurring_only=True)

    @BaseService.measure_operation("get_occurrences_for_date")
    def get_occurrences_for_date(self, owner: OwnerRef, target: date) -> List[ScheduleOccurrence]:
        """
        Schedules in effect on a date, direct and recurring.

        Each occurrence carries the queried date, never a stored period date.
        """
        schedules = self.repository.load_active_schedules(owner, (target, target))
        return [
            ScheduleOccurrence(date=target, schedule=schedule)
            for schedule in schedules
            if schedule.base_periods_on(target)
        ]

    def get_schedules_for_date_range(self, owner: OwnerRef, start: date, end: date) -> List[Schedule]:
        """Active schedules whose date range intersects [start, end]."""
        return self.repository.load_active_schedules(owner, (start, end))

    @BaseService.measure_operation("get_total_scheduled_minutes")
    def get_total_scheduled_minutes(self, owner: OwnerRef, start: date, end: date) -> int:
        """Sum of base period durations of active schedules intersecting [start, end]."""
        schedules = self.repository.load_active_schedules(owner, (start, end))
        return sum(schedule.total_duration_minutes for schedule in schedules)

    def has_schedules(self, owner: OwnerRef) -> bool:
        return self.repository.has_schedules(owner)

    def has_active_schedules(self, owner: OwnerRef) -> bool:
        return self.repository.has_schedules(owner, active_only=True)

    # Conflicts for existing schedules

    def find_schedule_conflicts(self, schedule: Schedule) -> List[Schedule]:
        """Conflicts of an existing or transient schedule, excluding itself."""
        return self.conflict_service.find_conflicts(schedule)

    def has_schedule_conflict(self, schedule: Schedule) -> bool:
        return bool(self.find_schedule_conflicts(schedule))

    # Private helpers

    def _get_or_404(self, schedule_id: str) -> Schedule:
        schedule = self.repository.get_schedule(schedule_id)
        if schedule is None:
            raise NotFoundException(
                f"Schedule {schedule_id} not found",
                code="SCHEDULE_NOT_FOUND",
                details={"schedule_id": schedule_id},
            )
        return schedule
