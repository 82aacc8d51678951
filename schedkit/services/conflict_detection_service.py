# schedkit/services/conflict_detection_service.py
"""
Conflict Detection Service for schedkit

Decides whether a candidate schedule collides with an owner's existing
schedules, taking into account:
- Dates: direct period dates and recurring occurrences on both sides
- Time: half-open overlap after widening existing periods by the buffer
- Type policy: which schedule types must not overlap

All existing schedules are fetched in one bulk load and everything else
happens in memory.
"""

from collections import defaultdict
from datetime import date, timedelta
import logging
from typing import Dict, Iterable, List, Optional, Sequence

from sqlalchemy.orm import Session

from ..core.config import SchedulingConfig
from ..core.enums import ScheduleType
from ..domain import type_policy
from ..domain.intervals import Interval, expand, merge_intervals, overlaps
from ..domain.recurrence import iter_occurrences
from ..models.schedule import Schedule
from ..repositories import RepositoryFactory
from ..repositories.schedule_repository import IScheduleStore
from .base import BaseService

logger = logging.getLogger(__name__)

TypeList = Optional[Iterable[str]]


class ConflictDetectionService(BaseService):
    """
    Service for finding schedules that collide with a candidate.

    The candidate is a Schedule, usually a transient one built from a
    ScheduleCandidate by the validation pipeline.
    """

    def __init__(
        self,
        db: Session,
        config: Optional[SchedulingConfig] = None,
        repository: Optional[IScheduleStore] = None,
    ):
        """
        Initialize conflict detection service.

        Args:
            db: Database session
            config: Scheduling configuration
            repository: Optional schedule store; the SQLAlchemy one by default
        """
        super().__init__(db, config)
        self.repository = repository or RepositoryFactory.create_schedule_repository(db)

    @BaseService.measure_operation("find_conflicts")
    def find_conflicts(
        self,
        candidate: Schedule,
        applies_to: TypeList = None,
        buffer_minutes: Optional[int] = None,
        exclude_schedule_id: Optional[str] = None,
    ) -> List[Schedule]:
        """
        Find every active schedule of the candidate's owner that collides with it.

        Args:
            candidate: Schedule being checked (persisted or transient)
            applies_to: Candidate types the no-overlap rule checks; config default when None
            buffer_minutes: Gap required around existing schedules; config default when None
            exclude_schedule_id: Schedule to ignore; the candidate's own id by default

        Returns:
            Distinct conflicting schedules in load order
        """
        if not self.config.conflict_detection.enabled:
            return []

        if applies_to is None:
            applies_to = self.config.no_overlap_applies_to
        applies_to = list(applies_to)
        if not type_policy.applies_to(candidate.schedule_type, applies_to):
            return []

        if buffer_minutes is None:
            buffer_minutes = self.config.conflict_detection.buffer_minutes

        collidable = [
            t for t in ScheduleType if type_policy.opted_in_collides(candidate.schedule_type, t)
        ]
        existing = self.repository.load_active_schedules(
            candidate.owner,
            (candidate.start_date, candidate.end_date),
            schedule_types=collidable,
            exclude_schedule_id=exclude_schedule_id or candidate.id,
        )

        conflicts = self.find_conflicts_in(candidate, existing, applies_to, buffer_minutes)

        if conflicts:
            self.logger.warning(
                f"Found {len(conflicts)} schedule conflicts for {candidate.owner} "
                f"({candidate.schedule_type} from {candidate.start_date})"
            )

        return conflicts

    def has_conflicts(
        self,
        candidate: Schedule,
        applies_to: TypeList = None,
        buffer_minutes: Optional[int] = None,
    ) -> bool:
        """Simplified boolean check for quick validation."""
        return bool(self.find_conflicts(candidate, applies_to, buffer_minutes))

    def find_conflicts_in(
        self,
        candidate: Schedule,
        schedules: Sequence[Schedule],
        applies_to: TypeList = None,
        buffer_minutes: Optional[int] = None,
    ) -> List[Schedule]:
        """
        In-memory conflict core over an already loaded list of schedules.

        Ignores the global enabled switch; inactive schedules and the
        candidate itself are skipped.
        """
        if applies_to is None:
            applies_to = self.config.no_overlap_applies_to
        if not type_policy.applies_to(candidate.schedule_type, applies_to):
            return []
        if buffer_minutes is None:
            buffer_minutes = self.config.conflict_detection.buffer_minutes

        candidate_days = self._candidate_intervals_by_date(candidate)
        if not candidate_days:
            return []

        conflicts: List[Schedule] = []
        for existing in schedules:
            if existing is candidate or existing.is_active is False:
                continue
            if candidate.id is not None and existing.id == candidate.id:
                continue
            if not type_policy.opted_in_collides(candidate.schedule_type, existing.schedule_type):
                continue
            if self._collides(candidate_days, existing, buffer_minutes):
                conflicts.append(existing)

        return conflicts

    def busy_intervals(
        self,
        schedules: Sequence[Schedule],
        target: date,
        candidate_type: str = ScheduleType.APPOINTMENT.value,
        buffer_minutes: int = 0,
    ) -> List[Interval]:
        """
        Merged minute ranges on target that a candidate of candidate_type may not use.

        Availability schedules never occupy time for any candidate type.
        """
        intervals: List[Interval] = []
        for schedule in schedules:
            if schedule.is_active is False:
                continue
            if not type_policy.opted_in_collides(candidate_type, schedule.schedule_type):
                continue
            for period in schedule.base_periods_on(target):
                start, end = period.minutes
                intervals.append(expand(start, end, buffer_minutes))
        return merge_intervals(intervals)

    # Private helpers

    def _candidate_dates(self, candidate: Schedule) -> List[date]:
        """Occurrence dates of a recurring candidate, bounded by the recurrence horizon."""
        horizon_end = candidate.start_date + timedelta(
            days=self.config.conflict_detection.recurrence_horizon_days - 1
        )
        window_end = horizon_end if candidate.end_date is None else min(candidate.end_date, horizon_end)
        return list(
            iter_occurrences(
                candidate.recurrence,
                candidate.start_date,
                candidate.end_date,
                candidate.start_date,
                window_end,
            )
        )

    def _candidate_intervals_by_date(self, candidate: Schedule) -> Dict[date, List[Interval]]:
        days: Dict[date, List[Interval]] = defaultdict(list)
        if candidate.is_recurring:
            intervals = [period.minutes for period in candidate.periods]
            for occurrence in self._candidate_dates(candidate):
                days[occurrence].extend(intervals)
        else:
            for period in candidate.periods:
                days[period.date or candidate.start_date].append(period.minutes)
        return days

    def _collides(
        self,
        candidate_days: Dict[date, List[Interval]],
        existing: Schedule,
        buffer_minutes: int,
    ) -> bool:
        for day, intervals in candidate_days.items():
            for period in existing.base_periods_on(day):
                busy_start, busy_end = expand(*period.minutes, buffer_minutes)
                for start, end in intervals:
                    if overlaps(start, end, busy_start, busy_end):
                        self.logger.debug(
                            "Candidate %s-%s on %s overlaps schedule %s", start, end, day, existing.id
                        )
                        return True
        return False
