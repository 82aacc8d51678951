# schedkit/services/availability_service.py
"""
Availability Service for schedkit

Read path over an owner's schedules:
- Fixed-window slots for a day, each labelled available or occupied
- Bookable slots, generated only inside availability schedules
- Forward walks to the next free slot
- Single window checks

Every per-day call loads the owner's schedules once (periods eagerly
loaded) and does all date and minute math in memory. Forward walks load the
whole horizon in one query.
"""

from datetime import date, timedelta
import logging
from typing import List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from ..core.config import SchedulingConfig
from ..core.enums import ScheduleType
from ..domain.intervals import Interval, merge_intervals, overlaps_any
from ..domain.owner import OwnerRef
from ..domain.slots import generate_windows
from ..models.schedule import Schedule
from ..repositories import RepositoryFactory
from ..repositories.schedule_repository import IScheduleStore
from ..schemas.slots import DatedTimeSlot, TimeSlot
from ..utils.time_helpers import TimeLike, from_minutes, minutes_range
from .base import BaseService
from .conflict_detection_service import ConflictDetectionService

logger = logging.getLogger(__name__)


class AvailabilityService(BaseService):
    """
    Service for free-time queries.

    Slots are labelled by checking them against the owner's schedules the
    way a zero-buffer appointment candidate would be checked.
    """

    def __init__(
        self,
        db: Session,
        config: Optional[SchedulingConfig] = None,
        repository: Optional[IScheduleStore] = None,
        conflict_service: Optional[ConflictDetectionService] = None,
    ):
        """
        Initialize availability service.

        Args:
            db: Database session
            config: Scheduling configuration
            repository: Optional schedule store
            conflict_service: Optional conflict detection service
        """
        super().__init__(db, config)
        self.repository = repository or RepositoryFactory.create_schedule_repository(db)
        self.conflict_service = conflict_service or ConflictDetectionService(
            db, self.config, repository=self.repository
        )

    # Fixed-window mode

    @BaseService.measure_operation("get_available_slots")
    def get_available_slots(
        self,
        owner: OwnerRef,
        target_date: date,
        day_start: Optional[TimeLike] = None,
        day_end: Optional[TimeLike] = None,
        slot_duration: Optional[int] = None,
        buffer_minutes: Optional[int] = None,
    ) -> List[TimeSlot]:
        """
        Partition [day_start, day_end) into fixed windows and label each one.

        Args:
            owner: Schedule owner
            target_date: Day to slot
            day_start: First slot start; config default when None
            day_end: Latest slot end; config default when None
            slot_duration: Minutes per slot; config default when None
            buffer_minutes: Gap between consecutive slots; config default when None

        Returns:
            Slots in chronological order; empty for degenerate input
        """
        day_start, day_end, slot_duration, buffer_minutes = self._resolve_slot_args(
            day_start, day_end, slot_duration, buffer_minutes
        )
        windows = self._windows(day_start, day_end, slot_duration, buffer_minutes)
        if not windows:
            return []

        schedules = self._load(owner, target_date, target_date)
        busy = self.conflict_service.busy_intervals(schedules, target_date)
        return self._label(windows, busy, buffer_minutes)

    # Availability-bounded mode

    @BaseService.measure_operation("get_bookable_slots")
    def get_bookable_slots(
        self,
        owner: OwnerRef,
        target_date: date,
        slot_duration: Optional[int] = None,
        buffer_minutes: Optional[int] = None,
    ) -> List[TimeSlot]:
        """
        Slots generated only inside the owner's availability on target_date.

        Availability periods in effect that day (direct and recurring) are
        unioned first. Slots colliding with appointments or blocked time are
        still returned, labelled unavailable.

        Returns:
            Slots in chronological order; empty when there is no availability
        """
        slot_duration, buffer_minutes = self._resolve_duration_args(slot_duration, buffer_minutes)
        if slot_duration <= 0:
            return []

        schedules = self._load(owner, target_date, target_date)
        return self._bookable_slots_for_day(schedules, target_date, slot_duration, buffer_minutes)

    # Forward walks

    @BaseService.measure_operation("get_next_available_slot")
    def get_next_available_slot(
        self,
        owner: OwnerRef,
        after_date: date,
        duration: Optional[int] = None,
        day_start: Optional[TimeLike] = None,
        day_end: Optional[TimeLike] = None,
        buffer_minutes: Optional[int] = None,
        horizon_days: Optional[int] = None,
    ) -> Optional[DatedTimeSlot]:
        """
        First available fixed-window slot on or after after_date.

        Args:
            owner: Schedule owner
            after_date: First day searched
            duration: Slot length in minutes; config default when None
            day_start: Daily window start; config default when None
            day_end: Daily window end; config default when None
            buffer_minutes: Gap between consecutive slots; config default when None
            horizon_days: Days searched, after_date included; config default when None

        Returns:
            The slot with its date, or None when nothing is free in the horizon
        """
        day_start, day_end, duration, buffer_minutes = self._resolve_slot_args(
            day_start, day_end, duration, buffer_minutes
        )
        if horizon_days is None:
            horizon_days = self.config.time_slots.horizon_days
        windows = self._windows(day_start, day_end, duration, buffer_minutes)
        if not windows or horizon_days <= 0:
            return None

        last_date = after_date + timedelta(days=horizon_days - 1)
        schedules = self._load(owner, after_date, last_date)

        current = after_date
        while current <= last_date:
            busy = self.conflict_service.busy_intervals(schedules, current)
            for slot in self._label(windows, busy, buffer_minutes):
                if slot.is_available:
                    return DatedTimeSlot(date=current, **slot.model_dump())
            current += timedelta(days=1)

        self.logger.info(f"No available slot for {owner} within {horizon_days} days of {after_date}")
        return None

    @BaseService.measure_operation("get_next_bookable_slot")
    def get_next_bookable_slot(
        self,
        owner: OwnerRef,
        after_date: date,
        duration: Optional[int] = None,
        buffer_minutes: Optional[int] = None,
        horizon_days: Optional[int] = None,
    ) -> Optional[DatedTimeSlot]:
        """
        First available slot inside the owner's availability on or after after_date.

        Returns:
            The slot with its date, or None when nothing is bookable in the horizon
        """
        duration, buffer_minutes = self._resolve_duration_args(duration, buffer_minutes)
        if horizon_days is None:
            horizon_days = self.config.time_slots.horizon_days
        if duration <= 0 or horizon_days <= 0:
            return None

        last_date = after_date + timedelta(days=horizon_days - 1)
        schedules = self._load(owner, after_date, last_date)

        current = after_date
        while current <= last_date:
            for slot in self._bookable_slots_for_day(schedules, current, duration, buffer_minutes):
                if slot.is_available:
                    return DatedTimeSlot(date=current, **slot.model_dump())
            current += timedelta(days=1)

        self.logger.info(f"No bookable slot for {owner} within {horizon_days} days of {after_date}")
        return None

    # Single window

    @BaseService.measure_operation("is_available_at")
    def is_available_at(
        self,
        owner: OwnerRef,
        target_date: date,
        start_time: TimeLike,
        end_time: TimeLike,
    ) -> bool:
        """True when no appointment or blocked time overlaps [start_time, end_time) on target_date."""
        start, end = minutes_range(start_time, end_time)
        if end <= start:
            return False
        schedules = self._load(owner, target_date, target_date)
        busy = self.conflict_service.busy_intervals(schedules, target_date)
        return not overlaps_any(start, end, busy)

    # Private helpers

    def _load(self, owner: OwnerRef, first: date, last: date) -> List[Schedule]:
        return self.repository.load_active_schedules(owner, (first, last))

    def _resolve_slot_args(
        self,
        day_start: Optional[TimeLike],
        day_end: Optional[TimeLike],
        slot_duration: Optional[int],
        buffer_minutes: Optional[int],
    ) -> Tuple[TimeLike, TimeLike, int, int]:
        settings = self.config.time_slots
        slot_duration, buffer_minutes = self._resolve_duration_args(slot_duration, buffer_minutes)
        return (
            day_start if day_start is not None else settings.day_start,
            day_end if day_end is not None else settings.day_end,
            slot_duration,
            buffer_minutes,
        )

    def _resolve_duration_args(
        self, slot_duration: Optional[int], buffer_minutes: Optional[int]
    ) -> Tuple[int, int]:
        settings = self.config.time_slots
        if slot_duration is None:
            slot_duration = settings.default_slot_minutes
        if buffer_minutes is None:
            buffer_minutes = settings.buffer_minutes
        return slot_duration, max(0, buffer_minutes)

    @staticmethod
    def _windows(
        day_start: TimeLike, day_end: TimeLike, slot_duration: int, buffer_minutes: int
    ) -> List[Interval]:
        start, end = minutes_range(day_start, day_end)
        return generate_windows(start, end, slot_duration, buffer_minutes)

    @staticmethod
    def _label(windows: Sequence[Interval], busy: Sequence[Interval], buffer_minutes: int) -> List[TimeSlot]:
        return [
            TimeSlot(
                start_time=from_minutes(start),
                end_time=from_minutes(end),
                is_available=not overlaps_any(start, end, busy),
                buffer_minutes=buffer_minutes,
            )
            for start, end in windows
        ]

    def _availability_windows(self, schedules: Sequence[Schedule], target: date) -> List[Interval]:
        intervals: List[Interval] = []
        for schedule in schedules:
            if schedule.schedule_type != ScheduleType.AVAILABILITY.value:
                continue
            intervals.extend(period.minutes for period in schedule.base_periods_on(target))
        return merge_intervals(intervals)

    def _bookable_slots_for_day(
        self,
        schedules: Sequence[Schedule],
        target: date,
        slot_duration: int,
        buffer_minutes: int,
    ) -> List[TimeSlot]:
        availability = self._availability_windows(schedules, target)
        if not availability:
            return []

        busy = self.conflict_service.busy_intervals(schedules, target)
        slots: List[TimeSlot] = []
        for window_start, window_end in availability:
            windows = generate_windows(window_start, window_end, slot_duration, buffer_minutes)
            slots.extend(self._label(windows, busy, buffer_minutes))
        return slots

