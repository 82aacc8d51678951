# schedkit/models/schedule.py
"""
Schedule models for schedkit.

A Schedule is a named reservation of time for an owner, possibly recurring.
Its SchedulePeriods hold the time-of-day intervals. Recurring schedules
store only their base periods; occurrences are derived on demand and never
written back as rows.

Classes:
    Schedule: Owner's booking with date range, recurrence and type
    SchedulePeriod: One time-of-day interval of a schedule
    ScheduleOccurrence: Derived (date, schedule) pair, not persisted
"""

from dataclasses import dataclass
from datetime import date
import logging
from typing import List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    Time,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..core.enums import Frequency, ScheduleType
from ..core.ulid_helper import generate_ulid
from ..database import Base
from ..domain.owner import OwnerRef
from ..domain.recurrence import RecurrencePattern, occurs_on
from ..utils.time_helpers import minutes_range

logger = logging.getLogger(__name__)


class Schedule(Base):
    """
    Owner's schedule (booking).

    Owner is a polymorphic (schedulable_type, schedulable_id) pair so any
    entity can own schedules without a foreign key to a concrete table.
    """

    __tablename__ = "schedules"

    id = Column(String(26), primary_key=True, index=True, default=generate_ulid)

    # Polymorphic owner
    schedulable_type = Column(String(100), nullable=False)
    schedulable_id = Column(String(64), nullable=False)

    name = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)

    start_date = Column(Date, nullable=False, index=True)
    end_date = Column(Date, nullable=True, index=True)

    # Recurrence descriptor
    is_recurring = Column(Boolean, nullable=False, default=False)
    frequency = Column(String(20), nullable=True)
    frequency_config = Column(JSON, nullable=True)

    schedule_type = Column(String(20), nullable=False, default=ScheduleType.CUSTOM.value, index=True)
    schedule_metadata = Column("metadata", JSON, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    periods = relationship(
        "SchedulePeriod",
        back_populates="schedule",
        cascade="all, delete-orphan",
        order_by="SchedulePeriod.start_time",
    )

    __table_args__ = (
        CheckConstraint("end_date IS NULL OR end_date > start_date", name="ck_schedules_date_order"),
        Index("ix_schedules_owner_active", "schedulable_type", "schedulable_id", "is_active"),
    )

    @property
    def owner(self) -> OwnerRef:
        return OwnerRef(kind=self.schedulable_type, id=self.schedulable_id)

    @property
    def recurrence(self) -> RecurrencePattern:
        if not self.is_recurring:
            return RecurrencePattern(kind=Frequency.NONE.value)
        return RecurrencePattern.from_config(self.frequency, self.frequency_config)

    @property
    def total_duration_minutes(self) -> int:
        return sum(period.duration_minutes for period in self.periods)

    def is_active_on(self, target: date) -> bool:
        """Active and inside the schedule's date range on target."""
        if not self.is_active:
            return False
        return self.start_date <= target and (self.end_date is None or target <= self.end_date)

    def base_periods_on(self, target: date) -> List["SchedulePeriod"]:
        """
        Base periods in effect on target, ignoring is_active.

        Recurring schedules re-derive the occurrence from the pattern and apply
        every base period; non-recurring ones match on each period's own date
        (the start date when it has none).
        """
        if target < self.start_date:
            return []
        if self.end_date is not None and target > self.end_date:
            return []
        if self.is_recurring:
            if occurs_on(self.recurrence, self.start_date, self.end_date, target):
                return list(self.periods)
            return []
        return [p for p in self.periods if (p.date or self.start_date) == target]

    def periods_on(self, target: date) -> List["SchedulePeriod"]:
        """Base periods that apply on target for an active schedule."""
        if not self.is_active:
            return []
        return self.base_periods_on(target)

    def occurs_on(self, target: date) -> bool:
        """Whether any of this schedule's periods are in effect on target."""
        return bool(self.periods_on(target))

    def overlaps_with(self, other: "Schedule") -> bool:
        """Date-range overlap between two schedules; open-ended ranges never end."""
        if self.end_date is not None and self.end_date < other.start_date:
            return False
        if other.end_date is not None and other.end_date < self.start_date:
            return False
        return True

    def __repr__(self) -> str:
        return f"<Schedule {self.id} {self.schedule_type} {self.name or ''}>"


class SchedulePeriod(Base):
    """One time-of-day interval of a schedule."""

    __tablename__ = "schedule_periods"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    schedule_id = Column(
        String(26), ForeignKey("schedules.id", ondelete="CASCADE"), nullable=False, index=True
    )
    date = Column(Date, nullable=True, index=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    is_available = Column(Boolean, nullable=False, default=True)
    period_metadata = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    schedule = relationship("Schedule", back_populates="periods")

    __table_args__ = (
        # midnight end stands for end of day
        CheckConstraint(
            "end_time > start_time OR end_time = '00:00:00.000000'",
            name="ck_schedule_periods_time_order",
        ),
    )

    @property
    def minutes(self) -> tuple[int, int]:
        return minutes_range(self.start_time, self.end_time)

    @property
    def duration_minutes(self) -> int:
        start, end = self.minutes
        return end - start

    def __repr__(self) -> str:
        return f"<SchedulePeriod {self.date} {self.start_time}-{self.end_time}>"


@dataclass(frozen=True)
class ScheduleOccurrence:
    """A schedule proven to occur on a date; derived, never persisted."""

    date: date
    schedule: Schedule

    @property
    def periods(self) -> List[SchedulePeriod]:
        return self.schedule.periods_on(self.date)

    @property
    def schedule_id(self) -> Optional[str]:
        return self.schedule.id
