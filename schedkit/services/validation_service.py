# schedkit/services/validation_service.py
"""
Validation Service for schedkit

Runs the rule pipeline that turns a ScheduleCandidate into an accept or
reject decision:
- Construction check (owner and start date present)
- Basic attributes (date range, future dates, recurrence descriptor)
- Periods (presence, format, duration, overlap within the candidate)
- Business rules (working hours, max duration, no weekends, no overlap)

The no-overlap rule raises ScheduleConflictException the moment it finds a
collision. Every other failure is collected and reported together in one
InvalidScheduleException.
"""

from datetime import date
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple, Type

from pydantic import ValidationError
from sqlalchemy.orm import Session

from ..core.config import KNOWN_RULES, SchedulingConfig
from ..core.enums import WEEKDAY_NUMBERS, Frequency, ScheduleType
from ..core.exceptions import (
    InvalidScheduleException,
    ScheduleConflictException,
    ScheduleConstructionException,
)
from ..domain.intervals import Interval, overlaps
from ..models.schedule import Schedule, SchedulePeriod
from ..schemas.schedule import (
    MaxDurationRule,
    NoOverlapRule,
    NoWeekendsRule,
    PeriodInput,
    RuleConfig,
    ScheduleAttributes,
    ScheduleCandidate,
    WorkingHoursRule,
)
from ..utils.time_helpers import is_valid_time_format, minutes_range, string_to_time
from .base import BaseService
from .conflict_detection_service import ConflictDetectionService

logger = logging.getLogger(__name__)

RULE_MODELS: Dict[str, Type[RuleConfig]] = {
    "working_hours": WorkingHoursRule,
    "max_duration": MaxDurationRule,
    "no_weekends": NoWeekendsRule,
    "no_overlap": NoOverlapRule,
}

RECURRING_FREQUENCIES = (Frequency.DAILY.value, Frequency.WEEKLY.value, Frequency.MONTHLY.value)


def period_minutes(period: PeriodInput) -> Optional[Interval]:
    """Minute range of a period, or None when its times are missing, malformed or reversed."""
    if not period.start_time or not period.end_time:
        return None
    if not is_valid_time_format(period.start_time) or not is_valid_time_format(period.end_time):
        return None
    start, end = minutes_range(period.start_time, period.end_time)
    if end <= start:
        return None
    return start, end


def candidate_to_schedule(candidate: ScheduleCandidate) -> Schedule:
    """
    Build a transient (unsaved) Schedule from a candidate.

    Periods without a date are anchored on the start date. Periods whose
    times cannot be parsed are left out.
    """
    attributes = candidate.attributes
    owner = candidate.owner

    schedule = Schedule(
        schedulable_type=owner.kind if owner else None,
        schedulable_id=str(owner.id) if owner else None,
        name=attributes.name,
        description=attributes.description,
        start_date=attributes.start_date,
        end_date=attributes.end_date,
        is_recurring=attributes.is_recurring,
        frequency=(attributes.frequency or Frequency.NONE.value).lower(),
        frequency_config=dict(attributes.frequency_config) or None,
        schedule_type=ScheduleType(attributes.schedule_type).value,
        schedule_metadata=dict(attributes.metadata) or None,
        is_active=attributes.is_active,
    )

    for period in candidate.periods:
        if period_minutes(period) is None:
            continue
        schedule.periods.append(
            SchedulePeriod(
                date=period.date or attributes.start_date,
                start_time=string_to_time(period.start_time),
                end_time=string_to_time(period.end_time),
                is_available=period.is_available,
                period_metadata=period.metadata,
            )
        )

    return schedule


def _format_hours(minutes: int) -> str:
    return f"{round(minutes / 60, 1):g}"


class ValidationService(BaseService):
    """
    Service that validates candidate schedules before they are persisted.

    Uses ConflictDetectionService for the no-overlap rule; everything else
    is evaluated in memory.
    """

    def __init__(
        self,
        db: Session,
        config: Optional[SchedulingConfig] = None,
        conflict_service: Optional[ConflictDetectionService] = None,
        today: Callable[[], date] = date.today,
    ):
        """
        Initialize validation service.

        Args:
            db: Database session
            config: Scheduling configuration
            conflict_service: Optional conflict detection service
            today: Clock used by the future-date rule
        """
        super().__init__(db, config)
        self.conflict_service = conflict_service or ConflictDetectionService(db, self.config)
        self.today = today

    @BaseService.measure_operation("validate")
    def validate(self, candidate: ScheduleCandidate) -> None:
        """
        Validate a candidate schedule.

        Args:
            candidate: Draft schedule with owner, attributes, periods and rules

        Raises:
            ScheduleConstructionException: Owner or start date missing
            ScheduleConflictException: The no-overlap rule found conflicts
            InvalidScheduleException: Any other rule failed
        """
        self._check_construction(candidate)

        errors: Dict[str, str] = {}
        errors.update(self.validate_attributes(candidate.attributes))
        errors.update(
            self.validate_periods(
                candidate.periods,
                candidate.attributes.start_date,
                is_recurring=bool(candidate.attributes.is_recurring),
            )
        )
        errors.update(self.validate_business_rules(candidate))

        if errors:
            self.logger.info(f"Schedule for {candidate.owner} rejected with {len(errors)} errors")
            raise InvalidScheduleException(errors)

    # Construction

    def _check_construction(self, candidate: ScheduleCandidate) -> None:
        if candidate.owner is None:
            raise ScheduleConstructionException(
                "A schedule owner must be set before the schedule is validated", field="owner"
            )
        if candidate.attributes.start_date is None:
            raise ScheduleConstructionException(
                "A start date must be set before the schedule is validated", field="start_date"
            )

    # Basic attributes

    def validate_attributes(self, attributes: ScheduleAttributes) -> Dict[str, str]:
        """Date range, future-date and recurrence checks."""
        errors: Dict[str, str] = {}
        settings = self.config.validation
        start_date = attributes.start_date
        end_date = attributes.end_date

        if start_date is None:
            errors["start_date"] = "A start date is required for the schedule"

        if start_date is not None and end_date is not None:
            if end_date <= start_date:
                errors["end_date"] = "The end date must be after the start date"
            if (end_date - start_date).days > settings.max_date_range_days:
                errors["end_date"] = (
                    f"The schedule duration cannot exceed {settings.max_date_range_days} days"
                )

        if settings.require_future_dates and start_date is not None and start_date < self.today():
            errors["start_date"] = (
                "The schedule cannot be created in the past. Please choose a future date"
            )

        if attributes.is_recurring:
            errors.update(self._validate_recurrence(attributes))

        return errors

    def _validate_recurrence(self, attributes: ScheduleAttributes) -> Dict[str, str]:
        errors: Dict[str, str] = {}
        frequency = (attributes.frequency or "").lower()
        config = attributes.frequency_config or {}

        if frequency not in RECURRING_FREQUENCIES:
            errors["frequency"] = (
                f"Unsupported frequency '{attributes.frequency}'. "
                f"Recurring schedules must be daily, weekly or monthly"
            )
            return errors

        if frequency == Frequency.WEEKLY.value:
            days = config.get("days")
            if not days or not isinstance(days, list):
                errors["frequency_config.days"] = "A weekly schedule needs at least one day of the week"
            else:
                unknown = [d for d in days if not isinstance(d, str) or d.lower() not in WEEKDAY_NUMBERS]
                if unknown:
                    errors["frequency_config.days"] = f"Unknown days of the week: {unknown}"

            interval = config.get("interval")
            if interval is not None and (
                isinstance(interval, bool) or not isinstance(interval, int) or interval < 1
            ):
                errors["frequency_config.interval"] = "The week interval must be a whole number of at least 1"

        if frequency == Frequency.MONTHLY.value:
            day_of_month = config.get("day_of_month")
            if day_of_month is not None and (
                isinstance(day_of_month, bool)
                or not isinstance(day_of_month, int)
                or not 1 <= day_of_month <= 31
            ):
                errors["frequency_config.day_of_month"] = "The day of month must be between 1 and 31"

        return errors

    # Periods

    def validate_periods(
        self,
        periods: List[PeriodInput],
        start_date: Optional[date] = None,
        is_recurring: bool = False,
    ) -> Dict[str, str]:
        """
        Presence, count, per-period format and duration, overlap within the candidate.

        Recurring candidates apply every base period on every occurrence, so
        their periods are compared regardless of their stored dates.
        """
        errors: Dict[str, str] = {}
        settings = self.config.validation

        if not periods:
            errors["periods"] = "At least one time period must be defined for the schedule"
            return errors

        if len(periods) > settings.max_periods_per_schedule:
            errors["periods"] = (
                f"Too many time periods. A schedule cannot have more than "
                f"{settings.max_periods_per_schedule} periods"
            )

        for index, period in enumerate(periods):
            errors.update(self._validate_single_period(period, index))

        if not settings.allow_overlapping_periods_within_schedule:
            errors.update(self._check_period_overlaps(periods, start_date, is_recurring))

        return errors

    def _validate_single_period(self, period: PeriodInput, index: int) -> Dict[str, str]:
        errors: Dict[str, str] = {}
        prefix = f"periods.{index}"
        settings = self.config.validation

        if not period.start_time:
            errors[f"{prefix}.start_time"] = "A start time is required for this period"
        elif not is_valid_time_format(period.start_time):
            errors[f"{prefix}.start_time"] = (
                f"Invalid start time format '{period.start_time}'. Please use HH:MM format (e.g., 09:30)"
            )

        if not period.end_time:
            errors[f"{prefix}.end_time"] = "An end time is required for this period"
        elif not is_valid_time_format(period.end_time):
            errors[f"{prefix}.end_time"] = (
                f"Invalid end time format '{period.end_time}'. Please use HH:MM format (e.g., 17:30)"
            )

        if errors:
            return errors

        start, end = minutes_range(period.start_time, period.end_time)
        if end <= start:
            errors[f"{prefix}.end_time"] = (
                f"End time ({period.end_time}) must be after start time ({period.start_time})"
            )
            return errors

        duration = end - start
        if duration < settings.min_period_minutes:
            errors[f"{prefix}.duration"] = (
                f"Period is too short ({duration} minutes). "
                f"Minimum duration is {settings.min_period_minutes} minutes"
            )
        if duration > settings.max_period_minutes:
            errors[f"{prefix}.duration"] = (
                f"Period is too long ({duration} minutes). "
                f"Maximum duration is {settings.max_period_minutes} minutes"
            )

        return errors

    def _check_period_overlaps(
        self, periods: List[PeriodInput], start_date: Optional[date], is_recurring: bool
    ) -> Dict[str, str]:
        errors: Dict[str, str] = {}
        parsed: List[Tuple[int, Optional[date], Interval]] = []
        for index, period in enumerate(periods):
            minutes = period_minutes(period)
            if minutes is not None:
                parsed.append((index, period.date or start_date, minutes))

        for i, (index_a, date_a, (start_a, end_a)) in enumerate(parsed):
            for index_b, date_b, (start_b, end_b) in parsed[i + 1 :]:
                if not is_recurring and date_a != date_b:
                    continue
                if overlaps(start_a, end_a, start_b, end_b):
                    a, b = periods[index_a], periods[index_b]
                    errors[f"periods.{index_a}.overlap"] = (
                        f"Period {index_a} ({a.start_time}-{a.end_time}) overlaps with "
                        f"period {index_b} ({b.start_time}-{b.end_time})"
                    )

        return errors

    # Business rules

    def resolve_rules(self, candidate: ScheduleCandidate) -> Tuple[Dict[str, RuleConfig], Dict[str, str]]:
        """
        Merge default and candidate rules and parse each enabled one.

        Returns:
            (enabled rule configs in evaluation order, errors for malformed configs)
        """
        merged: Dict[str, Any] = {**self.config.default_rules, **candidate.rules}
        resolved: Dict[str, RuleConfig] = {}
        errors: Dict[str, str] = {}

        for name, value in merged.items():
            if name not in KNOWN_RULES:
                self.logger.debug(f"Skipping unknown rule '{name}'")
                continue
            if value is None or value is False:
                continue
            if value is True:
                value = {}
            if not isinstance(value, dict):
                errors[f"rules.{name}"] = "Rule configuration must be a mapping or a boolean"
                continue
            if value.get("enabled", True) is False:
                continue
            try:
                resolved[name] = RULE_MODELS[name].model_validate(value)
            except ValidationError as e:
                details = "; ".join(
                    f"{'.'.join(str(p) for p in err['loc']) or name}: {err['msg']}" for err in e.errors()
                )
                errors[f"rules.{name}"] = f"Invalid configuration for rule '{name}': {details}"

        return resolved, errors

    def validate_business_rules(self, candidate: ScheduleCandidate) -> Dict[str, str]:
        rules, errors = self.resolve_rules(candidate)

        for name, rule in rules.items():
            if isinstance(rule, WorkingHoursRule):
                errors.update(self._validate_working_hours(rule, candidate.periods))
            elif isinstance(rule, MaxDurationRule):
                errors.update(self._validate_max_duration(rule, candidate.periods))
            elif isinstance(rule, NoWeekendsRule):
                errors.update(self._validate_no_weekends(rule, candidate))
            elif isinstance(rule, NoOverlapRule):
                self._validate_no_overlap(rule, candidate)

        return errors

    def _validate_working_hours(self, rule: WorkingHoursRule, periods: List[PeriodInput]) -> Dict[str, str]:
        errors: Dict[str, str] = {}
        work_start, work_end = minutes_range(rule.start, rule.end)

        for index, period in enumerate(periods):
            minutes = period_minutes(period)
            if minutes is None:
                continue
            start, end = minutes
            if start < work_start or end > work_end:
                errors[f"periods.{index}.working_hours"] = (
                    f"Period {period.start_time}-{period.end_time} is outside working hours "
                    f"({rule.start}-{rule.end})"
                )

        return errors

    def _validate_max_duration(self, rule: MaxDurationRule, periods: List[PeriodInput]) -> Dict[str, str]:
        errors: Dict[str, str] = {}

        for index, period in enumerate(periods):
            minutes = period_minutes(period)
            if minutes is None:
                continue
            duration = minutes[1] - minutes[0]
            if duration > rule.minutes:
                errors[f"periods.{index}.max_duration"] = (
                    f"Period {period.start_time}-{period.end_time} is too long "
                    f"({_format_hours(duration)} hours). "
                    f"Maximum allowed is {_format_hours(rule.minutes)} hours"
                )

        return errors

    def _validate_no_weekends(self, rule: NoWeekendsRule, candidate: ScheduleCandidate) -> Dict[str, str]:
        errors: Dict[str, str] = {}

        def blocked(day: date) -> bool:
            weekday = day.weekday()
            return (rule.saturday and weekday == 5) or (rule.sunday and weekday == 6)

        start_date = candidate.attributes.start_date
        if start_date is not None and blocked(start_date):
            errors["start_date"] = (
                f"Schedule cannot start on {start_date.strftime('%A')}. Weekend schedules are not allowed"
            )

        for index, period in enumerate(candidate.periods):
            if period.date is not None and blocked(period.date):
                errors[f"periods.{index}.date"] = (
                    f"Period cannot be scheduled on {period.date.strftime('%A')}. "
                    f"Weekend periods are not allowed"
                )

        return errors

    def _validate_no_overlap(self, rule: NoOverlapRule, candidate: ScheduleCandidate) -> None:
        schedule = candidate_to_schedule(candidate)
        conflicts = self.conflict_service.find_conflicts(
            schedule,
            applies_to=[t.value for t in rule.applies_to],
            buffer_minutes=rule.buffer_minutes,
        )
        if conflicts:
            raise ScheduleConflictException(conflicts, self.build_conflict_message(schedule, conflicts))

    @staticmethod
    def build_conflict_message(schedule: Schedule, conflicts: List[Schedule]) -> str:
        """Human-readable conflict summary naming each conflicting schedule."""
        new_name = schedule.name or "New schedule"

        def describe(conflict: Schedule) -> Tuple[str, Optional[str], Optional[str]]:
            name = conflict.name or f"Schedule #{conflict.id}"
            if not conflict.is_recurring:
                return name, None, None
            frequency = (conflict.frequency or "recurring").capitalize()
            days = (conflict.frequency_config or {}).get("days")
            if conflict.frequency == Frequency.WEEKLY.value and days:
                return name, frequency, ", ".join(str(d).capitalize() for d in days)
            return name, frequency, None

        if len(conflicts) == 1:
            name, frequency, days = describe(conflicts[0])
            message = f"Schedule conflict detected! '{new_name}' conflicts with existing schedule '{name}'."
            if frequency:
                message += f" The conflicting schedule is a {frequency} schedule"
                if days:
                    message += f" on {days}"
                message += "."
            return message

        lines = [
            f"Multiple schedule conflicts detected! '{new_name}' conflicts with "
            f"{len(conflicts)} existing schedules:"
        ]
        for conflict in conflicts:
            name, frequency, days = describe(conflict)
            line = f"• {name}"
            if frequency:
                line += f" ({frequency} - {days})" if days else f" ({frequency})"
            lines.append(line)
        return "\n".join(lines)
