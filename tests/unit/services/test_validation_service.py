# tests/unit/services/test_validation_service.py
"""
Unit tests for the validation rule pipeline with a mocked conflict service.

2025-01-06 is a Monday; the fixed clock says today is 2025-01-01.
"""

from datetime import date
from unittest.mock import Mock

import pytest
from sqlalchemy.orm import Session

from schedkit.core.config import SchedulingConfig
from schedkit.core.enums import ScheduleType
from schedkit.core.exceptions import (
    InvalidScheduleException,
    ScheduleConflictException,
    ScheduleConstructionException,
)
from schedkit.domain.owner import OwnerRef
from schedkit.services.conflict_detection_service import ConflictDetectionService
from schedkit.services.validation_service import ValidationService, candidate_to_schedule
from tests.utils.schedule_builders import make_candidate, weekly

OWNER = OwnerRef(kind="user", id="42")
MONDAY = date(2025, 1, 6)
SATURDAY = date(2025, 1, 11)


@pytest.fixture
def conflict_service():
    service = Mock(spec=ConflictDetectionService)
    service.find_conflicts.return_value = []
    return service


@pytest.fixture
def make_service(conflict_service):
    def _make(**config_overrides):
        config = SchedulingConfig(_env_file=None, **config_overrides)
        return ValidationService(
            Mock(spec=Session),
            config,
            conflict_service=conflict_service,
            today=lambda: date(2025, 1, 1),
        )

    return _make


@pytest.fixture
def service(make_service):
    return make_service()


def errors_of(service, candidate):
    with pytest.raises(InvalidScheduleException) as exc_info:
        service.validate(candidate)
    return exc_info.value.errors


class TestConstruction:
    def test_missing_owner(self, service, conflict_service):
        with pytest.raises(ScheduleConstructionException) as exc_info:
            service.validate(make_candidate(None, MONDAY))
        assert exc_info.value.details == {"field": "owner"}
        conflict_service.find_conflicts.assert_not_called()

    def test_missing_start_date(self, service):
        with pytest.raises(ScheduleConstructionException) as exc_info:
            service.validate(make_candidate(OWNER, None))
        assert exc_info.value.details == {"field": "start_date"}


class TestValidCandidate:
    def test_passes_and_checks_conflicts_with_defaults(self, service, conflict_service):
        service.validate(make_candidate(OWNER, MONDAY, schedule_type=ScheduleType.APPOINTMENT))

        conflict_service.find_conflicts.assert_called_once()
        _, kwargs = conflict_service.find_conflicts.call_args
        assert kwargs["applies_to"] == ["appointment", "blocked"]
        assert kwargs["buffer_minutes"] is None

    def test_transient_schedule_is_handed_to_conflict_detection(self, service, conflict_service):
        service.validate(make_candidate(OWNER, MONDAY, [("09:00", "10:00"), ("14:00", "15:00")]))

        schedule = conflict_service.find_conflicts.call_args[0][0]
        assert schedule.id is None
        assert schedule.owner == OWNER
        assert [p.date for p in schedule.periods] == [MONDAY, MONDAY]


class TestBasicAttributes:
    def test_past_start_date(self, service):
        errors = errors_of(service, make_candidate(OWNER, date(2024, 12, 31)))
        assert errors["start_date"] == (
            "The schedule cannot be created in the past. Please choose a future date"
        )

    def test_past_dates_allowed_when_disabled(self, make_service):
        service = make_service(validation={"require_future_dates": False})
        service.validate(make_candidate(OWNER, date(2020, 1, 1)))

    def test_end_date_must_follow_start_date(self, service):
        errors = errors_of(service, make_candidate(OWNER, MONDAY, end_date=MONDAY))
        assert errors["end_date"] == "The end date must be after the start date"

    def test_range_limit(self, service):
        errors = errors_of(service, make_candidate(OWNER, MONDAY, end_date=date(2026, 3, 1)))
        assert errors["end_date"] == "The schedule duration cannot exceed 365 days"

    def test_weekly_needs_days(self, service):
        candidate = make_candidate(OWNER, MONDAY, frequency="weekly", frequency_config={})
        assert "frequency_config.days" in errors_of(service, candidate)

    def test_unknown_weekday(self, service):
        candidate = weekly(OWNER, MONDAY, ["monday", "funday"], [("09:00", "10:00")])
        assert "funday" in errors_of(service, candidate)["frequency_config.days"]

    def test_bad_interval(self, service):
        candidate = weekly(OWNER, MONDAY, ["monday"], [("09:00", "10:00")], interval=0)
        assert "frequency_config.interval" in errors_of(service, candidate)

    def test_unsupported_frequency(self, service):
        candidate = make_candidate(OWNER, MONDAY, frequency="yearly")
        assert "frequency" in errors_of(service, candidate)

    def test_day_of_month_range(self, service):
        candidate = make_candidate(
            OWNER, MONDAY, frequency="monthly", frequency_config={"day_of_month": 32}
        )
        assert "frequency_config.day_of_month" in errors_of(service, candidate)


class TestPeriods:
    def test_at_least_one_period(self, service):
        errors = errors_of(service, make_candidate(OWNER, MONDAY, periods=[]))
        assert errors == {"periods": "At least one time period must be defined for the schedule"}

    def test_too_many_periods(self, make_service):
        service = make_service(validation={"max_periods_per_schedule": 1})
        candidate = make_candidate(OWNER, MONDAY, [("09:00", "10:00"), ("11:00", "12:00")])
        assert "periods" in errors_of(service, candidate)

    def test_missing_and_malformed_times(self, service):
        candidate = make_candidate(
            OWNER, MONDAY, [{"start_time": None, "end_time": "10:00"}, ("9am", "25:00")]
        )
        errors = errors_of(service, candidate)

        assert errors["periods.0.start_time"] == "A start time is required for this period"
        assert errors["periods.1.start_time"].startswith("Invalid start time format '9am'")
        assert errors["periods.1.end_time"].startswith("Invalid end time format '25:00'")

    def test_end_before_start(self, service):
        errors = errors_of(service, make_candidate(OWNER, MONDAY, [("10:00", "09:00")]))
        assert errors["periods.0.end_time"] == "End time (09:00) must be after start time (10:00)"

    def test_duration_bounds(self, service):
        candidate = make_candidate(OWNER, MONDAY, [("09:00", "09:10"), ("08:00", "17:00", date(2025, 1, 7))])
        errors = errors_of(service, candidate)

        assert errors["periods.0.duration"] == (
            "Period is too short (10 minutes). Minimum duration is 15 minutes"
        )
        assert errors["periods.1.duration"] == (
            "Period is too long (540 minutes). Maximum duration is 480 minutes"
        )

    def test_overlapping_periods_on_same_date(self, service):
        candidate = make_candidate(OWNER, MONDAY, [("09:00", "10:00"), ("09:30", "10:30", MONDAY)])
        errors = errors_of(service, candidate)
        assert errors["periods.0.overlap"] == (
            "Period 0 (09:00-10:00) overlaps with period 1 (09:30-10:30)"
        )

    def test_periods_on_different_dates_may_overlap(self, service):
        service.validate(
            make_candidate(OWNER, MONDAY, [("09:00", "10:00"), ("09:30", "10:30", date(2025, 1, 7))])
        )

    def test_recurring_periods_overlap_regardless_of_stored_dates(self, service):
        candidate = weekly(
            OWNER,
            MONDAY,
            ["monday"],
            [("09:00", "11:00", MONDAY), ("10:00", "12:00", date(2025, 1, 13))],
            schedule_type=ScheduleType.APPOINTMENT,
        )
        errors = errors_of(service, candidate)
        assert errors["periods.0.overlap"] == (
            "Period 0 (09:00-11:00) overlaps with period 1 (10:00-12:00)"
        )

    def test_recurring_periods_that_do_not_overlap(self, service):
        service.validate(
            weekly(OWNER, MONDAY, ["monday"], [("09:00", "10:00", MONDAY), ("10:00", "11:00", date(2025, 1, 13))])
        )

    def test_overlap_allowed_by_config(self, make_service):
        service = make_service(validation={"allow_overlapping_periods_within_schedule": True})
        service.validate(make_candidate(OWNER, MONDAY, [("09:00", "10:00"), ("09:30", "10:30")]))

    def test_touching_periods_are_fine(self, service):
        service.validate(make_candidate(OWNER, MONDAY, [("09:00", "10:00"), ("10:00", "11:00")]))


class TestBusinessRules:
    def test_working_hours(self, service):
        candidate = make_candidate(
            OWNER, MONDAY, [("18:00", "19:00")], rules={"working_hours": {"start": "09:00", "end": "17:00"}}
        )
        assert errors_of(service, candidate) == {
            "periods.0.working_hours": "Period 18:00-19:00 is outside working hours (09:00-17:00)"
        }

    def test_rule_disabled_by_enabled_flag(self, service):
        candidate = make_candidate(
            OWNER, MONDAY, [("18:00", "19:00")], rules={"working_hours": {"enabled": False}}
        )
        service.validate(candidate)

    def test_max_duration(self, service):
        candidate = make_candidate(OWNER, MONDAY, [("09:00", "12:00")], rules={"max_duration": {"minutes": 120}})
        assert errors_of(service, candidate) == {
            "periods.0.max_duration": (
                "Period 09:00-12:00 is too long (3 hours). Maximum allowed is 2 hours"
            )
        }

    def test_max_duration_fractional_hours(self, service):
        candidate = make_candidate(OWNER, MONDAY, [("09:00", "11:30")], rules={"max_duration": {"minutes": 90}})
        message = errors_of(service, candidate)["periods.0.max_duration"]
        assert "(2.5 hours)" in message
        assert "Maximum allowed is 1.5 hours" in message

    def test_no_weekends_defaults(self, service):
        candidate = make_candidate(
            OWNER, SATURDAY, [("09:00", "10:00"), ("09:00", "10:00", date(2025, 1, 12))], rules={"no_weekends": True}
        )
        errors = errors_of(service, candidate)
        assert errors["start_date"] == "Schedule cannot start on Saturday. Weekend schedules are not allowed"
        assert errors["periods.1.date"] == (
            "Period cannot be scheduled on Sunday. Weekend periods are not allowed"
        )

    def test_no_weekends_can_allow_saturday(self, service):
        candidate = make_candidate(OWNER, SATURDAY, rules={"no_weekends": {"saturday": False}})
        service.validate(candidate)

    def test_malformed_rule_config_is_reported(self, service):
        candidate = make_candidate(OWNER, MONDAY, rules={"max_duration": True, "working_hours": 5})
        errors = errors_of(service, candidate)
        assert "rules.max_duration" in errors
        assert errors["rules.working_hours"] == "Rule configuration must be a mapping or a boolean"

    def test_unknown_rules_are_ignored(self, service):
        service.validate(make_candidate(OWNER, MONDAY, rules={"lunch_break": {"start": "12:00"}}))

    def test_errors_are_aggregated(self, service):
        candidate = make_candidate(
            OWNER,
            date(2024, 6, 1),
            [("09:00", "09:05"), ("18:00", "19:00")],
            rules={"working_hours": {"start": "09:00", "end": "17:00"}},
        )
        with pytest.raises(InvalidScheduleException) as exc_info:
            service.validate(candidate)

        exc = exc_info.value
        assert exc.error_count == 3
        assert set(exc.errors) == {"start_date", "periods.0.duration", "periods.1.working_hours"}
        assert exc.message.startswith("Schedule validation failed with 3 errors:")


class TestNoOverlapRule:
    def _existing(self, name="Standup", schedule_id="existing-1", **kwargs):
        schedule = candidate_to_schedule(
            make_candidate(OWNER, MONDAY, schedule_type=ScheduleType.APPOINTMENT, name=name, **kwargs)
        )
        schedule.id = schedule_id
        return schedule

    def test_conflict_raises_immediately(self, service, conflict_service):
        existing = self._existing()
        conflict_service.find_conflicts.return_value = [existing]

        with pytest.raises(ScheduleConflictException) as exc_info:
            service.validate(make_candidate(OWNER, MONDAY, name="Review"))

        exc = exc_info.value
        assert exc.conflicting_schedules == [existing]
        assert exc.message == (
            "Schedule conflict detected! 'Review' conflicts with existing schedule 'Standup'."
        )

    def test_conflict_wins_over_other_errors(self, service, conflict_service):
        conflict_service.find_conflicts.return_value = [self._existing()]
        with pytest.raises(ScheduleConflictException):
            service.validate(make_candidate(OWNER, MONDAY, [("09:00", "09:05")]))

    def test_recurring_conflicts_are_described(self, service, conflict_service):
        first = self._existing(
            name="Office hours", frequency="weekly", frequency_config={"days": ["monday", "friday"]}
        )
        second = self._existing(name=None, schedule_id="existing-2")
        conflict_service.find_conflicts.return_value = [first, second]

        with pytest.raises(ScheduleConflictException) as exc_info:
            service.validate(make_candidate(OWNER, MONDAY))

        assert exc_info.value.message.split("\n") == [
            "Multiple schedule conflicts detected! 'New schedule' conflicts with 2 existing schedules:",
            "• Office hours (Weekly - Monday, Friday)",
            f"• Schedule #{second.id}",
        ]

    def test_candidate_rule_overrides_default(self, service, conflict_service):
        service.validate(
            make_candidate(OWNER, MONDAY, rules={"no_overlap": {"applies_to": ["custom"], "buffer_minutes": 10}})
        )
        _, kwargs = conflict_service.find_conflicts.call_args
        assert kwargs == {"applies_to": ["custom"], "buffer_minutes": 10}

    @pytest.mark.parametrize("value", [False, None, {"enabled": False}])
    def test_rule_can_be_disabled(self, service, conflict_service, value):
        service.validate(make_candidate(OWNER, MONDAY, rules={"no_overlap": value}))
        conflict_service.find_conflicts.assert_not_called()

    def test_default_disabled_by_config(self, make_service, conflict_service):
        service = make_service(default_rules={})
        service.validate(make_candidate(OWNER, MONDAY))
        conflict_service.find_conflicts.assert_not_called()
