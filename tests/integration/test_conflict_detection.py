# tests/integration/test_conflict_detection.py
"""
End-to-end conflict detection through ScheduleService and the SQLite store.

2025-01-06 is a Monday; the service clock is fixed at 2025-01-01.
"""

from datetime import date

import pytest

from schedkit.core.config import SchedulingConfig
from schedkit.core.enums import ScheduleType
from schedkit.core.exceptions import ScheduleConflictException
from schedkit.models.schedule import Schedule
from schedkit.services import ScheduleService
from tests.conftest import TODAY
from tests.utils.schedule_builders import make_candidate, weekly

pytestmark = pytest.mark.integration

MONDAY = date(2025, 1, 6)


def appointment(owner, start_date=MONDAY, periods=(("10:00", "11:00"),), **kwargs):
    return make_candidate(owner, start_date, periods, schedule_type=ScheduleType.APPOINTMENT, **kwargs)


class TestOverlapPolicy:
    def test_weekly_schedule_blocks_daily_candidate(self, schedule_service, owner):
        schedule_service.create_schedule(
            weekly(
                owner,
                MONDAY,
                ["monday", "wednesday", "friday"],
                [("08:00", "12:00"), ("14:00", "18:00")],
                schedule_type=ScheduleType.APPOINTMENT,
                end_date=date(2025, 6, 30),
            )
        )

        with pytest.raises(ScheduleConflictException) as exc_info:
            schedule_service.create_schedule(
                appointment(owner, MONDAY, [("14:00", "18:00")], frequency="daily", end_date=date(2025, 1, 31))
            )
        assert exc_info.value.conflict_count == 1

        sunday_only = schedule_service.create_schedule(
            weekly(
                owner,
                date(2025, 1, 12),
                ["sunday"],
                [("14:00", "18:00")],
                schedule_type=ScheduleType.APPOINTMENT,
                end_date=date(2025, 6, 30),
            )
        )
        assert sunday_only.id is not None

    def test_availability_and_appointment_coexist(self, schedule_service, owner):
        schedule_service.create_schedule(
            make_candidate(owner, MONDAY, [("09:00", "17:00")], schedule_type=ScheduleType.AVAILABILITY)
        )
        schedule_service.create_schedule(appointment(owner))

        assert len(schedule_service.get_schedules(owner)) == 2

    def test_blocked_time_rejects_appointments(self, schedule_service, owner, db):
        blocked = schedule_service.create_schedule(
            make_candidate(owner, MONDAY, [("12:00", "13:00")], schedule_type=ScheduleType.BLOCKED, name="Lunch")
        )

        with pytest.raises(ScheduleConflictException) as exc_info:
            schedule_service.create_schedule(appointment(owner, periods=[("12:30", "13:30")], name="Call"))

        assert [s.id for s in exc_info.value.conflicting_schedules] == [blocked.id]
        assert exc_info.value.message == (
            "Schedule conflict detected! 'Call' conflicts with existing schedule 'Lunch'."
        )
        assert db.query(Schedule).count() == 1

    def test_touching_appointments_are_allowed(self, schedule_service, owner):
        schedule_service.create_schedule(appointment(owner))
        schedule_service.create_schedule(appointment(owner, periods=[("11:00", "12:00")]))

    def test_other_owners_do_not_conflict(self, schedule_service, owner, other_owner):
        schedule_service.create_schedule(appointment(owner))
        schedule_service.create_schedule(appointment(other_owner))

    def test_custom_schedules_overlap_freely(self, schedule_service, owner):
        schedule_service.create_schedule(appointment(owner))
        schedule_service.create_schedule(make_candidate(owner, MONDAY, [("10:00", "11:00")]))
        schedule_service.create_schedule(make_candidate(owner, MONDAY, [("10:00", "11:00")]))

    def test_custom_opt_in(self, schedule_service, owner):
        schedule_service.create_schedule(make_candidate(owner, MONDAY, [("10:00", "11:00")]))

        with pytest.raises(ScheduleConflictException):
            schedule_service.create_schedule(
                make_candidate(
                    owner, MONDAY, [("10:30", "11:30")], rules={"no_overlap": {"applies_to": ["custom"]}}
                )
            )

    def test_all_conflicts_are_reported(self, schedule_service, owner):
        schedule_service.create_schedule(appointment(owner, periods=[("09:00", "10:00")]))
        schedule_service.create_schedule(
            make_candidate(owner, MONDAY, [("10:00", "11:00")], schedule_type=ScheduleType.BLOCKED)
        )

        with pytest.raises(ScheduleConflictException) as exc_info:
            schedule_service.create_schedule(appointment(owner, periods=[("09:30", "10:30")]))

        assert exc_info.value.conflict_count == 2
        assert exc_info.value.message.startswith("Multiple schedule conflicts detected!")


class TestBufferAndSwitches:
    def test_buffer_rule_option(self, schedule_service, owner):
        schedule_service.create_schedule(appointment(owner))

        with pytest.raises(ScheduleConflictException):
            schedule_service.create_schedule(
                appointment(owner, periods=[("11:00", "12:00")], rules={"no_overlap": {"buffer_minutes": 15}})
            )

    def test_config_buffer(self, db, owner):
        service = ScheduleService(
            db, SchedulingConfig(_env_file=None, conflict_detection={"buffer_minutes": 15}), today=lambda: TODAY
        )
        service.create_schedule(appointment(owner))

        with pytest.raises(ScheduleConflictException):
            service.create_schedule(appointment(owner, periods=[("11:10", "12:00")]))
        service.create_schedule(appointment(owner, periods=[("11:15", "12:00")]))

    def test_detection_disabled_globally(self, db, owner):
        service = ScheduleService(
            db, SchedulingConfig(_env_file=None, conflict_detection={"enabled": False}), today=lambda: TODAY
        )
        service.create_schedule(appointment(owner))
        service.create_schedule(appointment(owner))

    def test_deactivated_schedules_stop_conflicting(self, schedule_service, owner):
        first = schedule_service.create_schedule(appointment(owner))
        schedule_service.deactivate_schedule(first.id)
        schedule_service.create_schedule(appointment(owner))


class TestExistingSchedules:
    def test_find_schedule_conflicts_excludes_itself(self, schedule_service, owner):
        first = schedule_service.create_schedule(appointment(owner))
        second = schedule_service.create_schedule(appointment(owner, rules={"no_overlap": False}))

        assert schedule_service.find_schedule_conflicts(first) == [second]
        assert schedule_service.find_schedule_conflicts(second) == [first]
        assert schedule_service.has_schedule_conflict(first) is True

    def test_transient_schedule(self, schedule_service, owner):
        schedule_service.create_schedule(appointment(owner))
        draft = schedule_service.build_schedule(appointment(owner, periods=[("10:30", "11:30")]))

        assert draft.id is None
        assert schedule_service.has_schedule_conflict(draft) is True
