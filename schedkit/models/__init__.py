from .schedule import Schedule, ScheduleOccurrence, SchedulePeriod

__all__ = ["Schedule", "SchedulePeriod", "ScheduleOccurrence"]
