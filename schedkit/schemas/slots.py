"""Result schemas for the availability engine."""

import datetime

from pydantic import ConfigDict

from ._strict_base import StrictModel

DateType = datetime.date
TimeType = datetime.time


class TimeSlot(StrictModel):
    """Fixed-duration window labelled available or occupied."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    start_time: TimeType
    end_time: TimeType
    is_available: bool
    buffer_minutes: int = 0


class DatedTimeSlot(TimeSlot):
    """A slot paired with the calendar date it was found on."""

    date: DateType
