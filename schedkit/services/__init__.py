"""
Service layer for schedkit.

Services hold the scheduling engine: conflict detection, the validation
rule pipeline, the availability engine and the schedule lifecycle. Each
takes a SQLAlchemy session and an optional SchedulingConfig; stores and
collaborating services can be injected for testing.
"""

from .availability_service import AvailabilityService
from .base import BaseService
from .conflict_detection_service import ConflictDetectionService
from .schedule_service import ScheduleService
from .validation_service import ValidationService

__all__ = [
    "AvailabilityService",
    "BaseService",
    "ConflictDetectionService",
    "ScheduleService",
    "ValidationService",
]
