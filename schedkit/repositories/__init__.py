"""
Repository Pattern Implementation for schedkit

Key Components:
- IScheduleStore: The store contract the scheduling engine depends on
- BaseRepository: Foundation for repositories with common lookups
- ScheduleRepository: SQLAlchemy implementation of IScheduleStore
- RepositoryFactory: Factory for creating repository instances

Usage:
    from schedkit.repositories import RepositoryFactory

    repository = RepositoryFactory.create_schedule_repository(db)
    schedules = repository.load_active_schedules(owner, (start, end))
"""

from .base_repository import BaseRepository, IRepository
from .factory import RepositoryFactory
from .schedule_repository import IScheduleStore, ScheduleRepository

__all__ = [
    "BaseRepository",
    "IRepository",
    "IScheduleStore",
    "RepositoryFactory",
    "ScheduleRepository",
]
