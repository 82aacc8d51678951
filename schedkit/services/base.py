# schedkit/services/base.py
"""
Base Service Pattern for schedkit

Every scheduling service derives from BaseService, which gives it:
- The shared session and configuration
- A commit-or-rollback transaction block
- Per-operation timing, exported to Prometheus
"""

from contextlib import contextmanager
from dataclasses import dataclass
from functools import wraps
import logging
import time
from typing import Any, Callable, Dict, Iterator, Optional, TypeVar, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import SchedulingConfig, get_scheduling_config
from ..core.exceptions import ServiceException
from ..monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

SLOW_OPERATION_SECONDS = 1.0


@dataclass
class OperationStats:
    """Running timing totals for one service operation."""

    count: int = 0
    success_count: int = 0
    total_time: float = 0.0
    min_time: float = float("inf")
    max_time: float = 0.0

    def add(self, elapsed: float, success: bool) -> None:
        self.count += 1
        self.success_count += int(success)
        self.total_time += elapsed
        self.min_time = min(self.min_time, elapsed)
        self.max_time = max(self.max_time, elapsed)

    def summary(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "avg_time": self.total_time / self.count,
            "min_time": self.min_time,
            "max_time": self.max_time,
            "total_time": self.total_time,
            "success_rate": self.success_count / self.count,
            "success_count": self.success_count,
            "failure_count": self.count - self.success_count,
        }


class BaseService:
    """
    Base class for all service layer components.

    Stats are kept per service class, so every instance of a service
    contributes to the same totals.
    """

    _class_metrics: Dict[str, Dict[str, OperationStats]] = {}

    def __init__(self, db: Session, config: Optional[SchedulingConfig] = None):
        """
        Initialize base service.

        Args:
            db: Database session
            config: Scheduling configuration; the process-wide one when omitted
        """
        self.db = db
        self.config = config or get_scheduling_config()
        self.logger = logging.getLogger(self.__class__.__name__)

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """
        Commit the session when the block finishes, roll back when it raises.

        Database errors surface as ServiceException; anything else is re-raised
        unchanged after the rollback.
        """
        try:
            yield self.db
            self.db.commit()
        except SQLAlchemyError as e:
            self.logger.error(f"Transaction failed: {str(e)}")
            self.db.rollback()
            raise ServiceException(f"Database operation failed: {str(e)}") from e
        except Exception:
            self.db.rollback()
            raise

    @staticmethod
    def measure_operation(operation_name: str) -> Callable[[F], F]:
        """
        Decorator timing a service method under operation_name.

        Usage:
            @BaseService.measure_operation("find_conflicts")
            def find_conflicts(self, candidate):
                ...
        """

        def decorator(func: F) -> F:
            @wraps(func)
            def wrapper(self: "BaseService", *args: Any, **kwargs: Any) -> Any:
                started = time.perf_counter()
                error_type: Optional[str] = None
                try:
                    return func(self, *args, **kwargs)
                except Exception as e:
                    error_type = type(e).__name__
                    raise
                finally:
                    self._finish_operation(operation_name, time.perf_counter() - started, error_type)

            return cast(F, wrapper)

        return decorator

    def _finish_operation(self, operation: str, elapsed: float, error_type: Optional[str]) -> None:
        service_name = self.__class__.__name__
        stats = BaseService._class_metrics.setdefault(service_name, {})
        stats.setdefault(operation, OperationStats()).add(elapsed, error_type is None)

        if elapsed > SLOW_OPERATION_SECONDS:
            self.logger.warning(f"Slow operation detected: {operation} took {elapsed:.2f}s")

        try:
            prometheus_metrics.record_service_operation(
                service=service_name,
                operation=operation,
                duration=elapsed,
                status="error" if error_type else "success",
                error_type=error_type,
            )
        except Exception as metrics_error:
            # Metrics collection must not break the operation
            logger.debug("Failed to record metrics for %s: %s", operation, metrics_error)

    def get_metrics(self) -> Dict[str, Dict[str, Any]]:
        """
        Timing summary per measured operation of this service class.

        Returns:
            Mapping of operation name to count, timings and success rate
        """
        stats = BaseService._class_metrics.get(self.__class__.__name__, {})
        return {operation: s.summary() for operation, s in stats.items() if s.count}

    def reset_metrics(self) -> None:
        BaseService._class_metrics.pop(self.__class__.__name__, None)
        self.logger.debug(f"Metrics reset for {self.__class__.__name__}")
