# schedkit/core/exceptions.py
"""
Domain-specific exceptions for schedkit.

Bad input and business conflicts are separate exception families so callers
can tell a recoverable validation report from an authoritative "this time
is taken" answer. Each exception converts to a FastAPI HTTPException for
callers that expose the engine over HTTP.
"""

from typing import TYPE_CHECKING, Any, Dict, List, Optional

from fastapi import HTTPException, status

if TYPE_CHECKING:
    from ..models.schedule import Schedule

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "code": self.code,
            "details": self.details,
        }

    def to_http_exception(self) -> HTTPException:
        return HTTPException(status_code=self.status_code, detail=self.to_dict())


class ValidationException(DomainException):
    """Raised when business validation fails."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT


class ServiceException(DomainException):
    """Raised when a service operation fails."""


# Specific scheduling exceptions


class ScheduleConstructionException(ValidationException):
    """
    Raised when a candidate schedule is structurally unusable.

    Happens before any validation rule runs: the candidate has no owner or
    no start date.
    """

    def __init__(self, message: str, *, field: Optional[str] = None):
        super().__init__(
            message=message,
            code="SCHEDULE_CONSTRUCTION_ERROR",
            details={"field": field} if field else {},
        )


class InvalidScheduleException(ValidationException):
    """Aggregated report of every failed non-conflict validation rule."""

    status_code = HTTP_422_UNPROCESSABLE

    def __init__(self, errors: Dict[str, str], message: Optional[str] = None):
        self.errors = dict(errors)
        super().__init__(
            message=message or self.build_message(self.errors),
            code="INVALID_SCHEDULE",
            details={"errors": self.errors, "error_count": len(self.errors)},
        )

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @staticmethod
    def build_message(errors: Dict[str, str]) -> str:
        count = len(errors)
        summary = (
            "Schedule validation failed with 1 error:"
            if count == 1
            else f"Schedule validation failed with {count} errors:"
        )
        lines = [f"• {field}: {message}" for field, message in errors.items()]
        return "\n".join([summary, *lines])


class ScheduleConflictException(ConflictException):
    """
    Raised the moment the no-overlap rule finds a collision.

    Carries every conflicting schedule, not just the first one.
    """

    def __init__(
        self,
        conflicting_schedules: List["Schedule"],
        message: Optional[str] = None,
    ):
        self.conflicting_schedules = list(conflicting_schedules)
        super().__init__(
            message=message or "Schedule conflicts detected",
            code="SCHEDULE_CONFLICT",
            details={
                "conflicting_schedule_ids": [s.id for s in self.conflicting_schedules],
                "conflict_count": len(self.conflicting_schedules),
            },
        )

    @property
    def conflict_count(self) -> int:
        return len(self.conflicting_schedules)


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
