"""
Domain exceptions for the reservation and enrollment core.

Services raise these; the API layer turns them into HTTP responses through a
single exception handler (see academy.main). None of them is retried.
"""

from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status


class DomainError(Exception):
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

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationError(DomainError):
    """Malformed or out-of-policy input (lead time, interval, opening hours)."""

    status_code = status.HTTP_400_BAD_REQUEST


class AuthenticationError(DomainError):
    """No usable identity on the request."""

    status_code = status.HTTP_401_UNAUTHORIZED


class AuthorizationError(DomainError):
    """Delegation rule failed."""

    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(DomainError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(DomainError):
    """Overlap, capacity or state conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT


class ReservationConflictError(ConflictError):
    """One or more requested intervals overlap a blocking reservation."""

    def __init__(self, conflicts: List[int], court: str) -> None:
        self.conflicts = conflicts
        super().__init__(
            message=f"{len(conflicts)} requested slot(s) on {court} are no longer available",
            code="RESERVATION_CONFLICT",
            details={"court": court, "conflicts": conflicts},
        )


class CapacityExceededError(ConflictError):
    def __init__(self, competition_id: int, max_participants: int) -> None:
        super().__init__(
            message="Competition is full",
            code="CAPACITY_EXCEEDED",
            details={"competition_id": competition_id, "max_participants": max_participants},
        )


class DuplicateEnrollmentError(ConflictError):
    def __init__(self, competition_id: int, profile_id: str) -> None:
        super().__init__(
            message="Participant is already enrolled in this competition",
            code="DUPLICATE_ENROLLMENT",
            details={"competition_id": competition_id, "profile_id": profile_id},
        )


class InvalidTransitionError(ConflictError):
    def __init__(self, action: str, status_value: str, confirmed: bool) -> None:
        super().__init__(
            message=f"Cannot {action.replace('_', ' ')} a reservation in state '{status_value}'",
            code="INVALID_TRANSITION",
            details={"action": action, "status": status_value, "manager_confirmed": confirmed},
        )
