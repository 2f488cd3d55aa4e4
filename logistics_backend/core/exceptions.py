# logistics_backend/core/exceptions.py
"""
Domain error taxonomy.

Every error is an HTTPException so routers and dependencies can let it
propagate; the handler registered in core.middleware renders it as an
ErrorResponse with a stable ``error_code``.
"""
from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class LogisticsError(HTTPException):
    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "logistics_error"
    transient = False

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None
    ):
        super().__init__(status_code=self.status_code, detail=message, headers=headers)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class ValidationError(LogisticsError):
    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "validation_error"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, {"field": field} if field else None)
        self.field = field


class NotFoundError(LogisticsError):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "not_found"

    def __init__(self, resource: str, identifier: Any = None):
        message = f"{resource} not found"
        if identifier is not None:
            message = f"{resource} {identifier} not found"
        super().__init__(message, {"resource": resource, "identifier": identifier})


class InvalidTransitionError(LogisticsError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "invalid_transition"

    def __init__(self, current: str, requested: str):
        super().__init__(
            f"Cannot transition from {current} to {requested}",
            {"current_status": current, "requested_status": requested}
        )
        self.current = current
        self.requested = requested


class InvalidStateError(LogisticsError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "invalid_state"


class IneligibleDriverError(LogisticsError):
    status_code = 422
    error_code = "ineligible_driver"


class DuplicatePaymentError(LogisticsError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "duplicate_payment"


class InsufficientBalanceError(LogisticsError):
    status_code = 422
    error_code = "insufficient_balance"


class ConflictError(LogisticsError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "conflict"


class UnauthenticatedError(LogisticsError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error_code = "unauthenticated"

    def __init__(self, message: str = "Could not validate credentials"):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class ForbiddenError(LogisticsError):
    status_code = status.HTTP_403_FORBIDDEN
    error_code = "forbidden"

    def __init__(self, message: str = "Not enough permissions"):
        super().__init__(message)


class AccountLockedError(LogisticsError):
    status_code = status.HTTP_423_LOCKED
    error_code = "account_locked"

    def __init__(self, message: str = "Account is temporarily locked due to multiple failed login attempts"):
        super().__init__(message)


class AccountInactiveError(LogisticsError):
    status_code = status.HTTP_403_FORBIDDEN
    error_code = "account_inactive"

    def __init__(self, message: str = "Account is not active"):
        super().__init__(message)


class ConcurrentModificationError(LogisticsError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "concurrent_modification"
    transient = True

    def __init__(self, resource: str):
        super().__init__(
            f"{resource} was modified by another request, retry with fresh data",
            {"resource": resource}
        )


class PersistenceError(LogisticsError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error_code = "persistence_error"
    transient = True

    def __init__(self, message: str = "Storage temporarily unavailable"):
        super().__init__(message)
