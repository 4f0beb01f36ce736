"""
Domain error taxonomy.

Every error is an HTTPException subclass so services can raise them directly
and FastAPI renders them with their own status code and message.
"""

from typing import Optional

from fastapi import HTTPException, status


class AppError(HTTPException):
    status_code: int = status.HTTP_400_BAD_REQUEST
    default_detail: str = "Bad request"

    def __init__(self, detail: Optional[str] = None, headers: Optional[dict] = None):
        super().__init__(
            status_code=self.status_code,
            detail=detail or self.default_detail,
            headers=headers,
        )


class BadRequestError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Bad request"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Resource not found"


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Resource already exists"


class DuplicateRegistrationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "User is already registered for this event"


class CapacityExceededError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Event is at full capacity"


class AlreadyVerifiedError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Ticket has already been verified"


class InactiveTicketError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Ticket is not active"


class UnauthorizedError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Could not validate credentials"

    def __init__(self, detail: Optional[str] = None):
        super().__init__(detail, headers={"WWW-Authenticate": "Bearer"})


class InvalidCredentialsError(UnauthorizedError):
    default_detail = "Invalid email or password"


class AccountDeactivatedError(UnauthorizedError):
    default_detail = "Account is deactivated"


class ForbiddenError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "You do not have permission to perform this action"


class EmailDeliveryError(Exception):
    """Raised by the mailer when the SMTP transport fails."""
