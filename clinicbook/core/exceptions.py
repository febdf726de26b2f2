"""
Error taxonomy of the scheduling core.

Every failure raised by the services carries a stable ``kind`` plus a
human-readable message. The HTTP layer turns them into
``{"error": kind, "message": message}`` bodies.
"""
from enum import Enum
from fastapi import status


class ErrorKind(str, Enum):
    NOT_FOUND = "NotFound"
    UNAUTHORIZED = "Unauthorized"
    SLOT_UNAVAILABLE = "SlotUnavailable"
    INVALID_TRANSITION = "InvalidTransition"
    IMMUTABLE = "Immutable"
    CANCELLATION_WINDOW_EXPIRED = "CancellationWindowExpired"
    INVALID_ARGUMENT = "InvalidArgument"
    RATE_LIMITED = "RateLimited"
    INTERNAL = "Internal"


class SchedulingError(Exception):
    kind: ErrorKind = ErrorKind.INTERNAL
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "An unexpected error occurred"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.kind.value, "message": self.message}


class NotFoundError(SchedulingError):
    kind = ErrorKind.NOT_FOUND
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "The requested resource was not found"


class UnauthorizedError(SchedulingError):
    # One message for bad token, wrong role and wrong owner alike
    kind = ErrorKind.UNAUTHORIZED
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid or expired token. Access denied."

    def __init__(self):
        super().__init__(self.default_message)


class SlotUnavailableError(SchedulingError):
    kind = ErrorKind.SLOT_UNAVAILABLE
    status_code = status.HTTP_409_CONFLICT
    default_message = "Doctor not available at the specified time"


class InvalidTransitionError(SchedulingError):
    kind = ErrorKind.INVALID_TRANSITION
    status_code = status.HTTP_409_CONFLICT
    default_message = "Illegal appointment status change"


class ImmutableError(SchedulingError):
    kind = ErrorKind.IMMUTABLE
    status_code = status.HTTP_409_CONFLICT
    default_message = "Cannot update completed appointment"


class CancellationWindowExpiredError(SchedulingError):
    kind = ErrorKind.CANCELLATION_WINDOW_EXPIRED
    status_code = status.HTTP_409_CONFLICT
    default_message = "Appointments can only be cancelled more than two hours in advance"


class InvalidArgumentError(SchedulingError):
    kind = ErrorKind.INVALID_ARGUMENT
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "Invalid argument"


class RateLimitedError(SchedulingError):
    kind = ErrorKind.RATE_LIMITED
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Too many requests. Please try again later."


class InternalError(SchedulingError):
    pass
