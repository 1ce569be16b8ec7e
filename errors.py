"""Error taxonomy shared by the coordinator, the access guard and the HTTP layer."""

from fastapi import status


class ServiceError(Exception):
    """Base error. Carries the HTTP status it maps to and a caller-safe message."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Something went wrong"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidIdentifier(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid id"


class InvalidInput(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Missing required field"


class NotFound(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class DateConflict(ServiceError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Room already booked for this date"


class Forbidden(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden access"


class Unauthorized(ServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized access"


class BookingFailed(ServiceError):
    default_message = "Booking failed"


class StoreUnavailable(ServiceError):
    default_message = "Database unavailable, please try again later"
