"""Typed failures raised by the booking core.

Each class carries the HTTP status it maps to and a generic message that is
safe to show to clients. Details go to the log, not the response.
"""

from fastapi import status


class BookingError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    public_message = 'Unable to process booking request.'

    def __init__(self, detail: str | None = None, public_message: str | None = None):
        super().__init__(detail or public_message or self.public_message)
        self.detail = detail or self.public_message
        if public_message is not None:
            self.public_message = public_message


class BookingValidationError(BookingError):
    status_code = status.HTTP_400_BAD_REQUEST
    public_message = 'Validation failed.'


class NotFoundError(BookingError):
    status_code = status.HTTP_404_NOT_FOUND
    public_message = 'Not found.'


class ConflictError(BookingError):
    status_code = status.HTTP_409_CONFLICT
    public_message = 'Request conflicts with an existing booking.'


class ConfigurationError(BookingError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    public_message = 'Booking is temporarily unavailable.'


class InfrastructureError(BookingError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    public_message = 'Booking is temporarily unavailable.'


class ValidationFailed(BookingValidationError):
    pass


class OutsideBusinessHours(BookingValidationError):
    public_message = 'The requested time is outside business hours.'


class ServiceNotFound(NotFoundError):
    public_message = 'Service not found or inactive.'


class SlotAlreadyBooked(ConflictError):
    public_message = 'This time slot is no longer available.'


class DateBlocked(ConflictError):
    public_message = 'This date is not available for booking.'


class InvalidBusinessHours(ConfigurationError):
    pass


class StorageUnavailable(InfrastructureError):
    pass


class RequestRejected(BookingError):
    status_code = status.HTTP_403_FORBIDDEN
    public_message = 'Request rejected.'


class RateLimited(BookingError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    public_message = 'Too many requests. Please wait a moment and try again.'


class CsrfRejected(RequestRejected):
    public_message = 'Invalid or missing CSRF token.'
