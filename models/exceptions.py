"""
Typed booking errors.

Model functions raise these; the API error handler turns them into JSON
responses with the status code, machine-readable code, and retry hint
attached to each class.
"""


class BookingError(Exception):
    """Base class for every failure surfaced by the booking engine."""

    code = 'booking_error'
    http_status = 400
    retryable = False

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        payload = {'code': self.code, 'retryable': self.retryable}
        if self.details:
            payload['details'] = self.details
        return payload


class ValidationError(BookingError):
    """Malformed input. Rejected before any store access."""

    code = 'validation_error'
    http_status = 400


class InvalidIntervalError(ValidationError):
    """The requested interval can never be booked (client bug, not a race)."""

    code = 'invalid_interval'


class ConflictError(BookingError):
    """The interval was just taken. Re-fetch availability and try again."""

    code = 'slot_taken'
    http_status = 409
    retryable = True


class NotFoundError(BookingError):
    """Unknown booking or resource."""

    code = 'not_found'
    http_status = 404


class IllegalTransitionError(BookingError):
    """The requested status change is not in the transition table."""

    code = 'illegal_transition'
    http_status = 409


class TooManyPendingError(BookingError):
    """The phone number already holds the maximum of unconfirmed requests."""

    code = 'too_many_pending'
    http_status = 429


class TooManyRequestsError(TooManyPendingError):
    """Too many booking requests from one address within the window."""

    code = 'too_many_requests'


class BlockedIntervalError(BookingError):
    """Staff closed the resource for this day or time."""

    code = 'time_blocked'
    http_status = 409
