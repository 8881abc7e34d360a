"""Typed errors raised by the booking core.

Callers branch on the class (or ``code``) rather than on message text:

* ``ValidationFailed``: the input itself is malformed, nothing was touched.
* ``GuardViolation`` subclasses: a business rule refused the operation. State is
  unchanged and retrying the same call will fail the same way.
* ``TransientStorageError``: the database gave up (lock timeout, busy, deadlock).
  The transaction rolled back; re-fetch the booking before trying again.
* ``PaymentProviderError``: Stripe failed while opening a card checkout. The
  payment was not recorded and the call can be repeated.
"""

from __future__ import annotations

from contextlib import contextmanager

from django.db import OperationalError


class BookingError(Exception):
    code = "booking_error"
    status_code = 400
    retryable = False

    def __init__(self, message: str = "", **context):
        super().__init__(message or self.default_message())
        self.context = context

    @classmethod
    def default_message(cls) -> str:
        return cls.__name__

    @property
    def message(self) -> str:
        return str(self)


class ValidationFailed(BookingError):
    code = "invalid"


class GuardViolation(BookingError):
    code = "guard_violation"
    status_code = 409


class InvalidDateRangeError(GuardViolation):
    code = "invalid_date_range"
    status_code = 400

    @classmethod
    def default_message(cls) -> str:
        return "Check-out must be after check-in."


class MinimumStayError(GuardViolation):
    code = "minimum_stay"
    status_code = 400


class CapacityError(GuardViolation):
    code = "capacity_exceeded"
    status_code = 400


class AvailabilityError(GuardViolation):
    code = "unavailable"

    @classmethod
    def default_message(cls) -> str:
        return "The property is already booked for the selected dates."


class InvalidTransitionError(GuardViolation):
    code = "invalid_transition"


class AmountExceedsPendingError(GuardViolation):
    code = "amount_exceeds_pending"


class ImmutableRecordError(BookingError):
    code = "immutable_record"
    status_code = 409


class TransientStorageError(BookingError):
    code = "storage_unavailable"
    status_code = 503
    retryable = True


class PaymentProviderError(BookingError):
    code = "payment_provider_unavailable"
    status_code = 502
    retryable = True

    @classmethod
    def default_message(cls) -> str:
        return "The card payment provider could not be reached. Please try again."


InvalidDateRange = InvalidDateRangeError
MinimumStayViolation = MinimumStayError
InvalidTransition = InvalidTransitionError


@contextmanager
def storage_guard(operation: str):
    """Re-raise database lock/busy failures as ``TransientStorageError``."""
    try:
        yield
    except OperationalError as exc:
        raise TransientStorageError(f"{operation} could not complete: {exc}", operation=operation) from exc
