from typing import Any


class BookingError(Exception):
    """Base class for lifecycle and pricing failures.

    `record` carries the unmodified booking/transaction so callers can show
    what is still in effect after the rejection.
    """

    code = "booking_error"
    status_code = 400

    def __init__(self, message: str, record: dict[str, Any] | None = None):
        self.message = message
        self.record = record
        super().__init__(message)


class UnresolvableLocation(BookingError):
    code = "unresolvable_location"
    status_code = 400

    def __init__(self, location: str, message: str | None = None, record: dict[str, Any] | None = None):
        self.location = location
        super().__init__(message or f"Location '{location}' is not in the location table", record)


class InvalidPassengerCount(BookingError):
    code = "invalid_passenger_count"
    status_code = 400

    def __init__(self, passenger_count: int, minimum: int, maximum: int, record: dict[str, Any] | None = None):
        self.passenger_count = passenger_count
        self.minimum = minimum
        self.maximum = maximum
        super().__init__(
            f"Passenger count {passenger_count} is outside the allowed range {minimum}-{maximum}",
            record
        )


class IllegalTransition(BookingError):
    code = "illegal_transition"
    status_code = 409

    def __init__(
        self,
        current: str,
        event: str,
        message: str | None = None,
        record: dict[str, Any] | None = None
    ):
        self.current = current
        self.event = event
        super().__init__(message or f"Cannot {event} a booking in status '{current}'", record)


class MissingAssignment(BookingError):
    code = "missing_assignment"
    status_code = 400


class InsufficientFunds(BookingError):
    code = "insufficient_funds"
    status_code = 402


class DuplicateApproval(BookingError):
    code = "duplicate_approval"
    status_code = 409


class PermissionDenied(BookingError):
    code = "permission_denied"
    status_code = 403


class MissingRejectionReason(BookingError):
    code = "missing_rejection_reason"
    status_code = 400


class ConfirmationRequired(BookingError):
    code = "confirmation_required"
    status_code = 400


class NotFoundError(BookingError):
    code = "not_found"
    status_code = 404
    resource = "Record"

    def __init__(self, resource_id: Any, record: dict[str, Any] | None = None):
        self.resource_id = resource_id
        super().__init__(f"{self.resource} {resource_id} not found", record)


class BookingNotFound(NotFoundError):
    resource = "Booking"


class TransactionNotFound(NotFoundError):
    resource = "Transaction"


class ExperienceNotFound(NotFoundError):
    resource = "Experience"


class UserNotFound(NotFoundError):
    resource = "User"


class HelicopterNotFound(NotFoundError):
    resource = "Helicopter"


class AddonNotFound(NotFoundError):
    resource = "Add-on"
