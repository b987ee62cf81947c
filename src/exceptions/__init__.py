from .custom import (
    BookingError, UnresolvableLocation, InvalidPassengerCount, IllegalTransition,
    MissingAssignment, InsufficientFunds, DuplicateApproval, PermissionDenied,
    MissingRejectionReason, ConfirmationRequired, NotFoundError, BookingNotFound,
    TransactionNotFound, ExperienceNotFound, UserNotFound, HelicopterNotFound,
    AddonNotFound
)
from .handlers import booking_error_handler

__all__ = [
    "BookingError",
    "UnresolvableLocation",
    "InvalidPassengerCount",
    "IllegalTransition",
    "MissingAssignment",
    "InsufficientFunds",
    "DuplicateApproval",
    "PermissionDenied",
    "MissingRejectionReason",
    "ConfirmationRequired",
    "NotFoundError",
    "BookingNotFound",
    "TransactionNotFound",
    "ExperienceNotFound",
    "UserNotFound",
    "HelicopterNotFound",
    "AddonNotFound",
    "booking_error_handler"
]
