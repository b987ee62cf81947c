"""
Booking Lifecycle Module

Charter bookings from request to completed flight:

- Transport flights between two known locations and catalogue experiences,
  stored as one booking record tagged by type
- Admin review: approve as requested or propose a priced revision
- Client response to a revision (accept or decline)
- Crew assignment (pilot and helicopter) and completion
- Payment from the account balance or by bank transfer, with refunds on
  cancellation
- Audit trail of every lifecycle event and revision proposal

Key Components:
- lifecycle.py: the explicit transition table and role checks
- booking_service.py: BookingService applying transitions and their side effects
- router.py: client-facing FastAPI endpoints
- schemas.py: Pydantic models and enums for bookings

Admin endpoints live in src.admin and call the same BookingService.
"""

from .router import router
from .booking_service import BookingService
from .lifecycle import TRANSITIONS, TERMINAL_STATUSES, PAYABLE_STATUSES, assert_transition, available_events
from .schemas import (
    BookingCreate, TransportBookingCreate, ExperienceBookingCreate, BookingDetail,
    TransportBookingResponse, ExperienceBookingResponse, BookingStatus, BookingType,
    BookingEventType, RevisionData, RevisionRequest, AssignCrewRequest, PaymentRequest,
    serialize_booking
)

__all__ = [
    "router",
    "BookingService",
    "TRANSITIONS",
    "TERMINAL_STATUSES",
    "PAYABLE_STATUSES",
    "assert_transition",
    "available_events",
    "BookingCreate",
    "TransportBookingCreate",
    "ExperienceBookingCreate",
    "BookingDetail",
    "TransportBookingResponse",
    "ExperienceBookingResponse",
    "BookingStatus",
    "BookingType",
    "BookingEventType",
    "RevisionData",
    "RevisionRequest",
    "AssignCrewRequest",
    "PaymentRequest",
    "serialize_booking"
]
