from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session
from typing import Optional

from src.database import get_db
from src.auth import Actor, get_current_actor
from src.bookings.schemas import (
    BookingCreate, BookingDetail, BookingListResponse, BookingSearchFilters,
    BookingActionsResponse, BookingStatus, BookingType, CancellationRequest,
    PaymentRequest, PaymentResponse, PaymentStatus, serialize_booking
)
from src.bookings.booking_service import BookingService
from src.bookings.lifecycle import PAYABLE_STATUSES, available_events

router = APIRouter()

# Client Booking Endpoints
@router.post("", response_model=BookingDetail, status_code=status.HTTP_201_CREATED)
def create_booking(
    request: BookingCreate,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """Request a transport flight or an experience; the price is computed server-side"""

    booking = BookingService(db).create_booking(request, actor)
    return serialize_booking(booking)

@router.get("", response_model=BookingListResponse)
def list_bookings(
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    booking_type: Optional[BookingType] = Query(None),
    payment_status: Optional[PaymentStatus] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """List bookings visible to the caller"""

    filters = BookingSearchFilters(
        status=status_filter,
        booking_type=booking_type,
        payment_status=payment_status,
        limit=limit,
        offset=offset
    )
    bookings, total = BookingService(db).list_bookings(actor, filters)

    return BookingListResponse(
        bookings=[serialize_booking(b) for b in bookings],
        total=total,
        limit=limit,
        offset=offset
    )

@router.get("/{booking_id}", response_model=BookingDetail)
def get_booking(
    booking_id: str,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """Get booking details"""

    booking = BookingService(db).get_booking(booking_id, actor)
    return serialize_booking(booking)

@router.get("/{booking_id}/actions", response_model=BookingActionsResponse)
def get_booking_actions(
    booking_id: str,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """Events the caller may trigger on this booking"""

    booking = BookingService(db).get_booking(booking_id, actor)
    can_pay = (
        BookingStatus(booking.status) in PAYABLE_STATUSES
        and booking.payment_status == PaymentStatus.UNPAID.value
        and (actor.is_admin or actor.user_id == booking.client_id)
    )

    return BookingActionsResponse(
        booking_id=booking.id,
        status=booking.status,
        payment_status=booking.payment_status,
        available_events=available_events(booking.status, actor, booking.client_id),
        can_pay=can_pay
    )

@router.post("/{booking_id}/pay", response_model=PaymentResponse)
def pay_booking(
    booking_id: str,
    request: PaymentRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """Pay an approved booking from the account balance or by bank transfer"""

    booking, transaction, new_balance = BookingService(db).pay_booking(
        booking_id, actor, request.payment_method, request.reference
    )

    if booking.payment_status == PaymentStatus.PAID.value:
        message = "Payment completed"
    else:
        message = "Bank transfer submitted for verification"

    return PaymentResponse(
        booking=serialize_booking(booking),
        transaction_id=transaction.id,
        payment_status=booking.payment_status,
        new_balance=new_balance,
        message=message
    )

@router.post("/{booking_id}/cancel", response_model=BookingDetail)
def cancel_booking(
    booking_id: str,
    request: Optional[CancellationRequest] = None,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """Cancel a pending booking"""

    reason = request.reason if request else None
    booking = BookingService(db).cancel_booking(booking_id, actor, reason)
    return serialize_booking(booking)

@router.post("/{booking_id}/revision/accept", response_model=BookingDetail)
def accept_revision(
    booking_id: str,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """Accept the admin's proposed changes and price"""

    booking = BookingService(db).accept_revision(booking_id, actor)
    return serialize_booking(booking)

@router.post("/{booking_id}/revision/decline", response_model=BookingDetail)
def decline_revision(
    booking_id: str,
    request: Optional[CancellationRequest] = None,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """Decline the admin's proposal; the booking is cancelled"""

    reason = request.reason if request else None
    booking = BookingService(db).decline_revision(booking_id, actor, reason)
    return serialize_booking(booking)
