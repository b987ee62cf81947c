from fastapi import APIRouter, Depends, status, Query
from typing import Optional
from sqlalchemy.orm import Session

from .schemas import AdminNotesRequest, BookingDeletionResponse, DashboardData
from .admin_service import AdminManagementService
from ..config import settings
from ..database import get_db
from ..auth import Actor, require_admin
from ..bookings.booking_service import BookingService
from ..bookings.schemas import (
    AssignCrewRequest, BookingDetail, BookingHistoryResponse, CancellationRequest,
    RevisionRequest, serialize_booking
)
from ..transactions.schemas import (
    TransactionListResponse, TransactionResponse, TransactionReview,
    TransactionStatus, TransactionType
)
from ..pricing.schemas import AddonCreate, AddonListResponse, AddonResponse, AddonUpdate
from ..pricing.service import PricingService
from ..transactions.service import TransactionService

router = APIRouter(prefix=f"{settings.API_V1_STR}/admin", tags=["admin"])

# Dashboard Endpoints
@router.get("/dashboard", response_model=DashboardData)
def get_dashboard(
    admin: Actor = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Get admin dashboard data"""
    return AdminManagementService(db).get_dashboard()

# Booking Review Endpoints
@router.post("/bookings/{booking_id}/approve", response_model=BookingDetail)
def approve_booking(
    booking_id: str,
    request: Optional[AdminNotesRequest] = None,
    admin: Actor = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Approve a pending booking as requested"""

    admin_notes = request.admin_notes if request else None
    booking = BookingService(db).approve_as_is(booking_id, admin, admin_notes)
    return serialize_booking(booking)

@router.post("/bookings/{booking_id}/revision", response_model=BookingDetail)
def request_revision(
    booking_id: str,
    request: RevisionRequest,
    admin: Actor = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Propose changes to a booking; the client must accept or decline them"""

    booking = BookingService(db).request_revision(booking_id, admin, request)
    return serialize_booking(booking)

@router.post("/bookings/{booking_id}/assign", response_model=BookingDetail)
def assign_crew(
    booking_id: str,
    request: AssignCrewRequest,
    admin: Actor = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Assign a pilot and a helicopter to an approved booking"""

    booking = BookingService(db).assign_crew(booking_id, admin, request)
    return serialize_booking(booking)

@router.post("/bookings/{booking_id}/complete", response_model=BookingDetail)
def complete_booking(
    booking_id: str,
    admin: Actor = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Mark an assigned flight as flown"""

    booking = BookingService(db).mark_completed(booking_id, admin)
    return serialize_booking(booking)

@router.post("/bookings/{booking_id}/cancel", response_model=BookingDetail)
def cancel_booking(
    booking_id: str,
    request: Optional[CancellationRequest] = None,
    admin: Actor = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Cancel a booking; a paid booking is refunded to the client's balance"""

    reason = request.reason if request else None
    booking = BookingService(db).cancel_booking(booking_id, admin, reason)
    return serialize_booking(booking)

@router.delete("/bookings/{booking_id}", response_model=BookingDeletionResponse)
def delete_booking(
    booking_id: str,
    confirm: bool = Query(False, description="Must be true to delete"),
    admin: Actor = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Delete a booking and its history"""

    BookingService(db).delete_booking(booking_id, admin, confirm=confirm)
    return BookingDeletionResponse(
        booking_id=booking_id,
        deleted=True,
        message="Booking deleted successfully"
    )

@router.get("/bookings/{booking_id}/events", response_model=BookingHistoryResponse)
def get_booking_events(
    booking_id: str,
    admin: Actor = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Lifecycle events and revision proposals for a booking"""

    events, revisions = BookingService(db).get_history(booking_id)
    return BookingHistoryResponse(
        booking_id=booking_id,
        events=events,
        revisions=revisions
    )

# Transaction Review Endpoints
@router.get("/transactions", response_model=TransactionListResponse)
def list_transactions(
    status_filter: Optional[TransactionStatus] = Query(None, alias="status"),
    transaction_type: Optional[TransactionType] = Query(None, alias="type"),
    user_id: Optional[int] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    admin: Actor = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """List ledger entries across all users"""

    transactions, total = TransactionService(db).list_transactions(
        user_id=user_id,
        status=status_filter,
        transaction_type=transaction_type,
        limit=limit,
        offset=offset
    )
    return TransactionListResponse(
        transactions=transactions,
        total=total,
        limit=limit,
        offset=offset
    )

@router.post("/transactions/{transaction_id}/approve", response_model=TransactionResponse)
def approve_transaction(
    transaction_id: str,
    request: Optional[TransactionReview] = None,
    admin: Actor = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Approve a pending deposit or bank transfer"""

    admin_notes = request.admin_notes if request else None
    return TransactionService(db).approve_transaction(transaction_id, admin, admin_notes)

@router.post("/transactions/{transaction_id}/reject", response_model=TransactionResponse)
def reject_transaction(
    transaction_id: str,
    request: TransactionReview,
    admin: Actor = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Reject a pending deposit or bank transfer; a reason is required"""

    return TransactionService(db).reject_transaction(transaction_id, admin, request.admin_notes)

# Add-on Catalogue Endpoints
@router.get("/addons", response_model=AddonListResponse)
def list_addons(
    include_inactive: bool = Query(True),
    admin: Actor = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """List the add-on catalogue, including retired entries by default"""

    addons = PricingService(db).list_addons(include_inactive=include_inactive)
    return AddonListResponse(addons=addons, total=len(addons))

@router.post("/addons", response_model=AddonResponse, status_code=status.HTTP_201_CREATED)
def create_addon(
    request: AddonCreate,
    admin: Actor = Depends(require_admin),
    db: Session = Depends(get_db)
):
    return PricingService(db).create_addon(request)

@router.patch("/addons/{addon_id}", response_model=AddonResponse)
def update_addon(
    addon_id: int,
    request: AddonUpdate,
    admin: Actor = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Change an add-on's details or take it off sale with is_active=false"""

    return PricingService(db).update_addon(addon_id, request)

@router.delete("/addons/{addon_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_addon(
    addon_id: int,
    admin: Actor = Depends(require_admin),
    db: Session = Depends(get_db)
):
    PricingService(db).delete_addon(addon_id)
