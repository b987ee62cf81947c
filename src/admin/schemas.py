from pydantic import BaseModel
from typing import Dict, List, Optional
from datetime import datetime
from decimal import Decimal

class AdminNotesRequest(BaseModel):
    """Optional note attached to an admin decision"""
    admin_notes: Optional[str] = None

class BookingDeletionResponse(BaseModel):
    booking_id: str
    deleted: bool
    message: str

class DashboardMetrics(BaseModel):
    """Headline numbers for the operations dashboard"""
    total_bookings: int
    bookings_by_status: Dict[str, int]
    awaiting_review: int
    awaiting_client: int
    unassigned_approved: int
    pending_transactions: int
    pending_deposit_amount: Decimal
    collected_revenue: Decimal
    refunded_amount: Decimal
    currency: str

class UpcomingFlight(BaseModel):
    booking_id: str
    booking_reference: str
    booking_type: str
    status: str
    scheduled_date: str
    scheduled_time: str
    passenger_count: int
    pilot_id: Optional[int] = None
    helicopter_id: Optional[int] = None

class DashboardData(BaseModel):
    """Dashboard data response"""
    metrics: DashboardMetrics
    upcoming_flights: List[UpcomingFlight]
    last_updated: datetime
