from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Dict

from sqlalchemy import func
from sqlalchemy.orm import Session

from src.admin.schemas import DashboardData, DashboardMetrics, UpcomingFlight
from src.bookings.schemas import BookingStatus
from src.config import settings
from src.models import Booking, Transaction
from src.transactions.schemas import PaymentMethod, TransactionStatus, TransactionType

class AdminManagementService:
    """Service for administrative overview queries"""

    def __init__(self, db: Session):
        self.db = db

    def get_dashboard(self, upcoming_limit: int = 10) -> DashboardData:
        """Counts by status, ledger totals and the next scheduled flights"""

        status_rows = self.db.query(Booking.status, func.count(Booking.id)).group_by(Booking.status).all()
        bookings_by_status: Dict[str, int] = {s.value: 0 for s in BookingStatus}
        for booking_status, count in status_rows:
            bookings_by_status[booking_status] = count

        unassigned_approved = self.db.query(Booking).filter(
            Booking.status == BookingStatus.APPROVED.value,
            Booking.pilot_id.is_(None)
        ).count()

        pending_transactions = self.db.query(Transaction).filter(
            Transaction.status == TransactionStatus.PENDING.value
        ).count()

        pending_deposit_amount = self._sum_amount(
            Transaction.type == TransactionType.DEPOSIT.value,
            Transaction.status == TransactionStatus.PENDING.value
        )

        # Payments are stored as negative amounts
        collected = self._sum_amount(
            Transaction.type == TransactionType.PAYMENT.value,
            Transaction.status.in_([TransactionStatus.COMPLETED.value, TransactionStatus.APPROVED.value])
        )
        refunded = self._sum_amount(
            Transaction.type == TransactionType.REFUND.value,
            Transaction.payment_method == PaymentMethod.ACCOUNT_BALANCE.value,
            Transaction.status == TransactionStatus.COMPLETED.value
        )

        upcoming = self.db.query(Booking).filter(
            Booking.status.in_([BookingStatus.APPROVED.value, BookingStatus.ASSIGNED.value]),
            Booking.scheduled_date >= date.today()
        ).order_by(Booking.scheduled_date, Booking.scheduled_time).limit(upcoming_limit).all()

        metrics = DashboardMetrics(
            total_bookings=sum(bookings_by_status.values()),
            bookings_by_status=bookings_by_status,
            awaiting_review=bookings_by_status[BookingStatus.PENDING.value],
            awaiting_client=bookings_by_status[BookingStatus.NEEDS_REVISION.value],
            unassigned_approved=unassigned_approved,
            pending_transactions=pending_transactions,
            pending_deposit_amount=pending_deposit_amount,
            collected_revenue=abs(collected),
            refunded_amount=refunded,
            currency=settings.CURRENCY
        )

        return DashboardData(
            metrics=metrics,
            upcoming_flights=[
                UpcomingFlight(
                    booking_id=b.id,
                    booking_reference=b.booking_reference,
                    booking_type=b.booking_type,
                    status=b.status,
                    scheduled_date=b.scheduled_date.isoformat(),
                    scheduled_time=b.scheduled_time,
                    passenger_count=b.passenger_count,
                    pilot_id=b.pilot_id,
                    helicopter_id=b.helicopter_id
                )
                for b in upcoming
            ],
            last_updated=datetime.now(timezone.utc)
        )

    def _sum_amount(self, *criteria) -> Decimal:
        total = self.db.query(func.coalesce(func.sum(Transaction.amount), 0)).filter(*criteria).scalar()
        return Decimal(str(total)).quantize(Decimal("0.01"))
