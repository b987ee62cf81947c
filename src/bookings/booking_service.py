import logging
import secrets
from contextlib import contextmanager
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from src.auth.schemas import Actor, ActorRole
from src.bookings.lifecycle import PAYABLE_STATUSES, assert_transition, is_terminal
from src.bookings.schemas import (
    AssignCrewRequest, BookingCreate, BookingEventType, BookingSearchFilters,
    BookingStatus, BookingType, PaymentMethod, PaymentStatus, RevisionData,
    RevisionOutcome, RevisionRequest, TransportBookingCreate, booking_snapshot
)
from src.exceptions import (
    BookingError, BookingNotFound, ConfirmationRequired, HelicopterNotFound,
    IllegalTransition, InsufficientFunds, InvalidPassengerCount, MissingAssignment,
    PermissionDenied, UserNotFound
)
from src.models import (
    Booking, BookingEvent, BookingRevision, ExperienceBooking, Helicopter,
    Transaction, TransportBooking, User
)
from src.pricing.service import PricingService, compute_transport_price, select_tier
from src.transactions.service import TransactionService

logger = logging.getLogger(__name__)

TRANSPORT_FIELDS = ("from_location", "to_location", "is_round_trip", "return_date", "return_time")
COMMON_FIELDS = ("scheduled_date", "scheduled_time", "passenger_count", "notes")
DATE_FIELDS = ("scheduled_date", "return_date")

def _now() -> datetime:
    return datetime.now(timezone.utc)

class BookingService:
    """Booking lifecycle: creation, admin review, crew assignment, payment and cancellation"""

    def __init__(self, db: Session, pricing: Optional[PricingService] = None):
        self.db = db
        self.pricing = pricing or PricingService(db)
        self.ledger = TransactionService(db)

    def create_booking(self, request: BookingCreate, actor: Actor) -> Booking:
        """Price a new booking request and store it as pending"""

        if not self.db.query(User.id).filter(User.id == actor.user_id).first():
            raise UserNotFound(actor.user_id)

        addon_lines, addon_total = self.pricing.price_addons(request.selected_addons)

        if isinstance(request, TransportBookingCreate):
            breakdown = compute_transport_price(
                request.from_location,
                request.to_location,
                request.passenger_count,
                is_round_trip=request.is_round_trip,
                same_day_return=request.same_day_return,
                rates=self.pricing.rates
            )
            booking = TransportBooking(
                from_location=breakdown.from_code,
                to_location=breakdown.to_code,
                is_round_trip=request.is_round_trip,
                return_date=request.return_date,
                return_time=request.return_time
            )
            flight_price = breakdown.total_price
            price_breakdown = breakdown.model_dump(mode="json")
        else:
            experience = self.pricing.get_experience(request.experience_id)
            flight_price = self.pricing.price_experience(experience, request.passenger_count)
            booking = ExperienceBooking(experience_id=experience.id)
            price_breakdown = self._experience_breakdown(experience, request.passenger_count, flight_price)

        booking.total_price, booking.price_breakdown = self._with_addons(
            flight_price, price_breakdown, addon_lines, addon_total
        )
        booking.selected_addons = addon_lines
        booking.addon_total_price = addon_total
        booking.passenger_details = [passenger.model_dump() for passenger in request.passenger_details]

        booking.booking_reference = self._generate_booking_reference()
        booking.client_id = actor.user_id
        booking.status = BookingStatus.PENDING.value
        booking.payment_status = PaymentStatus.UNPAID.value
        booking.scheduled_date = request.scheduled_date
        booking.scheduled_time = request.scheduled_time
        booking.passenger_count = request.passenger_count
        booking.notes = request.notes

        self.db.add(booking)
        self._record_event(booking, BookingEventType.CREATE, None, BookingStatus.PENDING, actor, {
            "total_price": str(booking.total_price)
        })
        self.db.commit()
        self.db.refresh(booking)
        return booking

    def get_booking(self, booking_id: str, actor: Optional[Actor] = None) -> Booking:
        booking = self.db.query(Booking).filter(Booking.id == booking_id).first()
        if not booking:
            raise BookingNotFound(booking_id)

        if actor is not None and not actor.is_admin:
            if actor.user_id not in (booking.client_id, booking.pilot_id):
                raise PermissionDenied(f"Booking {booking_id} belongs to another client")
        return booking

    def list_bookings(self, actor: Actor, filters: BookingSearchFilters) -> Tuple[List[Booking], int]:
        """Admins see every booking, pilots their assignments, clients their own"""
        query = self.db.query(Booking)

        if actor.role == ActorRole.PILOT:
            query = query.filter(Booking.pilot_id == actor.user_id)
        elif not actor.is_admin:
            query = query.filter(Booking.client_id == actor.user_id)

        if filters.status:
            query = query.filter(Booking.status == filters.status.value)
        if filters.booking_type:
            query = query.filter(Booking.booking_type == filters.booking_type.value)
        if filters.payment_status:
            query = query.filter(Booking.payment_status == filters.payment_status.value)

        total = query.count()
        bookings = query.order_by(
            Booking.scheduled_date.desc(), Booking.scheduled_time.desc()
        ).offset(filters.offset).limit(filters.limit).all()
        return bookings, total

    def get_history(self, booking_id: str) -> Tuple[List[BookingEvent], List[BookingRevision]]:
        booking = self.get_booking(booking_id)
        return list(booking.events), list(booking.revisions)

    # Admin review
    def approve_as_is(self, booking_id: str, actor: Actor, admin_notes: Optional[str] = None) -> Booking:
        booking = self.get_booking(booking_id, actor)

        with self._rollback_on_error(booking):
            previous = booking.status
            target = assert_transition(previous, BookingEventType.APPROVE, actor, booking.client_id)
            self._advance(booking, BookingEventType.APPROVE, previous, target)
            if admin_notes:
                booking.admin_notes = admin_notes
            self._record_event(booking, BookingEventType.APPROVE, previous, target, actor)
            self.db.commit()

        self.db.refresh(booking)
        return booking

    def request_revision(self, booking_id: str, actor: Actor, request: RevisionRequest) -> Booking:
        """Store an admin counter-proposal and its recomputed price"""
        booking = self.get_booking(booking_id, actor)

        with self._rollback_on_error(booking):
            previous = booking.status
            target = assert_transition(previous, BookingEventType.REQUEST_REVISION, actor, booking.client_id)

            proposed = self._merge_revision(booking, request.revision_data)
            proposed_price, breakdown = self._price_proposal(booking, proposed)

            superseded = self._resolve_open_revisions(booking, RevisionOutcome.SUPERSEDED)
            self.db.add(BookingRevision(
                booking=booking,
                proposed_data=proposed,
                proposed_price=proposed_price,
                notes=request.revision_notes,
                created_by=actor.user_id
            ))

            booking.revision_requested = True
            booking.revision_notes = request.revision_notes
            booking.revision_data = dict(
                proposed,
                total_price=str(proposed_price),
                price_breakdown=breakdown
            )
            self._advance(booking, BookingEventType.REQUEST_REVISION, previous, target)
            self._record_event(booking, BookingEventType.REQUEST_REVISION, previous, target, actor, {
                "proposed_price": str(proposed_price),
                "superseded": superseded
            })
            self.db.commit()

        self.db.refresh(booking)
        return booking

    def accept_revision(self, booking_id: str, actor: Actor) -> Booking:
        """Client agrees to the proposal; its fields and price replace the booking's"""
        booking = self.get_booking(booking_id, actor)

        with self._rollback_on_error(booking):
            previous = booking.status
            target = assert_transition(previous, BookingEventType.ACCEPT_REVISION, actor, booking.client_id)

            data = booking.revision_data
            if not data:
                raise IllegalTransition(previous, BookingEventType.ACCEPT_REVISION.value,
                                        "There is no revision proposal to accept")

            fields = COMMON_FIELDS
            if booking.booking_type == BookingType.TRANSPORT.value:
                fields = COMMON_FIELDS + TRANSPORT_FIELDS
            for field in fields:
                if field not in data:
                    continue
                value = data[field]
                if field in DATE_FIELDS and value is not None:
                    value = date.fromisoformat(value)
                setattr(booking, field, value)

            booking.total_price = Decimal(data["total_price"])
            booking.price_breakdown = data["price_breakdown"]
            self._clear_revision(booking)
            self._resolve_open_revisions(booking, RevisionOutcome.ACCEPTED)

            self._advance(booking, BookingEventType.ACCEPT_REVISION, previous, target)
            self._record_event(booking, BookingEventType.ACCEPT_REVISION, previous, target, actor, {
                "total_price": data["total_price"]
            })
            self.db.commit()

        self.db.refresh(booking)
        return booking

    def decline_revision(self, booking_id: str, actor: Actor, reason: Optional[str] = None) -> Booking:
        booking = self.get_booking(booking_id, actor)

        with self._rollback_on_error(booking):
            previous = booking.status
            target = assert_transition(previous, BookingEventType.DECLINE_REVISION, actor, booking.client_id)

            self._clear_revision(booking)
            self._resolve_open_revisions(booking, RevisionOutcome.DECLINED)
            self._advance(booking, BookingEventType.DECLINE_REVISION, previous, target)
            self._record_event(booking, BookingEventType.DECLINE_REVISION, previous, target, actor, {
                "reason": reason
            })
            self.db.commit()

        self.db.refresh(booking)
        return booking

    # Operations
    def assign_crew(self, booking_id: str, actor: Actor, request: AssignCrewRequest) -> Booking:
        booking = self.get_booking(booking_id, actor)

        with self._rollback_on_error(booking):
            previous = booking.status
            target = assert_transition(previous, BookingEventType.ASSIGN_CREW, actor, booking.client_id)

            if request.pilot_id is None or request.helicopter_id is None:
                raise MissingAssignment("Both pilot_id and helicopter_id are required")

            pilot = self.db.query(User).filter(User.id == request.pilot_id).first()
            if not pilot:
                raise UserNotFound(request.pilot_id)
            if pilot.role != ActorRole.PILOT.value:
                raise MissingAssignment(f"User {pilot.id} is not a pilot")

            helicopter = self.db.query(Helicopter).filter(Helicopter.id == request.helicopter_id).first()
            if not helicopter:
                raise HelicopterNotFound(request.helicopter_id)
            if not helicopter.is_active:
                raise MissingAssignment(f"Helicopter {helicopter.registration} is out of service")
            if booking.passenger_count > helicopter.capacity:
                raise InvalidPassengerCount(booking.passenger_count, 1, helicopter.capacity)

            booking.pilot_id = pilot.id
            booking.helicopter_id = helicopter.id
            if request.admin_notes:
                booking.admin_notes = request.admin_notes
            self._advance(booking, BookingEventType.ASSIGN_CREW, previous, target)
            self._record_event(booking, BookingEventType.ASSIGN_CREW, previous, target, actor, {
                "pilot_id": pilot.id,
                "helicopter": helicopter.registration
            })
            self.db.commit()

        self.db.refresh(booking)
        return booking

    def mark_completed(self, booking_id: str, actor: Actor) -> Booking:
        booking = self.get_booking(booking_id, actor)

        with self._rollback_on_error(booking):
            previous = booking.status
            target = assert_transition(previous, BookingEventType.COMPLETE, actor, booking.client_id)
            if booking.pilot_id is None or booking.helicopter_id is None:
                raise MissingAssignment("A flight cannot be completed without a crew")

            self._advance(booking, BookingEventType.COMPLETE, previous, target)
            self._record_event(booking, BookingEventType.COMPLETE, previous, target, actor)
            self.db.commit()

        self.db.refresh(booking)
        return booking

    def pay_booking(
        self,
        booking_id: str,
        actor: Actor,
        method: PaymentMethod,
        reference: Optional[str] = None
    ) -> Tuple[Booking, Transaction, Optional[Decimal]]:
        """Pay an approved booking from the account balance or by bank transfer.

        Balance payments settle immediately through a conditional debit; a
        bank transfer leaves the booking payment pending until an admin
        approves the transfer.
        """
        booking = self.get_booking(booking_id, actor)

        with self._rollback_on_error(booking):
            if not (actor.is_admin or actor.user_id == booking.client_id):
                raise PermissionDenied("Only the booking owner or an admin can pay for a booking")

            if BookingStatus(booking.status) not in PAYABLE_STATUSES:
                raise IllegalTransition(
                    booking.status, "pay",
                    f"Bookings can only be paid once approved (status '{booking.status}')"
                )
            if booking.payment_status != PaymentStatus.UNPAID.value:
                raise IllegalTransition(
                    booking.status, "pay", f"Booking payment is already {booking.payment_status}"
                )

            amount = Decimal(booking.total_price or 0)
            if amount <= 0:
                raise MissingAssignment("Booking has no computed price")

            if method == PaymentMethod.ACCOUNT_BALANCE:
                new_status = PaymentStatus.PAID
            elif method == PaymentMethod.BANK_TRANSFER:
                if not reference or not reference.strip():
                    raise MissingAssignment("Bank transfer payments require a transfer reference")
                reference = reference.strip()
                new_status = PaymentStatus.PENDING
            else:
                raise IllegalTransition(
                    booking.status, "pay", f"{method.value} is not accepted for booking payments"
                )

            self._claim_payment(
                booking, PaymentStatus.UNPAID, new_status, "pay",
                Booking.status.in_([status.value for status in PAYABLE_STATUSES])
            )
            if method == PaymentMethod.ACCOUNT_BALANCE:
                if not self.ledger.debit_balance(booking.client_id, amount):
                    balance = self.ledger.current_balance(booking.client_id)
                    raise InsufficientFunds(
                        f"Account balance {balance} does not cover {amount}"
                    )
                transaction = self.ledger.record_booking_payment(booking, method)
            else:
                transaction = self.ledger.record_booking_payment(booking, method, reference)

            self._record_event(booking, BookingEventType.PAY, booking.status, BookingStatus(booking.status), actor, {
                "payment_method": method.value,
                "amount": str(amount),
                "transaction_id": transaction.id
            })
            self.db.commit()

        self.db.refresh(booking)
        self.db.refresh(transaction)

        new_balance = None
        if method == PaymentMethod.ACCOUNT_BALANCE:
            new_balance = self.ledger.current_balance(booking.client_id)
        return booking, transaction, new_balance

    def cancel_booking(self, booking_id: str, actor: Actor, reason: Optional[str] = None) -> Booking:
        """Cancel a booking, refunding or voiding any payment already made"""
        booking = self.get_booking(booking_id, actor)

        with self._rollback_on_error(booking):
            previous = booking.status
            target = assert_transition(previous, BookingEventType.CANCEL, actor, booking.client_id)
            self._advance(booking, BookingEventType.CANCEL, previous, target)

            details: Dict[str, Any] = {"reason": reason}
            details.update(self._settle_payment(booking, actor, reason or "Booking cancelled"))

            self._record_event(booking, BookingEventType.CANCEL, previous, target, actor, details)
            self.db.commit()

        self.db.refresh(booking)
        return booking

    def delete_booking(self, booking_id: str, actor: Actor, confirm: bool = False) -> None:
        """Remove a live booking and its history; ledger rows are kept, unlinked"""
        booking = self.get_booking(booking_id, actor)

        with self._rollback_on_error(booking):
            if not actor.is_admin:
                raise PermissionDenied("Only admins can delete bookings")
            if not confirm:
                raise ConfirmationRequired(f"Deleting booking {booking.booking_reference} requires confirm=true")
            if is_terminal(booking.status):
                raise IllegalTransition(booking.status, "delete")

            self._settle_payment(booking, actor, "Booking deleted")
            self.db.query(Transaction).filter(Transaction.booking_id == booking.id).update(
                {Transaction.booking_id: None}, synchronize_session=False
            )
            reference = booking.booking_reference
            self.db.delete(booking)
            self.db.commit()

        logger.info("Booking %s (%s) deleted by admin %s", booking_id, reference, actor.user_id)

    # Helpers
    @contextmanager
    def _rollback_on_error(self, booking: Booking):
        """Undo staged changes on failure and attach the booking as it was"""
        record = booking_snapshot(booking)
        try:
            yield
        except BookingError as error:
            self.db.rollback()
            if error.record is None:
                error.record = record
            raise

    def _advance(
        self,
        booking: Booking,
        event: BookingEventType,
        previous: str,
        target: BookingStatus
    ) -> None:
        # Compare-and-swap on the status column: a concurrent writer that moved
        # the booking first leaves zero matching rows
        updated = self.db.query(Booking).filter(
            Booking.id == booking.id,
            Booking.status == previous
        ).update({Booking.status: target.value}, synchronize_session=False)
        if updated != 1:
            current = self.db.query(Booking.status).filter(Booking.id == booking.id).scalar()
            raise IllegalTransition(
                current, event.value, f"Booking moved from '{previous}' to '{current}' in the meantime"
            )
        booking.status = target.value

    def _claim_payment(
        self,
        booking: Booking,
        expected: PaymentStatus,
        new_status: PaymentStatus,
        event: str,
        *criteria
    ) -> None:
        updated = self.db.query(Booking).filter(
            Booking.id == booking.id,
            Booking.payment_status == expected.value,
            *criteria
        ).update({Booking.payment_status: new_status.value}, synchronize_session=False)
        if updated != 1:
            current = self.db.query(Booking.status, Booking.payment_status).filter(
                Booking.id == booking.id
            ).first()
            status, payment_status = current if current else (booking.status, None)
            raise IllegalTransition(
                status, event, f"Booking payment changed to '{payment_status}' in the meantime"
            )
        booking.payment_status = new_status.value

    def _settle_payment(self, booking: Booking, actor: Actor, notes: str) -> Dict[str, Any]:
        """Refund or void the payment the booking carries when it leaves service"""
        current = PaymentStatus(booking.payment_status)

        if current == PaymentStatus.PAID:
            self._claim_payment(booking, current, PaymentStatus.REFUNDED, "refund")
            refund = self.ledger.record_refund(booking, actor)
            logger.info(
                "Refunded %s to user %s for booking %s",
                refund.amount, booking.client_id, booking.booking_reference
            )
            return {"refund_transaction_id": refund.id, "refund_amount": str(refund.amount)}

        if current == PaymentStatus.PENDING:
            self._claim_payment(booking, current, PaymentStatus.UNPAID, "void")
            voided = self.ledger.fail_pending_payments(booking.id, actor, notes)
            return {"voided_transfers": voided}

        # Nothing to settle, but a payment that landed since the read must not be stranded
        self._claim_payment(booking, current, current, "settle")
        return {}

    def _record_event(
        self,
        booking: Booking,
        event: BookingEventType,
        from_status: Optional[str],
        to_status: BookingStatus,
        actor: Actor,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        self.db.add(BookingEvent(
            booking=booking,
            event=event.value,
            from_status=from_status,
            to_status=to_status.value,
            actor_id=actor.user_id,
            actor_role=actor.role.value,
            details=details or {}
        ))
        logger.info(
            "Booking %s: %s %s -> %s by %s %s",
            booking.booking_reference, event.value, from_status, to_status.value,
            actor.role.value, actor.user_id
        )

    def _merge_revision(self, booking: Booking, revision: RevisionData) -> Dict[str, Any]:
        """Full proposed replacement: current values overlaid with the admin's changes"""
        fields = COMMON_FIELDS
        if booking.booking_type == BookingType.TRANSPORT.value:
            fields = COMMON_FIELDS + TRANSPORT_FIELDS

        changes = revision.model_dump(exclude_none=True)
        proposed = {}
        for field in fields:
            proposed[field] = changes.get(field, getattr(booking, field))

        manifest = len(booking.passenger_details or [])
        if proposed["passenger_count"] < manifest:
            raise InvalidPassengerCount(proposed["passenger_count"], manifest, self.pricing.rates.max_passengers)

        if booking.booking_type == BookingType.TRANSPORT.value:
            if not proposed["is_round_trip"]:
                proposed["return_date"] = None
                proposed["return_time"] = None
            elif proposed["return_date"] is None or proposed["return_time"] is None:
                raise MissingAssignment("Round trip revisions require a return date and time")
            elif proposed["return_date"] < proposed["scheduled_date"]:
                raise MissingAssignment("The return leg must be on or after the departure date")

        for field in DATE_FIELDS:
            if isinstance(proposed.get(field), date):
                proposed[field] = proposed[field].isoformat()
        return proposed

    def _price_proposal(self, booking: Booking, proposed: Dict[str, Any]) -> Tuple[Decimal, Dict[str, Any]]:
        if booking.booking_type == BookingType.TRANSPORT.value:
            breakdown = compute_transport_price(
                proposed["from_location"],
                proposed["to_location"],
                proposed["passenger_count"],
                is_round_trip=proposed["is_round_trip"],
                same_day_return=proposed["return_date"] == proposed["scheduled_date"],
                rates=self.pricing.rates
            )
            proposed["from_location"] = breakdown.from_code
            proposed["to_location"] = breakdown.to_code
            flight_price = breakdown.total_price
            price_breakdown = breakdown.model_dump(mode="json")
        else:
            experience = self.pricing.get_experience(booking.experience_id)
            flight_price = self.pricing.price_experience(experience, proposed["passenger_count"])
            price_breakdown = self._experience_breakdown(experience, proposed["passenger_count"], flight_price)

        # Add-ons keep the unit prices quoted at creation
        return self._with_addons(
            flight_price,
            price_breakdown,
            booking.selected_addons or [],
            Decimal(booking.addon_total_price or 0)
        )

    def _with_addons(
        self,
        flight_price: Decimal,
        price_breakdown: Dict[str, Any],
        addon_lines: List[Dict[str, Any]],
        addon_total: Decimal
    ) -> Tuple[Decimal, Dict[str, Any]]:
        total_price = flight_price + addon_total if addon_lines else flight_price
        return total_price, dict(
            price_breakdown,
            flight_price=str(flight_price),
            addons=addon_lines,
            addon_total_price=str(addon_total),
            total_price=str(total_price)
        )

    def _experience_breakdown(self, experience, passenger_count: int, total_price: Decimal) -> Dict[str, Any]:
        tier = select_tier(passenger_count, experience.pricing_tiers)
        return {
            "experience_id": experience.id,
            "experience_name": experience.name,
            "passenger_count": passenger_count,
            "base_price": str(experience.base_price),
            "tier": {
                "min_passengers": tier.min_passengers,
                "max_passengers": tier.max_passengers,
                "price": str(tier.price)
            } if tier is not None else None,
            "total_price": str(total_price),
            "currency": self.pricing.rates.currency
        }

    def _resolve_open_revisions(self, booking: Booking, outcome: RevisionOutcome) -> int:
        return self.db.query(BookingRevision).filter(
            BookingRevision.booking_id == booking.id,
            BookingRevision.outcome == RevisionOutcome.PROPOSED.value
        ).update(
            {BookingRevision.outcome: outcome.value, BookingRevision.resolved_at: _now()},
            synchronize_session=False
        )

    def _clear_revision(self, booking: Booking) -> None:
        booking.revision_requested = False
        booking.revision_notes = None
        booking.revision_data = None

    def _generate_booking_reference(self) -> str:
        """Generate human-readable booking reference"""
        while True:
            reference = f"HX{secrets.token_hex(3).upper()}"
            exists = self.db.query(Booking.id).filter(Booking.booking_reference == reference).first()
            if not exists:
                return reference
