import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Session

from src.auth.schemas import Actor
from src.config import settings
from src.exceptions import (
    DuplicateApproval, IllegalTransition, InsufficientFunds, MissingRejectionReason,
    TransactionNotFound, UserNotFound
)
from src.models import Booking, Transaction, User
from src.transactions.schemas import (
    BalanceResponse, PaymentMethod, PaymentStatus, TransactionStatus,
    TransactionType, transaction_snapshot
)

logger = logging.getLogger(__name__)

def _money(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(Decimal("0.01"))

def _now() -> datetime:
    return datetime.now(timezone.utc)

# Ledger rows that have moved money in or out of the stored balance
APPLIED_TO_BALANCE = or_(
    and_(
        Transaction.type.in_([TransactionType.DEPOSIT.value, TransactionType.WITHDRAWAL.value]),
        Transaction.status == TransactionStatus.APPROVED.value
    ),
    and_(
        Transaction.type.in_([TransactionType.PAYMENT.value, TransactionType.REFUND.value]),
        Transaction.payment_method == PaymentMethod.ACCOUNT_BALANCE.value,
        Transaction.status == TransactionStatus.COMPLETED.value
    )
)

class TransactionService:
    """Account-balance ledger: top-ups, admin review and booking payments.

    Methods that only stage ledger rows (`record_*`, `credit_balance`,
    `debit_balance`) leave committing to the caller so the balance change,
    the ledger row and any booking update land in one database transaction.
    """

    def __init__(self, db: Session):
        self.db = db

    # Balance primitives
    def credit_balance(self, user_id: int, amount: Decimal) -> None:
        updated = self.db.query(User).filter(User.id == user_id).update(
            {User.account_balance: User.account_balance + amount},
            synchronize_session=False
        )
        if updated == 0:
            raise UserNotFound(user_id)

    def debit_balance(self, user_id: int, amount: Decimal) -> bool:
        """Subtract `amount` only if the balance covers it; False otherwise"""
        updated = self.db.query(User).filter(
            User.id == user_id,
            User.account_balance >= amount
        ).update(
            {User.account_balance: User.account_balance - amount},
            synchronize_session=False
        )
        return updated == 1

    def current_balance(self, user_id: int) -> Decimal:
        balance = self.db.query(User.account_balance).filter(User.id == user_id).scalar()
        if balance is None:
            raise UserNotFound(user_id)
        return _money(balance)

    # Ledger rows staged by booking operations
    def record_booking_payment(
        self,
        booking: Booking,
        method: PaymentMethod,
        reference: Optional[str] = None
    ) -> Transaction:
        status = TransactionStatus.PENDING
        if method == PaymentMethod.ACCOUNT_BALANCE:
            status = TransactionStatus.COMPLETED

        transaction = Transaction(
            user_id=booking.client_id,
            booking_id=booking.id,
            type=TransactionType.PAYMENT.value,
            amount=-_money(booking.total_price),
            payment_method=method.value,
            status=status.value,
            reference=reference,
            processed_at=_now() if status == TransactionStatus.COMPLETED else None
        )
        self.db.add(transaction)
        self.db.flush()
        return transaction

    def record_refund(self, booking: Booking, actor: Actor) -> Transaction:
        amount = _money(booking.total_price)
        self.credit_balance(booking.client_id, amount)

        transaction = Transaction(
            user_id=booking.client_id,
            booking_id=booking.id,
            type=TransactionType.REFUND.value,
            amount=amount,
            payment_method=PaymentMethod.ACCOUNT_BALANCE.value,
            status=TransactionStatus.COMPLETED.value,
            reference=f"Refund for booking {booking.booking_reference}",
            processed_at=_now(),
            processed_by=actor.user_id
        )
        self.db.add(transaction)
        self.db.flush()
        return transaction

    def fail_pending_payments(self, booking_id: str, actor: Actor, notes: str) -> int:
        return self.db.query(Transaction).filter(
            Transaction.booking_id == booking_id,
            Transaction.type == TransactionType.PAYMENT.value,
            Transaction.status == TransactionStatus.PENDING.value
        ).update(
            {
                Transaction.status: TransactionStatus.FAILED.value,
                Transaction.admin_notes: notes,
                Transaction.processed_at: _now(),
                Transaction.processed_by: actor.user_id
            },
            synchronize_session=False
        )

    # Top-ups and admin review
    def submit_top_up(
        self,
        user_id: int,
        amount: Decimal,
        method: PaymentMethod = PaymentMethod.BANK_TRANSFER,
        reference: Optional[str] = None
    ) -> Transaction:
        """Create a pending deposit; the balance is credited on approval"""
        if amount <= 0:
            raise ValueError("Top-up amount must be positive")
        if method == PaymentMethod.ACCOUNT_BALANCE:
            raise ValueError("Top-ups must come from a bank transfer or card")

        if not self.db.query(User.id).filter(User.id == user_id).first():
            raise UserNotFound(user_id)

        transaction = Transaction(
            user_id=user_id,
            type=TransactionType.DEPOSIT.value,
            amount=_money(amount),
            payment_method=method.value,
            status=TransactionStatus.PENDING.value,
            reference=reference
        )
        self.db.add(transaction)
        self.db.commit()
        self.db.refresh(transaction)

        logger.info(
            "Top-up %s submitted by user %s: %s via %s",
            transaction.id, user_id, transaction.amount, method.value
        )
        return transaction

    def get_transaction(self, transaction_id: str) -> Transaction:
        transaction = self.db.query(Transaction).filter(Transaction.id == transaction_id).first()
        if not transaction:
            raise TransactionNotFound(transaction_id)
        return transaction

    def approve_transaction(
        self,
        transaction_id: str,
        actor: Actor,
        admin_notes: Optional[str] = None
    ) -> Transaction:
        """Move a pending transaction to approved and apply its effect once"""
        transaction = self.get_transaction(transaction_id)
        record = transaction_snapshot(transaction)

        claimed = self._claim_pending(transaction_id, TransactionStatus.APPROVED, actor, admin_notes)
        if not claimed:
            self.db.rollback()
            current = self.db.query(Transaction.status).filter(Transaction.id == transaction_id).scalar()
            if current == TransactionStatus.APPROVED.value:
                raise DuplicateApproval(f"Transaction {transaction_id} is already approved", record=record)
            raise IllegalTransition(
                current, "approve", f"Cannot approve a transaction in status '{current}'", record=record
            )

        if transaction.type == TransactionType.DEPOSIT.value:
            self.credit_balance(transaction.user_id, _money(transaction.amount))
        elif transaction.type == TransactionType.WITHDRAWAL.value:
            # Withdrawals are stored negative; the payout must still be covered
            amount = abs(_money(transaction.amount))
            if not self.debit_balance(transaction.user_id, amount):
                self.db.rollback()
                balance = self.current_balance(transaction.user_id)
                raise InsufficientFunds(
                    f"Account balance {balance} does not cover a withdrawal of {amount}", record=record
                )
        elif self._is_booking_transfer(transaction):
            self._set_booking_payment(transaction.booking_id, PaymentStatus.PENDING, PaymentStatus.PAID)

        self.db.commit()
        self.db.refresh(transaction)

        logger.info(
            "Transaction %s (%s, %s) approved by admin %s",
            transaction.id, transaction.type, transaction.amount, actor.user_id
        )
        return transaction

    def reject_transaction(self, transaction_id: str, actor: Actor, notes: Optional[str]) -> Transaction:
        """Reject a pending transaction; the balance is never touched"""
        transaction = self.get_transaction(transaction_id)
        record = transaction_snapshot(transaction)

        if not notes or not notes.strip():
            raise MissingRejectionReason("A rejection reason is required", record=record)

        claimed = self._claim_pending(transaction_id, TransactionStatus.REJECTED, actor, notes.strip())
        if not claimed:
            self.db.rollback()
            current = self.db.query(Transaction.status).filter(Transaction.id == transaction_id).scalar()
            raise IllegalTransition(
                current, "reject", f"Cannot reject a transaction in status '{current}'", record=record
            )

        if self._is_booking_transfer(transaction):
            self._set_booking_payment(transaction.booking_id, PaymentStatus.PENDING, PaymentStatus.UNPAID)

        self.db.commit()
        self.db.refresh(transaction)

        logger.info("Transaction %s rejected by admin %s: %s", transaction.id, actor.user_id, notes)
        return transaction

    def list_transactions(
        self,
        user_id: Optional[int] = None,
        status: Optional[TransactionStatus] = None,
        transaction_type: Optional[TransactionType] = None,
        limit: int = 50,
        offset: int = 0
    ) -> Tuple[List[Transaction], int]:
        query = self.db.query(Transaction)

        if user_id is not None:
            query = query.filter(Transaction.user_id == user_id)
        if status:
            query = query.filter(Transaction.status == status.value)
        if transaction_type:
            query = query.filter(Transaction.type == transaction_type.value)

        total = query.count()
        transactions = query.order_by(Transaction.created_at.desc()).offset(offset).limit(limit).all()
        return transactions, total

    def get_balance(self, user_id: int) -> BalanceResponse:
        balance = self.current_balance(user_id)

        ledger_balance = self.db.query(func.coalesce(func.sum(Transaction.amount), 0)).filter(
            Transaction.user_id == user_id,
            APPLIED_TO_BALANCE
        ).scalar()
        pending_deposits = self.db.query(func.coalesce(func.sum(Transaction.amount), 0)).filter(
            Transaction.user_id == user_id,
            Transaction.type == TransactionType.DEPOSIT.value,
            Transaction.status == TransactionStatus.PENDING.value
        ).scalar()

        ledger_balance = _money(ledger_balance)
        if ledger_balance != balance:
            logger.warning(
                "Balance drift for user %s: stored %s, ledger %s", user_id, balance, ledger_balance
            )

        return BalanceResponse(
            user_id=user_id,
            balance=balance,
            ledger_balance=ledger_balance,
            is_consistent=ledger_balance == balance,
            pending_deposits=_money(pending_deposits),
            currency=settings.CURRENCY
        )

    def _claim_pending(
        self,
        transaction_id: str,
        new_status: TransactionStatus,
        actor: Actor,
        admin_notes: Optional[str]
    ) -> bool:
        # Compare-and-swap: only one caller can move a row out of pending
        values = {
            Transaction.status: new_status.value,
            Transaction.processed_at: _now(),
            Transaction.processed_by: actor.user_id
        }
        if admin_notes:
            values[Transaction.admin_notes] = admin_notes

        updated = self.db.query(Transaction).filter(
            Transaction.id == transaction_id,
            Transaction.status == TransactionStatus.PENDING.value
        ).update(values, synchronize_session=False)
        return updated == 1

    def _is_booking_transfer(self, transaction: Transaction) -> bool:
        return (
            transaction.type == TransactionType.PAYMENT.value
            and transaction.payment_method == PaymentMethod.BANK_TRANSFER.value
            and transaction.booking_id is not None
        )

    def _set_booking_payment(self, booking_id: str, expected: PaymentStatus, new_status: PaymentStatus) -> None:
        self.db.query(Booking).filter(
            Booking.id == booking_id,
            Booking.payment_status == expected.value
        ).update({Booking.payment_status: new_status.value}, synchronize_session=False)
