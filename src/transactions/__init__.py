"""
Transactions Module

Ledger of account-balance movements for charter clients:

- Top-up deposits submitted by clients and reviewed by admins
- Booking payments from the account balance or by bank transfer
- Refunds credited back to the balance when a paid booking is cancelled

Every change to a stored balance is a conditional UPDATE committed in the same
database transaction as the ledger row that explains it, so approving the same
entry twice can never credit twice.

Key Components:
- service.py: TransactionService with balance primitives and admin review
- router.py: client endpoints (top-up, history, balance)
- schemas.py: Pydantic models and the payment/transaction enums
"""

from .router import router
from .service import TransactionService
from .schemas import (
    TopUpRequest, TransactionResponse, TransactionListResponse, TransactionReview,
    BalanceResponse, TransactionStatus, TransactionType, PaymentMethod, PaymentStatus
)

__all__ = [
    "router",
    "TransactionService",
    "TopUpRequest",
    "TransactionResponse",
    "TransactionListResponse",
    "TransactionReview",
    "BalanceResponse",
    "TransactionStatus",
    "TransactionType",
    "PaymentMethod",
    "PaymentStatus"
]
