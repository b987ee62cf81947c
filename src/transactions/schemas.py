from pydantic import BaseModel, Field, validator
from typing import List, Optional, Dict, Any
from datetime import datetime
from decimal import Decimal
from enum import Enum

class PaymentStatus(str, Enum):
    """Booking payment status enumeration"""
    UNPAID = "unpaid"
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"

class PaymentMethod(str, Enum):
    """Payment method enumeration"""
    ACCOUNT_BALANCE = "account_balance"
    BANK_TRANSFER = "bank_transfer"
    CARD = "card"

class TransactionType(str, Enum):
    """Ledger entry type"""
    DEPOSIT = "deposit"
    PAYMENT = "payment"
    REFUND = "refund"
    WITHDRAWAL = "withdrawal"

class TransactionStatus(str, Enum):
    """Ledger entry status"""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"
    FAILED = "failed"

class TopUpRequest(BaseModel):
    """Request to add funds to the account balance"""
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    payment_method: PaymentMethod = PaymentMethod.BANK_TRANSFER
    reference: Optional[str] = Field(None, max_length=255)

    @validator('payment_method')
    def validate_external_method(cls, v):
        if v == PaymentMethod.ACCOUNT_BALANCE:
            raise ValueError('Top-ups must come from a bank transfer or card')
        return v

class TransactionReview(BaseModel):
    """Admin decision on a pending transaction"""
    admin_notes: Optional[str] = None

class TransactionResponse(BaseModel):
    id: str
    user_id: int
    booking_id: Optional[str] = None
    type: TransactionType
    amount: Decimal
    payment_method: PaymentMethod
    status: TransactionStatus
    reference: Optional[str] = None
    admin_notes: Optional[str] = None
    processed_at: Optional[datetime] = None
    processed_by: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class TransactionListResponse(BaseModel):
    transactions: List[TransactionResponse]
    total: int
    limit: int
    offset: int

class BalanceResponse(BaseModel):
    """Stored balance alongside the value derived from the ledger"""
    user_id: int
    balance: Decimal
    ledger_balance: Decimal
    is_consistent: bool
    pending_deposits: Decimal
    currency: str

def transaction_snapshot(transaction) -> Dict[str, Any]:
    return TransactionResponse.model_validate(transaction).model_dump(mode="json")
