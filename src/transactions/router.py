from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from typing import Optional

from src.database import get_db
from src.auth import Actor, get_current_actor
from src.transactions.schemas import (
    TopUpRequest, TransactionResponse, TransactionListResponse, BalanceResponse,
    TransactionStatus, TransactionType
)
from src.transactions.service import TransactionService

router = APIRouter()

@router.post("/top-up", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
def submit_top_up(
    request: TopUpRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """Submit a deposit for admin review; funds are available once approved"""

    service = TransactionService(db)

    try:
        return service.submit_top_up(
            actor.user_id,
            request.amount,
            request.payment_method,
            request.reference
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

@router.get("", response_model=TransactionListResponse)
def list_my_transactions(
    status_filter: Optional[TransactionStatus] = Query(None, alias="status"),
    transaction_type: Optional[TransactionType] = Query(None, alias="type"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """List the caller's ledger entries, newest first"""

    service = TransactionService(db)
    transactions, total = service.list_transactions(
        user_id=actor.user_id,
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

@router.get("/balance", response_model=BalanceResponse)
def get_my_balance(
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """Current account balance with the ledger-derived value alongside"""

    return TransactionService(db).get_balance(actor.user_id)
