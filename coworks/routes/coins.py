"""Loyalty coin balance and ledger routes"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..auth import get_current_customer
from ..database import get_db
from ..models import CoinTransaction, Customer
from ..services.coin_ledger import spend_coins

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/coins", tags=["Coins"])


class CoinBalanceResponse(BaseModel):
    customer_id: int
    balance: int
    total_earned: int
    total_spent: int


class CoinTransactionResponse(BaseModel):
    id: int
    amount: int
    transaction_type: str
    description: Optional[str] = None
    booking_id: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SpendCoinsRequest(BaseModel):
    amount: int = Field(..., gt=0)
    description: str = Field("Coins redeemed", max_length=255)


class SpendCoinsResponse(BaseModel):
    message: str
    balance: int
    transaction: CoinTransactionResponse


@router.get("/balance", response_model=CoinBalanceResponse)
async def get_balance(
    customer: Customer = Depends(get_current_customer),
    db: Session = Depends(get_db),
):
    amounts = [
        amount
        for (amount,) in db.query(CoinTransaction.amount)
        .filter(CoinTransaction.customer_id == customer.id)
        .all()
    ]
    return CoinBalanceResponse(
        customer_id=customer.id,
        balance=customer.coin_balance or 0,
        total_earned=sum(a for a in amounts if a > 0),
        total_spent=-sum(a for a in amounts if a < 0),
    )


@router.get("/transactions", response_model=list[CoinTransactionResponse])
async def list_transactions(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    customer: Customer = Depends(get_current_customer),
    db: Session = Depends(get_db),
):
    return (
        db.query(CoinTransaction)
        .filter(CoinTransaction.customer_id == customer.id)
        .order_by(CoinTransaction.created_at.desc(), CoinTransaction.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )


@router.post("/spend", response_model=SpendCoinsResponse)
async def redeem_coins(
    data: SpendCoinsRequest,
    customer: Customer = Depends(get_current_customer),
    db: Session = Depends(get_db),
):
    """Spend coins; the balance never goes below zero"""
    entry = spend_coins(db, customer, data.amount, data.description.strip() or "Coins redeemed")
    return SpendCoinsResponse(
        message=f"{data.amount} coins redeemed",
        balance=customer.coin_balance,
        transaction=CoinTransactionResponse.model_validate(entry),
    )
