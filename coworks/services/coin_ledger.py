"""Loyalty coin ledger: every balance change is recorded as a CoinTransaction"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ..domain.pricing import calculate_booking_coins
from ..models import CoinTransaction, Customer, SeatBooking

logger = logging.getLogger(__name__)


def record_coins(
    db: Session,
    customer: Customer,
    amount: int,
    transaction_type: str,
    description: str,
    booking_id: Optional[int] = None,
) -> CoinTransaction:
    """Add a ledger entry and adjust the balance; caller commits"""
    entry = CoinTransaction(
        customer_id=customer.id,
        amount=amount,
        transaction_type=transaction_type,
        description=description,
        booking_id=booking_id,
    )
    customer.coin_balance = (customer.coin_balance or 0) + amount
    db.add(entry)
    return entry


def award_booking_coins(db: Session, customer: Customer, bookings: list[SeatBooking]) -> int:
    """Award coins for paid bookings, once per booking"""
    total = 0
    for booking in bookings:
        already_awarded = (
            db.query(CoinTransaction)
            .filter(
                CoinTransaction.booking_id == booking.id,
                CoinTransaction.transaction_type == "earned",
            )
            .first()
        )
        if already_awarded:
            continue

        coins = calculate_booking_coins(
            booking.start_time, booking.end_time, booking.total_price, booking.booking_type
        )
        if coins <= 0:
            continue

        record_coins(db, customer, coins, "earned", f"Coins earned for booking #{booking.id}", booking.id)
        total += coins

    if total:
        logger.info(f"🪙 Awarded {total} coins to customer {customer.id}")
    return total


def spend_coins(db: Session, customer: Customer, amount: int, description: str) -> CoinTransaction:
    if amount <= 0:
        raise HTTPException(status_code=400, detail="Amount must be positive")
    if (customer.coin_balance or 0) < amount:
        raise HTTPException(
            status_code=400,
            detail=f"Insufficient coins. Balance: {customer.coin_balance or 0}, requested: {amount}",
        )

    entry = record_coins(db, customer, -amount, "spent", description)
    db.commit()
    db.refresh(entry)
    logger.info(f"🪙 Customer {customer.id} spent {amount} coins")
    return entry
