"""
Automated booking status transitions
Handles confirmed → completed once a booking has ended
Handles unpaid holds → cancelled once the payment window has passed
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ..config import PENDING_BOOKING_TTL_MINUTES
from ..models import BookingStatus, CancellationReason, PaymentStatus, SeatBooking

logger = logging.getLogger(__name__)


def expire_bookings(db: Session, now: Optional[datetime] = None) -> dict:
    """
    Should be run as a scheduled job

    Returns:
        dict: Summary of status changes made
    """
    now = now or datetime.utcnow()
    hold_cutoff = now - timedelta(minutes=PENDING_BOOKING_TTL_MINUTES)
    summary = {"completed": 0, "expired_holds": 0}

    try:
        ended = (
            db.query(SeatBooking)
            .filter(SeatBooking.status == BookingStatus.CONFIRMED, SeatBooking.end_time <= now)
            .all()
        )
        for booking in ended:
            booking.status = BookingStatus.COMPLETED
        summary["completed"] = len(ended)

        stale_holds = (
            db.query(SeatBooking)
            .filter(
                SeatBooking.status == BookingStatus.PENDING,
                SeatBooking.payment_status != PaymentStatus.COMPLETED,
                SeatBooking.created_at <= hold_cutoff,
            )
            .all()
        )
        for booking in stale_holds:
            booking.status = BookingStatus.CANCELLED
            booking.cancellation_reason = CancellationReason.HOLD_EXPIRED
            booking.notes = ((booking.notes or "") + "\nHold expired before payment").strip()
        summary["expired_holds"] = len(stale_holds)

        db.commit()
    except Exception:
        db.rollback()
        raise

    if summary["completed"] or summary["expired_holds"]:
        logger.info(
            f"🔄 Booking automation: {summary['completed']} completed, "
            f"{summary['expired_holds']} expired holds released"
        )
    return summary
