"""Payment repository - Database operations for payments"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Payment, PaymentStatus, SeatBooking


class PaymentRepository:
    """Repository for payment database operations"""

    @staticmethod
    def get_by_order_id(db: Session, order_id: str) -> Optional[Payment]:
        return db.query(Payment).filter(Payment.order_id == order_id).first()

    @staticmethod
    def get_by_razorpay_payment_id(db: Session, payment_id: str) -> Optional[Payment]:
        return db.query(Payment).filter(Payment.razorpay_payment_id == payment_id).first()

    @staticmethod
    def get_customer_payment(db: Session, payment_id: int, customer_id: int) -> Optional[Payment]:
        return (
            db.query(Payment)
            .filter(Payment.id == payment_id, Payment.customer_id == customer_id)
            .first()
        )

    @staticmethod
    def get_customer_payments(db: Session, customer_id: int) -> list[Payment]:
        return (
            db.query(Payment)
            .filter(Payment.customer_id == customer_id)
            .order_by(Payment.created_at.desc(), Payment.id.desc())
            .all()
        )

    @staticmethod
    def record_refund(payment: Payment, refund_id: Optional[str], amount: float) -> bool:
        """Add a refund to the payment once; returns False for an already recorded refund id"""
        metadata = dict(payment.payment_metadata or {})
        refund_ids = list(metadata.get("refund_ids", []))
        if refund_id and refund_id in refund_ids:
            return False
        if refund_id:
            refund_ids.append(refund_id)
        metadata["refund_ids"] = refund_ids
        payment.payment_metadata = metadata

        payment.refund_amount = round((payment.refund_amount or 0.0) + amount, 2)
        if payment.refund_amount >= payment.amount:
            payment.status = PaymentStatus.REFUNDED
        return True

    @staticmethod
    def get_bookings_for_order(db: Session, order_id: str) -> list[SeatBooking]:
        return (
            db.query(SeatBooking)
            .filter(SeatBooking.order_id == order_id)
            .order_by(SeatBooking.id)
            .all()
        )

    @staticmethod
    def get_customer_bookings_by_ids(db: Session, customer_id: int, booking_ids: list[int]) -> list[SeatBooking]:
        return (
            db.query(SeatBooking)
            .filter(SeatBooking.customer_id == customer_id, SeatBooking.id.in_(booking_ids))
            .order_by(SeatBooking.id)
            .all()
        )

    @staticmethod
    def get_bookings_for_payment(db: Session, payment: Payment) -> list[SeatBooking]:
        """Bookings the order was opened for, falling back to those still pointing at it"""
        booking_ids = (payment.payment_metadata or {}).get("booking_ids")
        if not booking_ids:
            return PaymentRepository.get_bookings_for_order(db, payment.order_id)
        return (
            db.query(SeatBooking)
            .filter(SeatBooking.id.in_(booking_ids))
            .order_by(SeatBooking.id)
            .all()
        )

    @staticmethod
    def get_open_payments_for_orders(db: Session, order_ids: list[str]) -> list[Payment]:
        return (
            db.query(Payment)
            .filter(Payment.order_id.in_(order_ids), Payment.status == PaymentStatus.PENDING)
            .all()
        )
