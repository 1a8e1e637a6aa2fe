"""Payment service - Business logic for Razorpay orders, verification and webhooks"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...config import BUSINESS_NAME, PAYMENT_CURRENCY
from ...models import (
    BookingStatus,
    CancellationReason,
    Customer,
    Payment,
    PaymentStatus,
    SeatBooking,
    SeatStatus,
)
from ...services.coin_ledger import award_booking_coins
from ..availability import AvailabilityRepository, TimeWindow, conflicting_occupancies
from .razorpay_service import RazorpayService, to_paise
from .repository import PaymentRepository
from .schemas import PaymentResponse, PaymentVerifyRequest

logger = logging.getLogger(__name__)

CONFIRMING_EVENTS = ("payment.captured", "payment.authorized")


class PaymentService:
    """Service layer for payment business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = PaymentRepository()
        self.availability = AvailabilityRepository()

    def create_order_for_bookings(
        self, customer: Customer, booking_ids: list[int], razorpay: RazorpayService
    ) -> dict:
        """
        Open a Razorpay order covering held bookings.

        Asking again for exactly the bookings of an open order returns that
        order; bookings already inside a different open order are refused.
        """
        bookings = self.repo.get_customer_bookings_by_ids(self.db, customer.id, booking_ids)
        if len(bookings) != len(booking_ids):
            raise HTTPException(status_code=404, detail="One or more bookings not found")

        for booking in bookings:
            if booking.status != BookingStatus.PENDING or booking.payment_status == PaymentStatus.COMPLETED:
                raise HTTPException(
                    status_code=400, detail=f"Booking {booking.id} is not awaiting payment"
                )

        requested = sorted(booking.id for booking in bookings)
        open_orders = self.repo.get_open_payments_for_orders(
            self.db, sorted({booking.order_id for booking in bookings if booking.order_id})
        )
        for payment in open_orders:
            if sorted((payment.payment_metadata or {}).get("booking_ids") or []) == requested:
                logger.info(f"♻️ Reusing open order {payment.order_id} for bookings {requested}")
                return self._order_response(payment, bookings, razorpay)
        if open_orders:
            raise HTTPException(
                status_code=409,
                detail=f"Bookings already have an open payment order ({open_orders[0].order_id})",
            )

        total_amount = round(sum(booking.total_price for booking in bookings), 2)
        if total_amount <= 0:
            raise HTTPException(status_code=400, detail="Nothing to pay for these bookings")

        group_id = bookings[0].quantity_group
        receipt = f"PAY-{group_id[:8]}-{bookings[0].id}"
        notes = {
            "customer_id": customer.id,
            "customer_email": customer.email,
            "booking_ids": ",".join(str(booking.id) for booking in bookings),
        }
        order = razorpay.create_order(total_amount, receipt, notes=notes)

        payment = Payment(
            customer_id=customer.id,
            booking_id=bookings[0].id,
            group_id=group_id,
            amount=total_amount,
            currency=PAYMENT_CURRENCY,
            status=PaymentStatus.PENDING,
            order_id=order["id"],
            payment_metadata={"receipt": receipt, "booking_ids": requested},
        )
        try:
            self.db.add(payment)
            for booking in bookings:
                booking.order_id = order["id"]
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Failed to record payment for order {order['id']}: {e}")
            raise
        self.db.refresh(payment)

        logger.info(f"💳 Order {order['id']} opened for bookings {booking_ids}: INR {total_amount}")
        return self._order_response(payment, bookings, razorpay)

    @staticmethod
    def _order_response(payment: Payment, bookings: list[SeatBooking], razorpay: RazorpayService) -> dict:
        receipt = (payment.payment_metadata or {}).get("receipt")
        return {
            "order_id": payment.order_id,
            "amount": payment.amount,
            "currency": payment.currency,
            "key_id": razorpay.key_id,
            "payment_id": payment.id,
            "booking_ids": [booking.id for booking in bookings],
            "notes": {
                "name": BUSINESS_NAME,
                "amount_paise": to_paise(payment.amount),
                "receipt": receipt,
            },
        }

    def verify_payment(
        self, customer: Customer, data: PaymentVerifyRequest, razorpay: RazorpayService
    ) -> dict:
        """Check the checkout signature, then confirm the order"""
        payment = self.repo.get_by_order_id(self.db, data.razorpay_order_id)
        if not payment or payment.customer_id != customer.id:
            raise HTTPException(status_code=404, detail="Payment not found")

        if not razorpay.verify_signature(
            data.razorpay_order_id, data.razorpay_payment_id, data.razorpay_signature
        ):
            logger.warning(f"⚠️ Invalid payment signature for order {data.razorpay_order_id}")
            raise HTTPException(status_code=400, detail="Invalid payment signature")

        return self.confirm_payment(payment, data.razorpay_payment_id, razorpay)

    def _can_reinstate(self, booking: SeatBooking) -> bool:
        """An expired hold can be revived when its seat is still free"""
        seat = booking.seat
        if not seat or seat.availability_status != SeatStatus.AVAILABLE:
            return False
        window = TimeWindow(booking.start_time, booking.end_time)
        occupancies = self.availability.get_occupancies(self.db, [seat.id], window)
        conflicts = [
            occ
            for occ in conflicting_occupancies(occupancies, window)
            if not (occ.kind == "booking" and occ.ref_id == booking.id)
        ]
        return not conflicts

    def _settles(self, payment: Payment, booking: SeatBooking) -> bool:
        """
        Whether a payment on this order may confirm the booking.

        Bookings cancelled by the customer or an admin stay cancelled, as do
        bookings that moved to another order. Expired holds are revived when
        the seat is still free.
        """
        if booking.order_id != payment.order_id:
            return False
        if booking.status != BookingStatus.CANCELLED:
            return True
        if booking.cancellation_reason != CancellationReason.HOLD_EXPIRED:
            return False
        return self._can_reinstate(booking)

    def _refund_unconfirmed(
        self, payment: Payment, bookings: list[SeatBooking], razorpay: RazorpayService
    ) -> list[int]:
        amount = round(sum(booking.total_price for booking in bookings), 2)
        booking_ids = [booking.id for booking in bookings]
        try:
            refund = razorpay.refund_payment(payment.razorpay_payment_id, amount)
        except HTTPException as e:
            logger.error(
                f"❌ Refund for unconfirmed bookings {booking_ids} on order {payment.order_id} failed: {e.detail}"
            )
            for booking in bookings:
                if booking.order_id == payment.order_id:
                    booking.payment_status = PaymentStatus.COMPLETED
                booking.notes = ((booking.notes or "") + "\nRefund required: paid after release").strip()
            return []

        self.repo.record_refund(payment, refund.get("id"), amount)
        for booking in bookings:
            if booking.order_id == payment.order_id:
                booking.payment_status = PaymentStatus.REFUNDED
            booking.notes = ((booking.notes or "") + "\nRefunded: paid after release").strip()
        return booking_ids

    def confirm_payment(
        self,
        payment: Payment,
        razorpay_payment_id: str,
        razorpay: RazorpayService,
        payment_method: Optional[str] = None,
    ) -> dict:
        """
        Mark the payment completed and confirm its bookings.

        Safe to call more than once for the same order: a completed payment
        is returned as is. Whatever part of the payment cannot confirm a
        booking is refunded.
        """
        bookings = self.repo.get_bookings_for_payment(self.db, payment)

        if payment.status in (PaymentStatus.COMPLETED, PaymentStatus.REFUNDED):
            logger.info(f"ℹ️ Order {payment.order_id} already verified")
            return {
                "message": "Payment already verified",
                "payment": PaymentResponse.model_validate(payment),
                "booking_ids": [
                    booking.id
                    for booking in bookings
                    if booking.status == BookingStatus.CONFIRMED and booking.order_id == payment.order_id
                ],
                "coins_earned": 0,
                "refunded_booking_ids": [],
                "newly_confirmed": False,
            }

        payment.status = PaymentStatus.COMPLETED
        payment.razorpay_payment_id = razorpay_payment_id
        payment.payment_method = payment_method or payment.payment_method
        payment.paid_at = datetime.utcnow()

        confirmed, unconfirmed = [], []
        for booking in bookings:
            if not self._settles(payment, booking):
                unconfirmed.append(booking)
                continue
            if booking.status in (BookingStatus.PENDING, BookingStatus.CANCELLED):
                booking.status = BookingStatus.CONFIRMED
            booking.cancellation_reason = None
            booking.payment_status = PaymentStatus.COMPLETED
            confirmed.append(booking)

        try:
            refunded_ids = self._refund_unconfirmed(payment, unconfirmed, razorpay) if unconfirmed else []
            customer = self.db.get(Customer, payment.customer_id)
            coins = award_booking_coins(self.db, customer, confirmed) if customer else 0
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Failed to confirm payment for order {payment.order_id}: {e}")
            raise
        self.db.refresh(payment)

        logger.info(
            f"✅ Payment {razorpay_payment_id} confirmed {len(confirmed)} booking(s) "
            f"for order {payment.order_id}"
        )

        return {
            "message": "Payment verified successfully",
            "payment": PaymentResponse.model_validate(payment),
            "booking_ids": [booking.id for booking in confirmed],
            "coins_earned": coins,
            "refunded_booking_ids": refunded_ids,
            "newly_confirmed": bool(confirmed),
        }

    def handle_webhook(self, event: dict, razorpay: RazorpayService) -> dict:
        event_type = event.get("event", "")
        payload = event.get("payload") or {}

        if event_type in CONFIRMING_EVENTS:
            entity = (payload.get("payment") or {}).get("entity") or {}
            payment = self.repo.get_by_order_id(self.db, entity.get("order_id") or "")
            if not payment:
                logger.warning(f"⚠️ Webhook {event_type} for unknown order {entity.get('order_id')}")
                return {"status": "ignored", "event": event_type}

            result = self.confirm_payment(payment, entity.get("id"), razorpay, entity.get("method"))
            return {
                "status": "processed",
                "event": event_type,
                "booking_ids": result["booking_ids"],
                "quantity_group": payment.group_id if result["newly_confirmed"] else None,
            }

        if event_type == "payment.failed":
            entity = (payload.get("payment") or {}).get("entity") or {}
            payment = self.repo.get_by_order_id(self.db, entity.get("order_id") or "")
            if not payment:
                return {"status": "ignored", "event": event_type}
            if payment.status == PaymentStatus.PENDING:
                payment.status = PaymentStatus.FAILED
                payment.razorpay_payment_id = entity.get("id")
                for booking in self.repo.get_bookings_for_order(self.db, payment.order_id):
                    if booking.status == BookingStatus.PENDING:
                        booking.payment_status = PaymentStatus.FAILED
                self.db.commit()
                logger.warning(
                    f"⚠️ Payment failed for order {payment.order_id}: {entity.get('error_description')}"
                )
            return {"status": "processed", "event": event_type}

        if event_type == "refund.processed":
            entity = (payload.get("refund") or {}).get("entity") or {}
            payment = self.repo.get_by_razorpay_payment_id(self.db, entity.get("payment_id") or "")
            if not payment:
                return {"status": "ignored", "event": event_type}
            amount = round((entity.get("amount") or 0) / 100, 2)
            if self.repo.record_refund(payment, entity.get("id"), amount):
                self.db.commit()
                logger.info(f"💸 Refund {entity.get('id')} recorded for order {payment.order_id}")
            return {"status": "processed", "event": event_type}

        logger.info(f"ℹ️ Ignoring Razorpay webhook event {event_type}")
        return {"status": "ignored", "event": event_type}

    def list_payments(self, customer: Customer) -> list[Payment]:
        return self.repo.get_customer_payments(self.db, customer.id)

    def get_payment(self, customer: Customer, payment_id: int) -> Payment:
        payment = self.repo.get_customer_payment(self.db, payment_id, customer.id)
        if not payment:
            raise HTTPException(status_code=404, detail="Payment not found")
        return payment
