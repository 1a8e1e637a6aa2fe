"""Booking service - Business logic for seat holds, orders and cancellations"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...config import BUSINESS_NAME, PAYMENT_CURRENCY, RAZORPAY_KEY_ID
from ...models import (
    BookingStatus,
    Branch,
    CancellationReason,
    Customer,
    Payment,
    PaymentStatus,
    Seat,
    SeatBooking,
    SeatingType,
    SeatStatus,
    generate_group_id,
)
from ..availability import (
    AvailabilityRepository,
    BookingRuleError,
    InsufficientAvailabilityError,
    Occupancy,
    TimeWindow,
    allocate_seats,
    classify_booking,
    conflicting_occupancies,
    find_available_seats,
    is_hourly_type,
    is_meeting_room,
    is_monthly_type,
    requested_window,
    validate_duration,
    validate_quantity,
)
from ..payments.razorpay_service import RazorpayService, to_paise
from ..payments.repository import PaymentRepository
from ..pricing import Quote, calculate_booking_cost, last_booked_day, quote_booking, split_amount
from .repository import BookingRepository
from .schemas import BookingCreate, BookingResponse, CreateOrderRequest

logger = logging.getLogger(__name__)

BOOKING_STATES = ("active", "upcoming", "completed", "cancelled", "pending")


def serialize_booking(booking: SeatBooking, now: Optional[datetime] = None) -> BookingResponse:
    """Booking with seat details and derived listing flags"""
    now = now or datetime.utcnow()
    state = classify_booking(booking.status, booking.start_time, booking.end_time, now)
    seat = booking.seat
    return BookingResponse(
        id=booking.id,
        customer_id=booking.customer_id,
        seat_id=booking.seat_id,
        seat_code=seat.seat_code if seat else None,
        seat_number=seat.seat_number if seat else None,
        branch_id=seat.branch_id if seat else None,
        branch_name=seat.branch.name if seat and seat.branch else None,
        seating_type=seat.seating_type.name if seat and seat.seating_type else None,
        booking_type=booking.booking_type,
        start_time=booking.start_time,
        end_time=booking.end_time,
        quantity_group=booking.quantity_group,
        total_price=booking.total_price,
        status=booking.status,
        payment_status=booking.payment_status,
        order_id=booking.order_id,
        num_participants=booking.num_participants,
        amenities=booking.amenities,
        notes=booking.notes,
        created_at=booking.created_at,
        state=state,
        is_active=state == "active",
        is_upcoming=state == "upcoming",
        is_completed=state == "completed",
        is_cancelled=state == "cancelled",
    )


def describe_conflicts(occupancies: list[Occupancy]) -> list[dict]:
    return [
        {
            "seat_id": occ.seat_id,
            "kind": occ.kind,
            "start_time": occ.start.isoformat(),
            "end_time": occ.end.isoformat(),
        }
        for occ in occupancies
    ]


class BookingService:
    """Service layer for booking business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BookingRepository()
        self.availability = AvailabilityRepository()

    # ------------------------------------------------------------------
    # Holds
    # ------------------------------------------------------------------

    def resolve_target(self, data: BookingCreate) -> tuple[Branch, SeatingType, Optional[Seat]]:
        """Find the branch, seating type and (optionally) the specific seat requested"""
        branch_id = getattr(data, "branch_id", None)

        if data.seat_id is not None or data.seat_code:
            branch = None
            if data.seat_id is None and (branch_id is not None or data.branch_code):
                branch = self.repo.get_branch(self.db, branch_id, data.branch_code)
                if not branch:
                    raise HTTPException(status_code=404, detail="Branch not found")

            seat = self.repo.get_seat(
                self.db,
                seat_id=data.seat_id,
                seat_code=data.seat_code,
                branch_id=branch.id if branch else None,
            )
            if not seat:
                raise HTTPException(status_code=404, detail="Seat not found")
            if not seat.branch or not seat.branch.is_active:
                raise HTTPException(status_code=404, detail="Branch not found")
            return seat.branch, seat.seating_type, seat

        if not data.seating_type_code or (branch_id is None and not data.branch_code):
            raise HTTPException(
                status_code=400,
                detail="Provide seat_id, seat_code, or a branch together with seating_type_code",
            )

        branch = self.repo.get_branch(self.db, branch_id, data.branch_code)
        if not branch:
            raise HTTPException(status_code=404, detail="Branch not found")

        seating_type = self.repo.get_seating_type_by_code(self.db, data.seating_type_code)
        if not seating_type:
            raise HTTPException(
                status_code=404, detail=f"Seating type with code {data.seating_type_code} not found"
            )

        return branch, seating_type, None

    def _reject_past(self, seating_type: SeatingType, window: TimeWindow) -> None:
        now = datetime.utcnow()
        if is_hourly_type(seating_type):
            if window.start < now:
                raise HTTPException(status_code=400, detail="Cannot book a time slot in the past")
        elif window.start.date() < now.date():
            raise HTTPException(status_code=400, detail="Start date cannot be in the past")

    def hold_seats(self, customer: Customer, data: BookingCreate) -> tuple[list[SeatBooking], Quote]:
        """
        Reserve seats as PENDING bookings sharing one quantity group.

        Conflicts are checked against blocking bookings and maintenance blocks
        inside this session right before insert.
        """
        branch, seating_type, preferred = self.resolve_target(data)

        if data.booking_type == "meeting" and not is_meeting_room(seating_type):
            raise HTTPException(status_code=400, detail="Meeting bookings require a meeting room")

        is_meeting = is_meeting_room(seating_type)
        if is_meeting and not data.num_participants:
            raise HTTPException(status_code=400, detail="num_participants is required for meeting bookings")

        try:
            validate_quantity(seating_type, data.quantity)
            window = requested_window(
                seating_type, data.start_date, data.end_date, data.start_time, data.end_time
            )
            validate_duration(seating_type, window)
        except BookingRuleError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

        self._reject_past(seating_type, window)

        seats = self.availability.get_seats(self.db, branch.id, seating_type.id, lock=True)
        if is_meeting:
            if preferred and preferred.capacity and preferred.capacity < data.num_participants:
                raise HTTPException(
                    status_code=400,
                    detail=f"{preferred.seat_code} fits {preferred.capacity} participants, "
                    f"{data.num_participants} requested",
                )
            seats = [seat for seat in seats if not seat.capacity or seat.capacity >= data.num_participants]

        occupancies = self.availability.get_occupancies(self.db, [seat.id for seat in seats], window)
        available = find_available_seats(seats, occupancies, window)

        if preferred:
            if preferred.availability_status != SeatStatus.AVAILABLE:
                raise HTTPException(
                    status_code=409,
                    detail={
                        "message": f"Seat {preferred.seat_code} is not available ({preferred.availability_status})",
                        "conflicts": [],
                    },
                )
            if preferred.id not in {seat.id for seat in available}:
                seat_conflicts = conflicting_occupancies(
                    [occ for occ in occupancies if occ.seat_id == preferred.id], window
                )
                raise HTTPException(
                    status_code=409,
                    detail={
                        "message": f"Seat {preferred.seat_code} is already booked for the requested time",
                        "conflicts": describe_conflicts(seat_conflicts),
                    },
                )
            available = [preferred] + [seat for seat in available if seat.id != preferred.id]

        try:
            chosen = allocate_seats(available, data.quantity)
        except InsufficientAvailabilityError as e:
            raise HTTPException(
                status_code=409,
                detail={
                    "message": str(e),
                    "available_count": e.available_count,
                    "requested": e.requested,
                    "conflicts": describe_conflicts(conflicting_occupancies(occupancies, window)),
                },
            ) from e

        quote = quote_booking(seating_type, branch, window, data.quantity)
        seat_prices = split_amount(quote.total, len(chosen))
        quantity_group = generate_group_id()

        rows = [
            {
                "customer_id": customer.id,
                "seat_id": seat.id,
                "booking_type": "meeting" if is_meeting else "seat",
                "start_time": window.start,
                "end_time": window.end,
                "quantity_group": quantity_group,
                "total_price": price,
                "status": BookingStatus.PENDING,
                "payment_status": PaymentStatus.PENDING,
                "num_participants": data.num_participants if is_meeting else None,
                "amenities": data.amenities,
                "notes": data.notes,
            }
            for seat, price in zip(chosen, seat_prices)
        ]

        try:
            bookings = self.repo.create_bookings(self.db, rows)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Failed to create bookings for customer {customer.id}: {e}")
            raise

        for booking in bookings:
            self.db.refresh(booking)

        logger.info(
            f"✅ Held {len(bookings)} {seating_type.short_code} seat(s) at {branch.short_code} "
            f"for customer {customer.id} (group {quantity_group})"
        )
        return bookings, quote

    def _release(self, bookings: list[SeatBooking], reason: str) -> None:
        for booking in bookings:
            booking.status = BookingStatus.CANCELLED
            booking.cancellation_reason = CancellationReason.ORDER_FAILED
            booking.notes = ((booking.notes or "") + f"\n{reason}").strip()
        self.db.commit()

    def create_order(
        self, customer: Customer, data: CreateOrderRequest, razorpay: RazorpayService
    ) -> dict:
        """Hold seats and open a Razorpay order for the total"""
        if not razorpay.is_available():
            raise HTTPException(status_code=503, detail="Payment gateway is not configured")

        bookings, quote = self.hold_seats(customer, data)
        quantity_group = bookings[0].quantity_group
        total_amount = quote.total
        receipt = f"BOOK-{quantity_group[:8]}"
        seating_type = bookings[0].seat.seating_type

        try:
            order = razorpay.create_order(
                total_amount,
                receipt,
                notes={
                    "customer_id": customer.id,
                    "customer_email": customer.email,
                    "seating_type": seating_type.short_code,
                    "quantity": len(bookings),
                    "quantity_group": quantity_group,
                },
            )
        except HTTPException:
            self._release(bookings, "Payment order could not be created")
            raise

        payment = Payment(
            customer_id=customer.id,
            booking_id=bookings[0].id,
            group_id=quantity_group,
            amount=total_amount,
            currency=PAYMENT_CURRENCY,
            status=PaymentStatus.PENDING,
            order_id=order["id"],
            payment_metadata={
                "receipt": receipt,
                "booking_ids": [booking.id for booking in bookings],
                "quote": quote.to_dict(),
            },
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

        logger.info(f"💳 Order {order['id']} opened for group {quantity_group}: INR {total_amount}")

        return {
            "message": "Order created successfully",
            "order_id": order["id"],
            "amount": total_amount,
            "currency": PAYMENT_CURRENCY,
            "receipt": receipt,
            "payment_id": payment.id,
            "quantity_group": quantity_group,
            "booking_ids": [booking.id for booking in bookings],
            "bookings": [serialize_booking(booking) for booking in bookings],
            "quote": quote.to_dict(),
            "payment_details": {
                "key_id": razorpay.key_id or RAZORPAY_KEY_ID,
                "amount": to_paise(total_amount),
                "currency": PAYMENT_CURRENCY,
                "name": BUSINESS_NAME,
                "description": f"Booking for {len(bookings)} {seating_type.name} seat(s)",
                "order_id": order["id"],
                "prefill": {
                    "name": customer.name,
                    "email": customer.email,
                    "contact": customer.phone or "",
                },
            },
        }

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    def list_bookings(
        self,
        customer: Customer,
        status: Optional[str] = None,
        branch: Optional[str] = None,
        booking_type: Optional[str] = None,
    ) -> list[BookingResponse]:
        """Customer bookings filtered by state or status, branch and seating type"""
        branch_id = None
        if branch:
            if branch.isdigit():
                branch_id = int(branch)
            else:
                found = self.repo.get_branch(self.db, code=branch)
                if not found:
                    return []
                branch_id = found.id

        seating_type_id = None
        kind = None
        if booking_type:
            if booking_type.lower() in ("seat", "meeting"):
                kind = booking_type.lower()
            else:
                seating_type = self.repo.get_seating_type_by_code(self.db, booking_type)
                if not seating_type:
                    return []
                seating_type_id = seating_type.id

        bookings = self.repo.get_customer_bookings(
            self.db, customer.id, branch_id, seating_type_id, kind
        )

        now = datetime.utcnow()
        results = [serialize_booking(booking, now) for booking in bookings]
        if status:
            wanted = status.lower()
            if wanted in BOOKING_STATES:
                results = [item for item in results if item.state == wanted]
            else:
                results = [item for item in results if item.status == status.upper()]
        return results

    def get_booking(self, customer: Customer, booking_id: int) -> SeatBooking:
        booking = self.repo.get_customer_booking(self.db, booking_id, customer.id)
        if not booking:
            raise HTTPException(status_code=404, detail="Booking not found")
        return booking

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    @staticmethod
    def calculate_refund(booking: SeatBooking, seating_type: SeatingType, now: datetime) -> tuple[float, Optional[dict]]:
        """
        Refund due when cancelling at ``now``.

        Monthly seating follows the one month notice rule. Hourly and daily
        bookings are fully refundable before they start and not after.
        """
        if is_monthly_type(seating_type):
            window = TimeWindow(booking.start_time, booking.end_time)
            full = calculate_booking_cost(
                window.start.date(), last_booked_day(window), seating_type.monthly_rate or 0.0
            )
            cancelled = calculate_booking_cost(
                window.start.date(),
                last_booked_day(window),
                seating_type.monthly_rate or 0.0,
                cancellation_date=now.date(),
            )
            if full.total_cost <= 0:
                return 0.0, cancelled.to_dict()
            ratio = cancelled.refund_amount / full.total_cost
            return round(booking.total_price * ratio, 2), cancelled.to_dict()

        if now < booking.start_time:
            return booking.total_price, None
        return 0.0, None

    def _close_unpaid_order(self, booking: SeatBooking) -> None:
        """An open order whose bookings are all cancelled can no longer be paid"""
        if not booking.order_id:
            return
        payment = self.repo.get_payment_for_order(self.db, booking.order_id)
        if not payment or payment.status != PaymentStatus.PENDING:
            return
        siblings = PaymentRepository.get_bookings_for_order(self.db, booking.order_id)
        if all(item.status == BookingStatus.CANCELLED for item in siblings):
            payment.status = PaymentStatus.FAILED
            payment.payment_metadata = {
                **(payment.payment_metadata or {}),
                "closed_reason": "All bookings cancelled before payment",
            }
            logger.info(f"🚫 Order {payment.order_id} closed, every booking was cancelled before payment")

    def _refund_cancellation(
        self, booking: SeatBooking, payment: Payment, amount: float, razorpay: RazorpayService
    ) -> str:
        try:
            refund = razorpay.refund_payment(payment.razorpay_payment_id, amount)
        except HTTPException as e:
            logger.error(f"❌ Refund for cancelled booking {booking.id} failed: {e.detail}")
            booking.notes = ((booking.notes or "") + f"\nRefund required: INR {amount}").strip()
            self.db.commit()
            return "failed"

        PaymentRepository.record_refund(payment, refund.get("id"), amount)
        booking.payment_status = PaymentStatus.REFUNDED
        try:
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Refund {refund.get('id')} for booking {booking.id} issued but not recorded: {e}")
            raise
        return "refunded"

    def cancel_booking(self, customer: Customer, booking_id: int, razorpay: RazorpayService) -> dict:
        """
        Cancel a booking, then refund what the cancellation policy allows.

        The cancellation is committed before the gateway is asked for the
        refund; a failed refund leaves the booking cancelled with a note.
        """
        booking = self.get_booking(customer, booking_id)

        if booking.status in (BookingStatus.CANCELLED, BookingStatus.COMPLETED):
            raise HTTPException(status_code=400, detail=f"Booking is already {booking.status.lower()}")

        now = datetime.utcnow()
        refund_amount, breakdown = self.calculate_refund(booking, booking.seat.seating_type, now)
        refund_status = "none"
        payment = None

        if booking.payment_status != PaymentStatus.COMPLETED:
            refund_amount = 0.0
            refund_status = "not_paid"
        elif refund_amount > 0:
            payment = self.repo.get_payment_for_order(self.db, booking.order_id) if booking.order_id else None
            if not payment or not payment.razorpay_payment_id:
                logger.error(f"❌ No captured payment found for booking {booking.id}, refund skipped")
                raise HTTPException(status_code=409, detail="No captured payment found for this booking")

        booking.status = BookingStatus.CANCELLED
        booking.cancellation_reason = CancellationReason.CUSTOMER
        if refund_status == "not_paid":
            self._close_unpaid_order(booking)
        try:
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Failed to cancel booking {booking.id}: {e}")
            raise

        if payment is not None:
            refund_status = self._refund_cancellation(booking, payment, refund_amount, razorpay)
        self.db.refresh(booking)

        logger.info(
            f"🚫 Booking {booking.id} cancelled by customer {customer.id}, "
            f"refund INR {refund_amount} ({refund_status})"
        )

        return {
            "message": "Booking cancelled successfully",
            "booking": serialize_booking(booking, now),
            "refund_amount": refund_amount,
            "refund_status": refund_status,
            "breakdown": breakdown,
        }
