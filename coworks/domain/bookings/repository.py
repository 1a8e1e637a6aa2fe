"""Booking repository - Database operations for seat bookings"""

from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import Branch, Payment, Seat, SeatBooking, SeatingType


class BookingRepository:
    """Repository for booking database operations"""

    @staticmethod
    def get_branch(db: Session, branch_id: Optional[int] = None, code: Optional[str] = None) -> Optional[Branch]:
        query = db.query(Branch).filter(Branch.is_active.is_(True))
        if branch_id is not None:
            return query.filter(Branch.id == branch_id).first()
        if code:
            return query.filter(Branch.short_code == code.upper()).first()
        return None

    @staticmethod
    def get_seating_type_by_code(db: Session, code: str) -> Optional[SeatingType]:
        return db.query(SeatingType).filter(SeatingType.short_code == code.upper()).first()

    @staticmethod
    def get_seat(db: Session, seat_id: Optional[int] = None, seat_code: Optional[str] = None, branch_id: Optional[int] = None) -> Optional[Seat]:
        query = db.query(Seat).options(joinedload(Seat.branch), joinedload(Seat.seating_type))
        if seat_id is not None:
            return query.filter(Seat.id == seat_id).first()
        if seat_code:
            query = query.filter(Seat.seat_code == seat_code.upper())
            if branch_id is not None:
                query = query.filter(Seat.branch_id == branch_id)
            return query.order_by(Seat.id).first()
        return None

    @staticmethod
    def create_bookings(db: Session, rows: list[dict]) -> list[SeatBooking]:
        """Insert bookings without committing"""
        bookings = [SeatBooking(**row) for row in rows]
        db.add_all(bookings)
        db.flush()
        return bookings

    @staticmethod
    def get_customer_bookings(
        db: Session,
        customer_id: int,
        branch_id: Optional[int] = None,
        seating_type_id: Optional[int] = None,
        booking_type: Optional[str] = None,
    ) -> list[SeatBooking]:
        query = (
            db.query(SeatBooking)
            .join(Seat, SeatBooking.seat_id == Seat.id)
            .options(joinedload(SeatBooking.seat).joinedload(Seat.branch))
            .options(joinedload(SeatBooking.seat).joinedload(Seat.seating_type))
            .filter(SeatBooking.customer_id == customer_id)
        )
        if branch_id is not None:
            query = query.filter(Seat.branch_id == branch_id)
        if seating_type_id is not None:
            query = query.filter(Seat.seating_type_id == seating_type_id)
        if booking_type:
            query = query.filter(SeatBooking.booking_type == booking_type)
        return query.order_by(SeatBooking.start_time.desc()).all()

    @staticmethod
    def get_customer_booking(db: Session, booking_id: int, customer_id: int) -> Optional[SeatBooking]:
        return (
            db.query(SeatBooking)
            .filter(SeatBooking.id == booking_id, SeatBooking.customer_id == customer_id)
            .first()
        )

    @staticmethod
    def get_group(db: Session, quantity_group: str) -> list[SeatBooking]:
        return (
            db.query(SeatBooking)
            .filter(SeatBooking.quantity_group == quantity_group)
            .order_by(SeatBooking.id)
            .all()
        )

    @staticmethod
    def get_payment_for_order(db: Session, order_id: str) -> Optional[Payment]:
        return db.query(Payment).filter(Payment.order_id == order_id).first()
