from typing import Iterable

from sqlalchemy.orm import Session

from ...database import IS_SQLITE
from ...models import MaintenanceBlock, Seat, SeatBooking
from .intervals import (
    BLOCKING_STATUSES,
    OCCUPANCY_BOOKING,
    OCCUPANCY_MAINTENANCE,
    Occupancy,
    TimeWindow,
)


class AvailabilityRepository:
    """Loads seat occupancy overlapping a window"""

    @staticmethod
    def get_seats(db: Session, branch_id: int, seating_type_id: int, lock: bool = False) -> list[Seat]:
        """Seats of one type in a branch; ``lock`` takes row locks for booking"""
        query = db.query(Seat).filter(
            Seat.branch_id == branch_id, Seat.seating_type_id == seating_type_id
        )
        if lock and not IS_SQLITE:
            query = query.with_for_update()
        return query.order_by(Seat.id).all()

    @staticmethod
    def lock_seats(db: Session, seat_ids: Iterable[int]) -> list[Seat]:
        seat_ids = list(seat_ids)
        if not seat_ids:
            return []
        query = db.query(Seat).filter(Seat.id.in_(seat_ids))
        if not IS_SQLITE:
            query = query.with_for_update()
        return query.all()

    @staticmethod
    def get_occupancies(
        db: Session, seat_ids: Iterable[int], window: TimeWindow, include_maintenance: bool = True
    ) -> list[Occupancy]:
        """Blocking bookings and maintenance blocks overlapping the window"""
        seat_ids = list(seat_ids)
        if not seat_ids:
            return []

        bookings = (
            db.query(SeatBooking)
            .filter(
                SeatBooking.seat_id.in_(seat_ids),
                SeatBooking.status.in_(BLOCKING_STATUSES),
                SeatBooking.start_time < window.end,
                SeatBooking.end_time > window.start,
            )
            .order_by(SeatBooking.start_time)
            .all()
        )
        occupancies = [
            Occupancy(
                seat_id=booking.seat_id,
                start=booking.start_time,
                end=booking.end_time,
                kind=OCCUPANCY_BOOKING,
                ref_id=booking.id,
            )
            for booking in bookings
        ]

        if include_maintenance:
            blocks = (
                db.query(MaintenanceBlock)
                .filter(
                    MaintenanceBlock.seat_id.in_(seat_ids),
                    MaintenanceBlock.start_time < window.end,
                    MaintenanceBlock.end_time > window.start,
                )
                .order_by(MaintenanceBlock.start_time)
                .all()
            )
            occupancies.extend(
                Occupancy(
                    seat_id=block.seat_id,
                    start=block.start_time,
                    end=block.end_time,
                    kind=OCCUPANCY_MAINTENANCE,
                    ref_id=block.id,
                    reason=block.reason,
                )
                for block in blocks
            )

        return occupancies
