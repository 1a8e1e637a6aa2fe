"""
Interval arithmetic over seat occupancy.

Windows are half-open ``[start, end)``: a booking ending at 10:00 and one
starting at 10:00 do not conflict. Functions here never touch the database;
callers load occupancies through ``AvailabilityRepository`` and pass them in.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional, Sequence

from ...models import BookingStatus, SeatStatus
from .exceptions import InsufficientAvailabilityError

BLOCKING_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED})

OCCUPANCY_BOOKING = "booking"
OCCUPANCY_MAINTENANCE = "maintenance"


@dataclass(frozen=True)
class TimeWindow:
    start: datetime
    end: datetime

    @property
    def duration(self) -> timedelta:
        return self.end - self.start


@dataclass(frozen=True)
class Occupancy:
    """A booking or maintenance block holding a seat for a window"""

    seat_id: int
    start: datetime
    end: datetime
    kind: str = OCCUPANCY_BOOKING
    ref_id: Optional[int] = None
    reason: Optional[str] = None

    @property
    def window(self) -> TimeWindow:
        return TimeWindow(self.start, self.end)


def overlaps(a: TimeWindow, b: TimeWindow) -> bool:
    return a.start < b.end and b.start < a.end


def natural_sort_key(value: str):
    """Sort "A2" before "A10" """
    return [int(part) if part.isdigit() else part.lower() for part in re.split(r"(\d+)", value or "")]


def parse_clock(value: Optional[str], default: str) -> time:
    """Parse an "HH:MM" (or "HH:MM:SS") opening-hours string"""
    raw = (value or default).strip()
    parts = raw.split(":")
    return time(int(parts[0]), int(parts[1]) if len(parts) > 1 else 0)


def conflicting_occupancies(
    occupancies: Iterable[Occupancy], window: TimeWindow
) -> list[Occupancy]:
    return [occ for occ in occupancies if overlaps(occ.window, window)]


def busy_seat_ids(occupancies: Iterable[Occupancy], window: TimeWindow) -> set[int]:
    return {occ.seat_id for occ in conflicting_occupancies(occupancies, window)}


def find_available_seats(seats: Sequence, occupancies: Iterable[Occupancy], window: TimeWindow) -> list:
    """
    Seats free for the whole window.

    A seat qualifies when its admin status is AVAILABLE and no booking or
    maintenance block overlaps the window. Result is ordered by seat number.
    """
    busy = busy_seat_ids(occupancies, window)
    free = [
        seat
        for seat in seats
        if seat.availability_status == SeatStatus.AVAILABLE and seat.id not in busy
    ]
    return sorted(free, key=lambda seat: natural_sort_key(seat.seat_number))


def allocate_seats(available: Sequence, quantity: int) -> list:
    if quantity > len(available):
        raise InsufficientAvailabilityError(len(available), quantity)
    return list(available[:quantity])


def day_timeline(
    start_date: date,
    end_date: date,
    opening: time,
    closing: time,
    occupancies: Iterable[Occupancy],
    seat_status: str,
) -> list[dict]:
    """One slot per day between opening and closing for a single seat"""
    occupancies = list(occupancies)
    slots = []
    current = start_date
    while current <= end_date:
        day_window = TimeWindow(datetime.combine(current, opening), datetime.combine(current, closing))
        slot = {
            "date": current.isoformat(),
            "start_time": opening.strftime("%H:%M"),
            "end_time": closing.strftime("%H:%M"),
            "status": "available",
        }

        if seat_status != SeatStatus.AVAILABLE:
            slot["status"] = "unavailable"
        else:
            hits = conflicting_occupancies(occupancies, day_window)
            maintenance = [occ for occ in hits if occ.kind == OCCUPANCY_MAINTENANCE]
            bookings = [occ for occ in hits if occ.kind == OCCUPANCY_BOOKING]
            if maintenance:
                slot["status"] = "maintenance"
                slot["block_id"] = maintenance[0].ref_id
                slot["reason"] = maintenance[0].reason
            elif bookings:
                slot["status"] = "booked"
                slot["booking_id"] = bookings[0].ref_id

        slots.append(slot)
        current += timedelta(days=1)

    return slots


def hourly_slots(
    day: date,
    opening: time,
    closing: time,
    start_time: Optional[time],
    end_time: Optional[time],
    seat_ids: Iterable[int],
    occupancies: Iterable[Occupancy],
) -> list[dict]:
    """
    Hourly slots from opening to closing, limited to the requested range
    when both bounds are given, each with the number of free seats.
    """
    seat_ids = list(seat_ids)
    occupancies = list(occupancies)
    slots = []

    for hour in range(opening.hour, closing.hour):
        slot_start = time(hour, 0)
        slot_end_dt = datetime.combine(day, slot_start) + timedelta(hours=1)
        if start_time and end_time:
            if slot_start < start_time or slot_end_dt > datetime.combine(day, end_time):
                continue

        window = TimeWindow(datetime.combine(day, slot_start), slot_end_dt)
        busy = busy_seat_ids(occupancies, window)
        available_count = len([seat_id for seat_id in seat_ids if seat_id not in busy])
        slots.append(
            {
                "date": day.isoformat(),
                "start_time": slot_start.strftime("%H:%M"),
                "end_time": slot_end_dt.strftime("%H:%M"),
                "available_count": available_count,
                "is_available": available_count > 0,
            }
        )

    return slots


def classify_booking(status: str, start: datetime, end: datetime, now: datetime) -> str:
    """Listing state: active, upcoming, completed, cancelled or pending"""
    if status == BookingStatus.CANCELLED:
        return "cancelled"
    if status == BookingStatus.PENDING:
        return "pending"
    if status == BookingStatus.COMPLETED or end <= now:
        return "completed"
    if start <= now:
        return "active"
    return "upcoming"
