"""
Slot and Availability API Routes

Public endpoints answering "what can I book" for a branch and seating type,
and per-seat day timelines including maintenance blocks.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session, joinedload

from ..database import get_db
from ..domain.availability import (
    AvailabilityRepository,
    BookingRuleError,
    TimeWindow,
    can_book_multiple,
    day_timeline,
    duration_unit,
    find_available_seats,
    hourly_slots,
    is_hourly_type,
    natural_sort_key,
    parse_clock,
    requested_window,
    validate_duration,
)
from ..domain.pricing import last_booked_day, quote_booking
from ..models import Branch, Seat, SeatingType, SeatStatus
from ..shared.validators import parse_date_param, parse_time_param

logger = logging.getLogger(__name__)

slots_router = APIRouter(prefix="/slots", tags=["Slots"])
availability_router = APIRouter(prefix="/availability", tags=["Availability"])

MAX_TIMELINE_DAYS = 93


def _booking_info(seating_type: SeatingType) -> dict:
    unit = duration_unit(seating_type)
    minimum = seating_type.min_booking_duration or 1
    label = seating_type.name.replace("_", " ").lower()
    if is_hourly_type(seating_type):
        message = f"{label.capitalize()} booking is on an hourly basis, minimum {minimum} hour(s)"
    else:
        message = f"{label.capitalize()} booking requires a minimum duration of {minimum} {unit[:-1]}(s)"
    if (seating_type.min_seats or 1) > 1:
        message += f" with minimum {seating_type.min_seats} seats"
    return {
        "type": seating_type.name,
        "message": message,
        "can_book_multiple": can_book_multiple(seating_type),
    }


@slots_router.get("/available")
async def get_available_slots(
    branch_code: str = Query(...),
    seating_type_code: str = Query(...),
    start_date: Optional[str] = Query(None, description="YYYY-MM-DD, defaults to today"),
    end_date: Optional[str] = Query(None, description="YYYY-MM-DD, inclusive"),
    start_time: Optional[str] = Query(None, description="HH:MM, hourly seating only"),
    end_time: Optional[str] = Query(None, description="HH:MM, hourly seating only"),
    db: Session = Depends(get_db),
):
    """Free seats, time slots and a price estimate for a branch and seating type"""
    try:
        start_day = parse_date_param(start_date, "start_date") or datetime.utcnow().date()
        end_day = parse_date_param(end_date, "end_date")
        start_clock = parse_time_param(start_time, "start_time")
        end_clock = parse_time_param(end_time, "end_time")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    branch = (
        db.query(Branch)
        .filter(Branch.short_code == branch_code.upper(), Branch.is_active.is_(True))
        .first()
    )
    if not branch:
        raise HTTPException(status_code=404, detail=f"Branch with code {branch_code} not found")

    seating_type = db.query(SeatingType).filter(SeatingType.short_code == seating_type_code.upper()).first()
    if not seating_type:
        raise HTTPException(status_code=404, detail=f"Seating type with code {seating_type_code} not found")

    try:
        window = requested_window(seating_type, start_day, end_day, start_clock, end_clock)
    except BookingRuleError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    repo = AvailabilityRepository()
    seats = repo.get_seats(db, branch.id, seating_type.id)
    if not seats:
        raise HTTPException(
            status_code=404,
            detail=f"No seats found for seating type {seating_type.short_code} in branch {branch.short_code}",
        )

    seat_ids = [seat.id for seat in seats]
    occupancies = repo.get_occupancies(db, seat_ids, window)
    available = find_available_seats(seats, occupancies, window)
    hourly = is_hourly_type(seating_type)

    response = {
        "branch": {
            "id": branch.id,
            "name": branch.name,
            "short_code": branch.short_code,
            "location": branch.location,
            "address": branch.address,
            "opening_time": branch.opening_time,
            "closing_time": branch.closing_time,
        },
        "seating_type": {
            "id": seating_type.id,
            "name": seating_type.name,
            "short_code": seating_type.short_code,
            "description": seating_type.description,
            "hourly_rate": seating_type.hourly_rate,
            "daily_rate": seating_type.daily_rate,
            "monthly_rate": seating_type.monthly_rate,
            "is_hourly": hourly,
            "min_booking_duration": seating_type.min_booking_duration,
            "min_seats": seating_type.min_seats,
        },
        "start_date": start_day.isoformat(),
        "end_date": start_day.isoformat() if hourly else last_booked_day(window).isoformat(),
        "available_seats": [
            {
                "id": seat.id,
                "seat_number": seat.seat_number,
                "seat_code": seat.seat_code,
                "price": seat.price,
                "capacity": seat.capacity,
            }
            for seat in available
        ],
        "seat_count": len(available),
        "booking_requirements": {
            "min_duration": seating_type.min_booking_duration,
            "min_seats": seating_type.min_seats,
            "duration_unit": duration_unit(seating_type),
            "is_hourly": hourly,
            "quantity_options": seating_type.quantity_options,
            "capacity_options": seating_type.capacity_options,
        },
        "booking_info": _booking_info(seating_type),
        "pricing": None,
    }

    if hourly:
        opening = parse_clock(branch.opening_time, "08:00")
        closing = parse_clock(branch.closing_time, "22:00")
        day_window = TimeWindow(datetime.combine(start_day, opening), datetime.combine(start_day, closing))
        day_occupancies = repo.get_occupancies(db, seat_ids, day_window)
        bookable_ids = [seat.id for seat in seats if seat.availability_status == SeatStatus.AVAILABLE]
        response["time_slots"] = hourly_slots(
            start_day, opening, closing, start_clock, end_clock, bookable_ids, day_occupancies
        )

    if not hourly or (start_clock and end_clock):
        try:
            validate_duration(seating_type, window)
            response["pricing"] = quote_booking(seating_type, branch, window, 1).to_dict()
        except BookingRuleError as e:
            response["pricing_error"] = str(e)

    return response


@availability_router.get("")
async def get_availability(
    start_date: str = Query(...),
    end_date: str = Query(...),
    seat_id: Optional[int] = Query(None),
    branch_id: Optional[int] = Query(None),
    seating_type_code: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    """Day-by-day timeline per seat, marking bookings and maintenance blocks"""
    try:
        start_day = parse_date_param(start_date, "start_date")
        end_day = parse_date_param(end_date, "end_date")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    if end_day < start_day:
        raise HTTPException(status_code=400, detail="end_date must not be before start_date")
    if (end_day - start_day).days > MAX_TIMELINE_DAYS:
        raise HTTPException(status_code=400, detail=f"Date range cannot exceed {MAX_TIMELINE_DAYS} days")

    query = db.query(Seat).options(joinedload(Seat.branch), joinedload(Seat.seating_type))
    if seat_id is not None:
        query = query.filter(Seat.id == seat_id)
    elif branch_id is not None:
        query = query.filter(Seat.branch_id == branch_id)
        if seating_type_code:
            query = query.join(SeatingType, Seat.seating_type_id == SeatingType.id).filter(
                SeatingType.short_code == seating_type_code.upper()
            )
    else:
        raise HTTPException(status_code=400, detail="Either seat_id or branch_id is required")

    seats = query.all()
    if not seats:
        raise HTTPException(status_code=404, detail="No seats found")
    seats.sort(key=lambda seat: natural_sort_key(seat.seat_number))

    window = TimeWindow(
        datetime.combine(start_day, datetime.min.time()),
        datetime.combine(end_day + timedelta(days=1), datetime.min.time()),
    )
    occupancies = AvailabilityRepository().get_occupancies(db, [seat.id for seat in seats], window)

    results = []
    for seat in seats:
        branch = seat.branch
        opening = parse_clock(branch.opening_time if branch else None, "08:00")
        closing = parse_clock(branch.closing_time if branch else None, "22:00")
        results.append(
            {
                "seat": {
                    "id": seat.id,
                    "seat_number": seat.seat_number,
                    "seat_code": seat.seat_code,
                    "availability_status": seat.availability_status,
                    "branch_id": seat.branch_id,
                    "branch_name": branch.name if branch else None,
                    "seating_type_id": seat.seating_type_id,
                    "seating_type_name": seat.seating_type.name if seat.seating_type else None,
                    "seating_type_code": seat.seating_type.short_code if seat.seating_type else None,
                    "opening_time": opening.strftime("%H:%M"),
                    "closing_time": closing.strftime("%H:%M"),
                },
                "time_slots": day_timeline(
                    start_day,
                    end_day,
                    opening,
                    closing,
                    [occ for occ in occupancies if occ.seat_id == seat.id],
                    seat.availability_status,
                ),
            }
        )

    return {"start_date": start_day.isoformat(), "end_date": end_day.isoformat(), "seats": results}
