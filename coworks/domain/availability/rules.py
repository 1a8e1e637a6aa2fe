"""Per seating type booking rules: windows, minimum durations, quantities"""

from datetime import date, datetime, time, timedelta
from typing import Optional

from dateutil.relativedelta import relativedelta

from ...models import SeatingTypeName
from .exceptions import BookingRuleError
from .intervals import TimeWindow


def is_hourly_type(seating_type) -> bool:
    return bool(seating_type.is_hourly) or seating_type.name == SeatingTypeName.MEETING_ROOM


def is_meeting_room(seating_type) -> bool:
    """Meeting rooms take participants; other hourly seating is booked per seat"""
    return seating_type.name == SeatingTypeName.MEETING_ROOM


def is_monthly_type(seating_type) -> bool:
    return not is_hourly_type(seating_type) and seating_type.name in SeatingTypeName.MONTHLY


def can_book_multiple(seating_type) -> bool:
    return seating_type.name in SeatingTypeName.MULTI_UNIT


def duration_unit(seating_type) -> str:
    if is_hourly_type(seating_type):
        return "hours"
    if is_monthly_type(seating_type):
        return "months"
    return "days"


def default_end_date(seating_type, start_date: date) -> date:
    """
    Last (inclusive) day of the shortest allowed booking.

    Monthly types run ``min_booking_duration`` calendar months, everything
    else that many days.
    """
    min_duration = max(seating_type.min_booking_duration or 1, 1)
    if is_monthly_type(seating_type):
        return start_date + relativedelta(months=min_duration) - timedelta(days=1)
    return start_date + timedelta(days=min_duration - 1)


def requested_window(
    seating_type,
    start_date: date,
    end_date: Optional[date] = None,
    start_time: Optional[time] = None,
    end_time: Optional[time] = None,
) -> TimeWindow:
    """Translate request dates and times into the occupied interval"""
    if is_hourly_type(seating_type):
        if start_time and end_time:
            window = TimeWindow(
                datetime.combine(start_date, start_time), datetime.combine(start_date, end_time)
            )
        else:
            day_start = datetime.combine(start_date, time.min)
            window = TimeWindow(day_start, day_start + timedelta(days=1))
    else:
        last_day = end_date or default_end_date(seating_type, start_date)
        window = TimeWindow(
            datetime.combine(start_date, time.min),
            datetime.combine(last_day + timedelta(days=1), time.min),
        )

    if window.end <= window.start:
        raise BookingRuleError("End time must be after start time")
    return window


def validate_duration(seating_type, window: TimeWindow) -> None:
    if window.end <= window.start:
        raise BookingRuleError("End time must be after start time")

    min_duration = max(seating_type.min_booking_duration or 1, 1)

    if is_hourly_type(seating_type):
        hours = window.duration.total_seconds() / 3600
        if hours < min_duration:
            raise BookingRuleError(
                f"{seating_type.name} bookings require a minimum of {min_duration} hour(s)"
            )
    elif is_monthly_type(seating_type):
        if window.end < window.start + relativedelta(months=min_duration):
            raise BookingRuleError(
                f"{seating_type.name} bookings require a minimum of {min_duration} month(s)"
            )
    else:
        days = window.duration.total_seconds() / 86400
        if days < min_duration:
            raise BookingRuleError(
                f"{seating_type.name} bookings require a minimum of {min_duration} day(s)"
            )


def validate_quantity(seating_type, quantity: int) -> None:
    if quantity < 1:
        raise BookingRuleError("Quantity must be at least 1")

    min_seats = seating_type.min_seats or 1
    if quantity < min_seats:
        raise BookingRuleError(f"{seating_type.name} requires booking at least {min_seats} seat(s)")

    if quantity > 1 and not can_book_multiple(seating_type):
        raise BookingRuleError(f"{seating_type.name} can only be booked one at a time")

    options = seating_type.quantity_options
    if options and quantity not in [int(option) for option in options]:
        raise BookingRuleError(
            f"Quantity {quantity} is not offered for {seating_type.name}. Choose one of {options}"
        )
