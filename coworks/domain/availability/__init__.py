"""Seat availability and overlap detection shared by booking, slot and stats endpoints"""

from .exceptions import AvailabilityError, BookingRuleError, InsufficientAvailabilityError
from .intervals import (
    BLOCKING_STATUSES,
    OCCUPANCY_BOOKING,
    OCCUPANCY_MAINTENANCE,
    Occupancy,
    TimeWindow,
    allocate_seats,
    busy_seat_ids,
    classify_booking,
    conflicting_occupancies,
    day_timeline,
    find_available_seats,
    hourly_slots,
    natural_sort_key,
    overlaps,
    parse_clock,
)
from .repository import AvailabilityRepository
from .rules import (
    can_book_multiple,
    default_end_date,
    duration_unit,
    is_hourly_type,
    is_meeting_room,
    is_monthly_type,
    requested_window,
    validate_duration,
    validate_quantity,
)

__all__ = [
    "AvailabilityError",
    "AvailabilityRepository",
    "BLOCKING_STATUSES",
    "BookingRuleError",
    "InsufficientAvailabilityError",
    "OCCUPANCY_BOOKING",
    "OCCUPANCY_MAINTENANCE",
    "Occupancy",
    "TimeWindow",
    "allocate_seats",
    "busy_seat_ids",
    "can_book_multiple",
    "classify_booking",
    "conflicting_occupancies",
    "day_timeline",
    "default_end_date",
    "duration_unit",
    "find_available_seats",
    "hourly_slots",
    "is_hourly_type",
    "is_meeting_room",
    "is_monthly_type",
    "natural_sort_key",
    "overlaps",
    "parse_clock",
    "requested_window",
    "validate_duration",
    "validate_quantity",
]
