from .calculator import (
    RATE_TYPES,
    BreakdownItem,
    CostBreakdown,
    Quote,
    apply_quantity_discounts,
    calculate_booking_cost,
    calculate_total_price,
    find_best_rate_type,
    last_booked_day,
    quote_booking,
    split_amount,
)
from .coins import calculate_activity_coins, calculate_booking_coins

__all__ = [
    "RATE_TYPES",
    "BreakdownItem",
    "CostBreakdown",
    "Quote",
    "apply_quantity_discounts",
    "calculate_activity_coins",
    "calculate_booking_coins",
    "calculate_booking_cost",
    "calculate_total_price",
    "find_best_rate_type",
    "last_booked_day",
    "quote_booking",
    "split_amount",
]
