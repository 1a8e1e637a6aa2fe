"""
Loyalty coin rules.

Bookings earn 10 coins per month started, 1 coin per 100 INR paid and 5
bonus coins per 3 months. Meeting room bookings earn nothing.
"""

from datetime import datetime, timedelta

ACTIVITY_COINS = {
    "early_payment": 5,
    "referral": 20,
    "extended_booking": 15,
}


def calculate_booking_coins(
    start: datetime, end: datetime, total_price: float, booking_type: str
) -> int:
    if booking_type in ("meeting", "meeting_room"):
        return 0

    # Booking ends are exclusive, count the month of the last booked moment
    last_moment = end - timedelta(seconds=1) if end > start else start
    months = (last_moment.year - start.year) * 12 + last_moment.month - start.month + 1

    coins = months * 10
    coins += int(total_price // 100)
    coins += (months // 3) * 5
    return max(0, coins)


def calculate_activity_coins(activity: str, months: int = 1) -> int:
    if activity == "perfect_attendance":
        return max(months, 1) * 10
    return ACTIVITY_COINS.get(activity, 0)
