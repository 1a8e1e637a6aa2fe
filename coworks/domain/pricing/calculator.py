"""
Booking price calculation.

Pro-rata rules for monthly seating:
1. A first month not starting on the 1st is charged for its remaining days
2. Full calendar months are charged the monthly rate
3. A last month ending before its final day is charged for the days used
4. Cancelling requires one month notice; months starting after the notice
   period are refunded
"""

import calendar
import math
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timedelta
from typing import Optional

from dateutil.relativedelta import relativedelta

from ..availability import TimeWindow, is_hourly_type, is_monthly_type

RATE_TYPES = ("hourly", "daily", "weekly", "monthly")


@dataclass
class BreakdownItem:
    description: str
    amount: float
    period_start: Optional[date] = None


@dataclass
class CostBreakdown:
    total_cost: float
    items: list[BreakdownItem] = field(default_factory=list)
    refund_amount: float = 0.0

    def to_dict(self) -> dict:
        return {
            "total_cost": self.total_cost,
            "refund_amount": self.refund_amount,
            "items": [
                {"description": item.description, "amount": item.amount} for item in self.items
            ],
        }


@dataclass
class Quote:
    unit_price: float
    subtotal: float
    discounted: float
    total: float
    rate_unit: str
    quantity: int = 1
    breakdown: Optional[CostBreakdown] = None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["breakdown"] = self.breakdown.to_dict() if self.breakdown else None
        return data


def _days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def calculate_total_price(
    start: datetime, end: datetime, rate: float, quantity: int = 1, rate_type: str = "hourly"
) -> float:
    """Price for an exact duration at a given rate (fractional units are charged)"""
    if rate_type not in RATE_TYPES:
        raise ValueError(f"Unknown rate type: {rate_type}")

    seconds = (end - start).total_seconds()

    if rate_type == "hourly":
        units = seconds / 3600
    elif rate_type == "daily":
        units = seconds / 86400
    elif rate_type == "weekly":
        units = seconds / (86400 * 7)
    else:
        delta = relativedelta(end, start)
        whole_months = delta.years * 12 + delta.months
        anchor = start + relativedelta(months=whole_months)
        next_anchor = anchor + relativedelta(months=1)
        remainder = (end - anchor).total_seconds() / (next_anchor - anchor).total_seconds()
        units = whole_months + remainder

    return round(rate * units * quantity, 2)


def apply_quantity_discounts(
    base_price: float, quantity: int = 1, cost_multiplier: Optional[dict] = None
) -> float:
    """Apply the multiplier of the highest quantity tier not above ``quantity``"""
    if not cost_multiplier or quantity <= 1:
        return base_price

    selected = 1.0
    for key in sorted(cost_multiplier, key=lambda k: int(k)):
        if quantity >= int(key):
            selected = float(cost_multiplier[key])
        else:
            break

    return round(base_price * selected, 2)


def split_amount(total: float, parts: int) -> list[float]:
    """Split a charge into per-seat prices; the last seat absorbs the rounding remainder"""
    share = round(total / parts, 2)
    shares = [share] * (parts - 1)
    shares.append(round(total - share * (parts - 1), 2))
    return shares


def find_best_rate_type(start: datetime, end: datetime, rates: dict) -> str:
    """Cheapest rate type for the duration; monthly is approximated as days / 30"""
    seconds = (end - start).total_seconds()
    days = seconds / 86400
    candidates = {
        "hourly": seconds / 3600,
        "daily": days,
        "weekly": days / 7,
        "monthly": days / 30,
    }

    prices = [
        (rate_type, rates[rate_type] * units)
        for rate_type, units in candidates.items()
        if rates.get(rate_type)
    ]
    if not prices:
        return "hourly"
    return min(prices, key=lambda item: item[1])[0]


def calculate_booking_cost(
    start_date: date,
    end_date: date,
    monthly_rate: float,
    cancellation_date: Optional[date] = None,
) -> CostBreakdown:
    """
    Cost of a monthly booking from ``start_date`` to ``end_date`` (inclusive).

    With ``cancellation_date`` the one month notice rule is applied: items for
    months beginning after the notice period are refunded and removed from
    the total.
    """
    items: list[BreakdownItem] = []

    if start_date.day != 1:
        last_day = _days_in_month(start_date.year, start_date.month)
        if (end_date.year, end_date.month) == (start_date.year, start_date.month):
            last_day = min(last_day, end_date.day)
        days_used = last_day - start_date.day + 1
        month_days = _days_in_month(start_date.year, start_date.month)
        items.append(
            BreakdownItem(
                description=f"Pro-rata for {start_date.strftime('%B %Y')} ({start_date.day}-{last_day})",
                amount=monthly_rate / month_days * days_used,
                period_start=start_date,
            )
        )
        current = start_date.replace(day=1) + relativedelta(months=1)
    else:
        current = start_date

    while current <= end_date:
        month_days = _days_in_month(current.year, current.month)
        label = current.strftime("%B %Y")
        if (end_date.year, end_date.month) == (current.year, current.month) and end_date.day != month_days:
            items.append(
                BreakdownItem(
                    description=f"Pro-rata for {label} (1-{end_date.day})",
                    amount=monthly_rate / month_days * end_date.day,
                    period_start=current,
                )
            )
        else:
            items.append(
                BreakdownItem(description=f"Full month: {label}", amount=monthly_rate, period_start=current)
            )
        current += relativedelta(months=1)

    refund_amount = 0.0
    if cancellation_date:
        notice_end = cancellation_date + relativedelta(months=1)
        if notice_end < end_date:
            refunded = [item for item in items if item.period_start and item.period_start > notice_end]
            refund_amount = sum(item.amount for item in refunded)
            items = [item for item in items if item not in refunded]
            items.append(
                BreakdownItem(
                    description=f"Cancellation notice: {cancellation_date.isoformat()} (1 month notice)",
                    amount=0.0,
                )
            )

    for item in items:
        item.amount = round(item.amount, 2)

    return CostBreakdown(
        total_cost=round(sum(item.amount for item in items), 2),
        items=items,
        refund_amount=round(refund_amount, 2),
    )


def last_booked_day(window: TimeWindow) -> date:
    """Inclusive last calendar day covered by a day-granular window"""
    return (window.end - timedelta(microseconds=1)).date()


def quote_booking(seating_type, branch, window: TimeWindow, quantity: int = 1) -> Quote:
    """
    Price a booking request.

    Meeting rooms are charged per started hour, daily passes per started day
    and monthly seating through ``calculate_booking_cost``. The quantity
    discount is applied before the branch location multiplier.
    """
    breakdown = None

    if is_hourly_type(seating_type):
        hours = math.ceil(window.duration.total_seconds() / 3600)
        unit_price = (seating_type.hourly_rate or 0.0) * hours
        rate_unit = "per hour"
    elif is_monthly_type(seating_type):
        breakdown = calculate_booking_cost(
            window.start.date(), last_booked_day(window), seating_type.monthly_rate or 0.0
        )
        unit_price = breakdown.total_cost
        rate_unit = "per month"
    else:
        days = math.ceil(window.duration.total_seconds() / 86400)
        unit_price = (seating_type.daily_rate or 0.0) * days
        rate_unit = "per day"

    subtotal = round(unit_price * quantity, 2)
    discounted = apply_quantity_discounts(subtotal, quantity, seating_type.cost_multiplier)
    location_multiplier = getattr(branch, "cost_multiplier", None) or 1.0
    total = round(discounted * location_multiplier, 2)

    return Quote(
        unit_price=round(unit_price, 2),
        subtotal=subtotal,
        discounted=discounted,
        total=total,
        rate_unit=rate_unit,
        quantity=quantity,
        breakdown=breakdown,
    )
