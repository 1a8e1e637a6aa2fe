from datetime import date, datetime
from types import SimpleNamespace

import pytest

from coworks.domain.availability import TimeWindow
from coworks.domain.pricing import (
    apply_quantity_discounts,
    calculate_activity_coins,
    calculate_booking_coins,
    calculate_booking_cost,
    calculate_total_price,
    find_best_rate_type,
    quote_booking,
    split_amount,
)
from coworks.models import SeatingTypeName

DISCOUNTS = {"1": 1.0, "2": 0.95, "3": 0.90, "4": 0.85, "5": 0.80, "10": 0.75}


class TestMonthlyCost:
    def test_pro_rata_first_month(self):
        breakdown = calculate_booking_cost(date(2030, 1, 15), date(2030, 3, 31), 3100)

        assert [item.amount for item in breakdown.items] == [1700, 3100, 3100]
        assert breakdown.total_cost == 7900
        assert breakdown.items[0].description == "Pro-rata for January 2030 (15-31)"
        assert breakdown.refund_amount == 0

    def test_pro_rata_last_month(self):
        breakdown = calculate_booking_cost(date(2030, 1, 1), date(2030, 2, 14), 2800)

        assert [item.amount for item in breakdown.items] == [2800, 1400]
        assert breakdown.items[1].description == "Pro-rata for February 2030 (1-14)"

    def test_single_partial_month(self):
        breakdown = calculate_booking_cost(date(2030, 4, 11), date(2030, 4, 20), 3000)
        assert breakdown.total_cost == 1000

    def test_cancellation_refunds_months_after_notice(self):
        breakdown = calculate_booking_cost(
            date(2030, 1, 1), date(2030, 6, 30), 1000, cancellation_date=date(2030, 2, 10)
        )

        assert breakdown.refund_amount == 3000
        assert breakdown.total_cost == 3000
        assert breakdown.items[-1].description.startswith("Cancellation notice: 2030-02-10")

    def test_cancellation_inside_notice_period_refunds_nothing(self):
        breakdown = calculate_booking_cost(
            date(2030, 1, 1), date(2030, 2, 28), 1000, cancellation_date=date(2030, 2, 1)
        )
        assert breakdown.refund_amount == 0
        assert breakdown.total_cost == 2000

    def test_to_dict(self):
        data = calculate_booking_cost(date(2030, 1, 1), date(2030, 1, 31), 5000).to_dict()
        assert data == {
            "total_cost": 5000,
            "refund_amount": 0,
            "items": [{"description": "Full month: January 2030", "amount": 5000}],
        }


class TestTotalPrice:
    def test_hourly(self):
        assert calculate_total_price(datetime(2030, 1, 1, 9), datetime(2030, 1, 1, 11, 30), 200) == 500

    def test_daily_with_quantity(self):
        assert calculate_total_price(datetime(2030, 1, 1), datetime(2030, 1, 4), 400, 2, "daily") == 2400

    def test_monthly_uses_calendar_months(self):
        price = calculate_total_price(datetime(2030, 1, 15), datetime(2030, 3, 15), 6000, rate_type="monthly")
        assert price == 12000

    def test_unknown_rate_type(self):
        with pytest.raises(ValueError):
            calculate_total_price(datetime(2030, 1, 1), datetime(2030, 1, 2), 100, rate_type="yearly")


class TestDiscounts:
    def test_highest_tier_not_above_quantity(self):
        assert apply_quantity_discounts(1000, 2, DISCOUNTS) == 950
        assert apply_quantity_discounts(1000, 7, DISCOUNTS) == 800
        assert apply_quantity_discounts(1000, 12, DISCOUNTS) == 750

    def test_no_discount_for_single_seat_or_missing_table(self):
        assert apply_quantity_discounts(1000, 1, DISCOUNTS) == 1000
        assert apply_quantity_discounts(1000, 5, None) == 1000

    def test_best_rate_type(self):
        rates = {"daily": 500, "monthly": 10000}
        assert find_best_rate_type(datetime(2030, 1, 1), datetime(2030, 1, 11), rates) == "monthly"

    def test_best_rate_type_defaults_to_hourly(self):
        assert find_best_rate_type(datetime(2030, 1, 1), datetime(2030, 1, 2), {}) == "hourly"


class TestSplitAmount:
    def test_last_share_takes_the_remainder(self):
        assert split_amount(16200.05, 3) == [5400.02, 5400.02, 5400.01]
        assert split_amount(100, 3) == [33.33, 33.33, 33.34]

    def test_shares_add_up_to_the_total(self):
        assert round(sum(split_amount(16200.05, 3)), 2) == 16200.05
        assert split_amount(1000, 1) == [1000]


class TestQuote:
    def test_hot_desk_group_discount_then_location(self):
        hot_desk = SimpleNamespace(
            name=SeatingTypeName.HOT_DESK,
            is_hourly=False,
            monthly_rate=6000.0,
            cost_multiplier=DISCOUNTS,
        )
        branch = SimpleNamespace(cost_multiplier=1.0)
        window = TimeWindow(datetime(2030, 1, 1), datetime(2030, 2, 1))

        quote = quote_booking(hot_desk, branch, window, quantity=2)

        assert quote.unit_price == 6000
        assert quote.subtotal == 12000
        assert quote.discounted == 11400
        assert quote.total == 11400
        assert quote.rate_unit == "per month"
        assert quote.to_dict()["breakdown"]["total_cost"] == 6000

    def test_meeting_room_charges_started_hours(self):
        room = SimpleNamespace(
            name=SeatingTypeName.MEETING_ROOM, is_hourly=True, hourly_rate=500.0, cost_multiplier=None
        )
        branch = SimpleNamespace(cost_multiplier=1.1)
        window = TimeWindow(datetime(2030, 1, 1, 10), datetime(2030, 1, 1, 12, 30))

        quote = quote_booking(room, branch, window)

        assert quote.unit_price == 1500
        assert quote.total == 1650
        assert quote.breakdown is None

    def test_daily_pass(self):
        daily = SimpleNamespace(
            name=SeatingTypeName.DAILY_PASS, is_hourly=False, daily_rate=800.0, cost_multiplier=None
        )
        window = TimeWindow(datetime(2030, 1, 1), datetime(2030, 1, 4))

        quote = quote_booking(daily, None, window)

        assert quote.total == 2400
        assert quote.rate_unit == "per day"


class TestCoins:
    def test_quarter_booking(self):
        coins = calculate_booking_coins(datetime(2030, 1, 1), datetime(2030, 4, 1), 18000, "seat")
        assert coins == 215

    def test_single_month(self):
        assert calculate_booking_coins(datetime(2030, 1, 1), datetime(2030, 2, 1), 5700, "seat") == 67

    def test_meetings_earn_nothing(self):
        assert calculate_booking_coins(datetime(2030, 1, 1, 9), datetime(2030, 1, 1, 11), 1000, "meeting") == 0

    def test_activity_coins(self):
        assert calculate_activity_coins("referral") == 20
        assert calculate_activity_coins("perfect_attendance", months=3) == 30
        assert calculate_activity_coins("unknown") == 0
