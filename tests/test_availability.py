from datetime import date, datetime, time
from types import SimpleNamespace

import pytest

from coworks.domain.availability import (
    OCCUPANCY_MAINTENANCE,
    BookingRuleError,
    InsufficientAvailabilityError,
    Occupancy,
    TimeWindow,
    allocate_seats,
    busy_seat_ids,
    classify_booking,
    day_timeline,
    default_end_date,
    find_available_seats,
    hourly_slots,
    overlaps,
    requested_window,
    validate_duration,
    validate_quantity,
)
from coworks.models import SeatingTypeName, SeatStatus


def seating_type(name, is_hourly=False, min_booking_duration=1, min_seats=1, quantity_options=None):
    return SimpleNamespace(
        name=name,
        is_hourly=is_hourly,
        min_booking_duration=min_booking_duration,
        min_seats=min_seats,
        quantity_options=quantity_options,
    )


def seat(seat_id, number, status=SeatStatus.AVAILABLE):
    return SimpleNamespace(id=seat_id, seat_number=str(number), availability_status=status)


def at(hour, minute=0, day=10):
    return datetime(2030, 1, day, hour, minute)


HOT_DESK = seating_type(SeatingTypeName.HOT_DESK, min_booking_duration=2, quantity_options=[1, 2, 3, 4, 5, 10])
MEETING_ROOM = seating_type(SeatingTypeName.MEETING_ROOM, is_hourly=True, min_booking_duration=2)
DAILY_PASS = seating_type(SeatingTypeName.DAILY_PASS, min_booking_duration=3)
CUBICLE = seating_type(SeatingTypeName.CUBICLE)


class TestOverlaps:
    def test_back_to_back_windows_do_not_overlap(self):
        assert not overlaps(TimeWindow(at(9), at(10)), TimeWindow(at(10), at(11)))
        assert not overlaps(TimeWindow(at(10), at(11)), TimeWindow(at(9), at(10)))

    def test_partial_overlap(self):
        assert overlaps(TimeWindow(at(9), at(11)), TimeWindow(at(10), at(12)))

    def test_containment(self):
        assert overlaps(TimeWindow(at(8), at(18)), TimeWindow(at(12), at(13)))
        assert overlaps(TimeWindow(at(12), at(13)), TimeWindow(at(8), at(18)))


class TestRequestedWindow:
    def test_hourly_with_times(self):
        window = requested_window(MEETING_ROOM, date(2030, 1, 10), None, time(10, 0), time(12, 30))
        assert window == TimeWindow(at(10), at(12, 30))

    def test_hourly_without_times_covers_the_day(self):
        window = requested_window(MEETING_ROOM, date(2030, 1, 10))
        assert window == TimeWindow(datetime(2030, 1, 10), datetime(2030, 1, 11))

    def test_end_date_is_inclusive(self):
        window = requested_window(DAILY_PASS, date(2030, 1, 10), date(2030, 1, 12))
        assert window == TimeWindow(datetime(2030, 1, 10), datetime(2030, 1, 13))

    def test_monthly_default_end_date(self):
        assert default_end_date(HOT_DESK, date(2030, 1, 15)) == date(2030, 3, 14)
        window = requested_window(HOT_DESK, date(2030, 1, 15))
        assert window.end == datetime(2030, 3, 15)

    def test_daily_default_end_date(self):
        assert default_end_date(DAILY_PASS, date(2030, 1, 10)) == date(2030, 1, 12)

    def test_inverted_times_rejected(self):
        with pytest.raises(BookingRuleError):
            requested_window(MEETING_ROOM, date(2030, 1, 10), None, time(12, 0), time(10, 0))


class TestRules:
    def test_meeting_room_minimum_hours(self):
        with pytest.raises(BookingRuleError, match="minimum of 2 hour"):
            validate_duration(MEETING_ROOM, TimeWindow(at(10), at(11)))
        validate_duration(MEETING_ROOM, TimeWindow(at(10), at(12)))

    def test_monthly_minimum_uses_calendar_months(self):
        with pytest.raises(BookingRuleError, match="month"):
            validate_duration(HOT_DESK, TimeWindow(datetime(2030, 1, 15), datetime(2030, 2, 15)))
        validate_duration(HOT_DESK, TimeWindow(datetime(2030, 1, 15), datetime(2030, 3, 15)))

    def test_daily_pass_minimum_days(self):
        with pytest.raises(BookingRuleError, match="day"):
            validate_duration(DAILY_PASS, TimeWindow(datetime(2030, 1, 10), datetime(2030, 1, 12)))

    def test_quantity_must_be_positive(self):
        with pytest.raises(BookingRuleError):
            validate_quantity(HOT_DESK, 0)

    def test_single_unit_types(self):
        with pytest.raises(BookingRuleError, match="one at a time"):
            validate_quantity(CUBICLE, 2)
        validate_quantity(CUBICLE, 1)

    def test_quantity_options(self):
        with pytest.raises(BookingRuleError, match="not offered"):
            validate_quantity(HOT_DESK, 6)
        validate_quantity(HOT_DESK, 10)

    def test_min_seats(self):
        team_desk = seating_type(SeatingTypeName.DEDICATED_DESK, min_seats=3)
        with pytest.raises(BookingRuleError, match="at least 3"):
            validate_quantity(team_desk, 2)


class TestSeatSelection:
    def test_busy_and_admin_flagged_seats_are_excluded(self):
        seats = [seat(1, 1), seat(2, 2, SeatStatus.MAINTENANCE), seat(3, 3), seat(4, 4)]
        window = TimeWindow(at(10), at(12))
        occupancies = [
            Occupancy(seat_id=1, start=at(11), end=at(13)),
            Occupancy(seat_id=3, start=at(8), end=at(10)),
        ]

        available = find_available_seats(seats, occupancies, window)

        assert [s.id for s in available] == [3, 4]

    def test_maintenance_blocks_count_as_busy(self):
        window = TimeWindow(at(10), at(12))
        occupancies = [Occupancy(seat_id=7, start=at(9), end=at(18), kind=OCCUPANCY_MAINTENANCE)]
        assert busy_seat_ids(occupancies, window) == {7}

    def test_natural_seat_order(self):
        seats = [seat(1, 10), seat(2, 2), seat(3, 1)]
        window = TimeWindow(at(10), at(12))
        assert [s.seat_number for s in find_available_seats(seats, [], window)] == ["1", "2", "10"]

    def test_allocate_takes_the_first_seats(self):
        assert allocate_seats(["a", "b", "c"], 2) == ["a", "b"]

    def test_allocate_reports_shortfall(self):
        with pytest.raises(InsufficientAvailabilityError) as exc_info:
            allocate_seats(["a"], 3)
        assert exc_info.value.available_count == 1
        assert exc_info.value.requested == 3


class TestTimelines:
    def test_day_timeline_statuses(self):
        occupancies = [
            Occupancy(seat_id=1, start=datetime(2030, 1, 10), end=datetime(2030, 1, 11), ref_id=41),
            Occupancy(seat_id=1, start=at(12, day=11), end=at(14, day=11), ref_id=42),
            Occupancy(
                seat_id=1,
                start=at(9, day=11),
                end=at(10, day=11),
                kind=OCCUPANCY_MAINTENANCE,
                ref_id=5,
                reason="AC repair",
            ),
        ]

        slots = day_timeline(
            date(2030, 1, 10), date(2030, 1, 12), time(8), time(22), occupancies, SeatStatus.AVAILABLE
        )

        assert [slot["status"] for slot in slots] == ["booked", "maintenance", "available"]
        assert slots[0]["booking_id"] == 41
        assert slots[1]["block_id"] == 5
        assert slots[1]["reason"] == "AC repair"
        assert slots[2]["start_time"] == "08:00"

    def test_day_timeline_for_unavailable_seat(self):
        slots = day_timeline(date(2030, 1, 10), date(2030, 1, 11), time(8), time(22), [], SeatStatus.BOOKED)
        assert {slot["status"] for slot in slots} == {"unavailable"}

    def test_hourly_slots_limited_to_requested_range(self):
        occupancies = [Occupancy(seat_id=1, start=at(10), end=at(11))]

        slots = hourly_slots(date(2030, 1, 10), time(8), time(22), time(9), time(12), [1, 2], occupancies)

        assert [slot["start_time"] for slot in slots] == ["09:00", "10:00", "11:00"]
        assert [slot["available_count"] for slot in slots] == [2, 1, 2]
        assert all(slot["is_available"] for slot in slots)

    def test_hourly_slots_whole_day(self):
        slots = hourly_slots(date(2030, 1, 10), time(8), time(22), None, None, [1], [])
        assert len(slots) == 14
        assert slots[-1]["end_time"] == "22:00"


class TestClassifyBooking:
    now = datetime(2030, 1, 10, 12, 0)

    def test_states(self):
        assert classify_booking("CANCELLED", at(8), at(9), self.now) == "cancelled"
        assert classify_booking("PENDING", at(14), at(15), self.now) == "pending"
        assert classify_booking("CONFIRMED", at(8), at(9), self.now) == "completed"
        assert classify_booking("CONFIRMED", at(11), at(13), self.now) == "active"
        assert classify_booking("CONFIRMED", at(14), at(15), self.now) == "upcoming"
        assert classify_booking("COMPLETED", at(14), at(15), self.now) == "completed"
