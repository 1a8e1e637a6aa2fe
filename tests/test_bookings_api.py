from datetime import date, datetime, timedelta

from dateutil.relativedelta import relativedelta

from conftest import customer_headers, future_day, month_start, sign_checkout
from coworks.models import BookingStatus, MaintenanceBlock, Payment, PaymentStatus, SeatBooking, SeatingTypeName


def desk_request(quantity=2, start=None, **overrides):
    start = start or month_start()
    body = {
        "branch_code": "ORR",
        "seating_type_code": "HD",
        "quantity": quantity,
        "start_date": start.isoformat(),
        "end_date": (start + relativedelta(months=1) - timedelta(days=1)).isoformat(),
    }
    body.update(overrides)
    return body


def room_request(start="10:00:00", end="12:00:00", participants=3, day=None, **overrides):
    body = {
        "branch_code": "ORR",
        "seating_type_code": "MR",
        "type": "meeting",
        "start_date": (day or future_day()).isoformat(),
        "start_time": start,
        "end_time": end,
        "num_participants": participants,
    }
    body.update(overrides)
    return body


class TestHoldSeats:
    def test_unverified_customer_cannot_book(self, client, workspace, make_customer):
        customer = make_customer(verified=False)

        response = client.post("/bookings", json=desk_request(), headers=customer_headers(customer))

        assert response.status_code == 403
        assert response.json()["detail"]["missing_fields"] == ["proof_of_identity", "proof_of_address"]

    def test_requires_authentication(self, client, workspace):
        response = client.post("/bookings", json=desk_request())
        assert response.status_code == 401

    def test_hold_multiple_desks(self, client, db, workspace, make_customer):
        customer = make_customer()

        response = client.post("/bookings", json=desk_request(quantity=2), headers=customer_headers(customer))

        assert response.status_code == 201
        body = response.json()
        assert body["total_amount"] == 11400
        assert len(body["bookings"]) == 2
        assert {booking["total_price"] for booking in body["bookings"]} == {5700}
        assert {booking["quantity_group"] for booking in body["bookings"]} == {body["quantity_group"]}
        assert [booking["seat_code"] for booking in body["bookings"]] == ["HD1", "HD2"]
        assert all(booking["status"] == BookingStatus.PENDING for booking in body["bookings"])
        assert body["quote"]["discounted"] == 11400

        assert db.query(SeatBooking).count() == 2

    def test_insufficient_seats(self, client, workspace, make_customer):
        first, second = make_customer(), make_customer()
        client.post("/bookings", json=desk_request(quantity=2), headers=customer_headers(first))

        response = client.post("/bookings", json=desk_request(quantity=2), headers=customer_headers(second))

        assert response.status_code == 409
        detail = response.json()["detail"]
        assert detail["available_count"] == 1
        assert detail["requested"] == 2
        assert len(detail["conflicts"]) == 2

    def test_specific_seat_conflict(self, client, workspace, make_customer):
        first, second = make_customer(), make_customer()
        client.post("/bookings", json=desk_request(quantity=1, seat_code="HD1"), headers=customer_headers(first))

        response = client.post(
            "/bookings", json=desk_request(quantity=1, seat_code="HD1"), headers=customer_headers(second)
        )

        assert response.status_code == 409
        assert "already booked" in response.json()["detail"]["message"]

    def test_unsupported_quantity(self, client, workspace, make_customer):
        customer = make_customer()
        response = client.post("/bookings", json=desk_request(quantity=6), headers=customer_headers(customer))
        assert response.status_code == 400

    def test_past_start_date(self, client, workspace, make_customer):
        customer = make_customer()
        start = date.today().replace(day=1) - relativedelta(months=1)

        response = client.post(
            "/bookings", json=desk_request(quantity=1, start=start), headers=customer_headers(customer)
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Start date cannot be in the past"

    def test_maintenance_block_makes_seat_unavailable(self, client, db, workspace, make_customer):
        customer = make_customer()
        start = month_start()
        db.add(
            MaintenanceBlock(
                seat_id=workspace["desks"][0].id,
                start_time=datetime.combine(start + timedelta(days=3), datetime.min.time()),
                end_time=datetime.combine(start + timedelta(days=4), datetime.min.time()),
                reason="Chair replacement",
            )
        )
        db.commit()

        response = client.post(
            "/bookings", json=desk_request(quantity=1, seat_code="HD1"), headers=customer_headers(customer)
        )

        assert response.status_code == 409
        assert response.json()["detail"]["conflicts"][0]["kind"] == "maintenance"

    def test_unknown_branch(self, client, workspace, make_customer):
        customer = make_customer()
        response = client.post(
            "/bookings", json=desk_request(branch_code="XYZ"), headers=customer_headers(customer)
        )
        assert response.status_code == 404


class TestMeetingRooms:
    def test_back_to_back_meetings(self, client, workspace, make_customer):
        first, second = make_customer(), make_customer()

        morning = client.post(
            "/bookings", json=room_request(seat_code="MR1"), headers=customer_headers(first)
        )
        noon = client.post(
            "/bookings",
            json=room_request(start="12:00:00", end="14:00:00", seat_code="MR1"),
            headers=customer_headers(second),
        )

        assert morning.status_code == 201
        assert noon.status_code == 201
        assert morning.json()["total_amount"] == 1000
        assert morning.json()["bookings"][0]["booking_type"] == "meeting"

    def test_overlapping_meeting_rejected(self, client, workspace, make_customer):
        first, second = make_customer(), make_customer()
        client.post("/bookings", json=room_request(seat_code="MR1"), headers=customer_headers(first))

        response = client.post(
            "/bookings",
            json=room_request(start="11:00:00", end="13:00:00", seat_code="MR1"),
            headers=customer_headers(second),
        )

        assert response.status_code == 409

    def test_pool_booking_picks_a_free_room(self, client, workspace, make_customer):
        first, second = make_customer(), make_customer()
        client.post("/bookings", json=room_request(seat_code="MR1"), headers=customer_headers(first))

        response = client.post("/bookings", json=room_request(), headers=customer_headers(second))

        assert response.status_code == 201
        assert response.json()["bookings"][0]["seat_code"] == "MR2"

    def test_room_capacity(self, client, workspace, make_customer):
        customer = make_customer()

        too_many = client.post(
            "/bookings", json=room_request(participants=6, seat_code="MR1"), headers=customer_headers(customer)
        )
        pooled = client.post("/bookings", json=room_request(participants=6), headers=customer_headers(customer))

        assert too_many.status_code == 400
        assert pooled.status_code == 201
        assert pooled.json()["bookings"][0]["seat_code"] == "MR2"

    def test_participants_required(self, client, workspace, make_customer):
        customer = make_customer()
        body = room_request()
        del body["num_participants"]

        response = client.post("/bookings", json=body, headers=customer_headers(customer))

        assert response.status_code == 400

    def test_hourly_desks_are_booked_per_seat(self, client, workspace, make_customer, make_seating_type, make_seat):
        hourly_desk = make_seating_type(
            "HH",
            name=SeatingTypeName.HOT_DESK,
            is_hourly=True,
            hourly_rate=100.0,
            monthly_rate=0.0,
            quantity_options=None,
            cost_multiplier=None,
        )
        for number in (1, 2):
            make_seat(workspace["branch"], hourly_desk, number)
        customer = make_customer()

        response = client.post(
            "/bookings",
            json={
                "branch_code": "ORR",
                "seating_type_code": "HH",
                "quantity": 2,
                "start_date": future_day().isoformat(),
                "start_time": "10:00:00",
                "end_time": "12:00:00",
            },
            headers=customer_headers(customer),
        )

        assert response.status_code == 201, response.text
        bookings = response.json()["bookings"]
        assert [booking["booking_type"] for booking in bookings] == ["seat", "seat"]
        assert [booking["num_participants"] for booking in bookings] == [None, None]
        assert response.json()["total_amount"] == 400

    def test_meeting_type_needs_a_meeting_room(self, client, workspace, make_customer, make_seating_type, make_seat):
        hourly_desk = make_seating_type("HH", name=SeatingTypeName.HOT_DESK, is_hourly=True, hourly_rate=100.0)
        make_seat(workspace["branch"], hourly_desk, 1)

        response = client.post(
            "/bookings",
            json=room_request(seating_type_code="HH"),
            headers=customer_headers(make_customer()),
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Meeting bookings require a meeting room"


class TestCreateOrder:
    def test_hold_and_open_order(self, client, db, razorpay, workspace, make_customer):
        customer = make_customer()

        response = client.post(
            "/bookings/create-order", json=desk_request(quantity=2), headers=customer_headers(customer)
        )

        assert response.status_code == 201
        body = response.json()
        assert body["order_id"] == "order_TEST1"
        assert body["amount"] == 11400
        assert body["payment_details"]["amount"] == 1140000
        assert body["payment_details"]["prefill"]["email"] == customer.email
        assert razorpay.orders[0]["notes"]["quantity"] == 2

        db.expire_all()
        bookings = db.query(SeatBooking).all()
        assert {booking.order_id for booking in bookings} == {"order_TEST1"}

    def test_order_charges_the_quoted_total(self, client, db, razorpay, workspace, make_customer):
        workspace["hot_desk"].monthly_rate = 6000.02
        db.commit()
        customer = make_customer()

        response = client.post(
            "/bookings/create-order", json=desk_request(quantity=3), headers=customer_headers(customer)
        )

        body = response.json()
        assert body["quote"]["total"] == 16200.05
        assert body["amount"] == 16200.05
        assert body["payment_details"]["amount"] == 1620005
        assert razorpay.orders[0]["amount"] == 1620005
        assert [booking["total_price"] for booking in body["bookings"]] == [5400.02, 5400.02, 5400.01]

        db.expire_all()
        assert db.query(Payment).one().amount == 16200.05


class TestListAndCancel:
    def test_list_and_get(self, client, workspace, make_customer):
        customer, other = make_customer(), make_customer()
        held = client.post("/bookings", json=desk_request(quantity=1), headers=customer_headers(customer))
        booking_id = held.json()["bookings"][0]["id"]

        pending = client.get("/bookings", params={"status": "pending"}, headers=customer_headers(customer))
        upcoming = client.get("/bookings", params={"status": "upcoming"}, headers=customer_headers(customer))
        by_type = client.get("/bookings", params={"type": "MR"}, headers=customer_headers(customer))
        mine = client.get(f"/bookings/{booking_id}", headers=customer_headers(customer))
        theirs = client.get(f"/bookings/{booking_id}", headers=customer_headers(other))

        assert [item["id"] for item in pending.json()] == [booking_id]
        assert upcoming.json() == []
        assert by_type.json() == []
        assert mine.json()["state"] == "pending"
        assert theirs.status_code == 404

    def test_cancel_unpaid_hold(self, client, db, workspace, make_customer):
        customer = make_customer()
        held = client.post("/bookings", json=desk_request(quantity=1), headers=customer_headers(customer))
        booking_id = held.json()["bookings"][0]["id"]

        response = client.put(f"/bookings/{booking_id}/cancel", headers=customer_headers(customer))
        again = client.put(f"/bookings/{booking_id}/cancel", headers=customer_headers(customer))

        assert response.status_code == 200
        assert response.json()["refund_status"] == "not_paid"
        assert response.json()["booking"]["status"] == BookingStatus.CANCELLED
        assert again.status_code == 400

    def test_cancelled_hold_frees_the_seat(self, client, workspace, make_customer):
        first, second = make_customer(), make_customer()
        held = client.post("/bookings", json=desk_request(quantity=3), headers=customer_headers(first))
        client.put(f"/bookings/{held.json()['bookings'][0]['id']}/cancel", headers=customer_headers(first))

        response = client.post("/bookings", json=desk_request(quantity=1), headers=customer_headers(second))

        assert response.status_code == 201
        assert response.json()["bookings"][0]["seat_code"] == "HD1"

    def test_cancel_paid_meeting_refunds_in_full(self, client, db, razorpay, workspace, make_customer):
        customer = make_customer()
        headers = customer_headers(customer)
        order = client.post("/bookings/create-order", json=room_request(), headers=headers).json()
        client.post(
            "/payments/verify",
            json={
                "razorpay_order_id": order["order_id"],
                "razorpay_payment_id": "pay_MEET1",
                "razorpay_signature": sign_checkout(order["order_id"], "pay_MEET1"),
            },
            headers=headers,
        )

        response = client.put(f"/bookings/{order['booking_ids'][0]}/cancel", headers=headers)

        assert response.status_code == 200
        assert response.json()["refund_status"] == "refunded"
        assert response.json()["refund_amount"] == 1000
        assert razorpay.refunds[0]["payment_id"] == "pay_MEET1"
        assert razorpay.refunds[0]["amount"] == 100000

        db.expire_all()
        booking = db.get(SeatBooking, order["booking_ids"][0])
        assert booking.status == BookingStatus.CANCELLED
        assert booking.payment_status == PaymentStatus.REFUNDED

    def test_cancelling_every_unpaid_booking_closes_the_order(self, client, db, workspace, make_customer):
        customer = make_customer()
        headers = customer_headers(customer)
        order = client.post("/bookings/create-order", json=desk_request(quantity=2), headers=headers).json()

        client.put(f"/bookings/{order['booking_ids'][0]}/cancel", headers=headers)
        db.expire_all()
        assert db.query(Payment).one().status == PaymentStatus.PENDING

        client.put(f"/bookings/{order['booking_ids'][1]}/cancel", headers=headers)
        db.expire_all()
        payment = db.query(Payment).one()
        assert payment.status == PaymentStatus.FAILED
        assert payment.payment_metadata["closed_reason"] == "All bookings cancelled before payment"

    def test_failed_refund_keeps_the_cancellation(self, client, db, razorpay, workspace, make_customer):
        customer = make_customer()
        headers = customer_headers(customer)
        order = client.post("/bookings/create-order", json=room_request(), headers=headers).json()
        client.post(
            "/payments/verify",
            json={
                "razorpay_order_id": order["order_id"],
                "razorpay_payment_id": "pay_MEET2",
                "razorpay_signature": sign_checkout(order["order_id"], "pay_MEET2"),
            },
            headers=headers,
        )
        razorpay.fail_refunds = True

        response = client.put(f"/bookings/{order['booking_ids'][0]}/cancel", headers=headers)

        assert response.status_code == 200
        assert response.json()["refund_status"] == "failed"
        db.expire_all()
        booking = db.get(SeatBooking, order["booking_ids"][0])
        assert booking.status == BookingStatus.CANCELLED
        assert booking.payment_status == PaymentStatus.COMPLETED
        assert "Refund required: INR 1000" in booking.notes
        assert db.query(Payment).one().refund_amount == 0
