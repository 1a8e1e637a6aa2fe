import json
from datetime import timedelta

from dateutil.relativedelta import relativedelta

from conftest import customer_headers, month_start, sign_checkout, sign_webhook
from coworks.models import BookingStatus, CancellationReason, Customer, Payment, PaymentStatus, SeatBooking


def desk_order(client, customer, quantity=2, **overrides):
    start = month_start()
    body = {
        "branch_code": "ORR",
        "seating_type_code": "HD",
        "quantity": quantity,
        "start_date": start.isoformat(),
        "end_date": (start + relativedelta(months=1) - timedelta(days=1)).isoformat(),
    }
    body.update(overrides)
    response = client.post("/bookings/create-order", json=body, headers=customer_headers(customer))
    assert response.status_code == 201, response.text
    return response.json()


def expire_holds(db):
    db.query(SeatBooking).update(
        {SeatBooking.status: BookingStatus.CANCELLED, SeatBooking.cancellation_reason: CancellationReason.HOLD_EXPIRED}
    )
    db.commit()


def verify(client, customer, order_id, payment_id="pay_TEST1", signature=None):
    return client.post(
        "/payments/verify",
        json={
            "razorpay_order_id": order_id,
            "razorpay_payment_id": payment_id,
            "razorpay_signature": signature or sign_checkout(order_id, payment_id),
        },
        headers=customer_headers(customer),
    )


def post_webhook(client, event, signature=None):
    body = json.dumps(event).encode()
    return client.post(
        "/payments/razorpay-webhook",
        content=body,
        headers={
            "Content-Type": "application/json",
            "X-Razorpay-Signature": signature or sign_webhook(body),
            "X-Razorpay-Event-Id": "evt_test",
        },
    )


def payment_event(event, order_id, payment_id="pay_HOOK1", **entity):
    return {
        "event": event,
        "payload": {"payment": {"entity": {"id": payment_id, "order_id": order_id, "method": "upi", **entity}}},
    }


class TestVerify:
    def test_confirms_bookings_and_awards_coins(self, client, db, workspace, make_customer, queued_jobs):
        customer = make_customer()
        order = desk_order(client, customer)

        response = verify(client, customer, order["order_id"])

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Payment verified successfully"
        assert sorted(body["booking_ids"]) == sorted(order["booking_ids"])
        assert body["coins_earned"] == 134
        assert body["payment"]["status"] == PaymentStatus.COMPLETED
        assert body["payment"]["razorpay_payment_id"] == "pay_TEST1"
        assert queued_jobs == [("send_booking_confirmation_task", (order["quantity_group"],))]

        db.expire_all()
        bookings = db.query(SeatBooking).all()
        assert {booking.status for booking in bookings} == {BookingStatus.CONFIRMED}
        assert {booking.payment_status for booking in bookings} == {PaymentStatus.COMPLETED}
        assert db.get(Customer, customer.id).coin_balance == 134

    def test_second_verification_is_a_no_op(self, client, db, workspace, make_customer, queued_jobs):
        customer = make_customer()
        order = desk_order(client, customer)
        verify(client, customer, order["order_id"])

        response = verify(client, customer, order["order_id"])

        assert response.status_code == 200
        assert response.json()["message"] == "Payment already verified"
        assert response.json()["coins_earned"] == 0
        assert len(queued_jobs) == 1
        db.expire_all()
        assert db.get(Customer, customer.id).coin_balance == 134

    def test_bad_signature(self, client, db, workspace, make_customer):
        customer = make_customer()
        order = desk_order(client, customer)

        response = verify(client, customer, order["order_id"], signature="0" * 64)

        assert response.status_code == 400
        db.expire_all()
        assert db.query(Payment).one().status == PaymentStatus.PENDING

    def test_other_customers_order(self, client, workspace, make_customer):
        owner, stranger = make_customer(), make_customer()
        order = desk_order(client, owner)

        response = verify(client, stranger, order["order_id"])

        assert response.status_code == 404

    def test_expired_hold_is_reinstated_when_seat_is_free(self, client, db, workspace, make_customer):
        customer = make_customer()
        order = desk_order(client, customer, quantity=1)
        expire_holds(db)

        response = verify(client, customer, order["order_id"])

        assert response.json()["booking_ids"] == order["booking_ids"]
        assert response.json()["refunded_booking_ids"] == []
        db.expire_all()
        assert db.get(SeatBooking, order["booking_ids"][0]).status == BookingStatus.CONFIRMED

    def test_expired_hold_is_refunded_when_seat_was_taken(
        self, client, db, razorpay, workspace, make_customer, queued_jobs
    ):
        late, early = make_customer(), make_customer()
        order = desk_order(client, late, quantity=1, seat_code="HD1")
        expire_holds(db)
        desk_order(client, early, quantity=1, seat_code="HD1")

        response = verify(client, late, order["order_id"])

        body = response.json()
        assert body["booking_ids"] == []
        assert body["refunded_booking_ids"] == order["booking_ids"]
        assert body["payment"]["status"] == PaymentStatus.REFUNDED
        assert body["payment"]["refund_amount"] == order["amount"]
        assert razorpay.refunds[0]["payment_id"] == "pay_TEST1"
        assert queued_jobs == []

        db.expire_all()
        lost = db.get(SeatBooking, order["booking_ids"][0])
        assert lost.status == BookingStatus.CANCELLED
        assert lost.payment_status == PaymentStatus.REFUNDED

    def test_cancelled_booking_is_refunded_not_revived(
        self, client, db, razorpay, workspace, make_customer, queued_jobs
    ):
        customer = make_customer()
        order = desk_order(client, customer, quantity=1)
        client.put(f"/bookings/{order['booking_ids'][0]}/cancel", headers=customer_headers(customer))

        response = verify(client, customer, order["order_id"])

        body = response.json()
        assert response.status_code == 200
        assert body["booking_ids"] == []
        assert body["refunded_booking_ids"] == order["booking_ids"]
        assert body["payment"]["status"] == PaymentStatus.REFUNDED
        assert razorpay.refunds[0]["amount"] == order["payment_details"]["amount"]
        assert queued_jobs == []

        db.expire_all()
        booking = db.get(SeatBooking, order["booking_ids"][0])
        assert booking.status == BookingStatus.CANCELLED
        assert booking.cancellation_reason == CancellationReason.CUSTOMER
        assert booking.payment_status == PaymentStatus.REFUNDED

    def test_admin_cancelled_booking_stays_cancelled(self, client, db, workspace, make_customer):
        customer = make_customer()
        order = desk_order(client, customer, quantity=1)
        db.query(SeatBooking).update(
            {SeatBooking.status: BookingStatus.CANCELLED, SeatBooking.cancellation_reason: CancellationReason.ADMIN}
        )
        db.commit()

        response = verify(client, customer, order["order_id"])

        assert response.json()["refunded_booking_ids"] == order["booking_ids"]
        db.expire_all()
        assert db.get(SeatBooking, order["booking_ids"][0]).status == BookingStatus.CANCELLED

    def test_signature_for_another_payment(self, client, db, workspace, make_customer):
        customer = make_customer()
        order = desk_order(client, customer)

        response = verify(
            client, customer, order["order_id"], signature=sign_checkout(order["order_id"], "pay_OTHER")
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid payment signature"
        db.expire_all()
        assert {booking.status for booking in db.query(SeatBooking)} == {BookingStatus.PENDING}


class TestWebhook:
    def test_rejects_bad_signature(self, client, workspace):
        response = post_webhook(client, {"event": "payment.captured"}, signature="f" * 64)
        assert response.status_code == 401

    def test_rejects_missing_signature(self, client, workspace):
        response = client.post("/payments/razorpay-webhook", content=b"{}")
        assert response.status_code == 401

    def test_captured_confirms_order(self, client, db, workspace, make_customer, queued_jobs):
        customer = make_customer()
        order = desk_order(client, customer)

        response = post_webhook(client, payment_event("payment.captured", order["order_id"]))

        assert response.status_code == 200
        assert response.json()["status"] == "processed"
        assert queued_jobs == [("send_booking_confirmation_task", (order["quantity_group"],))]
        db.expire_all()
        payment = db.query(Payment).one()
        assert payment.status == PaymentStatus.COMPLETED
        assert payment.payment_method == "upi"

    def test_captured_after_verify_does_nothing(self, client, workspace, make_customer, queued_jobs):
        customer = make_customer()
        order = desk_order(client, customer)
        verify(client, customer, order["order_id"])

        response = post_webhook(client, payment_event("payment.captured", order["order_id"], "pay_TEST1"))

        assert response.json()["status"] == "processed"
        assert len(queued_jobs) == 1

    def test_failed_payment(self, client, db, workspace, make_customer):
        customer = make_customer()
        order = desk_order(client, customer, quantity=1)

        response = post_webhook(
            client,
            payment_event("payment.failed", order["order_id"], error_description="Card declined"),
        )

        assert response.json() == {"status": "processed", "event": "payment.failed"}
        db.expire_all()
        assert db.query(Payment).one().status == PaymentStatus.FAILED
        booking = db.get(SeatBooking, order["booking_ids"][0])
        assert booking.status == BookingStatus.PENDING
        assert booking.payment_status == PaymentStatus.FAILED

    def test_refund_processed_is_recorded_once(self, client, db, workspace, make_customer):
        customer = make_customer()
        order = desk_order(client, customer)
        verify(client, customer, order["order_id"])
        event = {
            "event": "refund.processed",
            "payload": {"refund": {"entity": {"id": "rfnd_HOOK1", "payment_id": "pay_TEST1", "amount": 570000}}},
        }

        post_webhook(client, event)
        post_webhook(client, event)

        db.expire_all()
        payment = db.query(Payment).one()
        assert payment.refund_amount == 5700
        assert payment.status == PaymentStatus.COMPLETED

    def test_unknown_order_and_event_are_ignored(self, client, workspace):
        unknown_order = post_webhook(client, payment_event("payment.captured", "order_MISSING"))
        unknown_event = post_webhook(client, {"event": "order.paid", "payload": {}})

        assert unknown_order.json()["status"] == "ignored"
        assert unknown_event.json() == {"status": "ignored", "event": "order.paid"}


class TestOrdersForHeldBookings:
    def hold(self, client, customer, quantity=1):
        start = month_start()
        response = client.post(
            "/bookings",
            json={
                "branch_code": "ORR",
                "seating_type_code": "HD",
                "quantity": quantity,
                "start_date": start.isoformat(),
                "end_date": (start + relativedelta(months=1) - timedelta(days=1)).isoformat(),
            },
            headers=customer_headers(customer),
        )
        return [booking["id"] for booking in response.json()["bookings"]]

    def test_create_order(self, client, razorpay, workspace, make_customer):
        customer = make_customer()
        booking_ids = self.hold(client, customer, quantity=2)

        response = client.post(
            "/payments/create-order", json={"booking_ids": booking_ids}, headers=customer_headers(customer)
        )

        assert response.status_code == 201
        body = response.json()
        assert body["amount"] == 11400
        assert body["key_id"] == "rzp_test_key"
        assert body["notes"]["amount_paise"] == 1140000
        assert razorpay.orders[0]["receipt"].startswith("PAY-")

    def test_foreign_booking(self, client, workspace, make_customer):
        owner, stranger = make_customer(), make_customer()
        booking_ids = self.hold(client, owner)

        response = client.post(
            "/payments/create-order", json={"booking_ids": booking_ids}, headers=customer_headers(stranger)
        )

        assert response.status_code == 404

    def test_cancelled_booking_is_not_payable(self, client, workspace, make_customer):
        customer = make_customer()
        booking_ids = self.hold(client, customer)
        client.put(f"/bookings/{booking_ids[0]}/cancel", headers=customer_headers(customer))

        response = client.post(
            "/payments/create-order", json={"booking_ids": booking_ids}, headers=customer_headers(customer)
        )

        assert response.status_code == 400

    def test_empty_booking_ids(self, client, workspace, make_customer):
        customer = make_customer()
        response = client.post(
            "/payments/create-order", json={"booking_ids": []}, headers=customer_headers(customer)
        )
        assert response.status_code == 422

    def test_list_and_get_payments(self, client, workspace, make_customer):
        customer, other = make_customer(), make_customer()
        order = desk_order(client, customer)

        listed = client.get("/payments", headers=customer_headers(customer))
        own = client.get(f"/payments/{order['payment_id']}", headers=customer_headers(customer))
        foreign = client.get(f"/payments/{order['payment_id']}", headers=customer_headers(other))

        assert [payment["order_id"] for payment in listed.json()] == [order["order_id"]]
        assert own.json()["amount"] == 11400
        assert foreign.status_code == 404

    def test_repeat_request_reuses_open_order(self, client, db, razorpay, workspace, make_customer):
        customer = make_customer()
        booking_ids = self.hold(client, customer, quantity=2)
        headers = customer_headers(customer)

        first = client.post("/payments/create-order", json={"booking_ids": booking_ids}, headers=headers)
        second = client.post("/payments/create-order", json={"booking_ids": booking_ids[::-1]}, headers=headers)

        assert second.status_code == 201
        assert second.json()["order_id"] == first.json()["order_id"]
        assert second.json()["amount"] == 11400
        assert len(razorpay.orders) == 1
        db.expire_all()
        assert db.query(Payment).count() == 1

    def test_bookings_inside_another_open_order_are_refused(self, client, db, razorpay, workspace, make_customer):
        customer = make_customer()
        order = desk_order(client, customer, quantity=2)

        response = client.post(
            "/payments/create-order",
            json={"booking_ids": order["booking_ids"][:1]},
            headers=customer_headers(customer),
        )

        assert response.status_code == 409
        assert len(razorpay.orders) == 1

        paid = verify(client, customer, order["order_id"])
        assert sorted(paid.json()["booking_ids"]) == sorted(order["booking_ids"])
        db.expire_all()
        assert {booking.order_id for booking in db.query(SeatBooking)} == {order["order_id"]}
