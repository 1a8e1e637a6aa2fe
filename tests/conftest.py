import os

# Configure the app before any coworks module is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key-for-pytest"
os.environ["RAZORPAY_KEY_ID"] = "rzp_test_key"
os.environ["RAZORPAY_KEY_SECRET"] = "rzp_test_secret"
os.environ["RAZORPAY_WEBHOOK_SECRET"] = "whsec_test_secret"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"

import hashlib  # noqa: E402
import hmac  # noqa: E402
import itertools  # noqa: E402
from datetime import date, timedelta  # noqa: E402

import pytest  # noqa: E402
from dateutil.relativedelta import relativedelta  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from coworks import jobs  # noqa: E402
from coworks.database import Base, SessionLocal, engine, get_db  # noqa: E402
from coworks.domain.payments.razorpay_service import (  # noqa: E402
    RazorpayService,
    get_razorpay_service,
    to_paise,
)
from coworks.main import app  # noqa: E402
from coworks.models import (  # noqa: E402
    Admin,
    AdminRole,
    Branch,
    Customer,
    Seat,
    SeatingType,
    SeatingTypeName,
    SeatStatus,
    VerificationStatus,
)
from coworks.security_utils import create_jwt_token, hash_password  # noqa: E402

TEST_PASSWORD = "Sup3rSecret99"
KEY_SECRET = os.environ["RAZORPAY_KEY_SECRET"]
WEBHOOK_SECRET = os.environ["RAZORPAY_WEBHOOK_SECRET"]

# bcrypt is slow; hash once and reuse for every account created by factories
PASSWORD_HASH = hash_password(TEST_PASSWORD)


class FakeRazorpay(RazorpayService):
    """Razorpay client double: real signature checks, recorded API calls"""

    def __init__(self):
        super().__init__(key_id="rzp_test_key", key_secret=KEY_SECRET)
        self.orders = []
        self.refunds = []
        self.fail_refunds = False
        self._ids = itertools.count(1)

    def create_order(self, amount, receipt, notes=None):
        order = {
            "id": f"order_TEST{next(self._ids)}",
            "amount": to_paise(amount),
            "currency": "INR",
            "receipt": receipt,
            "notes": notes or {},
        }
        self.orders.append(order)
        return order

    def fetch_payment(self, payment_id):
        return {"id": payment_id, "status": "captured"}

    def refund_payment(self, payment_id, amount=None):
        if self.fail_refunds:
            from fastapi import HTTPException

            raise HTTPException(status_code=502, detail="Failed to process refund")
        refund = {"id": f"rfnd_TEST{next(self._ids)}", "payment_id": payment_id, "amount": to_paise(amount or 0)}
        self.refunds.append(refund)
        return refund


def sign_checkout(order_id: str, payment_id: str) -> str:
    return hmac.new(KEY_SECRET.encode(), f"{order_id}|{payment_id}".encode(), hashlib.sha256).hexdigest()


def sign_webhook(body: bytes) -> str:
    return hmac.new(WEBHOOK_SECRET.encode(), body, hashlib.sha256).hexdigest()


def month_start(months_ahead: int = 2) -> date:
    """First day of a month safely in the future"""
    return date.today().replace(day=1) + relativedelta(months=months_ahead)


def future_day(days: int = 14) -> date:
    return date.today() + timedelta(days=days)


@pytest.fixture(autouse=True)
def reset_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def razorpay():
    return FakeRazorpay()


@pytest.fixture(autouse=True)
def queued_jobs(monkeypatch):
    """Capture background jobs instead of talking to Redis"""
    queued = []

    async def fake_enqueue(function_name, *args):
        queued.append((function_name, args))
        return f"job-{len(queued)}"

    monkeypatch.setattr(jobs, "enqueue_job", fake_enqueue)
    return queued


@pytest.fixture
def client(razorpay):
    def override_get_db():
        session = SessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_razorpay_service] = lambda: razorpay
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# ============================================================================
# FACTORIES
# ============================================================================


@pytest.fixture
def make_branch(db):
    def factory(short_code="ORR", **kwargs):
        fields = {
            "name": f"Branch {short_code}",
            "short_code": short_code,
            "address": "80 Feet Road, Nagarabhavi, Bengaluru",
            "location": "Nagarabhavi",
            "city": "Bengaluru",
            "cost_multiplier": 1.0,
            "opening_time": "08:00",
            "closing_time": "22:00",
            "is_active": True,
        }
        fields.update(kwargs)
        branch = Branch(**fields)
        db.add(branch)
        db.commit()
        db.refresh(branch)
        return branch

    return factory


@pytest.fixture
def make_seating_type(db):
    presets = {
        "HD": {
            "name": SeatingTypeName.HOT_DESK,
            "monthly_rate": 6000.0,
            "is_hourly": False,
            "min_booking_duration": 1,
            "quantity_options": [1, 2, 3, 4, 5, 10],
            "cost_multiplier": {"1": 1.0, "2": 0.95, "3": 0.90, "4": 0.85, "5": 0.80, "10": 0.75},
        },
        "MR": {
            "name": SeatingTypeName.MEETING_ROOM,
            "hourly_rate": 500.0,
            "is_hourly": True,
            "min_booking_duration": 1,
            "capacity_options": [4, 6, 8, 10, 12, 16, 20],
        },
        "DP": {
            "name": SeatingTypeName.DAILY_PASS,
            "daily_rate": 800.0,
            "is_hourly": False,
            "min_booking_duration": 1,
        },
        "CU": {
            "name": SeatingTypeName.CUBICLE,
            "monthly_rate": 12000.0,
            "is_hourly": False,
            "min_booking_duration": 1,
            "capacity_options": [1, 2, 4, 6, 8],
        },
    }

    def factory(short_code="HD", **kwargs):
        fields = {"short_code": short_code, "min_seats": 1}
        fields.update(presets.get(short_code, {}))
        fields.update(kwargs)
        seating_type = SeatingType(**fields)
        db.add(seating_type)
        db.commit()
        db.refresh(seating_type)
        return seating_type

    return factory


@pytest.fixture
def make_seat(db):
    def factory(branch, seating_type, seat_number, **kwargs):
        fields = {
            "branch_id": branch.id,
            "seating_type_id": seating_type.id,
            "seat_number": str(seat_number),
            "seat_code": f"{seating_type.short_code}{seat_number}",
            "availability_status": SeatStatus.AVAILABLE,
        }
        fields.update(kwargs)
        seat = Seat(**fields)
        db.add(seat)
        db.commit()
        db.refresh(seat)
        return seat

    return factory


@pytest.fixture
def make_customer(db):
    counter = itertools.count(1)

    def factory(verified=True, **kwargs):
        n = next(counter)
        fields = {
            "name": f"Customer {n}",
            "email": f"customer{n}@example.com",
            "phone": "+919876543210",
            "password_hash": PASSWORD_HASH,
            "address": "12 MG Road, Bengaluru",
            "verification_status": VerificationStatus.APPROVED if verified else VerificationStatus.PENDING,
        }
        if verified:
            fields.update(
                proof_of_identity=f"customers/{n}/identity/id.pdf",
                proof_of_address=f"customers/{n}/address/bill.pdf",
                is_identity_verified=True,
                is_address_verified=True,
            )
        fields.update(kwargs)
        customer = Customer(**fields)
        db.add(customer)
        db.commit()
        db.refresh(customer)
        return customer

    return factory


@pytest.fixture
def make_admin(db):
    counter = itertools.count(1)

    def factory(role=AdminRole.SUPER_ADMIN, branch_id=None, **kwargs):
        n = next(counter)
        fields = {
            "username": f"admin{n}",
            "email": f"admin{n}@coworks.in",
            "name": f"Admin {n}",
            "password_hash": PASSWORD_HASH,
            "role": role,
            "branch_id": branch_id,
            "is_active": True,
        }
        fields.update(kwargs)
        admin = Admin(**fields)
        db.add(admin)
        db.commit()
        db.refresh(admin)
        return admin

    return factory


def customer_headers(customer) -> dict:
    token = create_jwt_token({"sub": str(customer.id), "type": "customer", "email": customer.email})
    return {"Authorization": f"Bearer {token}"}


def admin_headers(admin) -> dict:
    token = create_jwt_token(
        {"sub": str(admin.id), "type": "admin", "role": admin.role, "branch_id": admin.branch_id}
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def workspace(make_branch, make_seating_type, make_seat):
    """One branch with three hot desks and two meeting rooms"""
    branch = make_branch("ORR")
    hot_desk = make_seating_type("HD")
    meeting_room = make_seating_type("MR")
    desks = [make_seat(branch, hot_desk, n) for n in (1, 2, 3)]
    rooms = [
        make_seat(branch, meeting_room, 1, capacity=4),
        make_seat(branch, meeting_room, 2, capacity=10),
    ]
    return {"branch": branch, "hot_desk": hot_desk, "meeting_room": meeting_room, "desks": desks, "rooms": rooms}
