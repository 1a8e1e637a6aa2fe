import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_group_id():
    """Generate the identifier shared by bookings created in one request"""
    return str(uuid.uuid4())


class SeatingTypeName:
    HOT_DESK = "HOT_DESK"
    DEDICATED_DESK = "DEDICATED_DESK"
    CUBICLE = "CUBICLE"
    MEETING_ROOM = "MEETING_ROOM"
    DAILY_PASS = "DAILY_PASS"

    ALL = (HOT_DESK, DEDICATED_DESK, CUBICLE, MEETING_ROOM, DAILY_PASS)
    # Types billed per calendar month
    MONTHLY = (HOT_DESK, DEDICATED_DESK, CUBICLE)
    # Types where one request may reserve several units
    MULTI_UNIT = (HOT_DESK, DEDICATED_DESK, DAILY_PASS)


class SeatStatus:
    AVAILABLE = "AVAILABLE"
    BOOKED = "BOOKED"
    MAINTENANCE = "MAINTENANCE"

    ALL = (AVAILABLE, BOOKED, MAINTENANCE)


class BookingStatus:
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"

    ALL = (PENDING, CONFIRMED, CANCELLED, COMPLETED)


class CancellationReason:
    HOLD_EXPIRED = "hold_expired"
    CUSTOMER = "customer"
    ADMIN = "admin"
    ORDER_FAILED = "order_failed"


class PaymentStatus:
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"

    ALL = (PENDING, COMPLETED, FAILED, REFUNDED)


class VerificationStatus:
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class AdminRole:
    SUPER_ADMIN = "super_admin"
    BRANCH_ADMIN = "branch_admin"


class Branch(Base):
    __tablename__ = "branches"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    short_code = Column(String(10), unique=True, index=True, nullable=False)
    address = Column(String(500), nullable=False)
    location = Column(String(255), nullable=True)
    city = Column(String(100), nullable=True, default="Bengaluru")
    state = Column(String(100), nullable=True, default="Karnataka")
    postal_code = Column(String(20), nullable=True)
    phone = Column(String(50), nullable=True)
    email = Column(String(255), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    cost_multiplier = Column(Float, default=1.0, nullable=False)  # Location premium on all prices
    opening_time = Column(String(5), default="08:00", nullable=False)  # HH:MM local time
    closing_time = Column(String(5), default="22:00", nullable=False)
    images = Column(JSON, nullable=True)
    amenities = Column(JSON, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    seats = relationship("Seat", back_populates="branch", cascade="all, delete-orphan")


class SeatingType(Base):
    __tablename__ = "seating_types"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), nullable=False)  # One of SeatingTypeName.ALL
    short_code = Column(String(10), unique=True, index=True, nullable=False)
    description = Column(Text, nullable=True)
    hourly_rate = Column(Float, default=0.0, nullable=False)
    daily_rate = Column(Float, default=0.0, nullable=False)
    monthly_rate = Column(Float, default=0.0, nullable=False)
    is_hourly = Column(Boolean, default=False, nullable=False)
    # Unit depends on the type: hours (meeting room), days (daily pass), months otherwise
    min_booking_duration = Column(Integer, default=1, nullable=False)
    min_seats = Column(Integer, default=1, nullable=False)
    capacity_options = Column(JSON, nullable=True)
    quantity_options = Column(JSON, nullable=True)
    cost_multiplier = Column(JSON, nullable=True)  # {"2": 0.95, ...} keyed by quantity
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    seats = relationship("Seat", back_populates="seating_type")


class Seat(Base):
    __tablename__ = "seats"
    __table_args__ = (UniqueConstraint("branch_id", "seat_code", name="uq_seats_branch_seat_code"),)

    id = Column(Integer, primary_key=True, index=True)
    branch_id = Column(Integer, ForeignKey("branches.id"), nullable=False, index=True)
    seating_type_id = Column(Integer, ForeignKey("seating_types.id"), nullable=False, index=True)
    seat_number = Column(String(50), nullable=False)
    seat_code = Column(String(50), nullable=False)
    price = Column(Float, default=0.0, nullable=False)
    capacity = Column(Integer, nullable=True)  # People the seat or room accommodates
    availability_status = Column(String(20), default=SeatStatus.AVAILABLE, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    branch = relationship("Branch", back_populates="seats")
    seating_type = relationship("SeatingType", back_populates="seats")
    bookings = relationship("SeatBooking", back_populates="seat")
    maintenance_blocks = relationship(
        "MaintenanceBlock", back_populates="seat", cascade="all, delete-orphan"
    )


class Customer(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(20), nullable=True)
    password_hash = Column(String(255), nullable=False)
    company_name = Column(String(255), nullable=True)
    address = Column(Text, nullable=True)
    profile_picture = Column(String(500), nullable=True)  # Storage key
    # Verification documents (storage keys)
    proof_of_identity = Column(String(500), nullable=True)
    proof_of_address = Column(String(500), nullable=True)
    verification_status = Column(String(20), default=VerificationStatus.PENDING, nullable=False)
    is_identity_verified = Column(Boolean, default=False, nullable=False)
    is_address_verified = Column(Boolean, default=False, nullable=False)
    verification_notes = Column(Text, nullable=True)
    verification_date = Column(DateTime, nullable=True)
    verified_by = Column(Integer, ForeignKey("admin_users.id"), nullable=True)
    coin_balance = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    bookings = relationship("SeatBooking", back_populates="customer")
    coin_transactions = relationship("CoinTransaction", back_populates="customer")


class Admin(Base):
    __tablename__ = "admin_users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False)
    role = Column(String(20), default=AdminRole.BRANCH_ADMIN, nullable=False)
    branch_id = Column(Integer, ForeignKey("branches.id"), nullable=True)  # Required for branch admins
    is_active = Column(Boolean, default=True, nullable=False)
    last_login = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    branch = relationship("Branch")


class SeatBooking(Base):
    __tablename__ = "seat_bookings"

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False, index=True)
    seat_id = Column(Integer, ForeignKey("seats.id"), nullable=False, index=True)
    booking_type = Column(String(20), default="seat", nullable=False)  # seat, meeting
    start_time = Column(DateTime, nullable=False, index=True)
    end_time = Column(DateTime, nullable=False, index=True)
    quantity_group = Column(String(36), default=generate_group_id, nullable=False, index=True)
    total_price = Column(Float, default=0.0, nullable=False)
    status = Column(String(20), default=BookingStatus.PENDING, nullable=False, index=True)
    payment_status = Column(String(20), default=PaymentStatus.PENDING, nullable=False)
    order_id = Column(String(100), nullable=True, index=True)  # Razorpay order
    num_participants = Column(Integer, nullable=True)  # Meeting bookings only
    amenities = Column(JSON, nullable=True)
    cancellation_reason = Column(String(30), nullable=True)  # CancellationReason
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    customer = relationship("Customer", back_populates="bookings")
    seat = relationship("Seat", back_populates="bookings")


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False, index=True)
    booking_id = Column(Integer, ForeignKey("seat_bookings.id"), nullable=True)  # First booking of the group
    group_id = Column(String(36), nullable=True, index=True)
    amount = Column(Float, nullable=False)  # Rupees
    currency = Column(String(3), default="INR", nullable=False)
    status = Column(String(20), default=PaymentStatus.PENDING, nullable=False)
    order_id = Column(String(100), unique=True, index=True, nullable=False)
    razorpay_payment_id = Column(String(100), nullable=True, index=True)
    payment_method = Column(String(50), nullable=True)
    refund_amount = Column(Float, default=0.0, nullable=False)
    payment_metadata = Column(JSON, nullable=True)
    paid_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    booking = relationship("SeatBooking")


class MaintenanceBlock(Base):
    __tablename__ = "maintenance_blocks"

    id = Column(Integer, primary_key=True, index=True)
    seat_id = Column(Integer, ForeignKey("seats.id"), nullable=False, index=True)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    reason = Column(Text, nullable=False)
    notes = Column(Text, nullable=True)
    created_by = Column(Integer, ForeignKey("admin_users.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    seat = relationship("Seat", back_populates="maintenance_blocks")


class BlacklistedToken(Base):
    __tablename__ = "blacklisted_tokens"

    id = Column(Integer, primary_key=True, index=True)
    jti = Column(String(64), unique=True, index=True, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class SupportTicket(Base):
    __tablename__ = "support_tickets"

    id = Column(Integer, primary_key=True, index=True)
    ticket_number = Column(String(30), unique=True, index=True, nullable=False)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False, index=True)
    branch_id = Column(Integer, ForeignKey("branches.id"), nullable=True, index=True)
    booking_id = Column(Integer, ForeignKey("seat_bookings.id"), nullable=True)
    category = Column(String(50), nullable=False)
    priority = Column(String(10), default="MEDIUM", nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    status = Column(String(20), default="new", nullable=False, index=True)
    assigned_to = Column(Integer, ForeignKey("admin_users.id"), nullable=True)
    closed_at = Column(DateTime, nullable=True)
    reopened_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    customer = relationship("Customer")
    branch = relationship("Branch")
    messages = relationship(
        "TicketMessage",
        back_populates="ticket",
        cascade="all, delete-orphan",
        order_by="TicketMessage.id",
    )


class TicketMessage(Base):
    __tablename__ = "ticket_messages"

    id = Column(Integer, primary_key=True, index=True)
    ticket_id = Column(Integer, ForeignKey("support_tickets.id"), nullable=False, index=True)
    sender_type = Column(String(20), nullable=False)  # customer, admin, system
    sender_id = Column(Integer, nullable=True)
    message = Column(Text, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    ticket = relationship("SupportTicket", back_populates="messages")


class CoinTransaction(Base):
    __tablename__ = "coin_transactions"

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False, index=True)
    amount = Column(Integer, nullable=False)  # Positive when earned, negative when spent
    transaction_type = Column(String(20), nullable=False)  # earned, spent, bonus
    description = Column(String(255), nullable=True)
    booking_id = Column(Integer, ForeignKey("seat_bookings.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    customer = relationship("Customer", back_populates="coin_transactions")
