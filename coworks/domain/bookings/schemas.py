"""Booking domain schemas - Pydantic models for validation"""

from datetime import date, datetime, time
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator


class BookingCreate(BaseModel):
    """
    Schema for holding seats.

    The target is a specific seat (``seat_id`` or ``seat_code``) or a pool of
    seats addressed by branch and seating type codes.
    """

    seat_id: Optional[int] = None
    seat_code: Optional[str] = None
    branch_code: Optional[str] = None
    seating_type_code: Optional[str] = None
    quantity: int = 1
    start_date: date
    end_date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    booking_type: Literal["seat", "meeting"] = Field("seat", alias="type")
    num_participants: Optional[int] = None
    amenities: Optional[list[str]] = None
    notes: Optional[str] = None

    class Config:
        populate_by_name = True

    @field_validator("seat_code", "branch_code", "seating_type_code")
    @classmethod
    def normalize_code(cls, v):
        if v:
            return v.strip().upper()
        return v

    @field_validator("num_participants")
    @classmethod
    def validate_participants(cls, v):
        if v is not None and v < 1:
            raise ValueError("num_participants must be at least 1")
        return v


class CreateOrderRequest(BookingCreate):
    """Hold seats and open a Razorpay order in one step"""

    branch_id: Optional[int] = None


class BookingResponse(BaseModel):
    id: int
    customer_id: int
    seat_id: int
    seat_code: Optional[str] = None
    seat_number: Optional[str] = None
    branch_id: Optional[int] = None
    branch_name: Optional[str] = None
    seating_type: Optional[str] = None
    booking_type: str
    start_time: datetime
    end_time: datetime
    quantity_group: str
    total_price: float
    status: str
    payment_status: str
    order_id: Optional[str] = None
    num_participants: Optional[int] = None
    amenities: Optional[list[str]] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    state: str
    is_active: bool
    is_upcoming: bool
    is_completed: bool
    is_cancelled: bool


class BookingHoldResponse(BaseModel):
    message: str
    quantity_group: str
    total_amount: float
    bookings: list[BookingResponse]
    quote: dict[str, Any]


class CheckoutDetails(BaseModel):
    key_id: Optional[str] = None
    amount: int  # paise
    currency: str
    name: str
    description: str
    order_id: str
    prefill: dict[str, str]


class CreateOrderResponse(BaseModel):
    message: str
    order_id: str
    amount: float
    currency: str
    receipt: str
    payment_id: int
    quantity_group: str
    booking_ids: list[int]
    bookings: list[BookingResponse]
    quote: dict[str, Any]
    payment_details: CheckoutDetails


class CancelBookingResponse(BaseModel):
    message: str
    booking: BookingResponse
    refund_amount: float
    refund_status: str  # none, refunded, failed, not_paid
    breakdown: Optional[dict[str, Any]] = None
