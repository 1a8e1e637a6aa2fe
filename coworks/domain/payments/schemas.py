"""Payment domain schemas"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, field_validator


class PaymentOrderCreate(BaseModel):
    """Open an order for bookings that are already held"""

    booking_ids: list[int]

    @field_validator("booking_ids")
    @classmethod
    def validate_booking_ids(cls, v):
        if not v:
            raise ValueError("At least one booking id is required")
        return list(dict.fromkeys(v))


class PaymentVerifyRequest(BaseModel):
    razorpay_order_id: str
    razorpay_payment_id: str
    razorpay_signature: str


class PaymentResponse(BaseModel):
    id: int
    customer_id: int
    booking_id: Optional[int] = None
    group_id: Optional[str] = None
    amount: float
    currency: str
    status: str
    order_id: str
    razorpay_payment_id: Optional[str] = None
    payment_method: Optional[str] = None
    refund_amount: float
    paid_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PaymentVerifyResponse(BaseModel):
    message: str
    payment: PaymentResponse
    booking_ids: list[int]
    coins_earned: int = 0
    refunded_booking_ids: list[int] = []


class PaymentOrderResponse(BaseModel):
    order_id: str
    amount: float
    currency: str
    key_id: Optional[str] = None
    payment_id: int
    booking_ids: list[int]
    notes: Optional[dict[str, Any]] = None
