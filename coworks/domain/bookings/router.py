"""Booking router - FastAPI endpoints for customer bookings"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_customer, require_verified_customer
from ...database import get_db
from ...models import Customer
from ..payments.razorpay_service import RazorpayService, get_razorpay_service
from .schemas import (
    BookingCreate,
    BookingHoldResponse,
    BookingResponse,
    CancelBookingResponse,
    CreateOrderRequest,
    CreateOrderResponse,
)
from .service import BookingService, serialize_booking

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["Bookings"])


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db)


@router.post("", response_model=BookingHoldResponse, status_code=201)
async def create_booking(
    data: BookingCreate,
    customer: Customer = Depends(require_verified_customer),
    service: BookingService = Depends(get_booking_service),
):
    """Hold one or more seats as pending bookings"""
    bookings, quote = service.hold_seats(customer, data)
    return BookingHoldResponse(
        message="Booking created successfully. Complete payment to confirm.",
        quantity_group=bookings[0].quantity_group,
        total_amount=quote.total,
        bookings=[serialize_booking(booking) for booking in bookings],
        quote=quote.to_dict(),
    )


@router.post("/create-order", response_model=CreateOrderResponse, status_code=201)
async def create_booking_order(
    data: CreateOrderRequest,
    customer: Customer = Depends(require_verified_customer),
    service: BookingService = Depends(get_booking_service),
    razorpay: RazorpayService = Depends(get_razorpay_service),
):
    """Hold seats and create the Razorpay order to pay for them"""
    return service.create_order(customer, data, razorpay)


@router.get("", response_model=list[BookingResponse])
async def list_bookings(
    status: Optional[str] = Query(None, description="active, upcoming, completed, cancelled, pending or a raw status"),
    branch: Optional[str] = Query(None, description="Branch short code or id"),
    type: Optional[str] = Query(None, description="Seating type short code, seat or meeting"),
    customer: Customer = Depends(get_current_customer),
    service: BookingService = Depends(get_booking_service),
):
    return service.list_bookings(customer, status, branch, type)


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: int,
    customer: Customer = Depends(get_current_customer),
    service: BookingService = Depends(get_booking_service),
):
    return serialize_booking(service.get_booking(customer, booking_id))


@router.put("/{booking_id}/cancel", response_model=CancelBookingResponse)
async def cancel_booking(
    booking_id: int,
    customer: Customer = Depends(get_current_customer),
    service: BookingService = Depends(get_booking_service),
    razorpay: RazorpayService = Depends(get_razorpay_service),
):
    """Cancel a booking, refunding what the cancellation rules allow"""
    return service.cancel_booking(customer, booking_id, razorpay)
