"""Payment router - Razorpay order, verification and webhook endpoints"""

import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ... import jobs
from ...auth import get_current_customer
from ...config import RAZORPAY_WEBHOOK_SECRET
from ...database import get_db
from ...models import Customer
from ...rate_limiter import create_rate_limiter
from ...webhook_security import verify_razorpay_webhook
from .razorpay_service import RazorpayService, get_razorpay_service
from .schemas import (
    PaymentOrderCreate,
    PaymentOrderResponse,
    PaymentResponse,
    PaymentVerifyRequest,
    PaymentVerifyResponse,
)
from .service import PaymentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["Payments"])

# Rate limiter for payment webhooks - 100 requests per minute
rate_limit_payment_webhook = create_rate_limiter(
    limit=100,
    window_seconds=60,
    key_prefix="webhook_razorpay",
)


def get_payment_service(db: Session = Depends(get_db)) -> PaymentService:
    """Dependency injection for PaymentService"""
    return PaymentService(db)


@router.post("/create-order", response_model=PaymentOrderResponse, status_code=201)
async def create_payment_order(
    data: PaymentOrderCreate,
    customer: Customer = Depends(get_current_customer),
    service: PaymentService = Depends(get_payment_service),
    razorpay: RazorpayService = Depends(get_razorpay_service),
):
    """Create a Razorpay order for bookings that are already held"""
    return service.create_order_for_bookings(customer, data.booking_ids, razorpay)


@router.post("/verify", response_model=PaymentVerifyResponse)
async def verify_payment(
    data: PaymentVerifyRequest,
    customer: Customer = Depends(get_current_customer),
    service: PaymentService = Depends(get_payment_service),
    razorpay: RazorpayService = Depends(get_razorpay_service),
):
    """Verify the checkout signature and confirm the bookings"""
    result = service.verify_payment(customer, data, razorpay)
    if result["newly_confirmed"] and result["payment"].group_id:
        await jobs.enqueue_job("send_booking_confirmation_task", result["payment"].group_id)
    return result


@router.post("/razorpay-webhook", dependencies=[Depends(rate_limit_payment_webhook)])
async def razorpay_webhook(
    request: Request,
    service: PaymentService = Depends(get_payment_service),
    razorpay: RazorpayService = Depends(get_razorpay_service),
):
    """Handle Razorpay webhook deliveries"""
    raw_body = await verify_razorpay_webhook(request, RAZORPAY_WEBHOOK_SECRET)

    try:
        event = json.loads(raw_body)
    except json.JSONDecodeError as e:
        logger.error(f"❌ Failed to parse Razorpay webhook JSON: {e}")
        raise HTTPException(status_code=400, detail="Invalid JSON payload") from e

    result = service.handle_webhook(event, razorpay)
    if result.get("quantity_group"):
        await jobs.enqueue_job("send_booking_confirmation_task", result["quantity_group"])
    return result


@router.get("", response_model=list[PaymentResponse])
async def list_payments(
    customer: Customer = Depends(get_current_customer),
    service: PaymentService = Depends(get_payment_service),
):
    return service.list_payments(customer)


@router.get("/{payment_id}", response_model=PaymentResponse)
async def get_payment(
    payment_id: int,
    customer: Customer = Depends(get_current_customer),
    service: PaymentService = Depends(get_payment_service),
):
    return service.get_payment(customer, payment_id)
