"""Razorpay service - Integration with the Razorpay Orders and Payments API"""

import logging
from typing import Optional

import razorpay
from fastapi import HTTPException
from razorpay.errors import BadRequestError, SignatureVerificationError

from ...config import (
    BUSINESS_NAME,
    PAYMENT_CURRENCY,
    RAZORPAY_KEY_ID,
    RAZORPAY_KEY_SECRET,
)

logger = logging.getLogger(__name__)


def to_paise(amount: float) -> int:
    """Razorpay amounts are integers in the smallest currency unit"""
    return int(round(amount * 100))


class RazorpayService:
    """Service for Razorpay API operations"""

    def __init__(self, key_id: Optional[str] = None, key_secret: Optional[str] = None):
        self.key_id = key_id or RAZORPAY_KEY_ID
        self.key_secret = key_secret or RAZORPAY_KEY_SECRET
        self.client = None

        if not self.key_id or not self.key_secret:
            logger.warning("RAZORPAY_KEY_ID/RAZORPAY_KEY_SECRET not set; payments will fail until configured")
        else:
            self.client = razorpay.Client(auth=(self.key_id, self.key_secret))
            self.client.set_app_details({"title": BUSINESS_NAME, "version": "1.0"})

    def is_available(self) -> bool:
        return self.client is not None

    def _require_client(self):
        if not self.client:
            raise HTTPException(status_code=503, detail="Payment gateway is not configured")
        return self.client

    def create_order(self, amount: float, receipt: str, notes: Optional[dict] = None) -> dict:
        """Create an order for ``amount`` rupees"""
        client = self._require_client()
        try:
            order = client.order.create(
                data={
                    "amount": to_paise(amount),
                    "currency": PAYMENT_CURRENCY,
                    "receipt": receipt[:40],
                    "notes": {k: str(v) for k, v in (notes or {}).items()},
                }
            )
        except BadRequestError as e:
            logger.error(f"❌ Razorpay rejected order for receipt {receipt}: {e}")
            raise HTTPException(status_code=502, detail=f"Payment gateway rejected the order: {e}") from e
        except Exception as e:
            logger.error(f"❌ Failed to create Razorpay order for receipt {receipt}: {e}")
            raise HTTPException(status_code=502, detail="Failed to create payment order") from e

        logger.info(f"✅ Razorpay order created: {order.get('id')} ({to_paise(amount)} paise)")
        return order

    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        """Checkout signs ``order_id|payment_id`` with the API key secret"""
        client = self._require_client()
        try:
            client.utility.verify_payment_signature(
                {
                    "razorpay_order_id": order_id,
                    "razorpay_payment_id": payment_id,
                    "razorpay_signature": signature or "",
                }
            )
        except SignatureVerificationError:
            return False
        return True

    def fetch_payment(self, payment_id: str) -> dict:
        client = self._require_client()
        try:
            return client.payment.fetch(payment_id)
        except Exception as e:
            logger.error(f"❌ Failed to fetch Razorpay payment {payment_id}: {e}")
            raise HTTPException(status_code=502, detail="Failed to fetch payment details") from e

    def refund_payment(self, payment_id: str, amount: Optional[float] = None) -> dict:
        """Refund a captured payment, fully when ``amount`` is None"""
        client = self._require_client()
        data = {"amount": to_paise(amount)} if amount else {}
        try:
            refund = client.payment.refund(payment_id, data)
        except Exception as e:
            logger.error(f"❌ Failed to refund Razorpay payment {payment_id}: {e}")
            raise HTTPException(status_code=502, detail="Failed to process refund") from e

        logger.info(f"💸 Refund issued for payment {payment_id}: {refund.get('id')}")
        return refund


def get_razorpay_service() -> RazorpayService:
    """Dependency injection for RazorpayService"""
    return RazorpayService()
