"""
Webhook Security Module

Signature verification for Razorpay webhooks:
- Constant-time signature comparison
- Raw request body verification before JSON parsing
"""

import hashlib
import hmac
import logging

from fastapi import HTTPException, Request

logger = logging.getLogger(__name__)


def constant_time_compare(a: str, b: str) -> bool:
    """
    Compare two strings in constant time to prevent timing attacks.
    Uses hmac.compare_digest which is designed for this purpose.
    """
    if not a or not b:
        return False
    return hmac.compare_digest(a, b)


def compute_hmac_sha256(secret: str, payload: bytes) -> str:
    """Compute HMAC-SHA256 signature of payload"""
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


async def verify_razorpay_webhook(request: Request, secret: str) -> bytes:
    """
    Verify a Razorpay webhook delivery.

    The ``X-Razorpay-Signature`` header holds the hex HMAC-SHA256 of the raw
    body keyed with the webhook secret.

    Returns:
        The raw request body
    """
    raw_body = await request.body()
    signature = request.headers.get("X-Razorpay-Signature", "")
    event_id = request.headers.get("X-Razorpay-Event-Id", "unknown")

    logger.info(f"📥 Razorpay webhook received: id={event_id}")

    if not secret:
        logger.error("❌ RAZORPAY_WEBHOOK_SECRET not configured")
        raise HTTPException(status_code=503, detail="Webhook verification not configured")

    if not signature:
        logger.error("❌ Missing X-Razorpay-Signature header")
        raise HTTPException(status_code=401, detail="Missing webhook signature")

    expected_signature = compute_hmac_sha256(secret, raw_body)
    if not constant_time_compare(expected_signature, signature):
        logger.error(f"❌ Razorpay webhook signature mismatch for {event_id}")
        raise HTTPException(status_code=401, detail="Invalid webhook signature")

    logger.info(f"✅ Razorpay webhook signature verified: {event_id}")
    return raw_body
