"""Razorpay integration: order creation and payment signature checks."""

import asyncio
import hashlib
import hmac
import logging

import razorpay

from app.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


class PaymentGatewayError(Exception):
    """The gateway rejected or failed an API call."""


def compute_signature(order_id: str, payment_id: str, secret: str) -> str:
    """HMAC-SHA256 hex digest of "order_id|payment_id" keyed with the gateway secret."""
    body = f"{order_id}|{payment_id}"
    return hmac.new(secret.encode(), body.encode(), hashlib.sha256).hexdigest()


def verify_signature(order_id: str, payment_id: str, signature: str, secret: str) -> bool:
    """Constant-time comparison of the client-supplied signature with the expected one."""
    if not secret:
        return False
    expected = compute_signature(order_id, payment_id, secret)
    # str compare_digest raises on non-ASCII input
    return hmac.compare_digest(expected.encode(), (signature or "").encode())


class PaymentService:
    """Thin wrapper around the Razorpay client."""

    def __init__(self):
        self.client = razorpay.Client(auth=(settings.razorpay_key_id, settings.razorpay_key_secret))

    async def create_subscription_order(self, user_id: str) -> dict:
        """
        Create an order for the fixed subscription amount.

        Raises:
            PaymentGatewayError: If the gateway call fails
        """
        payment_data = {
            "amount": settings.subscription_amount,
            "currency": settings.subscription_currency,
            "receipt": f"receipt_user_{user_id}",
            "notes": {"userId": user_id},
        }
        try:
            # razorpay's client is synchronous
            order = await asyncio.to_thread(self.client.order.create, data=payment_data)
        except Exception as e:
            logger.error("Razorpay order creation failed for user %s: %s", user_id, e)
            raise PaymentGatewayError(str(e)) from e
        logger.info("Created Razorpay order %s for user %s", order.get("id"), user_id)
        return order

    def verify(self, order_id: str, payment_id: str, signature: str) -> bool:
        return verify_signature(order_id, payment_id, signature, settings.razorpay_key_secret)


# Singleton instance
payment_service = PaymentService()
