"""
Subscription payment routes (Razorpay).

Flow:
1. POST /api/payment/create-order - server creates a gateway order for the
   fixed subscription amount and returns it with the public key id
2. Client completes checkout and receives order id, payment id and signature
3. POST /api/payment/verify - server recomputes the HMAC signature; on a
   match the account is subscribed and a refreshed token is returned
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.deps import DbSession, Principal, require_capability, require_user, token_for_user
from app.config import get_settings
from app.policy import Capability
from app.schemas.payment import CreateOrderResponse, PaymentVerifyRequest, PaymentVerifyResponse
from app.services import payment_service
from app.services.payment import PaymentGatewayError

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(prefix="/api/payment", tags=["payment"])

Purchaser = Annotated[Principal, Depends(require_capability(Capability.PURCHASE_SUBSCRIPTION))]


@router.post("/create-order", response_model=CreateOrderResponse)
async def create_order(principal: Purchaser) -> CreateOrderResponse:
    user = require_user(principal)
    try:
        order = await payment_service.create_subscription_order(str(user.id))
    except PaymentGatewayError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create payment order.",
        )
    return CreateOrderResponse(order=order, key_id=settings.razorpay_key_id)


@router.post("/verify", response_model=PaymentVerifyResponse)
async def verify_payment(
    data: PaymentVerifyRequest,
    principal: Purchaser,
    db: DbSession,
) -> PaymentVerifyResponse:
    """
    Verify a completed checkout and activate the subscription.

    The token in the response carries the new subscription flag so the
    client can replace its stored session.
    """
    user = require_user(principal)

    if not payment_service.verify(
        data.razorpay_order_id,
        data.razorpay_payment_id,
        data.razorpay_signature,
    ):
        logger.warning(
            "Payment signature mismatch for user %s (order %s)",
            user.id,
            data.razorpay_order_id,
        )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Payment verification failed. Signature mismatch.",
        )

    user.is_subscribed = True
    await db.commit()
    await db.refresh(user)

    logger.info("User %s subscribed (payment %s)", user.id, data.razorpay_payment_id)
    return PaymentVerifyResponse(
        message="Payment verified successfully. You are now subscribed!",
        token=token_for_user(user),
        is_subscribed=user.is_subscribed,
    )
