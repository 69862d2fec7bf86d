"""Payment schemas."""

from pydantic import BaseModel, Field

from app.schemas.base import BaseSchema


class CreateOrderResponse(BaseSchema):
    """Gateway order plus the public key id the checkout widget needs."""

    order: dict
    key_id: str


class PaymentVerifyRequest(BaseModel):
    """Checkout callback fields, named as the gateway sends them."""

    razorpay_order_id: str = Field(..., min_length=1)
    razorpay_payment_id: str = Field(..., min_length=1)
    razorpay_signature: str = Field(..., min_length=1)


class PaymentVerifyResponse(BaseSchema):
    message: str
    token: str
    is_subscribed: bool
