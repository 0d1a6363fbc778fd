"""Stripe payment endpoints.

POST /api/create-checkout-session - Hosted checkout for one document (auth optional)
POST /api/create-payment-intent   - PaymentIntent for embedded card forms
GET  /api/verify-session          - Order summary for the checkout success page
GET  /api/get-stripe-products     - Active Stripe prices with their products
POST /api/webhook                 - Stripe webhook (signature verified)
"""

import uuid
import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel
from sqlalchemy.ext.asyncio import AsyncSession

from auth.jwt import get_optional_user_id
from billing import checkout, webhook
from billing.checkout import CheckoutError
from billing.webhook import WebhookVerificationError
from models import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["payments"])


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CheckoutRequest(CamelModel):
    product_id: str = ""
    product_name: str = Field(min_length=1)
    price: int = Field(0, ge=0)  # minor units
    description: Optional[str] = None
    slug: Optional[str] = None
    email: Optional[EmailStr] = None
    form_data: Optional[dict[str, Any]] = None
    stripe_price_id: Optional[str] = None
    stripe_product_id: Optional[str] = None


class CheckoutResponse(CamelModel):
    session_id: str
    url: Optional[str]
    purchase_id: Optional[uuid.UUID] = None


class PaymentIntentRequest(CamelModel):
    amount: int = Field(gt=0)
    product_name: str = Field(min_length=1)


def _checkout_failure(e: CheckoutError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/create-checkout-session", response_model=CheckoutResponse, response_model_by_alias=True)
async def create_checkout_session(
    body: CheckoutRequest,
    user_id: uuid.UUID | None = Depends(get_optional_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Create a Stripe Checkout session; signed-in callers also get a pending purchase."""
    logger.info("Creating checkout session for product %s (user %s)", body.product_id or body.slug, user_id)
    try:
        result = await checkout.create_checkout_session(
            db,
            product_id=body.product_id,
            product_name=body.product_name,
            price=body.price,
            description=body.description,
            slug=body.slug,
            email=body.email,
            form_data=body.form_data,
            stripe_price_id=body.stripe_price_id,
            stripe_product_id=body.stripe_product_id,
            user_id=user_id,
        )
    except CheckoutError as e:
        raise _checkout_failure(e)
    return CheckoutResponse(**result)


@router.post("/create-payment-intent")
async def create_payment_intent(body: PaymentIntentRequest):
    try:
        client_secret = checkout.create_payment_intent(body.amount, body.product_name)
    except CheckoutError as e:
        raise _checkout_failure(e)
    return {"clientSecret": client_secret}


@router.get("/verify-session")
async def verify_session(session_id: Optional[str] = None):
    try:
        return checkout.verify_session(session_id or "")
    except CheckoutError as e:
        raise _checkout_failure(e)


@router.get("/get-stripe-products")
async def get_stripe_products():
    try:
        return {"products": checkout.list_active_prices()}
    except CheckoutError as e:
        raise _checkout_failure(e)


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="stripe-signature"),
    db: AsyncSession = Depends(get_db),
):
    """Verify the delivery, then reconcile the purchase it refers to exactly once."""
    payload = await request.body()
    try:
        event = webhook.verify_event(payload, stripe_signature)
    except WebhookVerificationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return await webhook.handle_event(db, event)
