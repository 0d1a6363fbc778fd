"""
Stripe Checkout session builder plus the smaller payment helpers used by the
storefront (payment intents, session verification, price listing).

Line-item precedence for a checkout session:
  1. explicit Stripe price id
  2. Stripe product id, resolved to its first active price
  3. ad hoc ``price_data`` built from the supplied name and amount (USD)
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

import stripe
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from models import OrderItem, PaymentStatus, Purchase

logger = logging.getLogger(__name__)


class CheckoutError(Exception):
    """Raised when a checkout or payment call cannot be completed."""

    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


def _configure() -> None:
    stripe.api_key = settings.stripe_secret_key


def build_line_items(
    *,
    product_id: str,
    product_name: str,
    price: int,
    description: Optional[str] = None,
    stripe_price_id: Optional[str] = None,
    stripe_product_id: Optional[str] = None,
) -> list[dict[str, Any]]:
    """Return the single line item for a one-document checkout.

    Raises:
        CheckoutError: 400 when a product id has no active price, 500 on Stripe failure.
    """
    if stripe_price_id:
        return [{"price": stripe_price_id, "quantity": 1}]

    if stripe_product_id:
        _configure()
        try:
            prices = stripe.Price.list(product=stripe_product_id, active=True, limit=1)
        except stripe.StripeError as e:
            logger.error("Stripe price lookup failed for %s: %s", stripe_product_id, e)
            raise CheckoutError(str(e.user_message or e))
        if not prices.data:
            raise CheckoutError("No active price found for this product", status_code=400)
        return [{"price": prices.data[0].id, "quantity": 1}]

    product_data: dict[str, Any] = {"name": product_name, "metadata": {"product_id": product_id}}
    if description:
        product_data["description"] = description
    return [{
        "price_data": {
            "currency": "usd",
            "product_data": product_data,
            "unit_amount": price,
        },
        "quantity": 1,
    }]


def build_metadata(
    product_id: str, product_name: str, form_data: Optional[dict[str, Any]]
) -> dict[str, str]:
    metadata = {"productId": product_id or "", "productName": product_name or ""}
    if form_data:
        metadata["documentType"] = product_name or "Legal Document"
        disclosing = form_data.get("disclosingPartyName") or form_data.get("disclosing_party_name")
        receiving = form_data.get("receivingPartyName") or form_data.get("receiving_party_name")
        if disclosing:
            metadata["disclosingParty"] = str(disclosing)
        if receiving:
            metadata["receivingParty"] = str(receiving)
    return metadata


async def create_checkout_session(
    db: AsyncSession,
    *,
    product_id: str,
    product_name: str,
    price: int,
    description: Optional[str] = None,
    slug: Optional[str] = None,
    email: Optional[str] = None,
    form_data: Optional[dict[str, Any]] = None,
    stripe_price_id: Optional[str] = None,
    stripe_product_id: Optional[str] = None,
    user_id: Optional[uuid.UUID] = None,
) -> dict[str, Any]:
    """Create a Stripe Checkout session for one document purchase.

    Authenticated callers also get a pending Purchase (with its order line)
    linked to the session, which the webhook later marks paid.

    Returns:
        ``{"session_id", "url", "purchase_id"}``; purchase_id is None for anonymous callers.
    """
    line_items = build_line_items(
        product_id=product_id,
        product_name=product_name,
        price=price,
        description=description,
        stripe_price_id=stripe_price_id,
        stripe_product_id=stripe_product_id,
    )
    metadata = build_metadata(product_id, product_name, form_data)

    purchase = None
    if user_id is not None:
        purchase = Purchase(
            user_id=user_id,
            product_slug=slug,
            product_name=product_name or "Document Purchase",
            amount=price,
            currency="usd",
            payment_status=PaymentStatus.PENDING,
        )
        db.add(purchase)
        await db.flush()
        db.add(OrderItem(
            purchase_id=purchase.id,
            product_slug=slug,
            price_at_purchase=price,
            generations_remaining=settings.default_generation_allowance,
        ))
        metadata.update({
            "userId": str(user_id),
            "templateId": slug or product_id,
            "purchaseId": str(purchase.id),
        })

    base = settings.public_base_url.rstrip("/")
    params: dict[str, Any] = {
        "payment_method_types": ["card"],
        "mode": "payment",
        "line_items": line_items,
        "success_url": f"{base}/checkout/success?session_id={{CHECKOUT_SESSION_ID}}",
        "cancel_url": f"{base}/product/{slug or product_id}",
        "metadata": metadata,
    }
    if email:
        params["customer_email"] = email

    _configure()
    try:
        session = stripe.checkout.Session.create(**params)
    except stripe.StripeError as e:
        logger.error("Stripe checkout session creation failed: %s", e)
        await db.rollback()
        raise CheckoutError(str(e.user_message or e))

    if purchase is not None:
        purchase.stripe_session_id = session.id
        await db.commit()
        logger.info("Pending purchase %s linked to checkout session %s", purchase.id, session.id)

    return {
        "session_id": session.id,
        "url": session.url,
        "purchase_id": purchase.id if purchase is not None else None,
    }


def create_payment_intent(amount: int, product_name: str) -> str:
    """Create a card PaymentIntent and return its client secret."""
    _configure()
    try:
        intent = stripe.PaymentIntent.create(
            amount=amount,
            currency="usd",
            metadata={"product_name": product_name},
            automatic_payment_methods={"enabled": True},
        )
    except stripe.StripeError as e:
        logger.error("Stripe payment intent creation failed: %s", e)
        raise CheckoutError(str(e.user_message or e))
    return intent.client_secret


def _iso(timestamp: Optional[int]) -> Optional[str]:
    if not timestamp:
        return None
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()


def _attr(obj: Any, name: str, default: Any = None) -> Any:
    """Read a field from a Stripe object; unset fields and missing parents give ``default``."""
    if obj is None:
        return default
    value = getattr(obj, name, None)
    return default if value is None else value


def verify_session(session_id: str) -> dict[str, Any]:
    """Summarise a completed checkout session for the success page.

    Amounts are converted from minor to major units.
    """
    if not session_id:
        raise CheckoutError("Session ID is required", status_code=400)

    _configure()
    try:
        session = stripe.checkout.Session.retrieve(
            session_id, expand=["line_items", "payment_intent", "customer"]
        )
    except stripe.StripeError as e:
        logger.error("Stripe session retrieval failed for %s: %s", session_id, e)
        raise CheckoutError(str(e.user_message or e))

    customer_details = _attr(session, "customer_details")
    line_items = _attr(_attr(session, "line_items"), "data", [])
    intent = _attr(session, "payment_intent")
    if isinstance(intent, str):
        intent = None
    payment_method_types = _attr(intent, "payment_method_types") or _attr(session, "payment_method_types", [])

    return {
        "status": _attr(session, "payment_status"),
        "customer": {
            "email": _attr(customer_details, "email"),
            "name": _attr(customer_details, "name"),
        },
        "items": [
            {
                "name": _attr(item, "description"),
                "quantity": _attr(item, "quantity"),
                "amount": _attr(item, "amount_total", 0) / 100,
            }
            for item in line_items
        ],
        "payment": {
            "amount": _attr(session, "amount_total", 0) / 100,
            "currency": _attr(session, "currency"),
            "payment_method": payment_method_types[0] if payment_method_types else None,
            "created": _iso(_attr(intent, "created") or _attr(session, "created")),
        },
        "receipt_id": _attr(intent, "id") or _attr(session, "id"),
    }


def list_active_prices() -> list[dict[str, Any]]:
    """Active Stripe prices with their product expanded, for the price list page."""
    _configure()
    try:
        result = stripe.Price.search(query="active:'true'", expand=["data.product"])
    except stripe.StripeError as e:
        logger.error("Stripe price search failed: %s", e)
        raise CheckoutError(str(e.user_message or e))

    products = []
    for price in result.data:
        product = _attr(price, "product")
        product_id = product if isinstance(product, str) else _attr(product, "id")
        if isinstance(product, str):
            product = None
        products.append({
            "id": product_id,
            "name": _attr(product, "name"),
            "description": _attr(product, "description"),
            "price_id": _attr(price, "id"),
            "unit_amount": _attr(price, "unit_amount"),
            "currency": _attr(price, "currency"),
        })
    return products
