"""
Stripe webhook verification and purchase reconciliation.

Events are processed at most once: the Stripe event id is recorded in
``stripe_events`` in the same transaction as the purchase changes it causes.

Events handled:
- checkout.session.completed / checkout.session.async_payment_succeeded: mark paid
- checkout.session.async_payment_failed / checkout.session.expired: mark failed
"""

import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

import stripe
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from models import OrderItem, PaymentStatus, Purchase, StripeEvent, User

logger = logging.getLogger(__name__)

PAID_EVENTS = ("checkout.session.completed", "checkout.session.async_payment_succeeded")
FAILED_EVENTS = ("checkout.session.async_payment_failed", "checkout.session.expired")


class WebhookVerificationError(Exception):
    """Raised when a webhook delivery cannot be authenticated or parsed."""


def verify_event(payload: bytes, signature: Optional[str]) -> dict[str, Any]:
    """Verify the ``stripe-signature`` header and return the event as plain JSON.

    Raises:
        WebhookVerificationError: Missing secret or header, bad payload, bad signature.
    """
    secret = settings.stripe_webhook_secret
    if not secret:
        logger.error("STRIPE_WEBHOOK_SECRET not configured, rejecting webhook")
        raise WebhookVerificationError("Webhook secret not configured")
    if not signature:
        raise WebhookVerificationError("Missing stripe-signature header")

    try:
        stripe.Webhook.construct_event(payload, signature, secret)
    except ValueError as e:
        logger.error("Webhook payload could not be parsed: %s", e)
        raise WebhookVerificationError("Invalid payload")
    except stripe.SignatureVerificationError as e:
        logger.error("Webhook signature verification failed: %s", e)
        raise WebhookVerificationError("Invalid signature")
    # Reconciliation reads the raw JSON; SDK objects are not dicts on every release
    return json.loads(payload)


def _parse_uuid(value: Any) -> Optional[uuid.UUID]:
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


async def _find_purchase(db: AsyncSession, obj: dict) -> Optional[Purchase]:
    metadata = obj.get("metadata") or {}
    purchase_id = _parse_uuid(metadata.get("purchaseId"))
    if purchase_id is not None:
        purchase = await db.get(Purchase, purchase_id)
        if purchase is not None:
            return purchase
    if obj.get("id"):
        result = await db.execute(select(Purchase).where(Purchase.stripe_session_id == obj["id"]))
        return result.scalar_one_or_none()
    return None


async def _mark_paid(db: AsyncSession, obj: dict) -> None:
    if obj.get("payment_status") == "unpaid":
        logger.info("Checkout session %s completed but unpaid, awaiting async payment", obj.get("id"))
        return

    purchase = await _find_purchase(db, obj)
    if purchase is not None:
        purchase.payment_status = PaymentStatus.PAID
        purchase.stripe_payment_intent_id = obj.get("payment_intent")
        purchase.stripe_session_id = purchase.stripe_session_id or obj.get("id")
        purchase.updated_at = datetime.now(timezone.utc)
        logger.info("Purchase %s marked paid (session %s)", purchase.id, obj.get("id"))
        return

    metadata = obj.get("metadata") or {}
    user_id = _parse_uuid(metadata.get("userId"))
    template_id = metadata.get("templateId")
    if user_id is None or not template_id:
        logger.warning(
            "Checkout session %s has no known purchase and no user/template metadata, ignoring",
            obj.get("id"),
        )
        return
    if await db.get(User, user_id) is None:
        logger.warning("Checkout session %s references unknown user %s, ignoring", obj.get("id"), user_id)
        return

    amount = obj.get("amount_total") or 0
    purchase = Purchase(
        user_id=user_id,
        product_slug=template_id,
        product_name=metadata.get("productName") or "Document Purchase",
        amount=amount,
        currency=obj.get("currency") or "usd",
        payment_status=PaymentStatus.PAID,
        stripe_session_id=obj.get("id"),
        stripe_payment_intent_id=obj.get("payment_intent"),
    )
    db.add(purchase)
    await db.flush()
    db.add(OrderItem(
        purchase_id=purchase.id,
        product_slug=template_id,
        price_at_purchase=amount,
        generations_remaining=settings.default_generation_allowance,
        generations_used=0,
    ))
    logger.info("Created paid purchase %s for user %s from session %s", purchase.id, user_id, obj.get("id"))


async def _mark_failed(db: AsyncSession, obj: dict) -> None:
    purchase = await _find_purchase(db, obj)
    if purchase is None:
        return
    if purchase.payment_status != PaymentStatus.PENDING:
        logger.info("Purchase %s already %s, not marking failed", purchase.id, purchase.payment_status.value)
        return
    purchase.payment_status = PaymentStatus.FAILED
    purchase.updated_at = datetime.now(timezone.utc)
    logger.info("Purchase %s marked failed (session %s)", purchase.id, obj.get("id"))


async def handle_event(db: AsyncSession, event: Any) -> dict[str, Any]:
    """Apply a verified event once and return the acknowledgement body."""
    event_id = event["id"]
    event_type = event["type"]
    logger.info("Webhook received: %s (%s)", event_type, event_id)

    existing = await db.execute(select(StripeEvent).where(StripeEvent.stripe_event_id == event_id))
    if existing.scalar_one_or_none() is not None:
        logger.info("Event %s already processed, skipping", event_id)
        return {"received": True, "duplicate": True}

    db.add(StripeEvent(stripe_event_id=event_id, event_type=event_type))
    obj = event["data"]["object"]
    if event_type in PAID_EVENTS:
        await _mark_paid(db, obj)
    elif event_type in FAILED_EVENTS:
        await _mark_failed(db, obj)

    try:
        await db.commit()
    except IntegrityError:
        # Concurrent delivery of the same event won the insert
        await db.rollback()
        logger.info("Event %s recorded concurrently, skipping", event_id)
        return {"received": True, "duplicate": True}
    return {"received": True}
