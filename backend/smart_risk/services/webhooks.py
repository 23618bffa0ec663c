"""Stripe webhook processing: keeps profiles and payments in step with billing.

Handlers receive the verified event and a database session. They stage their
changes on the session and leave committing or rolling back to the caller.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional

import stripe
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from smart_risk.config import settings
from smart_risk.models.payment import Payment
from smart_risk.models.profile import Profile

logger = logging.getLogger(__name__)

stripe.api_key = settings.STRIPE_SECRET_KEY


def _period_end(subscription: Dict[str, Any]) -> Optional[datetime]:
    """``current_period_end`` of a subscription, looked up on its items on newer API versions."""
    timestamp = subscription.get("current_period_end")
    if timestamp is None:
        items = (subscription.get("items") or {}).get("data") or []
        if items:
            timestamp = items[0].get("current_period_end")
    if timestamp is None:
        return None
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).replace(tzinfo=None)


def _invoice_subscription_id(invoice: Dict[str, Any]) -> Optional[str]:
    subscription = invoice.get("subscription")
    if subscription:
        return subscription if isinstance(subscription, str) else subscription.get("id")
    details = ((invoice.get("parent") or {}).get("subscription_details") or {})
    return details.get("subscription")


async def _get_or_create_profile(db: AsyncSession, user_id: str, email: Optional[str] = None) -> Profile:
    profile = await db.get(Profile, user_id)
    if profile is None:
        logger.info(f"Creating missing profile {user_id} from billing event")
        profile = Profile(id=user_id, email=email, role="user", is_subscribed=False)
        db.add(profile)
    return profile


def _apply_subscription(profile: Profile, subscription: Dict[str, Any], customer_id: Optional[str] = None) -> None:
    profile.is_subscribed = True
    profile.subscription_status = subscription.get("status")
    profile.subscription_end_date = _period_end(subscription)
    profile.stripe_customer_id = customer_id or subscription.get("customer")
    profile.stripe_subscription_id = subscription.get("id")
    profile.updated_at = datetime.utcnow()


async def _record_payment(
    db: AsyncSession,
    transaction_id: str,
    user_id: str,
    amount_cents: Optional[int],
    currency: Optional[str],
    metadata: Dict[str, Any],
    plan_id: Optional[str] = None,
) -> Optional[Payment]:
    """Stage a completed payment unless one with this transaction id already exists."""
    existing = await db.execute(select(Payment.id).where(Payment.transaction_id == transaction_id))
    if existing.scalar_one_or_none():
        logger.info(f"Payment {transaction_id} already recorded, skipping")
        return None

    payment = Payment(
        user_id=user_id,
        plan_id=plan_id,
        amount=(amount_cents or 0) / 100,
        currency=currency or "eur",
        status="completed",
        transaction_id=transaction_id,
        payment_metadata=metadata,
    )
    db.add(payment)
    return payment


async def handle_subscription_changed(db: AsyncSession, subscription: Dict[str, Any]) -> str:
    user_id = (subscription.get("metadata") or {}).get("user_id")
    if not user_id:
        logger.warning(f"Subscription {subscription.get('id')} has no user_id metadata; ignored")
        return "ignored"

    profile = await _get_or_create_profile(db, user_id)
    _apply_subscription(profile, subscription)
    logger.info(f"Subscription {subscription.get('id')} is {subscription.get('status')} for user {user_id}")
    return "processed"


async def handle_subscription_deleted(db: AsyncSession, subscription: Dict[str, Any]) -> str:
    user_id = (subscription.get("metadata") or {}).get("user_id")
    if not user_id:
        return "ignored"

    profile = await db.get(Profile, user_id)
    if profile is None:
        logger.warning(f"Subscription deleted for unknown user {user_id}")
        return "ignored"

    profile.is_subscribed = False
    profile.subscription_status = "canceled"
    profile.updated_at = datetime.utcnow()
    logger.info(f"Subscription {subscription.get('id')} canceled for user {user_id}")
    return "processed"


async def handle_checkout_completed(db: AsyncSession, session: Dict[str, Any]) -> str:
    metadata = session.get("metadata") or {}
    user_id = metadata.get("user_id")
    subscription_id = session.get("subscription")
    if not user_id or not subscription_id:
        return "ignored"

    subscription = stripe.Subscription.retrieve(subscription_id)

    details = session.get("customer_details") or {}
    profile = await _get_or_create_profile(db, user_id, email=details.get("email"))
    _apply_subscription(profile, subscription, customer_id=session.get("customer"))

    # Keyed on the invoice so the matching invoice.payment_succeeded event is not counted twice
    transaction_id = session.get("invoice") or session.get("payment_intent") or session["id"]
    await _record_payment(
        db,
        transaction_id=transaction_id,
        user_id=user_id,
        amount_cents=session.get("amount_total"),
        currency=session.get("currency"),
        metadata={
            "subscription_id": subscription.get("id"),
            "customer_id": session.get("customer"),
            "checkout_session_id": session["id"],
        },
        plan_id=metadata.get("plan_id"),
    )
    logger.info(f"Checkout {session['id']} completed for user {user_id}")
    return "processed"


async def handle_invoice_paid(db: AsyncSession, invoice: Dict[str, Any]) -> str:
    subscription_id = _invoice_subscription_id(invoice)
    if not subscription_id:
        return "ignored"

    subscription = stripe.Subscription.retrieve(subscription_id)
    metadata = subscription.get("metadata") or {}
    user_id = metadata.get("user_id")
    if not user_id:
        return "ignored"
    if await db.get(Profile, user_id) is None:
        logger.warning(f"Invoice {invoice['id']} paid for unknown user {user_id}; no payment recorded")
        return "ignored"

    await _record_payment(
        db,
        transaction_id=invoice["id"],
        user_id=user_id,
        amount_cents=invoice.get("amount_paid"),
        currency=invoice.get("currency"),
        metadata={"subscription_id": subscription_id, "invoice_id": invoice["id"]},
        plan_id=metadata.get("plan_id"),
    )
    return "processed"


async def handle_invoice_failed(db: AsyncSession, invoice: Dict[str, Any]) -> str:
    customer_id = invoice.get("customer")
    if not customer_id:
        return "ignored"

    result = await db.execute(select(Profile).where(Profile.stripe_customer_id == customer_id))
    profile = result.scalars().first()
    if profile is None:
        logger.info(f"Payment failed for unknown customer {customer_id}; nothing to update")
        return "ignored"

    profile.is_subscribed = False
    profile.subscription_status = "payment_failed"
    profile.updated_at = datetime.utcnow()
    logger.warning(f"Payment failed for user {profile.id}; access revoked")
    return "processed"


EVENT_HANDLERS: Dict[str, Callable[[AsyncSession, Dict[str, Any]], Awaitable[str]]] = {
    "customer.subscription.created": handle_subscription_changed,
    "customer.subscription.updated": handle_subscription_changed,
    "customer.subscription.deleted": handle_subscription_deleted,
    "checkout.session.completed": handle_checkout_completed,
    "invoice.payment_succeeded": handle_invoice_paid,
    "invoice.payment_failed": handle_invoice_failed,
}


async def process_event(db: AsyncSession, event: Dict[str, Any]) -> str:
    """Dispatch a verified event; returns ``processed`` or ``ignored``."""
    handler = EVENT_HANDLERS.get(event["type"])
    if handler is None:
        logger.debug(f"Ignoring Stripe event {event['type']}")
        return "ignored"
    return await handler(db, event["data"]["object"])
