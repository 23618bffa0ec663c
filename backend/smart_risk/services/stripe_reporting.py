"""Live subscription and payment reporting read from Stripe.

All calls are synchronous SDK calls; callers translate ``stripe.StripeError``
into their own degraded state.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import stripe

from smart_risk.config import settings
from smart_risk.schemas.analytics import StripeAnalyticsResponse
from smart_risk.schemas.payments import (
    StripePaymentItem,
    StripePaymentStats,
    StripePaymentsResponse,
    UpcomingPayout,
)

logger = logging.getLogger(__name__)

stripe.api_key = settings.STRIPE_SECRET_KEY

# Stripe list calls are capped at this page size
PAGE_LIMIT = 100


def _timestamp(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp())


def _from_timestamp(value: int) -> datetime:
    return datetime.fromtimestamp(value, tz=timezone.utc)


def _percentage(part: int, whole: int, default: float) -> float:
    if whole <= 0:
        return default
    return round(part / whole * 100, 1)


def monthly_amount(price: Dict[str, Any]) -> float:
    """Normalise a recurring price to a monthly amount in currency units."""
    recurring = price.get("recurring") or {}
    unit_amount = (price.get("unit_amount") or 0) / 100
    interval = recurring.get("interval")
    if interval == "month":
        return unit_amount
    if interval == "year":
        return unit_amount / 12
    return 0.0


def subscription_mrr(subscriptions: List[Dict[str, Any]]) -> float:
    """Sum of the monthly value of every subscription item."""
    mrr = 0.0
    for subscription in subscriptions:
        items = (subscription.get("items") or {}).get("data") or []
        for item in items:
            mrr += monthly_amount(item.get("price") or {})
    return round(mrr, 2)


def compute_stripe_analytics(start_date: datetime, previous_start_date: datetime) -> StripeAnalyticsResponse:
    """
    Subscription metrics for the period starting at ``start_date``.

    Churn compares the customers who subscribed during the previous period
    ``[previous_start_date, start_date)`` against today's active customers.

    Raises:
        stripe.StripeError: on any Stripe API failure.
    """
    active = stripe.Subscription.list(status="active", limit=PAGE_LIMIT)["data"]
    active_customers = {sub.get("customer") for sub in active}
    mrr = subscription_mrr(active)

    previous = stripe.Subscription.list(
        created={"gte": _timestamp(previous_start_date), "lt": _timestamp(start_date)},
        status="all",
        limit=PAGE_LIMIT,
    )["data"]
    previous_customers = {sub.get("customer") for sub in previous}
    churned = len(previous_customers - active_customers)

    charges = stripe.Charge.list(created={"gte": _timestamp(start_date)}, limit=PAGE_LIMIT)["data"]
    succeeded = sum(1 for charge in charges if charge.get("status") == "succeeded")

    trialing = stripe.Subscription.list(status="trialing", limit=PAGE_LIMIT)["data"]

    return StripeAnalyticsResponse(
        mrr=mrr,
        churn_rate=_percentage(churned, len(previous_customers), 0.0),
        retention_rate=_percentage(len(active_customers), len(previous_customers), 100.0),
        payment_success_rate=_percentage(succeeded, len(charges), 100.0),
        trial_count=len(trialing),
    )


def _charge_status(charge: Dict[str, Any]) -> str:
    if charge.get("refunded"):
        return "refunded"
    status = charge.get("status")
    if status == "succeeded":
        return "completed"
    if status == "failed":
        return "failed"
    return "pending"


def map_charge(charge: Dict[str, Any]) -> StripePaymentItem:
    """Normalise a Stripe charge (with ``customer`` and ``refunds`` expanded)."""
    refunds = (charge.get("refunds") or {}).get("data") or []
    refund_cents = sum(refund.get("amount") or 0 for refund in refunds)

    customer = charge.get("customer")
    if not isinstance(customer, dict):
        customer = {}
    billing = charge.get("billing_details") or {}
    method = charge.get("payment_method_details") or {}
    card = method.get("card") or {}

    return StripePaymentItem(
        id=charge["id"],
        amount=((charge.get("amount") or 0) - refund_cents) / 100,
        currency=(charge.get("currency") or "eur").upper(),
        status=_charge_status(charge),
        created_at=_from_timestamp(charge.get("created") or 0),
        payment_method=method.get("type") or "card",
        transaction_id=charge["id"],
        stripe_payment_intent_id=charge.get("payment_intent"),
        customer_email=customer.get("email") or billing.get("email"),
        customer_name=customer.get("name") or billing.get("name"),
        description=charge.get("description"),
        metadata=dict(charge.get("metadata") or {}),
        refunded=bool(charge.get("refunded")),
        refund_amount=refund_cents / 100,
        failure_message=charge.get("failure_message"),
        receipt_url=charge.get("receipt_url"),
        disputed=bool(charge.get("dispute")),
        card_brand=card.get("brand"),
        card_last4=card.get("last4"),
    )


def summarize_charges(payments: List[StripePaymentItem], now: Optional[datetime] = None) -> StripePaymentStats:
    """Revenue and success statistics over normalised charges."""
    now = now or datetime.now(timezone.utc)
    completed = [p for p in payments if p.status == "completed"]
    total_revenue = sum(p.amount for p in completed)
    monthly_revenue = sum(
        p.amount for p in completed
        if p.created_at.year == now.year and p.created_at.month == now.month
    )
    return StripePaymentStats(
        total_revenue=round(total_revenue, 2),
        monthly_revenue=round(monthly_revenue, 2),
        success_rate=_percentage(len(completed), len(payments), 0.0),
        average_payment=round(total_revenue / len(completed), 2) if completed else 0.0,
        total_transactions=len(payments),
        refunded_amount=round(sum(p.refund_amount for p in payments), 2),
    )


def list_stripe_payments(
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    limit: int = PAGE_LIMIT,
) -> StripePaymentsResponse:
    """
    Recent charges plus statistics, open disputes and pending payouts.

    Raises:
        stripe.StripeError: on any Stripe API failure.
    """
    params: Dict[str, Any] = {
        "limit": limit,
        "expand": ["data.customer", "data.refunds"],
    }
    created: Dict[str, int] = {}
    if start_date:
        created["gte"] = _timestamp(start_date)
    if end_date:
        created["lte"] = _timestamp(end_date)
    if created:
        params["created"] = created

    charges = stripe.Charge.list(**params)["data"]
    payments = [map_charge(charge) for charge in charges]
    stats = summarize_charges(payments)

    disputes = stripe.Dispute.list(limit=10)["data"]
    payouts = stripe.Payout.list(limit=5, status="pending")["data"]
    stats.dispute_count = len(disputes)
    stats.upcoming_payouts = [
        UpcomingPayout(
            amount=(payout.get("amount") or 0) / 100,
            arrival_date=_from_timestamp(payout.get("arrival_date") or 0),
            status=payout.get("status") or "pending",
        )
        for payout in payouts
    ]

    logger.info(f"Loaded {len(payments)} Stripe charges ({len(disputes)} disputes, {len(payouts)} pending payouts)")
    return StripePaymentsResponse(payments=payments, stats=stats)


def find_or_create_customer(email: str, name: Optional[str] = None) -> str:
    """
    Id of the Stripe customer with this email, creating one if none exists.

    Raises:
        stripe.StripeError: on any Stripe API failure.
    """
    existing = stripe.Customer.list(email=email, limit=1)["data"]
    if existing:
        return existing[0]["id"]

    params: Dict[str, Any] = {"email": email}
    if name:
        params["name"] = name
    customer = stripe.Customer.create(**params)
    logger.info(f"Created Stripe customer {customer['id']} for {email}")
    return customer["id"]


def create_portal_session(customer_id: str, return_url: str) -> str:
    """URL of a fresh billing-portal session."""
    session = stripe.billing_portal.Session.create(customer=customer_id, return_url=return_url)
    return session["url"]
