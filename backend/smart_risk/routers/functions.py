"""Serverless-style functions: billing portal and live Stripe reporting."""
import logging

import stripe
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from smart_risk.database import get_db
from smart_risk.config import settings
from smart_risk.models.profile import Profile
from smart_risk.schemas.analytics import StripeAnalyticsRequest, StripeAnalyticsResponse
from smart_risk.schemas.payments import StripePaymentsRequest, StripePaymentsResponse
from smart_risk.schemas.portal import PortalSessionRequest, PortalSessionResponse
from smart_risk.auth.dependencies import admin_required, get_current_user_id
from smart_risk.services import stripe_reporting
from smart_risk.rate_limit import limiter

logger = logging.getLogger(__name__)

router = APIRouter()


def _require_stripe() -> None:
    if not settings.STRIPE_SECRET_KEY:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Stripe is not configured"
        )


@router.post("/create-portal-session", response_model=PortalSessionResponse)
@limiter.limit("10/minute")
async def create_portal_session(
    request: Request,
    body: PortalSessionRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    """
    Open a Stripe billing-portal session for the caller.

    - Uses the Stripe customer already linked to the profile when there is one
    - Otherwise finds the customer by email, creating it if needed
    - Only admins may open a portal for another email address
    """
    _require_stripe()
    profile = await db.get(Profile, user_id)

    email = body.customer_email or (profile.email if profile else None)
    if not email:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Customer email is required"
        )

    own_email = profile is not None and profile.email and profile.email.lower() == email.lower()
    if not own_email and not (profile is not None and profile.is_admin):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Cannot open a billing portal for another customer"
        )

    return_url = body.return_url or f"{settings.FRONTEND_URL.rstrip('/')}/app"

    try:
        if own_email and profile.stripe_customer_id:
            customer_id = profile.stripe_customer_id
        else:
            customer_id = stripe_reporting.find_or_create_customer(
                email, name=profile.full_name if own_email else None
            )
        url = stripe_reporting.create_portal_session(customer_id, return_url)
    except stripe.StripeError as e:
        logger.error(f"Portal session failed for {email}: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

    return {"url": url}


@router.post("/stripe-analytics", response_model=StripeAnalyticsResponse)
@limiter.limit("30/minute")
async def stripe_analytics(
    request: Request,
    body: StripeAnalyticsRequest,
    current_admin: Profile = Depends(admin_required)
):
    """
    Live subscription metrics for a period.

    - MRR over active subscriptions (yearly prices divided by 12)
    - Churn and retention against customers who subscribed in the previous period
    - Charge success rate and trialing subscription count
    """
    _require_stripe()
    try:
        return stripe_reporting.compute_stripe_analytics(body.start_date, body.previous_start_date)
    except stripe.StripeError as e:
        logger.error(f"Stripe analytics failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Stripe error: {e}"
        )


@router.post("/stripe-payments", response_model=StripePaymentsResponse)
@limiter.limit("30/minute")
async def stripe_payments(
    request: Request,
    body: StripePaymentsRequest,
    current_admin: Profile = Depends(admin_required)
):
    """
    Recent Stripe charges with statistics.

    - Optional created-at window and page size (at most 100)
    - Includes dispute count and pending payouts
    """
    _require_stripe()
    try:
        return stripe_reporting.list_stripe_payments(body.start_date, body.end_date, body.limit)
    except stripe.StripeError as e:
        logger.error(f"Stripe payments failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Stripe error: {e}"
        )
