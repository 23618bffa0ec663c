"""Stripe webhook endpoint."""
import logging

import stripe
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from smart_risk.database import get_db
from smart_risk.config import settings
from smart_risk.services.webhooks import process_event
from smart_risk.rate_limit import limiter

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/api/webhooks/stripe")
@limiter.limit("120/minute")
async def stripe_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db)
):
    """
    Handle Stripe webhook events.

    - Verifies the webhook signature
    - Syncs subscription state onto the profile
    - Records completed payments once per transaction
    - Any failure answers 400 so Stripe retries the delivery
    """
    payload = await request.body()
    sig_header = request.headers.get("stripe-signature")

    if not sig_header or not settings.STRIPE_WEBHOOK_SECRET:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Webhook signature missing"
        )

    # Verify webhook signature
    try:
        event = stripe.Webhook.construct_event(
            payload, sig_header, settings.STRIPE_WEBHOOK_SECRET
        )
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid payload"
        )
    except stripe.SignatureVerificationError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid signature"
        )

    try:
        outcome = await process_event(db, event)
        await db.commit()
    except Exception as e:
        await db.rollback()
        logger.error(f"Webhook {event['type']} ({event.get('id')}) failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

    logger.info(f"Webhook {event['type']} {outcome}")
    return {"received": True, "status": outcome}
