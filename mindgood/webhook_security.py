"""
Webhook and cron request verification.

Stripe webhooks are verified with the Stripe SDK against the raw request body.
Cron calls carry a shared bearer secret compared in constant time.
"""

import hmac
import json
import logging
from typing import Optional

import stripe
from fastapi import HTTPException, Request

from .config import CRON_SECRET, STRIPE_WEBHOOK_SECRET

logger = logging.getLogger(__name__)


def constant_time_compare(a: Optional[str], b: Optional[str]) -> bool:
    """
    Compare two strings in constant time to prevent timing attacks.
    Uses hmac.compare_digest which is designed for this purpose.
    """
    if not a or not b:
        return False
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


def verify_cron_secret(request: Request) -> None:
    """Dependency: reject cron calls that don't present `Bearer <CRON_SECRET>`"""
    auth_header = request.headers.get("authorization", "")
    if not CRON_SECRET:
        logger.error("❌ CRON_SECRET not configured, rejecting cron request")
        raise HTTPException(status_code=401, detail="Unauthorized")

    if not constant_time_compare(auth_header, f"Bearer {CRON_SECRET}"):
        logger.warning(f"🚫 Cron request with invalid secret for {request.url.path}")
        raise HTTPException(status_code=401, detail="Unauthorized")


async def verify_stripe_webhook(request: Request) -> dict:
    """
    Verify a Stripe webhook signature and return the event payload as a plain dict.

    The raw body must be read BEFORE any JSON parsing, the signature covers the
    exact bytes Stripe sent.
    """
    raw_body = await request.body()
    signature = request.headers.get("stripe-signature")

    if not signature:
        logger.error("❌ Missing stripe-signature header")
        raise HTTPException(status_code=400, detail="Missing stripe signature")

    if not STRIPE_WEBHOOK_SECRET:
        logger.error("❌ STRIPE_WEBHOOK_SECRET not configured")
        raise HTTPException(status_code=500, detail="Webhook secret not configured")

    try:
        stripe.Webhook.construct_event(raw_body, signature, STRIPE_WEBHOOK_SECRET)
        event = json.loads(raw_body)
    except (ValueError, stripe.SignatureVerificationError) as e:
        logger.error(f"❌ Stripe webhook signature verification failed: {e}")
        raise HTTPException(status_code=400, detail="Invalid signature") from e

    logger.info(f"✅ Stripe webhook verified: {event['type']} ({event['id']})")
    return event
