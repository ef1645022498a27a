"""
Payment intents and Stripe webhooks
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from google.cloud.firestore_v1.base_query import FieldFilter

from ..auth import get_current_uid
from ..firebase import APPOINTMENTS, PAYMENTS, SERVER_TIMESTAMP, get_db
from ..schemas import CreateIntentRequest
from ..services.payment_webhook_service import PaymentWebhookService
from ..services.stripe_service import StripeService, StripeServiceError, get_stripe_service
from ..shared.serialization import to_cents
from ..webhook_security import verify_stripe_webhook

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Payments"])


@router.post("/api/payments/create-intent")
async def create_payment_intent(
    body: CreateIntentRequest,
    uid: str = Depends(get_current_uid),
    db=Depends(get_db),
    stripe: StripeService = Depends(get_stripe_service),
):
    """Create a Stripe PaymentIntent for one of the caller's appointments"""
    if not body.appointmentId or not body.amount:
        raise HTTPException(status_code=400, detail="Missing required fields")

    appointment_doc = db.collection(APPOINTMENTS).document(body.appointmentId).get()
    if not appointment_doc.exists:
        raise HTTPException(status_code=404, detail="Appointment not found")

    appointment = appointment_doc.to_dict() or {}
    if appointment.get("clientId") != uid:
        logger.warning(f"🚫 User {uid} tried to pay for appointment {body.appointmentId}")
        raise HTTPException(status_code=403, detail="Unauthorized to pay for this appointment")

    existing = list(
        db.collection(PAYMENTS)
        .where(filter=FieldFilter("appointmentId", "==", body.appointmentId))
        .where(filter=FieldFilter("status", "==", "succeeded"))
        .limit(1)
        .stream()
    )
    if existing:
        raise HTTPException(status_code=400, detail="Payment already completed for this appointment")

    therapist_id = appointment.get("therapistId") or ""
    try:
        payment_intent = stripe.create_payment_intent(
            amount_cents=to_cents(body.amount),
            currency=body.currency,
            metadata={
                "appointmentId": body.appointmentId,
                "clientId": uid,
                "therapistId": therapist_id,
            },
        )
    except StripeServiceError as e:
        raise HTTPException(status_code=500, detail="Failed to create payment intent") from e

    payment_ref = db.collection(PAYMENTS).document()
    payment_ref.set(
        {
            "id": payment_ref.id,
            "appointmentId": body.appointmentId,
            "clientId": uid,
            "therapistId": therapist_id,
            "amount": body.amount,
            "currency": body.currency,
            "status": "pending",
            "stripePaymentIntentId": payment_intent.id,
            "paymentMethod": "card",
            "createdAt": SERVER_TIMESTAMP,
            "updatedAt": SERVER_TIMESTAMP,
        }
    )
    logger.info(f"✅ Payment {payment_ref.id} pending for appointment {body.appointmentId}")

    return {
        "clientSecret": payment_intent.client_secret,
        "paymentIntentId": payment_intent.id,
        "paymentId": payment_ref.id,
    }


@router.post("/api/payments/webhook")
@router.post("/api/webhooks/stripe")
async def stripe_webhook(
    event: dict = Depends(verify_stripe_webhook),
    db=Depends(get_db),
    stripe: StripeService = Depends(get_stripe_service),
):
    """Apply a verified Stripe event; duplicates are acknowledged without reprocessing"""
    try:
        return await PaymentWebhookService(db, stripe).handle_event(event)
    except Exception as e:
        raise HTTPException(status_code=500, detail="Webhook handler failed") from e
