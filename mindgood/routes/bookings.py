"""
Bookings: direct PaymentIntent bookings and Stripe Checkout sessions
"""

import logging
import secrets
import string
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from google.cloud.firestore_v1.base_query import FieldFilter

from ..auth import get_current_uid
from ..config import DEFAULT_CURRENCY, FRONTEND_URL, STRIPE_STATEMENT_DESCRIPTOR
from ..firebase import APPOINTMENTS, PAYMENTS, SERVER_TIMESTAMP, THERAPIST_PROFILES, USERS, get_db
from ..schemas import BookingRequest, CheckoutSessionRequest
from ..services.stripe_service import StripeService, StripeServiceError, get_stripe_service
from ..shared.serialization import to_cents, to_iso

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Bookings"])

DEFAULT_HOURLY_RATE_CENTS = 5000
CHECKOUT_EXPIRY_SECONDS = 30 * 60


def session_price_cents(hourly_rate, duration: int) -> int:
    """
    Price of a session in cents.

    Rates under 1000 are treated as whole currency units (e.g. 80 means $80/hour).
    """
    rate = hourly_rate or DEFAULT_HOURLY_RATE_CENTS
    if rate < 1000:
        rate = rate * 100
    return int(round(rate * duration / 60))


def new_appointment_ref() -> str:
    suffix = "".join(secrets.choice(string.ascii_lowercase + string.digits) for _ in range(9))
    return f"apt_{int(time.time() * 1000)}_{suffix}"


def _parse_scheduled_for(value: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as e:
        raise HTTPException(status_code=400, detail="Invalid scheduledFor value") from e
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


@router.post("/api/bookings/create")
async def create_booking(
    body: BookingRequest,
    uid: str = Depends(get_current_uid),
    db=Depends(get_db),
    stripe: StripeService = Depends(get_stripe_service),
):
    """Create a pending appointment and the PaymentIntent that pays for it"""
    client_doc = db.collection(USERS).document(uid).get()
    if not client_doc.exists:
        raise HTTPException(status_code=404, detail="Client not found")
    client = client_doc.to_dict() or {}

    if not body.therapistId or not body.scheduledFor:
        raise HTTPException(status_code=400, detail="Missing required fields")

    scheduled_for = _parse_scheduled_for(body.scheduledFor)

    profile_doc = db.collection(THERAPIST_PROFILES).document(body.therapistId).get()
    if not profile_doc.exists:
        raise HTTPException(status_code=404, detail="Therapist not found")

    therapist_profile = profile_doc.to_dict() or {}
    if not (therapist_profile.get("verification") or {}).get("isVerified"):
        raise HTTPException(status_code=400, detail="Therapist is not verified")

    practice = therapist_profile.get("practice") or {}
    amount_cents = session_price_cents(practice.get("hourlyRate"), body.duration)
    currency = (practice.get("currency") or DEFAULT_CURRENCY).lower()

    profile = client.get("profile") or {}
    customer_name = (
        profile.get("displayName")
        or f"{profile.get('firstName', '')} {profile.get('lastName', '')}".strip()
        or "Customer"
    )

    appointment_ref = db.collection(APPOINTMENTS).document()

    extra = {
        "description": f"Therapy session - {body.duration} minutes",
        "statement_descriptor_suffix": STRIPE_STATEMENT_DESCRIPTOR[:22],
    }
    if client.get("email"):
        extra["receipt_email"] = client["email"]

    try:
        payment_intent = stripe.create_payment_intent(
            amount_cents=amount_cents,
            currency=currency,
            metadata={
                "appointmentId": appointment_ref.id,
                "therapistId": body.therapistId,
                "clientId": uid,
                "clientName": customer_name,
                "clientEmail": client.get("email", ""),
                "scheduledFor": body.scheduledFor,
                "duration": str(body.duration),
                "sessionType": body.sessionType,
            },
            **extra,
        )
    except StripeServiceError as e:
        raise HTTPException(status_code=500, detail="Failed to create booking") from e

    amount = amount_cents / 100
    appointment_ref.set(
        {
            "id": appointment_ref.id,
            "therapistId": body.therapistId,
            "clientId": uid,
            "scheduledFor": scheduled_for,
            "duration": body.duration,
            "status": "pending",
            "paymentStatus": "pending",
            "payoutCreated": False,
            "session": {
                "type": body.sessionType,
                "deliveryType": "video",
                "platform": "agora",
            },
            "payment": {
                "amount": amount,
                "currency": currency,
                "status": "pending",
                "transactionId": payment_intent.id,
                "method": "stripe",
            },
            "communication": {
                "clientNotes": body.notes or "",
                "therapistNotes": "",
                "internalNotes": "",
            },
            "metadata": {"createdAt": SERVER_TIMESTAMP, "updatedAt": SERVER_TIMESTAMP},
            "createdAt": SERVER_TIMESTAMP,
        }
    )

    payment_ref = db.collection(PAYMENTS).document()
    payment_ref.set(
        {
            "id": payment_ref.id,
            "appointmentId": appointment_ref.id,
            "clientId": uid,
            "therapistId": body.therapistId,
            "amount": amount,
            "currency": currency,
            "status": "pending",
            "stripePaymentIntentId": payment_intent.id,
            "paymentMethod": "card",
            "createdAt": SERVER_TIMESTAMP,
            "updatedAt": SERVER_TIMESTAMP,
        }
    )
    logger.info(f"✅ Booking {appointment_ref.id} created for client {uid} with therapist {body.therapistId}")

    return {
        "appointmentId": appointment_ref.id,
        "clientSecret": payment_intent.client_secret,
        "amount": amount_cents,
        "currency": currency,
    }


@router.post("/api/stripe/create-checkout-session")
async def create_checkout_session(
    body: CheckoutSessionRequest,
    uid: str = Depends(get_current_uid),
    stripe: StripeService = Depends(get_stripe_service),
):
    """Hosted Checkout; the appointment is created by the webhook once paid"""
    appointment_ref = new_appointment_ref()

    try:
        session = stripe.create_checkout_session(
            amount_cents=to_cents(body.amount),
            currency=body.currency,
            product_name=f"Therapy Session with {body.therapistName}",
            product_description=(
                f"{body.duration} minute therapy session on {body.appointmentDate} at {body.appointmentTime}"
            ),
            customer_email=body.clientEmail,
            success_url=f"{FRONTEND_URL}/client/appointments?session_id={{CHECKOUT_SESSION_ID}}&success=true",
            cancel_url=f"{FRONTEND_URL}/client/therapists/{body.therapistId}?canceled=true",
            metadata={
                "appointmentRef": appointment_ref,
                "therapistId": body.therapistId,
                "therapistName": body.therapistName,
                "therapistEmail": body.therapistEmail,
                "clientId": uid,
                "clientName": body.clientName,
                "clientEmail": body.clientEmail,
                "appointmentDate": body.appointmentDate,
                "appointmentTime": body.appointmentTime,
                "duration": str(body.duration),
                "notes": body.notes or "",
            },
            expires_at=int(time.time()) + CHECKOUT_EXPIRY_SECONDS,
        )
    except StripeServiceError as e:
        if "No such" in str(e):
            raise HTTPException(status_code=500, detail="Invalid Stripe configuration") from e
        raise HTTPException(status_code=500, detail="Failed to create checkout session") from e

    logger.info(f"✅ Checkout session {session.id} created for appointment {appointment_ref}")
    return {"sessionId": session.id, "url": session.url, "appointmentRef": appointment_ref}


@router.get("/api/appointments/by-session/{session_id}")
async def appointment_by_session(session_id: str, db=Depends(get_db)):
    """Poll target for the checkout success page"""
    docs = list(
        db.collection(APPOINTMENTS)
        .where(filter=FieldFilter("paymentSessionId", "==", session_id))
        .limit(1)
        .stream()
    )
    if not docs:
        raise HTTPException(status_code=404, detail="Appointment not found yet")

    doc = docs[0]
    data = doc.to_dict() or {}
    return {
        "appointmentId": doc.id,
        "status": data.get("status"),
        "createdAt": to_iso(data.get("createdAt") or (data.get("metadata") or {}).get("createdAt")),
        "therapistId": data.get("therapistId"),
        "clientId": data.get("clientId"),
        "scheduledFor": to_iso(data.get("scheduledFor")),
        "duration": data.get("duration"),
        "sessionType": (data.get("session") or {}).get("type"),
        "payment": data.get("payment"),
    }
