"""
Stripe webhook event handling.

Every event id is recorded in the stripeEvents collection before it is handled,
so Stripe's at-least-once delivery never applies the same event twice.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from google.api_core.exceptions import AlreadyExists
from google.cloud.firestore_v1.base_query import FieldFilter

from ..config import DEFAULT_CURRENCY, FRONTEND_URL
from ..email_service import send_appointment_confirmation
from ..firebase import APPOINTMENTS, PAYMENTS, SERVER_TIMESTAMP, STRIPE_EVENTS, USERS
from ..shared.serialization import display_name
from .agora_service import channel_name_for
from .stripe_service import StripeService, StripeServiceError, stripe_service

logger = logging.getLogger(__name__)


def cents_to_amount(cents) -> float:
    return float(Decimal(int(cents or 0)) / 100)


def _first(query):
    docs = list(query.limit(1).stream())
    return docs[0] if docs else None


class PaymentWebhookService:
    """Applies verified Stripe events to payments and appointments"""

    def __init__(self, db, stripe: Optional[StripeService] = None):
        self.db = db
        self.stripe = stripe or stripe_service
        self.handlers = {
            "payment_intent.succeeded": self.handle_payment_succeeded,
            "payment_intent.payment_failed": self.handle_payment_failed,
            "charge.refunded": self.handle_charge_refunded,
            "checkout.session.completed": self.handle_checkout_completed,
            "charge.dispute.created": self.handle_dispute_created,
        }

    async def handle_event(self, event: dict) -> dict:
        event_id = event["id"]
        event_type = event.get("type", "")
        ledger_ref = self.db.collection(STRIPE_EVENTS).document(event_id)

        try:
            ledger_ref.create({"type": event_type, "status": "processing", "receivedAt": SERVER_TIMESTAMP})
        except AlreadyExists:
            logger.info(f"ℹ️ Stripe event {event_id} already processed, skipping")
            return {"received": True}

        handler = self.handlers.get(event_type)
        if not handler:
            logger.info(f"Unhandled Stripe event type: {event_type}")
            ledger_ref.update({"status": "ignored", "processedAt": SERVER_TIMESTAMP})
            return {"received": True}

        obj = (event.get("data") or {}).get("object") or {}
        try:
            await handler(obj)
        except Exception as e:
            # Drop the ledger entry so Stripe's retry gets processed
            logger.error(f"❌ Failed to handle Stripe event {event_id} ({event_type}): {e}")
            ledger_ref.delete()
            raise

        ledger_ref.update({"status": "processed", "processedAt": SERVER_TIMESTAMP})
        logger.info(f"✅ Stripe event {event_id} ({event_type}) processed")
        return {"received": True}

    def _payment_for_intent(self, payment_intent_id: str):
        return _first(
            self.db.collection(PAYMENTS).where(
                filter=FieldFilter("stripePaymentIntentId", "==", payment_intent_id)
            )
        )

    def _appointment_for_intent(self, payment_intent: dict):
        """Resolve the appointment by metadata id, booking reference, then transaction id"""
        metadata = payment_intent.get("metadata") or {}

        appointment_id = metadata.get("appointmentId")
        if appointment_id:
            doc = self.db.collection(APPOINTMENTS).document(appointment_id).get()
            if doc.exists:
                return doc

        appointment_ref = metadata.get("appointmentRef")
        if appointment_ref:
            doc = _first(
                self.db.collection(APPOINTMENTS).where(
                    filter=FieldFilter("appointmentRef", "==", appointment_ref)
                )
            )
            if doc:
                return doc

        return _first(
            self.db.collection(APPOINTMENTS).where(
                filter=FieldFilter("payment.transactionId", "==", payment_intent["id"])
            )
        )

    async def handle_payment_succeeded(self, payment_intent: dict):
        payment_intent_id = payment_intent["id"]

        payment_doc = self._payment_for_intent(payment_intent_id)
        if payment_doc:
            payment_doc.reference.update(
                {
                    "status": "succeeded",
                    "stripePaymentId": payment_intent_id,
                    "paymentMethod": (payment_intent.get("payment_method_types") or ["card"])[0],
                    "updatedAt": SERVER_TIMESTAMP,
                }
            )

        appointment_doc = self._appointment_for_intent(payment_intent)
        if not appointment_doc:
            logger.error(f"❌ No appointment found for payment intent {payment_intent_id}")
            return

        appointment_id = appointment_doc.id
        channel_name = channel_name_for(appointment_id)
        meeting_link = f"{FRONTEND_URL}/session/{appointment_id}"

        appointment_doc.reference.update(
            {
                "status": "confirmed",
                "paymentStatus": "paid",
                "payoutCreated": False,
                "payment.status": "paid",
                "payment.transactionId": payment_intent_id,
                "session.channelId": channel_name,
                "session.joinUrl": meeting_link,
                "metadata.confirmedAt": SERVER_TIMESTAMP,
                "metadata.updatedAt": SERVER_TIMESTAMP,
                "updatedAt": SERVER_TIMESTAMP,
            }
        )
        logger.info(f"✅ Payment succeeded, appointment {appointment_id} confirmed")

        appointment = appointment_doc.to_dict() or {}
        await self._send_confirmation(appointment, meeting_link, payment_intent)

    async def _send_confirmation(self, appointment: dict, meeting_link: str, payment_intent: dict):
        users = self.db.collection(USERS)
        client_id = appointment.get("clientId")
        therapist_id = appointment.get("therapistId")
        client = (users.document(client_id).get().to_dict() or {}) if client_id else {}
        therapist = (users.document(therapist_id).get().to_dict() or {}) if therapist_id else {}

        payment = appointment.get("payment") or {}
        amount = payment.get("amount")
        if amount is None:
            amount = cents_to_amount(payment_intent.get("amount"))

        await send_appointment_confirmation(
            client_name=display_name(client, default="Client"),
            client_email=client.get("email", ""),
            therapist_name=display_name(therapist, default="Therapist"),
            therapist_email=therapist.get("email", ""),
            appointment_date=appointment.get("scheduledFor"),
            duration=appointment.get("duration") or 50,
            meeting_link=meeting_link,
            amount=float(amount or 0),
            currency=payment.get("currency") or payment_intent.get("currency") or DEFAULT_CURRENCY,
        )

    async def handle_payment_failed(self, payment_intent: dict):
        payment_intent_id = payment_intent["id"]

        payment_doc = self._payment_for_intent(payment_intent_id)
        if payment_doc:
            payment_doc.reference.update({"status": "failed", "updatedAt": SERVER_TIMESTAMP})

        appointment_doc = self._appointment_for_intent(payment_intent)
        if appointment_doc:
            appointment_doc.reference.update(
                {
                    "paymentStatus": "failed",
                    "payment.status": "failed",
                    "updatedAt": SERVER_TIMESTAMP,
                }
            )
            logger.warning(f"⚠️ Payment failed for appointment {appointment_doc.id}")

    async def handle_charge_refunded(self, charge: dict):
        payment_intent_id = charge.get("payment_intent")
        payment_doc = self._payment_for_intent(payment_intent_id) if payment_intent_id else None
        if not payment_doc:
            logger.warning(f"⚠️ No payment found for refunded charge {charge.get('id')}")
            return

        payment_doc.reference.update(
            {
                "status": "refunded",
                "refundedAmount": cents_to_amount(charge.get("amount_refunded")),
                "updatedAt": SERVER_TIMESTAMP,
            }
        )

        appointment_id = (payment_doc.to_dict() or {}).get("appointmentId")
        if appointment_id:
            self.db.collection(APPOINTMENTS).document(appointment_id).update(
                {
                    "paymentStatus": "refunded",
                    "payment.status": "refunded",
                    "status": "cancelled",
                    "updatedAt": SERVER_TIMESTAMP,
                }
            )
        logger.info(f"✅ Refund recorded for payment {payment_doc.id}")

    async def handle_checkout_completed(self, session: dict):
        """Create the confirmed appointment for a paid Checkout session"""
        metadata = session.get("metadata") or {}
        if session.get("payment_status") != "paid" or not metadata:
            logger.info(f"Checkout session {session.get('id')} not paid, nothing to do")
            return

        if not metadata.get("therapistId") or not metadata.get("clientId") or not metadata.get("appointmentDate"):
            logger.error(f"❌ Checkout session {session.get('id')} missing appointment metadata")
            return

        existing = _first(
            self.db.collection(APPOINTMENTS).where(
                filter=FieldFilter("paymentSessionId", "==", session["id"])
            )
        )
        if existing:
            logger.info(f"ℹ️ Appointment {existing.id} already exists for checkout session {session['id']}")
            return

        payment_intent_id = session.get("payment_intent")
        amount_cents = session.get("amount_total")
        if payment_intent_id:
            try:
                payment_intent = self.stripe.retrieve_payment_intent(payment_intent_id)
                amount_cents = payment_intent["amount"]
            except StripeServiceError as e:
                logger.warning(f"⚠️ Using session total for {session['id']}: {e}")

        scheduled_for = _parse_slot(metadata.get("appointmentDate"), metadata.get("appointmentTime"))
        try:
            duration = int(metadata.get("duration") or 50)
        except ValueError:
            duration = 50

        amount = cents_to_amount(amount_cents)
        currency = session.get("currency") or DEFAULT_CURRENCY
        appointment_ref = self.db.collection(APPOINTMENTS).document()

        # Keyed by session so a retried event overwrites rather than duplicates
        payment_ref = self.db.collection(PAYMENTS).document(f"checkout_{session['id']}")
        payment_ref.set(
            {
                "id": payment_ref.id,
                "appointmentId": appointment_ref.id,
                "clientId": metadata["clientId"],
                "therapistId": metadata["therapistId"],
                "amount": amount,
                "currency": currency,
                "status": "succeeded",
                "stripePaymentIntentId": payment_intent_id,
                "stripePaymentId": payment_intent_id,
                "paymentSessionId": session["id"],
                "paymentMethod": "card",
                "createdAt": SERVER_TIMESTAMP,
                "updatedAt": SERVER_TIMESTAMP,
            }
        )

        appointment_ref.set(
            {
                "therapistId": metadata["therapistId"],
                "clientId": metadata["clientId"],
                "scheduledFor": scheduled_for,
                "duration": duration,
                "status": "confirmed",
                "paymentStatus": "paid",
                "payoutCreated": False,
                "payment": {
                    "amount": amount,
                    "currency": currency,
                    "status": "paid",
                    "transactionId": payment_intent_id,
                    "method": "card",
                },
                "session": {
                    "type": "individual",
                    "deliveryType": "video",
                    "platform": "agora",
                    "channelId": channel_name_for(appointment_ref.id),
                    "joinUrl": f"{FRONTEND_URL}/session/{appointment_ref.id}",
                },
                "communication": {
                    "clientNotes": metadata.get("notes", ""),
                    "therapistNotes": "",
                },
                "metadata": {
                    "createdAt": SERVER_TIMESTAMP,
                    "updatedAt": SERVER_TIMESTAMP,
                    "confirmedAt": SERVER_TIMESTAMP,
                },
                "appointmentRef": metadata.get("appointmentRef"),
                "paymentSessionId": session["id"],
                "therapistName": metadata.get("therapistName"),
                "clientName": metadata.get("clientName"),
                "clientEmail": metadata.get("clientEmail"),
                "createdAt": SERVER_TIMESTAMP,
            }
        )
        logger.info(
            f"✅ Appointment {appointment_ref.id} and payment {payment_ref.id} created for {metadata.get('appointmentRef')}"
        )

    async def handle_dispute_created(self, dispute: dict):
        logger.warning(
            f"⚠️ Payment dispute created: {dispute.get('id')} for charge {dispute.get('charge')}, needs manual review"
        )


def _parse_slot(date_str: Optional[str], time_str: Optional[str]) -> Optional[datetime]:
    """Combine booking date and time strings into a UTC datetime"""
    if not date_str:
        return None
    text = f"{date_str}T{time_str}" if time_str else date_str
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        logger.warning(f"⚠️ Could not parse appointment slot {text!r}")
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
