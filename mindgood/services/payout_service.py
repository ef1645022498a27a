"""Payout service - therapist payouts for completed, paid sessions"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import HTTPException
from google.api_core.exceptions import AlreadyExists
from google.cloud.firestore_v1.base_query import FieldFilter

from ..config import DEFAULT_CURRENCY
from ..email_service import send_payout_completed_email
from ..firebase import APPOINTMENTS, PAYMENTS, PAYOUTS, SERVER_TIMESTAMP, USERS
from ..shared.serialization import as_datetime, display_name, split_platform_fee, to_cents
from .settings_service import commission_percent, get_platform_settings, payout_schedule_days
from .stripe_service import StripeService, StripeServiceError, stripe_service

logger = logging.getLogger(__name__)


def payout_id_for(appointment_id: str) -> str:
    """One payout per appointment: the document id is derived from the appointment"""
    return f"payout_{appointment_id}"


class PayoutService:
    """Creates payout records for eligible appointments and pays them out via Stripe"""

    def __init__(self, db, stripe: Optional[StripeService] = None):
        self.db = db
        self.stripe = stripe or stripe_service

    def _eligible_appointments(self):
        query = (
            self.db.collection(APPOINTMENTS)
            .where(filter=FieldFilter("status", "==", "completed"))
            .where(filter=FieldFilter("paymentStatus", "==", "paid"))
            .where(filter=FieldFilter("payoutCreated", "==", False))
        )
        return query.stream()

    def _succeeded_payment(self, appointment_id: str):
        docs = list(
            self.db.collection(PAYMENTS)
            .where(filter=FieldFilter("appointmentId", "==", appointment_id))
            .where(filter=FieldFilter("status", "==", "succeeded"))
            .limit(1)
            .stream()
        )
        return docs[0] if docs else None

    def run_sweep(self, now: Optional[datetime] = None) -> dict:
        """
        Create pending payouts for completed, paid appointments past the grace period.

        Safe to run repeatedly or concurrently: each payout is written with create()
        under a deterministic id, so an appointment can never get two payouts.

        Returns:
            {success, payoutsCreated, payoutIds, errors?}
        """
        settings = get_platform_settings(self.db)
        commission = commission_percent(settings)
        grace_days = payout_schedule_days(settings)

        now = now or datetime.now(timezone.utc)
        cutoff = now - timedelta(days=grace_days)

        logger.info(
            f"🔄 Payout sweep started: commission={commission}%, grace={grace_days} days, cutoff={cutoff.isoformat()}"
        )

        payout_ids: list[str] = []
        errors: list[str] = []

        for appointment_doc in self._eligible_appointments():
            appointment_id = appointment_doc.id
            appointment = appointment_doc.to_dict() or {}

            scheduled = as_datetime(appointment.get("scheduledFor") or appointment.get("scheduledDate"))
            if not scheduled or scheduled > cutoff:
                continue

            try:
                payment_doc = self._succeeded_payment(appointment_id)
                if not payment_doc:
                    logger.warning(f"⚠️ No succeeded payment for appointment {appointment_id}")
                    errors.append(f"No payment found for appointment {appointment_id}")
                    continue

                payment = payment_doc.to_dict() or {}
                amount = payment.get("amount") or 0
                platform_fee, net_amount = split_platform_fee(amount, commission)

                payout_ref = self.db.collection(PAYOUTS).document(payout_id_for(appointment_id))
                appointment_ref = self.db.collection(APPOINTMENTS).document(appointment_id)

                try:
                    payout_ref.create(
                        {
                            "id": payout_ref.id,
                            "therapistId": appointment.get("therapistId"),
                            "appointmentId": appointment_id,
                            "paymentId": payment_doc.id,
                            "amount": float(amount),
                            "platformFee": platform_fee,
                            "netAmount": net_amount,
                            "currency": payment.get("currency") or DEFAULT_CURRENCY,
                            "status": "pending",
                            "scheduledDate": SERVER_TIMESTAMP,
                            "createdAt": SERVER_TIMESTAMP,
                            "updatedAt": SERVER_TIMESTAMP,
                        }
                    )
                except AlreadyExists:
                    # Another run got here first; just make sure the flag is set
                    logger.info(f"ℹ️ Payout {payout_ref.id} already exists, skipping")
                    appointment_ref.update(
                        {"payoutCreated": True, "payoutId": payout_ref.id, "updatedAt": SERVER_TIMESTAMP}
                    )
                    continue

                appointment_ref.update(
                    {"payoutCreated": True, "payoutId": payout_ref.id, "updatedAt": SERVER_TIMESTAMP}
                )
                payout_ids.append(payout_ref.id)
                logger.info(
                    f"✅ Payout {payout_ref.id} created: amount={amount}, fee={platform_fee}, net={net_amount}"
                )
            except Exception as e:
                logger.error(f"❌ Error creating payout for appointment {appointment_id}: {e}")
                errors.append(f"Failed to create payout for appointment {appointment_id}")

        logger.info(f"✅ Payout sweep complete: {len(payout_ids)} created, {len(errors)} errors")

        result = {
            "success": True,
            "payoutsCreated": len(payout_ids),
            "payoutIds": payout_ids,
        }
        if errors:
            result["errors"] = errors
        return result

    async def process_payout(self, payout_id: str) -> dict:
        """Transfer a pending payout's net amount to the therapist's Stripe Connect account"""
        payout_ref = self.db.collection(PAYOUTS).document(payout_id)
        payout_doc = payout_ref.get()
        if not payout_doc.exists:
            raise HTTPException(status_code=404, detail="Payout not found")

        payout = payout_doc.to_dict() or {}
        if payout.get("status") != "pending":
            raise HTTPException(status_code=400, detail="Payout is not in pending status")

        therapist_id = payout.get("therapistId")
        therapist_doc = self.db.collection(USERS).document(therapist_id).get() if therapist_id else None
        if not therapist_doc or not therapist_doc.exists:
            raise HTTPException(status_code=404, detail="Therapist not found")

        therapist = therapist_doc.to_dict() or {}
        stripe_account_id = therapist.get("stripeConnectAccountId")

        if not stripe_account_id:
            logger.warning(f"⚠️ Therapist {therapist_id} has no Stripe Connect account, payout {payout_id} failed")
            payout_ref.update(
                {
                    "status": "failed",
                    "failureReason": "Therapist has not connected Stripe account",
                    "updatedAt": SERVER_TIMESTAMP,
                }
            )
            raise HTTPException(status_code=400, detail="Therapist has not connected their Stripe account")

        payout_ref.update({"status": "processing", "updatedAt": SERVER_TIMESTAMP})

        currency = (payout.get("currency") or DEFAULT_CURRENCY).lower()
        net_amount = payout.get("netAmount") or 0

        try:
            transfer = self.stripe.create_transfer(
                amount_cents=to_cents(net_amount),
                destination=stripe_account_id,
                description=f"Payout for appointment {payout.get('appointmentId')}",
                metadata={
                    "payoutId": payout_id,
                    "appointmentId": payout.get("appointmentId"),
                    "therapistId": therapist_id,
                },
                currency=currency,
            )
        except StripeServiceError as e:
            payout_ref.update(
                {
                    "status": "failed",
                    "failureReason": str(e) or "Stripe transfer failed",
                    "updatedAt": SERVER_TIMESTAMP,
                }
            )
            raise HTTPException(status_code=500, detail="Failed to process payout via Stripe") from e

        payout_ref.update(
            {
                "status": "completed",
                "stripePayoutId": transfer.id,
                "completedDate": SERVER_TIMESTAMP,
                "updatedAt": SERVER_TIMESTAMP,
            }
        )
        logger.info(f"✅ Payout {payout_id} completed with transfer {transfer.id}")

        await send_payout_completed_email(
            to=therapist.get("email"),
            therapist_name=display_name(therapist, default="there"),
            net_amount=float(net_amount),
            currency=currency,
            appointment_id=payout.get("appointmentId") or "",
        )

        return {
            "success": True,
            "message": "Payout processed successfully",
            "transferId": transfer.id,
        }
