"""Refund service - admin refunds of succeeded payments through Stripe"""

import logging
from typing import Optional

from fastapi import HTTPException

from ..config import DEFAULT_CURRENCY
from ..email_service import send_refund_processed_email
from ..firebase import APPOINTMENTS, PAYMENTS, REFUNDS, SERVER_TIMESTAMP, USERS
from ..shared.serialization import display_name
from .stripe_service import StripeService, StripeServiceError, stripe_service

logger = logging.getLogger(__name__)


class RefundService:
    """Service for refund management"""

    def __init__(self, db, stripe: Optional[StripeService] = None):
        self.db = db
        self.stripe = stripe or stripe_service

    def _get_payment(self, payment_id: str):
        payment_doc = self.db.collection(PAYMENTS).document(payment_id).get()
        if not payment_doc.exists:
            raise HTTPException(status_code=404, detail="Payment not found")
        return payment_doc

    async def refund_payment(self, payment_id: str, reason: str, admin_uid: str) -> dict:
        """Record a refund for a succeeded payment and execute it immediately"""
        payment_doc = self._get_payment(payment_id)
        payment = payment_doc.to_dict() or {}

        if payment.get("status") != "succeeded":
            raise HTTPException(status_code=400, detail="Payment is not in succeeded status")
        if not payment.get("stripePaymentIntentId"):
            raise HTTPException(status_code=400, detail="No Stripe payment intent found")

        refund_ref = self.db.collection(REFUNDS).document()
        refund_ref.set(
            {
                "id": refund_ref.id,
                "paymentId": payment_id,
                "appointmentId": payment.get("appointmentId") or "",
                "amount": payment.get("amount") or 0,
                "reason": reason,
                "status": "pending",
                "requestedBy": admin_uid,
                "requestedAt": SERVER_TIMESTAMP,
                "createdAt": SERVER_TIMESTAMP,
                "updatedAt": SERVER_TIMESTAMP,
            }
        )
        logger.info(f"📝 Refund {refund_ref.id} recorded for payment {payment_id} by {admin_uid}")

        stripe_refund = self._execute(
            refund_ref,
            payment_doc.reference,
            payment,
            metadata={
                "refundId": refund_ref.id,
                "paymentId": payment_id,
                "appointmentId": payment.get("appointmentId") or "",
                "reason": reason,
            },
        )
        await self._notify_client(payment)

        return {
            "success": True,
            "message": "Refund processed successfully",
            "refundId": refund_ref.id,
            "stripeRefundId": stripe_refund.id,
        }

    async def process_refund(self, refund_id: str) -> dict:
        """Execute a refund that was recorded as pending"""
        refund_ref = self.db.collection(REFUNDS).document(refund_id)
        refund_doc = refund_ref.get()
        if not refund_doc.exists:
            raise HTTPException(status_code=404, detail="Refund not found")

        refund = refund_doc.to_dict() or {}
        if refund.get("status") != "pending":
            raise HTTPException(status_code=400, detail="Refund is not in pending status")

        payment_doc = self._get_payment(refund.get("paymentId") or "")
        payment = payment_doc.to_dict() or {}
        if not payment.get("stripePaymentIntentId"):
            raise HTTPException(status_code=400, detail="No Stripe payment intent found")

        refund_ref.update({"status": "processing", "updatedAt": SERVER_TIMESTAMP})

        stripe_refund = self._execute(
            refund_ref,
            payment_doc.reference,
            {**payment, "appointmentId": refund.get("appointmentId")},
            metadata={
                "refundId": refund_id,
                "paymentId": refund.get("paymentId"),
                "appointmentId": refund.get("appointmentId") or "",
            },
        )
        await self._notify_client(payment)

        return {
            "success": True,
            "message": "Refund processed successfully",
            "stripeRefundId": stripe_refund.id,
        }

    def _execute(self, refund_ref, payment_ref, payment: dict, metadata: dict):
        """Call Stripe, then settle refund, payment and appointment documents"""
        try:
            stripe_refund = self.stripe.create_refund(
                payment_intent_id=payment["stripePaymentIntentId"],
                metadata=metadata,
            )
        except StripeServiceError as e:
            refund_ref.update(
                {
                    "status": "failed",
                    "failureReason": str(e) or "Stripe refund failed",
                    "updatedAt": SERVER_TIMESTAMP,
                }
            )
            raise HTTPException(status_code=500, detail="Failed to process refund via Stripe") from e

        refund_ref.update(
            {
                "status": "completed",
                "stripeRefundId": stripe_refund.id,
                "processedAt": SERVER_TIMESTAMP,
                "updatedAt": SERVER_TIMESTAMP,
            }
        )
        payment_ref.update(
            {
                "status": "refunded",
                "refundId": refund_ref.id,
                "updatedAt": SERVER_TIMESTAMP,
            }
        )

        appointment_id = payment.get("appointmentId")
        if appointment_id:
            self.db.collection(APPOINTMENTS).document(appointment_id).update(
                {
                    "paymentStatus": "refunded",
                    "status": "cancelled",
                    "updatedAt": SERVER_TIMESTAMP,
                }
            )

        logger.info(f"✅ Refund {refund_ref.id} completed with Stripe refund {stripe_refund.id}")
        return stripe_refund

    async def _notify_client(self, payment: dict):
        client_id = payment.get("clientId")
        if not client_id:
            return
        client_doc = self.db.collection(USERS).document(client_id).get()
        if not client_doc.exists:
            return
        client = client_doc.to_dict() or {}
        await send_refund_processed_email(
            to=client.get("email"),
            client_name=display_name(client, default="there"),
            amount=float(payment.get("amount") or 0),
            currency=payment.get("currency") or DEFAULT_CURRENCY,
        )
