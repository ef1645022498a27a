"""
Admin payments and refunds
"""

import logging

from fastapi import APIRouter, Depends

from ..auth import CurrentUser, require_admin
from ..firebase import APPOINTMENTS, PAYMENTS, REFUNDS, get_db
from ..schemas import RefundRequest
from ..services.refund_service import RefundService
from ..services.stripe_service import StripeService, get_stripe_service
from ..shared.lookups import UserLookup
from ..shared.serialization import sum_amounts, to_iso

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["Admin Payments"])


def _party_names(db, users: UserLookup, appointment_id: str) -> tuple[str, str]:
    """(clientName, therapistName) for the appointment behind a payment or refund"""
    if not appointment_id:
        return "Unknown", "Unknown"
    appointment_doc = db.collection(APPOINTMENTS).document(appointment_id).get()
    if not appointment_doc.exists:
        return "Unknown", "Unknown"
    appointment = appointment_doc.to_dict() or {}
    return users.name(appointment.get("clientId")), users.name(appointment.get("therapistId"))


@router.get("/payments")
async def list_payments(admin: CurrentUser = Depends(require_admin), db=Depends(get_db)):
    users = UserLookup(db)
    docs = db.collection(PAYMENTS).order_by("createdAt", direction="DESCENDING").limit(100).stream()

    payments = []
    for doc in docs:
        data = doc.to_dict() or {}
        client_name, therapist_name = _party_names(db, users, data.get("appointmentId"))
        payments.append(
            {
                "id": doc.id,
                "appointmentId": data.get("appointmentId", ""),
                "clientName": client_name,
                "therapistName": therapist_name,
                "amount": data.get("amount") or 0,
                "currency": data.get("currency") or "usd",
                "status": data.get("status") or "pending",
                "paymentMethod": data.get("paymentMethod") or "card",
                "stripePaymentId": data.get("stripePaymentId", ""),
                "createdAt": to_iso(data.get("createdAt"), default_now=True),
            }
        )

    return {"payments": payments}


@router.get("/payments/stats")
async def payment_stats(admin: CurrentUser = Depends(require_admin), db=Depends(get_db)):
    payments = [doc.to_dict() or {} for doc in db.collection(PAYMENTS).stream()]

    succeeded = [p for p in payments if p.get("status") == "succeeded"]
    failed = [p for p in payments if p.get("status") == "failed"]
    refunded = [p for p in payments if p.get("status") == "refunded"]

    return {
        "totalRevenue": sum_amounts(p.get("amount") for p in succeeded),
        "totalTransactions": len(payments),
        "successfulPayments": len(succeeded),
        "failedPayments": len(failed),
        "refundedAmount": sum_amounts(p.get("amount") for p in refunded),
    }


@router.post("/payments/{payment_id}/refund")
async def refund_payment(
    payment_id: str,
    body: RefundRequest,
    admin: CurrentUser = Depends(require_admin),
    db=Depends(get_db),
    stripe: StripeService = Depends(get_stripe_service),
):
    """Refund a succeeded payment in full"""
    return await RefundService(db, stripe).refund_payment(payment_id, body.reason, admin.uid)


@router.get("/refunds")
async def list_refunds(admin: CurrentUser = Depends(require_admin), db=Depends(get_db)):
    users = UserLookup(db)
    docs = db.collection(REFUNDS).order_by("requestedAt", direction="DESCENDING").limit(100).stream()

    refunds = []
    for doc in docs:
        data = doc.to_dict() or {}
        client_name, therapist_name = _party_names(db, users, data.get("appointmentId"))
        refunds.append(
            {
                "id": doc.id,
                "paymentId": data.get("paymentId", ""),
                "appointmentId": data.get("appointmentId", ""),
                "clientName": client_name,
                "therapistName": therapist_name,
                "amount": data.get("amount") or 0,
                "reason": data.get("reason", ""),
                "status": data.get("status") or "pending",
                "requestedBy": data.get("requestedBy", ""),
                "requestedAt": to_iso(data.get("requestedAt"), default_now=True),
                "processedAt": to_iso(data.get("processedAt")),
                "stripeRefundId": data.get("stripeRefundId", ""),
                "failureReason": data.get("failureReason"),
            }
        )

    return {"refunds": refunds}


@router.get("/refunds/stats")
async def refund_stats(admin: CurrentUser = Depends(require_admin), db=Depends(get_db)):
    refunds = [doc.to_dict() or {} for doc in db.collection(REFUNDS).stream()]
    completed = [r for r in refunds if r.get("status") == "completed"]

    return {
        "totalRefunds": len(refunds),
        "pendingRefunds": sum(1 for r in refunds if r.get("status") == "pending"),
        "completedRefunds": len(completed),
        "totalRefunded": sum_amounts(r.get("amount") for r in completed),
    }


@router.post("/refunds/{refund_id}/process")
async def process_refund(
    refund_id: str,
    admin: CurrentUser = Depends(require_admin),
    db=Depends(get_db),
    stripe: StripeService = Depends(get_stripe_service),
):
    logger.info(f"🔄 Admin {admin.uid} processing refund {refund_id}")
    return await RefundService(db, stripe).process_refund(refund_id)
