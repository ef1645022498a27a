"""
Payout Routes for therapist payouts
"""
import logging

from fastapi import APIRouter, Depends

from ..auth import CurrentUser, require_admin
from ..firebase import PAYOUTS, get_db
from ..services.payout_service import PayoutService
from ..services.stripe_service import StripeService, get_stripe_service
from ..shared.lookups import UserLookup
from ..shared.serialization import sum_amounts, to_iso

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/payouts", tags=["Admin Payouts"])


def serialize_payout(doc_id: str, data: dict) -> dict:
    return {
        "id": doc_id,
        "therapistId": data.get("therapistId", ""),
        "appointmentId": data.get("appointmentId", ""),
        "paymentId": data.get("paymentId", ""),
        "amount": data.get("amount") or 0,
        "platformFee": data.get("platformFee") or 0,
        "netAmount": data.get("netAmount") or 0,
        "currency": data.get("currency") or "usd",
        "status": data.get("status") or "pending",
        "scheduledDate": to_iso(data.get("scheduledDate"), default_now=True),
        "completedDate": to_iso(data.get("completedDate")),
        "stripePayoutId": data.get("stripePayoutId", ""),
        "failureReason": data.get("failureReason"),
        "createdAt": to_iso(data.get("createdAt"), default_now=True),
    }


@router.get("")
async def list_payouts(admin: CurrentUser = Depends(require_admin), db=Depends(get_db)):
    """Get the latest 100 payouts with therapist names"""
    users = UserLookup(db)
    docs = db.collection(PAYOUTS).order_by("scheduledDate", direction="DESCENDING").limit(100).stream()

    payouts = []
    for doc in docs:
        data = doc.to_dict() or {}
        payout = serialize_payout(doc.id, data)
        payout["therapistName"] = users.name(data.get("therapistId"))
        payouts.append(payout)

    return {"payouts": payouts}


@router.get("/stats")
async def payout_stats(admin: CurrentUser = Depends(require_admin), db=Depends(get_db)):
    """Get payout summary for the platform"""
    payouts = [doc.to_dict() or {} for doc in db.collection(PAYOUTS).stream()]
    completed = [p for p in payouts if p.get("status") == "completed"]

    return {
        "totalPayouts": len(payouts),
        "pendingPayouts": sum(1 for p in payouts if p.get("status") == "pending"),
        "completedPayouts": len(completed),
        "totalPaid": sum_amounts(p.get("netAmount") for p in completed),
        "platformRevenue": sum_amounts(p.get("platformFee") for p in payouts),
    }


@router.post("/{payout_id}/process")
async def process_payout(
    payout_id: str,
    admin: CurrentUser = Depends(require_admin),
    db=Depends(get_db),
    stripe: StripeService = Depends(get_stripe_service),
):
    """Transfer a pending payout to the therapist's connected account"""
    logger.info(f"🔄 Admin {admin.uid} processing payout {payout_id}")
    return await PayoutService(db, stripe).process_payout(payout_id)
