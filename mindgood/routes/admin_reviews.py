"""
Admin review moderation
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from ..auth import CurrentUser, require_admin
from ..firebase import REVIEWS, SERVER_TIMESTAMP, get_db
from ..schemas import MessageResponse, VisibilityUpdate
from ..shared.lookups import UserLookup
from ..shared.serialization import to_iso

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/reviews", tags=["Admin Reviews"])


@router.get("")
async def list_reviews(admin: CurrentUser = Depends(require_admin), db=Depends(get_db)):
    """Latest 100 reviews with client and therapist names"""
    users = UserLookup(db)
    docs = db.collection(REVIEWS).order_by("createdAt", direction="DESCENDING").limit(100).stream()

    reviews = []
    for doc in docs:
        data = doc.to_dict() or {}
        reviews.append(
            {
                "id": doc.id,
                "appointmentId": data.get("appointmentId", ""),
                "clientId": data.get("clientId", ""),
                "clientName": users.name(data.get("clientId")),
                "therapistId": data.get("therapistId", ""),
                "therapistName": users.name(data.get("therapistId")),
                "rating": data.get("rating") or 0,
                "comment": data.get("comment", ""),
                "status": data.get("status") or "pending",
                "isPublic": bool(data.get("isPublic", False)),
                "createdAt": to_iso(data.get("createdAt"), default_now=True),
                "moderatedBy": data.get("moderatedBy", ""),
                "moderatedAt": to_iso(data.get("moderatedAt")),
            }
        )

    return {"reviews": reviews}


@router.get("/stats")
async def review_stats(admin: CurrentUser = Depends(require_admin), db=Depends(get_db)):
    total = pending = approved = flagged = 0
    total_rating = 0

    for doc in db.collection(REVIEWS).stream():
        data = doc.to_dict() or {}
        total += 1
        total_rating += data.get("rating") or 0
        status = data.get("status")
        if status == "pending":
            pending += 1
        elif status == "approved":
            approved += 1
        elif status == "flagged":
            flagged += 1

    return {
        "totalReviews": total,
        "pendingReviews": pending,
        "approvedReviews": approved,
        "flaggedReviews": flagged,
        "averageRating": total_rating / total if total else 0,
    }


def _review_ref(db, review_id: str):
    review_ref = db.collection(REVIEWS).document(review_id)
    if not review_ref.get().exists:
        raise HTTPException(status_code=404, detail="Review not found")
    return review_ref


def _moderate(db, review_id: str, admin: CurrentUser, status: str, is_public: bool):
    _review_ref(db, review_id).update(
        {
            "status": status,
            "isPublic": is_public,
            "moderatedBy": admin.uid,
            "moderatedAt": SERVER_TIMESTAMP,
            "updatedAt": SERVER_TIMESTAMP,
        }
    )
    logger.info(f"✅ Review {review_id} {status} by {admin.uid}")


@router.post("/{review_id}/approve", response_model=MessageResponse)
async def approve_review(review_id: str, admin: CurrentUser = Depends(require_admin), db=Depends(get_db)):
    _moderate(db, review_id, admin, "approved", True)
    return MessageResponse(message="Review approved successfully")


@router.post("/{review_id}/reject", response_model=MessageResponse)
async def reject_review(review_id: str, admin: CurrentUser = Depends(require_admin), db=Depends(get_db)):
    _moderate(db, review_id, admin, "rejected", False)
    return MessageResponse(message="Review rejected successfully")


@router.patch("/{review_id}/visibility", response_model=MessageResponse)
async def set_review_visibility(
    review_id: str,
    body: VisibilityUpdate,
    admin: CurrentUser = Depends(require_admin),
    db=Depends(get_db),
):
    _review_ref(db, review_id).update({"isPublic": body.isPublic, "updatedAt": SERVER_TIMESTAMP})
    return MessageResponse(message=f"Review {'shown' if body.isPublic else 'hidden'} successfully")
