"""
Admin therapist verification
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from google.cloud.firestore_v1.base_query import FieldFilter

from ..auth import CurrentUser, require_admin
from ..email_service import send_therapist_rejected_email, send_therapist_verified_email
from ..firebase import SERVER_TIMESTAMP, THERAPIST_PROFILES, USERS, get_db
from ..schemas import FeatureUpdate, MessageResponse
from ..shared.serialization import display_name, profile_summary, to_iso, user_metadata

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/therapists", tags=["Admin Therapists"])

PROFILE_NOT_FOUND = "Therapist profile not found. Please ensure the therapist has completed onboarding."


def therapist_profile_detail(data: dict) -> dict:
    """Normalize a therapistProfiles document, filling defaults for missing sections"""
    credentials = data.get("credentials") or {}
    practice = data.get("practice") or {}
    availability = data.get("availability") or {}
    verification = data.get("verification") or {}

    return {
        "services": data.get("services") or [],
        "isFeatured": bool(data.get("isFeatured", False)),
        "credentials": {
            "licenseNumber": credentials.get("licenseNumber", ""),
            "licenseState": credentials.get("licenseState", ""),
            "licenseExpiry": to_iso(credentials.get("licenseExpiry")),
            "specializations": credentials.get("specializations") or [],
            "certifications": credentials.get("certifications") or [],
        },
        "practice": {
            "bio": practice.get("bio", ""),
            "yearsExperience": practice.get("yearsExperience") or 0,
            "sessionTypes": practice.get("sessionTypes") or [],
            "languages": practice.get("languages") or [],
            "hourlyRate": practice.get("hourlyRate") or 0,
            "currency": practice.get("currency") or "USD",
        },
        "availability": {
            "timezone": availability.get("timezone") or "UTC",
            "bufferMinutes": availability.get("bufferMinutes") or 15,
            "maxDailyHours": availability.get("maxDailyHours") or 8,
            "advanceBookingDays": availability.get("advanceBookingDays") or 30,
        },
        "verification": {
            "isVerified": bool(verification.get("isVerified", False)),
            "verifiedAt": to_iso(verification.get("verifiedAt")),
            "verifiedBy": verification.get("verifiedBy"),
            "rejectedAt": to_iso(verification.get("rejectedAt")),
            "rejectedBy": verification.get("rejectedBy"),
        },
    }


def _therapist_entry(doc_id: str, user_data: dict, profile_data) -> dict:
    return {
        "id": doc_id,
        "email": user_data.get("email", ""),
        "profile": profile_summary(user_data),
        "therapistProfile": therapist_profile_detail(profile_data) if profile_data is not None else None,
        "status": user_data.get("status") or "active",
        "metadata": user_metadata(user_data),
    }


def _get_profile_doc(db, therapist_id: str):
    profile_doc = db.collection(THERAPIST_PROFILES).document(therapist_id).get()
    if not profile_doc.exists:
        raise HTTPException(status_code=404, detail=PROFILE_NOT_FOUND)
    return profile_doc


def _get_user_data(db, user_id: str) -> dict:
    user_doc = db.collection(USERS).document(user_id).get()
    return (user_doc.to_dict() or {}) if user_doc.exists else {}


@router.get("")
async def list_therapists(admin: CurrentUser = Depends(require_admin), db=Depends(get_db)):
    docs = db.collection(USERS).where(filter=FieldFilter("role", "==", "therapist")).stream()

    therapists = []
    for doc in docs:
        profile_doc = db.collection(THERAPIST_PROFILES).document(doc.id).get()
        profile_data = profile_doc.to_dict() if profile_doc.exists else {}
        therapists.append(_therapist_entry(doc.id, doc.to_dict() or {}, profile_data or {}))

    return {"therapists": therapists}


@router.get("/{therapist_id}")
async def get_therapist(therapist_id: str, admin: CurrentUser = Depends(require_admin), db=Depends(get_db)):
    """User document merged with the therapist profile, if onboarding is complete"""
    user_doc = db.collection(USERS).document(therapist_id).get()
    if not user_doc.exists:
        raise HTTPException(status_code=404, detail="Therapist not found")

    profile_doc = db.collection(THERAPIST_PROFILES).document(therapist_id).get()
    profile_data = profile_doc.to_dict() if profile_doc.exists else None

    return {"therapist": _therapist_entry(user_doc.id, user_doc.to_dict() or {}, profile_data)}


@router.post("/{therapist_id}/verify", response_model=MessageResponse)
async def verify_therapist(therapist_id: str, admin: CurrentUser = Depends(require_admin), db=Depends(get_db)):
    profile_doc = _get_profile_doc(db, therapist_id)
    profile_doc.reference.update(
        {
            "verification.isVerified": True,
            "verification.verifiedAt": SERVER_TIMESTAMP,
            "verification.verifiedBy": admin.uid,
        }
    )
    logger.info(f"✅ Therapist {therapist_id} verified by {admin.uid}")

    user_data = _get_user_data(db, therapist_id)
    await send_therapist_verified_email(user_data.get("email"), display_name(user_data, default="there"))

    return MessageResponse(message="Therapist verified successfully")


@router.post("/{therapist_id}/reject", response_model=MessageResponse)
async def reject_therapist(therapist_id: str, admin: CurrentUser = Depends(require_admin), db=Depends(get_db)):
    """Reject the application and suspend the account"""
    profile_doc = _get_profile_doc(db, therapist_id)
    profile_doc.reference.update(
        {
            "verification.isVerified": False,
            "verification.rejectedAt": SERVER_TIMESTAMP,
            "verification.rejectedBy": admin.uid,
        }
    )

    user_ref = db.collection(USERS).document(therapist_id)
    user_doc = user_ref.get()
    user_data = {}
    if user_doc.exists:
        user_data = user_doc.to_dict() or {}
        user_ref.update({"status": "suspended", "metadata.updatedAt": SERVER_TIMESTAMP})
    else:
        logger.warning(f"⚠️ Rejected therapist {therapist_id} has no user document")

    logger.info(f"🚫 Therapist {therapist_id} rejected by {admin.uid}")
    await send_therapist_rejected_email(user_data.get("email"), display_name(user_data, default="there"))

    return MessageResponse(message="Therapist application rejected")


@router.patch("/{therapist_id}/feature", response_model=MessageResponse)
async def set_featured(
    therapist_id: str,
    body: FeatureUpdate,
    admin: CurrentUser = Depends(require_admin),
    db=Depends(get_db),
):
    profile_doc = db.collection(THERAPIST_PROFILES).document(therapist_id).get()
    if not profile_doc.exists:
        raise HTTPException(status_code=404, detail="Therapist profile not found")

    profile_data = profile_doc.to_dict() or {}
    if body.isFeatured and not (profile_data.get("verification") or {}).get("isVerified"):
        raise HTTPException(status_code=400, detail="Only verified therapists can be featured")

    profile_doc.reference.update({"isFeatured": body.isFeatured})

    action = "featured" if body.isFeatured else "unfeatured"
    logger.info(f"✅ Therapist {therapist_id} {action} by {admin.uid}")
    return MessageResponse(message=f"Therapist {action} successfully")
