"""
Therapist self-service: appointments, earnings, clients and profile
"""

import logging
from collections import defaultdict
from datetime import datetime, timezone

from fastapi import APIRouter, Body, Depends, HTTPException
from google.cloud.firestore_v1.base_query import FieldFilter
from google.cloud.firestore_v1.field_path import FieldPath

from ..auth import CurrentUser, require_therapist
from ..firebase import APPOINTMENTS, PAYOUTS, SERVER_TIMESTAMP, THERAPIST_PROFILES, USERS, get_db
from ..shared.lookups import UserLookup
from ..shared.serialization import as_datetime, serialize_appointment, serialize_metadata, sum_amounts, to_iso

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/therapist", tags=["Therapist"])

PROFILE_FIELD = "therapistProfile"

# Fields only admins or payment flows may change
PROTECTED_USER_FIELDS = {"role", "status", "email", "stripeConnectAccountId"}
PROTECTED_PROFILE_FIELDS = {"verification", "isFeatured"}

EPOCH = datetime.fromtimestamp(0, timezone.utc)


def _appointment_amount(appointment: dict):
    return (appointment.get("payment") or {}).get("amount") or 0


def _scheduled(appointment: dict) -> datetime:
    return as_datetime(appointment.get("scheduledFor")) or EPOCH


@router.get("/appointments")
async def therapist_appointments(therapist: CurrentUser = Depends(require_therapist), db=Depends(get_db)):
    users = UserLookup(db)
    docs = (
        db.collection(APPOINTMENTS)
        .where(filter=FieldFilter("therapistId", "==", therapist.uid))
        .order_by("scheduledFor", direction="DESCENDING")
        .stream()
    )

    appointments = []
    for doc in docs:
        data = doc.to_dict() or {}
        appointment = serialize_appointment(doc.id, data)
        appointment["client"] = users.party(data.get("clientId"), "Client")
        appointments.append(appointment)

    return {"appointments": appointments}


@router.get("/payouts")
async def therapist_payouts(therapist: CurrentUser = Depends(require_therapist), db=Depends(get_db)):
    """Payout history plus earnings summary"""
    payout_docs = (
        db.collection(PAYOUTS)
        .where(filter=FieldFilter("therapistId", "==", therapist.uid))
        .order_by("createdAt", direction="DESCENDING")
        .limit(100)
        .stream()
    )
    payouts = []
    for doc in payout_docs:
        data = doc.to_dict() or {}
        payout = {"id": doc.id, **data}
        for key in ("scheduledDate", "completedDate", "createdAt", "updatedAt"):
            if key in payout:
                payout[key] = to_iso(payout[key])
        payouts.append(payout)

    appointments = [
        doc.to_dict() or {}
        for doc in db.collection(APPOINTMENTS)
        .where(filter=FieldFilter("therapistId", "==", therapist.uid))
        .where(filter=FieldFilter("status", "==", "completed"))
        .where(filter=FieldFilter("paymentStatus", "==", "paid"))
        .stream()
    ]
    awaiting_payout = [a for a in appointments if not a.get("payoutCreated")]

    return {
        "payouts": payouts,
        "stats": {
            "totalEarnings": sum_amounts(_appointment_amount(a) for a in appointments),
            "paidOut": sum_amounts(p.get("netAmount") for p in payouts if p.get("status") == "completed"),
            "pending": sum_amounts(_appointment_amount(a) for a in awaiting_payout),
            "totalAppointments": len(appointments),
            "pendingAppointments": len(awaiting_payout),
        },
    }


@router.get("/clients")
async def therapist_clients(therapist: CurrentUser = Depends(require_therapist), db=Depends(get_db)):
    """One entry per client with appointment counts and spend"""
    docs = (
        db.collection(APPOINTMENTS)
        .where(filter=FieldFilter("therapistId", "==", therapist.uid))
        .where(filter=FieldFilter("status", "in", ["completed", "confirmed", "in_progress"]))
        .stream()
    )

    by_client = defaultdict(list)
    for doc in docs:
        data = doc.to_dict() or {}
        if data.get("clientId"):
            by_client[data["clientId"]].append(data)

    users = UserLookup(db)
    entries = []
    for client_id, client_appointments in by_client.items():
        user = users.get(client_id) or {}
        profile = user.get("profile") or {}
        completed = [a for a in client_appointments if a.get("status") == "completed"]
        upcoming = [a for a in client_appointments if a.get("status") in ("confirmed", "in_progress")]

        last = max(completed, key=_scheduled) if completed else None
        first = min(client_appointments, key=_scheduled)

        client = {
            "id": client_id,
            "name": profile.get("displayName") or "Unknown",
            "email": user.get("email", ""),
            "phone": profile.get("phoneNumber", ""),
            "avatar": profile.get("avatarUrl"),
            "totalAppointments": len(client_appointments),
            "completedAppointments": len(completed),
            "upcomingAppointments": len(upcoming),
            "totalSpent": sum_amounts(_appointment_amount(a) for a in completed),
            "lastAppointmentDate": to_iso(last.get("scheduledFor")) if last else None,
            "firstAppointmentDate": to_iso(first.get("scheduledFor")),
        }
        entries.append((_scheduled(last) if last else EPOCH, client))

    entries.sort(key=lambda entry: entry[0], reverse=True)
    return {"clients": [client for _, client in entries]}


@router.get("/profile")
async def get_profile(therapist: CurrentUser = Depends(require_therapist), db=Depends(get_db)):
    profile_doc = db.collection(THERAPIST_PROFILES).document(therapist.uid).get()
    therapist_profile = profile_doc.to_dict() if profile_doc.exists else None

    merged = dict(therapist.data)
    merged["metadata"] = serialize_metadata(merged.get("metadata"))
    merged["therapistProfile"] = therapist_profile
    return {"profile": merged}


def _parse_field_path(key: str) -> tuple:
    """Split an update key the way Firestore will, so quoted segments cannot slip past the guard"""
    try:
        parts = FieldPath.from_string(key).parts
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid field path: {key}")
    if not parts:
        raise HTTPException(status_code=400, detail=f"Invalid field path: {key}")
    return parts


@router.put("/profile")
async def update_profile(
    updates: dict = Body(...),
    therapist: CurrentUser = Depends(require_therapist),
    db=Depends(get_db),
):
    """
    Update user and therapist profile fields in one call.

    Keys under "therapistProfile." go to therapistProfiles/{uid} (the rest of the
    key is the field path there); every other key goes to users/{uid}.
    """
    user_fields = {}
    profile_fields = {}
    for key, value in updates.items():
        parts = _parse_field_path(key)
        if parts[0] == PROFILE_FIELD:
            if len(parts) < 2 or parts[1] in PROTECTED_PROFILE_FIELDS:
                raise HTTPException(status_code=400, detail=f"Field cannot be updated: {key}")
            profile_fields[FieldPath(*parts[1:]).to_api_repr()] = value
        else:
            if parts[0] in PROTECTED_USER_FIELDS:
                raise HTTPException(status_code=400, detail=f"Field cannot be updated: {key}")
            user_fields[FieldPath(*parts).to_api_repr()] = value

    profile_ref = db.collection(THERAPIST_PROFILES).document(therapist.uid)
    if profile_fields and not profile_ref.get().exists:
        raise HTTPException(status_code=404, detail="Therapist profile not found")

    if user_fields:
        user_fields["metadata.updatedAt"] = SERVER_TIMESTAMP
        db.collection(USERS).document(therapist.uid).update(user_fields)

    if profile_fields:
        profile_ref.update(profile_fields)

    logger.info(
        f"✅ Therapist {therapist.uid} updated profile: {len(user_fields)} user fields, {len(profile_fields)} profile fields"
    )
    return {"success": True}
