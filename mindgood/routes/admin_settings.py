"""
Admin platform settings, dashboard stats and appointment overview
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from google.cloud.firestore_v1.base_query import FieldFilter

from ..auth import CurrentUser, require_admin
from ..firebase import APPOINTMENTS, PAYMENTS, PLATFORM, SERVER_TIMESTAMP, SETTINGS_DOC, THERAPIST_PROFILES, USERS, get_db
from ..schemas import MessageResponse, PlatformSettingsUpdate
from ..services.settings_service import DEFAULT_SETTINGS, get_stored_settings
from ..shared.lookups import UserLookup
from ..shared.serialization import as_datetime, serialize_appointment, sum_amounts, to_iso

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["Admin Settings"])


@router.get("/settings")
async def get_settings(admin: CurrentUser = Depends(require_admin), db=Depends(get_db)):
    stored = get_stored_settings(db)
    if stored is None:
        return {"settings": dict(DEFAULT_SETTINGS)}

    if "updatedAt" in stored:
        stored["updatedAt"] = to_iso(stored["updatedAt"])
    return {"settings": stored}


@router.put("/settings", response_model=MessageResponse)
async def update_settings(
    body: PlatformSettingsUpdate,
    admin: CurrentUser = Depends(require_admin),
    db=Depends(get_db),
):
    """Validate and merge-write the platform settings document"""
    if not body.supportEmail or not body.supportPhone:
        raise HTTPException(status_code=400, detail="Support email and phone are required")

    if body.platformCommission is not None and not 0 <= body.platformCommission <= 100:
        raise HTTPException(status_code=400, detail="Commission rate must be between 0 and 100")

    settings = body.model_dump(exclude_none=True)
    settings.update({"updatedAt": SERVER_TIMESTAMP, "updatedBy": admin.uid})
    db.collection(PLATFORM).document(SETTINGS_DOC).set(settings, merge=True)

    logger.info(f"✅ Platform settings updated by {admin.uid}")
    return MessageResponse(message="Settings updated successfully")


def _month_start(moment: datetime) -> datetime:
    return moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


@router.get("/stats")
async def platform_stats(admin: CurrentUser = Depends(require_admin), db=Depends(get_db)):
    """Dashboard aggregates across users, therapists, appointments and revenue"""
    now = datetime.now(timezone.utc)
    start_of_month = _month_start(now)
    start_of_last_month = _month_start(start_of_month - timedelta(days=1))
    start_of_today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    start_of_tomorrow = start_of_today + timedelta(days=1)
    epoch = datetime.fromtimestamp(0, timezone.utc)

    users = [doc.to_dict() or {} for doc in db.collection(USERS).stream()]
    profiles = [doc.to_dict() or {} for doc in db.collection(THERAPIST_PROFILES).stream()]
    appointments = [doc.to_dict() or {} for doc in db.collection(APPOINTMENTS).stream()]
    payments = [doc.to_dict() or {} for doc in db.collection(PAYMENTS).stream()]

    def created_at(user: dict) -> datetime:
        return as_datetime((user.get("metadata") or {}).get("createdAt")) or epoch

    def scheduled_for(appointment: dict) -> datetime:
        return as_datetime(appointment.get("scheduledFor")) or epoch

    verified = sum(1 for p in profiles if (p.get("verification") or {}).get("isVerified"))

    paid = [p for p in payments if p.get("status") == "succeeded"]
    paid_at = [(p, as_datetime(p.get("createdAt")) or epoch) for p in paid]

    return {
        "users": {
            "total": len(users),
            "clients": sum(1 for u in users if u.get("role") == "client"),
            "therapists": sum(1 for u in users if u.get("role") == "therapist"),
            "active": sum(1 for u in users if u.get("status") == "active"),
            "newThisMonth": sum(1 for u in users if created_at(u) >= start_of_month),
        },
        "therapists": {
            "verified": verified,
            "pending": len(profiles) - verified,
            "active": verified,
        },
        "appointments": {
            "total": len(appointments),
            "upcoming": sum(
                1 for a in appointments if a.get("status") == "confirmed" and scheduled_for(a) > now
            ),
            "completed": sum(1 for a in appointments if a.get("status") == "completed"),
            "cancelled": sum(1 for a in appointments if a.get("status") == "cancelled"),
            "todayCount": sum(
                1 for a in appointments if start_of_today <= scheduled_for(a) < start_of_tomorrow
            ),
        },
        "revenue": {
            "total": sum_amounts(p.get("amount") for p in paid),
            "thisMonth": sum_amounts(p.get("amount") for p, when in paid_at if when >= start_of_month),
            "lastMonth": sum_amounts(
                p.get("amount") for p, when in paid_at if start_of_last_month <= when < start_of_month
            ),
            "currency": "USD",
        },
    }


@router.get("/appointments")
async def list_appointments(
    status: Optional[str] = None,
    therapistId: Optional[str] = None,
    clientId: Optional[str] = None,
    admin: CurrentUser = Depends(require_admin),
    db=Depends(get_db),
):
    query = db.collection(APPOINTMENTS)
    if status:
        query = query.where(filter=FieldFilter("status", "==", status))
    if therapistId:
        query = query.where(filter=FieldFilter("therapistId", "==", therapistId))
    if clientId:
        query = query.where(filter=FieldFilter("clientId", "==", clientId))

    users = UserLookup(db)
    docs = query.order_by("scheduledFor", direction="DESCENDING").limit(100).stream()

    appointments = []
    for doc in docs:
        data = doc.to_dict() or {}
        appointment = serialize_appointment(doc.id, data)
        appointment["client"] = users.party(data.get("clientId"), "Client")
        appointment["therapist"] = users.party(data.get("therapistId"), "Therapist")
        appointments.append(appointment)

    return {"appointments": appointments, "total": len(appointments)}
