"""
Admin user management
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from ..auth import CurrentUser, require_admin, set_role_claim
from ..firebase import SERVER_TIMESTAMP, USERS, get_db
from ..schemas import MessageResponse, RoleUpdate, StatusUpdate
from ..shared.serialization import profile_summary, user_metadata

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/users", tags=["Admin Users"])

VALID_ROLES = ("client", "therapist", "admin")
VALID_STATUSES = ("active", "inactive", "suspended")


@router.get("")
async def list_users(admin: CurrentUser = Depends(require_admin), db=Depends(get_db)):
    """List all users, newest first"""
    docs = db.collection(USERS).order_by("metadata.createdAt", direction="DESCENDING").stream()

    users = []
    for doc in docs:
        data = doc.to_dict() or {}
        users.append(
            {
                "id": doc.id,
                "email": data.get("email", ""),
                "profile": profile_summary(data),
                "role": data.get("role") or "client",
                "status": data.get("status") or "active",
                "metadata": user_metadata(data),
            }
        )

    return {"users": users}


@router.get("/stats")
async def user_stats(admin: CurrentUser = Depends(require_admin), db=Depends(get_db)):
    stats = {"totalUsers": 0, "activeUsers": 0, "clients": 0, "therapists": 0, "admins": 0}
    role_keys = {"client": "clients", "therapist": "therapists", "admin": "admins"}

    for doc in db.collection(USERS).stream():
        data = doc.to_dict() or {}
        stats["totalUsers"] += 1
        if data.get("status") == "active":
            stats["activeUsers"] += 1
        key = role_keys.get(data.get("role"))
        if key:
            stats[key] += 1

    return stats


def _get_user_ref(db, user_id: str):
    user_ref = db.collection(USERS).document(user_id)
    if not user_ref.get().exists:
        raise HTTPException(status_code=404, detail="User not found")
    return user_ref


@router.patch("/{user_id}/role", response_model=MessageResponse)
async def update_user_role(
    user_id: str,
    body: RoleUpdate,
    admin: CurrentUser = Depends(require_admin),
    db=Depends(get_db),
):
    """Change a user's role and mirror it into Firebase custom claims"""
    if body.role not in VALID_ROLES:
        raise HTTPException(status_code=400, detail="Invalid role value")

    user_ref = _get_user_ref(db, user_id)
    user_ref.update({"role": body.role, "metadata.updatedAt": SERVER_TIMESTAMP})

    try:
        set_role_claim(user_id, body.role)
    except Exception as e:
        logger.error(f"❌ Failed to set custom claims for {user_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to update user role") from e

    logger.info(f"✅ Admin {admin.uid} set role of {user_id} to {body.role}")
    return MessageResponse(message="User role updated successfully")


@router.patch("/{user_id}/status", response_model=MessageResponse)
async def update_user_status(
    user_id: str,
    body: StatusUpdate,
    admin: CurrentUser = Depends(require_admin),
    db=Depends(get_db),
):
    if body.status not in VALID_STATUSES:
        raise HTTPException(status_code=400, detail="Invalid status value")

    user_ref = _get_user_ref(db, user_id)
    user_ref.update({"status": body.status, "metadata.updatedAt": SERVER_TIMESTAMP})

    logger.info(f"✅ Admin {admin.uid} set status of {user_id} to {body.status}")
    return MessageResponse(message="User status updated successfully")
