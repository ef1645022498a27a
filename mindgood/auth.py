import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from firebase_admin import auth as firebase_auth

from .firebase import USERS, get_db, init_firebase

logger = logging.getLogger(__name__)

AUTH_COOKIE_NAME = "auth-token"

security = HTTPBearer(auto_error=False)


class CurrentUser:
    """Authenticated caller: Firebase uid plus the stored user document"""

    def __init__(self, uid: str, data: dict):
        self.uid = uid
        self.data = data

    @property
    def role(self) -> Optional[str]:
        return self.data.get("role")

    @property
    def email(self) -> str:
        return self.data.get("email", "")


def extract_token(
    request: Request, credentials: Optional[HTTPAuthorizationCredentials]
) -> Optional[str]:
    """Cookie first, then the Authorization bearer header"""
    token = request.cookies.get(AUTH_COOKIE_NAME)
    if token:
        return token
    if credentials and credentials.credentials:
        return credentials.credentials
    return None


def verify_id_token(token: str) -> dict:
    """Verify a Firebase ID token and return its decoded claims"""
    init_firebase()
    return firebase_auth.verify_id_token(token)


async def get_current_uid(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    token = extract_token(request, credentials)
    if not token:
        raise HTTPException(status_code=401, detail="Unauthorized")

    try:
        decoded_token = verify_id_token(token)
    except Exception as e:
        logger.warning(f"❌ Token verification failed for {request.url.path}: {e}")
        raise HTTPException(status_code=401, detail="Unauthorized") from e

    uid = decoded_token.get("uid") or decoded_token.get("sub")
    if not uid:
        logger.error(f"❌ Token missing uid claim. Available claims: {list(decoded_token.keys())}")
        raise HTTPException(status_code=401, detail="Unauthorized")
    return uid


def require_role(*roles: str):
    """
    Build a dependency that loads users/{uid} and checks its role.

    Example usage:
        @router.get("/admin/users")
        async def list_users(user: CurrentUser = Depends(require_role("admin"))):
            ...
    """

    async def role_checker(uid: str = Depends(get_current_uid), db=Depends(get_db)) -> CurrentUser:
        user_doc = db.collection(USERS).document(uid).get()
        user_data = user_doc.to_dict() if user_doc.exists else None

        if not user_data or user_data.get("role") not in roles:
            logger.warning(f"⚠️ User {uid} denied: role required {roles}")
            raise HTTPException(status_code=403, detail="Forbidden")

        return CurrentUser(uid, user_data)

    return role_checker


require_admin = require_role("admin")
require_client = require_role("client")
require_therapist = require_role("therapist")


async def get_current_user(uid: str = Depends(get_current_uid), db=Depends(get_db)) -> CurrentUser:
    """Any authenticated user whose profile document exists"""
    user_doc = db.collection(USERS).document(uid).get()
    if not user_doc.exists:
        raise HTTPException(status_code=404, detail="User not found")
    return CurrentUser(uid, user_doc.to_dict() or {})


def set_role_claim(uid: str, role: str) -> None:
    """Mirror the user's role into Firebase custom claims"""
    init_firebase()
    firebase_auth.set_custom_user_claims(uid, {"role": role})
    logger.info(f"✅ Custom claims updated for {uid}: role={role}")
