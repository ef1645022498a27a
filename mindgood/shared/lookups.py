"""Per-request user lookups used to enrich listings with names"""

from typing import Optional

from ..firebase import USERS

DEFAULT_AVATAR = "/images/default-avatar.png"


class UserLookup:
    """Memoizes users/{uid} reads for the duration of one request"""

    def __init__(self, db):
        self.db = db
        self._cache: dict[str, Optional[dict]] = {}

    def get(self, uid: Optional[str]) -> Optional[dict]:
        if not uid:
            return None
        if uid not in self._cache:
            doc = self.db.collection(USERS).document(uid).get()
            self._cache[uid] = (doc.to_dict() or {}) if doc.exists else None
        return self._cache[uid]

    def name(self, uid: Optional[str], default: str = "Unknown") -> str:
        user = self.get(uid)
        if not user:
            return default
        return (user.get("profile") or {}).get("displayName") or default

    def party(self, uid: Optional[str], default_name: str) -> dict:
        """Compact participant summary attached to appointment listings"""
        user = self.get(uid) or {}
        profile = user.get("profile") or {}
        return {
            "id": uid,
            "name": profile.get("displayName") or default_name,
            "email": user.get("email", ""),
            "image": profile.get("avatarUrl") or DEFAULT_AVATAR,
        }
