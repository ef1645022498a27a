"""Shared helpers for turning Firestore documents into JSON-ready dicts"""

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

CENT = Decimal("0.01")


def to_iso(value: Any, default_now: bool = False) -> Optional[str]:
    """
    Convert a Firestore timestamp (a datetime subclass) to an ISO string.

    Args:
        value: Timestamp, datetime, ISO string or None
        default_now: Return the current time instead of None when value is missing

    Returns:
        ISO-8601 string or None
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()
    if isinstance(value, str) and value:
        return value
    if default_now:
        return datetime.now(timezone.utc).isoformat()
    return None


def as_datetime(value: Any) -> Optional[datetime]:
    """Best-effort conversion of a stored timestamp to an aware datetime"""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None


def display_name(user_data: Optional[dict], default: str = "Unknown") -> str:
    if not user_data:
        return default
    return (user_data.get("profile") or {}).get("displayName") or default


def profile_summary(user_data: Optional[dict]) -> dict:
    profile = (user_data or {}).get("profile") or {}
    return {
        "displayName": profile.get("displayName", ""),
        "firstName": profile.get("firstName", ""),
        "lastName": profile.get("lastName", ""),
        "phoneNumber": profile.get("phoneNumber", ""),
        "avatarUrl": profile.get("avatarUrl", ""),
    }


def user_metadata(user_data: Optional[dict]) -> dict:
    metadata = (user_data or {}).get("metadata") or {}
    return {
        "createdAt": to_iso(metadata.get("createdAt"), default_now=True),
        "lastLoginAt": to_iso(metadata.get("lastLoginAt"), default_now=True),
    }


def serialize_metadata(metadata: Optional[dict]) -> dict:
    """Convert every timestamp inside a metadata map, leaving other values alone"""
    result = dict(metadata or {})
    for key in ("createdAt", "updatedAt", "confirmedAt", "completedAt", "cancelledAt"):
        result[key] = to_iso(result.get(key))
    return result


def to_cents(amount: Any) -> int:
    """Major currency units to integer cents, rounding half-up"""
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def split_platform_fee(amount: Any, commission_percent: Any) -> tuple[float, float]:
    """
    Split a payment into (platform_fee, net_amount).

    The fee is rounded half-up to the cent and the net amount is the remainder,
    so fee + net always equals the original amount to the cent.
    """
    gross = Decimal(str(amount or 0)).quantize(CENT, rounding=ROUND_HALF_UP)
    rate = Decimal(str(commission_percent)) / Decimal("100")
    fee = (gross * rate).quantize(CENT, rounding=ROUND_HALF_UP)
    net = gross - fee
    return float(fee), float(net)


def sum_amounts(amounts) -> float:
    """Sum money values to the cent without float drift"""
    total = sum((Decimal(str(a or 0)) for a in amounts), Decimal("0"))
    return float(total.quantize(CENT, rounding=ROUND_HALF_UP))


def serialize_appointment(doc_id: str, data: dict) -> dict:
    """Appointment document with timestamps converted, other fields passed through"""
    result = {"id": doc_id, **data}
    result["scheduledFor"] = to_iso(data.get("scheduledFor"))
    for key in ("createdAt", "updatedAt", "scheduledDate"):
        if key in data:
            result[key] = to_iso(data.get(key))
    result["metadata"] = serialize_metadata(data.get("metadata"))
    return result
