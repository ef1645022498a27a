"""Platform settings stored in the platform/settings singleton document"""

import logging

from ..config import DEFAULT_PAYOUT_SCHEDULE_DAYS, DEFAULT_PLATFORM_COMMISSION
from ..firebase import PLATFORM, SETTINGS_DOC

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS = {
    # Contact
    "supportEmail": "",
    "supportPhone": "",
    "businessHours": "",
    # Business
    "platformName": "MindGood",
    "platformCommission": DEFAULT_PLATFORM_COMMISSION,
    "payoutScheduleDays": DEFAULT_PAYOUT_SCHEDULE_DAYS,
    "currency": "USD",
    "timezone": "UTC",
    # Policies
    "termsOfService": "",
    "privacyPolicy": "",
    "refundPolicy": "",
    "cancellationPolicy": "",
    # Features
    "enableVideoSessions": True,
    "enableReviews": True,
    "enableNewRegistrations": True,
    "maintenanceMode": False,
    # Notifications
    "emailNotifications": True,
    "smsNotifications": False,
    "adminNotifications": True,
}


def get_stored_settings(db):
    """Raw settings document, or None if it was never saved"""
    doc = db.collection(PLATFORM).document(SETTINGS_DOC).get()
    return doc.to_dict() if doc.exists else None


def get_platform_settings(db) -> dict:
    """Stored settings layered over the defaults"""
    stored = get_stored_settings(db) or {}
    return {**DEFAULT_SETTINGS, **stored}


def commission_percent(settings: dict) -> float:
    value = settings.get("platformCommission")
    try:
        percent = float(value)
    except (TypeError, ValueError):
        logger.warning(f"⚠️ Invalid platformCommission {value!r}, using {DEFAULT_PLATFORM_COMMISSION}")
        return DEFAULT_PLATFORM_COMMISSION
    if not 0 <= percent <= 100:
        logger.warning(f"⚠️ platformCommission {percent} out of range, using {DEFAULT_PLATFORM_COMMISSION}")
        return DEFAULT_PLATFORM_COMMISSION
    return percent


def payout_schedule_days(settings: dict) -> int:
    value = settings.get("payoutScheduleDays")
    try:
        days = int(value)
    except (TypeError, ValueError):
        return DEFAULT_PAYOUT_SCHEDULE_DAYS
    return max(days, 0)
