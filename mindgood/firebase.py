import logging

import firebase_admin
from firebase_admin import credentials, firestore

from .config import FIREBASE_CREDENTIALS_PATH, FIREBASE_PROJECT_ID

logger = logging.getLogger(__name__)

# Collection names
USERS = "users"
THERAPIST_PROFILES = "therapistProfiles"
APPOINTMENTS = "appointments"
PAYMENTS = "payments"
PAYOUTS = "payouts"
REFUNDS = "refunds"
REVIEWS = "reviews"
PLATFORM = "platform"
STRIPE_EVENTS = "stripeEvents"

SETTINGS_DOC = "settings"

SERVER_TIMESTAMP = firestore.SERVER_TIMESTAMP

_db = None


def init_firebase() -> firebase_admin.App:
    """Initialize the default Firebase Admin app once per process"""
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass

    options = {"projectId": FIREBASE_PROJECT_ID} if FIREBASE_PROJECT_ID else None
    if FIREBASE_CREDENTIALS_PATH:
        cred = credentials.Certificate(FIREBASE_CREDENTIALS_PATH)
        logger.info("Firebase Admin initialized with service account file")
    else:
        cred = credentials.ApplicationDefault()
        logger.info("Firebase Admin initialized with default credentials")
    return firebase_admin.initialize_app(cred, options)


def get_firestore_client():
    global _db
    if _db is None:
        init_firebase()
        _db = firestore.client()
        logger.info("Firestore client created")
    return _db


def get_db():
    """FastAPI dependency yielding the Firestore client"""
    return get_firestore_client()
