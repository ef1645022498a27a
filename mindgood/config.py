import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

# Firebase Configuration
FIREBASE_PROJECT_ID = os.getenv("FIREBASE_PROJECT_ID")
# Path to a service account JSON; falls back to Application Default Credentials
FIREBASE_CREDENTIALS_PATH = os.getenv("FIREBASE_CREDENTIALS_PATH")

# Stripe Configuration
STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY")
STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET")
STRIPE_API_VERSION = os.getenv("STRIPE_API_VERSION")
STRIPE_STATEMENT_DESCRIPTOR = os.getenv("STRIPE_STATEMENT_DESCRIPTOR", "MINDGOOD THERAPY")
DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "usd")

# Agora Configuration
AGORA_APP_ID = os.getenv("AGORA_APP_ID")
AGORA_APP_CERTIFICATE = os.getenv("AGORA_APP_CERTIFICATE")
AGORA_TOKEN_TTL_SECONDS = int(os.getenv("AGORA_TOKEN_TTL_SECONDS", "86400"))

# Cron - shared bearer secret for /api/cron/* endpoints
CRON_SECRET = os.getenv("CRON_SECRET")
if not CRON_SECRET:
    import warnings

    warnings.warn(
        "CRON_SECRET not set! Cron endpoints will reject every request", RuntimeWarning, stacklevel=2
    )

# Payout policy defaults, overridden by the platform/settings document
DEFAULT_PLATFORM_COMMISSION = float(os.getenv("DEFAULT_PLATFORM_COMMISSION", "10"))
DEFAULT_PAYOUT_SCHEDULE_DAYS = int(os.getenv("DEFAULT_PAYOUT_SCHEDULE_DAYS", "4"))

# Frontend base URL for redirects and session links
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")

# Resend Email Configuration
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "MindGood <noreply@mindgood.app>")

# CORS
ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS",
    "http://localhost:3000,http://localhost:5173",
).split(",")

# Redis for the arq worker (scheduled payout sweep)
REDIS_URL = os.getenv("REDIS_URL")
