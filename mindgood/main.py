import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .auth_gate import AuthGateMiddleware
from .config import ALLOWED_ORIGINS
from .firebase import init_firebase
from .routes.admin_payments import router as admin_payments_router
from .routes.admin_payouts import router as admin_payouts_router
from .routes.admin_reviews import router as admin_reviews_router
from .routes.admin_settings import router as admin_settings_router
from .routes.admin_therapists import router as admin_therapists_router
from .routes.admin_users import router as admin_users_router
from .routes.agora import router as agora_router
from .routes.bookings import router as bookings_router
from .routes.client import router as client_router
from .routes.cron import router as cron_router
from .routes.payments import router as payments_router
from .routes.therapist import router as therapist_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("stripe").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    try:
        init_firebase()
        logger.info("✅ Firebase Admin ready")
    except Exception as e:
        # Requests that touch Firestore will fail until credentials are fixed
        logger.error(f"❌ Firebase Admin initialization failed: {e}")

    yield
    logger.info("Application shutting down...")


app = FastAPI(title="MindGood API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report body and query validation failures as 400 with per-field messages"""
    details = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        details.append({"field": ".".join(loc) or "body", "message": error.get("msg", "Invalid value")})

    logger.warning(f"⚠️ Validation error for {request.url.path}: {details}")
    return JSONResponse(status_code=400, content={"error": "Invalid request data", "details": details})


app.add_middleware(AuthGateMiddleware, exclude_paths=["/health", "/docs", "/openapi.json", "/redoc"])

logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)

# Routes
app.include_router(admin_users_router)
app.include_router(admin_therapists_router)
app.include_router(admin_reviews_router)
app.include_router(admin_payments_router)
app.include_router(admin_payouts_router)
app.include_router(admin_settings_router)
app.include_router(cron_router)
app.include_router(payments_router)
app.include_router(bookings_router)
app.include_router(agora_router)
app.include_router(client_router)
app.include_router(therapist_router)


@app.get("/")
def root():
    return {"message": "MindGood API is running"}


@app.get("/health")
def health():
    return {"status": "healthy"}
