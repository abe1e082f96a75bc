"""
Temple Donations — FastAPI Application Entry Point

Aggregates all routers, configures logging and middleware, maps domain
errors to JSON responses and initializes the database on startup.
"""
import asyncio
import logging
import os
import time
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from temple_donations.config import get_settings
from temple_donations.database import engine, init_db
from temple_donations.errors import DonationError
from temple_donations.routes import payment_router, whatsapp_router, admin_router, receipts_router
from temple_donations.schemas.schemas import HealthResponse
from temple_donations.services.receipt_service import ReceiptRenderer

settings = get_settings()

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging():
    """Console + server.log under LOG_DIR for the temple_donations logger tree."""
    root = logging.getLogger("temple_donations")
    if root.handlers:
        return
    root.setLevel(settings.LOG_LEVEL.upper())

    console = logging.StreamHandler()
    console.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(console)

    os.makedirs(settings.LOG_DIR, exist_ok=True)
    file_handler = logging.FileHandler(os.path.join(settings.LOG_DIR, "server.log"), encoding="utf-8")
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(file_handler)


configure_logging()
logger = logging.getLogger("temple_donations.main")

# ─── Application Instance ───────────────────────────────────────────
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description=(
        "Donation portal API: Razorpay order creation and verification, "
        "PDF receipts delivered over WhatsApp, and admin reporting/exports."
    ),
    docs_url="/docs",
    redoc_url="/redoc",
)

# ─── Startup / Shutdown ──────────────────────────────────────────────
BOOT_TIME = time.time()


async def _receipt_sweep_loop():
    """Periodically delete receipts older than the retention window."""
    interval = settings.RECEIPT_SWEEP_INTERVAL_MINUTES * 60
    max_age = settings.RECEIPT_RETENTION_HOURS * 3600
    while True:
        await asyncio.sleep(interval)
        try:
            removed = await run_in_threadpool(ReceiptRenderer.sweep, max_age)
            if removed:
                logger.info("Receipt sweep removed %d file(s)", len(removed))
        except OSError as exc:
            logger.error("Receipt sweep failed: %s", exc)


@app.on_event("startup")
async def on_startup():
    """Initialize database tables, receipts dir and the optional sweep task."""
    init_db()
    ReceiptRenderer.receipts_dir()

    logger.info(
        "\n%s\n  %s v%s\n  TIME: %s\n  DATABASE: %s\n  RAZORPAY: %s\n  TWILIO: %s\n  RECEIPTS: %s\n  DEBUG: %s\n%s",
        "=" * 60,
        settings.APP_NAME, settings.APP_VERSION,
        datetime.now().isoformat(),
        settings.DATABASE_URL,
        "[OK] Configured" if settings.gateway_configured else "[!] Missing credentials",
        "[OK] Configured" if settings.messaging_configured else "[!] Missing credentials",
        settings.RECEIPTS_DIR,
        settings.DEBUG,
        "=" * 60,
    )

    app.state.sweep_task = None
    if settings.RECEIPT_SWEEP_ENABLED:
        app.state.sweep_task = asyncio.create_task(_receipt_sweep_loop())
        logger.info("Receipt sweep every %d min, retention %dh",
                    settings.RECEIPT_SWEEP_INTERVAL_MINUTES, settings.RECEIPT_RETENTION_HOURS)


@app.on_event("shutdown")
async def on_shutdown():
    task = getattr(app.state, "sweep_task", None)
    if task is not None:
        task.cancel()


# ─── Middleware ──────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log every API request with timing."""
    start = time.time()
    response = await call_next(request)
    duration = round((time.time() - start) * 1000, 1)

    if request.url.path.startswith("/api"):
        logger.info("-> %s %s -> %s (%sms)", request.method, request.url.path, response.status_code, duration)

    return response


# ─── Error Envelope ──────────────────────────────────────────────────
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    missing = [str(e["loc"][-1]) for e in errors if e.get("type") == "missing"]
    if missing:
        message = f"Missing required fields: {', '.join(missing)}"
    elif errors:
        first = errors[0]
        field = str(first["loc"][-1]) if first.get("loc") else "request"
        message = f"{field}: {first.get('msg', 'invalid value').removeprefix('Value error, ')}"
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"success": False, "message": message})


@app.exception_handler(DonationError)
async def donation_error_handler(request: Request, exc: DonationError):
    logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"success": False, "message": exc.message})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled exception on %s %s: %s", request.method, request.url.path, exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"success": False, "message": "Server error", "error": str(exc)},
    )


# ─── API Routers ─────────────────────────────────────────────────────
app.include_router(payment_router)
app.include_router(whatsapp_router)
app.include_router(admin_router)
app.include_router(receipts_router)


@app.get("/health", tags=["Health"], response_model=HealthResponse)
def health():
    """Database reachability, provider credential status and uptime."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        database = "connected"
    except SQLAlchemyError as exc:
        logger.error("Health check database error: %s", exc)
        database = "disconnected"

    return HealthResponse(
        status="healthy" if database == "connected" else "degraded",
        database=database,
        gateway="configured" if settings.gateway_configured else "unconfigured",
        messaging="configured" if settings.messaging_configured else "unconfigured",
        uptime_seconds=round(time.time() - BOOT_TIME, 1),
        version=settings.APP_VERSION,
    )
