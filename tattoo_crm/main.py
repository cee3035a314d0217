import logging
import os
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Import all models to ensure they're registered with SQLAlchemy Base
from . import (
    models,  # noqa: F401
    models_billing,  # noqa: F401
    models_booking,  # noqa: F401
    models_catalog,  # noqa: F401
)
from .config import CORS_ORIGIN
from .database import Base, engine
from .domain.analytics import router as analytics_router
from .domain.appointments import router as appointments_router
from .domain.artists import router as artists_router
from .domain.audit import router as audit_router
from .domain.auth import router as auth_router
from .domain.backup import router as backup_router
from .domain.billing import router as billing_router
from .domain.branches import router as branches_router
from .domain.cart import router as cart_router
from .domain.contacts import router as contacts_router
from .domain.maintenance import router as maintenance_router
from .domain.maintenance.middleware import MaintenanceMiddleware
from .domain.maintenance.service import enable_from_environment
from .domain.members import router as members_router
from .domain.notifications import router as notifications_router
from .domain.orders import router as orders_router
from .domain.services import router as services_router
from .domain.site_config import router as site_config_router
from .security_headers import SecurityHeadersMiddleware

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

SECURITY_HEADERS_ENABLED = os.getenv("SECURITY_HEADERS_ENABLED", "true").lower() == "true"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except Exception as e:
        # Another worker may have created the tables first
        error_msg = str(e)
        if "already exists" in error_msg or "duplicate key" in error_msg:
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"Failed to create database tables: {e}")

    try:
        from .rate_limiter import get_redis_client

        get_redis_client()  # Connection test
        logger.info("Redis connection established")
    except Exception as e:
        logger.warning(f"Redis connection failed - rate limiting and cache will fail open: {e}")

    if enable_from_environment():
        logger.warning("Started in maintenance mode (MAINTENANCE_MODE=true)")

    yield
    logger.info("Application shutting down...")


app = FastAPI(title="Tattoo CRM API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Convert 422 validation errors from HTTPBearer to 401 authentication errors
    when the issue is with the Authorization header
    """
    for error in exc.errors():
        if error.get("loc") and "authorization" in str(error.get("loc")).lower():
            logger.warning(f"Authentication failed for {request.url.path}: Missing or invalid Authorization header")
            return JSONResponse(
                status_code=401,
                content={"detail": "Not authenticated. Please provide a valid Bearer token in the Authorization header."},
            )

    errors = jsonable_encoder(exc.errors())
    logger.warning(f"Validation error for {request.url.path}: {errors}")
    return JSONResponse(status_code=422, content={"detail": errors})


@app.middleware("http")
async def log_requests(request: Request, call_next):
    try:
        return await call_next(request)
    except Exception as e:
        logger.error(f"{request.method} {request.url.path} - Error: {str(e)}")
        raise


app.add_middleware(MaintenanceMiddleware)

if SECURITY_HEADERS_ENABLED:
    app.add_middleware(SecurityHeadersMiddleware, exclude_paths=["/health", "/docs", "/openapi.json"])
    logger.info("Security headers enabled")
else:
    logger.warning("Security headers DISABLED - only use in development!")

ALLOWED_ORIGINS = [origin.strip() for origin in CORS_ORIGIN.split(",") if origin.strip()]
logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)

# Routes
app.include_router(auth_router.router)
app.include_router(branches_router.router)
app.include_router(services_router.router)
app.include_router(services_router.admin_router)
app.include_router(cart_router.router)
app.include_router(appointments_router.public_router)
app.include_router(appointments_router.router)
app.include_router(appointments_router.admin_router)
app.include_router(contacts_router.public_router)
app.include_router(contacts_router.router)
app.include_router(members_router.router)
app.include_router(members_router.admin_router)
app.include_router(orders_router.router)
app.include_router(orders_router.admin_router)
app.include_router(artists_router.public_router)
app.include_router(artists_router.router)
app.include_router(artists_router.admin_router)
app.include_router(billing_router.router)
app.include_router(notifications_router.router)
app.include_router(audit_router.router)
app.include_router(analytics_router.router)
app.include_router(site_config_router.public_router)
app.include_router(site_config_router.admin_router)
app.include_router(maintenance_router.public_router)
app.include_router(maintenance_router.admin_router)
app.include_router(backup_router.router)


@app.get("/")
def root():
    return {"message": "Tattoo CRM API is running"}


@app.get("/health")
def health():
    return {"status": "healthy"}


@app.get("/health/redis")
async def redis_health_check():
    """Check Redis connectivity for monitoring"""
    try:
        from .rate_limiter import get_redis_client

        redis_client = get_redis_client()
        start_time = time.time()
        redis_client.ping()
        response_time = (time.time() - start_time) * 1000
        return {"status": "healthy", "response_time_ms": round(response_time, 2)}
    except Exception as e:
        logger.error(f"Redis health check failed: {e}")
        return JSONResponse(status_code=503, content={"status": "unhealthy", "error": str(e)})
