"""
Event Check-in API - Main Application Entry Point

Event registration and door check-in:
- Capacity accounting with a single conditional update per registration
- At-most-once ticket verification for concurrent scanners
- Role-based bearer-token authorization declared in one table
- Structured logging with request correlation
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from checkin.core.config import get_settings
from checkin.core.logging import setup_logging, get_logger
from checkin.core.metrics import metrics_endpoint
from checkin.api.router import api_router
from checkin.api.middleware import RequestLoggingMiddleware
from checkin.db.session import create_tables, engine
from checkin.infrastructure.redis_client import RedisClient, ping_redis
from checkin.services.email_service import get_email_service

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown hooks."""
    setup_logging()
    logger = get_logger(__name__)

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
    )

    if settings.DB_AUTO_CREATE:
        await create_tables()
        logger.info("database_schema_ready")

    if settings.EVENT_LOCK_STRATEGY == "redis":
        if await ping_redis():
            logger.info("redis_ready")
        else:
            logger.warning("redis_unavailable", message="Event locks fail open; DB guards still apply")

    if not settings.EMAIL_ENABLED:
        logger.warning("email_disabled", message="Outbound email is logged, not sent")
    elif await get_email_service().check_connection():
        logger.info("email_ready", host=settings.SMTP_HOST)
    else:
        logger.warning("email_unreachable", host=settings.SMTP_HOST)

    yield

    await RedisClient.close()
    await engine.dispose()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Event registration, QR tickets and door check-in",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestLoggingMiddleware)

app.include_router(api_router)


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for Docker and load balancers."""
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "event_lock": settings.EVENT_LOCK_STRATEGY,
        "email": "enabled" if get_email_service().enabled else "disabled",
    }


@app.get("/metrics", tags=["Health"], include_in_schema=False)
async def metrics():
    return metrics_endpoint()


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
