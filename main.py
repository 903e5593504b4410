from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.concurrency import asynccontextmanager
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import SQLAlchemyError
from api import limiter, router as api_router
from api.health import router as health_router
from api.services.email_service import init_email_service
from api.services.monitoring_service import DEFAULT_MAX_WORKERS, MonitoringService, create_scheduler
from db.engine import SessionLocal
from db.repositories.settings_repository import SettingsRepository
import logging
import os
import secrets


# Configure logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    filename=os.getenv("LOG_FILE", "log.txt"),
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

INSECURE_JWT_SECRETS = (
    "change-me-in-production",
    "change-me-to-random-string",
    "your-secret-key-here",
)


def ensure_jwt_secret():
    """Ensure JWT_SECRET exists and is secure"""
    db = SessionLocal()
    try:
        settings_repo = SettingsRepository(db)
        jwt_secret = settings_repo.get_setting("JWT_SECRET")
        if jwt_secret and jwt_secret not in INSECURE_JWT_SECRETS:
            os.environ["JWT_SECRET"] = jwt_secret
            return jwt_secret

        new_secret = secrets.token_hex(32)
        logger.warning(
            "JWT_SECRET not set or insecure! Generated secure random secret. "
            "Please set JWT_SECRET in your environment for production."
        )
        os.environ["JWT_SECRET"] = new_secret
        try:
            settings_repo.set_setting("JWT_SECRET", new_secret, is_secret=True)
            logger.info("Generated JWT_SECRET saved to database")
        except SQLAlchemyError as e:
            settings_repo.rollback()
            logger.error(f"Failed to save JWT_SECRET to database: {e}")
        return new_secret
    finally:
        db.close()


def build_monitoring_service() -> MonitoringService:
    db = SessionLocal()
    try:
        email_service = init_email_service(SettingsRepository(db))
    except SQLAlchemyError as e:
        logger.error(f"Failed to read SMTP settings, email alerts disabled: {e}")
        email_service = None
    finally:
        db.close()
    max_workers = int(os.getenv("MONITOR_MAX_WORKERS", DEFAULT_MAX_WORKERS))
    return MonitoringService(
        SessionLocal,
        email_service=email_service,
        scheduler=create_scheduler(max_workers),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    ensure_jwt_secret()
    monitoring_service = build_monitoring_service()
    app.state.monitoring_service = monitoring_service
    if os.getenv("SKIP_SCHEDULER", "false").lower() != "true":
        monitoring_service.initialize()
    else:
        logger.info("SKIP_SCHEDULER set, monitors will not be checked")
    yield
    monitoring_service.shutdown(wait=True)


app = FastAPI(title="Uptime Monitor", lifespan=lifespan)

# Rate limiting setup
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

# CORS Configuration - Allow same-origin by default, customize for production
allowed_origins = os.getenv("CORS_ORIGINS", "*").split(",")
if allowed_origins == ["*"]:
    logger.warning(
        "CORS is set to allow all origins (*). "
        "Set CORS_ORIGINS environment variable to restrict origins in production."
    )

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["*"],
    max_age=600,
)


# Security headers middleware
@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["X-XSS-Protection"] = "1; mode=block"
    response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    return response


app.include_router(health_router)
app.include_router(api_router, prefix="/api")
