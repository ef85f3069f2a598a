import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.exceptions import HTTPException, RequestValidationError
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from email_verification.api.v1.endpoints import health, verifications
from email_verification.schemas.response import ApiResponse
from email_verification.core.dependencies import limiter
from email_verification.core.handler import (
    AppException,
    http_exception_handler,
    validation_exception_handler,
    app_exception_handler,
    general_exception_handler
)
from email_verification.core.config import settings
from email_verification.core.database import db_manager
from email_verification.repositories.verification_repository import VerificationRepository
from email_verification.services.verification import purge_expired_verifications

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    logger.info("Starting up application...")

    try:
        db_manager.init(
            database_url=settings.database_url_computed,
            echo=settings.DB_ECHO,
            pool_size=settings.DB_POOL_SIZE
        )
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise

    if settings.VERIFICATION_TTL_HOURS:
        await purge_expired_verifications(
            VerificationRepository(db_manager.session_factory),
            settings.VERIFICATION_TTL_HOURS
        )

    yield

    logger.info("Shutting down application...")
    await db_manager.close()


app = FastAPI(
    title="Email Verification API",
    version="1.0.0",
    lifespan=lifespan
)

app.state.limiter = limiter

# Register global exception handlers (apply to all endpoints)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_exception_handler(Exception, general_exception_handler)


app.include_router(verifications.router, prefix="/api/v1/verifications", tags=["Verifications"])
app.include_router(health.router, prefix="/api/v1", tags=["Health"])


@app.get("/")
def root():
    """Root health check endpoint."""
    return ApiResponse(
        success=True,
        message="System operational",
        data={"status": "ok"}
    )
