"""Dependencies for FastAPI endpoints."""
from typing import Callable
from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address
from limits import parse_many
from email_verification.core.handler import AppException
from email_verification.core.constants import GeneralErrorDetails
from email_verification.core.config import settings
from email_verification.core.database import db_manager
from email_verification.repositories.verification_repository import VerificationRepository
from email_verification.services.credential import email_matcher_from_settings, username_matcher_from_settings
from email_verification.services.email import EmailNotificationSender, create_template_environment, get_email_provider
from email_verification.services.verification import VerificationService

# Can be changed to Redis later: storage_uri="redis://localhost:6379"
limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")


def create_rate_limit_dependency(
    limit: int,
    window_seconds: int,
    endpoint_name: str,
    error_message: str = GeneralErrorDetails.RATE_LIMIT_EXCEEDED
) -> Callable:
    """
    Factory function to create a rate limiting dependency using slowapi.

    Args:
        limit: Maximum number of requests allowed
        window_seconds: Time window in seconds
        endpoint_name: Name of the endpoint, used to keep limits separate
        error_message: Error message to return when rate limit exceeded

    Returns:
        Dependency function that can be used with FastAPI Depends()
    """
    if window_seconds == 60:
        rate_limit_str = f"{limit}/minute"
    elif window_seconds == 3600:
        rate_limit_str = f"{limit}/hour"
    else:
        rate_limit_str = f"{limit}/{window_seconds}second"

    async def rate_limit_check(request: Request) -> None:
        """Raise a 429 AppException once the client exceeds the limit."""
        app_limiter = request.app.state.limiter

        key = f"{endpoint_name}:{get_remote_address(request)}"
        rate_limit = parse_many(rate_limit_str)[0]

        if not app_limiter._limiter.hit(rate_limit, key):
            raise AppException(
                message=error_message,
                status_code=429
            )

    return rate_limit_check


check_begin_rate_limit = create_rate_limit_dependency(
    settings.BEGIN_RATE_LIMIT_PER_HOUR, 3600, "verification_begin"
)
check_resend_rate_limit = create_rate_limit_dependency(
    settings.RESEND_RATE_LIMIT_PER_HOUR, 3600, "verification_resend"
)


_notification_sender: EmailNotificationSender | None = None


def get_notification_sender() -> EmailNotificationSender:
    """Email sender built from settings on first use."""
    global _notification_sender
    if _notification_sender is None:
        _notification_sender = EmailNotificationSender(
            provider=get_email_provider(),
            environment=create_template_environment(),
        )
    return _notification_sender


def get_verification_service() -> VerificationService:
    """Dependency injection for VerificationService with the SQL store."""
    return VerificationService(
        repository=VerificationRepository(db_manager.session_factory),
        notification_sender=get_notification_sender(),
        username_matcher=username_matcher_from_settings(),
        email_matcher=email_matcher_from_settings(),
        site_url=settings.SITE_URL,
        asset_path=settings.ASSET_PATH,
    )
