import re
import logging
from typing import Literal, Optional

from pydantic import Field, field_validator, model_validator, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    ENVIRONMENT: Literal["dev", "prod"] = Field(default="dev", description="Application environment")
    LOG_LEVEL: str = Field(default="INFO", description="Root log level")

    # Links embedded in verification emails
    SITE_URL: str = Field(default="http://localhost:8000", description="Public base URL used to build verification links")
    ASSET_PATH: str = Field(default="/resource/images/logo.png", description="Path of the logo asset, resolved against SITE_URL")

    # Credential classification for search
    USERNAME_PATTERN: str = Field(
        default=r"^[A-Za-z0-9_\-.]{2,}$",
        description="Regex a credential must match to be treated as a username"
    )
    EMAIL_PATTERN: str = Field(
        default=r"^[^@\s]+@[^@\s]+\.[^@\s]+$",
        description="Regex a credential must match to be treated as an email address"
    )

    # Store-level expiry, applied at startup when set
    VERIFICATION_TTL_HOURS: Optional[int] = Field(default=None, description="Purge pending verifications older than this")

    # Database Configuration
    DB_HOST: str = Field(default="localhost", description="Database host")
    DB_PORT: int = Field(default=5432, description="Database port")
    DB_NAME: str = Field(default="email_verification", description="Database name")
    DB_USER: str = Field(default="postgres", description="Database user")
    DB_PASSWORD: str = Field(default="", description="Database password")
    DATABASE_URL: Optional[str] = Field(default=None, description="Full database URL (overrides individual DB_* settings)")
    DB_POOL_SIZE: int = Field(default=5, description="Database connection pool size")
    DB_ECHO: bool = Field(default=False, description="Enable SQL query logging")

    @computed_field
    @property
    def database_url_computed(self) -> str:
        """
        Compute the database URL from individual settings or use DATABASE_URL if provided.

        Returns:
            str: Async SQLAlchemy connection URL (asyncpg unless another driver is given)
        """
        if self.DATABASE_URL:
            url = self.DATABASE_URL
            if url.startswith("postgresql://"):
                url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
            return url

        return f"postgresql+asyncpg://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    @property
    def database_url_sync(self) -> str:
        """Driver-less URL for Alembic, which runs synchronously."""
        return self.database_url_computed.replace("postgresql+asyncpg://", "postgresql://", 1)

    # Email Configuration
    EMAIL_PROVIDER: Literal["ses", "resend", "smtp"] = Field(default="smtp", description="Email provider: 'ses', 'resend' or 'smtp'")
    EMAIL_FROM_ADDRESS: str = Field(default="id-noreply@localhost", description="Sender email address")
    EMAIL_FROM_NAME: str = Field(default="ID Dashboard", description="From name displayed in emails")
    TEMPLATE_DIR: Optional[str] = Field(default=None, description="Directory holding email templates; defaults to the bundled templates")

    # AWS SES Configuration (used when EMAIL_PROVIDER=ses)
    AWS_SES_REGION: str = Field(default="us-east-1", description="AWS SES region")
    SES_CONFIGURATION_SET: str | None = Field(default=None, description="Optional SES configuration set name")

    # Resend Configuration (used when EMAIL_PROVIDER=resend)
    RESEND_API_KEY: str | None = Field(default=None, description="Resend API key")

    # SMTP Configuration (used when EMAIL_PROVIDER=smtp)
    SMTP_HOST: str = Field(default="localhost", description="SMTP server host")
    SMTP_PORT: int = Field(default=587, description="SMTP server port")
    SMTP_USERNAME: str | None = Field(default=None, description="SMTP login user")
    SMTP_PASSWORD: str | None = Field(default=None, description="SMTP login password")
    SMTP_USE_TLS: bool = Field(default=True, description="Issue STARTTLS before login")
    SMTP_TIMEOUT_SECONDS: int = Field(default=15, description="SMTP socket timeout")

    BEGIN_RATE_LIMIT_PER_HOUR: int = Field(default=10, description="Maximum verification requests per hour per IP")
    RESEND_RATE_LIMIT_PER_HOUR: int = Field(default=5, description="Maximum resend requests per hour per IP")

    @field_validator("USERNAME_PATTERN", "EMAIL_PATTERN")
    @classmethod
    def validate_pattern(cls, v: str, info) -> str:
        try:
            re.compile(v)
        except re.error as e:
            raise ValueError(f"{info.field_name} is not a valid regular expression: {e}")
        return v

    @field_validator("VERIFICATION_TTL_HOURS")
    @classmethod
    def validate_ttl(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 1:
            raise ValueError("VERIFICATION_TTL_HOURS must be at least 1 hour")
        return v

    @model_validator(mode="after")
    def set_environment_defaults(self):
        """Set environment-specific validations."""
        if self.ENVIRONMENT == "prod":
            if not self.SITE_URL.startswith("https://"):
                raise ValueError("SITE_URL must use HTTPS in production")
            if self.EMAIL_PROVIDER == "resend" and not self.RESEND_API_KEY:
                raise ValueError("RESEND_API_KEY is required when EMAIL_PROVIDER=resend")
        return self


settings = Settings()
