"""Verification SQLAlchemy model for pending email verifications."""
from datetime import datetime, timezone
from typing import Any
from sqlalchemy import String, DateTime, Text, JSON
from sqlalchemy.orm import Mapped, mapped_column
from email_verification.core.database import Base


def as_aware_utc(dt: datetime | None) -> datetime | None:
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


class VerificationRecord(Base):
    """A pending verification. The row exists only while the verification is pending."""

    __tablename__ = "email_verifications"

    token: Mapped[str] = mapped_column(String(36), primary_key=True)
    address: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    category: Mapped[str] = mapped_column(String(64), nullable=False, default="", index=True)
    username: Mapped[str] = mapped_column(String(255), nullable=False, default="", index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    request_settings: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    locals: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )

    def to_dict(self) -> dict:
        """Convert model to the plain dict shape repositories hand to services."""
        return {
            "token": self.token,
            "address": self.address,
            "category": self.category,
            "username": self.username,
            "description": self.description,
            "request_settings": dict(self.request_settings or {}),
            "locals": dict(self.locals or {}),
            "created_at": as_aware_utc(self.created_at),
        }

    def __repr__(self) -> str:
        return f"<VerificationRecord(token={self.token[:8]}..., address={self.address}, category={self.category})>"
