"""SQLAlchemy ORM models."""
from email_verification.models.verification import VerificationRecord

__all__ = [
    "VerificationRecord",
]
