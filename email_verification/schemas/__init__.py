"""Pydantic schemas for request/response validation."""
from email_verification.schemas.verification import (
    VerificationRequest,
    VerificationSummary,
    VerificationTokenResponse,
    VerificationCheckResponse,
)
from email_verification.schemas.response import ApiResponse

__all__ = [
    "VerificationRequest",
    "VerificationSummary",
    "VerificationTokenResponse",
    "VerificationCheckResponse",
    "ApiResponse",
]
