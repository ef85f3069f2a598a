from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field


class VerificationRequest(BaseModel):
    """Parameters of a verification. Persisted verbatim so a resend can replay it."""

    address: str = Field(default="", description="Email address to send to")
    subject: str = Field(default="", description="Subject of the email sent")
    template_ref: str = Field(default="", description="Template name resolved by the notification sender")
    category: str = Field(default="", description="Category scoping searches, e.g. 'signup' or 'reset'")
    username: str = Field(default="", description="Username related to this request")
    description: str = Field(default="", description="Free-text note")
    callback_path: Optional[str] = Field(default=None, description="Path joined with the encoded token to form the link")
    include_verify_url: bool = Field(default=True, description="Embed a verification link in the message")
    locals: dict[str, Any] = Field(default_factory=dict, description="Extra render data, returned on check")


class VerificationSummary(BaseModel):
    """Search result entry. Never exposes the raw token."""

    model_config = ConfigDict(from_attributes=True)

    address: str
    category: str
    username: str
    description: str
    created_at: datetime


class VerificationTokenResponse(BaseModel):
    token: str


class VerificationCheckResponse(BaseModel):
    valid: bool
    locals: Optional[dict[str, Any]] = None
