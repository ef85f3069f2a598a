"""Verification token generation and URL-safe encoding."""
import base64
import binascii
import uuid

from email_verification.core.constants import VerificationErrorDetails
from email_verification.core.exceptions import ValidationError


class TokenGenerator:
    """Produces random v4 UUID tokens (122 random bits)."""

    def new_token(self) -> str:
        return str(uuid.uuid4())


def encode_token(token: str) -> str:
    """Encode a raw token as unpadded base64url for embedding in links."""
    return base64.urlsafe_b64encode(token.encode("utf-8")).rstrip(b"=").decode("ascii")


def decode_token(encoded: str) -> str:
    """Recover the raw token from its base64url form.

    Raises:
        ValidationError: If the value is not valid unpadded base64url
    """
    if not encoded:
        raise ValidationError(VerificationErrorDetails.TOKEN_MALFORMED)

    padded = encoded + "=" * (-len(encoded) % 4)
    try:
        raw = base64.b64decode(padded.encode("ascii"), altchars=b"-_", validate=True)
        return raw.decode("utf-8")
    except (binascii.Error, UnicodeError) as e:
        raise ValidationError(VerificationErrorDetails.TOKEN_MALFORMED) from e
