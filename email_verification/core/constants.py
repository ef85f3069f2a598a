from enum import StrEnum


class SearchField(StrEnum):
    """Record fields a credential search may filter on."""
    USERNAME = "username"
    ADDRESS = "address"


class VerificationErrorDetails(StrEnum):
    """Verification lifecycle error messages."""

    ADDRESS_REQUIRED = "Email address is required"
    SUBJECT_REQUIRED = "Email subject is required"
    TEMPLATE_REQUIRED = "Email template is required"
    CALLBACK_REQUIRED = "Callback path is required to build the verification link"
    CALLBACK_INVALID = "Callback path must be a path on this site, e.g. /verify"
    INVALID_REQUEST = "Invalid verification request"
    TOKEN_MALFORMED = "Malformed verification token"

    RECORD_NOT_FOUND = "Email verification record is not found, maybe expired"
    INVALID_CREDENTIAL = "Invalid credential"

    DUPLICATE_TOKEN = "Verification token already exists"
    STORE_FAILURE = "Verification store is unavailable"
    DELIVERY_FAILURE = "Failed to send verification email"
    TEMPLATE_FAILURE = "Failed to render verification email"


class GeneralErrorDetails(StrEnum):
    """General application error messages."""

    INTERNAL_SERVER_ERROR = "Internal server error"
    RATE_LIMIT_EXCEEDED = "Too many requests. Please try again later"
