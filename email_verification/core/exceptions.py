from email_verification.core.handler import AppException
from email_verification.core.constants import VerificationErrorDetails


class ValidationError(AppException):
    """Request is missing required data or is malformed. Caller's fault, not retried."""

    def __init__(self, message: str = VerificationErrorDetails.INVALID_REQUEST, data: dict = None):
        super().__init__(message, status_code=400, data=data)


class InvalidCredentialError(ValidationError):
    """Search credential is neither a username nor an email address."""

    def __init__(self, credential: str):
        super().__init__(VerificationErrorDetails.INVALID_CREDENTIAL, data={"credential": credential})


class VerificationNotFoundError(AppException):
    """No pending verification exists for the token."""

    def __init__(self, message: str = VerificationErrorDetails.RECORD_NOT_FOUND, data: dict = None):
        super().__init__(message, status_code=404, data=data)


class StoreError(AppException):
    """Persistence layer failure."""

    def __init__(self, message: str = VerificationErrorDetails.STORE_FAILURE, data: dict = None, status_code: int = 503):
        super().__init__(message, status_code=status_code, data=data)


class DuplicateTokenError(StoreError):
    """Token collision on insert. Indicates a generator failure and is never retried."""

    def __init__(self, token: str):
        super().__init__(VerificationErrorDetails.DUPLICATE_TOKEN, status_code=500)
        self.token = token


class DeliveryError(AppException):
    """Rendering or transport failed after the record was persisted."""

    def __init__(self, message: str = VerificationErrorDetails.DELIVERY_FAILURE, data: dict = None):
        super().__init__(message, status_code=502, data=data)
