"""Verification lifecycle: begin, resend, check, clear and search.

A token moves from absent to pending when ``begin`` stores its record, and back
to absent when ``clear`` (or ``resend``) removes it. Nothing records that a
token was used; a missing record is the "invalid or already used" outcome.
"""
import logging
import posixpath
from collections.abc import Mapping
from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from urllib.parse import urljoin, urlsplit

from pydantic import ValidationError as PydanticValidationError

from email_verification.core.constants import SearchField, VerificationErrorDetails
from email_verification.core.exceptions import (
    InvalidCredentialError,
    StoreError,
    ValidationError,
    VerificationNotFoundError,
)
from email_verification.interfaces.credential import CredentialMatcher
from email_verification.interfaces.notification import INotificationSender
from email_verification.interfaces.verification import IVerificationRepository
from email_verification.schemas.verification import VerificationRequest
from email_verification.services.token import TokenGenerator, encode_token

logger = logging.getLogger(__name__)

DEFAULT_ASSET_PATH = "/resource/images/logo.png"


def _is_site_relative(path: str) -> bool:
    """True for an absolute path on the configured site, e.g. ``/verify``."""
    parsed = urlsplit(path)
    return (
        not parsed.scheme
        and not parsed.netloc
        and path.startswith("/")
        and not path.startswith("//")
        and "\\" not in path
    )


class VerificationService:
    def __init__(
        self,
        repository: IVerificationRepository,
        notification_sender: INotificationSender,
        username_matcher: CredentialMatcher,
        email_matcher: CredentialMatcher,
        site_url: str,
        asset_path: str = DEFAULT_ASSET_PATH,
        token_generator: Optional[TokenGenerator] = None,
    ):
        self.repository = repository
        self.notification_sender = notification_sender
        self.username_matcher = username_matcher
        self.email_matcher = email_matcher
        self.site_url = site_url
        self.asset_path = asset_path
        self.token_generator = token_generator or TokenGenerator()

    def _validate_request(self, request: VerificationRequest | Mapping[str, Any]) -> VerificationRequest:
        """Coerce the request into a model and check the required fields."""
        if not isinstance(request, VerificationRequest):
            try:
                request = VerificationRequest.model_validate(request)
            except PydanticValidationError as e:
                raise ValidationError(
                    VerificationErrorDetails.INVALID_REQUEST,
                    data={"errors": e.errors(include_url=False, include_context=False)}
                ) from e

        if not request.address.strip():
            raise ValidationError(VerificationErrorDetails.ADDRESS_REQUIRED)
        if not request.subject.strip():
            raise ValidationError(VerificationErrorDetails.SUBJECT_REQUIRED)
        if not request.template_ref.strip():
            raise ValidationError(VerificationErrorDetails.TEMPLATE_REQUIRED)
        if request.include_verify_url and not (request.callback_path or "").strip():
            raise ValidationError(VerificationErrorDetails.CALLBACK_REQUIRED)
        if request.callback_path and not _is_site_relative(request.callback_path):
            raise ValidationError(
                VerificationErrorDetails.CALLBACK_INVALID,
                data={"callback_path": request.callback_path}
            )
        return request

    def _build_locals(self, request: VerificationRequest, caller_locals: dict[str, Any], token: str) -> dict[str, Any]:
        """Merge the delivery keys over the caller's locals.

        Only address, site_url, asset_url and verify_url are overwritten.
        Caller locals arrive in their JSON form, so values such as datetimes
        are ISO strings both in the rendered message and when returned by
        ``check``.
        """
        merged = dict(caller_locals)
        merged["address"] = request.address
        merged["site_url"] = self.site_url
        merged["asset_url"] = urljoin(self.site_url, self.asset_path)
        if request.include_verify_url:
            merged["verify_url"] = urljoin(
                self.site_url,
                posixpath.join(request.callback_path, encode_token(token))
            )
        return merged

    async def begin(self, request: VerificationRequest | Mapping[str, Any]) -> str:
        """Create a pending verification and send its email.

        Args:
            request: Verification parameters, as a model or a plain mapping

        Returns:
            The raw token. Use ``encode_token`` to embed it in a URL.

        Raises:
            ValidationError: If required fields are missing
            StoreError: If the record cannot be stored; nothing is sent
            DeliveryError: If sending fails; the stored record is kept
        """
        request = self._validate_request(request)
        request_settings = request.model_dump(mode="json")

        token = self.token_generator.new_token()
        locals = self._build_locals(request, request_settings["locals"], token)

        await self.repository.insert({
            "token": token,
            "address": request.address,
            "category": request.category,
            "username": request.username,
            "description": request.description,
            "request_settings": request_settings,
            "locals": locals,
        })
        logger.debug(f"[{request.category}]: verification stored for {request.address}")

        await self.notification_sender.send(
            request.address,
            request.subject,
            request.template_ref,
            locals,
        )
        logger.info(f"[{request.category}]: email verification sent to {request.address}")
        return token

    async def resend(self, token: str) -> str:
        """Replace a pending verification with a fresh token and send it again.

        A failed delete of the old record is logged and ignored; that record
        then lingers until the store's expiry policy removes it.

        Raises:
            VerificationNotFoundError: If no pending verification has this token
        """
        record = await self.repository.get_by_token(token)
        if not record:
            logger.error(VerificationErrorDetails.RECORD_NOT_FOUND)
            raise VerificationNotFoundError()

        try:
            await self.repository.delete_by_token(token)
            logger.debug("verification cleared, now resending")
        except (StoreError, VerificationNotFoundError) as e:
            logger.error(f"Failed to delete verification before resend, old token left in place: {e.message}")

        request = VerificationRequest.model_validate(record["request_settings"])
        new_token = await self.begin(request)
        logger.info(f"[{request.category}]: email verification resent to {request.address}")
        return new_token

    async def check(self, token: str) -> tuple[bool, Optional[dict[str, Any]]]:
        """Report whether a token is pending, with its locals.

        Returns:
            ``(True, locals)`` for a pending token, ``(False, None)`` otherwise.
            The record is left in place; call ``clear`` to finish.
        """
        record = await self.repository.get_by_token(token)
        if not record:
            logger.debug("verification record not found")
            return False, None
        return True, dict(record.get("locals") or {})

    async def clear(self, token: str) -> None:
        """Drop a verification. Clearing an absent token is not an error."""
        try:
            await self.repository.delete_by_token(token)
        except VerificationNotFoundError:
            logger.debug("verification already cleared")

    async def search(self, credential: str, category: str) -> list[dict]:
        """Find pending verifications of a category by username or email address.

        Raises:
            InvalidCredentialError: If the credential is neither a username nor
                an email address. The store is not queried.
        """
        if self.username_matcher.matches(credential):
            field = SearchField.USERNAME
        elif self.email_matcher.matches(credential):
            field = SearchField.ADDRESS
        else:
            raise InvalidCredentialError(credential)

        return await self.repository.find_by_category_and_field(category, field.value, credential)


async def purge_expired_verifications(repository: IVerificationRepository, ttl_hours: int) -> int:
    """Store-level expiry: delete verifications older than ``ttl_hours``."""
    cutoff = datetime.now(timezone.utc) - timedelta(hours=ttl_hours)
    removed = await repository.delete_created_before(cutoff)
    if removed:
        logger.info(f"Purged {removed} expired email verifications older than {ttl_hours}h")
    return removed
