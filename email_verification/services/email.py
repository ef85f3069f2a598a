"""Email delivery for verification messages.

Supports multiple email providers (AWS SES, Resend, SMTP) configured via the
EMAIL_PROVIDER env var. Message bodies are Jinja2 templates rendered with the
verification locals.
"""

import asyncio
import logging
import posixpath
import smtplib
from abc import ABC, abstractmethod
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from pathlib import Path
from typing import Any, Optional

from jinja2 import Environment, FileSystemLoader, TemplateError, TemplateNotFound, select_autoescape

from email_verification.core.config import settings
from email_verification.core.constants import VerificationErrorDetails
from email_verification.core.exceptions import DeliveryError
from email_verification.interfaces.notification import INotificationSender

logger = logging.getLogger(__name__)


def _from_header() -> str:
    return f"{settings.EMAIL_FROM_NAME} <{settings.EMAIL_FROM_ADDRESS}>"


# =============================================================================
# Email Provider Interface
# =============================================================================

class EmailProvider(ABC):
    """Abstract base class for email providers."""

    @abstractmethod
    async def send(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: Optional[str] = None
    ) -> bool:
        """Send an email. Returns True on success, False on failure."""
        pass


# =============================================================================
# AWS SES Provider
# =============================================================================

class SESProvider(EmailProvider):
    """AWS SES email provider."""

    def __init__(self):
        import boto3
        self.client = boto3.client('ses', region_name=settings.AWS_SES_REGION)

    async def send(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: Optional[str] = None
    ) -> bool:
        from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError

        body = {
            'Html': {
                'Data': html_body,
                'Charset': 'UTF-8'
            }
        }
        if text_body:
            body['Text'] = {
                'Data': text_body,
                'Charset': 'UTF-8'
            }

        send_params = {
            'Source': _from_header(),
            'Destination': {
                'ToAddresses': [to_email]
            },
            'Message': {
                'Subject': {
                    'Data': subject,
                    'Charset': 'UTF-8'
                },
                'Body': body
            }
        }
        if settings.SES_CONFIGURATION_SET:
            send_params['ConfigurationSetName'] = settings.SES_CONFIGURATION_SET

        try:
            response = await asyncio.to_thread(self.client.send_email, **send_params)
        except NoCredentialsError:
            logger.error("[SES] AWS credentials not found")
            return False
        except ClientError as e:
            error_code = e.response['Error']['Code']
            error_message = e.response['Error']['Message']
            logger.error(f"[SES] Error sending to {to_email}: {error_code} - {error_message}")
            return False
        except BotoCoreError as e:
            logger.error(f"[SES] Transport error sending to {to_email}: {e}")
            return False

        logger.info(f"[SES] Email sent to {to_email}, MessageId: {response.get('MessageId', 'unknown')}")
        return True


# =============================================================================
# Resend Provider
# =============================================================================

class ResendProvider(EmailProvider):
    """Resend email provider."""

    def __init__(self):
        if not settings.RESEND_API_KEY:
            raise ValueError("RESEND_API_KEY is required when using Resend provider")

        import resend
        resend.api_key = settings.RESEND_API_KEY
        self.resend = resend

    async def send(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: Optional[str] = None
    ) -> bool:
        params = {
            "from": _from_header(),
            "to": [to_email],
            "subject": subject,
            "html": html_body,
        }
        if text_body:
            params["text"] = text_body

        try:
            response = await asyncio.to_thread(self.resend.Emails.send, params)
        except Exception as e:
            # The resend SDK raises its own error hierarchy plus raw HTTP errors
            logger.error(f"[Resend] Error sending to {to_email}: {str(e)}")
            return False

        email_id = response.get('id', 'unknown') if isinstance(response, dict) else getattr(response, 'id', 'unknown')
        logger.info(f"[Resend] Email sent to {to_email}, ID: {email_id}")
        return True


# =============================================================================
# SMTP Provider
# =============================================================================

class SMTPProvider(EmailProvider):
    """Plain SMTP provider with optional STARTTLS and login."""

    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        username: str | None = None,
        password: str | None = None,
        use_tls: bool | None = None,
        timeout: int | None = None,
    ):
        self.host = host or settings.SMTP_HOST
        self.port = port or settings.SMTP_PORT
        self.username = username if username is not None else settings.SMTP_USERNAME
        self.password = password if password is not None else settings.SMTP_PASSWORD
        self.use_tls = settings.SMTP_USE_TLS if use_tls is None else use_tls
        self.timeout = timeout or settings.SMTP_TIMEOUT_SECONDS

    def _build_message(self, to_email: str, subject: str, html_body: str, text_body: Optional[str]) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["From"] = _from_header()
        msg["To"] = to_email
        msg["Subject"] = subject
        if text_body:
            msg.attach(MIMEText(text_body, "plain", "utf-8"))
        msg.attach(MIMEText(html_body, "html", "utf-8"))
        return msg

    def _deliver(self, to_email: str, msg: MIMEMultipart) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
            if self.use_tls:
                server.starttls()
            if self.username and self.password:
                server.login(self.username, self.password)
            server.sendmail(settings.EMAIL_FROM_ADDRESS, [to_email], msg.as_string())

    async def send(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: Optional[str] = None
    ) -> bool:
        msg = self._build_message(to_email, subject, html_body, text_body)
        try:
            await asyncio.to_thread(self._deliver, to_email, msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"[SMTP] Error sending to {to_email}: {e}")
            return False

        logger.info(f"[SMTP] Email sent to {to_email} via {self.host}:{self.port}")
        return True


# =============================================================================
# Provider Factory
# =============================================================================

_provider_instance: Optional[EmailProvider] = None


def get_email_provider() -> EmailProvider:
    """Get the configured email provider (singleton)."""
    global _provider_instance

    if _provider_instance is None:
        provider_name = settings.EMAIL_PROVIDER.lower()

        if provider_name == "ses":
            _provider_instance = SESProvider()
            logger.info("Email provider initialized: AWS SES")
        elif provider_name == "resend":
            _provider_instance = ResendProvider()
            logger.info("Email provider initialized: Resend")
        elif provider_name == "smtp":
            _provider_instance = SMTPProvider()
            logger.info("Email provider initialized: SMTP")
        else:
            raise ValueError(f"Unknown email provider: {provider_name}. Use 'ses', 'resend' or 'smtp'.")

    return _provider_instance


# =============================================================================
# Templates
# =============================================================================

BUNDLED_TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"


def create_template_environment(template_dir: str | None = None) -> Environment:
    """Jinja2 environment for email templates.

    Loads from ``template_dir``, then TEMPLATE_DIR, then the templates shipped
    with the package. The bundled directory does not depend on the working
    directory.
    """
    return Environment(
        loader=FileSystemLoader(template_dir or settings.TEMPLATE_DIR or BUNDLED_TEMPLATE_DIR),
        autoescape=select_autoescape(["html", "htm", "xml"]),
    )


def _text_variant(template_ref: str) -> str:
    root, _ = posixpath.splitext(template_ref)
    return f"{root}.txt"


# =============================================================================
# Notification Sender
# =============================================================================

class EmailNotificationSender(INotificationSender):
    """Renders a verification template and hands it to an email provider.

    An optional plain-text body is rendered from a sibling template with a
    ``.txt`` extension when one exists.
    """

    def __init__(self, provider: EmailProvider, environment: Environment):
        self._provider = provider
        self._environment = environment

    def _render(self, template_ref: str, locals: dict[str, Any]) -> tuple[str, Optional[str]]:
        html_body = self._environment.get_template(template_ref).render(**locals)

        text_ref = _text_variant(template_ref)
        if text_ref == template_ref:
            return html_body, None
        try:
            text_body = self._environment.get_template(text_ref).render(**locals)
        except TemplateNotFound:
            text_body = None
        return html_body, text_body

    async def send(
        self,
        address: str,
        subject: str,
        template_ref: str,
        locals: dict[str, Any]
    ) -> None:
        try:
            html_body, text_body = self._render(template_ref, locals)
        except TemplateError as e:
            logger.error(f"Failed to render template {template_ref} for {address}: {e}")
            raise DeliveryError(
                VerificationErrorDetails.TEMPLATE_FAILURE,
                data={"template": template_ref}
            ) from e

        if not await self._provider.send(address, subject, html_body, text_body):
            raise DeliveryError(data={"address": address})
