"""
SMTP email transport (SendGrid relay by default).
Sends multipart text/HTML messages with bounded retries and linear backoff.
"""

from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from email.utils import make_msgid
from typing import List, Optional, Sequence, Union

from pydantic import BaseModel

from insurance_ai.config import Settings
from insurance_ai.core.retry import linear_backoff, with_retry
from insurance_ai.errors import EmailDeliveryError


logger = logging.getLogger(__name__)

Recipients = Union[str, Sequence[str]]


class EmailReceipt(BaseModel):
    """Result of a delivered email."""
    success: bool = True
    message_id: str
    provider: str


def _as_list(value: Optional[Recipients]) -> List[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    return list(value)


def _is_transient(exc: BaseException) -> bool:
    return isinstance(exc, (smtplib.SMTPException, OSError))


class EmailService:
    def __init__(self, settings: Settings) -> None:
        self.smtp_host = settings.smtp_host
        self.smtp_port = settings.smtp_port
        self.smtp_username = settings.smtp_username
        self.smtp_password = settings.smtp_password
        self.use_tls = settings.smtp_use_tls
        self.timeout = settings.smtp_timeout_seconds
        self.from_email = settings.email_from
        self.app_name = settings.app_name
        self.provider = settings.email_provider
        self.max_attempts = settings.email_max_attempts
        self.backoff_seconds = settings.email_backoff_seconds

    def send(
        self,
        to: Recipients,
        subject: str,
        text: str,
        html: Optional[str] = None,
        reply_to: Optional[str] = None,
        cc: Optional[Recipients] = None,
        bcc: Optional[Recipients] = None,
    ) -> EmailReceipt:
        """
        Send an email, retrying transient SMTP failures.

        Raises:
            ValueError: to, subject or text is missing
            EmailDeliveryError: no sender is configured or every attempt failed
        """
        recipients = _as_list(to)
        if not recipients or not subject or not text:
            raise ValueError("Missing required fields: to, subject, or text")

        if not self.from_email:
            raise EmailDeliveryError("No sender email configured. Set EMAIL_FROM.")

        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = f"{self.app_name} <{self.from_email}>"
        msg["To"] = ", ".join(recipients)
        if cc:
            msg["Cc"] = ", ".join(_as_list(cc))
        if reply_to:
            msg["Reply-To"] = reply_to
        msg["Message-ID"] = make_msgid()
        msg.set_content(text)
        if html:
            msg.add_alternative(html, subtype="html")

        envelope = recipients + _as_list(cc) + _as_list(bcc)

        try:
            with_retry(
                lambda: self._deliver(msg, envelope),
                attempts=self.max_attempts,
                backoff=linear_backoff(self.backoff_seconds),
                is_retryable=_is_transient,
            )
        except Exception as e:
            raise EmailDeliveryError(
                f"Failed to send email after {self.max_attempts} attempts: {e}"
            ) from e

        logger.info("Email sent to %s, messageId: %s", ", ".join(recipients), msg["Message-ID"])
        return EmailReceipt(message_id=msg["Message-ID"], provider=self.provider)

    def _deliver(self, msg: EmailMessage, envelope: List[str]) -> None:
        with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=self.timeout) as server:
            if self.use_tls:
                server.starttls()
            if self.smtp_username and self.smtp_password:
                server.login(self.smtp_username, self.smtp_password)
            server.send_message(msg, to_addrs=envelope)
