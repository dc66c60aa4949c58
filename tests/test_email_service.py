"""
Tests for the SMTP email transport.
"""

import smtplib

import pytest

from insurance_ai.config import Settings
from insurance_ai.core.email_service import EmailService
from insurance_ai.errors import EmailDeliveryError


@pytest.fixture
def settings():
    return Settings(
        smtp_host="smtp.sendgrid.net",
        smtp_port=587,
        smtp_password="SG.test-key",
        email_from="noreply@insurance-ai.example",
        email_max_attempts=3,
        email_backoff_seconds=0,
    )


@pytest.fixture
def smtp(mocker):
    """Patched smtplib.SMTP; returns the server object used inside the with-block."""
    smtp_class = mocker.patch("insurance_ai.core.email_service.smtplib.SMTP")
    server = smtp_class.return_value.__enter__.return_value
    server.smtp_class = smtp_class
    return server


class TestSend:
    """Tests for EmailService.send."""

    def test_delivers_multipart_message(self, settings, smtp):
        receipt = EmailService(settings).send(
            to="support@acmehealth.example",
            subject="Policy Inquiry: Claim",
            text="Plain body",
            html="<p>HTML body</p>",
            reply_to="asha@example.com",
        )

        smtp.smtp_class.assert_called_once_with("smtp.sendgrid.net", 587, timeout=30.0)
        smtp.starttls.assert_called_once()
        smtp.login.assert_called_once_with("apikey", "SG.test-key")

        msg = smtp.send_message.call_args[0][0]
        assert msg["Subject"] == "Policy Inquiry: Claim"
        assert msg["From"] == "Insurance AI <noreply@insurance-ai.example>"
        assert msg["Reply-To"] == "asha@example.com"
        assert msg.is_multipart()
        assert smtp.send_message.call_args.kwargs["to_addrs"] == ["support@acmehealth.example"]

        assert receipt.success
        assert receipt.provider == "sendgrid"
        assert receipt.message_id == msg["Message-ID"]

    def test_envelope_includes_cc_and_bcc(self, settings, smtp):
        EmailService(settings).send(
            to=["a@example.com", "b@example.com"],
            subject="Hi",
            text="Body",
            cc="c@example.com",
            bcc=["d@example.com"],
        )

        msg = smtp.send_message.call_args[0][0]
        assert msg["To"] == "a@example.com, b@example.com"
        assert msg["Cc"] == "c@example.com"
        assert msg["Bcc"] is None
        assert smtp.send_message.call_args.kwargs["to_addrs"] == [
            "a@example.com", "b@example.com", "c@example.com", "d@example.com",
        ]

    def test_transient_failure_is_retried(self, settings, smtp):
        smtp.send_message.side_effect = [smtplib.SMTPServerDisconnected("connection lost"), {}]

        receipt = EmailService(settings).send(to="a@example.com", subject="Hi", text="Body")

        assert receipt.success
        assert smtp.send_message.call_count == 2

    def test_gives_up_after_max_attempts(self, settings, smtp):
        smtp.send_message.side_effect = smtplib.SMTPDataError(451, b"try again later")

        with pytest.raises(EmailDeliveryError, match="after 3 attempts"):
            EmailService(settings).send(to="a@example.com", subject="Hi", text="Body")

        assert smtp.send_message.call_count == 3

    def test_non_transient_failure_is_not_retried(self, settings, smtp):
        smtp.send_message.side_effect = TypeError("bad message")

        with pytest.raises(EmailDeliveryError):
            EmailService(settings).send(to="a@example.com", subject="Hi", text="Body")

        assert smtp.send_message.call_count == 1

    @pytest.mark.parametrize("to,subject,text", [
        ("", "Hi", "Body"),
        ("a@example.com", "", "Body"),
        ("a@example.com", "Hi", ""),
    ])
    def test_missing_fields(self, settings, smtp, to, subject, text):
        with pytest.raises(ValueError, match="Missing required fields"):
            EmailService(settings).send(to=to, subject=subject, text=text)

        smtp.smtp_class.assert_not_called()

    def test_missing_sender(self, settings, smtp):
        settings.email_from = None

        with pytest.raises(EmailDeliveryError, match="No sender email configured"):
            EmailService(settings).send(to="a@example.com", subject="Hi", text="Body")

        smtp.smtp_class.assert_not_called()

    def test_plain_smtp_without_tls(self, settings, smtp):
        settings.smtp_host = "mail.internal"
        settings.smtp_use_tls = False

        receipt = EmailService(settings).send(to="a@example.com", subject="Hi", text="Body")

        smtp.starttls.assert_not_called()
        assert receipt.provider == "smtp"
