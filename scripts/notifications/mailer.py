"""
Email delivery for digests and notifications.

Supports two transports:
- Amazon SES (default)
- SMTP (optional, smtp config section)
"""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from access_log.config import DigestConfig, SmtpSettings
from access_log.errors import ConfigurationError, DeliveryError

logger = logging.getLogger(__name__)

ERROR_SUBJECT = "[Error] Access Logger: Unexpected Error"


class SesMailer:
    """Send HTML email through Amazon SES."""

    def __init__(self, email_from: str, email_to: str, region: str = "us-east-1", client: Any = None):
        """
        Initialize mailer.

        Args:
            email_from: Verified sender address
            email_to: Recipient address
            region: SES region
            client: Pre-built SES client (tests inject a double here)
        """
        self.email_from = email_from
        self.email_to = email_to
        self.client = client or boto3.client("ses", region_name=region)

    def send(self, subject: str, html_body: str):
        """
        Send one email.

        Raises:
            DeliveryError: If SES rejects the message or the call fails
        """
        try:
            self.client.send_email(
                Source=self.email_from,
                Destination={"ToAddresses": [self.email_to]},
                Message={
                    "Subject": {"Data": subject},
                    "Body": {"Html": {"Data": html_body}},
                },
            )
        except (ClientError, BotoCoreError) as e:
            raise DeliveryError(f"Failed to send '{subject}' via SES: {e}") from e
        logger.info("Sent '%s' to %s", subject, self.email_to)


class SmtpMailer:
    """Send HTML email through an SMTP server."""

    def __init__(self, email_from: str, email_to: str, smtp: SmtpSettings):
        self.email_from = email_from
        self.email_to = email_to
        self.smtp = smtp

    def send(self, subject: str, html_body: str):
        """
        Send one email.

        Raises:
            DeliveryError: If the SMTP exchange fails
        """
        msg = MIMEMultipart()
        msg['From'] = self.email_from
        msg['To'] = self.email_to
        msg['Subject'] = subject
        msg.attach(MIMEText(html_body, 'html', 'utf-8'))

        try:
            with smtplib.SMTP(self.smtp.server, self.smtp.port) as server:
                if self.smtp.use_tls:
                    server.starttls()
                if self.smtp.username and self.smtp.password:
                    server.login(self.smtp.username, self.smtp.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            raise DeliveryError(f"Failed to send '{subject}' via {self.smtp.server}: {e}") from e
        logger.info("Sent '%s' to %s", subject, self.email_to)


def build_mailer(config: DigestConfig):
    """Create the mailer selected by config.delivery_method."""
    if config.delivery_method == "ses":
        return SesMailer(config.email_from, config.email_to, region=config.email_region)
    if config.delivery_method == "smtp":
        return SmtpMailer(config.email_from, config.email_to, config.smtp)
    raise ConfigurationError(f"Unknown delivery method: {config.delivery_method}")


def send_error_notification(mailer, renderer, error: BaseException) -> bool:
    """
    Best-effort report of an unexpected error through the mailer.

    Returns:
        True if the notification was sent
    """
    try:
        mailer.send(ERROR_SUBJECT, renderer.render_error(error))
    except Exception:
        logger.exception("Failed to send error notification")
        return False
    return True
