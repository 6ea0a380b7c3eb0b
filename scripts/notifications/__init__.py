"""
Outbound notifications for access digests.

Provides email delivery (SES or SMTP) and the decorative GIF lookup.
"""

from .mailer import SesMailer, SmtpMailer, build_mailer, send_error_notification, ERROR_SUBJECT
from .gif import GiphyClient

__all__ = [
    'SesMailer',
    'SmtpMailer',
    'build_mailer',
    'send_error_notification',
    'ERROR_SUBJECT',
    'GiphyClient',
]
